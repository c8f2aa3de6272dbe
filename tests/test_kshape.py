"""
Tests for the k-Shape estimator and its functional API.
"""
import numpy as np
import pytest

from shapeclstr import (
    EmptyClusterError,
    FitFailure,
    FittedKShape,
    KShape,
    KShapeConfig,
    NotFittedError,
    fit,
    predict,
    transform,
)
from shapeclstr import kshape as kshape_module
from shapeclstr._restarts import _Snapshot
from shapeclstr.preprocessing import normalize, time_series_norms, to_time_series_dataset


def _two_shapes_dataset(n_per_shape=10, length=40, seed=0):
    """Sine waves with small phase shifts followed by Gaussian pulses at nearby positions."""
    rng = np.random.default_rng(seed)
    t = np.arange(length)
    sines = [np.sin(2 * np.pi * 2 * t / length + rng.uniform(-0.3, 0.3)) + 0.05 * rng.normal(size=length)
             for _ in range(n_per_shape)]
    pulses = [3.0 * np.exp(-((t - rng.integers(17, 23)) ** 2) / 8.0) + 0.05 * rng.normal(size=length)
              for _ in range(n_per_shape)]
    return np.array(sines + pulses)


def test_three_series_scenario():
    """Two identical series share a cluster, the third is alone with zero distance."""
    X = [[0, 1, 2, 1, 0], [0, 1, 2, 1, 0], [5, 4, 3, 4, 5]]

    model = KShape(n_clusters=2, random_state=0).fit(X)

    labels = model.labels_
    assert labels[0] == labels[1]
    assert labels[2] != labels[0]
    assert model.inertia_ == pytest.approx(0.0, abs=1e-6)
    # the first update merges every series into one cluster and is rolled back
    assert model.n_iter_ == 0
    distances = model.transform(X)
    assert distances[0, labels[0]] == pytest.approx(0.0, abs=1e-6)
    assert distances[1, labels[1]] == pytest.approx(0.0, abs=1e-6)


def test_fit_is_deterministic():
    """Same data, same seed and same config give the same result."""
    X = _two_shapes_dataset()

    first = fit(X, KShapeConfig(n_clusters=2, n_init=3, random_state=7))
    second = fit(X, KShapeConfig(n_clusters=2, n_init=3, random_state=7))

    np.testing.assert_array_equal(first.labels_, second.labels_)
    assert first.inertia_ == second.inertia_
    np.testing.assert_array_equal(first.cluster_centers_, second.cluster_centers_)
    assert first.n_iter_ >= 1
    assert first.cluster_centers_.mean() == pytest.approx(0.0, abs=1e-8)
    assert first.cluster_centers_.std() == pytest.approx(1.0, abs=1e-8)


def test_parallel_attempts_match_sequential():
    """Running attempts on threads does not change the retained attempt."""
    X = _two_shapes_dataset(seed=3)

    sequential = fit(X, KShapeConfig(n_clusters=2, n_init=4, random_state=11))
    parallel = fit(X, KShapeConfig(n_clusters=2, n_init=4, random_state=11, n_jobs=4))

    np.testing.assert_array_equal(sequential.labels_, parallel.labels_)
    assert sequential.inertia_ == parallel.inertia_
    assert sequential.n_attempts_ == parallel.n_attempts_


def test_well_separated_shapes_with_explicit_init():
    """A sine group and a pulse group end up in two clusters."""
    X = _two_shapes_dataset()

    model = KShape(n_clusters=2, init=X[[0, 10]]).fit(X)

    labels = model.labels_
    assert len(set(labels[:10])) == 1
    assert len(set(labels[10:])) == 1
    assert labels[0] != labels[10]
    assert model.model_.n_attempts_ == 1


def test_predict_reproduces_training_labels():
    """Predicting on the training data gives back the training labels."""
    X = _two_shapes_dataset(seed=5)

    model = KShape(n_clusters=2, n_init=10, random_state=1)
    labels = model.fit_predict(X)

    np.testing.assert_array_equal(model.predict(X), labels)
    assert len(set(labels[:10])) == 1
    assert len(set(labels[10:])) == 1
    assert labels[0] != labels[10]


def test_successful_fit_has_no_empty_cluster():
    """Every cluster of a fitted model has at least one member."""
    X = _two_shapes_dataset(seed=2)

    model = fit(X, KShapeConfig(n_clusters=3, n_init=2, random_state=0))

    assert isinstance(model, FittedKShape)
    assert np.all(np.bincount(model.labels_, minlength=3) > 0)
    assert model.cluster_centers_.shape == (3, 40, 1)
    assert model.inertia_ >= 0.0


def test_centroids_are_globally_normalized_after_update():
    """Updated centroids have zero mean and unit variance over their pooled values."""
    X = _two_shapes_dataset(seed=4)

    model = fit(X, KShapeConfig(n_clusters=2, n_init=3, random_state=0))

    assert model.n_iter_ >= 1
    assert model.cluster_centers_.mean() == pytest.approx(0.0, abs=1e-8)
    assert model.cluster_centers_.std() == pytest.approx(1.0, abs=1e-8)
    np.testing.assert_allclose(model.centroid_norms_,
                               np.linalg.norm(model.cluster_centers_.reshape(2, -1), axis=1))


def test_fewer_distinct_series_than_clusters_fails():
    """Identical series cannot populate two clusters."""
    X = np.tile(np.array([0.0, 1.0, 2.0, 1.0, 0.0]), (3, 1))
    model = KShape(n_clusters=2, random_state=0)

    with pytest.raises(FitFailure) as excinfo:
        model.fit(X)

    assert excinfo.value.n_attempts == 10
    assert not model.is_fitted()
    with pytest.raises(NotFittedError):
        model.predict(X)


def test_duplicates_never_produce_partial_assignment():
    """Two distinct shapes and three clusters either fail or fill every cluster."""
    X = np.array([[0.0, 1.0, 2.0, 1.0, 0.0]] * 2 + [[2.0, 0.0, 1.0, 0.0, 2.0]] * 2)

    try:
        model = fit(X, KShapeConfig(n_clusters=3, random_state=0))
    except FitFailure:
        return
    assert np.all(np.bincount(model.labels_, minlength=3) > 0)


def test_more_clusters_than_series_is_an_input_error():
    """n_clusters above the dataset size is rejected up front."""
    with pytest.raises(ValueError):
        KShape(n_clusters=4).fit([[1.0, 2.0, 3.0], [3.0, 2.0, 1.0]])


@pytest.mark.parametrize("bad_input", [None, [], [[1.0, 2.0, 3.0], [1.0, 2.0]]])
def test_invalid_datasets_are_rejected(bad_input):
    """Empty or ragged datasets raise ValueError."""
    with pytest.raises(ValueError):
        KShape(n_clusters=1).fit(bad_input)


@pytest.mark.parametrize("kwargs", [
    {"n_clusters": 0},
    {"max_iter": 0},
    {"tol": -1.0},
    {"n_init": 0},
    {"n_jobs": 0},
    {"init": "k-means++"},
])
def test_invalid_config(kwargs):
    """Invalid parameters are rejected when the config is built."""
    with pytest.raises(ValueError):
        KShapeConfig(**kwargs)


def test_explicit_init_shape_is_checked():
    """Explicit centroids must match the number of clusters and series shape."""
    X = _two_shapes_dataset()

    with pytest.raises(ValueError):
        KShape(n_clusters=2, init=X[:3]).fit(X)
    with pytest.raises(ValueError):
        KShape(n_clusters=2, init=np.zeros((2, 30))).fit(X)


def test_explicit_init_allows_a_single_attempt():
    """Explicit centroids that leave a cluster empty fail at once."""
    X = _two_shapes_dataset()
    init = np.array([X[0], X[0]])

    with pytest.raises(FitFailure) as excinfo:
        fit(X, KShapeConfig(n_clusters=2, init=init))

    assert excinfo.value.n_attempts == 1


def test_predict_before_fit():
    """An unfitted estimator refuses to predict or transform."""
    model = KShape()

    with pytest.raises(NotFittedError):
        model.predict([[1.0, 2.0, 3.0]])
    with pytest.raises(NotFittedError):
        model.transform([[1.0, 2.0, 3.0]])
    with pytest.raises(NotFittedError):
        predict(None, [[1.0, 2.0, 3.0]])


def test_predict_shape_mismatch():
    """New series must have the fitted length and feature dimension."""
    X = _two_shapes_dataset()
    model = fit(X, KShapeConfig(n_clusters=2, init=X[[0, 10]]))

    with pytest.raises(ValueError):
        predict(model, X[:, :30])
    with pytest.raises(ValueError):
        predict(model, np.stack([X, X], axis=-1))


def test_predict_does_not_mutate_model():
    """Predictions leave the fitted centroids untouched."""
    X = _two_shapes_dataset()
    model = fit(X, KShapeConfig(n_clusters=2, init=X[[0, 10]]))
    centers = model.cluster_centers_.copy()

    predict(model, X[:3] * 10.0 + 4.0)

    np.testing.assert_array_equal(model.cluster_centers_, centers)


def test_transform_shape_and_bounds():
    """Distances form an (n_ts, n_clusters) matrix in [0, 2]."""
    X = _two_shapes_dataset()
    model = fit(X, KShapeConfig(n_clusters=2, init=X[[0, 10]]))

    distances = transform(model, X)

    assert distances.shape == (20, 2)
    assert np.all(distances >= 0.0)
    assert np.all(distances <= 2.0)
    np.testing.assert_array_equal(distances.argmin(axis=1), model.labels_)


def test_multivariate_fit():
    """Series with several features are clustered along the time axis."""
    X = _two_shapes_dataset()
    X3d = np.stack([X, 0.5 * X], axis=-1)

    model = KShape(n_clusters=2, init=X3d[[0, 10]]).fit(X3d)

    assert model.cluster_centers_.shape == (2, 40, 2)
    assert model.labels_[0] != model.labels_[10]


def test_long_series_use_fft_path():
    """Long series give the same result whichever correlation path is used."""
    X = np.repeat(_two_shapes_dataset(length=40), 3, axis=1)

    fast = fit(X, KShapeConfig(n_clusters=2, init=X[[0, 10]], fft_threshold=64))
    slow = fit(X, KShapeConfig(n_clusters=2, init=X[[0, 10]], fft_threshold=10_000))

    np.testing.assert_array_equal(fast.labels_, slow.labels_)
    assert fast.inertia_ == pytest.approx(slow.inertia_, abs=1e-8)


def test_shape_extraction_rejects_empty_cluster():
    """Updating a centroid without members is an empty-cluster failure."""
    X = np.random.default_rng(0).normal(size=(4, 10, 1))
    norms = np.linalg.norm(X.reshape(4, -1), axis=1)
    snapshot = _Snapshot(X[:2].copy(), norms[:2], np.array([0, 0, 0, 0]), 0.0)

    with pytest.raises(EmptyClusterError) as excinfo:
        kshape_module._shape_extraction(X, norms, snapshot, 1, 64)

    assert excinfo.value.cluster == 1


def test_verbose_prints_progress(capsys):
    """Verbose mode prints the inertia trail."""
    X = _two_shapes_dataset()

    KShape(n_clusters=2, init=X[[0, 10]], verbose=True).fit(X)

    assert "-->" in capsys.readouterr().out


def test_update_emptying_a_cluster_is_rolled_back():
    """An update that leaves a cluster without members keeps the previous assignment."""
    X = normalize(to_time_series_dataset([[0, 1, 2, 1, 0], [0, 1, 2, 1, 0], [5, 4, 3, 4, 5]]))
    norms = time_series_norms(X)
    config = KShapeConfig(n_clusters=2)

    result = kshape_module._fit_one_init(X, norms, config, X[[0, 2]].copy(), 0, 0)

    assert result.n_iter == 0
    np.testing.assert_array_equal(result.snapshot.labels, [0, 0, 1])
    np.testing.assert_array_equal(result.snapshot.centroids, X[[0, 2]])
    assert result.snapshot.inertia == pytest.approx(0.0, abs=1e-6)
