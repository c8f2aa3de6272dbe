"""
k-Shape clustering for time series.

k-Shape was originally presented in:
J. Paparrizos & L. Gravano. k-Shape: Efficient and Accurate Clustering of
Time Series. SIGMOD 2015. pp. 1855-1870.

Series are compared with the shape-based distance ``1 - max NCC`` and every
centroid is refined as the principal eigenvector of the aligned members of its
cluster. The module exposes a functional API (`fit`, `predict`, `transform`)
working on immutable `KShapeConfig`/`FittedKShape` values and the `KShape`
estimator built on top of it.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

import numpy as np

from ._cross_correlation import FFT_THRESHOLD, cdist_normalized_cc, y_shifted_sbd_vec
from ._exceptions import EmptyClusterError, NotFittedError
from ._restarts import AttemptResult, _Snapshot, resolve_base_seed, run_restarts
from ._shape_extraction import extract_shape
from .preprocessing import global_normalize, normalize, time_series_norms, to_time_series_dataset


@dataclass(frozen=True)
class KShapeConfig:
    """
    Parameters of a k-Shape fit.

    Parameters
    ----------
    n_clusters : int
        Number of clusters to form.
    max_iter : int, optional
        Maximum number of centroid updates per attempt. Default is 100.
    tol : float, optional
        Inertia variation threshold for convergence. Default 1e-6.
    n_init : int, optional
        Number of successful random initializations to compare. Default 1.
    init : Union[str, np.ndarray], optional
        ``"random"`` or initial centroids of shape ``(n_clusters, sz, d)``.
        Explicit centroids allow a single attempt.
    random_state : Optional[int], optional
        Base seed of the per-attempt generators. Default 0.
    verbose : bool, optional
        If True, prints the inertia of every iteration.
    n_jobs : int, optional
        Number of threads running initialization attempts. Default 1.
    fft_threshold : int, optional
        Series longer than this are correlated through the FFT. Default 64.
    """

    n_clusters: int = 3
    max_iter: int = 100
    tol: float = 1e-6
    n_init: int = 1
    init: Union[str, np.ndarray] = "random"
    random_state: Optional[int] = 0
    verbose: bool = False
    n_jobs: int = 1
    fft_threshold: int = FFT_THRESHOLD

    def __post_init__(self):
        if int(self.n_clusters) < 1:
            raise ValueError("n_clusters must be >= 1")
        if int(self.max_iter) < 1:
            raise ValueError("max_iter must be >= 1")
        if self.tol < 0:
            raise ValueError("tol must be >= 0")
        if int(self.n_init) < 1:
            raise ValueError("n_init must be >= 1")
        if int(self.n_jobs) < 1:
            raise ValueError("n_jobs must be >= 1")
        if int(self.fft_threshold) < 0:
            raise ValueError("fft_threshold must be >= 0")
        if isinstance(self.init, str) and self.init != "random":
            raise ValueError(f"Invalid init parameter: {self.init}")

    @property
    def explicit_init(self) -> bool:
        return not isinstance(self.init, str)


@dataclass(frozen=True)
class FittedKShape:
    """
    Result of a successful k-Shape fit.

    Attributes
    ----------
    cluster_centers_ : np.ndarray
        Centroids, shape ``(n_clusters, sz, d)``.
    labels_ : np.ndarray
        Cluster of every training series.
    inertia_ : float
        Sum of the distances of the training series to their centroid.
    n_iter_ : int
        Number of accepted centroid updates of the retained attempt.
    n_attempts_ : int
        Number of initialization attempts that were run.
    centroid_norms_ : np.ndarray
        Norm of every centroid.
    fft_threshold : int
        Length above which the FFT is used for distances.
    """

    cluster_centers_: np.ndarray
    labels_: np.ndarray
    inertia_: float
    n_iter_: int
    n_attempts_: int
    centroid_norms_: np.ndarray
    fft_threshold: int = FFT_THRESHOLD

    @property
    def n_clusters(self) -> int:
        return self.cluster_centers_.shape[0]

    @property
    def sz(self) -> int:
        return self.cluster_centers_.shape[1]

    @property
    def d(self) -> int:
        return self.cluster_centers_.shape[2]


def _check_no_empty_cluster(labels: np.ndarray, n_clusters: int) -> None:
    counts = np.bincount(labels, minlength=n_clusters)
    empty = np.flatnonzero(counts == 0)
    if empty.size > 0:
        raise EmptyClusterError(int(empty[0]))


def _cross_dists(X: np.ndarray, norms: np.ndarray, centroids: np.ndarray, centroid_norms: np.ndarray,
                 fft_threshold: int) -> np.ndarray:
    return 1.0 - cdist_normalized_cc(X, centroids, norms, centroid_norms, fft_threshold=fft_threshold)


def _assign(X: np.ndarray, norms: np.ndarray, centroids: np.ndarray, centroid_norms: np.ndarray,
            fft_threshold: int) -> Tuple[np.ndarray, float]:
    """
    Label every series with its closest centroid.

    Returns
    -------
    Tuple[np.ndarray, float]
        Labels (lowest cluster index on ties) and inertia.

    Raises
    ------
    EmptyClusterError
        If a cluster gets no member.
    """
    dists = _cross_dists(X, norms, centroids, centroid_norms, fft_threshold)
    labels = dists.argmin(axis=1)
    _check_no_empty_cluster(labels, centroids.shape[0])
    inertia = float(dists[np.arange(X.shape[0]), labels].sum())
    return labels, inertia


def _shape_extraction(X: np.ndarray, norms: np.ndarray, snapshot: _Snapshot, k: int,
                      fft_threshold: int) -> np.ndarray:
    members = snapshot.labels == k
    if not np.any(members):
        raise EmptyClusterError(k)
    aligned = y_shifted_sbd_vec(snapshot.centroids[k], X[members], snapshot.centroid_norms[k],
                                norms[members], fft_threshold=fft_threshold)
    return extract_shape(aligned)


def _update_centroids(X: np.ndarray, norms: np.ndarray, snapshot: _Snapshot, fft_threshold: int) -> np.ndarray:
    centroids = np.empty_like(snapshot.centroids)
    for k in range(snapshot.centroids.shape[0]):
        centroids[k] = _shape_extraction(X, norms, snapshot, k, fft_threshold)
    return global_normalize(centroids)


def _explicit_centroids(init, n_clusters: int, shape: Tuple[int, int]) -> Optional[np.ndarray]:
    if isinstance(init, str):
        return None
    centroids = to_time_series_dataset(init)
    if centroids.shape != (n_clusters,) + shape:
        raise ValueError(f"Initial centroids must have shape {(n_clusters,) + shape}, got {centroids.shape}")
    return global_normalize(centroids)


def _fit_one_init(X: np.ndarray, norms: np.ndarray, config: KShapeConfig, init_centroids: Optional[np.ndarray],
                  attempt_index: int, seed: int) -> AttemptResult:
    if init_centroids is None:
        rng = np.random.default_rng(seed)
        indices = rng.choice(X.shape[0], size=config.n_clusters, replace=False)
        centroids = X[indices].copy()
    else:
        centroids = init_centroids.copy()

    centroid_norms = time_series_norms(centroids)
    labels, inertia = _assign(X, norms, centroids, centroid_norms, config.fft_threshold)
    current = _Snapshot(centroids, centroid_norms, labels, inertia)

    n_iter = 0
    previous_inertia = np.inf
    for _ in range(config.max_iter):
        previous = current
        centroids = _update_centroids(X, norms, previous, config.fft_threshold)
        centroid_norms = time_series_norms(centroids)
        try:
            labels, inertia = _assign(X, norms, centroids, centroid_norms, config.fft_threshold)
        except EmptyClusterError:
            # the update emptied a cluster, keep the last valid assignment
            if config.verbose:
                print("empty cluster --> ", end="")
            current = previous
            break
        current = _Snapshot(centroids, centroid_norms, labels, inertia)

        if config.verbose:
            print("%.3f --> " % inertia, end="")

        # an increase is treated as a stop too, the update is never kept
        if abs(previous_inertia - inertia) < config.tol or inertia > previous_inertia:
            current = previous
            break
        previous_inertia = inertia
        n_iter += 1

    if config.verbose:
        print()

    return AttemptResult(attempt_index, seed, current, n_iter)


def fit(dataset, config: KShapeConfig) -> FittedKShape:
    """
    Fit k-Shape on a dataset of equal-length time series.

    The dataset is copied and z-normalized with statistics shared by all of
    its values before clustering.

    Parameters
    ----------
    dataset : array-like
        Time series, see `to_time_series_dataset` for accepted layouts.
    config : KShapeConfig
        Fit parameters.

    Returns
    -------
    FittedKShape
        The attempt with the lowest inertia.

    Raises
    ------
    ValueError
        On invalid input or if ``n_clusters`` exceeds the number of series.
    FitFailure
        If every attempt ended with an empty cluster.
    """
    X = normalize(to_time_series_dataset(dataset))
    if config.n_clusters > X.shape[0]:
        raise ValueError("n_clusters must be <= number of time series in X")

    init_centroids = _explicit_centroids(config.init, config.n_clusters, X.shape[1:])
    norms = time_series_norms(X)
    base_seed = resolve_base_seed(config.random_state)

    def fit_one(attempt_index: int, seed: int) -> AttemptResult:
        return _fit_one_init(X, norms, config, init_centroids, attempt_index, seed)

    best, n_attempts = run_restarts(fit_one, config.n_init, base_seed, explicit_init=config.explicit_init,
                                    n_jobs=config.n_jobs, verbose=config.verbose)
    snapshot = best.snapshot
    return FittedKShape(
        cluster_centers_=snapshot.centroids.copy(),
        labels_=snapshot.labels.copy(),
        inertia_=snapshot.inertia,
        n_iter_=best.n_iter,
        n_attempts_=n_attempts,
        centroid_norms_=snapshot.centroid_norms.copy(),
        fft_threshold=config.fft_threshold,
    )


def _prepare_new_series(model: FittedKShape, dataset) -> np.ndarray:
    X = to_time_series_dataset(dataset)
    if X.shape[1:] != model.cluster_centers_.shape[1:]:
        raise ValueError(f"Time series must have shape {model.cluster_centers_.shape[1:]} "
                         f"like the fitted data, got {X.shape[1:]}")
    return normalize(X)


def transform(model: FittedKShape, dataset) -> np.ndarray:
    """
    Shape-based distance from every new series to every fitted centroid.

    Returns
    -------
    np.ndarray
        Distance matrix of shape ``(n_ts, n_clusters)``.
    """
    if model is None:
        raise NotFittedError("Model is not fitted. Call fit(X) first.")
    X = _prepare_new_series(model, dataset)
    return _cross_dists(X, time_series_norms(X), model.cluster_centers_, model.centroid_norms_,
                        model.fft_threshold)


def predict(model: FittedKShape, dataset) -> np.ndarray:
    """
    Assign every new series to its closest fitted centroid.

    The batch is normalized with its own statistics; the model is not modified
    and clusters may be left empty by a prediction batch.
    """
    return transform(model, dataset).argmin(axis=1)


@dataclass
class KShape:
    """
    k-Shape clustering for univariate or multivariate time series.

    Parameters
    ----------
    n_clusters : int, optional
        Number of clusters. Default 3.
    max_iter : int, optional
        Maximum number of iterations. Default is 100.
    tol : float, optional
        Inertia variation threshold for convergence. Default 1e-6.
    n_init : int, optional
        Number of successful initializations to compare. Default 1.
    init : Union[str, np.ndarray], optional
        ``"random"`` or initial centroids of shape ``(n_clusters, sz, d)``.
    random_state : Optional[int], optional
        Random seed for reproducibility. Default 0.
    verbose : bool, optional
        If True, prints progress information.
    n_jobs : int, optional
        Number of threads running initialization attempts. Default 1.
    fft_threshold : int, optional
        Series longer than this are correlated through the FFT. Default 64.

    Notes
    -----
    - Input ``X`` is anything `to_time_series_dataset` accepts; all series must
      share length and feature dimension.
    - ``fit`` raises `FitFailure` when every initialization ends with an empty
      cluster; the estimator then stays unfitted.
    """

    n_clusters: int = 3
    max_iter: int = 100
    tol: float = 1e-6
    n_init: int = 1
    init: Union[str, np.ndarray] = "random"
    random_state: Optional[int] = 0
    verbose: bool = False
    n_jobs: int = 1
    fft_threshold: int = FFT_THRESHOLD

    model_: Optional[FittedKShape] = field(default=None, repr=False)

    @property
    def config(self) -> KShapeConfig:
        return KShapeConfig(
            n_clusters=self.n_clusters,
            max_iter=self.max_iter,
            tol=self.tol,
            n_init=self.n_init,
            init=self.init,
            random_state=self.random_state,
            verbose=self.verbose,
            n_jobs=self.n_jobs,
            fft_threshold=self.fft_threshold,
        )

    @property
    def cluster_centers_(self) -> Optional[np.ndarray]:
        return None if self.model_ is None else self.model_.cluster_centers_

    @property
    def labels_(self) -> Optional[np.ndarray]:
        return None if self.model_ is None else self.model_.labels_

    @property
    def inertia_(self) -> Optional[float]:
        return None if self.model_ is None else self.model_.inertia_

    @property
    def n_iter_(self) -> Optional[int]:
        return None if self.model_ is None else self.model_.n_iter_

    def is_fitted(self) -> bool:
        return self.model_ is not None

    def fit(self, X) -> "KShape":
        """
        Fit the model on a dataset of equal-length time series.

        Parameters
        ----------
        X : array-like
            Dataset of shape (n_ts, sz) or (n_ts, sz, d).

        Returns
        -------
        KShape
            The fitted estimator.
        """
        self.model_ = None
        self.model_ = fit(X, self.config)
        return self

    def predict(self, X) -> np.ndarray:
        """
        Assign each series in `X` to the closest learned centroid.

        Parameters
        ----------
        X : array-like
            Dataset with the same length and feature dimension as the training data.

        Returns
        -------
        np.ndarray
            Cluster label for each input series.
        """
        self._check_is_fitted()
        return predict(self.model_, X)

    def transform(self, X) -> np.ndarray:
        """Distance from each series in `X` to each learned centroid."""
        self._check_is_fitted()
        return transform(self.model_, X)

    def fit_predict(self, X) -> np.ndarray:
        """Fit the model to `X` and return the cluster labels."""
        return self.fit(X).labels_

    def _check_is_fitted(self) -> None:
        if self.model_ is None:
            raise NotFittedError("Model is not fitted. Call fit(X) first.")

