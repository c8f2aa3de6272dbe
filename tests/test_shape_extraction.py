"""
Tests for the eigenvector-based centroid update.
"""
import numpy as np
import pytest

from shapeclstr import (
    NumericalDegeneracyWarning,
    extract_shape,
    principal_shape,
    resolve_sign,
)


def test_principal_shape_of_identical_members():
    """Identical zero-mean members give their own direction back."""
    x = np.array([-1.0, 0.5, 2.0, 0.5, -2.0])
    x = x - x.mean()
    members = np.vstack([x, x, x])

    vector = principal_shape(members)

    expected = x / np.linalg.norm(x)
    assert np.linalg.norm(vector) == pytest.approx(1.0)
    assert abs(np.dot(vector, expected)) == pytest.approx(1.0, abs=1e-10)


def test_principal_shape_is_centred():
    """The centering projector removes any constant offset."""
    rng = np.random.default_rng(0)
    members = rng.normal(size=(6, 12)) + 5.0

    vector = principal_shape(members)

    assert abs(vector.sum()) < 1e-8


def test_resolve_sign_prefers_closest_orientation():
    """The sign closest to the members is kept."""
    v = np.array([1.0, -1.0, 2.0, 0.0])
    aligned = np.vstack([2.0 * v, 3.0 * v])

    np.testing.assert_array_equal(resolve_sign(v, aligned), v)
    np.testing.assert_array_equal(resolve_sign(-v, aligned), v)


def test_resolve_sign_keeps_vector_on_tie():
    """Symmetric members leave the vector unchanged."""
    v = np.array([1.0, 0.0, -1.0])
    aligned = np.vstack([v, -v])

    np.testing.assert_array_equal(resolve_sign(v, aligned), v)


def test_extract_shape_orientation_follows_members():
    """The extracted centroid points in the direction of its members."""
    t = np.linspace(0, 2 * np.pi, 30)
    base = np.sin(t)
    aligned = np.array([(base * scale).reshape(-1, 1) for scale in (1.0, 1.5, 0.8)])

    centroid = extract_shape(aligned)

    assert centroid.shape == (30, 1)
    assert np.dot(centroid[:, 0], base) > 0
    correlation = np.dot(centroid[:, 0], base - base.mean()) / (
        np.linalg.norm(centroid[:, 0]) * np.linalg.norm(base - base.mean()))
    assert correlation == pytest.approx(1.0, abs=1e-8)


def test_extract_shape_multivariate():
    """Every feature dimension is extracted on its own."""
    t = np.linspace(0, 1, 20)
    first = np.sin(2 * np.pi * t)
    second = np.cos(2 * np.pi * t)
    aligned = np.array([np.column_stack([first, second]) for _ in range(4)])

    centroid = extract_shape(aligned)

    assert centroid.shape == (20, 2)
    assert np.dot(centroid[:, 0], first) > 0
    assert np.dot(centroid[:, 1], second) > 0


def test_extract_shape_falls_back_to_mean():
    """A singular shape matrix falls back to the mean with a warning."""
    aligned = np.ones((3, 8, 1)) * np.array([1.0, 2.0, 3.0])[:, np.newaxis, np.newaxis]

    with pytest.warns(NumericalDegeneracyWarning):
        centroid = extract_shape(aligned)

    np.testing.assert_allclose(centroid[:, 0], np.full(8, 2.0))
