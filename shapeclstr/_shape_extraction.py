"""
Shape extraction: the centroid update of k-Shape.

Given cluster members already aligned onto the current centroid, the new
shape is the direction that maximizes the summed squared correlation with the
members, i.e. the principal eigenvector of ``M = Q^T S Q`` where ``S = X'^T X'``
and ``Q = I - J / sz`` centres the time axis.
"""

import warnings

import numpy as np
from scipy import linalg

from ._exceptions import NumericalDegeneracyWarning

_SINGULAR_EPSILON = 1e-12


def resolve_sign(vector: np.ndarray, aligned: np.ndarray) -> np.ndarray:
    """
    Pick the sign of an eigenvector.

    Parameters
    ----------
    vector : np.ndarray
        Candidate shape, shape (sz,).
    aligned : np.ndarray
        Aligned members, shape (n_members, sz).

    Returns
    -------
    np.ndarray
        ``vector`` or ``-vector``, whichever has the smaller summed Euclidean
        distance to the aligned members. ``vector`` wins ties.
    """
    dist_plus = np.linalg.norm(aligned - vector, axis=1).sum()
    dist_minus = np.linalg.norm(aligned + vector, axis=1).sum()
    if dist_minus < dist_plus:
        return -vector
    return vector


def principal_shape(aligned: np.ndarray) -> np.ndarray:
    """
    Eigenvector of the largest eigenvalue of ``Q^T (X'^T X') Q``, sign not resolved.

    Parameters
    ----------
    aligned : np.ndarray
        Aligned members of one feature dimension, shape (n_members, sz).

    Returns
    -------
    np.ndarray
        Unit-norm shape of length sz.

    Raises
    ------
    np.linalg.LinAlgError
        If the eigendecomposition does not converge or the matrix is
        effectively singular.
    """
    sz = aligned.shape[1]
    s = aligned.T @ aligned
    q = np.eye(sz) - np.full((sz, sz), 1.0 / sz)
    m = q.T @ s @ q
    # m is symmetric up to rounding
    m = (m + m.T) / 2.0
    eigenvalues, eigenvectors = linalg.eigh(m)
    if eigenvalues[-1] < _SINGULAR_EPSILON:
        raise np.linalg.LinAlgError("Shape matrix is singular")
    return eigenvectors[:, -1]


def extract_shape(aligned: np.ndarray) -> np.ndarray:
    """
    New centroid from aligned cluster members.

    Every feature dimension gets its own eigen problem. When one of them is
    degenerate, that dimension falls back to the coordinate-wise mean of the
    members and a `NumericalDegeneracyWarning` is issued.

    Parameters
    ----------
    aligned : np.ndarray
        Members shifted onto the current centroid, shape (n_members, sz, d).

    Returns
    -------
    np.ndarray
        Unnormalized centroid of shape (sz, d).
    """
    sz, d = aligned.shape[1], aligned.shape[2]
    centroid = np.empty((sz, d))
    for k in range(d):
        members = aligned[:, :, k]
        try:
            vector = principal_shape(members)
        except (np.linalg.LinAlgError, ValueError) as e:
            warnings.warn(f"Eigendecomposition failed, using the mean of the aligned members: {e}",
                          NumericalDegeneracyWarning, stacklevel=2)
            centroid[:, k] = members.mean(axis=0)
            continue
        centroid[:, k] = resolve_sign(vector, members)
    return centroid
