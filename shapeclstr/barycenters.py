"""
Barycenters (average series) of a set of time series.
"""

from typing import Optional

import numpy as np

from ._distance_dtw import dtw_path


def euclidean_barycenter(X: np.ndarray) -> np.ndarray:
    """
    Coordinate-wise mean of a dataset of shape (n_ts, sz, d).
    """
    if X.shape[0] == 0:
        raise ValueError("Cannot compute the barycenter of an empty dataset.")
    return X.mean(axis=0)


def dtw_barycenter(X: np.ndarray, init: Optional[np.ndarray] = None, max_iter: int = 30, tol: float = 1e-5,
                   sakoe_chiba_radius: Optional[int] = None) -> np.ndarray:
    """
    DTW Barycenter Averaging (DBA).

    Every iteration aligns each series onto the current barycenter with DTW and
    replaces each barycenter point by the mean of the points matched to it.

    Parameters
    ----------
    X : np.ndarray
        Dataset of shape (n_ts, sz, d).
    init : np.ndarray, optional
        Starting barycenter of shape (sz, d). The Euclidean mean is used when None.
    max_iter : int, default=30
        Maximum number of refinement iterations.
    tol : float, default=1e-5
        Stop when the summed squared DTW cost improves by less than this.
    sakoe_chiba_radius : int, optional
        Band used for the alignments.

    Returns
    -------
    np.ndarray
        Barycenter of shape (sz, d).
    """
    if X.shape[0] == 0:
        raise ValueError("Cannot compute the barycenter of an empty dataset.")

    barycenter = euclidean_barycenter(X) if init is None else np.array(init, dtype=np.float64)
    previous_cost = np.inf

    for _ in range(max_iter):
        sums = np.zeros_like(barycenter)
        counts = np.zeros(barycenter.shape[0])
        cost = 0.0
        for each_ts in X:
            path, distance = dtw_path(barycenter, each_ts, sakoe_chiba_radius=sakoe_chiba_radius)
            cost += distance ** 2
            for i, j in path:
                sums[i] += each_ts[j]
                counts[i] += 1

        barycenter = sums / counts[:, np.newaxis]
        if previous_cost - cost < tol:
            break
        previous_cost = cost

    return barycenter
