import numpy as np
from numba import njit
from typing import List, Optional, Tuple


def _radius(sakoe_chiba_radius: Optional[int]) -> int:
    if sakoe_chiba_radius is None:
        return -1
    if sakoe_chiba_radius < 0:
        raise ValueError("sakoe_chiba_radius must be >= 0")
    return int(sakoe_chiba_radius)


@njit
def _dtw_cost_matrix(sample1: np.ndarray, sample2: np.ndarray, radius: int) -> np.ndarray:
    """
    Accumulated cost matrix of Dynamic Time Warping using Numba for performance.

    Parameters
    ----------
    sample1 : np.ndarray
        First sequence, shape (sz1, d).
    sample2 : np.ndarray
        Second sequence, shape (sz2, d).
    radius : int
        Sakoe-Chiba band radius, -1 for no band.

    Returns
    -------
    np.ndarray
        Matrix of shape (sz1 + 1, sz2 + 1). Entry [k + 1, l + 1] is the cost of
        the best alignment of sample1[:k + 1] with sample2[:l + 1].
    """
    n = sample1.shape[0]
    m = sample2.shape[0]
    dtw = np.full((n + 1, m + 1), np.inf)
    dtw[0, 0] = 0.0

    for k in range(n):
        for l in range(m):
            if radius >= 0 and abs(k - l) > radius:
                continue
            cost = 0.0
            for f in range(sample1.shape[1]):
                diff = sample1[k, f] - sample2[l, f]
                cost += diff * diff
            dtw[k + 1, l + 1] = cost + min(dtw[k + 1, l], dtw[k, l + 1], dtw[k, l])

    return dtw


@njit
def _backtrack(dtw: np.ndarray) -> np.ndarray:
    k = dtw.shape[0] - 2
    l = dtw.shape[1] - 2
    path = np.empty((k + l + 2, 2), dtype=np.int64)
    n_steps = 0
    path[n_steps, 0] = k
    path[n_steps, 1] = l
    n_steps += 1
    while k > 0 or l > 0:
        if k == 0:
            l -= 1
        elif l == 0:
            k -= 1
        else:
            diag = dtw[k, l]
            up = dtw[k, l + 1]
            left = dtw[k + 1, l]
            if diag <= up and diag <= left:
                k -= 1
                l -= 1
            elif up <= left:
                k -= 1
            else:
                l -= 1
        path[n_steps, 0] = k
        path[n_steps, 1] = l
        n_steps += 1
    return path[:n_steps]


def _as_2d(x) -> np.ndarray:
    arr = np.asarray(x, dtype=np.float64)
    if arr.ndim == 1:
        arr = arr.reshape(-1, 1)
    return np.ascontiguousarray(arr)


def dtw(s1, s2, sakoe_chiba_radius: Optional[int] = None) -> float:
    """
    Dynamic Time Warping distance between two series.

    The local cost is the squared Euclidean distance between time points and
    the returned value is the square root of the accumulated cost, so that DTW
    equals the Euclidean distance along the diagonal path.

    Parameters
    ----------
    s1, s2 : array-like
        Series of shape (sz,) or (sz, d). Lengths may differ, feature
        dimensions may not.
    sakoe_chiba_radius : int, optional
        Maximum allowed distance between matched time indices.

    Returns
    -------
    float
        DTW distance. Infinite if the band does not connect both ends.
    """
    s1 = _as_2d(s1)
    s2 = _as_2d(s2)
    if s1.shape[1] != s2.shape[1]:
        raise ValueError("Time series must have the same feature dimension")
    cost = _dtw_cost_matrix(s1, s2, _radius(sakoe_chiba_radius))
    return float(np.sqrt(cost[-1, -1]))


def dtw_path(s1, s2, sakoe_chiba_radius: Optional[int] = None) -> Tuple[List[Tuple[int, int]], float]:
    """
    Optimal DTW alignment path and the matching distance.

    Returns
    -------
    Tuple[List[Tuple[int, int]], float]
        Pairs of matched indices ``(i, j)`` from ``(0, 0)`` to the last points,
        and the DTW distance.
    """
    s1 = _as_2d(s1)
    s2 = _as_2d(s2)
    if s1.shape[1] != s2.shape[1]:
        raise ValueError("Time series must have the same feature dimension")
    cost = _dtw_cost_matrix(s1, s2, _radius(sakoe_chiba_radius))
    if not np.isfinite(cost[-1, -1]):
        raise ValueError("sakoe_chiba_radius is too small to align these series")
    path = _backtrack(cost)
    return [(int(i), int(j)) for i, j in path[::-1]], float(np.sqrt(cost[-1, -1]))


def cdist_dtw(X: np.ndarray, Y: np.ndarray, sakoe_chiba_radius: Optional[int] = None) -> np.ndarray:
    """
    DTW distance between every series of ``X`` (n_x, sz, d) and every series of ``Y`` (n_y, sz, d).
    """
    radius = _radius(sakoe_chiba_radius)
    X = np.ascontiguousarray(X, dtype=np.float64)
    Y = np.ascontiguousarray(Y, dtype=np.float64)
    dists = np.empty((X.shape[0], Y.shape[0]))
    for i in range(X.shape[0]):
        for j in range(Y.shape[0]):
            dists[i, j] = np.sqrt(_dtw_cost_matrix(X[i], Y[j], radius)[-1, -1])
    return dists
