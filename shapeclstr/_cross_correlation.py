"""
Normalized cross-correlation and the shape-based distance (SBD).

Correlations are reported for every relative shift of ``b`` against ``a``.
Index ``j`` of a correlation vector holds shift ``s = j - (sz - 1)``, that is
``sum_i <a[i], b[i + s]>`` divided by ``norm(a) * norm(b)``.
"""

from typing import Optional

import numpy as np
from numba import njit

FFT_THRESHOLD = 64
NORM_EPSILON = 1e-9


def _as_series(x) -> np.ndarray:
    arr = np.asarray(x, dtype=np.float64)
    if arr.ndim == 1:
        arr = arr.reshape(-1, 1)
    if arr.ndim != 2:
        raise ValueError("A time series must be 1-D (sz,) or 2-D (sz, d)")
    return np.ascontiguousarray(arr)


def _check_pair(a, b):
    a = _as_series(a)
    b = _as_series(b)
    if a.shape != b.shape:
        raise ValueError(f"Time series must have the same shape, got {a.shape} and {b.shape}")
    return a, b


def _norm_or_compute(x: np.ndarray, norm: Optional[float]) -> float:
    return float(np.linalg.norm(x)) if norm is None else float(norm)


@njit
def _raw_cc_naive(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """
    Unnormalized cross-correlation by direct summation, O(sz^2 * d).

    Parameters
    ----------
    a : np.ndarray
        First series, shape (sz, d).
    b : np.ndarray
        Second series, shape (sz, d).

    Returns
    -------
    np.ndarray
        Correlation for every shift, length 2 * sz - 1.
    """
    sz = a.shape[0]
    d = a.shape[1]
    cc = np.zeros(2 * sz - 1)
    for shift in range(-(sz - 1), sz):
        start = max(0, -shift)
        stop = min(sz, sz - shift)
        acc = 0.0
        for i in range(start, stop):
            for k in range(d):
                acc += a[i, k] * b[i + shift, k]
        cc[shift + sz - 1] = acc
    return cc


def _fft_size(sz: int) -> int:
    # smallest power of two >= 2 * sz - 1
    return 1 << (2 * sz - 2).bit_length()


def _raw_cc_fft(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    sz = a.shape[0]
    fft_size = _fft_size(sz)
    fft_a = np.fft.rfft(a, n=fft_size, axis=0)
    fft_b = np.fft.rfft(b, n=fft_size, axis=0)
    # circular correlation, position k holds sum_i a[i] * b[i + k]
    cc = np.fft.irfft(fft_b * np.conj(fft_a), n=fft_size, axis=0).sum(axis=-1)
    return np.concatenate((cc[fft_size - (sz - 1):], cc[:sz]))


def cross_correlation_naive(a, b, norm_a: Optional[float] = None, norm_b: Optional[float] = None) -> np.ndarray:
    """
    Normalized cross-correlation computed by direct summation.

    Returns the all-zero vector when either series is numerically flat.
    """
    a, b = _check_pair(a, b)
    denom = _norm_or_compute(a, norm_a) * _norm_or_compute(b, norm_b)
    if denom < NORM_EPSILON:
        return np.zeros(2 * a.shape[0] - 1)
    return _raw_cc_naive(a, b) / denom


def cross_correlation_fft(a, b, norm_a: Optional[float] = None, norm_b: Optional[float] = None) -> np.ndarray:
    """
    Normalized cross-correlation computed through zero-padded FFTs.

    Both series are padded to the next power of two that holds ``2 * sz - 1``
    values, multiplied in the frequency domain with the conjugate transform and
    brought back with the inverse transform. The circular result is reordered so
    that index 0 is shift ``-(sz - 1)``.
    """
    a, b = _check_pair(a, b)
    denom = _norm_or_compute(a, norm_a) * _norm_or_compute(b, norm_b)
    if denom < NORM_EPSILON:
        return np.zeros(2 * a.shape[0] - 1)
    return _raw_cc_fft(a, b) / denom


def cross_correlation(a, b, norm_a: Optional[float] = None, norm_b: Optional[float] = None,
                      fft_threshold: int = FFT_THRESHOLD) -> np.ndarray:
    """
    Normalized cross-correlation of ``b`` against ``a`` for every shift.

    Series longer than ``fft_threshold`` go through the FFT, shorter ones are
    summed directly since the FFT setup dominates at small sizes.

    Parameters
    ----------
    a, b : array-like
        Series of identical shape, ``(sz,)`` or ``(sz, d)``.
    norm_a, norm_b : float, optional
        Precomputed norms, computed when omitted.
    fft_threshold : int, default=64
        Length above which the FFT is used.

    Returns
    -------
    np.ndarray
        Array of length ``2 * sz - 1``.

    Raises
    ------
    ValueError
        If the two series do not have the same shape.
    """
    a, b = _check_pair(a, b)
    if a.shape[0] > fft_threshold:
        return cross_correlation_fft(a, b, norm_a, norm_b)
    return cross_correlation_naive(a, b, norm_a, norm_b)


def best_shift(a, b, norm_a: Optional[float] = None, norm_b: Optional[float] = None,
               fft_threshold: int = FFT_THRESHOLD) -> int:
    """
    Shift of ``b`` that maximizes its correlation with ``a``.

    Flat series have no preferred alignment and get shift 0. Ties go to the
    most negative shift.
    """
    a, b = _check_pair(a, b)
    norm_a = _norm_or_compute(a, norm_a)
    norm_b = _norm_or_compute(b, norm_b)
    if norm_a * norm_b < NORM_EPSILON:
        return 0
    cc = cross_correlation(a, b, norm_a, norm_b, fft_threshold=fft_threshold)
    return int(np.argmax(cc)) - (a.shape[0] - 1)


def max_correlation(a, b, norm_a: Optional[float] = None, norm_b: Optional[float] = None,
                    fft_threshold: int = FFT_THRESHOLD) -> float:
    """Maximum normalized cross-correlation, clamped to [-1, 1]."""
    cc = cross_correlation(a, b, norm_a, norm_b, fft_threshold=fft_threshold)
    return float(np.clip(cc.max(), -1.0, 1.0))


def sbd(a, b, norm_a: Optional[float] = None, norm_b: Optional[float] = None,
        fft_threshold: int = FFT_THRESHOLD) -> float:
    """
    Shape-based distance ``1 - max_correlation(a, b)``, in [0, 2].
    """
    return 1.0 - max_correlation(a, b, norm_a, norm_b, fft_threshold=fft_threshold)


def shift_zero_pad(x, shift: int) -> np.ndarray:
    """
    Move a series along its time axis, ``out[i] = x[i + shift]``.

    Positions that fall outside the series after shifting are zero-filled.
    """
    x = _as_series(x)
    sz = x.shape[0]
    out = np.zeros_like(x)
    if abs(shift) >= sz:
        return out
    if shift >= 0:
        out[:sz - shift] = x[shift:]
    else:
        out[-shift:] = x[:sz + shift]
    return out


def y_shifted_sbd_vec(ref, dataset: np.ndarray, norm_ref: Optional[float] = None,
                      norms_dataset: Optional[np.ndarray] = None,
                      fft_threshold: int = FFT_THRESHOLD) -> np.ndarray:
    """
    Align every series of a dataset onto the time axis of a reference series.

    Parameters
    ----------
    ref : array-like
        Reference series, shape ``(sz, d)``.
    dataset : np.ndarray
        Series to align, shape ``(n_ts, sz, d)``.
    norm_ref : float, optional
        Norm of ``ref``.
    norms_dataset : np.ndarray, optional
        Norm of every series of ``dataset``.
    fft_threshold : int, default=64
        Length above which the FFT is used.

    Returns
    -------
    np.ndarray
        Aligned copies, shape ``(n_ts, sz, d)``.
    """
    ref = _as_series(ref)
    norm_ref = _norm_or_compute(ref, norm_ref)
    if norms_dataset is None:
        norms_dataset = np.linalg.norm(dataset.reshape(dataset.shape[0], -1), axis=1)

    aligned = np.empty_like(dataset, dtype=np.float64)
    for i in range(dataset.shape[0]):
        shift = best_shift(ref, dataset[i], norm_ref, norms_dataset[i], fft_threshold=fft_threshold)
        aligned[i] = shift_zero_pad(dataset[i], shift)
    return aligned


def cdist_normalized_cc(X: np.ndarray, Y: np.ndarray, norms_x: np.ndarray, norms_y: np.ndarray,
                        fft_threshold: int = FFT_THRESHOLD) -> np.ndarray:
    """
    Maximum normalized cross-correlation between every pair of series of two datasets.

    Parameters
    ----------
    X : np.ndarray
        Dataset of shape ``(n_x, sz, d)``.
    Y : np.ndarray
        Dataset of shape ``(n_y, sz, d)``.
    norms_x, norms_y : np.ndarray
        Norms of the series of ``X`` and ``Y``.
    fft_threshold : int, default=64
        Length above which the FFT is used.

    Returns
    -------
    np.ndarray
        Matrix of shape ``(n_x, n_y)`` with values clamped to [-1, 1]. Pairs
        with a flat series get correlation 0.
    """
    if X.shape[1:] != Y.shape[1:]:
        raise ValueError(f"Time series must have the same shape, got {X.shape[1:]} and {Y.shape[1:]}")

    sz = X.shape[1]
    denom = np.outer(norms_x, norms_y)
    flat = denom < NORM_EPSILON
    safe_denom = np.where(flat, 1.0, denom)

    if sz > fft_threshold:
        fft_size = _fft_size(sz)
        fft_x = np.fft.rfft(X, n=fft_size, axis=1)
        fft_y = np.fft.rfft(Y, n=fft_size, axis=1)
        max_cc = np.empty((X.shape[0], Y.shape[0]))
        for j in range(Y.shape[0]):
            cc = np.fft.irfft(fft_y[j][np.newaxis] * np.conj(fft_x), n=fft_size, axis=1).sum(axis=-1)
            cc = np.concatenate((cc[:, fft_size - (sz - 1):], cc[:, :sz]), axis=1)
            max_cc[:, j] = cc.max(axis=1)
    else:
        Xc = np.ascontiguousarray(X, dtype=np.float64)
        Yc = np.ascontiguousarray(Y, dtype=np.float64)
        max_cc = np.empty((X.shape[0], Y.shape[0]))
        for i in range(X.shape[0]):
            for j in range(Y.shape[0]):
                max_cc[i, j] = _raw_cc_naive(Xc[i], Yc[j]).max()

    max_cc = np.where(flat, 0.0, max_cc / safe_denom)
    return np.clip(max_cc, -1.0, 1.0)
