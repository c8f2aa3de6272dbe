"""
Distance metrics between time series.

Each metric is a small strategy object exposing ``distance(a, b)`` for one
pair of series and ``cdist(X, Y)`` for two datasets. Estimators pick their
metric once through `get_metric` and call it directly afterwards.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Optional

import numpy as np
from scipy.spatial.distance import cdist

from ._cross_correlation import FFT_THRESHOLD, cdist_normalized_cc, sbd
from ._distance_dtw import cdist_dtw, dtw
from .preprocessing import time_series_norms, to_time_series_dataset


def _as_dataset(X) -> np.ndarray:
    return X if isinstance(X, np.ndarray) and X.ndim == 3 else to_time_series_dataset(X)


@dataclass(frozen=True)
class EuclideanMetric:
    """Euclidean distance over all time points and features."""

    name = "euclidean"

    def distance(self, a, b) -> float:
        a = np.asarray(a, dtype=np.float64)
        b = np.asarray(b, dtype=np.float64)
        if a.shape != b.shape:
            raise ValueError("Sequences must have equal shape for Euclidean distance.")
        return float(np.linalg.norm(a - b))

    def cdist(self, X, Y) -> np.ndarray:
        X = _as_dataset(X)
        Y = _as_dataset(Y)
        if X.shape[1:] != Y.shape[1:]:
            raise ValueError("Sequences must have equal shape for Euclidean distance.")
        return cdist(X.reshape(X.shape[0], -1), Y.reshape(Y.shape[0], -1), metric=self.name)


@dataclass(frozen=True)
class DTWMetric:
    """
    Dynamic Time Warping distance.

    Parameters
    ----------
    sakoe_chiba_radius : int, optional
        Maximum distance between matched time indices. No band when None.
    """

    sakoe_chiba_radius: Optional[int] = None
    name = "dtw"

    def distance(self, a, b) -> float:
        return dtw(a, b, sakoe_chiba_radius=self.sakoe_chiba_radius)

    def cdist(self, X, Y) -> np.ndarray:
        return cdist_dtw(_as_dataset(X), _as_dataset(Y), sakoe_chiba_radius=self.sakoe_chiba_radius)


@dataclass(frozen=True)
class SBDMetric:
    """
    Shape-based distance, ``1 - max normalized cross-correlation``.

    Parameters
    ----------
    fft_threshold : int, default=64
        Series longer than this are correlated through the FFT.
    """

    fft_threshold: int = FFT_THRESHOLD
    name = "sbd"

    def distance(self, a, b) -> float:
        return sbd(a, b, fft_threshold=self.fft_threshold)

    def cdist(self, X, Y) -> np.ndarray:
        X = _as_dataset(X)
        Y = _as_dataset(Y)
        cc = cdist_normalized_cc(X, Y, time_series_norms(X), time_series_norms(Y),
                                 fft_threshold=self.fft_threshold)
        return 1.0 - cc


_metrics: Dict[str, Callable] = {
    'euclidean': EuclideanMetric,
    'dtw': DTWMetric,
    'sbd': SBDMetric,
    'shape': SBDMetric,
}


def get_metric(name: str, **metric_kwargs):
    """
    Build a metric from its name.

    Parameters
    ----------
    name : str
        One of ``euclidean``, ``dtw``, ``sbd`` (alias ``shape``).
    **metric_kwargs
        Metric parameters, e.g. ``sakoe_chiba_radius`` for ``dtw``.

    Raises
    ------
    ValueError
        If the metric is unknown or does not accept the parameters.
    """
    try:
        factory = _metrics[name]
    except KeyError:
        raise ValueError(f'Unknown metric: {name}. Available metrics: {", ".join(sorted(_metrics))}')
    try:
        return factory(**metric_kwargs)
    except TypeError as e:
        raise ValueError(f"Invalid parameters for metric {name}: {e}")
