"""
Top-level for shapeclstr clustering package.

This package provides shape-based clustering (k-Shape) for time-series data,
together with the normalization, distance and barycenter utilities it relies on.
End users should use the main entry points: KShape, TimeSeriesKMeans,
to_time_series_dataset and read_time_series.
"""

from ._cross_correlation import (
    best_shift,
    cdist_normalized_cc,
    cross_correlation,
    cross_correlation_fft,
    cross_correlation_naive,
    max_correlation,
    sbd,
    shift_zero_pad,
    y_shifted_sbd_vec
)

from ._distance_dtw import (
    cdist_dtw,
    dtw,
    dtw_path
)

from ._exceptions import (
    EmptyClusterError,
    FitFailure,
    NotFittedError,
    NumericalDegeneracyWarning
)

from ._restarts import (
    derive_seed
)

from ._shape_extraction import (
    extract_shape,
    principal_shape,
    resolve_sign
)

from .barycenters import (
    dtw_barycenter,
    euclidean_barycenter
)

from .kmeans import (
    TimeSeriesKMeans
)

from .kshape import (
    FittedKShape,
    KShape,
    KShapeConfig,
    fit,
    predict,
    transform
)

from .metrics import (
    DTWMetric,
    EuclideanMetric,
    SBDMetric,
    get_metric
)

from .plotting import (
    plot_clusters
)

from .preprocessing import (
    TimeSeriesScalerMeanVariance,
    global_normalize,
    normalize,
    read_time_series,
    to_time_series_dataset
)

__all__ = [
    "KShape",
    "KShapeConfig",
    "FittedKShape",
    "fit",
    "predict",
    "transform",
    "TimeSeriesKMeans",
    "cross_correlation",
    "cross_correlation_naive",
    "cross_correlation_fft",
    "best_shift",
    "max_correlation",
    "sbd",
    "shift_zero_pad",
    "y_shifted_sbd_vec",
    "cdist_normalized_cc",
    "extract_shape",
    "principal_shape",
    "resolve_sign",
    "derive_seed",
    "dtw",
    "dtw_path",
    "cdist_dtw",
    "euclidean_barycenter",
    "dtw_barycenter",
    "EuclideanMetric",
    "DTWMetric",
    "SBDMetric",
    "get_metric",
    "plot_clusters",
    "TimeSeriesScalerMeanVariance",
    "normalize",
    "global_normalize",
    "read_time_series",
    "to_time_series_dataset",
    "EmptyClusterError",
    "FitFailure",
    "NotFittedError",
    "NumericalDegeneracyWarning"
]

__version__ = "0.1.0"
