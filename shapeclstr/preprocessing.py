"""
Pre-processing module.

This module provides methods for importing time-series data, turning it into
datasets of shape ``(n_ts, sz, d)`` and z-normalizing datasets and centroid sets.
"""

import os
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

_STD_EPSILON = 1e-12


def to_time_series_dataset(data: Union[Sequence, np.ndarray]) -> np.ndarray:
    """
    Convert input data to a float dataset of shape ``(n_ts, sz, d)``.

    Accepted inputs are a single 1-D sequence (one univariate series), a list of
    equal-length sequences or ``(sz, d)`` arrays, a 2-D array ``(n_ts, sz)`` of
    univariate series or a 3-D array ``(n_ts, sz, d)``.

    Parameters
    ----------
    data : Union[Sequence, np.ndarray]
        Time series to convert.

    Returns
    -------
    np.ndarray
        A new float64 array; the caller's memory is never shared.

    Raises
    ------
    ValueError
        If the input is empty, ragged, has more than three dimensions or
        contains non-finite values.
    """
    if data is None:
        raise ValueError("Input cannot be None")

    if isinstance(data, np.ndarray):
        series_list = [data] if data.ndim <= 1 else list(data)
    else:
        series_list = list(data)
        if series_list and np.ndim(series_list[0]) == 0:
            series_list = [series_list]

    if len(series_list) == 0:
        raise ValueError("Input cannot be empty")

    arrays = []
    for each_ts in series_list:
        arr = np.asarray(each_ts, dtype=np.float64)
        if arr.ndim == 1:
            arr = arr.reshape(-1, 1)
        if arr.ndim != 2:
            raise ValueError("Each time series must be 1-D (sz,) or 2-D (sz, d)")
        arrays.append(arr)

    shape = arrays[0].shape
    if shape[0] == 0:
        raise ValueError("Time series cannot be empty")
    if any(arr.shape != shape for arr in arrays):
        raise ValueError("All time series must have the same length and feature dimension")

    dataset = np.array(arrays, dtype=np.float64)
    if not np.all(np.isfinite(dataset)):
        raise ValueError("Time series must not contain NaN or infinite values")
    return dataset


def time_series_norms(X: np.ndarray) -> np.ndarray:
    """
    Frobenius norm of every series in a dataset of shape ``(n_ts, sz, d)``.
    """
    return np.linalg.norm(X.reshape(X.shape[0], -1), axis=1)


def normalize(X: np.ndarray, mu: float = 0.0, std: float = 1.0) -> np.ndarray:
    """
    Z-normalize a dataset with one mean and one standard deviation shared by
    all of its values such that
    y_i = (x_i - mean(X)) / std(X) * std + mu

    Parameters
    ----------
    X : np.ndarray
        Dataset of shape ``(n_ts, sz, d)``.
    mu : float, default=0.0
        Mean of the output.
    std : float, default=1.0
        Standard deviation of the output.

    Returns
    -------
    np.ndarray
        Normalized copy of ``X``. A constant dataset is only centred.
    """
    X = np.asarray(X, dtype=np.float64)
    global_mean = X.mean()
    global_std = X.std()
    if global_std < _STD_EPSILON:
        global_std = 1.0
    return (X - global_mean) / global_std * std + mu


def global_normalize(centroids: np.ndarray) -> np.ndarray:
    """
    Z-normalize a centroid set of shape ``(n_clusters, sz, d)`` over its
    flattened, pooled values.
    """
    return TimeSeriesScalerMeanVariance.global_transform(centroids)


class TimeSeriesScalerMeanVariance:
    """
    Scaler for time series. Scales each time series so that its values have
    mean ``mu`` and standard deviation ``std``.

    Parameters
    ----------
    mu : float, default=0.0
        Mean of the output time series.
    std : float, default=1.0
        Standard deviation of the output time series.
    """

    def __init__(self, mu: float = 0.0, std: float = 1.0):
        self.mu = mu
        self.std = std
        self.mean_per_series_ = None
        self.std_per_series_ = None

    def fit(self, X) -> "TimeSeriesScalerMeanVariance":
        X = to_time_series_dataset(X)
        flat = X.reshape(X.shape[0], -1)
        self.mean_per_series_ = flat.mean(axis=1)
        stds = flat.std(axis=1)
        self.std_per_series_ = np.where(stds < _STD_EPSILON, 1.0, stds)
        return self

    def transform(self, X) -> np.ndarray:
        if self.mean_per_series_ is None:
            raise RuntimeError("Scaler is not fitted. Call fit(X) first.")
        X = to_time_series_dataset(X)
        if X.shape[0] != self.mean_per_series_.shape[0]:
            raise ValueError("X must contain as many time series as the data the scaler was fitted on")
        mean = self.mean_per_series_[:, np.newaxis, np.newaxis]
        scale = self.std_per_series_[:, np.newaxis, np.newaxis]
        return (X - mean) / scale * self.std + self.mu

    def fit_transform(self, X) -> np.ndarray:
        return self.fit(X).transform(X)

    @staticmethod
    def global_transform(X: np.ndarray, mu: float = 0.0, std: float = 1.0) -> np.ndarray:
        """Scale a whole dataset with shared statistics, see `normalize`."""
        return normalize(X, mu=mu, std=std)


def read_time_series(file_path: str, with_clusters: bool = False) -> Tuple[List[str], np.ndarray, Optional[List]]:
    """
    Import time series data from .xlsx or .csv files.

    The data file must have the following structure:

    **For Excel files (.xlsx):**

    Sheet 'data': Column A contains labels/names for each time series, Column B onwards contains time series data values

    Sheet 'clusters' (optional, only if with_clusters=True): Column A contains cluster labels

    **For CSV files (.csv):**

    Column A: Labels/names for each time series

    Column B onwards: Time series data values

    Parameters
    ----------
    ``file_path`` : str
        Path to the .xlsx or .csv file (can be relative or absolute path).
    ``with_clusters`` : bool, default=False
        If True, also reads cluster information from the 'clusters' sheet.
        Ignored for CSV files as they don't support multiple sheets.

    Returns
    -------
    Tuple[List[str], np.ndarray, Optional[List]]
        Labels, dataset of shape ``(n_ts, sz, 1)`` and the previous cluster
        ids (None when not requested or not available).
    """
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"Could not find file: {file_path}")

    file_extension = os.path.splitext(file_path)[1].lower()

    if file_extension not in ['.xlsx', '.csv']:
        raise ValueError("File must have .xlsx or .csv extension")

    if file_extension == '.xlsx':
        df_data = pd.read_excel(file_path, sheet_name='data')
    else:
        df_data = pd.read_csv(file_path)
        if with_clusters:
            print("Warning: CSV files do not support multiple sheets. Cluster information cannot be imported.")
            with_clusters = False

    all_rows = df_data.values.tolist()
    labels = [str(row[0]) for row in all_rows]
    dataset = to_time_series_dataset([row[1:] for row in all_rows])

    previous_clusters = None
    if with_clusters:
        try:
            df_clusters = pd.read_excel(file_path, sheet_name='clusters')
            previous_clusters = df_clusters.iloc[:, 0].tolist()
        except (KeyError, ValueError):
            previous_clusters = None

    return labels, dataset, previous_clusters
