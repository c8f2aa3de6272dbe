from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np

from ._exceptions import EmptyClusterError, NotFittedError
from ._restarts import AttemptResult, _Snapshot, resolve_base_seed, run_restarts
from .barycenters import dtw_barycenter, euclidean_barycenter
from .metrics import get_metric
from .preprocessing import time_series_norms, to_time_series_dataset

_SUPPORTED_METRICS = ("euclidean", "dtw")


@dataclass
class TimeSeriesKMeans:
    """K-Means clustering for time series with Euclidean or DTW distance.

    Parameters
    ----------
    n_clusters : int
        Number of clusters.
    max_iter : int, optional
        Maximum number of iterations. Default is 100.
    tol : float, optional
        Convergence threshold on centroid movement (squared distance). Default 1e-6.
    n_init : int, optional
        Number of successful random initializations to compare. Default 1.
    metric : str, optional
        ``"euclidean"`` (mean barycenter) or ``"dtw"`` (DBA barycenter).
    max_iter_barycenter : int, optional
        Maximum number of DBA iterations per update. Default 30.
    metric_params : Optional[dict], optional
        Extra metric parameters, e.g. ``{"sakoe_chiba_radius": 3}`` for DTW.
    random_state : Optional[int], optional
        Random seed for reproducibility. Default 0.
    verbose : bool, optional
        If True, prints progress information.

    Notes
    -----
    - Input format `X` is anything `to_time_series_dataset` accepts; all
      series must have the same length.
    - Inertia is the sum of squared distances to the assigned centroid.
    - An initialization that leaves a cluster empty is discarded and the next
      seed is tried, like in `KShape`.
    """

    n_clusters: int
    max_iter: int = 100
    tol: float = 1e-6
    n_init: int = 1
    metric: str = "euclidean"
    max_iter_barycenter: int = 30
    metric_params: Optional[dict] = None
    random_state: Optional[int] = 0
    verbose: bool = False

    cluster_centers_: Optional[np.ndarray] = field(default=None, repr=False)
    labels_: Optional[np.ndarray] = field(default=None, repr=False)
    inertia_: Optional[float] = None
    n_iter_: Optional[int] = None

    def __post_init__(self):
        if self.metric not in _SUPPORTED_METRICS:
            raise ValueError(f"Unsupported metric: {self.metric}. Use one of {_SUPPORTED_METRICS}")
        self._metric = get_metric(self.metric, **(self.metric_params or {}))

    def fit(self, X) -> "TimeSeriesKMeans":
        """Fit the model on a dataset of equal-length time series.

        Parameters
        ----------
        X : array-like
            Dataset of shape (n_ts, sz) or (n_ts, sz, d).

        Returns
        -------
        TimeSeriesKMeans
            The fitted estimator.
        """
        X = to_time_series_dataset(X)
        if self.n_clusters < 1 or len(X) < self.n_clusters:
            raise ValueError("n_clusters must be >= 1 and <= number of time series in X")

        self.cluster_centers_ = None
        self.labels_ = None
        self.inertia_ = None
        self.n_iter_ = None

        best, _ = run_restarts(
            lambda attempt_index, seed: self._fit_one_init(X, attempt_index, seed),
            self.n_init,
            resolve_base_seed(self.random_state),
            verbose=self.verbose,
        )
        self.cluster_centers_ = best.snapshot.centroids
        self.labels_ = best.snapshot.labels
        self.inertia_ = best.snapshot.inertia
        self.n_iter_ = best.n_iter
        return self

    def predict(self, X) -> np.ndarray:
        """Assign each series in `X` to the nearest learned centroid.

        Parameters
        ----------
        X : array-like
            Dataset with the same length as the centroids.

        Returns
        -------
        np.ndarray
            Cluster label for each input series.
        """
        return self.transform(X).argmin(axis=1)

    def transform(self, X) -> np.ndarray:
        """Distance from each series in `X` to each learned centroid."""
        if self.cluster_centers_ is None:
            raise NotFittedError("Model is not fitted. Call fit(X) first.")
        X = to_time_series_dataset(X)
        if X.shape[1:] != self.cluster_centers_.shape[1:]:
            raise ValueError("All time series must have the same shape as centroids.")
        return self._metric.cdist(X, self.cluster_centers_)

    def fit_predict(self, X) -> np.ndarray:
        """Fit the model to `X` and return the cluster labels."""
        return self.fit(X).labels_

    # ----- helper methods -----
    def _fit_one_init(self, X: np.ndarray, attempt_index: int, seed: int) -> AttemptResult:
        rng = np.random.default_rng(seed)
        centroids = X[rng.choice(len(X), size=self.n_clusters, replace=False)].copy()
        labels, inertia = self._assign(X, centroids)

        n_iter = 0
        for _ in range(self.max_iter):
            # Update step
            new_centroids = np.array([
                self._barycenter(X[labels == k], centroids[k]) for k in range(self.n_clusters)
            ])

            # Check convergence
            shift = float(np.sum((centroids - new_centroids) ** 2))
            centroids = new_centroids
            labels, inertia = self._assign(X, centroids)
            n_iter += 1
            if self.verbose:
                print("%.3f --> " % inertia, end="")
            if shift <= self.tol:
                break

        if self.verbose:
            print()
        return AttemptResult(attempt_index, seed, _Snapshot(centroids, time_series_norms(centroids), labels, inertia),
                             n_iter)

    def _assign(self, X: np.ndarray, centroids: np.ndarray) -> Tuple[np.ndarray, float]:
        distances = self._metric.cdist(X, centroids)
        labels = distances.argmin(axis=1)
        counts = np.bincount(labels, minlength=self.n_clusters)
        if np.any(counts == 0):
            raise EmptyClusterError(int(np.flatnonzero(counts == 0)[0]))
        inertia = float(np.sum(distances[np.arange(len(X)), labels] ** 2))
        return labels, inertia

    def _barycenter(self, members: np.ndarray, current: np.ndarray) -> np.ndarray:
        if self.metric == "dtw":
            return dtw_barycenter(members, init=current, max_iter=self.max_iter_barycenter,
                                  sakoe_chiba_radius=getattr(self._metric, "sakoe_chiba_radius", None))
        return euclidean_barycenter(members)
