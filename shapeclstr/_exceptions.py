"""
Exceptions and warnings raised by the clustering estimators.
"""

from typing import Optional


class EmptyClusterError(RuntimeError):
    """
    Raised when a cluster ends up with no member.

    This is recoverable: an empty cluster at initialization makes the restart
    loop discard the attempt and move on to the next seed, while a centroid
    update of `KShape` that empties a cluster is rolled back.

    Attributes
    ----------
    cluster : int
        Index of the cluster that lost all of its members.
    """

    def __init__(self, cluster: int, message: Optional[str] = None):
        self.cluster = cluster
        super().__init__(message or f"Cluster {cluster} is empty")


class FitFailure(RuntimeError):
    """
    Raised when every initialization attempt of a fit ended with an empty cluster.

    Attributes
    ----------
    n_attempts : int
        Number of attempts that were tried.
    """

    def __init__(self, n_attempts: int):
        self.n_attempts = n_attempts
        super().__init__(
            f"All {n_attempts} initialization attempt(s) ended with an empty cluster. "
            "Try another random_state, a smaller n_clusters or explicit initial centroids."
        )


class NotFittedError(RuntimeError):
    """Raised when predict or transform is called before a successful fit."""


class NumericalDegeneracyWarning(RuntimeWarning):
    """Issued when the shape extraction falls back to the arithmetic mean."""
