"""
Restart loop shared by the clustering estimators.

Every initialization attempt gets its own generator seeded from
``derive_seed(base, attempt_index)``, so attempts are reproducible in isolation
and can run in any order or in parallel.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

import numpy as np

from ._exceptions import EmptyClusterError, FitFailure

MIN_RANDOM_ATTEMPTS = 10


@dataclass(frozen=True)
class _Snapshot:
    """Centroids with the assignment they produce."""

    centroids: np.ndarray
    centroid_norms: np.ndarray
    labels: np.ndarray
    inertia: float


@dataclass(frozen=True)
class AttemptResult:
    attempt_index: int
    seed: int
    snapshot: _Snapshot
    n_iter: int


def derive_seed(base: int, attempt_index: int) -> int:
    """Seed of the generator used by one initialization attempt."""
    return base + attempt_index


def resolve_base_seed(random_state: Optional[int]) -> int:
    if random_state is None:
        return int(np.random.SeedSequence().entropy % (2 ** 63))
    return int(random_state)


def max_attempts(n_init: int, explicit_init: bool) -> int:
    """Explicit centroids allow a single attempt, random ones absorb empty clusters."""
    if explicit_init:
        return 1
    return max(n_init, MIN_RANDOM_ATTEMPTS)


def run_restarts(fit_one: Callable[[int, int], AttemptResult], n_init: int, base_seed: int,
                 explicit_init: bool = False, n_jobs: int = 1, verbose: bool = False) -> Tuple[AttemptResult, int]:
    """
    Run initialization attempts until ``n_init`` of them succeed and keep the best.

    Parameters
    ----------
    fit_one : Callable[[int, int], AttemptResult]
        Runs one attempt given ``(attempt_index, seed)``. Raises
        `EmptyClusterError` when the attempt has to be discarded.
    n_init : int
        Number of successful attempts wanted.
    base_seed : int
        Base of the per-attempt seeds.
    explicit_init : bool, default=False
        Whether the centroids are given by the caller (one attempt only).
    n_jobs : int, default=1
        Number of worker threads. Attempts are scheduled in waves of exactly
        the number of missing successes, so the attempts that run do not depend
        on ``n_jobs``.
    verbose : bool, default=False
        If True, prints the outcome of every attempt after its wave has
        finished. Per-iteration output of ``fit_one`` itself is not
        synchronized, so it may interleave when ``n_jobs > 1``.

    Returns
    -------
    Tuple[AttemptResult, int]
        The attempt with the lowest inertia (ties go to the lowest attempt
        index) and the number of attempts that were run.

    Raises
    ------
    FitFailure
        If no attempt succeeded.
    """
    limit = max_attempts(n_init, explicit_init)
    wanted = 1 if explicit_init else n_init
    successes: List[AttemptResult] = []
    n_attempts = 0

    def _attempt(attempt_index: int) -> Optional[AttemptResult]:
        try:
            return fit_one(attempt_index, derive_seed(base_seed, attempt_index))
        except EmptyClusterError:
            return None

    executor = ThreadPoolExecutor(max_workers=n_jobs) if n_jobs > 1 else None
    try:
        while len(successes) < wanted and n_attempts < limit:
            wave = range(n_attempts, min(n_attempts + wanted - len(successes), limit))
            if executor is None:
                results = [_attempt(i) for i in wave]
            else:
                results = list(executor.map(_attempt, wave))
            n_attempts = wave.stop

            # reported once the wave is done, in attempt order
            for attempt_index, result in zip(wave, results):
                if verbose and wanted > 1:
                    print(f"Init {attempt_index + 1}")
                if verbose and result is None:
                    print("Resumed because of empty cluster")
            successes.extend(result for result in results if result is not None)
    finally:
        if executor is not None:
            executor.shutdown()

    if not successes:
        raise FitFailure(n_attempts)

    best = min(successes, key=lambda result: (result.snapshot.inertia, result.attempt_index))
    return best, n_attempts
