from __future__ import annotations

import random
from shapeclstr import KShape, TimeSeriesKMeans


def _generate_sine_series(n: int, length: int, noise: float, max_shift: int) -> list[list[float]]:
    import math

    data: list[list[float]] = []
    for _ in range(n):
        shift = random.randint(-max_shift, max_shift)
        series = [math.sin(4 * math.pi * ((i + shift) / length)) for i in range(length)]
        series = [x + random.gauss(0.0, noise) for x in series]
        data.append(series)
    return data


def _generate_pulse_series(n: int, length: int, noise: float, max_shift: int) -> list[list[float]]:
    import math

    data: list[list[float]] = []
    for _ in range(n):
        center = length // 2 + random.randint(-max_shift, max_shift)
        series = [3.0 * math.exp(-((i - center) ** 2) / 8.0) for i in range(length)]
        series = [x + random.gauss(0.0, noise) for x in series]
        data.append(series)
    return data


def _counts(labels) -> dict[int, int]:
    counts: dict[int, int] = {}
    for lbl in labels:
        counts[int(lbl)] = counts.get(int(lbl), 0) + 1
    return counts


def demo() -> None:
    # Two shapes, each repeated with random time shifts
    random.seed(42)
    X = _generate_sine_series(n=10, length=100, noise=0.1, max_shift=8)
    X += _generate_pulse_series(n=10, length=100, noise=0.1, max_shift=8)

    model = KShape(n_clusters=2, n_init=5, random_state=42, n_jobs=2)
    labels = model.fit_predict(X)
    print("k-Shape cluster counts:", _counts(labels), "inertia: %.4f" % model.inertia_)

    baseline = TimeSeriesKMeans(n_clusters=2, random_state=42)
    print("Euclidean k-means cluster counts:", _counts(baseline.fit_predict(X)))


if __name__ == "__main__":
    demo()
