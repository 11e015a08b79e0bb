from __future__ import annotations

import math

from qualrisk.signals.hashing import hash_string
from qualrisk.signals.stream import make_stream

DEFAULT_SPARKLINE_POINTS = 22


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def synthesize(seed: int, base: float, length: int) -> list[float]:
    """Mean-reverting random walk anchored at ``base``.

    Every step consumes two draws, drift then pull. Lower ``base`` widens the
    drift so low-risk trends read as noisier.
    """
    if length < 2:
        raise ValueError(f"Series length must be at least 2, got {length}")

    base = clamp01(base)
    draw = make_stream(seed)
    drift_width = 0.10 + 0.18 * (1.0 - base)

    values: list[float] = []
    value = base
    for _ in range(length):
        drift = (draw() - 0.5) * drift_width
        pull = (base - value) * (0.15 + 0.20 * draw())
        value = clamp01(value + drift + pull)
        values.append(value)
    return values


def sparkline(
    run_id: str,
    risk_score: float,
    points: int = DEFAULT_SPARKLINE_POINTS,
) -> list[float]:
    """Compact per-run trend shape for table rows (wave plus hash-derived jitter)."""
    if points < 2:
        raise ValueError(f"Sparkline needs at least 2 points, got {points}")

    seed = hash_string(run_id)
    base = clamp01(risk_score / 100)
    phase = (seed % 10) / 10
    values: list[float] = []
    for i in range(points):
        t = i / (points - 1)
        noise = (((seed + i * 1013) % 1000) / 1000 - 0.5) * (0.18 + 0.22 * (1 - base))
        wave = math.sin((t * 2.8 + phase) * math.pi) * 0.08
        drift = (t - 0.5) * 0.12 * (base - 0.4)
        values.append(clamp01(base + noise + wave + drift))
    return values
