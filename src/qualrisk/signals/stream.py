from __future__ import annotations

from qualrisk.signals.hashing import UINT32_MASK

ZERO_SEED_FALLBACK = 0x9E3779B9
DRAW_MODULUS = 1_000_000


class XorShift32Stream:
    """Seeded xorshift32 generator emitting floats in [0, 1).

    Each call advances the 32-bit state by one shift-xor round (13, 17, 5) and
    emits ``(state % 1_000_000) / 1_000_000``. The all-zero state is a fixed
    point of xorshift, so a zero seed starts from ``ZERO_SEED_FALLBACK``.
    """

    def __init__(self, seed: int) -> None:
        state = int(seed) & UINT32_MASK
        self._state = state or ZERO_SEED_FALLBACK

    @property
    def state(self) -> int:
        return self._state

    def __call__(self) -> float:
        x = self._state
        x ^= (x << 13) & UINT32_MASK
        x ^= x >> 17
        x ^= (x << 5) & UINT32_MASK
        self._state = x
        return (x % DRAW_MODULUS) / DRAW_MODULUS

    def take(self, count: int) -> list[float]:
        return [self() for _ in range(count)]


def make_stream(seed: int) -> XorShift32Stream:
    return XorShift32Stream(seed)
