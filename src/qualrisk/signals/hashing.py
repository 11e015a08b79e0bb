from __future__ import annotations

FNV_OFFSET_BASIS = 2166136261
FNV_PRIME = 16777619
UINT32_MASK = 0xFFFFFFFF


def _utf16_code_units(value: str) -> list[int]:
    encoded = value.encode("utf-16-le", errors="surrogatepass")
    return [int.from_bytes(encoded[i : i + 2], "little") for i in range(0, len(encoded), 2)]


def hash_string(value: str) -> int:
    """32-bit FNV-1a over the UTF-16 code units of ``value``.

    Characters outside the BMP contribute both surrogate units.
    """
    acc = FNV_OFFSET_BASIS
    for unit in _utf16_code_units(value):
        acc ^= unit
        acc = (acc * FNV_PRIME) & UINT32_MASK
    return acc
