"""Colours for drawing tracks, in 8-bit BGR order."""

from __future__ import annotations

import math
from typing import Sequence

ZERO_ID_COLOR = (123, 22, 234)
_SATURATION = 200
_VALUE = 200
_RNG_COEFF = 4164903690
_MASK32 = 0xFFFFFFFF


def _to_byte(x: float) -> int:
    return min(255, max(0, round(x)))


def hsv_to_bgr(hsv: Sequence[float]) -> tuple[int, int, int]:
    """Convert an 8-bit HSV colour to 8-bit BGR.

    Hue is in [0, 180) where one step is two degrees; saturation and value
    are in [0, 255].
    """
    h_raw, s_raw, v_raw = (_to_byte(float(c)) for c in list(hsv)[:3])
    s = s_raw / 255.0
    v = v_raw / 255.0
    h = (h_raw * 6.0 / 180.0) % 6.0
    sector = int(math.floor(h))
    frac = h - sector
    p = v * (1.0 - s)
    q = v * (1.0 - s * frac)
    t = v * (1.0 - s * (1.0 - frac))
    b, g, r = {
        0: (p, t, v),
        1: (p, v, q),
        2: (t, v, p),
        3: (v, q, p),
        4: (v, p, t),
        5: (q, p, v),
    }[sector]
    return (_to_byte(b * 255.0), _to_byte(g * 255.0), _to_byte(r * 255.0))


def color_by_index(index: int, num_colors: int) -> tuple[int, int, int]:
    """Pick one of ``num_colors`` evenly spaced hues for ``index``.

    Index 0 always gets a fixed colour.
    """
    if num_colors <= 0:
        raise ValueError("num_colors must be positive")
    index &= _MASK32
    if index == 0:
        return ZERO_ID_COLOR
    mod_id = (index - 1) % num_colors
    d_hue = 180 // num_colors
    return hsv_to_bgr((mod_id * d_hue, _SATURATION, _VALUE))


def _random_stream(seed: int):
    state = seed if seed else _MASK32
    while True:
        state = (state & _MASK32) * _RNG_COEFF + (state >> 32)
        yield state & _MASK32


def random_color(index: int) -> tuple[int, int, int]:
    """Return a colour drawn from a generator seeded with ``index``.

    The same index always yields the same colour; components are in [0, 255).
    """
    stream = _random_stream(index & _MASK32)
    return tuple(next(stream) % 255 for _ in range(3))