"""8-bit RGBA colors and the arithmetic dithering needs on them.

Dithering happens in one of two working color spaces:

* gamma: arithmetic directly on the 8-bit (sRGB encoded) channel values
* linear: arithmetic on linear-light floats in [0, 1]

This module holds the conversions between the two and the brightness of a color in
each.

:author: Shay Hill
:created: 2026-09-14
"""

from __future__ import annotations

import dataclasses
from typing import Annotated, TypeAlias

import numpy as np
from numpy import typing as npt

from ditherer.defaults import B_LUM, G_LUM, R_LUM

_MAX_8BIT = 255

# linear-light red, green, blue in [0, 1]
RgbF: TypeAlias = tuple[float, float, float]

_LookupTable: TypeAlias = Annotated[npt.NDArray[np.float64], (256,)]


@dataclasses.dataclass(frozen=True)
class Color32:
    """An 8-bit RGBA color. Alpha defaults to opaque."""

    r: int
    g: int
    b: int
    a: int = _MAX_8BIT

    @property
    def rgb(self) -> tuple[int, int, int]:
        """Return the color channels without alpha."""
        return self.r, self.g, self.b

    @property
    def rgba(self) -> tuple[int, int, int, int]:
        """Return all four channels."""
        return self.r, self.g, self.b, self.a

    @property
    def is_opaque(self) -> bool:
        """Return True if alpha is at its maximum."""
        return self.a == _MAX_8BIT


BLACK = Color32(0, 0, 0)
WHITE = Color32(_MAX_8BIT, _MAX_8BIT, _MAX_8BIT)
TRANSPARENT = Color32(0, 0, 0, 0)


def clip_to_byte(value: int) -> int:
    """Clip an int to [0, 255]."""
    return min(_MAX_8BIT, max(0, value))


def clip_to_unit(value: float) -> float:
    """Clip a float to [0, 1]."""
    return min(1.0, max(0.0, value))


def get_brightness(color: Color32) -> int:
    """Get the perceived brightness of a gamma-encoded color.

    :param color: an 8-bit color. Alpha is ignored.
    :return: brightness in [0, 255]. Gray colors return their channel value
        exactly.
    """
    if color.r == color.g == color.b:
        return color.r
    return int(color.r * R_LUM + color.g * G_LUM + color.b * B_LUM)


def get_brightness_f(rgb: RgbF) -> float:
    """Get the brightness of a linear-light color.

    :param rgb: linear-light (r, g, b) in [0, 1]
    :return: brightness in [0, 1]
    """
    r, g, b = rgb
    if r == g == b:
        return r
    return r * R_LUM + g * G_LUM + b * B_LUM


def _srgb_to_linear_float(value: float) -> float:
    """Decode one sRGB channel in [0, 1] to linear light."""
    if value <= 0:
        return 0.0
    if value >= 1:
        return 1.0
    if value > 0.04045:
        return ((value + 0.055) / 1.055) ** 2.4
    return value / 12.92


def _build_srgb_to_linear_table() -> _LookupTable:
    """Decode every 8-bit sRGB value once."""
    return np.array(
        [_srgb_to_linear_float(i / _MAX_8BIT) for i in range(_MAX_8BIT + 1)],
        dtype=np.float64,
    )


_SRGB_TO_LINEAR = _build_srgb_to_linear_table()
_SRGB_TO_LINEAR_LIST: list[float] = _SRGB_TO_LINEAR.tolist()


def srgb_to_linear(value: int) -> float:
    """Convert an 8-bit sRGB channel to linear light in [0, 1]."""
    return _SRGB_TO_LINEAR_LIST[value]


def linear_to_srgb(value: float) -> int:
    """Convert a linear-light channel to an 8-bit sRGB value.

    :param value: linear-light channel. Values outside [0, 1] are clamped.
    :return: the nearest 8-bit sRGB value
    """
    if value <= 0:
        return 0
    if value >= 1:
        return _MAX_8BIT
    if value > 0.0031308:
        encoded = 1.055 * value ** (1 / 2.4) - 0.055
    else:
        encoded = value * 12.92
    return int(_MAX_8BIT * encoded + 0.5)


def to_linear(color: Color32) -> RgbF:
    """Convert the color channels of an 8-bit color to linear light."""
    return (
        _SRGB_TO_LINEAR_LIST[color.r],
        _SRGB_TO_LINEAR_LIST[color.g],
        _SRGB_TO_LINEAR_LIST[color.b],
    )


def from_linear(rgb: RgbF, alpha: int = _MAX_8BIT) -> Color32:
    """Convert linear-light channels to an 8-bit color, clamping out-of-range values."""
    r, g, b = rgb
    return Color32(linear_to_srgb(r), linear_to_srgb(g), linear_to_srgb(b), alpha)


def srgb_array_to_linear(
    pixels: Annotated[npt.NDArray[np.uint8], "(..., 3)"],
) -> Annotated[npt.NDArray[np.float64], "(..., 3)"]:
    """Convert an array of 8-bit sRGB values to linear light with the lookup table."""
    return _SRGB_TO_LINEAR[np.asarray(pixels, dtype=np.uint8)]


def blend(fore: Color32, back: Color32, *, linear: bool = False) -> Color32:
    """Blend a (partially transparent) color over an opaque background.

    :param fore: color to blend. An opaque color is returned unchanged.
    :param back: background color. Its alpha is ignored.
    :param linear: if True, mix the channels in linear light rather than on the
        encoded values
    :return: an opaque color
    """
    if fore.is_opaque:
        return fore
    alpha = fore.a
    if linear:
        weight = alpha / _MAX_8BIT
        fore_f = to_linear(fore)
        back_f = to_linear(back)
        mixed = tuple(f * weight + b * (1 - weight) for f, b in zip(fore_f, back_f))
        return from_linear((mixed[0], mixed[1], mixed[2]))
    inverse = _MAX_8BIT - alpha
    return Color32(
        (fore.r * alpha + back.r * inverse) // _MAX_8BIT,
        (fore.g * alpha + back.g * inverse) // _MAX_8BIT,
        (fore.b * alpha + back.b * inverse) // _MAX_8BIT,
    )
