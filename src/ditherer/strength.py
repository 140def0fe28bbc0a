"""Offset dithering with a calibrated strength.

Ordered and random-noise dithering both add a signed offset to every channel of a
pixel before quantizing it. They differ only in where the offset comes from (a
matrix lookup or a random generator), so both run on `VariableStrengthSession`,
which takes

* an offset source: `get_offset(x, y)`, its bounds, and whether it must be read in
  order
* an offset arithmetic for the working color space: integer offsets on 8-bit
  channels (gamma) or float offsets in linear light

Strength scales the offsets. Too strong, and pure black or white pixels pick up
noise they should not have. The calibration finds, against the bound quantizer,
the largest strength that leaves pure black and pure white as they are.

:author: Shay Hill
:created: 2026-09-18
"""

from __future__ import annotations

import dataclasses
import enum
import logging
import math
from typing import Callable, Protocol

from ditherer.colors import (
    BLACK,
    WHITE,
    Color32,
    clip_to_byte,
    clip_to_unit,
    from_linear,
    get_brightness,
    get_brightness_f,
    to_linear,
)
from ditherer.defaults import MAX_BISECTIONS, MAX_HALVINGS, STRENGTH_EPSILON
from ditherer.quantizing import QuantizingSession, WorkingColorSpace
from ditherer.session import SessionBase

_MAX_8BIT = 255


class AutoStrengthMode(str, enum.Enum):
    """How a calibrated strength is applied.

    CONSTANT: one strength for every pixel, the smaller of the black and white
        calibrations.
    INTERPOLATED: when black and white calibrate differently, interpolate between
        the two by the brightness of each pixel.
    DEFAULT: CONSTANT in the gamma working color space, INTERPOLATED in linear.
    """

    DEFAULT = "default"
    CONSTANT = "constant"
    INTERPOLATED = "interpolated"


def validate_strength(strength: float) -> float:
    """Return strength if it is in [0, 1].

    :raise ValueError: if strength is NaN or outside [0, 1]
    """
    if math.isnan(strength) or not 0 <= strength <= 1:
        msg = f"strength must be in [0, 1], got {strength}"
        raise ValueError(msg)
    return strength


def validate_auto_strength_mode(mode: AutoStrengthMode | str) -> AutoStrengthMode:
    """Return mode as an AutoStrengthMode.

    :raise ValueError: if mode is not a known auto-strength mode
    """
    try:
        return AutoStrengthMode(mode)
    except ValueError as e:
        msg = f"unknown auto strength mode: {mode!r}"
        raise ValueError(msg) from e


@dataclasses.dataclass(frozen=True)
class StrengthState:
    """Strength for pure black and for pure white. Equal values mean constant."""

    black: float
    white: float

    @classmethod
    def constant(cls, strength: float) -> StrengthState:
        return cls(strength, strength)

    @property
    def is_interpolated(self) -> bool:
        """Return True if the strength depends on pixel brightness."""
        return self.black != self.white

    def factor(self, brightness: float) -> float:
        """Get the strength for a pixel of the given brightness in [0, 1]."""
        return self.black + (self.white - self.black) * brightness


class OffsetArithmetic(Protocol):
    """How offsets are scaled and applied in one working color space."""

    def scale(self, offset: float, strength: float) -> float: ...

    def apply(self, color: Color32, offset: float) -> Color32: ...

    def brightness(self, color: Color32) -> float: ...


class GammaOffsets:
    """Integer offsets on 8-bit channels. Scaled offsets truncate toward zero."""

    def scale(self, offset: float, strength: float) -> float:
        return int(offset * strength)

    def apply(self, color: Color32, offset: float) -> Color32:
        delta = int(offset)
        return Color32(
            clip_to_byte(color.r + delta),
            clip_to_byte(color.g + delta),
            clip_to_byte(color.b + delta),
        )

    def brightness(self, color: Color32) -> float:
        return get_brightness(color) / _MAX_8BIT


class LinearOffsets:
    """Float offsets added in linear light."""

    def scale(self, offset: float, strength: float) -> float:
        return offset * strength

    def apply(self, color: Color32, offset: float) -> Color32:
        r, g, b = to_linear(color)
        return from_linear(
            (
                clip_to_unit(r + offset),
                clip_to_unit(g + offset),
                clip_to_unit(b + offset),
            )
        )

    def brightness(self, color: Color32) -> float:
        return get_brightness_f(to_linear(color))


GAMMA_OFFSETS = GammaOffsets()
LINEAR_OFFSETS = LinearOffsets()


def get_offset_arithmetic(quantizing_session: QuantizingSession) -> OffsetArithmetic:
    """Select the offset arithmetic for the quantizer's working color space."""
    if quantizing_session.working_color_space == WorkingColorSpace.LINEAR:
        return LINEAR_OFFSETS
    return GAMMA_OFFSETS


def _find_safe_strength(preserves: Callable[[float], bool]) -> float:
    """Search for the largest strength in (0, 1] that passes a test.

    :param preserves: returns True if a strength leaves the reference color as it is
    :return: 1 if 1 passes, else the first passing value found by halving, then
        bisecting between the first passing and the last failing value.

    Both loops are bounded. If halving never passes, the smallest value tried is
    returned. If bisection runs out of steps, the last value known to pass is
    returned.
    """
    if preserves(1.0):
        return 1.0

    strength = 1.0
    for _ in range(MAX_HALVINGS):
        strength /= 2
        if preserves(strength):
            break
    else:
        logging.debug(f"no safe strength found by halving, using {strength}")
        return strength

    lo, hi = strength, strength * 2
    for _ in range(MAX_BISECTIONS):
        if hi - lo < STRENGTH_EPSILON:
            break
        mid = (lo + hi) / 2
        if preserves(mid):
            return mid
        hi = mid
    return lo


def calibrate_reference(
    quantizing_session: QuantizingSession,
    arithmetic: OffsetArithmetic,
    reference: Color32,
    offset: float,
) -> float:
    """Find the strength at which `offset` does not change a quantized color.

    :param quantizing_session: the quantizer the session is bound to
    :param arithmetic: offset arithmetic for the working color space
    :param reference: pure black or pure white
    :param offset: the extreme offset that pushes the reference toward the middle
        (the maximum offset for black, the minimum for white)
    :return: a strength in (0, 1]
    """
    expected = quantizing_session.quantize(reference)

    def preserves(strength: float) -> bool:
        scaled = arithmetic.scale(offset, strength)
        adjusted = arithmetic.apply(reference, scaled)
        return quantizing_session.quantize(adjusted) == expected

    return _find_safe_strength(preserves)


def calibrate_strength(
    quantizing_session: QuantizingSession,
    arithmetic: OffsetArithmetic,
    min_offset: float,
    max_offset: float,
    *,
    interpolated: bool,
) -> StrengthState:
    """Calibrate strength for black and white and combine the two.

    :param min_offset: the most negative offset the source can produce
    :param max_offset: the most positive offset the source can produce
    :param interpolated: if True and black and white calibrate differently, keep
        both. Otherwise use the smaller of the two everywhere.
    """
    white = calibrate_reference(quantizing_session, arithmetic, WHITE, min_offset)
    black = calibrate_reference(quantizing_session, arithmetic, BLACK, max_offset)
    logging.debug(f"calibrated strength: black={black}, white={white}")
    if interpolated and white != black:
        return StrengthState(black, white)
    return StrengthState.constant(min(black, white))


def resolve_strength(
    quantizing_session: QuantizingSession,
    arithmetic: OffsetArithmetic,
    min_offset: float,
    max_offset: float,
    strength: float,
    auto_strength_mode: AutoStrengthMode,
) -> StrengthState:
    """Use a fixed strength, or calibrate one if strength is 0.

    :param strength: fixed strength in (0, 1], or 0 to calibrate
    :param auto_strength_mode: how to combine calibrated black and white strengths
    """
    if strength > 0:
        return StrengthState.constant(strength)
    if auto_strength_mode == AutoStrengthMode.INTERPOLATED:
        interpolated = True
    elif auto_strength_mode == AutoStrengthMode.CONSTANT:
        interpolated = False
    else:
        interpolated = arithmetic is LINEAR_OFFSETS
    return calibrate_strength(
        quantizing_session,
        arithmetic,
        min_offset,
        max_offset,
        interpolated=interpolated,
    )


class OffsetSource(Protocol):
    """Where the per-pixel offsets come from."""

    min_offset: float
    max_offset: float

    @property
    def is_sequential(self) -> bool: ...

    def get_offset(self, x: int, y: int) -> float: ...


class VariableStrengthSession(SessionBase):
    """Add a scaled offset to each pixel, then quantize."""

    def __init__(
        self,
        quantizing_session: QuantizingSession,
        offsets: OffsetSource,
        arithmetic: OffsetArithmetic,
        strength: StrengthState,
    ) -> None:
        self._quantizer = quantizing_session
        self._offsets = offsets
        self._arithmetic = arithmetic
        self.strength = strength

    @property
    def is_sequential(self) -> bool:
        """Sequential only if the offset source must be read in order."""
        return self._offsets.is_sequential

    def get_dithered_color(self, color: Color32, x: int, y: int) -> Color32:
        """Return the final color of the pixel at (x, y)."""
        if not color.is_opaque:
            color = self._quantizer.blend_or_make_transparent(color)
            if color.a == 0:
                return color

        offset = self._offsets.get_offset(x, y)
        if self.strength.is_interpolated:
            factor = self.strength.factor(self._arithmetic.brightness(color))
        else:
            factor = self.strength.black
        scaled = self._arithmetic.scale(offset, factor)
        return self._quantizer.quantize(self._arithmetic.apply(color, scaled))
