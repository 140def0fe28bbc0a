"""Quantizing sessions: map a full-precision color to the nearest available color.

Ditherers do not care how a quantizer picks its colors. They need the interface
in `QuantizingSession`. The quantizers here are small reference implementations:

* `BlackAndWhiteQuantizer` thresholds on brightness
* `PaletteQuantizer` picks the nearest palette entry by squared Euclidean distance
  or by Delta E (CIE2000)

:author: Shay Hill
:created: 2026-09-15
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from typing import Annotated, Literal, Protocol, TypeAlias

import numpy as np
from basic_colormath import get_delta_e_matrix, get_sqeuclidean_matrix
from numpy import typing as npt

from ditherer.colors import (
    BLACK,
    TRANSPARENT,
    WHITE,
    Color32,
    blend,
    get_brightness,
    srgb_array_to_linear,
)
from ditherer.defaults import ALPHA_THRESHOLD

_Palette: TypeAlias = Annotated[npt.NDArray[np.uint8], "(m, 3)"]
_Metric: TypeAlias = Literal["euclidean", "delta_e"]

_MAX_8BIT = 255


class WorkingColorSpace(str, enum.Enum):
    """Color space in which a quantizer (and the ditherer bound to it) does math."""

    GAMMA = "gamma"
    LINEAR = "linear"


class QuantizingSession(Protocol):
    """What a ditherer needs from a quantizer."""

    @property
    def is_grayscale(self) -> bool:
        """Return True if every quantized color is a shade of gray."""
        ...

    @property
    def working_color_space(self) -> WorkingColorSpace:
        """Return the color space the quantizer works in."""
        ...

    def quantize(self, color: Color32) -> Color32:
        """Return the nearest color the target can represent."""
        ...

    def blend_or_make_transparent(self, color: Color32) -> Color32:
        """Blend a partially transparent color or return a fully transparent one."""
        ...


class _QuantizerBase:
    """Alpha handling shared by the reference quantizers."""

    def __init__(
        self,
        back_color: Color32 = BLACK,
        alpha_threshold: int = ALPHA_THRESHOLD,
        working_color_space: WorkingColorSpace = WorkingColorSpace.GAMMA,
    ) -> None:
        """Set the alpha behavior.

        :param back_color: opaque color to blend partially transparent pixels over
        :param alpha_threshold: pixels with alpha below this are made transparent.
            0 means no pixel is ever made transparent.
        :param working_color_space: gamma or linear. Selects the ditherer variant
            and the space in which blending and color matching happen.
        """
        if not 0 <= alpha_threshold <= _MAX_8BIT:
            msg = f"alpha_threshold must be in [0, 255], got {alpha_threshold}"
            raise ValueError(msg)
        self.back_color = back_color
        self.alpha_threshold = alpha_threshold
        self.working_color_space = WorkingColorSpace(working_color_space)

    @property
    def is_linear(self) -> bool:
        """Return True if the quantizer works in linear light."""
        return self.working_color_space == WorkingColorSpace.LINEAR

    def blend_or_make_transparent(self, color: Color32) -> Color32:
        """Blend a partially transparent color or return a fully transparent one.

        :param color: any color
        :return: the color itself if opaque, TRANSPARENT if its alpha is below the
            threshold, else the color blended over the back color.
        """
        if color.is_opaque:
            return color
        if color.a < self.alpha_threshold:
            return TRANSPARENT
        return blend(color, self.back_color, linear=self.is_linear)


class BlackAndWhiteQuantizer(_QuantizerBase):
    """Quantize to black or white by brightness."""

    is_grayscale = True

    def __init__(
        self,
        white_threshold: int = 128,
        back_color: Color32 = BLACK,
        alpha_threshold: int = ALPHA_THRESHOLD,
        working_color_space: WorkingColorSpace = WorkingColorSpace.GAMMA,
    ) -> None:
        """Create a black-and-white quantizer.

        :param white_threshold: colors with brightness at or above this become white
        """
        super().__init__(back_color, alpha_threshold, working_color_space)
        if not 0 <= white_threshold <= _MAX_8BIT:
            msg = f"white_threshold must be in [0, 255], got {white_threshold}"
            raise ValueError(msg)
        self.white_threshold = white_threshold

    def quantize(self, color: Color32) -> Color32:
        """Return black or white."""
        return WHITE if get_brightness(color) >= self.white_threshold else BLACK


class PaletteQuantizer(_QuantizerBase):
    """Quantize to the nearest color of a fixed palette."""

    def __init__(
        self,
        palette: Iterable[tuple[int, int, int]] | _Palette,
        back_color: Color32 = BLACK,
        alpha_threshold: int = ALPHA_THRESHOLD,
        working_color_space: WorkingColorSpace = WorkingColorSpace.GAMMA,
        *,
        metric: _Metric = "euclidean",
    ) -> None:
        """Create a palette quantizer.

        :param palette: (m, 3) 8-bit colors
        :param metric: "euclidean" for squared Euclidean distance in the working
            color space, "delta_e" for perceptual Delta E (CIE2000) distance.
        """
        super().__init__(back_color, alpha_threshold, working_color_space)
        colors = np.array(list(palette), dtype=np.uint8).reshape(-1, 3)
        if len(colors) == 0:
            msg = "palette must contain at least one color"
            raise ValueError(msg)
        if metric not in ("euclidean", "delta_e"):
            msg = f"metric must be 'euclidean' or 'delta_e', got {metric!r}"
            raise ValueError(msg)
        self.palette = colors
        self.metric = metric
        self._colors = [Color32(int(r), int(g), int(b)) for r, g, b in colors]
        self._is_grayscale = bool(np.all(colors == colors[:, :1]))
        self._linear_palette = srgb_array_to_linear(colors) * _MAX_8BIT
        self._cache: dict[tuple[int, int, int], Color32] = {}

    @classmethod
    def grayscale(cls, levels: int = 256, **kwargs: object) -> PaletteQuantizer:
        """Create a quantizer with `levels` evenly spaced shades of gray.

        :param levels: number of shades, at least 2 (black and white)
        """
        if levels < 2:
            msg = f"levels must be at least 2, got {levels}"
            raise ValueError(msg)
        shades = np.linspace(0, _MAX_8BIT, levels).round().astype(np.uint8)
        return cls([(int(s), int(s), int(s)) for s in shades], **kwargs)  # type: ignore

    @property
    def is_grayscale(self) -> bool:
        """Return True if every palette color is gray."""
        return self._is_grayscale

    def _get_distances(self, rgb: tuple[int, int, int]) -> npt.NDArray[np.float64]:
        """Get the distance from one color to every palette color."""
        query = np.array([rgb], dtype=np.uint8)
        if self.metric == "delta_e":
            return get_delta_e_matrix(query, self.palette)[0]
        if self.is_linear:
            query_f = srgb_array_to_linear(query) * _MAX_8BIT
            return get_sqeuclidean_matrix(query_f, self._linear_palette)[0]
        return get_sqeuclidean_matrix(query, self.palette)[0]

    def quantize(self, color: Color32) -> Color32:
        """Return the nearest palette color. Ties go to the earlier palette entry."""
        key = color.rgb
        match = self._cache.get(key)
        if match is None:
            match = self._colors[int(np.argmin(self._get_distances(key)))]
            self._cache[key] = match
        return match
