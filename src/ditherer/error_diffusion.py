"""Error-diffusion dithering.

Each pixel is quantized, and the difference between the pixel (plus whatever error
earlier pixels pushed onto it) and its quantized color is spread over neighbors that
have not been visited yet. The local average color survives quantization.

A coefficient matrix describes the spread. Row 0 of the matrix is the current image
row. `first_pixel_index` is the matrix column of the first pixel to the right of the
current pixel, so cell (my, mx) lands `mx - first_pixel_index + 1` columns to the
right and `my` rows down. Cells left of `first_pixel_index` in row 0 belong to pixels
already visited and are ignored.

Floyd-Steinberg, for instance, is

    [[0, 0, 7],
     [3, 5, 1]] / 16, first_pixel_index=2

Sessions are always sequential: errors only ever flow to later pixels, and the row
buffer assumes earlier rows are done.

:author: Shay Hill
:created: 2026-09-17
"""

from __future__ import annotations

import copy
import logging
import math
from typing import Annotated, Protocol, TypeAlias

import numpy as np
from numpy import typing as npt

from ditherer.colors import (
    Color32,
    RgbF,
    clip_to_byte,
    clip_to_unit,
    from_linear,
    get_brightness,
    get_brightness_f,
    to_linear,
)
from ditherer.defaults import LINEAR_RESIDUAL_TOLERANCE
from ditherer.lazy import predefined
from ditherer.pixels import PixelSource
from ditherer.quantizing import QuantizingSession, WorkingColorSpace
from ditherer.session import SessionBase, require_quantizing_session

_Weights: TypeAlias = Annotated[npt.NDArray[np.float64], "(h, w)"]
_Errors: TypeAlias = Annotated[npt.NDArray[np.float64], "(h, w, 3)"]

# (matrix row, column offset to the right, coefficient)
_Target: TypeAlias = tuple[int, int, float]


class CoefficientMatrix:
    """Diffusion weights divided by their divisor. Immutable once built."""

    def __init__(
        self, weights: npt.ArrayLike, divisor: int, first_pixel_index: int
    ) -> None:
        """Validate the weights and pre-divide them.

        :param weights: (h, w) non-negative weights
        :param divisor: positive divisor applied to every weight
        :param first_pixel_index: in [0, w). The matrix column of the pixel right
            of the current one.
        :raise TypeError: if weights is None
        :raise ValueError: if weights is empty or not 2D, has negative values, or
            divisor or first_pixel_index is out of range
        """
        if weights is None:
            msg = "weights matrix is required"
            raise TypeError(msg)
        array = np.array(weights, dtype=np.float64)
        if array.size == 0:
            msg = "weights matrix must not be empty"
            raise ValueError(msg)
        if array.ndim != 2:
            msg = f"weights matrix must be 2D, got shape {array.shape}"
            raise ValueError(msg)
        if np.any(array < 0):
            msg = "weights must be non-negative"
            raise ValueError(msg)
        if divisor <= 0:
            msg = f"divisor must be greater than 0, got {divisor}"
            raise ValueError(msg)
        height, width = array.shape
        if not 0 <= first_pixel_index < width:
            msg = (
                f"first_pixel_index must be in [0, {width - 1}],"
                + f" got {first_pixel_index}"
            )
            raise ValueError(msg)

        coefficients = array / divisor
        coefficients.setflags(write=False)
        self._coefficients: _Weights = coefficients
        self.first_pixel_index = first_pixel_index
        self.targets = self._get_targets()

    @property
    def coefficients(self) -> _Weights:
        """Return the read-only (h, w) coefficient array."""
        return self._coefficients

    @property
    def height(self) -> int:
        """Return the number of matrix rows (current row included)."""
        return int(self._coefficients.shape[0])

    @property
    def width(self) -> int:
        """Return the number of matrix columns."""
        return int(self._coefficients.shape[1])

    @property
    def total(self) -> float:
        """Return the sum of the coefficients that receive error."""
        return sum(coefficient for _, _, coefficient in self.targets)

    def _get_targets(self) -> tuple[_Target, ...]:
        """List every cell that receives error, with its column offset."""
        targets: list[_Target] = []
        for my in range(self.height):
            for mx in range(self.width):
                if my == 0 and mx < self.first_pixel_index:
                    continue
                coefficient = float(self._coefficients[my, mx])
                if coefficient == 0:
                    continue
                targets.append((my, mx - self.first_pixel_index + 1, coefficient))
        return tuple(targets)


class ErrorRowBuffer:
    """Residual accumulators for the current row and the rows below it.

    A fixed arena of `height` rows addressed through a rotating base index. Logical
    row 0 is the current image row.
    """

    def __init__(self, height: int, width: int) -> None:
        self._rows: _Errors = np.zeros((height, width, 3), dtype=np.float64)
        self._base = 0

    @property
    def height(self) -> int:
        """Return the number of rows held."""
        return int(self._rows.shape[0])

    def _index(self, row: int) -> int:
        return (self._base + row) % self.height

    def get(self, row: int, x: int) -> tuple[float, float, float]:
        """Return the accumulated residual at one position."""
        r, g, b = self._rows[self._index(row), x].tolist()
        return r, g, b

    def add(self, row: int, x: int, residual: RgbF, coefficient: float) -> None:
        """Accumulate `residual * coefficient` at one position."""
        cell = self._rows[self._index(row), x]
        cell[0] += residual[0] * coefficient
        cell[1] += residual[1] * coefficient
        cell[2] += residual[2] * coefficient

    def rotate(self) -> None:
        """Drop the consumed first row and append it, zeroed, as the last row."""
        self._rows[self._base] = 0
        self._base = (self._base + 1) % self.height

    def total(self) -> RgbF:
        """Return the per-channel sum of every accumulated residual."""
        r, g, b = self._rows.sum(axis=(0, 1)).tolist()
        return r, g, b

    def snapshot(self) -> _Errors:
        """Return a copy of the rows in logical order."""
        return np.roll(self._rows, -self._base, axis=0).copy()


class _Arithmetic(Protocol):
    """How errors are added and residuals measured in one working color space."""

    def apply_error(
        self, color: Color32, error: tuple[float, float, float]
    ) -> tuple[Color32, RgbF]: ...

    def get_residual(
        self,
        adjusted: Color32,
        adjusted_values: RgbF,
        quantized: Color32,
        by_brightness: bool,
    ) -> RgbF | None: ...


class GammaArithmetic:
    """Integer arithmetic on 8-bit encoded channels."""

    def apply_error(
        self, color: Color32, error: tuple[float, float, float]
    ) -> tuple[Color32, RgbF]:
        """Add the truncated error to each channel and clip.

        :return: (adjusted color, adjusted channel values)
        """
        er, eg, eb = error
        adjusted = Color32(
            clip_to_byte(color.r + int(er)),
            clip_to_byte(color.g + int(eg)),
            clip_to_byte(color.b + int(eb)),
        )
        return adjusted, (adjusted.r, adjusted.g, adjusted.b)

    def get_residual(
        self,
        adjusted: Color32,
        adjusted_values: RgbF,
        quantized: Color32,
        by_brightness: bool,
    ) -> RgbF | None:
        """Return adjusted - quantized, or None if exactly zero."""
        del adjusted_values
        if by_brightness:
            delta = get_brightness(adjusted) - get_brightness(quantized)
            if delta == 0:
                return None
            return delta, delta, delta
        residual = (
            adjusted.r - quantized.r,
            adjusted.g - quantized.g,
            adjusted.b - quantized.b,
        )
        if residual == (0, 0, 0):
            return None
        return residual


class LinearArithmetic:
    """Float arithmetic in linear light."""

    def apply_error(
        self, color: Color32, error: tuple[float, float, float]
    ) -> tuple[Color32, RgbF]:
        """Add the error in linear light, clamp to [0, 1], and re-encode.

        :return: (adjusted color, clamped linear-light values)
        """
        r, g, b = to_linear(color)
        er, eg, eb = error
        values = (clip_to_unit(r + er), clip_to_unit(g + eg), clip_to_unit(b + eb))
        return from_linear(values), values

    def get_residual(
        self,
        adjusted: Color32,
        adjusted_values: RgbF,
        quantized: Color32,
        by_brightness: bool,
    ) -> RgbF | None:
        """Return adjusted - quantized in linear light, or None if about zero."""
        del adjusted
        quantized_values = to_linear(quantized)
        if by_brightness:
            delta = get_brightness_f(adjusted_values) - get_brightness_f(
                quantized_values
            )
            residual = (delta, delta, delta)
        else:
            r, g, b = (a - q for a, q in zip(adjusted_values, quantized_values))
            residual = (r, g, b)
        if all(
            math.isclose(x, 0, abs_tol=LINEAR_RESIDUAL_TOLERANCE) for x in residual
        ):
            return None
        return residual


class RasterTraversal:
    """Every row left to right."""

    def is_right_to_left(self, y: int) -> bool:
        del y
        return False


class SerpentineTraversal:
    """Even rows left to right, odd rows right to left."""

    def is_right_to_left(self, y: int) -> bool:
        return y % 2 == 1


class ErrorDiffusionSession(SessionBase):
    """Diffuse quantization errors over one image, one pixel at a time.

    Traversal order and working color space are injected. Right-to-left rows are
    processed eagerly, in full, as soon as the row is entered; the session reads
    the original row from the source and serves its pixels from the results.
    """

    is_sequential = True

    def __init__(
        self,
        quantizing_session: QuantizingSession,
        matrix: CoefficientMatrix,
        source: PixelSource,
        *,
        traversal: RasterTraversal | SerpentineTraversal,
        arithmetic: _Arithmetic,
        by_brightness: bool,
    ) -> None:
        self._quantizer = quantizing_session
        self._matrix = matrix
        self._source = source
        self._traversal = traversal
        self._arithmetic = arithmetic
        self.by_brightness = by_brightness
        self._width = source.width
        self._height = source.height
        self._buffer = ErrorRowBuffer(matrix.height, self._width)
        self._last_row = 0
        self._right_to_left = False
        self._row_results: list[Color32] = []

    @property
    def buffer(self) -> ErrorRowBuffer:
        """Return the residual buffer."""
        return self._buffer

    def close(self) -> None:
        """Drop the cached row results and release the residual arena.

        The session cannot be used after it is closed.
        """
        self._row_results = []
        self._buffer = ErrorRowBuffer(self._matrix.height, 0)

    def get_dithered_color(self, color: Color32, x: int, y: int) -> Color32:
        """Return the final color of the pixel at (x, y).

        :param color: the original color. On right-to-left rows this is ignored in
            favor of the source row read when the row was entered.
        """
        if y != self._last_row:
            self._prepare_row(y)
        if self._right_to_left:
            return self._row_results[x]
        return self._diffuse(color, x, y)

    def _prepare_row(self, y: int) -> None:
        self._buffer.rotate()
        self._last_row = y
        self._right_to_left = self._traversal.is_right_to_left(y)
        if not self._right_to_left:
            return
        row = self._source.get_row(y)
        results = list(row)
        for x in range(self._width - 1, -1, -1):
            results[x] = self._diffuse(row[x], x, y)
        self._row_results = results

    def _diffuse(self, color: Color32, x: int, y: int) -> Color32:
        if not color.is_opaque:
            color = self._quantizer.blend_or_make_transparent(color)
            if color.a == 0:
                return color

        adjusted, values = self._arithmetic.apply_error(color, self._buffer.get(0, x))
        quantized = self._quantizer.quantize(adjusted)
        residual = self._arithmetic.get_residual(
            adjusted, values, quantized, self.by_brightness
        )
        if residual is not None:
            self._propagate(residual, x, y)
        return quantized

    def _propagate(self, residual: RgbF, x: int, y: int) -> None:
        direction = -1 if self._right_to_left else 1
        rows_left = self._height - y
        for my, offset, coefficient in self._matrix.targets:
            if my >= rows_left:
                continue
            target_x = x + direction * offset
            if 0 <= target_x < self._width:
                self._buffer.add(my, target_x, residual, coefficient)


class ErrorDiffusionDitherer:
    """Configuration for error-diffusion dithering.

    Instances are immutable. The `configure_*` methods return new instances that
    share the coefficient matrix.
    """

    def __init__(
        self,
        matrix: npt.ArrayLike,
        divisor: int,
        first_pixel_index: int,
        serpentine: bool = False,
        by_brightness: bool | None = None,
    ) -> None:
        """Create an error-diffusion ditherer.

        :param matrix: (h, w) non-negative diffusion weights
        :param divisor: each weight is divided by this
        :param first_pixel_index: matrix column of the pixel right of the current one
        :param serpentine: if True, process odd rows right to left
        :param by_brightness: True to diffuse one brightness error on all channels,
            False to diffuse each channel separately, None to decide by whether the
            quantizer is grayscale
        """
        self._matrix = CoefficientMatrix(matrix, divisor, first_pixel_index)
        self._serpentine = serpentine
        self._by_brightness = by_brightness

    @property
    def matrix(self) -> CoefficientMatrix:
        """Return the shared coefficient matrix."""
        return self._matrix

    @property
    def serpentine(self) -> bool:
        """Return True if odd rows are processed right to left."""
        return self._serpentine

    @property
    def by_brightness(self) -> bool | None:
        """Return the brightness-mode override (None for automatic)."""
        return self._by_brightness

    @property
    def initialize_relies_on_content(self) -> bool:
        """Serpentine sessions read whole source rows."""
        return self._serpentine

    def configure_processing_direction(
        self, serpentine: bool
    ) -> ErrorDiffusionDitherer:
        """Return a copy with raster (False) or serpentine (True) processing."""
        ditherer = copy.copy(self)
        ditherer._serpentine = serpentine
        return ditherer

    def configure_error_diffusion_mode(
        self, by_brightness: bool | None
    ) -> ErrorDiffusionDitherer:
        """Return a copy with the given brightness-mode override."""
        ditherer = copy.copy(self)
        ditherer._by_brightness = by_brightness
        return ditherer

    def initialize(
        self, source: PixelSource, quantizing_session: QuantizingSession
    ) -> ErrorDiffusionSession:
        """Create a session for one image and one quantizer.

        The quantizer's working color space selects gamma or linear arithmetic.
        """
        quantizing_session = require_quantizing_session(quantizing_session)
        is_linear = quantizing_session.working_color_space == WorkingColorSpace.LINEAR
        by_brightness = self._by_brightness
        if by_brightness is None:
            by_brightness = quantizing_session.is_grayscale
        logging.debug(
            f"error diffusion: serpentine={self._serpentine}, linear={is_linear},"
            + f" by_brightness={by_brightness}"
        )
        return ErrorDiffusionSession(
            quantizing_session,
            self._matrix,
            source,
            traversal=SerpentineTraversal() if self._serpentine else RasterTraversal(),
            arithmetic=LinearArithmetic() if is_linear else GammaArithmetic(),
            by_brightness=by_brightness,
        )


@predefined
def floyd_steinberg() -> ErrorDiffusionDitherer:
    """Floyd-Steinberg: 4 neighbors, fast, the usual default."""
    return ErrorDiffusionDitherer([[0, 0, 7], [3, 5, 1]], 16, 2)


@predefined
def jarvis_judice_ninke() -> ErrorDiffusionDitherer:
    """Jarvis, Judice and Ninke: 12 neighbors over 3 rows."""
    return ErrorDiffusionDitherer(
        [[0, 0, 0, 7, 5], [3, 5, 7, 5, 3], [1, 3, 5, 3, 1]], 48, 3
    )


@predefined
def stucki() -> ErrorDiffusionDitherer:
    """Stucki: Jarvis-Judice-Ninke with power-of-two friendly weights."""
    return ErrorDiffusionDitherer(
        [[0, 0, 0, 8, 4], [2, 4, 8, 4, 2], [1, 2, 4, 2, 1]], 42, 3
    )


@predefined
def burkes() -> ErrorDiffusionDitherer:
    """Burkes: the first two rows of Stucki."""
    return ErrorDiffusionDitherer([[0, 0, 0, 8, 4], [2, 4, 8, 4, 2]], 32, 3)


@predefined
def sierra3() -> ErrorDiffusionDitherer:
    """Sierra (three-row)."""
    return ErrorDiffusionDitherer(
        [[0, 0, 0, 5, 3], [2, 4, 5, 4, 2], [0, 2, 3, 2, 0]], 32, 3
    )


@predefined
def sierra2() -> ErrorDiffusionDitherer:
    """Sierra two-row."""
    return ErrorDiffusionDitherer([[0, 0, 0, 4, 3], [1, 2, 3, 2, 1]], 16, 3)


@predefined
def sierra_lite() -> ErrorDiffusionDitherer:
    """Sierra Lite: 3 neighbors."""
    return ErrorDiffusionDitherer([[0, 0, 2], [1, 1, 0]], 4, 2)


@predefined
def stevenson_arce() -> ErrorDiffusionDitherer:
    """Stevenson-Arce: 12 neighbors over 4 rows, meant for hexagonal grids."""
    return ErrorDiffusionDitherer(
        [
            [0, 0, 0, 0, 0, 32, 0],
            [12, 0, 26, 0, 30, 0, 16],
            [0, 12, 0, 26, 0, 12, 0],
            [5, 0, 12, 0, 12, 0, 5],
        ],
        200,
        4,
    )


@predefined
def atkinson() -> ErrorDiffusionDitherer:
    """Atkinson: diffuses only 3/4 of the error, for higher contrast."""
    return ErrorDiffusionDitherer([[0, 0, 1, 1], [1, 1, 1, 0], [0, 1, 0, 0]], 8, 2)
