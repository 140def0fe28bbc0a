"""Read access to the pixels of an image.

Ditherers see an image through `PixelSource`: its size, and (for serpentine error
diffusion) whole rows of original colors on demand.

:author: Shay Hill
:created: 2026-09-15
"""

from __future__ import annotations

from typing import Annotated, Protocol, TypeAlias

import numpy as np
from basic_colormath import floats_to_uint8
from numpy import typing as npt
from PIL import Image

from ditherer.colors import Color32

_RgbaPixels: TypeAlias = Annotated[npt.NDArray[np.uint8], (-1, -1, 4)]

_MAX_8BIT = 255


class PixelSource(Protocol):
    """Read-only view of an image."""

    @property
    def width(self) -> int:
        """Return the number of columns."""
        ...

    @property
    def height(self) -> int:
        """Return the number of rows."""
        ...

    def get_color(self, x: int, y: int) -> Color32:
        """Return the color of one pixel."""
        ...

    def get_row(self, y: int) -> list[Color32]:
        """Return the colors of one row, left to right."""
        ...


def as_rgba_pixels(pixels: npt.ArrayLike) -> _RgbaPixels:
    """Coerce an (h, w, 3) or (h, w, 4) array to (h, w, 4) uint8.

    :param pixels: an array of 8-bit channels. Float arrays are taken as [0, 255]
        values and rounded with an even distribution over 0 to 255.
    :return: a new (h, w, 4) uint8 array. Missing alpha is opaque.
    :raise ValueError: if the array is not (h, w, 3) or (h, w, 4)
    """
    array = np.asarray(pixels)
    if array.ndim != 3 or array.shape[2] not in (3, 4):
        msg = f"expected an (h, w, 3) or (h, w, 4) array, got shape {array.shape}"
        raise ValueError(msg)
    if np.issubdtype(array.dtype, np.floating):
        array = floats_to_uint8(array)
    array = array.astype(np.uint8)
    if array.shape[2] == 3:
        alpha = np.full((*array.shape[:2], 1), _MAX_8BIT, dtype=np.uint8)
        array = np.concatenate([array, alpha], axis=2)
    return array


class ArrayPixelSource:
    """A `PixelSource` over an (h, w, 4) uint8 numpy array."""

    def __init__(self, pixels: npt.ArrayLike) -> None:
        """Wrap an array of pixels.

        :param pixels: (h, w, 3) or (h, w, 4) array. See `as_rgba_pixels`.
        """
        self.pixels = as_rgba_pixels(pixels)

    @classmethod
    def from_image(cls, image: Image.Image) -> ArrayPixelSource:
        """Wrap a PIL image of any mode."""
        return cls(np.array(image.convert("RGBA")))

    @property
    def width(self) -> int:
        """Return the number of columns."""
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        """Return the number of rows."""
        return int(self.pixels.shape[0])

    def get_color(self, x: int, y: int) -> Color32:
        """Return the color of one pixel."""
        r, g, b, a = self.pixels[y, x].tolist()
        return Color32(r, g, b, a)

    def get_row(self, y: int) -> list[Color32]:
        """Return the colors of one row, left to right."""
        return [Color32(r, g, b, a) for r, g, b, a in self.pixels[y].tolist()]
