"""Run a dithering session over a whole image.

Sequential sessions are driven on the calling thread in raster order. Other
sessions are driven one row per task on a thread pool. Either way, a `cancel` event
is checked before every row.

:author: Shay Hill
:created: 2026-09-21
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Annotated, Callable, TypeAlias

import numpy as np
from numpy import typing as npt
from PIL import Image

from ditherer.colors import Color32
from ditherer.pixels import ArrayPixelSource
from ditherer.quantizing import QuantizingSession
from ditherer.session import (
    Ditherer,
    initialize_session,
    require_quantizing_session,
)

_RgbaPixels: TypeAlias = Annotated[npt.NDArray[np.uint8], (-1, -1, 4)]


class DitheringCancelledError(Exception):
    """The cancel event was set before every row was dithered."""


def _check_cancel(cancel: threading.Event | None, y: int) -> None:
    if cancel is not None and cancel.is_set():
        msg = f"dithering cancelled before row {y}"
        raise DitheringCancelledError(msg)


def _fill_row(
    source: ArrayPixelSource,
    result: _RgbaPixels,
    y: int,
    get_color: Callable[[Color32, int, int], Color32],
) -> None:
    """Write the final colors of row y into result."""
    row = source.get_row(y)
    result[y] = [get_color(color, x, y).rgba for x, color in enumerate(row)]


def _quantize_only(
    quantizer: QuantizingSession | None,
) -> Callable[[Color32, int, int], Color32]:
    """Build a per-pixel function that quantizes without dithering."""

    def get_color(color: Color32, x: int, y: int) -> Color32:
        del x, y
        if not color.is_opaque:
            color = quantizer.blend_or_make_transparent(color)
            if color.a == 0:
                return color
        return quantizer.quantize(color)

    return get_color


def dither_array(
    pixels: npt.ArrayLike,
    quantizer: QuantizingSession | None,
    ditherer: Ditherer | None = None,
    *,
    max_workers: int | None = None,
    cancel: threading.Event | None = None,
) -> _RgbaPixels:
    """Dither (or only quantize) an array of pixels.

    :param pixels: (h, w, 3) or (h, w, 4) array of 8-bit channels
    :param quantizer: the quantizing session that picks the output colors
    :param ditherer: optional ditherer. If None, every pixel is only quantized.
    :param max_workers: thread pool size for sessions that are not sequential.
        None for the `ThreadPoolExecutor` default.
    :param cancel: optional event. If it is set when a row is about to start, stop.
    :return: a new (h, w, 4) uint8 array
    :raise DitheringCancelledError: if cancel was set before the last row
    :raise DithererContractError: if there is no quantizer, or the ditherer did not
        provide a session
    """
    source = ArrayPixelSource(pixels)
    result = np.zeros_like(source.pixels)
    ditherer_name = "no ditherer" if ditherer is None else type(ditherer).__name__
    logging.info(f"dithering {source.width}x{source.height} with {ditherer_name}")
    quantizer = require_quantizing_session(quantizer)

    if ditherer is None:
        get_color = _quantize_only(quantizer)
        is_sequential = False
        session = None
    else:
        session = initialize_session(ditherer, source, quantizer)
        get_color = session.get_dithered_color
        is_sequential = session.is_sequential

    try:
        if is_sequential:
            for y in range(source.height):
                _check_cancel(cancel, y)
                _fill_row(source, result, y, get_color)
        else:

            def run_one(y: int) -> None:
                _check_cancel(cancel, y)
                _fill_row(source, result, y, get_color)

            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                for _ in executor.map(run_one, range(source.height)):
                    pass
    finally:
        if session is not None:
            session.close()

    logging.info(f"dithered {source.width}x{source.height}")
    return result


def dither_image(
    image: Image.Image,
    quantizer: QuantizingSession | None,
    ditherer: Ditherer | None = None,
    *,
    max_workers: int | None = None,
    cancel: threading.Event | None = None,
) -> Image.Image:
    """Dither (or only quantize) a PIL image.

    The image is converted to RGBA first. See `dither_array` for the arguments.

    :return: a new RGBA image
    """
    pixels = ArrayPixelSource.from_image(image).pixels
    dithered = dither_array(
        pixels, quantizer, ditherer, max_workers=max_workers, cancel=cancel
    )
    return Image.fromarray(dithered)
