"""See full diffs in pytest. Shared quantizers and images.

:author: Shay Hill
:created: 2023-10-07
"""

from typing import Any

import numpy as np
import pytest
from numpy import typing as npt

from ditherer.pixels import ArrayPixelSource
from ditherer.quantizing import BlackAndWhiteQuantizer, WorkingColorSpace


def pytest_assertrepr_compare(
    config: Any, op: str, left: str, right: str
) -> list[str] | None:
    """See full error diffs"""
    del config
    if op in ("==", "!="):
        return [f"{left} {op} {right}"]
    return None


def gray_pixels(width: int, height: int, value: int) -> npt.NDArray[np.uint8]:
    """Return an opaque (height, width, 4) image of one gray value."""
    pixels = np.full((height, width, 4), value, dtype=np.uint8)
    pixels[..., 3] = 255
    return pixels


@pytest.fixture
def bw_quantizer() -> BlackAndWhiteQuantizer:
    """Threshold at 128 in the gamma working color space."""
    return BlackAndWhiteQuantizer()


@pytest.fixture
def linear_bw_quantizer() -> BlackAndWhiteQuantizer:
    """Threshold at 128, dithering in linear light."""
    return BlackAndWhiteQuantizer(working_color_space=WorkingColorSpace.LINEAR)


@pytest.fixture
def gray_source() -> ArrayPixelSource:
    """A 4x3 image of gray 100."""
    return ArrayPixelSource(gray_pixels(4, 3, 100))
