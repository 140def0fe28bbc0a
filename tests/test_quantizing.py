"""Test the reference quantizers.

:author: Shay Hill
:created: 2026-09-22
"""

import numpy as np
import pytest

from ditherer.colors import BLACK, TRANSPARENT, WHITE, Color32
from ditherer.quantizing import (
    BlackAndWhiteQuantizer,
    PaletteQuantizer,
    WorkingColorSpace,
)


class TestBlackAndWhiteQuantizer:
    def test_threshold(self, bw_quantizer: BlackAndWhiteQuantizer) -> None:
        """Brightness at or above the threshold is white."""
        assert bw_quantizer.quantize(Color32(127, 127, 127)) == BLACK
        assert bw_quantizer.quantize(Color32(128, 128, 128)) == WHITE

    def test_is_grayscale(self, bw_quantizer: BlackAndWhiteQuantizer) -> None:
        """Black and white are gray."""
        assert bw_quantizer.is_grayscale

    def test_working_color_space(self) -> None:
        """Accept the enum value as a string."""
        quantizer = BlackAndWhiteQuantizer(working_color_space="linear")  # type: ignore
        assert quantizer.working_color_space == WorkingColorSpace.LINEAR
        assert quantizer.is_linear

    @pytest.mark.parametrize("threshold", [-1, 256])
    def test_bad_threshold(self, threshold: int) -> None:
        """Raise ValueError for a threshold outside [0, 255]."""
        with pytest.raises(ValueError):
            _ = BlackAndWhiteQuantizer(white_threshold=threshold)


class TestBlendOrMakeTransparent:
    def test_below_threshold(self, bw_quantizer: BlackAndWhiteQuantizer) -> None:
        """Alpha below the threshold becomes fully transparent."""
        color = Color32(200, 200, 200, 127)
        assert bw_quantizer.blend_or_make_transparent(color) == TRANSPARENT

    def test_at_threshold(self, bw_quantizer: BlackAndWhiteQuantizer) -> None:
        """Alpha at the threshold is blended over the back color."""
        color = Color32(255, 255, 255, 128)
        assert bw_quantizer.blend_or_make_transparent(color) == Color32(128, 128, 128)

    def test_back_color(self) -> None:
        """Blend over the configured back color."""
        quantizer = BlackAndWhiteQuantizer(back_color=WHITE)
        color = Color32(0, 0, 0, 128)
        assert quantizer.blend_or_make_transparent(color) == Color32(127, 127, 127)

    def test_zero_threshold(self) -> None:
        """With threshold 0, nothing is made transparent."""
        quantizer = BlackAndWhiteQuantizer(alpha_threshold=0)
        blended = quantizer.blend_or_make_transparent(Color32(255, 255, 255, 1))
        assert blended.is_opaque


class TestPaletteQuantizer:
    def test_nearest(self) -> None:
        """Pick the nearest palette color."""
        quantizer = PaletteQuantizer([(0, 0, 0), (255, 0, 0), (255, 255, 255)])
        assert quantizer.quantize(Color32(200, 30, 20)) == Color32(255, 0, 0)
        assert quantizer.quantize(Color32(220, 220, 230)) == WHITE

    def test_tie_goes_to_first(self) -> None:
        """Break ties in favor of the earlier palette entry."""
        quantizer = PaletteQuantizer([(0, 0, 0), (50, 50, 50)])
        assert quantizer.quantize(Color32(25, 25, 25)) == BLACK

    def test_grayscale_levels(self) -> None:
        """Spread shades evenly from black to white."""
        quantizer = PaletteQuantizer.grayscale(4)
        np.testing.assert_array_equal(quantizer.palette[:, 0], [0, 85, 170, 255])
        assert quantizer.is_grayscale

    def test_chromatic_is_not_grayscale(self) -> None:
        """A palette with any chromatic color is not grayscale."""
        assert not PaletteQuantizer([(0, 0, 0), (255, 0, 0)]).is_grayscale

    def test_delta_e(self) -> None:
        """Match perceptually with Delta E."""
        quantizer = PaletteQuantizer(
            [(0, 0, 0), (0, 0, 255), (255, 255, 255)], metric="delta_e"
        )
        assert quantizer.quantize(Color32(10, 10, 240)) == Color32(0, 0, 255)

    def test_linear_matching(self) -> None:
        """Match in linear light when the working color space is linear."""
        palette = [(0, 0, 0), (255, 255, 255)]
        gamma = PaletteQuantizer(palette)
        linear = PaletteQuantizer(palette, working_color_space=WorkingColorSpace.LINEAR)
        gray = Color32(150, 150, 150)
        assert gamma.quantize(gray) == WHITE
        assert linear.quantize(gray) == BLACK

    def test_empty_palette(self) -> None:
        """Raise ValueError for an empty palette."""
        with pytest.raises(ValueError):
            _ = PaletteQuantizer([])

    def test_unknown_metric(self) -> None:
        """Raise ValueError for an unknown metric."""
        with pytest.raises(ValueError):
            _ = PaletteQuantizer([(0, 0, 0)], metric="manhattan")  # type: ignore
