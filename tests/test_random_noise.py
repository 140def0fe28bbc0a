"""Test random-noise dithering.

:author: Shay Hill
:created: 2026-09-24
"""

import numpy as np
import pytest
from conftest import gray_pixels

from ditherer.colors import BLACK, WHITE, Color32
from ditherer.defaults import MAX_OFFSET_LINEAR, MIN_OFFSET_LINEAR
from ditherer.driver import dither_array
from ditherer.pixels import ArrayPixelSource
from ditherer.quantizing import (
    BlackAndWhiteQuantizer,
    PaletteQuantizer,
    WorkingColorSpace,
)
from ditherer.random_noise import RandomNoiseDitherer, _RandomOffsets
from ditherer.strength import AutoStrengthMode, StrengthState


class TestRandomOffsets:
    def test_gamma_range(self) -> None:
        """Draw ints in -127..127."""
        offsets = _RandomOffsets(3, linear=False)
        draws = [offsets.get_offset(0, 0) for _ in range(2000)]
        assert all(isinstance(d, int) for d in draws)
        assert min(draws) >= -127
        assert max(draws) <= 127
        assert (offsets.min_offset, offsets.max_offset) == (-127, 127)

    def test_linear_range(self) -> None:
        """Draw floats in [-127/255, 127/255)."""
        offsets = _RandomOffsets(3, linear=True)
        draws = [offsets.get_offset(0, 0) for _ in range(2000)]
        assert all(MIN_OFFSET_LINEAR <= d < MAX_OFFSET_LINEAR for d in draws)

    def test_seeded_is_sequential(self) -> None:
        """A seeded source must be read in order."""
        assert _RandomOffsets(0, linear=False).is_sequential
        assert not _RandomOffsets(None, linear=False).is_sequential


class TestRandomNoiseDitherer:
    def test_seeded_is_reproducible(self, bw_quantizer: BlackAndWhiteQuantizer) -> None:
        """The same seed gives the same image."""
        pixels = gray_pixels(32, 32, 128)
        first = dither_array(pixels, bw_quantizer, RandomNoiseDitherer(seed=42))
        again = dither_array(pixels, bw_quantizer, RandomNoiseDitherer(seed=42))
        other = dither_array(pixels, bw_quantizer, RandomNoiseDitherer(seed=43))
        np.testing.assert_array_equal(first, again)
        assert not np.array_equal(first, other)

    def test_session_sequential(
        self, gray_source: ArrayPixelSource, bw_quantizer: BlackAndWhiteQuantizer
    ) -> None:
        """Seeded sessions are sequential. Unseeded sessions are not."""
        seeded = RandomNoiseDitherer(seed=1).initialize(gray_source, bw_quantizer)
        unseeded = RandomNoiseDitherer().initialize(gray_source, bw_quantizer)
        assert seeded.is_sequential
        assert not unseeded.is_sequential

    def test_calibrates_full_strength(
        self, gray_source: ArrayPixelSource, bw_quantizer: BlackAndWhiteQuantizer
    ) -> None:
        """A 128 threshold tolerates every offset of -127..127."""
        session = RandomNoiseDitherer().initialize(gray_source, bw_quantizer)
        assert session.strength == StrengthState(1.0, 1.0)

    def test_unseeded_mid_gray(self, bw_quantizer: BlackAndWhiteQuantizer) -> None:
        """Gray 128 dithers to about half white, in parallel."""
        result = dither_array(
            gray_pixels(64, 64, 128), bw_quantizer, RandomNoiseDitherer(), max_workers=4
        )
        assert set(np.unique(result[..., 0]).tolist()) == {0, 255}
        white = float(np.mean(result[..., 0] == 255))
        assert abs(white - 0.5) < 0.05

    def test_black_and_white_survive(
        self, bw_quantizer: BlackAndWhiteQuantizer
    ) -> None:
        """Full-strength noise leaves black and white alone."""
        pixels = gray_pixels(16, 16, 0)
        pixels[8:, :, :3] = 255
        result = dither_array(pixels, bw_quantizer, RandomNoiseDitherer(1.0, seed=2))
        np.testing.assert_array_equal(result, pixels)

    def test_with_auto_strength(self) -> None:
        """Build a calibrating ditherer with a mode."""
        ditherer = RandomNoiseDitherer.with_auto_strength(
            AutoStrengthMode.CONSTANT, seed=5
        )
        assert ditherer.strength == 0
        assert ditherer.seed == 5
        assert ditherer.auto_strength_mode == AutoStrengthMode.CONSTANT

    @pytest.mark.parametrize("strength", [-1, 2, float("nan")])
    def test_invalid_strength(self, strength: float) -> None:
        """Raise ValueError for a strength outside [0, 1]."""
        with pytest.raises(ValueError):
            _ = RandomNoiseDitherer(strength)


class TestLinearRandomNoise:
    @pytest.fixture
    def linear_quantizer(self) -> PaletteQuantizer:
        return PaletteQuantizer.grayscale(
            4, working_color_space=WorkingColorSpace.LINEAR
        )

    def test_calibrated_interpolated(
        self, gray_source: ArrayPixelSource, linear_quantizer: PaletteQuantizer
    ) -> None:
        """In linear light the default auto-strength mode interpolates."""
        session = RandomNoiseDitherer(seed=3).initialize(gray_source, linear_quantizer)
        assert session.strength.is_interpolated
        assert 0 < session.strength.black < session.strength.white <= 1

    @pytest.mark.parametrize("color", [BLACK, WHITE])
    def test_preserves_black_and_white(
        self,
        gray_source: ArrayPixelSource,
        linear_quantizer: PaletteQuantizer,
        color: Color32,
    ) -> None:
        """Calibrated linear noise leaves pure black and white alone."""
        session = RandomNoiseDitherer(seed=3).initialize(gray_source, linear_quantizer)
        expect = linear_quantizer.quantize(color)
        for y in range(32):
            for x in range(32):
                assert session.get_dithered_color(color, x, y) == expect

    def test_seeded_is_reproducible(self, linear_quantizer: PaletteQuantizer) -> None:
        """The same seed gives the same linear output."""
        pixels = gray_pixels(16, 8, 128)
        first = dither_array(pixels, linear_quantizer, RandomNoiseDitherer(seed=9))
        again = dither_array(pixels, linear_quantizer, RandomNoiseDitherer(seed=9))
        np.testing.assert_array_equal(first, again)
        assert set(np.unique(first[..., 0]).tolist()) == {85, 170}
