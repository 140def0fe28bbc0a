"""Test strength validation and calibration.

:author: Shay Hill
:created: 2026-09-23
"""

import pytest

from ditherer.colors import BLACK, WHITE, Color32
from ditherer.defaults import (
    MAX_HALVINGS,
    MAX_OFFSET,
    MAX_OFFSET_LINEAR,
    MIN_OFFSET,
    MIN_OFFSET_LINEAR,
)
from ditherer.quantizing import (
    BlackAndWhiteQuantizer,
    PaletteQuantizer,
    QuantizingSession,
    WorkingColorSpace,
)
from ditherer.strength import (
    GAMMA_OFFSETS,
    LINEAR_OFFSETS,
    AutoStrengthMode,
    StrengthState,
    VariableStrengthSession,
    _find_safe_strength,
    calibrate_reference,
    calibrate_strength,
    get_offset_arithmetic,
    resolve_strength,
    validate_auto_strength_mode,
    validate_strength,
)

# black calibrates at 0.1875, white at 0.75
_UNEVEN_GRAYS = [(0, 0, 0), (50, 50, 50), (255, 255, 255)]


class _FixedOffsets:
    """Offset source returning one value everywhere."""

    is_sequential = False

    def __init__(self, offset: float) -> None:
        self.min_offset = -abs(offset)
        self.max_offset = abs(offset)
        self._offset = offset

    def get_offset(self, x: int, y: int) -> float:
        del x, y
        return self._offset


class TestValidation:
    @pytest.mark.parametrize("strength", [0, 0.5, 1])
    def test_valid_strength(self, strength: float) -> None:
        """Return strength in [0, 1]."""
        assert validate_strength(strength) == strength

    @pytest.mark.parametrize("strength", [-0.01, 1.01, float("nan")])
    def test_invalid_strength(self, strength: float) -> None:
        """Raise ValueError for NaN or a strength outside [0, 1]."""
        with pytest.raises(ValueError):
            _ = validate_strength(strength)

    def test_mode_from_string(self) -> None:
        """Accept mode names."""
        assert validate_auto_strength_mode("constant") == AutoStrengthMode.CONSTANT

    def test_unknown_mode(self) -> None:
        """Raise ValueError for an unknown mode."""
        with pytest.raises(ValueError):
            _ = validate_auto_strength_mode("loud")  # type: ignore


class TestStrengthState:
    def test_constant(self) -> None:
        """Equal black and white strengths are not interpolated."""
        state = StrengthState.constant(0.5)
        assert not state.is_interpolated
        assert state.factor(0.9) == 0.5

    def test_interpolated(self) -> None:
        """Interpolate between black and white by brightness."""
        state = StrengthState(0.2, 0.6)
        assert state.is_interpolated
        expect = pytest.approx(0.4)  # pyright: ignore[reportUnknownMemberType]
        assert state.factor(0.5) == expect


class TestFindSafeStrength:
    def test_full_strength(self) -> None:
        """Return 1 without searching if 1 is safe."""
        tried: list[float] = []

        def preserves(strength: float) -> bool:
            tried.append(strength)
            return True

        assert _find_safe_strength(preserves) == 1
        assert tried == [1.0]

    def test_never_safe(self) -> None:
        """Stop halving after a bounded number of tries."""
        assert _find_safe_strength(lambda _: False) == 0.5**MAX_HALVINGS

    def test_threshold(self) -> None:
        """Land at or below a safe threshold."""
        strength = _find_safe_strength(lambda s: s <= 0.3)
        assert 0.25 <= strength <= 0.3


class TestCalibrateReference:
    def test_four_grays(self) -> None:
        """Find the first safe strength by halving, then bisecting."""
        quantizer = PaletteQuantizer.grayscale(4)
        black = calibrate_reference(quantizer, GAMMA_OFFSETS, BLACK, MAX_OFFSET)
        white = calibrate_reference(quantizer, GAMMA_OFFSETS, WHITE, MIN_OFFSET)
        assert black == 0.3125
        assert white == 0.3125

    def test_black_and_white(self, bw_quantizer: BlackAndWhiteQuantizer) -> None:
        """A 128 threshold tolerates full-strength offsets."""
        assert calibrate_reference(bw_quantizer, GAMMA_OFFSETS, BLACK, MAX_OFFSET) == 1
        assert calibrate_reference(bw_quantizer, GAMMA_OFFSETS, WHITE, MIN_OFFSET) == 1

    @pytest.mark.parametrize(
        "quantizer",
        [
            BlackAndWhiteQuantizer(),
            BlackAndWhiteQuantizer(white_threshold=40),
            PaletteQuantizer.grayscale(4),
            PaletteQuantizer.grayscale(16),
            PaletteQuantizer(_UNEVEN_GRAYS),
        ],
    )
    def test_boundary_preserves_references(self, quantizer: QuantizingSession) -> None:
        """At the calibrated strength, black and white quantize as they are."""
        for reference, offset in ((BLACK, MAX_OFFSET), (WHITE, MIN_OFFSET)):
            strength = calibrate_reference(quantizer, GAMMA_OFFSETS, reference, offset)
            scaled = GAMMA_OFFSETS.scale(offset, strength)
            adjusted = GAMMA_OFFSETS.apply(reference, scaled)
            assert quantizer.quantize(adjusted) == quantizer.quantize(reference)

    def test_linear_boundary(self) -> None:
        """Calibration holds in linear light."""
        quantizer = PaletteQuantizer(
            _UNEVEN_GRAYS, working_color_space=WorkingColorSpace.LINEAR
        )
        references = ((BLACK, MAX_OFFSET_LINEAR), (WHITE, MIN_OFFSET_LINEAR))
        for reference, offset in references:
            strength = calibrate_reference(quantizer, LINEAR_OFFSETS, reference, offset)
            scaled = LINEAR_OFFSETS.scale(offset, strength)
            adjusted = LINEAR_OFFSETS.apply(reference, scaled)
            assert quantizer.quantize(adjusted) == quantizer.quantize(reference)


class TestCalibrateStrength:
    def test_interpolated(self) -> None:
        """Keep both strengths when they differ."""
        quantizer = PaletteQuantizer(_UNEVEN_GRAYS)
        state = calibrate_strength(
            quantizer, GAMMA_OFFSETS, MIN_OFFSET, MAX_OFFSET, interpolated=True
        )
        assert state == StrengthState(0.1875, 0.75)

    def test_constant(self) -> None:
        """Use the smaller strength everywhere."""
        quantizer = PaletteQuantizer(_UNEVEN_GRAYS)
        state = calibrate_strength(
            quantizer, GAMMA_OFFSETS, MIN_OFFSET, MAX_OFFSET, interpolated=False
        )
        assert state == StrengthState.constant(0.1875)


class TestResolveStrength:
    def test_fixed(self) -> None:
        """A non-zero strength is used as is."""
        quantizer = PaletteQuantizer(_UNEVEN_GRAYS)
        state = resolve_strength(
            quantizer,
            GAMMA_OFFSETS,
            MIN_OFFSET,
            MAX_OFFSET,
            0.4,
            AutoStrengthMode.INTERPOLATED,
        )
        assert state == StrengthState.constant(0.4)

    def test_default_gamma_is_constant(self) -> None:
        """The default mode is constant in the gamma space."""
        quantizer = PaletteQuantizer(_UNEVEN_GRAYS)
        state = resolve_strength(
            quantizer,
            GAMMA_OFFSETS,
            MIN_OFFSET,
            MAX_OFFSET,
            0,
            AutoStrengthMode.DEFAULT,
        )
        assert not state.is_interpolated

    def test_default_linear_is_interpolated(self) -> None:
        """The default mode interpolates in linear light."""
        quantizer = PaletteQuantizer(
            _UNEVEN_GRAYS, working_color_space=WorkingColorSpace.LINEAR
        )
        arithmetic = get_offset_arithmetic(quantizer)
        assert arithmetic is LINEAR_OFFSETS
        state = resolve_strength(
            quantizer,
            arithmetic,
            MIN_OFFSET_LINEAR,
            MAX_OFFSET_LINEAR,
            0,
            AutoStrengthMode.DEFAULT,
        )
        assert state.is_interpolated
        assert state.black < state.white


class TestVariableStrengthSession:
    def test_scaled_offset(self, bw_quantizer: BlackAndWhiteQuantizer) -> None:
        """Scale the offset by the strength before adding it."""
        offsets = _FixedOffsets(100)
        strong = VariableStrengthSession(
            bw_quantizer, offsets, GAMMA_OFFSETS, StrengthState.constant(1)
        )
        weak = VariableStrengthSession(
            bw_quantizer, offsets, GAMMA_OFFSETS, StrengthState.constant(0.2)
        )
        gray = Color32(50, 50, 50)
        assert strong.get_dithered_color(gray, 0, 0) == WHITE
        assert weak.get_dithered_color(gray, 0, 0) == BLACK

    def test_interpolated_by_brightness(
        self, bw_quantizer: BlackAndWhiteQuantizer
    ) -> None:
        """Dark pixels get the black strength, light pixels the white strength."""
        session = VariableStrengthSession(
            bw_quantizer, _FixedOffsets(100), GAMMA_OFFSETS, StrengthState(0.0, 1.0)
        )
        assert session.get_dithered_color(Color32(40, 40, 40), 0, 0) == BLACK
        assert session.get_dithered_color(Color32(100, 100, 100), 0, 0) == WHITE

    def test_transparent(self, bw_quantizer: BlackAndWhiteQuantizer) -> None:
        """Transparent pixels skip offset and quantization."""
        session = VariableStrengthSession(
            bw_quantizer, _FixedOffsets(100), GAMMA_OFFSETS, StrengthState.constant(1)
        )
        assert session.get_dithered_color(Color32(0, 0, 0, 0), 0, 0).a == 0

    def test_blends_partial_alpha(self, bw_quantizer: BlackAndWhiteQuantizer) -> None:
        """Partially transparent pixels are blended, then dithered."""
        session = VariableStrengthSession(
            bw_quantizer, _FixedOffsets(0), GAMMA_OFFSETS, StrengthState.constant(1)
        )
        color = Color32(255, 255, 255, 200)
        assert session.get_dithered_color(color, 0, 0) == WHITE
