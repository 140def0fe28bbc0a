"""Random-noise dithering.

Like ordered dithering, but the offset for each pixel is drawn at random. Offsets
span the full -127..127 range (-127/255..127/255 in linear light), so even full
strength noise leaves correctly quantized pure black and white alone.

With a seed, every session draws from its own generator in pixel order. The output
is reproducible, and the session is sequential. Without a seed, each thread draws
from its own generator, and the session can be driven in parallel.

:author: Shay Hill
:created: 2026-09-20
"""

from __future__ import annotations

import logging
import threading

import numpy as np

from ditherer.defaults import (
    MAX_OFFSET,
    MAX_OFFSET_LINEAR,
    MIN_OFFSET,
    MIN_OFFSET_LINEAR,
)
from ditherer.pixels import PixelSource
from ditherer.quantizing import QuantizingSession
from ditherer.session import require_quantizing_session
from ditherer.strength import (
    LINEAR_OFFSETS,
    AutoStrengthMode,
    VariableStrengthSession,
    get_offset_arithmetic,
    resolve_strength,
    validate_auto_strength_mode,
    validate_strength,
)


class _ThreadLocalGenerator:
    """One unseeded numpy generator per thread."""

    def __init__(self) -> None:
        self._local = threading.local()

    def get(self) -> np.random.Generator:
        generator = getattr(self._local, "generator", None)
        if generator is None:
            generator = np.random.default_rng()
            self._local.generator = generator
        return generator


class _RandomOffsets:
    """Offset source drawing uniform random offsets."""

    def __init__(self, seed: int | None, *, linear: bool) -> None:
        self._linear = linear
        if seed is None:
            self.is_sequential = False
            thread_local = _ThreadLocalGenerator()
            self._get_generator = thread_local.get
        else:
            self.is_sequential = True
            generator = np.random.default_rng(seed)
            self._get_generator = lambda: generator
        if linear:
            self.min_offset: float = MIN_OFFSET_LINEAR
            self.max_offset: float = MAX_OFFSET_LINEAR
        else:
            self.min_offset = MIN_OFFSET
            self.max_offset = MAX_OFFSET

    def get_offset(self, x: int, y: int) -> float:
        """Draw an offset. Position is ignored.

        :return: an int in [-127, 127] (gamma) or a float in [-127/255, 127/255)
            (linear)
        """
        del x, y
        generator = self._get_generator()
        if self._linear:
            span = self.max_offset - self.min_offset
            return float(generator.random()) * span + self.min_offset
        return int(generator.integers(MIN_OFFSET, MAX_OFFSET, endpoint=True))


class RandomNoiseDitherer:
    """Configuration for random-noise dithering. Immutable."""

    def __init__(
        self,
        strength: float = 0.0,
        seed: int | None = None,
        auto_strength_mode: AutoStrengthMode = AutoStrengthMode.DEFAULT,
    ) -> None:
        """Create a random-noise ditherer.

        :param strength: fixed strength in (0, 1], or 0 to calibrate per session
        :param seed: seed for reproducible (and sequential) sessions, or None for
            parallel sessions with non-reproducible output
        :param auto_strength_mode: how to apply a calibrated strength
        """
        self._strength = validate_strength(strength)
        self._seed = seed
        self._auto_strength_mode = validate_auto_strength_mode(auto_strength_mode)

    @classmethod
    def with_auto_strength(
        cls, auto_strength_mode: AutoStrengthMode, seed: int | None = None
    ) -> RandomNoiseDitherer:
        """Create a ditherer that calibrates strength with the given mode."""
        return cls(0.0, seed, auto_strength_mode)

    @property
    def strength(self) -> float:
        """Return the fixed strength, or 0 if calibrated."""
        return self._strength

    @property
    def seed(self) -> int | None:
        return self._seed

    @property
    def auto_strength_mode(self) -> AutoStrengthMode:
        return self._auto_strength_mode

    @property
    def initialize_relies_on_content(self) -> bool:
        return False

    def initialize(
        self, source: PixelSource, quantizing_session: QuantizingSession
    ) -> VariableStrengthSession:
        """Create a session for one image and one quantizer."""
        del source
        quantizing_session = require_quantizing_session(quantizing_session)
        arithmetic = get_offset_arithmetic(quantizing_session)
        offsets = _RandomOffsets(self._seed, linear=arithmetic is LINEAR_OFFSETS)
        strength = resolve_strength(
            quantizing_session,
            arithmetic,
            offsets.min_offset,
            offsets.max_offset,
            self._strength,
            self._auto_strength_mode,
        )
        logging.debug(f"random noise dithering with {strength}, seed={self._seed}")
        return VariableStrengthSession(
            quantizing_session, offsets, arithmetic, strength
        )
