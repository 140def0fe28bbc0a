"""Import dithering engines and their collaborators into the package namespace.

:author: Shay Hill
:created: 2026-09-21
"""

from ditherer.colors import BLACK, TRANSPARENT, WHITE, Color32
from ditherer.driver import DitheringCancelledError, dither_array, dither_image
from ditherer.error_diffusion import (
    CoefficientMatrix,
    ErrorDiffusionDitherer,
    atkinson,
    burkes,
    floyd_steinberg,
    jarvis_judice_ninke,
    sierra2,
    sierra3,
    sierra_lite,
    stevenson_arce,
    stucki,
)
from ditherer.ordered import (
    OrderedDitherer,
    OrderedMatrix,
    bayer2x2,
    bayer3x3,
    bayer4x4,
    bayer8x8,
    blue_noise64,
    dotted_halftone,
)
from ditherer.pixels import ArrayPixelSource, PixelSource
from ditherer.quantizing import (
    BlackAndWhiteQuantizer,
    PaletteQuantizer,
    QuantizingSession,
    WorkingColorSpace,
)
from ditherer.random_noise import RandomNoiseDitherer
from ditherer.session import (
    Ditherer,
    DithererContractError,
    DitheringSession,
    initialize_session,
)
from ditherer.strength import AutoStrengthMode, StrengthState

__all__ = [
    "BLACK",
    "TRANSPARENT",
    "WHITE",
    "ArrayPixelSource",
    "AutoStrengthMode",
    "BlackAndWhiteQuantizer",
    "CoefficientMatrix",
    "Color32",
    "Ditherer",
    "DithererContractError",
    "DitheringCancelledError",
    "DitheringSession",
    "ErrorDiffusionDitherer",
    "OrderedDitherer",
    "OrderedMatrix",
    "PaletteQuantizer",
    "PixelSource",
    "QuantizingSession",
    "RandomNoiseDitherer",
    "StrengthState",
    "WorkingColorSpace",
    "atkinson",
    "bayer2x2",
    "bayer3x3",
    "bayer4x4",
    "bayer8x8",
    "blue_noise64",
    "burkes",
    "dither_array",
    "dither_image",
    "dotted_halftone",
    "floyd_steinberg",
    "initialize_session",
    "jarvis_judice_ninke",
    "sierra2",
    "sierra3",
    "sierra_lite",
    "stevenson_arce",
    "stucki",
]
