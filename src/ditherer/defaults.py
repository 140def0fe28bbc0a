"""Default values and tunables for dithering.

:author: Shay Hill
:created: 2026-09-14
"""

# Luminance weights for the brightness of an RGB color. Used in both working color
# spaces: on 8-bit channels in the gamma space and on [0, 1] channels in linear light.
R_LUM = 0.299
G_LUM = 0.587
B_LUM = 0.114


# Pixels with alpha below this value are made fully transparent by the reference
# quantizers. Pixels at or above it are blended with the quantizer back color.
ALPHA_THRESHOLD = 128


# Offsets of ordered and random-noise dithering never exceed these bounds. An offset
# of +127 cannot push a pure black pixel to 128, and an offset of -127 cannot pull a
# pure white pixel to 127, so black and white survive a threshold quantizer at full
# strength.
MIN_OFFSET = -127
MAX_OFFSET = 127

# The same bounds in linear light. Ordered matrices are divided by 256 (not 255) for
# the linear variant, so they stay strictly inside these.
MIN_OFFSET_LINEAR = MIN_OFFSET / 255
MAX_OFFSET_LINEAR = MAX_OFFSET / 255
LINEAR_MATRIX_NORM = 256


# Strength calibration. Halving stops after MAX_HALVINGS tries (2**-24 is below any
# offset that could change an 8-bit channel). Bisection stops after MAX_BISECTIONS
# steps or when the search interval is narrower than STRENGTH_EPSILON, whichever
# comes first, and falls back to the last strength known to be safe.
MAX_HALVINGS = 24
MAX_BISECTIONS = 16
STRENGTH_EPSILON = 1 / 1024


# Linear-light residuals smaller than this on every channel are treated as zero and
# not propagated.
LINEAR_RESIDUAL_TOLERANCE = 1e-6
