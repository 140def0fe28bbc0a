"""The contract between a ditherer, its sessions, and whoever drives them.

A `Ditherer` is immutable configuration. Binding it to one image and one quantizer
creates a `DitheringSession`, which is asked once per pixel for the final color.

A session that reports `is_sequential` must be driven by one thread, row by row,
left to right, top to bottom. Any other session may be driven in any order from any
number of threads.

:author: Shay Hill
:created: 2026-09-16
"""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Protocol

from ditherer.colors import Color32
from ditherer.pixels import PixelSource
from ditherer.quantizing import QuantizingSession


class DithererContractError(Exception):
    """A collaborator did not provide what a dithering operation needs.

    Raised at initialization, never per pixel.
    """


class DitheringSession(Protocol):
    """Produce final colors for one dithering operation."""

    @property
    def is_sequential(self) -> bool:
        """Return True if pixels must be requested in strict raster order."""
        ...

    def get_dithered_color(self, color: Color32, x: int, y: int) -> Color32:
        """Return the final color for the pixel at (x, y)."""
        ...

    def close(self) -> None:
        """Release buffers held by the session."""
        ...


class Ditherer(Protocol):
    """Immutable dithering configuration."""

    @property
    def initialize_relies_on_content(self) -> bool:
        """Return True if sessions read source pixels on their own."""
        ...

    def initialize(
        self, source: PixelSource, quantizing_session: QuantizingSession
    ) -> DitheringSession:
        """Bind the configuration to one image and one quantizer."""
        ...


class SessionBase:
    """Close and context-manager plumbing shared by every session."""

    def __enter__(self) -> SessionBase:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Release buffers. Nothing to release by default."""


def require_quantizing_session(
    quantizing_session: QuantizingSession | None,
) -> QuantizingSession:
    """Return the quantizing session or raise if there is none."""
    if quantizing_session is None:
        msg = "a quantizing session is required to initialize a dithering session"
        raise DithererContractError(msg)
    return quantizing_session


def initialize_session(
    ditherer: Ditherer,
    source: PixelSource,
    quantizing_session: QuantizingSession | None,
) -> DitheringSession:
    """Initialize a dithering session and check that the ditherer provided one.

    :param ditherer: any ditherer configuration
    :param source: the image to be dithered
    :param quantizing_session: the quantizer the session will defer to
    :return: a new dithering session
    :raise DithererContractError: if there is no quantizing session or the ditherer
        returned no session
    """
    quantizing_session = require_quantizing_session(quantizing_session)
    session = ditherer.initialize(source, quantizing_session)
    if session is None:
        msg = f"{type(ditherer).__name__}.initialize returned no session"
        raise DithererContractError(msg)
    logging.debug(
        f"initialized {type(session).__name__} for {source.width}x{source.height}"
        + f" (sequential={session.is_sequential})"
    )
    return session
