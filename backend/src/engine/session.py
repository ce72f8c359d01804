"""Effect session — one loaded image, its delta matrix, and the live output."""

import logging
from enum import Enum
from typing import Callable

import numpy as np
import sentry_sdk

from effects.united_colors import (
    OVERFLOW_MODES,
    blend,
    build_delta,
    clamp_intensity,
)
from image import codec

logger = logging.getLogger(__name__)

OutputListener = Callable[[np.ndarray], None]


class SessionState(Enum):
    LOADED = "loaded"
    READY = "ready"
    SAVED = "saved"


class EffectSession:
    """Owns the original image, its delta matrix and the current output.

    Lifecycle: LOADED -> prepare() -> READY -> set_intensity()* -> save() -> SAVED.
    The output is always a pure function of (original, delta, intensity).
    """

    def __init__(
        self,
        original: np.ndarray,
        overflow: str = "wrap",
        on_output: OutputListener | None = None,
    ):
        if overflow not in OVERFLOW_MODES:
            raise ValueError(f"Unknown overflow mode: {overflow!r}")
        self.original = original.copy()
        self.original.flags.writeable = False
        self.overflow = overflow
        self.on_output = on_output
        self.state = SessionState.LOADED
        self.intensity = 0
        self.delta: np.ndarray | None = None
        self.output: np.ndarray | None = None
        self.saved_path: str | None = None
        self.source: str | None = None

    @classmethod
    def open(
        cls,
        path: str,
        channels: int = 3,
        overflow: str = "wrap",
        on_output: OutputListener | None = None,
    ) -> "EffectSession":
        """Decode ``path`` and return a READY session."""
        session = cls(codec.decode(path, channels), overflow=overflow, on_output=on_output)
        session.source = path
        session.prepare()
        return session

    @property
    def channels(self) -> int:
        return self.original.shape[2]

    def prepare(self) -> None:
        """Build the delta matrix. Raises UnsupportedFormatError for bad layouts."""
        if self.state is not SessionState.LOADED:
            raise RuntimeError(f"Cannot prepare a session in state {self.state.value}")
        self.delta = build_delta(self.original)
        self.output = self.original.copy()
        self.state = SessionState.READY
        sentry_sdk.add_breadcrumb(
            category="session",
            message="delta matrix built",
            data={"shape": list(self.original.shape), "overflow": self.overflow},
            level="info",
        )
        logger.debug("Delta matrix built for shape %s", self.original.shape)

    def set_intensity(self, percent: int) -> np.ndarray:
        """Recompute the whole output at ``percent`` and return it."""
        if self.state is not SessionState.READY:
            raise RuntimeError(
                f"Cannot change intensity in state {self.state.value}"
            )
        self.intensity = clamp_intensity(percent)
        self.output = blend(self.original, self.delta, self.intensity, self.overflow)
        if self.on_output is not None:
            self.on_output(self.output)
        return self.output

    def on_intensity_changed(self, percent: int) -> None:
        """Slider hook: recompute and hand the result to the listener."""
        self.set_intensity(percent)

    def save(self, path: str) -> str:
        """Write the current output once. Returns the path actually written."""
        if self.state is SessionState.SAVED:
            raise RuntimeError(f"Session already saved to {self.saved_path}")
        if self.state is not SessionState.READY:
            raise RuntimeError(f"Cannot save a session in state {self.state.value}")

        target = codec.resolve_output_path(path, self.channels)
        codec.encode(target, self.output)
        self.saved_path = target
        self.state = SessionState.SAVED
        sentry_sdk.add_breadcrumb(
            category="session",
            message="output saved",
            data={"intensity": self.intensity},
            level="info",
        )
        logger.info("Saved %s at intensity %d%%", target, self.intensity)
        return target
