"""United Colors — asymmetric channel push blended in by a 0-100 % slider."""

import numpy as np

from errors import UnsupportedFormatError

EFFECT_NAME = "United Colors"

INTENSITY_MAX = 100
SUPPORTED_CHANNELS = (3, 4)
OVERFLOW_MODES = ("wrap", "saturate")

PARAMS: dict = {
    "intensity": {
        "type": "int",
        "min": 0,
        "max": INTENSITY_MAX,
        "default": 0,
        "label": "Effect",
        "curve": "linear",
        "unit": "%",
        "description": "Effect strength (0=original, 100=full push)",
    },
}


def clamp_intensity(percent) -> int:
    """Clamp an arbitrary slider value into [0, INTENSITY_MAX]."""
    return max(0, min(INTENSITY_MAX, int(percent)))


def build_delta(original: np.ndarray) -> np.ndarray:
    """Compute the signed per-channel delta matrix for ``original``.

    Channels are taken in storage order (B, G, R[, A] for OpenCV images):

        d0 = -c0
        d1 = c2 - c1
        d2 = 255 - c2
        d3 = 0

    Returns a read-only int16 array with the same shape as ``original``.

    Raises:
        UnsupportedFormatError: if the image is not 8-bit with 3 or 4 channels.
    """
    if original.ndim != 3 or original.shape[2] not in SUPPORTED_CHANNELS:
        channels = original.shape[2] if original.ndim == 3 else 1
        raise UnsupportedFormatError(
            f"Unsupported channel count {channels}, expected 3 or 4"
        )
    if original.dtype != np.uint8:
        raise UnsupportedFormatError(
            f"Unsupported pixel depth {original.dtype}, expected uint8"
        )

    src = original.astype(np.int16)
    delta = np.zeros(original.shape, dtype=np.int16)
    delta[:, :, 0] = -src[:, :, 0]
    delta[:, :, 1] = src[:, :, 2] - src[:, :, 1]
    delta[:, :, 2] = 255 - src[:, :, 2]
    # alpha (if any) stays 0

    delta.flags.writeable = False
    return delta


def blend(
    original: np.ndarray,
    delta: np.ndarray,
    percent: int,
    overflow: str = "wrap",
) -> np.ndarray:
    """Return ``original + percent/100 * delta`` narrowed to uint8.

    The sum is computed in float64 and truncated toward zero. ``overflow``
    decides what happens outside [0, 255]: "wrap" keeps the low 8 bits
    (an integer narrowing cast), "saturate" clamps.
    """
    if delta.shape != original.shape:
        raise ValueError(
            f"Delta shape {delta.shape} does not match image shape {original.shape}"
        )
    if overflow not in OVERFLOW_MODES:
        raise ValueError(f"Unknown overflow mode: {overflow!r}")

    multiplier = clamp_intensity(percent) / INTENSITY_MAX
    summed = np.trunc(original.astype(np.float64) + multiplier * delta)

    if overflow == "saturate":
        return np.clip(summed, 0, 255).astype(np.uint8)
    return np.mod(summed.astype(np.int64), 256).astype(np.uint8)
