"""Still-image decode/encode via OpenCV."""

import logging
from pathlib import Path

import cv2
import numpy as np

from errors import DecodeError, EncodeError, UnsupportedFormatError
from security import LOSSY_OUTPUT_EXTENSIONS, platform_path

logger = logging.getLogger(__name__)

JPEG_QUALITY = 95
LOSSLESS_SUFFIX = ".png"
LOSSY_SUFFIX = ".jpg"
DEFAULT_OUTPUT_TAG = "-1"

_READ_FLAGS = {
    3: cv2.IMREAD_COLOR,
    4: cv2.IMREAD_UNCHANGED,
}


def _read(path: str, flag: int) -> np.ndarray | None:
    try:
        return cv2.imread(platform_path(path), flag)
    except cv2.error as e:
        logger.debug("cv2.imread raised for %s: %s", path, e)
        return None


def decode(path: str, channels: int = 3) -> np.ndarray:
    """Decode an image file into a BGR (3) or BGR/BGRA (4) uint8 array.

    ``channels=4`` keeps whatever the file carries (alpha included); a
    grayscale file is promoted to BGR so the effect can run on it.

    Raises:
        DecodeError: file missing, corrupt or unreadable.
        UnsupportedFormatError: decoded pixels are not 8-bit.
    """
    if channels not in _READ_FLAGS:
        raise ValueError(f"channels must be 3 or 4, got {channels}")

    img = _read(path, _READ_FLAGS[channels])
    if img is None or img.size == 0:
        raise DecodeError(f"Image cannot be loaded: {path}")

    if img.dtype != np.uint8:
        raise UnsupportedFormatError(
            f"Unsupported pixel depth {img.dtype} in {path}, expected 8-bit"
        )

    if img.ndim == 2:
        img = cv2.cvtColor(img, cv2.COLOR_GRAY2BGR)

    logger.info(
        "Decoded %s: %dx%d, %d channels", path, img.shape[1], img.shape[0], img.shape[2]
    )
    return img


def encode(path: str, image: np.ndarray) -> None:
    """Write ``image`` to ``path``. The suffix picks the container format.

    Raises:
        EncodeError: OpenCV refused the path or failed to write.
    """
    params: list[int] = []
    if Path(path).suffix.lower() in LOSSY_OUTPUT_EXTENSIONS:
        params = [cv2.IMWRITE_JPEG_QUALITY, JPEG_QUALITY]

    try:
        ok = cv2.imwrite(platform_path(path), image, params)
    except cv2.error as e:
        logger.exception("cv2.imwrite failed for %s", path)
        raise EncodeError(f"Can't save changed image to {path}: {e}") from e

    if not ok:
        raise EncodeError(f"Can't save changed image to {path}")
    logger.info("Encoded %s", path)


def preferred_suffix(channels: int) -> str:
    """Lossless for images with alpha, lossy otherwise."""
    return LOSSLESS_SUFFIX if channels == 4 else LOSSY_SUFFIX


def resolve_output_path(path: str, channels: int) -> str:
    """Fit an output path to the image's channel count.

    A bare path gets the preferred suffix. An alpha image aimed at a lossy
    format is redirected to PNG, since JPEG would drop the alpha channel.
    """
    p = Path(path)
    suffix = p.suffix.lower()
    if not suffix:
        return str(p.with_suffix(preferred_suffix(channels)))
    if channels == 4 and suffix in LOSSY_OUTPUT_EXTENSIONS:
        redirected = str(p.with_suffix(LOSSLESS_SUFFIX))
        logger.warning(
            "Output %s cannot hold alpha, writing %s instead", path, redirected
        )
        return redirected
    return path


def default_output_path(input_path: str, channels: int) -> str:
    """``photo.png`` -> ``photo-1.png`` / ``photo-1.jpg`` beside the input."""
    p = Path(input_path)
    return str(p.with_name(f"{p.stem}{DEFAULT_OUTPUT_TAG}{preferred_suffix(channels)}"))
