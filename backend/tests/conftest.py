import cv2
import numpy as np
import pytest


def random_image(h=40, w=60, channels=3, seed=42):
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, (h, w, channels), dtype=np.uint8)


@pytest.fixture
def bgr_image():
    """Random 3-channel uint8 image (BGR)."""
    return random_image(channels=3)


@pytest.fixture
def bgra_image():
    """Random 4-channel uint8 image (BGRA)."""
    return random_image(channels=4, seed=7)


@pytest.fixture
def png_path(tmp_path, bgr_image):
    """Lossless 3-channel image on disk."""
    path = tmp_path / "photo.png"
    assert cv2.imwrite(str(path), bgr_image)
    return path


@pytest.fixture
def png_alpha_path(tmp_path, bgra_image):
    """Lossless 4-channel image on disk."""
    path = tmp_path / "overlay.png"
    assert cv2.imwrite(str(path), bgra_image)
    return path
