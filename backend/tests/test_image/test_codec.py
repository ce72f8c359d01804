"""Tests for image.codec — OpenCV decode/encode and output path rules."""

import os

import cv2
import numpy as np
import pytest

from errors import DecodeError, EncodeError, UnsupportedFormatError
from image.codec import (
    decode,
    default_output_path,
    encode,
    preferred_suffix,
    resolve_output_path,
)


class TestDecode:
    def test_decode_color_png(self, png_path, bgr_image):
        img = decode(str(png_path))
        assert img.dtype == np.uint8
        np.testing.assert_array_equal(img, bgr_image)

    def test_decode_alpha_in_four_channel_mode(self, png_alpha_path, bgra_image):
        img = decode(str(png_alpha_path), channels=4)
        np.testing.assert_array_equal(img, bgra_image)

    def test_decode_alpha_in_three_channel_mode_drops_alpha(self, png_alpha_path):
        assert decode(str(png_alpha_path), channels=3).shape[2] == 3

    def test_decode_grayscale_promoted_in_four_channel_mode(self, tmp_path):
        gray = np.full((6, 9), 77, dtype=np.uint8)
        path = tmp_path / "gray.png"
        cv2.imwrite(str(path), gray)
        img = decode(str(path), channels=4)
        assert img.shape == (6, 9, 3)
        np.testing.assert_array_equal(img, 77)

    def test_decode_missing_file_raises(self, tmp_path):
        with pytest.raises(DecodeError, match="cannot be loaded"):
            decode(str(tmp_path / "nope.png"))

    def test_decode_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "broken.jpg"
        path.write_bytes(b"not really a jpeg")
        with pytest.raises(DecodeError):
            decode(str(path))

    def test_decode_16bit_unchanged_raises(self, tmp_path):
        deep = np.full((4, 4, 3), 4000, dtype=np.uint16)
        path = tmp_path / "deep.png"
        cv2.imwrite(str(path), deep)
        with pytest.raises(UnsupportedFormatError):
            decode(str(path), channels=4)

    def test_decode_bad_channel_argument(self, png_path):
        with pytest.raises(ValueError):
            decode(str(png_path), channels=2)


class TestEncode:
    def test_encode_png_is_lossless(self, tmp_path, bgra_image):
        path = str(tmp_path / "out.png")
        encode(path, bgra_image)
        np.testing.assert_array_equal(cv2.imread(path, cv2.IMREAD_UNCHANGED), bgra_image)

    def test_encode_jpeg_writes_file(self, tmp_path, bgr_image):
        path = tmp_path / "out.jpg"
        encode(str(path), bgr_image)
        assert path.stat().st_size > 0

    def test_encode_missing_directory_raises(self, tmp_path, bgr_image):
        with pytest.raises(EncodeError):
            encode(str(tmp_path / "no" / "such" / "dir.png"), bgr_image)

    def test_encode_unknown_extension_raises(self, tmp_path, bgr_image):
        with pytest.raises(EncodeError):
            encode(str(tmp_path / "out.notanimage"), bgr_image)


class TestOutputPaths:
    def test_preferred_suffix(self):
        assert preferred_suffix(4) == ".png"
        assert preferred_suffix(3) == ".jpg"

    def test_bare_path_gets_suffix(self):
        assert resolve_output_path("result", 3) == "result.jpg"
        assert resolve_output_path("result", 4) == "result.png"

    def test_alpha_to_jpeg_redirected(self):
        assert resolve_output_path(os.path.join("d", "r.jpeg"), 4) == os.path.join(
            "d", "r.png"
        )

    def test_explicit_suffix_kept(self):
        assert resolve_output_path("r.png", 3) == "r.png"
        assert resolve_output_path("r.jpg", 3) == "r.jpg"
        assert resolve_output_path("r.tiff", 4) == "r.tiff"

    def test_default_output_path(self):
        assert default_output_path(os.path.join("pics", "cat.jpeg"), 3) == os.path.join(
            "pics", "cat-1.jpg"
        )
        assert default_output_path(os.path.join("pics", "cat.png"), 4) == os.path.join(
            "pics", "cat-1.png"
        )

