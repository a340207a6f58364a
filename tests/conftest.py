"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import cv2
import numpy as np
import pytest

# Add repo root to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))


def write_test_pattern(path, size=256):
    """Write a grayscale PNG of blurred rectangles; the soft corners give every detector keypoints."""
    image = np.zeros((size, size), dtype=np.uint8)
    s = size // 8
    cv2.rectangle(image, (s, s), (3 * s, 3 * s), 255, thickness=-1)
    cv2.rectangle(image, (5 * s, s), (7 * s, 3 * s), 180, thickness=-1)
    cv2.rectangle(image, (2 * s, 5 * s), (6 * s, 7 * s), 255, thickness=-1)
    image = cv2.GaussianBlur(image, (5, 5), 0)
    assert cv2.imwrite(str(path), image)
    return path


@pytest.fixture
def image_dir(tmp_path):
    """A dataset directory with three valid PNGs."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    for i in range(3):
        write_test_pattern(data_dir / f"{i:04d}.png")
    return data_dir


@pytest.fixture
def corrupt_dir(tmp_path):
    """A dataset directory whose PNGs cannot be decoded."""
    data_dir = tmp_path / "corrupt"
    data_dir.mkdir()
    for i in range(2):
        (data_dir / f"{i:04d}.png").write_bytes(b"not an image")
    return data_dir


class CountingDetector:
    """Fake detector returning a fixed number of keypoints per call."""

    def __init__(self, num_keypoints=5):
        self.num_keypoints = num_keypoints
        self.calls = 0

    def detect(self, image):
        self.calls += 1
        return [object()] * self.num_keypoints


@pytest.fixture
def counting_detector():
    return CountingDetector()
