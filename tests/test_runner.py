"""
Tests for warm-up and timed detector runs.
"""

import math

import pytest

from benchmark_detectors import (
    BenchmarkResult,
    FASTDetector,
    NoSamplesError,
    load_image_paths,
    run_test,
    warm_up,
)
from conftest import CountingDetector


class TestWarmUp:
    def test_calls_detector_once(self, image_dir, counting_detector):
        warm_up(counting_detector, load_image_paths(image_dir))
        assert counting_detector.calls == 1

    def test_no_images_is_noop(self, counting_detector):
        warm_up(counting_detector, [])
        assert counting_detector.calls == 0

    def test_undecodable_first_image_is_skipped(self, corrupt_dir, counting_detector):
        warm_up(counting_detector, load_image_paths(corrupt_dir))
        assert counting_detector.calls == 0


class TestRunTest:
    def test_averages_over_all_images(self, image_dir):
        detector = CountingDetector(num_keypoints=7)
        result = run_test("fake", detector, load_image_paths(image_dir))

        assert detector.calls == 3
        assert result.name == "fake"
        assert result.num_samples == 3
        assert result.num_skipped == 0
        assert result.avg_keypoints == 7.0
        assert result.avg_time_ms >= 0.0
        assert result.std_time_ms >= 0.0

    def test_skipped_images_excluded_from_denominator(self, image_dir):
        (image_dir / "9999.png").write_bytes(b"garbage")
        detector = CountingDetector(num_keypoints=4)
        result = run_test("fake", detector, load_image_paths(image_dir))

        assert detector.calls == 3
        assert result.num_samples == 3
        assert result.num_skipped == 1
        assert result.avg_keypoints == 4.0

    def test_all_images_undecodable_raises(self, corrupt_dir, counting_detector):
        with pytest.raises(NoSamplesError) as excinfo:
            run_test("fake", counting_detector, load_image_paths(corrupt_dir))
        assert excinfo.value.name == "fake"
        assert excinfo.value.num_skipped == 2
        assert counting_detector.calls == 0

    def test_empty_sequence_raises(self, counting_detector):
        with pytest.raises(NoSamplesError):
            run_test("fake", counting_detector, [])

    def test_real_fast_detector(self, image_dir):
        result = run_test("FAST", FASTDetector(), load_image_paths(image_dir))
        assert result.num_samples == 3
        assert result.avg_time_ms > 0.0
        assert result.avg_keypoints > 0.0


class TestBenchmarkResult:
    def test_fps_estimate(self):
        result = BenchmarkResult(name="x", avg_time_ms=4.0, avg_keypoints=1.0)
        assert result.fps_estimate == 250.0

    def test_fps_estimate_zero_time(self):
        result = BenchmarkResult(name="x", avg_time_ms=0.0, avg_keypoints=1.0)
        assert math.isinf(result.fps_estimate)
