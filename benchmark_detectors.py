"""
Feature Detector Benchmark: FAST, ORB, GFTT and SIFT
=====================================================
Measures runtime and keypoint yield of OpenCV feature detectors over a
sequence of grayscale images and writes a per-detector summary CSV.

Pipeline:
- Enumerate the first N images (sorted by path) of a dataset directory
- For each detector: one untimed warm-up call, then one timed detect() per image
- Aggregate average time per frame and average keypoint count
- Append one CSV row per detector as soon as it finishes

Output columns:
- Detector: detector name
- AvgTime_ms: mean detect() time in milliseconds
- FPS_Est: 1000 / AvgTime_ms
- AvgKeypoints: mean number of keypoints per image

Version: 1.0
"""

import logging
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, NamedTuple, Optional, Sequence

import cv2
import numpy as np
import pandas as pd

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)

# ============================================================================
# CONFIGURATION
# ============================================================================

DATASET_PATH = 'data/training/R_01_easy/asl_folder/aria/cam0/data'
OUTPUT_CSV = 'results/benchmark_results.csv'
MAX_IMAGES_TO_TEST = 100
IMAGE_EXTENSION = '.png'

CSV_COLUMNS = ['Detector', 'AvgTime_ms', 'FPS_Est', 'AvgKeypoints']
FLOAT_FORMAT = '%.6g'


@dataclass(frozen=True)
class BenchmarkConfig:
    """
    Run configuration handed to run_benchmark_suite().

    Attributes:
        dataset_path: Directory holding the sample images (not searched recursively)
        output_csv: Destination of the summary CSV (truncated on open)
        max_images: Upper bound on the number of images sampled
        image_extension: Exact, case-sensitive file suffix to accept
    """
    dataset_path: Path = Path(DATASET_PATH)
    output_csv: Path = Path(OUTPUT_CSV)
    max_images: int = MAX_IMAGES_TO_TEST
    image_extension: str = IMAGE_EXTENSION


# ============================================================================
# ERRORS
# ============================================================================

class BenchmarkError(Exception):
    """Base class for benchmark failures."""


class NoImagesFoundError(BenchmarkError):
    """The dataset directory yielded no usable image paths."""


class NoSamplesError(BenchmarkError):
    """A detector run finished without a single decoded image."""

    def __init__(self, name, num_skipped):
        super().__init__(
            f"{name}: no images could be decoded ({num_skipped} skipped), "
            f"averages are undefined"
        )
        self.name = name
        self.num_skipped = num_skipped


# ============================================================================
# IMAGE SOURCE
# ============================================================================

def load_image_paths(directory, max_images=MAX_IMAGES_TO_TEST, extension=IMAGE_EXTENSION):
    """
    List the images of a directory in a reproducible order.

    Only immediate entries whose suffix equals ``extension`` exactly are kept.
    Paths are sorted ascending by their string form and truncated to
    ``max_images`` so repeated runs sample the same subset.

    Args:
        directory: Dataset directory
        max_images: Maximum number of paths returned
        extension: File suffix to accept, including the dot

    Returns:
        paths: Sorted list of Path objects, possibly empty
    """
    directory = Path(directory)
    if not directory.exists():
        logging.error(f"Directory not found: {directory}")
        return []

    paths = [entry for entry in directory.iterdir() if entry.suffix == extension]
    paths.sort(key=str)
    return paths[:max_images]


def load_grayscale(path):
    """Decode an image as single-channel 8-bit, or return None if unreadable."""
    image = cv2.imread(str(path), cv2.IMREAD_GRAYSCALE)
    if image is None or image.size == 0:
        return None
    return image


# ============================================================================
# FEATURE DETECTORS
# ============================================================================

class OpenCVDetector:
    """Wraps an OpenCV Feature2D so detect() takes only the image."""

    def __init__(self, detector):
        self.detector = detector

    def detect(self, image):
        """Return the keypoints found in a grayscale image."""
        return self.detector.detect(image, None)


class FASTDetector(OpenCVDetector):
    """FAST (Features from Accelerated Segment Test) wrapper."""

    def __init__(self, threshold=30, nonmax_suppression=True):
        """
        Args:
            threshold: Intensity difference threshold for the segment test
            nonmax_suppression: Suppress adjacent corner responses
        """
        super().__init__(cv2.FastFeatureDetector_create(
            threshold=threshold,
            nonmaxSuppression=nonmax_suppression,
            type=cv2.FAST_FEATURE_DETECTOR_TYPE_9_16,
        ))


class ORBDetector(OpenCVDetector):
    """ORB (Oriented FAST and Rotated BRIEF) wrapper."""

    def __init__(self, nfeatures=500):
        super().__init__(cv2.ORB_create(nfeatures=nfeatures))


class GFTTDetector(OpenCVDetector):
    """Shi-Tomasi "Good Features To Track" wrapper."""

    def __init__(self, max_corners=500, quality_level=0.01, min_distance=10):
        super().__init__(cv2.GFTTDetector_create(
            maxCorners=max_corners,
            qualityLevel=quality_level,
            minDistance=min_distance,
        ))


class SIFTDetector(OpenCVDetector):
    """SIFT (Scale-Invariant Feature Transform) wrapper."""

    def __init__(self, nfeatures=500):
        try:
            detector = cv2.SIFT_create(nfeatures=nfeatures)
        except AttributeError:
            # Fallback for older OpenCV versions
            detector = cv2.xfeatures2d.SIFT_create(nfeatures=nfeatures)
        super().__init__(detector)


class DetectorSpec(NamedTuple):
    """A named detector; registry order is report row order."""
    name: str
    detector: object


def build_detector_registry() -> List[DetectorSpec]:
    """Detectors benchmarked by default, in report order."""
    return [
        DetectorSpec('FAST', FASTDetector(threshold=30, nonmax_suppression=True)),
        DetectorSpec('ORB', ORBDetector(nfeatures=500)),
        DetectorSpec('GFTT', GFTTDetector(max_corners=500, quality_level=0.01, min_distance=10)),
        DetectorSpec('SIFT', SIFTDetector(nfeatures=500)),
    ]


# ============================================================================
# BENCHMARK EXECUTION
# ============================================================================

@dataclass(frozen=True)
class BenchmarkResult:
    """Per-detector averages over the successfully decoded images."""
    name: str
    avg_time_ms: float
    avg_keypoints: float
    std_time_ms: float = 0.0
    num_samples: int = 0
    num_skipped: int = 0

    @property
    def fps_estimate(self) -> float:
        if self.avg_time_ms == 0:
            return float('inf')
        return 1000.0 / self.avg_time_ms


def warm_up(detector, images: Sequence[Path]) -> None:
    """
    Run the detector once on the first image and discard the output.

    Absorbs lazy initialization so it does not land in the first timed sample.
    """
    if not images:
        return
    image = load_grayscale(images[0])
    if image is None:
        logging.debug(f"Warm-up skipped, cannot decode {images[0]}")
        return
    detector.detect(image)


def run_test(name, detector, images: Sequence[Path]) -> BenchmarkResult:
    """
    Time one detect() call per image and average the results.

    Images that fail to decode are skipped and excluded from both averages.

    Args:
        name: Detector name used in logs and the result
        detector: Object exposing detect(grayscale_image) -> keypoints
        images: Ordered image paths

    Returns:
        result: BenchmarkResult with averages over the decoded images

    Raises:
        NoSamplesError: If no image could be decoded
    """
    logging.info(f"Testing {name}...")

    times_ms = []
    kp_counts = []
    num_skipped = 0

    for path in images:
        image = load_grayscale(path)
        if image is None:
            logging.debug(f"Skipping unreadable image: {path}")
            num_skipped += 1
            continue

        start = time.perf_counter()
        keypoints = detector.detect(image)
        end = time.perf_counter()

        times_ms.append((end - start) * 1000.0)
        kp_counts.append(len(keypoints))

    if num_skipped:
        logging.warning(f"{name}: skipped {num_skipped}/{len(images)} unreadable images")

    if not times_ms:
        raise NoSamplesError(name, num_skipped)

    result = BenchmarkResult(
        name=name,
        avg_time_ms=float(np.mean(times_ms)),
        avg_keypoints=float(np.mean(kp_counts)),
        std_time_ms=float(np.std(times_ms)),
        num_samples=len(times_ms),
        num_skipped=num_skipped,
    )
    logging.info(
        f"Done. ({result.avg_time_ms:.3f} ms/frame, {result.avg_keypoints:.1f} feats)"
    )
    return result


# ============================================================================
# REPORT
# ============================================================================

class ReportWriter:
    """
    Streams benchmark rows to a CSV file.

    The file is opened (and truncated) once, the header goes out immediately,
    and every row is flushed as soon as it is written.
    """

    def __init__(self, path):
        self.path = Path(path)
        self._handle = None

    def open(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._handle = open(self.path, 'w', newline='')
        try:
            pd.DataFrame(columns=CSV_COLUMNS).to_csv(self._handle, index=False)
            self._handle.flush()
        except Exception:
            self.close()
            raise

    def write(self, result: BenchmarkResult) -> None:
        row = pd.DataFrame(
            [[result.name, result.avg_time_ms, result.fps_estimate, result.avg_keypoints]],
            columns=CSV_COLUMNS,
        )
        row.to_csv(self._handle, header=False, index=False, float_format=FLOAT_FORMAT)
        self._handle.flush()

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def __enter__(self) -> "ReportWriter":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


# ============================================================================
# SUMMARY
# ============================================================================

def log_summary(results: List[BenchmarkResult]) -> None:
    """Log a comparison table and each detector's speedup over the slowest."""
    if not results:
        return

    summary = pd.DataFrame([{
        'Detector': r.name,
        'AvgTime_ms': r.avg_time_ms,
        'StdTime_ms': r.std_time_ms,
        'FPS_Est': r.fps_estimate,
        'AvgKeypoints': r.avg_keypoints,
        'Images': r.num_samples,
        'Skipped': r.num_skipped,
    } for r in results])

    logging.info("=" * 80)
    logging.info("BENCHMARK SUMMARY")
    logging.info("=" * 80)
    for line in summary.to_string(index=False, float_format=lambda v: f"{v:.3f}").splitlines():
        logging.info(line)
    logging.info("=" * 80)

    slowest = max(results, key=lambda r: r.avg_time_ms)
    for r in results:
        if r is slowest or r.avg_time_ms == 0:
            continue
        speedup = slowest.avg_time_ms / r.avg_time_ms
        logging.info(f"  {r.name} vs {slowest.name}: {speedup:.1f}x faster")


# ============================================================================
# ORCHESTRATION
# ============================================================================

def run_benchmark_suite(config: BenchmarkConfig,
                        detectors: Optional[List[DetectorSpec]] = None) -> List[BenchmarkResult]:
    """
    Benchmark every registered detector and write the CSV report.

    Args:
        config: Run configuration
        detectors: Ordered detectors; defaults to build_detector_registry()

    Returns:
        results: One BenchmarkResult per detector that produced samples

    Raises:
        NoImagesFoundError: If the dataset yields no images
        OSError: If the report file cannot be opened
    """
    if detectors is None:
        detectors = build_detector_registry()

    logging.info(f"Loading images from: {config.dataset_path}")
    images = load_image_paths(config.dataset_path, config.max_images, config.image_extension)
    if not images:
        raise NoImagesFoundError(f"No images found in {config.dataset_path}. Check path.")
    logging.info(f"Loaded {len(images)} images for benchmarking.")

    results = []
    with ReportWriter(config.output_csv) as report:
        for spec in detectors:
            warm_up(spec.detector, images)
            try:
                result = run_test(spec.name, spec.detector, images)
            except NoSamplesError as e:
                logging.error(f"{e}; no row written")
                continue
            report.write(result)
            results.append(result)

    log_summary(results)
    logging.info(f"Benchmark saved to {config.output_csv}")
    return results


# ============================================================================
# MAIN EXECUTION
# ============================================================================

def main(config: Optional[BenchmarkConfig] = None) -> int:
    """Main benchmark execution; paths and limits come from the module constants."""
    if config is None:
        config = BenchmarkConfig()

    try:
        run_benchmark_suite(config)
    except NoImagesFoundError as e:
        logging.error(str(e))
        return 1
    except OSError as e:
        logging.error(f"Benchmark aborted: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
