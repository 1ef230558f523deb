"""Configuration for the depth tracker.

This module provides the configuration dataclass shared by the appearance
model, mean-shift optimizer, region segmenter, matcher and occlusion logic.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

MODES = ("3d", "2d")
OVERLAP_METRICS = ("iou", "ratio")


@dataclass
class TrackerConfig:
    """Configuration for the depth tracker.

    Attributes:
        hist_bins: Number of hue histogram bins.
        hue_range: Hue value range covered by the histogram (OpenCV hue is 0-180).
        median_blur_ksize: Median filter size applied to depth before estimating the depth range.
        z_range_percentiles: Low and high percentiles of masked depth used for the depth range.
        max_iterations: Maximum number of mean-shift iterations per frame.
        epsilon: Mean-shift convergence threshold on the camera-space displacement.
        bandwidth: Fixed kernel bandwidth. When None it is estimated from the window.
        workers: Number of threads sharing the per-pixel mean-shift reduction.
        mode: '3d' for depth-weighted mean-shift with occlusion reasoning, '2d' for plain
            OpenCV mean-shift on the backprojection.
        coverage_scale: Scale of the window used to count near pixels for the confidence weight.
        search_scale: Scale of the window segmented for occlusion reasoning.
        cluster_depth: Whether to pyramid mean-shift filter the depth crop before segmentation.
        cluster_spatial_radius: Spatial window radius of the pyramid mean-shift filter.
        morph_kernel_size: Size of the square structuring element used by the segmenter.
        dilate_iterations: Dilations applied to find inter-object borders.
        distance_threshold: Threshold on the normalized distance transform isolating object cores.
        min_percentile: Percentile used as an object's minimum depth.
        median_percentile: Percentile used as an object's representative depth.
        max_percentile: Percentile used as an object's maximum depth.
        overlap_thresh: Minimum region overlap for two objects of consecutive frames to match.
        overlap_metric: 'iou' (intersection over union of the regions) or 'ratio'
            (previous pixel count over new pixel count, for spatially overlapping regions).
        recovery_fraction: Fraction of the depth range added behind an occluder for recovery.
    """

    # Appearance model
    hist_bins: int = 180
    hue_range: tuple[float, float] = (0.0, 180.0)

    # Depth model
    median_blur_ksize: int = 3
    z_range_percentiles: tuple[float, float] = (5.0, 95.0)

    # Mean-shift
    max_iterations: int = 10
    epsilon: float = 1e-6
    bandwidth: float | None = None
    workers: int = 1
    mode: str = "3d"

    # Coverage and search regions
    coverage_scale: float = 2.0
    search_scale: float = 2.0

    # Segmentation
    cluster_depth: bool = True
    cluster_spatial_radius: float = 10.0
    morph_kernel_size: int = 3
    dilate_iterations: int = 5
    distance_threshold: int = 180

    # Object depth statistics
    min_percentile: float = 5.0
    median_percentile: float = 50.0
    max_percentile: float = 95.0

    # Matching
    overlap_thresh: float = 0.5
    overlap_metric: str = "iou"

    # Occlusion
    recovery_fraction: float = 0.25

    def __post_init__(self):
        """Validate configuration parameters."""
        self.hue_range = tuple(self.hue_range)
        self.z_range_percentiles = tuple(self.z_range_percentiles)

        if self.hist_bins <= 0:
            raise ValueError(f"hist_bins must be positive, got {self.hist_bins}")
        if len(self.hue_range) != 2 or self.hue_range[0] >= self.hue_range[1]:
            raise ValueError(f"hue_range must be an increasing pair, got {self.hue_range}")
        if self.median_blur_ksize not in (1, 3, 5):
            raise ValueError(f"median_blur_ksize must be 1, 3 or 5, got {self.median_blur_ksize}")
        low, high = self.z_range_percentiles
        if not 0.0 <= low <= high <= 100.0:
            raise ValueError(f"z_range_percentiles must satisfy 0 <= low <= high <= 100, got {self.z_range_percentiles}")
        if self.max_iterations <= 0:
            raise ValueError(f"max_iterations must be positive, got {self.max_iterations}")
        if self.epsilon < 0:
            raise ValueError(f"epsilon must be non-negative, got {self.epsilon}")
        if self.bandwidth is not None and self.bandwidth <= 0:
            raise ValueError(f"bandwidth must be positive, got {self.bandwidth}")
        if self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers}")
        if self.mode not in MODES:
            raise ValueError(f"mode must be one of {MODES}, got {self.mode!r}")
        if self.coverage_scale <= 0 or self.search_scale <= 0:
            raise ValueError("coverage_scale and search_scale must be positive")
        if self.morph_kernel_size < 1:
            raise ValueError(f"morph_kernel_size must be positive, got {self.morph_kernel_size}")
        if self.dilate_iterations < 0:
            raise ValueError(f"dilate_iterations must be non-negative, got {self.dilate_iterations}")
        if not 0 <= self.distance_threshold <= 255:
            raise ValueError(f"distance_threshold must be in [0, 255], got {self.distance_threshold}")
        if not 0.0 <= self.min_percentile <= self.median_percentile <= self.max_percentile <= 100.0:
            raise ValueError(
                "object percentiles must satisfy 0 <= min <= median <= max <= 100, got "
                f"{self.min_percentile}, {self.median_percentile}, {self.max_percentile}"
            )
        if self.overlap_thresh < 0:
            raise ValueError(f"overlap_thresh must be non-negative, got {self.overlap_thresh}")
        if self.overlap_metric not in OVERLAP_METRICS:
            raise ValueError(f"overlap_metric must be one of {OVERLAP_METRICS}, got {self.overlap_metric!r}")
        if self.recovery_fraction < 0:
            raise ValueError(f"recovery_fraction must be non-negative, got {self.recovery_fraction}")

    @classmethod
    def default(cls) -> TrackerConfig:
        """Return the default configuration for depth-weighted tracking."""
        return cls()

    @classmethod
    def planar(cls) -> TrackerConfig:
        """Return a configuration for plain 2D mean-shift tracking."""
        return cls(mode="2d")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TrackerConfig:
        """Create config from dictionary.

        Args:
            data: Configuration dictionary. Unknown keys are ignored.

        Returns:
            TrackerConfig instance.
        """
        valid_fields = {f.name for f in fields(cls)}
        filtered_data = {k: v for k, v in data.items() if k in valid_fields}
        return cls(**filtered_data)

    @classmethod
    def from_file(cls, path: str | Path) -> TrackerConfig:
        """Load config from a JSON file."""
        with open(path, encoding="utf-8") as f:
            return cls.from_dict(json.load(f))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = asdict(self)
        data["hue_range"] = list(self.hue_range)
        data["z_range_percentiles"] = list(self.z_range_percentiles)
        return data
