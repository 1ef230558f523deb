"""Depth-guided region segmentation.

This module splits a depth crop around the tracking window into connected
regions with a marker-based watershed, and summarizes each region as a
``DetectedObject`` with depth statistics and a 3D position.
"""

from __future__ import annotations

import cv2
import numpy as np

from .base import DetectedObject, ObjectType
from .config import TrackerConfig
from .geometry import View
from .utils import LOGGER, bounding_rect, crop, masked_percentile


def watershed(
    depth: np.ndarray,
    color: np.ndarray,
    kernel_size: int = 3,
    dilate_iterations: int = 5,
    distance_threshold: int = 180,
) -> tuple[np.ndarray, int]:
    """Segment a crop into labeled regions seeded from confident object interiors.

    Args:
        depth: 8-bit single channel image, foreground objects bright.
        color: 8-bit 3-channel image flooded by the watershed.
        kernel_size: Size of the square structuring element.
        dilate_iterations: Dilations used to mark inter-object borders.
        distance_threshold: Threshold on the [0, 255] normalized distance transform.

    Returns:
        Tuple of (label image, label count). Label 0 is background, the last
        label ``count - 1`` marks object borders and -1 marks watershed lines.
    """
    _, binary = cv2.threshold(depth, 0, 255, cv2.THRESH_BINARY | cv2.THRESH_OTSU)

    # Remove noise and small objects
    kernel = cv2.getStructuringElement(cv2.MORPH_RECT, (kernel_size, kernel_size))
    binary = cv2.morphologyEx(binary, cv2.MORPH_OPEN, kernel)

    # Band between the grown objects and their eroded cores
    border = cv2.dilate(binary, kernel, iterations=dilate_iterations)
    core = cv2.erode(binary, kernel)
    border = cv2.subtract(border, core)

    dist = cv2.distanceTransform(binary, cv2.DIST_L2, 3)
    dist = cv2.normalize(dist, None, 0, 255, cv2.NORM_MINMAX, cv2.CV_8U)
    _, dist = cv2.threshold(dist, distance_threshold, 255, cv2.THRESH_BINARY)

    n, markers = cv2.connectedComponents(dist)
    markers = markers.astype(np.int32)
    markers[border == 255] = n

    cv2.watershed(np.ascontiguousarray(color), markers)
    return markers, n + 1


class RegionSegmenter:
    """Detects depth-separated objects in a region of the current frame.

    Attributes:
        config: Tracker configuration supplying segmentation and statistics parameters.
    """

    def __init__(self, config: TrackerConfig | None = None):
        self.config = config or TrackerConfig()

    def prepare(self, depth: np.ndarray, z_range: float) -> tuple[np.ndarray, np.ndarray]:
        """Turn a converted depth crop into watershed inputs.

        The crop is normalized to 8 bits and, if enabled, clustered with a pyramid
        mean-shift filter whose color radius is the depth range expressed in the
        normalized units.

        Args:
            depth: Float depth crop.
            z_range: Target depth range.

        Returns:
            Tuple of (inverted single channel image with near objects bright,
            3-channel clustered image).
        """
        normalized = cv2.normalize(depth, None, 0, 255, cv2.NORM_MINMAX, cv2.CV_8U)
        image = cv2.merge([normalized, normalized, normalized])

        if self.config.cluster_depth:
            spread = float(depth.max() - depth.min())
            color_radius = abs(z_range) * 255.0 / spread if spread > 0 else 1.0
            image = cv2.pyrMeanShiftFiltering(image, self.config.cluster_spatial_radius, max(color_radius, 1.0))

        return cv2.bitwise_not(image[..., 0].copy()), image

    def segment(self, depth: np.ndarray, color: np.ndarray) -> tuple[np.ndarray, int]:
        """Run the watershed pipeline with the configured parameters."""
        return watershed(
            depth,
            color,
            kernel_size=self.config.morph_kernel_size,
            dilate_iterations=self.config.dilate_iterations,
            distance_threshold=self.config.distance_threshold,
        )

    def detect(self, view: View, rect: tuple[int, int, int, int], z_range: float) -> list[DetectedObject]:
        """Segment ``rect`` of the current frame into objects.

        Args:
            view: View supplying the depth frame and transforms.
            rect: Clamped region (x, y, width, height) to segment.
            z_range: Target depth range.

        Returns:
            New objects of type UNKNOWN, one per non-empty label.
        """
        x, y, w, h = rect
        if w <= 0 or h <= 0:
            return []

        depth = np.asarray(view.disparity_to_depth(crop(view.depth, rect)), dtype=np.float32)
        depth8, color = self.prepare(depth, z_range)
        labels, count = self.segment(depth8, color)

        objects = []
        for label in range(1, count):
            region = labels == label
            if not region.any():
                continue

            median = masked_percentile(depth, self.config.median_percentile, region)
            depth_min = masked_percentile(depth, self.config.min_percentile, region)
            depth_max = masked_percentile(depth, self.config.max_percentile, region)

            bx, by, bw, bh = bounding_rect(region)
            position = view.pixel_to_world(x + bx + bw / 2.0, y + by + bh / 2.0, median)

            objects.append(DetectedObject(
                type=ObjectType.UNKNOWN,
                depth_min=depth_min,
                depth_max=depth_max,
                depth_median=median,
                position=np.asarray(position, dtype=np.float64),
                bounds=(x + bx, y + by, bw, bh),
                region=region,
                origin=(x, y),
            ))

        LOGGER.debug(f"segmentation: {len(objects)} objects in region {rect}")
        return objects
