"""Appearance and depth models of the tracked target.

This module provides the hue histogram model with its backprojection, the
initial depth/depth-range estimate, and the mean-shift bandwidth estimate.
"""

from __future__ import annotations

from dataclasses import dataclass

import cv2
import numpy as np

from .base import TrackingWindow
from .exceptions import InvalidMaskError, ModelNotBuiltError
from .geometry import View
from .utils import crop


def _as_mask(mask: np.ndarray, shape: tuple[int, ...]) -> np.ndarray:
    """Validate ``mask`` against a frame shape and return it as an 8-bit mask."""
    mask = np.asarray(mask)
    if mask.shape[:2] != shape[:2]:
        raise InvalidMaskError(f"Mask shape {mask.shape[:2]} does not match frame shape {shape[:2]}")
    mask = (mask > 0).astype(np.uint8) * 255
    if not mask.any():
        raise InvalidMaskError("Mask selects no pixels")
    return mask


class AppearanceModel:
    """Hue histogram of the target.

    The histogram is built once from the initial target mask and is immutable
    afterwards unless ``build`` is called again.

    Attributes:
        bins: Number of hue bins.
        hue_range: Range of hue values covered by the histogram.
        hist: Normalized histogram with values in [0, 255], or None before ``build``.
    """

    def __init__(self, bins: int = 180, hue_range: tuple[float, float] = (0.0, 180.0)):
        self.bins = bins
        self.hue_range = hue_range
        self.hist: np.ndarray | None = None

    @property
    def is_built(self) -> bool:
        """Whether the histogram has been computed."""
        return self.hist is not None

    def build(self, color: np.ndarray, mask: np.ndarray) -> None:
        """Compute the hue histogram of the pixels of ``color`` selected by ``mask``.

        Args:
            color: BGR image.
            mask: Target mask with the same height and width as ``color``.
        """
        mask = _as_mask(mask, color.shape)
        hsv = cv2.cvtColor(color, cv2.COLOR_BGR2HSV)
        hist = cv2.calcHist([hsv], [0], mask, [self.bins], list(self.hue_range))
        cv2.normalize(hist, hist, 0, 255, cv2.NORM_MINMAX)
        self.hist = hist

    def backproject(self, color: np.ndarray) -> np.ndarray:
        """Return the per-pixel target probability of ``color``.

        Args:
            color: BGR image.

        Returns:
            Float32 array of shape (H, W) with values in [0, 1].
        """
        if self.hist is None:
            raise ModelNotBuiltError("backproject")
        hsv = cv2.cvtColor(color, cv2.COLOR_BGR2HSV)
        dst = cv2.calcBackProject([hsv], [0], self.hist, list(self.hue_range), 1)
        return dst.astype(np.float32) / 255.0


@dataclass(frozen=True)
class DepthModel:
    """Initial target depth and depth uncertainty.

    Attributes:
        z: Target depth.
        z_range: Half-width of the target's depth extent.
    """

    z: float
    z_range: float

    @classmethod
    def from_mask(
        cls,
        view: View,
        mask: np.ndarray,
        window: TrackingWindow,
        median_ksize: int = 3,
        percentiles: tuple[float, float] = (5.0, 95.0),
    ) -> DepthModel:
        """Estimate the target depth model from the masked depth frame.

        The depth is the converted mean raw depth under the mask. The depth range
        is half the spread between the low and high percentiles of the median
        filtered depth inside the window, restricted to the mask.

        Args:
            view: View supplying the current depth frame.
            mask: Target mask over the full frame.
            window: Initial tracking window.
            median_ksize: Median filter size (1 disables filtering).
            percentiles: Low and high percentiles bounding the depth extent.

        Returns:
            DepthModel instance.
        """
        raw = view.depth
        mask = _as_mask(mask, raw.shape) > 0

        z = float(view.disparity_to_depth(np.mean(raw[mask])))

        rect = window.rect
        window_raw = crop(raw, rect)
        if window_raw.dtype not in (np.uint8, np.uint16, np.float32):
            window_raw = window_raw.astype(np.float32)
        if median_ksize > 1:
            window_raw = cv2.medianBlur(np.ascontiguousarray(window_raw), median_ksize)

        window_mask = crop(mask, rect)
        values = view.disparity_to_depth(window_raw)[window_mask]
        if values.size == 0:
            raise InvalidMaskError("Mask selects no pixels inside the tracking window")

        low, high = np.percentile(values, percentiles)
        return cls(z=z, z_range=float(abs(low - high) / 2))


def estimate_bandwidth(view: View, window: TrackingWindow) -> float:
    """Estimate the mean-shift kernel bandwidth for ``window``.

    The window's top-left corner and center are projected to camera space at the
    window depth; the bandwidth is the mean of their distance and the depth range.

    Args:
        view: View supplying the inverse intrinsic matrix.
        window: Tracking window with depth and depth range.

    Returns:
        Bandwidth in camera-space units.
    """
    z = window.z
    cx, cy = window.center

    # Homogeneous pixel coordinates scaled by depth
    p1 = np.array([window.x * z, window.y * z, z, 1.0])
    p2 = np.array([cx * z, cy * z, z, 1.0])

    inv_k = np.asarray(view.inv_intrinsic_matrix, dtype=np.float64)
    if inv_k.shape == (4, 4):
        p1, p2 = inv_k @ p1, inv_k @ p2
    else:
        p1, p2 = inv_k @ p1[:3], inv_k @ p2[:3]

    dist = float(np.linalg.norm(p1 - p2))
    return (dist + abs(window.z_range)) / 2
