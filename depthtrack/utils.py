"""Utility functions for depth tracking.

This module provides rectangle clamping and masked depth statistics used by
the tracker, plus the package logger.
"""

from __future__ import annotations

import logging

import numpy as np

# Simple logger
LOGGER = logging.getLogger("depthtrack")
if not LOGGER.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    LOGGER.addHandler(handler)
    LOGGER.setLevel(logging.INFO)


def clamp(value: int, low: int, high: int) -> int:
    """Clamp ``value`` into ``[low, high]``."""
    return max(low, min(value, high))


def clamp_region(rect: tuple[int, int, int, int], size: tuple[int, int]) -> tuple[int, int, int, int]:
    """Clamp a rectangle to an image.

    Args:
        rect: Rectangle as (x, y, width, height).
        size: Image size as (width, height).

    Returns:
        Rectangle fully contained in ``[0, width) x [0, height)``. The result may
        have zero width or height when ``rect`` lies outside the image.
    """
    x, y, w, h = (int(v) for v in rect)
    width, height = size

    x = clamp(x, 0, width - 1)
    y = clamp(y, 0, height - 1)
    w = clamp(w, 0, width - x)
    h = clamp(h, 0, height - y)
    return x, y, w, h


def crop(image: np.ndarray, rect: tuple[int, int, int, int]) -> np.ndarray:
    """Return the view of ``image`` covered by ``rect`` (x, y, width, height)."""
    x, y, w, h = rect
    return image[y:y + h, x:x + w]


def masked_percentile(values: np.ndarray, q: float, mask: np.ndarray | None = None) -> float:
    """Compute a percentile of ``values`` restricted to ``mask``.

    Args:
        values: Array of values.
        q: Percentile in [0, 100].
        mask: Optional boolean mask with the same shape as ``values``.

    Returns:
        The percentile, or 0.0 if no value is selected.
    """
    selected = values[mask] if mask is not None else values.ravel()
    if selected.size == 0:
        return 0.0
    return float(np.percentile(selected, q))


def bounding_rect(mask: np.ndarray) -> tuple[int, int, int, int]:
    """Bounding box (x, y, width, height) of the non-zero pixels of ``mask``."""
    ys, xs = np.nonzero(mask)
    if xs.size == 0:
        return 0, 0, 0, 0
    x1, y1 = int(xs.min()), int(ys.min())
    return x1, y1, int(xs.max()) - x1 + 1, int(ys.max()) - y1 + 1
