"""Shared fixtures: synthetic RGB-D scenes seen by a pinhole camera.

Scenes are 160x120 frames with a blue background at depth 3.0. Objects are
colored rectangles whose depth follows a small diagonal ripple around their
base depth, so every object has a non-degenerate depth extent.
"""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from depthtrack import PinholeView

WIDTH, HEIGHT = 160, 120
BACKGROUND_DEPTH = 3.0
RIPPLE = 0.05

BLUE = (255, 0, 0)
GREEN = (0, 255, 0)
RED = (0, 0, 255)

INTRINSICS = np.array([
    [100.0, 0.0, 80.0],
    [0.0, 100.0, 60.0],
    [0.0, 0.0, 1.0],
])


def make_scene(objects=(), width=WIDTH, height=HEIGHT):
    """Render a scene.

    Args:
        objects: Sequence of (rect, depth, bgr) drawn in order; rect is (x, y, w, h).

    Returns:
        Tuple of (color uint8 (H, W, 3), depth float32 (H, W)).
    """
    color = np.empty((height, width, 3), dtype=np.uint8)
    color[:] = BLUE
    depth = np.full((height, width), BACKGROUND_DEPTH, dtype=np.float32)

    yy, xx = np.mgrid[0:height, 0:width]
    ripple = (RIPPLE * (((xx + yy) % 5) - 2)).astype(np.float32)

    for (x, y, w, h), z, bgr in objects:
        color[y:y + h, x:x + w] = bgr
        depth[y:y + h, x:x + w] = z + ripple[y:y + h, x:x + w]

    return color, depth


def rect_mask(rect, width=WIDTH, height=HEIGHT):
    """Boolean mask of a rectangle."""
    x, y, w, h = rect
    mask = np.zeros((height, width), dtype=bool)
    mask[y:y + h, x:x + w] = True
    return mask


@pytest.fixture
def scene():
    """Scene factory."""
    return make_scene


@pytest.fixture
def target_rect():
    """Red target rectangle centered on the principal point."""
    return (60, 40, 40, 40)


@pytest.fixture
def view(target_rect):
    """View showing the red target at depth 2.0."""
    color, depth = make_scene([(target_rect, 2.0, RED)])
    return PinholeView(INTRINSICS, color, depth)
