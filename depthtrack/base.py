"""Core data types for depth-aware single object tracking.

This module defines the enumerations and containers shared by the appearance
model, the mean-shift optimizer, the region segmenter and the occlusion logic.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum, auto

import numpy as np

from .exceptions import InvalidWindowError


class ObjectType(Enum):
    """Role of a segmented region relative to the tracked target."""

    UNKNOWN = auto()
    TARGET = auto()
    OCCLUDER = auto()
    BACKGROUND = auto()

    def __str__(self) -> str:
        """Return lowercase type name."""
        return self.name.lower()


class TrackStatus(Enum):
    """Outcome of the last processed frame.

    The status is implicit per frame: each call to ``track`` re-evaluates it
    from the persisted object list and window.
    """

    TRACKING = auto()   # Mean-shift window accepted
    OCCLUDED = auto()   # Window reset to the predicted position

    def __str__(self) -> str:
        """Return lowercase status name."""
        return self.name.lower()


@dataclass(frozen=True)
class TrackingWindow:
    """Axis-aligned pixel rectangle with the target depth estimate.

    Attributes:
        x: Left pixel column.
        y: Top pixel row.
        width: Window width in pixels.
        height: Window height in pixels.
        z: Target depth.
        z_range: Half-width of the target depth uncertainty band.
    """

    x: int
    y: int
    width: int
    height: int
    z: float = 0.0
    z_range: float = 0.0

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise InvalidWindowError(self.width, self.height)

    @property
    def rect(self) -> tuple[int, int, int, int]:
        """Pixel rectangle as (x, y, width, height)."""
        return self.x, self.y, self.width, self.height

    @property
    def center(self) -> tuple[int, int]:
        """Integer pixel center of the window."""
        return self.x + self.width // 2, self.y + self.height // 2

    def moved_to(self, cx: float, cy: float) -> TrackingWindow:
        """Return a window of the same size centered on (cx, cy)."""
        return replace(
            self,
            x=int(round(cx)) - self.width // 2,
            y=int(round(cy)) - self.height // 2,
        )

    def with_depth(self, z: float, z_range: float | None = None) -> TrackingWindow:
        """Return a copy with a new depth (and optionally a new depth range)."""
        return replace(self, z=float(z), z_range=self.z_range if z_range is None else float(z_range))

    def clamped(self, frame_width: int, frame_height: int) -> TrackingWindow:
        """Return the window shifted (and if needed shrunk) to lie inside the frame."""
        width = min(self.width, frame_width)
        height = min(self.height, frame_height)
        x = min(max(self.x, 0), frame_width - width)
        y = min(max(self.y, 0), frame_height - height)
        return replace(self, x=x, y=y, width=width, height=height)

    def enlarged(self, scale: float) -> tuple[int, int, int, int]:
        """Return the rectangle scaled by ``scale`` around the same center (not clamped)."""
        width = max(1, int(self.width * scale))
        height = max(1, int(self.height * scale))
        return self.x - (width - self.width) // 2, self.y - (height - self.height) // 2, width, height


@dataclass
class DetectedObject:
    """A depth-segmented region of the current frame.

    The region is stored as a boolean mask over the segmented crop together
    with the crop origin in frame coordinates, so that regions of different
    frames can be intersected without materializing coordinate sets.

    Attributes:
        type: Role assigned by matching or classification.
        depth_min: Low depth percentile of the region.
        depth_max: High depth percentile of the region.
        depth_median: Median depth of the region.
        position: 3D world position of the region center.
        bounds: Pixel bounding box (x, y, width, height) in frame coordinates.
        region: Boolean membership mask over the segmented crop.
        origin: Frame coordinates (x, y) of the crop's top-left pixel.
    """

    type: ObjectType
    depth_min: float
    depth_max: float
    depth_median: float
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    bounds: tuple[int, int, int, int] = (0, 0, 0, 0)
    region: np.ndarray = field(default_factory=lambda: np.zeros((0, 0), dtype=bool))
    origin: tuple[int, int] = (0, 0)

    def __post_init__(self):
        if isinstance(self.position, (list, tuple)):
            self.position = np.asarray(self.position, dtype=np.float64)
        self.region = np.asarray(self.region, dtype=bool)

    @property
    def pixel_count(self) -> int:
        """Number of pixels belonging to the region."""
        return int(np.count_nonzero(self.region))

    def contains_depth(self, z: float) -> bool:
        """Whether ``z`` lies strictly inside the region's depth extent."""
        return self.depth_min < z < self.depth_max

    def intersection(self, other: DetectedObject) -> int:
        """Count pixels shared by this region and ``other`` in frame coordinates."""
        ax, ay = self.origin
        bx, by = other.origin
        ah, aw = self.region.shape[:2]
        bh, bw = other.region.shape[:2]

        x1, y1 = max(ax, bx), max(ay, by)
        x2, y2 = min(ax + aw, bx + bw), min(ay + ah, by + bh)
        if x2 <= x1 or y2 <= y1:
            return 0

        a = self.region[y1 - ay:y2 - ay, x1 - ax:x2 - ax]
        b = other.region[y1 - by:y2 - by, x1 - bx:x2 - bx]
        return int(np.count_nonzero(a & b))


@dataclass(frozen=True)
class OcclusionDecision:
    """Result of occlusion reasoning for one frame.

    Attributes:
        occluded: Whether the mean-shift estimate must be discarded.
        depth: Corrected target depth when not occluded.
        recovery_depth: Depth just behind the containing occluder, if any.
        object_index: Index of the deciding object in the frame's object list.
    """

    occluded: bool
    depth: float | None = None
    recovery_depth: float | None = None
    object_index: int | None = None
