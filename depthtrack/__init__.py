"""Depth-aware single object tracking with occlusion detection.

This module tracks one target through color+depth frames with a depth-weighted
3D mean-shift, segments the target's neighborhood by depth, and falls back to an
externally predicted position when the target is hidden behind another object.

Example usage:
    from depthtrack import PinholeView, TrackerConfig, ViewTracker

    view = PinholeView(intrinsics)
    view.set_frames(color, depth)

    tracker = ViewTracker(view, (x, y, w, h), TrackerConfig())
    tracker.build(mask)

    # For each new frame
    view.set_frames(color, depth)
    weight = tracker.track(predicted_position)
    window, z = tracker.window, tracker.depth
"""

from .appearance import AppearanceModel, DepthModel, estimate_bandwidth
from .base import DetectedObject, ObjectType, OcclusionDecision, TrackingWindow, TrackStatus
from .config import TrackerConfig
from .exceptions import (
    InvalidFrameError,
    InvalidMaskError,
    InvalidWindowError,
    ModelNotBuiltError,
    TrackerError,
)
from .geometry import PinholeView, View
from .matching import ObjectMatcher
from .mean_shift import MeanShiftResult, MeanShiftTracker
from .occlusion import OcclusionResolver, classify_object
from .segmentation import RegionSegmenter, watershed
from .utils import clamp_region
from .view_tracker import ViewTracker

__all__ = [
    # Tracker
    "ViewTracker",
    "TrackerConfig",
    # Geometry
    "View",
    "PinholeView",
    # Models
    "AppearanceModel",
    "DepthModel",
    "estimate_bandwidth",
    # Components
    "MeanShiftTracker",
    "MeanShiftResult",
    "RegionSegmenter",
    "watershed",
    "ObjectMatcher",
    "OcclusionResolver",
    "classify_object",
    # Data types
    "TrackingWindow",
    "DetectedObject",
    "ObjectType",
    "TrackStatus",
    "OcclusionDecision",
    # Errors
    "TrackerError",
    "ModelNotBuiltError",
    "InvalidFrameError",
    "InvalidWindowError",
    "InvalidMaskError",
    # Helpers
    "clamp_region",
]
