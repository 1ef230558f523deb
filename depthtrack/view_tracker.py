"""ViewTracker: depth-aware single object tracker for one camera view.

Each frame the target's hue backprojection drives a depth-weighted 3D
mean-shift. The neighborhood of the refined window is then segmented by depth
and its objects are matched to the previous frame and classified. If the
target is hidden behind an occluder (or cannot be found), the mean-shift
result is discarded and the window is re-centered on the externally predicted
position.
"""

from __future__ import annotations

from typing import Callable, Sequence

import numpy as np

from .appearance import AppearanceModel, DepthModel, estimate_bandwidth
from .base import DetectedObject, OcclusionDecision, TrackingWindow, TrackStatus
from .config import TrackerConfig
from .exceptions import ModelNotBuiltError
from .geometry import View
from .matching import ObjectMatcher
from .mean_shift import MeanShiftTracker, planar_mean_shift
from .occlusion import OcclusionResolver
from .segmentation import RegionSegmenter
from .utils import LOGGER, clamp_region, crop

LogFunc = Callable[[str], None]


class ViewTracker:
    """Tracks a single target through the frames of a view.

    A tracker instance owns its window, depth, bandwidth and object list; frames
    must be processed one after another.

    Attributes:
        view: View supplying frames and camera transforms.
        config: Tracker configuration.
        appearance: Hue histogram model of the target.
        mean_shift: 3D mean-shift optimizer.
        segmenter: Depth-guided region segmenter.
        resolver: Occlusion resolver holding the previous frame's objects.
        bandwidth: Mean-shift kernel bandwidth.
        status: Outcome of the last tracked frame.
        recovery_depth: Depth behind the last containing occluder, if any.
        frame_id: Number of frames tracked since ``build``.

    Example:
        >>> tracker = ViewTracker(view, (60, 40, 40, 40))
        >>> tracker.build(mask)
        >>> for color, depth, predicted in frames:
        ...     view.set_frames(color, depth)
        ...     weight = tracker.track(predicted)
        ...     x, y, w, h = tracker.window.rect
    """

    def __init__(
        self,
        view: View,
        window: TrackingWindow | Sequence[int],
        config: TrackerConfig | None = None,
        log: LogFunc | None = None,
    ):
        """Initialize a tracker.

        Args:
            view: View supplying frames and camera transforms.
            window: Initial window as a TrackingWindow or (x, y, width, height).
            config: Tracker configuration (defaults to TrackerConfig()).
            log: Optional logging callable for per-frame messages.
        """
        self.view = view
        self.config = config or TrackerConfig()
        self._window = window if isinstance(window, TrackingWindow) else TrackingWindow(*window)
        self._log = log or LOGGER.debug

        self.appearance = AppearanceModel(self.config.hist_bins, self.config.hue_range)
        self.mean_shift = MeanShiftTracker(self.config.max_iterations, self.config.epsilon, self.config.workers)
        self.segmenter = RegionSegmenter(self.config)
        self.resolver = OcclusionResolver(
            ObjectMatcher(self.config.overlap_thresh, self.config.overlap_metric),
            self.config.recovery_fraction,
        )

        self.bandwidth: float | None = self.config.bandwidth
        self.status = TrackStatus.TRACKING
        self.recovery_depth: float | None = None
        self.frame_id = 0

    @property
    def window(self) -> TrackingWindow:
        """Current tracking window."""
        return self._window

    @property
    def depth(self) -> float:
        """Current target depth."""
        return self._window.z

    @property
    def z_range(self) -> float:
        """Target depth range."""
        return self._window.z_range

    @property
    def objects(self) -> tuple[DetectedObject, ...]:
        """Objects published by the last tracked frame."""
        return self.resolver.objects

    def build(self, mask: np.ndarray) -> None:
        """Build the appearance and depth models from the target mask.

        Args:
            mask: Target mask over the current frame.
        """
        self.view.validate()
        width, height = self.view.size
        window = self._window.clamped(width, height)

        self.appearance.build(self.view.color, mask)
        model = DepthModel.from_mask(
            self.view,
            mask,
            window,
            median_ksize=self.config.median_blur_ksize,
            percentiles=self.config.z_range_percentiles,
        )
        self._window = window.with_depth(model.z, model.z_range)

        self.resolver.reset()
        self.status = TrackStatus.TRACKING
        self.recovery_depth = None
        self.frame_id = 0

        if self.config.bandwidth is None:
            self.estimate_bandwidth()
        else:
            self.bandwidth = self.config.bandwidth

        self._log(f"Model built: window={self._window.rect}, z={model.z:.4f}, "
                  f"z_range={model.z_range:.4f}, bandwidth={self.bandwidth:.4f}")

    def estimate_bandwidth(self) -> float:
        """Estimate and store the mean-shift bandwidth from the current window."""
        if not self.appearance.is_built:
            raise ModelNotBuiltError("estimate bandwidth")
        self.bandwidth = estimate_bandwidth(self.view, self._window)
        return self.bandwidth

    def set_bandwidth(self, value: float) -> None:
        """Override the mean-shift bandwidth."""
        if value <= 0:
            raise ValueError(f"bandwidth must be positive, got {value}")
        self.bandwidth = float(value)

    def reset(self) -> None:
        """Discard the model and all per-frame state, keeping the current window."""
        self.appearance.hist = None
        self.resolver.reset()
        self.bandwidth = self.config.bandwidth
        self.status = TrackStatus.TRACKING
        self.recovery_depth = None
        self.frame_id = 0

    def track(self, predicted: Sequence[float] | np.ndarray) -> float:
        """Track the target in the view's current frame.

        Args:
            predicted: Externally predicted 3D world position of the target.

        Returns:
            Confidence weight: the number of pixels around the previous window no
            deeper than the target, or 0 when the target is occluded (or in 2D mode).
        """
        if not self.appearance.is_built:
            raise ModelNotBuiltError("track")
        self.view.validate()
        self.frame_id += 1

        prob = self.appearance.backproject(self.view.color)

        if self.config.mode == "2d":
            self._window = planar_mean_shift(prob, self._window).clamped(*self.view.size)
            self.status = TrackStatus.TRACKING
            return 0.0

        weight = self.compute_area_covered()

        if self.bandwidth is None:
            self.estimate_bandwidth()
        result = self.mean_shift.run(prob, self.view, self._window, self._window.z, self.bandwidth)

        predicted = np.asarray(predicted, dtype=np.float64)
        decision = self.is_occluded(result.window, result.z, predicted)

        if not decision.occluded:
            self._window = result.window.with_depth(decision.depth)
            self.status = TrackStatus.TRACKING
            self._log(f"Frame {self.frame_id}: tracking window={self._window.rect}, "
                      f"z={self._window.z:.4f}, weight={weight:.0f}")
            return weight

        u, v, pz = self.view.world_to_pixel(predicted)
        self._window = self._window.moved_to(u, v).clamped(*self.view.size).with_depth(pz)
        self.status = TrackStatus.OCCLUDED
        self._log(f"Frame {self.frame_id}: occluded, reset to prediction window={self._window.rect}, "
                  f"z={self._window.z:.4f}")
        return 0.0

    def compute_area_covered(self) -> float:
        """Count pixels around the current window that are no deeper than the target.

        The count covers the window enlarged by ``coverage_scale`` and clamped to the
        frame, and includes pixels whose depth is non-zero and at most ``z + z_range``.
        """
        rect = clamp_region(self._window.enlarged(self.config.coverage_scale), self.view.size)
        depth = self.view.disparity_to_depth(crop(self.view.depth, rect))
        limit = self._window.z + self._window.z_range
        return float(np.count_nonzero((depth <= limit) & (depth != 0)))

    def is_occluded(self, window: TrackingWindow, z: float, predicted: np.ndarray) -> OcclusionDecision:
        """Segment around ``window`` and decide whether the target at depth ``z`` is occluded.

        Args:
            window: Window refined by mean-shift.
            z: Depth refined by mean-shift.
            predicted: Predicted 3D world position of the target.

        Returns:
            OcclusionDecision; the resolver's object list is replaced either way.
        """
        pz = float(self.view.world_to_pixel(predicted)[2])
        rect = clamp_region(window.enlarged(self.config.search_scale), self.view.size)

        new_objects = self.segmenter.detect(self.view, rect, self._window.z_range)
        decision = self.resolver.resolve(new_objects, pz, self._window.z, z, self._window.z_range)

        if decision.recovery_depth is not None:
            self.recovery_depth = decision.recovery_depth
        return decision
