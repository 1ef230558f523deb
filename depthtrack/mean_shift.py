"""Depth-weighted 3D mean-shift.

The target position is kept in camera space. Every pixel of the tracking window
votes for its own camera-space position with a weight equal to a Gaussian
kernel of its 3D distance to the current position times its appearance
probability. The per-pixel accumulation is a pure reduction, so it is split
into row bands that may be evaluated on a thread pool.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import cv2
import numpy as np

from .base import TrackingWindow
from .geometry import View
from .utils import LOGGER


@dataclass(frozen=True)
class MeanShiftResult:
    """Outcome of one mean-shift run.

    Attributes:
        window: Refined window (depth fields unchanged).
        z: Refined target depth (camera-space z of the final position).
        iterations: Number of iterations performed.
        converged: Whether the last shift was below epsilon.
    """

    window: TrackingWindow
    z: float
    iterations: int
    converged: bool


def accumulate_band(
    prob: np.ndarray,
    raw_depth: np.ndarray,
    view: View,
    pos: np.ndarray,
    bandwidth: float,
    cols: tuple[int, int],
    rows: tuple[int, int],
) -> tuple[float, np.ndarray]:
    """Accumulate kernel weights and weighted camera-space positions over a band.

    Args:
        prob: Probability map in [0, 1], shape (H, W).
        raw_depth: Raw depth/disparity frame, shape (H, W).
        view: View converting raw depth and pixels to camera space.
        pos: Current camera-space target position (3,).
        bandwidth: Kernel bandwidth.
        cols: Column range [x0, x1).
        rows: Row range [y0, y1).

    Returns:
        Tuple of (sum of weights, weighted sum of camera-space x, y, z).
    """
    (x0, x1), (y0, y1) = cols, rows
    if x1 <= x0 or y1 <= y0:
        return 0.0, np.zeros(3)

    ys, xs = np.mgrid[y0:y1, x0:x1]
    z = view.disparity_to_depth(raw_depth[y0:y1, x0:x1])
    points = view.pixel_to_camera(xs, ys, z)[..., :3]

    dist = np.linalg.norm(points - pos, axis=-1)
    weight = np.exp(-0.5 * (dist / bandwidth) ** 2) * prob[y0:y1, x0:x1]

    return float(weight.sum()), (points * weight[..., None]).sum(axis=(0, 1))


class MeanShiftTracker:
    """Iterative 3D mean-shift optimizer.

    Attributes:
        max_iterations: Maximum iterations per run.
        epsilon: Convergence threshold on the camera-space displacement.
        workers: Number of row bands evaluated concurrently.
    """

    def __init__(self, max_iterations: int = 10, epsilon: float = 1e-6, workers: int = 1):
        self.max_iterations = max_iterations
        self.epsilon = epsilon
        self.workers = workers

    def _bands(self, y0: int, y1: int) -> list[tuple[int, int]]:
        edges = np.linspace(y0, y1, min(self.workers, max(y1 - y0, 1)) + 1).astype(int)
        return [(int(a), int(b)) for a, b in zip(edges[:-1], edges[1:]) if b > a]

    def run(
        self,
        prob: np.ndarray,
        view: View,
        window: TrackingWindow,
        depth: float,
        bandwidth: float,
    ) -> MeanShiftResult:
        """Refine ``window`` and ``depth`` on the probability map.

        Args:
            prob: Probability map in [0, 1] with the frame's shape.
            view: View supplying the depth frame and camera transforms.
            window: Starting window.
            depth: Starting target depth.
            bandwidth: Kernel bandwidth.

        Returns:
            MeanShiftResult with the refined window and depth.
        """
        width, height = view.size
        raw_depth = view.depth

        cx, cy = window.center
        pos = view.pixel_to_camera(cx, cy, depth)[:3]

        executor = ThreadPoolExecutor(max_workers=self.workers) if self.workers > 1 else None
        iterations = 0
        converged = False
        try:
            while iterations < self.max_iterations:
                iterations += 1

                cols = (max(window.x, 0), min(window.x + window.width, width))
                y0, y1 = max(window.y, 0), min(window.y + window.height, height)

                if executor is None:
                    weights, sums = accumulate_band(prob, raw_depth, view, pos, bandwidth, cols, (y0, y1))
                else:
                    partials = list(executor.map(
                        lambda rows: accumulate_band(prob, raw_depth, view, pos, bandwidth, cols, rows),
                        self._bands(y0, y1),
                    ))
                    weights = sum(w for w, _ in partials)
                    sums = np.sum([s for _, s in partials], axis=0)

                # No sufficiently probable or near pixels; nothing to shift towards
                if weights <= 0:
                    break

                new_pos = sums / weights
                displacement = float(np.linalg.norm(new_pos - pos))
                pos = new_pos

                u, v, _ = view.camera_to_pixel(pos)
                window = window.moved_to(u, v).clamped(width, height)

                if displacement < self.epsilon:
                    converged = True
                    break
        finally:
            if executor is not None:
                executor.shutdown()

        LOGGER.debug(f"mean-shift: {iterations} iterations, converged={converged}, z={pos[2]:.4f}")
        return MeanShiftResult(window=window, z=float(pos[2]), iterations=iterations, converged=converged)


def planar_mean_shift(prob: np.ndarray, window: TrackingWindow, max_iterations: int = 10, epsilon: float = 1.0) -> TrackingWindow:
    """Run OpenCV's 2D mean-shift on the probability map.

    Args:
        prob: Probability map in [0, 1].
        window: Starting window.
        max_iterations: Iteration limit.
        epsilon: Minimum window shift in pixels.

    Returns:
        Window moved to the 2D density mode.
    """
    image = np.clip(prob * 255.0, 0, 255).astype(np.uint8)
    criteria = (cv2.TERM_CRITERIA_EPS | cv2.TERM_CRITERIA_COUNT, max_iterations, epsilon)
    _, (x, y, w, h) = cv2.meanShift(image, window.rect, criteria)
    return TrackingWindow(int(x), int(y), int(w), int(h), window.z, window.z_range)
