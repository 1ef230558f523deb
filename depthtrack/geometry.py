"""Camera geometry adapters.

The tracker consumes frames and coordinate transforms through the ``View``
interface. ``PinholeView`` implements it for a calibrated pinhole camera with
either a metric depth stream or a stereo disparity stream.

All coordinate methods accept scalars or numpy arrays and broadcast, so the
per-pixel mean-shift reduction can be evaluated on whole row bands at once.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np

from .exceptions import InvalidFrameError


class View(ABC):
    """Abstract source of color/depth frames and camera transforms."""

    @property
    @abstractmethod
    def color(self) -> np.ndarray:
        """Current BGR color frame, shape (H, W, 3)."""

    @property
    @abstractmethod
    def depth(self) -> np.ndarray:
        """Current raw depth or disparity frame, shape (H, W)."""

    @property
    @abstractmethod
    def inv_intrinsic_matrix(self) -> np.ndarray:
        """Inverse intrinsic matrix (3x3 or 4x4)."""

    @abstractmethod
    def disparity_to_depth(self, values):
        """Convert raw depth-frame values to depth."""

    @abstractmethod
    def pixel_to_camera(self, x, y, depth) -> np.ndarray:
        """Convert pixel coordinates at ``depth`` to homogeneous camera space (..., 4)."""

    @abstractmethod
    def camera_to_pixel(self, point) -> np.ndarray:
        """Convert camera-space points to (u, v, depth) (..., 3)."""

    @abstractmethod
    def pixel_to_world(self, x, y, depth) -> np.ndarray:
        """Convert pixel coordinates at ``depth`` to world space (..., 3)."""

    @abstractmethod
    def world_to_pixel(self, point) -> np.ndarray:
        """Convert world-space points to (u, v, depth) (..., 3)."""

    @property
    def size(self) -> tuple[int, int]:
        """Frame size as (width, height)."""
        h, w = self.depth.shape[:2]
        return w, h

    def validate(self) -> None:
        """Check that the current frames are present and consistent.

        Raises:
            InvalidFrameError: If a frame is missing, empty or mis-sized.
        """
        color, depth = self.color, self.depth
        if color is None or color.size == 0:
            raise InvalidFrameError("color", "Frame is empty")
        if depth is None or depth.size == 0:
            raise InvalidFrameError("depth", "Frame is empty")
        if color.ndim != 3 or color.shape[2] != 3:
            raise InvalidFrameError("color", f"Expected a 3-channel image, got shape {color.shape}")
        if color.shape[:2] != depth.shape[:2]:
            raise InvalidFrameError("depth", f"Shape {depth.shape[:2]} does not match color {color.shape[:2]}")


class PinholeView(View):
    """View over a pinhole camera.

    Attributes:
        intrinsics: 3x3 intrinsic matrix K.
        extrinsic: 4x4 camera-to-world transform.
        depth_scale: Multiplier converting raw depth values to depth (ignored with a baseline).
        baseline: Stereo baseline. When set, raw values are disparities and
            ``depth = fx * baseline / disparity``.

    Example:
        >>> view = PinholeView(np.array([[100, 0, 80], [0, 100, 60], [0, 0, 1]]))
        >>> view.set_frames(color, depth)
        >>> view.pixel_to_camera(80, 60, 2.0)
        array([0., 0., 2., 1.])
    """

    def __init__(
        self,
        intrinsics: np.ndarray,
        color: np.ndarray | None = None,
        depth: np.ndarray | None = None,
        extrinsic: np.ndarray | None = None,
        depth_scale: float = 1.0,
        baseline: float | None = None,
    ):
        self.intrinsics = np.asarray(intrinsics, dtype=np.float64)
        if self.intrinsics.shape != (3, 3):
            raise ValueError(f"intrinsics must be 3x3, got {self.intrinsics.shape}")
        self._inv_intrinsics = np.linalg.inv(self.intrinsics)

        self.extrinsic = np.eye(4) if extrinsic is None else np.asarray(extrinsic, dtype=np.float64)
        self._inv_extrinsic = np.linalg.inv(self.extrinsic)

        self.depth_scale = depth_scale
        self.baseline = baseline

        self._color = color
        self._depth = depth

    def set_frames(self, color: np.ndarray, depth: np.ndarray) -> None:
        """Replace the current color and depth frames."""
        self._color = color
        self._depth = depth

    @property
    def color(self) -> np.ndarray:
        return self._color

    @property
    def depth(self) -> np.ndarray:
        return self._depth

    @property
    def inv_intrinsic_matrix(self) -> np.ndarray:
        return self._inv_intrinsics

    def disparity_to_depth(self, values):
        values = np.asarray(values, dtype=np.float32)
        if self.baseline is None:
            return values * np.float32(self.depth_scale)

        focal = np.float32(self.intrinsics[0, 0] * self.baseline)
        with np.errstate(divide="ignore", invalid="ignore"):
            return np.where(values > 0, focal / values, np.float32(0)).astype(np.float32)

    def pixel_to_camera(self, x, y, depth) -> np.ndarray:
        x, y, z = np.broadcast_arrays(
            np.asarray(x, dtype=np.float64),
            np.asarray(y, dtype=np.float64),
            np.asarray(depth, dtype=np.float64),
        )
        scaled = np.stack([x * z, y * z, z], axis=-1)
        camera = scaled @ self._inv_intrinsics.T
        return np.concatenate([camera, np.ones(camera.shape[:-1] + (1,))], axis=-1)

    def camera_to_pixel(self, point) -> np.ndarray:
        point = np.asarray(point, dtype=np.float64)[..., :3]
        projected = point @ self.intrinsics.T
        z = point[..., 2]
        with np.errstate(divide="ignore", invalid="ignore"):
            u = np.where(z != 0, projected[..., 0] / projected[..., 2], 0.0)
            v = np.where(z != 0, projected[..., 1] / projected[..., 2], 0.0)
        return np.stack([u, v, z], axis=-1)

    def pixel_to_world(self, x, y, depth) -> np.ndarray:
        camera = self.pixel_to_camera(x, y, depth)
        return (camera @ self.extrinsic.T)[..., :3]

    def world_to_pixel(self, point) -> np.ndarray:
        point = np.asarray(point, dtype=np.float64)[..., :3]
        homogeneous = np.concatenate([point, np.ones(point.shape[:-1] + (1,))], axis=-1)
        camera = homogeneous @ self._inv_extrinsic.T
        return self.camera_to_pixel(camera)
