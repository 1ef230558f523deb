"""Tests for camera geometry, windows and rectangle clamping."""

import numpy as np
import pytest
import sys
from pathlib import Path

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from conftest import INTRINSICS
from depthtrack import InvalidFrameError, InvalidWindowError, PinholeView, TrackingWindow, clamp_region


class TestClampRegion:
    """Test cases for clamp_region."""

    @pytest.mark.parametrize("size", [(160, 120), (1, 1), (7, 300)])
    def test_result_inside_frame(self, size):
        """Test clamped rectangles always lie inside the frame."""
        width, height = size
        rng = np.random.default_rng(0)
        for _ in range(200):
            rect = tuple(int(v) for v in rng.integers(-400, 400, size=4))
            x, y, w, h = clamp_region(rect, size)
            assert 0 <= x < width
            assert 0 <= y < height
            assert w >= 0 and h >= 0
            assert x + w <= width
            assert y + h <= height

    def test_inside_rect_unchanged(self):
        """Test a rectangle already inside the frame is returned unchanged."""
        assert clamp_region((10, 20, 30, 40), (160, 120)) == (10, 20, 30, 40)

    def test_overhanging_rect_cropped(self):
        """Test a rectangle overhanging the bottom-right is cropped."""
        assert clamp_region((150, 100, 30, 40), (160, 120)) == (150, 100, 10, 20)


class TestTrackingWindow:
    """Test cases for TrackingWindow."""

    def test_zero_size_rejected(self):
        """Test zero-size windows fail loudly."""
        with pytest.raises(InvalidWindowError):
            TrackingWindow(0, 0, 0, 10)
        with pytest.raises(ValueError):
            TrackingWindow(0, 0, 10, -1)

    def test_center_and_move(self):
        """Test moving a window keeps its size and centers it."""
        window = TrackingWindow(60, 40, 40, 40, z=2.0, z_range=0.1)
        assert window.center == (80, 60)

        moved = window.moved_to(90.4, 65.6)
        assert moved.center == (90, 66)
        assert (moved.width, moved.height) == (40, 40)
        assert moved.z == 2.0

    def test_clamped(self):
        """Test clamping keeps the window inside the frame."""
        window = TrackingWindow(-10, 100, 40, 40).clamped(160, 120)
        assert window.rect == (0, 80, 40, 40)

        window = TrackingWindow(5, 5, 400, 40).clamped(160, 120)
        assert window.rect == (0, 5, 160, 40)

    def test_enlarged(self):
        """Test enlarging around the center."""
        window = TrackingWindow(60, 40, 40, 40)
        assert window.enlarged(2.0) == (40, 20, 80, 80)


class TestPinholeView:
    """Test cases for PinholeView."""

    def test_principal_point_maps_to_optical_axis(self):
        """Test the principal point back-projects onto the optical axis."""
        view = PinholeView(INTRINSICS)
        np.testing.assert_allclose(view.pixel_to_camera(80, 60, 2.0), [0.0, 0.0, 2.0, 1.0])

    def test_camera_pixel_round_trip(self):
        """Test camera_to_pixel inverts pixel_to_camera on arrays."""
        view = PinholeView(INTRINSICS)
        xs = np.array([0.0, 35.0, 159.0])
        ys = np.array([0.0, 90.0, 119.0])
        zs = np.array([1.0, 2.5, 4.0])

        pixels = view.camera_to_pixel(view.pixel_to_camera(xs, ys, zs))
        np.testing.assert_allclose(pixels[:, 0], xs)
        np.testing.assert_allclose(pixels[:, 1], ys)
        np.testing.assert_allclose(pixels[:, 2], zs)

    def test_world_transform(self):
        """Test world coordinates apply the camera-to-world extrinsic."""
        extrinsic = np.eye(4)
        extrinsic[:3, 3] = [1.0, 2.0, 3.0]
        view = PinholeView(INTRINSICS, extrinsic=extrinsic)

        world = view.pixel_to_world(90, 60, 2.0)
        np.testing.assert_allclose(world, [1.2, 2.0, 5.0])
        np.testing.assert_allclose(view.world_to_pixel(world), [90.0, 60.0, 2.0])

    def test_disparity_conversion(self):
        """Test stereo disparity converts to depth and zero disparity to zero."""
        view = PinholeView(INTRINSICS, baseline=0.1)
        depth = view.disparity_to_depth(np.array([10, 0, 5], dtype=np.uint8))
        np.testing.assert_allclose(depth, [1.0, 0.0, 2.0])

    def test_depth_scale(self):
        """Test linear depth scaling."""
        view = PinholeView(INTRINSICS, depth_scale=0.001)
        assert float(view.disparity_to_depth(1500)) == pytest.approx(1.5)

    def test_validate(self, scene):
        """Test frame validation."""
        color, depth = scene()
        view = PinholeView(INTRINSICS, color, depth)
        view.validate()

        view.set_frames(color, depth[:, :-1])
        with pytest.raises(InvalidFrameError):
            view.validate()

        view.set_frames(np.zeros((0, 0, 3), dtype=np.uint8), depth)
        with pytest.raises(InvalidFrameError):
            view.validate()
