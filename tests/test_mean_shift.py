"""Tests for the depth-weighted 3D mean-shift."""

import numpy as np
import pytest
import sys
from pathlib import Path

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from conftest import HEIGHT, INTRINSICS, WIDTH
from depthtrack import MeanShiftTracker, PinholeView, TrackingWindow
from depthtrack.mean_shift import accumulate_band, planar_mean_shift

PEAK = (90, 65)


@pytest.fixture
def flat_view():
    """View with constant depth 2.0."""
    color = np.zeros((HEIGHT, WIDTH, 3), dtype=np.uint8)
    depth = np.full((HEIGHT, WIDTH), 2.0, dtype=np.float32)
    return PinholeView(INTRINSICS, color, depth)


@pytest.fixture
def blob():
    """Gaussian probability blob centered on PEAK."""
    yy, xx = np.mgrid[0:HEIGHT, 0:WIDTH]
    return np.exp(-((xx - PEAK[0]) ** 2 + (yy - PEAK[1]) ** 2) / (2 * 4.0 ** 2)).astype(np.float32)


class TestMeanShiftTracker:
    """Test cases for MeanShiftTracker."""

    @pytest.mark.parametrize("start", [(84, 60), (96, 70), (90, 57), (83, 65), (95, 60), (90, 65)])
    def test_converges_to_mode(self, flat_view, blob, start):
        """Test the window moves onto the probability mode from starts within the bandwidth."""
        # A bandwidth of 0.3 at depth 2 spans 15 pixels
        tracker = MeanShiftTracker(max_iterations=20)
        window = TrackingWindow(start[0] - 10, start[1] - 10, 21, 21)

        result = tracker.run(blob, flat_view, window, 2.0, 0.3)

        assert result.converged
        assert result.iterations <= 20
        cx, cy = result.window.center
        assert abs(cx - PEAK[0]) <= 1
        assert abs(cy - PEAK[1]) <= 1
        assert result.z == pytest.approx(2.0)
        assert (result.window.width, result.window.height) == (21, 21)

    def test_zero_probability_keeps_window(self, flat_view):
        """Test a window without any weight stays where it is."""
        tracker = MeanShiftTracker()
        window = TrackingWindow(74, 50, 21, 21)

        result = tracker.run(np.zeros((HEIGHT, WIDTH), dtype=np.float32), flat_view, window, 2.0, 0.3)

        assert result.iterations == 1
        assert not result.converged
        assert result.window == window
        assert result.z == pytest.approx(2.0)

    def test_iteration_limit(self, flat_view, blob):
        """Test the iteration count never exceeds the limit."""
        result = MeanShiftTracker(max_iterations=1).run(blob, flat_view, TrackingWindow(74, 50, 21, 21), 2.0, 0.3)
        assert result.iterations == 1

    def test_window_stays_in_frame(self, flat_view):
        """Test the refined window is clamped to the frame."""
        prob = np.zeros((HEIGHT, WIDTH), dtype=np.float32)
        prob[:5, :5] = 1.0

        result = MeanShiftTracker(max_iterations=20).run(prob, flat_view, TrackingWindow(0, 0, 21, 21), 2.0, 0.3)
        x, y, w, h = result.window.rect
        assert x >= 0 and y >= 0
        assert x + w <= WIDTH and y + h <= HEIGHT

    def test_workers_match_serial(self, flat_view, blob):
        """Test the banded reduction gives the serial result."""
        window = TrackingWindow(74, 50, 21, 21)
        serial = MeanShiftTracker(max_iterations=20).run(blob, flat_view, window, 2.0, 0.3)
        parallel = MeanShiftTracker(max_iterations=20, workers=4).run(blob, flat_view, window, 2.0, 0.3)

        assert parallel.window == serial.window
        assert parallel.z == pytest.approx(serial.z)
        assert parallel.iterations == serial.iterations

    def test_bands_cover_rows(self):
        """Test row bands partition the window rows."""
        bands = MeanShiftTracker(workers=4)._bands(10, 31)
        assert bands[0][0] == 10
        assert bands[-1][1] == 31
        assert all(a[1] == b[0] for a, b in zip(bands[:-1], bands[1:]))

        assert MeanShiftTracker(workers=8)._bands(0, 3) == [(0, 1), (1, 2), (2, 3)]


class TestAccumulateBand:
    """Test cases for the per-band reduction."""

    def test_empty_band(self, flat_view, blob):
        """Test an empty band contributes nothing."""
        weight, sums = accumulate_band(blob, flat_view.depth, flat_view, np.zeros(3), 0.3, (10, 10), (0, 5))
        assert weight == 0.0
        np.testing.assert_array_equal(sums, np.zeros(3))

    def test_weighted_positions(self, flat_view):
        """Test uniform probability yields the camera-space centroid of the band."""
        prob = np.ones((HEIGHT, WIDTH), dtype=np.float32)
        pos = flat_view.pixel_to_camera(80, 60, 2.0)[:3]

        weight, sums = accumulate_band(prob, flat_view.depth, flat_view, pos, 100.0, (70, 91), (50, 71))
        np.testing.assert_allclose(sums / weight, pos, atol=1e-4)


class TestPlanarMeanShift:
    """Test cases for the 2D fallback."""

    def test_moves_towards_blob(self, blob):
        """Test OpenCV mean-shift moves the window onto the blob."""
        window = TrackingWindow(74, 50, 21, 21, z=2.0, z_range=0.1)
        moved = planar_mean_shift(blob, window)

        cx, cy = moved.center
        assert abs(cx - PEAK[0]) <= 1
        assert abs(cy - PEAK[1]) <= 1
        assert moved.z == 2.0 and moved.z_range == 0.1
