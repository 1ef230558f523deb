"""Tests for TrackerConfig.

This module tests configuration defaults, validation and serialization.
"""

import json

import pytest
import sys
from pathlib import Path

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from depthtrack import TrackerConfig


class TestTrackerConfig:
    """Test cases for TrackerConfig dataclass."""

    def test_default_values(self):
        """Test default configuration values."""
        config = TrackerConfig()
        assert config.hist_bins == 180
        assert config.max_iterations == 10
        assert config.epsilon == 1e-6
        assert config.bandwidth is None
        assert config.mode == "3d"
        assert config.overlap_thresh == 0.5
        assert config.overlap_metric == "iou"
        assert config.distance_threshold == 180
        assert config.dilate_iterations == 5
        assert config.recovery_fraction == 0.25

    def test_object_percentiles_are_independent(self):
        """Test min and median percentiles are separate parameters."""
        config = TrackerConfig()
        assert config.min_percentile < config.median_percentile < config.max_percentile

        config = TrackerConfig(min_percentile=50.0)
        assert config.min_percentile == config.median_percentile

    def test_presets(self):
        """Test preset constructors."""
        assert TrackerConfig.default() == TrackerConfig()
        assert TrackerConfig.planar().mode == "2d"

    @pytest.mark.parametrize("kwargs", [
        {"hist_bins": 0},
        {"hue_range": (180, 0)},
        {"median_blur_ksize": 4},
        {"z_range_percentiles": (90, 10)},
        {"max_iterations": 0},
        {"epsilon": -1.0},
        {"bandwidth": 0.0},
        {"workers": 0},
        {"mode": "4d"},
        {"search_scale": 0},
        {"distance_threshold": 300},
        {"min_percentile": 60.0},
        {"overlap_metric": "dice"},
        {"recovery_fraction": -0.1},
    ])
    def test_invalid_values(self, kwargs):
        """Test validation rejects out-of-range parameters."""
        with pytest.raises(ValueError):
            TrackerConfig(**kwargs)

    def test_from_dict_ignores_unknown_keys(self):
        """Test creating config from a dictionary with extra keys."""
        config = TrackerConfig.from_dict({"max_iterations": 20, "unknown": 1})
        assert config.max_iterations == 20

    def test_to_dict(self):
        """Test converting config to dictionary."""
        d = TrackerConfig(bandwidth=0.3).to_dict()
        assert d["bandwidth"] == 0.3
        assert d["hue_range"] == [0.0, 180.0]
        assert TrackerConfig.from_dict(d) == TrackerConfig(bandwidth=0.3)

    def test_from_file(self, tmp_path):
        """Test loading config from a JSON file."""
        path = tmp_path / "tracker.json"
        path.write_text(json.dumps({"overlap_metric": "ratio", "workers": 4}), encoding="utf-8")

        config = TrackerConfig.from_file(path)
        assert config.overlap_metric == "ratio"
        assert config.workers == 4
