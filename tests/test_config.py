"""
Tests for ReaderConfiguration validation and settings persistence.

Usage:
    pytest tests/test_config.py
"""

import json
import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from segreader.config import DEFAULT_DEBUG_MASK_COLORS, ReaderConfiguration
from segreader.settings import (
    DEFAULT_SETTINGS,
    configuration_from_settings,
    load_settings,
    save_settings,
    update_settings,
)


def test_defaults():
    config = ReaderConfiguration()
    assert config.gray_threshold == 90
    assert config.decimal_point_flood_fill_threshold == 40
    assert config.rotate180 is False
    assert config.reach == 7
    assert config.horizontal_reach == 6
    assert config.decimal_point_radius == 6
    assert config.min_hole_pixels == 10
    assert config.refine_ratio == 0.7
    assert len(config.debug_mask_colors) == 6


@pytest.mark.parametrize("value", [0, 255, -5, 300, "50", None, True, float("nan")])
def test_invalid_threshold_is_ignored(value):
    config = ReaderConfiguration()
    config.gray_threshold = value
    config.decimal_point_flood_fill_threshold = value
    assert config.gray_threshold == 90
    assert config.decimal_point_flood_fill_threshold == 40


@pytest.mark.parametrize("value", [1, 128, 254, 12.5])
def test_valid_threshold_is_kept(value):
    config = ReaderConfiguration()
    config.gray_threshold = value
    assert config.gray_threshold == value


def test_rotate180_accepts_only_booleans():
    config = ReaderConfiguration()
    config.rotate180 = True
    assert config.rotate180 is True
    for value in (0, 1, "yes", None):
        config.rotate180 = value
        assert config.rotate180 is True


def test_geometry_must_be_positive_int():
    config = ReaderConfiguration()
    config.reach = 9
    config.reach = 0
    config.reach = 2.5
    assert config.reach == 9

    config.refine_ratio = 1.5
    assert config.refine_ratio == 0.7
    config.refine_ratio = 0.8
    assert config.refine_ratio == 0.8


def test_debug_mask_colors_validation():
    config = ReaderConfiguration()
    config.debug_mask_colors = [((1, 2, 3), (4, 5, 6))]        # too few digits
    assert config.debug_mask_colors == DEFAULT_DEBUG_MASK_COLORS
    config.debug_mask_colors = "red"
    assert config.debug_mask_colors == DEFAULT_DEBUG_MASK_COLORS

    colors = [[[i, i, i], [255, i, 0]] for i in range(6)]
    config.debug_mask_colors = colors
    assert config.debug_mask_colors[5] == ((5, 5, 5), (255, 5, 0))


def test_keyword_overrides():
    config = ReaderConfiguration(gray_threshold=60, rotate180=True)
    assert config.gray_threshold == 60
    assert config.rotate180 is True

    with pytest.raises(TypeError):
        ReaderConfiguration(grey_threshold=60)


def test_dict_round_trip_skips_unknown_keys():
    config = ReaderConfiguration(gray_threshold=70, reach=8)
    data = config.to_dict()
    data["source"] = "camera"
    data["horizontal_reach"] = -1

    restored = ReaderConfiguration.from_dict(data)
    assert restored.gray_threshold == 70
    assert restored.reach == 8
    assert restored.horizontal_reach == 6
    assert json.loads(json.dumps(config.to_dict())) == config.to_dict()


def test_load_missing_settings_returns_defaults(tmp_path):
    assert load_settings(tmp_path / "config.json") == DEFAULT_SETTINGS


def test_load_invalid_settings_returns_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json", encoding="utf-8")
    assert load_settings(path) == DEFAULT_SETTINGS

    path.write_text("[1, 2]", encoding="utf-8")
    assert load_settings(path) == DEFAULT_SETTINGS


def test_save_and_load_settings(tmp_path):
    path = tmp_path / "config.json"
    settings = load_settings(path)
    config = configuration_from_settings(settings)
    config.gray_threshold = 120
    config.rotate180 = True
    settings["source"] = "camera"

    save_settings(update_settings(settings, config), path)
    loaded = load_settings(path)

    assert loaded["source"] == "camera"
    assert loaded["region"] == DEFAULT_SETTINGS["region"]
    restored = configuration_from_settings(loaded)
    assert restored.gray_threshold == 120
    assert restored.rotate180 is True


def test_partial_settings_are_merged_with_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"gray_threshold": 33}), encoding="utf-8")
    loaded = load_settings(path)
    assert loaded["gray_threshold"] == 33
    assert loaded["source"] == "screen"
