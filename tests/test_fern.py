"""
Tests for fern generation.

Tests cover:
- Threshold → style mapping (inclusive upper bounds, unknown style)
- IFS map selection breakpoints
- Shape envelope stability across generations
- Fern placement at the anchor
"""

import math
import sys
from pathlib import Path

import numpy as np
import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from rainfall_ferns.geometry.fern import (
    FERN_STYLES,
    UNKNOWN_STYLE,
    fern_style,
    grow_fern,
    iterate_fern,
    regrow_fern,
    select_map,
)


# ============== Fixtures ==============

@pytest.fixture
def rng():
    return np.random.default_rng(42)


# ============== Style Tests ==============

class TestFernStyle:
    """Test value → style mapping."""

    def test_upper_bound_inclusive(self):
        assert fern_style(45).name == "sparse"
        assert fern_style(50).name == "sparse"
        assert fern_style(50.0001).name == "light"

    def test_style_is_pure_function_of_band(self):
        assert fern_style(45) == fern_style(50)
        assert fern_style(45).n_points == fern_style(50).n_points
        assert fern_style(45).color == fern_style(50).color

    def test_all_bands(self):
        assert fern_style(-3).name == "dry"
        assert fern_style(0).name == "dry"
        assert fern_style(150).name == "light"
        assert fern_style(300).name == "moderate"
        assert fern_style(600).name == "heavy"
        assert fern_style(600.5).name == "extreme"
        assert fern_style(1e9).name == "extreme"

    def test_unknown(self):
        assert fern_style(None) is UNKNOWN_STYLE
        assert fern_style(float("nan")) is UNKNOWN_STYLE
        assert fern_style(float("inf")) is UNKNOWN_STYLE
        assert fern_style("n/a") is UNKNOWN_STYLE

    def test_unknown_is_dimmest(self):
        assert UNKNOWN_STYLE.n_points < min(s.n_points for s in FERN_STYLES)
        assert all(UNKNOWN_STYLE.color != s.color for s in FERN_STYLES)

    def test_thresholds_ordered(self):
        uppers = [s.upper for s in FERN_STYLES]
        assert uppers == sorted(uppers)
        assert len(set(uppers)) == len(uppers)


# ============== IFS Tests ==============

class TestSelectMap:
    """Test cumulative breakpoints 0.01 / 0.86 / 0.93."""

    @pytest.mark.parametrize("r,expected", [
        (0.0, 0), (0.0099, 0),
        (0.01, 1), (0.8599, 1),
        (0.86, 2), (0.9299, 2),
        (0.93, 3), (0.9999, 3),
    ])
    def test_breakpoints(self, r, expected):
        assert select_map(r) == expected


class TestIterateFern:
    """Test the point cloud envelope."""

    def test_count(self, rng):
        assert iterate_fern(500, rng).shape == (500, 2)

    def test_envelope(self, rng):
        pts = iterate_fern(20000, rng)
        assert pts[:, 0].min() > -2.3 and pts[:, 0].max() < 2.8
        assert pts[:, 1].min() >= 0.0 and pts[:, 1].max() < 10.0

    def test_same_shape_different_scatter(self):
        a = iterate_fern(20000, np.random.default_rng(1))
        b = iterate_fern(20000, np.random.default_rng(2))
        assert not np.array_equal(a, b)
        np.testing.assert_allclose(a.min(axis=0), b.min(axis=0), atol=0.5)
        np.testing.assert_allclose(a.max(axis=0), b.max(axis=0), atol=0.5)
        np.testing.assert_allclose(a.mean(axis=0), b.mean(axis=0), atol=0.15)

    def test_reproducible_with_seed(self):
        a = iterate_fern(1000, np.random.default_rng(7))
        b = iterate_fern(1000, np.random.default_rng(7))
        np.testing.assert_array_equal(a, b)


# ============== Grow Tests ==============

class TestGrowFern:
    """Test fern placement and parameterization."""

    def test_count_and_color_follow_style(self, rng):
        fern = grow_fern("kerala", "Kerala", 120.0, np.array([10.0, -5.0]), rng=rng)
        assert fern.style.name == "light"
        assert fern.n_points == fern.style.n_points
        assert fern.color == fern.style.color
        assert fern.positions.shape == (fern.n_points, 3)
        assert fern.positions.dtype == np.float32

    def test_grows_up_from_anchor(self, rng):
        anchor = np.array([10.0, -5.0])
        fern = grow_fern("k", "K", 120.0, anchor, size=2.0, rng=rng)
        assert fern.positions[:, 1].min() >= anchor[1] - 1e-4
        assert fern.positions[:, 1].max() <= anchor[1] + 20.0
        assert np.all(fern.positions[:, 2] == 0)

    def test_scale_shrinks(self):
        big = grow_fern("k", "K", 120.0, np.zeros(2), size=2.0, scale=1.0, rng=np.random.default_rng(3))
        small = grow_fern("k", "K", 120.0, np.zeros(2), size=2.0, scale=0.5, rng=np.random.default_rng(3))
        np.testing.assert_allclose(small.positions, big.positions * 0.5, rtol=1e-5)

    def test_point_scale(self, rng):
        fern = grow_fern("k", "K", 120.0, np.zeros(2), point_scale=0.5, rng=rng)
        assert fern.n_points == round(fern.style.n_points * 0.5)

    def test_unknown_value(self, rng):
        fern = grow_fern("tn", "Tamil Nadu", math.nan, np.zeros(2), rng=rng)
        assert fern.style is UNKNOWN_STYLE
        assert fern.to_dict()["value"] is None
        assert fern.to_dict()["style"] == "unknown"


# ============== Regrow Tests ==============

class TestRegrowFern:
    """Test scatter reuse across value and anchor updates."""

    @pytest.fixture
    def fern(self, rng):
        return grow_fern("k", "K", 45.0, np.array([10.0, -5.0]), point_scale=0.2, rng=rng)

    def test_same_style_reuses_positions(self, fern, rng):
        updated = regrow_fern(fern, "k", "K", 50.0, np.array([10.0, -5.0]), point_scale=0.2, rng=rng)
        assert updated.positions is fern.positions
        assert updated.value == 50.0
        assert updated.style is fern.style

    def test_moved_anchor_shifts_scatter(self, fern, rng):
        updated = regrow_fern(fern, "k", "K", 45.0, np.array([12.0, -1.0]), point_scale=0.2, rng=rng)
        assert updated.positions is not fern.positions
        np.testing.assert_allclose(updated.positions[:, :2], fern.positions[:, :2] + [2.0, 4.0], atol=1e-4)
        np.testing.assert_array_equal(updated.anchor, [12.0, -1.0])

    def test_style_change_regrows(self, fern, rng):
        updated = regrow_fern(fern, "k", "K", 500.0, np.array([10.0, -5.0]), point_scale=0.2, rng=rng)
        assert updated.style.name == "heavy"
        assert updated.n_points == round(updated.style.n_points * 0.2)

    def test_scale_change_regrows(self, fern, rng):
        updated = regrow_fern(fern, "k", "K", 45.0, np.array([10.0, -5.0]), scale=0.5,
                              point_scale=0.2, rng=rng)
        assert updated.positions is not fern.positions
        assert updated.scale == 0.5

    def test_no_previous(self, rng):
        fern = regrow_fern(None, "k", "K", float("nan"), np.zeros(2), rng=rng)
        assert fern.style is UNKNOWN_STYLE
