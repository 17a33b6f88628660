"""
Tests for the matplotlib viewer (headless, Agg backend).

Tests cover:
- Background load applied on the drawing timeline
- Year slider built once data arrives
- Month buttons and timer callbacks
- Frame drawing of outlines and fern points
"""

import json
import sys
from pathlib import Path

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from rainfall_ferns.common.config import MONTHS, Config
from rainfall_ferns.app.controller import FernMapController
from rainfall_ferns.app.viewer import FernMapViewer


# ============== Fixtures ==============

@pytest.fixture
def config(tmp_path):
    boundaries = {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "properties": {"SUBDIVISION": "Bihar"},
                "geometry": {
                    "type": "Polygon",
                    "coordinates": [[[83.3, 24.3], [88.2, 24.3], [88.2, 27.5], [83.3, 27.5], [83.3, 24.3]]],
                },
            },
        ],
    }
    boundary_path = tmp_path / "b.geojson"
    boundary_path.write_text(json.dumps(boundaries))

    rows = [",".join(["SUBDIVISION", "YEAR", *MONTHS])]
    for year in (1990, 1991):
        rows.append(",".join(["BIHAR", str(year), *("700" for _ in MONTHS)]))
    data_path = tmp_path / "r.csv"
    data_path.write_text("\n".join(rows))

    return Config(
        boundary_source=str(boundary_path),
        data_source=str(data_path),
        seed=3,
        point_scale=0.05,
    )


@pytest.fixture
def viewer(config):
    viewer = FernMapViewer(FernMapController(config), figsize=(6.4, 4.0))
    yield viewer
    plt.close(viewer.fig)


@pytest.fixture
def loaded_viewer(viewer):
    viewer.start_loading().result(timeout=30)
    viewer.poll_load()
    return viewer


# ============== Loading Tests ==============

class TestLoading:
    """Test background loading."""

    def test_initial_status(self, viewer):
        viewer.draw_frame()
        assert viewer.status.get_text() == "Loading…"
        assert viewer.year_slider is None

    def test_poll_before_start(self, viewer):
        assert viewer.poll_load() is None

    def test_load_applied(self, loaded_viewer):
        controller = loaded_viewer.controller
        assert controller.state.has_map
        assert controller.stepper.years == [1990, 1991]
        assert loaded_viewer.poll_load() is None

    def test_slider_built(self, loaded_viewer):
        slider = loaded_viewer.year_slider
        assert slider is not None
        assert slider.val == 1
        assert slider.valtext.get_text() == "1991"


# ============== Control Tests ==============

class TestControls:
    """Test widget callbacks."""

    def test_on_year(self, loaded_viewer):
        loaded_viewer.on_year(0.0)
        assert loaded_viewer.controller.stepper.year == 1990
        assert loaded_viewer.year_slider.valtext.get_text() == "1990"

    def test_on_year_out_of_range_ignored(self, loaded_viewer):
        loaded_viewer.on_year(7.0)
        assert loaded_viewer.controller.stepper.year == 1991

    def test_on_month(self, loaded_viewer):
        loaded_viewer.on_month(6)
        assert loaded_viewer.controller.stepper.month == "JUL"

    def test_month_timer_keeps_year(self, loaded_viewer):
        for _ in range(13):
            loaded_viewer.on_month_timer()
        assert loaded_viewer.controller.stepper.month == "FEB"
        assert loaded_viewer.controller.stepper.year == 1991

    def test_on_resize(self, loaded_viewer):
        loaded_viewer.on_resize()
        width, height = loaded_viewer.controller.state.viewport
        bbox = loaded_viewer.ax_map.get_window_extent()
        assert (width, height) == (int(bbox.width), int(bbox.height))


# ============== Drawing Tests ==============

class TestDrawFrame:
    """Test frame drawing."""

    def test_points_match_scene(self, loaded_viewer):
        loaded_viewer.draw_frame()
        scene = loaded_viewer.controller.compose()
        assert len(loaded_viewer.points.get_offsets()) == scene.n_points
        assert len(loaded_viewer.outlines.get_segments()) == len(scene.outlines)

    def test_status_and_limits(self, loaded_viewer):
        loaded_viewer.on_month(3)
        loaded_viewer.draw_frame()
        assert loaded_viewer.status.get_text() == "Rainfall APR 1991"
        camera = loaded_viewer.controller.state.camera
        assert loaded_viewer.ax_map.get_xlim() == pytest.approx(camera.xlim)

    def test_labels(self, loaded_viewer):
        loaded_viewer.draw_frame()
        assert [t.get_text() for t in loaded_viewer._label_artists] == ["Bihar"]

    def test_active_month_highlighted(self, loaded_viewer):
        loaded_viewer.on_month(2)
        loaded_viewer.draw_frame()
        colors = [b.color for b in loaded_viewer.month_buttons]
        assert colors.count(colors[2]) == 1
        assert colors[0] == colors[1]
