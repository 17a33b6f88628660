"""
Interactive matplotlib viewer.

Render loop: FuncAnimation redraws the controller's current Scene every
frame_interval_ms. A separate canvas timer advances the month every
month_interval_ms. Years are picked with the slider, months can be
jumped to with the timeline buttons. Loads run on a worker thread and
are applied on the UI timeline once they settle, so frames keep coming
while documents are still loading.
"""

import asyncio
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import List, Optional, Tuple

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.animation import FuncAnimation
from matplotlib.collections import LineCollection
from matplotlib.widgets import Button, Slider

from .controller import FernMapController
from .state import LoadResult, load_sources

logger = logging.getLogger(__name__)

BACKGROUND = "#0b0f17"
TEXT_COLOR = "#e9eef6"
MONTH_IDLE = "#1c2433"
MONTH_ACTIVE = "#3d6fb6"


class FernMapViewer:
    """
    Matplotlib front end for a FernMapController.

    Args:
        controller: Map controller (may still be empty)
        figsize: Figure size in inches
    """

    def __init__(self, controller: FernMapController, figsize: Tuple[float, float] = (12.8, 8.0)):
        self.controller = controller
        self.config = controller.config
        self._pending: Optional[Future] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self._label_key: Tuple = ()
        self._label_artists: List = []
        self._year_count = -1

        self.fig = plt.figure(figsize=figsize, facecolor=BACKGROUND)
        self.ax_map = self.fig.add_axes([0.01, 0.12, 0.98, 0.78])
        self.ax_map.set_facecolor(BACKGROUND)
        self.ax_map.set_axis_off()

        self.outlines = LineCollection([], colors=[(1.0, 1.0, 1.0, 0.35)], linewidths=0.6)
        self.ax_map.add_collection(self.outlines)
        self.points = self.ax_map.scatter(
            np.empty(0), np.empty(0), s=0.6, marker=".", linewidths=0
        )
        self.status = self.fig.text(0.01, 0.965, "", color=TEXT_COLOR, fontsize=11, va="top")

        self.ax_year = self.fig.add_axes([0.12, 0.915, 0.76, 0.03])
        self.ax_year.set_visible(False)
        self.year_slider: Optional[Slider] = None

        self.month_buttons: List[Button] = []
        n_months = len(controller.stepper.months)
        width = 0.98 / n_months
        for i, label in enumerate(controller.stepper.months):
            ax = self.fig.add_axes([0.01 + i * width, 0.02, width * 0.94, 0.06])
            button = Button(ax, label, color=MONTH_IDLE, hovercolor=MONTH_ACTIVE)
            button.label.set_color(TEXT_COLOR)
            button.on_clicked(lambda _event, index=i: self.on_month(index))
            self.month_buttons.append(button)

        self.fig.canvas.mpl_connect("resize_event", self.on_resize)
        self.month_timer = self.fig.canvas.new_timer(interval=self.config.month_interval_ms)
        self.month_timer.add_callback(self.on_month_timer)
        self.animation: Optional[FuncAnimation] = None

    # ------------------------------------------------------------------
    # Loading

    def start_loading(self) -> Future:
        """Run both loads on a worker thread; the result is applied by draw_frame."""
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="loader")
        self._pending = self._executor.submit(asyncio.run, load_sources(self.config))
        return self._pending

    def poll_load(self) -> Optional[LoadResult]:
        if self._pending is None or not self._pending.done():
            return None
        future, self._pending = self._pending, None
        result = future.result()
        self.controller.apply_load(result)
        self._executor.shutdown(wait=False)
        self.sync_controls()
        return result

    # ------------------------------------------------------------------
    # Controls

    def sync_controls(self) -> None:
        """(Re)build the year slider when the year list changes."""
        years = self.controller.stepper.years
        if len(years) == self._year_count:
            return
        self._year_count = len(years)
        if self.year_slider is not None:
            self.year_slider.disconnect_events()
        self.ax_year.clear()
        if not years:
            self.ax_year.set_visible(False)
            self.year_slider = None
            return
        self.ax_year.set_visible(True)
        index = self.controller.stepper.cursor.year_index
        self.year_slider = Slider(
            self.ax_year, "Year", 0, max(len(years) - 1, 1),
            valinit=index, valstep=1, color=MONTH_ACTIVE,
        )
        self.year_slider.label.set_color(TEXT_COLOR)
        self.year_slider.valtext.set_color(TEXT_COLOR)
        self.year_slider.valtext.set_text(str(years[index]))
        self.year_slider.on_changed(self.on_year)

    def on_year(self, value: float) -> None:
        index = int(round(value))
        years = self.controller.stepper.years
        if not 0 <= index < len(years):
            return
        self.controller.select_year(index)
        if self.year_slider is not None:
            self.year_slider.valtext.set_text(str(years[index]))

    def on_month(self, index: int) -> None:
        self.controller.select_month(index)

    def on_month_timer(self) -> None:
        self.controller.tick()

    def on_resize(self, _event=None) -> None:
        bbox = self.ax_map.get_window_extent()
        self.controller.resize(int(bbox.width), int(bbox.height))

    # ------------------------------------------------------------------
    # Drawing

    def _sync_labels(self, scene) -> None:
        key = tuple((label.text, label.position) for label in scene.labels)
        if key == self._label_key:
            return
        for artist in self._label_artists:
            artist.remove()
        self._label_artists = []
        for label in scene.labels:
            x, y = label.position
            self._label_artists.append(self.ax_map.text(
                x, y, label.text, fontsize=6, color=TEXT_COLOR, ha="center", va="top",
                bbox={"facecolor": (0, 0, 0, 0.55), "edgecolor": "none", "pad": 1.5},
            ))
        self._label_key = key

    def draw_frame(self, _frame=None):
        """Redraw the current scene; also applies finished loads."""
        self.poll_load()
        scene = self.controller.compose()

        self.ax_map.set_xlim(*scene.camera.xlim)
        self.ax_map.set_ylim(*scene.camera.ylim)
        self.outlines.set_segments(list(scene.outlines))

        if scene.ferns:
            offsets = np.vstack([f.positions[:, :2] for f in scene.ferns])
            colors = np.repeat(
                np.array([f.color for f in scene.ferns]),
                [f.n_points for f in scene.ferns],
                axis=0,
            )
        else:
            offsets = np.empty((0, 2))
            colors = np.empty((0, 3))
        self.points.set_offsets(offsets)
        self.points.set_facecolors(colors)

        self._sync_labels(scene)

        if scene.status:
            self.status.set_text(scene.status)
        elif scene.year is not None:
            self.status.set_text(f"Rainfall {scene.month} {scene.year}")
        else:
            self.status.set_text("No rainfall data")

        active = self.controller.stepper.cursor.month_index
        for i, button in enumerate(self.month_buttons):
            color = MONTH_ACTIVE if i == active else MONTH_IDLE
            button.color = color
            button.ax.set_facecolor(color)

        return [self.outlines, self.points, self.status]

    def show(self, load: bool = True) -> None:
        """Start loads, the render loop and the month timer; blocks until closed."""
        if load:
            self.start_loading()
        self.on_resize()
        self.animation = FuncAnimation(
            self.fig,
            self.draw_frame,
            interval=self.config.frame_interval_ms,
            cache_frame_data=False,
        )
        self.month_timer.start()
        plt.show()
        self.month_timer.stop()
