"""
Map controller: owns the application state and composes frames.

Frame pipeline:
  boundaries → projection → anchors ─┐
                                     ├→ ferns → Scene
  rainfall table → value lookup ─────┘
  month stepper drives the lookup; resize rebuilds projection + anchors
"""

import logging
import math
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

import numpy as np

from ..common.config import Config
from ..common.coords import choose_projection
from ..common.io import FeatureCollection
from ..common.names import AliasTable
from ..common.rainfall import RainfallTable
from ..geometry.anchors import AnchorSet, build_anchors, label_positions
from ..geometry.fern import FernCloud, regrow_fern
from ..geometry.outlines import build_outline_segments
from ..geometry.scene import Camera, Label, Scene
from .state import AppState, LoadResult
from .stepper import MonthStepper, TimeCursor

logger = logging.getLogger(__name__)


class FernMapController:
    """
    Single owner of the map state.

    All mutation happens through this object on one timeline (the UI
    thread or the CLI loop); every change swaps in a new AppState.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        aliases: Optional[AliasTable] = None,
        rng: Optional[np.random.Generator] = None
    ):
        self.config = config or Config()
        self.aliases = aliases or AliasTable.default(self.config.aliases)
        self.rng = rng or np.random.default_rng(self.config.seed)
        self.stepper = MonthStepper()
        width, height = self.config.width, self.config.height
        self.state = AppState(
            viewport=(width, height),
            camera=Camera.for_viewport(width, height),
            cursor=self.stepper.cursor,
        )

    # ------------------------------------------------------------------
    # Loading

    def apply_load(self, result: LoadResult) -> AppState:
        """Merge both settled loads; either side may have failed."""
        if result.boundary_error is not None:
            self.fail_boundaries(result.boundary_error)
        elif result.boundaries is not None:
            self.set_boundaries(result.boundaries)

        if result.data_error is not None:
            self.fail_table(result.data_error)
        elif result.table is not None:
            self.set_table(result.table)

        self.report_resolution()
        return self.state

    def set_boundaries(self, collection: FeatureCollection) -> AppState:
        """Install boundaries; anchors are (re)built and ferns backfilled."""
        self.state = replace(self.state, boundaries=collection, boundary_error=None)
        self._rebuild_map()
        self._regrow()
        return self.state

    def fail_boundaries(self, error: BaseException) -> AppState:
        source = getattr(error, "source", self.config.boundary_source)
        status = (
            f"Failed to load {source}. "
            f"Make sure the file exists and is reachable."
        )
        logger.error(status)
        self.state = replace(
            self.state,
            boundaries=None,
            projection=None,
            anchors=AnchorSet(),
            outlines=np.empty((0, 2, 2)),
            labels=(),
            boundary_error=str(error),
            status=status,
        )
        self._regrow()
        return self.state

    def set_table(self, table: RainfallTable) -> AppState:
        """Install the rainfall table; the cursor moves to the latest year."""
        self.stepper.set_years(table.years)
        self.state = replace(self.state, table=table, data_error=None, cursor=self.stepper.cursor)
        self._regrow()
        return self.state

    def fail_table(self, error: BaseException) -> AppState:
        logger.error(f"Rainfall data unavailable, no ferns will be drawn: {error}")
        self.state = replace(self.state, table=None, data_error=str(error))
        self._regrow()
        return self.state

    # ------------------------------------------------------------------
    # Viewport

    def resize(self, width: int, height: int) -> AppState:
        """
        Recompute projection, anchors, outlines and camera for a viewport.

        Safe to call repeatedly; identical sizes give identical anchors.
        """
        width, height = max(int(width), 1), max(int(height), 1)
        self.state = replace(
            self.state,
            viewport=(width, height),
            camera=Camera.for_viewport(width, height),
        )
        self._rebuild_map()
        self._regrow()
        return self.state

    def _rebuild_map(self) -> None:
        state = self.state
        if state.boundaries is None:
            return
        width, height = state.viewport
        try:
            projection = choose_projection(state.boundaries, width, height)
        except ValueError as e:
            logger.error(f"Cannot project boundaries: {e}")
            self.state = replace(
                state, projection=None, anchors=AnchorSet(), outlines=np.empty((0, 2, 2)),
                labels=(), status=f"No drawable boundaries in {state.boundaries.source}",
            )
            return

        anchors = build_anchors(state.boundaries, projection, self.aliases, self.config.overrides)
        outlines = build_outline_segments(state.boundaries, projection)
        labels = tuple(
            Label(text=name, position=(float(p[0]), float(p[1])))
            for name, p in label_positions(anchors)
        )
        status = "" if state.boundary_error is None else state.status
        self.state = replace(
            state,
            projection=projection,
            anchors=anchors,
            outlines=outlines,
            labels=labels,
            status=status,
        )

    # ------------------------------------------------------------------
    # Time

    def tick(self) -> TimeCursor:
        """Automatic month advance; never changes the year."""
        cursor = self.stepper.advance()
        self.state = replace(self.state, cursor=cursor)
        self._regrow()
        return cursor

    def select_year(self, index: int) -> TimeCursor:
        cursor = self.stepper.select_year(index)
        self.state = replace(self.state, cursor=cursor)
        self._regrow()
        return cursor

    def select_month(self, index: int) -> TimeCursor:
        cursor = self.stepper.select_month(index)
        self.state = replace(self.state, cursor=cursor)
        self._regrow()
        return cursor

    # ------------------------------------------------------------------
    # Ferns

    def table_keys(self) -> Dict[str, str]:
        """Canonical key -> rainfall table region name (first region wins)."""
        return self._index_table_regions()[0]

    def table_key_collisions(self) -> List[Tuple[str, str]]:
        """(dropped region, key) for table regions whose key is already taken."""
        return self._index_table_regions()[1]

    def _index_table_regions(self) -> Tuple[Dict[str, str], List[Tuple[str, str]]]:
        table = self.state.table
        keys: Dict[str, str] = {}
        dropped: List[Tuple[str, str]] = []
        if table is None:
            return keys, dropped
        for region in table.regions:
            key = self.aliases.canonical(region)
            if not key:
                continue
            if key in keys:
                dropped.append((region, key))
            else:
                keys[key] = region
        return keys, dropped

    def resolution_misses(self) -> Tuple[List[str], List[str]]:
        """
        Regions that fail to resolve across datasets.

        Returns:
            (keys with observations but no anchor,
             keys with an anchor but no observations)
        """
        anchors = self.state.anchors
        table_keys = self.table_keys()
        no_anchor = sorted(k for k in table_keys if k not in anchors)
        no_data = sorted(k for k in anchors.positions if k not in table_keys)
        return no_anchor, no_data

    def report_resolution(self) -> None:
        if self.state.table is None:
            return
        collisions = self.table_key_collisions()
        if collisions:
            logger.warning(
                f"{len(collisions)} rainfall regions share a key with an earlier region and are ignored: "
                f"{[region for region, _ in collisions]}"
            )
        if not self.state.has_map:
            return
        no_anchor, no_data = self.resolution_misses()
        if no_anchor:
            logger.warning(f"{len(no_anchor)} rainfall regions have no boundary anchor: {no_anchor}")
        if no_data:
            logger.warning(f"{len(no_data)} boundary regions have no rainfall data: {no_data}")
        if not no_anchor and not no_data and not collisions:
            logger.info("All regions resolved across both datasets")

    def current_value(self, key: str) -> float:
        """Rainfall for a canonical key at the cursor; NaN when unknown."""
        table = self.state.table
        region = self.table_keys().get(key)
        year = self.stepper.year
        if table is None or region is None or year is None:
            return math.nan
        return table.resolve(region, year, self.stepper.month)

    def _regrow(self) -> None:
        state = self.state
        anchors = state.anchors
        table_keys = self.table_keys()
        year = self.stepper.year
        month = self.stepper.month

        previous = {fern.key: fern for fern in state.ferns}
        ferns: List[FernCloud] = []
        unanchored = 0
        for key in sorted(set(anchors.positions) | set(table_keys)):
            anchor = anchors.position(key)
            if anchor is None:
                unanchored += 1
                anchor = np.zeros(2)
            region = table_keys.get(key)
            if region is None or year is None:
                value = math.nan
            else:
                value = state.table.resolve(region, year, month)
            ferns.append(regrow_fern(
                previous.get(key),
                key=key,
                name=anchors.names.get(key) or region or key,
                value=value,
                anchor=anchor,
                size=self.config.fern_size,
                scale=anchors.scale(key),
                point_scale=self.config.point_scale,
                rng=self.rng,
            ))

        if unanchored:
            logger.debug(f"{unanchored} ferns placed at the origin (no anchor)")
        self.state = replace(state, ferns=tuple(ferns))

    # ------------------------------------------------------------------
    # Frames

    def compose(self) -> Scene:
        """Current frame."""
        state = self.state
        return Scene(
            camera=state.camera,
            outlines=state.outlines,
            labels=list(state.labels),
            ferns=list(state.ferns),
            status=state.status,
            year=self.stepper.year,
            month=self.stepper.month,
        )

    def year_frames(self, year_index: Optional[int] = None):
        """
        Yield (name, Scene) for all twelve months of one year.

        The cursor is left on the last month of that year.
        """
        if year_index is not None:
            self.select_year(year_index)
        for month_index in range(len(self.stepper.months)):
            self.select_month(month_index)
            yield f"{self.stepper.year}_{month_index + 1:02d}_{self.stepper.month}", self.compose()
