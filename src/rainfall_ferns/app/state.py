"""
Application state.

One frozen snapshot owned by the controller. Every change produces a
new snapshot via dataclasses.replace; nothing is patched in place, so
a resize or late load never leaves half-updated anchors behind.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

from ..common.config import Config
from ..common.coords import FittedProjection
from ..common.io import FeatureCollection, LoadError, load_boundaries
from ..common.rainfall import RainfallTable, load_rainfall_table
from ..geometry.anchors import AnchorSet
from ..geometry.fern import FernCloud
from ..geometry.scene import Camera, Label
from .stepper import TimeCursor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppState:
    viewport: Tuple[int, int]
    camera: Camera
    cursor: TimeCursor = field(default_factory=TimeCursor)
    boundaries: Optional[FeatureCollection] = None
    projection: Optional[FittedProjection] = None
    anchors: AnchorSet = field(default_factory=AnchorSet)
    outlines: np.ndarray = field(default_factory=lambda: np.empty((0, 2, 2)))
    labels: Tuple[Label, ...] = ()
    table: Optional[RainfallTable] = None
    ferns: Tuple[FernCloud, ...] = ()
    status: str = "Loading…"
    boundary_error: Optional[str] = None
    data_error: Optional[str] = None

    @property
    def has_map(self) -> bool:
        return self.projection is not None


@dataclass
class LoadResult:
    """Outcome of both startup loads; each side fails independently."""
    boundaries: Optional[FeatureCollection] = None
    boundary_error: Optional[BaseException] = None
    table: Optional[RainfallTable] = None
    data_error: Optional[BaseException] = None

    @property
    def errors(self) -> List[BaseException]:
        return [e for e in (self.boundary_error, self.data_error) if e is not None]


def _settle(label: str, outcome):
    if isinstance(outcome, BaseException):
        if not isinstance(outcome, Exception):
            raise outcome
        # LoadError is an expected failure; anything else gets a traceback
        logger.error(f"{label} load failed: {outcome}",
                     exc_info=None if isinstance(outcome, LoadError) else outcome)
        return None, outcome
    return outcome, None


async def load_sources(config: Config) -> LoadResult:
    """
    Load boundaries and rainfall concurrently.

    Both loads run in worker threads and are awaited together; a
    failure on one side is recorded without cancelling the other.
    """
    boundary_outcome, table_outcome = await asyncio.gather(
        asyncio.to_thread(load_boundaries, config.boundary_source, config.request_timeout_s),
        asyncio.to_thread(load_rainfall_table, config.data_source, config),
        return_exceptions=True,
    )
    boundaries, boundary_error = _settle("Boundary", boundary_outcome)
    table, data_error = _settle("Rainfall", table_outcome)
    return LoadResult(
        boundaries=boundaries,
        boundary_error=boundary_error,
        table=table,
        data_error=data_error,
    )
