"""
Projection selection and viewport fitting.

Unit Flow:
Boundary coords (lon/lat degrees, or planar) → planar (x, y) → fitted
screen pixels (origin top-left, y down) → scene (centered, y up)

Geographic input goes through Web Mercator (pyproj); anything outside
lon/lat range is treated as already planar. Both are then fitted to the
viewport with one uniform scale, centered.
"""

import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np
from pyproj import CRS, Transformer

from .io import FeatureCollection

logger = logging.getLogger(__name__)

# Web Mercator is undefined at the poles
MERCATOR_MAX_LAT = 85.0511287798


@dataclass(frozen=True)
class Fit:
    """Uniform scale + translation mapping planar coords into the viewport."""
    scale: float
    tx: float
    ty: float
    width: float
    height: float


def is_geographic(bounds: Tuple[float, float, float, float]) -> bool:
    """True when all four bounds are finite and within lon/lat ranges."""
    x_min, y_min, x_max, y_max = bounds
    if not all(np.isfinite(v) for v in bounds):
        return False
    return (
        abs(x_min) <= 180 and abs(x_max) <= 180
        and abs(y_min) <= 90 and abs(y_max) <= 90
    )


class FittedProjection:
    """
    Base projection: a planar forward transform plus a viewport fit.

    Subclasses implement _planar(). The vertical axis is always flipped
    so that north (or +y) points up on screen.
    """

    kind = "base"

    def __init__(self):
        self.fit: Fit = Fit(scale=1.0, tx=0.0, ty=0.0, width=0.0, height=0.0)

    def _planar(self, x: np.ndarray, y: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        raise NotImplementedError

    def _unfitted(self, points: np.ndarray) -> np.ndarray:
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
        px, py = self._planar(pts[:, 0], pts[:, 1])
        return np.column_stack([np.asarray(px, dtype=np.float64), -np.asarray(py, dtype=np.float64)])

    def fit_size(self, width: float, height: float, collection: FeatureCollection) -> "FittedProjection":
        """
        Fit the collection's projected bounding box into width x height.

        The box is scaled uniformly (aspect preserved) to touch the
        viewport on its constraining axis and centered on the other.

        Raises:
            ValueError: if the collection has no coordinates
        """
        pts = collection.all_points
        if len(pts) == 0:
            raise ValueError("Cannot fit a projection to an empty feature collection")

        raw = self._unfitted(pts)
        finite = raw[np.all(np.isfinite(raw), axis=1)]
        if len(finite) == 0:
            raise ValueError("Projection produced no finite coordinates")

        x0, y0 = finite.min(axis=0)
        x1, y1 = finite.max(axis=0)
        dx, dy = x1 - x0, y1 - y0

        candidates = []
        if dx > 0:
            candidates.append(width / dx)
        if dy > 0:
            candidates.append(height / dy)
        scale = min(candidates) if candidates else 1.0

        tx = (width - scale * (x0 + x1)) / 2
        ty = (height - scale * (y0 + y1)) / 2
        self.fit = Fit(scale=float(scale), tx=float(tx), ty=float(ty),
                       width=float(width), height=float(height))
        return self

    def project(self, points: np.ndarray) -> np.ndarray:
        """
        Project source coordinates to screen pixels.

        Args:
            points: (N, 2) source coordinates

        Returns:
            (N, 2) screen coordinates (y down)
        """
        raw = self._unfitted(points)
        return raw * self.fit.scale + np.array([self.fit.tx, self.fit.ty])

    def to_scene(self, screen: np.ndarray) -> np.ndarray:
        """Screen pixels -> centered, y-up scene coordinates."""
        screen = np.asarray(screen, dtype=np.float64).reshape(-1, 2)
        return np.column_stack([
            screen[:, 0] - self.fit.width / 2,
            self.fit.height / 2 - screen[:, 1],
        ])

    def __call__(self, points: np.ndarray) -> np.ndarray:
        return self.project(points)


class MercatorProjection(FittedProjection):
    """WGS84 lon/lat → Web Mercator meters (EPSG:3857)."""

    kind = "mercator"

    def __init__(self):
        super().__init__()
        self.transformer = Transformer.from_crs(
            CRS.from_epsg(4326), CRS.from_epsg(3857), always_xy=True
        )

    def _planar(self, lon, lat):
        lat = np.clip(lat, -MERCATOR_MAX_LAT, MERCATOR_MAX_LAT)
        return self.transformer.transform(lon, lat)


class IdentityProjection(FittedProjection):
    """Coordinates are already planar; only the fit (and y flip) applies."""

    kind = "identity"

    def _planar(self, x, y):
        return x, y


def choose_projection(collection: FeatureCollection, width: float, height: float) -> FittedProjection:
    """
    Pick and fit a projection for the collection and viewport.

    Args:
        collection: Decoded boundaries
        width: Viewport width in pixels
        height: Viewport height in pixels

    Returns:
        Fitted MercatorProjection for lon/lat input, IdentityProjection otherwise
    """
    bounds = collection.bounds
    projection = MercatorProjection() if is_geographic(bounds) else IdentityProjection()
    projection.fit_size(width, height, collection)
    logger.debug(
        f"Projection {projection.kind} for bounds {bounds}: "
        f"scale={projection.fit.scale:.6g}, viewport={width}x{height}"
    )
    return projection
