"""
Per-region anchor points.

An anchor is the scene-space position a region's fern grows from:
the area-weighted centroid of the projected boundary, unless a manual
override supplies a position. Anchors depend on the projection fit, so
the whole set is rebuilt whenever boundaries or viewport change.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

import numpy as np
from shapely.geometry import MultiPolygon, Polygon

from ..common.config import AnchorOverride
from ..common.coords import FittedProjection
from ..common.io import Feature, FeatureCollection
from ..common.names import AliasTable, normalize_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnchorSet:
    """
    Anchors keyed by canonical region key.

    positions: key -> (2,) scene position
    scales: key -> display scale (only regions with an override scale)
    names: key -> boundary display name
    skipped: features without a usable name or geometry
    """
    positions: Mapping[str, np.ndarray] = field(default_factory=dict)
    scales: Mapping[str, float] = field(default_factory=dict)
    names: Mapping[str, str] = field(default_factory=dict)
    skipped: int = 0

    def position(self, key: str) -> Optional[np.ndarray]:
        return self.positions.get(key)

    def scale(self, key: str, default: float = 1.0) -> float:
        return self.scales.get(key, default)

    def __len__(self) -> int:
        return len(self.positions)

    def __contains__(self, key: str) -> bool:
        return key in self.positions


def screen_geometry(feature: Feature, projection: FittedProjection):
    """
    Projected feature as a shapely (Multi)Polygon in screen space.

    Returns None when no ring has at least three points.
    """
    polygons = []
    for poly in feature.polygons:
        rings = [projection.project(r) for r in poly if len(r) >= 3]
        rings = [r for r in rings if np.all(np.isfinite(r))]
        if not rings:
            continue
        polygons.append(Polygon(rings[0], rings[1:]))
    if not polygons:
        return None
    if len(polygons) == 1:
        return polygons[0]
    return MultiPolygon(polygons)


def screen_centroid(feature: Feature, projection: FittedProjection) -> Optional[np.ndarray]:
    """
    Area-weighted centroid of the projected feature (screen pixels).

    Zero-area geometry falls back to its bounding-box center.
    """
    geom = screen_geometry(feature, projection)
    if geom is None:
        pts = [projection.project(r) for r in feature.rings if len(r)]
        if not pts:
            return None
        allp = np.vstack(pts)
        return (allp.min(axis=0) + allp.max(axis=0)) / 2
    if geom.area > 0:
        c = geom.centroid
        return np.array([c.x, c.y])
    x0, y0, x1, y1 = geom.bounds
    return np.array([(x0 + x1) / 2, (y0 + y1) / 2])


def index_overrides(overrides: Mapping[str, AnchorOverride]) -> Dict[str, AnchorOverride]:
    """Re-key an override table by normalized name."""
    return {normalize_name(name): o for name, o in overrides.items() if normalize_name(name)}


def find_override(
    key: str,
    raw_key: str,
    overrides: Mapping[str, AnchorOverride],
    aliases: AliasTable
) -> Optional[AnchorOverride]:
    """Look an override up by canonical key, boundary key, or reverse alias."""
    for candidate in (key, raw_key, aliases.reverse(key), aliases.forward(raw_key)):
        if candidate in overrides:
            return overrides[candidate]
    return None


def build_anchors(
    collection: FeatureCollection,
    projection: FittedProjection,
    aliases: AliasTable,
    overrides: Optional[Mapping[str, AnchorOverride]] = None
) -> AnchorSet:
    """
    Compute scene-space anchors for every named boundary feature.

    Args:
        collection: Decoded boundaries
        projection: Projection fitted to the current viewport
        aliases: Boundary → rainfall name mapping
        overrides: Manual anchors keyed by region name (either scheme)

    Returns:
        Fresh AnchorSet; never patched in place
    """
    indexed = index_overrides(overrides or {})
    positions: Dict[str, np.ndarray] = {}
    scales: Dict[str, float] = {}
    names: Dict[str, str] = {}
    skipped = 0
    n_overridden = 0

    for feature in collection.features:
        name = feature.name
        raw_key = normalize_name(name)
        if not raw_key:
            skipped += 1
            continue
        key = aliases.forward(raw_key)

        override = find_override(key, raw_key, indexed, aliases)
        if override is not None and override.position is not None:
            position = np.array(override.position, dtype=np.float64)
            n_overridden += 1
        else:
            centroid = screen_centroid(feature, projection)
            if centroid is None:
                skipped += 1
                continue
            position = projection.to_scene(centroid)[0]

        if override is not None and override.scale is not None:
            scales[key] = float(override.scale)

        if key in positions:
            logger.debug(f"Region '{name}' maps to existing key '{key}'; last feature wins")
        positions[key] = position
        names[key] = name

    if skipped:
        logger.warning(f"Skipped {skipped} boundary features without a usable name or geometry")
    logger.info(f"Built {len(positions)} anchors ({n_overridden} overridden)")
    return AnchorSet(positions=positions, scales=scales, names=names, skipped=skipped)


def label_positions(anchors: AnchorSet) -> List[Tuple[str, np.ndarray]]:
    """(display name, scene position) pairs, sorted by name."""
    return sorted(
        ((anchors.names[k], p) for k, p in anchors.positions.items()),
        key=lambda item: item[0],
    )
