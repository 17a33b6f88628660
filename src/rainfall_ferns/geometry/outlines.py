"""
Boundary outlines as line segments in scene space.

Every ring becomes a closed chain of segments, so a collection turns
into one (M, 2, 2) segment array that both the matplotlib viewer
(LineCollection) and the GLB exporter (LINES primitive) consume.
"""

import logging

import numpy as np

from ..common.coords import FittedProjection
from ..common.io import FeatureCollection

logger = logging.getLogger(__name__)


def ring_segments(ring: np.ndarray) -> np.ndarray:
    """
    Closed chain of segments through a (N, 2) ring.

    The closing segment back to the first point is always added, so
    rings that already repeat their first point produce one
    zero-length segment.
    """
    if len(ring) < 2:
        return np.empty((0, 2, 2))
    starts = ring
    ends = np.roll(ring, -1, axis=0)
    return np.stack([starts, ends], axis=1)


def build_outline_segments(collection: FeatureCollection, projection: FittedProjection) -> np.ndarray:
    """
    Project all boundary rings into scene-space segments.

    Args:
        collection: Decoded boundaries
        projection: Fitted projection

    Returns:
        (M, 2, 2) float64 array of [start, end] points
    """
    chunks = []
    for feature in collection.features:
        for ring in feature.rings:
            if len(ring) < 2:
                continue
            scene = projection.to_scene(projection.project(ring))
            if not np.all(np.isfinite(scene)):
                continue
            chunks.append(ring_segments(scene))

    if not chunks:
        return np.empty((0, 2, 2))
    segments = np.concatenate(chunks, axis=0)
    logger.debug(f"Outline: {len(segments)} segments from {len(chunks)} rings")
    return segments
