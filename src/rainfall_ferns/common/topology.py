"""
TopoJSON decoding.

Converts one named object of a Topology into plain polygon geometry:
- arcs are delta-decoded and dequantized when the topology carries a
  transform
- negative arc indices (~i) reference arc i reversed
- consecutive arcs share their joining point, which is kept once
"""

import logging
from typing import Any, Dict, List, Optional

import numpy as np

logger = logging.getLogger(__name__)

Ring = np.ndarray
Polygon = List[Ring]


def decode_arcs(topology: Dict[str, Any]) -> List[np.ndarray]:
    """
    Decode all arcs of a topology to absolute coordinates.

    Args:
        topology: Parsed TopoJSON document

    Returns:
        List of (N, 2) float64 arrays, one per arc
    """
    transform = topology.get("transform")
    arcs = []
    for raw in topology.get("arcs", []):
        pts = np.asarray([p[:2] for p in raw], dtype=np.float64) if raw else np.empty((0, 2))
        if transform is not None and len(pts):
            scale = np.asarray(transform.get("scale", [1.0, 1.0]), dtype=np.float64)
            translate = np.asarray(transform.get("translate", [0.0, 0.0]), dtype=np.float64)
            pts = np.cumsum(pts, axis=0) * scale + translate
        arcs.append(pts)
    return arcs


def _stitch(arc_indices: List[int], arcs: List[np.ndarray]) -> Ring:
    """Join a ring's arcs into one closed (N, 2) coordinate array."""
    pieces = []
    for i, index in enumerate(arc_indices):
        arc = arcs[~index][::-1] if index < 0 else arcs[index]
        # Skip the shared start point of every arc after the first
        pieces.append(arc if i == 0 else arc[1:])
    if not pieces:
        return np.empty((0, 2))
    return np.vstack(pieces)


def _polygons(geometry: Dict[str, Any], arcs: List[np.ndarray]) -> List[Polygon]:
    gtype = geometry.get("type")
    if gtype == "Polygon":
        return [[_stitch(ring, arcs) for ring in geometry.get("arcs", [])]]
    if gtype == "MultiPolygon":
        return [
            [_stitch(ring, arcs) for ring in polygon]
            for polygon in geometry.get("arcs", [])
        ]
    if gtype == "GeometryCollection":
        out: List[Polygon] = []
        for member in geometry.get("geometries", []):
            out.extend(_polygons(member, arcs))
        return out
    return []


def topology_to_features(
    topology: Dict[str, Any],
    object_name: Optional[str] = None
) -> List[Dict[str, Any]]:
    """
    Extract polygon features from a Topology.

    Args:
        topology: Parsed TopoJSON document (type == "Topology")
        object_name: Object to extract; defaults to the first one

    Returns:
        List of {"properties": dict, "polygons": [[ring, ...], ...]}
    """
    objects = topology.get("objects") or {}
    if not objects:
        raise ValueError("Topology has no objects")
    if object_name is None:
        object_name = next(iter(objects))
    obj = objects[object_name]
    arcs = decode_arcs(topology)

    if obj.get("type") == "GeometryCollection":
        members = obj.get("geometries", [])
    else:
        members = [obj]

    features = []
    dropped = 0
    for member in members:
        polygons = _polygons(member, arcs)
        if not polygons:
            dropped += 1
        features.append({
            "properties": dict(member.get("properties") or {}),
            "polygons": polygons,
        })

    logger.info(f"Decoded topology object '{object_name}': {len(features)} features, {len(arcs)} arcs")
    if dropped:
        logger.debug(f"{dropped} topology members had no polygonal geometry")
    return features
