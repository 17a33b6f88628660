"""
Data I/O utilities.

Handles fetching the two input documents (local path or http(s) URL),
decoding boundary documents into a single polygon feature model and
splitting the delimited rainfall text into records.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union
from dataclasses import dataclass, field

import numpy as np
import requests

from .topology import topology_to_features

logger = logging.getLogger(__name__)

# Property names that may carry a region's display name, highest priority first
NAME_FIELDS: Tuple[str, ...] = (
    "SUBDIVISION",
    "SUB-DIV",
    "MET_SUBDIV",
    "DIVISION",
    "NAME_1",
    "NAME",
    "name",
)


class LoadError(Exception):
    """An input document could not be fetched or decoded."""

    def __init__(self, source: str, message: str):
        super().__init__(f"Failed to load {source}: {message}")
        self.source = str(source)


@dataclass
class Feature:
    """
    One boundary feature.

    polygons is a list of polygons; each polygon is a list of (N, 2)
    rings, exterior first. A Polygon geometry gives one entry, a
    MultiPolygon several, anything else none.
    """
    properties: Dict[str, Any]
    polygons: List[List[np.ndarray]] = field(default_factory=list)

    @property
    def name(self) -> str:
        return feature_name(self.properties)

    @property
    def rings(self) -> List[np.ndarray]:
        return [ring for polygon in self.polygons for ring in polygon]

    @property
    def has_geometry(self) -> bool:
        return any(len(ring) for ring in self.rings)


@dataclass
class FeatureCollection:
    """Normalized boundary document."""
    features: List[Feature]
    source: str = ""

    def __len__(self) -> int:
        return len(self.features)

    @property
    def all_points(self) -> np.ndarray:
        """Return every ring vertex as an Nx2 array."""
        rings = [ring for f in self.features for ring in f.rings if len(ring)]
        if not rings:
            return np.empty((0, 2))
        return np.vstack(rings)

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """Return (x_min, y_min, x_max, y_max) of the raw coordinates."""
        pts = self.all_points
        if len(pts) == 0:
            nan = float("nan")
            return (nan, nan, nan, nan)
        return (
            float(np.min(pts[:, 0])),
            float(np.min(pts[:, 1])),
            float(np.max(pts[:, 0])),
            float(np.max(pts[:, 1])),
        )


def feature_name(properties: Optional[Dict[str, Any]]) -> str:
    """Return the first non-empty candidate name property, or ""."""
    if not properties:
        return ""
    for key in NAME_FIELDS:
        value = properties.get(key)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return ""


def _is_url(source: str) -> bool:
    return source.startswith("http://") or source.startswith("https://")


def fetch_text(source: Union[str, Path], timeout: float = 30.0) -> str:
    """
    Fetch a document from a URL or local path.

    Args:
        source: http(s) URL or filesystem path
        timeout: Request timeout in seconds (URLs only)

    Returns:
        Document text

    Raises:
        LoadError: on HTTP errors, network failures or unreadable files
    """
    source = str(source)
    if _is_url(source):
        try:
            response = requests.get(source, timeout=timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise LoadError(source, str(e)) from e
        logger.debug(f"Fetched {len(response.content)} bytes from {source}")
        try:
            return response.content.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise LoadError(source, f"not UTF-8 text: {e}") from e

    path = Path(source)
    try:
        text = path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        raise LoadError(source, str(e)) from e
    logger.debug(f"Read {len(text)} chars from {path}")
    return text


def _geojson_polygons(geometry: Optional[Dict[str, Any]]) -> List[List[np.ndarray]]:
    if not geometry:
        return []
    gtype = geometry.get("type")
    coords = geometry.get("coordinates") or []
    if gtype == "Polygon":
        polys = [coords]
    elif gtype == "MultiPolygon":
        polys = coords
    elif gtype == "GeometryCollection":
        out: List[List[np.ndarray]] = []
        for member in geometry.get("geometries", []):
            out.extend(_geojson_polygons(member))
        return out
    else:
        return []
    return [[_ring_array(ring) for ring in poly] for poly in polys]


def _ring_array(ring: List[List[float]]) -> np.ndarray:
    """Ring as (N, 2); extra ordinates (altitude) are dropped."""
    if not ring:
        return np.empty((0, 2))
    return np.asarray([p[:2] for p in ring], dtype=np.float64)


def decode_boundaries(data: Dict[str, Any], source: str = "") -> FeatureCollection:
    """
    Normalize a parsed boundary document into a FeatureCollection.

    Accepts a TopoJSON Topology (first object is used) or a GeoJSON
    FeatureCollection, told apart by the "type" field.

    Raises:
        LoadError: for any other document type
    """
    dtype = data.get("type") if isinstance(data, dict) else None

    if dtype == "Topology":
        try:
            raw = topology_to_features(data)
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
            raise LoadError(source, f"invalid topology: {e}") from e
        features = [Feature(properties=r["properties"], polygons=r["polygons"]) for r in raw]
    elif dtype == "FeatureCollection":
        features = []
        try:
            for f in data.get("features", []):
                features.append(Feature(
                    properties=dict(f.get("properties") or {}),
                    polygons=_geojson_polygons(f.get("geometry")),
                ))
        except (ValueError, TypeError, AttributeError) as e:
            raise LoadError(source, f"invalid feature collection: {e}") from e
    else:
        raise LoadError(source, f"Unrecognized data type: {dtype}")

    return FeatureCollection(features=features, source=source)


def load_boundaries(source: Union[str, Path], timeout: float = 30.0) -> FeatureCollection:
    """
    Load a boundary document (TopoJSON or GeoJSON).

    Args:
        source: URL or path of the JSON document
        timeout: Request timeout in seconds

    Returns:
        FeatureCollection with polygon rings in source coordinates

    Raises:
        LoadError: if the fetch fails, the JSON is invalid or the type
            is neither "Topology" nor "FeatureCollection"
    """
    source = str(source)
    text = fetch_text(source, timeout=timeout)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise LoadError(source, f"invalid JSON: {e}") from e

    collection = decode_boundaries(data, source=source)
    n_named = sum(1 for f in collection.features if f.name)
    logger.info(f"Loaded {len(collection)} boundary features ({n_named} named) from {source}")
    return collection


def parse_delimited(text: str, delimiter: str = ",") -> List[Dict[str, str]]:
    """
    Split delimited text into records keyed by the header fields.

    No quoting or escaping is supported. Lines whose field count does
    not match the header are dropped.

    Args:
        text: Document text; first non-empty line is the header
        delimiter: Field separator

    Returns:
        List of {field: value} dicts, values stripped
    """
    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        return []

    header = [h.strip() for h in lines[0].split(delimiter)]
    records = []
    discarded = 0
    for line in lines[1:]:
        values = line.split(delimiter)
        if len(values) != len(header):
            discarded += 1
            continue
        records.append({k: v.strip() for k, v in zip(header, values)})

    if discarded:
        logger.debug(f"Discarded {discarded} malformed lines")
    logger.info(f"Parsed {len(records)} records with {len(header)} fields")
    return records
