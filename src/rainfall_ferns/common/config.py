"""
Configuration and constants for the rainfall fern map.

Coordinate frames:
- Boundary coordinates: lon/lat degrees or planar (e.g. UTM meters)
- Screen: projected pixels, origin top-left, y down
- Scene: screen shifted to a centered origin, y up (anchors, camera)
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any, Tuple
import json
import logging
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

MONTHS: Tuple[str, ...] = (
    "JAN", "FEB", "MAR", "APR", "MAY", "JUN",
    "JUL", "AUG", "SEP", "OCT", "NOV", "DEC",
)


@dataclass(frozen=True)
class AnchorOverride:
    """
    Manual placement for one region.

    position: scene-space (x, y) replacing the computed centroid
    scale: display scale replacing the default of 1.0
    """
    position: Optional[Tuple[float, float]] = None
    scale: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.position is not None:
            out["position"] = list(self.position)
        if self.scale is not None:
            out["scale"] = self.scale
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnchorOverride":
        position = data.get("position")
        scale = data.get("scale")
        return cls(
            position=(float(position[0]), float(position[1])) if position is not None else None,
            scale=float(scale) if scale is not None else None,
        )


# Island groups cover little map area; keep their ferns small.
DEFAULT_OVERRIDES: Dict[str, AnchorOverride] = {
    "Andaman & Nicobar Islands": AnchorOverride(scale=0.6),
    "Lakshadweep": AnchorOverride(scale=0.5),
}


@dataclass
class Config:
    """
    Global configuration for the fern map.

    Sources may be local paths or http(s) URLs. Viewport size only
    seeds the first layout; resizes recompute everything.
    """

    # Input documents
    boundary_source: str = "data/india_subdivisions.topo.json"
    data_source: str = "data/rainfall_india.csv"
    request_timeout_s: float = 30.0

    # Tabular layout
    region_field: str = "SUBDIVISION"
    year_field: str = "YEAR"
    delimiter: str = ","

    # Viewport (pixels)
    width: int = 1280
    height: int = 800

    # Animation
    month_interval_ms: int = 1200
    frame_interval_ms: int = 50

    # Fern appearance
    fern_size: float = 3.2          # scene units per IFS unit
    point_scale: float = 1.0        # multiplies every style's point count
    seed: Optional[int] = None

    # Manual anchors and extra name aliases
    overrides: Dict[str, AnchorOverride] = field(default_factory=lambda: dict(DEFAULT_OVERRIDES))
    aliases: Dict[str, str] = field(default_factory=dict)

    output_dir: Path = field(default_factory=lambda: Path("outputs"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "boundary_source": self.boundary_source,
            "data_source": self.data_source,
            "request_timeout_s": self.request_timeout_s,
            "region_field": self.region_field,
            "year_field": self.year_field,
            "delimiter": self.delimiter,
            "width": self.width,
            "height": self.height,
            "month_interval_ms": self.month_interval_ms,
            "frame_interval_ms": self.frame_interval_ms,
            "fern_size": self.fern_size,
            "point_scale": self.point_scale,
            "seed": self.seed,
            "overrides": {name: o.to_dict() for name, o in self.overrides.items()},
            "aliases": dict(self.aliases),
            "output_dir": str(self.output_dir),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        data = dict(data)
        if "overrides" in data:
            data["overrides"] = {
                name: AnchorOverride.from_dict(o or {}) for name, o in data["overrides"].items()
            }
        if "output_dir" in data:
            data["output_dir"] = Path(data["output_dir"])
        unknown = set(data) - set(cls.__dataclass_fields__)
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {sorted(unknown)}")
            for key in unknown:
                data.pop(key)
        return cls(**data)

    @classmethod
    def from_file(cls, path: Path) -> "Config":
        """Load config from a JSON or YAML file."""
        path = Path(path)
        with open(path) as f:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f) or {}
            else:
                data = json.load(f)
        logger.info(f"Loaded config from {path}")
        return cls.from_dict(data)

    def save(self, path: Path) -> None:
        """Save config to JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)


# Global default config
DEFAULT_CONFIG = Config()
