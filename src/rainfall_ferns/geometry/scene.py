"""
Composed frame: everything a sink needs to draw one frame.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

import numpy as np

from .fern import FernCloud


@dataclass(frozen=True)
class Camera:
    """Orthographic camera bounds in scene units (centered, y up)."""
    left: float
    right: float
    top: float
    bottom: float
    near: float = -1000.0
    far: float = 1000.0

    @classmethod
    def for_viewport(cls, width: float, height: float) -> "Camera":
        return cls(left=-width / 2, right=width / 2, top=height / 2, bottom=-height / 2)

    @property
    def xlim(self) -> Tuple[float, float]:
        return (self.left, self.right)

    @property
    def ylim(self) -> Tuple[float, float]:
        return (self.bottom, self.top)


@dataclass(frozen=True)
class Label:
    text: str
    position: Tuple[float, float]


@dataclass
class Scene:
    """One frame of the map."""
    camera: Camera
    outlines: np.ndarray = field(default_factory=lambda: np.empty((0, 2, 2)))
    labels: List[Label] = field(default_factory=list)
    ferns: List[FernCloud] = field(default_factory=list)
    status: str = ""
    year: Any = None
    month: str = ""

    @property
    def n_points(self) -> int:
        return sum(f.n_points for f in self.ferns)

    def extras(self) -> Dict[str, Any]:
        """Frame metadata for exporters."""
        return {
            "year": self.year,
            "month": self.month,
            "status": self.status,
            "regions": [f.to_dict() for f in self.ferns],
        }
