"""
Barnsley fern point clouds.

A region's rainfall picks a style (color + point count) from fixed,
ordered thresholds; the fern itself comes from a four-map iterated
function system. The shape envelope is fixed; only the scatter of
individual points varies between generations.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FernStyle:
    """Visual style for one rainfall band. upper is inclusive."""
    name: str
    upper: float
    color: Tuple[float, float, float]
    n_points: int


# Monthly rainfall in mm, ascending and non-overlapping
FERN_STYLES: Tuple[FernStyle, ...] = (
    FernStyle("dry", 0.0, (0.55, 0.45, 0.30), 150),
    FernStyle("sparse", 50.0, (0.72, 0.78, 0.35), 400),
    FernStyle("light", 150.0, (0.45, 0.80, 0.40), 900),
    FernStyle("moderate", 300.0, (0.20, 0.75, 0.45), 1800),
    FernStyle("heavy", 600.0, (0.15, 0.60, 0.85), 3200),
    FernStyle("extreme", math.inf, (0.35, 0.35, 1.00), 5000),
)

UNKNOWN_STYLE = FernStyle("unknown", math.nan, (0.30, 0.30, 0.30), 80)


def fern_style(value: Optional[float]) -> FernStyle:
    """
    Style for a rainfall value.

    Args:
        value: Monthly rainfall; None/NaN/inf mean unknown

    Returns:
        First style whose inclusive upper bound holds the value
    """
    if value is None:
        return UNKNOWN_STYLE
    try:
        value = float(value)
    except (TypeError, ValueError):
        return UNKNOWN_STYLE
    if not math.isfinite(value):
        return UNKNOWN_STYLE
    for style in FERN_STYLES:
        if value <= style.upper:
            return style
    return FERN_STYLES[-1]


# (a, b, c, d, e, f, p):  x' = a*x + b*y + e,  y' = c*x + d*y + f
FERN_MAPS = np.array([
    [0.00, 0.00, 0.00, 0.16, 0.0, 0.00, 0.01],
    [0.85, 0.04, -0.04, 0.85, 0.0, 1.60, 0.85],
    [0.20, -0.26, 0.23, 0.22, 0.0, 1.60, 0.07],
    [-0.15, 0.28, 0.26, 0.24, 0.0, 0.44, 0.07],
])

# Cumulative breakpoints for maps 2 and 3; map 1 uses its own p column
FERN_BREAKPOINTS = (0.86, 0.93)

# Attractor spans roughly x in [-2.2, 2.7], y in [0, 10]
FERN_HEIGHT = 10.0

# Plain-float copies for the per-point loop
_MAP_ROWS = tuple(tuple(float(v) for v in row[:6]) for row in FERN_MAPS)
_FIRST_P = float(FERN_MAPS[0, 6])


def select_map(r: float) -> int:
    """Index of the affine map chosen for a uniform draw r in [0, 1)."""
    if r < _FIRST_P:
        return 0
    if r < FERN_BREAKPOINTS[0]:
        return 1
    if r < FERN_BREAKPOINTS[1]:
        return 2
    return 3


def iterate_fern(n_points: int, rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """
    Run the IFS from the origin, emitting every updated state.

    Args:
        n_points: Number of iterations / points
        rng: Random generator (default: fresh, unseeded)

    Returns:
        (n_points, 2) float64 array in IFS units
    """
    rng = rng or np.random.default_rng()
    rows = _MAP_ROWS
    points = [None] * n_points
    x, y = 0.0, 0.0
    for i, r in enumerate(rng.random(n_points).tolist()):
        a, b, c, d, e, f = rows[select_map(r)]
        x, y = a * x + b * y + e, c * x + d * y + f
        points[i] = (x, y)
    return np.array(points, dtype=np.float64).reshape(n_points, 2)


@dataclass
class FernCloud:
    """
    A region's fern, ready to draw.

    positions are scene-space (N, 3) float32 points, z = 0.
    """
    key: str
    name: str
    style: FernStyle
    value: float
    anchor: np.ndarray
    positions: np.ndarray
    scale: float = 1.0

    @property
    def color(self) -> Tuple[float, float, float]:
        return self.style.color

    @property
    def n_points(self) -> int:
        return len(self.positions)

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "name": self.name,
            "style": self.style.name,
            "value": None if not math.isfinite(self.value) else self.value,
            "anchor": [float(v) for v in self.anchor],
            "n_points": self.n_points,
        }


def grow_fern(
    key: str,
    name: str,
    value: float,
    anchor: np.ndarray,
    size: float = 3.2,
    scale: float = 1.0,
    point_scale: float = 1.0,
    rng: Optional[np.random.Generator] = None
) -> FernCloud:
    """
    Generate a region's fern at its anchor.

    The fern's base sits at the anchor and grows upward. size is
    scene units per IFS unit; scale is the region's display scale.

    Args:
        key: Canonical region key
        name: Display name
        value: Rainfall (NaN for unknown)
        anchor: (2,) scene position
        size: Scene units per IFS unit
        scale: Region display scale
        point_scale: Multiplier on the style's point count
        rng: Random generator

    Returns:
        FernCloud
    """
    style = fern_style(value)
    n = max(1, int(round(style.n_points * point_scale)))
    ifs = iterate_fern(n, rng)

    k = size * scale
    anchor = np.asarray(anchor, dtype=np.float64).reshape(2)
    positions = np.zeros((n, 3), dtype=np.float32)
    positions[:, 0] = anchor[0] + ifs[:, 0] * k
    positions[:, 1] = anchor[1] + ifs[:, 1] * k
    return FernCloud(
        key=key,
        name=name,
        style=style,
        value=float(value) if value is not None else math.nan,
        anchor=anchor,
        positions=positions,
        scale=float(scale),
    )


def regrow_fern(
    previous: Optional[FernCloud],
    key: str,
    name: str,
    value: float,
    anchor: np.ndarray,
    size: float = 3.2,
    scale: float = 1.0,
    point_scale: float = 1.0,
    rng: Optional[np.random.Generator] = None
) -> FernCloud:
    """
    Update a region's fern for a new value and anchor.

    The previous point scatter is kept when the style and display scale
    still apply: same anchor reuses the positions array as is, a moved
    anchor shifts a copy. Only a style or scale change runs the IFS.
    """
    style = fern_style(value)
    if previous is None or previous.style is not style or previous.scale != float(scale):
        return grow_fern(key, name, value, anchor, size=size, scale=scale,
                         point_scale=point_scale, rng=rng)

    anchor = np.asarray(anchor, dtype=np.float64).reshape(2)
    positions = previous.positions
    if not np.array_equal(anchor, previous.anchor):
        positions = positions.copy()
        positions[:, 0] += np.float32(anchor[0] - previous.anchor[0])
        positions[:, 1] += np.float32(anchor[1] - previous.anchor[1])
    return FernCloud(
        key=key,
        name=name,
        style=style,
        value=float(value) if value is not None else math.nan,
        anchor=anchor,
        positions=positions,
        scale=float(scale),
    )
