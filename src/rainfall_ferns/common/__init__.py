"""
Common modules: configuration, name reconciliation, input loading,
projection and the rainfall table.

Frames (see config.py):
- Source coords → fitted screen pixels (y down) → scene (centered, y up)
"""

from .config import Config, AnchorOverride, MONTHS
from .names import normalize_name, AliasTable
from .io import LoadError, Feature, FeatureCollection, load_boundaries, parse_delimited
from .coords import choose_projection, MercatorProjection, IdentityProjection
from .rainfall import RainfallTable, load_rainfall_table

__all__ = [
    'Config', 'AnchorOverride', 'MONTHS',
    'normalize_name', 'AliasTable',
    'LoadError', 'Feature', 'FeatureCollection', 'load_boundaries', 'parse_delimited',
    'choose_projection', 'MercatorProjection', 'IdentityProjection',
    'RainfallTable', 'load_rainfall_table',
]
