"""
Rainfall Ferns - animated rainfall map.

Region boundaries are drawn as outlines and every region carries a
Barnsley fern whose color and density encode its monthly rainfall.
The month animates on a timer; the year is picked by the operator.

Usage:
    rainfall-ferns --boundaries data/india_subdivisions.topo.json \
                   --data data/rainfall_india.csv --show
    rainfall-ferns --boundaries ... --data ... --year 2015 --output outputs
"""

__version__ = "1.0.0"
