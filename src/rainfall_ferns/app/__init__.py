"""
Application layer: time stepping, state, controller and viewer.

The viewer (matplotlib) is imported on demand so headless use never
needs a display backend.
"""

from .stepper import TimeCursor, MonthStepper
from .state import AppState, LoadResult, load_sources
from .controller import FernMapController

__all__ = [
    "TimeCursor",
    "MonthStepper",
    "AppState",
    "LoadResult",
    "load_sources",
    "FernMapController",
]
