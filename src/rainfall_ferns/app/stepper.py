"""
Time cursor and month stepper.

The month animates on a timer and wraps; the year only changes by
explicit selection. advance() never touches the year index.
"""

import logging
from dataclasses import dataclass, replace
from typing import Optional, Sequence, Union

from ..common.config import MONTHS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimeCursor:
    year_index: int = 0
    month_index: int = 0


class MonthStepper:
    """
    Owns the current TimeCursor.

    Args:
        years: Selectable years, ascending
        months: Month labels (twelve)
        cursor: Starting cursor; defaults to the most recent year, first month
    """

    def __init__(
        self,
        years: Sequence[Union[int, float]] = (),
        months: Sequence[str] = MONTHS,
        cursor: Optional[TimeCursor] = None
    ):
        self.years = list(years)
        self.months = tuple(months)
        if cursor is None:
            cursor = TimeCursor(year_index=max(len(self.years) - 1, 0), month_index=0)
        self.cursor = cursor

    @property
    def year(self) -> Optional[Union[int, float]]:
        if not self.years:
            return None
        return self.years[self.cursor.year_index]

    @property
    def month(self) -> str:
        return self.months[self.cursor.month_index]

    def advance(self) -> TimeCursor:
        """Next month, wrapping after the last one. Year index unchanged."""
        self.cursor = replace(
            self.cursor, month_index=(self.cursor.month_index + 1) % len(self.months)
        )
        return self.cursor

    def select_year(self, index: int) -> TimeCursor:
        if not 0 <= index < len(self.years):
            raise IndexError(f"Year index {index} out of range (0..{len(self.years) - 1})")
        self.cursor = replace(self.cursor, year_index=index)
        logger.debug(f"Selected year {self.years[index]}")
        return self.cursor

    def select_year_value(self, year: Union[int, float]) -> TimeCursor:
        """Select a year by value."""
        try:
            index = self.years.index(year)
        except ValueError:
            raise IndexError(f"Year {year} not available") from None
        return self.select_year(index)

    def select_month(self, index: int) -> TimeCursor:
        if not 0 <= index < len(self.months):
            raise IndexError(f"Month index {index} out of range (0..{len(self.months) - 1})")
        self.cursor = replace(self.cursor, month_index=index)
        return self.cursor

    def set_years(self, years: Sequence[Union[int, float]]) -> TimeCursor:
        """Replace the year list; the cursor moves to the most recent year."""
        self.years = list(years)
        self.cursor = replace(self.cursor, year_index=max(len(self.years) - 1, 0))
        return self.cursor
