"""
Rainfall table: ingestion and time-indexed lookup.

Records are grouped by the literal region field (no normalization at
this stage) and ordered by year within each region. Lookups fall back
to the closest earlier year, then to the earliest record.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .config import MONTHS, Config
from .io import fetch_text, parse_delimited

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class YearRecord:
    """One region's values for one year. year is NaN when unparsable."""
    region: str
    year: float
    raw_year: str
    months: Mapping[str, float]

    @property
    def has_valid_year(self) -> bool:
        return math.isfinite(self.year)

    def value(self, month: str) -> float:
        value = self.months.get(month)
        if value is None:
            value = self.months.get(month.upper())
        return float(value) if value is not None else float("nan")


def _order_with_fixed_invalid(years: np.ndarray) -> List[int]:
    """
    Positions ordered by year, stable; NaN years stay in their slot.

    Valid years are sorted among the slots they occupied.
    """
    valid_slots = [i for i, y in enumerate(years) if np.isfinite(y)]
    valid_sorted = sorted(valid_slots, key=lambda i: years[i])
    order = list(range(len(years)))
    for slot, source in zip(valid_slots, valid_sorted):
        order[slot] = source
    return order


def _as_year(value: float) -> Union[int, float]:
    return int(value) if float(value).is_integer() else float(value)


class RainfallTable:
    """
    Per-region yearly rainfall records.

    Attributes:
        records: region name -> ordered YearRecord list
        regions: sorted distinct region names
        years: sorted distinct valid years across all regions
        months: month field names, in calendar order
    """

    def __init__(self, records: Dict[str, List[YearRecord]], months: Sequence[str] = MONTHS):
        self.records = records
        self.months = tuple(months)
        self.regions: List[str] = sorted(records)
        years = {
            r.year for seq in records.values() for r in seq if r.has_valid_year
        }
        self.years: List[Union[int, float]] = [_as_year(y) for y in sorted(years)]

    @classmethod
    def from_records(
        cls,
        rows: Iterable[Mapping[str, str]],
        region_field: str = "SUBDIVISION",
        year_field: str = "YEAR",
        months: Sequence[str] = MONTHS,
    ) -> "RainfallTable":
        """
        Build the table from parsed records.

        Args:
            rows: Records as produced by parse_delimited
            region_field: Field holding the region name
            year_field: Field holding the year
            months: Month field names

        Returns:
            RainfallTable
        """
        df = pd.DataFrame(list(rows))
        if df.empty or region_field not in df.columns:
            if not df.empty:
                logger.warning(f"Region field '{region_field}' not found in {df.columns.tolist()}")
            return cls({}, months)

        named = df[region_field].notna() & (df[region_field].astype(str) != "")
        if not named.all():
            logger.warning(f"Dropping {int((~named).sum())} rows without a region name")
        df = df[named]

        raw_years = df[year_field].astype(str) if year_field in df.columns else pd.Series("", index=df.index)
        years = pd.to_numeric(raw_years, errors="coerce")

        values = pd.DataFrame(index=df.index)
        for month in months:
            if month in df.columns:
                values[month] = pd.to_numeric(df[month], errors="coerce")
            else:
                values[month] = np.nan

        n_bad_years = int(years.isna().sum())
        n_bad_values = int(values.isna().to_numpy().sum())
        if n_bad_years:
            logger.warning(f"{n_bad_years} rows have an unparsable '{year_field}'")
        if n_bad_values:
            logger.info(f"{n_bad_values} month values missing or non-numeric")

        records: Dict[str, List[YearRecord]] = {}
        for region, index in df.groupby(region_field, sort=False).groups.items():
            idx = list(index)
            region_years = years.loc[idx].to_numpy(dtype=np.float64)
            seq = []
            for pos in _order_with_fixed_invalid(region_years):
                row = idx[pos]
                seq.append(YearRecord(
                    region=str(region),
                    year=float(region_years[pos]),
                    raw_year=str(raw_years.loc[row]),
                    months={m: float(values.at[row, m]) for m in months},
                ))
            records[str(region)] = seq

        table = cls(records, months)
        span = f"{table.years[0]}-{table.years[-1]}" if table.years else "none"
        logger.info(f"Rainfall table: {len(table.regions)} regions, years {span}")
        return table

    @property
    def latest_year(self) -> Optional[Union[int, float]]:
        return self.years[-1] if self.years else None

    def find_record(self, region: str, year: float) -> Optional[YearRecord]:
        """
        Record used for (region, year).

        Exact year match first (the last parsed one if duplicated);
        otherwise the latest record with year <= target, scanning
        backward; otherwise the first record. None only when the region
        has no records.
        """
        seq = self.records.get(region)
        if not seq:
            return None
        for record in reversed(seq):
            if record.year == year:
                return record
        for record in reversed(seq):
            if record.year <= year:
                return record
        return seq[0]

    def resolve(self, region: str, year: float, month: str) -> float:
        """
        Rainfall for a region/year/month; NaN when nothing is known.

        Never raises for unknown regions, empty sequences or missing
        month fields.
        """
        record = self.find_record(region, year)
        if record is None:
            return float("nan")
        return record.value(month)

    def month_values(self, region: str, year: float) -> Tuple[float, ...]:
        """All twelve values for a region/year, using the same fallback."""
        record = self.find_record(region, year)
        if record is None:
            return tuple(float("nan") for _ in self.months)
        return tuple(record.value(m) for m in self.months)

    def __len__(self) -> int:
        return sum(len(seq) for seq in self.records.values())


def load_rainfall_table(source: str, config: Optional[Config] = None) -> RainfallTable:
    """
    Fetch and index a delimited rainfall document.

    Raises:
        LoadError: if the document cannot be fetched
    """
    config = config or Config()
    text = fetch_text(source, timeout=config.request_timeout_s)
    rows = parse_delimited(text, delimiter=config.delimiter)
    return RainfallTable.from_records(
        rows,
        region_field=config.region_field,
        year_field=config.year_field,
    )
