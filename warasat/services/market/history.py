from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional, Sequence

Series = Literal["gold_rate", "property_index"]


@dataclass(frozen=True, slots=True)
class HistoricalDataPoint:
    year: int
    gold_rate: int  # PKR per tola
    property_index: int  # normalized average price per sq ft


HISTORICAL_DATA: tuple[HistoricalDataPoint, ...] = (
    HistoricalDataPoint(2004, 12000, 1000),
    HistoricalDataPoint(2005, 14000, 1200),
    HistoricalDataPoint(2006, 18000, 1500),
    HistoricalDataPoint(2007, 20000, 1800),
    HistoricalDataPoint(2008, 25000, 2000),
    HistoricalDataPoint(2009, 32000, 2200),
    HistoricalDataPoint(2010, 40000, 2500),
    HistoricalDataPoint(2011, 55000, 3000),
    HistoricalDataPoint(2012, 60000, 3500),
    HistoricalDataPoint(2013, 58000, 4000),
    HistoricalDataPoint(2014, 55000, 4500),
    HistoricalDataPoint(2015, 48000, 5500),
    HistoricalDataPoint(2016, 52000, 6500),
    HistoricalDataPoint(2017, 56000, 7500),
    HistoricalDataPoint(2018, 65000, 8000),
    HistoricalDataPoint(2019, 85000, 8200),
    HistoricalDataPoint(2020, 110000, 8500),
    HistoricalDataPoint(2021, 120000, 9000),
    HistoricalDataPoint(2022, 150000, 9500),
    HistoricalDataPoint(2023, 220000, 10000),
    HistoricalDataPoint(2024, 250000, 10500),
)

INSIGHT = (
    "Gold provides high liquidity, whereas property in Pakistan has shown "
    "step-wise jumps (e.g. 2013-2016)."
)


def _point(data: Sequence[HistoricalDataPoint], year: int) -> Optional[HistoricalDataPoint]:
    for point in data:
        if point.year == year:
            return point
    return None


def growth_multiple(
    series: Series,
    start_year: int,
    end_year: int,
    data: Sequence[HistoricalDataPoint] = HISTORICAL_DATA,
) -> Optional[float]:
    """How many times ``series`` grew between two years; None if a year is missing."""
    start = _point(data, start_year)
    end = _point(data, end_year)
    if start is None or end is None:
        return None
    base = getattr(start, series)
    if not base:
        return None
    return getattr(end, series) / base
