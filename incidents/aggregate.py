from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import pandas as pd

from incidents.config import ALL_PHASES, MANUFACTURERS, PHASES, SEVERITIES
from incidents.filters import FilterState
from incidents.records import IncidentRecord, records_frame

RecordSource = Union[pd.DataFrame, Sequence[IncidentRecord]]


@dataclass(frozen=True)
class TimeSeriesPoint:
    year: int
    counts: Dict[str, int]

    @property
    def total(self) -> int:
        return sum(self.counts.values())


@dataclass(frozen=True)
class PhaseBreakdown:
    phase: str
    counts: Dict[str, int]

    @property
    def total(self) -> int:
        return sum(self.counts.values())


@dataclass(frozen=True)
class DerivedView:
    """Both aggregate views for one filter state.

    Read-only for consumers: views may be memoized and shared between callers.
    """

    time_series: Tuple[TimeSeriesPoint, ...]
    phase_breakdown: Tuple[PhaseBreakdown, ...]
    qualifying_count: int = 0

    @property
    def is_empty(self) -> bool:
        return self.qualifying_count == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time_series": [{"year": p.year, **p.counts} for p in self.time_series],
            "phase_breakdown": [{"phase": b.phase, **b.counts, "total": b.total} for b in self.phase_breakdown],
            "qualifying_count": self.qualifying_count,
        }


def round_half_up(value: float, ndigits: int = 0) -> float:
    q = Decimal(10) ** -ndigits
    return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))


def _as_frame(records: RecordSource) -> pd.DataFrame:
    if isinstance(records, pd.DataFrame):
        return records
    return records_frame(records)


def qualifying_mask(df: pd.DataFrame, filters: FilterState) -> pd.Series:
    lo, hi = filters.year_range
    mask = (
        df["year"].between(lo, hi)
        & df["manufacturer"].isin(filters.selected_manufacturers)
        & df["severity"].isin(filters.selected_severities)
        & df["manufacturer"].isin(MANUFACTURERS)
    )
    if filters.selected_phase != ALL_PHASES:
        mask &= df["phase"] == filters.selected_phase
    return mask


def qualifying_records(records: RecordSource, filters: FilterState) -> pd.DataFrame:
    df = _as_frame(records)
    return df.loc[qualifying_mask(df, filters)]


def _time_series(qualifying: pd.DataFrame, filters: FilterState) -> Tuple[TimeSeriesPoint, ...]:
    manufacturers = list(filters.selected_manufacturers)
    years = filters.years
    if qualifying.empty:
        table = pd.DataFrame(0, index=years, columns=manufacturers)
    else:
        table = (
            qualifying.groupby(["year", "manufacturer"])
            .size()
            .unstack(fill_value=0)
            .reindex(index=years, columns=manufacturers, fill_value=0)
        )
    return tuple(
        TimeSeriesPoint(year=int(year), counts={m: int(row[m]) for m in manufacturers})
        for year, row in table.iterrows()
    )


def _phase_breakdown(qualifying: pd.DataFrame) -> Tuple[PhaseBreakdown, ...]:
    # UNKNOWN phases never show up in the breakdown.
    known = qualifying[qualifying["phase"].isin(PHASES)]
    if known.empty:
        return ()
    table = (
        known.groupby(["phase", "severity"])
        .size()
        .unstack(fill_value=0)
        .reindex(index=PHASES, columns=SEVERITIES, fill_value=0)
    )
    table["_total"] = table.sum(axis=1)
    table = table[table["_total"] > 0]
    # Stable sort keeps PHASES order among equal totals.
    table = table.sort_values("_total", ascending=False, kind="stable")
    return tuple(
        PhaseBreakdown(phase=str(phase), counts={s: int(row[s]) for s in SEVERITIES})
        for phase, row in table.iterrows()
    )


def aggregate(records: RecordSource, filters: FilterState) -> DerivedView:
    """
    Computes the time series and phase breakdown for `filters`.

    Pure: `records` (a record sequence or a prepared `records_frame`) is only
    read. Every excluded severity is kept in the breakdown with a zero count.
    """
    qualifying = qualifying_records(records, filters)
    return DerivedView(
        time_series=_time_series(qualifying, filters),
        phase_breakdown=_phase_breakdown(qualifying),
        qualifying_count=int(len(qualifying)),
    )


def incident_detail(records: RecordSource, filters: FilterState, manufacturer: str, year: int) -> Dict[str, Any]:
    qualifying = qualifying_records(records, filters)
    point = qualifying[(qualifying["manufacturer"] == manufacturer) & (qualifying["year"] == int(year))]
    by_severity = point["severity"].value_counts()
    counts = {s: int(by_severity.get(s, 0)) for s in SEVERITIES}
    return {
        "manufacturer": manufacturer,
        "year": int(year),
        "total": int(len(point)),
        "by_severity": counts,
        "fatal": counts["FATAL"],
        "non_fatal": counts["NON-FATAL"],
    }


def phase_share(view: DerivedView, phase: str, severity: str) -> Optional[Dict[str, Any]]:
    row = next((b for b in view.phase_breakdown if b.phase == phase), None)
    if row is None:
        return None
    count = row.counts.get(severity, 0)
    total = row.total
    pct = int(round_half_up(count / total * 100)) if total else 0
    return {"phase": phase, "severity": severity, "count": count, "phase_total": total, "percent": pct}


def severity_totals(view: DerivedView) -> Dict[str, int]:
    totals: Dict[str, int] = {s: 0 for s in SEVERITIES}
    for row in view.phase_breakdown:
        for s, n in row.counts.items():
            totals[s] += n
    return totals


def manufacturer_totals(view: DerivedView) -> Dict[str, int]:
    totals: Dict[str, int] = {}
    for point in view.time_series:
        for m, n in point.counts.items():
            totals[m] = totals.get(m, 0) + n
    return totals


def peak_years(view: DerivedView) -> List[Dict[str, Any]]:
    """Per manufacturer, the year with the most incidents (earliest on ties)."""
    peaks: List[Dict[str, Any]] = []
    if not view.time_series:
        return peaks
    for m in view.time_series[0].counts:
        best = max(view.time_series, key=lambda p: (p.counts[m], -p.year))
        peaks.append({"manufacturer": m, "year": best.year, "count": best.counts[m]})
    return peaks
