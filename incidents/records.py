from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Union

import numpy as np
import pandas as pd

from incidents.config import (
    MANUFACTURER_ALIASES,
    MANUFACTURERS,
    PHASES,
    SEVERITIES,
    UNAVAILABLE_SEVERITY,
    UNKNOWN_MANUFACTURER,
    UNKNOWN_PHASE,
    YEAR_MAX,
    YEAR_MIN,
)


@dataclass(frozen=True)
class IncidentRecord:
    year: int
    manufacturer: str
    phase: str
    severity: str
    event_id: Optional[str] = None
    fatal_injuries: int = 0
    serious_injuries: int = 0
    minor_injuries: int = 0
    uninjured: int = 0

    @property
    def has_known_manufacturer(self) -> bool:
        return self.manufacturer != UNKNOWN_MANUFACTURER


RawRows = Union[pd.DataFrame, Iterable[Mapping[str, object]]]

RECORD_COLUMNS = [
    "year",
    "manufacturer",
    "phase",
    "severity",
    "event_id",
    "fatal_injuries",
    "serious_injuries",
    "minor_injuries",
    "uninjured",
]

COUNT_COLUMNS = ["fatal_injuries", "serious_injuries", "minor_injuries", "uninjured"]
COUNT_MAX = np.iinfo(np.int32).max

# Keys are column names with case, spaces, underscores and hyphens removed.
RAW_COLUMNS: Dict[str, str] = {
    "eventdate": "event_date",
    "date": "event_date",
    "eventyear": "year",
    "year": "year",
    "make": "manufacturer",
    "manufacturer": "manufacturer",
    "broadphaseofflight": "phase",
    "phaseofflight": "phase",
    "phase": "phase",
    "injuryseverity": "severity",
    "severity": "severity",
    "eventid": "event_id",
    "totalfatalinjuries": "fatal_injuries",
    "totalseriousinjuries": "serious_injuries",
    "totalminorinjuries": "minor_injuries",
    "totaluninjured": "uninjured",
}

_NA_TOKENS = {"nan", "none", "null", "<na>", "na", "n/a", ""}
_SEVERITY_COUNT = re.compile(r"\(\s*\d+\s*\)\s*$")


def _normalize_col(c: str) -> str:
    return re.sub(r"[\s_\-]+", "", c.strip().lower())


def _text_or_none(value: object) -> Optional[str]:
    if value is None or pd.isna(value):
        return None
    s = str(value).strip()
    if s.lower() in _NA_TOKENS:
        return None
    return s


def normalize_severity(value: object) -> str:
    """Map a raw injury-severity value onto one of the four categories.

    NTSB exports carry counts (``Fatal(2)``); those reduce to the bare
    category. Anything unrecognized is UNAVAILABLE.
    """
    text = _text_or_none(value)
    if text is None:
        return UNAVAILABLE_SEVERITY
    s = _SEVERITY_COUNT.sub("", text).strip().upper().replace("_", "-").replace(" ", "-")
    if s == "NONFATAL":
        s = "NON-FATAL"
    return s if s in SEVERITIES else UNAVAILABLE_SEVERITY


def normalize_manufacturer(value: object) -> str:
    text = _text_or_none(value)
    if text is None:
        return UNKNOWN_MANUFACTURER
    key = " ".join(text.lower().split())
    for name in MANUFACTURERS:
        if key == name.lower():
            return name
    return MANUFACTURER_ALIASES.get(key, UNKNOWN_MANUFACTURER)


def normalize_phase(value: object) -> str:
    text = _text_or_none(value)
    if text is None:
        return UNKNOWN_PHASE
    s = re.sub(r"[\s_]+", "-", text.upper())
    return s if s in PHASES else UNKNOWN_PHASE


def _canonical_columns(df: pd.DataFrame) -> pd.DataFrame:
    rename: Dict[str, str] = {}
    for col in df.columns:
        target = RAW_COLUMNS.get(_normalize_col(str(col)))
        if target and target not in rename.values():
            rename[col] = target
    out = df[list(rename)].rename(columns=rename)
    for col in ["event_date", "year", "manufacturer", "phase", "severity", "event_id"] + COUNT_COLUMNS:
        if col not in out.columns:
            out[col] = None
    return out


def _date_year(value: object) -> float:
    # Year as written in the record; offsets are not converted to UTC.
    text = _text_or_none(value)
    if text is None:
        return np.nan
    try:
        ts = pd.Timestamp(text)
    except (TypeError, ValueError, OverflowError):
        return np.nan
    return np.nan if pd.isna(ts) else float(ts.year)


def _resolve_year(df: pd.DataFrame) -> pd.Series:
    # Event date wins; the explicit year column is only a fallback.
    from_date = df["event_date"].map(_date_year).astype(float)
    fallback = pd.to_numeric(df["year"].map(_text_or_none), errors="coerce").astype(float)
    fallback = fallback.where(fallback % 1 == 0)
    return from_date.fillna(fallback)


def _counts(series: pd.Series) -> pd.Series:
    values = pd.to_numeric(series.map(_text_or_none), errors="coerce").astype(float)
    values = values.where(np.isfinite(values))
    return values.fillna(0).clip(lower=0, upper=COUNT_MAX).astype(int)


def normalize(raw_rows: RawRows) -> List[IncidentRecord]:
    """
    Converts raw rows into IncidentRecords.

    Rows whose year cannot be resolved, or falls outside YEAR_MIN..YEAR_MAX,
    are dropped. Nothing here raises for bad data: a completely unparseable
    input yields an empty list and the caller decides how to report it.
    """
    if isinstance(raw_rows, pd.DataFrame):
        df = raw_rows.copy()
    else:
        df = pd.DataFrame([dict(r) for r in raw_rows if isinstance(r, Mapping)])
    if df.empty:
        return []

    df = _canonical_columns(df).reset_index(drop=True)
    year = _resolve_year(df)
    keep = year.between(YEAR_MIN, YEAR_MAX)
    if not keep.any():
        return []
    df = df.loc[keep].copy()
    df["year"] = year[keep].astype(int)

    manufacturers = df["manufacturer"].map(normalize_manufacturer)
    phases = df["phase"].map(normalize_phase)
    severities = df["severity"].map(normalize_severity)
    event_ids = df["event_id"].map(_text_or_none)
    counts = {c: _counts(df[c]) for c in COUNT_COLUMNS}

    return [
        IncidentRecord(
            year=int(y),
            manufacturer=m,
            phase=p,
            severity=s,
            event_id=e,
            fatal_injuries=int(fi),
            serious_injuries=int(si),
            minor_injuries=int(mi),
            uninjured=int(u),
        )
        for y, m, p, s, e, fi, si, mi, u in zip(
            df["year"],
            manufacturers,
            phases,
            severities,
            event_ids,
            counts["fatal_injuries"],
            counts["serious_injuries"],
            counts["minor_injuries"],
            counts["uninjured"],
        )
    ]


def manufacturer_universe(records: Iterable[IncidentRecord]) -> List[str]:
    """Recognized manufacturers present in the records, in canonical order."""
    present = {r.manufacturer for r in records if r.has_known_manufacturer}
    return [m for m in MANUFACTURERS if m in present]


def records_frame(records: Iterable[IncidentRecord]) -> pd.DataFrame:
    df = pd.DataFrame([asdict(r) for r in records], columns=RECORD_COLUMNS)
    return df.astype({"year": "int64"})
