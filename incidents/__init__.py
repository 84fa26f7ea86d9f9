"""Core (UI-agnostic) incident dashboard logic.

This package contains:
- record normalization (raw rows -> IncidentRecord)
- filter state + normalization
- aggregation (records + filters -> DerivedView)
- the selection controller (the only mutator of filter state)
- data loading (CSV/XLSX -> pandas -> records)
- chart helpers (Altair -> Vega-Lite spec dict)
"""

from incidents.aggregate import DerivedView, PhaseBreakdown, TimeSeriesPoint, aggregate
from incidents.controller import LatestViewSlot, SelectionController, SelectionResult
from incidents.filters import FilterState, normalize_filters
from incidents.records import IncidentRecord, manufacturer_universe, normalize

__all__ = [
    "DerivedView",
    "FilterState",
    "IncidentRecord",
    "LatestViewSlot",
    "PhaseBreakdown",
    "SelectionController",
    "SelectionResult",
    "TimeSeriesPoint",
    "aggregate",
    "manufacturer_universe",
    "normalize",
    "normalize_filters",
]

__version__ = "0.1.0"
