from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import asdict, dataclass
from typing import Hashable, Iterable, List, Optional, Sequence, Tuple, Union

import pandas as pd

from incidents.aggregate import DerivedView, aggregate
from incidents.config import (
    ALL_PHASES,
    MANUFACTURERS,
    PHASES,
    SEVERITIES,
    VIEW_CACHE_SIZE,
    YEAR_BOUNDS,
    YEAR_PRESETS,
)
from incidents.filters import FilterState, clamp_year, normalize_filters, ordered_subset
from incidents.records import IncidentRecord, records_frame

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectionResult:
    accepted: bool
    changed: bool = False
    reason: Optional[str] = None

    @property
    def needs_recompute(self) -> bool:
        return self.accepted and self.changed


def _rejected(reason: str) -> SelectionResult:
    logger.debug("selection rejected: %s", reason)
    return SelectionResult(accepted=False, changed=False, reason=reason)


class SelectionController:
    """Sole owner and mutator of the filter state for one dashboard session.

    Commands never raise on bad input; they return a SelectionResult. A
    mutation and the aggregation that follows it are serialized by one lock,
    so readers never see a half-updated filter.
    """

    def __init__(
        self,
        records: Union[Sequence[IncidentRecord], pd.DataFrame],
        state: Optional[FilterState] = None,
        *,
        manufacturers: Optional[Sequence[str]] = None,
        cache_size: int = VIEW_CACHE_SIZE,
    ) -> None:
        self._manufacturers: List[str] = list(manufacturers or MANUFACTURERS)
        self._frame: pd.DataFrame = records if isinstance(records, pd.DataFrame) else records_frame(records)
        if state is None:
            self._state = FilterState.default(self._manufacturers)
        else:
            # Injected states get the same coercion as untrusted payloads.
            self._state = normalize_filters(asdict(state), manufacturers=self._manufacturers)
        self._lock = threading.RLock()
        self._cache: "OrderedDict[Hashable, DerivedView]" = OrderedDict()
        self._cache_size = max(0, int(cache_size))

    # ---------------- Read side ----------------
    @property
    def filter_state(self) -> FilterState:
        return self._state

    @property
    def manufacturers(self) -> List[str]:
        return list(self._manufacturers)

    @property
    def phases(self) -> List[str]:
        return list(PHASES)

    @property
    def severities(self) -> List[str]:
        return list(SEVERITIES)

    @property
    def year_bounds(self) -> Tuple[int, int]:
        return YEAR_BOUNDS

    @property
    def record_count(self) -> int:
        return int(len(self._frame))

    def derived_view(self) -> DerivedView:
        with self._lock:
            key = self._state.fingerprint()
            view = self._cache.get(key)
            if view is not None:
                self._cache.move_to_end(key)
                return view
            view = aggregate(self._frame, self._state)
            if self._cache_size:
                self._cache[key] = view
                while len(self._cache) > self._cache_size:
                    self._cache.popitem(last=False)
            return view

    # ---------------- Commands ----------------
    def _apply(self, new_state: FilterState) -> SelectionResult:
        with self._lock:
            if new_state == self._state:
                return SelectionResult(accepted=True, changed=False)
            self._state = new_state
            return SelectionResult(accepted=True, changed=True)

    def set_year_range(self, year_min: int, year_max: int) -> SelectionResult:
        """Set both bounds; an inverted pair pins the upper bound to the lower."""
        try:
            lo = clamp_year(year_min, YEAR_BOUNDS)
            hi = clamp_year(year_max, YEAR_BOUNDS)
        except (TypeError, ValueError, OverflowError):
            return _rejected(f"invalid year range {year_min!r}..{year_max!r}")
        if lo > hi:
            hi = lo
        with self._lock:
            return self._apply(self._state.with_changes(year_range=(lo, hi)))

    def set_year_min(self, value: int) -> SelectionResult:
        try:
            lo = clamp_year(value, YEAR_BOUNDS)
        except (TypeError, ValueError, OverflowError):
            return _rejected(f"invalid year {value!r}")
        with self._lock:
            # Raising min above max drags max along.
            hi = max(lo, self._state.year_max)
            return self._apply(self._state.with_changes(year_range=(lo, hi)))

    def set_year_max(self, value: int) -> SelectionResult:
        try:
            hi = clamp_year(value, YEAR_BOUNDS)
        except (TypeError, ValueError, OverflowError):
            return _rejected(f"invalid year {value!r}")
        with self._lock:
            # Lowering max below min drags min along.
            lo = min(hi, self._state.year_min)
            return self._apply(self._state.with_changes(year_range=(lo, hi)))

    def apply_preset(self, name: str) -> SelectionResult:
        preset = YEAR_PRESETS.get(name)
        if preset is None:
            return _rejected(f"unknown year preset {name!r}")
        return self.set_year_range(*preset)

    def toggle_manufacturer(self, name: str) -> SelectionResult:
        with self._lock:
            if name not in self._manufacturers:
                return _rejected(f"unknown manufacturer {name!r}")
            selected = self._state.selected_manufacturers
            if name in selected:
                if len(selected) == 1:
                    return _rejected("at least one manufacturer must stay selected")
                remaining = [m for m in selected if m != name]
            else:
                remaining = list(selected) + [name]
            return self._apply(
                self._state.with_changes(selected_manufacturers=ordered_subset(remaining, self._manufacturers))
            )

    def toggle_severity(self, category: str) -> SelectionResult:
        with self._lock:
            if category not in SEVERITIES:
                return _rejected(f"unknown severity {category!r}")
            selected = self._state.selected_severities
            if category in selected:
                if len(selected) == 1:
                    return _rejected("at least one severity must stay selected")
                remaining = [s for s in selected if s != category]
            else:
                remaining = list(selected) + [category]
            return self._apply(self._state.with_changes(selected_severities=ordered_subset(remaining, SEVERITIES)))

    def select_manufacturers(self, names: Iterable[str]) -> SelectionResult:
        selected = ordered_subset(names, self._manufacturers)
        if not selected:
            return _rejected("at least one manufacturer must stay selected")
        with self._lock:
            return self._apply(self._state.with_changes(selected_manufacturers=selected))

    def select_severities(self, categories: Iterable[str]) -> SelectionResult:
        selected = ordered_subset(categories, SEVERITIES)
        if not selected:
            return _rejected("at least one severity must stay selected")
        with self._lock:
            return self._apply(self._state.with_changes(selected_severities=selected))

    def set_phase(self, phase: str) -> SelectionResult:
        if phase != ALL_PHASES and phase not in PHASES:
            return _rejected(f"unknown phase {phase!r}")
        with self._lock:
            return self._apply(self._state.with_changes(selected_phase=phase))

    def focus_phase(self, phase: str) -> SelectionResult:
        """Drill into one phase, as when its bar is clicked in the breakdown chart."""
        return self.set_phase(phase)

    def reset(self) -> SelectionResult:
        return self._apply(FilterState.default(self._manufacturers))


class LatestViewSlot:
    """Holds the most recent view when aggregation runs off the UI thread.

    Each recompute request takes a token from `begin()`; a finished view is
    only applied through `offer()` if no newer request was issued since.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._generation = 0
        self._view: Optional[DerivedView] = None

    @property
    def view(self) -> Optional[DerivedView]:
        return self._view

    @property
    def generation(self) -> int:
        return self._generation

    def begin(self) -> int:
        with self._lock:
            self._generation += 1
            return self._generation

    def offer(self, token: int, view: DerivedView) -> bool:
        with self._lock:
            if token != self._generation:
                logger.debug("dropping stale view (token %s, latest %s)", token, self._generation)
                return False
            self._view = view
            return True
