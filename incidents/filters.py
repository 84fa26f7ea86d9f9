from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Hashable, Iterable, List, Optional, Sequence, Tuple

from incidents.config import ALL_PHASES, MANUFACTURERS, PHASES, SEVERITIES, YEAR_MAX, YEAR_MIN


@dataclass(frozen=True)
class FilterState:
    """Current narrowing criteria. Selections are kept in canonical order."""

    year_range: Tuple[int, int] = (YEAR_MIN, YEAR_MAX)
    selected_manufacturers: Tuple[str, ...] = field(default_factory=lambda: tuple(MANUFACTURERS))
    selected_phase: str = ALL_PHASES
    selected_severities: Tuple[str, ...] = field(default_factory=lambda: tuple(SEVERITIES))

    @classmethod
    def default(cls, manufacturers: Optional[Sequence[str]] = None) -> "FilterState":
        return cls(selected_manufacturers=tuple(manufacturers or MANUFACTURERS))

    @property
    def year_min(self) -> int:
        return self.year_range[0]

    @property
    def year_max(self) -> int:
        return self.year_range[1]

    @property
    def years(self) -> List[int]:
        return list(range(self.year_range[0], self.year_range[1] + 1))

    def fingerprint(self) -> Hashable:
        return (
            self.year_range,
            self.selected_manufacturers,
            self.selected_phase,
            self.selected_severities,
        )

    def with_changes(self, **changes) -> "FilterState":
        return replace(self, **changes)


def clamp_year(value: int, bounds: Tuple[int, int] = (YEAR_MIN, YEAR_MAX)) -> int:
    return max(bounds[0], min(bounds[1], int(value)))


def ordered_subset(values: Iterable[object], universe: Sequence[str]) -> Tuple[str, ...]:
    """Members of `values` that are in `universe`, in universe order."""
    wanted = {str(v) for v in values if v is not None}
    return tuple(u for u in universe if u in wanted)


def _as_int(value: object, default: int) -> int:
    try:
        return int(value)  # type: ignore[arg-type]
    except Exception:
        return default


def normalize_filters(raw: dict, *, manufacturers: Optional[Sequence[str]] = None) -> FilterState:
    """Coerce an untrusted filter payload into a valid FilterState.

    Unknown names are dropped and an empty selection falls back to selecting
    everything, so the result always satisfies the non-empty invariants.
    """
    universe = list(manufacturers or MANUFACTURERS)

    years = raw.get("year_range") or [YEAR_MIN, YEAR_MAX]
    if len(years) != 2:
        years = [YEAR_MIN, YEAR_MAX]
    lo = clamp_year(_as_int(years[0], YEAR_MIN))
    hi = clamp_year(_as_int(years[1], YEAR_MAX))
    if lo > hi:
        lo, hi = hi, lo

    selected_manufacturers = ordered_subset(raw.get("selected_manufacturers") or [], universe)
    if not selected_manufacturers:
        selected_manufacturers = tuple(universe)

    selected_severities = ordered_subset(raw.get("selected_severities") or [], SEVERITIES)
    if not selected_severities:
        selected_severities = tuple(SEVERITIES)

    phase = str(raw.get("selected_phase") or ALL_PHASES).strip()
    if phase != ALL_PHASES:
        phase = phase.upper()
        if phase not in PHASES:
            phase = ALL_PHASES

    return FilterState(
        year_range=(lo, hi),
        selected_manufacturers=selected_manufacturers,
        selected_phase=phase,
        selected_severities=selected_severities,
    )
