from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from incidents.config import ALL_PHASES, MANUFACTURERS, SEVERITIES, YEAR_MAX, YEAR_MIN


class FilterStateModel(BaseModel):
    year_range: List[int] = Field(default_factory=lambda: [YEAR_MIN, YEAR_MAX])
    selected_manufacturers: List[str] = Field(default_factory=lambda: list(MANUFACTURERS))
    selected_phase: str = ALL_PHASES
    selected_severities: List[str] = Field(default_factory=lambda: list(SEVERITIES))


class DetailRequest(BaseModel):
    filters: FilterStateModel = Field(default_factory=FilterStateModel)
    manufacturer: str
    year: int


class OptionsResponse(BaseModel):
    manufacturers: List[str]
    manufacturers_with_data: List[str]
    phases: List[str]
    severities: List[str]
    year_bounds: List[int]
    presets: Dict[str, List[int]]


class HealthResponse(BaseModel):
    ok: bool
    source: Optional[str] = None
    records: int = 0
    dropped_rows: int = 0
    error: Optional[str] = None
