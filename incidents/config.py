"""
Configuration constants for the aviation incidents dashboard.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List, Tuple

# ======================================================
#  DATA SOURCE
# ======================================================
DATA_DIR = Path(__file__).resolve().parents[1]
DATA_FILE_NAME = "aircraft_incidents_cleaned.csv"
DATA_PATH_ENV = "INCIDENTS_DATA_PATH"


def get_data_path() -> Path:
    override = (os.environ.get(DATA_PATH_ENV) or "").strip()
    if override:
        return Path(override).expanduser()
    return DATA_DIR / DATA_FILE_NAME


# ======================================================
#  DOMAIN ENUMERATIONS (order matters: it is the display and tie-break order)
# ======================================================
MANUFACTURERS: List[str] = ["Boeing", "McDonnell Douglas", "Airbus", "Embraer", "Bombardier"]
UNKNOWN_MANUFACTURER = "Unknown"

# Lower-cased aliases seen in the NTSB exports.
MANUFACTURER_ALIASES: Dict[str, str] = {
    "boeing": "Boeing",
    "boeing company": "Boeing",
    "the boeing company": "Boeing",
    "boeing commercial airplane": "Boeing",
    "mcdonnell douglas": "McDonnell Douglas",
    "mcdonnell-douglas": "McDonnell Douglas",
    "mcdonnell douglas aircraft co": "McDonnell Douglas",
    "douglas": "McDonnell Douglas",
    "airbus": "Airbus",
    "airbus industrie": "Airbus",
    "airbus sas": "Airbus",
    "embraer": "Embraer",
    "embraer s a": "Embraer",
    "embraer-empresa brasileira de": "Embraer",
    "bombardier": "Bombardier",
    "bombardier inc": "Bombardier",
    "bombardier, inc.": "Bombardier",
    "canadair": "Bombardier",
}

PHASES: List[str] = [
    "TAKEOFF",
    "LANDING",
    "CRUISE",
    "APPROACH",
    "STANDING",
    "TAXI",
    "CLIMB",
    "DESCENT",
    "GO-AROUND",
    "MANEUVERING",
    "OTHER",
]
UNKNOWN_PHASE = "UNKNOWN"
ALL_PHASES = "all"

SEVERITIES: List[str] = ["FATAL", "NON-FATAL", "INCIDENT", "UNAVAILABLE"]
UNAVAILABLE_SEVERITY = "UNAVAILABLE"

# ======================================================
#  TIME BOUNDS
# ======================================================
YEAR_MIN: int = 1995
YEAR_MAX: int = 2016
YEAR_BOUNDS: Tuple[int, int] = (YEAR_MIN, YEAR_MAX)

YEAR_PRESETS: Dict[str, Tuple[int, int]] = {
    "full": (YEAR_MIN, YEAR_MAX),
    "first5": (YEAR_MIN, YEAR_MIN + 4),
    "last5": (YEAR_MAX - 4, YEAR_MAX),
}

# ======================================================
#  UI DEFAULTS
# ======================================================
MANUFACTURER_COLORS: List[str] = ["#e41a1c", "#ff7f00", "#377eb8", "#4daf4a", "#ffff33"]
SEVERITY_COLORS: List[str] = ["#003f5c", "#bc5090", "#ff6361", "#ffa600"]

VIEW_CACHE_SIZE: int = 32
