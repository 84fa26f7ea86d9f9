from __future__ import annotations

import logging
import zipfile
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Tuple

import pandas as pd

from incidents.config import get_data_path
from incidents.records import IncidentRecord, manufacturer_universe, normalize, records_frame

logger = logging.getLogger(__name__)

EXCEL_SUFFIXES = {".xlsx", ".xlsm"}


class DatasetLoadError(RuntimeError):
    """The raw rows could not be obtained at all."""


@dataclass(frozen=True)
class IncidentDataset:
    records: Tuple[IncidentRecord, ...] = field(default_factory=tuple)
    source: Optional[str] = None
    raw_rows: int = 0
    dropped_rows: int = 0
    error: Optional[str] = None
    frame: pd.DataFrame = field(default_factory=lambda: records_frame(()), compare=False, repr=False)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def manufacturers_with_data(self) -> List[str]:
        return manufacturer_universe(self.records)


def file_signature(path: Path) -> Tuple[str, float]:
    return (str(path), path.stat().st_mtime)


def read_raw_rows(path: Path) -> pd.DataFrame:
    """Read the flat incident table as strings; the normalizer does the typing."""
    if not path.exists():
        raise DatasetLoadError(f"Incident data file not found: {path}")
    try:
        if path.suffix.lower() in EXCEL_SUFFIXES:
            return pd.read_excel(path, dtype=str, engine="openpyxl")
        return pd.read_csv(path, dtype=str, encoding="utf-8-sig", keep_default_na=True)
    except (OSError, ValueError, zipfile.BadZipFile) as exc:
        raise DatasetLoadError(f"Could not read {path.name}: {exc}") from exc


@lru_cache(maxsize=4)
def _load_dataset_cached(signature: Tuple[str, float]) -> IncidentDataset:
    path = Path(signature[0])
    raw = read_raw_rows(path)
    records = tuple(normalize(raw))
    dropped = int(len(raw)) - len(records)
    logger.info("loaded %d incident records from %s", len(records), path.name)
    if dropped:
        logger.warning("dropped %d of %d rows with a missing or out-of-range year", dropped, len(raw))
    return IncidentDataset(
        records=records,
        source=str(path),
        raw_rows=int(len(raw)),
        dropped_rows=dropped,
        frame=records_frame(records),
    )


def load_dataset(path: Optional[Path] = None) -> IncidentDataset:
    """Load and normalize the dataset once per file version.

    Never raises: a load failure comes back as `IncidentDataset.error` so the
    presentation layer can show a fallback message.
    """
    path = Path(path) if path is not None else get_data_path()
    try:
        if not path.exists():
            raise DatasetLoadError(f"Incident data file not found: {path}")
        return _load_dataset_cached(file_signature(path))
    except DatasetLoadError as exc:
        logger.error("incident dataset unavailable: %s", exc)
        return IncidentDataset(source=str(path), error=str(exc))


def clear_cache() -> None:
    _load_dataset_cached.cache_clear()
