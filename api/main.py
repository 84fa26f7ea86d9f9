from __future__ import annotations

from dataclasses import asdict
import logging
import math

import numpy as np
import pandas as pd
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder

from api.schemas import DetailRequest, FilterStateModel, HealthResponse, OptionsResponse
from incidents.aggregate import aggregate, incident_detail, manufacturer_totals, peak_years, severity_totals
from incidents.config import MANUFACTURERS, PHASES, SEVERITIES, YEAR_BOUNDS, YEAR_PRESETS
from incidents.data import IncidentDataset, load_dataset
from incidents.filters import FilterState, normalize_filters


app = FastAPI(title="Aviation Incidents Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _filters_from_model(model: FilterStateModel) -> FilterState:
    raw = model.model_dump()
    return normalize_filters(raw, manufacturers=MANUFACTURERS)


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
            },
        )
    )


def _error(status_code: int, exc_message: str, exc_type: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": exc_message, "type": exc_type})


def _unavailable(dataset: IncidentDataset) -> JSONResponse:
    return _error(503, dataset.error or "Incident data unavailable", "DatasetLoadError")


@app.get("/health")
def health():
    dataset = load_dataset()
    body = HealthResponse(
        ok=dataset.ok,
        source=dataset.source,
        records=len(dataset.records),
        dropped_rows=dataset.dropped_rows,
        error=dataset.error,
    )
    return _json(body.model_dump())


@app.get("/meta/options")
def meta_options():
    try:
        dataset = load_dataset()
        if not dataset.ok:
            return _unavailable(dataset)
        body = OptionsResponse(
            manufacturers=list(MANUFACTURERS),
            manufacturers_with_data=dataset.manufacturers_with_data,
            phases=list(PHASES),
            severities=list(SEVERITIES),
            year_bounds=list(YEAR_BOUNDS),
            presets={name: list(years) for name, years in YEAR_PRESETS.items()},
        )
        return _json(body.model_dump())
    except Exception as exc:
        logger.exception("meta_options failed")
        return _error(500, str(exc), type(exc).__name__)


@app.post("/view")
def view(filters: FilterStateModel):
    try:
        dataset = load_dataset()
        if not dataset.ok:
            return _unavailable(dataset)
        f = _filters_from_model(filters)
        derived = aggregate(dataset.frame, f)
        return _json(
            {
                "filters": asdict(f),
                "view": derived.to_dict(),
                "summary": {
                    "severity_totals": severity_totals(derived),
                    "manufacturer_totals": manufacturer_totals(derived),
                    "peak_years": peak_years(derived),
                },
            }
        )
    except Exception as exc:
        logger.exception("view failed")
        return _error(500, str(exc), type(exc).__name__)


@app.post("/detail")
def detail(request: DetailRequest):
    try:
        dataset = load_dataset()
        if not dataset.ok:
            return _unavailable(dataset)
        f = _filters_from_model(request.filters)
        return _json(
            {
                "filters": asdict(f),
                "detail": incident_detail(dataset.frame, f, request.manufacturer, request.year),
            }
        )
    except Exception as exc:
        logger.exception("detail failed")
        return _error(500, str(exc), type(exc).__name__)
