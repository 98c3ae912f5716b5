from __future__ import annotations

import logging
import math
import threading
from typing import Optional

import numpy as np
import pandas as pd
from fastapi import Depends, FastAPI, File, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import DashboardFiltersModel, ErrorResponse, InsightsResponse, MetaDomainsResponse, SourceResponse
from core.config import get_settings
from core.data import DashboardState, load_remote_state, load_uploaded_state, prepare_context
from core.errors import InvalidUploadError
from core.export import export_csv, export_filename, export_pptx
from core.filters import DashboardFilters, normalize_filters
from core.insights import Analyzer, analyze_dashboard_data
from core.metrics_overview import compute_metrics, compute_overview


app = FastAPI(title="Activity Budget Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_RESPONSES = {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}

EXPORT_MEDIA_TYPES = {
    "csv": "text/csv",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
}

# Single working set; ingestion swaps the reference, readers keep whatever snapshot they took.
_state: Optional[DashboardState] = None
_state_lock = threading.Lock()


def get_state() -> DashboardState:
    global _state
    if _state is None:
        # Concurrent first requests fetch the sheet once.
        with _state_lock:
            if _state is None:
                _state = load_remote_state()
    return _state


def set_state(state: Optional[DashboardState]) -> None:
    global _state
    _state = state


def get_analyzer() -> Optional[Analyzer]:
    return None


def _filters_from_model(model: DashboardFiltersModel) -> DashboardFilters:
    return normalize_filters(model.model_dump())


def _error(exc: Exception, status_code: int = 500) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": str(exc), "type": type(exc).__name__})


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
            },
        )
    )


@app.get("/meta/domains", response_model=MetaDomainsResponse, responses=ERROR_RESPONSES)
def meta_domains():
    try:
        ctx = prepare_context({}, get_state())
        return _json({"domains": ctx["domains"]})
    except Exception as exc:
        logger.exception("meta_domains failed")
        return _error(exc)


@app.get("/meta/source", response_model=SourceResponse, responses=ERROR_RESPONSES)
def meta_source():
    try:
        state = get_state()
        return _json({"source": state.source, "last_sync": state.last_sync, "records": len(state.records)})
    except Exception as exc:
        logger.exception("meta_source failed")
        return _error(exc)


@app.post("/refresh", response_model=SourceResponse, responses=ERROR_RESPONSES)
def refresh():
    try:
        state = load_remote_state()
        set_state(state)
        return _json({"source": state.source, "last_sync": state.last_sync, "records": len(state.records)})
    except Exception as exc:
        logger.exception("refresh failed")
        return _error(exc)


@app.post("/upload", response_model=SourceResponse, responses=ERROR_RESPONSES)
async def upload(file: UploadFile = File(...)):
    try:
        content = await file.read()
        state = load_uploaded_state(content)
    except InvalidUploadError as exc:
        logger.warning("upload rejected: %s", file.filename)
        return _error(exc, status_code=400)
    except Exception as exc:
        logger.exception("upload failed")
        return _error(exc)
    set_state(state)
    return _json({"source": state.source, "last_sync": state.last_sync, "records": len(state.records)})


@app.post("/overview", responses=ERROR_RESPONSES)
def overview(filters: DashboardFiltersModel):
    try:
        f = _filters_from_model(filters)
        ctx = prepare_context(f, get_state())
        return _json(compute_overview(f, ctx))
    except Exception as exc:
        logger.exception("overview failed")
        return _error(exc)


@app.post("/insights", response_model=InsightsResponse)
def insights(filters: DashboardFiltersModel, analyzer: Optional[Analyzer] = Depends(get_analyzer)):
    f = _filters_from_model(filters)
    ctx = prepare_context(f, get_state())
    text = analyze_dashboard_data(ctx["filtered_records"], f.selected_domain, analyzer=analyzer)
    return _json({"text": text})


@app.post("/export/{kind}")
def export_page(kind: str, filters: DashboardFiltersModel):
    if kind not in EXPORT_MEDIA_TYPES:
        return JSONResponse(status_code=404, content={"error": f"Unknown export: {kind}", "type": "NotFound"})
    try:
        f = _filters_from_model(filters)
        ctx = prepare_context(f, get_state())
        filtered = ctx["filtered_records"]
        if kind == "csv":
            content = export_csv(filtered).encode("utf-8")
        else:
            content = export_pptx(filtered, compute_metrics(filtered), f.selected_domain)
    except Exception as exc:
        logger.exception("export %s failed", kind)
        return _error(exc)
    filename = export_filename(kind)
    return Response(
        content=content,
        media_type=EXPORT_MEDIA_TYPES[kind],
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
