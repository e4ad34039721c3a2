# gaming_desk/api/routes.py
from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from gaming_desk.api.schemas import (
    CreateSessionRequest,
    CreateSessionResponse,
    EstimateRequest,
    EstimateResponse,
    SessionListResponse,
    SnackDeltaRequest,
    SweepRequest,
    SweepResponse,
    UpdateSessionRequest,
)
from gaming_desk.application import selectors as sel
from gaming_desk.application.session_adapter import NewSession
from gaming_desk.domain.entities import SessionRecord
from gaming_desk.domain.errors import ExportError, NotFoundError, PersistenceError, ValidationError
from gaming_desk.infrastructure.excel_export import XLSX_MIME

log = logging.getLogger("api.routes")
router = APIRouter()


# -------------------------
# Dependencies via app.state (wired in main.py on startup)
# -------------------------
def _state(request: Request, name: str):
    obj = getattr(request.app.state, name, None)
    if obj is None:
        raise RuntimeError(f"{name} not initialized. Check app startup wiring.")
    return obj


def get_store(request: Request):
    return _state(request, "session_store")


def get_board(request: Request):
    return _state(request, "live_board")


def get_catalog(request: Request):
    return _state(request, "catalog")


def get_estimate_uc(request: Request):
    return _state(request, "estimate_uc")


def get_analytics_uc(request: Request):
    return _state(request, "analytics_uc")


def get_export_uc(request: Request):
    return _state(request, "export_uc")


def get_archival(request: Request):
    return _state(request, "archival")


def _validation(e: ValidationError) -> HTTPException:
    return HTTPException(status_code=400, detail={"field": e.field, "message": e.message})


def _persistence(e: PersistenceError, action: str) -> HTTPException:
    log.error("%s failed: %s", action, e)
    return HTTPException(status_code=503, detail=f"Could not {action}. Check your internet connection and try again.")


def _session_view(s: SessionRecord, timing=None) -> dict:
    out = s.to_dict()
    if timing is not None:
        out.update(
            phase=timing.phase.value,
            status_text=timing.status_text,
            progress_percent=round(timing.progress_percent, 1),
        )
    return out


# -------------------------
# Catalog & live estimate
# -------------------------
@router.get("/catalog")
def catalog(cat=Depends(get_catalog)) -> Any:
    return {
        key: {
            "label": cat.label_of(key),
            "items": [{"id": i.id, "name": i.name, "price": i.unit_price} for i in items],
        }
        for key, items in cat.categories().items()
    }


@router.post("/estimate", response_model=EstimateResponse)
def estimate(req: EstimateRequest, uc=Depends(get_estimate_uc)) -> Any:
    return uc(req.duration_hours, req.party_size, req.snacks)


# -------------------------
# Sessions
# -------------------------
@router.post("/sessions", response_model=CreateSessionResponse, status_code=201)
async def create_session(req: CreateSessionRequest, store=Depends(get_store)) -> Any:
    try:
        session_id = await store.create_session(
            NewSession(
                customer_name=req.customer_name,
                phone_number=req.phone_number,
                duration_hours=req.duration_hours,
                party_size=req.party_size,
                snacks=req.snacks,
                age_years=req.age_years,
                payment_method=req.payment_method,
            )
        )
    except ValidationError as e:
        raise _validation(e)
    except PersistenceError as e:
        raise _persistence(e, "save the session")
    except Exception as e:
        log.exception("Processing POST /sessions error")
        raise HTTPException(status_code=500, detail=str(e))
    return {"id": session_id}


@router.patch("/sessions/{session_id}")
async def update_session(session_id: str, req: UpdateSessionRequest, store=Depends(get_store)) -> Any:
    try:
        updated = await store.update_session(
            session_id,
            req.duration_hours,
            req.party_size,
            [line.to_line() for line in req.snacks],
        )
    except ValidationError as e:
        raise _validation(e)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PersistenceError as e:
        raise _persistence(e, "update the session")
    except Exception as e:
        log.exception("Processing PATCH /sessions error")
        raise HTTPException(status_code=500, detail=str(e))
    return _session_view(updated)


@router.post("/sessions/{session_id}/snacks")
async def adjust_snack(session_id: str, req: SnackDeltaRequest, store=Depends(get_store)) -> Any:
    try:
        updated = await store.adjust_snack(session_id, req.item_id, req.delta)
    except ValidationError as e:
        raise _validation(e)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PersistenceError as e:
        raise _persistence(e, "update the session")
    except Exception as e:
        log.exception("Processing POST /sessions/snacks error")
        raise HTTPException(status_code=500, detail=str(e))
    return _session_view(updated)


@router.get("/sessions", response_model=SessionListResponse)
def list_sessions(view: str = "ongoing", board=Depends(get_board)) -> Any:
    if view not in ("ongoing", "completed", "all"):
        raise HTTPException(status_code=400, detail="view must be one of: ongoing, completed, all")
    bv = board.view()
    if view == "ongoing":
        picked = sel.select_active(bv.sessions, bv.now)
    elif view == "completed":
        picked = sel.select_completed(bv.sessions, bv.now)
    else:
        picked = list(bv.sessions)
    return {
        "now": bv.now.isoformat(),
        "view": view,
        "active_count": bv.active_count,
        "sessions": [_session_view(s, bv.timings.get(s.id)) for s in picked],
    }


@router.get("/sessions/{session_id}")
async def get_session(session_id: str, store=Depends(get_store), board=Depends(get_board)) -> Any:
    try:
        s = await store.get_session(session_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PersistenceError as e:
        raise _persistence(e, "load the session")
    return _session_view(s, board.view().timings.get(s.id))


# -------------------------
# Analytics & export
# -------------------------
@router.get("/analytics")
def analytics(scope: str = "today", store=Depends(get_store), uc=Depends(get_analytics_uc)) -> Any:
    if scope not in ("today", "lifetime"):
        raise HTTPException(status_code=400, detail="scope must be today or lifetime")
    return uc(store.current(), scope)


@router.get("/export")
def export_sessions(store=Depends(get_store), uc=Depends(get_export_uc)) -> Any:
    try:
        name, data = uc(store.current())
    except ExportError as e:
        log.exception("Download failed")
        raise HTTPException(status_code=500, detail=str(e))
    return Response(
        content=data,
        media_type=XLSX_MIME,
        headers={"Content-Disposition": f'attachment; filename="{name}"'},
    )


@router.post("/archive/sweep", response_model=SweepResponse)
async def sweep(req: SweepRequest, archival=Depends(get_archival)) -> Any:
    try:
        result = await archival.sweep(req.retention_months)
    except ExportError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except PersistenceError as e:
        raise _persistence(e, "archive old sessions")
    except Exception as e:
        log.exception("Processing /archive/sweep error")
        raise HTTPException(status_code=500, detail=str(e))
    return {
        "status": result.status.value,
        "exported_count": result.exported_count,
        "artifact_name": result.artifact_name,
    }
