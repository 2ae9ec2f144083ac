from typing import Any, Dict, List, Optional

import anyio
from fastapi import APIRouter, Body, Depends, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel, Field

from ..reports.pdf_report import build_report_pdf, report_filename
from ..services.analysis import AnalysisServiceError
from ..services.container import AppServices, get_services
from ..services.workspace import WeatherLockedError
from .burns import save_response


router = APIRouter(prefix="/workspace", tags=["workspace"])


class AreaRequest(BaseModel):
    vertices: List[Any]


class TeamRequest(BaseModel):
    selected_ids: List[str] = Field(default_factory=list)
    hours_log: Dict[str, Any] = Field(default_factory=dict)


class PositionRequest(BaseModel):
    lat: Optional[float] = None
    lon: Optional[float] = None
    accuracy_m: Optional[float] = None
    error: Optional[str] = None


@router.get("")
def get_workspace(services: AppServices = Depends(get_services)):
    return services.workspace.snapshot()


@router.patch("")
def update_workspace(changes: Dict[str, Any] = Body(...), services: AppServices = Depends(get_services)):
    try:
        services.workspace.update_form(changes)
    except WeatherLockedError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return services.workspace.snapshot()


@router.put("/area")
def replace_area(req: AreaRequest, services: AppServices = Depends(get_services)):
    area = services.workspace.replace_area(req.vertices)
    return area.model_dump(mode="json")


@router.delete("/area")
def clear_area(services: AppServices = Depends(get_services)):
    services.workspace.clear_area()
    return services.workspace.area_stats()


@router.put("/team")
async def set_team(req: TeamRequest, services: AppServices = Depends(get_services)):
    roster = await anyio.to_thread.run_sync(services.store.list_personnel)
    personnel = services.workspace.set_team_selection(roster, req.selected_ids, req.hours_log)
    return personnel.to_wire()


@router.post("/analyze")
async def analyze_workspace(services: AppServices = Depends(get_services)):
    ws = services.workspace
    try:
        text = await services.analysis.analyze(
            ws.weather,
            ws.fuel_model.value if ws.fuel_model else None,
            ws.location or None,
        )
    except AnalysisServiceError:
        return {"result": None, "error": "Errore durante l'analisi AI. Riprova."}
    ws.set_report(text)
    return {"result": text, "error": None}


@router.delete("/report")
def clear_report(services: AppServices = Depends(get_services)):
    services.workspace.set_report(None)
    return services.workspace.snapshot()


@router.post("/save", status_code=201)
async def save_workspace(services: AppServices = Depends(get_services)):
    """Persist the workspace as a new operation and start over."""
    record = services.workspace.build_record()
    result = await services.coordinator.save_operation(record)
    services.workspace.reset_all()
    return save_response(result)


@router.post("/position")
async def report_position(req: PositionRequest, services: AppServices = Depends(get_services)):
    if req.lat is None or req.lon is None:
        await services.signal.publish_position_failed(req.error or "unavailable")
    else:
        await services.signal.publish_position(req.lat, req.lon, req.accuracy_m)
    return services.workspace.snapshot()


@router.post("/reset")
def reset_workspace(services: AppServices = Depends(get_services)):
    services.workspace.reset_all()
    return services.workspace.snapshot()


@router.get("/report.pdf")
def workspace_report_pdf(services: AppServices = Depends(get_services)):
    record = services.workspace.build_record()
    return Response(
        content=build_report_pdf(record),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{report_filename(record)}"'},
    )
