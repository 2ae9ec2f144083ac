from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from ..remote.provider import RemoteStoreError, RemoteAuthError
from ..reports.pdf_report import build_report_pdf, report_filename
from ..schemas.burns import (
    BurnCreate,
    BurnResponse,
    RegistryResponse,
    SaveResponse,
    SweepResponse,
)
from ..services.container import AppServices, get_services
from ..services.sync import SaveResult, SweepResult


router = APIRouter(prefix="/burns", tags=["burns"])


def save_response(result: SaveResult) -> SaveResponse:
    return SaveResponse(
        id=result.record.id,
        destination=result.destination,
        synced=result.synced,
        states=[s.value for s in result.states],
        reason=result.reason.value if result.reason else None,
        message=result.message,
    )


def sweep_response(result: SweepResult) -> SweepResponse:
    return SweepResponse(
        attempted=result.attempted,
        synced=result.synced,
        failed=result.failed,
        skipped=result.skipped,
        aborted=result.aborted,
    )


@router.post("", response_model=SaveResponse, status_code=201)
async def create_burn(payload: BurnCreate, services: AppServices = Depends(get_services)):
    """Save a new operation: remote when possible, local otherwise."""
    result = await services.coordinator.save_operation(payload.to_record())
    return save_response(result)


@router.get("", response_model=RegistryResponse)
async def list_burns(services: AppServices = Depends(get_services)):
    records, remote_ok = await services.coordinator.list_registry()
    return RegistryResponse(
        burns=[BurnResponse.from_record(r) for r in records],
        remote_available=remote_ok,
    )


@router.post("/sync", response_model=SweepResponse)
async def sync_burns(services: AppServices = Depends(get_services)):
    result = await services.coordinator.reconcile()
    return sweep_response(result)


@router.get("/{burn_id}", response_model=BurnResponse)
async def get_burn(burn_id: str, services: AppServices = Depends(get_services)):
    record = await services.coordinator.get_operation(burn_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Burn not found")
    return BurnResponse.from_record(record)


@router.get("/{burn_id}/report.pdf")
async def burn_report_pdf(burn_id: str, services: AppServices = Depends(get_services)):
    record = await services.coordinator.get_operation(burn_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Burn not found")
    pdf = build_report_pdf(record)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{report_filename(record)}"'},
    )


@router.delete("/{burn_id}")
async def delete_burn(burn_id: str, synced: bool = False, services: AppServices = Depends(get_services)):
    try:
        deleted = await services.coordinator.delete_operation(burn_id, synced=synced)
    except RemoteAuthError:
        raise HTTPException(status_code=401, detail="Not authenticated")
    except RemoteStoreError as e:
        raise HTTPException(status_code=503, detail=f"Remote store unavailable: {e}")
    if not deleted:
        raise HTTPException(status_code=404, detail="Burn not found")
    return {"status": "ok"}
