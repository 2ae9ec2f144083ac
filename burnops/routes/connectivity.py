from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..services.container import AppServices, get_services


router = APIRouter(prefix="/connectivity", tags=["connectivity"])


class ConnectivityUpdate(BaseModel):
    online: bool


@router.get("")
def get_connectivity(services: AppServices = Depends(get_services)):
    return {"online": services.signal.online}


@router.post("")
async def set_connectivity(req: ConnectivityUpdate, services: AppServices = Depends(get_services)):
    """Report a connectivity change; going online triggers a sync sweep."""
    changed = await services.signal.set_online(req.online)
    return {"online": services.signal.online, "changed": changed}
