from fastapi import APIRouter

from ..services.checklists import safety_checklist


router = APIRouter(tags=["checklists"])


@router.get("/checklists")
def checklists():
    return safety_checklist()
