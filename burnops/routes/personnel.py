from typing import List

import anyio
from fastapi import APIRouter, Depends, HTTPException

from ..schemas.burns import PersonCreate, PersonRecord, PersonResponse, PersonnelRole
from ..services.container import AppServices, get_services


router = APIRouter(prefix="/personnel", tags=["personnel"])


@router.get("", response_model=List[PersonResponse])
async def list_personnel(services: AppServices = Depends(get_services)):
    people = await anyio.to_thread.run_sync(services.store.list_personnel)
    return [PersonResponse(id=p.id, name=p.name, role=p.role.value) for p in people]


@router.get("/roles")
def list_roles():
    return [r.value for r in PersonnelRole]


@router.post("", response_model=PersonResponse, status_code=201)
async def create_person(payload: PersonCreate, services: AppServices = Depends(get_services)):
    person = PersonRecord.new(payload.name, payload.role)
    await anyio.to_thread.run_sync(services.store.insert_person, person)
    return PersonResponse(id=person.id, name=person.name, role=person.role.value)


@router.delete("/{person_id}")
async def delete_person(person_id: str, services: AppServices = Depends(get_services)):
    deleted = await anyio.to_thread.run_sync(services.store.delete_person, person_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Person not found")
    return {"status": "ok"}
