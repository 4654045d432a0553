from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from app.modules.roster.schemas import LinkResponse, RosterPatient
from app.modules.roster.service import RosterService, get_roster_service
from app.modules.users.models import User
from app.shared import deps

router = APIRouter()


@router.get(
    "/patients",
    response_model=List[RosterPatient],
    summary="List my patients with their latest vitals",
)
async def list_roster(
    current_user: User = Depends(deps.require_doctor),
    service: RosterService = Depends(get_roster_service),
) -> List[RosterPatient]:
    snapshots = await service.build_snapshots(str(current_user.id))
    return [RosterPatient.from_snapshot(s) for s in snapshots]


@router.post(
    "/patients/{patient_id}",
    response_model=LinkResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a patient to my roster",
)
async def add_patient(
    patient_id: str,
    current_user: User = Depends(deps.require_doctor),
    service: RosterService = Depends(get_roster_service),
) -> LinkResponse:
    if not await service.is_patient(patient_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Patient not found")
    link = await service.link(str(current_user.id), patient_id)
    return LinkResponse.model_validate(link.model_dump())


@router.delete(
    "/patients/{patient_id}",
    response_model=LinkResponse,
    summary="Remove a patient from my roster",
)
async def remove_patient(
    patient_id: str,
    current_user: User = Depends(deps.require_doctor),
    service: RosterService = Depends(get_roster_service),
) -> LinkResponse:
    link = await service.unlink(str(current_user.id), patient_id)
    if not link:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Link not found")
    return LinkResponse.model_validate(link.model_dump())
