"""HTTP endpoints for submitting and reading vitals."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from app.modules.users.models import User
from app.modules.vitals.classifier import VitalType
from app.modules.vitals.models import VitalReading
from app.modules.vitals.schemas import LatestVitalsResponse, VitalCreate, VitalsQueryParams
from app.modules.vitals.service import VitalService
from app.shared import deps
from app.shared.exceptions import InvalidReadingError

router = APIRouter()


@router.post(
    "/",
    response_model=VitalReading,
    summary="Record a new vital sign",
    status_code=status.HTTP_201_CREATED,
)
async def create_vital(
    vital_in: VitalCreate,
    current_user: User = Depends(deps.require_patient),
    service: VitalService = Depends(VitalService),
) -> VitalReading:
    """Validate, classify and store a reading for the authenticated patient."""
    try:
        return await service.submit(vital_in, str(current_user.id))
    except InvalidReadingError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.get("/history", response_model=List[VitalReading], summary="Get vital signs history")
async def read_vitals(
    params: VitalsQueryParams = Depends(),
    current_user: User = Depends(deps.get_current_user),
    service: VitalService = Depends(VitalService),
) -> List[VitalReading]:
    return await service.get_history(
        str(current_user.id), type=params.type, limit=params.limit, skip=params.skip
    )


@router.get("/latest", response_model=LatestVitalsResponse, summary="Get newest reading per type")
async def read_latest_vitals(
    current_user: User = Depends(deps.get_current_user),
    service: VitalService = Depends(VitalService),
) -> LatestVitalsResponse:
    return await service.get_latest_summary(str(current_user.id))


@router.get("/latest/{vital_type}", response_model=VitalReading, summary="Get newest reading of a type")
async def read_latest_vital(
    vital_type: VitalType,
    current_user: User = Depends(deps.get_current_user),
    service: VitalService = Depends(VitalService),
) -> VitalReading:
    reading: Optional[VitalReading] = await service.get_latest(str(current_user.id), type=vital_type)
    if not reading:
        raise HTTPException(status_code=404, detail="No vitals found")
    return reading
