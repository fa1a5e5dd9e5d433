"""Patient router - FastAPI endpoints for patient operations"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import Principal, get_current_principal, require_staff
from ...database import get_db
from ...errors import PermissionDeniedError
from .schemas import PatientCreate, PatientResponse, PatientUpdate
from .service import PatientService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/patients", tags=["Patients"])


def get_patient_service(db: Session = Depends(get_db)) -> PatientService:
    """Dependency injection for PatientService"""
    return PatientService(db)


def ensure_owner_or_staff(principal: Principal, user_id: str) -> None:
    if not principal.is_staff and principal.user_id != user_id:
        raise PermissionDeniedError("Patients may only access their own record")


@router.get("", response_model=list[PatientResponse])
async def get_patients(
    search: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    principal: Principal = Depends(require_staff),
    service: PatientService = Depends(get_patient_service),
):
    return [PatientResponse.from_model(p) for p in service.get_patients(search, status)]


@router.post("", response_model=PatientResponse, status_code=201)
async def create_patient(
    data: PatientCreate,
    principal: Principal = Depends(get_current_principal),
    service: PatientService = Depends(get_patient_service),
):
    """Register a patient; patients can only register themselves"""
    ensure_owner_or_staff(principal, data.userId)
    return PatientResponse.from_model(service.create_patient(data))


@router.get("/{patient_id}", response_model=PatientResponse)
async def get_patient(
    patient_id: int,
    principal: Principal = Depends(get_current_principal),
    service: PatientService = Depends(get_patient_service),
):
    patient = service.get_patient(patient_id)
    ensure_owner_or_staff(principal, patient.user_id)
    return PatientResponse.from_model(patient)


@router.patch("/{patient_id}", response_model=PatientResponse)
async def update_patient(
    patient_id: int,
    data: PatientUpdate,
    principal: Principal = Depends(get_current_principal),
    service: PatientService = Depends(get_patient_service),
):
    ensure_owner_or_staff(principal, service.get_patient(patient_id).user_id)
    return PatientResponse.from_model(service.update_patient(patient_id, data))


@router.delete("/{patient_id}")
async def delete_patient(
    patient_id: int,
    principal: Principal = Depends(require_staff),
    service: PatientService = Depends(get_patient_service),
):
    """Delete a patient with no appointment history"""
    return service.delete_patient(patient_id)
