"""Patient service - Business logic for patient operations"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...errors import ConflictError, NotFoundError
from ...models import Patient
from .repository import PatientRepository
from .schemas import PatientCreate, PatientUpdate

logger = logging.getLogger(__name__)


class PatientService:
    """Service layer for patient business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PatientRepository()

    def get_patients(self, search: Optional[str] = None, status: Optional[str] = None) -> list[Patient]:
        return self.repo.search(self.db, search, status)

    def get_patient(self, patient_id: int) -> Patient:
        patient = self.repo.get(self.db, patient_id)
        if not patient:
            raise NotFoundError("Patient not found")
        return patient

    def create_patient(self, data: PatientCreate) -> Patient:
        logger.info(f"📥 Registering patient for user_id: {data.userId}")

        if self.repo.get_by_user_id(self.db, data.userId):
            raise ConflictError("A patient with this userId already exists")

        return self.repo.add(
            self.db,
            user_id=data.userId,
            name=data.name,
            email=data.email,
            phone=data.phone,
            date_of_birth=data.dateOfBirth,
            gender=data.gender,
            address=data.address,
            medical_history=data.medicalHistory,
            status="active",
        )

    def update_patient(self, patient_id: int, data: PatientUpdate) -> Patient:
        patient = self.get_patient(patient_id)

        updates = {
            "name": data.name,
            "email": data.email,
            "phone": data.phone,
            "date_of_birth": data.dateOfBirth,
            "gender": data.gender,
            "address": data.address,
            "medical_history": data.medicalHistory,
            "status": data.status,
        }
        return self.repo.update(self.db, patient, **updates)

    def delete_patient(self, patient_id: int) -> dict:
        """Delete a patient that no appointment references"""
        patient = self.get_patient(patient_id)

        referenced = self.repo.count_appointments(self.db, patient.id)
        if referenced:
            logger.warning(f"⚠️ Refusing to delete patient {patient.id}: {referenced} appointments")
            raise ConflictError("Patient has appointments and cannot be deleted; deactivate instead")

        self.repo.delete(self.db, patient)
        logger.info(f"🗑️ Patient {patient_id} deleted")
        return {"message": "Patient deleted"}
