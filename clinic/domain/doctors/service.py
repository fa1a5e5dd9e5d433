"""Doctor service - Business logic for doctor operations"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...config import DEFAULT_SLOT_MINUTES
from ...errors import ConflictError, InvalidInputError, NotFoundError
from ...models import Doctor
from .repository import DoctorRepository
from .schemas import DoctorCreate, DoctorUpdate

logger = logging.getLogger(__name__)


class DoctorService:
    """Service layer for doctor business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = DoctorRepository()

    def get_doctors(
        self,
        specialization: Optional[str] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> list[Doctor]:
        return self.repo.search(self.db, specialization, status, search)

    def get_doctor(self, doctor_id: int) -> Doctor:
        """Get a specific doctor, active or not"""
        doctor = self.repo.get(self.db, doctor_id)
        if not doctor:
            raise NotFoundError("Doctor not found")
        return doctor

    def create_doctor(self, data: DoctorCreate) -> Doctor:
        logger.info(f"🩺 Creating doctor for user_id: {data.userId}")

        if self.repo.get_by_user_id(self.db, data.userId):
            raise ConflictError("A doctor with this userId already exists")

        return self.repo.add(
            self.db,
            user_id=data.userId,
            name=data.name,
            email=data.email,
            phone=data.phone,
            specialization=data.specialization,
            qualification=data.qualification,
            consultation_fee=data.consultationFee,
            working_days=data.workingDays,
            work_start=data.workStart,
            work_end=data.workEnd,
            break_start=data.breakStart,
            break_end=data.breakEnd,
            slot_minutes=data.slotMinutes or DEFAULT_SLOT_MINUTES,
            status="active",
        )

    def update_doctor(self, doctor_id: int, data: DoctorUpdate) -> Doctor:
        """
        Update availability or profile; existing appointments are kept as booked.
        Omitted fields keep their value; breakStart/breakEnd sent as null remove the break.
        """
        doctor = self.get_doctor(doctor_id)
        sent = data.model_fields_set

        updates = {
            "name": data.name,
            "email": data.email,
            "phone": data.phone,
            "specialization": data.specialization,
            "qualification": data.qualification,
            "consultation_fee": data.consultationFee,
            "working_days": data.workingDays,
            "work_start": data.workStart,
            "work_end": data.workEnd,
            "slot_minutes": data.slotMinutes,
            "status": data.status,
        }

        work_start = data.workStart or doctor.work_start
        work_end = data.workEnd or doctor.work_end
        if work_end <= work_start:
            raise InvalidInputError("workEnd must be after workStart")

        break_start = data.breakStart if "breakStart" in sent else doctor.break_start
        break_end = data.breakEnd if "breakEnd" in sent else doctor.break_end
        if (break_start is None) != (break_end is None) or (
            break_start is not None and break_end <= break_start
        ):
            raise InvalidInputError("Break window is invalid")

        doctor.break_start = break_start
        doctor.break_end = break_end
        doctor = self.repo.update(self.db, doctor, **updates)
        logger.info(f"✅ Doctor {doctor.id} updated")
        return doctor

    def deactivate_doctor(self, doctor_id: int) -> Doctor:
        """Doctors are never deleted so past appointments keep their reference"""
        doctor = self.get_doctor(doctor_id)
        if doctor.status == "inactive":
            return doctor

        doctor = self.repo.update(self.db, doctor, status="inactive")
        logger.info(f"🚫 Doctor {doctor.id} deactivated")
        return doctor
