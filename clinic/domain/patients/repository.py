"""Patient repository - Database operations for patients"""

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...models import Appointment, Patient
from ..repository import Repository


class PatientRepository(Repository[Patient]):
    """Repository for patient database operations"""

    model = Patient

    def get_by_user_id(self, db: Session, user_id: str) -> Optional[Patient]:
        return db.query(Patient).filter(Patient.user_id == user_id).first()

    def search(self, db: Session, search: Optional[str] = None, status: Optional[str] = None) -> list[Patient]:
        query = self.query(db, status=status)
        if search:
            query = query.filter(
                or_(
                    Patient.name.ilike(f"%{search}%"),
                    Patient.email.ilike(f"%{search}%"),
                    Patient.phone.ilike(f"%{search}%"),
                )
            )
        return query.order_by(Patient.created_at.desc(), Patient.id.desc()).all()

    def count_appointments(self, db: Session, patient_id: int) -> int:
        return db.query(Appointment).filter(Appointment.patient_id == patient_id).count()
