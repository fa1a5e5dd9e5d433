"""Doctor repository - Database operations for doctors"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Doctor
from ..repository import Repository


class DoctorRepository(Repository[Doctor]):
    """Repository for doctor database operations"""

    model = Doctor

    def get_by_user_id(self, db: Session, user_id: str) -> Optional[Doctor]:
        return db.query(Doctor).filter(Doctor.user_id == user_id).first()

    def get_active(self, db: Session, doctor_id: int) -> Optional[Doctor]:
        """Get a doctor only if they currently accept bookings"""
        doctor = self.get(db, doctor_id)
        if doctor and doctor.is_active:
            return doctor
        return None

    def search(
        self,
        db: Session,
        specialization: Optional[str] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> list[Doctor]:
        """List doctors filtered by specialization, status and a name search"""
        query = self.query(db, status=status)
        if specialization:
            query = query.filter(Doctor.specialization.ilike(f"%{specialization}%"))
        if search:
            query = query.filter(Doctor.name.ilike(f"%{search}%"))
        return query.order_by(Doctor.name.asc()).all()
