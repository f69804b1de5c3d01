"""
SQLAlchemy model for treatment_execution_records.
One row per treatment performed. Employee and appointment fields are
denormalized at write time so the ledger survives later edits to either side.
"""

from sqlalchemy import Column, Integer, String, Date, DateTime, func, Index
from clinic_portal.database import Base


class ExecutionRecord(Base):
    __tablename__ = "treatment_execution_records"
    __table_args__ = (
        Index("idx_execution_date_employee", "appointment_date", "employee_id"),
    )

    id = Column(Integer, primary_key=True, index=True)

    # Link back to the booking system (absent for manually entered customers)
    appointment_id = Column(Integer, nullable=True, index=True)
    customer_name = Column(String(100), nullable=False)
    appointment_date = Column(Date, nullable=False, index=True)
    appointment_time = Column(String(10), nullable=True)
    treatment_hint = Column(String(255), nullable=True)

    # Matched by name only; retiring a price entry leaves these rows alone
    treatment_name = Column(String(100), nullable=False)

    employee_id = Column(String(50), nullable=False, index=True)
    employee_name = Column(String(100), nullable=False)
    employee_shortname = Column(String(10), nullable=True)
    employee_position = Column(String(20), nullable=False)

    unit_fee = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=True, default=func.now(), onupdate=func.now())

    def __repr__(self):
        return (
            f"<ExecutionRecord(id={self.id}, customer='{self.customer_name}', "
            f"treatment='{self.treatment_name}', employee='{self.employee_id}', fee={self.unit_fee})>"
        )

    def as_dict(self):
        return {
            "id": self.id,
            "appointment_id": self.appointment_id,
            "customer_name": self.customer_name,
            "appointment_date": self.appointment_date.isoformat() if self.appointment_date else None,
            "appointment_time": self.appointment_time,
            "treatment_hint": self.treatment_hint,
            "treatment_name": self.treatment_name,
            "employee_id": self.employee_id,
            "employee_name": self.employee_name,
            "employee_shortname": self.employee_shortname,
            "employee_position": self.employee_position,
            "unit_fee": self.unit_fee,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
