from sqlalchemy import Column, Integer, String, Boolean, DateTime, func
from clinic_portal.database import Base


class TreatmentFee(Base):
    """Price table row: one treatment, three role-based operation fees."""
    __tablename__ = "treatment_fee_settings"

    id = Column(Integer, primary_key=True, index=True)
    # Not unique at the store level: soft-deleted rows keep their name
    treatment_name = Column(String(100), nullable=False, index=True)
    category = Column(String(50), nullable=True)

    beautician_fee = Column(Integer, nullable=True, default=0)
    nurse_fee = Column(Integer, nullable=True, default=0)
    consultant_fee = Column(Integer, nullable=True, default=0)

    is_active = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<TreatmentFee id={self.id} name={self.treatment_name} active={self.is_active}>"

    def as_dict(self):
        return {
            "id": self.id,
            "treatment_name": self.treatment_name,
            "category": self.category,
            "beautician_fee": self.beautician_fee,
            "nurse_fee": self.nurse_fee,
            "consultant_fee": self.consultant_fee,
            "is_active": bool(self.is_active),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
