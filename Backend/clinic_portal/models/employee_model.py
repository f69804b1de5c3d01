from sqlalchemy import Column, Integer, String, Boolean, DateTime, func
from clinic_portal.database import Base


class Employee(Base):
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # Externally assigned staff number, doubles as the login key
    employee_id = Column(String(50), nullable=False, unique=True, index=True)
    name = Column(String(100), nullable=False)
    job_title = Column(String(100), nullable=True)
    # Canonical pricing bucket, derived from job_title whenever it is written
    role_category = Column(String(20), nullable=False)

    nickname = Column(String(10), nullable=True)
    shortname = Column(String(10), nullable=True, unique=True)
    nickname_set_at = Column(DateTime, nullable=True)

    role = Column(String(30), nullable=False, default="user")
    can_edit_records = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Employee employee_id={self.employee_id} name={self.name} role={self.role}>"

    def as_dict(self):
        """Public snapshot; the nickname is a login secret and never leaves the server."""
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "name": self.name,
            "job_title": self.job_title,
            "role_category": self.role_category,
            "shortname": self.shortname,
            "has_nickname": bool(self.nickname),
            "nickname_set_at": self.nickname_set_at.isoformat() if self.nickname_set_at else None,
            "role": self.role,
            "can_edit_records": bool(self.can_edit_records),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
