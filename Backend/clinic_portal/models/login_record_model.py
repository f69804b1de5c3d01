from sqlalchemy import Column, Integer, String, DateTime, func
from clinic_portal.database import Base


class LoginRecord(Base):
    __tablename__ = "login_records"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(String(50), nullable=False, index=True)
    employee_name = Column(String(100), nullable=False)
    login_time = Column(DateTime, nullable=False, default=func.now(), index=True)

    def as_dict(self):
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "employee_name": self.employee_name,
            "login_time": self.login_time.isoformat() if self.login_time else None,
        }
