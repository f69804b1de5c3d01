from sqlalchemy import Column, Integer, String, Date, Text
from clinic_portal.database import FeedBase


class Appointment(FeedBase):
    """
    Booking system's appointment table (read-only mirror):
    - time_24h: scheduled time as "HH:MM"
    - treatment_item: what the customer booked, shown to staff as a hint
    - consultant / assistant / physician: attending staff names
    """
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    appointment_date = Column(Date, nullable=False, index=True)
    time_24h = Column(String(10), nullable=True)
    customer_name = Column(String(100), nullable=False)
    treatment_item = Column(String(255), nullable=True)
    consultant = Column(String(100), nullable=True)
    assistant = Column(String(100), nullable=True)
    physician = Column(String(100), nullable=True)
    status = Column(String(30), nullable=True)
    notes = Column(Text, nullable=True)

    def __repr__(self):
        return f"<Appointment id={self.id} date={self.appointment_date} customer={self.customer_name}>"

    def as_dict(self):
        return {
            "id": self.id,
            "appointment_date": self.appointment_date.isoformat() if self.appointment_date else None,
            "time_24h": self.time_24h,
            "customer_name": self.customer_name,
            "treatment_item": self.treatment_item,
            "consultant": self.consultant,
            "assistant": self.assistant,
            "physician": self.physician,
            "status": self.status,
            "notes": self.notes,
        }
