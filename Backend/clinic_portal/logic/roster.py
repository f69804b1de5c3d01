from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from clinic_portal.exceptions import NotFound
from clinic_portal.models.appointment_model import Appointment


def daily_appointments(feed_db: Session, day: date) -> List[Appointment]:
    return (
        feed_db.query(Appointment)
        .filter(Appointment.appointment_date == day)
        .order_by(Appointment.time_24h, Appointment.customer_name)
        .all()
    )


def get_appointment(feed_db: Session, appointment_id: int) -> Appointment:
    appointment = feed_db.query(Appointment).filter(Appointment.id == appointment_id).first()
    if appointment is None:
        raise NotFound(f"Appointment not found: {appointment_id}")
    return appointment


def _matches(appointment, term: str) -> bool:
    if not term:
        return True
    if term in (appointment.customer_name or "").lower():
        return True
    return term in (appointment.treatment_item or "").lower()


def build_roster(appointments, records, viewer_employee_id: str, search: Optional[str] = None) -> dict:
    """Customer list for one day with who-did-what marks per customer.

    Marks are matched on customer name, so records entered by hand for a booked
    customer show up too.
    """
    term = (search or "").strip().lower()

    marks_by_customer = {}
    for r in records:
        marks_by_customer.setdefault(r.customer_name, []).append({
            "record_id": r.id,
            "treatment": r.treatment_name,
            "executor": r.employee_shortname or (r.employee_name or "")[-1:],
            "is_mine": r.employee_id == viewer_employee_id,
        })

    customers = []
    for apt in appointments:
        if not _matches(apt, term):
            continue
        entry = apt.as_dict()
        entry["marks"] = marks_by_customer.get(apt.customer_name, [])
        customers.append(entry)

    mine = [r for r in records if r.employee_id == viewer_employee_id]
    return {
        "customers": customers,
        "customer_count": len(customers),
        "my_records": [r.as_dict() for r in mine],
        "my_daily_total": sum(r.unit_fee or 0 for r in mine),
        "my_daily_count": len(mine),
    }
