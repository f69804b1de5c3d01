import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_portal.exceptions import BackendError, NotFound, PermissionDenied, ValidationError
from clinic_portal.logic.employees import get_employee
from clinic_portal.logic.fee_schedule import find_active_treatment, find_pricing_treatment, price_for_category
from clinic_portal.logic.roles import category_of, participates_in_fees
from clinic_portal.models.execution_record_model import ExecutionRecord

logger = logging.getLogger(__name__)

MAX_BATCH_QUANTITY = 50


@dataclass
class BatchItem:
    treatment: object
    quantity: int = 1


def _build_row(treatment, employee, customer_name: str, appointment_date: date,
               appointment_time: Optional[str] = None, treatment_hint: Optional[str] = None,
               appointment_id: Optional[int] = None) -> ExecutionRecord:
    if not participates_in_fees(employee):
        raise PermissionDenied("The administrator account does not record treatments")
    customer_name = (customer_name or "").strip()
    if not customer_name:
        raise ValidationError("Customer name is required")
    if appointment_date is None:
        raise ValidationError("Date is required")

    category = category_of(employee)
    return ExecutionRecord(
        appointment_id=appointment_id,
        customer_name=customer_name,
        appointment_date=appointment_date,
        appointment_time=appointment_time,
        treatment_hint=treatment_hint or "",
        treatment_name=treatment.treatment_name,
        employee_id=employee.employee_id,
        employee_name=employee.name,
        employee_shortname=employee.shortname,
        employee_position=category.value,
        unit_fee=price_for_category(treatment, category),
    )


def _commit(db: Session, what: str):
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to %s: %s", what, e, exc_info=True)
        raise BackendError()


def record(db: Session, appointment, treatment, employee) -> ExecutionRecord:
    """Append one ledger row for a booked customer. Repeats are allowed."""
    row = _build_row(
        treatment,
        employee,
        customer_name=appointment.customer_name,
        appointment_date=appointment.appointment_date,
        appointment_time=appointment.time_24h,
        treatment_hint=appointment.treatment_item,
        appointment_id=appointment.id,
    )
    db.add(row)
    _commit(db, "save execution record")
    db.refresh(row)
    logger.info(
        "Recorded %s for %s by %s (fee %s)",
        row.treatment_name, row.customer_name, row.employee_id, row.unit_fee,
    )
    return row


def record_manual(db: Session, customer_name: str, appointment_date: date, treatment, employee,
                  appointment_time: Optional[str] = None) -> ExecutionRecord:
    """Same as ``record`` for a walk-in customer with no booking."""
    row = _build_row(treatment, employee, customer_name, appointment_date, appointment_time)
    db.add(row)
    _commit(db, "save execution record")
    db.refresh(row)
    return row


def record_batch(db: Session, items: List[BatchItem], employee, customer_name: str,
                 appointment_date: date, appointment=None) -> List[ExecutionRecord]:
    """Save several treatments at once, one row per unit of quantity.

    All rows go in a single transaction: either every row is stored or none is.
    """
    if not items:
        raise ValidationError("Select at least one treatment")

    rows = []
    for item in items:
        if item.quantity < 1 or item.quantity > MAX_BATCH_QUANTITY:
            raise ValidationError(f"Quantity must be between 1 and {MAX_BATCH_QUANTITY}")
        for _ in range(item.quantity):
            if appointment is not None:
                row = _build_row(
                    item.treatment, employee,
                    customer_name=appointment.customer_name,
                    appointment_date=appointment.appointment_date,
                    appointment_time=appointment.time_24h,
                    treatment_hint=appointment.treatment_item,
                    appointment_id=appointment.id,
                )
            else:
                row = _build_row(item.treatment, employee, customer_name, appointment_date)
            rows.append(row)

    try:
        db.add_all(rows)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Batch save of %d records failed, nothing stored: %s", len(rows), e, exc_info=True)
        raise BackendError()

    for row in rows:
        db.refresh(row)
    logger.info("Batch saved %d execution records for %s", len(rows), employee.employee_id)
    return rows


def get_record(db: Session, record_id: int) -> ExecutionRecord:
    row = db.query(ExecutionRecord).filter(ExecutionRecord.id == record_id).first()
    if row is None:
        raise NotFound(f"Execution record not found: {record_id}")
    return row


def delete(db: Session, record_id: int, ctx) -> ExecutionRecord:
    row = get_record(db, record_id)
    if not (ctx.owns(row) or ctx.can_edit_records):
        raise PermissionDenied("Only the record owner or an editor can delete this record")
    db.delete(row)
    _commit(db, f"delete execution record {record_id}")
    logger.info("Execution record %s deleted by %s", record_id, ctx.employee_id)
    return row


def reassign(db: Session, record_id: int, new_employee_id: Optional[str], new_treatment_name: Optional[str], ctx,
             clock=datetime.now) -> ExecutionRecord:
    """Move a record to another employee and/or treatment; the fee is always re-derived."""
    if not ctx.can_edit_records:
        raise PermissionDenied("Editing execution records requires edit permission")
    row = get_record(db, record_id)

    employee = get_employee(db, new_employee_id or row.employee_id)
    if not participates_in_fees(employee):
        raise ValidationError("The administrator account cannot be assigned treatments")
    if new_treatment_name:
        treatment = find_active_treatment(db, name=new_treatment_name)
    else:
        treatment = find_pricing_treatment(db, row.treatment_name)
    category = category_of(employee)

    row.employee_id = employee.employee_id
    row.employee_name = employee.name
    row.employee_shortname = employee.shortname
    row.employee_position = category.value
    row.treatment_name = treatment.treatment_name
    row.unit_fee = price_for_category(treatment, category)
    row.updated_at = clock()

    _commit(db, f"update execution record {record_id}")
    db.refresh(row)
    logger.info(
        "Execution record %s reassigned to %s / %s (fee %s) by %s",
        record_id, row.employee_id, row.treatment_name, row.unit_fee, ctx.employee_id,
    )
    return row


def records_for_day(db: Session, day: date) -> List[ExecutionRecord]:
    return (
        db.query(ExecutionRecord)
        .filter(ExecutionRecord.appointment_date == day)
        .order_by(ExecutionRecord.appointment_time, ExecutionRecord.id)
        .all()
    )


def records_for_employee(db: Session, employee_id: str, start: Optional[date] = None,
                         end: Optional[date] = None) -> List[ExecutionRecord]:
    query = db.query(ExecutionRecord).filter(ExecutionRecord.employee_id == employee_id)
    if start is not None:
        query = query.filter(ExecutionRecord.appointment_date >= start)
    if end is not None:
        query = query.filter(ExecutionRecord.appointment_date <= end)
    return query.order_by(ExecutionRecord.appointment_date.desc(), ExecutionRecord.id.desc()).all()
