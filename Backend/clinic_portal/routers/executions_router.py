from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from clinic_portal.database import get_db, get_feed_db
from clinic_portal.exceptions import ValidationError
from clinic_portal.logic import recorder
from clinic_portal.logic.fee_schedule import find_active_treatment
from clinic_portal.logic.roster import get_appointment
from clinic_portal.schemas.execution import ExecutionBatchCreate, ExecutionCreate, ExecutionReassign
from clinic_portal.session import SessionContext, get_current_session
from clinic_portal.utils import success_resp

router = APIRouter(prefix="/api/executions", tags=["executions"])


@router.post("", status_code=201)
def create_execution(
    payload: ExecutionCreate,
    db: Session = Depends(get_db),
    feed_db: Session = Depends(get_feed_db),
    ctx: SessionContext = Depends(get_current_session),
):
    treatment = find_active_treatment(db, name=payload.treatment_name, treatment_id=payload.treatment_id)
    if payload.appointment_id is not None:
        appointment = get_appointment(feed_db, payload.appointment_id)
        row = recorder.record(db, appointment, treatment, ctx.employee)
    else:
        row = recorder.record_manual(
            db,
            customer_name=payload.customer_name,
            appointment_date=payload.appointment_date or date.today(),
            treatment=treatment,
            employee=ctx.employee,
            appointment_time=payload.appointment_time,
        )
    return success_resp("Execution record saved", row.as_dict(), 201)


@router.post("/batch", status_code=201)
def create_execution_batch(
    payload: ExecutionBatchCreate,
    db: Session = Depends(get_db),
    feed_db: Session = Depends(get_feed_db),
    ctx: SessionContext = Depends(get_current_session),
):
    """Save several treatments for one customer in one go (all or nothing)."""
    appointment = None
    if payload.appointment_id is not None:
        appointment = get_appointment(feed_db, payload.appointment_id)
    elif not payload.customer_name:
        raise ValidationError("Customer name or appointment is required")

    items = [
        recorder.BatchItem(
            treatment=find_active_treatment(db, name=line.treatment_name, treatment_id=line.treatment_id),
            quantity=line.quantity,
        )
        for line in payload.items
    ]
    rows = recorder.record_batch(
        db,
        items,
        ctx.employee,
        customer_name=payload.customer_name,
        appointment_date=payload.appointment_date or date.today(),
        appointment=appointment,
    )
    data = {
        "records": [r.as_dict() for r in rows],
        "count": len(rows),
        "total_fee": sum(r.unit_fee for r in rows),
    }
    return success_resp(f"{len(rows)} execution records saved", data, 201)


@router.get("")
def list_executions_for_day(
    day: Optional[date] = Query(None, alias="date"),
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_current_session),
):
    rows = recorder.records_for_day(db, day or date.today())
    return success_resp("Execution records fetched successfully", [r.as_dict() for r in rows])


@router.get("/mine")
def list_my_executions(
    start: Optional[date] = None,
    end: Optional[date] = None,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_current_session),
):
    rows = recorder.records_for_employee(db, ctx.employee_id, start, end)
    return success_resp("Execution records fetched successfully", [r.as_dict() for r in rows])


@router.put("/{record_id}")
def reassign_execution(
    record_id: int,
    payload: ExecutionReassign,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(get_current_session),
):
    row = recorder.reassign(db, record_id, payload.employee_id, payload.treatment_name, ctx)
    return success_resp("Execution record updated", row.as_dict())


@router.delete("/{record_id}")
def delete_execution(record_id: int, db: Session = Depends(get_db), ctx: SessionContext = Depends(get_current_session)):
    recorder.delete(db, record_id, ctx)
    return success_resp("Execution record deleted", {"id": record_id})
