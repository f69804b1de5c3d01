import logging
from datetime import date, datetime, time
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_portal.database import get_db
from clinic_portal.exceptions import BackendError, NotFound
from clinic_portal.models.login_record_model import LoginRecord
from clinic_portal.session import SessionContext, require
from clinic_portal.utils import build_workbook, success_resp, xlsx_response

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/login-records", tags=["login_records"])

admin_only = require("can_manage_employees", "Only administrators can view login records")


def query_login_records(db: Session, start: Optional[date] = None, end: Optional[date] = None,
                        employee_id: Optional[str] = None) -> List[LoginRecord]:
    """Newest first; start/end are whole days, both inclusive."""
    query = db.query(LoginRecord)
    if start is not None:
        query = query.filter(LoginRecord.login_time >= datetime.combine(start, time.min))
    if end is not None:
        query = query.filter(LoginRecord.login_time <= datetime.combine(end, time.max))
    if employee_id:
        query = query.filter(LoginRecord.employee_id == employee_id)
    return query.order_by(LoginRecord.login_time.desc(), LoginRecord.id.desc()).all()


@router.get("")
def get_login_records(
    start: Optional[date] = None,
    end: Optional[date] = None,
    employee_id: Optional[str] = None,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(admin_only),
):
    records = query_login_records(db, start, end, employee_id)
    return success_resp("Login records fetched successfully", [r.as_dict() for r in records])


@router.get("/export")
def export_login_records(
    start: Optional[date] = None,
    end: Optional[date] = None,
    employee_id: Optional[str] = None,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(admin_only),
):
    records = query_login_records(db, start, end, employee_id)
    wb = build_workbook(
        "Login Records",
        ["ID", "Employee ID", "Employee Name", "Login Time"],
        [[r.id, r.employee_id, r.employee_name, r.login_time] for r in records],
        [8, 15, 20, 22],
    )
    return xlsx_response(wb, "login_records")


@router.delete("/{record_id}")
def delete_login_record(record_id: int, db: Session = Depends(get_db), ctx: SessionContext = Depends(admin_only)):
    """Remove a login history row. This does not end anybody's session."""
    record = db.query(LoginRecord).filter(LoginRecord.id == record_id).first()
    if record is None:
        raise NotFound("Login record not found")
    try:
        db.delete(record)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error deleting login record {record_id}: {e}", exc_info=True)
        raise BackendError()
    logger.info("Login record %s (%s) removed by %s", record_id, record.employee_id, ctx.employee_id)
    return success_resp("Login record deleted", {"id": record_id})
