from datetime import date, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy import func
from sqlalchemy.orm import Session

from clinic_portal.exceptions import ValidationError
from clinic_portal.models.execution_record_model import ExecutionRecord

WINDOWS = ("day", "week", "month")


def window_range(window: str, as_of: Optional[date] = None):
    """(start, end) for a stats window, both ends inclusive."""
    end = as_of or date.today()
    if window == "day":
        start = end
    elif window == "week":
        start = end - timedelta(days=7)
    elif window == "month":
        start = end - relativedelta(months=1)
    else:
        raise ValidationError(f"Unknown window '{window}', expected one of {', '.join(WINDOWS)}")
    return start, end


def my_totals(db: Session, employee_id: str, window: str, as_of: Optional[date] = None) -> dict:
    start, end = window_range(window, as_of)
    total, count = (
        db.query(func.coalesce(func.sum(ExecutionRecord.unit_fee), 0), func.count(ExecutionRecord.id))
        .filter(
            ExecutionRecord.employee_id == employee_id,
            ExecutionRecord.appointment_date >= start,
            ExecutionRecord.appointment_date <= end,
        )
        .one()
    )
    return {
        "employee_id": employee_id,
        "window": window,
        "start": start,
        "end": end,
        "total_fee": int(total or 0),
        "count": int(count or 0),
    }


def rank_totals(rows):
    """Rank per-employee totals and attach each one's share of the grand total.

    ``rows`` are dicts with at least ``employee_id`` and ``total_fee``. Highest
    total first; equal totals are ordered by employee ID.
    """
    ranked = sorted(rows, key=lambda r: r["employee_id"])
    ranked.sort(key=lambda r: r["total_fee"], reverse=True)
    grand_total = sum(r["total_fee"] for r in ranked)
    for position, r in enumerate(ranked, start=1):
        r["rank"] = position
        r["percentage"] = round(r["total_fee"] * 100.0 / grand_total, 1) if grand_total else 0.0
    return ranked, grand_total


def all_totals(db: Session, window: str, as_of: Optional[date] = None) -> dict:
    start, end = window_range(window, as_of)
    rows = (
        db.query(
            ExecutionRecord.employee_id,
            func.max(ExecutionRecord.employee_name),
            func.max(ExecutionRecord.employee_shortname),
            func.coalesce(func.sum(ExecutionRecord.unit_fee), 0),
            func.count(ExecutionRecord.id),
        )
        .filter(ExecutionRecord.appointment_date >= start, ExecutionRecord.appointment_date <= end)
        .group_by(ExecutionRecord.employee_id)
        .all()
    )
    totals = [
        {
            "employee_id": employee_id,
            "employee_name": name,
            "employee_shortname": shortname,
            "total_fee": int(total or 0),
            "count": int(count or 0),
        }
        for employee_id, name, shortname, total, count in rows
    ]
    ranked, grand_total = rank_totals(totals)
    return {
        "window": window,
        "start": start,
        "end": end,
        "grand_total": grand_total,
        "total_count": sum(r["count"] for r in ranked),
        "employees": ranked,
    }
