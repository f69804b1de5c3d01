from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from clinic_portal.database import get_db, get_feed_db
from clinic_portal.logic.recorder import records_for_day
from clinic_portal.logic.roster import build_roster, daily_appointments
from clinic_portal.session import SessionContext, get_current_session
from clinic_portal.utils import success_resp

router = APIRouter(prefix="/api/roster", tags=["roster"])


@router.get("")
def get_daily_roster(
    day: Optional[date] = Query(None, alias="date"),
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    feed_db: Session = Depends(get_feed_db),
    ctx: SessionContext = Depends(get_current_session),
):
    """Booked customers for the day with execution marks and the caller's running total."""
    day = day or date.today()
    roster = build_roster(
        daily_appointments(feed_db, day),
        records_for_day(db, day),
        ctx.employee_id,
        search,
    )
    roster["date"] = day
    roster["role_category"] = ctx.role_category.value
    return success_resp("Roster fetched successfully", roster)
