from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from clinic_portal.database import get_db
from clinic_portal.logic import stats
from clinic_portal.session import SessionContext, require
from clinic_portal.utils import success_resp

router = APIRouter(prefix="/api/stats", tags=["stats"])

fee_earner = require("participates_in_fees", "The administrator account has no personal earnings")
clinic_viewer = require("can_view_clinic_stats", "Clinic-wide statistics are limited to administrators and supervisors")


@router.get("/mine")
def get_my_stats(
    window: str = "day",
    as_of: Optional[date] = None,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(fee_earner),
):
    return success_resp("Stats fetched successfully", stats.my_totals(db, ctx.employee_id, window, as_of))


@router.get("/all")
def get_clinic_stats(
    window: str = "day",
    as_of: Optional[date] = None,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(clinic_viewer),
):
    return success_resp("Stats fetched successfully", stats.all_totals(db, window, as_of))
