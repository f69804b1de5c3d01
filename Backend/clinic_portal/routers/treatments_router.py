from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from clinic_portal.database import get_db
from clinic_portal.logic import fee_schedule
from clinic_portal.schemas.treatment import TreatmentCreate, TreatmentUpdate
from clinic_portal.session import SessionContext, get_current_session, require
from clinic_portal.utils import success_resp

router = APIRouter(prefix="/api/treatments", tags=["treatments"])

price_editor = require("can_edit_prices", "Only administrators and senior supervisors can edit prices")


@router.get("")
def get_active_treatments(db: Session = Depends(get_db), ctx: SessionContext = Depends(get_current_session)):
    """Active treatments with the fee that applies to the caller."""
    out = []
    for t in fee_schedule.list_active_treatments(db):
        item = t.as_dict()
        item["my_fee"] = fee_schedule.price_for_category(t, ctx.role_category)
        out.append(item)
    return success_resp("Treatments fetched successfully", out)


@router.get("/all")
def get_all_treatments(db: Session = Depends(get_db), ctx: SessionContext = Depends(price_editor)):
    treatments = fee_schedule.list_all_treatments(db)
    return success_resp("Treatments fetched successfully", [t.as_dict() for t in treatments])


@router.post("", status_code=201)
def create_treatment(payload: TreatmentCreate, db: Session = Depends(get_db), ctx: SessionContext = Depends(price_editor)):
    treatment = fee_schedule.create_treatment(
        db,
        treatment_name=payload.treatment_name,
        category=payload.category,
        beautician_fee=payload.beautician_fee,
        nurse_fee=payload.nurse_fee,
        consultant_fee=payload.consultant_fee,
    )
    return success_resp("Treatment created", treatment.as_dict(), 201)


@router.put("/{treatment_id}")
def update_treatment(treatment_id: int, payload: TreatmentUpdate, db: Session = Depends(get_db),
                     ctx: SessionContext = Depends(price_editor)):
    treatment = fee_schedule.update_treatment(db, treatment_id, **payload.model_dump(exclude_unset=True))
    return success_resp("Treatment updated", treatment.as_dict())


@router.delete("/{treatment_id}")
def delete_treatment(treatment_id: int, db: Session = Depends(get_db), ctx: SessionContext = Depends(price_editor)):
    treatment = fee_schedule.soft_delete_treatment(db, treatment_id)
    return success_resp(f"Treatment '{treatment.treatment_name}' deactivated", treatment.as_dict())


@router.post("/{treatment_id}/restore")
def restore_treatment(treatment_id: int, db: Session = Depends(get_db), ctx: SessionContext = Depends(price_editor)):
    treatment = fee_schedule.restore_treatment(db, treatment_id)
    return success_resp(f"Treatment '{treatment.treatment_name}' restored", treatment.as_dict())
