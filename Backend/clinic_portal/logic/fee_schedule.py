import logging
import math
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_portal.exceptions import BackendError, NotFound, ValidationError
from clinic_portal.logic.roles import RoleCategory, classify
from clinic_portal.models.treatment_fee_model import TreatmentFee

logger = logging.getLogger(__name__)

FEE_COLUMNS = {
    RoleCategory.NURSE: "nurse_fee",
    RoleCategory.BEAUTICIAN: "beautician_fee",
    RoleCategory.CONSULTANT: "consultant_fee",
}


def _as_fee(value) -> int:
    """Return value as a whole-dollar fee; anything unusable counts as 0."""
    if value is None or isinstance(value, bool):
        return 0
    try:
        fee = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(fee):
        return 0
    return int(round(fee))


def price_for_category(treatment, category: RoleCategory) -> int:
    if treatment is None:
        return 0
    return _as_fee(getattr(treatment, FEE_COLUMNS[category], None))


def price_for(treatment, job_title) -> int:
    return price_for_category(treatment, classify(job_title))


def list_active_treatments(db: Session) -> List[TreatmentFee]:
    return (
        db.query(TreatmentFee)
        .filter(TreatmentFee.is_active.is_(True))
        .order_by(TreatmentFee.category, TreatmentFee.treatment_name)
        .all()
    )


def list_all_treatments(db: Session) -> List[TreatmentFee]:
    return (
        db.query(TreatmentFee)
        .order_by(TreatmentFee.is_active.desc(), TreatmentFee.category, TreatmentFee.treatment_name)
        .all()
    )


def find_active_treatment(db: Session, name: Optional[str] = None, treatment_id: Optional[int] = None) -> TreatmentFee:
    """The one active entry used for pricing; the lowest id wins if the table holds duplicates."""
    query = db.query(TreatmentFee).filter(TreatmentFee.is_active.is_(True))
    if treatment_id is not None:
        query = query.filter(TreatmentFee.id == treatment_id)
    elif name:
        query = query.filter(TreatmentFee.treatment_name == name.strip())
    else:
        raise ValidationError("Treatment is required")
    treatment = query.order_by(TreatmentFee.id).first()
    if treatment is None:
        raise NotFound(f"Treatment not found: {name if name else treatment_id}")
    return treatment


def find_pricing_treatment(db: Session, name: str) -> TreatmentFee:
    """Active entry for a name, else the most recent retired one.

    Used when re-pricing an existing record whose treatment may since have been
    soft-deleted.
    """
    try:
        return find_active_treatment(db, name=name)
    except NotFound:
        treatment = (
            db.query(TreatmentFee)
            .filter(TreatmentFee.treatment_name == (name or "").strip())
            .order_by(TreatmentFee.id.desc())
            .first()
        )
        if treatment is None:
            raise
        return treatment


def _get_treatment(db: Session, treatment_id: int) -> TreatmentFee:
    treatment = db.query(TreatmentFee).filter(TreatmentFee.id == treatment_id).first()
    if treatment is None:
        raise NotFound(f"Treatment not found: {treatment_id}")
    return treatment


def _ensure_name_free(db: Session, name: str, exclude_id: Optional[int] = None):
    query = db.query(TreatmentFee.id).filter(
        TreatmentFee.treatment_name == name,
        TreatmentFee.is_active.is_(True),
    )
    if exclude_id is not None:
        query = query.filter(TreatmentFee.id != exclude_id)
    if query.first():
        raise ValidationError(f"An active treatment named '{name}' already exists")


def _commit(db: Session, what: str):
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to %s: %s", what, e, exc_info=True)
        raise BackendError()


def create_treatment(db: Session, treatment_name: str, category: Optional[str] = None,
                     beautician_fee=0, nurse_fee=0, consultant_fee=0) -> TreatmentFee:
    name = (treatment_name or "").strip()
    if not name:
        raise ValidationError("Treatment name is required")
    _ensure_name_free(db, name)

    treatment = TreatmentFee(
        treatment_name=name,
        category=(category or "").strip() or None,
        beautician_fee=_as_fee(beautician_fee),
        nurse_fee=_as_fee(nurse_fee),
        consultant_fee=_as_fee(consultant_fee),
        is_active=True,
    )
    db.add(treatment)
    _commit(db, "create treatment")
    db.refresh(treatment)
    logger.info("Created treatment %s (id=%s)", treatment.treatment_name, treatment.id)
    return treatment


def update_treatment(db: Session, treatment_id: int, **changes) -> TreatmentFee:
    treatment = _get_treatment(db, treatment_id)

    if changes.get("treatment_name") is not None:
        name = changes["treatment_name"].strip()
        if not name:
            raise ValidationError("Treatment name is required")
        if treatment.is_active:
            _ensure_name_free(db, name, exclude_id=treatment.id)
        treatment.treatment_name = name
    if changes.get("category") is not None:
        treatment.category = changes["category"].strip() or None
    for column in FEE_COLUMNS.values():
        if changes.get(column) is not None:
            setattr(treatment, column, _as_fee(changes[column]))

    _commit(db, f"update treatment {treatment_id}")
    db.refresh(treatment)
    return treatment


def soft_delete_treatment(db: Session, treatment_id: int) -> TreatmentFee:
    """Retire a price entry; execution records keep the name they were written with."""
    treatment = _get_treatment(db, treatment_id)
    treatment.is_active = False
    _commit(db, f"deactivate treatment {treatment_id}")
    db.refresh(treatment)
    logger.info("Deactivated treatment %s (id=%s)", treatment.treatment_name, treatment.id)
    return treatment


def restore_treatment(db: Session, treatment_id: int) -> TreatmentFee:
    treatment = _get_treatment(db, treatment_id)
    if not treatment.is_active:
        _ensure_name_free(db, treatment.treatment_name, exclude_id=treatment.id)
        treatment.is_active = True
        _commit(db, f"restore treatment {treatment_id}")
        db.refresh(treatment)
    return treatment
