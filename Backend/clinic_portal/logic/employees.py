import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_portal.config import ALLOW_NICKNAME_RESET, SHORTNAME_MAX_LENGTH, SHORTNAME_MIN_LENGTH
from clinic_portal.exceptions import BackendError, NotFound, PermissionDenied, ValidationError
from clinic_portal.logic.roles import ROLES, ROLE_USER, classify, is_administrator
from clinic_portal.models.employee_model import Employee

logger = logging.getLogger(__name__)


def get_employee(db: Session, employee_id: str) -> Employee:
    employee_id = (employee_id or "").strip()
    employee = db.query(Employee).filter(Employee.employee_id == employee_id).first()
    if employee is None:
        raise NotFound(f"Employee not found: {employee_id}")
    return employee


def list_employees(db: Session) -> List[Employee]:
    return db.query(Employee).order_by(Employee.employee_id).all()


def validate_shortname(db: Session, shortname: str, employee: Optional[Employee] = None) -> str:
    """Trimmed shortname if it is 1-3 characters and not held by anyone else."""
    shortname = (shortname or "").strip()
    if not (SHORTNAME_MIN_LENGTH <= len(shortname) <= SHORTNAME_MAX_LENGTH):
        raise ValidationError(
            f"Shortname must be {SHORTNAME_MIN_LENGTH}-{SHORTNAME_MAX_LENGTH} characters"
        )
    query = db.query(Employee.employee_id).filter(Employee.shortname == shortname)
    if employee is not None and employee.id is not None:
        query = query.filter(Employee.id != employee.id)
    taken_by = query.first()
    if taken_by:
        raise ValidationError(f"Shortname '{shortname}' is already used by another employee")
    return shortname


def _validate_role(role: str) -> str:
    role = (role or ROLE_USER).strip()
    if role not in ROLES:
        raise ValidationError(f"Unknown role: {role}")
    return role


def _commit(db: Session, what: str):
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to %s: %s", what, e, exc_info=True)
        raise BackendError()


def create_employee(db: Session, employee_id: str, name: str, job_title: Optional[str] = None,
                    role: str = ROLE_USER, can_edit_records: bool = False) -> Employee:
    employee_id = (employee_id or "").strip()
    name = (name or "").strip()
    if not employee_id:
        raise ValidationError("Employee ID is required")
    if not name:
        raise ValidationError("Name is required")
    if db.query(Employee.id).filter(Employee.employee_id == employee_id).first():
        raise ValidationError(f"Employee ID {employee_id} already exists")

    employee = Employee(
        employee_id=employee_id,
        name=name,
        job_title=job_title,
        role_category=classify(job_title).value,
        role=_validate_role(role),
        can_edit_records=bool(can_edit_records),
    )
    db.add(employee)
    _commit(db, f"create employee {employee_id}")
    db.refresh(employee)
    logger.info("Created employee %s (%s)", employee.employee_id, employee.role_category)
    return employee


def update_employee(db: Session, employee_id: str, name: Optional[str] = None, job_title: Optional[str] = None,
                    role: Optional[str] = None, can_edit_records: Optional[bool] = None) -> Employee:
    employee = get_employee(db, employee_id)

    if name is not None:
        if not name.strip():
            raise ValidationError("Name is required")
        employee.name = name.strip()
    if job_title is not None:
        employee.job_title = job_title
        employee.role_category = classify(job_title).value
    if role is not None:
        employee.role = _validate_role(role)
    if can_edit_records is not None:
        employee.can_edit_records = bool(can_edit_records)

    _commit(db, f"update employee {employee.employee_id}")
    db.refresh(employee)
    return employee


def set_edit_permission(db: Session, employee_id: str, allowed: bool) -> Employee:
    return update_employee(db, employee_id, can_edit_records=allowed)


def delete_employee(db: Session, employee_id: str) -> Employee:
    employee = get_employee(db, employee_id)
    if is_administrator(employee):
        raise PermissionDenied("Administrator accounts cannot be deleted")
    db.delete(employee)
    _commit(db, f"delete employee {employee.employee_id}")
    logger.info("Deleted employee %s", employee.employee_id)
    return employee


def reset_nickname(db: Session, employee_id: str, allow: bool = None) -> Employee:
    """Clear nickname and shortname so the employee goes through setup again."""
    if allow is None:
        allow = ALLOW_NICKNAME_RESET
    if not allow:
        raise PermissionDenied("Nicknames cannot be changed once set")
    employee = get_employee(db, employee_id)
    employee.nickname = None
    employee.shortname = None
    employee.nickname_set_at = None
    _commit(db, f"reset nickname for {employee.employee_id}")
    db.refresh(employee)
    logger.info("Nickname reset for employee %s", employee.employee_id)
    return employee
