import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from clinic_portal.database import get_db
from clinic_portal.logic import employees
from clinic_portal.session import SessionContext, require
from clinic_portal.utils import build_workbook, success_resp, xlsx_response

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/employees", tags=["employees"])

admin_only = require("can_manage_employees", "Only administrators can manage employees")


# Pydantic models for request bodies
class EmployeeCreate(BaseModel):
    employee_id: str
    name: str
    job_title: Optional[str] = None
    role: str = "user"
    can_edit_records: bool = False


class EmployeeUpdate(BaseModel):
    name: Optional[str] = None
    job_title: Optional[str] = None
    role: Optional[str] = None
    can_edit_records: Optional[bool] = None


class EditPermissionUpdate(BaseModel):
    can_edit_records: bool


@router.get("")
def get_all_employees(db: Session = Depends(get_db), ctx: SessionContext = Depends(admin_only)):
    """Get all employees"""
    return success_resp("Employees fetched successfully", [e.as_dict() for e in employees.list_employees(db)])


@router.get("/export-to-excel")
def export_employees_to_excel(db: Session = Depends(get_db), ctx: SessionContext = Depends(admin_only)):
    """Export all employees to an Excel file"""
    headers = ["Employee ID", "Name", "Job Title", "Category", "Shortname", "Role", "Can Edit Records",
               "Nickname Set At", "Created At"]
    rows = [
        [
            e.employee_id,
            e.name,
            e.job_title or "",
            e.role_category,
            e.shortname or "",
            e.role,
            "Y" if e.can_edit_records else "N",
            e.nickname_set_at,
            e.created_at,
        ]
        for e in employees.list_employees(db)
    ]
    wb = build_workbook("Employees", headers, rows, [15, 20, 20, 12, 12, 18, 16, 20, 20])
    return xlsx_response(wb, "employees")


@router.get("/{employee_id}")
def get_employee(employee_id: str, db: Session = Depends(get_db), ctx: SessionContext = Depends(admin_only)):
    """Get employee by employee ID"""
    return success_resp("Employee fetched successfully", employees.get_employee(db, employee_id).as_dict())


@router.post("", status_code=201)
def create_employee(payload: EmployeeCreate, db: Session = Depends(get_db), ctx: SessionContext = Depends(admin_only)):
    employee = employees.create_employee(
        db,
        employee_id=payload.employee_id,
        name=payload.name,
        job_title=payload.job_title,
        role=payload.role,
        can_edit_records=payload.can_edit_records,
    )
    return success_resp("Employee created", employee.as_dict(), 201)


@router.put("/{employee_id}")
def update_employee(employee_id: str, payload: EmployeeUpdate, db: Session = Depends(get_db),
                    ctx: SessionContext = Depends(admin_only)):
    """Update employee by employee ID; a new job title re-derives the pricing category"""
    employee = employees.update_employee(db, employee_id, **payload.model_dump(exclude_unset=True))
    return success_resp("Employee updated", employee.as_dict())


@router.put("/{employee_id}/edit-permission")
def update_edit_permission(employee_id: str, payload: EditPermissionUpdate, db: Session = Depends(get_db),
                           ctx: SessionContext = Depends(admin_only)):
    employee = employees.set_edit_permission(db, employee_id, payload.can_edit_records)
    state = "granted" if employee.can_edit_records else "revoked"
    logger.info("Edit permission %s for %s by %s", state, employee.employee_id, ctx.employee_id)
    return success_resp(f"Edit permission {state}", employee.as_dict())


@router.post("/{employee_id}/reset-nickname")
def reset_employee_nickname(employee_id: str, db: Session = Depends(get_db), ctx: SessionContext = Depends(admin_only)):
    employee = employees.reset_nickname(db, employee_id)
    return success_resp("Nickname cleared; it will be set again at next login", employee.as_dict())


@router.delete("/{employee_id}")
def delete_employee(employee_id: str, db: Session = Depends(get_db), ctx: SessionContext = Depends(admin_only)):
    """Delete employee by employee ID"""
    employee = employees.delete_employee(db, employee_id)
    return success_resp(
        f"Employee '{employee.name}' (employee_id: {employee.employee_id}) deleted successfully",
        {"employee_id": employee.employee_id},
    )
