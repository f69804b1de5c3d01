"""Role categories and capability predicates.

Every permission decision in the portal goes through the predicates here;
routers never inspect ``role`` or ``employee_id`` themselves.
"""
from enum import Enum

from clinic_portal.config import ADMIN_EMPLOYEE_ID

ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLE_SENIOR_SUPERVISOR = "senior_supervisor"
ROLES = (ROLE_USER, ROLE_ADMIN, ROLE_SENIOR_SUPERVISOR)

# Order matters: a title mentioning both is billed as nurse
NURSE_TERMS = ("護理師", "nurse")
BEAUTICIAN_TERMS = ("美容師", "beautician")


class RoleCategory(str, Enum):
    CONSULTANT = "諮詢師"
    NURSE = "護理師"
    BEAUTICIAN = "美容師"


def classify(job_title) -> RoleCategory:
    """Map a free-text job title onto the pricing bucket.

    Anything that is neither nurse nor beautician (front desk, managers,
    blank titles) is billed at the consultant rate.
    """
    normalized = (job_title or "").lower()
    if any(term in normalized for term in NURSE_TERMS):
        return RoleCategory.NURSE
    if any(term in normalized for term in BEAUTICIAN_TERMS):
        return RoleCategory.BEAUTICIAN
    return RoleCategory.CONSULTANT


def category_of(employee) -> RoleCategory:
    """Stored category, falling back to the title for rows written before it existed."""
    stored = getattr(employee, "role_category", None)
    for category in RoleCategory:
        if stored in (category.value, category.name.lower()):
            return category
    return classify(getattr(employee, "job_title", None))


def is_pure_administrator(employee) -> bool:
    return employee is not None and employee.employee_id == ADMIN_EMPLOYEE_ID


def is_administrator(employee) -> bool:
    if employee is None:
        return False
    return is_pure_administrator(employee) or employee.role == ROLE_ADMIN


def is_senior_supervisor(employee) -> bool:
    return employee is not None and employee.role == ROLE_SENIOR_SUPERVISOR


def can_edit_execution_records(employee) -> bool:
    if employee is None:
        return False
    return is_administrator(employee) or is_senior_supervisor(employee) or bool(employee.can_edit_records)


def can_edit_prices(employee) -> bool:
    return is_administrator(employee) or is_senior_supervisor(employee)


def can_manage_employees(employee) -> bool:
    return is_administrator(employee)


def can_view_clinic_stats(employee) -> bool:
    return is_administrator(employee) or is_senior_supervisor(employee)


def participates_in_fees(employee) -> bool:
    return employee is not None and not is_pure_administrator(employee)


def visible_tabs(employee) -> list:
    """Dashboard tabs for this employee, in display order."""
    tabs = []
    if participates_in_fees(employee):
        tabs += ["customers", "daily", "my_stats"]
    if can_view_clinic_stats(employee):
        tabs.append("clinic_stats")
    if can_edit_prices(employee):
        tabs.append("treatment_settings")
    if can_manage_employees(employee):
        tabs += ["employees", "login_records"]
    return tabs
