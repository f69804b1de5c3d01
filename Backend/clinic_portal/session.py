"""Who is calling: session tokens and the per-request session context.

The login wizard ends in ``login()``, which issues a signed token. Every
protected endpoint depends on ``get_current_session`` which turns the bearer
token back into a ``SessionContext`` built from the current employee row, so
permission changes take effect on the next request.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt  # PyJWT
from dateutil.relativedelta import relativedelta
from fastapi import Depends, Header
from sqlalchemy.orm import Session

from clinic_portal import config
from clinic_portal.database import get_db
from clinic_portal.exceptions import AuthFailed, PermissionDenied
from clinic_portal.logic import roles
from clinic_portal.models.employee_model import Employee

logger = logging.getLogger(__name__)


@dataclass
class SessionContext:
    employee: Employee

    @property
    def employee_id(self) -> str:
        return self.employee.employee_id

    @property
    def role_category(self) -> roles.RoleCategory:
        return roles.category_of(self.employee)

    @property
    def is_admin(self) -> bool:
        return roles.is_administrator(self.employee)

    @property
    def is_pure_admin(self) -> bool:
        return roles.is_pure_administrator(self.employee)

    @property
    def is_supervisor(self) -> bool:
        return roles.is_senior_supervisor(self.employee)

    @property
    def can_edit_records(self) -> bool:
        return roles.can_edit_execution_records(self.employee)

    @property
    def can_edit_prices(self) -> bool:
        return roles.can_edit_prices(self.employee)

    @property
    def can_manage_employees(self) -> bool:
        return roles.can_manage_employees(self.employee)

    @property
    def can_view_clinic_stats(self) -> bool:
        return roles.can_view_clinic_stats(self.employee)

    @property
    def participates_in_fees(self) -> bool:
        return roles.participates_in_fees(self.employee)

    def owns(self, record) -> bool:
        return record.employee_id == self.employee.employee_id

    def snapshot(self) -> dict:
        data = self.employee.as_dict()
        data["capabilities"] = {
            "is_admin": self.is_admin,
            "is_pure_admin": self.is_pure_admin,
            "is_supervisor": self.is_supervisor,
            "can_edit_records": self.can_edit_records,
            "can_edit_prices": self.can_edit_prices,
            "can_manage_employees": self.can_manage_employees,
            "can_view_clinic_stats": self.can_view_clinic_stats,
        }
        data["visible_tabs"] = roles.visible_tabs(self.employee)
        return data


@dataclass
class RememberedLogin:
    employee_id: str
    expires_at: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or datetime.now()) >= self.expires_at

    def as_dict(self):
        return {"employee_id": self.employee_id, "expires_at": self.expires_at.isoformat()}


def remember(employee_id: str, now: Optional[datetime] = None) -> RememberedLogin:
    now = now or datetime.now()
    return RememberedLogin(employee_id=employee_id, expires_at=now + relativedelta(months=config.REMEMBER_ME_MONTHS))


def prefill_employee_id(remembered: Optional[RememberedLogin], now: Optional[datetime] = None) -> Optional[str]:
    """Employee ID to pre-fill on the login form; the nickname step still applies."""
    if remembered is None or remembered.is_expired(now):
        return None
    return remembered.employee_id


def create_session_token(employee: Employee, expires_delta: Optional[timedelta] = None) -> str:
    if expires_delta is None:
        expires_delta = timedelta(days=config.JWT_EXP_DAYS)
    now = datetime.now(timezone.utc)
    payload = {
        "sub": employee.employee_id,
        "name": employee.name,
        "iat": now,
        "exp": now + expires_delta,
    }
    return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def login(employee: Employee, remember_me: bool = False, now: Optional[datetime] = None) -> dict:
    """Open a session for an employee who just completed the login wizard."""
    ctx = SessionContext(employee)
    result = {
        "token": create_session_token(employee),
        "employee": ctx.snapshot(),
        "remember": None,
    }
    if remember_me:
        result["remember"] = remember(employee.employee_id, now).as_dict()
    return result


def logout(ctx: SessionContext) -> dict:
    # Tokens are stateless; the browser drops its copy
    logger.info("Employee %s logged out", ctx.employee_id)
    return {"employee_id": ctx.employee_id}


def _decode_bearer(authorization: Optional[str]) -> dict:
    if not authorization:
        raise AuthFailed("Not logged in")
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AuthFailed("Invalid authorization header")
    try:
        return jwt.decode(parts[1], config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthFailed("Session expired, please log in again")
    except jwt.InvalidTokenError:
        raise AuthFailed("Invalid session token")


def get_current_session(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    db: Session = Depends(get_db),
) -> SessionContext:
    payload = _decode_bearer(authorization)
    employee_id = payload.get("sub")
    employee = None
    if employee_id:
        employee = db.query(Employee).filter(Employee.employee_id == str(employee_id)).first()
    if employee is None:
        raise AuthFailed("Employee for this session no longer exists")
    return SessionContext(employee)


def require(predicate_name: str, message: Optional[str] = None):
    """Dependency factory: the current session must satisfy ``SessionContext.<predicate_name>``."""
    def _dependency(ctx: SessionContext = Depends(get_current_session)) -> SessionContext:
        if not getattr(ctx, predicate_name):
            raise PermissionDenied(message)
        return ctx
    return _dependency
