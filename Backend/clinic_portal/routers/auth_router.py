# auth_router.py
from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from clinic_portal.database import get_db
from clinic_portal.logic.login_flow import LoginFlow, LoginState
from clinic_portal.session import (
    RememberedLogin,
    SessionContext,
    get_current_session,
    login,
    logout,
    prefill_employee_id,
)
from clinic_portal.utils import success_resp

router = APIRouter(prefix="/api/auth", tags=["auth"])


class IdentifyRequest(BaseModel):
    employee_id: str


class SetupNicknameRequest(BaseModel):
    employee_id: str
    nickname: str
    shortname: str
    remember_me: bool = False


class VerifyNicknameRequest(BaseModel):
    employee_id: str
    nickname: str
    remember_me: bool = False


class RememberedLoginRequest(BaseModel):
    employee_id: str
    expires_at: datetime


@router.post("/remembered")
def remembered_employee_id(body: RememberedLoginRequest):
    """
    Resolve the "remember me" value the client kept from a previous login.
    Returns the employee ID to pre-fill while it is unexpired, otherwise null.
    The nickname step is still required.
    """
    expires_at = body.expires_at
    if expires_at.tzinfo is not None:
        expires_at = expires_at.astimezone().replace(tzinfo=None)
    remembered = RememberedLogin(employee_id=body.employee_id.strip(), expires_at=expires_at)
    return success_resp("Remembered login checked", {"employee_id": prefill_employee_id(remembered)})


@router.post("/identify")
def identify_employee(body: IdentifyRequest, db: Session = Depends(get_db)):
    """
    Step 1 of the login wizard.
    - Unknown ID -> 404 "Employee ID not found"
    - Nickname not set yet -> next_step "setup_nickname" with suggested defaults
    - Nickname already set -> next_step "verify_nickname"
    """
    flow = LoginFlow(db)
    state = flow.identify(body.employee_id)
    data = {
        "next_step": state.value,
        "employee_id": flow.employee.employee_id,
        "name": flow.employee.name,
    }
    if state == LoginState.SETUP_NICKNAME:
        data["suggested_nickname"] = flow.suggested_nickname
        data["suggested_shortname"] = flow.suggested_shortname
    return success_resp("Employee found", data)


@router.post("/setup-nickname")
def setup_nickname(body: SetupNicknameRequest, db: Session = Depends(get_db)):
    """First login: store nickname + shortname, then log in."""
    flow = LoginFlow(db)
    flow.identify(body.employee_id)
    flow.setup_nickname(body.nickname, body.shortname)
    return success_resp("Login successful", login(flow.authenticated_employee, body.remember_me))


@router.post("/verify-nickname")
def verify_nickname(body: VerifyNicknameRequest, db: Session = Depends(get_db)):
    """Returning login: the nickname must match exactly."""
    flow = LoginFlow(db)
    flow.identify(body.employee_id)
    flow.verify_nickname(body.nickname)
    return success_resp("Login successful", login(flow.authenticated_employee, body.remember_me))


@router.post("/logout")
def logout_employee(ctx: SessionContext = Depends(get_current_session)):
    return success_resp("Logged out", logout(ctx))


@router.get("/me")
def current_employee(ctx: SessionContext = Depends(get_current_session)):
    return success_resp("Current employee", ctx.snapshot())
