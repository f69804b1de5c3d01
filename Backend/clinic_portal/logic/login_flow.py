"""Three-step staff login.

IDENTIFY_EMPLOYEE -> SETUP_NICKNAME (first visit) or VERIFY_NICKNAME (returning)
-> COMPLETE. A Login Record is written exactly once, on the transition into
COMPLETE. Failed steps leave the state where it was.
"""
import logging
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_portal.config import NICKNAME_LENGTH
from clinic_portal.exceptions import AuthFailed, BackendError, NotFound, ValidationError
from clinic_portal.logic.employees import validate_shortname
from clinic_portal.models.employee_model import Employee
from clinic_portal.models.login_record_model import LoginRecord

logger = logging.getLogger(__name__)


class LoginState(str, Enum):
    IDENTIFY_EMPLOYEE = "identify_employee"
    SETUP_NICKNAME = "setup_nickname"
    VERIFY_NICKNAME = "verify_nickname"
    COMPLETE = "complete"


def suggested_nickname(name: str) -> str:
    return (name or "")[:NICKNAME_LENGTH]


def suggested_shortname(name: str) -> str:
    return (name or "")[-1:]


class LoginFlow:
    def __init__(self, db: Session, clock: Callable[[], datetime] = datetime.now):
        self.db = db
        self.clock = clock
        self.state = LoginState.IDENTIFY_EMPLOYEE
        self.employee: Optional[Employee] = None
        self.suggested_nickname: Optional[str] = None
        self.suggested_shortname: Optional[str] = None
        self.login_record: Optional[LoginRecord] = None

    def _require(self, state: LoginState):
        if self.state != state:
            raise ValidationError(f"Login step not allowed in state {self.state.value}")

    def identify(self, employee_id: str) -> LoginState:
        self._require(LoginState.IDENTIFY_EMPLOYEE)
        employee_id = (employee_id or "").strip()
        if not employee_id:
            raise ValidationError("Employee ID is required")

        employee = self.db.query(Employee).filter(Employee.employee_id == employee_id).first()
        if employee is None:
            logger.warning("Login attempt for unknown employee ID %s", employee_id)
            raise NotFound("Employee ID not found")

        self.employee = employee
        if employee.nickname and employee.shortname:
            self.state = LoginState.VERIFY_NICKNAME
        else:
            self.suggested_nickname = suggested_nickname(employee.name)
            self.suggested_shortname = suggested_shortname(employee.name)
            self.state = LoginState.SETUP_NICKNAME
        return self.state

    def setup_nickname(self, nickname: str, shortname: str) -> LoginState:
        self._require(LoginState.SETUP_NICKNAME)
        nickname = (nickname or "").strip()[:NICKNAME_LENGTH]
        if not nickname:
            raise ValidationError("Nickname is required")
        shortname = validate_shortname(self.db, shortname, self.employee)

        employee = self.employee
        employee.nickname = nickname
        employee.shortname = shortname
        employee.nickname_set_at = self.clock()
        self._complete()
        logger.info("Employee %s set nickname and logged in", employee.employee_id)
        return self.state

    def verify_nickname(self, guess: str) -> LoginState:
        self._require(LoginState.VERIFY_NICKNAME)
        if guess != self.employee.nickname:
            logger.warning("Nickname mismatch for employee %s", self.employee.employee_id)
            raise AuthFailed("Nickname does not match")
        self._complete()
        logger.info("Employee %s logged in", self.employee.employee_id)
        return self.state

    def back(self) -> LoginState:
        if self.state in (LoginState.SETUP_NICKNAME, LoginState.VERIFY_NICKNAME):
            self.employee = None
            self.suggested_nickname = None
            self.suggested_shortname = None
            self.state = LoginState.IDENTIFY_EMPLOYEE
        return self.state

    def _complete(self):
        record = LoginRecord(
            employee_id=self.employee.employee_id,
            employee_name=self.employee.name,
            login_time=self.clock(),
        )
        self.db.add(record)
        try:
            self.db.commit()
        except IntegrityError as e:
            # another login claimed the same shortname after it was checked
            self.db.rollback()
            logger.warning("Login for %s rejected at commit: %s", self.employee.employee_id, e)
            raise ValidationError("Shortname is already used by another employee")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to complete login for %s: %s", self.employee.employee_id, e, exc_info=True)
            raise BackendError()
        self.db.refresh(self.employee)
        self.login_record = record
        self.state = LoginState.COMPLETE

    @property
    def authenticated_employee(self) -> Employee:
        self._require(LoginState.COMPLETE)
        return self.employee
