from datetime import datetime, timedelta, timezone

import jwt
import pytest

from clinic_portal import config
from clinic_portal.exceptions import AuthFailed, PermissionDenied
from clinic_portal.session import (
    RememberedLogin,
    get_current_session,
    login,
    prefill_employee_id,
    remember,
    require,
)

from conftest import ctx_for, make_employee


def test_remember_me_expires_one_month_later():
    opted_in = datetime(2026, 1, 31, 9, 0)
    remembered = remember("E1", now=opted_in)
    assert remembered.expires_at == datetime(2026, 2, 28, 9, 0)
    assert prefill_employee_id(remembered, now=datetime(2026, 2, 27)) == "E1"
    assert prefill_employee_id(remembered, now=datetime(2026, 2, 28, 9, 0)) is None


def test_prefill_without_remembered_login():
    assert prefill_employee_id(None) is None


def test_login_returns_token_snapshot_and_optional_remember(db):
    employee = make_employee(db, "E1", "王美", "護理師", nickname="王美", shortname="美")

    result = login(employee, remember_me=True, now=datetime(2026, 3, 1))
    assert result["remember"] == {"employee_id": "E1", "expires_at": "2026-04-01T00:00:00"}
    assert result["employee"]["employee_id"] == "E1"
    assert "nickname" not in result["employee"]
    assert result["employee"]["visible_tabs"] == ["customers", "daily", "my_stats"]

    payload = jwt.decode(result["token"], config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    assert payload["sub"] == "E1"

    assert login(employee)["remember"] is None


def test_token_timestamps_are_utc_epoch_seconds(db):
    employee = make_employee(db, "E1", "王美", "護理師")
    before = int(datetime.now(timezone.utc).timestamp())
    payload = jwt.decode(login(employee)["token"], config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    after = int(datetime.now(timezone.utc).timestamp())

    assert before <= payload["iat"] <= after + 1
    assert payload["exp"] - payload["iat"] == config.JWT_EXP_DAYS * 86400


def test_current_session_resolves_employee(db):
    employee = make_employee(db, "E1", "王美", "護理師")
    token = login(employee)["token"]
    ctx = get_current_session(authorization=f"Bearer {token}", db=db)
    assert ctx.employee_id == "E1"


@pytest.mark.parametrize("header", [None, "", "Token abc", "Bearer not-a-jwt"])
def test_current_session_rejects_bad_headers(db, header):
    with pytest.raises(AuthFailed):
        get_current_session(authorization=header, db=db)


def test_expired_token_is_rejected(db):
    make_employee(db, "E1", "王美", "護理師")
    token = jwt.encode(
        {"sub": "E1", "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
        config.JWT_SECRET,
        algorithm=config.JWT_ALGORITHM,
    )
    with pytest.raises(AuthFailed):
        get_current_session(authorization=f"Bearer {token}", db=db)


def test_token_for_deleted_employee_is_rejected(db):
    employee = make_employee(db, "E1", "王美", "護理師")
    token = login(employee)["token"]
    db.delete(employee)
    db.commit()
    with pytest.raises(AuthFailed):
        get_current_session(authorization=f"Bearer {token}", db=db)


def test_require_dependency(db):
    user = make_employee(db, "E1", "王美", "護理師")
    check = require("can_edit_prices")
    with pytest.raises(PermissionDenied):
        check(ctx_for(user))

    sup = make_employee(db, "S1", "張主任", "諮詢師", role="senior_supervisor")
    assert check(ctx_for(sup)).employee_id == "S1"


def test_remembered_login_is_expired_helper():
    r = RememberedLogin("E1", datetime(2026, 1, 1))
    assert r.is_expired(datetime(2026, 1, 1))
    assert not r.is_expired(datetime(2025, 12, 31))
