from datetime import date

from clinic_portal.models.employee_model import Employee
from clinic_portal.models.execution_record_model import ExecutionRecord
from clinic_portal.models.login_record_model import LoginRecord
from clinic_portal.utils import XLSX_MEDIA_TYPE

from conftest import auth_headers, make_appointment, make_employee, make_treatment


def test_health_is_wrapped_in_envelope(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"success": True, "message": "Operation successful", "data": {"status": "healthy"}}


def test_first_login_wizard_end_to_end(client, db):
    make_employee(db, "X123", "林小明", "美容師")

    res = client.post("/api/auth/identify", json={"employee_id": "X123"})
    assert res.status_code == 200
    body = res.json()["data"]
    assert body["next_step"] == "setup_nickname"
    assert body["suggested_nickname"] == "林小"
    assert body["suggested_shortname"] == "明"

    res = client.post(
        "/api/auth/setup-nickname",
        json={"employee_id": "X123", "nickname": "小明", "shortname": "明", "remember_me": True},
    )
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["employee"]["employee_id"] == "X123"
    assert data["remember"]["employee_id"] == "X123"

    db.expire_all()
    assert db.query(Employee).filter(Employee.employee_id == "X123").one().nickname == "小明"
    assert db.query(LoginRecord).count() == 1

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['token']}"})
    assert me.status_code == 200
    assert me.json()["data"]["shortname"] == "明"


def test_returning_login_and_wrong_nickname(client, db):
    make_employee(db, "E1", "王美", "護理師", nickname="王美", shortname="美")

    res = client.post("/api/auth/identify", json={"employee_id": "E1"})
    assert res.json()["data"]["next_step"] == "verify_nickname"
    assert "suggested_nickname" not in res.json()["data"]

    bad = client.post("/api/auth/verify-nickname", json={"employee_id": "E1", "nickname": "王"})
    assert bad.status_code == 401
    assert bad.json()["success"] is False
    assert db.query(LoginRecord).count() == 0

    good = client.post("/api/auth/verify-nickname", json={"employee_id": "E1", "nickname": "王美"})
    assert good.status_code == 200
    assert good.json()["data"]["remember"] is None
    assert db.query(LoginRecord).count() == 1


def test_unknown_employee_is_404(client, db):
    res = client.post("/api/auth/identify", json={"employee_id": "NOPE"})
    assert res.status_code == 404
    assert res.json() == {"success": False, "message": "Employee ID not found", "data": {}}


def test_setup_not_allowed_once_nickname_exists(client, db):
    make_employee(db, "E1", "王美", "護理師", nickname="王美", shortname="美")
    res = client.post("/api/auth/setup-nickname", json={"employee_id": "E1", "nickname": "壞人", "shortname": "壞"})
    assert res.status_code == 422
    db.expire_all()
    assert db.query(Employee).filter(Employee.employee_id == "E1").one().nickname == "王美"


def test_protected_endpoints_need_a_session(client):
    res = client.get("/api/roster")
    assert res.status_code == 401
    assert res.json()["success"] is False


def test_roster_and_recording_flow(client, db, feed_db):
    today = date(2026, 10, 18)
    botox = make_treatment(db, "Botox")
    me = make_employee(db, "E1", "陳美容", "美容師", nickname="陳美", shortname="容")
    other = make_employee(db, "E2", "王護理", "護理師", nickname="王護", shortname="理")
    make_appointment(feed_db, 1, "林小姐", day=today, time_24h="11:00")
    make_appointment(feed_db, 2, "張先生", day=today, time_24h="09:30", treatment_item="皮秒")

    res = client.post("/api/executions", json={"appointment_id": 1, "treatment_id": botox.id}, headers=auth_headers(me))
    assert res.status_code == 201
    assert res.json()["data"]["unit_fee"] == 800

    client.post("/api/executions", json={"appointment_id": 1, "treatment_name": "Botox"}, headers=auth_headers(other))

    res = client.get("/api/roster", params={"date": "2026-10-18"}, headers=auth_headers(me))
    assert res.status_code == 200
    roster = res.json()["data"]
    assert [c["customer_name"] for c in roster["customers"]] == ["張先生", "林小姐"]
    marks = roster["customers"][1]["marks"]
    assert [(m["executor"], m["is_mine"]) for m in marks] == [("容", True), ("理", False)]
    assert roster["my_daily_total"] == 800
    assert roster["my_daily_count"] == 1
    assert roster["role_category"] == "美容師"

    res = client.get("/api/roster", params={"date": "2026-10-18", "search": "皮秒"}, headers=auth_headers(me))
    assert [c["customer_name"] for c in res.json()["data"]["customers"]] == ["張先生"]


def test_unknown_appointment_is_404(client, db):
    botox = make_treatment(db, "Botox")
    me = make_employee(db, "E1", "陳美容", "美容師")
    res = client.post("/api/executions", json={"appointment_id": 999, "treatment_id": botox.id}, headers=auth_headers(me))
    assert res.status_code == 404


def test_batch_save_via_api(client, db):
    make_treatment(db, "Botox")
    make_treatment(db, "Laser", nurse=300, beautician=200, consultant=100)
    nurse = make_employee(db, "N1", "王護理", "護理師")
    res = client.post(
        "/api/executions/batch",
        json={
            "customer_name": "路過客",
            "appointment_date": "2026-10-18",
            "items": [{"treatment_name": "Botox", "quantity": 2}, {"treatment_name": "Laser"}],
        },
        headers=auth_headers(nurse),
    )
    assert res.status_code == 201
    assert res.json()["data"]["count"] == 3
    assert res.json()["data"]["total_fee"] == 2300


def test_batch_with_unknown_treatment_saves_nothing(client, db):
    make_treatment(db, "Botox")
    nurse = make_employee(db, "N1", "王護理", "護理師")
    res = client.post(
        "/api/executions/batch",
        json={"customer_name": "路過客", "items": [{"treatment_name": "Botox"}, {"treatment_name": "Ghost"}]},
        headers=auth_headers(nurse),
    )
    assert res.status_code == 404
    assert db.query(ExecutionRecord).count() == 0


def test_admin_reassigns_record_via_api(client, db, feed_db, admin):
    make_treatment(db, "Botox")
    a = make_employee(db, "A1", "陳美容", "美容師")
    make_employee(db, "B1", "王護理", "護理師", shortname="理")
    make_appointment(feed_db, 1, "林小姐")
    created = client.post("/api/executions", json={"appointment_id": 1, "treatment_name": "Botox"}, headers=auth_headers(a))
    record_id = created.json()["data"]["id"]

    denied = client.put(f"/api/executions/{record_id}", json={"employee_id": "B1"}, headers=auth_headers(a))
    assert denied.status_code == 403

    res = client.put(f"/api/executions/{record_id}", json={"employee_id": "B1"}, headers=auth_headers(admin))
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["unit_fee"] == 1000
    assert data["employee_id"] == "B1"
    assert data["employee_name"] == "王護理"


def test_delete_record_permissions_via_api(client, db):
    botox = make_treatment(db, "Botox")
    owner = make_employee(db, "E1", "陳美容", "美容師")
    stranger = make_employee(db, "E2", "王護理", "護理師")
    created = client.post(
        "/api/executions",
        json={"customer_name": "路過客", "treatment_id": botox.id, "appointment_date": "2026-10-18"},
        headers=auth_headers(owner),
    )
    record_id = created.json()["data"]["id"]

    assert client.delete(f"/api/executions/{record_id}", headers=auth_headers(stranger)).status_code == 403
    assert client.delete(f"/api/executions/{record_id}", headers=auth_headers(owner)).status_code == 200
    assert client.delete(f"/api/executions/{record_id}", headers=auth_headers(owner)).status_code == 404


def test_treatment_management_permissions(client, db):
    user = make_employee(db, "E1", "陳美容", "美容師")
    sup = make_employee(db, "S1", "張主任", "諮詢師", role="senior_supervisor")
    payload = {"treatment_name": "Botox", "nurse_fee": 1000, "beautician_fee": 800, "consultant_fee": 600}

    assert client.post("/api/treatments", json=payload, headers=auth_headers(user)).status_code == 403
    created = client.post("/api/treatments", json=payload, headers=auth_headers(sup))
    assert created.status_code == 201
    treatment_id = created.json()["data"]["id"]

    listed = client.get("/api/treatments", headers=auth_headers(user)).json()["data"]
    assert listed[0]["my_fee"] == 800

    assert client.delete(f"/api/treatments/{treatment_id}", headers=auth_headers(sup)).status_code == 200
    assert client.get("/api/treatments", headers=auth_headers(user)).json()["data"] == []
    all_rows = client.get("/api/treatments/all", headers=auth_headers(sup)).json()["data"]
    assert all_rows[0]["is_active"] is False


def test_stats_endpoints(client, db, admin):
    botox = make_treatment(db, "Botox")
    nurse = make_employee(db, "N1", "王護理", "護理師")
    client.post(
        "/api/executions",
        json={"customer_name": "甲", "treatment_id": botox.id, "appointment_date": "2026-10-18"},
        headers=auth_headers(nurse),
    )

    mine = client.get("/api/stats/mine", params={"window": "day", "as_of": "2026-10-18"}, headers=auth_headers(nurse))
    assert mine.json()["data"]["total_fee"] == 1000

    assert client.get("/api/stats/all", headers=auth_headers(nurse)).status_code == 403
    assert client.get("/api/stats/mine", headers=auth_headers(admin)).status_code == 403

    clinic = client.get("/api/stats/all", params={"window": "week", "as_of": "2026-10-18"}, headers=auth_headers(admin))
    assert clinic.json()["data"]["employees"][0]["percentage"] == 100.0

    bad = client.get("/api/stats/mine", params={"window": "year"}, headers=auth_headers(nurse))
    assert bad.status_code == 422


def test_employee_admin_endpoints(client, db, admin):
    res = client.post(
        "/api/employees",
        json={"employee_id": "N9", "name": "新護理", "job_title": "Nurse"},
        headers=auth_headers(admin),
    )
    assert res.status_code == 201
    assert res.json()["data"]["role_category"] == "護理師"

    res = client.put("/api/employees/N9", json={"job_title": "美容師"}, headers=auth_headers(admin))
    assert res.json()["data"]["role_category"] == "美容師"

    res = client.put("/api/employees/N9/edit-permission", json={"can_edit_records": True}, headers=auth_headers(admin))
    assert res.json()["data"]["can_edit_records"] is True

    assert client.delete("/api/employees/admin", headers=auth_headers(admin)).status_code == 403
    assert client.delete("/api/employees/N9", headers=auth_headers(admin)).status_code == 200
    assert client.get("/api/employees/N9", headers=auth_headers(admin)).status_code == 404


def test_employee_admin_requires_administrator(client, db):
    sup = make_employee(db, "S1", "張主任", "諮詢師", role="senior_supervisor")
    assert client.get("/api/employees", headers=auth_headers(sup)).status_code == 403


def test_nickname_reset_follows_policy(client, db, admin, monkeypatch):
    make_employee(db, "E1", "王美", "護理師", nickname="王美", shortname="美")

    monkeypatch.setattr("clinic_portal.logic.employees.ALLOW_NICKNAME_RESET", False)
    assert client.post("/api/employees/E1/reset-nickname", headers=auth_headers(admin)).status_code == 403

    monkeypatch.setattr("clinic_portal.logic.employees.ALLOW_NICKNAME_RESET", True)
    res = client.post("/api/employees/E1/reset-nickname", headers=auth_headers(admin))
    assert res.status_code == 200
    assert res.json()["data"]["has_nickname"] is False

    step = client.post("/api/auth/identify", json={"employee_id": "E1"})
    assert step.json()["data"]["next_step"] == "setup_nickname"


def test_login_records_admin_views(client, db, admin):
    make_employee(db, "E1", "王美", "護理師", nickname="王美", shortname="美")
    client.post("/api/auth/verify-nickname", json={"employee_id": "E1", "nickname": "王美"})
    client.post("/api/auth/verify-nickname", json={"employee_id": "E1", "nickname": "王美"})

    res = client.get("/api/login-records", headers=auth_headers(admin))
    records = res.json()["data"]
    assert len(records) == 2
    assert records[0]["employee_name"] == "王美"

    filtered = client.get("/api/login-records", params={"start": "2000-01-01", "end": "2000-01-02"},
                          headers=auth_headers(admin))
    assert filtered.json()["data"] == []

    export = client.get("/api/login-records/export", headers=auth_headers(admin))
    assert export.status_code == 200
    assert export.headers["content-type"] == XLSX_MEDIA_TYPE
    assert export.content[:2] == b"PK"

    res = client.delete(f"/api/login-records/{records[0]['id']}", headers=auth_headers(admin))
    assert res.status_code == 200
    assert db.query(LoginRecord).count() == 1

    user = db.query(Employee).filter(Employee.employee_id == "E1").one()
    assert client.get("/api/login-records", headers=auth_headers(user)).status_code == 403


def test_employee_export(client, admin):
    res = client.get("/api/employees/export-to-excel", headers=auth_headers(admin))
    assert res.status_code == 200
    assert res.headers["content-disposition"].startswith('attachment; filename="employees_')


def test_unknown_route_and_wrong_method_use_error_envelope(client):
    res = client.get("/api/does-not-exist")
    assert res.status_code == 404
    assert res.json() == {"success": False, "message": "Not Found", "data": {}}

    res = client.delete("/health")
    assert res.status_code == 405
    assert res.json()["success"] is False


def test_request_validation_lists_fields(client):
    res = client.post("/api/auth/identify", json={})
    assert res.status_code == 422
    assert res.json() == {"success": False, "message": "Invalid request", "data": {"fields": ["employee_id"]}}


def test_remembered_login_prefills_only_while_valid(client):
    res = client.post("/api/auth/remembered", json={"employee_id": "E1", "expires_at": "2099-01-01T00:00:00"})
    assert res.status_code == 200
    assert res.json()["data"] == {"employee_id": "E1"}

    res = client.post("/api/auth/remembered", json={"employee_id": "E1", "expires_at": "2000-01-01T00:00:00+00:00"})
    assert res.json()["data"] == {"employee_id": None}
