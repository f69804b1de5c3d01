import os

# Point both stores at throwaway in-memory SQLite databases before the app is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["APPOINTMENTS_DATABASE_URL"] = "sqlite:///:memory:"
os.environ.setdefault("ADMIN_EMPLOYEE_ID", "admin")
os.environ.setdefault("JWT_SECRET", "test-secret")

from datetime import date  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from clinic_portal.database import (  # noqa: E402
    Base,
    FeedBase,
    FeedSessionLocal,
    SessionLocal,
    engine,
    feed_engine,
    seed_admin,
)
from clinic_portal.logic.roles import classify  # noqa: E402
from clinic_portal.models.appointment_model import Appointment  # noqa: E402
from clinic_portal.models.employee_model import Employee  # noqa: E402
from clinic_portal.models.execution_record_model import ExecutionRecord  # noqa: E402,F401
from clinic_portal.models.login_record_model import LoginRecord  # noqa: E402,F401
from clinic_portal.models.treatment_fee_model import TreatmentFee  # noqa: E402
from clinic_portal.session import SessionContext, create_session_token  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_databases():
    Base.metadata.drop_all(bind=engine)
    FeedBase.metadata.drop_all(bind=feed_engine)
    Base.metadata.create_all(bind=engine)
    FeedBase.metadata.create_all(bind=feed_engine)
    s = SessionLocal()
    try:
        seed_admin(s)
    finally:
        s.close()
    yield


@pytest.fixture
def db(fresh_databases):
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def feed_db(fresh_databases):
    session = FeedSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(fresh_databases):
    from clinic_portal.main import app
    return TestClient(app)


@pytest.fixture
def admin(db):
    return db.query(Employee).filter(Employee.employee_id == "admin").one()


def make_employee(db, employee_id, name, job_title, role="user", can_edit_records=False,
                  nickname=None, shortname=None):
    employee = Employee(
        employee_id=employee_id,
        name=name,
        job_title=job_title,
        role_category=classify(job_title).value,
        role=role,
        can_edit_records=can_edit_records,
        nickname=nickname,
        shortname=shortname,
    )
    db.add(employee)
    db.commit()
    db.refresh(employee)
    return employee


def make_treatment(db, name, nurse=1000, beautician=800, consultant=600, category="注射", active=True):
    treatment = TreatmentFee(
        treatment_name=name,
        category=category,
        nurse_fee=nurse,
        beautician_fee=beautician,
        consultant_fee=consultant,
        is_active=active,
    )
    db.add(treatment)
    db.commit()
    db.refresh(treatment)
    return treatment


def make_appointment(feed_db, appointment_id, customer_name, day=None, time_24h="10:00", treatment_item="Botox"):
    appointment = Appointment(
        id=appointment_id,
        appointment_date=day or date.today(),
        time_24h=time_24h,
        customer_name=customer_name,
        treatment_item=treatment_item,
        status="booked",
    )
    feed_db.add(appointment)
    feed_db.commit()
    feed_db.refresh(appointment)
    return appointment


def auth_headers(employee):
    return {"Authorization": f"Bearer {create_session_token(employee)}"}


def ctx_for(employee):
    return SessionContext(employee)
