import importlib
import logging
import traceback
from typing import Generator

import pymysql
from pymysql.cursors import DictCursor
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from clinic_portal.config import (
    ADMIN_EMPLOYEE_ID,
    ADMIN_NAME,
    APPOINTMENTS_DATABASE_URL,
    DATABASE_URL,
    DB_HOST,
    DB_NAME,
    DB_PASSWORD,
    DB_PORT,
    DB_USER,
)

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)


def _engine_for(url: str):
    """Build an engine; in-memory SQLite (tests) needs a single shared connection."""
    if url.startswith("sqlite"):
        return create_engine(
            url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(
        url,
        echo=False,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,
    )


# ---------------------------------------------------------------------------
# Portal store: employees, fee table, execution ledger, login records
# ---------------------------------------------------------------------------
engine = _engine_for(DATABASE_URL)

Base = declarative_base()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# ---------------------------------------------------------------------------
# Appointment feed: owned by the booking system, read-only for us
# ---------------------------------------------------------------------------
if APPOINTMENTS_DATABASE_URL == DATABASE_URL:
    feed_engine = engine
else:
    feed_engine = _engine_for(APPOINTMENTS_DATABASE_URL)

FeedBase = declarative_base()
FeedSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=feed_engine)


def get_feed_db() -> Generator[Session, None, None]:
    db = FeedSessionLocal()
    try:
        yield db
    finally:
        db.close()


# ---------------------------------------------------------------------------
# pymysql direct helper (only used to create the schema on a fresh server)
# ---------------------------------------------------------------------------

def get_db_connection(use_db=True):
    """Create and return a database connection"""
    conn_params = dict(
        host=DB_HOST,
        user=DB_USER,
        password=DB_PASSWORD,
        port=DB_PORT,
        cursorclass=DictCursor,
        autocommit=False
    )
    if use_db:
        conn_params["database"] = DB_NAME
    return pymysql.connect(**conn_params)


def _ensure_mysql_database():
    try:
        conn = get_db_connection(use_db=False)
    except Exception:
        logger.error("ERROR: Could not connect to MySQL server to create database.")
        logger.error(traceback.format_exc())
        return

    try:
        with conn.cursor() as cur:
            try:
                cur.execute(
                    f"CREATE DATABASE IF NOT EXISTS `{DB_NAME}` "
                    "DEFAULT CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci;"
                )
                conn.commit()
                logger.info(f"Database `{DB_NAME}` ensured.")
            except Exception:
                logger.error(f"ERROR: Could not create database `{DB_NAME}`.")
                logger.error(traceback.format_exc())
                conn.rollback()
    finally:
        conn.close()


# keep in sync with files inside clinic_portal/models that belong to the portal store
MODEL_MODULES = [
    "employee_model",
    "treatment_fee_model",
    "execution_record_model",
    "login_record_model",
]


def seed_admin(db: Session):
    """Make sure the reserved administrator account exists."""
    from clinic_portal.models.employee_model import Employee
    from clinic_portal.logic.roles import ROLE_ADMIN, classify

    existing = db.query(Employee).filter(Employee.employee_id == ADMIN_EMPLOYEE_ID).first()
    if existing:
        return existing

    admin = Employee(
        employee_id=ADMIN_EMPLOYEE_ID,
        name=ADMIN_NAME,
        job_title="administrator",
        role_category=classify("administrator").value,
        role=ROLE_ADMIN,
        can_edit_records=True,
    )
    db.add(admin)
    db.commit()
    logger.info("Seeded reserved administrator account %s", ADMIN_EMPLOYEE_ID)
    return admin


def init_db():
    # 1) Create database if missing (MySQL only)
    if DATABASE_URL.startswith("mysql+pymysql"):
        _ensure_mysql_database()

    # 2) Import all SQLAlchemy models so Base.metadata knows the schema
    for mod in MODEL_MODULES:
        try:
            importlib.import_module(f"clinic_portal.models.{mod}")
        except Exception as e:
            logger.warning(f"Warning: Could not import clinic_portal.models.{mod}: {e}")
            logger.debug(traceback.format_exc())

    # 3) Create portal tables; the appointment feed schema is never touched
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Base.metadata.create_all() executed.")
    except Exception:
        logger.error("ERROR: Base.metadata.create_all failed.")
        logger.error(traceback.format_exc())
        return

    # 4) Seed the reserved administrator
    db = SessionLocal()
    try:
        seed_admin(db)
    except Exception:
        db.rollback()
        logger.warning("Warning: Could not seed administrator account.")
        logger.debug(traceback.format_exc())
    finally:
        db.close()
