import os
import urllib.parse

from dotenv import load_dotenv

load_dotenv()

# Database configuration (env defaults)
DB_HOST = os.getenv("DB_HOST", "localhost")
DB_USER = os.getenv("DB_USER", "root")
DB_PASSWORD = os.getenv("DB_PASSWORD", "")
DB_NAME = os.getenv("DB_NAME", "clinic_portal")
DB_PORT = int(os.getenv("DB_PORT", 3306))

_password_enc = urllib.parse.quote_plus(DB_PASSWORD)
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"mysql+pymysql://{DB_USER}:{_password_enc}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)

# The booking system lives in its own database; we only ever read from it
APPOINTMENTS_DATABASE_URL = os.getenv("APPOINTMENTS_DATABASE_URL", DATABASE_URL)

# Reserved administrator account (management screens only, never earns fees)
ADMIN_EMPLOYEE_ID = os.getenv("ADMIN_EMPLOYEE_ID", "admin")
ADMIN_NAME = os.getenv("ADMIN_NAME", "系統管理員")

# Session token settings
JWT_SECRET = os.getenv("JWT_SECRET", "change_this_in_production")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXP_DAYS = int(os.getenv("JWT_EXP_DAYS", "1"))  # default 1 day

# "Remember me" keeps the employee ID pre-filled for this many months
REMEMBER_ME_MONTHS = int(os.getenv("REMEMBER_ME_MONTHS", "1"))

# Nicknames/shortnames are write-once unless this is switched on, in which case
# an administrator may clear them and the employee sets them again on next login
ALLOW_NICKNAME_RESET = os.getenv("ALLOW_NICKNAME_RESET", "false").strip().lower() in ("1", "true", "yes", "y")

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

NICKNAME_LENGTH = 2
SHORTNAME_MIN_LENGTH = 1
SHORTNAME_MAX_LENGTH = 3
