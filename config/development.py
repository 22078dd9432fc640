import os

from config import weekly_off_days

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "school_ledger"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Optional: also seed demo data on startup
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

WEEKLY_OFF_DAYS = weekly_off_days(os.getenv("WEEKLY_OFF_DAYS", "0"))
FEE_DUE_DAY = int(os.getenv("FEE_DUE_DAY", "15"))
LEDGER_PAGE_SIZE = int(os.getenv("LEDGER_PAGE_SIZE", "24"))
FEE_JOB_BATCH_SIZE = int(os.getenv("FEE_JOB_BATCH_SIZE", "100"))
