import os

from config import weekly_off_days

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "school_ledger"),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

WEEKLY_OFF_DAYS = weekly_off_days(os.getenv("WEEKLY_OFF_DAYS", "0"))
FEE_DUE_DAY = int(os.getenv("FEE_DUE_DAY", "15"))
LEDGER_PAGE_SIZE = int(os.getenv("LEDGER_PAGE_SIZE", "24"))
FEE_JOB_BATCH_SIZE = int(os.getenv("FEE_JOB_BATCH_SIZE", "100"))
