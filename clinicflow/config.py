import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./clinicflow.db")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "720"))

# Clinic business hours used for slot generation ("HH:MM", local server time)
BUSINESS_HOURS_START = os.getenv("BUSINESS_HOURS_START", "09:00")
BUSINESS_HOURS_END = os.getenv("BUSINESS_HOURS_END", "17:00")

# Keep the last slot even when it runs past closing time (duration not dividing the window)
SLOT_ALLOW_OVERFLOW = os.getenv("SLOT_ALLOW_OVERFLOW", "true").lower() == "true"

# "closed" = a failed conflict query blocks the booking, "open" = legacy behaviour (allow it)
CONFLICT_CHECK_FAIL_MODE = os.getenv("CONFLICT_CHECK_FAIL_MODE", "closed").lower()
if CONFLICT_CHECK_FAIL_MODE not in ("closed", "open"):
    import warnings

    warnings.warn(
        f"Unknown CONFLICT_CHECK_FAIL_MODE '{CONFLICT_CHECK_FAIL_MODE}', falling back to 'closed'",
        RuntimeWarning,
        stacklevel=2,
    )
    CONFLICT_CHECK_FAIL_MODE = "closed"

# Revenue reporting
REVENUE_DAILY_WINDOW_DAYS = int(os.getenv("REVENUE_DAILY_WINDOW_DAYS", "30"))
REVENUE_WEEKLY_WINDOW_WEEKS = int(os.getenv("REVENUE_WEEKLY_WINDOW_WEEKS", "12"))
REVENUE_CURRENCY = os.getenv("REVENUE_CURRENCY", "USD")

# Frontend origins allowed by CORS
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:5173,http://localhost:3000",
).split(",")
