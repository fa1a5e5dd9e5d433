import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./clinic.db")

# Security - tokens are issued by the identity provider, we only verify them
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

# Wall clock used for "today" and elapsed-slot checks (IANA zone name)
CLINIC_TIMEZONE = os.getenv("CLINIC_TIMEZONE", "UTC")

# Scheduling policy
DEFAULT_SLOT_MINUTES = int(os.getenv("DEFAULT_SLOT_MINUTES", "30"))
BOOKING_TIMEOUT_SECONDS = float(os.getenv("BOOKING_TIMEOUT_SECONDS", "10"))
NO_SHOW_GRACE_MINUTES = int(os.getenv("NO_SHOW_GRACE_MINUTES", "15"))
# When true, an appointment must pass through "confirmed" before "completed"
REQUIRE_CONFIRMATION_BEFORE_COMPLETION = (
    os.getenv("REQUIRE_CONFIRMATION_BEFORE_COMPLETION", "true").lower() == "true"
)

# Notifications
NOTIFICATION_RETENTION_DAYS = int(os.getenv("NOTIFICATION_RETENTION_DAYS", "90"))  # 0 keeps forever
REMINDER_LEAD_HOURS = int(os.getenv("REMINDER_LEAD_HOURS", "24"))

# Frontend origins allowed by CORS
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:3000,http://localhost:3001",
).split(",")
