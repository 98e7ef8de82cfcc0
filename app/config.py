"""Application configuration for the Workspace Task Recurrence service."""
from datetime import date, datetime
import os

import pytz
from dotenv import load_dotenv

# Load environment variables but prioritize local development
load_dotenv()

# Use the DATABASE_URL from environment variable, with fallback to SQLite for local dev
DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./workspace_tasks.db")
IS_SQLITE = DATABASE_URL.startswith("sqlite")

ENVIRONMENT = os.environ.get("ENVIRONMENT", "development")
FRONTEND_URL = os.environ.get("FRONTEND_URL", "http://localhost:5173")

# Timezone used to decide what "today" means for due-today and series deletion
APP_TIMEZONE = os.environ.get("APP_TIMEZONE", "UTC")

# Hard cap on dates produced by a single expansion
RECURRENCE_MAX_OCCURRENCES = int(os.environ.get("RECURRENCE_MAX_OCCURRENCES", "10000"))

# How many instances are stored up front when a recurring task is created
RECURRENCE_EAGER_INSTANCES = int(os.environ.get("RECURRENCE_EAGER_INSTANCES", "50"))

# Window used by preview endpoints when the caller gives no end date
RECURRENCE_DEFAULT_WINDOW_DAYS = int(os.environ.get("RECURRENCE_DEFAULT_WINDOW_DAYS", "90"))


def get_timezone(name: str = None):
    """Resolve a pytz timezone, falling back to UTC for unknown names."""
    try:
        return pytz.timezone(name or APP_TIMEZONE)
    except pytz.UnknownTimeZoneError:
        return pytz.utc


def today(tz_name: str = None) -> date:
    """Current calendar date in the application timezone."""
    return datetime.now(get_timezone(tz_name)).date()
