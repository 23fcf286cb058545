import os

from dotenv import load_dotenv

# Load environment variables from .env file, if it exists
load_dotenv()


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# CORS
DEV_DOMAIN = os.getenv("DEV_DOMAIN", "http://localhost:5173")
PRODUCTION_DOMAIN = os.getenv("PRODUCTION_DOMAIN", "")

# Location acquisition (seconds)
LOCATION_CACHE_FRESHNESS_SECONDS = _float_env("LOCATION_CACHE_FRESHNESS_SECONDS", 120.0)
LOCATION_FAST_TIMEOUT_SECONDS = _float_env("LOCATION_FAST_TIMEOUT_SECONDS", 5.0)
LOCATION_FAST_MAX_AGE_SECONDS = _float_env("LOCATION_FAST_MAX_AGE_SECONDS", 60.0)
LOCATION_FALLBACK_TIMEOUT_SECONDS = _float_env("LOCATION_FALLBACK_TIMEOUT_SECONDS", 15.0)
LOCATION_FALLBACK_MAX_AGE_SECONDS = _float_env("LOCATION_FALLBACK_MAX_AGE_SECONDS", 300.0)

# Site policy
SITE_MIN_RADIUS_METERS = _float_env("SITE_MIN_RADIUS_METERS", 100.0)
SITE_MAX_RADIUS_METERS = _float_env("SITE_MAX_RADIUS_METERS", 10000.0)
DEFAULT_SITE_RADIUS_METERS = _float_env("DEFAULT_SITE_RADIUS_METERS", 2000.0)
SITE_CACHE_TTL_SECONDS = _float_env("SITE_CACHE_TTL_SECONDS", 300.0)

# Reporting
REPORTING_TIMEZONE = os.getenv("REPORTING_TIMEZONE", "UTC")

# Shift history paging
HISTORY_DEFAULT_PAGE_SIZE = _int_env("HISTORY_DEFAULT_PAGE_SIZE", 20)
HISTORY_MAX_PAGE_SIZE = _int_env("HISTORY_MAX_PAGE_SIZE", 100)

# E-mails that always map to the MANAGER role, comma separated
MANAGER_EMAILS = {
    e.strip().lower() for e in os.getenv("MANAGER_EMAILS", "").split(",") if e.strip()
}
