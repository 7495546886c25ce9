"""Project configuration.

Deployment-specific values come from the environment (GAPFILL_* variables),
falling back to defaults. Keep API paths and request policy constants
centralized here.
"""
from __future__ import annotations

import os

# --- API endpoints ---

_DEFAULT_API_BASE_URL = "http://localhost:3000"

API_BASE_URL = _DEFAULT_API_BASE_URL
API_TOKEN = ""

FILL_DAY_PATH = "/routing/fill-day"
SMS_CLIENT_PATH = "/sms/client/{client_id}"
EMPLOYEE_EXTERNAL_PATH = "/employees/external/{external_id}"
PRIMARY_PROVIDERS_PATH = "/employees/providers/primary"

# --- Fill-day request policy ---

# Organizational policy, not a per-run preference.
RETURN_TO_DEPOT_POLICY = "afterHoursOk"
TAIL_OVERTIME_MINUTES = 120

# --- Deep links ---

PREVIEW_LINK_PATTERN = r"/appointments/doctor/([^/?#]+)"

# --- Outreach ---

_DEFAULT_PRACTICE_NAME = "Vet At Your Door"

PRACTICE_NAME = _DEFAULT_PRACTICE_NAME
SUCCESS_DISPLAY_SECONDS = 3.0

# --- Environment determination ---

BUILD_MODE = "development"
FORCE_PRODUCTION = False

# --- Display ---

_DEFAULT_DISPLAY_TIMEZONE = "America/New_York"

DISPLAY_TIMEZONE = _DEFAULT_DISPLAY_TIMEZONE
WEIGHT_UNIT = "lbs"
DEFAULT_PROVIDER_NAME = "Doctor"

# --- HTTP ---

HTTP_TIMEOUT_SECONDS = 20
HTTP_RETRY_MAX = 3
HTTP_BACKOFF_BASE = 0.5
HTTP_BACKOFF_MAX = 8.0

# --- Outputs ---

OUTPUT_DIR = "out"


def _env_flag(name: str) -> bool:
    return (os.environ.get(name) or "").strip().lower() in ("1", "true", "yes")


def load_env_overrides() -> None:
    """Refresh environment-backed settings.

    Called at import and again by the CLI after a .env file has been loaded.
    """
    globals_ref = globals()
    globals_ref["API_BASE_URL"] = (
        os.environ.get("GAPFILL_API_BASE_URL") or _DEFAULT_API_BASE_URL
    ).rstrip("/")
    globals_ref["API_TOKEN"] = os.environ.get("GAPFILL_API_TOKEN") or ""
    globals_ref["PRACTICE_NAME"] = os.environ.get("GAPFILL_PRACTICE_NAME") or _DEFAULT_PRACTICE_NAME
    globals_ref["BUILD_MODE"] = os.environ.get("GAPFILL_BUILD_MODE") or "development"
    globals_ref["FORCE_PRODUCTION"] = _env_flag("GAPFILL_FORCE_PRODUCTION")
    globals_ref["DISPLAY_TIMEZONE"] = os.environ.get("GAPFILL_DISPLAY_TZ") or _DEFAULT_DISPLAY_TIMEZONE


load_env_overrides()
