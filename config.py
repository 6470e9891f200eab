from __future__ import annotations

import os

# -----------------------
# Config
# -----------------------
APP_ENV = os.environ.get("APP_ENV", "local").lower()
IS_PRODUCTION = APP_ENV == "production"

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

# Optional: when unset, the API is open
API_KEY = os.environ.get("BAZI_BRIDGE_API_KEY") or None

DEFAULT_TZ = os.environ.get("DEFAULT_TZ", "Europe/Moscow")
DEFAULT_YEAR = int(os.environ.get("DEFAULT_YEAR", "2026"))
DEFAULT_YEAR_ANIMAL = os.environ.get("DEFAULT_YEAR_ANIMAL", "Fire Horse")
DEFAULT_STYLE = "poetic"
