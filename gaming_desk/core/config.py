# gaming_desk/core/config.py
from __future__ import annotations
from dataclasses import dataclass
import os
import logging

# Billing
PER_PERSON_RATE: int = int(os.getenv("PER_PERSON_RATE", "50"))
COUNTRY_CODE: str = os.getenv("COUNTRY_CODE", "+91")
CAFE_NAME: str = os.getenv("CAFE_NAME", "SB Gaming Cafe")
DISPLAY_TZ: str = os.getenv("DISPLAY_TZ", "Asia/Kolkata")

# Mongo settings
STORE_BACKEND: str = os.getenv("STORE_BACKEND", "mongo").lower()
MONGO_URI: str = os.getenv("MONGO_URI", "mongodb://localhost:27017/?directConnection=true")
MONGO_DB: str = os.getenv("MONGO_DB", "gaming_cafe")
MONGO_ENTRIES_COL: str = os.getenv("MONGO_ENTRIES_COL", "entries")
CHANGE_POLL_S: float = float(os.getenv("CHANGE_POLL_S", "5"))

# SMS gateway
SMS_GATEWAY_URL: str = os.getenv("SMS_GATEWAY_URL", "https://www.fast2sms.com/dev/bulkV2")
SMS_API_KEY: str = os.getenv("SMS_API_KEY", "")
SMS_TIMEOUT_S: float = float(os.getenv("SMS_TIMEOUT_S", "10"))

# Background schedules
CLOCK_TICK_S: float = float(os.getenv("CLOCK_TICK_S", "1"))
EXPIRY_TICK_S: float = float(os.getenv("EXPIRY_TICK_S", "10"))
WARNING_WINDOW_S: int = int(os.getenv("WARNING_WINDOW_S", "300"))
ARCHIVE_RETENTION_MONTHS: int = int(os.getenv("ARCHIVE_RETENTION_MONTHS", "6"))
# 0 keeps the sweep to a single run per process start
ARCHIVE_INTERVAL_H: float = float(os.getenv("ARCHIVE_INTERVAL_H", "0"))

HOST: str = os.getenv("HOST", "0.0.0.0")
PORT: int = int(os.getenv("PORT", "8081"))


@dataclass(frozen=True)
class Paths:
    ROOT: str = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
    DATA_DIR: str = os.path.join(ROOT, "data")
    ARCHIVE_DIR: str = os.getenv("ARCHIVE_DIR", os.path.join(DATA_DIR, "archive"))

# Global logging (module-level loggers inherit this)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
