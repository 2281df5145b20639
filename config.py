# config.py
"""
Environment-driven settings for the studio booking payments backend.

Values are read once at import time after loading `.env`.
"""
import os

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_flag(name: str, default: str = "false") -> bool:
     return os.getenv(name, default).lower() == "true"


# Database
DATABASE_URL = os.getenv("DATABASE_URL")
DB_SERVER = os.getenv("DB_SERVER")
DB_PORT = os.getenv("DB_PORT", "1433")
DB_USER = os.getenv("DB_USER")
DB_PASS = os.getenv("DB_PASS")
DB_NAME = os.getenv("DB_NAME")
SQL_ECHO = _env_flag("SQL_ECHO")
INIT_DB_ON_STARTUP = _env_flag("INIT_DB_ON_STARTUP")

# Xendit
XENDIT_API_URL = os.getenv("XENDIT_API_URL", "https://api.xendit.co")
XENDIT_TIMEOUT_SECONDS = float(os.getenv("XENDIT_TIMEOUT_SECONDS", "15"))
# Use an active sandbox provider when no production provider is active
XENDIT_ALLOW_SANDBOX_FALLBACK = _env_flag("XENDIT_ALLOW_SANDBOX_FALLBACK")

DEFAULT_INVOICE_CURRENCY = "IDR"
DEFAULT_INVOICE_DURATION_SECONDS = 86400  # 24 hours

# HTTP
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# Logging
LOG_DIR = os.getenv("LOG_DIR", "logs")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_TO_FILE = _env_flag("LOG_TO_FILE", "true")
