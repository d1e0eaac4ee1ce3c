import os
import tempfile
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).parent
load_dotenv(BASE_DIR / ".env")

# Snippet database
DATABASE_PATH = Path(os.environ.get("DATABASE_PATH", str(BASE_DIR / "rookery.sqlite3")))

# External renderer (override via environment variables)
FREEZE_PATH = os.environ.get("FREEZE_PATH", "")
RENDER_TEMP_DIR = Path(os.environ.get("RENDER_TEMP_DIR", "") or tempfile.gettempdir())

# Timeouts in seconds
RENDER_TIMEOUT = float(os.environ.get("RENDER_TIMEOUT", "10"))
POLL_INTERVAL = float(os.environ.get("POLL_INTERVAL", "0.05"))
TERMINATE_GRACE = float(os.environ.get("TERMINATE_GRACE", "0.1"))
WHICH_TIMEOUT = float(os.environ.get("WHICH_TIMEOUT", "5"))

# Input limits
MAX_CODE_BYTES = int(os.environ.get("MAX_CODE_BYTES", "100000"))

# Rate limiting: requests per client IP per window
RATE_LIMIT_MAX_REQUESTS = int(os.environ.get("RATE_LIMIT_MAX_REQUESTS", "100"))
RATE_LIMIT_WINDOW_SECONDS = float(os.environ.get("RATE_LIMIT_WINDOW_SECONDS", "60"))

# Server settings
SERVER_HOST = os.environ.get("SERVER_HOST", "127.0.0.1")
SERVER_PORT = int(os.environ.get("SERVER_PORT", "8000"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
