# vehicle_monitor/config.py

import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# --- Paths ---
BASE_DIR = Path(__file__).parent.parent

# --- Database ---
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR / 'vehicle_monitor.db'}")

# --- Auth ---
JWT_SECRET = os.getenv("JWT_SECRET", "your-super-secret-key")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
TOKEN_EXPIRY_DAYS = int(os.getenv("TOKEN_EXPIRY_DAYS", "7"))
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))
MIN_PASSWORD_LENGTH = 6

# Optional first admin account, created on startup when both are set
ADMIN_USERNAME = os.getenv("ADMIN_USERNAME")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")

# --- Uploads ---
UPLOAD_DIR = Path(os.getenv("UPLOAD_DIR", str(BASE_DIR / "public" / "uploads")))
UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
UPLOAD_URL_PREFIX = os.getenv("UPLOAD_URL_PREFIX", "/uploads").rstrip("/")

# --- Listing / export ---
DEFAULT_PAGE_SIZE = 20
EXPORT_COLUMNS = [
    ("sn", "S.N."),
    ("plateNumber", "Plate Number"),
    ("detectedAt", "Detected At"),
    ("source", "Source"),
    ("imageUrl", "Image URL"),
]

# --- API ---
API_TITLE = "Vehicle Monitor API"
API_VERSION = "1.0.0"
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
