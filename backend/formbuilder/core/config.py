import logging
import os
from dotenv import load_dotenv

# Load .env from the backend directory
load_dotenv(os.path.join(os.path.dirname(__file__), "..", "..", ".env"))

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(level=LOG_LEVEL)

SECRET_KEY: str = os.getenv("SECRET_KEY", "form-builder-dev-secret-change-in-prod")
ALGORITHM: str = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))  # 24h

# Database: stored in backend/data/
BASE_DIR = os.path.dirname(os.path.abspath(__file__))
BACKEND_DIR = os.path.abspath(os.path.join(BASE_DIR, "..", ".."))

DATABASE_PATH: str = os.getenv(
    "DATABASE_PATH",
    os.path.join(BACKEND_DIR, "data", "forms.db"),
)

# Which persistence gateway backs the forms: "sqlite" or "supabase"
FORM_STORE: str = os.getenv("FORM_STORE", "sqlite").lower()

# Supabase (hosted document store) config, only used when FORM_STORE=supabase
SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
SUPABASE_KEY: str = os.getenv("SUPABASE_KEY", "")
SUPABASE_TIMEOUT_SECONDS: float = float(os.getenv("SUPABASE_TIMEOUT_SECONDS", "10"))

# Where the front end serves the filler view; share links point here
PUBLIC_BASE_URL: str = os.getenv("PUBLIC_BASE_URL", "http://localhost:5173/")

# Editor behaviour
AUTOSAVE_DELAY_SECONDS: float = float(os.getenv("AUTOSAVE_DELAY_SECONDS", "15"))
# open editor sessions untouched this long are flushed and dropped; 0 keeps them forever
EDITOR_IDLE_TIMEOUT_SECONDS: float = float(os.getenv("EDITOR_IDLE_TIMEOUT_SECONDS", "1800"))
NOTIFICATION_DURATION_SECONDS: float = float(os.getenv("NOTIFICATION_DURATION_SECONDS", "3"))
