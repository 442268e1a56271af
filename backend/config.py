import os
from dotenv import load_dotenv

load_dotenv()

# --- AI (comma-separated for rotation) ---
GEMINI_API_KEYS = [k.strip() for k in os.getenv("GEMINI_API_KEYS", "").split(",") if k.strip()]
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
AI_CACHE_TTL = int(os.getenv("AI_CACHE_TTL", "1800"))  # seconds, 0 disables caching
AI_TIMEOUT_SECONDS = float(os.getenv("AI_TIMEOUT_SECONDS", "30"))

# --- Auth (Supabase-issued JWTs) ---
SUPABASE_JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET", "change-this-secret-key")
JWT_ALGORITHM = "HS256"
JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "authenticated")

# --- Database ---
# Default to local SQLite, but prefer environment variable (Supabase Postgres)
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./data/focusflow.db")

# Fix for common SQLAlchemy issues with postgres:// vs postgresql://
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

# --- App ---
APP_NAME = os.getenv("APP_NAME", "FocusFlow")
USER_TIMEZONE = os.getenv("USER_TIMEZONE", "UTC")  # IANA name, drives "today" and local midnight
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
