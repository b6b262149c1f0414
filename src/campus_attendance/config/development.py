import os

from . import env_flag

AUTH_SECRET = os.getenv("AUTH_SECRET")
GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID")
GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET")
GOOGLE_CALLBACK_URL = os.getenv("GOOGLE_CALLBACK_URL", "http://localhost:5000/auth/google/callback")

DATABASE_PATH = os.getenv("DATABASE_PATH", "./data/app.db")
ENABLE_DATABASE_LOGGING = env_flag("ENABLE_DATABASE_LOGGING", False)

DEBUG = env_flag("DEBUG", True)
SESSION_DAYS = int(os.getenv("SESSION_DAYS", "7"))

# schema.sql is idempotent (CREATE ... IF NOT EXISTS), safe to apply on every start
AUTO_INIT_DB = env_flag("AUTO_INIT_DB", True)
# Optional: also seed demo students and courses on startup
AUTO_SEED_DB = env_flag("AUTO_SEED_DB", False)
