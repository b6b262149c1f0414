import os
import tempfile

AUTH_SECRET = "test-secret"
GOOGLE_CLIENT_ID = "test-client-id"
GOOGLE_CLIENT_SECRET = "test-client-secret"
GOOGLE_CALLBACK_URL = "http://localhost/auth/google/callback"

# A file, not ":memory:": every SQLite connection to ":memory:" gets its own
# empty database, so a threaded server would lose its tables.
DATABASE_PATH = os.path.join(tempfile.gettempdir(), "campus_attendance_test.db")
ENABLE_DATABASE_LOGGING = False

DEBUG = False
TESTING = True
SESSION_DAYS = 7

AUTO_INIT_DB = True
AUTO_SEED_DB = True
