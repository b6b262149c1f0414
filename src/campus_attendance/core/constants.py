"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_SESSION_DAYS = 7
DEFAULT_HISTORY_LIMIT = 30
DEFAULT_DATABASE_PATH = "./data/app.db"
DEFAULT_LOCALE = "zh-TW"

# Trailing window used by the "this week" statistic.
WEEK_WINDOW_DAYS = 7

STUDENT_ID_LENGTH = 6
STUDENT_NAME_MIN_LENGTH = 2
STUDENT_NAME_MAX_LENGTH = 20

# Geolocation sampling (meters / milliseconds)
REFINE_ACCURACY_THRESHOLD_M = 20.0
WATCH_TARGET_ACCURACY_M = 5.0
SINGLE_SHOT_TIMEOUT_MS = 30_000
REFINE_TIMEOUT_MS = 45_000
WATCH_TIMEOUT_MS = 15_000
