"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_MAX_CAPACITY = 50
CAPACITY_THRESHOLD = 0.9

SCHOOL_YEAR_MIN = 1900
SCHOOL_YEAR_MAX = 2100

DEFAULT_SESSION_TTL_MINUTES = 480

# Minutes to wait before retry attempt N (index = attempts already made).
RETRY_BACKOFF_MINUTES = (5, 15, 45, 120)
DEFAULT_MAX_RETRIES = 3
RETRY_BATCH_SIZE = 50
RETRY_CLEANUP_DAYS = 30
