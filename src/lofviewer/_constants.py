"""Internal constants shared across the library."""

USER_AGENT = "lofviewer/1"

# ------------------------------------------------------------------
# Scheduling (milliseconds unless noted)
# ------------------------------------------------------------------

POLL_INTERVAL_MS = 15_000
COUNTDOWN_TICK_S = 1.0

# ------------------------------------------------------------------
# Connectivity derivation
# ------------------------------------------------------------------

OFFLINE_FAILURE_THRESHOLD = 3
DEGRADED_FAILURE_THRESHOLD = 2
STALE_AFTER_MS = 60_000
FRESH_WITHIN_MS = 30_000
HISTORY_LIMIT = 50

# ------------------------------------------------------------------
# Speaker rules
# ------------------------------------------------------------------

EXTENSION_WINDOW_S = 30
COUNTDOWN_CAUTION_S = 60
GEO_BLOCKED_TIER = 4
PHYSICAL_NOTICE_DEBOUNCE_MS = 5_000

# ------------------------------------------------------------------
# User actions
# ------------------------------------------------------------------

SONG_COOLDOWN_MS = 15_000
RECENT_REQUEST_TTL_MS = 300_000
NOTICE_SUCCESS_TTL_MS = 5_000
NOTICE_ERROR_TTL_MS = 8_000
