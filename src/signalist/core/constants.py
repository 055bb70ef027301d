"""Application-wide constants.

These are fixed values that don't change between environments.
For configurable values, see config.py Settings.
"""

# ─────────────────────────────────────────────────────────────
# API Rate Limits (external constraints)
# ─────────────────────────────────────────────────────────────
FINNHUB_RATE_LIMIT_CALLS_PER_MINUTE = 60  # Free tier limit

# ─────────────────────────────────────────────────────────────
# News aggregation
# ─────────────────────────────────────────────────────────────
MAX_NEWS_ITEMS = 6  # Cap for both general and scoped fetches
MAX_NEWS_ROUNDS = 6  # Round-robin passes over the symbol list
NEWS_WINDOW_DAYS = 5  # Company news recency window
NEWS_FETCH_TIMEOUT_SECONDS = 90.0  # Outer bound per source call, covers rate-limit waits

# ─────────────────────────────────────────────────────────────
# Digest
# ─────────────────────────────────────────────────────────────
DEFAULT_DIGEST_CRON_HOUR = 12
DEFAULT_DIGEST_WORKERS = 5
DEFAULT_EXTERNAL_TIMEOUT_SECONDS = 30.0
DIGEST_SHUTDOWN_GRACE_SECONDS = 60.0  # Wait for an in-flight run before closing pools
DIGEST_FALLBACK_MESSAGE = "No news available today."
WELCOME_FALLBACK_INTRO = (
    "Thanks for joining Signalist! You now have the tools to track markets "
    "and make smarter investment decisions."
)
DIGEST_REPORT_CHANNEL = "signalist:digest:reports"

# ─────────────────────────────────────────────────────────────
# API URL Defaults (used as defaults in Settings)
# ─────────────────────────────────────────────────────────────
DEFAULT_FINNHUB_API_URL = "https://finnhub.io/api/v1"
