"""Centralized constants for the Project Pulse dashboard."""

# Storage keys
TOKEN_STORAGE_KEY = 'project_tokens'

# Google endpoints
GOOGLE_AUTH_URI = 'https://accounts.google.com/o/oauth2/auth'
GOOGLE_TOKEN_URI = 'https://oauth2.googleapis.com/token'
GOOGLE_CERTS_URL = 'https://www.googleapis.com/oauth2/v1/certs'

# Default Values
DEFAULT_SHEET_NAME = 'Sheet1'
DEFAULT_SHEET_RANGE = 'A1:G100'
DEFAULT_REFRESH_INTERVAL_MS = 60_000
DEFAULT_CACHE_TTL_MS = 60_000
DEFAULT_FETCH_TIMEOUT_SECONDS = 30.0

# Sheet column layout (0-indexed)
COL_NAME = 0
COL_MANAGER = 1
COL_LAST_UPDATED = 2
COL_BUDGET = 3
COL_PLAN_LINK = 4
COL_PROGRESS = 5
COL_NOTES = 6

# Progress buckets used by the summary
PROGRESS_LOW_BELOW = 40
PROGRESS_HIGH_FROM = 80
