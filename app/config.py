"""Application configuration and constants."""
import os
from pathlib import Path

# Directory paths
BASE_DIR = Path(__file__).resolve().parent.parent
UPLOADS_DIR = Path(os.environ.get("MARKET_UPLOADS_DIR", str(BASE_DIR / "uploads")))

# Create directories if they don't exist
UPLOADS_DIR.mkdir(parents=True, exist_ok=True)

# Runtime environment: development, production or test
ENVIRONMENT = os.environ.get("MARKET_ENV", "development").lower()
IS_PRODUCTION = ENVIRONMENT == "production"

# Logging
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
LOG_JSON = os.environ.get("LOG_JSON", "true" if IS_PRODUCTION else "false").lower() == "true"

# Public base URL (used to build links to locally stored files and in emails)
PUBLIC_URL = os.environ.get("PUBLIC_URL", "http://localhost:8000").rstrip("/")

# Session configuration
SESSION_COOKIE = "market_session"
SESSION_MAX_AGE = 60 * 60 * 24 * 7  # 7 days

# Paths that require a logged-in user (prefix match)
PROTECTED_PATH_PREFIXES = (
    "/api/user",
    "/api/admin",
    "/api/progress",
    "/api/lessons",
    "/api/bookings",
)

# CSRF configuration
CSRF_TOKEN_NAME = "csrf_token"
CSRF_HEADER_NAME = "X-CSRF-Token"
CSRF_COOKIE_NAME = "market_csrf"

# Locale cookie
LOCALE_COOKIE = "locale"
LOCALE_COOKIE_MAX_AGE = 60 * 60 * 24 * 365  # 1 year

# Upload configuration
MAX_UPLOAD_SIZE = int(os.environ.get("MAX_UPLOAD_SIZE_MB", "500")) * 1024 * 1024
ALLOWED_UPLOAD_TYPES = {
    # Documents
    "application/pdf",
    "application/epub+zip",
    "application/zip",
    # Audio
    "audio/mpeg",
    "audio/mp3",
    "audio/wav",
    # Video
    "video/mp4",
    "video/quicktime",
    # Images
    "image/jpeg",
    "image/png",
    "image/webp",
}
SIGNED_URL_EXPIRY = int(os.environ.get("SIGNED_URL_EXPIRY", "3600"))  # seconds

# Catalog prices are stored in this currency
CATALOG_CURRENCY = os.environ.get("CATALOG_CURRENCY", "USD")

# Email (Resend)
RESEND_API_KEY = os.environ.get("RESEND_API_KEY", None)
RESEND_API_URL = os.environ.get("RESEND_API_URL", "https://api.resend.com/emails")
EMAIL_FROM = os.environ.get("EMAIL_FROM", "noreply@example.com")
EMAIL_FROM_NAME = os.environ.get("EMAIL_FROM_NAME", "Course Marketplace")
EMAIL_REPLY_TO = os.environ.get("EMAIL_REPLY_TO", None)
EMAIL_TIMEOUT = float(os.environ.get("EMAIL_TIMEOUT", "10"))
