"""Configuration: env, public URL, Spotify credentials, token encryption, timings."""
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

# Base paths (project root = parent of hudify package)
BASE_DIR = Path(__file__).resolve().parent.parent

# Load .env from project root so SPOTIFY_CLIENT_ID etc. are set
load_dotenv(BASE_DIR / ".env")

DATA_DIR = BASE_DIR / "data"
CREDENTIALS_PATH = Path(os.getenv("HUDIFY_CREDENTIALS_PATH", str(DATA_DIR / "spotify_tokens.json")))

# API
API_HOST = os.getenv("HUDIFY_API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("HUDIFY_API_PORT", "4040"))
LOG_LEVEL = os.getenv("HUDIFY_LOG_LEVEL", "INFO").upper()


def _public_url() -> str:
    """WEB_URL if set, else derived from PUBLIC_DNS / PUBLIC_IP, else localhost."""
    if os.getenv("WEB_URL"):
        return os.environ["WEB_URL"].rstrip("/")
    host = os.getenv("PUBLIC_DNS") or os.getenv("PUBLIC_IP") or "localhost"
    return f"http://{host}:{API_PORT}"


WEB_URL = _public_url()

# Spotify (OAuth; per-user tokens stored encrypted in CREDENTIALS_PATH)
SPOTIFY_CLIENT_ID = os.getenv("SPOTIFY_CLIENT_ID", "")
SPOTIFY_CLIENT_SECRET = os.getenv("SPOTIFY_CLIENT_SECRET", "")
SPOTIFY_REDIRECT_URI = os.getenv("SPOTIFY_REDIRECT_URI", f"{WEB_URL}/callback")
SPOTIFY_SCOPES = "user-read-playback-state user-modify-playback-state user-read-currently-playing"

# Base64 of 32 random bytes, e.g. `openssl rand -base64 32`
TOKEN_ENCRYPTION_KEY = os.getenv("TOKEN_ENCRYPTION_KEY", "")

# Player backend used when a user has not picked one in settings
DEFAULT_PLAYER = os.getenv("HUDIFY_DEFAULT_PLAYER", "spotify")

# Song lookup (Shazam web search)
SHAZAM_SEARCH_URL = "https://www.shazam.com/services/search/v4/{language}/{country}/web/search"
SHAZAM_LANGUAGE = os.getenv("SHAZAM_LANGUAGE", "en-US")
SHAZAM_COUNTRY = os.getenv("SHAZAM_COUNTRY", "GB")
HTTP_TIMEOUT_SEC = float(os.getenv("HUDIFY_HTTP_TIMEOUT_SEC", "10"))

# Interaction timings
MODE_TIMEOUT_SEC = 10.0
LISTENING_PROMPT_MS = 9500  # a little shorter than the listening window
SETTLE_DELAY_SEC = 0.5  # Spotify state lags behind writes
MESSAGE_DURATION_MS = 5000
TOKEN_REFRESH_MARGIN_MS = 60_000
MAX_LISTED_DEVICES = 3


def ensure_data_dir() -> None:
    DATA_DIR.mkdir(parents=True, exist_ok=True)


def log_environment() -> None:
    """Log the effective public configuration (never secret values)."""
    log = logging.getLogger(__name__)
    log.info("Public URL: %s", WEB_URL)
    log.info("Port: %s", API_PORT)
    log.info("SPOTIFY_CLIENT_ID: %s", "set" if SPOTIFY_CLIENT_ID else "not set")
    log.info("TOKEN_ENCRYPTION_KEY: %s", "set" if TOKEN_ENCRYPTION_KEY else "not set")
    log.info("Redirect URI: %s", SPOTIFY_REDIRECT_URI)
