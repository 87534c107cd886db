"""
Centralized configuration loader.

Reads the ENVIRONMENT env-var and merges the correct environment module
(config_prod or config_local) into a single settings namespace.

Usage:
    from configs.config import get_config
    cfg = get_config()
    print(cfg.MONGODB_URL)
"""

import os
import sys
import importlib
import logging
from types import SimpleNamespace

logger = logging.getLogger(__name__)

# ── Environment detection ────────────────────────────────────────────────
ENVIRONMENT = os.getenv("ENVIRONMENT", "production")

# ── Shared constants (environment-independent) ───────────────────────────

# Database
MONGODB_URL = os.getenv(
    "MONGODB_URL", "mongodb://127.0.0.1:27017/meetscribe"
)
DATABASE_NAME = "meetscribe"
MEETINGS_COLLECTION = "meetings"
TODOS_COLLECTION = "todos"
USERS_COLLECTION = "users"

# File storage
UPLOAD_DIR = os.getenv("UPLOAD_DIR", os.path.join(os.getcwd(), "uploads"))
AUDIO_DIR = os.path.join(UPLOAD_DIR, "audio")
TRANSCRIPT_DIR = os.path.join(UPLOAD_DIR, "transcripts")

# Security
ADMIN_API_KEY = os.getenv("ADMIN_API_KEY", "change-me-in-production")
MAX_UPLOAD_SIZE = 500 * 1024 * 1024  # 500 MB

ALLOWED_EXTENSIONS = frozenset({
    ".webm", ".mp3", ".wav", ".aac", ".ogg", ".flac", ".m4a", ".mp4",
})

CORS_METHODS = ["GET", "POST", "DELETE", "OPTIONS"]
CORS_HEADERS = [
    "Accept",
    "Accept-Language",
    "Authorization",
    "Content-Type",
    "Origin",
    "X-Requested-With",
    "X-Admin-Key",
    "X-Request-ID",
]

# Auth
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me-in-production")
JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24

# Transcription queue
TRANSCRIPTION_MAX_RETRIES = 3
TRANSCRIPTION_RETRY_DELAY_MS = 1000  # base delay, doubled per attempt
DEFAULT_TRANSCRIPTION_PROVIDER = os.getenv(
    "TRANSCRIPTION_PROVIDER", "openai"
)

# Audio normalisation
AUDIO_SAMPLE_RATE = 16000
AUDIO_CHANNELS = 1

# OpenAI Whisper API
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
OPENAI_ORGANIZATION = os.getenv("OPENAI_ORGANIZATION") or None
OPENAI_TRANSCRIPTION_MODEL = "whisper-1"
OPENAI_RESPONSE_FORMAT = "verbose_json"
OPENAI_TIMESTAMP_GRANULARITIES = ["word", "segment"]
OPENAI_LANGUAGE = os.getenv("OPENAI_LANGUAGE") or None
OPENAI_TEMPERATURE = 0.0

# Local Whisper (faster-whisper, run as a subprocess)
WHISPER_DEFAULT_MODEL = "base"
WHISPER_ALLOWED_MODELS = frozenset({
    "tiny", "tiny.en", "base", "base.en", "small", "small.en",
    "medium", "medium.en", "large-v1", "large-v3", "large-v3-turbo",
})
WHISPER_DEVICE = os.getenv("WHISPER_DEVICE", "cpu")
WHISPER_COMPUTE_TYPE = "int8"
WHISPER_CLI_COMMAND = [sys.executable, "-m", "src.transcription.whisper_cli"]

# Gemini / action-item extraction
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
GEMINI_MODEL_NAME = "gemini-3-flash-preview"

# Meetings listing
RECENT_MEETINGS_LIMIT = 10

# Logging
LOG_FILE_APP = "app.log"
LOG_FILE_ERRORS = "errors.log"
LOG_MAX_BYTES = 5 * 1024 * 1024  # 5 MB
LOG_BACKUP_COUNT = 5


# ── Config loader ────────────────────────────────────────────────────────

_config_cache = None


def get_config() -> SimpleNamespace:
    """
    Return a merged configuration namespace.

    Environment-specific values from config_local or config_prod
    override the shared defaults defined above.
    """
    global _config_cache
    if _config_cache is not None:
        return _config_cache

    # Start with all module-level constants
    base = {
        key: value
        for key, value in globals().items()
        if key.isupper() and not key.startswith("_")
    }

    # Overlay environment-specific settings
    env_module_name = (
        "configs.config_local" if ENVIRONMENT == "development"
        else "configs.config_prod"
    )
    try:
        env_module = importlib.import_module(env_module_name)
        for key in dir(env_module):
            if key.isupper():
                base[key] = getattr(env_module, key)
        logger.info("Loaded configuration from %s", env_module_name)
    except ImportError:
        logger.warning(
            "Environment config '%s' not found; using shared defaults.",
            env_module_name,
        )

    _config_cache = SimpleNamespace(**base)
    return _config_cache
