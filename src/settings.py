"""Static configuration for telekeep.

Secrets come from the environment (a `.env` file is honoured). Tunables for
the pipeline and logging live in an optional config.json so they can be
adjusted without touching Python.
"""

import json
import os

from dotenv import load_dotenv

from core.config import DEFAULT_MAX_UPLOAD_BYTES, PipelineConfig

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

load_dotenv(os.path.join(PROJECT_ROOT, ".env"))

CONFIG_PATH = os.path.join(PROJECT_ROOT, "config.json")


def _load_json_config() -> dict:
    """Load config.json if present; every key is optional."""

    if not os.path.exists(CONFIG_PATH):
        return {}

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _env(name: str, default: str = "") -> str:
    return (os.getenv(name) or "").strip() or default


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Telegram credentials. API_ID/API_HASH identify the application to MTProto,
# the bot token selects the bot account. Checked at startup, not here.
API_ID = _env("API_ID")
API_HASH = _env("API_HASH")
TELEGRAM_BOT_TOKEN = _env("TELEGRAM_BOT_TOKEN")
SESSION_NAME = _env("SESSION_NAME", "telekeep-bot")

# Where to store the SQLite database with per-user settings.
DB_PATH = _env("DB_PATH", os.path.join(PROJECT_ROOT, "data", "bot.sqlite"))
# Master key used to seal per-user Karakeep API keys at rest.
API_KEY_MASTER_KEY = _env("API_KEY_MASTER_KEY")

BOT_VERSION = _env("BOT_VERSION")

# Pipeline tunables; defaults match the core dataclass.
_pipeline = _CONFIG.get("pipeline", {})
PIPELINE = PipelineConfig(
    max_upload_bytes=int(_pipeline.get("max_upload_bytes", DEFAULT_MAX_UPLOAD_BYTES)),
    media_group_delay=float(_pipeline.get("media_group_delay_seconds", 2.0)),
    extract_poll_interval=float(_pipeline.get("extract_poll_interval_seconds", 3.0)),
    extract_poll_timeout=float(_pipeline.get("extract_poll_timeout_seconds", 180.0)),
    summary_poll_interval=float(_pipeline.get("summary_poll_interval_seconds", 3.0)),
    summary_poll_timeout=float(_pipeline.get("summary_poll_timeout_seconds", 180.0)),
    api_timeout=float(_pipeline.get("api_timeout_seconds", 60.0)),
)

# Logging configuration. Console logging is on unless disabled explicitly;
# keys from config.json replace these defaults one section at a time.
_DEFAULT_LOGGING = {
    "enabled": True,
    "level": "INFO",
    "console": True,
    "redact": {
        "enabled": True,
        "patterns": ["TELEGRAM_BOT_TOKEN", "API_HASH", "API_KEY_MASTER_KEY"],
    },
    # Telethon is chatty at INFO about reconnects and update gaps.
    "loggers": {"telethon": "WARNING"},
}
LOGGING = {**_DEFAULT_LOGGING, **_CONFIG.get("logging", {})}
