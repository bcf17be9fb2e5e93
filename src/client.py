"""Telegram client factory for telekeep.

We explicitly manage the client's lifecycle (start/run_until_disconnected)
so it is obvious when the session is created and when it ends.
"""

from __future__ import annotations

import logging

from telethon import TelegramClient

import settings


def build_client() -> TelegramClient:
    """Create a Telethon client for the bot account.

    API_ID/API_HASH come from the environment via settings. The session name
    defaults to "telekeep-bot" and creates a local .session file.
    """

    # Fail fast on missing credentials to avoid an ambiguous login error.
    if not settings.API_ID or not settings.API_HASH:
        raise RuntimeError("Missing API_ID or API_HASH in environment")
    if not settings.TELEGRAM_BOT_TOKEN:
        raise RuntimeError("TELEGRAM_BOT_TOKEN is required")

    logging.getLogger(__name__).info("Initializing Telegram client")

    return TelegramClient(settings.SESSION_NAME, int(settings.API_ID), settings.API_HASH)
