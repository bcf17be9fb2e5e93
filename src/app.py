"""Application entry point for the telekeep bot."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Any, Iterable, Optional

from art import tprint
from telethon import events

import settings
from adapters.karakeep_client import KarakeepClient
from adapters.secretbox import SecretBox
from adapters.sqlite_storage import SQLiteStorage
from adapters.telegram_mapper import build_unit
from adapters.telegram_transport import TelethonAckTransport, TelethonDownloader
from client import build_client
from core.commands import CommandHandler
from core.dispatcher import UpdateDispatcher
from core.processor import BatchProcessor

NAME = "TELEKEEP"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    """Masks secret values anywhere in the rendered record, tracebacks included."""

    def __init__(self, secrets: Iterable[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        # Longest first so a secret that contains another is masked whole.
        self._secrets = sorted({secret for secret in secrets if secret}, key=len, reverse=True)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _redaction_values(redact_cfg: dict) -> list[str]:
    """Resolve the configured environment variable names to their values."""

    if not redact_cfg.get("enabled", True):
        return []
    values = (os.getenv(name, "").strip() for name in redact_cfg.get("patterns", []))
    return [value for value in values if value]


def _level(name: Any, default: int) -> int:
    value = logging.getLevelName(str(name).upper())
    return value if isinstance(value, int) else default


def _file_handler(file_cfg: dict) -> logging.Handler:
    path = file_cfg.get("path", "logs/telekeep.log")
    if not os.path.isabs(path):
        path = os.path.join(settings.PROJECT_ROOT, path)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    return RotatingFileHandler(
        path,
        maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
        backupCount=int(file_cfg.get("backup_count", 5)),
        encoding="utf-8",
    )


def _configure_logging(config: dict) -> None:
    if not config.get("enabled", True):
        return

    level = _level(config.get("level", "INFO"), logging.INFO)
    formatter = _RedactingFormatter(
        _redaction_values(config.get("redact", {})),
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handlers: list[logging.Handler] = []
    if config.get("console", True):
        handlers.append(logging.StreamHandler())
    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        handlers.append(_file_handler(file_cfg))
    if not handlers:
        return

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    logging.basicConfig(level=level, handlers=handlers)

    # Library overrides never make a logger chattier than the root level.
    for name, override in config.get("loggers", {}).items():
        logging.getLogger(name).setLevel(max(level, _level(override, level)))


def _run() -> None:
    _print_banner()
    _configure_logging(settings.LOGGING)
    logger = logging.getLogger(__name__)

    logger.info("Starting telekeep")

    if not settings.API_KEY_MASTER_KEY:
        raise RuntimeError("API_KEY_MASTER_KEY is required (used to encrypt API keys in SQLite)")

    storage = SQLiteStorage(settings.DB_PATH, SecretBox(settings.API_KEY_MASTER_KEY))
    storage.init_db()

    client = build_client()
    client.start(bot_token=settings.TELEGRAM_BOT_TOKEN)

    pipeline = settings.PIPELINE
    transport = TelethonAckTransport(client)
    cancel = asyncio.Event()

    def api_factory(base_url: str, api_key: str) -> KarakeepClient:
        return KarakeepClient(base_url, api_key, timeout=pipeline.api_timeout)

    processor = BatchProcessor(
        store=storage,
        transport=transport,
        downloader=TelethonDownloader(client),
        api_factory=api_factory,
        config=pipeline,
        cancel=cancel,
    )
    commands = CommandHandler(storage, transport, version=settings.BOT_VERSION)
    dispatcher = UpdateDispatcher(
        processor,
        commands,
        storage,
        media_group_delay=pipeline.media_group_delay,
        cancel=cancel,
    )

    # Single handler keeps Telethon integration minimal and defers all routing
    # to the dispatcher for consistency and testability.
    @client.on(events.NewMessage(incoming=True))
    async def handler(event) -> None:
        try:
            await dispatcher.dispatch(build_unit(event.message))
        except Exception:
            logger.exception("Error while processing message")

    logger.info("Bot connected. Listening for incoming messages...")
    try:
        client.run_until_disconnected()
    finally:
        client.loop.run_until_complete(dispatcher.shutdown())
        logger.info("Shutdown complete")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="telekeep")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the bot")

    parser.parse_args(argv)
    _run()


if __name__ == "__main__":
    main()
