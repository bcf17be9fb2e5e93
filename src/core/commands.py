"""Bot command handling (core domain).

Setup commands carry secrets, so they are only honoured in private chats.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from core.errors import CredentialError, InvalidServerURL, StorageError, TransportError
from core.models import MessageUnit, UserSettings
from core.ports import AckTransportPort, UserStorePort
from core.server_url import validate_server_base_url

LOGGER = logging.getLogger(__name__)

NOT_SET = "(not set)"
PRIVATE_ONLY = "Setup commands are only available in a private chat with the bot."
UNKNOWN_COMMAND = "Unknown command. /help"
READ_FAILED = "Failed to read your settings."
HELP_TEXT = "\n".join(
    [
        "Commands:",
        "/server - show the current server",
        "/server <url> - set the server (https only)",
        "/key - check whether an API key is set",
        "/key <token> - set the API key",
        "/status - status",
        "/help - this help",
    ]
)


class CommandHandler:
    """Answers /start, /help, /server, /key and /status."""

    def __init__(
        self,
        store: UserStorePort,
        transport: AckTransportPort,
        version: str = "",
        validate_url: Callable[[str], str] = validate_server_base_url,
    ) -> None:
        self._store = store
        self._transport = transport
        self._version = version.strip()
        self._validate_url = validate_url
        self._handlers = {
            "start": self._cmd_start,
            "help": self._cmd_help,
            "server": self._cmd_server,
            "key": self._cmd_key,
            "status": self._cmd_status,
        }

    async def handle(self, unit: MessageUnit) -> None:
        if not unit.is_private:
            await self._reply(unit, PRIVATE_ONLY)
            return

        handler = self._handlers.get((unit.command or "").lower())
        if handler is None:
            await self._reply(unit, UNKNOWN_COMMAND)
            return
        LOGGER.info("Command /%s from user_id=%s", unit.command, unit.sender_id)
        await handler(unit)

    async def _reply(self, unit: MessageUnit, text: str) -> None:
        try:
            await self._transport.send(unit.chat_id, text)
        except TransportError as exc:
            LOGGER.warning("Failed to reply to chat_id=%s: %s", unit.chat_id, exc)

    def _read_user(self, user_id: int) -> tuple[UserSettings, bool]:
        """Return (settings, key_is_usable); an unreadable key counts as unset."""

        try:
            user = self._store.get_user(user_id)
        except CredentialError as exc:
            LOGGER.warning("Decrypt api key failed for user_id=%s: %s", user_id, exc)
            return UserSettings(user_id=user_id), False
        return user, bool(user.api_key)

    async def _cmd_start(self, unit: MessageUnit) -> None:
        try:
            user, _ = self._read_user(unit.sender_id)
        except StorageError:
            user = UserSettings(user_id=unit.sender_id)
        server = user.server_base_url.strip() or NOT_SET
        text = "\n".join(
            [
                "Hi! I save your messages to Karakeep using your API key.",
                "",
                f"Current server: {server}",
                "",
                "Set up first:",
                "/server https://<your_karakeep>",
                "/key <API_KEY>",
                "",
                "Then just send links, text or media.",
            ]
        )
        await self._reply(unit, text)

    async def _cmd_help(self, unit: MessageUnit) -> None:
        await self._reply(unit, HELP_TEXT)

    async def _cmd_server(self, unit: MessageUnit) -> None:
        arg = unit.command_args.strip()
        if not arg:
            try:
                user, _ = self._read_user(unit.sender_id)
            except StorageError:
                await self._reply(unit, READ_FAILED)
                return
            server = user.server_base_url.strip() or NOT_SET
            await self._reply(unit, f"Current server: {server}\nSet it with: /server https://<host>")
            return

        try:
            # Validation resolves DNS, keep it off the event loop.
            normalized = await asyncio.to_thread(self._validate_url, arg)
        except InvalidServerURL as exc:
            LOGGER.info("Rejected server url from user_id=%s: %s", unit.sender_id, exc)
            await self._reply(
                unit,
                "Invalid or unsafe URL. Only public https is allowed. Example: /server https://karakeep.example.com",
            )
            return

        try:
            self._store.set_server_base_url(unit.sender_id, normalized)
        except StorageError as exc:
            LOGGER.warning("Failed to save server for user_id=%s: %s", unit.sender_id, exc)
            await self._reply(unit, "Failed to save the server.")
            return
        await self._reply(unit, f"✅ Server saved: {normalized}")

    async def _cmd_key(self, unit: MessageUnit) -> None:
        arg = unit.command_args.strip()
        if not arg:
            try:
                _, key_set = self._read_user(unit.sender_id)
            except StorageError:
                await self._reply(unit, READ_FAILED)
                return
            if key_set:
                await self._reply(unit, "API key: set ✅")
            else:
                await self._reply(unit, "API key: not set ❌\nSet it with: /key <API_KEY>")
            return

        try:
            self._store.set_api_key(unit.sender_id, arg)
        except StorageError as exc:
            LOGGER.warning("Failed to save api key for user_id=%s: %s", unit.sender_id, exc)
            await self._reply(unit, "Failed to save the API key.")
            return
        await self._reply(unit, "✅ API key saved.")

    async def _cmd_status(self, unit: MessageUnit) -> None:
        try:
            user, key_set = self._read_user(unit.sender_id)
        except StorageError:
            await self._reply(unit, READ_FAILED)
            return

        server = user.server_base_url.strip() or NOT_SET
        last = "none"
        if user.last_success_at is not None:
            last = user.last_success_at.astimezone().isoformat(timespec="seconds")
            if user.last_success_id:
                last += f" (id={user.last_success_id})"

        text = "\n".join(
            [
                f"Server: {server}",
                f"Key: {'yes' if key_set else 'no'}",
                f"Last successful save: {last}",
                f"Version: {self._version or 'dev'}",
            ]
        )
        await self._reply(unit, text)
