"""Operator notifications."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod

import certifi
import requests

from stockcrawler.errors import NotificationError

logger = logging.getLogger(__name__)

TELEGRAM_API = "https://api.telegram.org"


class BaseNotifier(ABC):
    """Sends short text messages to the operator channel."""

    @abstractmethod
    async def send(self, text: str) -> None:
        """Deliver ``text``; raises ``NotificationError`` on failure."""
        ...


class LogNotifier(BaseNotifier):
    """Writes messages to the log. Used when no Telegram token is configured."""

    def __init__(self) -> None:
        self.sent: list[str] = []

    async def send(self, text: str) -> None:
        self.sent.append(text)
        logger.info("notify: %s", text)


class TelegramNotifier(BaseNotifier):
    """Telegram bot broadcasting to every allowed chat.

    Args:
        token: Bot token.
        allowed: Chat id -> display name of the chats to message.
        timeout: Per-request timeout in seconds.
    """

    def __init__(self, token: str, allowed: dict[int, str], timeout: float = 30.0) -> None:
        if not token:
            raise NotificationError("Telegram token is empty")
        self.token = token
        self.allowed = dict(allowed)
        self.timeout = timeout
        self.session = requests.Session()
        self.session.verify = certifi.where()

    async def send(self, text: str) -> None:
        if not self.allowed:
            logger.warning("No Telegram chat allowed; message dropped")
            return
        await asyncio.to_thread(self._broadcast, text)

    def _broadcast(self, text: str) -> None:
        url = f"{TELEGRAM_API}/bot{self.token}/sendMessage"
        failed = []
        for chat_id, name in self.allowed.items():
            try:
                response = self.session.post(
                    url, json={"chat_id": chat_id, "text": text}, timeout=self.timeout
                )
                response.raise_for_status()
            except requests.RequestException as exc:
                logger.error("Failed to notify %s (%s): %s", name, chat_id, exc)
                failed.append(name)
        if failed:
            raise NotificationError(f"Telegram delivery failed for: {', '.join(failed)}")

    def close(self) -> None:
        self.session.close()
