"""
Outbound notification channel: the Telegram admin chat.

Messages go to the Bot API's sendMessage method with HTML parse mode.
Without a bot token or chat ID the channel is disabled and every send is
recorded as a failure instead of reaching the network.

Design decisions:
- Async (httpx.AsyncClient) so delivery never blocks the event loop
- Channels track sent messages for test assertions
- HTTP or API errors are recorded and then raised to the notifier; the
  notification bus is the layer that isolates them from the caller
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

import httpx

logger = logging.getLogger("telegram")

TELEGRAM_API_BASE = "https://api.telegram.org"


class ChannelError(Exception):
    """Raised when the Bot API rejects a message or cannot be reached."""


@dataclass
class SendResult:
    """
    Result of a send attempt.

    Captures success/failure and metadata for debugging and testing.
    """
    success: bool
    chat_id: Optional[str]
    text: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    error: Optional[str] = None

    def __str__(self) -> str:
        status = "✓" if self.success else "✗"
        return f"{status} TELEGRAM to {self.chat_id}: {self.text[:50]}..."


class TelegramChannel:
    """
    Telegram Bot API channel posting to a single admin chat.

    Example:
        channel = TelegramChannel(bot_token="123:abc", chat_id="-100200")
        await channel.send("<b>Hello</b>")
    """

    def __init__(
        self,
        bot_token: Optional[str],
        chat_id: Optional[str],
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        """
        Initialize the channel.

        Args:
            bot_token: Bot API token. Missing token disables the channel.
            chat_id: Admin chat ID. Missing chat ID disables the channel.
            client: Shared HTTP client (tests pass one with a MockTransport).
                    Without one, each send opens a short-lived client so the
                    channel works from any event loop.
            timeout: Request timeout in seconds for short-lived clients.
        """
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.enabled = bool(bot_token and chat_id)
        self._client = client
        self._timeout = timeout
        self.sent_messages: list[SendResult] = []

        if not self.enabled:
            logger.warning(
                "Telegram channel disabled: missing TELEGRAM_BOT_TOKEN or TELEGRAM_ADMIN_CHAT_ID"
            )

    @property
    def url(self) -> str:
        return f"{TELEGRAM_API_BASE}/bot{self.bot_token}/sendMessage"

    async def _post(self, payload: dict) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(self.url, json=payload)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.post(self.url, json=payload)

    async def send(self, text: str) -> SendResult:
        """
        Send an HTML message to the admin chat.

        Returns:
            SendResult describing the attempt (disabled channel -> failed result)

        Raises:
            ChannelError: If the request fails or the Bot API answers ok=false
        """
        if not self.enabled:
            result = SendResult(success=False, chat_id=self.chat_id, text=text, error="disabled")
            self.sent_messages.append(result)
            return result

        payload = {
            "chat_id": self.chat_id,
            "text": text,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        try:
            response = await self._post(payload)
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            self.sent_messages.append(
                SendResult(success=False, chat_id=self.chat_id, text=text, error=str(e))
            )
            logger.error(f"[TELEGRAM FAILED] chat={self.chat_id} | Error: {e}")
            raise ChannelError(f"Telegram sendMessage failed: {e}") from e

        if not body.get("ok", False):
            description = body.get("description", "unknown error")
            self.sent_messages.append(
                SendResult(success=False, chat_id=self.chat_id, text=text, error=description)
            )
            logger.error(f"[TELEGRAM FAILED] chat={self.chat_id} | Error: {description}")
            raise ChannelError(f"Telegram API error: {description}")

        result = SendResult(success=True, chat_id=self.chat_id, text=text)
        self.sent_messages.append(result)
        logger.info(f"[TELEGRAM] chat={self.chat_id} | {text.splitlines()[0]}")
        return result

    def get_sent_count(self) -> int:
        """Get the number of send attempts (for testing)."""
        return len(self.sent_messages)

    def get_successful_sends(self) -> list[SendResult]:
        """Get all successful sends."""
        return [m for m in self.sent_messages if m.success]

    def clear_history(self):
        """Clear sent message history (useful between tests)."""
        self.sent_messages.clear()
