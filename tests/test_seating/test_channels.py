"""
Tests for the Telegram admin channel.

The Bot API is replaced with an httpx.MockTransport, so no request leaves
the process.
"""

import json

import httpx
import pytest

from seating.channels import ChannelError, TelegramChannel


def make_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestTelegramChannel:
    """Tests for TelegramChannel.send()."""

    @pytest.mark.asyncio
    async def test_send_posts_html_message(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"ok": True, "result": {"message_id": 1}})

        async with make_client(handler) as client:
            channel = TelegramChannel("123:abc", "-100200", client=client)
            result = await channel.send("<b>Hello</b>")

        assert result.success
        assert len(requests) == 1
        assert str(requests[0].url) == "https://api.telegram.org/bot123:abc/sendMessage"
        body = json.loads(requests[0].content)
        assert body == {
            "chat_id": "-100200",
            "text": "<b>Hello</b>",
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        assert channel.get_sent_count() == 1
        assert len(channel.get_successful_sends()) == 1

    @pytest.mark.asyncio
    async def test_api_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"ok": False, "description": "chat not found"})

        async with make_client(handler) as client:
            channel = TelegramChannel("123:abc", "-100200", client=client)
            with pytest.raises(ChannelError, match="chat not found"):
                await channel.send("hi")

        assert channel.get_sent_count() == 1
        assert channel.sent_messages[0].error == "chat not found"

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="bad gateway")

        async with make_client(handler) as client:
            channel = TelegramChannel("123:abc", "-100200", client=client)
            with pytest.raises(ChannelError):
                await channel.send("hi")

        assert channel.get_successful_sends() == []

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler) as client:
            channel = TelegramChannel("123:abc", "-100200", client=client)
            with pytest.raises(ChannelError):
                await channel.send("hi")

    @pytest.mark.asyncio
    async def test_disabled_channel_never_calls_api(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("disabled channel must not send")

        async with make_client(handler) as client:
            channel = TelegramChannel(None, "-100200", client=client)
            result = await channel.send("hi")

        assert not channel.enabled
        assert not result.success
        assert result.error == "disabled"

    def test_clear_history(self):
        channel = TelegramChannel(None, None)
        channel.sent_messages.append(object())

        channel.clear_history()

        assert channel.get_sent_count() == 0
