"""
Test cases for message formatting and webhook delivery.
"""

import json

import httpx
import pytest

from trigger.exceptions import TransportError
from trigger.notifier import WebhookNotifier, format_message

SOURCE_URL = "http://paragliding.example.com/api/track"
WEBHOOK_URL = "https://hooks.example.com/services/T000/B000/secret"


class TestFormatMessage:
    """Test cases for format_message."""

    def test_single_item(self):
        """One new identifier uses the singular form."""
        message = format_message(SOURCE_URL, [4])

        assert message == f"The following new track has been added to '{SOURCE_URL}': [4]"

    def test_multiple_items(self):
        """Several identifiers use the plural form and are listed verbatim."""
        message = format_message(SOURCE_URL, [4, 5])

        assert message == f"The following new tracks have been added to '{SOURCE_URL}': [4, 5]"

    def test_custom_noun(self):
        message = format_message(SOURCE_URL, [7, 8, 9], item_noun="record")

        assert message.startswith("The following new records have been added")
        assert message.endswith("[7, 8, 9]")


class TestWebhookNotifier:
    """Test cases for WebhookNotifier."""

    def test_build_notification(self):
        """Notifications carry the text and the identifiers."""
        notifier = WebhookNotifier(WEBHOOK_URL, SOURCE_URL, http_client=None)
        notification = notifier.build([4, 5])

        assert notification.new_ids == [4, 5]
        assert notification.source_url == SOURCE_URL
        assert notification.to_payload() == {"text": notification.text}

    @pytest.mark.asyncio
    async def test_notify_posts_json(self, make_http_client, sent_requests):
        """The webhook receives a JSON object with a single text field."""
        async with make_http_client(body=b"ok") as http_client:
            notifier = WebhookNotifier(WEBHOOK_URL, SOURCE_URL, http_client)
            notification = await notifier.notify([4, 5])

        assert len(sent_requests) == 1
        request = sent_requests[0]
        assert request.method == "POST"
        assert str(request.url) == WEBHOOK_URL
        assert request.headers["content-type"] == "application/json"
        assert json.loads(request.content) == {"text": notification.text}

    @pytest.mark.asyncio
    async def test_notify_non_2xx(self, make_http_client):
        """A rejected delivery is a transport error."""
        async with make_http_client(status=403, body=b"invalid_token") as http_client:
            notifier = WebhookNotifier(WEBHOOK_URL, SOURCE_URL, http_client)
            with pytest.raises(TransportError) as exc_info:
                await notifier.notify([4])

        assert exc_info.value.url == "https://hooks.example.com/..."
        assert "403" in exc_info.value.reason
        assert "secret" not in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_notify_connection_failure(self, make_http_client):
        async with make_http_client(error=httpx.ConnectError) as http_client:
            notifier = WebhookNotifier(WEBHOOK_URL, SOURCE_URL, http_client)
            with pytest.raises(TransportError) as exc_info:
                await notifier.notify([4])

        assert "ConnectError" in exc_info.value.reason
        assert "secret" not in str(exc_info.value)
