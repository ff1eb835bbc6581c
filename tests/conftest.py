"""
Pytest configuration and shared fixtures.
"""

import json

import httpx
import pytest
from unittest.mock import AsyncMock

from trigger.models import TriggerSettings
from trigger.notifier import WebhookNotifier
from trigger.source_client import SourceClient

SOURCE_URL = "http://paragliding.example.com/api/track"
WEBHOOK_URL = "https://hooks.example.com/services/T000/B000/secret"


@pytest.fixture
def trigger_settings():
    """Create trigger settings for testing."""
    return TriggerSettings(
        source_url=SOURCE_URL,
        webhook_url=WEBHOOK_URL,
        interval_seconds=3600,
        request_timeout=5,
    )


@pytest.fixture
def mock_source_client():
    """Create a mock source client returning a fixed list."""
    client = AsyncMock(spec=SourceClient)
    client.source_url = SOURCE_URL
    client.fetch.return_value = [1, 2, 3]
    return client


@pytest.fixture
def mock_notifier():
    """Create a mock webhook notifier."""
    notifier = AsyncMock(spec=WebhookNotifier)
    notifier.webhook_url = WEBHOOK_URL
    return notifier


@pytest.fixture
def sent_requests():
    """Requests seen by the mock transport."""
    return []


@pytest.fixture
def make_http_client(sent_requests):
    """Build an httpx client answering every request with ``status`` and ``body``."""
    def factory(status=200, body=b"[]", error=None):
        def handler(request):
            sent_requests.append(request)
            if error is not None:
                raise error(f"simulated {error.__name__}", request=request)
            if not isinstance(body, (bytes, str)):
                return httpx.Response(status, content=json.dumps(body).encode())
            return httpx.Response(status, content=body)

        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return factory
