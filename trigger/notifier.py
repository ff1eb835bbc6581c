"""
Webhook notifier for newly added identifiers.

Messages are posted as ``{"text": "..."}``, which Slack incoming webhooks
and most chat bridges accept as-is.
"""

from typing import Sequence

import httpx
import structlog

from trigger.exceptions import TransportError
from trigger.models import Notification
from utilities.logger import redact_url

logger = structlog.get_logger(__name__)


def format_message(source_url: str, new_ids: Sequence[int], item_noun: str = "track") -> str:
    """Build the human-readable message for a batch of new identifiers."""
    if len(new_ids) == 1:
        subject = f"The following new {item_noun} has been added"
    else:
        subject = f"The following new {item_noun}s have been added"
    id_list = ", ".join(str(i) for i in new_ids)
    return f"{subject} to '{source_url}': [{id_list}]"


class WebhookNotifier:
    """Formats and delivers notifications to a single webhook."""

    def __init__(
        self,
        webhook_url: str,
        source_url: str,
        http_client: httpx.AsyncClient,
        item_noun: str = "track",
    ):
        """
        Initialize webhook notifier.

        Args:
            webhook_url: Webhook receiving the messages
            source_url: Source endpoint named in each message
            http_client: Shared HTTP client
            item_noun: Noun for one identifier, pluralized with "s"
        """
        self.webhook_url = webhook_url
        self.redacted_url = redact_url(webhook_url)
        self.source_url = source_url
        self.http_client = http_client
        self.item_noun = item_noun
        self.logger = logger.bind(component="webhook_notifier")

    def build(self, new_ids: Sequence[int]) -> Notification:
        return Notification(
            text=format_message(self.source_url, new_ids, self.item_noun),
            source_url=self.source_url,
            new_ids=list(new_ids),
        )

    async def send(self, notification: Notification) -> None:
        """
        Post a notification to the webhook.

        Raises:
            TransportError: On connection failure, timeout or non-2xx status
        """
        self.logger.info("Sending notification to webhook", message=notification.text)
        try:
            response = await self.http_client.post(self.webhook_url, json=notification.to_payload())
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TransportError(
                self.redacted_url,
                f"HTTPStatusError: {e.response.status_code} {e.response.reason_phrase}",
            ) from e
        except httpx.HTTPError as e:
            reason = str(e).replace(self.webhook_url, self.redacted_url)
            raise TransportError(self.redacted_url, f"{type(e).__name__}: {reason}") from e

    async def notify(self, new_ids: Sequence[int]) -> Notification:
        """Build and send a notification for ``new_ids``."""
        notification = self.build(new_ids)
        await self.send(notification)
        return notification
