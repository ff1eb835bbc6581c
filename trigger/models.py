"""
Models for the clock trigger.

This module defines Pydantic models for:
- Trigger settings handed to the service
- Observed state kept between ticks
- Diff results and notifications
- Per-tick reports
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LoopState(str, Enum):
    """Lifecycle states of the trigger service."""
    INITIALIZING = "initializing"
    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"
    TERMINATED = "terminated"


class TriggerSettings(BaseModel):
    """Immutable settings for one trigger service instance."""
    source_url: str = Field(..., description="Endpoint returning a JSON array of identifiers")
    webhook_url: str = Field(..., description="Webhook receiving notifications")
    interval_seconds: float = Field(default=10.0, gt=0, description="Seconds between ticks")
    request_timeout: float = Field(default=10.0, gt=0, description="Timeout for outbound requests")
    item_noun: str = Field(default="track", min_length=1, description="Noun used in messages")
    user_agent: str = Field(default="ClockTrigger/1.0")

    model_config = {"frozen": True}


class ObservedState(BaseModel):
    """What was known as of the last successful poll."""
    count: int = Field(..., ge=0, description="Length of the identifier list last observed")
    baselined_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    ticks_observed: int = Field(default=0, ge=0)

    model_config = {"frozen": True}

    def advance(self, new_count: int) -> "ObservedState":
        """Return the state after one more successful poll."""
        return self.model_copy(
            update={
                "count": new_count,
                "updated_at": utc_now(),
                "ticks_observed": self.ticks_observed + 1,
            }
        )


class DiffResult(BaseModel):
    """Outcome of comparing a fresh identifier list against the observed count."""
    previous_count: int = Field(..., ge=0)
    new_count: int = Field(..., ge=0)
    newly_added: List[int] = Field(default_factory=list)
    rebaselined: bool = Field(default=False, description="True when the list shrank")

    model_config = {"frozen": True}

    @property
    def has_changes(self) -> bool:
        return bool(self.newly_added)


class Notification(BaseModel):
    """A single outbound webhook message."""
    text: str
    source_url: str
    new_ids: List[int] = Field(default_factory=list)

    def to_payload(self) -> Dict[str, str]:
        return {"text": self.text}


class TickReport(BaseModel):
    """Result of one poll, diff, notify cycle."""
    tick_id: int = Field(..., ge=1)
    started_at: datetime = Field(default_factory=utc_now)
    success: bool = Field(default=True)
    fetched_count: Optional[int] = Field(default=None)
    previous_count: int = Field(default=0)
    new_count: int = Field(default=0)
    new_ids: List[int] = Field(default_factory=list)
    rebaselined: bool = Field(default=False)
    notified: bool = Field(default=False)
    error: Optional[str] = Field(default=None, description="Fetch or decode failure")
    notify_error: Optional[str] = Field(default=None, description="Delivery failure")
    duration_seconds: float = Field(default=0.0)
