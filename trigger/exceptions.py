"""
Exceptions raised by the clock trigger.
"""


class TriggerError(Exception):
    """Base class for all trigger errors."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"{reason} (url={url})")


class TransportError(TriggerError):
    """Network failure, timeout or non-2xx status while talking to a remote endpoint."""


class DecodeError(TriggerError):
    """Response body is not a JSON array of non-negative integers."""


class BaselineError(TriggerError):
    """The initial poll failed, so there is nothing to compare against."""
