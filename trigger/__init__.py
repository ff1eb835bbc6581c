"""
Clock trigger package.

This package contains:
- Source client for polling the identifier endpoint
- Change detection over an append-only identifier list
- Webhook notifier
- Interval-driven trigger service
"""

__version__ = "1.0.0"
