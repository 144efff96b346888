"""Integration modules for external systems."""

from __future__ import annotations

from chapters.integrations.slack import Notifier, SlackClient

__all__ = [
    "Notifier",
    "SlackClient",
]
