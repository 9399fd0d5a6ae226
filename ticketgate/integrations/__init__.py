from __future__ import annotations

from ticketgate.config import Settings
from ticketgate.integrations.base import LogNotifier, Notifier
from ticketgate.integrations.email_notify import EmailNotifier


def build_notifier(settings: Settings) -> Notifier:
    """EmailJS when credentials are configured, otherwise the logging notifier."""
    return EmailNotifier.from_settings(settings) or LogNotifier()


__all__ = ["EmailNotifier", "LogNotifier", "Notifier", "build_notifier"]
