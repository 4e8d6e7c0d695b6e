"""Outbound notifications."""

from .formatting import format_roster_report
from .notification_queue import NotificationQueue, NotificationQueueEntry
from .webhook import WebhookSender

__all__ = ["NotificationQueue", "NotificationQueueEntry", "WebhookSender", "format_roster_report"]
