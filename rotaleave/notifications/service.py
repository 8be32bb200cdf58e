"""Notification sinks and the dispatch guard the lifecycle calls them through.

Notifications are best-effort: ``dispatch`` logs and swallows any sink
failure so that a state transition is never blocked or rolled back by it.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Mapping

from sqlalchemy.orm import Session

from rotaleave.common.constants import NotificationEvent, NotificationType
from rotaleave.leave.stores import NotificationSink
from rotaleave.notifications.models import Notification

logger = logging.getLogger(__name__)


def dispatch(
    sink: NotificationSink,
    event: NotificationEvent,
    payload: Mapping[str, Any],
) -> bool:
    """Send ``event`` through ``sink``; ``False`` (and a logged traceback) on failure."""
    try:
        sink.notify(event, payload)
    except Exception:
        logger.exception(
            "Notification %s for request %s failed",
            event.value, payload.get("request_id"),
        )
        return False
    return True


# ── Message templates ───────────────────────────────────────────────

class _Blank(dict):
    def __missing__(self, key: str) -> str:
        return "?"


_TEMPLATES: dict[NotificationEvent, tuple[NotificationType, str, str]] = {
    NotificationEvent.new_request: (
        NotificationType.action_required,
        "New Leave Request",
        "A {leave_type} leave request from {start_date} to {end_date} "
        "({days_requested} day(s)) requires your approval.",
    ),
    NotificationEvent.approved: (
        NotificationType.approval,
        "Leave Request Approved",
        "Your {leave_type} leave from {start_date} to {end_date} has been approved.",
    ),
    NotificationEvent.rejected: (
        NotificationType.alert,
        "Leave Request Rejected",
        "Your {leave_type} leave from {start_date} to {end_date} was rejected. "
        "Reason: {rejection_reason}",
    ),
    NotificationEvent.early_checkin: (
        NotificationType.action_required,
        "Early Check-in",
        "Leave ending {original_end_date} is being cut short: back on "
        "{actual_end_date}. Reason: {reason}",
    ),
    NotificationEvent.extension_request: (
        NotificationType.action_required,
        "Leave Extension Requested",
        "An extension of leave ending {end_date} to {requested_end_date} "
        "({additional_days} extra day(s)) requires your approval. Reason: {reason}",
    ),
    NotificationEvent.extension_approved: (
        NotificationType.approval,
        "Leave Extension Approved",
        "Your leave now ends on {new_end_date} ({additional_days} extra day(s)).",
    ),
    NotificationEvent.extension_rejected: (
        NotificationType.alert,
        "Leave Extension Rejected",
        "Your extension to {requested_end_date} was rejected. Reason: {rejection_reason}",
    ),
    NotificationEvent.manager_extension: (
        NotificationType.info,
        "Leave Extended by Manager",
        "Your leave has been extended to {new_end_date} "
        "({additional_days} extra day(s)). Reason: {reason}",
    ),
}


def render(event: NotificationEvent, payload: Mapping[str, Any]) -> tuple[NotificationType, str, str]:
    """Type, title and message for ``event``."""
    notification_type, title, template = _TEMPLATES[event]
    values = _Blank({key: getattr(value, "value", value) for key, value in payload.items()})
    return notification_type, title, template.format_map(values)


# ── Sinks ───────────────────────────────────────────────────────────

class LoggingNotificationSink:
    """Writes each notification to the log and nothing else."""

    def notify(self, event: NotificationEvent, payload: Mapping[str, Any]) -> None:
        _, title, message = render(event, payload)
        logger.info(
            "[%s] %s -> %s: %s",
            event.value, title, payload.get("recipient_ids") or [], message,
        )


class RecordingNotificationSink:
    """Keeps every ``(event, payload)`` in memory, for tests and dry runs."""

    def __init__(self) -> None:
        self.sent: list[tuple[NotificationEvent, dict[str, Any]]] = []

    def notify(self, event: NotificationEvent, payload: Mapping[str, Any]) -> None:
        self.sent.append((event, dict(payload)))

    def events(self) -> list[NotificationEvent]:
        return [event for event, _ in self.sent]


class DatabaseNotificationSink:
    """One in-app ``Notification`` row per recipient.

    Rows are written in a SAVEPOINT so a failed insert rolls back only the
    notification, never the transition that triggered it.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def notify(self, event: NotificationEvent, payload: Mapping[str, Any]) -> None:
        notification_type, title, message = render(event, payload)
        request_id = payload.get("request_id")
        with self.session.begin_nested():
            for recipient_id in payload.get("recipient_ids") or ():
                self.session.add(
                    Notification(
                        recipient_id=recipient_id,
                        event=event.value,
                        type=notification_type.value,
                        title=title,
                        message=message,
                        entity_type="leave_request",
                        entity_id=request_id if isinstance(request_id, uuid.UUID) else None,
                    )
                )
