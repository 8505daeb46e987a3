"""
Notification store.

Append-only per-user notifications with read state and keyset pagination on
``(created_at, id)``. Only is_read/read_at ever change after creation, and they are
never reset here.
"""

import logging
from datetime import timezone as dt_timezone

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db.models import Q
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from .events import get_publisher, user_scope
from .models import Notification

logger = logging.getLogger(__name__)

User = get_user_model()


def create_notification(recipient, kind, title='', preview='', link='', actor_username='', meta=None):
    """Insert a notification and return the stored record."""
    if isinstance(recipient, str):
        recipient = User.objects.get(username=recipient)
    if recipient.username == actor_username:
        raise ValidationError("Notifications are never addressed to the acting user.")
    return Notification.objects.create(
        recipient=recipient,
        kind=kind,
        title=title[:255],
        preview=preview[:settings.NOTIFICATION_PREVIEW_LENGTH],
        link=link,
        actor_username=actor_username,
        meta=meta or {},
    )


CURSOR_SEPARATOR = '|'


def _parse_cursor(cursor):
    """
    Split a cursor into (created_at, id).

    Cursors look like ``<iso timestamp>|<id>``; a bare ISO timestamp is also
    accepted and carries no id.
    """
    last_id = None
    if isinstance(cursor, str) and CURSOR_SEPARATOR in cursor:
        cursor, _, raw_id = cursor.rpartition(CURSOR_SEPARATOR)
        try:
            last_id = int(raw_id)
        except ValueError:
            raise ValidationError(f"Invalid cursor id: {raw_id!r}")
    parsed = parse_datetime(cursor) if isinstance(cursor, str) else cursor
    if parsed is None:
        raise ValidationError(f"Invalid cursor: {cursor!r}")
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, dt_timezone.utc)
    return parsed, last_id


def _make_cursor(notification):
    return f"{notification.created_at.isoformat()}{CURSOR_SEPARATOR}{notification.pk}"


def _clamp_limit(limit):
    if limit is None:
        return settings.NOTIFICATIONS_PAGE_SIZE
    try:
        limit = int(limit)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid limit: {limit!r}")
    if limit < 1:
        raise ValidationError("limit must be positive")
    return min(limit, settings.NOTIFICATIONS_MAX_PAGE_SIZE)


def _newest_first(username, cursor):
    qs = Notification.objects.filter(recipient__username=username).select_related('recipient')
    if cursor:
        created_at, last_id = _parse_cursor(cursor)
        older = Q(created_at__lt=created_at)
        if last_id is not None:
            # same timestamp: continue below the last id already served
            older |= Q(created_at=created_at, id__lt=last_id)
        qs = qs.filter(older)
    return qs.order_by('-created_at', '-id')


def list_notifications(username, limit=None, cursor=None):
    """
    Newest-first notifications for ``username``.

    With a cursor only notifications after it in (created_at, id) order are
    returned; a bare ISO timestamp means strictly older than that instant.
    """
    return list(_newest_first(username, cursor)[:_clamp_limit(limit)])


def notification_page(username, limit=None, cursor=None):
    """
    One page plus the cursor for the next one.

    next_cursor points at the last item (its created_at and id), or is None
    once the remaining notifications are exhausted.
    """
    limit = _clamp_limit(limit)
    rows = list(_newest_first(username, cursor)[:limit + 1])
    items = rows[:limit]
    next_cursor = _make_cursor(items[-1]) if len(rows) > limit else None
    return {'items': items, 'next_cursor': next_cursor}


def mark_read(notification_id):
    """
    Mark one notification read.

    A second call is a no-op: read_at keeps the first timestamp.
    """
    Notification.objects.filter(pk=notification_id, is_read=False).update(
        is_read=True, read_at=timezone.now()
    )
    return Notification.objects.select_related('recipient').get(pk=notification_id)


def mark_all_read(username, publisher=None):
    """Bulk-mark every unread notification of ``username`` and signal clients."""
    updated = Notification.objects.filter(recipient__username=username, is_read=False).update(
        is_read=True, read_at=timezone.now()
    )
    if updated:
        (publisher or get_publisher()).publish(
            'notificationUpdate', {'type': 'readAll'}, user_scope(username)
        )
    logger.info("Marked %d notifications read for %s", updated, username)
    return {'ok': True}


def delete_notification(notification_id):
    """Hard delete. Deleting a missing notification is not an error."""
    Notification.objects.filter(pk=notification_id).delete()
    return {'ok': True}


def unread_count(username):
    return Notification.objects.filter(recipient__username=username, is_read=False).count()
