"""
Read receipts.

mark_chat_read inserts (message, reader) rows with ignore_conflicts, so
concurrent readers only ever add to read_by. receipt_status is recomputed
from the current rows on every call.
"""

import logging

from django.contrib.auth import get_user_model
from django.core.exceptions import PermissionDenied

from .chats import broadcast_chat
from .models import Chat, Message

logger = logging.getLogger(__name__)

User = get_user_model()

ReadBy = Message.read_by.through


def mark_chat_read(chat_id, username, publisher=None):
    """
    Add ``username`` to read_by of every message in the chat they did not send,
    soft-deleted ones included.

    Returns:
        int: number of messages newly marked read
    """
    chat = Chat.objects.get(pk=chat_id)
    reader = User.objects.get(username=username)
    if not chat.participants.filter(user=reader).exists():
        raise PermissionDenied("Only participants can mark a chat as read.")

    unread_ids = list(
        chat.messages.all()
        .exclude(msg_from=reader)
        .exclude(read_by=reader)
        .values_list('pk', flat=True)
    )
    ReadBy.objects.bulk_create(
        [ReadBy(message_id=pk, user_id=reader.pk) for pk in unread_ids],
        ignore_conflicts=True,
    )
    logger.debug("Chat %s: %s read %d messages", chat_id, username, len(unread_ids))

    broadcast_chat(chat.pk, 'readReceipt', publisher)
    return len(unread_ids)


def describe_receipt(read_by, others):
    """
    Status label for a sent message.

    Args:
        read_by: Usernames that have viewed the message
        others: The chat's members other than the sender
    """
    others = set(others)
    readers = others & set(read_by)
    if len(others) <= 1:
        return 'Read' if readers else 'Delivered'
    if readers == others:
        return 'Read by all'
    if readers:
        return f"Read by {len(readers)}/{len(others)}"
    return 'Delivered'


def receipt_status(chat, viewer):
    """
    Status of ``viewer``'s most recent non-deleted message in ``chat``.

    Returns None when the viewer has not sent anything there.
    """
    last_sent = (
        chat.messages.filter(msg_from__username=viewer, is_deleted=False)
        .order_by('-msg_date_time', '-id')
        .first()
    )
    if last_sent is None:
        return None
    others = [name for name in chat.member_usernames() if name != viewer]
    read_by = last_sent.read_by.values_list('username', flat=True)
    return describe_receipt(read_by, others)
