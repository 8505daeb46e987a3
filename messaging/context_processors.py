"""
================================================================================
STACKHUB MESSAGING - CONTEXT PROCESSORS
================================================================================

@file        context_processors.py
@description Unread badge counts available in every template

CONTEXT PROCESSORS DEFINED
================================================================================
1. unread_counts() - unread chat messages and unread notifications

Available in all templates as:
    {{ unread_messages_count }}
    {{ unread_notifications_count }}

USAGE IN SETTINGS.PY
================================================================================
TEMPLATES[0]['OPTIONS']['context_processors'] += [
    'messaging.context_processors.unread_counts',
]

================================================================================
"""

from .models import Message, Notification


def unread_counts(request):
    """
    Inject unread message and notification counts into all templates.

    Unread messages are chat messages in the user's chats that were neither
    sent nor read by the user and are not deleted. Unread notifications are
    the user's notifications with is_read=False.

    Returns:
        dict: unread_messages_count and unread_notifications_count
    """

    # Fast-path return for anonymous users
    if not request.user.is_authenticated:
        return {
            "unread_messages_count": 0,
            "unread_notifications_count": 0,
        }

    unread_notifications = Notification.objects.filter(
        recipient=request.user,
        is_read=False,
    ).count()

    unread_messages = Message.objects.filter(
        chat__participants__user=request.user,
        is_deleted=False,
    ).exclude(
        msg_from=request.user
    ).exclude(
        read_by=request.user
    ).distinct().count()

    return {
        "unread_messages_count": unread_messages,
        "unread_notifications_count": unread_notifications,
    }
