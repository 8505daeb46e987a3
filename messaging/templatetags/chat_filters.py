"""
================================================================================
STACKHUB MESSAGING - CHAT TEMPLATE FILTERS
================================================================================

@file        chat_filters.py
@description Receipt labels and online badges for chat templates

USAGE IN TEMPLATES
================================================================================
    {% load chat_filters %}

    {{ chat|receipt_label:request.user.username }}
    {% if participant|shows_online %}<span class="dot"></span>{% endif %}
    {{ chat|chat_title }}

================================================================================
"""

from django import template

from ..presence import PresenceTracker
from ..receipts import receipt_status

register = template.Library()


@register.filter
def receipt_label(chat, username):
    """Receipt line under the user's last message, or '' when there is none."""
    if chat is None or not username:
        return ''
    return receipt_status(chat, username) or ''


@register.filter
def shows_online(user):
    """True only when the user is online and lets others see it."""
    return PresenceTracker.visible_status(user)['isOnline']


@register.filter
def chat_title(chat):
    return chat.display_name()
