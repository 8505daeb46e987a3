"""
================================================================================
STACKHUB MESSAGING - PRESENCE MIDDLEWARE
================================================================================

@file        middleware.py
@description Keeps User.last_seen fresh and announces users coming online

MODULE PURPOSE
================================================================================
UpdateLastSeenMiddleware
   - Updates the user's last_seen timestamp for online status tracking
   - Uses the cache to write at most once per 30 seconds per user
   - Publishes userStatusUpdate when an offline user becomes active again

CACHING STRATEGY
================================================================================
Write Throttle Cache (30 seconds):
   Key: "last_seen_update_{user_id}"
   Purpose: Prevent frequent database writes
   Cleared by PresenceTracker.go_offline so a reconnect is announced at once

ONLINE STATUS LOGIC
================================================================================
Users are considered "online" if last_seen is within ONLINE_WINDOW_MINUTES
(User.is_online). Peers only see it when show_online_status is True.

================================================================================
"""

import logging
from datetime import timedelta

from django.core.cache import cache
from django.db import DatabaseError
from django.utils import timezone

from .presence import get_presence_tracker, last_seen_throttle_key

logger = logging.getLogger(__name__)

WRITE_THROTTLE_SECONDS = 30


class UpdateLastSeenMiddleware:
    """
    Update user's last_seen timestamp with write throttling.

    Anonymous users pass straight through. Database failures are logged and
    never break the request.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        user = getattr(request, 'user', None)
        if user is not None and user.is_authenticated:
            now = timezone.now()

            cache_key = last_seen_throttle_key(user.id)
            last_update = cache.get(cache_key)

            if not last_update or (now - last_update) > timedelta(seconds=WRITE_THROTTLE_SECONDS):
                try:
                    get_presence_tracker().mark_seen(user, now)
                    cache.set(cache_key, now, WRITE_THROTTLE_SECONDS)
                except DatabaseError:
                    logger.exception("Failed to update last_seen for user %s", user.id)

        return self.get_response(request)
