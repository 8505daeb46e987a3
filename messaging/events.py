"""
Real-time event publishing.

Components receive a publisher instead of reaching for a global connection.
The default backend keeps a bounded, sequence-numbered backlog per scope in
the Django cache; browsers poll it through the ``poll_events`` view.

Scopes:
    chat:<id>         everyone who joined the chat room
    user:<username>   one user's personal channel
    global            every connected client
"""

import logging

from django.conf import settings
from django.core.cache import cache
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)

GLOBAL_SCOPE = 'global'

SEQUENCE_KEY = 'events:seq'


def chat_scope(chat_id):
    return f"chat:{chat_id}"


def user_scope(username):
    return f"user:{username}"


class EventPublisher:
    """Narrow interface every component publishes through."""

    def publish(self, event, payload, scope, exclude=None):
        """
        Deliver ``event`` with ``payload`` to subscribers of ``scope``.

        Args:
            event: Event name (chatUpdate, typingIndicator, ...)
            payload: JSON-serialisable dict
            scope: Target scope string
            exclude: Username that must not receive the event
        """
        raise NotImplementedError


class CacheEventPublisher(EventPublisher):
    """
    Store events in the cache so any request handler can read them back.

    Every event gets its own key, ``events:<scope>:<n>``, where ``n`` comes
    from an atomic per-scope counter; nothing is read back and rewritten, so
    concurrent publishers never overwrite each other. Sequence numbers are
    global and order events across scopes. Each scope keeps the latest
    MESSAGING_EVENT_BACKLOG events.
    """

    def __init__(self, backlog=None):
        self.backlog = backlog or settings.MESSAGING_EVENT_BACKLOG

    @staticmethod
    def _incr(key):
        # add() is a no-op when the key exists, incr() is atomic
        cache.add(key, 0, None)
        return cache.incr(key)

    @staticmethod
    def _head_key(scope):
        return f"events:{scope}:head"

    def publish(self, event, payload, scope, exclude=None):
        seq = self._incr(SEQUENCE_KEY)
        index = self._incr(self._head_key(scope))
        cache.set(f"events:{scope}:{index}", {
            'seq': seq,
            'event': event,
            'payload': payload,
            'scope': scope,
            'exclude': exclude,
        }, None)
        if index > self.backlog:
            cache.delete(f"events:{scope}:{index - self.backlog}")
        logger.debug("Published %s to %s (seq %s)", event, scope, seq)
        return seq

    def read(self, scopes, since=0, username=None):
        """
        Return events newer than ``since`` across ``scopes`` in sequence order,
        leaving out events that exclude ``username``.
        """
        keys = []
        for scope in scopes:
            head = cache.get(self._head_key(scope), 0)
            first = max(head - self.backlog, 0) + 1
            keys += [f"events:{scope}:{n}" for n in range(first, head + 1)]

        events = []
        for entry in cache.get_many(keys).values():
            if entry['seq'] <= since:
                continue
            if username is not None and entry['exclude'] == username:
                continue
            events.append(entry)
        events.sort(key=lambda e: e['seq'])
        return events


_publisher = None


def get_publisher():
    """Return the process-wide publisher configured in settings."""
    global _publisher
    if _publisher is None:
        _publisher = import_string(settings.MESSAGING_EVENT_PUBLISHER)()
    return _publisher
