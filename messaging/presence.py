"""
Presence and typing indicators.

Typing state lives in process memory, keyed by (connection, chat). Each
pair is Stopped or Typing; a debounce timer moves it back to Stopped after
TYPING_TIMEOUT_SECONDS without input. Timers are cancelled by every newer
keystroke, an explicit stop, leaving the room, or a disconnect. Nothing here
is persisted.

Online status comes from User.last_seen; show_online_status masks it for
everyone else.
"""

import logging
import threading

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.utils import timezone

from .events import GLOBAL_SCOPE, chat_scope, get_publisher

logger = logging.getLogger(__name__)

User = get_user_model()


def last_seen_throttle_key(user_id):
    return f"last_seen_update_{user_id}"


def _daemon_timer(interval, function, args=()):
    timer = threading.Timer(interval, function, args=args)
    timer.daemon = True
    return timer


class TypingSession:
    __slots__ = ('username', 'typing', 'timer', 'generation')

    def __init__(self, username):
        self.username = username
        self.typing = False
        self.timer = None
        self.generation = 0


class TypingTracker:
    """
    Debounced typing state machine for every (connection, chat) pair.

    Args:
        publisher: EventPublisher; defaults to the configured one
        timeout: Seconds of silence before an automatic stop
        timer_factory: Callable(interval, function, args) returning an object
            with start() and cancel(), like threading.Timer
    """

    def __init__(self, publisher=None, timeout=None, timer_factory=_daemon_timer):
        self._publisher = publisher
        self.timeout = settings.TYPING_TIMEOUT_SECONDS if timeout is None else timeout
        self._timer_factory = timer_factory
        self._sessions = {}
        self._lock = threading.Lock()

    @property
    def publisher(self):
        return self._publisher or get_publisher()

    def _emit(self, chat_id, username, is_typing):
        self.publisher.publish(
            'typingIndicator',
            {'chatID': chat_id, 'username': username, 'isTyping': is_typing},
            chat_scope(chat_id),
            exclude=username,
        )

    @staticmethod
    def _cancel_timer(session):
        if session.timer is not None:
            session.timer.cancel()
            session.timer = None
        session.generation += 1

    def input_changed(self, connection_id, chat_id, username, text):
        """
        Record a keystroke. Emits a start event on the Stopped -> Typing edge
        and (re)arms the stop timer.
        """
        key = (connection_id, str(chat_id))
        with self._lock:
            session = self._sessions.get(key)
            if session is None:
                session = self._sessions[key] = TypingSession(username)
            self._cancel_timer(session)
            started = bool(text) and not session.typing
            if started:
                session.typing = True
            session.timer = self._timer_factory(
                self.timeout, self._expire, args=(key, session.generation)
            )
            session.timer.start()

        if started:
            self._emit(str(chat_id), username, True)
        return started

    def _expire(self, key, generation):
        with self._lock:
            session = self._sessions.get(key)
            # a newer keystroke or stop already replaced this timer
            if session is None or session.generation != generation:
                return
            del self._sessions[key]
            was_typing = session.typing
            username = session.username
        if was_typing:
            logger.debug("Typing timed out for %s in chat %s", username, key[1])
            self._emit(key[1], username, False)

    def _force_stop(self, keys):
        stopped = []
        with self._lock:
            for key in keys:
                session = self._sessions.pop(key, None)
                if session is None:
                    continue
                self._cancel_timer(session)
                if session.typing:
                    stopped.append((key[1], session.username))
        for chat_id, username in stopped:
            self._emit(chat_id, username, False)
        return len(stopped)

    def stop(self, connection_id, chat_id):
        """Explicit stop, e.g. the message was sent or the input cleared."""
        return self._force_stop([(connection_id, str(chat_id))]) > 0

    def leave(self, connection_id, chat_id):
        """The connection navigated away from the chat."""
        return self.stop(connection_id, chat_id)

    def disconnect(self, connection_id):
        """Stop every typing state the connection still holds."""
        with self._lock:
            keys = [key for key in self._sessions if key[0] == connection_id]
        return self._force_stop(keys)

    def is_typing(self, chat_id, username):
        with self._lock:
            return any(
                key[1] == str(chat_id) and s.username == username and s.typing
                for key, s in self._sessions.items()
            )


class PresenceTracker:
    """Publishes userStatusUpdate whenever the visible online state changes."""

    def __init__(self, publisher=None):
        self._publisher = publisher

    @property
    def publisher(self):
        return self._publisher or get_publisher()

    @staticmethod
    def visible_status(user):
        """What peers may see: hidden users always render offline."""
        return {
            'username': user.username,
            'isOnline': bool(user.is_online and user.show_online_status),
            'showOnlineStatus': user.show_online_status,
        }

    def _broadcast(self, user):
        status = self.visible_status(user)
        self.publisher.publish('userStatusUpdate', status, GLOBAL_SCOPE)
        return status

    def mark_seen(self, user, now=None):
        """Store activity; announce the user if they were offline before."""
        was_online = user.is_online
        user.last_seen = now or timezone.now()
        User.objects.filter(pk=user.pk).update(last_seen=user.last_seen)
        if not was_online:
            self._broadcast(user)
        return user

    def go_offline(self, user):
        """Mark the user offline; their next request marks them seen again."""
        user.last_seen = None
        User.objects.filter(pk=user.pk).update(last_seen=None)
        cache.delete(last_seen_throttle_key(user.pk))
        return self._broadcast(user)

    def set_show_online_status(self, user, show):
        user.show_online_status = bool(show)
        User.objects.filter(pk=user.pk).update(show_online_status=user.show_online_status)
        return self._broadcast(user)


_typing_tracker = None
_presence_tracker = None


def get_typing_tracker():
    global _typing_tracker
    if _typing_tracker is None:
        _typing_tracker = TypingTracker()
    return _typing_tracker


def get_presence_tracker():
    global _presence_tracker
    if _presence_tracker is None:
        _presence_tracker = PresenceTracker()
    return _presence_tracker
