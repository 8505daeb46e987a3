import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache

from messaging import events, presence


class RecordingPublisher(events.EventPublisher):
    """Keeps every published event in memory."""

    def __init__(self):
        self.events = []

    def publish(self, event, payload, scope, exclude=None):
        self.events.append({'event': event, 'payload': payload, 'scope': scope, 'exclude': exclude})
        return len(self.events)

    def named(self, event):
        return [e for e in self.events if e['event'] == event]


class FakeTimer:
    def __init__(self, interval, function, args=()):
        self.interval = interval
        self.function = function
        self.args = args
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.function(*self.args)


class FakeTimerFactory:
    def __init__(self):
        self.timers = []

    def __call__(self, interval, function, args=()):
        timer = FakeTimer(interval, function, args)
        self.timers.append(timer)
        return timer

    @property
    def last(self):
        return self.timers[-1]


class BrokenMailer:
    def __init__(self):
        self.calls = 0

    def send_chat_notification(self, *args, **kwargs):
        self.calls += 1
        raise ConnectionRefusedError("smtp down")

    def send_answer_notification(self, *args, **kwargs):
        self.calls += 1
        raise ConnectionRefusedError("smtp down")


@pytest.fixture(autouse=True)
def _isolated_messaging(settings):
    settings.SECURE_SSL_REDIRECT = False
    settings.SITE_URL = 'https://stackhub.test'
    settings.DEFAULT_FROM_EMAIL = 'no-reply@stackhub.test'
    cache.clear()
    events._publisher = None
    presence._typing_tracker = None
    presence._presence_tracker = None
    yield
    cache.clear()


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def timers():
    return FakeTimerFactory()


@pytest.fixture
def broken_mailer():
    return BrokenMailer()


@pytest.fixture
def make_user(db):
    def _make_user(username, verified=False, email=None, **extra):
        return get_user_model().objects.create_user(
            username=username,
            password="pass",
            email=f"{username}@example.com" if email is None else email,
            email_verified=verified,
            **extra,
        )
    return _make_user


@pytest.fixture
def befriend():
    def _befriend(user, *others):
        user.friends.add(*others)
    return _befriend


@pytest.fixture
def alice(make_user):
    return make_user("alice", verified=True)


@pytest.fixture
def bob(make_user):
    return make_user("bob", verified=True)


@pytest.fixture
def carol(make_user):
    return make_user("carol")
