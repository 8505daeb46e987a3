from datetime import timedelta

import pytest
from django.contrib.auth.models import AnonymousUser
from django.core.cache import cache
from django.http import HttpResponse
from django.template import Context, Template
from django.test import RequestFactory
from django.utils import timezone

from messaging import presence
from messaging.context_processors import unread_counts
from messaging.middleware import UpdateLastSeenMiddleware
from messaging.models import Chat, ChatParticipant, Message, Notification


@pytest.fixture
def rf_request():
    def _request(user):
        request = RequestFactory().get('/')
        request.user = user
        return request
    return _request


@pytest.fixture
def middleware(publisher, monkeypatch):
    monkeypatch.setattr(presence, '_presence_tracker', presence.PresenceTracker(publisher))
    return UpdateLastSeenMiddleware(lambda request: HttpResponse("ok"))


@pytest.mark.django_db
def test_returning_user_is_marked_seen_and_announced(middleware, rf_request, alice, publisher):
    alice.last_seen = timezone.now() - timedelta(hours=2)
    alice.save(update_fields=['last_seen'])

    middleware(rf_request(alice))

    alice.refresh_from_db()
    assert alice.is_online
    assert publisher.named('userStatusUpdate')[0]['payload']['username'] == 'alice'
    assert cache.get(presence.last_seen_throttle_key(alice.id)) is not None


@pytest.mark.django_db
def test_writes_are_throttled(middleware, rf_request, alice):
    middleware(rf_request(alice))
    first = alice.__class__.objects.get(pk=alice.pk).last_seen

    middleware(rf_request(alice))

    assert alice.__class__.objects.get(pk=alice.pk).last_seen == first


@pytest.mark.django_db
def test_request_after_going_offline_comes_back_online(middleware, rf_request, alice, publisher):
    middleware(rf_request(alice))
    presence.get_presence_tracker().go_offline(alice)
    assert cache.get(presence.last_seen_throttle_key(alice.id)) is None

    middleware(rf_request(alice))

    alice.refresh_from_db()
    assert alice.is_online
    assert publisher.named('userStatusUpdate')[-1]['payload']['isOnline'] is True


def test_anonymous_requests_pass_through(middleware, rf_request, publisher):
    response = middleware(rf_request(AnonymousUser()))
    assert response.status_code == 200
    assert publisher.events == []


def test_unread_counts_for_anonymous(rf_request):
    assert unread_counts(rf_request(AnonymousUser())) == {
        'unread_messages_count': 0,
        'unread_notifications_count': 0,
    }


@pytest.mark.django_db
def test_unread_counts(rf_request, alice, bob, make_user):
    outsider = make_user('outsider')
    chat = Chat.objects.create()
    ChatParticipant.objects.create(chat=chat, user=alice)
    ChatParticipant.objects.create(chat=chat, user=bob)
    Message.objects.create(chat=chat, msg_from=bob, msg="unread")
    Message.objects.create(chat=chat, msg_from=bob, msg="gone", is_deleted=True)
    Message.objects.create(chat=chat, msg_from=alice, msg="own")
    seen = Message.objects.create(chat=chat, msg_from=bob, msg="seen")
    seen.read_by.add(alice)
    Notification.objects.create(recipient=alice, kind='chat')
    Notification.objects.create(recipient=alice, kind='chat', is_read=True)
    Notification.objects.create(recipient=outsider, kind='chat')

    assert unread_counts(rf_request(alice)) == {
        'unread_messages_count': 1,
        'unread_notifications_count': 1,
    }


@pytest.mark.django_db
def test_chat_filters(alice, bob, carol):
    chat = Chat.objects.create(name='Trio')
    for user in (alice, bob, carol):
        ChatParticipant.objects.create(chat=chat, user=user)
    message = Message.objects.create(chat=chat, msg_from=alice, msg="hi")
    message.read_by.add(bob)
    carol.show_online_status = False

    rendered = Template(
        "{% load chat_filters %}{{ chat|chat_title }}|{{ chat|receipt_label:'alice' }}|"
        "{{ chat|receipt_label:'bob' }}|{{ alice|shows_online }}|{{ carol|shows_online }}"
    ).render(Context({'chat': chat, 'alice': alice, 'carol': carol}))

    assert rendered == "Trio|Read by 1/2||True|False"
