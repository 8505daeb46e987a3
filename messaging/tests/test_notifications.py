from datetime import timedelta

import pytest
from django.core.exceptions import ValidationError
from django.utils import timezone

from messaging import notifications
from messaging.models import Notification


def seed(user, count, start=None):
    start = start or timezone.now() - timedelta(days=1)
    return [
        Notification.objects.create(
            recipient=user,
            kind='chat',
            title=f"n{i}",
            created_at=start + timedelta(minutes=i),
        )
        for i in range(count)
    ]


@pytest.mark.django_db
def test_create_stores_and_truncates_preview(alice):
    notification = notifications.create_notification(
        'alice', 'answer', title="New answer", preview="x" * 500, actor_username='bob',
        meta={'question_id': 'q1'},
    )

    stored = Notification.objects.get(pk=notification.pk)
    assert stored.recipient == alice
    assert len(stored.preview) == 140
    assert stored.is_read is False
    assert stored.read_at is None
    assert stored.meta == {'question_id': 'q1'}


@pytest.mark.django_db
def test_create_refuses_self_notification(alice):
    with pytest.raises(ValidationError):
        notifications.create_notification(alice, 'chat', actor_username='alice')
    assert not Notification.objects.exists()


@pytest.mark.django_db
def test_list_is_newest_first_and_scoped_to_recipient(alice, bob):
    seed(alice, 3)
    seed(bob, 2)

    titles = [n.title for n in notifications.list_notifications('alice')]
    assert titles == ['n2', 'n1', 'n0']


@pytest.mark.django_db
def test_cursor_returns_strictly_older_items(alice):
    items = seed(alice, 5)
    cursor = items[2].created_at.isoformat()

    titles = [n.title for n in notifications.list_notifications('alice', cursor=cursor)]
    assert titles == ['n1', 'n0']


@pytest.mark.django_db
def test_paging_until_exhausted_yields_every_notification_once(alice):
    seed(alice, 7)

    seen = []
    cursor = None
    while True:
        page = notifications.notification_page('alice', limit=3, cursor=cursor)
        seen.extend(n.title for n in page['items'])
        cursor = page['next_cursor']
        if cursor is None:
            break

    assert seen == ['n6', 'n5', 'n4', 'n3', 'n2', 'n1', 'n0']



@pytest.mark.django_db
def test_notifications_sharing_a_timestamp_are_not_skipped(alice):
    same_instant = timezone.now() - timedelta(hours=1)
    created = [
        Notification.objects.create(recipient=alice, kind='chat', title=f"t{i}",
                                    created_at=same_instant)
        for i in range(5)
    ]

    seen = []
    cursor = None
    while True:
        page = notifications.notification_page('alice', limit=2, cursor=cursor)
        seen.extend(n.pk for n in page['items'])
        cursor = page['next_cursor']
        if cursor is None:
            break

    assert seen == [n.pk for n in reversed(created)]

@pytest.mark.django_db
def test_exact_page_boundary_has_no_next_cursor(alice):
    seed(alice, 3)
    page = notifications.notification_page('alice', limit=3)
    assert len(page['items']) == 3
    assert page['next_cursor'] is None


@pytest.mark.django_db
def test_new_items_do_not_shift_later_pages(alice):
    seed(alice, 4)
    first = notifications.notification_page('alice', limit=2)
    notifications.create_notification(alice, 'system', title='late arrival')

    second = notifications.notification_page('alice', limit=2, cursor=first['next_cursor'])
    assert [n.title for n in second['items']] == ['n1', 'n0']


@pytest.mark.django_db
@pytest.mark.parametrize('limit', ['0', '-4', 'ten'])
def test_invalid_limit_is_rejected(alice, limit):
    with pytest.raises(ValidationError):
        notifications.notification_page('alice', limit=limit)


@pytest.mark.django_db
def test_limit_is_capped(alice, settings):
    settings.NOTIFICATIONS_MAX_PAGE_SIZE = 2
    seed(alice, 4)
    assert len(notifications.list_notifications('alice', limit=50)) == 2


@pytest.mark.django_db
def test_invalid_cursor_is_rejected(alice):
    with pytest.raises(ValidationError):
        notifications.list_notifications('alice', cursor='yesterday')
    with pytest.raises(ValidationError):
        notifications.list_notifications('alice', cursor=f"{timezone.now().isoformat()}|last")


@pytest.mark.django_db
def test_mark_read_twice_keeps_first_timestamp(alice):
    notification = seed(alice, 1)[0]

    first = notifications.mark_read(notification.pk)
    second = notifications.mark_read(notification.pk)

    assert first.is_read and second.is_read
    assert second.read_at == first.read_at


@pytest.mark.django_db
def test_mark_read_unknown_id_raises_not_found():
    with pytest.raises(Notification.DoesNotExist):
        notifications.mark_read(999)


@pytest.mark.django_db
def test_mark_all_read_acknowledges_and_signals(alice, bob, publisher):
    seed(alice, 3)
    seed(bob, 1)

    result = notifications.mark_all_read('alice', publisher=publisher)

    assert result == {'ok': True}
    assert notifications.unread_count('alice') == 0
    assert notifications.unread_count('bob') == 1
    assert publisher.events == [{
        'event': 'notificationUpdate',
        'payload': {'type': 'readAll'},
        'scope': 'user:alice',
        'exclude': None,
    }]


@pytest.mark.django_db
def test_delete_is_idempotent(alice):
    notification = seed(alice, 1)[0]

    assert notifications.delete_notification(notification.pk) == {'ok': True}
    assert notifications.delete_notification(notification.pk) == {'ok': True}
    assert not Notification.objects.exists()
