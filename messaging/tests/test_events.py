from concurrent.futures import ThreadPoolExecutor

import pytest

from messaging import events


@pytest.fixture
def cache_publisher():
    return events.CacheEventPublisher(backlog=3)


def test_scopes():
    assert events.chat_scope(5) == 'chat:5'
    assert events.user_scope('alice') == 'user:alice'


def test_read_merges_scopes_in_publish_order(cache_publisher):
    cache_publisher.publish('chatUpdate', {'n': 1}, 'chat:1')
    cache_publisher.publish('userStatusUpdate', {'n': 2}, events.GLOBAL_SCOPE)
    cache_publisher.publish('chatUpdate', {'n': 3}, 'chat:2')
    cache_publisher.publish('notificationUpdate', {'n': 4}, 'user:alice')

    got = cache_publisher.read(['user:alice', 'chat:1', events.GLOBAL_SCOPE])

    assert [e['payload']['n'] for e in got] == [1, 2, 4]


def test_read_since_returns_only_newer_events(cache_publisher):
    first = cache_publisher.publish('chatUpdate', {'n': 1}, 'chat:1')
    cache_publisher.publish('chatUpdate', {'n': 2}, 'chat:1')

    assert [e['payload']['n'] for e in cache_publisher.read(['chat:1'], since=first)] == [2]


def test_excluded_user_does_not_read_event(cache_publisher):
    cache_publisher.publish('typingIndicator', {'username': 'alice'}, 'chat:1', exclude='alice')

    assert cache_publisher.read(['chat:1'], username='alice') == []
    assert len(cache_publisher.read(['chat:1'], username='bob')) == 1


def test_backlog_is_bounded(cache_publisher):
    for n in range(5):
        cache_publisher.publish('chatUpdate', {'n': n}, 'chat:1')

    assert [e['payload']['n'] for e in cache_publisher.read(['chat:1'])] == [2, 3, 4]


def test_concurrent_publishers_keep_every_event():
    publisher = events.CacheEventPublisher(backlog=1000)

    def burst(worker):
        for n in range(50):
            publisher.publish('chatUpdate', {'worker': worker, 'n': n}, 'chat:1')

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(burst, range(8)))

    got = publisher.read(['chat:1'])
    assert len(got) == 400
    assert len({e['seq'] for e in got}) == 400
    assert {(e['payload']['worker'], e['payload']['n']) for e in got} == {
        (w, n) for w in range(8) for n in range(50)
    }


def test_configured_publisher_is_shared(settings):
    settings.MESSAGING_EVENT_PUBLISHER = 'messaging.events.CacheEventPublisher'
    publisher = events.get_publisher()
    assert isinstance(publisher, events.CacheEventPublisher)
    assert events.get_publisher() is publisher


def test_base_publisher_is_abstract():
    with pytest.raises(NotImplementedError):
        events.EventPublisher().publish('x', {}, 'global')
