import math
from datetime import datetime, timedelta, timezone

import pytest

from messaging import ranking

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def hours_ago(hours):
    return NOW - timedelta(hours=hours)


def question(qid, asked, up=0, down=0, views=0, comments=(), answers=()):
    return {
        'id': qid,
        'ask_date_time': asked,
        'up_votes': up,
        'down_votes': down,
        'views': views,
        'comments': [{'comment_date_time': c} for c in comments],
        'answers': list(answers),
    }


def answer(at, comments=()):
    return {'ans_date_time': at, 'comments': [{'comment_date_time': c} for c in comments]}


def ids(qlist):
    return [q['id'] for q in qlist]


def test_fresh_question_without_activity_scores_post_recency_only():
    assert ranking.trending_score(question('q', NOW), NOW) == pytest.approx(2.0)


def test_trending_score_uses_published_constants():
    q = question('q', hours_ago(48), up=3, down=1, comments=[hours_ago(24)])

    base = 2 * 1.0 + 1 * 0.5
    expected = base * (0.6 * math.exp(-1) + 0.4) + 2.0 * math.exp(-1)
    assert ranking.trending_score(q, NOW) == pytest.approx(expected)


def test_answer_comments_count_towards_total_and_recency():
    q = question(
        'q', hours_ago(10),
        comments=[hours_ago(30)],
        answers=[answer(hours_ago(9), comments=[hours_ago(2), hours_ago(5)])],
    )

    base = 3 * 0.5
    expected = base * (0.6 * math.exp(-2 / 24) + 0.4) + 2.0 * math.exp(-10 / 48)
    assert ranking.trending_score(q, NOW) == pytest.approx(expected)


def test_votes_may_be_username_lists():
    as_lists = question('q', hours_ago(1), up=['a', 'b', 'c'], down=['d'])
    as_counts = question('q', hours_ago(1), up=3, down=1)
    assert ranking.trending_score(as_lists, NOW) == ranking.trending_score(as_counts, NOW)


def test_net_negative_votes_push_question_down():
    liked = question('liked', hours_ago(5), up=4)
    disliked = question('disliked', hours_ago(5), down=4)
    assert ids(ranking.sort_by_trending([disliked, liked], NOW)) == ['liked', 'disliked']


def test_equal_inputs_put_the_newer_question_first():
    older = question('older', hours_ago(6), up=2)
    newer = question('newer', hours_ago(1), up=2)
    assert ids(ranking.sort_by_trending([older, newer], NOW)) == ['newer', 'older']


def test_identical_scores_keep_newest_first_order():
    first = question('first', hours_ago(3), up=1)
    second = question('second', hours_ago(3), up=1)
    assert ids(ranking.sort_by_trending([first, second], NOW)) == ['first', 'second']


def test_sorting_returns_new_list():
    qlist = [question('a', hours_ago(5)), question('b', hours_ago(1))]
    result = ranking.sort_by_newest(qlist)
    assert ids(result) == ['b', 'a']
    assert ids(qlist) == ['a', 'b']


def test_unanswered_filters_and_keeps_newest_order():
    qlist = [
        question('old', hours_ago(9)),
        question('answered', hours_ago(2), answers=[answer(hours_ago(1))]),
        question('new', hours_ago(1)),
    ]
    assert ids(ranking.sort_by_unanswered(qlist)) == ['new', 'old']


def test_active_orders_by_latest_answer_and_puts_unanswered_last():
    qlist = [
        question('quiet', hours_ago(1)),
        question('busy', hours_ago(20), answers=[answer(hours_ago(15)), answer(hours_ago(2))]),
        question('slow', hours_ago(10), answers=[answer(hours_ago(8))]),
    ]
    assert ids(ranking.sort_by_active(qlist)) == ['busy', 'slow', 'quiet']


def test_most_viewed_breaks_ties_by_newest():
    qlist = [
        question('a', hours_ago(5), views=10),
        question('b', hours_ago(1), views=3),
        question('c', hours_ago(2), views=10),
    ]
    assert ids(ranking.sort_by_most_viewed(qlist)) == ['c', 'a', 'b']


def test_sort_questions_dispatches_by_order_name():
    qlist = [question('a', hours_ago(5)), question('b', hours_ago(1))]
    assert ids(ranking.sort_questions(qlist, 'newest')) == ['b', 'a']


def test_sort_questions_rejects_unknown_order():
    with pytest.raises(ValueError):
        ranking.sort_questions([], 'random')
