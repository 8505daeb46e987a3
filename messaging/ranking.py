"""
Question ordering.

Pure functions over question records supplied by the question repository.
A record is a mapping with:

    ask_date_time   datetime
    up_votes        int or sequence of usernames
    down_votes      int or sequence of usernames
    views           int or sequence of usernames
    comments        sequence of {'comment_date_time': datetime}
    answers         sequence of {'ans_date_time': datetime, 'comments': [...]}

Every sort returns a new list; the input is left untouched.
"""

import math

from django.utils import timezone

HOUR_SECONDS = 3600.0

VOTE_WEIGHT = 1.0
COMMENT_WEIGHT = 0.5
COMMENT_DECAY_HOURS = 24.0
POST_DECAY_HOURS = 48.0
COMMENT_RECENCY_SHARE = 0.6
BASE_SHARE = 0.4
POST_RECENCY_WEIGHT = 2.0


def _count(value):
    if value is None:
        return 0
    if isinstance(value, int):
        return value
    return len(value)


def _ts(value):
    return value.timestamp() if value else 0.0


def _latest(values):
    return max((_ts(v) for v in values if v), default=0.0)


def sort_by_newest(qlist):
    return sorted(qlist, key=lambda q: _ts(q['ask_date_time']), reverse=True)


def sort_by_unanswered(qlist):
    return [q for q in sort_by_newest(qlist) if not q.get('answers')]


def most_recent_answer_at(question):
    return _latest(a.get('ans_date_time') for a in question.get('answers') or [])


def sort_by_active(qlist):
    """Newest first, then by latest answer time; unanswered questions go last."""
    def key(q):
        latest = most_recent_answer_at(q)
        return (0, -latest) if latest else (1, 0.0)
    return sorted(sort_by_newest(qlist), key=key)


def sort_by_most_viewed(qlist):
    return sorted(sort_by_newest(qlist), key=lambda q: _count(q.get('views')), reverse=True)


def trending_score(question, now=None):
    """
    Blend of net votes, comment volume and two recency decays.

        base  = net_votes * 1.0 + total_comments * 0.5
        score = base * (0.6 * exp(-h_comment / 24) + 0.4) + 2.0 * exp(-h_post / 48)

    The comment boost is 0 when the question and its answers have no comments.
    """
    now = _ts(now or timezone.now())
    net_votes = _count(question.get('up_votes')) - _count(question.get('down_votes'))

    answers = question.get('answers') or []
    own_comments = question.get('comments') or []
    total_comments = len(own_comments) + sum(len(a.get('comments') or []) for a in answers)

    comment_times = [c.get('comment_date_time') for c in own_comments]
    for answer in answers:
        comment_times.extend(c.get('comment_date_time') for c in answer.get('comments') or [])
    latest_comment = _latest(comment_times)

    if latest_comment > 0:
        hours_since_comment = (now - latest_comment) / HOUR_SECONDS
        comment_boost = math.exp(-hours_since_comment / COMMENT_DECAY_HOURS)
    else:
        comment_boost = 0.0
    hours_since_post = (now - _ts(question['ask_date_time'])) / HOUR_SECONDS
    post_boost = math.exp(-hours_since_post / POST_DECAY_HOURS)

    base = net_votes * VOTE_WEIGHT + total_comments * COMMENT_WEIGHT
    return base * (COMMENT_RECENCY_SHARE * comment_boost + BASE_SHARE) + POST_RECENCY_WEIGHT * post_boost


def sort_by_trending(qlist, now=None):
    """Highest score first; equal scores keep the newest-asked first."""
    now = now or timezone.now()
    return sorted(sort_by_newest(qlist), key=lambda q: trending_score(q, now), reverse=True)


ORDERINGS = {
    'newest': sort_by_newest,
    'unanswered': sort_by_unanswered,
    'active': sort_by_active,
    'mostViewed': sort_by_most_viewed,
    'trending': sort_by_trending,
}


def sort_questions(qlist, order='newest'):
    if order not in ORDERINGS:
        raise ValueError(f"Unknown question order: {order!r}")
    return ORDERINGS[order](qlist)
