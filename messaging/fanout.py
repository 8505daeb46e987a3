"""
Chat and answer notification fan-out.

One appended message becomes one notification per notification-enabled
recipient plus a single batched email to the recipients with a verified
address. Email delivery is best effort: failures are logged and dropped and
never undo or block the notification records, which are written first.
"""

import logging
import re

from django.conf import settings
from django.contrib.auth import get_user_model

from .events import get_publisher, user_scope
from .mailers import ChatMailer, chat_path, question_path
from .models import Chat, Message
from .notifications import create_notification

logger = logging.getLogger(__name__)

User = get_user_model()

WHITESPACE_RE = re.compile(r"\s+")


def make_preview(text):
    """Collapse runs of whitespace and cut to the preview length."""
    return WHITESPACE_RE.sub(' ', text or '')[:settings.NOTIFICATION_PREVIEW_LENGTH]


def _email_eligible(user):
    return bool(user.email) and user.email_verified


def _send_best_effort(send, *args, **kwargs):
    try:
        send(*args, **kwargs)
    except Exception:
        logger.exception("Notification email delivery failed; dropping it")
        return False
    return True


def on_message_appended(chat_id, message_id, publisher=None, mailer=None):
    """
    Create notifications and send the email digest for a persisted message.

    Raises:
        Chat.DoesNotExist / Message.DoesNotExist: nothing is created or sent.

    Returns:
        list[Notification]: the created records, one per eligible recipient
    """
    chat = Chat.objects.get(pk=chat_id)
    message = Message.objects.select_related('msg_from').get(pk=message_id, chat=chat)

    sender = message.msg_from.username
    preview = make_preview(message.msg)
    participants = list(chat.participants.select_related('user'))
    group_chat = len(participants) > 2
    group_name = (chat.name or 'Group Chat') if group_chat else 'Direct Message'
    link = chat_path(chat.pk)

    created = []
    emails = []
    for participant in participants:
        recipient = participant.user
        if recipient.username == sender:
            continue
        if not participant.notify_enabled:
            logger.debug("Chat %s: %s has notifications off", chat_id, recipient.username)
            continue

        created.append(create_notification(
            recipient=recipient,
            kind='chat',
            title=f"New message from {sender} in {group_name}",
            preview=preview,
            link=link,
            actor_username=sender,
            meta={'chat_id': chat.pk, 'is_mention': False},
        ))

        if _email_eligible(recipient):
            emails.append(recipient.email)
        else:
            logger.debug("Chat %s: no verified email for %s", chat_id, recipient.username)

    if emails:
        _send_best_effort(
            (mailer or ChatMailer()).send_chat_notification,
            emails,
            from_name=sender,
            chat_id=chat.pk,
            message_preview=preview,
            group_name=group_name,
        )

    publisher = publisher or get_publisher()
    for notification in created:
        publisher.publish('notificationUpdate', {'type': 'chat'}, user_scope(notification.recipient.username))

    logger.info(
        "Chat %s message %s: %d notifications, %d email recipients",
        chat_id, message_id, len(created), len(emails),
    )
    return created


def notify_answer_posted(question_id, question_title, asked_by, answer_by, answer_text,
                         subscribers=(), publisher=None, mailer=None):
    """
    Notify the asker and the question's subscribers about a new answer.

    The answer author never receives a notification for their own answer.
    """
    usernames = []
    for username in [asked_by, *subscribers]:
        if username and username != answer_by and username not in usernames:
            usernames.append(username)

    preview = make_preview(answer_text)
    recipients = list(User.objects.filter(username__in=usernames))

    created = [
        create_notification(
            recipient=user,
            kind='answer',
            title=f"{answer_by} answered: {question_title}" if question_title else f"New answer from {answer_by}",
            preview=preview,
            link=question_path(question_id),
            actor_username=answer_by,
            meta={'question_id': str(question_id)},
        )
        for user in recipients
    ]

    emails = [user.email for user in recipients if _email_eligible(user)]
    if emails:
        _send_best_effort(
            (mailer or ChatMailer()).send_answer_notification,
            emails,
            author_name=answer_by,
            question_title=question_title,
            answer_preview=preview,
            question_id=question_id,
        )

    publisher = publisher or get_publisher()
    for notification in created:
        publisher.publish('notificationUpdate', {'type': 'answer'}, user_scope(notification.recipient.username))
    return created
