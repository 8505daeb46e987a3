"""
Chat operations: creation, membership, sending, editing and deleting.

Every write is a single-row insert or a field-level UPDATE so concurrent
requests never lose each other's changes. Broadcasts always carry a chat
snapshot re-read after the write.
"""

import logging

from django.contrib.auth import get_user_model
from django.core.exceptions import PermissionDenied, ValidationError
from django.db import transaction
from django.db.models import Case, Count, Q, Value, When
from django.utils import timezone

from .events import chat_scope, get_publisher, user_scope
from .fanout import on_message_appended
from .models import Chat, ChatParticipant, Message, MessageEdit
from .payloads import serialize_chat, serialize_message

logger = logging.getLogger(__name__)

User = get_user_model()


def are_friends(username_a, username_b):
    return User.objects.filter(username=username_a, friends__username=username_b).exists()


def _users_by_username(usernames):
    users = {u.username: u for u in User.objects.filter(username__in=usernames)}
    missing = [name for name in usernames if name not in users]
    if missing:
        raise User.DoesNotExist(f"Unknown users: {', '.join(missing)}")
    return [users[name] for name in usernames]


def _chats_with_exact_members(usernames):
    """Non-community chats whose member set equals ``usernames``."""
    qs = Chat.objects.filter(is_community_chat=False).annotate(
        member_count=Count('participants', distinct=True),
        matched=Count('participants', filter=Q(participants__user__username__in=usernames), distinct=True),
    )
    return qs.filter(member_count=len(usernames), matched=len(usernames))


def get_chat(chat_id):
    return Chat.objects.get(pk=chat_id)


def get_chats_for_user(username):
    return list(Chat.objects.filter(participants__user__username=username).distinct())


def is_member(chat, username):
    return chat.participants.filter(user__username=username).exists()


def broadcast_chat(chat_id, update_type, publisher=None, scopes=None):
    """Re-read the chat and publish a chatUpdate built from that snapshot."""
    chat = Chat.objects.get(pk=chat_id)
    payload = {'chat': serialize_chat(chat), 'type': update_type}
    publisher = publisher or get_publisher()
    for scope in scopes or [chat_scope(chat.pk)]:
        publisher.publish('chatUpdate', payload, scope)
    return payload


def create_chat(participants, creator=None, name='', is_community_chat=False,
                community_id='', messages=(), publisher=None):
    """
    Create a chat, or return the existing one for the same members.

    Args:
        participants: Usernames; the first one is the creator unless given
        messages: Seed messages as dicts with msg, msgFrom and optional type

    Returns:
        tuple[Chat, bool]: the chat and whether it was created

    Raises:
        ValidationError: fewer than two distinct members, empty seed message
        User.DoesNotExist: unknown participant
        PermissionDenied: friendship requirements not met
    """
    usernames = list(dict.fromkeys(participants))
    if not usernames or (len(usernames) < 2 and not is_community_chat):
        raise ValidationError("A chat needs at least two participants.")
    creator = creator or usernames[0]
    for seed in messages:
        if not (seed.get('msg') or '').strip():
            raise ValidationError("Message body cannot be empty.")
        if seed.get('msgFrom') not in usernames:
            raise ValidationError("Seed messages must come from a participant.")

    users = _users_by_username(usernames)

    if is_community_chat:
        if not community_id:
            raise ValidationError("Community chats need a community id.")
        existing = Chat.objects.filter(is_community_chat=True, community_id=community_id).first()
        if existing:
            return existing, False
    else:
        existing = _chats_with_exact_members(usernames).first()
        if existing:
            return existing, False

        if len(usernames) == 2:
            only_friend_requests = bool(messages) and all(
                seed.get('type') == 'friendRequest' for seed in messages
            )
            if not only_friend_requests and not are_friends(*usernames):
                raise PermissionDenied("Users must be friends to create a direct message chat.")
        else:
            for other in usernames:
                if other != creator and not are_friends(creator, other):
                    raise PermissionDenied(f"You must be friends with {other} to add them to a group chat.")

    by_name = {u.username: u for u in users}
    with transaction.atomic():
        chat = Chat.objects.create(
            name=name or '',
            is_community_chat=is_community_chat,
            community_id=community_id or '',
        )
        ChatParticipant.objects.bulk_create(
            [ChatParticipant(chat=chat, user=user) for user in users]
        )
        for seed in messages:
            Message.objects.create(
                chat=chat,
                msg_from=by_name[seed['msgFrom']],
                msg=seed['msg'],
                type=seed.get('type') or 'direct',
                msg_to=by_name.get(seed.get('msgTo')),
            )

    logger.info("Created chat %s with %d members", chat.pk, len(users))
    broadcast_chat(chat.pk, 'created', publisher, scopes=[user_scope(u) for u in usernames])
    return chat, True


def add_message(chat_id, msg_from, msg, msg_date_time=None, publisher=None, mailer=None):
    """
    Append a message, fan out notifications and broadcast the new state.

    Raises:
        ValidationError: empty body (checked before anything else)
        Chat.DoesNotExist: unknown chat
        PermissionDenied: sender not a member, or not friends in a direct chat
    """
    if not (msg or '').strip():
        raise ValidationError("Message body cannot be empty.")

    chat = Chat.objects.get(pk=chat_id)
    members = chat.member_usernames()
    if msg_from not in members:
        raise PermissionDenied("Only chat participants can send messages.")
    if not chat.is_community_chat and len(members) == 2:
        other = members[0] if members[1] == msg_from else members[1]
        if not are_friends(msg_from, other):
            raise PermissionDenied("You can only send messages to users who are your friends.")

    message = Message.objects.create(
        chat=chat,
        msg_from=User.objects.get(username=msg_from),
        msg=msg,
        msg_date_time=msg_date_time or timezone.now(),
        type='direct',
    )
    publisher = publisher or get_publisher()
    on_message_appended(chat.pk, message.pk, publisher=publisher, mailer=mailer)
    broadcast_chat(chat.pk, 'newMessage', publisher)
    return message


def add_participant(chat_id, username, added_by, publisher=None):
    chat = Chat.objects.get(pk=chat_id)
    user = User.objects.get(username=username)
    if not is_member(chat, added_by):
        raise PermissionDenied("Only participants can invite others.")
    if not chat.is_community_chat and not are_friends(added_by, username):
        raise PermissionDenied(f"You must be friends with {username} to add them to the chat.")

    _, created = ChatParticipant.objects.get_or_create(chat=chat, user=user)
    if not created:
        raise ValidationError(f"{username} is already a participant.")

    publisher = publisher or get_publisher()
    payload = broadcast_chat(chat.pk, 'newParticipant', publisher)
    publisher.publish('chatUpdate', payload, user_scope(username))
    return chat


def remove_participant(chat_id, username, publisher=None):
    chat = Chat.objects.get(pk=chat_id)
    deleted, _ = ChatParticipant.objects.filter(chat=chat, user__username=username).delete()
    if not deleted:
        raise ValidationError(f"{username} is not a participant.")
    # membership changes in either direction go out as newParticipant
    broadcast_chat(chat.pk, 'newParticipant', publisher,
                   scopes=[chat_scope(chat.pk), user_scope(username)])
    return chat


def toggle_notify(chat_id, username):
    """Flip the member's notification flag in one UPDATE statement."""
    chat = Chat.objects.get(pk=chat_id)
    updated = ChatParticipant.objects.filter(chat=chat, user__username=username).update(
        notify_enabled=Case(
            When(notify_enabled=True, then=Value(False)),
            default=Value(True),
        )
    )
    if not updated:
        raise PermissionDenied(f"{username} is not a participant.")
    return ChatParticipant.objects.get(chat=chat, user__username=username).notify_enabled


def sync_community_chat_participants(community_id, usernames, publisher=None):
    """Make the community chat's members match the community's members."""
    chat = Chat.objects.get(is_community_chat=True, community_id=community_id)
    wanted = set(usernames)
    current = set(chat.member_usernames())

    to_add = User.objects.filter(username__in=wanted - current)
    ChatParticipant.objects.bulk_create(
        [ChatParticipant(chat=chat, user=user) for user in to_add],
        ignore_conflicts=True,
    )
    ChatParticipant.objects.filter(chat=chat, user__username__in=current - wanted).delete()
    if wanted != current:
        broadcast_chat(chat.pk, 'newParticipant', publisher)
    return chat


def edit_message(message_id, editor, new_body, publisher=None):
    """
    Replace a message body, keeping the previous one in the edit history.

    Raises:
        Message.DoesNotExist: unknown or deleted message
        PermissionDenied: editor is not the author
        ValidationError: empty body
    """
    if not (new_body or '').strip():
        raise ValidationError("Message body cannot be empty.")

    with transaction.atomic():
        message = (
            Message.objects.select_for_update()
            .select_related('msg_from')
            .get(pk=message_id, is_deleted=False)
        )
        if message.msg_from.username != editor:
            raise PermissionDenied("Only the author can edit this message.")
        editor_user = message.msg_from
        now = timezone.now()
        MessageEdit.objects.create(
            message=message, previous_body=message.msg, edited_by=editor_user, edited_at=now
        )
        Message.objects.filter(pk=message.pk).update(
            msg=new_body, last_edited_at=now, last_edited_by=editor_user
        )

    message.refresh_from_db()
    if message.chat_id:
        (publisher or get_publisher()).publish(
            'messageUpdate', {'msg': serialize_message(message)}, chat_scope(message.chat_id)
        )
    return message


def delete_message(message_id, requester, publisher=None):
    """Soft-delete a message. Only its author may do so."""
    message = Message.objects.select_related('msg_from').get(pk=message_id, is_deleted=False)
    if message.msg_from.username != requester:
        raise PermissionDenied("Only the author can delete this message.")

    Message.objects.filter(pk=message.pk).update(
        is_deleted=True, deleted_at=timezone.now(), deleted_by=message.msg_from
    )
    logger.info("Message %s soft-deleted by %s", message.pk, requester)
    if message.chat_id:
        broadcast_chat(message.chat_id, 'messageDeleted', publisher)
    message.refresh_from_db()
    return message
