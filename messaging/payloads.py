"""JSON shapes sent to clients in responses and real-time events."""


def _iso(value):
    return value.isoformat() if value else None


def serialize_message(message):
    return {
        'id': message.pk,
        'chatId': message.chat_id,
        'msgFrom': message.msg_from.username,
        'msg': message.msg,
        'msgDateTime': _iso(message.msg_date_time),
        'type': message.type,
        'msgTo': message.msg_to.username if message.msg_to_id else None,
        'readBy': sorted(u.username for u in message.read_by.all()),
        'lastEditedAt': _iso(message.last_edited_at),
        'lastEditedBy': message.last_edited_by.username if message.last_edited_by_id else None,
        'editHistory': [
            {
                'body': edit.previous_body,
                'editedBy': edit.edited_by.username if edit.edited_by_id else None,
                'editedAt': _iso(edit.edited_at),
            }
            for edit in message.edit_history.all()
        ],
    }


def serialize_chat(chat):
    """
    Render a freshly loaded chat. Soft-deleted messages are left out.

    ``participants`` keeps the username -> notification flag mapping clients
    already understand; membership is the key set.
    """
    participants = {
        p.user.username: p.notify_enabled
        for p in chat.participants.select_related('user').order_by('joined_at', 'id')
    }
    messages = (
        chat.messages.filter(is_deleted=False)
        .select_related('msg_from', 'msg_to', 'last_edited_by')
        .prefetch_related('read_by', 'edit_history__edited_by')
    )
    return {
        'id': chat.pk,
        'name': chat.name,
        'isCommunityChat': chat.is_community_chat,
        'communityId': chat.community_id or None,
        'participants': participants,
        'messages': [serialize_message(m) for m in messages],
        'createdAt': _iso(chat.created_at),
    }


def serialize_notification(notification):
    return {
        'id': notification.pk,
        'recipient': notification.recipient.username,
        'kind': notification.kind,
        'title': notification.title,
        'preview': notification.preview,
        'link': notification.link,
        'actorUsername': notification.actor_username,
        'isRead': notification.is_read,
        'createdAt': _iso(notification.created_at),
        'readAt': _iso(notification.read_at),
        'meta': notification.meta,
    }
