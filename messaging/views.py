import json
import logging
from functools import wraps

from django.contrib.auth import get_user_model
from django.contrib.auth.decorators import login_required
from django.core.exceptions import ObjectDoesNotExist, PermissionDenied, ValidationError
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from . import chats, notifications, receipts
from .events import GLOBAL_SCOPE, chat_scope, get_publisher, user_scope
from .models import Chat
from .payloads import serialize_chat, serialize_message, serialize_notification
from .presence import get_presence_tracker, get_typing_tracker

# Logger
logger = logging.getLogger(__name__)

User = get_user_model()

JOINED_CHATS_SESSION_KEY = 'joined_chats'


def json_errors(view):
    """Translate service exceptions into JSON error responses."""
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            return view(request, *args, **kwargs)
        except ObjectDoesNotExist as exc:
            return JsonResponse({"error": str(exc) or "Not found"}, status=404)
        except PermissionDenied as exc:
            return JsonResponse({"error": str(exc) or "Not allowed"}, status=403)
        except ValidationError as exc:
            return JsonResponse({"error": " ".join(exc.messages)}, status=400)
        except json.JSONDecodeError:
            return JsonResponse({"error": "Invalid JSON body"}, status=400)
    return wrapper


def _body(request):
    if not request.body:
        return {}
    data = json.loads(request.body)
    if not isinstance(data, dict):
        raise ValidationError("JSON object expected")
    return data


def _connection_id(request):
    if not request.session.session_key:
        request.session.save()
    return request.session.session_key


def _member_chat(request, chat_id):
    chat = Chat.objects.get(pk=chat_id)
    if not chats.is_member(chat, request.user.username):
        raise PermissionDenied("You are not a participant of this chat.")
    return chat


# ============================================================================
# NOTIFICATIONS
# ============================================================================

@login_required
@require_GET
@json_errors
def notifications_list(request):
    page = notifications.notification_page(
        request.user.username,
        limit=request.GET.get('limit'),
        cursor=request.GET.get('cursor'),
    )
    return JsonResponse({
        "items": [serialize_notification(n) for n in page['items']],
        "nextCursor": page['next_cursor'],
    })


@csrf_exempt
@login_required
@require_POST
@json_errors
def mark_notification_read(request, notification_id):
    request.user.notifications.get(pk=notification_id)
    notification = notifications.mark_read(notification_id)
    return JsonResponse(serialize_notification(notification))


@csrf_exempt
@login_required
@require_POST
def mark_all_notifications_read(request):
    """Mark all notifications as read"""
    return JsonResponse(notifications.mark_all_read(request.user.username))


@csrf_exempt
@login_required
@require_POST
def delete_notification(request, notification_id):
    """Delete a specific notification (no-op when it is already gone)"""
    if request.user.notifications.filter(pk=notification_id).exists():
        return JsonResponse(notifications.delete_notification(notification_id))
    return JsonResponse({'ok': True})


# ============================================================================
# CHATS
# ============================================================================

@login_required
@require_GET
def user_chats(request):
    return JsonResponse({
        "chats": [serialize_chat(c) for c in chats.get_chats_for_user(request.user.username)]
    })


@csrf_exempt
@login_required
@require_POST
@json_errors
def create_chat(request):
    data = _body(request)
    participants = list(data.get('participants') or [])
    if request.user.username not in participants:
        participants.insert(0, request.user.username)
    chat, created = chats.create_chat(
        participants,
        creator=request.user.username,
        name=data.get('name') or '',
        is_community_chat=bool(data.get('isCommunityChat')),
        community_id=data.get('communityId') or '',
        messages=data.get('messages') or (),
    )
    return JsonResponse(serialize_chat(chat), status=201 if created else 200)


@login_required
@require_GET
@json_errors
def chat_detail(request, chat_id):
    return JsonResponse(serialize_chat(_member_chat(request, chat_id)))


@csrf_exempt
@login_required
@require_POST
@json_errors
def add_message(request, chat_id):
    data = _body(request)
    message = chats.add_message(chat_id, request.user.username, data.get('msg', ''))
    get_typing_tracker().stop(_connection_id(request), chat_id)
    return JsonResponse(
        {"message": serialize_message(message), "chat": serialize_chat(message.chat)},
        status=201,
    )


@csrf_exempt
@login_required
@require_POST
@json_errors
def add_participant(request, chat_id):
    username = _body(request).get('username')
    if not username:
        raise ValidationError("username is required")
    chat = chats.add_participant(chat_id, username, added_by=request.user.username)
    return JsonResponse(serialize_chat(chat))


@csrf_exempt
@login_required
@require_POST
@json_errors
def leave_group(request, chat_id):
    _member_chat(request, chat_id)
    get_typing_tracker().leave(_connection_id(request), chat_id)
    chats.remove_participant(chat_id, request.user.username)
    return JsonResponse({"ok": True})


@csrf_exempt
@login_required
@require_POST
@json_errors
def toggle_notify(request, chat_id):
    enabled = chats.toggle_notify(chat_id, request.user.username)
    return JsonResponse({"chatId": int(chat_id), "notifyEnabled": enabled})


@csrf_exempt
@login_required
@require_POST
@json_errors
def mark_chat_read(request, chat_id):
    marked = receipts.mark_chat_read(chat_id, request.user.username)
    return JsonResponse({"ok": True, "marked": marked})


@login_required
@require_GET
@json_errors
def receipt_status(request, chat_id):
    chat = _member_chat(request, chat_id)
    return JsonResponse({"status": receipts.receipt_status(chat, request.user.username)})


# ============================================================================
# MESSAGES
# ============================================================================

@csrf_exempt
@login_required
@require_http_methods(["PUT"])
@json_errors
def edit_message(request, message_id):
    data = _body(request)
    message = chats.edit_message(message_id, request.user.username, data.get('msg', ''))
    return JsonResponse(serialize_message(message))


@csrf_exempt
@login_required
@require_POST
@json_errors
def delete_message(request, message_id):
    chats.delete_message(message_id, request.user.username)
    return JsonResponse({"message": "Message deleted"})


# ============================================================================
# REAL-TIME: ROOMS, TYPING, PRESENCE, EVENT POLLING
# ============================================================================

@csrf_exempt
@login_required
@require_POST
@json_errors
def join_chat(request, chat_id):
    chat = _member_chat(request, chat_id)
    joined = set(request.session.get(JOINED_CHATS_SESSION_KEY, []))
    joined.add(str(chat.pk))
    request.session[JOINED_CHATS_SESSION_KEY] = sorted(joined)
    return JsonResponse({"joined": request.session[JOINED_CHATS_SESSION_KEY]})


@csrf_exempt
@login_required
@require_POST
def leave_chat(request, chat_id):
    joined = set(request.session.get(JOINED_CHATS_SESSION_KEY, []))
    joined.discard(str(chat_id))
    request.session[JOINED_CHATS_SESSION_KEY] = sorted(joined)
    get_typing_tracker().leave(_connection_id(request), chat_id)
    return JsonResponse({"joined": request.session[JOINED_CHATS_SESSION_KEY]})


@csrf_exempt
@login_required
@require_POST
@json_errors
def typing_input(request, chat_id):
    _member_chat(request, chat_id)
    text = _body(request).get('text', '')
    started = get_typing_tracker().input_changed(
        _connection_id(request), chat_id, request.user.username, text
    )
    return JsonResponse({"started": started})


@csrf_exempt
@login_required
@require_POST
def typing_stop(request, chat_id):
    stopped = get_typing_tracker().stop(_connection_id(request), chat_id)
    return JsonResponse({"stopped": stopped})


@csrf_exempt
@login_required
@require_POST
def disconnect(request):
    """Called by the client on unload: drop typing state, rooms and presence."""
    stopped = get_typing_tracker().disconnect(_connection_id(request))
    request.session[JOINED_CHATS_SESSION_KEY] = []
    get_presence_tracker().go_offline(request.user)
    logger.debug("%s disconnected, %d typing states stopped", request.user.username, stopped)
    return JsonResponse({"ok": True, "typingStopped": stopped})


@login_required
@require_GET
@json_errors
def poll_events(request):
    try:
        since = int(request.GET.get('since', 0))
    except ValueError:
        raise ValidationError("since must be an integer")
    scopes = [GLOBAL_SCOPE, user_scope(request.user.username)]
    scopes += [chat_scope(cid) for cid in request.session.get(JOINED_CHATS_SESSION_KEY, [])]
    events = get_publisher().read(scopes, since=since, username=request.user.username)
    return JsonResponse({
        "events": [{"seq": e['seq'], "event": e['event'], "payload": e['payload']} for e in events],
        "last": events[-1]['seq'] if events else since,
    })


@csrf_exempt
@login_required
@require_POST
@json_errors
def update_online_visibility(request):
    data = _body(request)
    if 'showOnlineStatus' not in data:
        raise ValidationError("showOnlineStatus is required")
    status = get_presence_tracker().set_show_online_status(request.user, data['showOnlineStatus'])
    return JsonResponse(status)


@login_required
@require_GET
@json_errors
def user_status(request, username):
    user = User.objects.get(username=username)
    return JsonResponse(get_presence_tracker().visible_status(user))
