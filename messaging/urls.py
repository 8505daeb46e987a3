"""
================================================================================
STACKHUB MESSAGING - URL CONFIGURATION
================================================================================

URL STRUCTURE OVERVIEW
================================================================================
1. Notifications (list, mark read, mark all read, delete)
2. Chats (create, detail, messages, participants, notify toggle, receipts)
3. Messages (edit, soft delete)
4. Real-time (rooms, typing, disconnect, event polling, presence)

All endpoints answer JSON and require an authenticated session.
================================================================================
"""

from django.urls import path

from . import views


urlpatterns = [

    # ========================================================================
    # SECTION 1: NOTIFICATIONS
    # ========================================================================

    path("api/notifications/", views.notifications_list, name="notifications_list"),
    path(
        "api/notifications/read-all/",
        views.mark_all_notifications_read,
        name="mark_all_notifications_read"
    ),
    path(
        "api/notifications/<int:notification_id>/read/",
        views.mark_notification_read,
        name="mark_notification_read"
    ),
    path(
        "api/notifications/<int:notification_id>/delete/",
        views.delete_notification,
        name="delete_notification"
    ),

    # ========================================================================
    # SECTION 2: CHATS
    # ========================================================================

    path("api/chats/", views.user_chats, name="user_chats"),
    path("api/chats/create/", views.create_chat, name="create_chat"),
    path("api/chats/<int:chat_id>/", views.chat_detail, name="chat_detail"),
    path("api/chats/<int:chat_id>/messages/", views.add_message, name="add_message"),
    path("api/chats/<int:chat_id>/participants/", views.add_participant, name="add_participant"),
    path("api/chats/<int:chat_id>/leave-group/", views.leave_group, name="leave_group"),
    path("api/chats/<int:chat_id>/toggle-notify/", views.toggle_notify, name="toggle_notify"),
    path("api/chats/<int:chat_id>/read/", views.mark_chat_read, name="mark_chat_read"),
    path("api/chats/<int:chat_id>/receipt/", views.receipt_status, name="receipt_status"),

    # ========================================================================
    # SECTION 3: MESSAGES
    # ========================================================================

    path("api/messages/<int:message_id>/", views.edit_message, name="edit_message"),
    path("api/messages/<int:message_id>/delete/", views.delete_message, name="delete_message"),

    # ========================================================================
    # SECTION 4: REAL-TIME
    # ========================================================================

    path("api/chats/<int:chat_id>/join/", views.join_chat, name="join_chat"),
    path("api/chats/<int:chat_id>/leave/", views.leave_chat, name="leave_chat"),
    path("api/chats/<int:chat_id>/typing/", views.typing_input, name="typing_input"),
    path("api/chats/<int:chat_id>/typing/stop/", views.typing_stop, name="typing_stop"),
    path("api/realtime/disconnect/", views.disconnect, name="disconnect"),
    path("api/events/", views.poll_events, name="poll_events"),
    path(
        "api/presence/visibility/",
        views.update_online_visibility,
        name="update_online_visibility"
    ),
    path("api/presence/<str:username>/", views.user_status, name="user_status"),
]
