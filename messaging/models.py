"""
================================================================================
STACKHUB MESSAGING - DATABASE MODELS
================================================================================

@file        models.py
@description Django ORM models for chat, read receipts and notifications

MODULE PURPOSE
================================================================================
This module defines the persistent state of the messaging subsystem:
- User model (extended from AbstractUser) with presence and friend data
- Chats and their participants
- Chat messages, their edit history and read receipts
- Per-user notifications

MODEL RELATIONSHIPS
================================================================================
User (N) <─────> (N) User (friends, symmetrical)
Chat (1) ──────> (N) ChatParticipant <────── (1) User
Chat (1) ──────> (N) Message
Message (N) <──> (N) User (read_by)
Message (1) ──────> (N) MessageEdit
User (1) ──────> (N) Notification

MEMBERSHIP VS. NOTIFICATION PREFERENCE
================================================================================
A user belongs to a chat when a ChatParticipant row exists for the pair.
ChatParticipant.notify_enabled only controls whether new messages create
notifications and emails for that user. It never affects membership.

================================================================================
"""

from datetime import timedelta

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone as dj_timezone


# ============================================================================
# CONSTANTS & CHOICES
# ============================================================================

MESSAGE_TYPE_CHOICES = [
    ('global', 'Global'),
    ('direct', 'Direct'),
    ('friendRequest', 'Friend request'),
    ('gameInvitation', 'Game invitation'),
]

NOTIFICATION_KIND_CHOICES = [
    ('answer', 'Answer'),
    ('chat', 'Chat'),
    ('system', 'System'),
]


# ============================================================================
# SECTION 1: USER MODEL
# ============================================================================

class User(AbstractUser):
    """
    Extended User model with presence and friendship data.

    Attributes:
        email_verified (BooleanField): Email address confirmed by the user
        show_online_status (BooleanField): Peers may see the real online state
        last_seen (DateTimeField): Last activity timestamp
        friends (ManyToManyField): Mutual friend relation

    Properties:
        is_online: True if user was active within ONLINE_WINDOW_MINUTES
    """

    email_verified = models.BooleanField(
        default=False,
        help_text="Email address has been verified"
    )
    show_online_status = models.BooleanField(
        default=True,
        help_text="Let other users see when this user is online"
    )
    last_seen = models.DateTimeField(
        null=True,
        blank=True,
        default=dj_timezone.now,
        help_text="Last activity timestamp for online status"
    )
    friends = models.ManyToManyField(
        'self',
        symmetrical=True,
        blank=True,
        help_text="Accepted friends (direct messaging requires friendship)"
    )

    @property
    def is_online(self):
        """
        A user is online when last_seen falls inside the online window.
        """
        if not self.last_seen:
            return False
        window = timedelta(minutes=settings.ONLINE_WINDOW_MINUTES)
        return dj_timezone.now() - self.last_seen < window

    def is_friends_with(self, other):
        return self.friends.filter(pk=other.pk).exists()


# ============================================================================
# SECTION 2: CHAT MODELS
# ============================================================================

class Chat(models.Model):
    """
    Conversation between two (direct) or more (group/community) users.

    Attributes:
        name (CharField): Optional conversation name
        is_community_chat (BooleanField): Chat bound to a community
        community_id (CharField): Identifier of the owning community
        created_at (DateTimeField): Creation timestamp

    Related Names:
        participants: QuerySet of ChatParticipant rows
        messages: QuerySet of Message objects
    """

    name = models.CharField(
        max_length=255,
        blank=True,
        help_text="Conversation name (optional)"
    )
    is_community_chat = models.BooleanField(
        default=False,
        help_text="True for the chat attached to a community"
    )
    community_id = models.CharField(
        max_length=64,
        blank=True,
        db_index=True,
        help_text="Community identifier for community chats"
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
        help_text="Creation timestamp"
    )

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        if self.is_group:
            return self.name or f"Group #{self.pk}"
        return f"DM #{self.pk}"

    @property
    def is_group(self):
        return self.participants.count() > 2

    def member_usernames(self):
        return list(
            self.participants.order_by('joined_at', 'id').values_list('user__username', flat=True)
        )

    def display_name(self):
        """Name used in notification titles and emails."""
        if self.is_group:
            return self.name or 'Group Chat'
        return 'Direct Message'


class ChatParticipant(models.Model):
    """
    Membership of a user in a chat plus their notification toggle.

    Attributes:
        chat (ForeignKey): Chat this membership belongs to
        user (ForeignKey): Member
        notify_enabled (BooleanField): New messages notify this member
        joined_at (DateTimeField): When the user joined
    """

    chat = models.ForeignKey(
        Chat,
        on_delete=models.CASCADE,
        related_name='participants',
        help_text="Chat this membership belongs to"
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='chat_memberships',
        help_text="User who is a member"
    )
    notify_enabled = models.BooleanField(
        default=True,
        help_text="Create notifications and emails for new messages"
    )
    joined_at = models.DateTimeField(
        auto_now_add=True,
        help_text="When user joined this chat"
    )

    class Meta:
        unique_together = ('chat', 'user')

    def __str__(self):
        return f"{self.user} in {self.chat}"


class Message(models.Model):
    """
    Chat message.

    read_by only grows. Deleted messages are kept with is_deleted=True and are
    left out of every rendered message list.

    Attributes:
        chat (ForeignKey): Chat this message belongs to (null for global)
        msg_from (ForeignKey): Sender
        msg (TextField): Body text
        msg_date_time (DateTimeField): Send timestamp
        type (CharField): global, direct, friendRequest or gameInvitation
        msg_to (ForeignKey): Direct recipient (friend requests, invitations)
        read_by (ManyToManyField): Users who have viewed the message
        last_edited_at / last_edited_by: Latest edit
        is_deleted / deleted_at / deleted_by: Soft-delete audit fields
    """

    chat = models.ForeignKey(
        Chat,
        on_delete=models.CASCADE,
        related_name='messages',
        null=True,
        blank=True,
        help_text="Chat this message belongs to"
    )
    msg_from = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='sent_messages',
        help_text="User who sent this message"
    )
    msg = models.TextField(
        help_text="Message body"
    )
    msg_date_time = models.DateTimeField(
        default=dj_timezone.now,
        db_index=True,
        help_text="Send timestamp"
    )
    type = models.CharField(
        max_length=20,
        choices=MESSAGE_TYPE_CHOICES,
        default='direct',
        help_text="Message type"
    )
    msg_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name='received_messages',
        null=True,
        blank=True,
        help_text="Explicit recipient (optional)"
    )
    read_by = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        related_name='read_messages',
        blank=True,
        help_text="Users who have viewed this message"
    )
    last_edited_at = models.DateTimeField(null=True, blank=True)
    last_edited_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name='+',
        null=True,
        blank=True,
    )
    is_deleted = models.BooleanField(default=False)
    deleted_at = models.DateTimeField(null=True, blank=True)
    deleted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name='+',
        null=True,
        blank=True,
    )

    class Meta:
        ordering = ['msg_date_time', 'id']

    def __str__(self):
        return f"[Chat {self.chat_id}] {self.msg_from}: {self.msg[:30]}"


class MessageEdit(models.Model):
    """One entry of a message's edit history (the body before the edit)."""

    message = models.ForeignKey(
        Message,
        on_delete=models.CASCADE,
        related_name='edit_history',
    )
    previous_body = models.TextField()
    edited_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='+',
    )
    edited_at = models.DateTimeField(default=dj_timezone.now)

    class Meta:
        ordering = ['edited_at', 'id']


# ============================================================================
# SECTION 3: NOTIFICATION MODEL
# ============================================================================

class Notification(models.Model):
    """
    Per-user notification.

    Immutable once created except for the is_read/read_at pair, which only
    ever moves from unset to set.

    Attributes:
        recipient (ForeignKey): User receiving the notification
        kind (CharField): answer, chat or system
        title (CharField): Headline
        preview (CharField): Collapsed body excerpt (max 140 chars)
        link (CharField): In-app path to open
        actor_username (CharField): Who triggered the event
        is_read (BooleanField): Read status
        created_at (DateTimeField): Creation timestamp (pagination key)
        read_at (DateTimeField): When it was first marked read
        meta (JSONField): References to the triggering chat/question

    Meta:
        ordering: Newest first (descending created_at)
    """

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notifications',
        help_text="User receiving this notification"
    )
    kind = models.CharField(
        max_length=10,
        choices=NOTIFICATION_KIND_CHOICES,
        help_text="Notification kind"
    )
    title = models.CharField(max_length=255, blank=True)
    preview = models.CharField(max_length=140, blank=True)
    link = models.CharField(max_length=255, blank=True)
    actor_username = models.CharField(
        max_length=150,
        blank=True,
        help_text="User who performed the action"
    )
    is_read = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Whether notification has been read"
    )
    created_at = models.DateTimeField(
        default=dj_timezone.now,
        help_text="Notification creation timestamp"
    )
    read_at = models.DateTimeField(null=True, blank=True)
    meta = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['recipient', '-created_at'], name='notif_recipient_created'),
        ]

    def __str__(self):
        return f"{self.kind} for {self.recipient_id}: {self.title}"
