from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.urls import reverse
from django.utils.html import format_html

from .models import Chat, ChatParticipant, Message, MessageEdit, Notification, User

# ==================== ADMIN CLASSES ====================


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ('username', 'email', 'email_verified', 'show_online_status', 'last_seen')
    list_filter = BaseUserAdmin.list_filter + ('email_verified', 'show_online_status')
    search_fields = ('username', 'email')
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Messaging', {'fields': ('email_verified', 'show_online_status', 'last_seen', 'friends')}),
    )
    filter_horizontal = BaseUserAdmin.filter_horizontal + ('friends',)
    actions = ['mark_email_verified']

    def mark_email_verified(self, request, queryset):
        updated = queryset.update(email_verified=True)
        self.message_user(request, f"{updated} users marked as verified")
    mark_email_verified.short_description = "Mark selected emails as verified"


class ChatParticipantInline(admin.TabularInline):
    model = ChatParticipant
    extra = 0
    fields = ('user', 'notify_enabled', 'joined_at')
    readonly_fields = ('joined_at',)


@admin.register(Chat)
class ChatAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'is_community_chat', 'community_id', 'created_at', 'member_count')
    list_filter = ('is_community_chat', 'created_at')
    search_fields = ('name', 'community_id', 'participants__user__username')
    inlines = [ChatParticipantInline]

    def member_count(self, obj):
        return obj.participants.count()
    member_count.short_description = 'Members'


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ('id', 'chat', 'sender_link', 'type', 'msg_date_time', 'is_deleted', 'content_short')
    list_filter = ('type', 'is_deleted', 'msg_date_time')
    search_fields = ('msg', 'msg_from__username')

    def sender_link(self, obj):
        url = reverse("admin:messaging_user_change", args=[obj.msg_from_id])
        return format_html('<a href="{}">{}</a>', url, obj.msg_from.username)
    sender_link.short_description = 'From'
    sender_link.admin_order_field = 'msg_from__username'

    def content_short(self, obj):
        return obj.msg[:50] + '...' if len(obj.msg) > 50 else obj.msg
    content_short.short_description = 'Content'


@admin.register(MessageEdit)
class MessageEditAdmin(admin.ModelAdmin):
    list_display = ('id', 'message', 'edited_by', 'edited_at')
    search_fields = ('previous_body', 'edited_by__username')


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('id', 'recipient', 'kind', 'actor_username', 'title', 'created_at', 'is_read')
    list_filter = ('kind', 'is_read', 'created_at')
    search_fields = ('recipient__username', 'actor_username', 'title')


# Basic admin site configuration
admin.site.site_header = "StackHub Admin"
admin.site.site_title = "StackHub Admin Portal"
admin.site.index_title = "Messaging"
