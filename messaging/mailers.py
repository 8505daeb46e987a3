"""
Outbound email for chat and answer notifications.

One email per batch: every eligible address goes in BCC so recipients do
not see each other.
"""

import logging

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string
from django.utils.html import strip_tags

logger = logging.getLogger(__name__)


def chat_path(chat_id):
    """Site-relative link to a chat, shared by notifications and emails."""
    return f"/chat/{chat_id}"


def question_path(question_id):
    return f"/question/{question_id}"


class ChatMailer:

    def __init__(self, site_url=None, from_email=None):
        self.site_url = (site_url or settings.SITE_URL).rstrip('/')
        self.from_email = from_email or settings.DEFAULT_FROM_EMAIL

    def _send(self, recipients, subject, template, context):
        html_content = render_to_string(template, {**context, 'site_url': self.site_url})
        text_content = strip_tags(html_content)
        msg = EmailMultiAlternatives(
            subject, text_content, self.from_email, to=[], bcc=list(recipients)
        )
        msg.attach_alternative(html_content, "text/html")
        sent = msg.send()
        logger.info("Sent '%s' to %d recipients", subject, len(recipients))
        return sent

    def send_chat_notification(self, recipients, from_name, chat_id, message_preview,
                               group_name, is_mention=False):
        if is_mention:
            subject = f"{from_name} mentioned you in {group_name or 'chat'}"
        else:
            subject = f"{from_name} sent a message" + (f" in {group_name}" if group_name else "")
        return self._send(recipients, subject, "messaging/emails/chat_notification.html", {
            'subject': subject,
            'from_name': from_name,
            'message_preview': message_preview,
            'group_name': group_name,
            'link': f"{self.site_url}{chat_path(chat_id)}",
        })

    def send_answer_notification(self, recipients, author_name, question_title,
                                 answer_preview, question_id):
        subject = "New answer" + (f": {question_title}" if question_title else "")
        return self._send(recipients, subject, "messaging/emails/answer_notification.html", {
            'subject': subject,
            'author_name': author_name,
            'question_title': question_title,
            'answer_preview': answer_preview,
            'link': f"{self.site_url}{question_path(question_id)}",
        })
