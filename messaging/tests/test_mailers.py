from messaging.mailers import ChatMailer


def test_chat_email_is_one_bcc_message(mailoutbox):
    mailer = ChatMailer(site_url='https://qa.example.org/')

    mailer.send_chat_notification(
        ['a@example.com', 'b@example.com'], from_name='alice', chat_id=3,
        message_preview='see you <there>', group_name='Study group',
    )

    assert len(mailoutbox) == 1
    email = mailoutbox[0]
    assert email.to == []
    assert email.bcc == ['a@example.com', 'b@example.com']
    assert email.from_email == 'no-reply@stackhub.test'
    assert email.subject == 'alice sent a message in Study group'
    assert 'https://qa.example.org/chat/3' in email.body
    html, mimetype = email.alternatives[0]
    assert mimetype == 'text/html'
    assert 'see you &lt;there&gt;' in html


def test_mention_subject(mailoutbox):
    ChatMailer().send_chat_notification(
        ['a@example.com'], from_name='bob', chat_id=1, message_preview='@alice look',
        group_name='Team', is_mention=True,
    )
    assert mailoutbox[0].subject == 'bob mentioned you in Team'


def test_answer_email_links_to_question(mailoutbox):
    ChatMailer().send_answer_notification(
        ['a@example.com'], author_name='carol', question_title='', answer_preview='Try this',
        question_id='q9',
    )
    email = mailoutbox[0]
    assert email.subject == 'New answer'
    assert 'https://stackhub.test/question/q9' in email.body
