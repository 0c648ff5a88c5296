"""
Route testing module for the site backend.

Covers the contact form flow, the chatbot endpoint, admin login and the
protected blog endpoints, newsletter subscription and deferred notifications.
"""

import io
import json
import os
from datetime import date, datetime, timedelta, timezone
from unittest.mock import patch

import jwt
from kombu.exceptions import OperationalError

from services.chatbot import MISSING_KEY_REPLY

HOURS = "Our business hours are Monday - Sunday, from 9:00 AM to 8:00 PM."


def _token(client) -> str:
    response = client.get('/api/token')
    assert response.status_code == 200
    return response.get_json()['token']


def _contact_form(token, **extra):
    form = {
        'name': 'Asha',
        'email': 'asha@example.com',
        'company': 'Acme',
        'phone': '+91 99999 00000',
        'message': 'Please call me back.',
        'token': token,
    }
    form.update(extra)
    return form


class TestContactRoutes:

    def test_token_is_accepted_exactly_once(self, client, mailer) -> None:
        token = _token(client)

        first = client.post('/api/send-email', data=_contact_form(token))
        assert first.status_code == 200
        assert first.get_json() == {'success': True, 'message': 'Email sent successfully!'}

        second = client.post('/api/send-email', data=_contact_form(token))
        assert second.status_code == 400
        assert second.get_json()['message'] == 'Invalid session token.'
        assert len(mailer.sent) == 1

    def test_contact_email_content(self, client, mailer) -> None:
        client.post('/api/send-email', data=_contact_form(_token(client)))
        msg = mailer.sent[0]
        assert msg['To'] == 'operator@example.com'
        assert msg['Reply-To'] == 'asha@example.com'
        assert msg['Subject'] == 'New Contact Form Submission from Asha'
        html = msg.get_payload()[-1].get_payload(decode=True).decode('utf-8')
        assert 'Please call me back.' in html
        assert 'Acme' in html

    def test_header_fields_are_folded_to_one_line(self, client, mailer) -> None:
        form = _contact_form(_token(client), name='Asha\nBcc: x@evil.example',
                             email='asha@example.com\r\nCc: y@evil.example')
        response = client.post('/api/send-email', data=form)
        assert response.status_code == 200

        msg = mailer.sent[0]
        assert msg['Subject'] == 'New Contact Form Submission from Asha Bcc: x@evil.example'
        assert msg['Reply-To'] == 'asha@example.com Cc: y@evil.example'
        assert msg['Bcc'] is None
        assert msg['Cc'] is None

    def test_unknown_or_missing_token_sends_nothing(self, client, mailer) -> None:
        assert client.post('/api/send-email', data=_contact_form('made-up')).status_code == 400
        form = _contact_form(None)
        del form['token']
        assert client.post('/api/send-email', data=form).status_code == 400
        assert mailer.sent == []

    def test_missing_fields_do_not_spend_token(self, client, mailer) -> None:
        token = _token(client)
        response = client.post('/api/send-email', data=_contact_form(token, message=''))
        assert response.status_code == 400
        assert 'message' in response.get_json()['message']

        assert client.post('/api/send-email', data=_contact_form(token)).status_code == 200
        assert len(mailer.sent) == 1

    def test_attachment_is_mailed_and_temp_file_removed(self, app, client, mailer) -> None:
        form = _contact_form(_token(client))
        form['document'] = (io.BytesIO(b'requirements'), 'brief.txt')

        response = client.post('/api/send-email', data=form, content_type='multipart/form-data')
        assert response.status_code == 200

        attachment = mailer.sent[0].get_payload()[1]
        assert attachment.get_filename() == 'brief.txt'
        assert attachment.get_payload(decode=True) == b'requirements'
        assert os.listdir(app.config['UPLOAD_FOLDER']) == []

    def test_invalid_token_removes_uploaded_file(self, app, client, mailer) -> None:
        form = _contact_form('made-up')
        form['document'] = (io.BytesIO(b'data'), 'brief.txt')

        response = client.post('/api/send-email', data=form, content_type='multipart/form-data')
        assert response.status_code == 400
        assert os.listdir(app.config['UPLOAD_FOLDER']) == []
        assert mailer.sent == []

    def test_mail_failure_is_generic_and_cleans_up(self, app, client, mailer) -> None:
        mailer.fail = True
        token = _token(client)
        form = _contact_form(token)
        form['document'] = (io.BytesIO(b'data'), 'brief.txt')

        response = client.post('/api/send-email', data=form, content_type='multipart/form-data')
        assert response.status_code == 500
        assert response.get_json() == {'success': False, 'message': 'Error sending email.'}
        assert os.listdir(app.config['UPLOAD_FOLDER']) == []

        # The token was spent by the failed attempt
        mailer.fail = False
        assert client.post('/api/send-email', data=_contact_form(token)).status_code == 400


class TestChatRoutes:

    def test_faq_answer(self, client) -> None:
        response = client.post('/api/chat', json={'message': '  what ARE your business hours?  '})
        assert response.status_code == 200
        assert response.get_json() == {'reply': HOURS}

    def test_today_reply_contains_current_date(self, client) -> None:
        today = date.today()
        response = client.post('/api/chat', json={'message': 'What day is it today?'})
        assert response.status_code == 200
        reply = response.get_json()['reply']
        assert f"{today:%B} {today.day}, {today.year}" in reply

    def test_no_api_key_returns_apology(self, client) -> None:
        response = client.post('/api/chat', json={'message': 'Can you build a tower in Pune?'})
        assert response.status_code == 500
        assert response.get_json() == {'reply': MISSING_KEY_REPLY}

    def test_fallback_uses_completion_client(self, client, completion_client) -> None:
        completion_client.reply = 'Yes, we can.'
        response = client.post('/api/chat', json={'message': 'Can you build a tower in Pune?'})
        assert response.status_code == 200
        assert response.get_json() == {'reply': 'Yes, we can.'}

    def test_missing_message(self, client) -> None:
        assert client.post('/api/chat', json={}).status_code == 400
        assert client.post('/api/chat', data='not json').status_code == 400


class TestAdminRoutes:

    def test_login_success(self, client) -> None:
        response = client.post('/api/admin/login', json={'username': 'admin', 'password': 'correct-horse'})
        body = response.get_json()
        assert response.status_code == 200
        assert body['success'] is True
        assert body['message'] == 'Login successful'
        assert body['token']

    def test_login_failure_issues_nothing(self, client) -> None:
        response = client.post('/api/admin/login', json={'username': 'admin', 'password': 'nope'})
        assert response.status_code == 401
        assert response.get_json() == {'success': False, 'message': 'Invalid username or password'}

    def test_protected_routes_require_credential(self, client) -> None:
        assert client.get('/api/admin/blogs').status_code == 401
        assert client.post('/api/blogs', json={'title': 'x'}).status_code == 401
        assert client.put('/api/blogs/abc', json={'title': 'x'}).status_code == 401
        assert client.delete('/api/blogs/abc').status_code == 401
        headers = {'Authorization': 'Bearer garbage'}
        assert client.get('/api/admin/blogs', headers=headers).status_code == 401

    def test_foreign_identity_is_forbidden(self, client) -> None:
        token = jwt.encode(
            {'username': 'intruder', 'exp': datetime.now(timezone.utc) + timedelta(hours=1)},
            'test-jwt-secret', algorithm='HS256',
        )
        response = client.get('/api/admin/blogs', headers={'Authorization': f'Bearer {token}'})
        assert response.status_code == 403


class TestBlogRoutes:

    def test_published_view_excludes_drafts(self, client, auth_headers) -> None:
        client.post('/api/blogs', json={'title': 'Live', 'status': 'published'}, headers=auth_headers)
        client.post('/api/blogs', json={'title': 'Hidden'}, headers=auth_headers)

        public = client.get('/api/blogs').get_json()
        assert [p['title'] for p in public] == ['Live']

        admin = client.get('/api/admin/blogs', headers=auth_headers).get_json()
        assert sorted(p['title'] for p in admin) == ['Hidden', 'Live']

    def test_create_response(self, client, auth_headers) -> None:
        response = client.post('/api/blogs', json={'title': 'New'}, headers=auth_headers)
        assert response.status_code == 201
        body = response.get_json()
        assert body['success'] is True
        assert body['message'] == 'Blog post created'

        post = client.get(f"/api/admin/blogs/{body['id']}", headers=auth_headers).get_json()
        assert post['status'] == 'draft'
        assert post['date'] == date.today().isoformat()
        assert client.get(f"/api/blogs/{body['id']}").status_code == 404

    def test_create_rejects_non_object(self, client, auth_headers) -> None:
        response = client.post('/api/blogs', json=['title'], headers=auth_headers)
        assert response.status_code == 400

    def test_update_and_delete(self, client, auth_headers) -> None:
        post_id = client.post('/api/blogs', json={'title': 'Old'}, headers=auth_headers).get_json()['id']

        response = client.put(f'/api/blogs/{post_id}', json={'title': 'Renamed'}, headers=auth_headers)
        assert response.get_json() == {'success': True, 'message': 'Blog post updated'}

        response = client.delete(f'/api/blogs/{post_id}', headers=auth_headers)
        assert response.get_json() == {'success': True, 'message': 'Blog post deleted'}
        assert client.delete(f'/api/blogs/{post_id}', headers=auth_headers).status_code == 404

    def test_update_unknown_id_leaves_store_unchanged(self, app, client, auth_headers) -> None:
        client.post('/api/blogs', json={'title': 'Keep'}, headers=auth_headers)
        path = os.path.join(app.config['DATA_DIR'], 'blogs.json')
        with open(path, 'rb') as handle:
            before = handle.read()

        response = client.put('/api/blogs/unknown', json={'title': 'X'}, headers=auth_headers)
        assert response.status_code == 404
        assert response.get_json() == {'success': False, 'message': 'Blog post not found'}

        with open(path, 'rb') as handle:
            assert handle.read() == before


class TestNotifications:

    def test_publishing_notifies_every_subscriber_once(self, client, auth_headers, mailer, subscribers) -> None:
        response = client.post('/api/blogs', json={
            'title': 'Fiber in every village',
            'excerpt': 'Our rollout plan.',
            'status': 'published'
        }, headers=auth_headers)
        post_id = response.get_json()['id']

        assert len(mailer.sent) == 1
        msg = mailer.sent[0]
        assert msg['To'] == ', '.join(subscribers)
        assert 'Fiber in every village' in msg['Subject']
        html = msg.get_payload()[-1].get_payload(decode=True).decode('utf-8')
        assert f'https://digitalindian.example/blog/{post_id}' in html

    def test_draft_notifies_only_when_published(self, client, auth_headers, mailer, subscribers) -> None:
        post_id = client.post('/api/blogs', json={'title': 'Later'}, headers=auth_headers).get_json()['id']
        assert mailer.sent == []

        client.put(f'/api/blogs/{post_id}', json={'excerpt': 'still a draft'}, headers=auth_headers)
        assert mailer.sent == []

        client.put(f'/api/blogs/{post_id}', json={'status': 'published'}, headers=auth_headers)
        assert len(mailer.sent) == 1
        assert 'Later' in mailer.sent[0]['Subject']

        # Editing an already-published post does not announce it again
        client.put(f'/api/blogs/{post_id}', json={'title': 'Later, edited'}, headers=auth_headers)
        assert len(mailer.sent) == 1

    def test_publish_schedules_after_configured_delay(self, app, client, auth_headers) -> None:
        app.config['NOTIFICATION_DELAY_SECONDS'] = 300
        with patch('tasks.notifications.notify_subscribers.apply_async') as apply_async:
            created = client.post('/api/blogs', json={'title': 'Now', 'status': 'published'},
                                  headers=auth_headers).get_json()
            assert apply_async.call_count == 1
            assert apply_async.call_args.kwargs['countdown'] == 300
            assert apply_async.call_args.kwargs['args'][0]['id'] == created['id']

            client.put(f"/api/blogs/{created['id']}", json={'title': 'Now, edited'}, headers=auth_headers)
            assert apply_async.call_count == 1

            draft_id = client.post('/api/blogs', json={'title': 'Later'}, headers=auth_headers).get_json()['id']
            assert apply_async.call_count == 1

            client.put(f'/api/blogs/{draft_id}', json={'status': 'published'}, headers=auth_headers)
            assert apply_async.call_count == 2
            assert apply_async.call_args.kwargs['countdown'] == 300
            assert apply_async.call_args.kwargs['args'][0]['id'] == draft_id

    def test_no_subscribers_sends_nothing(self, client, auth_headers, mailer) -> None:
        client.post('/api/blogs', json={'title': 'Quiet', 'status': 'published'}, headers=auth_headers)
        assert mailer.sent == []

    def test_broker_failure_does_not_fail_publish(self, client, auth_headers, mailer, subscribers) -> None:
        with patch('tasks.notifications.notify_subscribers.apply_async',
                   side_effect=OperationalError('broker down')):
            response = client.post('/api/blogs', json={'title': 'T', 'status': 'published'},
                                   headers=auth_headers)
        assert response.status_code == 201
        assert mailer.sent == []

    def test_notification_mail_failure_is_swallowed(self, client, auth_headers, mailer, subscribers) -> None:
        mailer.fail = True
        response = client.post('/api/blogs', json={'title': 'T', 'status': 'published'}, headers=auth_headers)
        assert response.status_code == 201


class TestSubscribeRoutes:

    def test_subscribe_then_conflict(self, app, client) -> None:
        first = client.post('/api/subscribe', json={'email': 'reader@example.com'})
        assert first.status_code == 200
        assert first.get_json() == {'success': True, 'message': 'Subscription successful!'}

        second = client.post('/api/subscribe', json={'email': 'reader@example.com'})
        assert second.status_code == 409
        assert second.get_json()['message'] == 'This email is already subscribed.'

        path = os.path.join(app.config['DATA_DIR'], 'subscribers.json')
        with open(path, encoding='utf-8') as handle:
            assert json.load(handle) == ['reader@example.com']

    def test_email_required(self, client) -> None:
        response = client.post('/api/subscribe', json={})
        assert response.status_code == 400
        assert response.get_json() == {'success': False, 'message': 'Email is required.'}


class TestApplication:

    def test_health(self, client) -> None:
        response = client.get('/health')
        assert response.status_code == 200
        assert response.get_json()['components'] == {'blogs': 'healthy', 'subscribers': 'healthy'}

    def test_security_headers(self, client) -> None:
        response = client.get('/api/blogs')
        assert response.headers['X-Content-Type-Options'] == 'nosniff'
        assert response.headers['X-Frame-Options'] == 'DENY'

    def test_unknown_route_is_json(self, client) -> None:
        response = client.get('/api/nothing-here')
        assert response.status_code == 404
        assert response.get_json()['success'] is False

    def test_corrupt_store_is_reported(self, app, client) -> None:
        with open(os.path.join(app.config['DATA_DIR'], 'blogs.json'), 'w', encoding='utf-8') as handle:
            handle.write('{broken')
        assert client.get('/api/blogs').status_code == 500
        assert client.get('/health').status_code == 503
