"""
Test fixtures for the site backend.

The application is built in testing mode against a temporary data directory.
Outbound mail is captured by a recording mailer, the completion API is replaced
by a scripted client, and Celery runs eagerly so scheduled notifications are
delivered immediately.
"""

from typing import Any, Dict, List

import pytest
from flask import Flask
from flask.testing import FlaskClient

from app import create_app
from core.errors import MailDeliveryError
from core.mailer import Mailer


class RecordingMailer(Mailer):
    """Mailer that keeps built messages instead of talking to SMTP"""

    def __init__(self):
        super().__init__(host='localhost', port=25, username='site@example.com',
                         from_name='The Digital Indian Team')
        self.sent: List[Any] = []
        self.fail = False

    def send(self, msg) -> None:
        if self.fail:
            raise MailDeliveryError('SMTP relay unavailable')
        self.sent.append(msg)

    def verify(self) -> bool:
        return True


class ScriptedCompletionClient:
    """Completion client returning a fixed reply or raising a fixed error"""

    def __init__(self, reply: str = 'Generated answer', error: Exception = None, available: bool = True):
        self.reply = reply
        self.error = error
        self._available = available
        self.calls: List[Dict[str, str]] = []

    @property
    def available(self) -> bool:
        return self._available

    def complete(self, system_prompt: str, message: str) -> str:
        self.calls.append({'system_prompt': system_prompt, 'message': message})
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def app(tmp_path) -> Flask:
    """
    Create test application instance.

    Returns:
        Flask application in testing mode whose JSON stores and uploads live
        under a per-test temporary directory.
    """
    app = create_app('testing', {'DATA_DIR': str(tmp_path)})
    mailer = RecordingMailer()
    app.mailer = mailer
    app.contact_service.mailer = mailer
    yield app


@pytest.fixture
def client(app) -> FlaskClient:
    return app.test_client()


@pytest.fixture
def mailer(app) -> RecordingMailer:
    return app.mailer


@pytest.fixture
def completion_client(app) -> ScriptedCompletionClient:
    """Install a scripted completion client on the chatbot"""
    scripted = ScriptedCompletionClient()
    app.chatbot.completion_client = scripted
    return scripted


@pytest.fixture
def auth_headers(client) -> Dict[str, str]:
    """
    Log in with the configured admin credentials.

    Returns:
        Authorization header carrying the issued bearer credential
    """
    response = client.post('/api/admin/login', json={
        'username': 'admin',
        'password': 'correct-horse'
    })
    assert response.status_code == 200
    return {'Authorization': f"Bearer {response.get_json()['token']}"}


@pytest.fixture
def subscribers(app) -> List[str]:
    emails = ['first@example.com', 'second@example.com', 'third@example.com']
    for email in emails:
        app.subscriber_store.subscribe(email)
    return emails
