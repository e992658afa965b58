import os
import random
import sys
from collections import defaultdict
from dataclasses import dataclass

import pytest

# Ensure the backend root (containing the `catchmind` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from catchmind.config import Config
from catchmind.game.models import Question
from catchmind.game.session import SessionCoordinator, SessionSettings
from catchmind.server import create_app


QUESTIONS = [
    Question(text='long neck animal', answer='giraffe'),
    Question(text='bird that cannot fly', answer='penguin'),
    Question(text='striped summer fruit', answer='watermelon'),
    Question(text='keeps you dry', answer='umbrella'),
]


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret'
    SOCKETIO_ASYNC_MODE = 'threading'
    TRUST_PROXY_HEADERS = False
    START_DELAY_SEC = 0.05
    DISCONNECT_GRACE_SEC = -1


@dataclass
class Sent:
    event: str
    payload: object
    to: object
    skip: object
    recipients: frozenset


class RecordingBroadcaster:
    """Stands in for Socket.IO fan-out; resolves groups at emit time."""

    def __init__(self):
        self.sent = []
        self.groups = defaultdict(set)

    def emit(self, event, payload=None, to=None, skip=None):
        if to in self.groups:
            recipients = set(self.groups[to])
        else:
            recipients = {to}
        recipients.discard(skip)
        self.sent.append(Sent(event, payload, to, skip, frozenset(recipients)))

    def join(self, identity, group):
        self.groups[group].add(identity)

    def leave(self, identity, group):
        self.groups[group].discard(identity)

    def received(self, identity, event=None):
        return [s.payload for s in self.sent if identity in s.recipients and (event is None or s.event == event)]

    def events(self, event):
        return [s for s in self.sent if s.event == event]

    def clear(self):
        self.sent.clear()


class ManualScheduler:
    def __init__(self):
        self.pending = []

    def call_later(self, delay_sec, fn):
        self.pending.append((delay_sec, fn))

    def run_pending(self):
        pending, self.pending = self.pending, []
        for _, fn in pending:
            fn()
        return len(pending)


@pytest.fixture()
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def settings():
    return SessionSettings(start_delay_sec=3, disconnect_grace_sec=10)


@pytest.fixture()
def coordinator(broadcaster, scheduler, settings):
    return SessionCoordinator(
        list(QUESTIONS),
        broadcaster=broadcaster,
        scheduler=scheduler,
        settings=settings,
        rng=random.Random(7),
        clock=lambda: 1_000_000,
    )


@pytest.fixture()
def app_and_socketio():
    return create_app(TestConfig, questions=list(QUESTIONS))


@pytest.fixture()
def flask_app(app_and_socketio):
    return app_and_socketio[0]


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_factory(app_and_socketio):
    flask_app, socketio = app_and_socketio
    clients = []

    def _make():
        test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
        clients.append(test_client)
        return test_client

    yield _make
    for c in clients:
        try:
            if c.is_connected():
                c.disconnect()
        except RuntimeError:
            pass
