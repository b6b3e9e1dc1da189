import os
import random
import sys
import pytest

# Ensure the backend root (containing the `ballpark` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from ballpark import create_app, socketio
from ballpark.services.games import CpuDriver, GameStateMachine


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    STATIC_FOLDER = 'public'
    CORS_ALLOWED_ORIGINS = '*'
    CPU_TICK_INTERVAL_MS = 0
    CPU_REACTION_DELAY_MS = 0
    RESPONSE_TIMEOUT_SEC = 0
    EXTRA_PLAYER_POLICY = 'spectate'


class RecordingBroadcaster:
    """Stands in for Socket.IO; keeps (target, event, payload) tuples."""

    def __init__(self):
        self.events = []

    def broadcast(self, event, payload):
        self.events.append(('*', event, payload))

    def send(self, sid, event, payload):
        self.events.append((sid, event, payload))

    def names(self):
        return [name for _, name, _ in self.events]

    def last(self, event):
        for target, name, payload in reversed(self.events):
            if name == event:
                return target, payload
        return None

    def clear(self):
        self.events.clear()


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def game(flask_app):
    return flask_app.extensions['ballpark']


@pytest.fixture()
def sio_factory(flask_app):
    clients = []

    def _connect():
        test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
        clients.append(test_client)
        return test_client

    yield _connect
    for test_client in clients:
        try:
            if test_client.is_connected():
                test_client.disconnect()
        except RuntimeError:
            pass


@pytest.fixture()
def outbox():
    return RecordingBroadcaster()


@pytest.fixture()
def machine(outbox):
    return GameStateMachine(outbox, rng=random.Random(7))


@pytest.fixture()
def driver(machine):
    cpu = CpuDriver(machine, sleep=lambda seconds: None, autostart=False, rng=random.Random(11))
    machine.attach_driver(cpu)
    return cpu
