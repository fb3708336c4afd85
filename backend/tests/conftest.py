import os
import random
import sys
import pytest

# Ensure the backend root (containing the `estimation` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from estimation import create_app, socketio
from estimation.models import Participant
from estimation.services.rooms import Broadcaster, RevealScheduler, VoteRoundEngine


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ALLOWED_ORIGINS = ['http://localhost:5173']
    SOCKETIO_NAMESPACE = '/'
    SOCKETIO_ASYNC_MODE = 'threading'
    REVEAL_STEP_MS = 200
    REVEAL_JITTER_MS = 100
    ROOM_CODE_LENGTH = 6
    LOG_LEVEL = 'DEBUG'


class RecordingBroadcaster(Broadcaster):
    """Keeps every emission in memory instead of sending it."""

    def __init__(self):
        self.sent = []
        self.groups = {}

    def enter(self, sid, room_id):
        self.groups.setdefault(room_id, set()).add(sid)

    def leave(self, sid, room_id):
        self.groups.get(room_id, set()).discard(sid)

    def to_room(self, room_id, event, payload=None):
        self.sent.append((('room', room_id), event, payload))

    def to_all(self, event, payload=None):
        self.sent.append((('all', None), event, payload))

    def to_connection(self, sid, event, payload=None):
        self.sent.append((('sid', sid), event, payload))

    def events(self, name, target=None):
        return [payload for (tgt, event, payload) in self.sent
                if event == name and (target is None or tgt == target)]

    def clear(self):
        self.sent = []


@pytest.fixture()
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture()
def engine(broadcaster):
    return VoteRoundEngine(broadcaster, scheduler=RevealScheduler(rng=random.Random(7)))


@pytest.fixture()
def voter():
    def _make(sid, name=None):
        return Participant(sid, name or sid.upper())
    return _make


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


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
        except Exception:
            pass


@pytest.fixture()
def sio_client(sio_factory):
    return sio_factory()
