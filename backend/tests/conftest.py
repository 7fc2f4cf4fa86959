import os
import sys
import pytest

# Ensure the backend root (containing the `judging` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from judging import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = ['http://localhost:5173']
    SOCKETIO_NAMESPACE = '/ws'
    CALL_TIMEOUT_SEC = 2.0
    DEVICE_RETENTION_SEC = 0


class FakeClock:
    """Millisecond clock the tests move by hand."""

    def __init__(self, start=1_700_000_000_000):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, ms=1):
        self.now += ms
        return self.now


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def flask_app(clock):
    application = create_app(TestConfig, clock=clock)
    with application.app_context():
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def services(flask_app):
    return flask_app.extensions['judging']


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    """Anonymous connection: no device registered yet."""
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    if test_client.is_connected('/ws'):
        test_client.disconnect(namespace='/ws')


@pytest.fixture()
def device_client(flask_app):
    """Connection that registers device d1 in its handshake."""
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws',
        auth={'deviceId': 'd1', 'deviceName': 'Judge Phone'},
    )
    yield test_client
    if test_client.is_connected('/ws'):
        test_client.disconnect(namespace='/ws')


def rpc_responses(test_client, namespace='/ws'):
    """Response envelopes received on the ``rpc`` event, oldest first."""
    received = test_client.get_received(namespace)
    return [
        pkt['args'][0] for pkt in received
        if pkt['name'] == 'rpc' and pkt['args'][0].get('kind') == 'response'
    ]


def rpc_requests(test_client, namespace='/ws'):
    received = test_client.get_received(namespace)
    return [
        pkt['args'][0] for pkt in received
        if pkt['name'] == 'rpc' and pkt['args'][0].get('kind') == 'request'
    ]
