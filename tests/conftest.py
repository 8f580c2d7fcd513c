import pytest

from app import create_app
from config import Config
from storage import QueueStore


@pytest.fixture
def config():
    return Config(ASYNC_MODE='threading', PUBLIC_BASE_URL='http://queue.test/', STAFF_ROSTER=['Mike Wilson', 'Jennifer Lee'])


@pytest.fixture
def store(config):
    return QueueStore(config.STAFF_ROSTER)


@pytest.fixture
def app(config, store):
    app = create_app(config, store)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def socket_client(app):
    socketio = app.extensions['socketio']
    client = socketio.test_client(app)
    client.get_received()  # état initial envoyé à la connexion
    yield client
    if client.is_connected():
        client.disconnect()


@pytest.fixture
def add_group(store):
    def _add(*members, **fields):
        data = {"members": list(members) or ["Alice"]}
        data.update(fields)
        return store.create_group(data)
    return _add
