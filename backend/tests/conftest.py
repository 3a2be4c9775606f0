import json
import os
import sys
import pytest

# Ensure the backend root (containing the `voxelrooms` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from voxelrooms import create_app
from voxelrooms.store import RoomStore


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ORIGINS = ['http://localhost:3000']
    SOCKETIO_ASYNC_MODE = 'threading'
    # Keep a forgotten read from hanging the suite
    STREAM_KEEPALIVE_SEC = 0.2
    STREAM_RETRY_MS = 3000
    STREAM_QUEUE_SIZE = 64
    ROOM_IDLE_EXPIRY_SEC = 600
    ROOM_SWEEP_INTERVAL_SEC = 60
    LOG_LEVEL = 'DEBUG'


@pytest.fixture()
def store():
    return RoomStore()


@pytest.fixture()
def flask_app(store):
    yield create_app(TestConfig, store=store)


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


def parse_frame(chunk):
    """Decode one event-stream frame into its JSON payload (None for comments)."""
    if isinstance(chunk, bytes):
        chunk = chunk.decode('utf-8')
    for line in chunk.splitlines():
        if line.startswith('data: '):
            return json.loads(line[len('data: '):])
    return None


class StreamReader:
    """Reads events from a streaming test response, skipping keepalives."""

    def __init__(self, response):
        self.response = response
        self._chunks = iter(response.response)

    def next_event(self, max_keepalives=5):
        for _ in range(max_keepalives + 1):
            event = parse_frame(next(self._chunks))
            if event is not None:
                return event
        raise AssertionError('no event arrived on the stream')

    def close(self):
        self.response.close()


@pytest.fixture()
def open_stream(client):
    opened = []

    def _open(room_id, name=None):
        url = f'/rooms/{room_id}' + (f'?name={name}' if name else '')
        reader = StreamReader(client.get(url, buffered=False))
        opened.append(reader)
        return reader

    yield _open
    for reader in reversed(opened):
        reader.close()
