import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Comma separated list of frontend origins allowed to call the API
    CORS_ORIGINS = [o.strip() for o in os.environ.get(
        'CORS_ORIGINS', 'http://localhost:3000,http://127.0.0.1:3000'
    ).split(',') if o.strip()]
    # Streams block on per-connection queues, so run handlers on threads
    SOCKETIO_ASYNC_MODE = os.environ.get('SOCKETIO_ASYNC_MODE', 'threading')
    # Event stream tuning
    STREAM_KEEPALIVE_SEC = float(os.environ.get('STREAM_KEEPALIVE_SEC', '15'))
    STREAM_RETRY_MS = int(os.environ.get('STREAM_RETRY_MS', '3000'))
    STREAM_QUEUE_SIZE = int(os.environ.get('STREAM_QUEUE_SIZE', '256'))
    # Idle room expiry (seconds). 0 disables.
    ROOM_IDLE_EXPIRY_SEC = int(os.environ.get('ROOM_IDLE_EXPIRY_SEC', '600'))
    ROOM_SWEEP_INTERVAL_SEC = int(os.environ.get('ROOM_SWEEP_INTERVAL_SEC', '60'))
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    # Bind address, consumed by run.py
    HOST = os.environ.get('HOST', '127.0.0.1')
    PORT = int(os.environ.get('PORT', '5000'))
