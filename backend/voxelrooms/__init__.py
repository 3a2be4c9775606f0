import logging

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from config import Config

from voxelrooms.store import RoomStore
from voxelrooms.services.mutations import MutationHandler
from voxelrooms.services.subscriptions import SubscriptionManager
from voxelrooms.services.sweeper import schedule_room_sweeper

socketio = SocketIO()


def create_app(config_class=Config, store=None):
    """Build the Flask app.

    ``store`` lets callers inject their own RoomStore (tests, or a different
    backing store); by default each app gets a fresh one.
    """
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(getattr(logging, str(flask_app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO))

    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []
    CORS(flask_app, origins=allowed_origins)

    socketio.init_app(
        flask_app,
        cors_allowed_origins=allowed_origins,
        async_mode=flask_app.config.get('SOCKETIO_ASYNC_MODE', 'threading'),
    )

    room_store = store if store is not None else RoomStore()
    subscriptions = SubscriptionManager()
    flask_app.extensions['room_store'] = room_store
    flask_app.extensions['subscriptions'] = subscriptions
    flask_app.extensions['mutations'] = MutationHandler(room_store, subscriptions)

    from voxelrooms.main import main
    flask_app.register_blueprint(main)

    from voxelrooms.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/rooms')

    schedule_room_sweeper(flask_app, socketio, room_store)

    return flask_app
