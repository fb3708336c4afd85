from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from config import Config

socketio = SocketIO()


def create_engine(flask_app):
    """Build the room engine for ``flask_app`` on top of the shared SocketIO server."""
    from estimation.services.rooms import (
        ConnectionRegistry,
        PublicRoomDirectory,
        RevealScheduler,
        RoomStore,
        SocketIOBroadcaster,
        VoteRoundEngine,
    )

    config = flask_app.config
    broadcaster = SocketIOBroadcaster(socketio, namespace=config.get('SOCKETIO_NAMESPACE', '/'))
    store = RoomStore()
    return VoteRoundEngine(
        broadcaster,
        store=store,
        registry=ConnectionRegistry(),
        scheduler=RevealScheduler(
            step_ms=int(config.get('REVEAL_STEP_MS', 200)),
            jitter_ms=int(config.get('REVEAL_JITTER_MS', 100)),
        ),
        directory=PublicRoomDirectory(store, broadcaster),
        logger=flask_app.logger,
        code_length=int(config.get('ROOM_CODE_LENGTH', 6)),
    )


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    allowed_origins = flask_app.config.get('CORS_ALLOWED_ORIGINS') or '*'
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    socketio.init_app(
        flask_app,
        cors_allowed_origins=allowed_origins,
        async_mode=flask_app.config.get('SOCKETIO_ASYNC_MODE'),
        # one connection's events run in arrival order; connections stay concurrent
        async_handlers=False,
    )

    # All room state lives here; nothing survives a restart
    flask_app.extensions['estimation'] = create_engine(flask_app)

    from estimation.routes import main
    flask_app.register_blueprint(main)

    from estimation.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api/rooms')

    # Importing here ensures the handlers bind to the initialized socketio instance
    from estimation.socketio_events import register_socketio_handlers
    register_socketio_handlers(namespace=flask_app.config.get('SOCKETIO_NAMESPACE', '/'))

    flask_app.logger.info(
        f"[startup] namespace={flask_app.config.get('SOCKETIO_NAMESPACE', '/')} async_mode={socketio.server.async_mode}"
    )
    return flask_app
