import os

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from config import Config

BACKEND_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))

socketio = SocketIO(async_mode=None)


def _allowed_origins(raw):
    if not raw or raw.strip() == '*':
        return '*'
    return [origin.strip() for origin in raw.split(',') if origin.strip()]


def create_app(config_class=Config):
    static_folder = getattr(config_class, 'STATIC_FOLDER', 'public')
    if not os.path.isabs(static_folder):
        static_folder = os.path.join(BACKEND_ROOT, static_folder)
    # Serve the client bundle from the site root, like a plain static host
    flask_app = Flask(__name__, static_folder=static_folder, static_url_path='')
    flask_app.config.from_object(config_class)

    origins = _allowed_origins(flask_app.config.get('CORS_ALLOWED_ORIGINS'))
    CORS(flask_app, origins=origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=origins)

    from ballpark.game import build_game
    build_game(flask_app)

    from ballpark.main import main
    flask_app.register_blueprint(main)

    # Importing here ensures the handlers bind to the initialized socketio instance
    from ballpark.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    return flask_app
