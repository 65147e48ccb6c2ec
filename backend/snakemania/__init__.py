from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5000",
    "http://127.0.0.1:5000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    # Fail fast on a board or pacing the game cannot start with
    from snakemania.services.snake.engine import Rules
    Rules.from_config(flask_app.config)

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Pages: landing and game view
    from snakemania.main import main
    flask_app.register_blueprint(main)

    from snakemania.api.snake import snake
    flask_app.register_blueprint(snake, url_prefix='/api/snake')

    # Register Socket.IO event handlers
    # Importing here ensures the handlers bind to the initialized socketio instance
    from snakemania.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @click.command('scores-reset')
    @click.option('--client-id', default=None, help='Only clear scores for this client.')
    def scores_reset_command(client_id):
        """Deletes stored high scores."""
        from snakemania.services.snake.store import reset_scores
        removed = reset_scores(client_id)
        print(f'Removed {removed} stored score(s).')

    flask_app.cli.add_command(scores_reset_command)

    return flask_app
