from flask import Blueprint, render_template, current_app
from snakemania.services.snake.cues import cue_payload
from snakemania.services.snake.engine import EVENT_EAT, EVENT_GAME_OVER, KEY_BINDINGS

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return render_template('index.html')

@main.route('/snake')
def snake_view():
    cfg = current_app.config
    return render_template(
        'snake.html',
        board_size=int(cfg.get('SNAKE_BOARD_SIZE', 18)),
        keys=list(KEY_BINDINGS),
        sounds={
            EVENT_EAT: cue_payload(current_app, EVENT_EAT),
            EVENT_GAME_OVER: cue_payload(current_app, EVENT_GAME_OVER),
        },
    )
