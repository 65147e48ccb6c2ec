from dataclasses import replace

from sqlalchemy.exc import SQLAlchemyError

from snakemania import db
from snakemania.models import ScoreEntry
from snakemania.services.snake.session import GameSession
from snakemania.services.snake.store import ScoreStore, reset_scores


def _broken(self):
    raise SQLAlchemyError('database unavailable')


def test_missing_score_reads_as_zero(flask_app):
    assert ScoreStore('fresh').get() == 0


def test_score_round_trips_as_text(flask_app):
    store = ScoreStore('client-a')
    assert store.set(120) is True
    assert store.get() == 120
    entry = ScoreEntry.query.filter_by(client_id='client-a').one()
    assert entry.key == 'highScore'
    assert entry.value == '120'

    store.set(150)
    assert ScoreEntry.query.filter_by(client_id='client-a').count() == 1
    assert store.get() == 150


def test_scores_are_scoped_per_client(flask_app):
    ScoreStore('a').set(10)
    ScoreStore('b').set(90)
    assert ScoreStore('a').get() == 10
    assert ScoreStore('b').get() == 90


def test_garbage_value_reads_as_zero(flask_app):
    db.session.add(ScoreEntry(client_id='weird', key='highScore', value='lots'))
    db.session.commit()
    assert ScoreStore('weird').get() == 0


def test_unavailable_store_degrades(flask_app, monkeypatch):
    monkeypatch.setattr(ScoreStore, '_entry', _broken)
    store = ScoreStore('offline')
    assert store.get() == 0
    assert store.set(50) is False


def test_session_survives_unavailable_store(flask_app, monkeypatch):
    monkeypatch.setattr(ScoreStore, '_entry', _broken)
    session = GameSession(flask_app, client_id='offline')
    assert session.state.high_score == 0
    session.state = replace(session.state, snake=((17, 7),), score=30)
    session.tick()
    assert session.state.game_over
    # Kept in memory for this session even though it could not be saved
    assert session.state.high_score == 30


def test_reset_scores(flask_app):
    ScoreStore('a').set(10)
    ScoreStore('b').set(20)
    assert reset_scores() == 2
    assert ScoreStore('a').get() == 0


def test_lower_score_never_overwrites(flask_app):
    store = ScoreStore('steady')
    assert store.set(50) is True
    assert store.set(20) is False
    assert store.set(50) is False
    assert store.get() == 50


def test_two_sessions_for_one_client_keep_the_best_score(flask_app):
    # Tab A opens first, so it still believes the high score is 0
    tab_a = GameSession(flask_app, client_id='tabs')
    tab_b = GameSession(flask_app, client_id='tabs')

    tab_b.state = replace(tab_b.state, snake=((17, 7),), score=50)
    tab_b.tick()
    assert ScoreStore('tabs').get() == 50

    assert tab_a.state.high_score == 0
    tab_a.state = replace(tab_a.state, snake=((17, 7),), score=20)
    tab_a.tick()
    assert tab_a.state.game_over
    assert ScoreStore('tabs').get() == 50
    # Tab A picks up the better score stored by tab B
    assert tab_a.state.high_score == 50
