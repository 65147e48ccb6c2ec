import logging
import random
import time
from dataclasses import replace

from snakemania.services.snake.scheduler import TickScheduler
from snakemania.services.snake.session import GameSession


class FakeLoop:
    """Collects spawned tick workers so tests decide when they run."""

    def __init__(self):
        self.spawned = []
        self.slept = []

    def spawn(self, fn, *args):
        self.spawned.append((fn, args))

    def sleep(self, seconds):
        self.slept.append(seconds)

    def run(self, index):
        fn, args = self.spawned[index]
        fn(*args)


def test_scheduler_disabled_in_tests_without_hook(flask_app):
    fired = []
    scheduler = TickScheduler(flask_app, lambda: fired.append(1))
    scheduler.arm(150)
    assert scheduler.armed
    assert scheduler.interval_ms == 150
    assert fired == []


def test_rearm_makes_previous_timer_stale(flask_app):
    loop = FakeLoop()
    fired = []
    scheduler = TickScheduler(flask_app, lambda: fired.append(1), spawn=loop.spawn, sleep=loop.sleep)
    scheduler.arm(150)
    scheduler.arm(100)
    assert len(loop.spawned) == 2

    loop.run(0)
    assert fired == []
    loop.run(1)
    assert fired == [1]
    assert loop.slept == [0.15, 0.1]
    assert not scheduler.armed


def test_cancel_stops_pending_tick(flask_app):
    loop = FakeLoop()
    fired = []
    scheduler = TickScheduler(flask_app, lambda: fired.append(1), spawn=loop.spawn, sleep=loop.sleep)
    scheduler.arm(150)
    scheduler.cancel()
    loop.run(0)
    assert fired == []
    assert not scheduler.armed


def test_enabled_in_tests_by_config(flask_app, monkeypatch):
    from snakemania import socketio
    flask_app.config['ENABLE_SCHEDULER_IN_TESTS'] = True
    calls = []
    monkeypatch.setattr(socketio, 'start_background_task', lambda fn, *args: calls.append(args))
    scheduler = TickScheduler(flask_app, lambda: None)
    generation = scheduler.arm(120)
    assert calls == [(generation, 120)]


def test_session_ticks_follow_speed(flask_app):
    loop = FakeLoop()
    session = GameSession(flask_app, client_id='timer', rng=random.Random(5), spawn=loop.spawn, sleep=loop.sleep)
    session.start()
    assert len(loop.spawned) == 1

    loop.run(0)
    assert session.state.snake == ((8, 7),)
    # Each tick arms exactly one follow-up tick
    assert len(loop.spawned) == 2

    session.state = replace(session.state, food=(9, 7))
    loop.run(1)
    assert session.state.speed == 145
    assert len(loop.spawned) == 3
    assert session.scheduler.interval_ms == 145

    loop.run(2)
    assert loop.slept == [0.15, 0.15, 0.145]


def test_direction_change_rearms_and_old_tick_goes_stale(flask_app):
    loop = FakeLoop()
    session = GameSession(flask_app, client_id='timer', rng=random.Random(5), spawn=loop.spawn, sleep=loop.sleep)
    session.start()
    assert session.handle_key('ArrowDown')
    assert len(loop.spawned) == 2

    loop.run(0)
    assert session.state.snake == ((7, 7),)
    loop.run(1)
    assert session.state.snake == ((7, 8),)
    assert len(loop.spawned) == 3


def test_game_over_stops_ticking_and_restart_resumes(flask_app):
    loop = FakeLoop()
    session = GameSession(flask_app, client_id='timer', rng=random.Random(5), spawn=loop.spawn, sleep=loop.sleep)
    session.state = replace(session.state, snake=((17, 0),))
    session.start()
    loop.run(0)
    assert session.state.game_over
    assert len(loop.spawned) == 1
    assert not session.scheduler.armed

    session.restart()
    assert len(loop.spawned) == 2
    loop.run(1)
    assert session.state.snake == ((8, 7),)


def test_closed_session_never_ticks(flask_app):
    loop = FakeLoop()
    session = GameSession(flask_app, client_id='timer', spawn=loop.spawn, sleep=loop.sleep)
    session.start()
    session.close()
    loop.run(0)
    assert session.state.snake == ((7, 7),)
    assert not session.set_direction('UP')


def test_heartbeat_logged_when_configured(flask_app, caplog):
    caplog.set_level(logging.INFO, logger=flask_app.logger.name)
    flask_app.config['TIMER_HEARTBEAT_SEC'] = 1
    loop = FakeLoop()
    fired = []
    scheduler = TickScheduler(flask_app, lambda: fired.append(1), label='beat',
                              spawn=loop.spawn, sleep=loop.sleep)
    scheduler._last_heartbeat = time.time() - 5
    scheduler.arm(150)
    loop.run(0)
    assert fired == [1]
    assert '[tick-heartbeat] session=beat interval=150ms' in caplog.text

    # Not due again until another interval has passed
    caplog.clear()
    scheduler.arm(150)
    loop.run(1)
    assert '[tick-heartbeat]' not in caplog.text


def test_heartbeat_off_by_default(flask_app, caplog):
    caplog.set_level(logging.INFO, logger=flask_app.logger.name)
    assert flask_app.config.get('TIMER_HEARTBEAT_SEC', 0) == 0
    loop = FakeLoop()
    scheduler = TickScheduler(flask_app, lambda: None, label='quiet', spawn=loop.spawn, sleep=loop.sleep)
    scheduler._last_heartbeat = time.time() - 3600
    scheduler.arm(150)
    loop.run(0)
    assert '[tick-heartbeat]' not in caplog.text
