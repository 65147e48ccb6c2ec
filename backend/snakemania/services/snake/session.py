import random
import threading
import time
import uuid
from dataclasses import replace
from typing import Dict, Optional

from snakemania import socketio
from . import engine
from .cues import play_cue
from .scheduler import TickScheduler
from .store import ScoreStore

DEFAULT_CLIENT_ID = 'anonymous'
DEFAULT_IDLE_TIMEOUT_SEC = 600


def normalize_client_id(client_id) -> str:
    """Coerce a client id to the stored string form; empty means anonymous."""
    if client_id is None or isinstance(client_id, bool):
        return DEFAULT_CLIENT_ID
    if not isinstance(client_id, (str, int)):
        raise ValueError('client_id must be a string')
    return str(client_id).strip()[:64] or DEFAULT_CLIENT_ID


class GameSession:
    """One player's game: state, tick timer and score store wired together.

    The engine decides what happens; this class carries out the side effects
    (persisting a new high score, sound cues, pushing state to the room) and
    keeps exactly one tick armed while the game is running.
    """

    def __init__(self, app, client_id: Optional[str] = None, session_id: Optional[str] = None,
                 rng: Optional[random.Random] = None, spawn=None, sleep=None, expires: bool = False):
        self.app = app
        self.session_id = session_id or uuid.uuid4().hex
        self.client_id = normalize_client_id(client_id)
        # Sessions without a socket to tear them down are reaped when idle
        self.expires = expires
        self.last_activity = time.time()
        self.rules = engine.Rules.from_config(app.config)
        self.rng = rng or random.Random()
        self.store = ScoreStore(self.client_id)
        self.closed = False
        self._lock = threading.RLock()
        self.scheduler = TickScheduler(app, self.tick, label=self.session_id, lock=self._lock,
                                       spawn=spawn, sleep=sleep)
        self.state = engine.initial_state(high_score=self.store.get(), rules=self.rules)

    @property
    def room(self) -> str:
        return f"snake:{self.session_id}"

    def to_dict(self) -> dict:
        payload = engine.to_dict(self.state)
        payload['session_id'] = self.session_id
        payload['client_id'] = self.client_id
        return payload

    def emit_state(self) -> None:
        socketio.emit('state', self.to_dict(), to=self.room, namespace='/ws')

    def start(self) -> None:
        with self._lock:
            self.app.logger.info(
                f"[session-start] session={self.session_id} client={self.client_id} high_score={self.state.high_score}"
            )
            if not self.state.game_over:
                self.scheduler.arm(self.state.speed)

    def set_direction(self, requested) -> bool:
        """Queue a direction; returns True when the request was accepted."""
        with self._lock:
            self.touch()
            if self.closed:
                return False
            updated = engine.set_direction(self.state, requested)
            if updated is self.state:
                return False
            self.state = updated
            self.scheduler.arm(self.state.speed)
            return True

    def handle_key(self, key) -> bool:
        direction = engine.key_to_direction(key)
        if direction is None:
            return False
        return self.set_direction(direction)

    def tick(self) -> engine.StepResult:
        with self._lock:
            if self.closed or self.state.game_over:
                return engine.StepResult(self.state)
            result = engine.step(self.state, self.rng, self.rules)
            self.state = result.state
            self._apply_events(result.events)
            if self.state.game_over:
                self.scheduler.cancel()
            else:
                self.scheduler.arm(self.state.speed)
            self.emit_state()
            return result

    def _apply_events(self, events) -> None:
        for event in events:
            if event == engine.EVENT_HIGH_SCORE:
                self.app.logger.info(
                    f"[high-score] session={self.session_id} client={self.client_id} score={self.state.high_score}"
                )
                self.store.set(self.state.high_score)
                # Another tab for the same client may have stored more
                stored = self.store.get()
                if stored > self.state.high_score:
                    self.state = replace(self.state, high_score=stored)
            elif event == engine.EVENT_GAME_OVER:
                self.app.logger.info(
                    f"[game-over] session={self.session_id} score={self.state.score} length={len(self.state.snake)}"
                )
                play_cue(self.app, self.room, event)
            elif event == engine.EVENT_EAT:
                play_cue(self.app, self.room, event)

    def restart(self) -> None:
        with self._lock:
            self.touch()
            if self.closed:
                return
            self.state = engine.restart(self.state, rules=self.rules)
            self.scheduler.arm(self.state.speed)
            self.emit_state()

    def touch(self) -> None:
        self.last_activity = time.time()

    def idle_for(self, now: Optional[float] = None) -> float:
        return (now if now is not None else time.time()) - self.last_activity

    def close(self) -> None:
        with self._lock:
            self.closed = True
            self.scheduler.cancel()


# Live sessions keyed by session id
_sessions: Dict[str, GameSession] = {}


def create_session(app, client_id: Optional[str] = None, **kwargs) -> GameSession:
    expire_idle_sessions(app)
    session = GameSession(app, client_id=client_id, **kwargs)
    _sessions[session.session_id] = session
    session.start()
    return session


def get_session(session_id: Optional[str]) -> Optional[GameSession]:
    if not session_id:
        return None
    session = _sessions.get(session_id)
    if session:
        session.touch()
    return session


def end_session(session_id: Optional[str]) -> bool:
    session = _sessions.pop(session_id, None) if session_id else None
    if not session:
        return False
    session.close()
    try:
        session.app.logger.info(f"[session-end] session={session_id} score={session.state.score}")
    except Exception:
        pass
    return True


def expire_idle_sessions(app, now: Optional[float] = None) -> int:
    """End expiring sessions nobody has touched for SNAKE_SESSION_IDLE_SEC."""
    try:
        timeout = float(app.config.get('SNAKE_SESSION_IDLE_SEC', DEFAULT_IDLE_TIMEOUT_SEC))
    except (TypeError, ValueError):
        timeout = DEFAULT_IDLE_TIMEOUT_SEC
    if timeout <= 0:
        return 0
    stale = [sid for sid, s in list(_sessions.items()) if s.expires and s.idle_for(now) >= timeout]
    for session_id in stale:
        app.logger.info(f"[session-expire] session={session_id}")
        end_session(session_id)
    return len(stale)


def active_session_count() -> int:
    return len(_sessions)
