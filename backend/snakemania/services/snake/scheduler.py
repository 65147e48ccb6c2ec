import threading
import time
from typing import Callable, Optional

from snakemania import socketio


class TickScheduler:
    """Owns the single pending tick of one game session.

    Every ``arm`` bumps a generation counter before starting a new sleeper,
    so a sleeper that wakes up after a re-arm or ``cancel`` sees a stale
    generation and exits without ticking. At most one tick per session can
    therefore be live at any time.

    - No-ops in TESTING mode unless ENABLE_SCHEDULER_IN_TESTS is set or a
      ``spawn`` hook is injected
    - ``lock`` should be the owning session's lock so the generation check
      and the tick itself are serialized with input handling
    """

    def __init__(self, app, on_tick: Callable[[], None], label: str = '',
                 lock=None, spawn: Optional[Callable] = None, sleep: Optional[Callable[[float], None]] = None):
        self.app = app
        self.on_tick = on_tick
        self.label = label
        self._lock = lock if lock is not None else threading.RLock()
        self._spawn = spawn
        self._sleep = sleep
        self._generation = 0
        self._armed = False
        self.interval_ms: Optional[int] = None
        self._last_heartbeat = time.time()

    @property
    def armed(self) -> bool:
        return self._armed

    @property
    def generation(self) -> int:
        return self._generation

    def _enabled(self) -> bool:
        if self._spawn is not None:
            return True
        return not (self.app.config.get('TESTING') and not self.app.config.get('ENABLE_SCHEDULER_IN_TESTS'))

    def _log(self, message: str) -> None:
        try:
            self.app.logger.debug(message)
        except Exception:
            pass

    def arm(self, interval_ms: int) -> int:
        """Cancel whatever is pending and schedule one tick ``interval_ms`` from now."""
        with self._lock:
            self._generation += 1
            generation = self._generation
            self.interval_ms = int(interval_ms)
            self._armed = True
            self._log(f"[tick-arm] session={self.label} gen={generation} interval={self.interval_ms}ms")
            if not self._enabled():
                return generation
            spawn = self._spawn or socketio.start_background_task
            spawn(self._run, generation, self.interval_ms)
            return generation

    def cancel(self) -> None:
        with self._lock:
            self._generation += 1
            self._armed = False

    def _run(self, generation: int, interval_ms: int) -> None:
        sleep = self._sleep or socketio.sleep
        sleep(interval_ms / 1000.0)
        with self._lock:
            if generation != self._generation:
                self._log(f"[tick-stale] session={self.label} gen={generation} current={self._generation}")
                return
            self._armed = False
            self._log(f"[tick-fire] session={self.label} gen={generation}")
            self._heartbeat()
            with self.app.app_context():
                self.on_tick()

    def _heartbeat(self) -> None:
        try:
            hb = int(self.app.config.get('TIMER_HEARTBEAT_SEC', 0))
        except Exception:
            hb = 0
        if not hb or hb <= 0:
            return
        now = time.time()
        if now - self._last_heartbeat >= hb:
            self._last_heartbeat = now
            try:
                self.app.logger.info(f"[tick-heartbeat] session={self.label} interval={self.interval_ms}ms gen={self._generation}")
            except Exception:
                pass
