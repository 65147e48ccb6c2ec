import threading
from typing import Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from snakemania import db
from snakemania.models import ScoreEntry, HIGH_SCORE_KEY


# Serializes read-compare-write across sessions in this process
_write_lock = threading.Lock()


def _as_int(raw) -> int:
    try:
        return max(0, int(raw))
    except (TypeError, ValueError):
        return 0


def _log_warning(message: str) -> None:
    try:
        current_app.logger.warning(message)
    except Exception:
        pass


class ScoreStore:
    """Per-client key/value store holding the high score as text.

    Any database failure degrades to "no stored score" on read and to a
    logged, rolled-back no-op on write; callers never see the exception.
    """

    def __init__(self, client_id: str, key: str = HIGH_SCORE_KEY):
        self.client_id = client_id
        self.key = key

    def _entry(self) -> Optional[ScoreEntry]:
        return ScoreEntry.query.filter_by(client_id=self.client_id, key=self.key).first()

    def get(self) -> int:
        try:
            entry = self._entry()
        except SQLAlchemyError as exc:
            db.session.rollback()
            _log_warning(f"[score-store] read failed client={self.client_id}: {exc}")
            return 0
        if not entry or not entry.value:
            return 0
        try:
            return max(0, int(entry.value))
        except ValueError:
            _log_warning(f"[score-store] ignoring non-numeric value client={self.client_id} value={entry.value!r}")
            return 0

    def set(self, value: int) -> bool:
        """Store `value` if it beats what is already stored.

        Several sessions can share one client id (two browser tabs), so the
        stored value is re-read and never lowered. Returns True when written.
        """
        value = int(value)
        with _write_lock:
            try:
                entry = self._entry()
                if entry is None:
                    entry = ScoreEntry(client_id=self.client_id, key=self.key)
                elif _as_int(entry.value) >= value:
                    return False
                entry.value = str(value)
                db.session.add(entry)
                db.session.commit()
            except SQLAlchemyError as exc:
                db.session.rollback()
                _log_warning(f"[score-store] write failed client={self.client_id} value={value}: {exc}")
                return False
        return True


def reset_scores(client_id: Optional[str] = None) -> int:
    """Delete stored scores, for one client or everyone. Returns rows removed."""
    query = ScoreEntry.query
    if client_id:
        query = query.filter_by(client_id=client_id)
    removed = query.delete()
    db.session.commit()
    return removed
