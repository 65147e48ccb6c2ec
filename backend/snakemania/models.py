from snakemania import db
from datetime import datetime

HIGH_SCORE_KEY = 'highScore'


class ScoreEntry(db.Model):
    """One persisted key/value pair scoped to a browsing client."""
    __tablename__ = 'score_entry'
    __table_args__ = (
        db.UniqueConstraint('client_id', 'key', name='uq_score_entry_client_key'),
    )
    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.String(64), nullable=False, index=True)
    key = db.Column(db.String(64), nullable=False, default=HIGH_SCORE_KEY)
    value = db.Column(db.String(32), nullable=False, default='0')
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'client_id': self.client_id,
            'key': self.key,
            'value': self.value,
        }
