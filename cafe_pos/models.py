"""Database models."""
import json
from datetime import datetime

from cafe_pos import db


class DeliveryLog(db.Model):
    """One ticket delivery and the transport that carried it."""
    __tablename__ = "delivery_log"

    id = db.Column(db.Integer, primary_key=True)
    label = db.Column(db.String(50), nullable=False)  # ticket, customer, staff...
    via = db.Column(db.String(20), nullable=True)  # direct, host_service, manual_fallback
    reference = db.Column(db.String(255), nullable=True)  # channel, printer, preview id or file
    status = db.Column(db.String(20), nullable=False)  # success, failed, cancelled
    error_message = db.Column(db.Text, nullable=True)
    attempts_json = db.Column(db.Text, nullable=True)
    rendered_preview = db.Column(db.Text, nullable=True)  # sanitized text of what was sent
    size = db.Column(db.Integer, nullable=True)  # encoded bytes
    printed_at = db.Column(db.DateTime, default=datetime.utcnow)

    @property
    def attempts(self):
        """Parse attempts JSON."""
        return json.loads(self.attempts_json) if self.attempts_json else []

    @attempts.setter
    def attempts(self, value):
        """Set attempts as JSON."""
        self.attempts_json = json.dumps(value)

    @classmethod
    def from_outcome(cls, outcome, preview: str = None, size: int = None) -> "DeliveryLog":
        """Build a log row from a DeliveryOutcome."""
        if outcome.cancelled:
            status = "cancelled"
        else:
            status = "success" if outcome.succeeded else "failed"
        record = cls(
            label=outcome.label,
            via=outcome.via.value if outcome.via else None,
            reference=outcome.reference,
            status=status,
            error_message=None if outcome.succeeded else outcome.reason,
            rendered_preview=preview,
            size=size,
        )
        record.attempts = [a.to_dict() for a in outcome.attempts]
        return record

    def to_dict(self):
        """Convert to dictionary for API responses."""
        return {
            "id": self.id,
            "label": self.label,
            "via": self.via,
            "reference": self.reference,
            "status": self.status,
            "error_message": self.error_message,
            "attempts": self.attempts,
            "rendered_preview": self.rendered_preview,
            "size": self.size,
            "printed_at": self.printed_at.isoformat() if self.printed_at else None,
        }

    def __repr__(self):
        return f"<DeliveryLog {self.id} {self.label} ({self.status})>"
