"""
Violation Model - monitoring events attributed to an exam session
"""
from datetime import datetime

from examguard import db

VIOLATION_TYPES = ("multiple_faces", "phone_detected", "tab_switch", "no_face")
SEVERITIES = ("low", "medium", "high")


class Violation(db.Model):
    """Append-only monitoring event"""
    __tablename__ = "violations"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    # Nullable: unattached events are accepted but orphaned
    session_id = db.Column(db.Integer, db.ForeignKey("exam_sessions.id"), nullable=True)
    violation_type = db.Column(db.String(30), nullable=False)
    severity = db.Column(db.String(10), nullable=False)
    timestamp = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    description = db.Column(db.Text, nullable=False)
    snapshot_url = db.Column(db.String(500))

    __table_args__ = (
        db.Index('idx_violation_session_time', 'session_id', 'timestamp'),
        db.Index('idx_violation_session_type', 'session_id', 'violation_type'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "session_id": self.session_id,
            "violation_type": self.violation_type,
            "severity": self.severity,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "description": self.description,
            "snapshot_url": self.snapshot_url
        }
