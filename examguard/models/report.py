"""
Report Model - immutable point-in-time summary of a session
"""
from datetime import datetime

from examguard import db


class Report(db.Model):
    """Snapshot of a session's violations and score. Never updated."""
    __tablename__ = "reports"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    session_id = db.Column(db.Integer, db.ForeignKey("exam_sessions.id"), nullable=False, index=True)
    generated_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    summary = db.Column(db.JSON, nullable=False)
    pdf_url = db.Column(db.String(500))

    session = db.relationship("ExamSession", backref=db.backref("reports", lazy="dynamic"))

    def to_dict(self):
        return {
            "id": self.id,
            "session_id": self.session_id,
            "generated_at": self.generated_at.isoformat() if self.generated_at else None,
            "summary": self.summary,
            "pdf_url": self.pdf_url
        }
