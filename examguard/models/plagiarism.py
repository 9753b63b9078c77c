"""
Plagiarism Check Model
"""
from datetime import datetime

from examguard import db

ANALYSIS_METHODS = ("tf-idf", "cosine", "gpt")


class PlagiarismCheck(db.Model):
    """Plagiarism estimate for a submitted file"""
    __tablename__ = "plagiarism_checks"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    session_id = db.Column(db.Integer, db.ForeignKey("exam_sessions.id"), nullable=True, index=True)
    file_name = db.Column(db.String(255), nullable=False)
    file_url = db.Column(db.String(500), nullable=False)
    plagiarism_score = db.Column(db.Integer, nullable=False)  # 0-100

    # Ordered list of {source, similarity}
    matched_sources = db.Column(db.JSON, nullable=False, default=list)
    analysis_method = db.Column(db.String(20), nullable=False)  # tf-idf, cosine, gpt
    checked_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "session_id": self.session_id,
            "file_name": self.file_name,
            "file_url": self.file_url,
            "plagiarism_score": self.plagiarism_score,
            "matched_sources": self.matched_sources or [],
            "analysis_method": self.analysis_method,
            "checked_at": self.checked_at.isoformat() if self.checked_at else None
        }
