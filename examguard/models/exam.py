"""
Exam and Exam Session Models
"""
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import column_property

from examguard import db
from examguard.models.violation import Violation

QUESTION_TYPES = ("multiple-choice", "short-answer")

SESSION_STATUSES = ("active", "completed", "flagged")
TERMINAL_STATUSES = ("completed", "flagged")


class Exam(db.Model):
    """Exam joined by students through its class code"""
    __tablename__ = "exams"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    duration_minutes = db.Column(db.Integer, nullable=False)

    # Ordered list of {id, type, question, options?, correct_answer?, points}
    questions = db.Column(db.JSON, nullable=False, default=list)

    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    # Case-insensitive on lookup, stored upper-case
    class_code = db.Column(db.String(50), unique=True, nullable=False, index=True)
    class_id = db.Column(db.Integer, db.ForeignKey("classes.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    sessions = db.relationship("ExamSession", backref="exam", lazy="dynamic")

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "duration_minutes": self.duration_minutes,
            "questions": self.questions,
            "created_by": self.created_by,
            "class_code": self.class_code,
            "class_id": self.class_id,
            "created_at": self.created_at.isoformat() if self.created_at else None
        }


class ExamSession(db.Model):
    """One student's single attempt at one exam"""
    __tablename__ = "exam_sessions"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    exam_id = db.Column(db.Integer, db.ForeignKey("exams.id"), nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    started_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    ended_at = db.Column(db.DateTime, nullable=True)

    # Status: active, completed, flagged
    status = db.Column(db.String(20), nullable=False, default="active")
    cheating_score = db.Column(db.Integer, nullable=False, default=0)

    # One session per (exam, student)
    __table_args__ = (
        db.UniqueConstraint('exam_id', 'student_id', name='unique_exam_student_session'),
        db.CheckConstraint('cheating_score >= 0 AND cheating_score <= 100', name='cheating_score_bounds'),
    )

    student = db.relationship("User", backref="exam_sessions")

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def to_dict(self):
        return {
            "id": self.id,
            "exam_id": self.exam_id,
            "student_id": self.student_id,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "status": self.status,
            "cheating_score": self.cheating_score,
            "tab_switches": self.tab_switches or 0
        }


# Derived from the violation log so the counter can never drift from it
ExamSession.tab_switches = column_property(
    select(func.count(Violation.id))
    .where(Violation.session_id == ExamSession.id)
    .where(Violation.violation_type == "tab_switch")
    .correlate_except(Violation)
    .scalar_subquery(),
    deferred=False,
)
