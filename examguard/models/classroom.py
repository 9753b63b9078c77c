"""
Classroom Model with join codes
"""
from datetime import datetime

from examguard import db


class Classroom(db.Model):
    """Class owned by one admin, joined by students with a 6-character code"""
    __tablename__ = "classes"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    name = db.Column(db.String(200), nullable=False)

    # Join code: 3 letters + 3 digits, always stored upper-case
    code = db.Column(db.String(6), unique=True, nullable=False, index=True)
    description = db.Column(db.Text)

    # Owning admin
    admin_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    admin = db.relationship("User", foreign_keys=[admin_id], backref="owned_classes")
    enrollments = db.relationship(
        "ClassEnrollment", backref="classroom", cascade="all, delete-orphan", lazy="dynamic"
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "description": self.description,
            "admin_id": self.admin_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None
        }


class ClassEnrollment(db.Model):
    """Join table: links students to classes"""
    __tablename__ = "class_enrollments"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    class_id = db.Column(db.Integer, db.ForeignKey("classes.id"), nullable=False)
    # Indexed on its own so a student's classes are one lookup
    student_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    enrolled_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    # Unique constraint: one enrollment per (class, student)
    __table_args__ = (
        db.UniqueConstraint('class_id', 'student_id', name='unique_class_student'),
    )

    student = db.relationship("User", backref="class_enrollments")

    def to_dict(self):
        return {
            "id": self.id,
            "class_id": self.class_id,
            "student_id": self.student_id,
            "enrolled_at": self.enrolled_at.isoformat() if self.enrolled_at else None
        }
