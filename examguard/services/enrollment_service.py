"""
Enrollment Registry - students join classes by code

At most one enrollment exists per (class, student). The existence check
gives the friendly error, the unique constraint settles concurrent joins.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Tuple

from sqlalchemy.exc import IntegrityError

from examguard import db
from examguard.errors import ConflictError, NotFoundError, ValidationError
from examguard.models.classroom import Classroom, ClassEnrollment
from examguard.models.user import User
from examguard.services.classroom_service import get_class
from examguard.services.code_generator import CLASS_CODE_LENGTH, normalize_code

logger = logging.getLogger(__name__)


def find_class_by_code(code) -> Classroom:
    """Case-insensitive class lookup"""
    if not isinstance(code, str) or not code.strip():
        raise ValidationError("MISSING_CODE", "Class code is required")

    classroom = Classroom.query.filter_by(code=normalize_code(code)).first()
    if not classroom:
        raise NotFoundError("CLASS_NOT_FOUND", "Class not found with this code")
    return classroom


def join_by_code(student_id: int, code) -> Tuple[ClassEnrollment, Classroom]:
    """
    Enroll a student into the class identified by code.

    Raises:
        ValidationError: MISSING_CLASS_CODE, INVALID_CLASS_CODE_FORMAT
        NotFoundError: CLASS_NOT_FOUND
        ConflictError: ALREADY_ENROLLED
    """
    if not code:
        raise ValidationError("MISSING_CLASS_CODE", "Class code is required")

    if not isinstance(code, str) or len(code) != CLASS_CODE_LENGTH:
        raise ValidationError("INVALID_CLASS_CODE_FORMAT", "Class code must be exactly 6 characters")

    classroom = Classroom.query.filter_by(code=normalize_code(code)).first()
    if not classroom:
        raise NotFoundError("CLASS_NOT_FOUND", "Class not found with this code")

    existing = ClassEnrollment.query.filter_by(
        class_id=classroom.id,
        student_id=student_id
    ).first()
    if existing:
        raise ConflictError("ALREADY_ENROLLED", "Already enrolled in this class")

    enrollment = ClassEnrollment(
        class_id=classroom.id,
        student_id=student_id,
        enrolled_at=datetime.utcnow()
    )
    db.session.add(enrollment)

    try:
        db.session.commit()
    except IntegrityError:
        # A concurrent join for the same pair won the insert
        db.session.rollback()
        raise ConflictError("ALREADY_ENROLLED", "Already enrolled in this class")

    logger.info(f"Student {student_id} enrolled in class {classroom.id}")
    return enrollment, classroom


def list_students(class_id: int, limit: int, offset: int) -> List[Dict[str, Any]]:
    """Enrolled students joined with their enrollment metadata"""
    get_class(class_id)

    rows = (
        db.session.query(User, ClassEnrollment.enrolled_at)
        .join(ClassEnrollment, ClassEnrollment.student_id == User.id)
        .filter(ClassEnrollment.class_id == class_id)
        .order_by(ClassEnrollment.enrolled_at, ClassEnrollment.id)
        .limit(limit)
        .offset(offset)
        .all()
    )

    students = []
    for user, enrolled_at in rows:
        data = user.to_dict()
        data["enrolled_at"] = enrolled_at.isoformat() if enrolled_at else None
        students.append(data)
    return students


def list_enrolled_classes(student_id: int, limit: int, offset: int) -> List[Dict[str, Any]]:
    """A student's classes, read straight from the enrollment index"""
    rows = (
        db.session.query(Classroom, ClassEnrollment.enrolled_at)
        .join(ClassEnrollment, ClassEnrollment.class_id == Classroom.id)
        .filter(ClassEnrollment.student_id == student_id)
        .order_by(ClassEnrollment.enrolled_at.desc(), ClassEnrollment.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )

    classes = []
    for classroom, enrolled_at in rows:
        data = classroom.to_dict()
        data["enrolled_at"] = enrolled_at.isoformat() if enrolled_at else None
        classes.append(data)
    return classes
