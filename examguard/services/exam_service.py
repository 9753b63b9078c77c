"""
Exam Service - exam CRUD and code lookup
"""
import logging
from numbers import Number
from typing import Optional

from sqlalchemy.exc import IntegrityError

from examguard import db
from examguard.errors import ConflictError, NotFoundError, ValidationError
from examguard.models.exam import Exam, QUESTION_TYPES
from examguard.services.code_generator import exam_code_in_use, normalize_code
from examguard.validators.request_validator import is_int, is_non_empty_string, parse_optional_id

logger = logging.getLogger(__name__)


def get_exam(exam_id: int) -> Exam:
    exam = db.session.get(Exam, exam_id)
    if not exam:
        raise NotFoundError("EXAM_NOT_FOUND", "Exam not found")
    return exam


def find_exam_by_code(class_code) -> Exam:
    """Case-insensitive exam lookup"""
    if not isinstance(class_code, str) or not class_code.strip():
        raise ValidationError("MISSING_CLASS_CODE", "Class code is required")

    exam = Exam.query.filter_by(class_code=normalize_code(class_code)).first()
    if not exam:
        raise NotFoundError("EXAM_NOT_FOUND", "Exam not found with this class code")
    return exam


def validate_questions(questions) -> list:
    """
    Questions are an ordered list of records:
        {id, type, question, options?, correct_answer?, points}
    """
    if not isinstance(questions, list):
        raise ValidationError("INVALID_QUESTIONS", "Questions must be a valid array")

    for index, item in enumerate(questions):
        where = f"Question {index + 1}"
        if not isinstance(item, dict):
            raise ValidationError("INVALID_QUESTIONS", f"{where} must be an object")
        if item.get("type") not in QUESTION_TYPES:
            raise ValidationError(
                "INVALID_QUESTIONS", f"{where} type must be one of: {', '.join(QUESTION_TYPES)}"
            )
        if not is_non_empty_string(item.get("question")):
            raise ValidationError("INVALID_QUESTIONS", f"{where} needs non-empty question text")
        if "options" in item and not isinstance(item["options"], list):
            raise ValidationError("INVALID_QUESTIONS", f"{where} options must be a list")
        points = item.get("points", 0)
        if isinstance(points, bool) or not isinstance(points, Number) or points < 0:
            raise ValidationError("INVALID_QUESTIONS", f"{where} points must be a non-negative number")

    return questions


def _validate_duration(duration) -> int:
    if not is_int(duration) or duration <= 0:
        raise ValidationError("INVALID_DURATION", "Duration must be a positive integer")
    return duration


def create_exam(data: dict) -> Exam:
    title = data.get("title")
    if not is_non_empty_string(title):
        raise ValidationError("MISSING_TITLE", "Title is required")

    if data.get("duration_minutes") is None:
        raise ValidationError("MISSING_DURATION", "Duration in minutes is required")

    if data.get("questions") is None:
        raise ValidationError("MISSING_QUESTIONS", "Questions are required")

    class_code = data.get("class_code")
    if not is_non_empty_string(class_code):
        raise ValidationError("MISSING_CLASS_CODE", "Class code is required")

    duration = _validate_duration(data["duration_minutes"])
    questions = validate_questions(data["questions"])
    created_by = parse_optional_id(data.get("created_by"), "INVALID_CREATED_BY", "createdBy")
    class_id = parse_optional_id(data.get("class_id"), "INVALID_CLASS_ID", "class ID")

    class_code = normalize_code(class_code)
    if exam_code_in_use(class_code):
        raise ConflictError("CLASS_CODE_EXISTS", "Class code already exists")

    exam = Exam(
        title=title.strip(),
        description=data.get("description"),
        duration_minutes=duration,
        questions=questions,
        created_by=created_by,
        class_code=class_code,
        class_id=class_id
    )
    db.session.add(exam)

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("CLASS_CODE_EXISTS", "Class code already exists")

    logger.info(f"Exam {exam.id} created with code {exam.class_code}")
    return exam


def update_exam(exam_id: int, data: dict) -> Exam:
    exam = get_exam(exam_id)

    if "title" in data:
        if not is_non_empty_string(data["title"]):
            raise ValidationError("INVALID_TITLE", "Title cannot be empty")
        exam.title = data["title"].strip()

    if "description" in data:
        exam.description = data["description"]

    if "duration_minutes" in data:
        exam.duration_minutes = _validate_duration(data["duration_minutes"])

    if "questions" in data:
        exam.questions = validate_questions(data["questions"])

    if "created_by" in data:
        exam.created_by = parse_optional_id(data["created_by"], "INVALID_CREATED_BY", "createdBy")

    if "class_id" in data:
        exam.class_id = parse_optional_id(data["class_id"], "INVALID_CLASS_ID", "class ID")

    if "class_code" in data:
        if not is_non_empty_string(data["class_code"]):
            raise ValidationError("INVALID_CLASS_CODE", "Class code cannot be empty")
        class_code = normalize_code(data["class_code"])
        # Uniqueness is re-checked against every exam but this one
        if exam_code_in_use(class_code, exclude_exam_id=exam.id):
            raise ConflictError("CLASS_CODE_EXISTS", "Class code already exists")
        exam.class_code = class_code

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("CLASS_CODE_EXISTS", "Class code already exists")

    return exam


def delete_exam(exam_id: int) -> Exam:
    exam = get_exam(exam_id)
    if exam.sessions.count():
        raise ConflictError("EXAM_HAS_SESSIONS", "Exam has sessions and cannot be deleted")

    db.session.delete(exam)
    db.session.commit()
    logger.info(f"Exam {exam_id} deleted")
    return exam


def list_exams(created_by: Optional[int], class_id: Optional[int], limit: int, offset: int):
    query = Exam.query
    if created_by is not None:
        query = query.filter(Exam.created_by == created_by)
    if class_id is not None:
        query = query.filter(Exam.class_id == class_id)

    return (
        query.order_by(Exam.created_at.desc(), Exam.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )
