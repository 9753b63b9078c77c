"""
Classroom Service - create, edit and delete classes
"""
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError

from examguard import db
from examguard.errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from examguard.models.classroom import Classroom
from examguard.models.exam import Exam
from examguard.models.user import User
from examguard.services.code_generator import (
    CLASS_CODE_LENGTH,
    class_code_in_use,
    generate_class_code,
    normalize_code,
)
from examguard.validators.request_validator import is_non_empty_string

logger = logging.getLogger(__name__)

OWNER_FIELDS = ("admin_id", "adminId")


def get_class(class_id: int) -> Classroom:
    classroom = db.session.get(Classroom, class_id)
    if not classroom:
        raise NotFoundError("CLASS_NOT_FOUND", "Class not found")
    return classroom


def _validate_description(description) -> Optional[str]:
    if description is None:
        return None
    if not isinstance(description, str):
        raise ValidationError("INVALID_DESCRIPTION", "Description must be a string")
    return description.strip() or None


def create_class(admin: User, data: dict) -> Classroom:
    """Admin creates a class; the owner always comes from the auth context"""
    if any(field in data for field in OWNER_FIELDS):
        raise ValidationError("ADMIN_ID_NOT_ALLOWED", "Admin ID cannot be provided in request body")

    name = data.get("name")
    if not is_non_empty_string(name):
        raise ValidationError("INVALID_NAME", "Name is required and must be a non-empty string")

    description = _validate_description(data.get("description"))

    classroom = Classroom(
        name=name.strip(),
        description=description,
        code=generate_class_code(),
        admin_id=admin.id
    )
    db.session.add(classroom)

    try:
        db.session.commit()
    except IntegrityError:
        # Another class took the code between the check and the insert
        db.session.rollback()
        raise ConflictError("CODE_NOT_UNIQUE", "Generated class code was taken concurrently, retry")

    logger.info(f"Class {classroom.id} created by admin {admin.id} with code {classroom.code}")
    return classroom


def _require_owner(classroom: Classroom, admin: User):
    if classroom.admin_id != admin.id:
        raise PermissionDeniedError("NOT_CLASS_ADMIN", "Only the owning admin can modify this class")


def update_class(admin: User, class_id: int, data: dict) -> Classroom:
    if any(field in data for field in OWNER_FIELDS):
        raise ValidationError("ADMIN_ID_NOT_ALLOWED", "Admin ID cannot be provided in request body")

    classroom = get_class(class_id)
    _require_owner(classroom, admin)

    if "name" in data:
        if not is_non_empty_string(data["name"]):
            raise ValidationError("INVALID_NAME", "Name must be a non-empty string")
        classroom.name = data["name"].strip()

    if "description" in data:
        classroom.description = _validate_description(data["description"])

    if "code" in data:
        code = data["code"]
        if not isinstance(code, str) or len(code.strip()) != CLASS_CODE_LENGTH:
            raise ValidationError("INVALID_CODE_LENGTH", "Code must be exactly 6 characters")
        code = normalize_code(code)
        if class_code_in_use(code, exclude_class_id=classroom.id):
            raise ConflictError("CODE_NOT_UNIQUE", "Code is already used by another class")
        classroom.code = code

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("CODE_NOT_UNIQUE", "Code is already used by another class")

    return classroom


def delete_class(admin: User, class_id: int) -> Classroom:
    """Delete a class; enrollments go with it, exams are detached"""
    classroom = get_class(class_id)
    _require_owner(classroom, admin)

    Exam.query.filter_by(class_id=classroom.id).update({"class_id": None})
    db.session.delete(classroom)
    db.session.commit()

    logger.info(f"Class {class_id} deleted by admin {admin.id}")
    return classroom


def search_classes(search: Optional[str], admin_id: Optional[int], limit: int, offset: int):
    query = Classroom.query

    if search:
        query = query.filter(Classroom.name.ilike(f"%{search}%"))
    if admin_id is not None:
        query = query.filter(Classroom.admin_id == admin_id)

    return (
        query.order_by(Classroom.created_at.desc(), Classroom.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )
