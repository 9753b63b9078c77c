"""
User Service - admin and student identities
"""
import logging
import re
from typing import Optional

from sqlalchemy.exc import IntegrityError

from examguard import db
from examguard.errors import ConflictError, NotFoundError, ValidationError
from examguard.models.user import User, ROLES
from examguard.validators.request_validator import is_non_empty_string, validate_choice

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("USER_NOT_FOUND", "User not found")
    return user


def create_user(data: dict) -> User:
    name = data.get("name")
    if not is_non_empty_string(name):
        raise ValidationError("MISSING_NAME", "Name is required and must be a non-empty string")

    email = data.get("email")
    if not is_non_empty_string(email):
        raise ValidationError("MISSING_EMAIL", "Email is required and must be a non-empty string")
    email = email.strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise ValidationError("INVALID_EMAIL_FORMAT", "Invalid email format")

    role = data.get("role")
    if not role:
        raise ValidationError("MISSING_ROLE", "Role is required")
    validate_choice(role, ROLES, "INVALID_ROLE", "role")

    if User.query.filter_by(email=email).first():
        raise ConflictError("EMAIL_EXISTS", "Email already exists")

    user = User(name=name.strip(), email=email, role=role)
    db.session.add(user)

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("EMAIL_EXISTS", "Email already exists")

    logger.info(f"User {user.id} created with role {role}")
    return user


def list_users(search: Optional[str], role: Optional[str], limit: int, offset: int):
    query = User.query

    if search:
        pattern = f"%{search}%"
        query = query.filter(db.or_(User.name.ilike(pattern), User.email.ilike(pattern)))
    if role:
        validate_choice(role, ROLES, "INVALID_ROLE", "role")
        query = query.filter(User.role == role)

    return (
        query.order_by(User.created_at.desc(), User.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )
