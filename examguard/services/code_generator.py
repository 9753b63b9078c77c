"""
Code Generator - short join codes for classes and exams

Class codes are 3 random letters followed by 3 random digits (ABC123).
Exam codes are chosen by the exam creator; we only normalize them and
check them for uniqueness.
"""
import logging
import secrets
import string
from typing import Callable, Optional

from flask import current_app

from examguard.errors import CodeSpaceExhaustedError
from examguard.models.classroom import Classroom
from examguard.models.exam import Exam

logger = logging.getLogger(__name__)

LETTERS = string.ascii_uppercase
DIGITS = string.digits
CLASS_CODE_LENGTH = 6


def normalize_code(code: str) -> str:
    """Codes are matched case-insensitively and stored upper-case"""
    return code.strip().upper()


def random_class_code() -> str:
    """Each character is drawn independently and uniformly"""
    letters = "".join(secrets.choice(LETTERS) for _ in range(3))
    digits = "".join(secrets.choice(DIGITS) for _ in range(3))
    return letters + digits


def class_code_in_use(code: str, exclude_class_id: Optional[int] = None) -> bool:
    query = Classroom.query.filter_by(code=normalize_code(code))
    if exclude_class_id is not None:
        query = query.filter(Classroom.id != exclude_class_id)
    return query.first() is not None


def exam_code_in_use(code: str, exclude_exam_id: Optional[int] = None) -> bool:
    query = Exam.query.filter_by(class_code=normalize_code(code))
    if exclude_exam_id is not None:
        query = query.filter(Exam.id != exclude_exam_id)
    return query.first() is not None


def generate_class_code(
    max_attempts: Optional[int] = None,
    candidate: Callable[[], str] = random_class_code,
    in_use: Callable[[str], bool] = class_code_in_use
) -> str:
    """
    Generate a class code that no existing class uses.

    Args:
        max_attempts: Retry cap (CODE_MAX_ATTEMPTS by default)
        candidate: Produces one random code
        in_use: Existence check against current codes

    Raises:
        CodeSpaceExhaustedError: every attempt collided
    """
    if max_attempts is None:
        max_attempts = current_app.config.get("CODE_MAX_ATTEMPTS", 25)

    for attempt in range(1, max_attempts + 1):
        code = candidate()
        if not in_use(code):
            if attempt > 1:
                logger.info(f"Class code {code} generated after {attempt} attempts")
            return code
        logger.debug(f"Class code collision on {code} (attempt {attempt})")

    logger.error(f"Class code space exhausted after {max_attempts} attempts")
    raise CodeSpaceExhaustedError(max_attempts)
