"""
Plagiarism Checks - stored similarity estimates for submitted files

The estimate itself is produced elsewhere; we validate and store it, and
an active session is rescored because its plagiarism input changed.
"""
import logging
from datetime import datetime
from numbers import Number
from typing import Optional

from examguard import db
from examguard.errors import NotFoundError, ValidationError
from examguard.models.exam import ExamSession
from examguard.models.plagiarism import PlagiarismCheck, ANALYSIS_METHODS
from examguard.services import session_service
from examguard.validators.request_validator import (
    is_int,
    is_non_empty_string,
    parse_optional_id,
    validate_choice,
)

logger = logging.getLogger(__name__)


def _parse_score(value) -> int:
    """Whole numbers 0-100; numeric strings are accepted, fractions are not"""
    if is_int(value):
        score = value
    elif isinstance(value, str) and value.strip().isdecimal():
        score = int(value.strip())
    else:
        raise ValidationError("INVALID_PLAGIARISM_SCORE", "plagiarism_score must be an integer between 0 and 100")
    if not 0 <= score <= 100:
        raise ValidationError("INVALID_PLAGIARISM_SCORE", "plagiarism_score must be an integer between 0 and 100")
    return score


def _validate_sources(sources) -> list:
    """[{source, similarity}, ...]"""
    if not isinstance(sources, list):
        raise ValidationError("INVALID_MATCHED_SOURCES", "matched_sources must be a valid JSON array")

    for item in sources:
        if not isinstance(item, dict) or not is_non_empty_string(item.get("source")):
            raise ValidationError("INVALID_MATCHED_SOURCES", "Each matched source needs a source name")
        similarity = item.get("similarity")
        if similarity is not None and (isinstance(similarity, bool) or not isinstance(similarity, Number)):
            raise ValidationError("INVALID_MATCHED_SOURCES", "similarity must be a number")
    return sources


def record_check(data: dict) -> PlagiarismCheck:
    """
    Store a plagiarism estimate.

    Raises:
        ValidationError: MISSING_* / INVALID_* codes
        NotFoundError: SESSION_NOT_FOUND
    """
    if not is_non_empty_string(data.get("file_name")):
        raise ValidationError("MISSING_FILE_NAME", "file_name is required")
    if not is_non_empty_string(data.get("file_url")):
        raise ValidationError("MISSING_FILE_URL", "file_url is required")
    if data.get("plagiarism_score") is None:
        raise ValidationError("MISSING_PLAGIARISM_SCORE", "plagiarism_score is required")
    if data.get("matched_sources") is None:
        raise ValidationError("MISSING_MATCHED_SOURCES", "matched_sources is required")
    if not data.get("analysis_method"):
        raise ValidationError("MISSING_ANALYSIS_METHOD", "analysis_method is required")

    score = _parse_score(data["plagiarism_score"])
    method = validate_choice(data["analysis_method"], ANALYSIS_METHODS, "INVALID_ANALYSIS_METHOD", "analysis method")
    sources = _validate_sources(data["matched_sources"])
    session_id = parse_optional_id(data.get("session_id"), "INVALID_SESSION_ID", "session ID")

    session = None
    if session_id is not None:
        session = db.session.get(ExamSession, session_id)
        if session is None:
            raise NotFoundError("SESSION_NOT_FOUND", "Exam session not found")

    check = PlagiarismCheck(
        session_id=session_id,
        file_name=data["file_name"].strip(),
        file_url=data["file_url"].strip(),
        plagiarism_score=score,
        matched_sources=sources,
        analysis_method=method,
        checked_at=datetime.utcnow()
    )
    db.session.add(check)
    db.session.flush()

    if session is not None and session.is_active:
        session_service.rescore_by_id(session.id)
    else:
        db.session.commit()

    logger.info(f"Plagiarism check {check.id} stored: session={session_id} score={score} method={method}")
    return check


def get_check(check_id: int) -> PlagiarismCheck:
    check = db.session.get(PlagiarismCheck, check_id)
    if not check:
        raise NotFoundError("NOT_FOUND", "Plagiarism check not found")
    return check


def list_checks(
    session_id: Optional[int] = None,
    analysis_method: Optional[str] = None,
    limit: int = 10,
    offset: int = 0
):
    query = PlagiarismCheck.query
    if session_id is not None:
        query = query.filter(PlagiarismCheck.session_id == session_id)
    if analysis_method:
        validate_choice(analysis_method, ANALYSIS_METHODS, "INVALID_ANALYSIS_METHOD", "analysis method")
        query = query.filter(PlagiarismCheck.analysis_method == analysis_method)

    return (
        query.order_by(PlagiarismCheck.checked_at.desc(), PlagiarismCheck.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )
