"""
Violation Log - append-only store of monitoring events

Events are validated against the closed enumerations and appended with a
server-side timestamp. Rescoring the owning session is the session
service's job (see session_service.record_violation).
"""
import logging
from datetime import datetime
from typing import Optional, Tuple

from flask import current_app

from examguard import db
from examguard.errors import NotFoundError, PermissionDeniedError, ValidationError
from examguard.models.exam import ExamSession
from examguard.models.violation import Violation, VIOLATION_TYPES, SEVERITIES
from examguard.utils.proctor_log import log_violation_recorded
from examguard.validators.request_validator import (
    is_non_empty_string,
    parse_optional_id,
    validate_choice,
)

logger = logging.getLogger(__name__)


def validate_event(data: dict) -> dict:
    """
    Check a violation payload and return the normalized fields.

    Raises:
        ValidationError: MISSING_* / INVALID_* codes
    """
    violation_type = data.get("violation_type")
    if not violation_type:
        raise ValidationError("MISSING_VIOLATION_TYPE", "Violation type is required")
    validate_choice(violation_type, VIOLATION_TYPES, "INVALID_VIOLATION_TYPE", "violation type")

    severity = data.get("severity")
    if not severity:
        raise ValidationError("MISSING_SEVERITY", "Severity is required")
    validate_choice(severity, SEVERITIES, "INVALID_SEVERITY", "severity")

    description = data.get("description")
    if not is_non_empty_string(description):
        raise ValidationError("MISSING_DESCRIPTION", "Description is required")

    session_id = parse_optional_id(data.get("session_id"), "INVALID_SESSION_ID", "session ID")

    snapshot_url = data.get("snapshot_url")
    if snapshot_url is not None and not isinstance(snapshot_url, str):
        raise ValidationError("INVALID_SNAPSHOT_URL", "snapshot_url must be a string")

    return {
        "session_id": session_id,
        "violation_type": violation_type,
        "severity": severity,
        "description": description.strip(),
        "snapshot_url": snapshot_url.strip() if snapshot_url and snapshot_url.strip() else None,
    }


def append(
    violation_type: str,
    severity: str,
    description: str,
    session_id: Optional[int] = None,
    snapshot_url: Optional[str] = None
) -> Violation:
    """
    Append one event. Flushes but does not commit so the caller can fold
    the insert and the rescore into a single transaction.
    """
    if session_id is not None and db.session.get(ExamSession, session_id) is None:
        raise NotFoundError("SESSION_NOT_FOUND", "Exam session not found")

    violation = Violation(
        session_id=session_id,
        violation_type=violation_type,
        severity=severity,
        description=description,
        snapshot_url=snapshot_url,
        timestamp=datetime.utcnow()
    )
    db.session.add(violation)
    db.session.flush()

    if session_id is None:
        logger.warning(f"Orphaned violation {violation.id} ({violation_type}) recorded without a session")
    log_violation_recorded(session_id, violation_type, severity)
    return violation


def get_violation(violation_id: int) -> Violation:
    violation = db.session.get(Violation, violation_id)
    if not violation:
        raise NotFoundError("VIOLATION_NOT_FOUND", "Violation not found")
    return violation


def list_violations(
    session_id: Optional[int] = None,
    violation_type: Optional[str] = None,
    severity: Optional[str] = None,
    limit: int = 10,
    offset: int = 0
):
    """Matching events, most recent first"""
    query = Violation.query

    if session_id is not None:
        query = query.filter(Violation.session_id == session_id)
    if violation_type:
        validate_choice(violation_type, VIOLATION_TYPES, "INVALID_VIOLATION_TYPE", "violation type")
        query = query.filter(Violation.violation_type == violation_type)
    if severity:
        validate_choice(severity, SEVERITIES, "INVALID_SEVERITY", "severity")
        query = query.filter(Violation.severity == severity)

    return (
        query.order_by(Violation.timestamp.desc(), Violation.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )


def session_violations(session_id: int):
    """Every event of a session, oldest first (scoring input)"""
    return (
        Violation.query
        .filter(Violation.session_id == session_id)
        .order_by(Violation.timestamp, Violation.id)
        .all()
    )


def count_tab_switches(session_id: int) -> int:
    return Violation.query.filter_by(session_id=session_id, violation_type="tab_switch").count()


def update_violation(violation_id: int, data: dict) -> Tuple[Violation, Optional[int]]:
    """
    Corrective edit of an existing event. Disabled unless
    ALLOW_VIOLATION_EDITS is set.

    Returns:
        (violation, previous session_id); both sessions need rescoring
        when the event moved
    """
    if not current_app.config.get("ALLOW_VIOLATION_EDITS", False):
        raise PermissionDeniedError("VIOLATION_EDITS_DISABLED", "Violations cannot be edited")

    violation = get_violation(violation_id)
    previous_session_id = violation.session_id

    if "violation_type" in data:
        violation.violation_type = validate_choice(
            data["violation_type"], VIOLATION_TYPES, "INVALID_VIOLATION_TYPE", "violation type"
        )
    if "severity" in data:
        violation.severity = validate_choice(data["severity"], SEVERITIES, "INVALID_SEVERITY", "severity")
    if "description" in data:
        if not is_non_empty_string(data["description"]):
            raise ValidationError("INVALID_DESCRIPTION", "Description cannot be empty")
        violation.description = data["description"].strip()
    if "snapshot_url" in data:
        violation.snapshot_url = data["snapshot_url"] or None
    if "session_id" in data:
        session_id = parse_optional_id(data["session_id"], "INVALID_SESSION_ID", "session ID")
        if session_id is not None and db.session.get(ExamSession, session_id) is None:
            raise NotFoundError("SESSION_NOT_FOUND", "Exam session not found")
        violation.session_id = session_id

    db.session.flush()
    logger.info(f"Violation {violation_id} edited")
    return violation, previous_session_id


def delete_violation(violation_id: int) -> Violation:
    violation = get_violation(violation_id)
    db.session.delete(violation)
    db.session.flush()
    logger.info(f"Violation {violation_id} deleted")
    return violation
