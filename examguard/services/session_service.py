"""
Session State Machine - exam session lifecycle and scoring

    active --> completed
           \-> flagged

Both outcomes are terminal. A terminal session keeps its final score:
violations can still be appended to it but they never move the score.

Every public operation here commits once, so a failure part way through
leaves nothing half-written.
"""
import logging
from datetime import datetime
from typing import Optional, Tuple

from flask import current_app
from sqlalchemy.exc import IntegrityError

from examguard import db
from examguard.errors import ConflictError, InvariantViolationError, NotFoundError, ValidationError
from examguard.models.exam import ExamSession, SESSION_STATUSES, TERMINAL_STATUSES
from examguard.models.user import User
from examguard.models.violation import Violation
from examguard.scoring import RiskAssessment
from examguard.services import violation_log
from examguard.services.exam_service import find_exam_by_code, get_exam
from examguard.utils.proctor_log import (
    log_flag_triggered,
    log_score_updated,
    log_session_end,
    log_session_start,
)
from examguard.validators.request_validator import is_int, parse_id, validate_choice

logger = logging.getLogger(__name__)

IMMUTABLE_FIELDS = ("exam_id", "student_id", "started_at", "ended_at")


def get_session(session_id: int, lock: bool = False) -> ExamSession:
    """lock=True takes a row lock (SELECT ... FOR UPDATE) where the database supports it"""
    session = db.session.get(ExamSession, session_id, with_for_update=lock or None)
    if not session:
        raise NotFoundError("NOT_FOUND", "Exam session not found")
    return session


def _scorer():
    return current_app.extensions["risk_scorer"]


def _matcher():
    return current_app.extensions["plagiarism_matcher"]


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------

def _check_initial_state(data: dict):
    """A new session starts active with a zero score and no tab switches"""
    if data.get("status") is not None:
        status = validate_choice(data["status"], SESSION_STATUSES, "INVALID_STATUS", "status")
        if status != "active":
            raise InvariantViolationError("INVALID_STATE_TRANSITION", "A new session must start active")

    if data.get("cheating_score") is not None:
        score = data["cheating_score"]
        if not is_int(score):
            raise ValidationError("INVALID_CHEATING_SCORE", "Cheating score must be an integer")
        if not 0 <= score <= 100:
            raise ValidationError("INVALID_CHEATING_SCORE", "Cheating score must be between 0 and 100")
        if score != 0:
            raise InvariantViolationError("SCORE_OUT_OF_BOUNDS", "A new session starts with a score of 0")

    if data.get("tab_switches") is not None:
        tab_switches = data["tab_switches"]
        if not is_int(tab_switches) or tab_switches < 0:
            raise ValidationError("INVALID_TAB_SWITCHES", "Tab switches must be a non-negative integer")
        if tab_switches != 0:
            raise ValidationError("TAB_SWITCHES_DERIVED", "Tab switches are counted from recorded violations")


def _open_session(exam_id: int, student_id: int) -> ExamSession:
    if db.session.get(User, student_id) is None:
        raise NotFoundError("STUDENT_NOT_FOUND", "Student not found")

    existing = ExamSession.query.filter_by(exam_id=exam_id, student_id=student_id).first()
    if existing:
        raise ConflictError("SESSION_ALREADY_EXISTS", "Student already has a session for this exam")

    session = ExamSession(
        exam_id=exam_id,
        student_id=student_id,
        started_at=datetime.utcnow(),
        status="active",
        cheating_score=0
    )
    db.session.add(session)

    try:
        db.session.commit()
    except IntegrityError:
        # A concurrent join for the same pair won the insert
        db.session.rollback()
        raise ConflictError("SESSION_ALREADY_EXISTS", "Student already has a session for this exam")

    log_session_start(session.id, exam_id, student_id)
    return session


def create_session(data: dict) -> ExamSession:
    """
    Open a session for (exam_id, student_id).

    Raises:
        ValidationError: MISSING_EXAM_ID, MISSING_STUDENT_ID, INVALID_CHEATING_SCORE
        InvariantViolationError: non-initial status or score
        NotFoundError: EXAM_NOT_FOUND, STUDENT_NOT_FOUND
        ConflictError: SESSION_ALREADY_EXISTS
    """
    exam_id = parse_id(data.get("exam_id"), "MISSING_EXAM_ID", "exam ID")
    student_id = parse_id(data.get("student_id"), "MISSING_STUDENT_ID", "student ID")
    _check_initial_state(data)

    get_exam(exam_id)
    return _open_session(exam_id, student_id)


def join_exam_by_code(class_code, student_id) -> ExamSession:
    """Resolve an exam by its code (case-insensitive) and open a session"""
    if student_id is None or student_id == "":
        raise ValidationError("MISSING_STUDENT_ID", "Student ID is required")
    student_id = parse_id(student_id, "INVALID_STUDENT_ID", "student ID")

    exam = find_exam_by_code(class_code)
    return _open_session(exam.id, student_id)


def list_sessions(
    exam_id: Optional[int] = None,
    student_id: Optional[int] = None,
    status: Optional[str] = None,
    limit: int = 10,
    offset: int = 0
):
    query = ExamSession.query
    if exam_id is not None:
        query = query.filter(ExamSession.exam_id == exam_id)
    if student_id is not None:
        query = query.filter(ExamSession.student_id == student_id)
    if status:
        validate_choice(status, SESSION_STATUSES, "INVALID_STATUS", "status")
        query = query.filter(ExamSession.status == status)

    return (
        query.order_by(ExamSession.started_at.desc(), ExamSession.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

def assess(session: ExamSession) -> RiskAssessment:
    """Run the scorer over the full violation log. Read-only."""
    violations = violation_log.session_violations(session.id)
    plagiarism_score = _matcher().estimate(session.id)
    return _scorer().assess(violations, plagiarism_score)


def assess_session(session_id: int) -> RiskAssessment:
    return assess(get_session(session_id))


def apply_score(session: ExamSession, score) -> ExamSession:
    """
    Store a new cheating score on an active session. Scores are checked,
    never clamped.

    Raises:
        ValidationError: INVALID_CHEATING_SCORE
        InvariantViolationError: SCORE_OUT_OF_BOUNDS, SESSION_NOT_ACTIVE
    """
    if not is_int(score):
        raise ValidationError("INVALID_CHEATING_SCORE", "Cheating score must be an integer")
    if not 0 <= score <= 100:
        raise InvariantViolationError("SCORE_OUT_OF_BOUNDS", f"Cheating score {score} is outside 0-100")
    if not session.is_active:
        raise InvariantViolationError(
            "SESSION_NOT_ACTIVE", f"Session is {session.status}, its score is final"
        )

    previous = session.cheating_score or 0
    session.cheating_score = score

    if score != previous:
        log_score_updated(session.id, previous, score)
        threshold = _scorer().threshold
        if previous < threshold <= score:
            log_flag_triggered(session.id, score, threshold)

    return session


def _rescore(session: ExamSession) -> RiskAssessment:
    """Recompute and store the score of an active session. No commit."""
    assessment = assess(session)
    if not session.is_active:
        logger.debug(f"Session {session.id} is {session.status}, score stays {session.cheating_score}")
        return assessment

    apply_score(session, assessment.score)

    if assessment.should_flag and current_app.config.get("AUTO_FLAG_ON_THRESHOLD", False):
        _end(session, "flagged")

    return assessment


def rescore_by_id(session_id: int) -> RiskAssessment:
    session = get_session(session_id)
    assessment = _rescore(session)
    db.session.commit()
    return assessment


def rescore_sessions(*session_ids):
    """Rescore every distinct session touched by a log edit, then commit once"""
    for session_id in sorted({s for s in session_ids if s is not None}):
        _rescore(get_session(session_id))
    db.session.commit()


# ---------------------------------------------------------------------------
# Monitoring events
# ---------------------------------------------------------------------------

def record_violation(data: dict) -> Tuple[Violation, Optional[RiskAssessment]]:
    """
    Append a monitoring event and rescore its session in one transaction.

    Returns:
        (violation, assessment); assessment is None for orphaned events
    """
    fields = violation_log.validate_event(data)
    violation = violation_log.append(**fields)

    assessment = None
    if violation.session_id is not None:
        assessment = _rescore(get_session(violation.session_id))

    db.session.commit()
    return violation, assessment


def tab_switch_severity(count: int) -> str:
    """Severity of the count-th tab switch in a session"""
    if count <= current_app.config.get("TAB_SWITCH_MEDIUM_AFTER", 2):
        return "low"
    if count <= current_app.config.get("TAB_SWITCH_HIGH_AFTER", 5):
        return "medium"
    return "high"


def record_tab_switch(session_id: int, description: Optional[str] = None) -> Tuple[Violation, RiskAssessment]:
    """
    Append a tab_switch event with severity escalating by running count.

    The session row is locked before counting so concurrent switches get
    distinct ordinals.
    """
    session = get_session(session_id, lock=True)
    count = violation_log.count_tab_switches(session.id) + 1

    violation = violation_log.append(
        violation_type="tab_switch",
        severity=tab_switch_severity(count),
        description=description or f"Tab switch #{count}",
        session_id=session.id
    )
    assessment = _rescore(session)
    db.session.commit()
    return violation, assessment


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

def _end(session: ExamSession, outcome: str):
    if not session.is_active:
        raise InvariantViolationError(
            "INVALID_STATE_TRANSITION", f"Cannot move a {session.status} session to {outcome}"
        )
    if outcome not in TERMINAL_STATUSES:
        raise InvariantViolationError(
            "INVALID_STATE_TRANSITION", f"Cannot move an active session to {outcome}"
        )

    session.status = outcome
    if session.ended_at is None:
        session.ended_at = datetime.utcnow()
    log_session_end(session.id, outcome, session.cheating_score)


def transition(session_id: int, outcome) -> ExamSession:
    """
    End an active session as completed or flagged.

    Raises:
        ValidationError: INVALID_STATUS
        InvariantViolationError: INVALID_STATE_TRANSITION
    """
    validate_choice(outcome, SESSION_STATUSES, "INVALID_STATUS", "status")
    session = get_session(session_id)
    _end(session, outcome)
    db.session.commit()
    return session


def submit(session_id: int) -> Tuple[ExamSession, RiskAssessment]:
    """Final rescore, then end the session with the recommended outcome"""
    session = get_session(session_id)
    if not session.is_active:
        raise InvariantViolationError(
            "INVALID_STATE_TRANSITION", f"Session is already {session.status}"
        )

    assessment = assess(session)
    apply_score(session, assessment.score)
    _end(session, assessment.recommended_status)
    db.session.commit()

    logger.info(f"Session {session.id} submitted: score={assessment.score} status={session.status}")
    return session, assessment


def update_session(session_id: int, data: dict) -> ExamSession:
    """
    Partial update. Only cheating_score and status are writable; the
    tab switch count is accepted only when it matches the violation log.
    """
    session = get_session(session_id)

    for field in IMMUTABLE_FIELDS:
        if field in data:
            raise ValidationError("IMMUTABLE_FIELD", f"{field} cannot be changed")

    if "tab_switches" in data:
        tab_switches = data["tab_switches"]
        if not is_int(tab_switches) or tab_switches < 0:
            raise ValidationError("INVALID_TAB_SWITCHES", "Tab switches must be a non-negative integer")
        if tab_switches != violation_log.count_tab_switches(session.id):
            raise ValidationError(
                "TAB_SWITCHES_DERIVED",
                "Tab switches are counted from recorded violations, record a tab switch instead"
            )

    status = None
    if "status" in data:
        status = validate_choice(data["status"], SESSION_STATUSES, "INVALID_STATUS", "status")

    if "cheating_score" in data:
        apply_score(session, data["cheating_score"])

    if status is not None and status != session.status:
        _end(session, status)

    db.session.commit()
    return session
