"""
Proctoring Logger - Logs session lifecycle and monitoring events
"""

import logging
from typing import Dict, Any, Optional

logger = logging.getLogger("examguard.proctor")


def log_proctor_event(
    session_id,
    event_type: str,
    details: Optional[Dict[str, Any]] = None,
    level: str = "info"
):
    """
    Log a proctoring event as a single key=value line.

    Args:
        session_id: Exam session ID (None for orphaned events)
        event_type: Type of event (session_start, violation, score, flag, session_end)
        details: Optional event details
        level: Log level (debug, info, warning, error)
    """
    message = f"[PROCTOR] session={session_id} event={event_type}"

    if details:
        detail_str = " ".join(f"{k}={v}" for k, v in details.items())
        message += f" {detail_str}"

    if level == "debug":
        logger.debug(message)
    elif level == "warning":
        logger.warning(message)
    elif level == "error":
        logger.error(message)
    else:
        logger.info(message)


def log_session_start(session_id, exam_id, student_id):
    """Log session start event"""
    log_proctor_event(
        session_id=session_id,
        event_type="session_start",
        details={
            "exam_id": exam_id,
            "student_id": student_id
        }
    )


def log_session_end(session_id, status: str, cheating_score: int):
    """Log session end event"""
    log_proctor_event(
        session_id=session_id,
        event_type="session_end",
        details={
            "status": status,
            "cheating_score": cheating_score
        }
    )


def log_violation_recorded(session_id, violation_type: str, severity: str):
    log_proctor_event(
        session_id=session_id,
        event_type="violation",
        details={"type": violation_type, "severity": severity},
        level="debug" if severity == "low" else "info"
    )


def log_score_updated(session_id, previous: int, current: int):
    log_proctor_event(
        session_id=session_id,
        event_type="score",
        details={"previous": previous, "current": current},
        level="debug"
    )


def log_flag_triggered(session_id, score: int, threshold: int):
    """Log when the risk threshold is reached"""
    log_proctor_event(
        session_id=session_id,
        event_type="flag_triggered",
        details={
            "score": score,
            "threshold": threshold
        },
        level="warning"
    )
