"""
Report Builder - durable point-in-time summaries of exam sessions

generate() reads the session, its violation log and the plagiarism input,
runs the same scorer the live path uses, and stores the result as a new
Report. The session itself is never touched.
"""
import logging
from collections import Counter
from datetime import datetime
from typing import Any, Dict, List, Optional

from flask import current_app

from examguard import db
from examguard.errors import NotFoundError, ValidationError
from examguard.models.exam import ExamSession
from examguard.models.report import Report
from examguard.scoring import RiskAssessment
from examguard.services import violation_log
from examguard.validators.request_validator import parse_id

logger = logging.getLogger(__name__)

INCIDENT_LABELS = {
    "tab_switch": "Tab switch",
    "no_face": "No face detected",
    "multiple_faces": "Multiple faces detected",
    "phone_detected": "Phone detected",
}

RECOMMENDATIONS = {
    "low": "No significant suspicious activity detected. No review needed.",
    "moderate": "Some suspicious activity detected. Review the flagged incidents before grade finalization.",
    "high": "Multiple serious violations detected. Manual review recommended before grade finalization.",
}


def format_duration(seconds: Optional[int]) -> str:
    """1h 45m / 45m / 30s"""
    if seconds is None:
        return "in progress"
    hours, remainder = divmod(max(0, seconds), 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}h {minutes}m"
    if minutes:
        return f"{minutes}m"
    return f"{secs}s"


def _flagged_incidents(violations, assessment: RiskAssessment) -> List[str]:
    incidents = []

    if assessment.tab_switches:
        incidents.append(f"{assessment.tab_switches} tab switches detected")

    for violation in violations:
        if violation.violation_type == "tab_switch" or violation.severity == "low":
            continue
        label = INCIDENT_LABELS.get(violation.violation_type, violation.violation_type)
        when = violation.timestamp.strftime("%H:%M:%S") if violation.timestamp else "unknown time"
        incidents.append(f"{label} at {when} ({violation.severity}): {violation.description}")

    plagiarism = assessment.plagiarism_score
    if plagiarism is not None and plagiarism >= assessment.threshold:
        incidents.append(f"High plagiarism score ({plagiarism}) on submitted work")

    return incidents


def build_summary(session: ExamSession) -> Dict[str, Any]:
    """Summary object for one session, built from current data"""
    violations = violation_log.session_violations(session.id)
    plagiarism_score = current_app.extensions["plagiarism_matcher"].estimate(session.id)
    scorer = current_app.extensions["risk_scorer"]
    assessment = scorer.assess(violations, plagiarism_score)

    type_counts = Counter(v.violation_type for v in violations)
    violations_summary = [
        {"type": violation_type, "count": count}
        for violation_type, count in sorted(type_counts.items(), key=lambda item: (-item[1], item[0]))
    ]

    duration_seconds = None
    if session.started_at and session.ended_at:
        duration_seconds = int((session.ended_at - session.started_at).total_seconds())

    # Terminal sessions report their frozen score, active ones the live one
    score = session.cheating_score if not session.is_active else assessment.score
    level = scorer.risk_level(score)

    exam = session.exam
    student = session.student

    return {
        "session_id": session.id,
        "student_id": session.student_id,
        "student_name": student.name if student else None,
        "exam_id": session.exam_id,
        "exam_title": exam.title if exam else None,
        "started_at": session.started_at.isoformat() if session.started_at else None,
        "ended_at": session.ended_at.isoformat() if session.ended_at else None,
        "duration_seconds": duration_seconds,
        "session_duration": format_duration(duration_seconds),
        "overall_status": session.status,
        "cheating_probability": score,
        "risk_level": level,
        "violations_count": len(violations),
        "violations_summary": violations_summary,
        "severity_breakdown": assessment.severity_breakdown,
        "tab_switches": assessment.tab_switches,
        "plagiarism_score": plagiarism_score,
        "recommendations": RECOMMENDATIONS[level],
        "flagged_incidents": _flagged_incidents(violations, assessment),
    }


def generate(session_id: int, pdf_url: Optional[str] = None) -> Report:
    """
    Build and persist a report. Allowed for active sessions too.

    Raises:
        NotFoundError: SESSION_NOT_FOUND
    """
    session = db.session.get(ExamSession, session_id)
    if not session:
        raise NotFoundError("SESSION_NOT_FOUND", "Exam session not found")

    if pdf_url is not None and not isinstance(pdf_url, str):
        raise ValidationError("INVALID_PDF_URL", "pdf_url must be a string")

    report = Report(
        session_id=session.id,
        generated_at=datetime.utcnow(),
        summary=build_summary(session),
        pdf_url=pdf_url.strip() if pdf_url and pdf_url.strip() else None
    )
    db.session.add(report)
    db.session.commit()

    logger.info(f"Report {report.id} generated for session {session.id}")
    return report


def create_manual_report(data: dict) -> Report:
    """Store a client-supplied summary as-is"""
    if data.get("session_id") is None:
        raise ValidationError("MISSING_SESSION_ID", "session_id is required")
    session_id = parse_id(data["session_id"], "INVALID_SESSION_ID", "session ID")

    summary = data.get("summary")
    if summary is None:
        raise ValidationError("MISSING_SUMMARY", "summary is required")
    if not isinstance(summary, dict):
        raise ValidationError("INVALID_SUMMARY_FORMAT", "summary must be a JSON object")

    if db.session.get(ExamSession, session_id) is None:
        raise NotFoundError("SESSION_NOT_FOUND", "Exam session not found")

    pdf_url = data.get("pdf_url")
    report = Report(
        session_id=session_id,
        generated_at=datetime.utcnow(),
        summary=summary,
        pdf_url=pdf_url.strip() if isinstance(pdf_url, str) and pdf_url.strip() else None
    )
    db.session.add(report)
    db.session.commit()
    return report


def get_report(report_id: int) -> Report:
    report = db.session.get(Report, report_id)
    if not report:
        raise NotFoundError("REPORT_NOT_FOUND", "Report not found")
    return report


def list_reports(session_id: Optional[int] = None, limit: int = 10, offset: int = 0):
    query = Report.query
    if session_id is not None:
        query = query.filter(Report.session_id == session_id)
    return (
        query.order_by(Report.generated_at.desc(), Report.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )
