"""
Session Routes - exam session lifecycle, monitoring events and risk
"""
from flask import Blueprint, request, jsonify

from examguard.services import report_builder, session_service
from examguard.validators.request_validator import (
    get_json_body,
    parse_id,
    parse_optional_id,
    parse_pagination,
)

sessions_bp = Blueprint("sessions", __name__, url_prefix="/api/sessions")


def _session_id(value) -> int:
    return parse_id(value, "INVALID_SESSION_ID", "session ID")


@sessions_bp.route("", methods=["POST"])
def create_session():
    session = session_service.create_session(get_json_body())
    return jsonify({"session": session.to_dict()}), 201


@sessions_bp.route("", methods=["GET"])
def list_sessions():
    """
    List sessions, optionally filtered by ?exam_id=, ?student_id= and ?status=.
    exam_id + student_id finds the single session of a pair.
    """
    limit, offset = parse_pagination()
    sessions = session_service.list_sessions(
        exam_id=parse_optional_id(request.args.get("exam_id"), "INVALID_EXAM_ID", "exam ID"),
        student_id=parse_optional_id(request.args.get("student_id"), "INVALID_STUDENT_ID", "student ID"),
        status=request.args.get("status"),
        limit=limit,
        offset=offset
    )
    return jsonify({
        "sessions": [s.to_dict() for s in sessions],
        "count": len(sessions)
    }), 200


@sessions_bp.route("/<session_id>", methods=["GET"])
def get_session(session_id):
    session = session_service.get_session(_session_id(session_id))
    return jsonify({"session": session.to_dict()}), 200


@sessions_bp.route("/<session_id>", methods=["PUT"])
def update_session(session_id):
    session = session_service.update_session(_session_id(session_id), get_json_body())
    return jsonify({"session": session.to_dict()}), 200


@sessions_bp.route("/<session_id>/tab-switch", methods=["POST"])
def record_tab_switch(session_id):
    """Monitoring client reports the student left the exam tab"""
    data = request.get_json(silent=True) or {}
    violation, assessment = session_service.record_tab_switch(
        _session_id(session_id), description=data.get("description")
    )
    session = session_service.get_session(violation.session_id)

    return jsonify({
        "violation": violation.to_dict(),
        "session": session.to_dict(),
        "risk": assessment.to_dict()
    }), 201


@sessions_bp.route("/<session_id>/transition", methods=["POST"])
def transition_session(session_id):
    data = get_json_body()
    session = session_service.transition(_session_id(session_id), data.get("status"))
    return jsonify({"session": session.to_dict()}), 200


@sessions_bp.route("/<session_id>/submit", methods=["POST"])
def submit_session(session_id):
    """Final rescore; the session ends completed or flagged"""
    session, assessment = session_service.submit(_session_id(session_id))
    return jsonify({
        "session": session.to_dict(),
        "risk": assessment.to_dict()
    }), 200


@sessions_bp.route("/<session_id>/risk", methods=["GET"])
def get_risk(session_id):
    """Live assessment; never changes the stored score"""
    assessment = session_service.assess_session(_session_id(session_id))
    return jsonify({"risk": assessment.to_dict()}), 200


@sessions_bp.route("/<session_id>/report", methods=["POST"])
def generate_report(session_id):
    data = request.get_json(silent=True) or {}
    report = report_builder.generate(_session_id(session_id), pdf_url=data.get("pdf_url"))
    return jsonify({"report": report.to_dict()}), 201
