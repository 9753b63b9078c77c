"""
Violation Routes - monitoring event log
"""
from flask import Blueprint, request, jsonify

from examguard.services import session_service, violation_log
from examguard.services.authorization_service import admin_required
from examguard.validators.request_validator import (
    get_json_body,
    parse_id,
    parse_optional_id,
    parse_pagination,
)

violations_bp = Blueprint("violations", __name__, url_prefix="/api/violations")


@violations_bp.route("", methods=["POST"])
def record_violation():
    """Append an event; an attached active session is rescored"""
    violation, assessment = session_service.record_violation(get_json_body())

    body = {"violation": violation.to_dict()}
    if assessment is not None:
        body["risk"] = assessment.to_dict()
    return jsonify(body), 201


@violations_bp.route("", methods=["GET"])
def list_violations():
    """Most recent first; filter by ?session_id=, ?violation_type=, ?severity="""
    limit, offset = parse_pagination()
    violations = violation_log.list_violations(
        session_id=parse_optional_id(request.args.get("session_id"), "INVALID_SESSION_ID", "session ID"),
        violation_type=request.args.get("violation_type"),
        severity=request.args.get("severity"),
        limit=limit,
        offset=offset
    )
    return jsonify({
        "violations": [v.to_dict() for v in violations],
        "count": len(violations)
    }), 200


@violations_bp.route("/<violation_id>", methods=["GET"])
def get_violation(violation_id):
    violation = violation_log.get_violation(parse_id(violation_id))
    return jsonify({"violation": violation.to_dict()}), 200


@violations_bp.route("/<violation_id>", methods=["PUT"])
def update_violation(violation_id):
    """Corrective edit; the old and new owning sessions follow their logs"""
    violation, previous_session_id = violation_log.update_violation(parse_id(violation_id), get_json_body())
    session_service.rescore_sessions(previous_session_id, violation.session_id)
    return jsonify({"violation": violation.to_dict()}), 200


@violations_bp.route("/<violation_id>", methods=["DELETE"])
@admin_required
def delete_violation(violation_id):
    violation = violation_log.delete_violation(parse_id(violation_id))
    deleted = violation.to_dict()
    session_service.rescore_sessions(violation.session_id)
    return jsonify({
        "message": "Violation deleted",
        "violation": deleted
    }), 200
