"""
Plagiarism Check Routes
"""
from flask import Blueprint, request, jsonify

from examguard.services import plagiarism_service
from examguard.validators.request_validator import (
    get_json_body,
    parse_id,
    parse_optional_id,
    parse_pagination,
)

plagiarism_bp = Blueprint("plagiarism", __name__, url_prefix="/api/plagiarism-checks")


@plagiarism_bp.route("", methods=["POST"])
def record_check():
    check = plagiarism_service.record_check(get_json_body())
    return jsonify({"plagiarism_check": check.to_dict()}), 201


@plagiarism_bp.route("", methods=["GET"])
def list_checks():
    limit, offset = parse_pagination()
    checks = plagiarism_service.list_checks(
        session_id=parse_optional_id(request.args.get("session_id"), "INVALID_SESSION_ID", "session ID"),
        analysis_method=request.args.get("analysis_method"),
        limit=limit,
        offset=offset
    )
    return jsonify({
        "plagiarism_checks": [c.to_dict() for c in checks],
        "count": len(checks)
    }), 200


@plagiarism_bp.route("/<check_id>", methods=["GET"])
def get_check(check_id):
    check = plagiarism_service.get_check(parse_id(check_id))
    return jsonify({"plagiarism_check": check.to_dict()}), 200
