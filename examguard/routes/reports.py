"""
Report Routes - stored session reports
"""
from flask import Blueprint, request, jsonify

from examguard.services import report_builder
from examguard.validators.request_validator import (
    get_json_body,
    parse_id,
    parse_optional_id,
    parse_pagination,
)

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.route("", methods=["POST"])
def create_report():
    """Store a client-built summary (generated reports go through /api/sessions/<id>/report)"""
    report = report_builder.create_manual_report(get_json_body())
    return jsonify({"report": report.to_dict()}), 201


@reports_bp.route("", methods=["GET"])
def list_reports():
    limit, offset = parse_pagination()
    reports = report_builder.list_reports(
        session_id=parse_optional_id(request.args.get("session_id"), "INVALID_SESSION_ID", "session ID"),
        limit=limit,
        offset=offset
    )
    return jsonify({
        "reports": [r.to_dict() for r in reports],
        "count": len(reports)
    }), 200


@reports_bp.route("/<report_id>", methods=["GET"])
def get_report(report_id):
    report = report_builder.get_report(parse_id(report_id))
    return jsonify({"report": report.to_dict()}), 200
