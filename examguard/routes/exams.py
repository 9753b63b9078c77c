"""
Exam Routes - exam CRUD, code lookup and join-with-code
"""
from flask import Blueprint, request, jsonify

from examguard.services import exam_service, session_service
from examguard.services.rate_limiter import rate_limit
from examguard.validators.request_validator import (
    get_json_body,
    parse_id,
    parse_optional_id,
    parse_pagination,
)

exams_bp = Blueprint("exams", __name__, url_prefix="/api/exams")


@exams_bp.route("", methods=["POST"])
def create_exam():
    exam = exam_service.create_exam(get_json_body())
    return jsonify({"exam": exam.to_dict()}), 201


@exams_bp.route("", methods=["GET"])
def list_exams():
    """List exams, optionally filtered by ?created_by= and ?class_id="""
    limit, offset = parse_pagination()
    created_by = parse_optional_id(request.args.get("created_by"), "INVALID_CREATED_BY", "createdBy")
    class_id = parse_optional_id(request.args.get("class_id"), "INVALID_CLASS_ID", "class ID")

    exams = exam_service.list_exams(created_by, class_id, limit, offset)
    return jsonify({
        "exams": [e.to_dict() for e in exams],
        "count": len(exams)
    }), 200


@exams_bp.route("/<exam_id>", methods=["GET"])
def get_exam(exam_id):
    exam = exam_service.get_exam(parse_id(exam_id))
    return jsonify({"exam": exam.to_dict()}), 200


@exams_bp.route("/<exam_id>", methods=["PUT"])
def update_exam(exam_id):
    exam = exam_service.update_exam(parse_id(exam_id), get_json_body())
    return jsonify({"exam": exam.to_dict()}), 200


@exams_bp.route("/<exam_id>", methods=["DELETE"])
def delete_exam(exam_id):
    exam_id = parse_id(exam_id)
    exam_service.delete_exam(exam_id)
    return jsonify({
        "message": "Exam deleted",
        "id": exam_id
    }), 200


@exams_bp.route("/by-code/<class_code>", methods=["GET"])
def get_exam_by_code(class_code):
    """Case-insensitive lookup by exam code"""
    exam = exam_service.find_exam_by_code(class_code)
    return jsonify({"exam": exam.to_dict()}), 200


@exams_bp.route("/join", methods=["POST"])
@rate_limit("code_join")
def join_exam():
    """Student joins an exam by code, which opens their session"""
    data = get_json_body()
    session = session_service.join_exam_by_code(data.get("class_code"), data.get("student_id"))

    return jsonify({
        "message": "Exam session started",
        "session": session.to_dict(),
        "exam": session.exam.to_dict()
    }), 201
