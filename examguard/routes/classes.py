"""
Class Routes - Create, manage, and join classes
"""
from flask import Blueprint, request, jsonify, g

from examguard.services import classroom_service, enrollment_service, exam_service
from examguard.services.authorization_service import admin_required, student_required
from examguard.services.rate_limiter import rate_limit
from examguard.validators.request_validator import (
    get_json_body,
    parse_id,
    parse_optional_id,
    parse_pagination,
)

classes_bp = Blueprint("classes", __name__, url_prefix="/api/classes")


# ==================== Admin: Create & Manage Classes ====================

@classes_bp.route("", methods=["POST"])
@admin_required
def create_class():
    """Admin creates a class; the join code is generated"""
    classroom = classroom_service.create_class(g.current_user, get_json_body())

    return jsonify({
        "class": classroom.to_dict(),
        "message": f"Class created! Share code: {classroom.code}"
    }), 201


@classes_bp.route("", methods=["GET"])
def list_classes():
    """List classes, optionally filtered by ?search= and ?admin_id="""
    limit, offset = parse_pagination()
    admin_id = parse_optional_id(request.args.get("admin_id"), "INVALID_ADMIN_ID", "admin ID")

    classes = classroom_service.search_classes(
        search=request.args.get("search"),
        admin_id=admin_id,
        limit=limit,
        offset=offset
    )
    return jsonify({
        "classes": [c.to_dict() for c in classes],
        "count": len(classes)
    }), 200


@classes_bp.route("/<class_id>", methods=["GET"])
def get_class(class_id):
    classroom = classroom_service.get_class(parse_id(class_id))
    return jsonify({"class": classroom.to_dict()}), 200


@classes_bp.route("/<class_id>", methods=["PUT"])
@admin_required
def update_class(class_id):
    classroom = classroom_service.update_class(g.current_user, parse_id(class_id), get_json_body())
    return jsonify({"class": classroom.to_dict()}), 200


@classes_bp.route("/<class_id>", methods=["DELETE"])
@admin_required
def delete_class(class_id):
    class_id = parse_id(class_id)
    classroom_service.delete_class(g.current_user, class_id)
    return jsonify({
        "message": "Class deleted",
        "id": class_id
    }), 200


@classes_bp.route("/<class_id>/students", methods=["GET"])
def list_class_students(class_id):
    """Students enrolled in a class, with their enrollment date"""
    class_id = parse_id(class_id, "INVALID_CLASS_ID", "class ID")
    limit, offset = parse_pagination()

    students = enrollment_service.list_students(class_id, limit, offset)
    return jsonify({
        "students": students,
        "count": len(students)
    }), 200


@classes_bp.route("/<class_id>/exams", methods=["GET"])
def list_class_exams(class_id):
    class_id = parse_id(class_id, "INVALID_CLASS_ID", "class ID")
    limit, offset = parse_pagination()

    classroom_service.get_class(class_id)
    exams = exam_service.list_exams(created_by=None, class_id=class_id, limit=limit, offset=offset)
    return jsonify({
        "exams": [e.to_dict() for e in exams],
        "count": len(exams)
    }), 200


# ==================== Join by Code ====================

@classes_bp.route("/by-code/<code>", methods=["GET"])
def get_class_by_code(code):
    """Case-insensitive lookup by join code"""
    classroom = enrollment_service.find_class_by_code(code)
    return jsonify({"class": classroom.to_dict()}), 200


@classes_bp.route("/join", methods=["POST"])
@student_required
@rate_limit("code_join")
def join_class():
    """Student joins a class using its code"""
    data = get_json_body()
    enrollment, classroom = enrollment_service.join_by_code(g.current_user.id, data.get("class_code"))

    return jsonify({
        "message": f"Joined {classroom.name}!",
        "enrollment": enrollment.to_dict(),
        "class": classroom.to_dict()
    }), 201


@classes_bp.route("/enrolled", methods=["GET"])
@student_required
def list_enrolled_classes():
    """Classes the current student is enrolled in"""
    limit, offset = parse_pagination()
    classes = enrollment_service.list_enrolled_classes(g.current_user.id, limit, offset)

    return jsonify({
        "classes": classes,
        "count": len(classes)
    }), 200
