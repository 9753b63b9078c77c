"""
User Routes - admin and student identities
"""
from flask import Blueprint, request, jsonify

from examguard.services import user_service
from examguard.validators.request_validator import get_json_body, parse_id, parse_pagination

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.route("", methods=["POST"])
def create_user():
    user = user_service.create_user(get_json_body())
    return jsonify({"user": user.to_dict()}), 201


@users_bp.route("", methods=["GET"])
def list_users():
    """List users, optionally filtered by ?search= and ?role="""
    limit, offset = parse_pagination()
    users = user_service.list_users(
        search=request.args.get("search"),
        role=request.args.get("role"),
        limit=limit,
        offset=offset
    )
    return jsonify({
        "users": [u.to_dict() for u in users],
        "count": len(users)
    }), 200


@users_bp.route("/<user_id>", methods=["GET"])
def get_user(user_id):
    user = user_service.get_user(parse_id(user_id))
    return jsonify({"user": user.to_dict()}), 200
