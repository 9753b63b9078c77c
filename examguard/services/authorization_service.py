"""
Authorization Service - bearer token auth context and role checks

Tokens come from the identity provider in front of ExamGuard. We verify
them, resolve the user, and gate admin-only and student-only routes.
"""
import logging
from functools import wraps

import jwt
from flask import request, g

from examguard import db
from examguard.errors import AuthenticationError, PermissionDeniedError
from examguard.models.user import User
from examguard.utils.jwt_handler import verify_token

logger = logging.getLogger(__name__)


def current_user() -> User:
    """
    Resolve the Authorization: Bearer header to a User.

    Raises:
        AuthenticationError: AUTHENTICATION_REQUIRED
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise AuthenticationError("AUTHENTICATION_REQUIRED", "Missing authorization header")

    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AuthenticationError("AUTHENTICATION_REQUIRED", "Invalid authorization format")

    try:
        payload = verify_token(parts[1])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("AUTHENTICATION_REQUIRED", "Token has expired")
    except jwt.InvalidTokenError as e:
        logger.warning(f"Auth failed: {e}")
        raise AuthenticationError("AUTHENTICATION_REQUIRED", "Invalid token")

    user = db.session.get(User, payload.get("user_id"))
    if not user:
        raise AuthenticationError("AUTHENTICATION_REQUIRED", "User not found")

    g.current_user = user
    g.user_id = user.id
    return user


def require_role(role: str, code: str):
    """Decorator to require one role"""
    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            user = current_user()
            if user.role != role:
                raise PermissionDeniedError(code, f"Requires role: {role}")
            return f(*args, **kwargs)
        return decorated
    return decorator


admin_required = require_role("admin", "ADMIN_ROLE_REQUIRED")
student_required = require_role("student", "STUDENT_ROLE_REQUIRED")
