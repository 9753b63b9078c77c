"""
JWT Token Handler Utilities

Tokens are minted by the identity provider that fronts ExamGuard; this
service only needs to verify them. create_access_token is kept for the
provider integration and for tests.
"""
from datetime import datetime, timedelta
from typing import Dict, Any, Optional

import jwt
from flask import current_app


def _secret() -> str:
    return current_app.config["JWT_SECRET"]


def _algorithm() -> str:
    return current_app.config.get("JWT_ALGORITHM", "HS256")


def create_access_token(user_id: int, role: str, expires_hours: Optional[int] = None) -> str:
    """
    Create an access token for a user.

    Args:
        user_id: The user's integer ID
        role: User role (admin, student)
        expires_hours: Override for JWT_EXPIRATION_HOURS

    Returns:
        Encoded JWT string
    """
    now = datetime.utcnow()
    hours = expires_hours if expires_hours is not None else current_app.config.get("JWT_EXPIRATION_HOURS", 24)

    payload = {
        "user_id": user_id,
        "role": role,
        "type": "access",
        "iat": now,
        "exp": now + timedelta(hours=hours)
    }

    return jwt.encode(payload, _secret(), algorithm=_algorithm())


def verify_token(token: str) -> Dict[str, Any]:
    """
    Verify and decode an access token.

    Raises:
        jwt.ExpiredSignatureError: Token has expired
        jwt.InvalidTokenError: Token is invalid
    """
    payload = jwt.decode(token, _secret(), algorithms=[_algorithm()])

    if payload.get("type") and payload.get("type") != "access":
        raise jwt.InvalidTokenError("Invalid token type. Expected access")

    return payload
