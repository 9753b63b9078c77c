"""
Rate Limiter - throttles join-by-code attempts

Class and exam codes are short (3 letters + 3 digits), so join attempts
are counted per caller IP and per student. A student hopping between
addresses is still throttled, and so is one address cycling student ids.

Each attempt is logged in a Redis sorted set scored by time, and rejected
attempts count too. Without Redis every attempt is allowed.
"""
import time
import secrets
import logging
from dataclasses import dataclass
from functools import wraps
from typing import List, Optional

import redis
from flask import request, jsonify, g, current_app

logger = logging.getLogger(__name__)


RATE_LIMITS = {
    # Join a class or an exam by code
    "code_join": {"max_requests": 10, "window_seconds": 60},
}


@dataclass(frozen=True)
class Decision:
    allowed: bool
    attempts: int = 0
    retry_after: int = 0


ALLOW = Decision(allowed=True)


class RateLimiter:
    """
    Sliding-window attempt log in Redis.

    Usage:
        limiter = RateLimiter(redis_url)
        decision = limiter.attempt("student:42", "code_join")
        if not decision.allowed:
            ...
    """

    def __init__(self, redis_url: str = "redis://localhost:6379", enabled: bool = True):
        self.redis_url = redis_url
        self.enabled = enabled
        self.redis_client = self._connect() if enabled else None

    def _connect(self):
        try:
            client = redis.from_url(self.redis_url, decode_responses=True, socket_timeout=5)
            client.ping()
        except (redis.RedisError, ValueError) as e:
            # ValueError: malformed REDIS_URL
            logger.warning(f"[RateLimiter] Redis unavailable, joins are not throttled: {e}")
            return None
        logger.info("[RateLimiter] Redis connected")
        return client

    def attempt(self, subject: str, action: str) -> Decision:
        """Log one attempt for subject and decide whether it may proceed"""
        if self.redis_client is None:
            return ALLOW

        limit = RATE_LIMITS[action]
        window = limit["window_seconds"]
        key = f"rate_limit:{action}:{subject}"
        now = time.time()

        try:
            pipe = self.redis_client.pipeline()
            pipe.zremrangebyscore(key, 0, now - window)
            pipe.zadd(key, {f"{now}:{secrets.token_hex(4)}": now})
            pipe.zcard(key)
            pipe.zrange(key, 0, 0, withscores=True)
            pipe.expire(key, window)
            _, _, attempts, oldest, _ = pipe.execute()
        except redis.RedisError as e:
            logger.error(f"[RateLimiter] {action} check failed for {subject}: {e}")
            return ALLOW

        if attempts <= limit["max_requests"]:
            return Decision(allowed=True, attempts=attempts)

        window_ends = oldest[0][1] + window if oldest else now + window
        return Decision(allowed=False, attempts=attempts, retry_after=max(1, int(window_ends - now)))


def join_subjects() -> List[str]:
    """Who is joining: the caller's address plus the student, when known"""
    subjects = [f"ip:{request.remote_addr}"]

    student_id = getattr(g, "user_id", None)
    if student_id is None:
        body = request.get_json(silent=True)
        if isinstance(body, dict):
            student_id = body.get("student_id")

    # Unparseable ids are left for the route to reject
    if isinstance(student_id, int) and not isinstance(student_id, bool):
        subjects.append(f"student:{student_id}")
    elif isinstance(student_id, str) and student_id.strip().isdecimal():
        subjects.append(f"student:{int(student_id.strip())}")

    return subjects


def rate_limit(action: str):
    """
    Throttle a join endpoint. Put it below any auth decorator so the
    authenticated student is known.

    Usage:
        @rate_limit("code_join")
        def join_exam():
            ...
    """
    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            limiter = get_rate_limiter()

            for subject in join_subjects():
                decision = limiter.attempt(subject, action)
                if not decision.allowed:
                    logger.warning(
                        f"[RateLimiter] {action} blocked for {subject} "
                        f"after {decision.attempts} attempts"
                    )
                    response = jsonify({
                        "error": "Too many join attempts, try again later",
                        "code": "RATE_LIMITED",
                        "retry_after": decision.retry_after
                    })
                    response.status_code = 429
                    response.headers["Retry-After"] = str(decision.retry_after)
                    return response

            return f(*args, **kwargs)

        return decorated
    return decorator


def get_rate_limiter() -> RateLimiter:
    """Get or create the limiter for the current app"""
    limiter: Optional[RateLimiter] = current_app.extensions.get("rate_limiter")
    if limiter is None:
        limiter = RateLimiter(
            redis_url=current_app.config.get("REDIS_URL", "redis://localhost:6379"),
            enabled=current_app.config.get("RATE_LIMIT_ENABLED", True)
        )
        current_app.extensions["rate_limiter"] = limiter
    return limiter
