# Overview: Request decorators for API routes (bearer-token auth, role checks, cron secret).

import hmac
from functools import wraps

from flask import current_app, g, jsonify, request

from .services import session_service


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require a valid session token.

    Sets g.current_user. Returns 401 when the header is missing or the token
    is invalid, expired, revoked or belongs to a deactivated user.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if token is None:
            return jsonify({"error": "Authentication required"}), 401

        user = session_service.validate_session(token)
        if user is None:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """Require one of the given roles. Must be stacked under @require_auth."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = getattr(g, "current_user", None)
            if user is None:
                return jsonify({"error": "Authentication required"}), 401
            if user.role not in roles:
                return jsonify({
                    "error": "Permission denied",
                    "required_role": list(roles),
                }), 403
            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_cron_secret(f):
    """
    Require Authorization: Bearer <CRON_SECRET>.

    With no CRON_SECRET configured every call is refused.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        secret = current_app.config.get("CRON_SECRET")
        token = _bearer_token()
        if not secret or token is None or not hmac.compare_digest(token.encode(), secret.encode()):
            current_app.logger.warning("Rejected scheduled job call from %s", request.remote_addr)
            return jsonify({"error": "Unauthorized"}), 401
        return f(*args, **kwargs)

    return decorated_function
