from functools import wraps
from flask import g, jsonify, current_app

# holders of this role pass every role check
SUPERUSER_ROLE = "ADMIN"


def require_roles(*role_names: str):
    """
    Usage: @require_roles("TEACHER")

    401 without a session, 403 when the user holds none of `role_names`.
    """
    wanted = {name.upper() for name in role_names}

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = g.get("user")
            if user is None:
                return jsonify(error="Authentication required"), 401

            if not user.has_any_role(wanted | {SUPERUSER_ROLE}):
                current_app.logger.info("User %s denied %s (needs %s)", user.id, fn.__name__, sorted(wanted))
                return jsonify(error="Forbidden"), 403

            return fn(*args, **kwargs)
        return wrapper
    return decorator
