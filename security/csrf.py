import secrets
from flask import request, jsonify, current_app, g

CSRF_COOKIE = "csrf_token"
CSRF_HEADER = "X-CSRF-Token"
UNSAFE_METHODS = ("POST", "PUT", "PATCH", "DELETE")


def issue_csrf_token(resp):
    """Double-submit cookie: readable by client JS, echoed back in X-CSRF-Token."""
    token = secrets.token_urlsafe(32)
    resp.set_cookie(
        CSRF_COOKIE,
        token,
        httponly=False,
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        path="/",
    )
    return resp


def require_csrf():
    cookie_token = request.cookies.get(CSRF_COOKIE)
    header_token = request.headers.get(CSRF_HEADER)
    if not cookie_token or not header_token or not secrets.compare_digest(cookie_token, header_token):
        current_app.logger.warning("CSRF check failed for %s %s", request.method, request.path)
        return jsonify(error="CSRF validation failed"), 403
    return None


def csrf_protect(exempt_paths):
    """before_request hook: only cookie-authenticated, state-changing requests are checked."""
    if request.method not in UNSAFE_METHODS or request.path in exempt_paths:
        return None
    if g.get("user") is None:
        return None
    return require_csrf()
