from functools import wraps
from flask import g, jsonify
from security.session import get_session_from_request
from models import db
from models.user import User


def load_current_user():
    """Populate g.user / g.session from the session cookie, if any."""
    g.user = None
    g.session = None

    sess = get_session_from_request()
    if sess is None:
        return
    user = db.session.get(User, sess.user_id)
    if user is None:
        # account removed while the session was live
        return
    g.session = sess
    g.user = user


def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if g.get("user") is None:
            return jsonify(error="Authentication required"), 401
        return fn(*args, **kwargs)
    return wrapper
