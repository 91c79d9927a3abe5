from flask import Blueprint, jsonify, g, request, current_app
from security.rbac import require_roles
from security.bruteforce import IP_LIMITERS, login_limiter
from security.rate_limit import USER_LIMITERS
from security.errors import NotFound
from utils.audit import log_event
from models import db
from models.user import User, Role
from models.audit_log import AuditLog

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


def _ip_limiter():
    scope = (request.args.get("scope") or login_limiter.scope).strip().lower()
    return IP_LIMITERS.get(scope)


def _user_limiter():
    action = (request.args.get("action") or "").strip().lower()
    return USER_LIMITERS.get(action)


def _record_payload(limiter, record) -> dict:
    return {
        limiter.key_field: getattr(record, limiter.key_attr),
        "username": getattr(record, "username", None),
        "attemptCount": record.attempt_count,
        "firstAttempt": record.first_attempt_at.isoformat(),
        "lastAttempt": record.last_attempt_at.isoformat(),
        "blockedUntil": None,
        "remainingTime": 0,
    }


# ---------- blocked IPs ----------

@admin_bp.get("/blocked-ips")
@require_roles("ADMIN")
def list_blocked_ips():
    limiter = _ip_limiter()
    if limiter is None:
        return jsonify(error="Unknown scope", scopes=sorted(IP_LIMITERS)), 400

    return jsonify([entry.to_dict(limiter.key_field) for entry in limiter.list_blocked()]), 200


@admin_bp.delete("/blocked-ips/<ip>")
@require_roles("ADMIN")
def unblock_ip(ip: str):
    limiter = _ip_limiter()
    if limiter is None:
        return jsonify(error="Unknown scope", scopes=sorted(IP_LIMITERS)), 400

    try:
        record = limiter.unblock(ip)
    except NotFound:
        return jsonify(error="IP not found or not blocked"), 404

    log_event("IP_UNBLOCKED", user_id=g.user.id, entity="ip", entity_id=ip, metadata={"scope": limiter.scope})
    current_app.logger.info("IP %s unblocked by admin %s", ip, g.user.username)
    return jsonify(message=f"IP {ip} has been unblocked", record=_record_payload(limiter, record)), 200


@admin_bp.delete("/blocked-ips")
@require_roles("ADMIN")
def unblock_all_ips():
    limiter = _ip_limiter()
    if limiter is None:
        return jsonify(error="Unknown scope", scopes=sorted(IP_LIMITERS)), 400

    count = limiter.unblock_all()
    log_event("IP_UNBLOCK_ALL", user_id=g.user.id, metadata={"scope": limiter.scope, "unblocked": count})
    return jsonify(message="Blocked IPs cleared", unblocked=count), 200


# ---------- rate-limited users (comments, reviews) ----------

@admin_bp.get("/blocked-users")
@require_roles("ADMIN")
def list_blocked_users():
    limiter = _user_limiter()
    if limiter is None:
        return jsonify(error="Unknown action", actions=sorted(USER_LIMITERS)), 400

    return jsonify([entry.to_dict(limiter.key_field) for entry in limiter.list_blocked()]), 200


@admin_bp.delete("/blocked-users/<int:user_id>")
@require_roles("ADMIN")
def unblock_user(user_id: int):
    limiter = _user_limiter()
    if limiter is None:
        return jsonify(error="Unknown action", actions=sorted(USER_LIMITERS)), 400

    try:
        record = limiter.unblock(user_id)
    except NotFound:
        return jsonify(error="User not found or not rate limited"), 404

    log_event(
        "USER_RATE_LIMIT_CLEARED",
        user_id=g.user.id,
        entity="user",
        entity_id=user_id,
        metadata={"action": limiter.scope},
    )
    return jsonify(message="Rate limit cleared", record=_record_payload(limiter, record)), 200


# ---------- users & roles ----------

@admin_bp.get("/users")
@require_roles("ADMIN")
def list_users():
    role_filter = (request.args.get("role") or "").strip().upper()
    q = User.query
    if role_filter:
        q = q.join(User.roles).filter(Role.name == role_filter)

    users = q.order_by(User.created_at.desc()).limit(200).all()
    return jsonify([
        {
            "id": u.id,
            "username": u.username,
            "email": u.email,
            "full_name": u.full_name,
            "roles": u.role_names,
            "created_at": u.created_at.isoformat(),
        }
        for u in users
    ]), 200


@admin_bp.post("/users/<int:user_id>/roles")
@require_roles("ADMIN")
def update_user_roles(user_id: int):
    data = request.get_json(silent=True) or {}
    roles = data.get("roles")
    if not isinstance(roles, list) or not roles:
        return jsonify(error="roles must be a non-empty list"), 400

    role_names = {name.strip().upper() for name in roles if isinstance(name, str) and name.strip()}
    if not role_names:
        return jsonify(error="roles must include valid role names"), 400

    user = db.session.get(User, user_id)
    if not user:
        return jsonify(error="User not found"), 404

    available_roles = Role.query.filter(Role.name.in_(role_names)).all()
    missing = role_names - {r.name for r in available_roles}
    if missing:
        return jsonify(error="Unknown role(s)", missing=sorted(missing)), 400

    if user.id == g.user.id and "ADMIN" not in role_names:
        return jsonify(error="Cannot remove your own ADMIN role"), 403

    user.roles = available_roles
    db.session.commit()

    log_event(
        "ADMIN_UPDATE_ROLES",
        user_id=g.user.id,
        entity="user",
        entity_id=user.id,
        metadata={"roles": sorted(role_names)},
    )
    return jsonify(message="Roles updated", roles=user.role_names), 200


# ---------- audit trail ----------

@admin_bp.get("/audit-logs")
@require_roles("ADMIN")
def list_audit_logs():
    limit = request.args.get("limit", type=int) or 200
    limit = max(1, min(limit, 500))

    q = AuditLog.query
    action = (request.args.get("action") or "").strip().upper()
    if action:
        q = q.filter(AuditLog.action == action)
    user_id = request.args.get("user_id", type=int)
    if user_id is not None:
        q = q.filter(AuditLog.user_id == user_id)

    rows = q.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).all()
    return jsonify([r.to_dict() for r in rows]), 200
