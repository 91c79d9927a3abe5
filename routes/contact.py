from flask import Blueprint, request, jsonify, current_app

from models import db
from models.contact_submission import ContactSubmission
from security.bruteforce import client_ip, contact_limiter
from security.rbac import require_roles
from utils.audit import log_event

contact_bp = Blueprint("contact", __name__)


@contact_bp.post("/contact")
def create_contact_submission():
    ip = client_ip()

    # Every submission spends one of the IP's daily budget, valid or not.
    contact_limiter.enforce(ip)
    decision = contact_limiter.record_failure(ip)

    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip()
    email = (data.get("email") or "").strip().lower()
    subject = (data.get("subject") or "").strip() or None
    message = (data.get("message") or "").strip()

    errors = {}
    if not name or len(name) > 120:
        errors["name"] = "name is required (max 120 characters)"
    if "@" not in email or len(email) > 255:
        errors["email"] = "a valid email is required"
    if not message:
        errors["message"] = "message is required"
    if subject and len(subject) > 200:
        errors["subject"] = "subject must be at most 200 characters"
    if errors:
        return jsonify(error="Invalid contact submission", details=errors), 400

    submission = ContactSubmission(
        name=name,
        email=email,
        subject=subject,
        message=message,
        ip=ip,
        user_agent=(request.headers.get("User-Agent") or "")[:255] or None,
    )
    db.session.add(submission)
    db.session.commit()

    log_event("CONTACT_SUBMIT", entity="contact_submission", entity_id=submission.id)
    current_app.logger.info("Contact submission %s from %s", submission.id, ip)

    return jsonify(
        id=submission.id,
        status=submission.status,
        rate_limit={
            "remaining_attempts": decision.attempts_left,
            "limit": contact_limiter.policy.max_attempts,
        },
    ), 201


@contact_bp.get("/admin/contact-submissions")
@require_roles("ADMIN")
def list_contact_submissions():
    status = (request.args.get("status") or "").strip().upper()
    q = ContactSubmission.query
    if status:
        q = q.filter(ContactSubmission.status == status)

    rows = q.order_by(ContactSubmission.created_at.desc()).limit(200).all()
    return jsonify([
        {
            "id": s.id,
            "name": s.name,
            "email": s.email,
            "subject": s.subject,
            "message": s.message,
            "status": s.status,
            "ip": s.ip,
            "created_at": s.created_at.isoformat(),
        }
        for s in rows
    ]), 200
