from flask import request, current_app

from models.login_attempt import LoginAttempt
from security.attempt_store import AttemptLimiter


def client_ip() -> str:
    if current_app.config.get("TRUST_PROXY_HEADERS", True):
        forwarded = request.headers.get("X-Forwarded-For", "")
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.remote_addr or "unknown"


class IpLimiter(AttemptLimiter):
    """Attempt limiter keyed by source IP address."""

    model = LoginAttempt
    key_attr = "ip_address"
    key_field = "ipAddress"
    detail_attrs = ("username",)


# 10 failed logins per IP per 24h window, then a 24h block
login_limiter = IpLimiter("login", "LOGIN", max_attempts=10)

# 3 contact form submissions per IP per day
contact_limiter = IpLimiter("contact", "CONTACT", max_attempts=3)

IP_LIMITERS = {
    login_limiter.scope: login_limiter,
    contact_limiter.scope: contact_limiter,
}
