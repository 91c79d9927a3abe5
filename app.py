from flask import Flask, jsonify
from config import Config
from routes import health_bp, auth_bp, admin_bp, contact_bp, courses_bp

from models import db
from flask_migrate import Migrate
from utils.seed import seed_roles, ensure_role
from utils.auth_context import load_current_user
from security.csrf import csrf_protect
from security.errors import RateLimited, NotFound, StoreUnavailable
from security.limit_policy import format_remaining_time


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(contact_bp)
    app.register_blueprint(courses_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    with app.app_context():
        if app.config.get("AUTO_CREATE_TABLES"):
            db.create_all()
        # Seed default roles at startup (idempotent)
        seed_roles()

    @app.before_request
    def _load_user():
        load_current_user()

    CSRF_EXEMPT_PATHS = {
        "/auth/login",
        "/auth/register",
        "/contact",
        "/health",
    }

    @app.before_request
    def _csrf_protect():
        return csrf_protect(CSRF_EXEMPT_PATHS)

    register_error_handlers(app)

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_cli(app)

    return app


def register_error_handlers(app):
    @app.errorhandler(RateLimited)
    def _rate_limited(exc: RateLimited):
        seconds = exc.retry_after_seconds
        resp = jsonify(
            error=f"Too many attempts. Please try again in {format_remaining_time(seconds)}.",
            blocked=True,
            action=exc.scope,
            retry_after_seconds=seconds,
            remaining_time=int(exc.remaining.total_seconds() * 1000),
        )
        resp.headers["Retry-After"] = str(seconds)
        return resp, 429

    @app.errorhandler(NotFound)
    def _not_found(exc: NotFound):
        return jsonify(error=str(exc)), 404

    @app.errorhandler(StoreUnavailable)
    def _store_unavailable(exc: StoreUnavailable):
        # Fail closed: nothing proceeds without a working attempt store.
        return jsonify(error="Service temporarily unavailable. Please try again later."), 503


#-------------------------
import click
from models.user import User
from security.bruteforce import IP_LIMITERS
from utils.audit import log_event

def register_cli(app):
    @app.cli.command("make-admin")
    @click.argument("username")
    def make_admin(username):
        """Promote a user to ADMIN by username (bootstrap)."""
        user = User.query.filter_by(username=username.strip()).first()
        if not user:
            click.echo("User not found")
            return

        admin_role = ensure_role("ADMIN")

        if admin_role not in user.roles:
            user.roles.append(admin_role)
            db.session.commit()

        click.echo(f"{user.username} promoted to ADMIN")

    scope_option = click.option(
        "--scope",
        type=click.Choice(sorted(IP_LIMITERS)),
        default="login",
        show_default=True,
        help="Which IP limiter to act on.",
    )

    @app.cli.command("blocked-ips")
    @scope_option
    def blocked_ips(scope):
        """List currently blocked IPs."""
        limiter = IP_LIMITERS[scope]
        count = 0
        for entry in limiter.list_blocked():
            count += 1
            click.echo(
                f"{entry.key}\t{entry.username or '-'}\t{entry.attempt_count} attempts\t"
                f"blocked until {entry.blocked_until.isoformat()} "
                f"({format_remaining_time(entry.remaining)} left)"
            )
        if not count:
            click.echo("No blocked IPs")

    @app.cli.command("unblock-ip")
    @click.argument("ip", required=False)
    @click.option("--all", "unblock_all", is_flag=True, help="Unblock every blocked IP.")
    @scope_option
    def unblock_ip(ip, unblock_all, scope):
        """Lift the block on IP (or on every IP with --all)."""
        limiter = IP_LIMITERS[scope]
        if unblock_all:
            count = limiter.unblock_all()
            log_event("IP_UNBLOCK_ALL", metadata={"scope": scope, "unblocked": count, "source": "cli"})
            click.echo(f"Unblocked {count} IP(s)")
            return

        if not ip:
            raise click.UsageError("Give an IP or --all")

        try:
            limiter.unblock(ip)
        except NotFound:
            raise click.ClickException(f"{ip} is not blocked")

        log_event("IP_UNBLOCKED", entity="ip", entity_id=ip, metadata={"scope": scope, "source": "cli"})
        click.echo(f"{ip} unblocked")

#-------------------------


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5000)
