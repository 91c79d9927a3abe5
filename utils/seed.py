from models import db
from models.user import Role

# ADMIN implies every other role in require_roles
DEFAULT_ROLES = ("STUDENT", "TEACHER", "ADMIN")


def ensure_role(name: str) -> Role:
    role = Role.query.filter_by(name=name).first()
    if role is None:
        role = Role(name=name)
        db.session.add(role)
        db.session.commit()
    return role


def seed_roles():
    """Create the default roles; safe to run on every startup."""
    existing = {r.name for r in Role.query.all()}
    missing = [name for name in DEFAULT_ROLES if name not in existing]
    if not missing:
        return
    db.session.add_all(Role(name=name) for name in missing)
    db.session.commit()
