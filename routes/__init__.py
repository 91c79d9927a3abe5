from .health import health_bp
from .auth import auth_bp
from .admin import admin_bp
from .contact import contact_bp
from .courses import courses_bp
