from .db import db
from .user import User, Role, user_roles
from .audit_log import AuditLog
from .session import Session
from .login_attempt import LoginAttempt
from .action_attempt import ActionAttempt
from .contact_submission import ContactSubmission
from .comment import Comment
from .review import Review
