"""
User Service — company signup, sign-in, employees, password reset.

Services flush; the calling blueprint commits.
"""

import logging
from datetime import datetime, timedelta, timezone

from email_validator import EmailNotValidError, validate_email
from flask import current_app

from proflow.core.exceptions import (
    AuthenticationError,
    ConflictError,
    ValidationError,
)
from proflow.models import db
from proflow.models.auth import ROLE_ADMIN, ROLE_EMPLOYEE, Company, User
from proflow.services.email_service import EmailService
from proflow.utils.crypto import (
    MIN_PASSWORD_LENGTH,
    generate_reset_token,
    hash_password,
    hash_token,
    verify_password,
)
from proflow.utils.helpers import clean_str, require_fields

logger = logging.getLogger(__name__)


def normalize_email(email) -> str:
    """Validate syntax and return the lower-cased address."""
    if not isinstance(email, str) or not email.strip():
        raise ValidationError("email is required", details={"email": "required"})
    try:
        valid = validate_email(email.strip(), check_deliverability=False)
    except EmailNotValidError as e:
        raise ValidationError(f"Invalid email: {e}", details={"email": "invalid"}) from None
    return valid.normalized.lower()


def _check_password(password, field="password"):
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"{field} must be at least {MIN_PASSWORD_LENGTH} characters",
            details={field: "too short"},
        )


def _ensure_email_free(email):
    if User.query.filter_by(email=email).first() is not None:
        raise ConflictError("User", "email", email)


def _as_aware(value):
    # SQLite hands back naive datetimes even for timezone=True columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ═══════════════════════════════════════════════════════════════
# Signup / sign-in
# ═══════════════════════════════════════════════════════════════
def signup_company(data: dict) -> User:
    """Create a company and its first admin user."""
    require_fields(data, "company_name", "company_location", "admin_name", "email", "password")
    email = normalize_email(data["email"])
    _check_password(data["password"])
    _ensure_email_free(email)

    admin_name = clean_str(data["admin_name"], "admin_name", 200, required=True)
    company = Company(
        name=clean_str(data["company_name"], "company_name", 200, required=True),
        location=clean_str(data["company_location"], "company_location", 200, required=True),
        industry=clean_str(data.get("industry"), "industry", 200) or "",
        admin_name=admin_name,
        admin_email=email,
    )
    db.session.add(company)
    db.session.flush()

    admin = User(
        company_id=company.id,
        name=admin_name,
        email=email,
        password_hash=hash_password(data["password"]),
        role=ROLE_ADMIN,
    )
    db.session.add(admin)
    db.session.flush()
    logger.info("Company %s registered with admin user %s", company.id, admin.id)
    return admin


def authenticate(email, password) -> User:
    """Return the user for valid credentials, else AuthenticationError."""
    if not email or not password:
        raise ValidationError("email and password are required")
    try:
        email = normalize_email(email)
    except ValidationError:
        raise AuthenticationError("Invalid email or password") from None

    user = User.query.filter_by(email=email).first()
    if user is None or not verify_password(password, user.password_hash):
        logger.info("Failed sign-in for %s", email)
        raise AuthenticationError("Invalid email or password")

    user.last_login_at = datetime.now(timezone.utc)
    db.session.flush()
    return user


# ═══════════════════════════════════════════════════════════════
# Employees
# ═══════════════════════════════════════════════════════════════
def create_employee(company_id: int, data: dict) -> User:
    require_fields(data, "name", "email", "password")
    email = normalize_email(data["email"])
    _check_password(data["password"])
    _ensure_email_free(email)

    user = User(
        company_id=company_id,
        name=clean_str(data["name"], "name", 200, required=True),
        email=email,
        password_hash=hash_password(data["password"]),
        role=ROLE_EMPLOYEE,
    )
    db.session.add(user)
    db.session.flush()
    logger.info("Employee %s created in company %s", user.id, company_id)
    return user


def list_employees(company_id: int):
    return (
        User.query.filter_by(company_id=company_id, role=ROLE_EMPLOYEE)
        .order_by(User.name, User.id)
    )


# ═══════════════════════════════════════════════════════════════
# Password reset
# ═══════════════════════════════════════════════════════════════
def request_password_reset(email) -> str | None:
    """
    Issue a reset token and email the reset link.

    Returns the raw token (None when the email is unknown). The HTTP layer
    answers identically in both cases.
    """
    try:
        email = normalize_email(email)
    except ValidationError:
        return None
    user = User.query.filter_by(email=email).first()
    if user is None:
        logger.info("Password reset requested for unknown email")
        return None

    expires = current_app.config.get("PASSWORD_RESET_EXPIRES", 3600)
    token = generate_reset_token()
    user.reset_token_hash = hash_token(token)
    user.reset_token_expires_at = datetime.now(timezone.utc) + timedelta(seconds=expires)

    base = current_app.config.get("FRONTEND_URL", "").rstrip("/")
    EmailService.send_from_template(
        to_email=user.email,
        to_name=user.name,
        template_name="password_reset",
        context={
            "name": user.name,
            "reset_url": f"{base}/reset-password?token={token}",
            "expires_minutes": expires // 60,
        },
        company_id=user.company_id,
    )
    db.session.flush()
    logger.info("Password reset issued for user %s", user.id)
    return token


def reset_password(token, new_password) -> User:
    if not token:
        raise ValidationError("token is required", details={"token": "required"})
    _check_password(new_password, "new_password")

    user = User.query.filter_by(reset_token_hash=hash_token(str(token))).first()
    if user is None or _as_aware(user.reset_token_expires_at) < datetime.now(timezone.utc):
        raise ValidationError("Reset token is invalid or has expired")

    user.password_hash = hash_password(new_password)
    user.reset_token_hash = None
    user.reset_token_expires_at = None
    db.session.flush()
    logger.info("Password reset completed for user %s", user.id)
    return user
