"""
Auth Models — companies (tenants) and users.

A Company is the isolation boundary: every other table carries company_id.
Users belong to exactly one company and hold a single role.
"""

from proflow.models import db
from proflow.models.base import iso, utcnow

ROLE_ADMIN = "admin"
ROLE_EMPLOYEE = "employee"
USER_ROLES = (ROLE_ADMIN, ROLE_EMPLOYEE)


# ═══════════════════════════════════════════════════════════════
# 1. COMPANIES
# ═══════════════════════════════════════════════════════════════
class Company(db.Model):
    __tablename__ = "companies"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    location = db.Column(db.String(200), default="")
    industry = db.Column(db.String(200), default="")
    admin_name = db.Column(db.String(200), nullable=False)
    admin_email = db.Column(db.String(200), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    users = db.relationship("User", back_populates="company", lazy="dynamic")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "location": self.location,
            "industry": self.industry,
            "admin_name": self.admin_name,
            "admin_email": self.admin_email,
            "created_at": iso(self.created_at),
        }

    def __repr__(self):
        return f"<Company {self.id}: {self.name}>"


# ═══════════════════════════════════════════════════════════════
# 2. USERS
# ═══════════════════════════════════════════════════════════════
class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(
        db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    name = db.Column(db.String(200), nullable=False)
    # Emails are unique across the whole platform: sign-in takes no tenant hint
    email = db.Column(db.String(200), nullable=False, unique=True, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(
        db.String(20), nullable=False, default=ROLE_EMPLOYEE,
        comment="admin | employee",
    )
    reset_token_hash = db.Column(db.String(64), index=True)
    reset_token_expires_at = db.Column(db.DateTime(timezone=True))
    last_login_at = db.Column(db.DateTime(timezone=True))
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        db.CheckConstraint("role IN ('admin', 'employee')", name="ck_user_role"),
    )

    company = db.relationship("Company", back_populates="users")

    @property
    def is_admin(self):
        return self.role == ROLE_ADMIN

    def to_dict(self, include_company=False):
        d = {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "company_id": self.company_id,
            "last_login_at": iso(self.last_login_at),
            "created_at": iso(self.created_at),
        }
        if include_company and self.company is not None:
            d["company"] = self.company.to_dict()
        return d

    def to_summary(self):
        """Compact representation embedded in task/comment payloads."""
        return {"id": self.id, "name": self.name, "email": self.email}

    def __repr__(self):
        return f"<User {self.id}: {self.email}>"
