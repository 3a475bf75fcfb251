"""
CompanyScopedModel — Abstract base class for tenant-scoped models.

Every model owned by a company (the tenant boundary) inherits from
CompanyScopedModel instead of db.Model directly. This adds:
  - company_id FK column with index
  - query_for_company(company_id) classmethod
"""

from datetime import datetime, timezone

from proflow.models import db


def utcnow():
    return datetime.now(timezone.utc)


class CompanyScopedModel(db.Model):
    """Abstract base for company-scoped tables."""
    __abstract__ = True

    company_id = db.Column(
        db.Integer,
        db.ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    @classmethod
    def query_for_company(cls, company_id):
        """Return a query filtered by company_id."""
        return cls.query.filter_by(company_id=company_id)


def iso(value):
    """ISO-8601 string for a date/datetime column, or None."""
    return value.isoformat() if value else None
