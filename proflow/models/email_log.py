"""Outbound email audit log."""

from proflow.models import db
from proflow.models.base import utcnow

EMAIL_STATUSES = ("queued", "sent", "failed")


class EmailLog(db.Model):
    """
    Every email the platform attempts to send is logged here for audit/debug,
    including the ones written only to the log when no SMTP server is set.
    """

    __tablename__ = "email_logs"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(
        db.Integer, db.ForeignKey("companies.id", ondelete="SET NULL"),
        nullable=True, index=True,
    )
    recipient_email = db.Column(db.String(255), nullable=False, index=True)
    subject = db.Column(db.String(500), nullable=False)
    template_name = db.Column(db.String(100), nullable=True, comment="Email template used")
    status = db.Column(db.String(20), default="queued", comment="queued, sent, failed")
    error_message = db.Column(db.Text, nullable=True)
    sent_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
