"""
ProFlow
Project domain models.

Models:
    - Project: company-scoped container with its own task status vocabulary
    - ProjectAttachment: file uploaded against a project (stored on disk)
"""

import math

from proflow.models import db
from proflow.models.base import CompanyScopedModel, iso, utcnow

DEFAULT_STATUSES = ["Todo", "In Progress", "Done"]

PROJECT_ATTACHMENT_MIME_TYPES = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "text/plain",
    "image/jpeg",
    "image/png",
    "image/gif",
}


def format_size(size):
    """Human readable byte count: 512 B, 1.5 KB, 2.0 MB."""
    if size is None:
        return None
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


class Project(CompanyScopedModel):
    """
    A company's project.

    ``statuses`` is the ordered status vocabulary for the project's tasks.
    It is never empty; the first entry is the fallback status used when a
    status is removed from the vocabulary.
    """

    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, default="")
    customer = db.Column(db.String(100), default="")
    statuses = db.Column(db.JSON, nullable=False, default=lambda: list(DEFAULT_STATUSES))
    start_date = db.Column(db.Date, nullable=True)
    end_date = db.Column(db.Date, nullable=True)
    created_by_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    updated_by_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    created_by = db.relationship("User", foreign_keys=[created_by_id])
    attachments = db.relationship(
        "ProjectAttachment", back_populates="project",
        cascade="all, delete-orphan", order_by="ProjectAttachment.id",
    )

    @property
    def duration_days(self):
        if not self.start_date or not self.end_date:
            return None
        return math.ceil(abs((self.end_date - self.start_date).days))

    def to_dict(self, include_attachments=False):
        result = {
            "id": self.id,
            "company_id": self.company_id,
            "name": self.name,
            "description": self.description,
            "customer": self.customer,
            "statuses": list(self.statuses or []),
            "start_date": iso(self.start_date),
            "end_date": iso(self.end_date),
            "duration_days": self.duration_days,
            "created_by": self.created_by.to_summary() if self.created_by else None,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }
        if include_attachments:
            result["attachments"] = [a.to_dict() for a in self.attachments]
        return result

    def __repr__(self):
        return f"<Project {self.id}: {self.name}>"


class ProjectAttachment(db.Model):
    __tablename__ = "project_attachments"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    filename = db.Column(db.String(255), nullable=False, comment="Original client filename")
    stored_filename = db.Column(db.String(255), nullable=False, unique=True)
    mime_type = db.Column(db.String(150), nullable=False)
    size = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(500), default="")
    uploaded_by_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    uploaded_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    project = db.relationship("Project", back_populates="attachments")
    uploaded_by = db.relationship("User")

    __table_args__ = (
        db.CheckConstraint("size > 0", name="ck_project_attachment_size"),
    )

    @property
    def url(self):
        return f"/api/projects/{self.project_id}/attachments/{self.stored_filename}"

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "filename": self.filename,
            "stored_filename": self.stored_filename,
            "url": self.url,
            "mime_type": self.mime_type,
            "size": self.size,
            "formatted_size": format_size(self.size),
            "description": self.description,
            "uploaded_by": self.uploaded_by.to_summary() if self.uploaded_by else None,
            "uploaded_at": iso(self.uploaded_at),
        }
