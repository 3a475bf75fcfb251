"""Personal to-do entries, private to one user inside one company."""

from proflow.models import db
from proflow.models.base import CompanyScopedModel, iso, utcnow

PERSONAL_TASK_PRIORITIES = ("Low", "Medium", "High")
PERSONAL_TASK_STATUSES = ("Todo", "In Progress", "Done")


class PersonalTask(CompanyScopedModel):
    __tablename__ = "personal_tasks"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")
    priority = db.Column(db.String(20), nullable=False, default="Low")
    status = db.Column(db.String(20), nullable=False, default="Todo")
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        db.Index("ix_personal_tasks_owner", "company_id", "user_id"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "company_id": self.company_id,
            "title": self.title,
            "description": self.description,
            "priority": self.priority,
            "status": self.status,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }

    def __repr__(self):
        return f"<PersonalTask {self.id}: {self.title}>"
