"""
ProFlow
Task domain models.

Models:
    - Task: unit of work inside a project; forms a tree through parent_task_id
    - TaskComment: append-only discussion entry
    - TaskAttachment: append-only file reference (bytes live under UPLOAD_FOLDER)

Task.sprint_id is the only link between a task and a sprint. A sprint's
issue list is read back from this column, never stored on the sprint.
"""

from proflow.models import db
from proflow.models.base import CompanyScopedModel, iso, utcnow
from proflow.models.project import format_size

# ── Shared constants ─────────────────────────────────────────────────────

TASK_PRIORITIES = ("Low", "Medium", "High", "Critical")
DEFAULT_TASK_PRIORITY = "Low"
PREFERRED_DEFAULT_STATUS = "Todo"


task_assignees = db.Table(
    "task_assignees",
    db.Column(
        "task_id", db.Integer,
        db.ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True,
    ),
    db.Column(
        "user_id", db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True,
        index=True,
    ),
)


class Task(CompanyScopedModel):
    """
    Project task.

    Subtasks are tasks whose parent_task_id points at another task of the
    same project. Deleting a task deletes its whole subtree together with
    comments and attachment records.
    """

    __tablename__ = "tasks"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    parent_task_id = db.Column(
        db.Integer, db.ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=True, index=True,
    )
    sprint_id = db.Column(
        db.Integer, db.ForeignKey("sprints.id", ondelete="SET NULL"),
        nullable=True, index=True,
    )
    reporter_id = db.Column(
        db.Integer, db.ForeignKey("users.id"), nullable=False, index=True,
    )
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")
    priority = db.Column(
        db.String(20), nullable=False, default=DEFAULT_TASK_PRIORITY,
        comment="Low | Medium | High | Critical",
    )
    status = db.Column(
        db.String(100), nullable=False,
        comment="One of the owning project's statuses",
    )
    planned_date_start = db.Column(db.Date, nullable=True)
    planned_date_end = db.Column(db.Date, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        db.Index("ix_tasks_project_sprint", "project_id", "sprint_id"),
        db.CheckConstraint(
            "priority IN ('Low', 'Medium', 'High', 'Critical')",
            name="ck_task_priority",
        ),
    )

    # ── Relationships
    project = db.relationship("Project")
    sprint = db.relationship("Sprint")
    reporter = db.relationship("User", foreign_keys=[reporter_id])
    assignees = db.relationship(
        "User", secondary=task_assignees, order_by="User.id",
    )
    # No delete-orphan: detaching a subtask (parent = None) must keep it.
    subtasks = db.relationship(
        "Task",
        backref=db.backref("parent", remote_side=[id]),
        cascade="all",
        order_by="Task.id",
    )
    comments = db.relationship(
        "TaskComment", back_populates="task",
        cascade="all, delete-orphan", order_by="TaskComment.id",
    )
    attachments = db.relationship(
        "TaskAttachment", back_populates="task",
        cascade="all, delete-orphan", order_by="TaskAttachment.id",
    )

    @property
    def assignee_ids(self):
        return [u.id for u in self.assignees]

    def is_assignee(self, user_id):
        return user_id in self.assignee_ids

    def iter_subtree(self):
        """Yield this task and every descendant, depth first."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.subtasks))

    def to_dict(self, include_details=False):
        result = {
            "id": self.id,
            "company_id": self.company_id,
            "project_id": self.project_id,
            "parent_task_id": self.parent_task_id,
            "sprint_id": self.sprint_id,
            "title": self.title,
            "description": self.description,
            "priority": self.priority,
            "status": self.status,
            "reporter": self.reporter.to_summary() if self.reporter else None,
            "assignees": [u.to_summary() for u in self.assignees],
            "planned_date_start": iso(self.planned_date_start),
            "planned_date_end": iso(self.planned_date_end),
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }
        if include_details:
            result["subtask_ids"] = [t.id for t in self.subtasks]
            result["comments"] = [c.to_dict() for c in self.comments]
            result["attachments"] = [a.to_dict() for a in self.attachments]
        return result

    def __repr__(self):
        return f"<Task {self.id}: {self.title}>"


class TaskComment(db.Model):
    __tablename__ = "task_comments"

    id = db.Column(db.Integer, primary_key=True)
    task_id = db.Column(
        db.Integer, db.ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    author_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    message = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    task = db.relationship("Task", back_populates="comments")
    author = db.relationship("User")

    def to_dict(self):
        return {
            "id": self.id,
            "task_id": self.task_id,
            "author": self.author.to_summary() if self.author else None,
            "message": self.message,
            "created_at": iso(self.created_at),
        }


class TaskAttachment(db.Model):
    __tablename__ = "task_attachments"

    id = db.Column(db.Integer, primary_key=True)
    task_id = db.Column(
        db.Integer, db.ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    filename = db.Column(db.String(255), nullable=False, comment="Original client filename")
    stored_filename = db.Column(db.String(255), nullable=False, unique=True)
    path = db.Column(db.String(500), nullable=False, comment="Location on disk")
    mime_type = db.Column(db.String(150), nullable=False)
    size = db.Column(db.Integer, nullable=False)
    uploaded_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    uploaded_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    task = db.relationship("Task", back_populates="attachments")
    uploaded_by = db.relationship("User")

    @property
    def url(self):
        return f"/api/tasks/{self.task_id}/attachments/{self.stored_filename}"

    def to_dict(self):
        return {
            "id": self.id,
            "task_id": self.task_id,
            "filename": self.filename,
            "stored_filename": self.stored_filename,
            "url": self.url,
            "mime_type": self.mime_type,
            "size": self.size,
            "formatted_size": format_size(self.size),
            "uploaded_by": self.uploaded_by.to_summary() if self.uploaded_by else None,
            "uploaded_at": iso(self.uploaded_at),
        }
