"""
ProFlow
Sprint model and its lifecycle table.

Lifecycle: Created → Started → Completed, strictly forward, one step at a time.
"""

from proflow.models import db
from proflow.models.base import CompanyScopedModel, iso, utcnow

SPRINT_CREATED = "Created"
SPRINT_STARTED = "Started"
SPRINT_COMPLETED = "Completed"
SPRINT_STATUSES = (SPRINT_CREATED, SPRINT_STARTED, SPRINT_COMPLETED)

SPRINT_TRANSITIONS = {
    SPRINT_CREATED: {SPRINT_STARTED},
    SPRINT_STARTED: {SPRINT_COMPLETED},
    SPRINT_COMPLETED: set(),
}


def is_legal_transition(current, target):
    return target in SPRINT_TRANSITIONS.get(current, set())


class Sprint(CompanyScopedModel):
    """
    Time-boxed iteration inside a project.

    ``duration`` is expressed in weeks. Member tasks are the tasks whose
    sprint_id points here; see ``issues``.
    """

    __tablename__ = "sprints"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    title = db.Column(db.String(200), nullable=False)
    goal = db.Column(db.Text, default="")
    duration = db.Column(db.Integer, nullable=False, comment="Weeks")
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    status = db.Column(
        db.String(20), nullable=False, default=SPRINT_CREATED,
        comment="Created | Started | Completed",
    )
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        db.CheckConstraint("duration >= 1", name="ck_sprint_duration"),
        db.CheckConstraint(
            "status IN ('Created', 'Started', 'Completed')", name="ck_sprint_status",
        ),
    )

    project = db.relationship("Project")

    @property
    def issues(self):
        from proflow.models.task import Task

        return (
            Task.query.filter_by(sprint_id=self.id, company_id=self.company_id)
            .order_by(Task.id)
            .all()
        )

    def can_transition_to(self, target):
        return is_legal_transition(self.status, target)

    def to_dict(self, include_issues=False):
        result = {
            "id": self.id,
            "company_id": self.company_id,
            "project_id": self.project_id,
            "title": self.title,
            "goal": self.goal,
            "duration": self.duration,
            "start_date": iso(self.start_date),
            "end_date": iso(self.end_date),
            "status": self.status,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }
        if include_issues:
            result["issues"] = [t.to_dict() for t in self.issues]
        return result

    def __repr__(self):
        return f"<Sprint {self.id}: {self.title} [{self.status}]>"
