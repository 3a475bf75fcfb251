"""Sprint service layer.

Transaction policy: methods use flush() for ID generation, never commit().
Caller (route handler) is responsible for db.session.commit().

Lifecycle: Created → Started → Completed (see SPRINT_TRANSITIONS).
Membership lives on Task.sprint_id only; add/remove issue is a single
column write on the task.
"""
import logging

from proflow.core.exceptions import ValidationError
from proflow.models import db
from proflow.models.project import Project
from proflow.models.sprint import SPRINT_STATUSES, Sprint
from proflow.models.task import Task
from proflow.services import policy
from proflow.services.helpers.scoped_queries import get_scoped
from proflow.services.task_service import ensure_sprint_accepts
from proflow.utils.helpers import (
    check_date_range,
    clean_str,
    parse_date_input,
    parse_int,
    require_fields,
)

logger = logging.getLogger(__name__)


def _parse_duration(value) -> int:
    duration = parse_int(value, "duration")
    if duration is None or duration < 1:
        raise ValidationError("duration must be at least 1 week", details={"duration": "min 1"})
    return duration


def create_sprint(user, data: dict) -> Sprint:
    policy.require(user, "sprint", "create")
    require_fields(data, "title", "duration", "start_date", "end_date", "project_id")
    project_id = parse_int(data["project_id"], "project_id")
    project = get_scoped(Project, project_id, company_id=user.company_id)

    start = parse_date_input(data["start_date"], "start_date")
    end = parse_date_input(data["end_date"], "end_date")
    check_date_range(start, end)

    sprint = Sprint(
        company_id=user.company_id,
        project_id=project.id,
        title=clean_str(data["title"], "title", 200, required=True),
        goal=clean_str(data.get("goal"), "goal") or "",
        duration=_parse_duration(data["duration"]),
        start_date=start,
        end_date=end,
    )
    db.session.add(sprint)
    db.session.flush()
    logger.info("Sprint %s created in project %s", sprint.id, project.id)
    return sprint


def list_sprints(user, project_id) -> list[Sprint]:
    project_id = parse_int(project_id, "project_id")
    if project_id is None:
        raise ValidationError("project_id is required", details={"project_id": "required"})
    project = get_scoped(Project, project_id, company_id=user.company_id)
    policy.require(user, "project", "read", project)
    return (
        Sprint.query_for_company(user.company_id)
        .filter_by(project_id=project.id)
        .order_by(Sprint.start_date, Sprint.id)
        .all()
    )


def get_sprint(user, sprint_id: int, action: str = "read") -> Sprint:
    sprint = get_scoped(Sprint, sprint_id, company_id=user.company_id)
    policy.require(user, "sprint", action, sprint)
    return sprint


def update_sprint(user, sprint_id: int, data: dict) -> Sprint:
    """Edit fields and/or advance the status by one legal step.

    Title, goal, duration and dates stay editable in every state. Sending
    the current status again is a no-op.
    """
    sprint = get_sprint(user, sprint_id, "update")

    changes = {}
    if "title" in data:
        changes["title"] = clean_str(data["title"], "title", 200, required=True)
    if "goal" in data:
        changes["goal"] = clean_str(data["goal"], "goal") or ""
    if "duration" in data:
        changes["duration"] = _parse_duration(data["duration"])

    start, end = sprint.start_date, sprint.end_date
    if "start_date" in data:
        start = changes["start_date"] = parse_date_input(data["start_date"], "start_date")
        if start is None:
            raise ValidationError("start_date cannot be cleared", details={"start_date": "required"})
    if "end_date" in data:
        end = changes["end_date"] = parse_date_input(data["end_date"], "end_date")
        if end is None:
            raise ValidationError("end_date cannot be cleared", details={"end_date": "required"})
    check_date_range(start, end)

    target = data.get("status")
    if target is not None and target != sprint.status:
        if target not in SPRINT_STATUSES:
            raise ValidationError(
                f"status must be one of: {', '.join(SPRINT_STATUSES)}",
                details={"status": "invalid"},
            )
        if not sprint.can_transition_to(target):
            raise ValidationError(
                f"Invalid status transition {sprint.status} → {target}",
                details={"status": "illegal transition"},
            )
        changes["status"] = target

    previous = sprint.status
    for field, value in changes.items():
        setattr(sprint, field, value)
    db.session.flush()
    if "status" in changes:
        logger.info("Sprint %s moved %s → %s", sprint.id, previous, sprint.status)
    return sprint


def delete_sprint(user, sprint_id: int) -> int:
    """Delete the sprint; member tasks fall back to the backlog.

    Returns the number of tasks released.
    """
    sprint = get_sprint(user, sprint_id, "delete")
    released = (
        Task.query.filter_by(company_id=sprint.company_id, sprint_id=sprint.id)
        .update({Task.sprint_id: None}, synchronize_session="fetch")
    )
    db.session.delete(sprint)
    db.session.flush()
    logger.info("Sprint %s deleted, %d task(s) returned to backlog", sprint_id, released)
    return released


def _load_pair(user, data: dict, action: str) -> tuple[Sprint, Task]:
    require_fields(data, "sprint_id", "task_id")
    sprint = get_scoped(Sprint, parse_int(data["sprint_id"], "sprint_id"), company_id=user.company_id)
    task = get_scoped(Task, parse_int(data["task_id"], "task_id"), company_id=user.company_id)
    policy.require(user, "sprint", action, task)
    return sprint, task


def add_issue(user, data: dict) -> Sprint:
    sprint, task = _load_pair(user, data, "add_issue")
    if task.sprint_id != sprint.id:
        ensure_sprint_accepts(sprint, task.project_id)
        task.sprint = sprint
        db.session.flush()
        logger.info("Task %s added to sprint %s", task.id, sprint.id)
    return sprint


def remove_issue(user, data: dict) -> Sprint:
    sprint, task = _load_pair(user, data, "remove_issue")
    if task.sprint_id == sprint.id:
        task.sprint = None
        db.session.flush()
        logger.info("Task %s removed from sprint %s", task.id, sprint.id)
    return sprint
