"""Task service layer — tasks, subtasks, comments, attachments.

Transaction policy: methods use flush() for ID generation, never commit().
Caller (route handler) is responsible for db.session.commit().

Rules enforced here:
- a task's status is always one of its project's statuses
- a parent task belongs to the same project (and company), and
  re-parenting never creates a cycle
- assignees are users of the task's company
- a task's sprint belongs to the task's project and is not Completed
- deleting a task deletes its whole subtree
"""
import logging

from proflow.core.exceptions import NotFoundError, ValidationError
from proflow.models import db
from proflow.models.auth import User
from proflow.models.project import Project
from proflow.models.sprint import SPRINT_COMPLETED, Sprint
from proflow.models.task import (
    DEFAULT_TASK_PRIORITY,
    PREFERRED_DEFAULT_STATUS,
    TASK_PRIORITIES,
    Task,
    TaskAttachment,
    TaskComment,
    task_assignees,
)
from proflow.services import policy, storage
from proflow.services.helpers.scoped_queries import get_scoped
from proflow.utils.helpers import (
    check_date_range,
    clean_str,
    parse_date_input,
    parse_int,
)

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 5000

UPDATABLE_FIELDS = (
    "title", "description", "priority", "status", "planned_date_start",
    "planned_date_end", "assignee_ids", "sprint_id", "parent_task_id",
)


# ── Validation helpers ───────────────────────────────────────────────────

def default_status(project: Project) -> str:
    statuses = project.statuses or []
    if PREFERRED_DEFAULT_STATUS in statuses:
        return PREFERRED_DEFAULT_STATUS
    return statuses[0]


def validate_status(project: Project, status) -> str:
    if not isinstance(status, str) or status.strip() not in (project.statuses or []):
        raise ValidationError(
            f"Invalid status. Allowed: {', '.join(project.statuses or [])}",
            details={"status": "not in project statuses"},
        )
    return status.strip()


def validate_priority(priority) -> str:
    if priority not in TASK_PRIORITIES:
        raise ValidationError(
            f"priority must be one of: {', '.join(TASK_PRIORITIES)}",
            details={"priority": "invalid"},
        )
    return priority


def resolve_assignees(company_id: int, raw_ids) -> list[User]:
    """Load assignee users; any id outside the company is a 404."""
    if raw_ids is None:
        return []
    if not isinstance(raw_ids, list):
        raise ValidationError("assignee_ids must be a list", details={"assignee_ids": "list"})
    ids = []
    for raw in raw_ids:
        uid = parse_int(raw, "assignee_ids")
        if uid not in ids:
            ids.append(uid)
    if not ids:
        return []
    users = User.query.filter(User.company_id == company_id, User.id.in_(ids)).all()
    found = {u.id for u in users}
    missing = [uid for uid in ids if uid not in found]
    if missing:
        raise NotFoundError("User", resource_id=missing[0], company_id=company_id)
    by_id = {u.id: u for u in users}
    return [by_id[uid] for uid in ids]


def resolve_sprint(company_id: int, project_id: int, raw_sprint_id) -> Sprint | None:
    sprint_id = parse_int(raw_sprint_id, "sprint_id")
    if sprint_id is None:
        return None
    sprint = get_scoped(Sprint, sprint_id, company_id=company_id)
    ensure_sprint_accepts(sprint, project_id)
    return sprint


def ensure_sprint_accepts(sprint: Sprint, project_id: int) -> None:
    if sprint.project_id != project_id:
        raise ValidationError(
            "Sprint belongs to a different project", details={"sprint_id": "project mismatch"},
        )
    if sprint.status == SPRINT_COMPLETED:
        raise ValidationError(
            "Cannot add tasks to a completed sprint", details={"sprint_id": "completed"},
        )


def resolve_parent(company_id: int, project_id: int, raw_parent_id) -> Task | None:
    parent_id = parse_int(raw_parent_id, "parent_task_id")
    if parent_id is None:
        return None
    parent = get_scoped(Task, parent_id, company_id=company_id)
    if parent.project_id != project_id:
        raise ValidationError(
            "Parent task belongs to a different project",
            details={"parent_task_id": "project mismatch"},
        )
    return parent


def ensure_acyclic(task: Task, new_parent: Task | None) -> None:
    """Reject a parent that is the task itself or one of its descendants."""
    node = new_parent
    while node is not None:
        if node.id == task.id:
            raise ValidationError(
                "A task cannot be moved under itself or one of its subtasks",
                details={"parent_task_id": "cycle"},
            )
        node = node.parent


# ═══════════════════════════════════════════════════════════════
# Tasks
# ═══════════════════════════════════════════════════════════════
def create_task(user, data: dict) -> Task:
    policy.require(user, "task", "create")
    title = clean_str(data.get("title"), "title", 200, required=True)
    project_id = parse_int(data.get("project_id"), "project_id")
    if project_id is None:
        raise ValidationError("project_id is required", details={"project_id": "required"})
    project = get_scoped(Project, project_id, company_id=user.company_id)

    status = data.get("status")
    status = default_status(project) if status in (None, "") else validate_status(project, status)
    priority = validate_priority(data.get("priority") or DEFAULT_TASK_PRIORITY)

    start = parse_date_input(data.get("planned_date_start"), "planned_date_start")
    end = parse_date_input(data.get("planned_date_end"), "planned_date_end")
    check_date_range(start, end, "planned_date_start", "planned_date_end")

    parent = resolve_parent(user.company_id, project.id, data.get("parent_task_id"))
    sprint = resolve_sprint(user.company_id, project.id, data.get("sprint_id"))
    assignees = resolve_assignees(user.company_id, data.get("assignee_ids"))

    task = Task(
        company_id=user.company_id,
        project_id=project.id,
        title=title,
        description=clean_str(data.get("description"), "description") or "",
        status=status,
        priority=priority,
        planned_date_start=start,
        planned_date_end=end,
        reporter_id=user.id,
        sprint=sprint,
        parent=parent,
        assignees=assignees,
    )
    db.session.add(task)
    db.session.flush()
    logger.info(
        "Task %s created in project %s (parent=%s, sprint=%s)",
        task.id, project.id, task.parent_task_id, task.sprint_id,
    )
    return task


def get_task(user, task_id: int, action: str = "read") -> Task:
    task = get_scoped(Task, task_id, company_id=user.company_id)
    policy.require(user, "task", action, task)
    return task


def list_tasks(user, filters: dict):
    """Filtered task query. Employees only ever see tasks assigned to them.

    Filters: project_id, assignee_id (admin only), sprint_id (id or
    "backlog"), parent_task_id (id or "root").
    """
    query = Task.query_for_company(user.company_id)

    project_id = parse_int(filters.get("project_id"), "project_id")
    if project_id is not None:
        query = query.filter(Task.project_id == project_id)

    sprint_filter = filters.get("sprint_id")
    if sprint_filter == "backlog":
        query = query.filter(Task.sprint_id.is_(None))
    elif sprint_filter not in (None, ""):
        query = query.filter(Task.sprint_id == parse_int(sprint_filter, "sprint_id"))

    parent_filter = filters.get("parent_task_id")
    if parent_filter == "root":
        query = query.filter(Task.parent_task_id.is_(None))
    elif parent_filter not in (None, ""):
        query = query.filter(Task.parent_task_id == parse_int(parent_filter, "parent_task_id"))

    if user.is_admin:
        assignee_id = parse_int(filters.get("assignee_id"), "assignee_id")
    else:
        assignee_id = user.id
    if assignee_id is not None:
        query = query.join(task_assignees, task_assignees.c.task_id == Task.id).filter(
            task_assignees.c.user_id == assignee_id
        )

    return query.order_by(Task.created_at.desc(), Task.id.desc())


def update_task(user, task_id: int, data: dict) -> Task:
    """Partial update. Validation happens before any field is changed."""
    task = get_task(user, task_id, "update")
    project = task.project

    if "project_id" in data and parse_int(data["project_id"], "project_id") != task.project_id:
        raise ValidationError(
            "A task cannot be moved to another project", details={"project_id": "immutable"},
        )

    changes = {}
    if "title" in data:
        changes["title"] = clean_str(data["title"], "title", 200, required=True)
    if "description" in data:
        changes["description"] = clean_str(data["description"], "description") or ""
    if "priority" in data:
        changes["priority"] = validate_priority(data["priority"])
    if "status" in data:
        changes["status"] = validate_status(project, data["status"])

    start = task.planned_date_start
    end = task.planned_date_end
    if "planned_date_start" in data:
        start = changes["planned_date_start"] = parse_date_input(
            data["planned_date_start"], "planned_date_start")
    if "planned_date_end" in data:
        end = changes["planned_date_end"] = parse_date_input(
            data["planned_date_end"], "planned_date_end")
    check_date_range(start, end, "planned_date_start", "planned_date_end")

    if "parent_task_id" in data:
        parent = resolve_parent(task.company_id, task.project_id, data["parent_task_id"])
        ensure_acyclic(task, parent)
        changes["parent"] = parent
    if "sprint_id" in data:
        new_sprint_id = parse_int(data["sprint_id"], "sprint_id")
        if new_sprint_id != task.sprint_id:
            changes["sprint"] = resolve_sprint(task.company_id, task.project_id, new_sprint_id)
    if "assignee_ids" in data:
        changes["assignees"] = resolve_assignees(task.company_id, data["assignee_ids"] or [])

    for field, value in changes.items():
        setattr(task, field, value)
    db.session.flush()
    logger.info("Task %s updated by user %s: %s", task.id, user.id, sorted(changes))
    return task


def update_status(user, task_id: int, status) -> Task:
    """Status-only change; open to assignees as well as admin/reporter."""
    task = get_task(user, task_id, "update_status")
    task.status = validate_status(task.project, status)
    db.session.flush()
    logger.info("Task %s status → '%s' by user %s", task.id, task.status, user.id)
    return task


def delete_task(user, task_id: int) -> tuple[int, list[str]]:
    """Delete a task and its subtree.

    Returns (deleted_count, stored_file_paths); the caller removes the
    files once the transaction has committed.
    """
    task = get_task(user, task_id, "delete")
    subtree = list(task.iter_subtree())
    paths = [a.path for node in subtree for a in node.attachments]
    db.session.delete(task)
    db.session.flush()
    logger.info(
        "Task %s deleted with %d subtask(s) by user %s",
        task_id, len(subtree) - 1, user.id,
    )
    return len(subtree), paths


# ═══════════════════════════════════════════════════════════════
# Comments & attachments (append-only)
# ═══════════════════════════════════════════════════════════════
def add_comment(user, task_id: int, message) -> TaskComment:
    task = get_task(user, task_id, "comment")
    message = clean_str(message, "message", MAX_COMMENT_LENGTH, required=True)
    comment = TaskComment(task_id=task.id, author_id=user.id, message=message)
    db.session.add(comment)
    db.session.flush()
    return comment


def add_attachment(user, task_id: int, file_storage) -> TaskAttachment:
    """Store the file and record it. The file is removed again if the row fails."""
    task = get_task(user, task_id, "attach")
    stored = storage.save_upload(file_storage, storage.TASK_FILES)
    attachment = TaskAttachment(
        task_id=task.id,
        filename=stored.filename,
        stored_filename=stored.stored_filename,
        path=stored.path,
        mime_type=stored.mime_type,
        size=stored.size,
        uploaded_by_id=user.id,
    )
    try:
        db.session.add(attachment)
        db.session.flush()
    except Exception:
        storage.remove_file(stored.path)
        raise
    logger.info("Attachment %s added to task %s", attachment.id, task.id)
    return attachment


def get_attachment(user, task_id: int, stored_filename: str) -> TaskAttachment:
    task = get_task(user, task_id)
    attachment = TaskAttachment.query.filter_by(
        task_id=task.id, stored_filename=stored_filename,
    ).first()
    if attachment is None:
        raise NotFoundError("Attachment", stored_filename)
    return attachment
