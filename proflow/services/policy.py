"""
Authorization Policy — one capability table consulted by every handler.

Evaluation order for ``require(user, resource, action, target)``:
  1. Company isolation: a target from another company is reported as
     NotFoundError (HTTP 404), never as a denial.
  2. Role capability: CAPABILITIES[role][resource] contains the action.
  3. Relation grants: the user's relation to the target (reporter /
     assignee of a task) unlocks the actions in RELATION_GRANTS.
  4. Otherwise AuthorizationError (HTTP 403).

Project visibility for employees is relational too: an employee is a
member of a project when at least one task of that project is assigned
to them. Members may read the project, its backlog, sprints, attachments
and tasks.
"""

import functools
import logging

from flask import g
from sqlalchemy import exists, select

from proflow.core.exceptions import AuthorizationError, NotFoundError
from proflow.models import db
from proflow.models.auth import ROLE_ADMIN, ROLE_EMPLOYEE
from proflow.models.task import Task, task_assignees

logger = logging.getLogger(__name__)

# ── Role capabilities ───────────────────────────────────────────────────

_ADMIN_CAPS = {
    "employee": {"create", "list"},
    "project": {"create", "list", "read", "update_statuses", "upload", "delete_attachment"},
    "task": {"create", "list", "read", "update", "delete", "update_status", "comment", "attach"},
    "sprint": {"create", "read", "update", "delete", "add_issue", "remove_issue"},
    "personal_task": {"create", "list", "read", "update", "delete"},
}

_EMPLOYEE_CAPS = {
    "employee": set(),
    # list is filtered to membership; read requires membership (see can_view_project)
    "project": {"list"},
    "task": {"list"},
    "sprint": set(),
    "personal_task": {"create", "list", "read", "update", "delete"},
}

CAPABILITIES = {
    ROLE_ADMIN: _ADMIN_CAPS,
    ROLE_EMPLOYEE: _EMPLOYEE_CAPS,
}

# ── Relation grants ─────────────────────────────────────────────────────

RELATION_REPORTER = "reporter"
RELATION_ASSIGNEE = "assignee"
RELATION_MEMBER = "member"

RELATION_GRANTS = {
    RELATION_REPORTER: {
        ("task", "read"),
        ("task", "update"),
        ("task", "delete"),
        ("task", "update_status"),
        ("task", "comment"),
        ("task", "attach"),
        ("sprint", "add_issue"),
        ("sprint", "remove_issue"),
    },
    RELATION_ASSIGNEE: {
        ("task", "read"),
        ("task", "update_status"),
        ("task", "comment"),
        ("task", "attach"),
    },
    RELATION_MEMBER: {
        ("project", "read"),
        ("task", "read"),
        ("sprint", "read"),
    },
}


def is_project_member(user, project_id) -> bool:
    """True when at least one task of the project is assigned to the user."""
    stmt = select(
        exists()
        .where(Task.id == task_assignees.c.task_id)
        .where(task_assignees.c.user_id == user.id)
        .where(Task.project_id == project_id)
        .where(Task.company_id == user.company_id)
    )
    return bool(db.session.execute(stmt).scalar())


def member_project_ids(user) -> list[int]:
    """Distinct project ids of the tasks assigned to the user."""
    stmt = (
        select(Task.project_id)
        .join(task_assignees, task_assignees.c.task_id == Task.id)
        .where(task_assignees.c.user_id == user.id)
        .where(Task.company_id == user.company_id)
        .distinct()
    )
    return [row[0] for row in db.session.execute(stmt)]


def relations_for(user, target) -> set[str]:
    """Relations the user holds to the target entity."""
    relations = set()
    if target is None:
        return relations
    if isinstance(target, Task):
        if target.reporter_id == user.id:
            relations.add(RELATION_REPORTER)
        if target.is_assignee(user.id):
            relations.add(RELATION_ASSIGNEE)
    project_id = _project_id_of(target)
    if project_id is not None and is_project_member(user, project_id):
        relations.add(RELATION_MEMBER)
    return relations


def _project_id_of(target):
    from proflow.models.project import Project

    if isinstance(target, Project):
        return target.id
    return getattr(target, "project_id", None)


def ensure_same_company(user, target, resource: str = None) -> None:
    """Raise NotFoundError when the target lives in another company."""
    if target is None:
        raise NotFoundError(resource or "Resource")
    if getattr(target, "company_id", None) != user.company_id:
        logger.warning(
            "Cross-company access: user %s (company %s) → %s id=%s",
            user.id, user.company_id, type(target).__name__, getattr(target, "id", None),
        )
        raise NotFoundError(
            resource or type(target).__name__,
            resource_id=getattr(target, "id", None),
            company_id=user.company_id,
        )


def role_allows(role: str, resource: str, action: str) -> bool:
    return action in CAPABILITIES.get(role, {}).get(resource, set())


def can(user, resource: str, action: str, target=None) -> bool:
    """Pure decision: does the user hold the capability on the target?

    Company isolation is not part of the boolean answer; callers that hold
    a target must go through ``require`` so a foreign target becomes a 404.
    """
    if role_allows(user.role, resource, action):
        return True
    if target is None:
        return False
    return any(
        (resource, action) in RELATION_GRANTS.get(rel, set())
        for rel in relations_for(user, target)
    )


def require(user, resource: str, action: str, target=None) -> None:
    """Raise NotFoundError / AuthorizationError unless the action is allowed."""
    if target is not None:
        ensure_same_company(user, target)
    if not can(user, resource, action, target):
        logger.warning(
            "User %s (%s) denied %s.%s on %s",
            user.id, user.role, resource, action,
            f"{type(target).__name__} {target.id}" if target is not None else "-",
        )
        raise AuthorizationError(
            f"Not allowed to {action.replace('_', ' ')} this {resource.replace('_', ' ')}",
            action=f"{resource}.{action}",
        )


def require_capability(resource: str, action: str):
    """
    Decorator: role-level gate for routes that have no target yet
    (create / list). Target-level checks happen inside the services.

    Usage:
        @bp.route("/api/projects", methods=["POST"])
        @require_capability("project", "create")
        def create_project():
            ...
    """
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            require(g.current_user, resource, action)
            return f(*args, **kwargs)
        return decorated
    return decorator
