"""Personal task service — private to-do entries scoped to (user, company)."""
import logging

from proflow.core.exceptions import ValidationError
from proflow.models import db
from proflow.models.personal_task import (
    PERSONAL_TASK_PRIORITIES,
    PERSONAL_TASK_STATUSES,
    PersonalTask,
)
from proflow.services.helpers.scoped_queries import get_scoped
from proflow.utils.helpers import clean_str

logger = logging.getLogger(__name__)


def _choice(value, allowed, field):
    if value not in allowed:
        raise ValidationError(
            f"{field} must be one of: {', '.join(allowed)}", details={field: "invalid"},
        )
    return value


def create_personal_task(user, data: dict) -> PersonalTask:
    item = PersonalTask(
        company_id=user.company_id,
        user_id=user.id,
        title=clean_str(data.get("title"), "title", 200, required=True),
        description=clean_str(data.get("description"), "description") or "",
        priority=_choice(data.get("priority") or "Low", PERSONAL_TASK_PRIORITIES, "priority"),
        status=_choice(data.get("status") or "Todo", PERSONAL_TASK_STATUSES, "status"),
    )
    db.session.add(item)
    db.session.flush()
    return item


def list_personal_tasks(user):
    return (
        PersonalTask.query_for_company(user.company_id)
        .filter_by(user_id=user.id)
        .order_by(PersonalTask.created_at.desc(), PersonalTask.id.desc())
    )


def get_personal_task(user, item_id: int) -> PersonalTask:
    """Another user's entry is indistinguishable from a missing one."""
    return get_scoped(PersonalTask, item_id, company_id=user.company_id, user_id=user.id)


def update_personal_task(user, item_id: int, data: dict) -> PersonalTask:
    item = get_personal_task(user, item_id)
    changes = {}
    if "title" in data:
        changes["title"] = clean_str(data["title"], "title", 200, required=True)
    if "description" in data:
        changes["description"] = clean_str(data["description"], "description") or ""
    if "priority" in data:
        changes["priority"] = _choice(data["priority"], PERSONAL_TASK_PRIORITIES, "priority")
    if "status" in data:
        changes["status"] = _choice(data["status"], PERSONAL_TASK_STATUSES, "status")
    for field, value in changes.items():
        setattr(item, field, value)
    db.session.flush()
    return item


def delete_personal_task(user, item_id: int) -> None:
    item = get_personal_task(user, item_id)
    db.session.delete(item)
    db.session.flush()
    logger.debug("Personal task %s deleted by user %s", item_id, user.id)
