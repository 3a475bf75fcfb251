"""Project service layer — projects, status vocabulary, backlog, files.

Transaction policy: methods use flush() for ID generation, never commit().
Caller (route handler) is responsible for db.session.commit().

Operations:
- Project create / get / list (employees see only projects they work in)
- Status vocabulary replacement with task repair
- Backlog listing (tasks without a sprint)
- Project attachments: upload / list / fetch / delete
"""
import logging

from sqlalchemy import false

from proflow.core.exceptions import NotFoundError, ValidationError
from proflow.models import db
from proflow.models.project import (
    DEFAULT_STATUSES,
    PROJECT_ATTACHMENT_MIME_TYPES,
    Project,
    ProjectAttachment,
)
from proflow.models.task import Task
from proflow.services import policy, storage
from proflow.services.helpers.scoped_queries import get_scoped
from proflow.utils.helpers import check_date_range, clean_str, parse_date_input

logger = logging.getLogger(__name__)

MAX_STATUS_LENGTH = 100


def normalize_statuses(raw) -> list[str]:
    """Trim, require non-empty unique strings, keep order."""
    if not isinstance(raw, list) or not raw:
        raise ValidationError(
            "statuses must be a non-empty list of strings",
            details={"statuses": "non-empty list required"},
        )
    result = []
    seen = set()
    for value in raw:
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(
                "statuses must contain only non-empty strings",
                details={"statuses": "blank or non-string entry"},
            )
        value = value.strip()
        if len(value) > MAX_STATUS_LENGTH:
            raise ValidationError(
                f"status labels must be at most {MAX_STATUS_LENGTH} characters",
                details={"statuses": value[:20]},
            )
        if value in seen:
            raise ValidationError(
                f"Duplicate status '{value}'", details={"statuses": "duplicate"},
            )
        seen.add(value)
        result.append(value)
    return result


# ═══════════════════════════════════════════════════════════════
# Projects
# ═══════════════════════════════════════════════════════════════
def create_project(user, data: dict) -> Project:
    name = clean_str(data.get("name"), "name", 100, required=True)
    statuses = data.get("statuses")
    statuses = list(DEFAULT_STATUSES) if statuses is None else normalize_statuses(statuses)
    start_date = parse_date_input(data.get("start_date"), "start_date")
    end_date = parse_date_input(data.get("end_date"), "end_date")
    check_date_range(start_date, end_date)

    project = Project(
        company_id=user.company_id,
        name=name,
        description=clean_str(data.get("description"), "description", 2000) or "",
        customer=clean_str(data.get("customer"), "customer", 100) or "",
        statuses=statuses,
        start_date=start_date,
        end_date=end_date,
        created_by_id=user.id,
        updated_by_id=user.id,
    )
    db.session.add(project)
    db.session.flush()
    logger.info("Project %s created in company %s", project.id, user.company_id)
    return project


def get_project(user, project_id: int, action: str = "read") -> Project:
    """Company-scoped lookup followed by the policy check for ``action``."""
    project = get_scoped(Project, project_id, company_id=user.company_id)
    policy.require(user, "project", action, project)
    return project


def list_projects(user):
    query = Project.query_for_company(user.company_id)
    if not user.is_admin:
        ids = policy.member_project_ids(user)
        if not ids:
            return query.filter(false())
        query = query.filter(Project.id.in_(ids))
    return query.order_by(Project.created_at.desc(), Project.id.desc())


def update_statuses(user, project_id: int, raw_statuses) -> tuple[Project, int]:
    """Replace the vocabulary; tasks on a removed status move to statuses[0].

    Returns (project, repaired_task_count).
    """
    project = get_project(user, project_id, "update_statuses")
    statuses = normalize_statuses(raw_statuses)

    repaired = (
        Task.query.filter(
            Task.project_id == project.id,
            Task.company_id == project.company_id,
            Task.status.notin_(statuses),
        ).update({Task.status: statuses[0]}, synchronize_session="fetch")
    )
    project.statuses = statuses
    project.updated_by_id = user.id
    db.session.flush()
    logger.info(
        "Project %s statuses replaced (%d entries), %d task(s) moved to '%s'",
        project.id, len(statuses), repaired, statuses[0],
    )
    return project, repaired


def list_backlog(user, project_id: int):
    project = get_project(user, project_id)
    return (
        Task.query.filter_by(
            company_id=project.company_id, project_id=project.id, sprint_id=None,
        )
        .order_by(Task.created_at.desc(), Task.id.desc())
        .all()
    )


# ═══════════════════════════════════════════════════════════════
# Attachments
# ═══════════════════════════════════════════════════════════════
def add_attachment(user, project_id: int, file_storage, description=None) -> ProjectAttachment:
    """Store the file and record it. The file is removed again if the row fails."""
    project = get_project(user, project_id, "upload")
    description = clean_str(description, "description", 500) or ""
    stored = storage.save_upload(
        file_storage, storage.PROJECT_FILES, allowed_mime_types=PROJECT_ATTACHMENT_MIME_TYPES,
    )
    attachment = ProjectAttachment(
        project_id=project.id,
        filename=stored.filename,
        stored_filename=stored.stored_filename,
        mime_type=stored.mime_type,
        size=stored.size,
        description=description,
        uploaded_by_id=user.id,
    )
    try:
        db.session.add(attachment)
        db.session.flush()
    except Exception:
        storage.remove_file(stored.path)
        raise
    logger.info("Attachment %s added to project %s", attachment.id, project.id)
    return attachment


def list_attachments(user, project_id: int):
    project = get_project(user, project_id)
    return list(project.attachments)


def get_attachment(user, project_id: int, stored_filename: str, action: str = "read"):
    """Returns (attachment, absolute_path)."""
    project = get_project(user, project_id, action)
    attachment = ProjectAttachment.query.filter_by(
        project_id=project.id, stored_filename=stored_filename,
    ).first()
    if attachment is None:
        raise NotFoundError("Attachment", stored_filename)
    return attachment, storage.resolve_path(storage.PROJECT_FILES, attachment.stored_filename)


def delete_attachment(user, project_id: int, stored_filename: str) -> str:
    """Delete the row; returns the file path for removal after commit."""
    attachment, path = get_attachment(user, project_id, stored_filename, "delete_attachment")
    db.session.delete(attachment)
    db.session.flush()
    logger.info("Attachment %s removed from project %s", stored_filename, project_id)
    return path
