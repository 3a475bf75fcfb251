"""
Task Blueprint — tasks, subtasks, comments, attachments.

Endpoints:
    POST   /api/tasks                               — Create (admin)
    GET    /api/tasks                               — List (filterable; employees: own)
    GET    /api/tasks/<id>                          — Detail (+ subtasks, comments, files)
    PUT    /api/tasks/<id>                          — Partial update (admin / reporter)
    DELETE /api/tasks/<id>                          — Delete with subtree (admin / reporter)
    PATCH  /api/tasks/<id>/status                   — Status only (admin / reporter / assignee)
    POST   /api/tasks/<id>/comments                 — Append comment
    POST   /api/tasks/<id>/attachments              — Upload file (multipart, 10 MB)
    GET    /api/tasks/<id>/attachments/<stored>     — Download file
"""

import logging
import os

from flask import Blueprint, jsonify, request, send_file

from proflow.blueprints import current_user, json_body, paginate_query
from proflow.core.exceptions import NotFoundError
from proflow.services import storage, task_service
from proflow.services.policy import require_capability
from proflow.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

task_bp = Blueprint("task", __name__, url_prefix="/api/tasks")


@task_bp.route("", methods=["POST"])
@require_capability("task", "create")
def create_task():
    task = task_service.create_task(current_user(), json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(task.to_dict(include_details=True)), 201


@task_bp.route("", methods=["GET"])
@require_capability("task", "list")
def list_tasks():
    """List tasks.

    Query params:
        project_id      — filter by project
        assignee_id     — filter by assignee (admins only)
        sprint_id       — sprint id, or "backlog" for tasks without a sprint
        parent_task_id  — parent id, or "root" for top-level tasks
    """
    query = task_service.list_tasks(current_user(), request.args)
    items, total = paginate_query(query)
    return jsonify({"items": [t.to_dict() for t in items], "total": total}), 200


@task_bp.route("/<int:task_id>", methods=["GET"])
def get_task(task_id):
    task = task_service.get_task(current_user(), task_id)
    return jsonify(task.to_dict(include_details=True)), 200


@task_bp.route("/<int:task_id>", methods=["PUT"])
def update_task(task_id):
    task = task_service.update_task(current_user(), task_id, json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(task.to_dict(include_details=True)), 200


@task_bp.route("/<int:task_id>/status", methods=["PATCH"])
def update_status(task_id):
    task = task_service.update_status(current_user(), task_id, json_body().get("status"))
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(task.to_dict()), 200


@task_bp.route("/<int:task_id>", methods=["DELETE"])
def delete_task(task_id):
    deleted, paths = task_service.delete_task(current_user(), task_id)
    err = db_commit_or_error()
    if err:
        return err
    for path in paths:
        storage.remove_file(path)
    return jsonify({"message": "Task deleted", "deleted": deleted}), 200


@task_bp.route("/<int:task_id>/comments", methods=["POST"])
def add_comment(task_id):
    comment = task_service.add_comment(current_user(), task_id, json_body().get("message"))
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(comment.to_dict()), 201


@task_bp.route("/<int:task_id>/attachments", methods=["POST"])
def upload_attachment(task_id):
    attachment = task_service.add_attachment(current_user(), task_id, request.files.get("file"))
    path = attachment.path
    err = db_commit_or_error()
    if err:
        storage.remove_file(path)
        return err
    return jsonify(attachment.to_dict()), 201


@task_bp.route("/<int:task_id>/attachments/<stored_filename>", methods=["GET"])
def download_attachment(task_id, stored_filename):
    attachment = task_service.get_attachment(current_user(), task_id, stored_filename)
    if not os.path.isfile(attachment.path):
        logger.error("Attachment %s has no file on disk", stored_filename)
        raise NotFoundError("Attachment", stored_filename)
    return send_file(
        attachment.path,
        mimetype=attachment.mime_type,
        as_attachment=True,
        download_name=attachment.filename,
    )
