"""
Project Blueprint — projects, status vocabulary, backlog, project files.

Endpoints:
    POST   /api/projects                                  — Create (admin)
    GET    /api/projects                                  — List (employees: own projects)
    GET    /api/projects/<id>                             — Detail (+ attachments)
    PUT    /api/projects/<id>/statuses                    — Replace status vocabulary (admin)
    GET    /api/projects/<id>/backlog                     — Tasks with no sprint
    POST   /api/projects/<id>/attachments                 — Upload file (admin, multipart)
    GET    /api/projects/<id>/attachments                 — List files
    GET    /api/projects/<id>/attachments/<stored>        — Download file
    DELETE /api/projects/<id>/attachments/<stored>        — Delete file (admin)
"""

import logging
import os

from flask import Blueprint, jsonify, request, send_file

from proflow.blueprints import current_user, json_body, paginate_query
from proflow.core.exceptions import NotFoundError
from proflow.services import project_service, storage
from proflow.services.policy import require_capability
from proflow.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

project_bp = Blueprint("project", __name__, url_prefix="/api/projects")


@project_bp.route("", methods=["POST"])
@require_capability("project", "create")
def create_project():
    project = project_service.create_project(current_user(), json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(project.to_dict()), 201


@project_bp.route("", methods=["GET"])
@require_capability("project", "list")
def list_projects():
    items, total = paginate_query(project_service.list_projects(current_user()))
    return jsonify({"items": [p.to_dict() for p in items], "total": total}), 200


@project_bp.route("/<int:project_id>", methods=["GET"])
def get_project(project_id):
    project = project_service.get_project(current_user(), project_id)
    return jsonify(project.to_dict(include_attachments=True)), 200


@project_bp.route("/<int:project_id>/statuses", methods=["PUT"])
def update_statuses(project_id):
    data = json_body()
    project, repaired = project_service.update_statuses(
        current_user(), project_id, data.get("statuses"),
    )
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"project": project.to_dict(), "repaired_tasks": repaired}), 200


@project_bp.route("/<int:project_id>/backlog", methods=["GET"])
def backlog(project_id):
    tasks = project_service.list_backlog(current_user(), project_id)
    return jsonify({"items": [t.to_dict() for t in tasks], "total": len(tasks)}), 200


# ── Attachments ─────────────────────────────────────────────────────────────

@project_bp.route("/<int:project_id>/attachments", methods=["POST"])
def upload_attachment(project_id):
    attachment = project_service.add_attachment(
        current_user(), project_id,
        request.files.get("file"),
        description=request.form.get("description"),
    )
    path = storage.resolve_path(storage.PROJECT_FILES, attachment.stored_filename)
    err = db_commit_or_error()
    if err:
        storage.remove_file(path)
        return err
    return jsonify(attachment.to_dict()), 201


@project_bp.route("/<int:project_id>/attachments", methods=["GET"])
def list_attachments(project_id):
    items = project_service.list_attachments(current_user(), project_id)
    return jsonify({"items": [a.to_dict() for a in items], "total": len(items)}), 200


@project_bp.route("/<int:project_id>/attachments/<stored_filename>", methods=["GET"])
def download_attachment(project_id, stored_filename):
    attachment, path = project_service.get_attachment(current_user(), project_id, stored_filename)
    if not os.path.isfile(path):
        logger.error("Attachment %s has no file on disk", stored_filename)
        raise NotFoundError("Attachment", stored_filename)
    return send_file(
        path,
        mimetype=attachment.mime_type,
        as_attachment=True,
        download_name=attachment.filename,
    )


@project_bp.route("/<int:project_id>/attachments/<stored_filename>", methods=["DELETE"])
def delete_attachment(project_id, stored_filename):
    path = project_service.delete_attachment(current_user(), project_id, stored_filename)
    err = db_commit_or_error()
    if err:
        return err
    storage.remove_file(path)
    return jsonify({"message": "Attachment deleted"}), 200
