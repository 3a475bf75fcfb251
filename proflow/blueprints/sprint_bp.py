"""
Sprint Blueprint — sprint lifecycle and sprint↔task linkage.

Endpoints:
    POST   /api/sprints                 — Create (admin)
    GET    /api/sprints?project_id=     — List sprints of a project
    GET    /api/sprints/<id>            — Detail (+ issues)
    PUT    /api/sprints/<id>            — Edit / advance status (admin)
    DELETE /api/sprints/<id>            — Delete, tasks return to backlog (admin)
    POST   /api/sprints/add-issue       — {sprint_id, task_id} (admin / task reporter)
    POST   /api/sprints/remove-issue    — {sprint_id, task_id} (admin / task reporter)
"""

from flask import Blueprint, jsonify, request

from proflow.blueprints import current_user, json_body
from proflow.services import sprint_service
from proflow.services.policy import require_capability
from proflow.utils.helpers import db_commit_or_error

sprint_bp = Blueprint("sprint", __name__, url_prefix="/api/sprints")


@sprint_bp.route("", methods=["POST"])
@require_capability("sprint", "create")
def create_sprint():
    sprint = sprint_service.create_sprint(current_user(), json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(sprint.to_dict(include_issues=True)), 201


@sprint_bp.route("", methods=["GET"])
def list_sprints():
    sprints = sprint_service.list_sprints(current_user(), request.args.get("project_id"))
    return jsonify({"items": [s.to_dict() for s in sprints], "total": len(sprints)}), 200


@sprint_bp.route("/<int:sprint_id>", methods=["GET"])
def get_sprint(sprint_id):
    sprint = sprint_service.get_sprint(current_user(), sprint_id)
    return jsonify(sprint.to_dict(include_issues=True)), 200


@sprint_bp.route("/<int:sprint_id>", methods=["PUT"])
def update_sprint(sprint_id):
    sprint = sprint_service.update_sprint(current_user(), sprint_id, json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(sprint.to_dict(include_issues=True)), 200


@sprint_bp.route("/<int:sprint_id>", methods=["DELETE"])
def delete_sprint(sprint_id):
    released = sprint_service.delete_sprint(current_user(), sprint_id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Sprint deleted", "released_tasks": released}), 200


@sprint_bp.route("/add-issue", methods=["POST"])
def add_issue():
    sprint = sprint_service.add_issue(current_user(), json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(sprint.to_dict(include_issues=True)), 200


@sprint_bp.route("/remove-issue", methods=["POST"])
def remove_issue():
    sprint = sprint_service.remove_issue(current_user(), json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(sprint.to_dict(include_issues=True)), 200
