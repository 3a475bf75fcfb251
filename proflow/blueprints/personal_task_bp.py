"""
Personal Task Blueprint — the caller's private to-do list.

Endpoints:
    POST   /api/personal-tasks         — Create
    GET    /api/personal-tasks         — List own entries
    GET    /api/personal-tasks/<id>    — Detail
    PUT    /api/personal-tasks/<id>    — Update
    DELETE /api/personal-tasks/<id>    — Delete
"""

from flask import Blueprint, jsonify

from proflow.blueprints import current_user, json_body, paginate_query
from proflow.services import personal_task_service as svc
from proflow.utils.helpers import db_commit_or_error

personal_task_bp = Blueprint("personal_task", __name__, url_prefix="/api/personal-tasks")


@personal_task_bp.route("", methods=["POST"])
def create_personal_task():
    item = svc.create_personal_task(current_user(), json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(item.to_dict()), 201


@personal_task_bp.route("", methods=["GET"])
def list_personal_tasks():
    items, total = paginate_query(svc.list_personal_tasks(current_user()))
    return jsonify({"items": [i.to_dict() for i in items], "total": total}), 200


@personal_task_bp.route("/<int:item_id>", methods=["GET"])
def get_personal_task(item_id):
    return jsonify(svc.get_personal_task(current_user(), item_id).to_dict()), 200


@personal_task_bp.route("/<int:item_id>", methods=["PUT"])
def update_personal_task(item_id):
    item = svc.update_personal_task(current_user(), item_id, json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(item.to_dict()), 200


@personal_task_bp.route("/<int:item_id>", methods=["DELETE"])
def delete_personal_task(item_id):
    svc.delete_personal_task(current_user(), item_id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Personal task deleted"}), 200
