"""
Employee Blueprint — admin-managed employee accounts.

Endpoints:
    POST /api/employees   — create employee in the caller's company
    GET  /api/employees   — list the company's employees
"""

from flask import Blueprint, jsonify

from proflow.blueprints import current_user, json_body, paginate_query
from proflow.services import user_service
from proflow.services.policy import require_capability
from proflow.utils.helpers import db_commit_or_error

employee_bp = Blueprint("employee", __name__, url_prefix="/api/employees")


@employee_bp.route("", methods=["POST"])
@require_capability("employee", "create")
def create_employee():
    user = user_service.create_employee(current_user().company_id, json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(user.to_dict()), 201


@employee_bp.route("", methods=["GET"])
@require_capability("employee", "list")
def list_employees():
    items, total = paginate_query(user_service.list_employees(current_user().company_id))
    return jsonify({"items": [u.to_dict() for u in items], "total": total}), 200
