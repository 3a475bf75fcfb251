"""
Auth Blueprint — company signup, sign-in, password reset, current user.

Endpoints:
    POST /api/auth/admin-signup     — create company + admin, returns token
    POST /api/auth/signin           — issue token
    POST /api/auth/forgot-password  — email a reset link
    POST /api/auth/reset-password   — consume a reset token
    GET  /api/auth/me               — current user with company
"""

import logging

from flask import Blueprint, current_app, jsonify

from proflow.blueprints import current_user, json_body
from proflow.services import user_service
from proflow.services.jwt_service import token_response
from proflow.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")

_RESET_ACK = "If that email is registered, a reset link has been sent"


@auth_bp.route("/admin-signup", methods=["POST"])
def admin_signup():
    admin = user_service.signup_company(json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(token_response(admin)), 201


@auth_bp.route("/signin", methods=["POST"])
def signin():
    data = json_body()
    user = user_service.authenticate(data.get("email"), data.get("password"))
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(token_response(user)), 200


@auth_bp.route("/forgot-password", methods=["POST"])
def forgot_password():
    data = json_body()
    token = user_service.request_password_reset(data.get("email"))
    err = db_commit_or_error()
    if err:
        return err
    body = {"message": _RESET_ACK}
    # Exposed only under TESTING so the suite can finish the flow without SMTP
    if current_app.testing and token:
        body["reset_token"] = token
    return jsonify(body), 200


@auth_bp.route("/reset-password", methods=["POST"])
def reset_password():
    data = json_body()
    user_service.reset_password(data.get("token"), data.get("new_password"))
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Password has been reset"}), 200


@auth_bp.route("/me", methods=["GET"])
def me():
    return jsonify(current_user().to_dict(include_company=True)), 200
