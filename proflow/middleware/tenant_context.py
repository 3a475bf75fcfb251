"""
Tenant Context Middleware — Loads the caller and their company.

When a JWT-authenticated request arrives:
  1. g.jwt_user_id / g.jwt_company_id are already set by jwt_auth
  2. The user row is loaded and must still belong to the token's company
  3. g.current_user and g.company_id are set for the route handler

All downstream queries filter by g.company_id.
"""

import logging

from flask import g

from proflow.models import db
from proflow.models.auth import User
from proflow.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def init_tenant_context(app):
    """Register tenant context middleware as a before_request hook."""

    @app.before_request
    def _tenant_context():
        g.current_user = None
        g.company_id = None

        user_id = getattr(g, "jwt_user_id", None)
        if user_id is None:
            return None

        user = db.session.get(User, user_id)
        if user is None or user.company_id != g.jwt_company_id:
            logger.warning(
                "Token for user %s / company %s no longer matches a user",
                user_id, g.jwt_company_id,
            )
            return api_error(E.UNAUTHORIZED, "Invalid token")

        g.current_user = user
        g.company_id = user.company_id
        return None

    logger.debug("Tenant context middleware installed")
