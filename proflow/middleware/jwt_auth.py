"""
JWT Auth Middleware — Parses JWT from Authorization header, sets g.jwt_*.

Every /api/ route except the public ones below requires
``Authorization: Bearer <token>``. A missing, malformed or expired token
is answered with 401 before any view runs.

Chain order:
  timing.py  →  jwt_auth.py  →  tenant_context.py  →  route handler
"""

import logging

import jwt as pyjwt
from flask import g, request

from proflow.services.jwt_service import decode_access_token
from proflow.utils.errors import E, api_error

logger = logging.getLogger(__name__)

# Paths that skip JWT auth entirely
JWT_SKIP_PREFIXES = (
    "/api/auth/admin-signup",
    "/api/auth/signin",
    "/api/auth/forgot-password",
    "/api/auth/reset-password",
    "/api/health",
)


def is_public_path(path: str) -> bool:
    return not path.startswith("/api/") or path.startswith(JWT_SKIP_PREFIXES)


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.jwt_user_id = None
        g.jwt_company_id = None
        g.jwt_role = None

        if request.method == "OPTIONS" or is_public_path(request.path):
            return None

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return api_error(E.UNAUTHORIZED, "Authentication required")

        token = auth_header[7:].strip()
        try:
            payload = decode_access_token(token)
        except pyjwt.ExpiredSignatureError:
            return api_error(E.TOKEN_EXPIRED, "Token expired")
        except pyjwt.InvalidTokenError as exc:
            logger.info("Rejected token on %s: %s", request.path, exc)
            return api_error(E.UNAUTHORIZED, "Invalid token")

        g.jwt_user_id = payload["id"]
        g.jwt_company_id = payload["company"]
        g.jwt_role = payload["role"]
        return None
