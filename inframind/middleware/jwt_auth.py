"""
JWT Auth Middleware — resolves the caller's identity from a Bearer token.

Sets, for every /api/v1/ request:
    g.current_user_id  ← "sub" claim
    g.current_role     ← "role" claim (EMPLOYEE | MANAGER | OWNER)

Requests without a valid token are answered 401 before reaching a view.
Health probes skip authentication.
"""

import logging

import jwt as pyjwt
from flask import g, request

from inframind.models.auth import Role
from inframind.services.jwt_service import decode_access_token
from inframind.utils.errors import E, api_error

logger = logging.getLogger(__name__)

# Paths that skip JWT auth entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/health",
)


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.current_user_id = None
        g.current_role = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return None
        if request.method == "OPTIONS":
            return None
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return None

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return api_error(E.UNAUTHORIZED, "Authentication required")

        token = auth_header[7:].strip()
        try:
            payload = decode_access_token(token)
        except pyjwt.ExpiredSignatureError:
            return api_error(E.UNAUTHORIZED, "Token has expired")
        except pyjwt.InvalidTokenError as exc:
            logger.info("Rejected bearer token on %s: %s", path, exc)
            return api_error(E.UNAUTHORIZED, "Invalid token")

        try:
            role = Role(payload["role"])
        except ValueError:
            return api_error(E.FORBIDDEN, f"Unknown role {payload['role']!r}")

        g.current_user_id = str(payload["sub"])
        g.current_role = role
        return None
