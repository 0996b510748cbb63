"""Standardised API error responses.

Usage
-----
    from inframind.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Analysis not found")
    return api_error(E.VALIDATION, "Invalid content", details={"symptoms": "..."})

Service exceptions (``inframind.core.exceptions``) carry the same codes and
are rendered by the handlers registered in ``init_error_handlers``.
"""

from __future__ import annotations

import logging

from flask import jsonify, request
from werkzeug.exceptions import HTTPException

from inframind.core.exceptions import InframindError, ValidationError

logger = logging.getLogger(__name__)


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants."""

    # Input – HTTP 400 (malformed body) / 422 (rule violation)
    BAD_REQUEST = "ERR_BAD_REQUEST"
    VALIDATION = "ERR_VALIDATION"

    # Identity – HTTP 401 / 403
    UNAUTHORIZED = "ERR_UNAUTHORIZED"
    FORBIDDEN = "ERR_FORBIDDEN"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # State / concurrency – HTTP 409
    INVALID_STATE = "ERR_INVALID_STATE"
    CONFLICT = "ERR_CONFLICT"

    # Throttling – HTTP 429
    RATE_LIMITED = "ERR_RATE_LIMITED"

    # Server – HTTP 5xx
    DATABASE = "ERR_DATABASE"
    UNAVAILABLE = "ERR_UNAVAILABLE"
    INTERNAL = "ERR_INTERNAL"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.BAD_REQUEST: 400,
    E.VALIDATION: 422,
    E.UNAUTHORIZED: 401,
    E.FORBIDDEN: 403,
    E.NOT_FOUND: 404,
    E.INVALID_STATE: 409,
    E.CONFLICT: 409,
    E.RATE_LIMITED: 429,
    E.DATABASE: 503,
    E.UNAVAILABLE: 503,
    E.INTERNAL: 500,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Human-readable explanation for developers / UI.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    details : dict, optional
        Field-level breakdown, rendered as ``{}`` when absent.

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)`` – drop-in for Flask views.
    """

    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "error": message,
        "code": code,
        "details": details or {},
    }

    return jsonify(body), http_status


def status_for(code: str) -> int:
    """HTTP status the boundary uses for a service error code."""
    return _DEFAULT_STATUS.get(code, 500)


def init_error_handlers(app):
    """Register app-wide handlers that render every failure as ``api_error``."""

    @app.errorhandler(InframindError)
    def _handle_service_error(error: InframindError):
        http_status = status_for(error.code)
        details = error.details if isinstance(error, ValidationError) else None
        if http_status >= 500:
            logger.error("%s on %s %s: %s", error.code, request.method, request.path, error)
        else:
            logger.info("%s on %s %s: %s", error.code, request.method, request.path, error)
        return api_error(error.code, str(error), status=http_status, details=details)

    @app.errorhandler(HTTPException)
    def _handle_http(error: HTTPException):
        code = {
            400: E.BAD_REQUEST,
            401: E.UNAUTHORIZED,
            403: E.FORBIDDEN,
            404: E.NOT_FOUND,
            429: E.RATE_LIMITED,
        }.get(error.code, E.BAD_REQUEST if error.code < 500 else E.INTERNAL)
        return api_error(code, error.description or error.name, status=error.code)

    @app.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        logger.exception("Unexpected error on %s %s endpoint=%s",
                         request.method, request.path, request.endpoint)
        return api_error(E.INTERNAL, "Internal server error")
