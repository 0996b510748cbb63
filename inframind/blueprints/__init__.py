"""
InfraMind Analysis Platform
Blueprint registry and shared request helpers.
"""

from flask import abort, current_app, g, request

from inframind.core.exceptions import ValidationError
from inframind.services.capability import Actor


def page_args():
    """Read limit/offset from the query string, clamped to configured bounds.

    Returns:
        (limit, offset)
    """
    default_limit = current_app.config.get("DEFAULT_PAGE_SIZE", 50)
    max_limit = current_app.config.get("MAX_PAGE_SIZE", 200)
    try:
        limit = min(max(int(request.args.get("limit", default_limit)), 1), max_limit)
    except (ValueError, TypeError):
        limit = default_limit
    try:
        offset = max(int(request.args.get("offset", 0)), 0)
    except (ValueError, TypeError):
        offset = 0
    return limit, offset


def json_body() -> dict:
    """Parsed JSON object body; anything else is answered 400."""
    data = request.get_json(silent=True)
    if data is None and not request.get_data():
        return {}
    if not isinstance(data, dict):
        abort(400, description="Request body must be a JSON object")
    return data


def version_token(data: dict):
    """Optimistic version token from the body ``version`` or the If-Match header.

    ``If-Match`` accepts the ETag form returned by GET (``"3"``) or a bare
    integer. A missing or non-integer token raises ValidationError.
    """
    if "version" in data:
        token = data["version"]
    else:
        raw = request.headers.get("If-Match", "").strip()
        if raw.startswith("W/"):
            raw = raw[2:]
        raw = raw.strip('"')
        try:
            token = int(raw) if raw else None
        except ValueError:
            token = None
    if not isinstance(token, int) or isinstance(token, bool):
        raise ValidationError(
            "A version token is required",
            details={"version": "send the version last read in the body or an If-Match header"},
        )
    return token


def current_actor() -> Actor:
    """Actor resolved by the JWT middleware for this request."""
    return Actor(user_id=g.current_user_id, role=g.current_role)


def paginated(items, total, limit, offset, **extra):
    body = {
        "items": [item.to_dict() for item in items],
        "total": total,
        "limit": limit,
        "offset": offset,
    }
    body.update(extra)
    return body
