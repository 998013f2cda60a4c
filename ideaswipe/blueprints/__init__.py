"""
Idea Swipe
Blueprint helpers shared across API modules.
"""

from flask import g, request

from ideaswipe.utils.errors import E, api_error


def page_args(default_limit=50, max_limit=200):
    """``(limit, offset)`` from the query string, clamped; junk values fall back to defaults."""
    limit = request.args.get("limit", default_limit, type=int)
    offset = request.args.get("offset", 0, type=int)
    return max(1, min(limit, max_limit)), max(offset, 0)


def require_acting_user():
    """Return ``(user_id, None)`` or ``(None, error_response)`` when no identity is set."""
    user_id = getattr(g, "acting_user_id", None)
    if not user_id:
        return None, api_error(E.UNAUTHENTICATED, "X-User-Id header is required")
    return user_id, None
