"""JSON error responses for the API.

Usage
-----
    from ideaswipe.utils.errors import api_error, outcome_error, E

    return api_error(E.NOT_FOUND, "Delegation request not found")

    # engine results (PromotionResult / DelegationResult) carry an outcome;
    # blueprints keep an {outcome: (code, message)} table and let this map it
    err = outcome_error(_OUTCOME_ERRORS, result)
    if err:
        return err
"""

from __future__ import annotations

from flask import jsonify


class E:
    """Error codes. Every code is ``ERR_`` + family + reason."""

    # 400
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"

    # 401 / 403
    UNAUTHENTICATED = "ERR_UNAUTHENTICATED"
    FORBIDDEN = "ERR_FORBIDDEN"

    # 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # 409: a concurrent writer got there first, or the row left the expected state
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"
    CONFLICT_STATE = "ERR_CONFLICT_STATE"

    # 422: not an edge of the idea lifecycle
    INVALID_TRANSITION = "ERR_INVALID_TRANSITION"

    # 429
    RATE_LIMITED = "ERR_RATE_LIMITED"

    # 500
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


_STATUS_BY_CODE: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.UNAUTHENTICATED: 401,
    E.FORBIDDEN: 403,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.CONFLICT_STATE: 409,
    E.INVALID_TRANSITION: 422,
    E.RATE_LIMITED: 429,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}


def api_error(code: str, message: str, *, status: int | None = None, details: dict | None = None):
    """``(jsonify({"error", "code"[, "details"]}), status)``; status defaults from the code, else 400."""
    body: dict = {"error": message, "code": code}
    if details:
        body["details"] = details
    return jsonify(body), status or _STATUS_BY_CODE.get(code, 400)


def outcome_error(table: dict, result):
    """Error response for a non-success engine outcome, or None when ``result`` succeeded."""
    entry = table.get(result.outcome)
    if entry is None:
        return None
    code, message = entry
    return api_error(code, message, details=result.to_dict())
