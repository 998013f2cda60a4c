"""
Idea Swipe
Delegation Blueprint.

Endpoints:
    GET  /api/v1/delegations                  — pending requests for the acting user
    POST /api/v1/delegations/<id>/accept      — invited user takes ownership
    POST /api/v1/delegations/<id>/decline     — invited user refuses
    POST /api/v1/ideas/<id>/delegations       — owner hands the idea over manually

Outcome → HTTP:
    not_found 404, unauthorized 403, not_pending / already_pending 409
"""

import logging

from flask import Blueprint, jsonify, request

from ideaswipe.blueprints import require_acting_user
from ideaswipe.core.exceptions import AuthorizationError, NotFoundError
from ideaswipe.models import db
from ideaswipe.models.idea import Idea, User
from ideaswipe.models.progression import DelegationReason
from ideaswipe.services.delegation_service import DelegationCoordinator, DelegationOutcome
from ideaswipe.utils.errors import E, api_error, outcome_error

logger = logging.getLogger(__name__)

delegation_bp = Blueprint("delegation", __name__, url_prefix="/api/v1")

_OUTCOME_ERRORS = {
    DelegationOutcome.NOT_FOUND: (E.NOT_FOUND, "Delegation request not found"),
    DelegationOutcome.UNAUTHORIZED: (E.FORBIDDEN, "Only the invited user may respond to this request"),
    DelegationOutcome.NOT_PENDING: (E.CONFLICT_STATE, "Delegation request is no longer pending"),
    DelegationOutcome.ALREADY_PENDING: (E.CONFLICT_DUPLICATE, "Idea already has a pending delegation"),
    DelegationOutcome.FAILED: (E.DATABASE, "Delegation could not be saved"),
}


def _respond(result, success_status=200):
    err = outcome_error(_OUTCOME_ERRORS, result)
    if err:
        return err
    return jsonify(result.to_dict()), success_status


@delegation_bp.route("/delegations", methods=["GET"])
def list_delegations():
    user_id, err = require_acting_user()
    if err:
        return err
    pending = DelegationCoordinator().list_pending_for_user(user_id)
    return jsonify({"items": [d.to_dict() for d in pending], "total": len(pending)})


@delegation_bp.route("/delegations/<delegation_id>/accept", methods=["POST"])
def accept_delegation(delegation_id):
    user_id, err = require_acting_user()
    if err:
        return err
    return _respond(DelegationCoordinator().accept(delegation_id, user_id))


@delegation_bp.route("/delegations/<delegation_id>/decline", methods=["POST"])
def decline_delegation(delegation_id):
    user_id, err = require_acting_user()
    if err:
        return err
    return _respond(DelegationCoordinator().decline(delegation_id, user_id))


@delegation_bp.route("/ideas/<idea_id>/delegations", methods=["POST"])
def create_delegation(idea_id):
    """Owner-initiated hand-over (reason MANUAL or TOP_CONTRIBUTOR)."""
    user_id, err = require_acting_user()
    if err:
        return err

    idea = db.session.get(Idea, idea_id)
    if idea is None:
        raise NotFoundError(resource="Idea", resource_id=idea_id)
    if idea.user_id != user_id:
        raise AuthorizationError(user_id, "delegate", f"idea {idea_id}")

    data = request.get_json(silent=True) or {}
    to_user_id = (data.get("to_user_id") or "").strip()
    if not to_user_id:
        return api_error(E.VALIDATION_REQUIRED, "to_user_id is required")
    if db.session.get(User, to_user_id) is None:
        raise NotFoundError(resource="User", resource_id=to_user_id)

    reason = data.get("reason", DelegationReason.MANUAL.value)
    if reason not in (DelegationReason.MANUAL.value, DelegationReason.TOP_CONTRIBUTOR.value):
        return api_error(E.VALIDATION_INVALID, "reason must be MANUAL or TOP_CONTRIBUTOR")

    result = DelegationCoordinator().create_request(
        idea_id, to_user_id, reason,
        from_user_id=user_id,
        metadata={"auto_generated": False, "note": data.get("note")},
    )
    return _respond(result, success_status=201)
