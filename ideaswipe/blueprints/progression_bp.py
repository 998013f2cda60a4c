"""
Idea Swipe
Progression Blueprint.

Endpoints:
    POST /api/v1/progression/sweep                 — manual full sweep (operator)
    POST /api/v1/ideas/<id>/progression-check      — single idea evaluation
    GET  /api/v1/progression/stats                 — stage counts, progression rate
    GET  /api/v1/progression/rules                 — active rule table
    GET  /api/v1/ideas/<id>/progressions           — history + available transitions
    POST /api/v1/ideas/<id>/transition             — owner-driven manual transition
"""

from __future__ import annotations

import hmac
import logging

from flask import Blueprint, current_app, jsonify, request

from ideaswipe.blueprints import require_acting_user
from ideaswipe.models import db
from ideaswipe.models.idea import Idea
from ideaswipe.services.activity_recorder import ActivityRecorder
from ideaswipe.services.auto_progression import AutoProgressionService
from ideaswipe.services.idea_lifecycle import (
    get_available_transitions,
    get_progression_history,
    transition_idea,
)
from ideaswipe.services.progression_rules import load_rules
from ideaswipe.services.promotion_executor import PromotionOutcome
from ideaswipe.utils.errors import E, api_error, outcome_error

logger = logging.getLogger(__name__)

progression_bp = Blueprint("progression", __name__, url_prefix="/api/v1")

_OUTCOME_ERRORS = {
    PromotionOutcome.SKIPPED: (E.CONFLICT_STATE, "Idea status changed concurrently; nothing applied"),
    PromotionOutcome.INVALID_TRANSITION: (E.INVALID_TRANSITION, "Transition not allowed from current status"),
    PromotionOutcome.FAILED: (E.DATABASE, "Transition could not be saved"),
}


def _operator_key_ok() -> bool:
    expected = current_app.config.get("ADMIN_API_KEY")
    if not expected:
        return True
    supplied = request.headers.get("X-Admin-Key", "")
    return hmac.compare_digest(supplied, expected)


# ═══════════════════════════════════════════════════════════════════════════
#  Sweep & checks
# ═══════════════════════════════════════════════════════════════════════════

@progression_bp.route("/progression/sweep", methods=["POST"])
def run_sweep():
    if not _operator_key_ok():
        return api_error(E.FORBIDDEN, "Valid X-Admin-Key header required")

    try:
        result = AutoProgressionService().run_full_sweep()
    except Exception:
        logger.exception("Manual sweep failed before processing ideas")
        db.session.rollback()
        return api_error(E.DATABASE, "Sweep could not start")
    return jsonify(result.to_dict()), 200


@progression_bp.route("/ideas/<idea_id>/progression-check", methods=["POST"])
def check_idea(idea_id):
    if db.session.get(Idea, idea_id) is None:
        return api_error(E.NOT_FOUND, "Idea not found")

    promoted = AutoProgressionService().check_single_idea(idea_id)
    idea = db.session.get(Idea, idea_id)
    return jsonify({"idea_id": idea_id, "promoted": promoted, "status": idea.status})


@progression_bp.route("/progression/stats", methods=["GET"])
def progression_stats():
    return jsonify(AutoProgressionService().get_progression_stats())


@progression_bp.route("/progression/rules", methods=["GET"])
def progression_rules():
    return jsonify({"rules": [rule.to_dict() for rule in load_rules()]})


# ═══════════════════════════════════════════════════════════════════════════
#  Per-idea history & manual transitions
# ═══════════════════════════════════════════════════════════════════════════

@progression_bp.route("/ideas/<idea_id>/progressions", methods=["GET"])
def idea_progressions(idea_id):
    history = get_progression_history(idea_id)
    idea = db.session.get(Idea, idea_id)
    return jsonify({
        "idea_id": idea_id,
        "status": idea.status,
        "available_transitions": get_available_transitions(idea),
        "activity": ActivityRecorder().activity_counts(idea_id),
        "history": [record.to_dict() for record in history],
    })


@progression_bp.route("/ideas/<idea_id>/transition", methods=["POST"])
def manual_transition(idea_id):
    user_id, err = require_acting_user()
    if err:
        return err

    data = request.get_json(silent=True) or {}
    to_status = (data.get("to_status") or "").strip()
    if not to_status:
        return api_error(E.VALIDATION_REQUIRED, "to_status is required")

    result = transition_idea(idea_id, to_status, user_id, reason=data.get("reason"))
    err = outcome_error(_OUTCOME_ERRORS, result)
    if err:
        return err
    return jsonify(result.to_dict()), 200
