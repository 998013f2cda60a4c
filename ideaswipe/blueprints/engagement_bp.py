"""
Idea Swipe
Engagement Blueprint.

Endpoints:
    POST /api/v1/ideas/<id>/likes              — toggle like (runs inline progression check)
    POST /api/v1/ideas/<id>/comments           — add comment
    GET  /api/v1/ideas/<id>/comments           — list comments
    POST /api/v1/ideas/<id>/collaborations     — offer to collaborate
    POST /api/v1/collaborations/<id>/respond   — owner accepts / declines
"""

import logging

from flask import Blueprint, jsonify, request

from ideaswipe.blueprints import page_args, require_acting_user
from ideaswipe.core.exceptions import NotFoundError
from ideaswipe.models import db
from ideaswipe.models.idea import Comment, Idea
from ideaswipe.services import engagement_service
from ideaswipe.utils.errors import E, api_error

logger = logging.getLogger(__name__)

engagement_bp = Blueprint("engagement", __name__, url_prefix="/api/v1")


@engagement_bp.route("/ideas/<idea_id>/likes", methods=["POST"])
def toggle_like(idea_id):
    user_id, err = require_acting_user()
    if err:
        return err
    return jsonify(engagement_service.toggle_like(idea_id, user_id))


@engagement_bp.route("/ideas/<idea_id>/comments", methods=["GET"])
def list_comments(idea_id):
    if db.session.get(Idea, idea_id) is None:
        raise NotFoundError(resource="Idea", resource_id=idea_id)
    query = Comment.query.filter_by(idea_id=idea_id).order_by(Comment.created_at.desc())
    limit, offset = page_args()
    total = query.count()
    items = query.limit(limit).offset(offset).all()
    return jsonify({"items": [c.to_dict() for c in items], "total": total})


@engagement_bp.route("/ideas/<idea_id>/comments", methods=["POST"])
def add_comment(idea_id):
    user_id, err = require_acting_user()
    if err:
        return err
    data = request.get_json(silent=True) or {}
    comment = engagement_service.add_comment(idea_id, user_id, data.get("content", ""))
    return jsonify(comment.to_dict()), 201


@engagement_bp.route("/ideas/<idea_id>/collaborations", methods=["POST"])
def request_collaboration(idea_id):
    user_id, err = require_acting_user()
    if err:
        return err
    data = request.get_json(silent=True) or {}
    collab = engagement_service.request_collaboration(
        idea_id, user_id, role=data.get("role", "contributor"), message=data.get("message"),
    )
    return jsonify(collab.to_dict()), 201


@engagement_bp.route("/collaborations/<collaboration_id>/respond", methods=["POST"])
def respond_collaboration(collaboration_id):
    user_id, err = require_acting_user()
    if err:
        return err
    data = request.get_json(silent=True) or {}
    if not isinstance(data.get("accept"), bool):
        return api_error(E.VALIDATION_REQUIRED, "accept (boolean) is required")
    collab = engagement_service.respond_collaboration(collaboration_id, user_id, data["accept"])
    return jsonify(collab.to_dict())
