"""
Idea Swipe
Engagement Service.

Likes ("empathize" swipes), comments and collaboration offers. These are
the events that feed the progression engine:

    - every like/comment appends a user activity (inactivity detection)
    - likes keep ``Idea.likes_count`` equal to the live Like rows
    - a new like runs the inline progression check once the like is committed
    - accepted collaborations outrank passive engagement in delegation

Usage:
    from ideaswipe.services.engagement_service import toggle_like

    toggle_like(idea_id, user_id)
    # -> {"liked": True, "likes_count": 5, "promoted": False, "status": "idea"}
"""

from __future__ import annotations

import logging

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ideaswipe.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from ideaswipe.models import db
from ideaswipe.models.activity import ActivityType
from ideaswipe.models.idea import (
    COLLABORATION_ROLES,
    COLLABORATION_TRANSITIONS,
    Collaboration,
    Comment,
    Idea,
    Like,
    User,
    _utcnow,
)
from ideaswipe.services.activity_recorder import ActivityRecorder
from ideaswipe.services.auto_progression import AutoProgressionService
from ideaswipe.services.notification import NotificationService

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 2000


def _get_idea(idea_id: str) -> Idea:
    idea = db.session.get(Idea, idea_id)
    if idea is None:
        raise NotFoundError(resource="Idea", resource_id=idea_id)
    return idea


def _get_user(user_id: str) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError(resource="User", resource_id=user_id)
    return user


def _display_name(user: User) -> str:
    return user.nickname or f"{user.wallet_address[:6]}...{user.wallet_address[-4:]}"


# ═════════════════════════════════════════════════════════════════════════════
# Likes
# ═════════════════════════════════════════════════════════════════════════════

def toggle_like(idea_id: str, user_id: str) -> dict:
    """
    Like the idea, or remove an existing like.

    The like is committed before the inline progression check runs, so a
    failed or skipped promotion never loses the like itself.
    """
    idea = _get_idea(idea_id)
    _get_user(user_id)

    existing = Like.query.filter_by(idea_id=idea_id, user_id=user_id).first()
    liked = existing is None
    if existing:
        db.session.delete(existing)
        db.session.flush()
    else:
        db.session.add(Like(idea_id=idea_id, user_id=user_id))
        try:
            db.session.flush()
        except IntegrityError:
            # concurrent double-tap; the other request already stored it
            db.session.rollback()
            idea = _get_idea(idea_id)
            return {"liked": True, "likes_count": idea.likes_count, "promoted": False,
                    "status": idea.status}
        ActivityRecorder().record_activity(user_id, idea_id, ActivityType.LIKE.value)

    idea.likes_count = (
        db.session.query(func.count(Like.id)).filter(Like.idea_id == idea_id).scalar() or 0
    )
    if liked and idea.likes_count in current_app.config.get("LIKE_MILESTONES", ()):
        NotificationService.notify_like_milestone(idea, idea.likes_count)
    db.session.commit()

    promoted = False
    if liked:
        promoted = AutoProgressionService().check_single_idea(idea_id, triggered_by=user_id)
        if promoted:
            db.session.refresh(idea)

    logger.info("User %s %s idea %s (likes=%d, promoted=%s)",
                user_id, "liked" if liked else "unliked", idea_id, idea.likes_count, promoted)
    return {
        "liked": liked,
        "likes_count": idea.likes_count,
        "promoted": promoted,
        "status": idea.status,
    }


# ═════════════════════════════════════════════════════════════════════════════
# Comments
# ═════════════════════════════════════════════════════════════════════════════

def add_comment(idea_id: str, user_id: str, content: str) -> Comment:
    content = (content or "").strip()
    if not content:
        raise ValidationError("content is required", details={"content": "empty"})
    if len(content) > MAX_COMMENT_LENGTH:
        raise ValidationError(f"content must be at most {MAX_COMMENT_LENGTH} characters",
                              details={"content": "too_long"})

    idea = _get_idea(idea_id)
    commenter = _get_user(user_id)

    comment = Comment(idea_id=idea_id, user_id=user_id, content=content)
    db.session.add(comment)
    db.session.flush()
    idea.comments_count = (
        db.session.query(func.count(Comment.id)).filter(Comment.idea_id == idea_id).scalar() or 0
    )
    ActivityRecorder().record_activity(user_id, idea_id, ActivityType.COMMENT.value)
    if idea.user_id and idea.user_id != user_id:
        NotificationService.notify_comment(idea, _display_name(commenter))
    db.session.commit()
    return comment


# ═════════════════════════════════════════════════════════════════════════════
# Collaborations
# ═════════════════════════════════════════════════════════════════════════════

def request_collaboration(idea_id: str, user_id: str, role: str = "contributor",
                          message: str | None = None) -> Collaboration:
    if role not in COLLABORATION_ROLES:
        raise ValidationError(f"Invalid role: {role}", details={"role": sorted(COLLABORATION_ROLES)})

    idea = _get_idea(idea_id)
    requester = _get_user(user_id)
    if idea.user_id == user_id:
        raise ValidationError("Owners cannot collaborate on their own idea")

    open_request = Collaboration.query.filter(
        Collaboration.idea_id == idea_id,
        Collaboration.user_id == user_id,
        Collaboration.status.in_(["pending", "accepted"]),
    ).first()
    if open_request:
        raise ConflictError(resource="Collaboration", field="status", value=open_request.status)

    collab = Collaboration(idea_id=idea_id, user_id=user_id, role=role, message=message)
    db.session.add(collab)
    db.session.flush()
    if idea.user_id:
        NotificationService.notify_collaboration(idea, idea.user_id, "REQUEST", _display_name(requester))
    db.session.commit()
    return collab


def respond_collaboration(collaboration_id: str, acting_user_id: str, accept: bool) -> Collaboration:
    """Idea owner accepts or declines a pending collaboration offer."""
    collab = db.session.get(Collaboration, collaboration_id)
    if collab is None:
        raise NotFoundError(resource="Collaboration", resource_id=collaboration_id)
    idea = _get_idea(collab.idea_id)
    if idea.user_id != acting_user_id:
        raise AuthorizationError(acting_user_id, "respond to", "collaboration")
    new_status = "accepted" if accept else "declined"
    if new_status not in COLLABORATION_TRANSITIONS.get(collab.status, []):
        raise ConflictError(resource="Collaboration", field="status", value=collab.status)

    collab.status = new_status
    collab.updated_at = _utcnow()
    NotificationService.notify_collaboration(idea, collab.user_id, "ACCEPTED" if accept else "DECLINED")
    db.session.commit()
    logger.info("Collaboration %s on idea %s %s", collaboration_id, idea.id, collab.status)
    return collab
