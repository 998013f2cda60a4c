"""
Idea Swipe
Idea domain models.

Models:
    - User: wallet-backed identity
    - Idea: Target/Why/What/How/Impact pitch with a fixed lifecycle
    - Like: one "empathize" signal per (idea, user)
    - Comment: free-text feedback on an idea
    - Collaboration: explicit offer to work on an idea

Lifecycle (IDEA_TRANSITIONS):
    idea -> pre-draft -> draft -> commit -> in-progress -> test -> finish
    any non-archived status -> archive
"""

import uuid
from datetime import datetime, timezone
from enum import Enum

from ideaswipe.models import db


# ── Helpers ──────────────────────────────────────────────────────────────────

def _uuid():
    """Generate a new UUID4 string for primary keys."""
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Return ``value`` as an aware UTC datetime (SQLite hands back naive ones)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ── Lifecycle ────────────────────────────────────────────────────────────────

class IdeaStatus(str, Enum):
    IDEA = "idea"
    PRE_DRAFT = "pre-draft"
    DRAFT = "draft"
    COMMIT = "commit"
    IN_PROGRESS = "in-progress"
    TEST = "test"
    FINISH = "finish"
    ARCHIVE = "archive"


IDEA_STATUSES = {s.value for s in IdeaStatus}

IDEA_TRANSITIONS = {
    "idea":        ["pre-draft", "archive"],
    "pre-draft":   ["draft", "archive"],
    "draft":       ["commit", "archive"],
    "commit":      ["in-progress", "archive"],
    "in-progress": ["test", "archive"],
    "test":        ["finish", "archive"],
    "finish":      ["archive"],
    "archive":     [],
}

# Statuses that carry a like-ratio promotion rule.
AUTO_PROGRESSIBLE_STATUSES = ("idea", "pre-draft", "draft")

# Statuses where an idle owner can be replaced. From commit onwards the work
# lives in an external repository this platform has no authority over.
DELEGABLE_STATUSES = ("pre-draft", "draft")

COLLABORATION_ROLES = {"contributor", "co-owner", "mentor"}
COLLABORATION_TRANSITIONS = {
    "pending":  ["accepted", "declined"],
    "accepted": [],
    "declined": [],
}


def is_valid_transition(from_status: str | None, to_status: str) -> bool:
    """Return True when ``from_status -> to_status`` is an edge of the lifecycle."""
    if from_status is None:
        return to_status == IdeaStatus.IDEA.value
    return to_status in IDEA_TRANSITIONS.get(from_status, [])


# ═════════════════════════════════════════════════════════════════════════════
# User
# ═════════════════════════════════════════════════════════════════════════════

class User(db.Model):
    """Wallet-connected platform user. ``is_active`` drives the like-ratio denominator."""

    __tablename__ = "users"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    wallet_address = db.Column(db.String(100), unique=True, nullable=False, index=True)
    nickname = db.Column(db.String(100), nullable=True)
    avatar_url = db.Column(db.String(500), nullable=True)
    bio = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "wallet_address": self.wallet_address,
            "nickname": self.nickname,
            "avatar_url": self.avatar_url,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<User {self.id[:8]} {self.nickname or self.wallet_address}>"


# ═════════════════════════════════════════════════════════════════════════════
# Idea
# ═════════════════════════════════════════════════════════════════════════════

class Idea(db.Model):
    """
    A pitched concept.

    ``status`` is written only through the promotion executor and the manual
    lifecycle service (both use a conditional UPDATE on the current status).
    ``user_id`` is written only by the delegation coordinator once an idea
    exists. ``likes_count`` mirrors the number of live Like rows.
    """

    __tablename__ = "ideas"
    __table_args__ = (
        db.Index("ix_ideas_status_updated", "status", "updated_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    user_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True, index=True, comment="Current owner; NULL when unclaimed",
    )
    title = db.Column(db.String(200), nullable=False)
    target = db.Column(db.Text, default="")
    why_description = db.Column(db.Text, default="")
    what_description = db.Column(db.Text, default="")
    how_description = db.Column(db.Text, default="")
    impact_description = db.Column(db.Text, default="")

    status = db.Column(
        db.String(20), nullable=False, default=IdeaStatus.IDEA.value,
        comment="idea | pre-draft | draft | commit | in-progress | test | finish | archive",
    )
    likes_count = db.Column(db.Integer, nullable=False, default=0)
    comments_count = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), default=_utcnow,
        comment="Last mutation of status or content",
    )

    owner = db.relationship("User", foreign_keys=[user_id])

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "target": self.target,
            "why_description": self.why_description,
            "what_description": self.what_description,
            "how_description": self.how_description,
            "impact_description": self.impact_description,
            "status": self.status,
            "likes_count": self.likes_count,
            "comments_count": self.comments_count,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Idea {self.id[:8]} [{self.status}] {self.title[:30]}>"


class Like(db.Model):
    __tablename__ = "likes"
    __table_args__ = (
        db.UniqueConstraint("idea_id", "user_id", name="uq_likes_idea_user"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    idea_id = db.Column(
        db.String(36), db.ForeignKey("ideas.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    user_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def __repr__(self):
        return f"<Like {self.user_id[:8]} -> {self.idea_id[:8]}>"


class Comment(db.Model):
    __tablename__ = "comments"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    idea_id = db.Column(
        db.String(36), db.ForeignKey("ideas.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    user_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "idea_id": self.idea_id,
            "user_id": self.user_id,
            "content": self.content,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class Collaboration(db.Model):
    """
    Explicit offer to work on an idea.

    An accepted collaboration outranks passive engagement when the
    contributor ranker looks for a delegate.
    """

    __tablename__ = "collaborations"
    __table_args__ = (
        db.Index("ix_collaborations_idea_status", "idea_id", "status"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    idea_id = db.Column(
        db.String(36), db.ForeignKey("ideas.id", ondelete="CASCADE"), nullable=False,
    )
    user_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    role = db.Column(db.String(20), nullable=False, default="contributor",
                     comment="contributor | co-owner | mentor")
    status = db.Column(db.String(20), nullable=False, default="pending",
                       comment="pending | accepted | declined")
    message = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "idea_id": self.idea_id,
            "user_id": self.user_id,
            "role": self.role,
            "status": self.status,
            "message": self.message,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
