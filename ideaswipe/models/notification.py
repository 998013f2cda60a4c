"""
Idea Swipe
Notification domain model.

Models:
    - Notification: per-recipient outbox row with read tracking

Delivery (push, poll, realtime) happens elsewhere; rows here are the
persisted record of what the engine wanted a user to know.
"""

from ideaswipe.models import db
from ideaswipe.models.idea import _utcnow, _uuid


# ── Constants ────────────────────────────────────────────────────────────────

NOTIFICATION_TYPES = {"STATUS_CHANGE", "DELEGATION", "LIKE_MILESTONE", "COMMENT", "COLLABORATION"}


class Notification(db.Model):
    """
    In-app notification entity.

    One record per recipient per event.
    """

    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notifications_user_created", "user_id", "created_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    user_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        comment="Recipient",
    )
    idea_id = db.Column(
        db.String(36), db.ForeignKey("ideas.id", ondelete="CASCADE"), nullable=True, index=True,
    )
    type = db.Column(db.String(30), nullable=False, default="STATUS_CHANGE",
                     comment="STATUS_CHANGE | DELEGATION | LIKE_MILESTONE | COMMENT | COLLABORATION")
    title = db.Column(db.String(300), nullable=False)
    message = db.Column(db.Text, default="")
    action_required = db.Column(db.Boolean, nullable=False, default=False)
    data = db.Column(db.JSON, nullable=True)

    # Read tracking
    read_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    @property
    def is_read(self) -> bool:
        return self.read_at is not None

    def mark_read(self):
        self.read_at = _utcnow()

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "idea_id": self.idea_id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "action_required": self.action_required,
            "data": self.data,
            "is_read": self.is_read,
            "read_at": self.read_at.isoformat() if self.read_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Notification {self.id[:8]}: {self.title[:40]}>"
