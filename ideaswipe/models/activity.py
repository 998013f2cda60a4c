"""
Idea Swipe
User activity log.

Append-only facts ("user U liked / commented / edited idea I at time T").
Read in aggregate for inactivity detection; never updated.
"""

from enum import Enum

from ideaswipe.models import db
from ideaswipe.models.idea import _utcnow


class ActivityType(str, Enum):
    LIKE = "LIKE"
    COMMENT = "COMMENT"
    EDIT = "EDIT"
    STATUS_CHANGE = "STATUS_CHANGE"


ACTIVITY_TYPES = {a.value for a in ActivityType}


class ActivityRecord(db.Model):
    __tablename__ = "user_activities"
    __table_args__ = (
        db.Index("ix_user_activities_idea_created", "idea_id", "created_at"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    idea_id = db.Column(
        db.String(36), db.ForeignKey("ideas.id", ondelete="CASCADE"), nullable=False,
    )
    activity_type = db.Column(db.String(20), nullable=False,
                              comment="LIKE | COMMENT | EDIT | STATUS_CHANGE")
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "idea_id": self.idea_id,
            "activity_type": self.activity_type,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<ActivityRecord {self.activity_type} {self.user_id[:8]} -> {self.idea_id[:8]}>"
