"""
Idea Swipe
Progression & delegation models.

Models:
    - ProgressionRecord: append-only audit trail of status changes
    - ProgressionSetting: loadable like-ratio / inactivity rule table
    - DelegationRequest: ownership hand-over handshake (pending -> accepted | declined)

Concurrency guard:
    ``uq_idea_delegations_one_pending`` is a partial unique index on
    ``idea_delegations(idea_id) WHERE status = 'pending'``. Two sweeps racing
    on the same idle idea cannot both insert a pending request; the loser
    gets an IntegrityError and reports "already pending".
"""

from enum import Enum

from ideaswipe.models import db
from ideaswipe.models.idea import _utcnow, _uuid


# ── Constants ────────────────────────────────────────────────────────────────

class TriggerType(str, Enum):
    AUTO_PROGRESSION = "AUTO_PROGRESSION"
    LIKE_THRESHOLD = "LIKE_THRESHOLD"
    MANUAL = "MANUAL"
    INACTIVITY = "INACTIVITY"


class DelegationReason(str, Enum):
    INACTIVITY = "INACTIVITY"
    MANUAL = "MANUAL"
    TOP_CONTRIBUTOR = "TOP_CONTRIBUTOR"


class DelegationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


DELEGATION_TRANSITIONS = {
    "pending":  ["accepted", "declined"],
    "accepted": [],
    "declined": [],
}


class ProgressionRecord(db.Model):
    """
    One row per successful status change. Never updated or deleted.

    Rows for a single idea are causally ordered by ``created_at`` / ``id``.
    """

    __tablename__ = "idea_progressions"
    __table_args__ = (
        db.Index("ix_idea_progressions_idea_created", "idea_id", "created_at"),
    )

    id = db.Column(db.Integer, primary_key=True)
    idea_id = db.Column(
        db.String(36), db.ForeignKey("ideas.id", ondelete="CASCADE"), nullable=False,
    )
    from_status = db.Column(db.String(20), nullable=True, comment="NULL for creation")
    to_status = db.Column(db.String(20), nullable=False)
    trigger_type = db.Column(db.String(30), nullable=False,
                             comment="AUTO_PROGRESSION | LIKE_THRESHOLD | MANUAL | INACTIVITY")
    trigger_data = db.Column(db.JSON, nullable=True, comment="ratio, counts, reason text")
    triggered_by = db.Column(db.String(36), nullable=True, comment="Acting user, NULL when automated")
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "idea_id": self.idea_id,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "trigger_type": self.trigger_type,
            "trigger_data": self.trigger_data,
            "triggered_by": self.triggered_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<ProgressionRecord {self.idea_id[:8]}: {self.from_status}→{self.to_status}>"


class ProgressionSetting(db.Model):
    """
    Rule table consumed by the progression evaluator.

    Exactly one row per ``from_status`` so at most one rule can fire per idea
    per evaluation pass.
    """

    __tablename__ = "progression_settings"

    id = db.Column(db.Integer, primary_key=True)
    from_status = db.Column(db.String(20), unique=True, nullable=False)
    to_status = db.Column(db.String(20), nullable=False)
    like_threshold_percentage = db.Column(db.Float, nullable=True)
    minimum_likes = db.Column(db.Integer, nullable=True)
    inactivity_days = db.Column(db.Integer, nullable=True,
                                comment="Idle days before delegation; NULL = not delegable")
    auto_progression = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "like_threshold_percentage": self.like_threshold_percentage,
            "minimum_likes": self.minimum_likes,
            "inactivity_days": self.inactivity_days,
            "auto_progression": self.auto_progression,
        }

    def __repr__(self):
        return f"<ProgressionSetting {self.from_status}→{self.to_status}>"


class DelegationRequest(db.Model):
    """Proposed hand-over of an idea's ownership to ``to_user_id``."""

    __tablename__ = "idea_delegations"
    __table_args__ = (
        db.Index(
            "uq_idea_delegations_one_pending",
            "idea_id",
            unique=True,
            postgresql_where=db.text("status = 'pending'"),
            sqlite_where=db.text("status = 'pending'"),
        ),
        db.Index("ix_idea_delegations_to_user_status", "to_user_id", "status"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    idea_id = db.Column(
        db.String(36), db.ForeignKey("ideas.id", ondelete="CASCADE"), nullable=False,
    )
    from_user_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
        comment="Previous owner",
    )
    to_user_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        comment="Candidate delegate",
    )
    reason = db.Column(db.String(30), nullable=False,
                       comment="INACTIVITY | MANUAL | TOP_CONTRIBUTOR")
    status = db.Column(db.String(20), nullable=False, default=DelegationStatus.PENDING.value,
                       comment="pending | accepted | declined")
    context_data = db.Column(db.JSON, nullable=True, comment="days_inactive, auto_generated, ...")

    delegated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    accepted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    declined_at = db.Column(db.DateTime(timezone=True), nullable=True)

    idea = db.relationship("Idea", foreign_keys=[idea_id])

    @property
    def is_pending(self) -> bool:
        return self.status == DelegationStatus.PENDING.value

    def to_dict(self):
        return {
            "id": self.id,
            "idea_id": self.idea_id,
            "idea_title": self.idea.title if self.idea else None,
            "from_user_id": self.from_user_id,
            "to_user_id": self.to_user_id,
            "reason": self.reason,
            "status": self.status,
            "context_data": self.context_data,
            "delegated_at": self.delegated_at.isoformat() if self.delegated_at else None,
            "accepted_at": self.accepted_at.isoformat() if self.accepted_at else None,
            "declined_at": self.declined_at.isoformat() if self.declined_at else None,
        }

    def __repr__(self):
        return f"<DelegationRequest {self.idea_id[:8]} → {self.to_user_id[:8]} [{self.status}]>"
