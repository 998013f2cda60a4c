"""
Idea Swipe
Promotion Executor.

Applies a status change exactly once, no matter how many triggers race on
the same idea. The guard is a compare-and-swap UPDATE:

    UPDATE ideas SET status = :to, updated_at = now()
     WHERE id = :id AND status = :from

Zero rows touched means somebody else already moved the idea; that is a
``skipped`` outcome, not an error. On success the same transaction appends
one ProgressionRecord and the owner's STATUS_CHANGE notification.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from ideaswipe.models import db
from ideaswipe.models.activity import ActivityType
from ideaswipe.models.idea import Idea, _utcnow, is_valid_transition
from ideaswipe.models.progression import ProgressionRecord, TriggerType
from ideaswipe.services.activity_recorder import ActivityRecorder
from ideaswipe.services.notification import NotificationService

logger = logging.getLogger(__name__)


class PromotionOutcome(str, Enum):
    PROMOTED = "promoted"
    SKIPPED = "skipped"
    INVALID_TRANSITION = "invalid_transition"
    FAILED = "failed"


@dataclass
class PromotionResult:
    idea_id: str
    outcome: PromotionOutcome
    from_status: str | None = None
    to_status: str | None = None
    record_id: int | None = None
    error: str | None = None

    @property
    def promoted(self) -> bool:
        return self.outcome == PromotionOutcome.PROMOTED

    def to_dict(self) -> dict:
        return {
            "idea_id": self.idea_id,
            "outcome": self.outcome.value,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "record_id": self.record_id,
            "error": self.error,
        }


class PromotionExecutor:
    """Guarded status writer. One call = one transaction."""

    def __init__(self, session=None, notifier=NotificationService):
        self.session = session or db.session
        self.notifier = notifier

    def promote(
        self,
        idea_id: str,
        from_status: str,
        to_status: str,
        reason: str,
        *,
        trigger_type: str = TriggerType.AUTO_PROGRESSION.value,
        trigger_data: dict | None = None,
        triggered_by: str | None = None,
    ) -> PromotionResult:
        """Move ``idea_id`` from ``from_status`` to ``to_status`` if it is still there."""
        result = PromotionResult(idea_id=idea_id, outcome=PromotionOutcome.SKIPPED,
                                 from_status=from_status, to_status=to_status)

        if not is_valid_transition(from_status, to_status):
            logger.warning("Rejected transition %s -> %s for idea %s", from_status, to_status, idea_id)
            result.outcome = PromotionOutcome.INVALID_TRANSITION
            return result

        try:
            updated = (
                self.session.query(Idea)
                .filter(Idea.id == idea_id, Idea.status == from_status)
                .update({"status": to_status, "updated_at": _utcnow()}, synchronize_session=False)
            )
            if updated == 0:
                self.session.rollback()
                logger.info("Idea %s no longer in %s; promotion skipped", idea_id, from_status)
                return result

            data = dict(trigger_data or {})
            data.setdefault("reason", reason)
            record = ProgressionRecord(
                idea_id=idea_id,
                from_status=from_status,
                to_status=to_status,
                trigger_type=trigger_type,
                trigger_data=data,
                triggered_by=triggered_by,
            )
            self.session.add(record)
            self.session.flush()

            if triggered_by:
                ActivityRecorder(self.session).record_activity(
                    triggered_by, idea_id, ActivityType.STATUS_CHANGE.value,
                )

            idea = self.session.get(Idea, idea_id, populate_existing=True)
            self.notifier.notify_promotion(
                idea, from_status, to_status, reason,
                automated=triggered_by is None, session=self.session,
            )
            self.session.commit()
        except Exception as exc:
            self.session.rollback()
            logger.exception("Promotion of idea %s (%s -> %s) failed", idea_id, from_status, to_status)
            result.outcome = PromotionOutcome.FAILED
            result.error = str(exc)
            return result

        result.outcome = PromotionOutcome.PROMOTED
        result.record_id = record.id
        logger.info("Idea %s promoted %s -> %s (%s)", idea_id, from_status, to_status, trigger_type)
        return result
