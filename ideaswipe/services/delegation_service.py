"""
Idea Swipe
Delegation Coordinator.

Hands an abandoned idea to the person most invested in it. The flow is a
two-step handshake so nobody becomes an owner without agreeing to it:

    check_inactivity -> create_request (pending) -> accept | decline

Eligibility:
    - status in pre-draft / draft (from commit onwards the work lives in an
      external repository)
    - the status rule has ``inactivity_days`` set (NULL switches delegation off)
    - no activity on the idea for that many days (no rule row: INACTIVITY_DAYS)
    - a candidate exists (ContributorRanker), excluding the current owner
      and anyone who already declined this idea

At most one pending request per idea. The pre-check below is an
optimisation; the partial unique index ``uq_idea_delegations_one_pending``
is what actually holds when two sweeps race.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ideaswipe.core.exceptions import ValidationError
from ideaswipe.models import db
from ideaswipe.models.activity import ActivityType
from ideaswipe.models.idea import DELEGABLE_STATUSES, Idea, _utcnow, as_utc
from ideaswipe.models.progression import (
    DELEGATION_TRANSITIONS,
    DelegationReason,
    DelegationRequest,
    DelegationStatus,
)
from ideaswipe.services.activity_recorder import ActivityRecorder
from ideaswipe.services.contributor_ranker import ContributorRanker
from ideaswipe.services.notification import NotificationService
from ideaswipe.services.progression_rules import inactivity_days_for

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════════════
# Result types
# ═════════════════════════════════════════════════════════════════════════════

class DelegationOutcome(str, Enum):
    CREATED = "created"
    ALREADY_PENDING = "already_pending"
    NO_CANDIDATE = "no_candidate"
    NOT_ELIGIBLE = "not_eligible"
    NOT_INACTIVE = "not_inactive"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    NOT_FOUND = "not_found"
    NOT_PENDING = "not_pending"
    UNAUTHORIZED = "unauthorized"
    FAILED = "failed"


@dataclass
class DelegationResult:
    outcome: DelegationOutcome
    idea_id: str | None = None
    delegation_id: str | None = None
    to_user_id: str | None = None
    days_inactive: int | None = None
    error: str | None = None

    @property
    def created(self) -> bool:
        return self.outcome == DelegationOutcome.CREATED

    def to_dict(self) -> dict:
        return {
            "outcome": self.outcome.value,
            "idea_id": self.idea_id,
            "delegation_id": self.delegation_id,
            "to_user_id": self.to_user_id,
            "days_inactive": self.days_inactive,
            "error": self.error,
        }


DELEGATION_REASONS = {r.value for r in DelegationReason}


def inactivity_threshold(status: str, rules=None) -> int | None:
    """
    Idle days for ``status``, or None when its rule row switches delegation off.

    Statuses without a rule row use the INACTIVITY_DAYS setting.
    """
    return inactivity_days_for(status, rules, default=current_app.config.get("INACTIVITY_DAYS", 14))


# ═════════════════════════════════════════════════════════════════════════════
# Coordinator
# ═════════════════════════════════════════════════════════════════════════════

class DelegationCoordinator:

    def __init__(self, session=None, ranker=None, recorder=None, notifier=NotificationService):
        self.session = session or db.session
        self.ranker = ranker or ContributorRanker(self.session)
        self.recorder = recorder or ActivityRecorder(self.session)
        self.notifier = notifier

    # ── Helpers ──────────────────────────────────────────────────────────

    def _pending_for(self, idea_id: str) -> DelegationRequest | None:
        return (
            self.session.query(DelegationRequest)
            .filter(
                DelegationRequest.idea_id == idea_id,
                DelegationRequest.status == DelegationStatus.PENDING.value,
            )
            .first()
        )

    def _decliners(self, idea_id: str) -> set[str]:
        rows = (
            self.session.query(DelegationRequest.to_user_id)
            .filter(
                DelegationRequest.idea_id == idea_id,
                DelegationRequest.status == DelegationStatus.DECLINED.value,
            )
            .all()
        )
        return {user_id for (user_id,) in rows}

    # ── Inactivity ───────────────────────────────────────────────────────

    def check_inactivity(self, idea_id: str, *, now: datetime | None = None, rules=None) -> DelegationResult:
        """
        Open a delegation request for an idle idea, if one is warranted.

        Every negative branch is an ordinary outcome; only an unexpected
        store failure comes back as ``failed``.
        """
        now = as_utc(now) or _utcnow()
        try:
            idea = self.session.get(Idea, idea_id)
            if idea is None:
                return DelegationResult(DelegationOutcome.NOT_FOUND, idea_id=idea_id)
            threshold = (
                inactivity_threshold(idea.status, rules)
                if idea.status in DELEGABLE_STATUSES else None
            )
            if threshold is None:
                return DelegationResult(DelegationOutcome.NOT_ELIGIBLE, idea_id=idea_id)

            last_activity = (
                self.recorder.last_activity_at(idea_id)
                or as_utc(idea.updated_at)
                or as_utc(idea.created_at)
            )
            days_inactive = (now - last_activity).days if last_activity else 0
            if days_inactive < threshold:
                return DelegationResult(DelegationOutcome.NOT_INACTIVE, idea_id=idea_id,
                                        days_inactive=days_inactive)

            pending = self._pending_for(idea_id)
            if pending is not None:
                return DelegationResult(DelegationOutcome.ALREADY_PENDING, idea_id=idea_id,
                                        delegation_id=pending.id, to_user_id=pending.to_user_id,
                                        days_inactive=days_inactive)

            exclude = self._decliners(idea_id)
            if idea.user_id:
                exclude.add(idea.user_id)
            candidate = self.ranker.find_top_contributor(idea_id, exclude=exclude)
        except Exception as exc:
            self.session.rollback()
            logger.exception("Inactivity check for idea %s failed", idea_id)
            return DelegationResult(DelegationOutcome.FAILED, idea_id=idea_id, error=str(exc))

        if candidate is None:
            logger.info("Idea %s idle for %d days but has no delegate candidate", idea_id, days_inactive)
            return DelegationResult(DelegationOutcome.NO_CANDIDATE, idea_id=idea_id,
                                    days_inactive=days_inactive)

        result = self.create_request(
            idea_id,
            candidate,
            DelegationReason.INACTIVITY.value,
            from_user_id=idea.user_id,
            metadata={
                "days_inactive": days_inactive,
                "auto_generated": True,
                "last_activity_at": last_activity.isoformat() if last_activity else None,
            },
        )
        result.days_inactive = days_inactive
        return result

    # ── Request ──────────────────────────────────────────────────────────

    def create_request(
        self,
        idea_id: str,
        to_user_id: str,
        reason: str,
        *,
        from_user_id: str | None = None,
        metadata: dict | None = None,
    ) -> DelegationResult:
        """Insert one pending request and notify the candidate. Commits."""
        if reason not in DELEGATION_REASONS:
            raise ValidationError(f"Unknown delegation reason: {reason}", details={"reason": reason})

        idea = self.session.get(Idea, idea_id)
        if idea is None:
            return DelegationResult(DelegationOutcome.NOT_FOUND, idea_id=idea_id)
        if to_user_id == idea.user_id:
            raise ValidationError("The current owner cannot be delegated their own idea",
                                  details={"to_user_id": to_user_id})

        pending = self._pending_for(idea_id)
        if pending is not None:
            return DelegationResult(DelegationOutcome.ALREADY_PENDING, idea_id=idea_id,
                                    delegation_id=pending.id, to_user_id=pending.to_user_id)

        delegation = DelegationRequest(
            idea_id=idea_id,
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            reason=reason,
            status=DelegationStatus.PENDING.value,
            context_data=metadata or {},
        )
        try:
            self.session.add(delegation)
            self.session.flush()
        except IntegrityError:
            self.session.rollback()
            logger.info("Idea %s already has a pending delegation (concurrent insert)", idea_id)
            return DelegationResult(DelegationOutcome.ALREADY_PENDING, idea_id=idea_id)

        try:
            self.notifier.notify_delegation_request(idea, delegation, session=self.session)
            self.session.commit()
        except Exception as exc:
            self.session.rollback()
            logger.exception("Creating delegation for idea %s failed", idea_id)
            return DelegationResult(DelegationOutcome.FAILED, idea_id=idea_id, error=str(exc))

        logger.info("Delegation %s created: idea %s -> user %s (%s)",
                    delegation.id, idea_id, to_user_id, reason)
        return DelegationResult(DelegationOutcome.CREATED, idea_id=idea_id,
                                delegation_id=delegation.id, to_user_id=to_user_id)

    # ── Response ─────────────────────────────────────────────────────────

    def _load_for_response(self, delegation_id: str, acting_user_id: str):
        delegation = self.session.get(DelegationRequest, delegation_id)
        if delegation is None:
            return None, DelegationResult(DelegationOutcome.NOT_FOUND, delegation_id=delegation_id)
        if not delegation.is_pending:
            return None, DelegationResult(DelegationOutcome.NOT_PENDING, idea_id=delegation.idea_id,
                                          delegation_id=delegation_id)
        if delegation.to_user_id != acting_user_id:
            logger.warning("User %s tried to answer delegation %s addressed to %s",
                           acting_user_id, delegation_id, delegation.to_user_id)
            return None, DelegationResult(DelegationOutcome.UNAUTHORIZED, idea_id=delegation.idea_id,
                                          delegation_id=delegation_id)
        return delegation, None

    def _close(self, delegation_id: str, status: str, stamp_field: str) -> bool:
        """Conditional pending -> terminal update; False when someone else got there first."""
        if status not in DELEGATION_TRANSITIONS[DelegationStatus.PENDING.value]:
            raise ValueError(f"A pending delegation cannot become {status!r}")
        updated = (
            self.session.query(DelegationRequest)
            .filter(
                DelegationRequest.id == delegation_id,
                DelegationRequest.status == DelegationStatus.PENDING.value,
            )
            .update({"status": status, stamp_field: _utcnow()}, synchronize_session=False)
        )
        return updated == 1

    def accept(self, delegation_id: str, acting_user_id: str) -> DelegationResult:
        """Invited user takes ownership. Idea owner, request state and activity change together."""
        delegation, rejected = self._load_for_response(delegation_id, acting_user_id)
        if rejected:
            return rejected

        idea_id = delegation.idea_id
        try:
            if not self._close(delegation_id, DelegationStatus.ACCEPTED.value, "accepted_at"):
                self.session.rollback()
                return DelegationResult(DelegationOutcome.NOT_PENDING, idea_id=idea_id,
                                        delegation_id=delegation_id)
            self.session.query(Idea).filter(Idea.id == idea_id).update(
                {"user_id": acting_user_id, "updated_at": _utcnow()}, synchronize_session=False,
            )
            self.recorder.record_activity(acting_user_id, idea_id, ActivityType.EDIT.value)

            delegation = self.session.get(DelegationRequest, delegation_id, populate_existing=True)
            idea = self.session.get(Idea, idea_id, populate_existing=True)
            self.notifier.notify_delegation_accepted(idea, delegation, session=self.session)
            self.session.commit()
        except Exception as exc:
            self.session.rollback()
            logger.exception("Accepting delegation %s failed", delegation_id)
            return DelegationResult(DelegationOutcome.FAILED, idea_id=idea_id,
                                    delegation_id=delegation_id, error=str(exc))

        logger.info("Delegation %s accepted: idea %s now owned by %s", delegation_id, idea_id, acting_user_id)
        return DelegationResult(DelegationOutcome.ACCEPTED, idea_id=idea_id,
                                delegation_id=delegation_id, to_user_id=acting_user_id)

    def decline(self, delegation_id: str, acting_user_id: str) -> DelegationResult:
        """Invited user refuses. Ownership is untouched."""
        delegation, rejected = self._load_for_response(delegation_id, acting_user_id)
        if rejected:
            return rejected

        idea_id = delegation.idea_id
        try:
            if not self._close(delegation_id, DelegationStatus.DECLINED.value, "declined_at"):
                self.session.rollback()
                return DelegationResult(DelegationOutcome.NOT_PENDING, idea_id=idea_id,
                                        delegation_id=delegation_id)
            self.session.commit()
        except Exception as exc:
            self.session.rollback()
            logger.exception("Declining delegation %s failed", delegation_id)
            return DelegationResult(DelegationOutcome.FAILED, idea_id=idea_id,
                                    delegation_id=delegation_id, error=str(exc))

        logger.info("Delegation %s declined by %s", delegation_id, acting_user_id)
        return DelegationResult(DelegationOutcome.DECLINED, idea_id=idea_id,
                                delegation_id=delegation_id, to_user_id=acting_user_id)

    # ── Query ────────────────────────────────────────────────────────────

    def list_pending_for_user(self, user_id: str) -> list[DelegationRequest]:
        """Pending requests addressed to ``user_id``, newest first."""
        return (
            self.session.query(DelegationRequest)
            .filter(
                DelegationRequest.to_user_id == user_id,
                DelegationRequest.status == DelegationStatus.PENDING.value,
            )
            .order_by(DelegationRequest.delegated_at.desc())
            .all()
        )
