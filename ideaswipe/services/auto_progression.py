"""
Idea Swipe
Auto-Progression Orchestrator.

Entry point for every trigger of the engine:

    - scheduler tick (``auto_progression_sweep`` job, every 10 minutes)
    - inline check right after a like (``check_single_idea``)
    - manual operator sweep (``POST /api/v1/progression/sweep``, CLI)

None of these coordinate with each other. Running them concurrently is
safe because the writes underneath are guarded (conditional status update,
one-pending-delegation index), so a sweep can be started as often as
anyone likes.

Sweep phases:
    1. Promotion: ideas in idea / pre-draft / draft, active users counted
       once, each evaluated against the rule table.
    2. Delegation: pre-draft / draft ideas untouched for the inactivity
       window, handed to the delegation coordinator.

Each idea is processed in its own transaction. A failure on one idea is
captured into ``SweepResult.errors`` and the sweep moves on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy import func

from ideaswipe.models import db
from ideaswipe.models.idea import (
    AUTO_PROGRESSIBLE_STATUSES,
    DELEGABLE_STATUSES,
    IDEA_STATUSES,
    Idea,
    IdeaStatus,
    User,
    _utcnow,
    as_utc,
)
from ideaswipe.models.progression import (
    DelegationRequest,
    DelegationStatus,
    ProgressionRecord,
    TriggerType,
)
from ideaswipe.services.delegation_service import (
    DelegationCoordinator,
    DelegationOutcome,
    inactivity_threshold,
)
from ideaswipe.services.progression_rules import evaluate, load_rules
from ideaswipe.services.promotion_executor import PromotionExecutor, PromotionOutcome

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════════════
# Data Classes
# ═════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class IdeaSnapshot:
    """Immutable view of the fields the evaluator reads, captured before any writes."""
    id: str
    status: str
    likes_count: int


@dataclass
class SweepResult:
    started_at: datetime
    finished_at: datetime | None = None
    success: bool = False
    promotions: list[dict] = field(default_factory=list)
    delegations: list[dict] = field(default_factory=list)
    skipped: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "promotions": self.promotions,
            "delegations": self.delegations,
            "promotion_count": len(self.promotions),
            "delegation_count": len(self.delegations),
            "skipped": self.skipped,
            "errors": self.errors,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


def count_active_users(session=None) -> int:
    session = session or db.session
    return session.query(func.count(User.id)).filter(User.is_active.is_(True)).scalar() or 0


# ═════════════════════════════════════════════════════════════════════════════
# Orchestrator
# ═════════════════════════════════════════════════════════════════════════════

class AutoProgressionService:

    def __init__(self, session=None, executor=None, coordinator=None):
        self.session = session or db.session
        self.executor = executor or PromotionExecutor(self.session)
        self.coordinator = coordinator or DelegationCoordinator(self.session)

    # ── Full sweep ───────────────────────────────────────────────────────

    def run_full_sweep(self, *, now: datetime | None = None) -> SweepResult:
        """
        Evaluate every candidate idea once.

        Setup failures (rules, user count, candidate queries) propagate to
        the caller. Per-idea failures are recorded and skipped past.
        """
        now = as_utc(now) or _utcnow()
        result = SweepResult(started_at=_utcnow())

        rules = load_rules(self.session)
        total_users = count_active_users(self.session)
        snapshots = [
            IdeaSnapshot(id=row.id, status=row.status, likes_count=row.likes_count or 0)
            for row in (
                self.session.query(Idea.id, Idea.status, Idea.likes_count)
                .filter(Idea.status.in_(AUTO_PROGRESSIBLE_STATUSES))
                .order_by(Idea.created_at)
                .all()
            )
        ]
        logger.info("Sweep started: %d candidate ideas, %d active users", len(snapshots), total_users)

        for snapshot in snapshots:
            self._promote_one(snapshot, total_users, rules, result)

        idle_ids = self._idle_idea_ids(now, rules)
        for idea_id in idle_ids:
            self._delegate_one(idea_id, now, rules, result)

        result.success = True
        result.finished_at = _utcnow()
        logger.info(
            "Sweep finished: %d promotions, %d delegations, %d skipped, %d errors",
            len(result.promotions), len(result.delegations), result.skipped, len(result.errors),
        )
        return result

    def _promote_one(self, snapshot: IdeaSnapshot, total_users: int, rules, result: SweepResult) -> None:
        try:
            decision = evaluate(snapshot, total_users, rules)
            if decision is None:
                return
            outcome = self.executor.promote(
                snapshot.id,
                decision.from_status,
                decision.to_status,
                decision.reason,
                trigger_type=TriggerType.AUTO_PROGRESSION.value,
                trigger_data=decision.trigger_data,
            )
        except Exception as exc:
            self.session.rollback()
            logger.exception("Sweep: promotion check failed for idea %s", snapshot.id)
            result.errors.append(f"idea {snapshot.id}: {exc}")
            return

        if outcome.outcome == PromotionOutcome.PROMOTED:
            result.promotions.append(outcome.to_dict())
        elif outcome.outcome == PromotionOutcome.SKIPPED:
            result.skipped += 1
        else:
            detail = f"promotion {outcome.outcome.value} {outcome.error or ''}".strip()
            result.errors.append(f"idea {snapshot.id}: {detail}")

    def _idle_idea_ids(self, now: datetime, rules) -> list[str]:
        thresholds = {status: inactivity_threshold(status, rules) for status in DELEGABLE_STATUSES}
        # statuses whose rule row has no inactivity window are never delegated
        delegable = {status: days for status, days in thresholds.items() if days is not None}
        if not delegable:
            return []
        cutoff = now - timedelta(days=min(delegable.values()))
        rows = (
            self.session.query(Idea.id)
            .filter(Idea.status.in_(list(delegable)), Idea.updated_at <= cutoff)
            .order_by(Idea.updated_at)
            .all()
        )
        return [row.id for row in rows]

    def _delegate_one(self, idea_id: str, now: datetime, rules, result: SweepResult) -> None:
        try:
            outcome = self.coordinator.check_inactivity(idea_id, now=now, rules=rules)
        except Exception as exc:
            self.session.rollback()
            logger.exception("Sweep: inactivity check failed for idea %s", idea_id)
            result.errors.append(f"idea {idea_id}: {exc}")
            return

        if outcome.outcome == DelegationOutcome.CREATED:
            result.delegations.append(outcome.to_dict())
        elif outcome.outcome == DelegationOutcome.ALREADY_PENDING:
            result.skipped += 1
        elif outcome.outcome == DelegationOutcome.FAILED:
            result.errors.append(f"idea {idea_id}: delegation failed {outcome.error or ''}".strip())

    # ── Single idea ──────────────────────────────────────────────────────

    def check_single_idea(self, idea_id: str, *, triggered_by: str | None = None) -> bool:
        """
        Inline evaluation after a like. True iff this call promoted the idea.

        Same status filter as the sweep: only idea / pre-draft / draft.
        """
        try:
            row = (
                self.session.query(Idea.id, Idea.status, Idea.likes_count)
                .filter(Idea.id == idea_id)
                .first()
            )
            if row is None or row.status not in AUTO_PROGRESSIBLE_STATUSES:
                return False
            snapshot = IdeaSnapshot(id=row.id, status=row.status, likes_count=row.likes_count or 0)
            decision = evaluate(snapshot, count_active_users(self.session), load_rules(self.session))
        except Exception:
            self.session.rollback()
            logger.exception("Inline progression check failed for idea %s", idea_id)
            return False
        if decision is None:
            return False

        data = dict(decision.trigger_data)
        if triggered_by:
            data["last_like_by"] = triggered_by
        outcome = self.executor.promote(
            idea_id,
            decision.from_status,
            decision.to_status,
            decision.reason,
            trigger_type=TriggerType.LIKE_THRESHOLD.value,
            trigger_data=data,
        )
        return outcome.promoted

    # ── Stats ────────────────────────────────────────────────────────────

    def get_progression_stats(self) -> dict:
        """Ideas per stage, share of ideas past the first stage, history by trigger."""
        by_status = {status: 0 for status in IDEA_STATUSES}
        rows = self.session.query(Idea.status, func.count(Idea.id)).group_by(Idea.status).all()
        for status, count in rows:
            by_status[status] = count
        total = sum(by_status.values())
        progressed = total - by_status.get(IdeaStatus.IDEA.value, 0)
        rate = round(progressed / total * 100, 1) if total else 0.0

        by_trigger = dict(
            self.session.query(ProgressionRecord.trigger_type, func.count(ProgressionRecord.id))
            .group_by(ProgressionRecord.trigger_type)
            .all()
        )
        pending = (
            self.session.query(func.count(DelegationRequest.id))
            .filter(DelegationRequest.status == DelegationStatus.PENDING.value)
            .scalar()
        )
        return {
            "total_ideas": total,
            "by_status": by_status,
            "progression_rate": rate,
            "progressions_by_trigger": by_trigger,
            "total_progressions": sum(by_trigger.values()),
            "pending_delegations": pending or 0,
            "active_users": count_active_users(self.session),
        }
