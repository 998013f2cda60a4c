"""
Idea Swipe
Progression Rule Evaluator.

Decides whether an idea has earned its next lifecycle stage. The rule set is
data: rows of ``progression_settings`` (seeded from
``config.DEFAULT_PROGRESSION_RULES``), one per ``from_status``.

    idea      -> pre-draft   30% of active users AND >= 5 likes
    pre-draft -> draft       40% of active users AND >= 10 likes
    draft     -> commit      50% of active users AND >= 15 likes

Usage:
    from ideaswipe.services.progression_rules import evaluate, load_rules

    decision = evaluate(idea, total_active_users, load_rules())
    if decision:
        PromotionExecutor().promote(idea.id, decision.from_status, ...)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from flask import current_app

from ideaswipe.config import DEFAULT_PROGRESSION_RULES
from ideaswipe.models import db
from ideaswipe.models.progression import ProgressionSetting

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════════════
# Data Classes
# ═════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ProgressionRule:
    """One like-ratio rule keyed by the status it promotes from."""
    from_status: str
    to_status: str
    like_threshold_percentage: float
    minimum_likes: int
    inactivity_days: int | None = None
    auto_progression: bool = True

    @classmethod
    def from_mapping(cls, data: dict) -> ProgressionRule:
        return cls(
            from_status=data["from_status"],
            to_status=data["to_status"],
            like_threshold_percentage=float(data.get("like_threshold_percentage") or 0.0),
            minimum_likes=int(data.get("minimum_likes") or 0),
            inactivity_days=data.get("inactivity_days"),
            auto_progression=bool(data.get("auto_progression", True)),
        )

    def to_dict(self) -> dict:
        return {
            "from_status": self.from_status,
            "to_status": self.to_status,
            "like_threshold_percentage": self.like_threshold_percentage,
            "minimum_likes": self.minimum_likes,
            "inactivity_days": self.inactivity_days,
            "auto_progression": self.auto_progression,
        }


@dataclass
class PromotionDecision:
    """Positive evaluation: the idea should move ``from_status -> to_status``."""
    idea_id: str
    from_status: str
    to_status: str
    reason: str
    trigger_data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "idea_id": self.idea_id,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "reason": self.reason,
            "trigger_data": self.trigger_data,
        }


# ═════════════════════════════════════════════════════════════════════════════
# Evaluation
# ═════════════════════════════════════════════════════════════════════════════

def _rule_for(status: str, rules) -> ProgressionRule | None:
    for rule in rules:
        if rule.from_status == status:
            return rule
    return None


def meets_threshold(likes: int, total_active_users: int, threshold_percentage: float) -> bool:
    """``likes / total_active_users >= threshold_percentage %`` without float rounding.

    The percentage goes through ``str`` so 29.0 or 33.3 compare as written.
    """
    threshold = Decimal(str(threshold_percentage or 0))
    return Decimal(likes) * 100 >= threshold * total_active_users


def evaluate(idea, total_active_users: int, rules) -> PromotionDecision | None:
    """
    Return a PromotionDecision when both thresholds hold, else None.

    Pure: reads only ``idea.id``, ``idea.status`` and ``idea.likes_count``.
    An empty user population or a status without an enabled rule is simply
    "no promotion".
    """
    if not total_active_users or total_active_users <= 0:
        return None

    rule = _rule_for(idea.status, rules)
    if rule is None or not rule.auto_progression:
        return None

    likes = idea.likes_count or 0
    if likes < rule.minimum_likes or not meets_threshold(likes, total_active_users,
                                                          rule.like_threshold_percentage):
        return None
    ratio = likes / total_active_users * 100

    reason = (
        f"Reached {ratio:.1f}% like ratio ({likes} likes from {total_active_users} active users; "
        f"threshold {rule.like_threshold_percentage:g}% and {rule.minimum_likes} likes)"
    )
    return PromotionDecision(
        idea_id=idea.id,
        from_status=rule.from_status,
        to_status=rule.to_status,
        reason=reason,
        trigger_data={
            "like_ratio": round(ratio, 1),
            "likes_count": likes,
            "total_users": total_active_users,
            "threshold_percentage": rule.like_threshold_percentage,
            "minimum_likes": rule.minimum_likes,
            "reason": reason,
        },
    )


# ═════════════════════════════════════════════════════════════════════════════
# Rule loading
# ═════════════════════════════════════════════════════════════════════════════

def _configured_rules() -> list[dict]:
    try:
        return current_app.config.get("PROGRESSION_RULES") or DEFAULT_PROGRESSION_RULES
    except RuntimeError:
        # outside an application context
        return DEFAULT_PROGRESSION_RULES


def load_rules(session=None) -> list[ProgressionRule]:
    """Rules from ``progression_settings``, or the configured defaults when the table is empty."""
    session = session or db.session
    rows = session.query(ProgressionSetting).order_by(ProgressionSetting.id).all()
    if rows:
        return [ProgressionRule.from_mapping(row.to_dict()) for row in rows]
    return [ProgressionRule.from_mapping(r) for r in _configured_rules()]


def inactivity_days_for(status: str, rules=None, default: int | None = None) -> int | None:
    """
    Idle days before an idea in ``status`` is offered to a new owner; None = never.

    A rule row with ``inactivity_days`` NULL switches delegation off for its
    status. ``default`` only applies to statuses that have no rule row at all.
    """
    rules = rules if rules is not None else load_rules()
    rule = _rule_for(status, rules)
    if rule is None:
        return default
    return rule.inactivity_days


def seed_default_rules(session=None) -> int:
    """Insert any missing default rows. Returns the number created."""
    session = session or db.session
    existing = {row.from_status for row in session.query(ProgressionSetting).all()}
    created = 0
    for rule in _configured_rules():
        if rule["from_status"] in existing:
            continue
        session.add(ProgressionSetting(
            from_status=rule["from_status"],
            to_status=rule["to_status"],
            like_threshold_percentage=rule.get("like_threshold_percentage"),
            minimum_likes=rule.get("minimum_likes"),
            inactivity_days=rule.get("inactivity_days"),
            auto_progression=rule.get("auto_progression", True),
        ))
        created += 1
    if created:
        session.commit()
        logger.info("Seeded %d progression rules", created)
    return created
