"""
Idea Swipe
Idea Lifecycle Service.

Owner-driven moves along IDEA_TRANSITIONS that the like-ratio rules do not
cover (commit -> in-progress -> test -> finish, archive). The write goes
through the PromotionExecutor so manual and automatic moves share the same
conditional update and audit trail.

Usage:
    from ideaswipe.services.idea_lifecycle import transition_idea

    result = transition_idea(idea_id, "in-progress", acting_user_id=user_id)
"""

from ideaswipe.core.exceptions import AuthorizationError, NotFoundError
from ideaswipe.models import db
from ideaswipe.models.idea import IDEA_TRANSITIONS, Idea
from ideaswipe.models.progression import ProgressionRecord, TriggerType
from ideaswipe.services.promotion_executor import PromotionExecutor


def transition_idea(idea_id, to_status, acting_user_id, *, reason=None):
    """
    Move an idea to ``to_status`` on behalf of its owner.

    Raises:
        NotFoundError: unknown idea.
        AuthorizationError: acting user is not the owner.

    Returns:
        PromotionResult (promoted / skipped / invalid_transition / failed).
    """
    idea = db.session.get(Idea, idea_id)
    if idea is None:
        raise NotFoundError(resource="Idea", resource_id=idea_id)
    if not acting_user_id or idea.user_id != acting_user_id:
        raise AuthorizationError(acting_user_id, "transition", f"idea {idea_id}")

    from_status = idea.status
    reason = reason or f"Moved to {to_status} by owner"
    return PromotionExecutor().promote(
        idea_id,
        from_status,
        to_status,
        reason,
        trigger_type=TriggerType.MANUAL.value,
        trigger_data={"reason": reason},
        triggered_by=acting_user_id,
    )


def get_available_transitions(idea):
    """Statuses reachable from the idea's current status."""
    return list(IDEA_TRANSITIONS.get(idea.status, []))


def get_progression_history(idea_id):
    """Progression records for an idea, oldest first."""
    if db.session.get(Idea, idea_id) is None:
        raise NotFoundError(resource="Idea", resource_id=idea_id)
    return (
        ProgressionRecord.query
        .filter(ProgressionRecord.idea_id == idea_id)
        .order_by(ProgressionRecord.created_at.asc(), ProgressionRecord.id.asc())
        .all()
    )
