"""
Idea Swipe
Tests — Promotion Executor.

Covers:
    1. Successful promotion (status, history row, owner notification)
    2. Idempotence under repeated / stale calls
    3. Lifecycle edge validation
    4. Rollback on store failure
"""

from unittest.mock import MagicMock

from ideaswipe.models import db
from ideaswipe.models.activity import ActivityRecord
from ideaswipe.models.idea import Idea
from ideaswipe.models.notification import Notification
from ideaswipe.models.progression import ProgressionRecord
from ideaswipe.services.promotion_executor import PromotionExecutor, PromotionOutcome


def _reload(idea_id):
    db.session.expire_all()
    return db.session.get(Idea, idea_id)


class TestPromote:

    def test_promotes_and_records(self, make_user, make_idea):
        owner = make_user("owner")
        idea = make_idea(owner)

        result = PromotionExecutor().promote(
            idea.id, "idea", "pre-draft", "Reached 30.0% like ratio",
            trigger_type="AUTO_PROGRESSION", trigger_data={"likes_count": 6},
        )

        assert result.outcome == PromotionOutcome.PROMOTED
        assert _reload(idea.id).status == "pre-draft"

        records = ProgressionRecord.query.filter_by(idea_id=idea.id).all()
        assert len(records) == 1
        assert records[0].from_status == "idea"
        assert records[0].to_status == "pre-draft"
        assert records[0].trigger_data["likes_count"] == 6
        assert records[0].triggered_by is None

        notes = Notification.query.filter_by(user_id=owner.id, type="STATUS_CHANGE").all()
        assert len(notes) == 1
        assert "pre-draft" in notes[0].message

    def test_second_promote_is_noop(self, make_user, make_idea):
        idea = make_idea(make_user())
        executor = PromotionExecutor()

        first = executor.promote(idea.id, "idea", "pre-draft", "ratio")
        second = executor.promote(idea.id, "idea", "pre-draft", "ratio")

        assert first.promoted
        assert second.outcome == PromotionOutcome.SKIPPED
        assert _reload(idea.id).status == "pre-draft"
        assert ProgressionRecord.query.filter_by(idea_id=idea.id).count() == 1
        assert Notification.query.count() == 1

    def test_rejects_edge_outside_lifecycle(self, make_user, make_idea):
        idea = make_idea(make_user())

        result = PromotionExecutor().promote(idea.id, "idea", "commit", "skip ahead")

        assert result.outcome == PromotionOutcome.INVALID_TRANSITION
        assert _reload(idea.id).status == "idea"
        assert ProgressionRecord.query.count() == 0

    def test_unowned_idea_gets_no_notification(self, make_idea):
        idea = make_idea(None)

        result = PromotionExecutor().promote(idea.id, "idea", "pre-draft", "ratio")

        assert result.promoted
        assert Notification.query.count() == 0

    def test_failure_rolls_back(self, make_user, make_idea):
        idea = make_idea(make_user())
        notifier = MagicMock()
        notifier.notify_promotion.side_effect = RuntimeError("outbox unavailable")

        result = PromotionExecutor(notifier=notifier).promote(idea.id, "idea", "pre-draft", "ratio")

        assert result.outcome == PromotionOutcome.FAILED
        assert "outbox unavailable" in result.error
        assert _reload(idea.id).status == "idea"
        assert ProgressionRecord.query.count() == 0

    def test_manual_promotion_logs_actor_activity(self, make_user, make_idea):
        owner = make_user()
        idea = make_idea(owner, status="commit")

        result = PromotionExecutor().promote(
            idea.id, "commit", "in-progress", "Kick-off",
            trigger_type="MANUAL", triggered_by=owner.id,
        )

        assert result.promoted
        record = ProgressionRecord.query.filter_by(idea_id=idea.id).one()
        assert record.triggered_by == owner.id
        assert record.trigger_type == "MANUAL"
        activity = ActivityRecord.query.filter_by(idea_id=idea.id).one()
        assert activity.activity_type == "STATUS_CHANGE"
        assert activity.user_id == owner.id
