"""
Idea Swipe
Tests — Delegation Coordinator.

Covers:
    1. Inactivity detection and eligibility
    2. One pending request per idea (pre-check and unique index paths)
    3. Accept / decline authorization and effects
    4. Decliner exclusion on later rankings
    5. Rule rows with NULL inactivity days, store failures
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from ideaswipe.config import DEFAULT_PROGRESSION_RULES
from ideaswipe.core.exceptions import ValidationError
from ideaswipe.models import db
from ideaswipe.models.activity import ActivityRecord
from ideaswipe.models.idea import Idea
from ideaswipe.models.notification import Notification
from ideaswipe.models.progression import DelegationRequest, ProgressionSetting
from ideaswipe.services.activity_recorder import ActivityRecorder
from ideaswipe.services.contributor_ranker import ContributorRanker
from ideaswipe.services.delegation_service import DelegationCoordinator, DelegationOutcome


def _days_ago(days):
    return datetime.now(timezone.utc) - timedelta(days=days)


@pytest.fixture()
def idle_idea(make_user, make_idea, add_like, add_comment):
    """Draft idea untouched for 20 days with two engaged users (top: commenter)."""
    owner, commenter, liker = make_user("owner"), make_user("commenter"), make_user("liker")
    idea = make_idea(owner, status="draft", updated_at=_days_ago(20))
    add_comment(idea, commenter, at=_days_ago(19))
    add_like(idea, liker, at=_days_ago(18))
    return {"idea": idea, "owner": owner, "commenter": commenter, "liker": liker}


def _pending_rows(idea_id):
    return DelegationRequest.query.filter_by(idea_id=idea_id, status="pending").all()


def _seed_rules(**overrides):
    """Store the default rule rows, with per-status ``inactivity_days`` overrides."""
    for rule in DEFAULT_PROGRESSION_RULES:
        row = dict(rule)
        if rule["from_status"] in overrides:
            row["inactivity_days"] = overrides[rule["from_status"]]
        db.session.add(ProgressionSetting(**row))
    db.session.commit()


# ═══════════════════════════════════════════════════════════════════════════
#  check_inactivity
# ═══════════════════════════════════════════════════════════════════════════

class TestCheckInactivity:

    def test_creates_request_for_top_contributor(self, idle_idea):
        idea = idle_idea["idea"]

        result = DelegationCoordinator().check_inactivity(idea.id)

        assert result.outcome == DelegationOutcome.CREATED
        assert result.to_user_id == idle_idea["commenter"].id
        assert result.days_inactive >= 18

        request = db.session.get(DelegationRequest, result.delegation_id)
        assert request.reason == "INACTIVITY"
        assert request.from_user_id == idle_idea["owner"].id
        assert request.context_data["auto_generated"] is True

        # candidate asked; idle owner not told on INACTIVITY hand-overs
        to_candidate = Notification.query.filter_by(user_id=idle_idea["commenter"].id).one()
        assert to_candidate.action_required is True
        assert to_candidate.data["delegation_id"] == request.id
        assert Notification.query.filter_by(user_id=idle_idea["owner"].id).count() == 0

    def test_second_check_reports_already_pending(self, idle_idea):
        idea = idle_idea["idea"]
        coordinator = DelegationCoordinator()

        first = coordinator.check_inactivity(idea.id)
        second = coordinator.check_inactivity(idea.id)

        assert first.created
        assert second.outcome == DelegationOutcome.ALREADY_PENDING
        assert second.delegation_id == first.delegation_id
        assert len(_pending_rows(idea.id)) == 1

    def test_unique_index_blocks_racing_insert(self, idle_idea):
        idea = idle_idea["idea"]
        coordinator = DelegationCoordinator()

        # both callers miss each other's row in the pre-check
        with patch.object(DelegationCoordinator, "_pending_for", return_value=None):
            first = coordinator.check_inactivity(idea.id)
            second = coordinator.check_inactivity(idea.id)

        assert first.created
        assert second.outcome == DelegationOutcome.ALREADY_PENDING
        assert len(_pending_rows(idea.id)) == 1

    def test_recent_activity_blocks_delegation(self, idle_idea):
        idea = idle_idea["idea"]
        ActivityRecorder().record_activity(idle_idea["liker"].id, idea.id, "LIKE")
        db.session.commit()

        result = DelegationCoordinator().check_inactivity(idea.id)

        assert result.outcome == DelegationOutcome.NOT_INACTIVE
        assert DelegationRequest.query.count() == 0

    def test_activity_log_takes_precedence_over_updated_at(self, idle_idea):
        idea = idle_idea["idea"]
        ActivityRecorder().record_activity(idle_idea["liker"].id, idea.id, "COMMENT", at=_days_ago(15))
        db.session.commit()

        result = DelegationCoordinator().check_inactivity(idea.id)

        assert result.created
        assert result.days_inactive == 15

    @pytest.mark.parametrize("status", ["idea", "commit", "in-progress", "archive"])
    def test_ineligible_statuses(self, make_user, make_idea, add_like, status):
        idea = make_idea(make_user(), status=status, updated_at=_days_ago(60))
        add_like(idea, make_user(), at=_days_ago(60))

        result = DelegationCoordinator().check_inactivity(idea.id)

        assert result.outcome == DelegationOutcome.NOT_ELIGIBLE

    def test_no_candidate(self, make_user, make_idea):
        idea = make_idea(make_user(), status="pre-draft", updated_at=_days_ago(30))

        result = DelegationCoordinator().check_inactivity(idea.id)

        assert result.outcome == DelegationOutcome.NO_CANDIDATE

    def test_owner_is_never_the_candidate(self, make_user, make_idea, add_comment):
        owner = make_user()
        idea = make_idea(owner, status="draft", updated_at=_days_ago(30))
        add_comment(idea, owner, at=_days_ago(29))

        result = DelegationCoordinator().check_inactivity(idea.id)

        assert result.outcome == DelegationOutcome.NO_CANDIDATE

    def test_unknown_idea(self):
        result = DelegationCoordinator().check_inactivity("missing")
        assert result.outcome == DelegationOutcome.NOT_FOUND

    def test_null_inactivity_rule_disables_delegation(self, idle_idea):
        _seed_rules(**{"pre-draft": None, "draft": None})

        result = DelegationCoordinator().check_inactivity(idle_idea["idea"].id)

        assert result.outcome == DelegationOutcome.NOT_ELIGIBLE
        assert DelegationRequest.query.count() == 0

    def test_status_without_rule_row_uses_inactivity_days_setting(self, idle_idea):
        db.session.add(ProgressionSetting(
            from_status="pre-draft", to_status="draft",
            like_threshold_percentage=40.0, minimum_likes=10, inactivity_days=None,
        ))
        db.session.commit()

        # draft has no row, so INACTIVITY_DAYS (14) applies to the 20-day idle idea
        result = DelegationCoordinator().check_inactivity(idle_idea["idea"].id)

        assert result.created

    def test_store_failure_is_a_failed_outcome(self, idle_idea):
        idea_id = idle_idea["idea"].id
        with patch.object(ContributorRanker, "find_top_contributor",
                          side_effect=RuntimeError("connection reset")):
            result = DelegationCoordinator().check_inactivity(idea_id)

        assert result.outcome == DelegationOutcome.FAILED
        assert result.idea_id == idea_id
        assert "connection reset" in result.error
        assert DelegationRequest.query.count() == 0


# ═══════════════════════════════════════════════════════════════════════════
#  accept / decline
# ═══════════════════════════════════════════════════════════════════════════

class TestRespond:

    def test_accept_transfers_ownership(self, idle_idea):
        idea = idle_idea["idea"]
        commenter = idle_idea["commenter"]
        coordinator = DelegationCoordinator()
        created = coordinator.check_inactivity(idea.id)

        result = coordinator.accept(created.delegation_id, commenter.id)

        assert result.outcome == DelegationOutcome.ACCEPTED
        db.session.expire_all()
        assert db.session.get(Idea, idea.id).user_id == commenter.id
        request = db.session.get(DelegationRequest, created.delegation_id)
        assert request.status == "accepted"
        assert request.accepted_at is not None
        assert ActivityRecord.query.filter_by(idea_id=idea.id, user_id=commenter.id).count() == 1
        assert Notification.query.filter_by(user_id=idle_idea["owner"].id).count() == 1
        assert Notification.query.filter_by(user_id=commenter.id).count() == 2

    def test_wrong_user_cannot_accept_or_decline(self, idle_idea):
        idea = idle_idea["idea"]
        coordinator = DelegationCoordinator()
        created = coordinator.check_inactivity(idea.id)
        before = db.session.get(DelegationRequest, created.delegation_id).to_dict()

        for action in (coordinator.accept, coordinator.decline):
            result = action(created.delegation_id, idle_idea["liker"].id)
            assert result.outcome == DelegationOutcome.UNAUTHORIZED

        db.session.expire_all()
        assert db.session.get(DelegationRequest, created.delegation_id).to_dict() == before
        assert db.session.get(Idea, idea.id).user_id == idle_idea["owner"].id

    def test_accept_twice_is_not_pending(self, idle_idea):
        coordinator = DelegationCoordinator()
        created = coordinator.check_inactivity(idle_idea["idea"].id)
        coordinator.accept(created.delegation_id, idle_idea["commenter"].id)

        result = coordinator.accept(created.delegation_id, idle_idea["commenter"].id)

        assert result.outcome == DelegationOutcome.NOT_PENDING

    def test_pending_only_closes_to_terminal_status(self, idle_idea):
        coordinator = DelegationCoordinator()
        created = coordinator.check_inactivity(idle_idea["idea"].id)

        with pytest.raises(ValueError):
            coordinator._close(created.delegation_id, "pending", "accepted_at")
        assert len(_pending_rows(idle_idea["idea"].id)) == 1

    def test_unknown_request(self, make_user):
        result = DelegationCoordinator().accept("missing", make_user().id)
        assert result.outcome == DelegationOutcome.NOT_FOUND

    def test_decline_keeps_owner_and_excludes_decliner(self, idle_idea):
        idea = idle_idea["idea"]
        coordinator = DelegationCoordinator()
        first = coordinator.check_inactivity(idea.id)

        declined = coordinator.decline(first.delegation_id, idle_idea["commenter"].id)

        assert declined.outcome == DelegationOutcome.DECLINED
        db.session.expire_all()
        request = db.session.get(DelegationRequest, first.delegation_id)
        assert request.status == "declined"
        assert request.declined_at is not None
        assert db.session.get(Idea, idea.id).user_id == idle_idea["owner"].id

        second = coordinator.check_inactivity(idea.id)
        assert second.created
        assert second.to_user_id == idle_idea["liker"].id


# ═══════════════════════════════════════════════════════════════════════════
#  create_request / list_pending_for_user
# ═══════════════════════════════════════════════════════════════════════════

class TestManualRequests:

    def test_manual_request_notifies_both_sides(self, make_user, make_idea):
        owner, helper = make_user(), make_user()
        idea = make_idea(owner, status="pre-draft")

        result = DelegationCoordinator().create_request(
            idea.id, helper.id, "MANUAL", from_user_id=owner.id,
        )

        assert result.created
        assert Notification.query.filter_by(user_id=helper.id).count() == 1
        assert Notification.query.filter_by(user_id=owner.id).count() == 1

    def test_unknown_reason_rejected(self, make_user, make_idea):
        idea = make_idea(make_user())
        with pytest.raises(ValidationError):
            DelegationCoordinator().create_request(idea.id, make_user().id, "BORED")

    def test_owner_cannot_be_delegate(self, make_user, make_idea):
        owner = make_user()
        idea = make_idea(owner)
        with pytest.raises(ValidationError):
            DelegationCoordinator().create_request(idea.id, owner.id, "MANUAL")

    def test_list_pending_for_user(self, make_user, make_idea):
        helper = make_user()
        coordinator = DelegationCoordinator()
        first = make_idea(make_user(), title="First")
        second = make_idea(make_user(), title="Second")
        coordinator.create_request(first.id, helper.id, "MANUAL")
        coordinator.create_request(second.id, helper.id, "TOP_CONTRIBUTOR")

        pending = coordinator.list_pending_for_user(helper.id)

        assert {d.idea_id for d in pending} == {first.id, second.id}
        assert all(d.is_pending for d in pending)
        assert coordinator.list_pending_for_user(make_user().id) == []
