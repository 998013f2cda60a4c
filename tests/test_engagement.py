"""
Idea Swipe
Tests — Engagement (likes, comments, collaborations) and the like-driven
promotion flow end to end.
"""

import pytest

from ideaswipe.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from ideaswipe.models import db
from ideaswipe.models.activity import ActivityRecord
from ideaswipe.models.idea import Idea, Like
from ideaswipe.models.notification import Notification
from ideaswipe.models.progression import ProgressionRecord
from ideaswipe.services import engagement_service
from ideaswipe.services.auto_progression import AutoProgressionService


def _reload(idea_id):
    db.session.expire_all()
    return db.session.get(Idea, idea_id)


# ═══════════════════════════════════════════════════════════════════════════
#  Like → inline promotion
# ═══════════════════════════════════════════════════════════════════════════

class TestLikeDrivenPromotion:

    def test_sixth_like_of_twenty_promotes_once(self, client, make_user, make_users, make_idea):
        owner = make_user("owner")
        others = make_users(19)
        idea = make_idea(owner)

        responses = []
        for liker in others[:6]:
            resp = client.post(f"/api/v1/ideas/{idea.id}/likes", headers={"X-User-Id": liker.id})
            assert resp.status_code == 200
            responses.append(resp.get_json())

        assert [r["promoted"] for r in responses] == [False] * 5 + [True]
        assert responses[-1]["likes_count"] == 6
        assert responses[-1]["status"] == "pre-draft"

        records = ProgressionRecord.query.filter_by(idea_id=idea.id).all()
        assert [(r.from_status, r.to_status) for r in records] == [("idea", "pre-draft")]
        assert records[0].trigger_type == "LIKE_THRESHOLD"

        status_notes = Notification.query.filter_by(user_id=owner.id, type="STATUS_CHANGE").all()
        assert len(status_notes) == 1

        # a sweep afterwards finds nothing left to do for this idea
        result = AutoProgressionService().run_full_sweep()
        assert result.promotions == []
        assert ProgressionRecord.query.filter_by(idea_id=idea.id).count() == 1
        assert _reload(idea.id).status == "pre-draft"


# ═══════════════════════════════════════════════════════════════════════════
#  Likes
# ═══════════════════════════════════════════════════════════════════════════

class TestToggleLike:

    def test_like_then_unlike(self, make_user, make_idea):
        fan = make_user()
        idea = make_idea(make_user())

        liked = engagement_service.toggle_like(idea.id, fan.id)
        unliked = engagement_service.toggle_like(idea.id, fan.id)

        assert liked["liked"] is True and liked["likes_count"] == 1
        assert unliked["liked"] is False and unliked["likes_count"] == 0
        assert Like.query.count() == 0
        assert _reload(idea.id).likes_count == 0

    def test_like_records_activity(self, make_user, make_idea):
        fan = make_user()
        idea = make_idea(make_user())

        engagement_service.toggle_like(idea.id, fan.id)

        activity = ActivityRecord.query.filter_by(idea_id=idea.id).one()
        assert activity.activity_type == "LIKE"
        assert activity.user_id == fan.id

    def test_milestone_notification(self, make_user, make_users, make_idea):
        owner = make_user()
        fans = make_users(10)
        idea = make_idea(owner)

        for fan in fans:
            engagement_service.toggle_like(idea.id, fan.id)

        milestones = Notification.query.filter_by(user_id=owner.id, type="LIKE_MILESTONE").all()
        assert len(milestones) == 1
        assert milestones[0].data["milestone"] == 10

    def test_unknown_idea(self, make_user):
        with pytest.raises(NotFoundError):
            engagement_service.toggle_like("missing", make_user().id)


# ═══════════════════════════════════════════════════════════════════════════
#  Comments
# ═══════════════════════════════════════════════════════════════════════════

class TestComments:

    def test_add_comment(self, make_user, make_idea):
        owner, commenter = make_user(), make_user("bob")
        idea = make_idea(owner)

        comment = engagement_service.add_comment(idea.id, commenter.id, "  Love it  ")

        assert comment.content == "Love it"
        assert _reload(idea.id).comments_count == 1
        assert ActivityRecord.query.filter_by(idea_id=idea.id, activity_type="COMMENT").count() == 1
        note = Notification.query.filter_by(user_id=owner.id, type="COMMENT").one()
        assert "bob" in note.message

    def test_owner_comment_does_not_notify(self, make_user, make_idea):
        owner = make_user()
        idea = make_idea(owner)

        engagement_service.add_comment(idea.id, owner.id, "Update: prototype works")

        assert Notification.query.count() == 0

    @pytest.mark.parametrize("content", ["", "   ", "x" * 2001])
    def test_invalid_content(self, make_user, make_idea, content):
        idea = make_idea(make_user())
        with pytest.raises(ValidationError):
            engagement_service.add_comment(idea.id, make_user().id, content)


# ═══════════════════════════════════════════════════════════════════════════
#  Collaborations
# ═══════════════════════════════════════════════════════════════════════════

class TestCollaborations:

    def test_request_and_accept(self, make_user, make_idea):
        owner, helper = make_user(), make_user()
        idea = make_idea(owner)

        collab = engagement_service.request_collaboration(idea.id, helper.id, role="mentor")
        assert collab.status == "pending"
        assert Notification.query.filter_by(user_id=owner.id, type="COLLABORATION").count() == 1

        answered = engagement_service.respond_collaboration(collab.id, owner.id, accept=True)
        assert answered.status == "accepted"
        assert Notification.query.filter_by(user_id=helper.id, type="COLLABORATION").count() == 1

        with pytest.raises(ConflictError):
            engagement_service.respond_collaboration(collab.id, owner.id, accept=False)

    def test_duplicate_request(self, make_user, make_idea):
        helper = make_user()
        idea = make_idea(make_user())
        engagement_service.request_collaboration(idea.id, helper.id)
        with pytest.raises(ConflictError):
            engagement_service.request_collaboration(idea.id, helper.id)

    def test_owner_cannot_request(self, make_user, make_idea):
        owner = make_user()
        idea = make_idea(owner)
        with pytest.raises(ValidationError):
            engagement_service.request_collaboration(idea.id, owner.id)

    def test_invalid_role(self, make_user, make_idea):
        idea = make_idea(make_user())
        with pytest.raises(ValidationError):
            engagement_service.request_collaboration(idea.id, make_user().id, role="boss")

    def test_only_owner_responds(self, make_user, make_idea):
        helper, stranger = make_user(), make_user()
        idea = make_idea(make_user())
        collab = engagement_service.request_collaboration(idea.id, helper.id)
        with pytest.raises(AuthorizationError):
            engagement_service.respond_collaboration(collab.id, stranger.id, accept=True)

    def test_declined_offer_cannot_be_accepted(self, make_user, make_idea):
        owner, helper = make_user(), make_user()
        idea = make_idea(owner)
        collab = engagement_service.request_collaboration(idea.id, helper.id)

        assert engagement_service.respond_collaboration(collab.id, owner.id, accept=False).status == "declined"
        with pytest.raises(ConflictError):
            engagement_service.respond_collaboration(collab.id, owner.id, accept=True)
