"""
Idea Swipe
Tests — Contributor Ranker.
"""

from datetime import datetime, timedelta, timezone

from ideaswipe.models import db
from ideaswipe.models.idea import Collaboration
from ideaswipe.services.contributor_ranker import ContributorRanker

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def _at(minutes):
    return T0 + timedelta(minutes=minutes)


def _collaboration(idea, user, status="accepted"):
    collab = Collaboration(idea_id=idea.id, user_id=user.id, status=status)
    db.session.add(collab)
    db.session.commit()
    return collab


class TestFindTopContributor:

    def test_accepted_collaborator_beats_heavy_engager(self, make_user, make_idea, add_like, add_comment):
        owner, collaborator, fan = make_user(), make_user(), make_user()
        idea = make_idea(owner)
        _collaboration(idea, collaborator)
        add_like(idea, fan, at=_at(1))
        for minute in range(2, 6):
            add_comment(idea, fan, at=_at(minute))

        assert ContributorRanker().find_top_contributor(idea.id) == collaborator.id

    def test_pending_collaboration_does_not_count(self, make_user, make_idea, add_like):
        collaborator, fan = make_user(), make_user()
        idea = make_idea(make_user())
        _collaboration(idea, collaborator, status="pending")
        add_like(idea, fan, at=_at(1))

        assert ContributorRanker().find_top_contributor(idea.id) == fan.id

    def test_tie_goes_to_first_seen(self, make_user, make_idea, add_comment):
        u1, u2 = make_user("u1"), make_user("u2")
        idea = make_idea(make_user())
        add_comment(idea, u1, at=_at(1))
        add_comment(idea, u2, at=_at(2))

        for _ in range(3):
            assert ContributorRanker().find_top_contributor(idea.id) == u1.id

    def test_tie_order_follows_time_not_insert_order(self, make_user, make_idea, add_comment):
        u1, u2 = make_user("u1"), make_user("u2")
        idea = make_idea(make_user())
        add_comment(idea, u2, at=_at(5))
        add_comment(idea, u1, at=_at(1))

        assert ContributorRanker().find_top_contributor(idea.id) == u1.id

    def test_comment_outweighs_like(self, make_user, make_idea, add_like, add_comment):
        liker, commenter = make_user(), make_user()
        idea = make_idea(make_user())
        add_like(idea, liker, at=_at(1))
        add_comment(idea, commenter, at=_at(2))

        assert ContributorRanker().find_top_contributor(idea.id) == commenter.id

    def test_excluded_users_are_skipped(self, make_user, make_idea, add_like, add_comment):
        top, runner_up = make_user(), make_user()
        idea = make_idea(make_user())
        _collaboration(idea, top)
        add_comment(idea, top, at=_at(1))
        add_like(idea, runner_up, at=_at(2))

        assert ContributorRanker().find_top_contributor(idea.id, exclude=[top.id]) == runner_up.id

    def test_no_engagement_returns_none(self, make_user, make_idea):
        idea = make_idea(make_user())
        assert ContributorRanker().find_top_contributor(idea.id) is None


class TestScoreContributors:

    def test_scores(self, make_user, make_idea, add_like, add_comment):
        a, b = make_user(), make_user()
        idea = make_idea(make_user())
        add_like(idea, a, at=_at(1))
        add_comment(idea, a, at=_at(2))
        add_comment(idea, b, at=_at(3))
        add_comment(idea, b, at=_at(4))

        scores = ContributorRanker().score_contributors(idea.id)
        assert scores == {a.id: 3, b.id: 4}
        assert list(scores) == [a.id, b.id]
