"""
Idea Swipe
Contributor Ranker.

Picks the delegate candidate for an idea:

    1. An accepted collaboration wins outright (earliest accepted first).
    2. Otherwise every user who liked or commented is scored
       (like = 1, comment = 2) and the highest score wins.
       Ties go to whoever interacted first.
    3. No engagement at all → None. That is a normal outcome.

Interactions are walked in timestamp order so "first seen" is stable and
reproducible, never dependent on dict or row ordering from the store.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from ideaswipe.models import db
from ideaswipe.models.idea import Collaboration, Comment, Like, as_utc

logger = logging.getLogger(__name__)

LIKE_WEIGHT = 1
COMMENT_WEIGHT = 2


class ContributorRanker:
    """Read-only; safe to call from any number of concurrent sweeps."""

    def __init__(self, session=None):
        self.session = session or db.session

    def score_contributors(self, idea_id: str, *, exclude: Iterable[str] = ()) -> dict[str, int]:
        """Return ``{user_id: score}`` in first-seen order."""
        excluded = set(exclude)
        events: list[tuple] = []
        likes = (
            self.session.query(Like)
            .filter(Like.idea_id == idea_id)
            .order_by(Like.created_at)
            .all()
        )
        comments = (
            self.session.query(Comment)
            .filter(Comment.idea_id == idea_id)
            .order_by(Comment.created_at)
            .all()
        )
        for like in likes:
            events.append((as_utc(like.created_at), 0, like.user_id, LIKE_WEIGHT))
        for comment in comments:
            events.append((as_utc(comment.created_at), 1, comment.user_id, COMMENT_WEIGHT))
        # stable sort keeps query order for identical timestamps
        events.sort(key=lambda e: (e[0], e[1]))

        scores: dict[str, int] = {}
        for _at, _kind, user_id, weight in events:
            if user_id in excluded:
                continue
            scores[user_id] = scores.get(user_id, 0) + weight
        return scores

    def find_top_contributor(self, idea_id: str, *, exclude: Iterable[str] = ()) -> str | None:
        """Best delegate candidate for ``idea_id`` or None."""
        excluded = set(exclude)

        collaborators = (
            self.session.query(Collaboration)
            .filter(Collaboration.idea_id == idea_id, Collaboration.status == "accepted")
            .order_by(Collaboration.updated_at.asc(), Collaboration.created_at.asc())
            .all()
        )
        for collab in collaborators:
            if collab.user_id not in excluded:
                logger.debug("Idea %s: accepted collaborator %s ranked first", idea_id, collab.user_id)
                return collab.user_id

        scores = self.score_contributors(idea_id, exclude=excluded)
        top_user, top_score = None, 0
        for user_id, score in scores.items():
            if score > top_score:
                top_user, top_score = user_id, score
        if top_user:
            logger.debug("Idea %s: top contributor %s (score=%d)", idea_id, top_user, top_score)
        return top_user
