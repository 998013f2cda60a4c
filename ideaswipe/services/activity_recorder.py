"""
Idea Swipe
Activity Recorder.

Appends immutable (user, idea, type, time) facts to ``user_activities``.
Recording is commutative: concurrent writers never need ordering between
each other, so this module never reads before it writes.

Usage:
    from ideaswipe.services.activity_recorder import ActivityRecorder

    recorder = ActivityRecorder()
    recorder.record_activity(user_id, idea_id, "LIKE")
    recorder.last_activity_at(idea_id)
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func

from ideaswipe.models import db
from ideaswipe.models.activity import ACTIVITY_TYPES, ActivityRecord
from ideaswipe.models.idea import as_utc

logger = logging.getLogger(__name__)


class ActivityRecorder:
    """Write-only log from the engine's perspective; read back only in aggregate."""

    def __init__(self, session=None):
        self.session = session or db.session

    def record_activity(
        self,
        user_id: str,
        idea_id: str,
        activity_type: str,
        *,
        at: datetime | None = None,
    ) -> ActivityRecord:
        """Add one activity row to the caller's unit of work (flushed, not committed)."""
        if activity_type not in ACTIVITY_TYPES:
            raise ValueError(f"Unknown activity type: {activity_type}")
        record = ActivityRecord(user_id=user_id, idea_id=idea_id, activity_type=activity_type)
        if at is not None:
            record.created_at = at
        self.session.add(record)
        self.session.flush()
        logger.debug("Recorded %s by %s on idea %s", activity_type, user_id, idea_id)
        return record

    def last_activity_at(self, idea_id: str) -> datetime | None:
        """Latest activity timestamp on the idea, or None if nothing was ever recorded."""
        latest = (
            self.session.query(func.max(ActivityRecord.created_at))
            .filter(ActivityRecord.idea_id == idea_id)
            .scalar()
        )
        return as_utc(latest)

    def activity_counts(self, idea_id: str) -> dict[str, int]:
        """Activity totals per type for one idea."""
        rows = (
            self.session.query(ActivityRecord.activity_type, func.count(ActivityRecord.id))
            .filter(ActivityRecord.idea_id == idea_id)
            .group_by(ActivityRecord.activity_type)
            .all()
        )
        return {activity_type: count for activity_type, count in rows}
