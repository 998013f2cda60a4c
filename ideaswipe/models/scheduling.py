"""
Idea Swipe
Scheduling models.

Models:
    - ScheduledJob: one row per registered background job (interval + last run)
"""

from datetime import datetime, timedelta

from ideaswipe.models import db
from ideaswipe.models.idea import _utcnow, as_utc


RUN_OUTCOMES = {"success", "failed"}


class ScheduledJob(db.Model):
    """
    Persisted state of an interval job such as ``auto_progression_sweep``.

    The row is bookkeeping only: losing it just makes the job due again.
    """

    __tablename__ = "scheduled_jobs"

    id = db.Column(db.Integer, primary_key=True)
    job_name = db.Column(db.String(100), unique=True, nullable=False)
    description = db.Column(db.String(500), default="")
    interval_minutes = db.Column(db.Integer, nullable=False, default=10)
    is_enabled = db.Column(db.Boolean, nullable=False, default=True)

    last_run_at = db.Column(db.DateTime(timezone=True), nullable=True)
    last_run_status = db.Column(db.String(20), nullable=True, comment="success | failed")
    last_run_duration_ms = db.Column(db.Integer, nullable=True)
    last_run_summary = db.Column(db.JSON, nullable=True, comment="Job return value (sweep counts)")
    run_count = db.Column(db.Integer, nullable=False, default=0)
    failure_count = db.Column(db.Integer, nullable=False, default=0)
    last_error = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def is_due(self, now: datetime) -> bool:
        if not self.is_enabled:
            return False
        last = as_utc(self.last_run_at)
        return last is None or now - last >= timedelta(minutes=self.interval_minutes or 0)

    def mark_run(self, outcome: str, duration_ms: int, summary=None, error=None):
        if outcome not in RUN_OUTCOMES:
            raise ValueError(f"Unknown run outcome: {outcome}")
        self.last_run_at = _utcnow()
        self.last_run_status = outcome
        self.last_run_duration_ms = duration_ms
        self.last_run_summary = summary
        self.run_count = (self.run_count or 0) + 1
        if outcome == "failed":
            self.failure_count = (self.failure_count or 0) + 1
            self.last_error = error

    def to_dict(self):
        return {
            "id": self.id,
            "job_name": self.job_name,
            "description": self.description,
            "interval_minutes": self.interval_minutes,
            "is_enabled": self.is_enabled,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "last_run_status": self.last_run_status,
            "last_run_duration_ms": self.last_run_duration_ms,
            "last_run_summary": self.last_run_summary,
            "run_count": self.run_count,
            "failure_count": self.failure_count,
            "last_error": self.last_error,
        }

    def __repr__(self):
        return f"<ScheduledJob {self.job_name} every {self.interval_minutes}m>"
