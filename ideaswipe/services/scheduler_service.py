"""
Idea Swipe
Scheduler Service.

In-process interval scheduler. One daemon thread wakes every
``tick_seconds``, asks which ScheduledJob rows are due and runs them inside
an app context. The same ``run_job`` backs the manual trigger endpoint.

    @register_job("auto_progression_sweep", interval_setting="AUTO_PROGRESSION_INTERVAL_MINUTES")
    def run_sweep(app):
        ...

Nothing here coordinates between processes. Two workers with the scheduler
enabled will both sweep, and the engine's guarded writes make that harmless.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from flask import Flask

from ideaswipe.models import db
from ideaswipe.models.idea import _utcnow
from ideaswipe.models.scheduling import ScheduledJob

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MINUTES = 60


@dataclass(frozen=True)
class RegisteredJob:
    fn: Callable
    interval_setting: str | None = None

    def interval_minutes(self, app: Flask) -> int:
        if self.interval_setting:
            return int(app.config.get(self.interval_setting, DEFAULT_INTERVAL_MINUTES))
        return DEFAULT_INTERVAL_MINUTES


_job_registry: dict[str, RegisteredJob] = {}


def register_job(name: str, *, interval_setting: str | None = None):
    """Add ``fn(app)`` to the registry under ``name``."""
    def decorator(fn: Callable) -> Callable:
        _job_registry[name] = RegisteredJob(fn, interval_setting)
        return fn
    return decorator


def get_registered_jobs() -> dict[str, Callable]:
    return {name: job.fn for name, job in _job_registry.items()}


class SchedulerService:
    """Class-level singleton: one scheduler thread per process."""

    _app: Flask | None = None
    _thread: threading.Thread | None = None
    _stop_event: threading.Event | None = None

    @classmethod
    def init_app(cls, app: Flask) -> None:
        cls._app = app
        app.extensions["scheduler"] = cls
        logger.info("Scheduler bound to app (%d jobs registered)", len(_job_registry))

    # ── Job rows ─────────────────────────────────────────────────────────

    @classmethod
    def ensure_jobs_registered(cls) -> list[str]:
        """Insert a ScheduledJob for every registered job without one. Returns the new job names."""
        if cls._app is None:
            return []

        with cls._app.app_context():
            known = {name for (name,) in db.session.query(ScheduledJob.job_name).all()}
            created = [
                ScheduledJob(
                    job_name=name,
                    description=(job.fn.__doc__ or name).strip().splitlines()[0],
                    interval_minutes=job.interval_minutes(cls._app),
                    is_enabled=True,
                )
                for name, job in _job_registry.items()
                if name not in known
            ]
            names = [job.job_name for job in created]
            if created:
                db.session.add_all(created)
                db.session.commit()
                logger.info("Registered %d scheduled job rows", len(created))
        return names

    @classmethod
    def list_jobs(cls) -> list[dict]:
        rows = {job.job_name: job for job in ScheduledJob.query.all()}
        return [
            {"job_name": name, "db_record": rows[name].to_dict() if name in rows else None}
            for name in _job_registry
        ]

    @classmethod
    def due_jobs(cls, now=None) -> list[str]:
        now = now or _utcnow()
        rows = ScheduledJob.query.filter(ScheduledJob.job_name.in_(list(_job_registry))).all()
        return [row.job_name for row in rows if row.is_due(now)]

    # ── Execution ────────────────────────────────────────────────────────

    @classmethod
    def run_job(cls, job_name: str) -> dict:
        """
        Run one job now and record the run on its ScheduledJob row.

        Returns ``{job_name, status, duration_ms, result, error}``; status is
        success | failed, or error when the job is unknown / unbound.
        """
        job = _job_registry.get(job_name)
        if job is None or cls._app is None:
            reason = f"Unknown job: {job_name}" if job is None else "Scheduler not initialized"
            return {"job_name": job_name, "status": "error", "error": reason}

        began = time.monotonic()
        summary, error, status = None, None, "success"
        try:
            with cls._app.app_context():
                summary = job.fn(cls._app)
        except Exception as exc:
            status, error = "failed", str(exc)
            logger.exception("Job %s failed", job_name, extra={"job_name": job_name})
        duration_ms = int((time.monotonic() - began) * 1000)

        try:
            with cls._app.app_context():
                row = ScheduledJob.query.filter_by(job_name=job_name).first()
                if row is not None:
                    row.mark_run(
                        status,
                        duration_ms,
                        summary if isinstance(summary, dict) else {"output": repr(summary)},
                        error,
                    )
                    db.session.commit()
        except Exception:
            logger.exception("Could not record run of %s", job_name, extra={"job_name": job_name})

        logger.info("Job %s finished: %s in %dms", job_name, status, duration_ms,
                    extra={"job_name": job_name, "duration_ms": duration_ms})
        return {
            "job_name": job_name,
            "status": status,
            "duration_ms": duration_ms,
            "result": summary,
            "error": error,
        }

    # ── Thread ───────────────────────────────────────────────────────────

    @classmethod
    def _tick_loop(cls, tick_seconds: float) -> None:
        while not cls._stop_event.is_set():
            try:
                with cls._app.app_context():
                    due = cls.due_jobs()
                for name in due:
                    cls.run_job(name)
            except Exception:
                logger.exception("Scheduler tick failed")
            cls._stop_event.wait(tick_seconds)

    @classmethod
    def start(cls, tick_seconds: float = 30.0) -> bool:
        """Start the scheduler thread. False when already running or not bound to an app."""
        if cls.is_running() or cls._app is None:
            return False
        cls.ensure_jobs_registered()
        cls._stop_event = threading.Event()
        cls._thread = threading.Thread(
            target=cls._tick_loop, args=(tick_seconds,), name="ideaswipe-scheduler", daemon=True,
        )
        cls._thread.start()
        logger.info("Scheduler thread started (tick=%ss)", tick_seconds)
        return True

    @classmethod
    def stop(cls, timeout: float = 5.0) -> None:
        if not cls.is_running():
            return
        cls._stop_event.set()
        cls._thread.join(timeout)
        cls._thread = None
        logger.info("Scheduler thread stopped")

    @classmethod
    def is_running(cls) -> bool:
        return cls._thread is not None and cls._thread.is_alive()
