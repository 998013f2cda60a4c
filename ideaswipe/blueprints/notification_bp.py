"""
Idea Swipe
Notification & Scheduling Blueprint.

Provides:
    - Notification inbox for the acting user (list, unread count, read, delete)
    - Scheduled job management (list, manual trigger)
"""

from __future__ import annotations

import logging

from flask import Blueprint, jsonify, request

from ideaswipe.blueprints import page_args, require_acting_user
from ideaswipe.services.notification import NotificationService
from ideaswipe.services.scheduler_service import SchedulerService, get_registered_jobs
from ideaswipe.utils.errors import E, api_error

logger = logging.getLogger(__name__)

notification_bp = Blueprint("notification", __name__, url_prefix="/api/v1")


# ═══════════════════════════════════════════════════════════════════════════
#  NOTIFICATIONS
# ═══════════════════════════════════════════════════════════════════════════

@notification_bp.route("/notifications", methods=["GET"])
def list_notifications():
    user_id, err = require_acting_user()
    if err:
        return err

    unread_only = request.args.get("unread_only", "false").lower() == "true"
    limit, offset = page_args(default_limit=20, max_limit=100)

    items, total = NotificationService.list_for_recipient(
        user_id, unread_only=unread_only, limit=limit, offset=offset,
    )
    return jsonify({
        "items": [n.to_dict() for n in items],
        "total": total,
        "unread_count": NotificationService.unread_count(user_id),
    })


@notification_bp.route("/notifications/unread-count", methods=["GET"])
def unread_count():
    user_id, err = require_acting_user()
    if err:
        return err
    return jsonify({"unread_count": NotificationService.unread_count(user_id)})


@notification_bp.route("/notifications/<notification_id>/read", methods=["POST"])
def mark_read(notification_id):
    user_id, err = require_acting_user()
    if err:
        return err
    notif = NotificationService.mark_read(notification_id, user_id)
    if not notif:
        return api_error(E.NOT_FOUND, "Notification not found")
    return jsonify(notif.to_dict())


@notification_bp.route("/notifications/read-all", methods=["POST"])
def mark_all_read():
    user_id, err = require_acting_user()
    if err:
        return err
    return jsonify({"marked_read": NotificationService.mark_all_read(user_id)})


@notification_bp.route("/notifications/<notification_id>", methods=["DELETE"])
def delete_notification(notification_id):
    user_id, err = require_acting_user()
    if err:
        return err
    if not NotificationService.delete(notification_id, user_id):
        return api_error(E.NOT_FOUND, "Notification not found")
    return jsonify({"deleted": True, "id": notification_id})


# ═══════════════════════════════════════════════════════════════════════════
#  SCHEDULED JOBS
# ═══════════════════════════════════════════════════════════════════════════

@notification_bp.route("/scheduler/jobs", methods=["GET"])
def list_jobs():
    return jsonify({"jobs": SchedulerService.list_jobs(), "running": SchedulerService.is_running()})


@notification_bp.route("/scheduler/jobs/<job_name>/run", methods=["POST"])
def run_job(job_name):
    if job_name not in get_registered_jobs():
        return api_error(E.NOT_FOUND, f"Unknown job: {job_name}")
    result = SchedulerService.run_job(job_name)
    status_code = 200 if result["status"] == "success" else 500
    return jsonify(result), status_code
