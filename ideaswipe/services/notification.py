"""
Idea Swipe
Notification Service.

Central service for writing and querying notifications. The progression
engine calls the ``notify_*`` helpers; delivery is left to whatever reads
the ``notifications`` table.

Transaction ownership:
    The ``notify_*`` helpers and ``create`` only ``add`` + ``flush`` so they
    join the caller's unit of work (a promotion or delegation). Query/action
    helpers used directly by blueprints commit themselves.
"""

from datetime import datetime, timezone

from ideaswipe.models import db
from ideaswipe.models.notification import NOTIFICATION_TYPES, Notification


class NotificationService:
    """Stateless service class for notification operations."""

    # ── Create ────────────────────────────────────────────────────────────

    @staticmethod
    def create(*, user_id, type, title, message="", idea_id=None,
               action_required=False, data=None, session=None):
        """
        Add a single notification row to the current unit of work.

        Returns:
            The pending Notification instance (flushed, not committed).
        """
        if type not in NOTIFICATION_TYPES:
            raise ValueError(f"Unknown notification type: {type}")
        session = session or db.session
        notif = Notification(
            user_id=user_id,
            idea_id=idea_id,
            type=type,
            title=title,
            message=message,
            action_required=action_required,
            data=data,
        )
        session.add(notif)
        session.flush()
        return notif

    # ── Progression engine messages ───────────────────────────────────────

    @staticmethod
    def notify_promotion(idea, from_status, to_status, reason, *, automated=True, session=None):
        """Tell the owner their idea moved up. No owner → no notification."""
        if not idea.user_id:
            return None
        title = "Your idea was promoted automatically!" if automated else "Your idea moved forward"
        return NotificationService.create(
            user_id=idea.user_id,
            type="STATUS_CHANGE",
            title=title,
            message=f"\"{idea.title}\" advanced from {from_status} to {to_status}. {reason}".strip(),
            idea_id=idea.id,
            data={
                "from_status": from_status,
                "to_status": to_status,
                "reason": reason,
                "automated": automated,
            },
            session=session,
        )

    @staticmethod
    def notify_delegation_request(idea, delegation, *, session=None):
        """
        Ask the candidate to take over the idea (action required).

        The outgoing owner is told too, except for INACTIVITY hand-overs where
        they are by definition not around to read it.
        """
        days_inactive = (delegation.context_data or {}).get("days_inactive")
        if delegation.reason == "INACTIVITY":
            message = (
                f"You have been chosen as the new owner of \"{idea.title}\" because the "
                f"original author has been inactive for {days_inactive or 14} days."
            )
        elif delegation.reason == "TOP_CONTRIBUTOR":
            message = (
                f"You have been chosen as the new owner of \"{idea.title}\" because you "
                f"are its top contributor."
            )
        else:
            message = f"Ownership of \"{idea.title}\" has been offered to you."

        created = [NotificationService.create(
            user_id=delegation.to_user_id,
            type="DELEGATION",
            title="Idea delegation request",
            message=message,
            idea_id=idea.id,
            action_required=True,
            data={"delegation_id": delegation.id, "reason": delegation.reason},
            session=session,
        )]

        if delegation.reason != "INACTIVITY" and delegation.from_user_id:
            created.append(NotificationService.create(
                user_id=delegation.from_user_id,
                type="DELEGATION",
                title="Idea handed over",
                message=f"Ownership of \"{idea.title}\" has been offered to another contributor.",
                idea_id=idea.id,
                data={"delegation_id": delegation.id, "reason": delegation.reason},
                session=session,
            ))
        return created

    @staticmethod
    def notify_delegation_accepted(idea, delegation, *, session=None):
        """Confirm an accepted hand-over to both parties."""
        created = []
        if delegation.from_user_id:
            created.append(NotificationService.create(
                user_id=delegation.from_user_id,
                type="DELEGATION",
                title="Delegation accepted",
                message=f"The delegation of \"{idea.title}\" was accepted.",
                idea_id=idea.id,
                data={"delegation_id": delegation.id},
                session=session,
            ))
        created.append(NotificationService.create(
            user_id=delegation.to_user_id,
            type="DELEGATION",
            title="You now own this idea",
            message=f"You are now the owner of \"{idea.title}\".",
            idea_id=idea.id,
            data={"delegation_id": delegation.id},
            session=session,
        ))
        return created

    @staticmethod
    def notify_like_milestone(idea, milestone, *, session=None):
        if not idea.user_id:
            return None
        return NotificationService.create(
            user_id=idea.user_id,
            type="LIKE_MILESTONE",
            title=f"{milestone} likes reached!",
            message=f"\"{idea.title}\" has received {idea.likes_count} likes!",
            idea_id=idea.id,
            data={"likes_count": idea.likes_count, "milestone": milestone},
            session=session,
        )

    @staticmethod
    def notify_comment(idea, commenter_name, *, session=None):
        if not idea.user_id:
            return None
        return NotificationService.create(
            user_id=idea.user_id,
            type="COMMENT",
            title="New comment",
            message=f"{commenter_name} commented on \"{idea.title}\"",
            idea_id=idea.id,
            data={"commenter": commenter_name},
            session=session,
        )

    @staticmethod
    def notify_collaboration(idea, user_id, kind, collaborator_name=None, *, session=None):
        """kind: REQUEST | ACCEPTED | DECLINED."""
        titles = {
            "REQUEST": ("Collaboration request",
                        f"{collaborator_name} asked to collaborate on \"{idea.title}\""),
            "ACCEPTED": ("Collaboration accepted",
                         f"Your collaboration on \"{idea.title}\" was accepted"),
            "DECLINED": ("Collaboration declined",
                         f"Your collaboration on \"{idea.title}\" was declined"),
        }
        title, message = titles[kind]
        return NotificationService.create(
            user_id=user_id,
            type="COLLABORATION",
            title=title,
            message=message,
            idea_id=idea.id,
            action_required=kind == "REQUEST",
            data={"type": kind, "collaborator": collaborator_name},
            session=session,
        )

    # ── Query ─────────────────────────────────────────────────────────────

    @staticmethod
    def list_for_recipient(user_id, unread_only=False, limit=20, offset=0):
        """
        Retrieve notifications for a recipient, newest first.
        """
        q = Notification.query.filter(Notification.user_id == user_id)
        if unread_only:
            q = q.filter(Notification.read_at.is_(None))
        total = q.count()
        items = q.order_by(Notification.created_at.desc()).offset(offset).limit(limit).all()
        return items, total

    @staticmethod
    def unread_count(user_id):
        """Return count of unread notifications."""
        return Notification.query.filter(
            Notification.user_id == user_id,
            Notification.read_at.is_(None),
        ).count()

    # ── Actions ───────────────────────────────────────────────────────────

    @staticmethod
    def mark_read(notification_id, user_id):
        """Mark a single notification as read. Other users' rows are invisible."""
        notif = Notification.query.filter_by(id=notification_id, user_id=user_id).first()
        if notif:
            notif.mark_read()
            db.session.commit()
        return notif

    @staticmethod
    def mark_all_read(user_id):
        """Mark all notifications for a recipient as read."""
        now = datetime.now(timezone.utc)
        count = Notification.query.filter(
            Notification.user_id == user_id,
            Notification.read_at.is_(None),
        ).update({"read_at": now}, synchronize_session="fetch")
        db.session.commit()
        return count

    @staticmethod
    def delete(notification_id, user_id):
        notif = Notification.query.filter_by(id=notification_id, user_id=user_id).first()
        if not notif:
            return False
        db.session.delete(notif)
        db.session.commit()
        return True
