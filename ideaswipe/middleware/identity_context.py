"""
Acting-identity middleware.

Wallet sign-in happens outside this service; callers forward the resolved
user id in the ``X-User-Id`` header. This hook resolves it once per request:

    g.acting_user_id -> id of an existing, active user, else None

A header naming an unknown or deactivated user is rejected with 401 so a
typo never silently turns into an anonymous request.
"""

import logging

from flask import g, request

from ideaswipe.models import db
from ideaswipe.models.idea import User
from ideaswipe.utils.errors import E, api_error

logger = logging.getLogger(__name__)

IDENTITY_HEADER = "X-User-Id"

_SKIP_PREFIXES = ("/api/v1/health",)


def init_identity_context(app):

    @app.before_request
    def _identity_context():
        g.acting_user_id = None

        if not request.path.startswith("/api/v1/"):
            return None
        if request.path.startswith(_SKIP_PREFIXES):
            return None

        user_id = (request.headers.get(IDENTITY_HEADER) or "").strip()
        if not user_id:
            return None

        user = db.session.get(User, user_id)
        if user is None or not user.is_active:
            logger.warning("Rejected %s=%s (unknown or inactive user)", IDENTITY_HEADER, user_id)
            return api_error(E.UNAUTHENTICATED, "Unknown or inactive user")

        g.acting_user_id = user.id
        return None

    logger.info("Identity context middleware installed")
