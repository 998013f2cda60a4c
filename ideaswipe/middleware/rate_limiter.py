"""
Rate limiting configuration.

The Limiter instance is created in ideaswipe/__init__.py with no default
limits; this module attaches limits per blueprint and per route once the
blueprints are registered.

Usage:
    from ideaswipe.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

from flask import g, request as flask_request

logger = logging.getLogger(__name__)

# endpoint -> limit, keyed by acting user (see rate_limit_key)
ROUTE_LIMITS = {
    "engagement.toggle_like": "100/hour",
    "engagement.add_comment": "50/hour",
    "progression.run_sweep": "10/minute",
}

BLUEPRINT_LIMITS = {
    "engagement": "60/minute",
    "delegation": "60/minute",
    "progression": "120/minute",
    "notification": "200/minute",
}


def rate_limit_key():
    """Acting user when known, else remote IP."""
    user_id = getattr(g, "acting_user_id", None)
    if user_id:
        return f"user:{user_id}"
    return flask_request.remote_addr or "unknown"


def init_rate_limits(app, limiter):
    """Apply limits. Disabled entirely in testing mode."""
    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    for bp_name, limit in BLUEPRINT_LIMITS.items():
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(limit, key_func=rate_limit_key)(bp)

    for endpoint, limit in ROUTE_LIMITS.items():
        view = app.view_functions.get(endpoint)
        if view:
            app.view_functions[endpoint] = limiter.limit(limit, key_func=rate_limit_key)(view)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info("Rate limiter configured: likes 100/h, comments 50/h, sweep 10/min")
