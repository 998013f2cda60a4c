"""
Idea Swipe
Scheduled Jobs.

Jobs:
    - auto_progression_sweep: promotion + delegation sweep over all candidate ideas
"""

from __future__ import annotations

import logging
from typing import Any

from ideaswipe.services.scheduler_service import register_job

logger = logging.getLogger(__name__)


@register_job("auto_progression_sweep", interval_setting="AUTO_PROGRESSION_INTERVAL_MINUTES")
def run_auto_progression_sweep(app) -> dict[str, Any]:
    """Promote ideas past their like-ratio thresholds and delegate idle ones."""
    from ideaswipe.services.auto_progression import AutoProgressionService

    result = AutoProgressionService().run_full_sweep()
    summary = result.to_dict()
    logger.info("Auto-progression sweep: %d promotions, %d delegations, %d errors",
                summary["promotion_count"], summary["delegation_count"], len(summary["errors"]))
    return summary
