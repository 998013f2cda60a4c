"""
Idea Swipe
Tests — Progression Rule Evaluator.

Covers:
    1. Division guard (no active users)
    2. Threshold conjunction (ratio AND minimum likes), exact at the boundary
    3. Rule table loading / fallback / seeding
    4. Inactivity thresholds (NULL rule rows switch delegation off)
"""

from types import SimpleNamespace

import pytest

from ideaswipe.config import DEFAULT_PROGRESSION_RULES
from ideaswipe.models import db
from ideaswipe.models.idea import IDEA_STATUSES
from ideaswipe.models.progression import ProgressionSetting
from ideaswipe.services.progression_rules import (
    ProgressionRule,
    evaluate,
    inactivity_days_for,
    load_rules,
    seed_default_rules,
)

DEFAULT_RULES = [ProgressionRule.from_mapping(r) for r in DEFAULT_PROGRESSION_RULES]


def _idea(status="idea", likes=0):
    return SimpleNamespace(id="idea-1", status=status, likes_count=likes)


# ═══════════════════════════════════════════════════════════════════════════
#  evaluate()
# ═══════════════════════════════════════════════════════════════════════════

class TestEvaluate:

    @pytest.mark.parametrize("status", sorted(IDEA_STATUSES))
    def test_zero_active_users_never_promotes(self, status):
        assert evaluate(_idea(status, likes=50), 0, DEFAULT_RULES) is None

    def test_ratio_just_below_threshold(self):
        # 5 / 17 = 29.4%
        assert evaluate(_idea("idea", 5), 17, DEFAULT_RULES) is None

    def test_ratio_at_threshold_promotes(self):
        decision = evaluate(_idea("idea", 6), 20, DEFAULT_RULES)
        assert decision is not None
        assert decision.from_status == "idea"
        assert decision.to_status == "pre-draft"
        assert "30.0%" in decision.reason
        assert decision.trigger_data["likes_count"] == 6
        assert decision.trigger_data["total_users"] == 20

    @pytest.mark.parametrize("threshold, likes, users", [
        (29.0, 29, 100),
        (57.0, 57, 100),
        (33.3, 333, 1000),
    ])
    def test_configured_threshold_met_exactly(self, threshold, likes, users):
        rules = [ProgressionRule("idea", "pre-draft", threshold, 5)]

        assert evaluate(_idea("idea", likes), users, rules) is not None
        assert evaluate(_idea("idea", likes - 1), users, rules) is None

    def test_ratio_met_but_minimum_likes_not(self):
        # 3 / 5 = 60% but only 3 likes (< 5)
        assert evaluate(_idea("idea", 3), 5, DEFAULT_RULES) is None

    def test_pre_draft_rule(self):
        assert evaluate(_idea("pre-draft", 9), 20, DEFAULT_RULES) is None
        decision = evaluate(_idea("pre-draft", 10), 25, DEFAULT_RULES)
        assert decision.to_status == "draft"

    def test_draft_rule(self):
        assert evaluate(_idea("draft", 15), 31, DEFAULT_RULES) is None
        decision = evaluate(_idea("draft", 15), 30, DEFAULT_RULES)
        assert decision.to_status == "commit"

    @pytest.mark.parametrize("status", ["commit", "in-progress", "test", "finish", "archive"])
    def test_statuses_without_rule(self, status):
        assert evaluate(_idea(status, 100), 100, DEFAULT_RULES) is None

    def test_disabled_rule_is_ignored(self):
        rules = [ProgressionRule("idea", "pre-draft", 30.0, 5, auto_progression=False)]
        assert evaluate(_idea("idea", 10), 10, rules) is None

    def test_decision_to_dict(self):
        d = evaluate(_idea("idea", 10), 10, DEFAULT_RULES).to_dict()
        assert d["idea_id"] == "idea-1"
        assert d["trigger_data"]["like_ratio"] == 100.0


# ═══════════════════════════════════════════════════════════════════════════
#  Rule table
# ═══════════════════════════════════════════════════════════════════════════

class TestRuleLoading:

    def test_falls_back_to_config_when_table_empty(self):
        rules = load_rules()
        assert [r.from_status for r in rules] == ["idea", "pre-draft", "draft"]
        assert rules[0].like_threshold_percentage == 30.0
        assert rules[0].minimum_likes == 5

    def test_table_rows_override_defaults(self):
        db.session.add(ProgressionSetting(
            from_status="idea", to_status="pre-draft",
            like_threshold_percentage=10.0, minimum_likes=1, inactivity_days=None,
        ))
        db.session.commit()

        rules = load_rules()
        assert len(rules) == 1
        assert evaluate(_idea("idea", 1), 10, rules).to_status == "pre-draft"

    def test_seed_is_idempotent(self):
        assert seed_default_rules() == 3
        assert seed_default_rules() == 0
        assert ProgressionSetting.query.count() == 3

    def test_null_inactivity_days_means_never(self):
        db.session.add(ProgressionSetting(
            from_status="draft", to_status="commit",
            like_threshold_percentage=50.0, minimum_likes=15, inactivity_days=None,
        ))
        db.session.commit()

        # row present with NULL: never; no row at all: the default
        assert inactivity_days_for("draft", default=14) is None
        assert inactivity_days_for("pre-draft", default=14) == 14

    def test_inactivity_days(self):
        assert inactivity_days_for("idea") is None
        assert inactivity_days_for("pre-draft") == 14
        assert inactivity_days_for("draft") == 14
        assert inactivity_days_for("commit") is None
