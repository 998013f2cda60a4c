"""progression_engine_tables

Create users / ideas / engagement tables and the progression engine tables
(idea_progressions, idea_delegations, user_activities, progression_settings,
notifications, scheduled_jobs). Seeds the default like-ratio rules.

Revision ID: 7c1e5a9d2f40
Revises:
Create Date: 2026-10-19 09:30:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "7c1e5a9d2f40"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade():
    bind = op.get_bind()
    existing_tables = set(sa_inspect(bind).get_table_names())

    if "users" not in existing_tables:
        op.create_table(
            "users",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("wallet_address", sa.String(length=100), nullable=False),
            sa.Column("nickname", sa.String(length=100), nullable=True),
            sa.Column("avatar_url", sa.String(length=500), nullable=True),
            sa.Column("bio", sa.Text(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            *_timestamps(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_users_wallet_address", "users", ["wallet_address"], unique=True)

    if "ideas" not in existing_tables:
        op.create_table(
            "ideas",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("user_id", sa.String(length=36), nullable=True),
            sa.Column("title", sa.String(length=200), nullable=False),
            sa.Column("target", sa.Text(), nullable=True),
            sa.Column("why_description", sa.Text(), nullable=True),
            sa.Column("what_description", sa.Text(), nullable=True),
            sa.Column("how_description", sa.Text(), nullable=True),
            sa.Column("impact_description", sa.Text(), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="idea"),
            sa.Column("likes_count", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("comments_count", sa.Integer(), nullable=False, server_default="0"),
            *_timestamps(),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_ideas_user_id", "ideas", ["user_id"])
        op.create_index("ix_ideas_status_updated", "ideas", ["status", "updated_at"])

    if "likes" not in existing_tables:
        op.create_table(
            "likes",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("idea_id", sa.String(length=36), nullable=False),
            sa.Column("user_id", sa.String(length=36), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["idea_id"], ["ideas.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("idea_id", "user_id", name="uq_likes_idea_user"),
        )
        op.create_index("ix_likes_idea_id", "likes", ["idea_id"])
        op.create_index("ix_likes_user_id", "likes", ["user_id"])

    if "comments" not in existing_tables:
        op.create_table(
            "comments",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("idea_id", sa.String(length=36), nullable=False),
            sa.Column("user_id", sa.String(length=36), nullable=False),
            sa.Column("content", sa.Text(), nullable=False),
            *_timestamps(),
            sa.ForeignKeyConstraint(["idea_id"], ["ideas.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_comments_idea_id", "comments", ["idea_id"])
        op.create_index("ix_comments_user_id", "comments", ["user_id"])

    if "collaborations" not in existing_tables:
        op.create_table(
            "collaborations",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("idea_id", sa.String(length=36), nullable=False),
            sa.Column("user_id", sa.String(length=36), nullable=False),
            sa.Column("role", sa.String(length=20), nullable=False, server_default="contributor"),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
            sa.Column("message", sa.Text(), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["idea_id"], ["ideas.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_collaborations_idea_status", "collaborations", ["idea_id", "status"])
        op.create_index("ix_collaborations_user_id", "collaborations", ["user_id"])

    if "user_activities" not in existing_tables:
        op.create_table(
            "user_activities",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("user_id", sa.String(length=36), nullable=False),
            sa.Column("idea_id", sa.String(length=36), nullable=False),
            sa.Column("activity_type", sa.String(length=20), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["idea_id"], ["ideas.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_user_activities_user_id", "user_activities", ["user_id"])
        op.create_index("ix_user_activities_idea_created", "user_activities", ["idea_id", "created_at"])

    if "idea_progressions" not in existing_tables:
        op.create_table(
            "idea_progressions",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("idea_id", sa.String(length=36), nullable=False),
            sa.Column("from_status", sa.String(length=20), nullable=True),
            sa.Column("to_status", sa.String(length=20), nullable=False),
            sa.Column("trigger_type", sa.String(length=30), nullable=False),
            sa.Column("trigger_data", sa.JSON(), nullable=True),
            sa.Column("triggered_by", sa.String(length=36), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["idea_id"], ["ideas.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_idea_progressions_idea_created", "idea_progressions", ["idea_id", "created_at"])

    if "progression_settings" not in existing_tables:
        settings = op.create_table(
            "progression_settings",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("from_status", sa.String(length=20), nullable=False),
            sa.Column("to_status", sa.String(length=20), nullable=False),
            sa.Column("like_threshold_percentage", sa.Float(), nullable=True),
            sa.Column("minimum_likes", sa.Integer(), nullable=True),
            sa.Column("inactivity_days", sa.Integer(), nullable=True),
            sa.Column("auto_progression", sa.Boolean(), nullable=False, server_default=sa.true()),
            *_timestamps(),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("from_status"),
        )
        op.bulk_insert(settings, [
            {"from_status": "idea", "to_status": "pre-draft",
             "like_threshold_percentage": 30.0, "minimum_likes": 5, "inactivity_days": None,
             "auto_progression": True},
            {"from_status": "pre-draft", "to_status": "draft",
             "like_threshold_percentage": 40.0, "minimum_likes": 10, "inactivity_days": 14,
             "auto_progression": True},
            {"from_status": "draft", "to_status": "commit",
             "like_threshold_percentage": 50.0, "minimum_likes": 15, "inactivity_days": 14,
             "auto_progression": True},
        ])

    if "idea_delegations" not in existing_tables:
        op.create_table(
            "idea_delegations",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("idea_id", sa.String(length=36), nullable=False),
            sa.Column("from_user_id", sa.String(length=36), nullable=True),
            sa.Column("to_user_id", sa.String(length=36), nullable=False),
            sa.Column("reason", sa.String(length=30), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
            sa.Column("context_data", sa.JSON(), nullable=True),
            sa.Column("delegated_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("declined_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["idea_id"], ["ideas.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["from_user_id"], ["users.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["to_user_id"], ["users.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(
            "uq_idea_delegations_one_pending",
            "idea_delegations",
            ["idea_id"],
            unique=True,
            postgresql_where=sa.text("status = 'pending'"),
            sqlite_where=sa.text("status = 'pending'"),
        )
        op.create_index("ix_idea_delegations_to_user_status", "idea_delegations", ["to_user_id", "status"])

    if "notifications" not in existing_tables:
        op.create_table(
            "notifications",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("user_id", sa.String(length=36), nullable=False),
            sa.Column("idea_id", sa.String(length=36), nullable=True),
            sa.Column("type", sa.String(length=30), nullable=False),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("message", sa.Text(), nullable=True),
            sa.Column("action_required", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("data", sa.JSON(), nullable=True),
            sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["idea_id"], ["ideas.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_notifications_user_created", "notifications", ["user_id", "created_at"])
        op.create_index("ix_notifications_idea_id", "notifications", ["idea_id"])

    if "scheduled_jobs" not in existing_tables:
        op.create_table(
            "scheduled_jobs",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("job_name", sa.String(length=100), nullable=False),
            sa.Column("description", sa.String(length=500), nullable=True),
            sa.Column("interval_minutes", sa.Integer(), nullable=False),
            sa.Column("is_enabled", sa.Boolean(), nullable=False),
            sa.Column("last_run_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("last_run_status", sa.String(length=20), nullable=True),
            sa.Column("last_run_duration_ms", sa.Integer(), nullable=True),
            sa.Column("last_run_summary", sa.JSON(), nullable=True),
            sa.Column("run_count", sa.Integer(), nullable=False),
            sa.Column("failure_count", sa.Integer(), nullable=False),
            sa.Column("last_error", sa.Text(), nullable=True),
            *_timestamps(),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("job_name"),
        )


def downgrade():
    bind = op.get_bind()
    existing_tables = set(sa_inspect(bind).get_table_names())

    for table in (
        "scheduled_jobs",
        "notifications",
        "idea_delegations",
        "progression_settings",
        "idea_progressions",
        "user_activities",
        "collaborations",
        "comments",
        "likes",
        "ideas",
        "users",
    ):
        if table in existing_tables:
            op.drop_table(table)
