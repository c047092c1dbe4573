"""initial QA console schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-01
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=100)),
        sa.Column("last_name", sa.String(length=100)),
        sa.Column("is_agent", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("agent_id", sa.String(length=100)),
        sa.Column("permissions_json", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.Column("last_login_at", sa.DateTime()),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_agent_id", "users", ["agent_id"])

    op.create_table(
        "teams",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False, unique=True),
        sa.Column("description", sa.String(length=1000)),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "team_members",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("team_id", sa.Integer(), sa.ForeignKey("teams.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("team_lead", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("added_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("team_id", "user_id", name="uq_team_members_team_user"),
    )
    op.create_index("ix_team_members_user_id", "team_members", ["user_id"])
    op.create_index("ix_team_members_team_lead", "team_members", ["team_id", "team_lead"])

    op.create_table(
        "credit_accounts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("current_balance", sa.Numeric(12, 4), nullable=False, server_default="0"),
        sa.Column("low_balance_threshold", sa.Integer(), nullable=False, server_default="20"),
        sa.Column("last_updated", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.CheckConstraint(
            "low_balance_threshold >= 0 AND low_balance_threshold <= 100",
            name="low_balance_threshold_percent",
        ),
    )

    op.create_table(
        "credit_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("amount", sa.Numeric(12, 4), nullable=False),
        sa.Column("transaction_type", sa.String(length=20), nullable=False),
        sa.Column("description", sa.String(length=500)),
        sa.Column("evaluation_id", sa.Integer()),
        sa.Column("balance_after", sa.Numeric(12, 4), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.CheckConstraint("amount > 0", name="credit_amount_positive"),
    )
    op.create_index("ix_credit_transactions_type", "credit_transactions", ["transaction_type"])
    op.create_index("ix_credit_transactions_created_at", "credit_transactions", ["created_at"])
    op.create_index("ix_credit_transactions_evaluation_id", "credit_transactions", ["evaluation_id"])

    op.create_table(
        "interactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("external_id", sa.String(length=100), unique=True),
        sa.Column("channel", sa.String(length=20), nullable=False, server_default="call"),
        sa.Column("direction", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("agent_id", sa.String(length=100)),
        sa.Column("agent_name", sa.String(length=255)),
        sa.Column("queue_id", sa.String(length=100)),
        sa.Column("queue_name", sa.String(length=255)),
        sa.Column("work_code", sa.String(length=100)),
        sa.Column("caller_id", sa.String(length=100)),
        sa.Column("connect_duration", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("recording_url", sa.String(length=1000)),
        sa.Column("evaluated", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_interactions_channel", "interactions", ["channel"])
    op.create_index("ix_interactions_agent_id", "interactions", ["agent_id"])
    op.create_index("ix_interactions_queue_id", "interactions", ["queue_id"])
    op.create_index("ix_interactions_created_at", "interactions", ["created_at"])

    op.create_table(
        "interaction_messages",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "interaction_id", sa.Integer(), sa.ForeignKey("interactions.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("channel", sa.String(length=20), nullable=False, server_default="chat"),
        sa.Column("direction", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("author_id", sa.String(length=255)),
        sa.Column("author_name", sa.String(length=255)),
        sa.Column("author_role", sa.String(length=20)),
        sa.Column("subject", sa.String(length=500)),
        sa.Column("text", sa.Text()),
        sa.Column("message_type", sa.String(length=20), nullable=False, server_default="text"),
        sa.Column("attachments_json", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("forwarded", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_interaction_messages_interaction_id", "interaction_messages", ["interaction_id"])

    op.create_table(
        "evaluations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("interaction_id", sa.Integer(), sa.ForeignKey("interactions.id", ondelete="SET NULL")),
        sa.Column("qa_form_id", sa.String(length=100), nullable=False),
        sa.Column("qa_form_name", sa.String(length=255), nullable=False),
        sa.Column("evaluator_id", sa.String(length=100)),
        sa.Column("evaluator_name", sa.String(length=255)),
        sa.Column("agent_id", sa.String(length=100)),
        sa.Column("agent_name", sa.String(length=255)),
        sa.Column("queue_id", sa.String(length=100)),
        sa.Column("queue_name", sa.String(length=255)),
        sa.Column("channel", sa.String(length=20), nullable=False, server_default="call"),
        sa.Column("duration", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("prompt_tokens", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("completion_tokens", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_tokens", sa.Integer()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_evaluations_interaction_id", "evaluations", ["interaction_id"])
    op.create_index("ix_evaluations_agent_id", "evaluations", ["agent_id"])
    op.create_index("ix_evaluations_created_at", "evaluations", ["created_at"])

    op.create_table(
        "criteria_profiles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("queues_json", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("work_codes_json", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("agents_json", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("min_call_duration", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("direction", sa.String(length=20), nullable=False, server_default="all"),
        sa.Column("form_id", sa.String(length=100), nullable=False),
        sa.Column("form_name", sa.String(length=255), nullable=False),
        sa.Column("scheduler_json", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("updated_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL")),
        *_timestamps(),
    )

    op.create_table(
        "evaluation_jobs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "interaction_id", sa.Integer(), sa.ForeignKey("interactions.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("profile_id", sa.Integer(), sa.ForeignKey("criteria_profiles.id", ondelete="SET NULL")),
        sa.Column("qa_form_id", sa.String(length=100), nullable=False),
        sa.Column("recording_url", sa.String(length=1000), nullable=False),
        sa.Column("evaluator_id", sa.String(length=100)),
        sa.Column("evaluator_name", sa.String(length=255)),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="QUEUED"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_evaluation_jobs_interaction_id", "evaluation_jobs", ["interaction_id"])
    op.create_index("ix_evaluation_jobs_profile_id", "evaluation_jobs", ["profile_id"])
    op.create_index("ix_evaluation_jobs_status", "evaluation_jobs", ["status"])

    op.create_table(
        "scheduler_runs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "profile_id", sa.Integer(), sa.ForeignKey("criteria_profiles.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("trigger", sa.String(length=20), nullable=False, server_default="cron"),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("interactions_found", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("interactions_processed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("max_evaluations", sa.Integer(), nullable=False),
        sa.Column("evaluator_id", sa.String(length=100)),
        sa.Column("evaluator_name", sa.String(length=255)),
        sa.Column("error", sa.Text()),
        sa.Column("job_ids_json", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("started_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("finished_at", sa.DateTime()),
    )
    op.create_index("ix_scheduler_runs_profile_id", "scheduler_runs", ["profile_id"])
    op.create_index("ix_scheduler_runs_started_at", "scheduler_runs", ["started_at"])


def downgrade() -> None:
    op.drop_table("scheduler_runs")
    op.drop_table("evaluation_jobs")
    op.drop_table("criteria_profiles")
    op.drop_table("evaluations")
    op.drop_table("interaction_messages")
    op.drop_table("interactions")
    op.drop_table("credit_transactions")
    op.drop_table("credit_accounts")
    op.drop_table("team_members")
    op.drop_table("teams")
    op.drop_table("users")
