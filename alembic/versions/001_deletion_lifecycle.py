"""
============================================================
CRC CARD (Class / Responsibilities / Collaborators)
============================================================
Class: 001_deletion_lifecycle (Alembic Migration)

Responsibilities:
  - Create the two tables this service owns:
      account_deletion_requests  (lifecycle state + sweep bookkeeping)
      audit_log                  (append-only trail)
  - Enforce the single-pending-request invariant in the database.
  - Make audit_log append-only (trigger rejects UPDATE/DELETE).

Collaborators:
  - PostgreSQL 14+
  - infrastructure.repositories.postgres.* (raw SQL against this schema)

Policy:
  - Baseline migration. Later changes go in additive migrations (002+).
  - Naming:
      pk_<table>, uq_<table>_<col>, ix_<table>_<col>, ck_<table>_<rule>
============================================================
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001_deletion_lifecycle"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # =========================================================
    # 1) DELETION REQUESTS
    # =========================================================
    op.create_table(
        "account_deletion_requests",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("account_id", sa.String(255), nullable=False),
        sa.Column(
            "tenant_id",
            sa.String(255),
            nullable=False,
            server_default=sa.text("'system'"),
        ),
        sa.Column("requested_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("scheduled_for", sa.DateTime(timezone=True), nullable=False),
        sa.Column("reason", sa.Text, nullable=True),
        sa.Column(
            "status",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'pending'"),
        ),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("executed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("user_agent", sa.Text, nullable=True),
        sa.Column(
            "cancelled_by_admin",
            sa.Boolean,
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column("admin_user_id", sa.String(255), nullable=True),
        sa.Column("admin_notes", sa.Text, nullable=True),
        # Sweep bookkeeping
        sa.Column(
            "purge_attempts",
            sa.Integer,
            nullable=False,
            server_default=sa.text("0"),
        ),
        sa.Column("last_purge_error", sa.Text, nullable=True),
        sa.Column(
            "needs_review",
            sa.Boolean,
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column("claim_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("claimed_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name="pk_account_deletion_requests"),
        sa.CheckConstraint(
            "status IN ('pending', 'cancelled', 'executed')",
            name="ck_account_deletion_requests_status",
        ),
        sa.CheckConstraint(
            "scheduled_for >= requested_at",
            name="ck_account_deletion_requests_schedule",
        ),
        sa.CheckConstraint(
            "purge_attempts >= 0",
            name="ck_account_deletion_requests_attempts",
        ),
    )

    # One pending request per account. The repository's
    # INSERT ... ON CONFLICT (account_id) WHERE status = 'pending' targets this.
    op.create_index(
        "uq_account_deletion_requests_pending_account",
        "account_deletion_requests",
        ["account_id"],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
    )

    # Sweep query: pending + due, oldest first.
    op.create_index(
        "ix_account_deletion_requests_due",
        "account_deletion_requests",
        ["scheduled_for"],
        postgresql_where=sa.text("status = 'pending' AND needs_review = false"),
    )
    op.create_index(
        "ix_account_deletion_requests_account_id",
        "account_deletion_requests",
        ["account_id", sa.text("requested_at DESC")],
    )
    op.create_index(
        "ix_account_deletion_requests_status",
        "account_deletion_requests",
        ["status", sa.text("requested_at DESC")],
    )

    # =========================================================
    # 2) AUDIT LOG (append-only)
    # =========================================================
    op.create_table(
        "audit_log",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "occurred_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("actor_type", sa.String(20), nullable=False),
        sa.Column("actor_id", sa.String(255), nullable=False),
        sa.Column(
            "tenant_id",
            sa.String(255),
            nullable=False,
            server_default=sa.text("'system'"),
        ),
        sa.Column("entity_type", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.String(255), nullable=False),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("request_id", sa.String(255), nullable=False),
        sa.Column("ip", sa.String(64), nullable=True),
        sa.Column("user_agent", sa.Text, nullable=True),
        sa.Column(
            "diff",
            postgresql.JSONB,
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column(
            "metadata",
            postgresql.JSONB,
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column(
            "pii_scrubbed",
            sa.Boolean,
            nullable=False,
            server_default=sa.text("true"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_audit_log"),
        sa.CheckConstraint(
            "actor_type IN ('user', 'system', 'integration')",
            name="ck_audit_log_actor_type",
        ),
        sa.CheckConstraint(
            "entity_type IN ('inventory_item', 'tenant', 'policy', 'oauth', "
            "'account', 'other')",
            name="ck_audit_log_entity_type",
        ),
        sa.CheckConstraint(
            "action IN ('create', 'update', 'delete', 'sync', 'policy_apply', "
            "'oauth_connect', 'oauth_refresh')",
            name="ck_audit_log_action",
        ),
    )

    op.create_index(
        "ix_audit_log_tenant_occurred_at",
        "audit_log",
        ["tenant_id", sa.text("occurred_at DESC")],
    )
    op.create_index("ix_audit_log_entity", "audit_log", ["entity_type", "entity_id"])
    op.create_index("ix_audit_log_actor", "audit_log", ["actor_type", "actor_id"])
    op.create_index("ix_audit_log_request_id", "audit_log", ["request_id"])

    op.execute(
        """
        CREATE OR REPLACE FUNCTION audit_log_reject_mutation()
        RETURNS trigger AS $$
        BEGIN
            RAISE EXCEPTION 'audit_log is append-only';
        END;
        $$ LANGUAGE plpgsql
        """
    )
    op.execute(
        """
        CREATE TRIGGER trg_audit_log_append_only
        BEFORE UPDATE OR DELETE ON audit_log
        FOR EACH ROW EXECUTE FUNCTION audit_log_reject_mutation()
        """
    )


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS trg_audit_log_append_only ON audit_log")
    op.execute("DROP FUNCTION IF EXISTS audit_log_reject_mutation()")
    op.drop_table("audit_log")
    op.drop_table("account_deletion_requests")
