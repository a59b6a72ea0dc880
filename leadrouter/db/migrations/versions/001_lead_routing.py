"""Create lead routing tables.

Revision ID: 001
Revises:
Create Date: 2026-10-19

Tables: lead_rules, leads, audit_entries
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create lead routing tables."""
    # Creation-order counter for rules; reorder reuses existing values
    op.execute("CREATE SEQUENCE lead_rule_sequence START 1")

    # lead_rules table
    op.create_table(
        "lead_rules",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("priority", sa.Integer, nullable=False),
        sa.Column("sequence", sa.BigInteger, nullable=False),
        sa.Column("criteria_office_id", sa.String(255)),
        sa.Column("criteria_study_destination", sa.String(255)),
        sa.Column("criteria_lead_source", sa.String(100)),
        sa.Column("target_office_id", sa.String(255), nullable=False),
        sa.Column("target_consultant_id", sa.String(255)),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("NOW()")),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("NOW()")),
    )
    op.create_index("idx_lead_rules_order", "lead_rules", ["priority", "sequence"])

    # leads table
    op.create_table(
        "leads",
        sa.Column("id", sa.String(255), primary_key=True),
        sa.Column("source", sa.String(100)),
        sa.Column("study_destination", sa.String(255)),
        sa.Column("status", sa.String(20), nullable=False, server_default="new"),
        sa.Column("office_id", sa.String(255)),
        sa.Column("assigned_consultant_id", sa.String(255)),
        sa.Column("name", sa.String(255)),
        sa.Column("email", sa.String(255)),
        sa.Column("phone", sa.String(50)),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("NOW()")),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("NOW()")),
        sa.CheckConstraint(
            "status IN ('new', 'in_progress', 'converted', 'lost')",
            name="chk_lead_status",
        ),
    )
    op.create_index("idx_leads_office", "leads", ["office_id"])
    op.create_index("idx_leads_consultant", "leads", ["assigned_consultant_id"])
    op.create_index("idx_leads_created", "leads", ["created_at"])

    # audit_entries table
    op.create_table(
        "audit_entries",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("sequence", sa.BigInteger, sa.Identity(always=True), nullable=False),
        sa.Column("lead_id", sa.String(255)),
        sa.Column("rule_id", UUID),
        sa.Column("actor_id", sa.String(255), nullable=False),
        sa.Column("action", sa.String(20), nullable=False),
        sa.Column("description", sa.Text, server_default=""),
        sa.Column("details", JSONB, nullable=False, server_default="{}"),
        sa.Column("occurred_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("idempotency_key", sa.String(255)),
        sa.CheckConstraint(
            "num_nonnulls(lead_id, rule_id) = 1",
            name="chk_audit_subject",
        ),
        sa.CheckConstraint(
            "action IN ('auto_assigned', 'reassigned', "
            "'rule_created', 'rule_updated', 'rule_deleted')",
            name="chk_audit_action",
        ),
    )
    op.create_index("idx_audit_lead", "audit_entries", ["lead_id", "occurred_at", "sequence"])
    op.create_index("idx_audit_rule", "audit_entries", ["rule_id", "occurred_at", "sequence"])
    # One entry per dispatch attempt
    op.execute(
        "CREATE UNIQUE INDEX uq_audit_idempotency "
        "ON audit_entries (lead_id, idempotency_key) WHERE idempotency_key IS NOT NULL"
    )

    # audit_entries is append-only
    op.execute(
        """
        CREATE FUNCTION audit_entries_immutable() RETURNS trigger AS $$
        BEGIN
            RAISE EXCEPTION 'audit_entries is append-only';
        END;
        $$ LANGUAGE plpgsql
        """
    )
    op.execute(
        "CREATE TRIGGER trg_audit_entries_immutable "
        "BEFORE UPDATE OR DELETE ON audit_entries "
        "FOR EACH ROW EXECUTE FUNCTION audit_entries_immutable()"
    )


def downgrade() -> None:
    """Drop lead routing tables."""
    op.execute("DROP TRIGGER IF EXISTS trg_audit_entries_immutable ON audit_entries")
    op.execute("DROP FUNCTION IF EXISTS audit_entries_immutable()")
    op.drop_table("audit_entries")
    op.drop_table("leads")
    op.drop_table("lead_rules")
    op.execute("DROP SEQUENCE IF EXISTS lead_rule_sequence")
