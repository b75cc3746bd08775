"""sales pipeline schema: contacts, deals and versioned quotes

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17 00:00:01
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261017_0001"
down_revision = None
branch_labels = None
depends_on = None


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.Column("organization_id", sa.String(length=36), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "contacts",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=True),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("phone", sa.String(length=40), nullable=True),
        *_audit_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_contacts_organization_id", "contacts", ["organization_id"])
    op.create_index("idx_contacts_org_email", "contacts", ["organization_id", "email"])

    op.create_table(
        "deals",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("contact_id", sa.String(length=36), nullable=False),
        sa.Column("lead_id", sa.String(length=36), nullable=True),
        sa.Column("quote_id", sa.String(length=36), nullable=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("service_type", sa.String(length=120), nullable=True),
        sa.Column("pest_types", sa.JSON(), nullable=True),
        sa.Column("property_type", sa.String(length=60), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=True),
        sa.Column("status", sa.String(length=40), nullable=False),
        sa.Column("stage", sa.String(length=40), nullable=False),
        sa.Column("deal_value", sa.Integer(), nullable=False),
        sa.Column("recurring_value", sa.Integer(), nullable=True),
        sa.Column("service_frequency", sa.String(length=40), nullable=True),
        sa.Column("contract_length_months", sa.Integer(), nullable=True),
        sa.Column("lifetime_value", sa.Integer(), nullable=True),
        sa.Column("win_probability", sa.Integer(), nullable=False),
        sa.Column("weighted_value", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.String(length=36), nullable=True),
        sa.Column("sales_rep_id", sa.String(length=36), nullable=True),
        sa.Column("expected_close_date", sa.Date(), nullable=True),
        sa.Column("actual_close_date", sa.DateTime(), nullable=True),
        sa.Column("last_activity_date", sa.DateTime(), nullable=True),
        sa.Column("days_in_pipeline", sa.Integer(), nullable=False),
        sa.Column("stage_duration_days", sa.Integer(), nullable=False),
        sa.Column("won_reason", sa.Text(), nullable=True),
        sa.Column("lost_reason", sa.Text(), nullable=True),
        sa.Column("lost_to_competitor", sa.String(length=255), nullable=True),
        sa.Column("stage_history", sa.JSON(), nullable=False),
        sa.Column("row_version", sa.Integer(), nullable=False),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["contact_id"], ["contacts.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_deals_organization_id", "deals", ["organization_id"])
    op.create_index("ix_deals_owner_id", "deals", ["owner_id"])
    op.create_index("idx_deals_org_stage", "deals", ["organization_id", "stage"])
    op.create_index("idx_deals_org_status", "deals", ["organization_id", "status"])
    op.create_index("idx_deals_org_expected_close", "deals", ["organization_id", "expected_close_date"])

    op.create_table(
        "quotes",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("quote_number", sa.String(length=50), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("previous_version_id", sa.String(length=36), nullable=True),
        sa.Column("revision_notes", sa.Text(), nullable=True),
        sa.Column("deal_id", sa.String(length=36), nullable=True),
        sa.Column("contact_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=40), nullable=False),
        sa.Column("status_changed_at", sa.DateTime(), nullable=True),
        sa.Column("valid_from", sa.Date(), nullable=True),
        sa.Column("valid_until", sa.Date(), nullable=True),
        sa.Column("service_address_line1", sa.String(length=255), nullable=True),
        sa.Column("service_address_line2", sa.String(length=255), nullable=True),
        sa.Column("service_city", sa.String(length=100), nullable=True),
        sa.Column("service_state", sa.String(length=50), nullable=True),
        sa.Column("service_postal_code", sa.String(length=20), nullable=True),
        sa.Column("service_frequency", sa.String(length=40), nullable=True),
        sa.Column("contract_length_months", sa.Integer(), nullable=True),
        sa.Column("estimated_start_date", sa.Date(), nullable=True),
        sa.Column("line_items", sa.JSON(), nullable=False),
        sa.Column("subtotal", sa.Integer(), nullable=False),
        sa.Column("discount_amount", sa.Integer(), nullable=False),
        sa.Column("discount_percent", sa.Float(), nullable=False),
        sa.Column("discount_type", sa.String(length=40), nullable=False),
        sa.Column("tax_rate", sa.Float(), nullable=False),
        sa.Column("tax_amount", sa.Integer(), nullable=False),
        sa.Column("total_amount", sa.Integer(), nullable=False),
        sa.Column("monthly_amount", sa.Integer(), nullable=True),
        sa.Column("annual_amount", sa.Integer(), nullable=True),
        sa.Column("setup_fee", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("terms_and_conditions", sa.Text(), nullable=True),
        sa.Column("payment_terms", sa.String(length=50), nullable=False),
        sa.Column("warranty_terms", sa.Text(), nullable=True),
        sa.Column("internal_notes", sa.Text(), nullable=True),
        sa.Column("customer_notes", sa.Text(), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=True),
        sa.Column("owner_id", sa.String(length=36), nullable=True),
        sa.Column("sent_at", sa.DateTime(), nullable=True),
        sa.Column("sent_to_email", sa.String(length=320), nullable=True),
        sa.Column("viewed_at", sa.DateTime(), nullable=True),
        sa.Column("viewed_count", sa.Integer(), nullable=False),
        sa.Column("signature_required", sa.Boolean(), nullable=False),
        sa.Column("signed_at", sa.DateTime(), nullable=True),
        sa.Column("signed_by_name", sa.String(length=200), nullable=True),
        sa.Column("signed_by_email", sa.String(length=320), nullable=True),
        sa.Column("signature_ip", sa.String(length=45), nullable=True),
        sa.Column("signature_data", sa.Text(), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("row_version", sa.Integer(), nullable=False),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["contact_id"], ["contacts.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["deal_id"], ["deals.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("organization_id", "quote_number", "version", name="uq_quotes_org_number_version"),
    )
    op.create_index("ix_quotes_organization_id", "quotes", ["organization_id"])
    op.create_index("ix_quotes_contact_id", "quotes", ["contact_id"])
    op.create_index("ix_quotes_deal_id", "quotes", ["deal_id"])
    op.create_index("idx_quotes_org_status", "quotes", ["organization_id", "status"])
    op.create_index("idx_quotes_org_number", "quotes", ["organization_id", "quote_number"])
    op.create_index("idx_quotes_valid_until", "quotes", ["valid_until"])


def downgrade() -> None:
    op.drop_index("idx_quotes_valid_until", table_name="quotes")
    op.drop_index("idx_quotes_org_number", table_name="quotes")
    op.drop_index("idx_quotes_org_status", table_name="quotes")
    op.drop_index("ix_quotes_deal_id", table_name="quotes")
    op.drop_index("ix_quotes_contact_id", table_name="quotes")
    op.drop_index("ix_quotes_organization_id", table_name="quotes")
    op.drop_table("quotes")

    op.drop_index("idx_deals_org_expected_close", table_name="deals")
    op.drop_index("idx_deals_org_status", table_name="deals")
    op.drop_index("idx_deals_org_stage", table_name="deals")
    op.drop_index("ix_deals_owner_id", table_name="deals")
    op.drop_index("ix_deals_organization_id", table_name="deals")
    op.drop_table("deals")

    op.drop_index("idx_contacts_org_email", table_name="contacts")
    op.drop_index("ix_contacts_organization_id", table_name="contacts")
    op.drop_table("contacts")
