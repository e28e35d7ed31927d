"""Inventory cycle schema: inventories, counts, transits, closing reports

Revision ID: 20261019_inventory_cycle
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_inventory_cycle"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "inventories",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(64), nullable=False),
        sa.Column("responsible", sa.String(255), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="active"),
        sa.Column("started_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("progress_stores", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("progress_sectors", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("progress_suppliers", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("inventories", schema=None) as batch_op:
        batch_op.create_index("ix_inventories_code", ["code"], unique=False)
        batch_op.create_index("ix_inventories_started_at", ["started_at"], unique=False)
        # At most one active inventory
        batch_op.create_index(
            "uq_inventories_single_active",
            ["status"],
            unique=True,
            sqlite_where=sa.text("status = 'active'"),
            postgresql_where=sa.text("status = 'active'"),
        )

    op.create_table(
        "count_entries",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("inventory_id", sa.Integer(), nullable=False),
        sa.Column("category", sa.String(16), nullable=False),
        sa.Column("origin", sa.String(255), nullable=False),
        sa.Column("destination", sa.String(255), nullable=True),
        sa.Column("asset_type", sa.String(128), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("responsible", sa.String(255), nullable=False),
        sa.Column("counted_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("transit_asset_type", sa.String(128), nullable=True),
        sa.Column("transit_quantity", sa.Integer(), nullable=True),
        sa.Column("transit_responsible", sa.String(255), nullable=True),
        sa.ForeignKeyConstraint(["inventory_id"], ["inventories.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("quantity > 0", name="ck_count_entries_quantity_positive"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("count_entries", schema=None) as batch_op:
        batch_op.create_index("ix_count_entries_inventory_id", ["inventory_id"], unique=False)
        batch_op.create_index("ix_count_entries_counted_at", ["counted_at"], unique=False)
        batch_op.create_index("ix_count_entries_inventory_category", ["inventory_id", "category"], unique=False)
        batch_op.create_index("ix_count_entries_inventory_origin", ["inventory_id", "origin"], unique=False)

    op.create_table(
        "transit_records",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("inventory_id", sa.Integer(), nullable=False),
        sa.Column("origin", sa.String(255), nullable=False),
        sa.Column("destination", sa.String(255), nullable=False),
        sa.Column("asset_type", sa.String(128), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="sent"),
        sa.Column("sent_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("received_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["inventory_id"], ["inventories.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("quantity > 0", name="ck_transit_records_quantity_positive"),
        sa.CheckConstraint("origin <> destination", name="ck_transit_records_distinct_endpoints"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("transit_records", schema=None) as batch_op:
        batch_op.create_index("ix_transit_records_inventory_id", ["inventory_id"], unique=False)
        batch_op.create_index("ix_transit_records_sent_at", ["sent_at"], unique=False)
        batch_op.create_index("ix_transit_records_inventory_status", ["inventory_id", "status"], unique=False)

    op.create_table(
        "finalization_reports",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("inventory_id", sa.Integer(), nullable=False),
        sa.Column("pending_stores", sa.JSON(), nullable=False),
        sa.Column("suppliers_missing", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("has_transit", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("transit_record_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("store_summary", sa.JSON(), nullable=False),
        sa.Column("dc_summary", sa.JSON(), nullable=False),
        sa.Column("family_summary", sa.JSON(), nullable=False),
        sa.Column("unclassified_assets", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="draft"),
        sa.Column("approved_by", sa.String(255), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("generated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["inventory_id"], ["inventories.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("inventory_id", name="uq_finalization_reports_inventory"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("finalization_reports", schema=None) as batch_op:
        batch_op.create_index("ix_finalization_reports_inventory_id", ["inventory_id"], unique=False)
        batch_op.create_index("ix_finalization_reports_status", ["status"], unique=False)


def downgrade():
    with op.batch_alter_table("finalization_reports", schema=None) as batch_op:
        batch_op.drop_index("ix_finalization_reports_status")
        batch_op.drop_index("ix_finalization_reports_inventory_id")
    op.drop_table("finalization_reports")

    with op.batch_alter_table("transit_records", schema=None) as batch_op:
        batch_op.drop_index("ix_transit_records_inventory_status")
        batch_op.drop_index("ix_transit_records_sent_at")
        batch_op.drop_index("ix_transit_records_inventory_id")
    op.drop_table("transit_records")

    with op.batch_alter_table("count_entries", schema=None) as batch_op:
        batch_op.drop_index("ix_count_entries_inventory_origin")
        batch_op.drop_index("ix_count_entries_inventory_category")
        batch_op.drop_index("ix_count_entries_counted_at")
        batch_op.drop_index("ix_count_entries_inventory_id")
    op.drop_table("count_entries")

    with op.batch_alter_table("inventories", schema=None) as batch_op:
        batch_op.drop_index("uq_inventories_single_active")
        batch_op.drop_index("ix_inventories_started_at")
        batch_op.drop_index("ix_inventories_code")
    op.drop_table("inventories")
