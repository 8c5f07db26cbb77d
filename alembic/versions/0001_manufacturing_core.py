"""manufacturing core tables

Revision ID: 0001_manufacturing_core
Revises:
Create Date: 2026-10-16T09:00:00Z
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_manufacturing_core"
down_revision = None
branch_labels = None
depends_on = None


def _id_and_created():
    return [
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade():
    op.create_table(
        "catalog_product",
        *_id_and_created(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("sku", sa.String(length=64), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("unit_of_measure", sa.String(length=16), nullable=False, server_default="Units"),
        sa.Column("standard_cost", sa.Numeric(18, 4), nullable=False, server_default="0"),
        sa.Column("current_stock", sa.Numeric(18, 6), nullable=False, server_default="0"),
        sa.Column("reorder_point", sa.Numeric(18, 6), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index("ix_catalog_product_name", "catalog_product", ["name"])
    op.create_index("ix_catalog_product_category", "catalog_product", ["category"])
    op.create_index("ix_catalog_product_category_active", "catalog_product", ["category", "is_active"])

    op.create_table(
        "catalog_bom",
        *_id_and_created(),
        sa.Column("reference", sa.String(length=64), nullable=False, unique=True),
        sa.Column("product_id", sa.String(length=36), sa.ForeignKey("catalog_product.id"), nullable=False),
        sa.Column("version", sa.String(length=16), nullable=False, server_default="1.0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.UniqueConstraint("product_id", "version", name="uq_catalog_bom_product_version"),
    )
    op.create_index("ix_catalog_bom_product_id", "catalog_bom", ["product_id"])

    op.create_table(
        "catalog_bom_component",
        *_id_and_created(),
        sa.Column("bom_id", sa.String(length=36), sa.ForeignKey("catalog_bom.id"), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("component_product_id", sa.String(length=36), sa.ForeignKey("catalog_product.id"), nullable=False),
        sa.Column("quantity_per_unit", sa.Numeric(18, 6), nullable=False),
    )
    op.create_index("ix_catalog_bom_component_bom_id", "catalog_bom_component", ["bom_id"])

    op.create_table(
        "catalog_bom_operation",
        *_id_and_created(),
        sa.Column("bom_id", sa.String(length=36), sa.ForeignKey("catalog_bom.id"), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("operation", sa.String(length=128), nullable=False),
        sa.Column("work_center", sa.String(length=128), nullable=True),
        sa.Column("expected_duration_minutes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("description", sa.Text(), nullable=True),
    )
    op.create_index("ix_catalog_bom_operation_bom_id", "catalog_bom_operation", ["bom_id"])

    op.create_table(
        "mfg_order",
        *_id_and_created(),
        sa.Column("reference", sa.String(length=32), nullable=False),
        sa.Column("product_id", sa.String(length=36), sa.ForeignKey("catalog_product.id"), nullable=False),
        sa.Column("bom_id", sa.String(length=36), sa.ForeignKey("catalog_bom.id"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("planned_start_date", sa.Date(), nullable=False),
        sa.Column("planned_end_date", sa.Date(), nullable=False),
        sa.Column("priority", sa.String(length=16), nullable=False, server_default="Medium"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="Draft"),
        sa.Column("progress", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.String(length=128), nullable=False, server_default="anonymous"),
        sa.CheckConstraint("quantity > 0", name="ck_mfg_order_quantity_positive"),
        sa.CheckConstraint("planned_start_date <= planned_end_date", name="ck_mfg_order_planned_dates"),
    )
    op.create_index("ix_mfg_order_reference", "mfg_order", ["reference"], unique=True)
    op.create_index("ix_mfg_order_product_id", "mfg_order", ["product_id"])
    op.create_index("ix_mfg_order_planned_start_date", "mfg_order", ["planned_start_date"])
    op.create_index("ix_mfg_order_planned_end_date", "mfg_order", ["planned_end_date"])
    op.create_index("ix_mfg_order_priority", "mfg_order", ["priority"])
    op.create_index("ix_mfg_order_status", "mfg_order", ["status"])
    op.create_index("ix_mfg_order_status_created", "mfg_order", ["status", "created_at"])

    op.create_table(
        "mfg_order_component",
        *_id_and_created(),
        sa.Column("order_id", sa.String(length=36), sa.ForeignKey("mfg_order.id"), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("component_product_id", sa.String(length=36), sa.ForeignKey("catalog_product.id"), nullable=False),
        sa.Column("quantity_per_unit", sa.Numeric(18, 6), nullable=False),
        sa.Column("quantity_required", sa.Numeric(18, 6), nullable=False),
        sa.Column("total_cost", sa.Numeric(18, 4), nullable=False, server_default="0"),
    )
    op.create_index("ix_mfg_order_component_order_id", "mfg_order_component", ["order_id"])

    op.create_table(
        "mfg_reference_sequence",
        sa.Column("name", sa.String(length=64), primary_key=True),
        sa.Column("last_value", sa.Integer(), nullable=False, server_default="0"),
    )

    op.create_table(
        "sys_audit_log",
        *_id_and_created(),
        sa.Column("actor", sa.String(length=128), nullable=False),
        sa.Column("action", sa.String(length=128), nullable=False),
        sa.Column("entity_type", sa.String(length=64), nullable=False),
        sa.Column("entity_id", sa.String(length=64), nullable=True),
        sa.Column("request_id", sa.String(length=64), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=256), nullable=True),
        sa.Column("status_code", sa.Integer(), nullable=True),
        sa.Column("success", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("payload", sa.JSON(), nullable=False),
    )
    op.create_index("ix_sys_audit_log_actor", "sys_audit_log", ["actor"])
    op.create_index("ix_sys_audit_log_action", "sys_audit_log", ["action"])
    op.create_index("ix_sys_audit_log_entity_type", "sys_audit_log", ["entity_type"])
    op.create_index("ix_sys_audit_log_entity_id", "sys_audit_log", ["entity_id"])
    op.create_index("ix_sys_audit_log_request_id", "sys_audit_log", ["request_id"])
    op.create_index("ix_audit_entity_time", "sys_audit_log", ["entity_type", "entity_id", "created_at"])


def downgrade():
    op.drop_table("sys_audit_log")
    op.drop_table("mfg_reference_sequence")
    op.drop_table("mfg_order_component")
    op.drop_table("mfg_order")
    op.drop_table("catalog_bom_operation")
    op.drop_table("catalog_bom_component")
    op.drop_table("catalog_bom")
    op.drop_table("catalog_product")
