"""Reseller settlement schema."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def _guid_type():
    if op.get_bind().dialect.name == "postgresql":
        return postgresql.UUID(as_uuid=True)
    return sa.CHAR(36)


def _enum(name: str, *values: str) -> sa.Enum:
    return sa.Enum(*values, name=name, native_enum=False)


def _money() -> sa.Numeric:
    return sa.Numeric(12, 2)


def _timestamps(include_updated: bool = True) -> list[sa.Column]:
    columns = [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        )
    ]
    if include_updated:
        columns.append(
            sa.Column(
                "updated_at",
                sa.DateTime(timezone=True),
                server_default=sa.func.now(),
                nullable=False,
            )
        )
    return columns


def upgrade() -> None:
    guid = _guid_type()

    op.create_table(
        "resellers",
        sa.Column("reseller_id", guid, primary_key=True),
        sa.Column("full_name", sa.String(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("referral_code", sa.String(32), nullable=True, unique=True),
        sa.Column(
            "referrer_id",
            guid,
            sa.ForeignKey("resellers.reseller_id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("wallet_balance", _money(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(include_updated=False),
        sa.CheckConstraint(
            "referrer_id IS NULL OR referrer_id <> reseller_id",
            name="ck_resellers_no_self_referral",
        ),
        sa.CheckConstraint("wallet_balance >= 0", name="ck_resellers_wallet_non_negative"),
    )
    op.create_index("ix_resellers_referrer_id", "resellers", ["referrer_id"])

    op.create_table(
        "settlement_records",
        sa.Column("settlement_record_id", guid, primary_key=True),
        sa.Column(
            "reseller_id",
            guid,
            sa.ForeignKey("resellers.reseller_id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("total_settlement_amount", _money(), nullable=False, server_default="0"),
        sa.Column("order_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "status",
            _enum("settlement_record_status_enum", "pending", "completed", "cancelled"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("executed_by", sa.Text(), nullable=True),
        *_timestamps(include_updated=False),
        sa.CheckConstraint(
            "total_settlement_amount >= 0",
            name="ck_settlement_records_total_non_negative",
        ),
        sa.CheckConstraint("order_count >= 0", name="ck_settlement_records_count_non_negative"),
        sa.CheckConstraint("start_date <= end_date", name="ck_settlement_records_range_ordered"),
    )
    op.create_index(
        "settlement_records_reseller_date_idx",
        "settlement_records",
        ["reseller_id", "start_date", "end_date"],
    )
    op.create_index("settlement_records_created_idx", "settlement_records", ["created_at"])

    op.create_table(
        "orders",
        sa.Column("order_id", guid, primary_key=True),
        sa.Column(
            "reseller_id",
            guid,
            sa.ForeignKey("resellers.reseller_id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("marketplace_order_number", sa.String(64), nullable=False),
        sa.Column("country_code", sa.String(2), nullable=True),
        sa.Column("product_sku", sa.String(128), nullable=True),
        sa.Column("product_spu", sa.String(128), nullable=True),
        sa.Column("product_name", sa.String(255), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", _money(), nullable=True),
        sa.Column("multi_total_price", _money(), nullable=True),
        sa.Column("discount", sa.Numeric(5, 4), nullable=True),
        sa.Column("buyer_name", sa.String(255), nullable=True),
        sa.Column("payment_time", sa.DateTime(timezone=False), nullable=False),
        sa.Column("order_status", sa.String(64), nullable=True),
        sa.Column(
            "settlement_status",
            _enum("order_settlement_status_enum", "waiting", "calculated", "settled", "cancel"),
            nullable=False,
            server_default="waiting",
        ),
        sa.Column("settlement_amount", _money(), nullable=True),
        sa.Column("settle_remark", sa.Text(), nullable=True),
        sa.Column("customer_remark", sa.Text(), nullable=True),
        sa.Column("picking_remark", sa.Text(), nullable=True),
        sa.Column("order_remark", sa.Text(), nullable=True),
        sa.Column(
            "settlement_record_id",
            guid,
            sa.ForeignKey("settlement_records.settlement_record_id", ondelete="RESTRICT"),
            nullable=True,
        ),
        *_timestamps(),
        sa.UniqueConstraint(
            "reseller_id",
            "marketplace_order_number",
            name="uq_orders_reseller_marketplace_number",
        ),
        sa.CheckConstraint("quantity >= 0", name="ck_orders_quantity_non_negative"),
        sa.CheckConstraint(
            "settlement_amount IS NULL OR settlement_amount >= 0",
            name="ck_orders_settlement_amount_non_negative",
        ),
    )
    op.create_index("orders_status_payment_idx", "orders", ["settlement_status", "payment_time"])
    op.create_index(
        "orders_reseller_status_payment_idx",
        "orders",
        ["reseller_id", "settlement_status", "payment_time"],
    )
    op.create_index(
        "orders_reseller_buyer_payment_idx",
        "orders",
        ["reseller_id", "buyer_name", "payment_time"],
    )
    op.create_index("orders_settlement_record_idx", "orders", ["settlement_record_id"])

    op.create_table(
        "sku_spu_relations",
        sa.Column("relation_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("sku", sa.String(128), nullable=False, unique=True),
        sa.Column("spu", sa.String(128), nullable=False),
        *_timestamps(include_updated=False),
    )
    op.create_index("ix_sku_spu_relations_spu", "sku_spu_relations", ["spu"])

    op.create_table(
        "discount_rules",
        sa.Column("rule_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "reseller_id",
            guid,
            sa.ForeignKey("resellers.reseller_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("min_quantity", sa.Integer(), nullable=False),
        sa.Column("max_quantity", sa.Integer(), nullable=False),
        sa.Column("discount_rate", sa.Numeric(5, 4), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint(
            "reseller_id",
            "min_quantity",
            "max_quantity",
            name="uq_discount_rules_reseller_range",
        ),
        sa.CheckConstraint("min_quantity >= 1", name="ck_discount_rules_min_positive"),
        sa.CheckConstraint("max_quantity >= min_quantity", name="ck_discount_rules_range_ordered"),
        sa.CheckConstraint(
            "discount_rate > 0 AND discount_rate <= 1",
            name="ck_discount_rules_rate_bounds",
        ),
    )
    op.create_index("ix_discount_rules_reseller_id", "discount_rules", ["reseller_id"])

    op.create_table(
        "quotes",
        sa.Column("quote_id", guid, primary_key=True),
        sa.Column(
            "reseller_id",
            guid,
            sa.ForeignKey("resellers.reseller_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("spu", sa.String(128), nullable=False),
        sa.Column("country_code", sa.String(2), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("product_cost", _money(), nullable=False, server_default="0"),
        sa.Column("shipping_cost", _money(), nullable=False, server_default="0"),
        sa.Column("packing_cost", _money(), nullable=False, server_default="0"),
        sa.Column("vat_cost", _money(), nullable=False, server_default="0"),
        sa.Column("total_price", _money(), nullable=True),
        sa.Column("is_manual_total", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.UniqueConstraint(
            "reseller_id",
            "spu",
            "country_code",
            "quantity",
            name="uq_quotes_reseller_spu_country_quantity",
        ),
        sa.CheckConstraint("quantity >= 1", name="ck_quotes_quantity_positive"),
        sa.CheckConstraint(
            "product_cost >= 0 AND shipping_cost >= 0 AND packing_cost >= 0 AND vat_cost >= 0",
            name="ck_quotes_costs_non_negative",
        ),
    )
    op.create_index(
        "quotes_lookup_idx",
        "quotes",
        ["reseller_id", "spu", "country_code", "quantity"],
    )

    op.create_table(
        "commissions",
        sa.Column("commission_id", guid, primary_key=True),
        sa.Column(
            "settlement_record_id",
            guid,
            sa.ForeignKey("settlement_records.settlement_record_id", ondelete="RESTRICT"),
            nullable=False,
            unique=True,
        ),
        sa.Column(
            "referrer_id",
            guid,
            sa.ForeignKey("resellers.reseller_id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "referee_id",
            guid,
            sa.ForeignKey("resellers.reseller_id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("base_amount", _money(), nullable=False),
        sa.Column("commission_amount", _money(), nullable=False),
        sa.Column("commission_rate", sa.Numeric(6, 4), nullable=False),
        sa.Column(
            "status",
            _enum("commission_status_enum", "pending", "approved", "rejected"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("reject_reason", sa.Text(), nullable=True),
        sa.Column("reviewed_by", sa.String(255), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(include_updated=False),
        sa.CheckConstraint("commission_amount >= 0", name="ck_commissions_amount_non_negative"),
        sa.CheckConstraint(
            "commission_rate >= 0 AND commission_rate <= 1",
            name="ck_commissions_rate_bounds",
        ),
        sa.CheckConstraint("referrer_id <> referee_id", name="ck_commissions_distinct_parties"),
    )
    op.create_index("commissions_status_created_idx", "commissions", ["status", "created_at"])
    op.create_index("commissions_referrer_idx", "commissions", ["referrer_id"])

    op.create_table(
        "wallet_transactions",
        sa.Column("transaction_id", guid, primary_key=True),
        sa.Column(
            "reseller_id",
            guid,
            sa.ForeignKey("resellers.reseller_id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "transaction_type",
            _enum("wallet_transaction_type_enum", "commission_credit"),
            nullable=False,
        ),
        sa.Column("amount", _money(), nullable=False),
        sa.Column("balance_before", _money(), nullable=False),
        sa.Column("balance_after", _money(), nullable=False),
        sa.Column("reference_id", sa.String(36), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(include_updated=False),
        sa.UniqueConstraint(
            "transaction_type",
            "reference_id",
            name="uq_wallet_transactions_type_reference",
        ),
    )
    op.create_index("ix_wallet_transactions_reseller_id", "wallet_transactions", ["reseller_id"])

    op.create_table(
        "system_settings",
        sa.Column("setting_key", sa.String(100), primary_key=True),
        sa.Column("setting_value", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("updated_by", sa.String(255), nullable=True),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )

    op.create_table(
        "settlement_runs",
        sa.Column("run_id", guid, primary_key=True),
        sa.Column("run_type", sa.String(32), nullable=False),
        sa.Column("outcome", sa.String(32), nullable=False),
        sa.Column("reseller_id", guid, nullable=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("duration_ms", sa.Numeric(14, 3), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        *_timestamps(include_updated=False),
    )
    op.create_index("ix_settlement_runs_run_type", "settlement_runs", ["run_type"])
    op.create_index("ix_settlement_runs_outcome", "settlement_runs", ["outcome"])
    op.create_index("ix_settlement_runs_reseller_id", "settlement_runs", ["reseller_id"])
    op.create_index("ix_settlement_runs_created_at", "settlement_runs", ["created_at"])


def downgrade() -> None:
    op.drop_table("settlement_runs")
    op.drop_table("system_settings")
    op.drop_table("wallet_transactions")
    op.drop_table("commissions")
    op.drop_table("quotes")
    op.drop_table("discount_rules")
    op.drop_table("sku_spu_relations")
    op.drop_table("orders")
    op.drop_table("settlement_records")
    op.drop_table("resellers")
