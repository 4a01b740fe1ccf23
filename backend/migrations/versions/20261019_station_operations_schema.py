"""Station operations schema

Revision ID: 20261019_station_ops
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_station_ops"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(with_updated=True):
    cols = [sa.Column("created_at", sa.DateTime(), nullable=False)]
    if with_updated:
        cols.append(sa.Column("updated_at", sa.DateTime(), nullable=False))
    return cols


def upgrade():
    op.create_table(
        "stations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("address", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("name"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("employee_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False),
        sa.Column("station_id", sa.Integer(), sa.ForeignKey("stations.id"), nullable=True),
        sa.Column("area_manager_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_users_employee_id", "users", ["employee_id"], unique=True)
    op.create_index("ix_users_name", "users", ["name"])
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_station_id", "users", ["station_id"])
    op.create_index("ix_users_area_manager_id", "users", ["area_manager_id"])

    op.create_table(
        "session_tokens",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("token_hash", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("last_used_at", sa.DateTime(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("is_revoked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("revoked_at", sa.DateTime(), nullable=True),
        sa.Column("revoked_reason", sa.String(length=255), nullable=True),
        sa.Column("user_agent", sa.String(length=255), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_session_tokens_user_id", "session_tokens", ["user_id"])
    op.create_index("ix_session_tokens_token_hash", "session_tokens", ["token_hash"], unique=True)
    op.create_index("ix_session_tokens_expires_at", "session_tokens", ["expires_at"])
    op.create_index("ix_session_tokens_is_revoked", "session_tokens", ["is_revoked"])
    op.create_index("ix_session_tokens_user_active", "session_tokens", ["user_id", "is_revoked"])

    op.create_table(
        "tanks",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("station_id", sa.Integer(), sa.ForeignKey("stations.id"), nullable=False),
        sa.Column("fuel_type", sa.String(length=16), nullable=False),
        sa.Column("capacity", sa.Float(), nullable=True),
        sa.Column("current_level", sa.Float(), nullable=False, server_default="0"),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_tanks_station_id", "tanks", ["station_id"])
    op.create_index("ix_tanks_station_fuel", "tanks", ["station_id", "fuel_type"])

    op.create_table(
        "nozzles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("station_id", sa.Integer(), sa.ForeignKey("stations.id"), nullable=False),
        sa.Column("tank_id", sa.Integer(), sa.ForeignKey("tanks.id"), nullable=False),
        sa.Column("fuel_type", sa.String(length=16), nullable=False),
        sa.Column("meter_limit", sa.Float(), nullable=False, server_default="999999"),
        *_timestamps(),
        sa.UniqueConstraint("name"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_nozzles_station_id", "nozzles", ["station_id"])
    op.create_index("ix_nozzles_tank_id", "nozzles", ["tank_id"])

    op.create_table(
        "tanker_deliveries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tank_id", sa.Integer(), sa.ForeignKey("tanks.id"), nullable=False),
        sa.Column("liters_delivered", sa.Float(), nullable=False),
        sa.Column("delivery_date", sa.DateTime(), nullable=False),
        sa.Column("delivered_by_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("ticket_reference", sa.String(length=128), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(with_updated=False),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_tanker_deliveries_tank_id", "tanker_deliveries", ["tank_id"])
    op.create_index("ix_tanker_deliveries_tank_date", "tanker_deliveries", ["tank_id", "delivery_date"])

    op.create_table(
        "fuel_prices",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("station_id", sa.Integer(), sa.ForeignKey("stations.id"), nullable=False),
        sa.Column("fuel_type", sa.String(length=16), nullable=False),
        sa.Column("price_per_liter_cents", sa.Integer(), nullable=False),
        sa.Column("effective_from", sa.DateTime(), nullable=False),
        sa.Column("created_by_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        *_timestamps(with_updated=False),
        sa.UniqueConstraint(
            "station_id", "fuel_type", "effective_from", name="uq_fuel_prices_station_fuel_effective"
        ),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_fuel_prices_station_id", "fuel_prices", ["station_id"])
    op.create_index("ix_fuel_prices_effective_from", "fuel_prices", ["effective_from"])

    op.create_table(
        "shifts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("station_id", sa.Integer(), sa.ForeignKey("stations.id"), nullable=False),
        sa.Column("shift_type", sa.String(length=8), nullable=False),
        sa.Column("window_policy", sa.String(length=16), nullable=False),
        sa.Column("window_start", sa.DateTime(), nullable=False),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("locked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("locked_by", sa.String(length=255), nullable=True),
        sa.Column("locked_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "station_id", "window_policy", "shift_type", "window_start",
            name="uq_shifts_station_window",
        ),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_shifts_station_id", "shifts", ["station_id"])
    op.create_index("ix_shifts_status", "shifts", ["status"])
    op.create_index("ix_shifts_station_start", "shifts", ["station_id", "start_time"])

    op.create_table(
        "nozzle_readings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("shift_id", sa.Integer(), sa.ForeignKey("shifts.id"), nullable=False),
        sa.Column("nozzle_id", sa.Integer(), sa.ForeignKey("nozzles.id"), nullable=False),
        sa.Column("opening_reading", sa.Float(), nullable=False, server_default="0"),
        sa.Column("closing_reading", sa.Float(), nullable=True),
        sa.Column("consumption", sa.Float(), nullable=True),
        sa.Column("is_rollover", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("price_per_liter_cents", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("shift_id", "nozzle_id", name="uq_nozzle_readings_shift_nozzle"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_nozzle_readings_shift_id", "nozzle_readings", ["shift_id"])
    op.create_index("ix_nozzle_readings_nozzle_id", "nozzle_readings", ["nozzle_id"])

    op.create_table(
        "nozzle_sales",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("shift_id", sa.Integer(), sa.ForeignKey("shifts.id"), nullable=False),
        sa.Column("nozzle_id", sa.Integer(), sa.ForeignKey("nozzles.id"), nullable=False),
        sa.Column("quantity_liters", sa.Float(), nullable=False, server_default="0"),
        sa.Column("price_per_liter_cents", sa.Integer(), nullable=False),
        sa.Column("card_amount_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("cash_amount_cents", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.UniqueConstraint("shift_id", "nozzle_id", name="uq_nozzle_sales_shift_nozzle"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_nozzle_sales_shift_id", "nozzle_sales", ["shift_id"])
    op.create_index("ix_nozzle_sales_nozzle_id", "nozzle_sales", ["nozzle_id"])

    op.create_table(
        "cash_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("shift_id", sa.Integer(), sa.ForeignKey("shifts.id"), nullable=False),
        sa.Column("station_id", sa.Integer(), sa.ForeignKey("stations.id"), nullable=False),
        sa.Column("liters_sold", sa.Float(), nullable=False),
        sa.Column("rate_per_liter_cents", sa.Integer(), nullable=False),
        sa.Column("total_revenue_cents", sa.Integer(), nullable=False),
        sa.Column("card_payments_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("cash_on_hand_cents", sa.Integer(), nullable=False),
        sa.Column("bank_deposit_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("cash_to_am_cents", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("created_by_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("shift_id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_cash_transactions_station_id", "cash_transactions", ["station_id"])
    op.create_index("ix_cash_transactions_status", "cash_transactions", ["status"])
    op.create_index("ix_cash_transactions_status_created", "cash_transactions", ["status", "created_at"])

    op.create_table(
        "cash_transfers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("cash_transaction_id", sa.Integer(), sa.ForeignKey("cash_transactions.id"), nullable=False),
        sa.Column("from_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("to_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("receipt_url", sa.Text(), nullable=True),
        sa.Column("deposited_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("cash_transaction_id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_cash_transfers_from_user_id", "cash_transfers", ["from_user_id"])
    op.create_index("ix_cash_transfers_to_user_id", "cash_transfers", ["to_user_id"])
    op.create_index("ix_cash_transfers_status", "cash_transfers", ["status"])


def downgrade():
    for table in (
        "cash_transfers",
        "cash_transactions",
        "nozzle_sales",
        "nozzle_readings",
        "shifts",
        "fuel_prices",
        "tanker_deliveries",
        "nozzles",
        "tanks",
        "session_tokens",
        "users",
        "stations",
    ):
        op.drop_table(table)
