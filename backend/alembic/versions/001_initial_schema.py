"""Initial schema: users, bookings, payments, coupons, gift cards and loyalty.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def _money(name: str, nullable: bool = False, **kwargs) -> sa.Column:
    return sa.Column(name, sa.Numeric(12, 2), nullable=nullable, **kwargs)


def upgrade() -> None:
    # Users table
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(200), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # Bookings table
    op.create_table(
        "bookings",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("booking_reference", sa.String(20), nullable=False),
        sa.Column("customer_id", sa.Uuid(), nullable=False),
        sa.Column("activity_id", sa.Uuid(), nullable=False),
        sa.Column("booking_date", sa.Date(), nullable=False),
        sa.Column("booking_time", sa.Time(), nullable=True),
        sa.Column("number_of_participants", sa.Integer(), nullable=False),
        _money("price_per_participant"),
        _money("subtotal"),
        _money("discount_amount", server_default=sa.text("0")),
        _money("tax_amount", server_default=sa.text("0")),
        _money("total_amount"),
        sa.Column("currency", sa.String(3), nullable=False, server_default="INR"),
        sa.Column("coupon_code", sa.String(50), nullable=True),
        sa.Column("coupon_discount_percentage", sa.Numeric(5, 2), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="Pending"),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("confirmed_by", sa.Uuid(), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_by", sa.Uuid(), nullable=True),
        sa.Column("cancellation_reason", sa.String(500), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("checked_in_at", sa.DateTime(timezone=True), nullable=True),
        _money("refund_amount", nullable=True),
        sa.Column("refunded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_no_show", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("special_requests", sa.Text(), nullable=True),
        sa.Column("participant_names", sa.Text(), nullable=True),
        sa.Column("customer_notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("number_of_participants > 0", name="check_booking_participants_positive"),
        sa.CheckConstraint("discount_amount <= subtotal", name="check_booking_discount_lte_subtotal"),
        sa.CheckConstraint("total_amount >= 0", name="check_booking_total_non_negative"),
    )
    op.create_index("ix_bookings_booking_reference", "bookings", ["booking_reference"], unique=True)
    op.create_index("ix_bookings_customer_id", "bookings", ["customer_id"])
    op.create_index("ix_bookings_activity_id", "bookings", ["activity_id"])
    # Availability checks always filter one activity on one day.
    op.create_index("ix_bookings_activity_date", "bookings", ["activity_id", "booking_date"])

    op.create_table(
        "booking_participants",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("booking_id", sa.Uuid(), sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("age", sa.Integer(), nullable=True),
        sa.Column("gender", sa.String(20), nullable=True),
        sa.Column("contact_phone", sa.String(30), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_booking_participants_booking_id", "booking_participants", ["booking_id"])

    # Payments table
    op.create_table(
        "payments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("booking_id", sa.Uuid(), nullable=False),
        sa.Column("payment_reference", sa.String(30), nullable=False, unique=True),
        _money("amount"),
        sa.Column("currency", sa.String(3), nullable=False, server_default="INR"),
        sa.Column("status", sa.String(20), nullable=False, server_default="Pending"),
        sa.Column("payment_gateway", sa.String(50), nullable=False),
        sa.Column("gateway_order_id", sa.String(100), nullable=True),
        sa.Column("gateway_transaction_id", sa.String(100), nullable=True),
        sa.Column("payment_method", sa.String(50), nullable=True),
        sa.Column("card_last4", sa.String(4), nullable=True),
        sa.Column("card_brand", sa.String(30), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("failed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("failure_reason", sa.String(500), nullable=True),
        sa.Column("retry_attempts", sa.Integer(), nullable=False, server_default=sa.text("0")),
        _money("refunded_amount", server_default=sa.text("0")),
        sa.Column("refunded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("refund_transaction_id", sa.String(100), nullable=True),
        sa.Column("refund_reason", sa.String(500), nullable=True),
        sa.Column("gateway_response", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("amount > 0", name="check_payment_amount_positive"),
        sa.CheckConstraint("refunded_amount >= 0", name="check_payment_refunded_non_negative"),
        sa.CheckConstraint("refunded_amount <= amount", name="check_payment_refunded_lte_amount"),
    )
    # One payment per booking.
    op.create_index("ix_payments_booking_id", "payments", ["booking_id"], unique=True)
    # Webhooks resolve payments by either gateway id.
    op.create_index("ix_payments_gateway_order_id", "payments", ["gateway_order_id"])
    op.create_index("ix_payments_gateway_transaction_id", "payments", ["gateway_transaction_id"])

    # Coupons
    op.create_table(
        "coupons",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("code", sa.String(50), nullable=False),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("discount_type", sa.String(20), nullable=False),
        _money("discount_value"),
        _money("min_order_amount", nullable=True),
        _money("max_discount_amount", nullable=True),
        sa.Column("valid_from", sa.DateTime(timezone=True), nullable=False),
        sa.Column("valid_until", sa.DateTime(timezone=True), nullable=False),
        sa.Column("usage_limit", sa.Integer(), nullable=True),
        sa.Column("used_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("applicable_category_ids", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("discount_value > 0", name="check_coupon_value_positive"),
        sa.CheckConstraint("valid_from < valid_until", name="check_coupon_validity_window"),
        sa.CheckConstraint("used_count >= 0", name="check_coupon_used_count_non_negative"),
    )
    op.create_index("ix_coupons_code", "coupons", ["code"], unique=True)

    op.create_table(
        "coupon_usages",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("coupon_id", sa.Uuid(), sa.ForeignKey("coupons.id"), nullable=False),
        sa.Column("booking_id", sa.Uuid(), sa.ForeignKey("bookings.id"), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        _money("discount_amount"),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("discount_amount >= 0", name="check_coupon_usage_discount_non_negative"),
    )
    op.create_index("ix_coupon_usages_coupon_id", "coupon_usages", ["coupon_id"])
    op.create_index("ix_coupon_usages_booking_id", "coupon_usages", ["booking_id"])
    op.create_index("ix_coupon_usages_user_id", "coupon_usages", ["user_id"])

    # Gift cards
    op.create_table(
        "gift_cards",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("code", sa.String(20), nullable=False),
        _money("amount"),
        _money("balance"),
        sa.Column("currency", sa.String(3), nullable=False, server_default="INR"),
        sa.Column("purchased_by", sa.Uuid(), nullable=True),
        sa.Column("recipient_email", sa.String(255), nullable=True),
        sa.Column("recipient_name", sa.String(200), nullable=True),
        sa.Column("message", sa.String(1000), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="Active"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("purchased_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("redeemed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("redeemed_by", sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("amount > 0", name="check_gift_card_amount_positive"),
        sa.CheckConstraint("balance >= 0", name="check_gift_card_balance_non_negative"),
        sa.CheckConstraint("balance <= amount", name="check_gift_card_balance_lte_amount"),
    )
    op.create_index("ix_gift_cards_code", "gift_cards", ["code"], unique=True)
    op.create_index("ix_gift_cards_purchased_by", "gift_cards", ["purchased_by"])
    op.create_index("ix_gift_cards_recipient_email", "gift_cards", ["recipient_email"])

    op.create_table(
        "gift_card_transactions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("gift_card_id", sa.Uuid(), sa.ForeignKey("gift_cards.id"), nullable=False),
        sa.Column("booking_id", sa.Uuid(), nullable=True),
        _money("amount_used"),
        _money("balance_after"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_gift_card_transactions_gift_card_id", "gift_card_transactions", ["gift_card_id"])
    op.create_index("ix_gift_card_transactions_booking_id", "gift_card_transactions", ["booking_id"])

    # Loyalty
    op.create_table(
        "loyalty_points",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("transaction_type", sa.String(20), nullable=False),
        sa.Column("reference_type", sa.String(50), nullable=True),
        sa.Column("reference_id", sa.Uuid(), nullable=True),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("expiry_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("points <> 0", name="check_loyalty_points_non_zero"),
    )
    op.create_index("ix_loyalty_points_user_id", "loyalty_points", ["user_id"])

    op.create_table(
        "user_loyalty_statuses",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("current_tier", sa.String(20), nullable=False, server_default="Bronze"),
        sa.Column("total_points", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("available_points", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("lifetime_points", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("tier_upgraded_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("available_points >= 0", name="check_loyalty_available_non_negative"),
        sa.CheckConstraint("available_points <= total_points", name="check_loyalty_available_lte_total"),
    )
    op.create_index("ix_user_loyalty_statuses_user_id", "user_loyalty_statuses", ["user_id"], unique=True)


def downgrade() -> None:
    op.drop_table("user_loyalty_statuses")
    op.drop_table("loyalty_points")
    op.drop_table("gift_card_transactions")
    op.drop_table("gift_cards")
    op.drop_table("coupon_usages")
    op.drop_table("coupons")
    op.drop_table("payments")
    op.drop_table("booking_participants")
    op.drop_table("bookings")
    op.drop_table("users")
