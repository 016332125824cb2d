"""Initial schema: accounts, carts, orders, rewards and the tourism catalog.

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


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Users table
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("address", sa.String(255), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="USER"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("wallet_address", sa.String(64), nullable=True, unique=True),
        sa.Column("private_key", sa.String(128), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # Catalog
    op.create_table(
        "hotels",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        *_timestamps(),
    )
    op.create_index("ix_hotels_id", "hotels", ["id"])

    op.create_table(
        "hotel_occupancy",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("hotel_id", sa.Integer(), sa.ForeignKey("hotels.id"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("occupancy_rate", sa.Float(), nullable=False),
        sa.Column("confirmed_bookings", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("cancellations", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("average_price_per_night", sa.Float(), nullable=False, server_default=sa.text("0")),
    )
    op.create_index("ix_hotel_occupancy_id", "hotel_occupancy", ["id"])
    # Availability checks scan one hotel over a date range
    op.create_index("ix_hotel_occupancy_hotel_date", "hotel_occupancy", ["hotel_id", "date"])

    op.create_table(
        "hotel_sustainability",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("hotel_id", sa.Integer(), sa.ForeignKey("hotels.id"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("energy_consumption_kwh", sa.Float(), nullable=False),
        sa.Column("waste_generated_kg", sa.Float(), nullable=False),
        sa.Column("recycling_percentage", sa.Float(), nullable=False),
        sa.Column("water_usage_m3", sa.Float(), nullable=False),
    )
    op.create_index("ix_hotel_sustainability_id", "hotel_sustainability", ["id"])
    op.create_index("ix_hotel_sustainability_hotel_date", "hotel_sustainability", ["hotel_id", "date"])

    op.create_table(
        "routes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("route_type", sa.String(100), nullable=True),
        sa.Column("length_km", sa.Float(), nullable=True),
        sa.Column("duration_hr", sa.Float(), nullable=True),
        sa.Column("popularity", sa.Integer(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_routes_id", "routes", ["id"])

    op.create_table(
        "vehicle_types",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        *_timestamps(),
    )
    op.create_index("ix_vehicle_types_id", "vehicle_types", ["id"])

    op.create_table(
        "transport_usage",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("vehicle_type_id", sa.Integer(), sa.ForeignKey("vehicle_types.id"), nullable=False),
        sa.Column("user_count", sa.Integer(), nullable=False),
        sa.Column("average_travel_time_min", sa.Float(), nullable=False),
        sa.Column("popular_route_id", sa.Integer(), sa.ForeignKey("routes.id"), nullable=True),
    )
    op.create_index("ix_transport_usage_id", "transport_usage", ["id"])
    op.create_index("ix_transport_usage_vehicle_type_id", "transport_usage", ["vehicle_type_id"])
    op.create_index("ix_transport_usage_popular_route_id", "transport_usage", ["popular_route_id"])

    op.create_table(
        "services",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("service_type", sa.String(100), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_services_id", "services", ["id"])

    op.create_table(
        "reviews",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("language", sa.String(10), nullable=False, server_default="es"),
        sa.Column("hotel_id", sa.Integer(), sa.ForeignKey("hotels.id"), nullable=True),
        sa.Column("route_id", sa.Integer(), sa.ForeignKey("routes.id"), nullable=True),
        sa.Column("service_id", sa.Integer(), sa.ForeignKey("services.id"), nullable=True),
        # Exactly one review target
        sa.CheckConstraint(
            "(CASE WHEN hotel_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN route_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN service_id IS NULL THEN 0 ELSE 1 END) = 1",
            name="check_review_single_target",
        ),
    )
    op.create_index("ix_reviews_id", "reviews", ["id"])
    op.create_index("ix_reviews_hotel_id", "reviews", ["hotel_id"])
    op.create_index("ix_reviews_route_id", "reviews", ["route_id"])
    op.create_index("ix_reviews_service_id", "reviews", ["service_id"])

    # Carts table
    op.create_table(
        "carts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False, unique=True),
        *_timestamps(),
    )
    op.create_index("ix_carts_id", "carts", ["id"])

    # Cart items table
    # UNIQUE (cart_id, item_type, item_id): re-adding an item updates the line
    op.create_table(
        "cart_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("cart_id", sa.Integer(), sa.ForeignKey("carts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("item_type", sa.String(20), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("additional_info", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("cart_id", "item_type", "item_id", name="uq_cart_item"),
        sa.CheckConstraint("quantity > 0", name="check_cart_item_quantity_positive"),
        sa.CheckConstraint(
            "item_type IN ('HOTEL', 'ROUTE', 'SERVICE', 'VEHICLE')",
            name="check_cart_item_type",
        ),
    )
    op.create_index("ix_cart_items_id", "cart_items", ["id"])
    op.create_index("ix_cart_items_cart_id", "cart_items", ["cart_id"])
    # Vehicle availability counts overlapping lines for one (type, item)
    op.create_index("ix_cart_items_type_item_dates", "cart_items", ["item_type", "item_id", "start_date"])

    # Orders table
    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("total_amount", sa.Float(), nullable=False),
        sa.Column("discount", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("tokens_used", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("order_type", sa.String(20), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("additional_info", sa.JSON(), nullable=False),
        sa.Column("payment_method", sa.String(20), nullable=False, server_default="CARD"),
        sa.Column("status", sa.String(20), nullable=False, server_default="COMPLETED"),
        *_timestamps(),
        sa.CheckConstraint("total_amount >= 0", name="check_order_total_non_negative"),
        sa.CheckConstraint("discount >= 0", name="check_order_discount_non_negative"),
        sa.CheckConstraint("status IN ('COMPLETED', 'CANCELLED')", name="check_order_status"),
    )
    op.create_index("ix_orders_id", "orders", ["id"])
    op.create_index("ix_orders_user_id", "orders", ["user_id"])
    op.create_index("ix_orders_type_item_dates", "orders", ["order_type", "item_id", "start_date"])

    # Reward offers
    op.create_table(
        "discounts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column("token_cost", sa.Integer(), nullable=False),
        sa.Column("discount_type", sa.String(20), nullable=False),
        sa.Column("discount_value", sa.Float(), nullable=False),
        sa.Column("valid_from", sa.DateTime(timezone=True), nullable=False),
        sa.Column("valid_until", sa.DateTime(timezone=True), nullable=False),
        sa.Column("max_uses", sa.Integer(), nullable=True),
        sa.Column("used_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("applicable_to", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("token_cost > 0", name="check_discount_token_cost_positive"),
        sa.CheckConstraint("discount_type IN ('PERCENTAGE', 'FIXED_AMOUNT')", name="check_discount_type"),
        # Backstop for the conditional UPDATE that claims usage slots
        sa.CheckConstraint("max_uses IS NULL OR used_count <= max_uses", name="check_discount_used_lte_max"),
    )
    op.create_index("ix_discounts_id", "discounts", ["id"])

    op.create_table(
        "amenities",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column("amenity_type", sa.String(50), nullable=True),
        sa.Column("token_cost", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("max_quantity", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("token_cost > 0", name="check_amenity_token_cost_positive"),
    )
    op.create_index("ix_amenities_id", "amenities", ["id"])

    # Redemption records
    op.create_table(
        "discount_redemptions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("discount_id", sa.Integer(), sa.ForeignKey("discounts.id"), nullable=False),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id"), nullable=True),
        sa.Column("tokens_paid", sa.Integer(), nullable=False),
        sa.Column("qr_code", sa.String(64), nullable=False, unique=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="ACTIVE"),
        sa.Column("is_used", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("redeemed_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_discount_redemptions_id", "discount_redemptions", ["id"])
    op.create_index("ix_discount_redemptions_user_id", "discount_redemptions", ["user_id"])
    op.create_index("ix_discount_redemptions_discount_id", "discount_redemptions", ["discount_id"])

    op.create_table(
        "amenity_purchases",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("amenity_id", sa.Integer(), sa.ForeignKey("amenities.id"), nullable=False),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id"), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("tokens_paid", sa.Integer(), nullable=False),
        sa.Column("qr_code", sa.String(64), nullable=False, unique=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="ACTIVE"),
        sa.Column("is_used", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("purchased_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("quantity > 0", name="check_amenity_purchase_quantity_positive"),
    )
    op.create_index("ix_amenity_purchases_id", "amenity_purchases", ["id"])
    op.create_index("ix_amenity_purchases_user_id", "amenity_purchases", ["user_id"])
    op.create_index("ix_amenity_purchases_amenity_id", "amenity_purchases", ["amenity_id"])


def downgrade() -> None:
    op.drop_table("amenity_purchases")
    op.drop_table("discount_redemptions")
    op.drop_table("amenities")
    op.drop_table("discounts")
    op.drop_table("orders")
    op.drop_table("cart_items")
    op.drop_table("carts")
    op.drop_table("reviews")
    op.drop_table("services")
    op.drop_table("transport_usage")
    op.drop_table("vehicle_types")
    op.drop_table("routes")
    op.drop_table("hotel_sustainability")
    op.drop_table("hotel_occupancy")
    op.drop_table("hotels")
    op.drop_table("users")
