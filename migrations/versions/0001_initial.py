"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2025-12-21 09:18:13
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

ROLE = sa.Enum("CUSTOMER", "RECEPTIONIST", "CASHIER", "KITCHEN_STAFF", "ADMIN", name="role")
ORDER_TYPE = sa.Enum("DINE_IN", "TAKEAWAY", "ONLINE", name="order_type")
ORDER_STATUS = sa.Enum(
    "PENDING", "CONFIRMED", "PREPARING", "READY", "COMPLETED", "CANCELLED", name="order_status"
)
PAYMENT_METHOD = sa.Enum("CASH", "CARD", "MOMO", "PAYSTACK", name="payment_method")
PAYMENT_STATUS = sa.Enum("PENDING", "PAID", name="payment_status")
CHAT_STATUS = sa.Enum("ACTIVE", "RESOLVED", "CLOSED", name="chat_status")

# Shared by orders and payments; created with the orders table
PAYMENT_METHOD_REF = postgresql.ENUM(name="payment_method", create_type=False)
PAYMENT_STATUS_REF = postgresql.ENUM(name="payment_status", create_type=False)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("password", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=True),
        sa.Column("role", ROLE, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_phone", "users", ["phone"], unique=True)

    op.create_table(
        "categories",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("image", sa.String(500), nullable=True),
        sa.Column("display_order", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "menu_items",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "category_id",
            sa.String(36),
            sa.ForeignKey("categories.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("image", sa.String(500), nullable=True),
        sa.Column("base_price", sa.Float(), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_menu_items_category_id", "menu_items", ["category_id"])

    op.create_table(
        "price_variants",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "menu_item_id",
            sa.String(36),
            sa.ForeignKey("menu_items.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("price", sa.Float(), nullable=False),
    )
    op.create_index("ix_price_variants_menu_item_id", "price_variants", ["menu_item_id"])

    op.create_table(
        "addons",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "menu_item_id",
            sa.String(36),
            sa.ForeignKey("menu_items.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("price", sa.Float(), nullable=False),
    )
    op.create_index("ix_addons_menu_item_id", "addons", ["menu_item_id"])

    op.create_table(
        "orders",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("order_number", sa.String(50), nullable=False),
        sa.Column("customer_id", sa.String(36), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_by_id", sa.String(36), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("prepared_by_id", sa.String(36), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("order_type", ORDER_TYPE, nullable=False),
        sa.Column("status", ORDER_STATUS, nullable=False),
        sa.Column("table_number", sa.String(20), nullable=True),
        sa.Column("delivery_address", sa.Text(), nullable=True),
        sa.Column("contact_phone", sa.String(30), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("subtotal", sa.Float(), nullable=False),
        sa.Column("discount", sa.Float(), nullable=False),
        sa.Column("tax", sa.Float(), nullable=False),
        sa.Column("total", sa.Float(), nullable=False),
        sa.Column("payment_method", PAYMENT_METHOD, nullable=True),
        sa.Column("payment_status", PAYMENT_STATUS, nullable=False),
        sa.Column("paystack_ref", sa.String(100), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("ready_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_orders_order_number", "orders", ["order_number"], unique=True)
    op.create_index("ix_orders_customer_id", "orders", ["customer_id"])
    op.create_index("ix_orders_created_by_id", "orders", ["created_by_id"])
    op.create_index("ix_orders_prepared_by_id", "orders", ["prepared_by_id"])
    op.create_index("ix_orders_order_type", "orders", ["order_type"])
    op.create_index("ix_orders_status", "orders", ["status"])
    op.create_index("ix_orders_payment_status", "orders", ["payment_status"])
    op.create_index("ix_orders_paystack_ref", "orders", ["paystack_ref"])
    op.create_index("ix_orders_created_at", "orders", ["created_at"])

    op.create_table(
        "order_items",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "order_id",
            sa.String(36),
            sa.ForeignKey("orders.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("menu_item_id", sa.String(36), sa.ForeignKey("menu_items.id"), nullable=False),
        sa.Column(
            "variant_id",
            sa.String(36),
            sa.ForeignKey("price_variants.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Float(), nullable=False),
        sa.Column("total_price", sa.Float(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
    )
    op.create_index("ix_order_items_order_id", "order_items", ["order_id"])

    op.create_table(
        "order_item_addons",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "order_item_id",
            sa.String(36),
            sa.ForeignKey("order_items.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "addon_id",
            sa.String(36),
            sa.ForeignKey("addons.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("price", sa.Float(), nullable=False),
    )
    op.create_index("ix_order_item_addons_order_item_id", "order_item_addons", ["order_item_id"])

    op.create_table(
        "payments",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "order_id",
            sa.String(36),
            sa.ForeignKey("orders.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("method", PAYMENT_METHOD_REF, nullable=False),
        sa.Column("status", PAYMENT_STATUS_REF, nullable=False),
        sa.Column("paystack_ref", sa.String(100), nullable=True, unique=True),
        sa.Column("paystack_data", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_payments_created_at", "payments", ["created_at"])

    op.create_table(
        "day_sessions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("date", sa.String(10), nullable=False),
        sa.Column("is_closed", sa.Boolean(), nullable=False),
        sa.Column("opened_at", sa.DateTime(), nullable=False),
        sa.Column("closed_at", sa.DateTime(), nullable=True),
        sa.Column("closed_by_id", sa.String(36), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("total_orders", sa.Integer(), nullable=False),
        sa.Column("total_revenue", sa.Float(), nullable=False),
        sa.Column("total_cash", sa.Float(), nullable=False),
        sa.Column("total_card", sa.Float(), nullable=False),
        sa.Column("total_momo", sa.Float(), nullable=False),
        sa.Column("total_paystack", sa.Float(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
    )
    op.create_index("ix_day_sessions_date", "day_sessions", ["date"], unique=True)

    op.create_table(
        "chats",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("customer_id", sa.String(36), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("customer_name", sa.String(150), nullable=False),
        sa.Column("customer_email", sa.String(255), nullable=True),
        sa.Column("status", CHAT_STATUS, nullable=False),
        sa.Column("last_message_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_chats_customer_id", "chats", ["customer_id"])
    op.create_index("ix_chats_status", "chats", ["status"])
    op.create_index("ix_chats_last_message_at", "chats", ["last_message_at"])

    op.create_table(
        "chat_messages",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "chat_id",
            sa.String(36),
            sa.ForeignKey("chats.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("sender_id", sa.String(36), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("sender_role", sa.String(20), nullable=False),
        sa.Column("sender_name", sa.String(150), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_chat_messages_chat_id", "chat_messages", ["chat_id"])

    op.create_table(
        "system_settings",
        sa.Column("id", sa.String(20), primary_key=True),
        sa.Column("restaurant_name", sa.String(150), nullable=False),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("restaurant_logo", sa.String(500), nullable=True),
        sa.Column("tax_rate", sa.Float(), nullable=False),
        sa.Column("currency", sa.String(10), nullable=False),
        sa.Column("currency_symbol", sa.String(5), nullable=False),
        sa.Column("order_prefix", sa.String(10), nullable=False),
        sa.Column("auto_confirm_orders", sa.Boolean(), nullable=False),
        sa.Column("require_payment_before_prep", sa.Boolean(), nullable=False),
        sa.Column("paystack_secret_key", sa.String(255), nullable=True),
        sa.Column("paystack_public_key", sa.String(255), nullable=True),
        sa.Column("paystack_webhook_secret", sa.String(255), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("entity", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.String(36), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("user_agent", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])


def downgrade() -> None:
    for table in (
        "audit_logs",
        "system_settings",
        "chat_messages",
        "chats",
        "day_sessions",
        "payments",
        "order_item_addons",
        "order_items",
        "orders",
        "addons",
        "price_variants",
        "menu_items",
        "categories",
        "users",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum_type in (CHAT_STATUS, PAYMENT_STATUS, PAYMENT_METHOD, ORDER_STATUS, ORDER_TYPE, ROLE):
        enum_type.drop(bind, checkfirst=True)
