"""
SQLAlchemy Database Models

Covers the whole restaurant platform:
- Users and staff roles
- Menu (categories, items, price variants, addons)
- Orders, order lines and payments
- Day sessions (business-day open/close)
- Customer support chat
- System settings and audit trail
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column, Integer, String, Float, DateTime, Text, Enum, Boolean, ForeignKey, JSON,
)
from sqlalchemy.orm import relationship

from app.database import Base


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())


SETTINGS_ID = "system"


# =============================================================================
# ENUMS
# =============================================================================

class Role(str, enum.Enum):
    """User roles; every role except CUSTOMER is staff."""
    CUSTOMER = "CUSTOMER"
    RECEPTIONIST = "RECEPTIONIST"
    CASHIER = "CASHIER"
    KITCHEN_STAFF = "KITCHEN_STAFF"
    ADMIN = "ADMIN"


STAFF_ROLES = (Role.RECEPTIONIST, Role.CASHIER, Role.KITCHEN_STAFF, Role.ADMIN)


class OrderType(str, enum.Enum):
    DINE_IN = "DINE_IN"
    TAKEAWAY = "TAKEAWAY"
    ONLINE = "ONLINE"


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PREPARING = "PREPARING"
    READY = "READY"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class PaymentMethod(str, enum.Enum):
    CASH = "CASH"
    CARD = "CARD"
    MOMO = "MOMO"
    PAYSTACK = "PAYSTACK"


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"


class ChatStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"


# =============================================================================
# USERS
# =============================================================================

class User(Base):
    """Customers and staff accounts; login by email or phone."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(255), unique=True, nullable=True, index=True)
    phone = Column(String(30), unique=True, nullable=True, index=True)
    password = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    role = Column(Enum(Role, name="role"), default=Role.CUSTOMER, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p) or (
            self.email or self.phone or ""
        )

    def __repr__(self):
        return f"<User {self.email or self.phone} - {self.role.value}>"


# =============================================================================
# MENU
# =============================================================================

class Category(Base):
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    image = Column(String(500), nullable=True)
    display_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Loaded explicitly with selectinload where needed
    items = relationship(
        "MenuItem",
        back_populates="category",
        order_by="MenuItem.display_order",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<Category {self.name}>"


class MenuItem(Base):
    __tablename__ = "menu_items"

    id = Column(String(36), primary_key=True, default=new_id)
    category_id = Column(
        String(36), ForeignKey("categories.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(150), nullable=False)
    description = Column(Text, nullable=True)
    image = Column(String(500), nullable=True)
    base_price = Column(Float, nullable=False)
    is_available = Column(Boolean, default=True, nullable=False)
    display_order = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    category = relationship("Category", back_populates="items", lazy="joined")
    variants = relationship(
        "PriceVariant",
        back_populates="menu_item",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    addons = relationship(
        "Addon",
        back_populates="menu_item",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<MenuItem {self.name} - {self.base_price:.2f}>"


class PriceVariant(Base):
    """Size/portion variant whose price replaces the item's base price."""
    __tablename__ = "price_variants"

    id = Column(String(36), primary_key=True, default=new_id)
    menu_item_id = Column(
        String(36), ForeignKey("menu_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(100), nullable=False)
    price = Column(Float, nullable=False)

    menu_item = relationship("MenuItem", back_populates="variants")


class Addon(Base):
    __tablename__ = "addons"

    id = Column(String(36), primary_key=True, default=new_id)
    menu_item_id = Column(
        String(36), ForeignKey("menu_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(100), nullable=False)
    price = Column(Float, default=0.0, nullable=False)

    menu_item = relationship("MenuItem", back_populates="addons")


# =============================================================================
# ORDERS
# =============================================================================

class Order(Base):
    """
    Main Order table.

    Tracks the lifecycle from creation at the POS or the customer app
    through payment, kitchen preparation and completion.
    """
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=new_id)
    order_number = Column(String(50), unique=True, nullable=False, index=True)

    # =========================================================================
    # PEOPLE
    # =========================================================================
    customer_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    created_by_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    prepared_by_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)

    # =========================================================================
    # ORDER DETAILS
    # =========================================================================
    order_type = Column(Enum(OrderType, name="order_type"), nullable=False, index=True)
    status = Column(
        Enum(OrderStatus, name="order_status"),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True,
    )
    table_number = Column(String(20), nullable=True)
    delivery_address = Column(Text, nullable=True)
    contact_phone = Column(String(30), nullable=True)
    notes = Column(Text, nullable=True)

    # =========================================================================
    # PRICING
    # =========================================================================
    subtotal = Column(Float, nullable=False)
    discount = Column(Float, default=0.0, nullable=False)
    tax = Column(Float, nullable=False)
    total = Column(Float, nullable=False)

    # =========================================================================
    # PAYMENT INFO
    # =========================================================================
    payment_method = Column(Enum(PaymentMethod, name="payment_method"), nullable=True)
    payment_status = Column(
        Enum(PaymentStatus, name="payment_status"),
        default=PaymentStatus.PENDING,
        nullable=False,
        index=True,
    )
    paystack_ref = Column(String(100), nullable=True, index=True)

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
    ready_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    customer = relationship("User", foreign_keys=[customer_id], lazy="joined")
    created_by = relationship("User", foreign_keys=[created_by_id], lazy="joined")
    prepared_by = relationship("User", foreign_keys=[prepared_by_id], lazy="joined")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    payment = relationship(
        "Payment",
        back_populates="order",
        uselist=False,
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<Order {self.order_number} - {self.order_type.value} - {self.status.value}>"


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(
        String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    menu_item_id = Column(String(36), ForeignKey("menu_items.id"), nullable=False)
    variant_id = Column(
        String(36), ForeignKey("price_variants.id", ondelete="SET NULL"), nullable=True
    )
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Float, nullable=False)
    total_price = Column(Float, nullable=False)
    notes = Column(Text, nullable=True)

    order = relationship("Order", back_populates="items")
    menu_item = relationship("MenuItem", lazy="joined")
    variant = relationship("PriceVariant", lazy="joined")
    addons = relationship(
        "OrderItemAddon",
        back_populates="order_item",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class OrderItemAddon(Base):
    """Addon chosen for an order line, with the price charged at order time."""
    __tablename__ = "order_item_addons"

    id = Column(String(36), primary_key=True, default=new_id)
    order_item_id = Column(
        String(36), ForeignKey("order_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    addon_id = Column(String(36), ForeignKey("addons.id", ondelete="CASCADE"), nullable=False)
    price = Column(Float, nullable=False)

    order_item = relationship("OrderItem", back_populates="addons")
    addon = relationship("Addon", lazy="joined")


class Payment(Base):
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(
        String(36), ForeignKey("orders.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    amount = Column(Float, nullable=False)
    method = Column(Enum(PaymentMethod, name="payment_method"), nullable=False)
    status = Column(
        Enum(PaymentStatus, name="payment_status"),
        default=PaymentStatus.PENDING,
        nullable=False,
    )
    paystack_ref = Column(String(100), unique=True, nullable=True)
    paystack_data = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    order = relationship("Order", back_populates="payment")


# =============================================================================
# BUSINESS DAY
# =============================================================================

class DaySession(Base):
    """
    One row per business day (``YYYY-MM-DD``).

    Orders are refused while the current day is closed; closing stores
    the day's totals.
    """
    __tablename__ = "day_sessions"

    id = Column(String(36), primary_key=True, default=new_id)
    date = Column(String(10), unique=True, nullable=False, index=True)
    is_closed = Column(Boolean, default=False, nullable=False)
    opened_at = Column(DateTime, default=utcnow, nullable=False)
    closed_at = Column(DateTime, nullable=True)
    closed_by_id = Column(String(36), ForeignKey("users.id"), nullable=True)

    total_orders = Column(Integer, default=0, nullable=False)
    total_revenue = Column(Float, default=0.0, nullable=False)
    total_cash = Column(Float, default=0.0, nullable=False)
    total_card = Column(Float, default=0.0, nullable=False)
    total_momo = Column(Float, default=0.0, nullable=False)
    total_paystack = Column(Float, default=0.0, nullable=False)
    notes = Column(Text, nullable=True)

    closed_by = relationship("User", lazy="joined")


# =============================================================================
# SUPPORT CHAT
# =============================================================================

class Chat(Base):
    __tablename__ = "chats"

    id = Column(String(36), primary_key=True, default=new_id)
    customer_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    customer_name = Column(String(150), nullable=False, default="Guest")
    customer_email = Column(String(255), nullable=True)
    status = Column(
        Enum(ChatStatus, name="chat_status"),
        default=ChatStatus.ACTIVE,
        nullable=False,
        index=True,
    )
    last_message_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    customer = relationship("User", lazy="joined")
    messages = relationship(
        "ChatMessage",
        back_populates="chat",
        order_by="ChatMessage.created_at",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(String(36), primary_key=True, default=new_id)
    chat_id = Column(
        String(36), ForeignKey("chats.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sender_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    sender_role = Column(String(20), nullable=False)
    sender_name = Column(String(150), nullable=False)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    chat = relationship("Chat", back_populates="messages")


# =============================================================================
# SETTINGS & AUDIT
# =============================================================================

class SystemSettings(Base):
    """Single-row table (id ``system``) editable from the admin dashboard."""
    __tablename__ = "system_settings"

    id = Column(String(20), primary_key=True, default=SETTINGS_ID)
    restaurant_name = Column(String(150), default="De Fusion Flame Kitchen", nullable=False)
    address = Column(Text, nullable=True)
    phone = Column(String(30), nullable=True)
    email = Column(String(255), nullable=True)
    restaurant_logo = Column(String(500), nullable=True)

    tax_rate = Column(Float, default=0.05, nullable=False)
    currency = Column(String(10), default="GHS", nullable=False)
    currency_symbol = Column(String(5), default="₵", nullable=False)
    order_prefix = Column(String(10), default="ORD", nullable=False)
    auto_confirm_orders = Column(Boolean, default=False, nullable=False)
    require_payment_before_prep = Column(Boolean, default=False, nullable=False)

    paystack_secret_key = Column(String(255), nullable=True)
    paystack_public_key = Column(String(255), nullable=True)
    paystack_webhook_secret = Column(String(255), nullable=True)

    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    action = Column(String(50), nullable=False, index=True)
    entity = Column(String(50), nullable=False)
    entity_id = Column(String(36), nullable=True)
    details = Column(JSON, nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    user = relationship("User", lazy="joined")

    def __repr__(self):
        return f"<AuditLog {self.action} {self.entity}:{self.entity_id}>"
