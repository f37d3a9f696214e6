"""
Pydantic Schemas for Request/Response Validation

Grouped by router: auth, menu, orders, payments, settings,
day session, admin users and support chat.
"""

import re
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from app.models import (
    ChatStatus,
    OrderStatus,
    OrderType,
    PaymentMethod,
    PaymentStatus,
    Role,
    STAFF_ROLES,
)

EMAIL_PATTERN = re.compile(r'^[\w\.\+-]+@[\w\.-]+\.\w+$')


def _clean_email(v: Optional[str]) -> Optional[str]:
    if v is None or v.strip() == "":
        return None
    v = v.strip().lower()
    if not EMAIL_PATTERN.match(v):
        raise ValueError('Invalid email format')
    return v


def _clean_phone(v: Optional[str]) -> Optional[str]:
    if v is None or v.strip() == "":
        return None
    cleaned = re.sub(r'[^\d+]', '', v)
    if len(re.sub(r'\D', '', cleaned)) < 7:
        raise ValueError('Phone number must have at least 7 digits')
    return cleaned


class ORMModel(BaseModel):
    class Config:
        from_attributes = True


class ContactFields(BaseModel):
    """Email and phone, normalized; shared by account schemas."""
    email: Optional[str] = Field(None, examples=["ama@example.com"])
    phone: Optional[str] = Field(None, examples=["+233201234567"])

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        return _clean_email(v)

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return _clean_phone(v)


# =============================================================================
# AUTH
# =============================================================================

class RegisterRequest(ContactFields):
    """Customer self-registration; email or phone is required."""
    password: str = Field(..., min_length=6, max_length=128)
    first_name: Optional[str] = Field(None, max_length=100, examples=["Ama"])
    last_name: Optional[str] = Field(None, max_length=100, examples=["Mensah"])

    @model_validator(mode='after')
    def require_contact(self) -> "RegisterRequest":
        if not self.email and not self.phone:
            raise ValueError('Email or phone is required')
        return self


class LoginRequest(ContactFields):
    password: str = Field(..., min_length=1)

    @model_validator(mode='after')
    def require_contact(self) -> "LoginRequest":
        if not self.email and not self.phone:
            raise ValueError('Email or phone is required')
        return self


class ProfileUpdate(ContactFields):
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=128)


class UserResponse(ORMModel):
    id: str
    email: Optional[str]
    phone: Optional[str]
    first_name: Optional[str]
    last_name: Optional[str]
    role: Role
    is_active: bool
    created_at: datetime


class UserBrief(ORMModel):
    id: str
    first_name: Optional[str]
    last_name: Optional[str]
    email: Optional[str]
    phone: Optional[str]
    role: Role


class AuthResponse(BaseModel):
    message: str
    token: str
    user: UserResponse


# =============================================================================
# MENU
# =============================================================================

class VariantIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["Large"])
    price: float = Field(..., ge=0, examples=[65.0])


class AddonIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["Extra chicken"])
    price: float = Field(default=0.0, ge=0, examples=[15.0])


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["Rice Dishes"])
    description: Optional[str] = None
    image: Optional[str] = None
    display_order: int = 0
    is_active: bool = True


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    image: Optional[str] = None
    display_order: Optional[int] = None
    is_active: Optional[bool] = None


class MenuItemCreate(BaseModel):
    category_id: str
    name: str = Field(..., min_length=1, max_length=150, examples=["Jollof Rice"])
    description: Optional[str] = None
    image: Optional[str] = None
    base_price: float = Field(..., ge=0, examples=[45.0])
    is_available: bool = True
    display_order: int = 0
    variants: List[VariantIn] = Field(default_factory=list)
    addons: List[AddonIn] = Field(default_factory=list)


class MenuItemUpdate(BaseModel):
    """Partial update; ``variants``/``addons`` replace the existing lists when given."""
    category_id: Optional[str] = None
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = None
    image: Optional[str] = None
    base_price: Optional[float] = Field(None, ge=0)
    is_available: Optional[bool] = None
    display_order: Optional[int] = None
    variants: Optional[List[VariantIn]] = None
    addons: Optional[List[AddonIn]] = None


class VariantResponse(ORMModel):
    id: str
    name: str
    price: float


class AddonResponse(ORMModel):
    id: str
    name: str
    price: float


class MenuItemResponse(ORMModel):
    id: str
    category_id: str
    name: str
    description: Optional[str]
    image: Optional[str]
    base_price: float
    is_available: bool
    display_order: int
    variants: List[VariantResponse] = []
    addons: List[AddonResponse] = []


class CategoryResponse(ORMModel):
    id: str
    name: str
    description: Optional[str]
    image: Optional[str]
    display_order: int
    is_active: bool


class CategoryWithItemsResponse(CategoryResponse):
    items: List[MenuItemResponse] = []


# =============================================================================
# ORDERS
# =============================================================================

class OrderItemIn(BaseModel):
    """Single line of a new order."""
    menu_item_id: str
    variant_id: Optional[str] = None
    addon_ids: List[str] = Field(default_factory=list)
    quantity: int = Field(..., ge=1, le=999, examples=[2])
    notes: Optional[str] = Field(None, max_length=500)


class OrderCreate(BaseModel):
    """Request schema for creating a new order."""
    order_type: OrderType = Field(..., examples=["DINE_IN"])
    items: List[OrderItemIn] = Field(..., min_length=1)
    table_number: Optional[str] = Field(None, max_length=20, examples=["T4"])
    delivery_address: Optional[str] = Field(None, max_length=500)
    contact_phone: Optional[str] = Field(None, max_length=30)
    notes: Optional[str] = Field(None, max_length=1000)
    discount: float = Field(default=0.0, ge=0)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class MenuItemBrief(ORMModel):
    id: str
    name: str
    image: Optional[str]


class OrderItemAddonResponse(ORMModel):
    id: str
    addon_id: str
    price: float
    addon: Optional[AddonResponse] = None


class OrderItemResponse(ORMModel):
    id: str
    menu_item_id: str
    variant_id: Optional[str]
    quantity: int
    unit_price: float
    total_price: float
    notes: Optional[str]
    menu_item: Optional[MenuItemBrief] = None
    variant: Optional[VariantResponse] = None
    addons: List[OrderItemAddonResponse] = []


class PaymentResponse(ORMModel):
    id: str
    order_id: str
    amount: float
    method: PaymentMethod
    status: PaymentStatus
    paystack_ref: Optional[str]
    created_at: datetime


class OrderResponse(ORMModel):
    """Response schema for a single order."""
    id: str
    order_number: str
    order_type: OrderType
    status: OrderStatus
    table_number: Optional[str]
    delivery_address: Optional[str]
    contact_phone: Optional[str]
    notes: Optional[str]
    subtotal: float
    discount: float
    tax: float
    total: float
    payment_method: Optional[PaymentMethod]
    payment_status: PaymentStatus
    paystack_ref: Optional[str]
    customer_id: Optional[str]
    created_by_id: Optional[str]
    prepared_by_id: Optional[str]
    customer: Optional[UserBrief] = None
    created_by: Optional[UserBrief] = None
    prepared_by: Optional[UserBrief] = None
    items: List[OrderItemResponse] = []
    payment: Optional[PaymentResponse] = None
    created_at: datetime
    updated_at: Optional[datetime]
    ready_at: Optional[datetime]
    completed_at: Optional[datetime]


class OrderListResponse(BaseModel):
    """Response for listing multiple orders."""
    orders: List[OrderResponse]
    total: int
    limit: int
    offset: int


class OrderEnvelope(BaseModel):
    message: str
    order: OrderResponse


# =============================================================================
# PAYMENTS
# =============================================================================

class PaymentInitializeRequest(BaseModel):
    order_id: str


class PaymentVerifyRequest(BaseModel):
    reference: str = Field(..., min_length=1)


class PosPaymentRequest(BaseModel):
    order_id: str
    payment_method: PaymentMethod = Field(..., examples=["CASH"])
    amount: float = Field(..., gt=0)

    @field_validator('payment_method')
    @classmethod
    def counter_methods_only(cls, v: PaymentMethod) -> PaymentMethod:
        if v == PaymentMethod.PAYSTACK:
            raise ValueError('POS payments accept CASH, CARD or MOMO')
        return v


class PaymentInitializeResponse(BaseModel):
    message: str
    test_mode: bool = False
    reference: Optional[str] = None
    authorization_url: Optional[str] = None
    access_code: Optional[str] = None
    redirect_url: Optional[str] = None
    order: Optional[OrderResponse] = None


class TransactionResponse(PaymentResponse):
    order_number: str
    order_type: OrderType
    customer_id: Optional[str]


class TransactionListResponse(BaseModel):
    payments: List[TransactionResponse]
    total: int
    total_amount: float
    limit: int
    offset: int


# =============================================================================
# SETTINGS
# =============================================================================

class SettingsUpdate(BaseModel):
    restaurant_name: Optional[str] = Field(None, max_length=150)
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    restaurant_logo: Optional[str] = None
    tax_rate: Optional[float] = Field(None, ge=0, le=1)
    currency: Optional[str] = Field(None, max_length=10)
    currency_symbol: Optional[str] = Field(None, max_length=5)
    order_prefix: Optional[str] = Field(None, max_length=10)
    auto_confirm_orders: Optional[bool] = None
    require_payment_before_prep: Optional[bool] = None
    paystack_secret_key: Optional[str] = None
    paystack_public_key: Optional[str] = None
    paystack_webhook_secret: Optional[str] = None

    @field_validator('restaurant_name', 'currency', 'currency_symbol', 'order_prefix')
    @classmethod
    def not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError('Must not be empty')
        return v.strip() if v is not None else v

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        return _clean_email(v)


class SettingsResponse(ORMModel):
    restaurant_name: str
    address: Optional[str]
    phone: Optional[str]
    email: Optional[str]
    restaurant_logo: Optional[str]
    tax_rate: float
    currency: str
    currency_symbol: str
    order_prefix: str
    auto_confirm_orders: bool
    require_payment_before_prep: bool
    paystack_public_key: Optional[str]
    updated_at: Optional[datetime]


class AdminSettingsResponse(SettingsResponse):
    paystack_secret_key: Optional[str]
    paystack_webhook_secret: Optional[str]


# =============================================================================
# DAY SESSION
# =============================================================================

class DayCloseRequest(BaseModel):
    notes: Optional[str] = Field(None, max_length=1000)


class DaySessionResponse(ORMModel):
    id: str
    date: str
    is_closed: bool
    opened_at: datetime
    closed_at: Optional[datetime]
    closed_by_id: Optional[str]
    closed_by: Optional[UserBrief] = None
    total_orders: int
    total_revenue: float
    total_cash: float
    total_card: float
    total_momo: float
    total_paystack: float
    notes: Optional[str]


class DaySessionEnvelope(BaseModel):
    message: str
    day_session: DaySessionResponse


class DaySummaryResponse(BaseModel):
    date: str
    total_orders: int
    paid_orders: int
    unpaid_orders: int
    total_revenue: float
    total_cash: float
    total_card: float
    total_momo: float
    total_paystack: float
    orders_by_status: dict[str, int]
    orders_by_type: dict[str, int]


class DaySessionHistoryResponse(BaseModel):
    day_sessions: List[DaySessionResponse]
    total: int
    limit: int
    offset: int
    has_more: bool


# =============================================================================
# DASHBOARDS & REPORTS
# =============================================================================

class KitchenStats(BaseModel):
    total_prepared: int
    total_items_prepared: int
    total_value: float
    avg_prep_time: float = Field(..., description="Minutes from order to READY")


class KitchenDashboardResponse(BaseModel):
    stats: KitchenStats
    recent_orders: List[OrderResponse]


class ReportPeriod(BaseModel):
    start_date: datetime
    end_date: datetime


class ReportStats(BaseModel):
    total_orders: int
    total_items: int
    total_value: float


class StaffStat(ReportStats):
    staff: UserBrief


class KitchenReportResponse(BaseModel):
    period: ReportPeriod
    stats: ReportStats
    staff_stats: List[StaffStat] = []
    orders: List[OrderResponse]


class SalesStats(BaseModel):
    total_sales: float
    total_orders: int
    total_items: int
    average_order_value: float


class StaffDashboardResponse(BaseModel):
    stats: SalesStats
    payment_methods: dict[str, float]
    order_types: dict[str, int]
    recent_orders: List[OrderResponse]


class BestSeller(BaseModel):
    menu_item_id: str
    name: str
    quantity: int
    revenue: float


class AdminDashboardResponse(BaseModel):
    period: str
    total_sales: float
    total_orders: int
    completed_orders: int
    average_order_value: float
    payment_breakdown: dict[str, float]
    best_sellers: List[BestSeller]
    orders_by_status: dict[str, int]
    orders_by_type: dict[str, int]


class AdminNotification(BaseModel):
    type: str
    title: str
    urgent: bool = False
    message: str
    order_id: str
    order_number: str
    status: OrderStatus
    created_at: datetime


class NotificationListResponse(BaseModel):
    notifications: List[AdminNotification]
    unread_count: int


class AuditLogResponse(ORMModel):
    id: str
    user_id: Optional[str]
    action: str
    entity: str
    entity_id: Optional[str]
    details: Optional[dict] = None
    ip_address: Optional[str]
    user_agent: Optional[str]
    created_at: datetime
    user: Optional[UserBrief] = None


class AuditLogListResponse(BaseModel):
    logs: List[AuditLogResponse]
    total: int
    limit: int
    offset: int


# =============================================================================
# ADMIN USERS
# =============================================================================

class StaffCreate(ContactFields):
    password: str = Field(..., min_length=6, max_length=128)
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    role: Role

    @field_validator('role')
    @classmethod
    def staff_only(cls, v: Role) -> Role:
        if v not in STAFF_ROLES:
            raise ValueError('Role must be a staff role')
        return v

    @model_validator(mode='after')
    def require_contact(self) -> "StaffCreate":
        if not self.email and not self.phone:
            raise ValueError('Email or phone is required')
        return self


class UserUpdate(ContactFields):
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    role: Optional[Role] = None
    is_active: Optional[bool] = None
    password: Optional[str] = Field(None, min_length=6, max_length=128)


class UserListResponse(BaseModel):
    users: List[UserResponse]
    total: int
    limit: int
    offset: int


class UserEnvelope(BaseModel):
    message: str
    user: UserResponse


# =============================================================================
# CHAT
# =============================================================================

class ChatCreate(BaseModel):
    customer_name: Optional[str] = Field(None, max_length=150)
    customer_email: Optional[str] = None
    message: Optional[str] = Field(None, max_length=2000)

    @field_validator('customer_email')
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        return _clean_email(v)


class ChatMessageCreate(BaseModel):
    message: str = Field(..., min_length=1, max_length=2000)

    @field_validator('message')
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError('Message cannot be empty')
        return v.strip()


class ChatStatusUpdate(BaseModel):
    status: ChatStatus


class ChatMessageResponse(ORMModel):
    id: str
    chat_id: str
    sender_id: Optional[str]
    sender_role: str
    sender_name: str
    message: str
    is_read: bool
    created_at: datetime


class ChatResponse(ORMModel):
    id: str
    customer_id: Optional[str]
    customer_name: str
    customer_email: Optional[str]
    status: ChatStatus
    last_message_at: datetime
    created_at: datetime
    messages: List[ChatMessageResponse] = []


class ChatSummaryResponse(ORMModel):
    """Chat list entry with its latest message only."""
    id: str
    customer_id: Optional[str]
    customer_name: str
    customer_email: Optional[str]
    status: ChatStatus
    last_message_at: datetime
    created_at: datetime
    last_message: Optional[ChatMessageResponse] = None
    unread_count: int = 0


class ChatListResponse(BaseModel):
    chats: List[ChatSummaryResponse]


class ChatEnvelope(BaseModel):
    message: str
    chat: ChatResponse


class ChatMessageEnvelope(BaseModel):
    message: ChatMessageResponse
    chat: ChatResponse


class UnreadCountResponse(BaseModel):
    count: int


# =============================================================================
# GENERIC
# =============================================================================

class MessageResponse(BaseModel):
    message: str


class UploadResponse(BaseModel):
    message: str
    url: str
    filename: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    redis: str
    version: str
    environment: str
    timestamp: datetime
