"""Pydantic schemas for shop service."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from services.shop_service.models import (
    DiscountType,
    GiftCardStatus,
    InventoryReason,
    OrderStatus,
    PaymentMethod,
    ReviewStatus,
)

# ============================================================================
# CATEGORY SCHEMAS
# ============================================================================


class CategoryCreate(BaseModel):
    name: str = Field(..., max_length=100)
    slug: str = Field(..., max_length=100)
    description: Optional[str] = None


class CategoryResponse(CategoryCreate):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    created_at: datetime


# ============================================================================
# PRODUCT SCHEMAS
# ============================================================================


class ProductBase(BaseModel):
    name: str = Field(..., max_length=255)
    slug: str = Field(..., max_length=255)
    category_id: Optional[uuid.UUID] = None
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=512)
    price: int = Field(..., ge=0)
    sale_price: Optional[int] = Field(None, ge=0)
    sale_start_date: Optional[datetime] = None
    sale_end_date: Optional[datetime] = None


class ProductCreate(ProductBase):
    # Opening stock, recorded as a RESTOCK ledger entry
    stock: int = Field(0, ge=0)


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    slug: Optional[str] = Field(None, max_length=255)
    category_id: Optional[uuid.UUID] = None
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=512)
    price: Optional[int] = Field(None, ge=0)
    sale_price: Optional[int] = Field(None, ge=0)
    sale_start_date: Optional[datetime] = None
    sale_end_date: Optional[datetime] = None

    @field_validator("name", "slug", "price")
    @classmethod
    def not_null(cls, v):
        # Omit a field to leave it unchanged; these columns cannot be cleared
        if v is None:
            raise ValueError("Field cannot be null")
        return v


class ProductVariantCreate(BaseModel):
    sku: str = Field(..., max_length=100)
    name: Optional[str] = Field(None, max_length=255)
    options: dict = Field(default_factory=dict)
    price_override: Optional[int] = Field(None, ge=0)
    sale_price: Optional[int] = Field(None, ge=0)
    sale_start_date: Optional[datetime] = None
    sale_end_date: Optional[datetime] = None
    stock: int = Field(0, ge=0)


class ProductVariantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: uuid.UUID
    sku: str
    name: Optional[str] = None
    options: dict
    price_override: Optional[int] = None
    sale_price: Optional[int] = None
    sale_start_date: Optional[datetime] = None
    sale_end_date: Optional[datetime] = None
    stock: int
    available_stock: int
    current_price: Optional[int] = None


class ProductResponse(ProductBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    stock: int
    available_stock: int
    is_archived: bool
    rating: Decimal
    current_price: Optional[int] = None  # Resolved sale/base price
    created_at: datetime
    updated_at: datetime


class ProductDetail(ProductResponse):
    variants: list[ProductVariantResponse] = []


# ============================================================================
# INVENTORY SCHEMAS
# ============================================================================


class InventoryAdjustment(BaseModel):
    product_id: uuid.UUID
    variant_id: Optional[uuid.UUID] = None
    change: int  # Positive = add, negative = remove
    reason: InventoryReason = InventoryReason.MANUAL_ADJUSTMENT

    @field_validator("change")
    @classmethod
    def change_not_zero(cls, v: int) -> int:
        if v == 0:
            raise ValueError("change must not be zero")
        return v

    @field_validator("reason")
    @classmethod
    def manual_reason_only(cls, v: InventoryReason) -> InventoryReason:
        if v not in (InventoryReason.MANUAL_ADJUSTMENT, InventoryReason.RESTOCK):
            raise ValueError("Only MANUAL_ADJUSTMENT or RESTOCK can be posted")
        return v


class InventoryLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: uuid.UUID
    variant_id: Optional[uuid.UUID] = None
    change: int
    reason: InventoryReason
    reference_id: Optional[str] = None
    user_id: Optional[str] = None
    created_at: datetime


class StockLevelResponse(BaseModel):
    product_id: uuid.UUID
    variant_id: Optional[uuid.UUID] = None
    stock: int
    reserved: int
    available_stock: int


# ============================================================================
# CART / QUOTE SCHEMAS
# ============================================================================


class CartLineIn(BaseModel):
    """One cart line. Any client-side price field is ignored."""

    product_id: uuid.UUID
    variant_id: Optional[uuid.UUID] = None
    quantity: int = Field(..., gt=0, le=100)
    selected_options: dict = Field(default_factory=dict)


class CartQuoteRequest(BaseModel):
    items: list[CartLineIn] = Field(..., min_length=1)
    coupon_code: Optional[str] = Field(None, max_length=50)


class PricedLineResponse(BaseModel):
    product_id: uuid.UUID
    variant_id: Optional[uuid.UUID] = None
    name: str
    unit_price: int
    quantity: int
    line_total: int


class CartQuoteResponse(BaseModel):
    subtotal: int
    coupon_code: Optional[str] = None
    coupon_discount: int
    loyalty_tier: Optional[str] = None
    loyalty_discount: int
    discount: int
    shipping_cost: int
    total: int
    lines: list[PricedLineResponse]


# ============================================================================
# COUPON SCHEMAS
# ============================================================================


class CouponValidateRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    items: list[CartLineIn] = Field(..., min_length=1)


class CouponValidateResponse(BaseModel):
    code: str
    discount: int
    subtotal: int


class CouponCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = None
    discount_type: DiscountType
    value: Decimal = Field(..., gt=0)
    minimum_cart_total: Optional[int] = Field(None, ge=0)
    maximum_discount: Optional[int] = Field(None, gt=0)
    expires_at: Optional[datetime] = None
    usage_limit: Optional[int] = Field(None, gt=0)
    is_active: bool = True
    category_id: Optional[uuid.UUID] = None
    product_ids: list[uuid.UUID] = []

    @field_validator("value")
    @classmethod
    def percentage_in_range(cls, v: Decimal, info) -> Decimal:
        if info.data.get("discount_type") == DiscountType.PERCENTAGE and v > 100:
            raise ValueError("Percentage discount cannot exceed 100")
        return v


class CouponUpdate(BaseModel):
    description: Optional[str] = None
    value: Optional[Decimal] = Field(None, gt=0)
    minimum_cart_total: Optional[int] = Field(None, ge=0)
    maximum_discount: Optional[int] = Field(None, gt=0)
    expires_at: Optional[datetime] = None
    usage_limit: Optional[int] = Field(None, gt=0)
    is_active: Optional[bool] = None
    category_id: Optional[uuid.UUID] = None
    product_ids: Optional[list[uuid.UUID]] = None

    @field_validator("value", "is_active")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("Field cannot be null")
        return v


class CouponResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    code: str
    description: Optional[str] = None
    discount_type: DiscountType
    value: Decimal
    minimum_cart_total: Optional[int] = None
    maximum_discount: Optional[int] = None
    expires_at: Optional[datetime] = None
    usage_limit: Optional[int] = None
    usage_count: int
    is_active: bool
    category_id: Optional[uuid.UUID] = None
    product_ids: list[uuid.UUID] = []
    created_at: datetime


# ============================================================================
# ORDER SCHEMAS
# ============================================================================


class OrderCreateRequest(BaseModel):
    items: list[CartLineIn] = Field(..., min_length=1)
    customer_name: str = Field(..., min_length=1, max_length=255)
    customer_email: EmailStr
    customer_phone: str = Field(..., min_length=5, max_length=50)
    customer_address: str = Field(..., min_length=5)
    billing_name: Optional[str] = Field(None, max_length=255)
    billing_address: Optional[str] = None
    tax_number: Optional[str] = Field(None, max_length=50)
    payment_method: PaymentMethod = PaymentMethod.CARD
    coupon_code: Optional[str] = Field(None, max_length=50)


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: uuid.UUID
    variant_id: Optional[uuid.UUID] = None
    name: str
    unit_price: int
    quantity: int
    line_total: int
    selected_options: Optional[dict] = None


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_number: str
    customer_name: str
    customer_email: str
    customer_phone: str
    customer_address: str
    subtotal: int
    coupon_code: Optional[str] = None
    coupon_discount: int
    loyalty_discount: int
    shipping_cost: int
    total_price: int
    status: OrderStatus
    payment_method: PaymentMethod
    payment_reference: Optional[str] = None
    cancel_reason: Optional[str] = None
    paid_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    items: list[OrderItemResponse] = []


class CheckoutResponse(BaseModel):
    order: OrderResponse
    # Stripe PaymentIntent client secret for card payments
    client_secret: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


# ============================================================================
# GIFT CARD SCHEMAS
# ============================================================================


class GiftCardPurchaseRequest(BaseModel):
    amount: int
    recipient_email: EmailStr
    recipient_name: Optional[str] = Field(None, max_length=255)
    sender_name: Optional[str] = Field(None, max_length=255)
    purchaser_email: Optional[EmailStr] = None
    message: Optional[str] = Field(None, max_length=1000)


class GiftCardCodeRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=20)


class GiftCardRedeemRequest(GiftCardCodeRequest):
    amount: int = Field(..., gt=0)
    order_id: Optional[uuid.UUID] = None


class GiftCardResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    code: str
    amount: int
    balance: int
    status: GiftCardStatus
    expires_at: datetime


class GiftCardRedemptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    amount: int
    balance_before: int
    balance_after: int
    order_id: Optional[uuid.UUID] = None
    created_at: datetime


class GiftCardDetailResponse(GiftCardResponse):
    recipient_email: str
    recipient_name: Optional[str] = None
    sender_name: Optional[str] = None
    message: Optional[str] = None
    created_at: datetime
    redemptions: list[GiftCardRedemptionResponse] = []


class GiftCardListResponse(BaseModel):
    purchased: list[GiftCardDetailResponse]
    received: list[GiftCardDetailResponse]


# ============================================================================
# PRICE ALERT SCHEMAS
# ============================================================================


class PriceAlertCreate(BaseModel):
    email: EmailStr
    product_id: uuid.UUID
    target_price: int = Field(..., gt=0)


class PriceAlertResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    product_id: uuid.UUID
    target_price: int
    triggered: bool
    notified_at: Optional[datetime] = None
    created_at: datetime


# ============================================================================
# REVIEW SCHEMAS
# ============================================================================


class ReviewCreate(BaseModel):
    product_id: uuid.UUID
    rating: int = Field(..., ge=1, le=5)
    text: Optional[str] = Field(None, max_length=2000)


class ReviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: uuid.UUID
    user_name: str
    rating: int
    text: Optional[str] = None
    status: ReviewStatus
    created_at: datetime


class ReviewStatusUpdate(BaseModel):
    status: ReviewStatus


# ============================================================================
# NEWSLETTER / CONTACT SCHEMAS
# ============================================================================


class NewsletterSubscribeRequest(BaseModel):
    email: EmailStr
    # Hidden form field; only bots fill it in
    website: Optional[str] = None


class NewsletterSubscriberResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    email: str
    created_at: datetime


class NewsletterSendRequest(BaseModel):
    subject: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)


class NewsletterSendResponse(BaseModel):
    sent: int
    failed: int
    total: int


class ContactRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    message: str = Field(..., min_length=1, max_length=5000)


class MessageResponse(BaseModel):
    message: str


# ============================================================================
# LOYALTY SCHEMAS
# ============================================================================


class LoyaltyStatusResponse(BaseModel):
    total_spent: int
    tier: str
    discount_percent: Decimal
    next_tier: Optional[str] = None
    amount_to_next_tier: Optional[int] = None


# ============================================================================
# SETTINGS SCHEMAS
# ============================================================================


class SettingsUpdate(BaseModel):
    shipping_fee: Optional[int] = Field(None, ge=0)
    free_shipping_threshold: Optional[int] = Field(None, ge=0)


class SettingsResponse(BaseModel):
    shipping_fee: int
    free_shipping_threshold: int
