# kibbledrop/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional
from decimal import Decimal
from datetime import date, datetime


# users / auth

class RegisterIn(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=8, max_length=128)
    name: str = Field(..., min_length=1, max_length=100)


class LoginIn(BaseModel):
    email: str
    password: str


class UserOut(BaseModel):
    id: int
    email: str
    name: str | None = None
    role: str
    status: str
    phone: str | None = None
    address: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


class ProfileUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    phone: str | None = None
    address: str | None = None


class ChangePasswordIn(BaseModel):
    """All fields optional here so a missing one is reported as a 400."""

    current_password: str | None = None
    new_password: str | None = None
    confirm_password: str | None = None


class OrderSummaryOut(BaseModel):
    id: int
    status: str
    total: Decimal
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserStatsOut(BaseModel):
    total_orders: int
    active_subscriptions: int
    pet_count: int
    recent_orders: List[OrderSummaryOut]


# catalog

class WeightVariantIn(BaseModel):
    weight: str = Field(..., min_length=1)
    price: Decimal = Field(..., gt=0)
    in_stock: bool = True


class WeightVariantOut(BaseModel):
    id: int
    weight: str
    price: Decimal
    in_stock: bool

    model_config = ConfigDict(from_attributes=True)


class ProductIn(BaseModel):
    name: str | None = None
    description: str | None = None
    price: Decimal | None = None
    category: str | None = None
    pet_type: str | None = None
    image: str | None = None
    brand: str | None = None
    weight: str | None = None
    species: str | None = None
    life_stage: str | None = None
    product_type: str | None = None
    food_type: str | None = None
    protein: str | None = None
    fat: str | None = None
    fiber: str | None = None
    moisture: str | None = None
    calories: str | None = None
    omega6: str | None = None
    ingredients: str | None = None
    feeding_guide_adult: str | None = None
    feeding_guide_puppy: str | None = None
    featured: bool = False
    variants: List[WeightVariantIn] = []


class ProductOut(BaseModel):
    id: int
    name: str
    description: str
    price: Decimal
    category: str
    pet_type: str
    image: str | None = None
    brand: str | None = None
    weight: str | None = None
    species: str | None = None
    life_stage: str | None = None
    product_type: str | None = None
    food_type: str | None = None
    protein: str | None = None
    fat: str | None = None
    fiber: str | None = None
    moisture: str | None = None
    calories: str | None = None
    omega6: str | None = None
    ingredients: str | None = None
    feeding_guide_adult: str | None = None
    feeding_guide_puppy: str | None = None
    featured: bool
    variants: List[WeightVariantOut] = []
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# cart

class CartItemIn(BaseModel):
    product_id: int = Field(..., gt=0)
    quantity: int = Field(1, description="Validated by the service (>= 1)")


class CartItemUpdate(BaseModel):
    quantity: int


class CartLineOut(BaseModel):
    id: int
    product_id: int
    name: str
    price: Decimal
    quantity: int
    image: str | None = None
    category: str
    pet_type: str


class CartOut(BaseModel):
    items: List[CartLineOut]
    total: Decimal


# orders

class DeliveryIn(BaseModel):
    delivery_name: str | None = None
    delivery_phone: str | None = None
    delivery_address: str | None = None
    city: str | None = None
    postal_code: str | None = None
    instructions: str | None = None


class OrderItemIn(BaseModel):
    product_id: int = Field(..., gt=0)
    quantity: int = Field(..., gt=0)
    weight: str | None = Field(None, description="Weight variant label; base price when omitted")


class OrderCreate(DeliveryIn):
    items: Optional[List[OrderItemIn]] = Field(None, description="Defaults to the current cart")
    delivery_method: str = "standard"


class OrderItemOut(BaseModel):
    id: int
    product_id: int | None = None
    product_name: str
    quantity: int
    price: Decimal

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    id: int
    user_id: int
    subscription_id: int | None = None
    status: str
    subtotal: Decimal
    shipping: Decimal
    total: Decimal
    delivery_name: str | None = None
    delivery_phone: str | None = None
    delivery_address: str | None = None
    city: str | None = None
    postal_code: str | None = None
    instructions: str | None = None
    delivery_method: str
    payment_provider: str | None = None
    payment_reference: str | None = None
    payment_status: str | None = None
    paid_at: datetime | None = None
    transaction_id: str | None = None
    tracking_number: str | None = None
    estimated_delivery: datetime | None = None
    cancel_reason: str | None = None
    items: List[OrderItemOut]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# subscriptions

class SubscriptionItemIn(BaseModel):
    product_id: int = Field(..., gt=0)
    quantity: int = Field(1, gt=0)


class SubscriptionCreate(DeliveryIn):
    pet_profile_id: int | None = None
    frequency: str | None = None
    next_delivery: date | None = None
    items: List[SubscriptionItemIn] = []


class SubscriptionUpdate(DeliveryIn):
    frequency: str | None = None
    next_delivery: date | None = None
    status: str | None = None


class SubscriptionItemsIn(BaseModel):
    items: List[SubscriptionItemIn]


class SubscriptionActivateIn(BaseModel):
    subscription_id: int = Field(..., gt=0)


class SubscriptionItemOut(BaseModel):
    id: int
    product_id: int
    name: str
    price: Decimal
    quantity: int


class SubscriptionOut(BaseModel):
    id: int
    user_id: int
    pet_profile_id: int
    pet_name: str | None = None
    frequency: str
    status: str
    next_delivery: date | None = None
    skipped_deliveries: List[str]
    delivery_name: str
    delivery_phone: str
    delivery_address: str
    city: str
    postal_code: str
    instructions: str | None = None
    stripe_subscription_id: str | None = None
    activated_at: datetime | None = None
    next_billing_date: datetime | None = None
    items: List[SubscriptionItemOut]
    total: Decimal
    created_at: datetime


# pets

class PetIn(BaseModel):
    name: str | None = None
    type: str | None = None
    breed: str | None = None
    birthday: date | None = None
    weight: float | None = Field(None, ge=0)
    health_tags: List[str] = []


class PetOut(BaseModel):
    id: int
    user_id: int
    name: str
    type: str
    breed: str | None = None
    birthday: date | None = None
    weight: float | None = None
    health_tags: List[str]
    image: str | None = None
    vaccination_card: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# admin

class AdminOrderUpdate(BaseModel):
    status: str | None = None
    tracking_number: str | None = None
    estimated_delivery: datetime | None = None


class AdminOrderCancel(BaseModel):
    reason: str | None = None


class AdminUserUpdate(BaseModel):
    status: str | None = None
    role: str | None = None


class AdminUserOut(UserOut):
    order_count: int = 0
    subscription_count: int = 0
    pet_count: int = 0
    orders: List[OrderSummaryOut] = []


class AnalyticsOut(BaseModel):
    total_users: int
    total_products: int
    total_orders: int
    orders_by_status: dict
    revenue: Decimal
    active_subscriptions: int
    pending_subscriptions: int


class UploadOut(BaseModel):
    url: str
    filename: str
    size: int


# payments

class CheckoutIn(BaseModel):
    order_id: int | None = Field(None, gt=0)
    subscription_id: int | None = Field(None, gt=0)


class CheckoutOut(BaseModel):
    provider: str
    order_id: int
    reference: str
    redirect_url: str
    status: str


class PaymentStatusOut(BaseModel):
    provider: str
    reference: str
    status: str
    order_id: int | None = None
    order_status: str | None = None
    raw: dict = {}


class WebhookAck(BaseModel):
    received: bool = True
    duplicate: bool = False
    order_id: int | None = None
    subscription_id: int | None = None
    status: str | None = None
