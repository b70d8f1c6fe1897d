"""Pydantic request/response schemas for the Checkout API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    first_name: str
    last_name: str
    address_line_1: str
    address_line_2: str | None = None
    city: str
    state: str
    postal_code: str
    phone: str


class PriceBreakdownSchema(BaseModel):
    subtotal: float
    shipping_amount: float
    tax_amount: float
    discount_amount: float
    total_amount: float
    currency: str
    free_shipping: bool


# ---------------------------------------------------------------------------
# Cart Schemas
# ---------------------------------------------------------------------------
class CreateCartRequest(BaseModel):
    customer_id: str | None = None
    session_id: str | None = None


class AddToCartRequest(BaseModel):
    product_id: str
    name: str
    sku: str | None = None
    image: str | None = None
    unit_price: float = Field(ge=0)
    quantity: int = Field(ge=1, default=1)
    stock: int | None = Field(default=None, ge=0)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "product_id": "prod-001",
                    "name": "Cotton Kurta",
                    "sku": "KUR-001",
                    "unit_price": 799.0,
                    "quantity": 1,
                    "stock": 12,
                }
            ]
        }
    }


class UpdateCartQuantityRequest(BaseModel):
    new_quantity: int = Field(ge=1)


class ApplyCouponToCartRequest(BaseModel):
    coupon_code: str


class CartLineSchema(BaseModel):
    line_id: str
    product_id: str
    name: str
    sku: str | None = None
    image: str | None = None
    unit_price: float
    quantity: int
    line_total: float


class CartSummaryResponse(BaseModel):
    cart_id: str
    status: str
    lines: list[CartLineSchema]
    coupon_code: str | None = None
    coupon_error: str | None = None
    pricing: PriceBreakdownSchema


class CartIdResponse(BaseModel):
    cart_id: str


class LineIdResponse(BaseModel):
    line_id: str


class CouponAppliedResponse(BaseModel):
    coupon_code: str
    discount_amount: float


# ---------------------------------------------------------------------------
# Coupon Schemas
# ---------------------------------------------------------------------------
class CreateCouponRequest(BaseModel):
    code: str
    name: str | None = None
    coupon_type: str  # percentage, fixed
    value: float = Field(gt=0)
    minimum_amount: float | None = Field(default=None, ge=0)
    maximum_discount: float | None = Field(default=None, ge=0)
    usage_limit: int | None = Field(default=None, ge=1)
    user_limit: int | None = Field(default=None, ge=1)
    starts_at: datetime | None = None
    expires_at: datetime | None = None
    is_active: bool = True

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "code": "WELCOME10",
                    "coupon_type": "percentage",
                    "value": 10,
                    "minimum_amount": 500,
                    "maximum_discount": 200,
                    "usage_limit": 1000,
                    "user_limit": 1,
                }
            ]
        }
    }


class UpdateCouponRequest(BaseModel):
    name: str | None = None
    value: float | None = Field(default=None, gt=0)
    minimum_amount: float | None = Field(default=None, ge=0)
    maximum_discount: float | None = Field(default=None, ge=0)
    usage_limit: int | None = Field(default=None, ge=1)
    user_limit: int | None = Field(default=None, ge=1)
    starts_at: datetime | None = None
    expires_at: datetime | None = None


class ValidateCouponRequest(BaseModel):
    code: str
    subtotal: float = Field(ge=0)
    customer_id: str | None = None


class ValidateCouponResponse(BaseModel):
    valid: bool
    normalized_code: str
    discount_amount: float = 0.0
    error: str | None = None


class CouponResponse(BaseModel):
    coupon_id: str
    code: str
    name: str | None = None
    coupon_type: str
    value: float
    minimum_amount: float | None = None
    maximum_discount: float | None = None
    usage_limit: int | None = None
    used_count: int
    user_limit: int | None = None
    starts_at: datetime | None = None
    expires_at: datetime | None = None
    is_active: bool
    status: str


class CouponIdResponse(BaseModel):
    coupon_id: str


# ---------------------------------------------------------------------------
# Address Schemas
# ---------------------------------------------------------------------------
class AddAddressRequest(AddressSchema):
    is_default: bool = False


class UpdateAddressRequest(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    address_line_1: str | None = None
    address_line_2: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    phone: str | None = None


class AddressResponse(AddressSchema):
    address_id: str
    is_default: bool


class AddressIdResponse(BaseModel):
    address_id: str


# ---------------------------------------------------------------------------
# Order Schemas
# ---------------------------------------------------------------------------
class PlaceOrderRequest(BaseModel):
    customer_id: str
    cart_id: str
    payment_method: str  # razorpay, cod
    idempotency_key: str
    address_id: str | None = None
    shipping_address: AddressSchema | None = None


class OrderItemResponse(BaseModel):
    item_id: str
    product_id: str
    product_name: str
    product_sku: str | None = None
    product_image: str | None = None
    quantity: int
    unit_price: float
    total_price: float


class OrderResponse(BaseModel):
    order_id: str
    order_number: str
    customer_id: str
    status: str
    payment_status: str
    payment_method: str
    subtotal: float
    shipping_amount: float
    tax_amount: float
    discount_amount: float
    total_amount: float
    currency: str
    coupon_code: str | None = None
    gateway_order_id: str | None = None
    gateway_payment_id: str | None = None
    failure_reason: str | None = None
    cancellation_reason: str | None = None
    shipping_address: AddressSchema
    items: list[OrderItemResponse]
    created_at: datetime | None = None
    confirmed_at: datetime | None = None
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None
    cancelled_at: datetime | None = None


class OrderIdResponse(BaseModel):
    order_id: str
    order_number: str
    status: str
    payment_status: str


class CancelOrderRequest(BaseModel):
    reason: str = "Cancelled by customer"
    cancelled_by: str = "Customer"


class StatusResponse(BaseModel):
    status: str = "ok"


# ---------------------------------------------------------------------------
# Payment Schemas
# ---------------------------------------------------------------------------
class InitiatePaymentRequest(BaseModel):
    customer_email: str | None = None
    customer_name: str | None = None
    customer_phone: str | None = None


class PrefillSchema(BaseModel):
    name: str
    email: str
    contact: str


class CheckoutOptionsResponse(BaseModel):
    key: str
    amount: int
    currency: str
    name: str
    description: str
    order_id: str
    prefill: PrefillSchema
    theme: dict


class PaymentSuccessRequest(BaseModel):
    gateway_order_id: str
    gateway_payment_id: str
    signature: str


class PaymentFailureRequest(BaseModel):
    error_description: str | None = None
    metadata: dict = Field(default_factory=dict)


class PaymentFailureResponse(BaseModel):
    status: str
    payment_status: str
    error: str


class PaymentStateResponse(BaseModel):
    status: str
    payment_status: str


class RelayRequest(BaseModel):
    amount: int | float  # minor units; non-integers are rejected by the relay
    currency: str = "INR"
    receipt_id: str
    order_id: str | None = None
    user_email: str | None = None
    user_full_name: str | None = None
    phone_number: str | None = None


class RelayResponse(BaseModel):
    orderId: str  # noqa: N815
    amount: int
    currency: str
    receipt: str


class ConfigureGatewayRequest(BaseModel):
    should_succeed: bool = True
    failure_reason: str = "Gateway unavailable"


class GatewayConfigResponse(BaseModel):
    gateway: str
    should_succeed: bool
    failure_reason: str


class ReconcilePaymentsRequest(BaseModel):
    older_than_minutes: int = Field(ge=0, default=15)


class ReconcilePaymentsResponse(BaseModel):
    checked: int
    paid: int
    failed: int
    closed: int
    errors: int
