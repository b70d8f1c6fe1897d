"""FastAPI routes for the Checkout domain — carts, coupons, addresses, orders and payments.

Routes that call the payment gateway are plain ``def`` so FastAPI runs them in
its threadpool; the gateway client is synchronous.
"""

import json

import structlog
from fastapi import APIRouter, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from checkout.address.address_book import address_book_for
from checkout.address.management import AddAddress, RemoveAddress, SetDefaultAddress, UpdateAddress
from checkout.api.schemas import (
    AddAddressRequest,
    AddressIdResponse,
    AddressResponse,
    AddToCartRequest,
    ApplyCouponToCartRequest,
    CancelOrderRequest,
    CartIdResponse,
    CartSummaryResponse,
    CheckoutOptionsResponse,
    ConfigureGatewayRequest,
    CouponAppliedResponse,
    CouponIdResponse,
    CouponResponse,
    CreateCartRequest,
    CreateCouponRequest,
    GatewayConfigResponse,
    InitiatePaymentRequest,
    LineIdResponse,
    OrderIdResponse,
    OrderResponse,
    PaymentFailureRequest,
    PaymentFailureResponse,
    PaymentStateResponse,
    PaymentSuccessRequest,
    PlaceOrderRequest,
    ReconcilePaymentsRequest,
    ReconcilePaymentsResponse,
    RelayRequest,
    RelayResponse,
    StatusResponse,
    UpdateAddressRequest,
    UpdateCartQuantityRequest,
    UpdateCouponRequest,
    ValidateCouponRequest,
    ValidateCouponResponse,
)
from checkout.cart.cart import ShoppingCart
from checkout.cart.management import (
    AddToCart,
    ApplyCouponToCart,
    ClearCart,
    CreateCart,
    RemoveCouponFromCart,
    RemoveFromCart,
    UpdateCartQuantity,
)
from checkout.cart.summary import summarize
from checkout.config import is_production
from checkout.coupon.coupon import Coupon, normalize_code, rejection_message
from checkout.coupon.management import (
    ActivateCoupon,
    CreateCoupon,
    DeactivateCoupon,
    DeleteCoupon,
    UpdateCoupon,
)
from checkout.coupon.validation import CouponRejected, validate_coupon
from checkout.errors import GatewayError
from checkout.order.cancellation import CancelOrder, RefundOrder
from checkout.order.fulfillment import MarkDelivered, MarkProcessing, MarkShipped
from checkout.order.order import Order
from checkout.order.placement import PlaceOrder
from checkout.payment.gateway import get_gateway
from checkout.payment.gateway.fake_adapter import FakeGateway
from checkout.payment.initiation import InitiatePayment
from checkout.payment.reconciliation import ConfirmPayment, RecordPaymentFailure, record_checkout_dismissed
from checkout.payment.relay import relay_gateway_order
from checkout.payment.sweeper import ReconcileStalePayments
from checkout.payment.webhook import ProcessGatewayWebhook, parse_webhook

logger = structlog.get_logger(__name__)


def _cart_summary(cart: ShoppingCart) -> CartSummaryResponse:
    summary = summarize(cart)
    return CartSummaryResponse(
        cart_id=summary.cart_id,
        status=cart.status,
        lines=summary.lines,
        coupon_code=summary.coupon_code,
        coupon_error=summary.coupon_error,
        pricing={**summary.breakdown.as_dict(), "free_shipping": summary.breakdown.free_shipping},
    )


def _coupon_response(coupon: Coupon) -> CouponResponse:
    return CouponResponse(
        coupon_id=str(coupon.id),
        code=coupon.code,
        name=coupon.name,
        coupon_type=coupon.coupon_type,
        value=coupon.value,
        minimum_amount=coupon.minimum_amount,
        maximum_discount=coupon.maximum_discount,
        usage_limit=coupon.usage_limit,
        used_count=coupon.used_count or 0,
        user_limit=coupon.user_limit,
        starts_at=coupon.starts_at,
        expires_at=coupon.expires_at,
        is_active=coupon.is_active,
        status=coupon.status_label(),
    )


def _order_response(order: Order) -> OrderResponse:
    address = order.shipping_address
    return OrderResponse(
        order_id=str(order.id),
        order_number=order.order_number,
        customer_id=str(order.customer_id),
        status=order.status,
        payment_status=order.payment_status,
        payment_method=order.payment_method,
        subtotal=order.subtotal,
        shipping_amount=order.shipping_amount,
        tax_amount=order.tax_amount,
        discount_amount=order.discount_amount,
        total_amount=order.total_amount,
        currency=order.currency,
        coupon_code=order.coupon_code,
        gateway_order_id=order.gateway_order_id,
        gateway_payment_id=order.gateway_payment_id,
        failure_reason=order.failure_reason,
        cancellation_reason=order.cancellation_reason,
        shipping_address={
            "first_name": address.first_name,
            "last_name": address.last_name,
            "address_line_1": address.address_line_1,
            "address_line_2": address.address_line_2,
            "city": address.city,
            "state": address.state,
            "postal_code": address.postal_code,
            "phone": address.phone,
        },
        items=[
            {
                "item_id": str(item.id),
                "product_id": str(item.product_id),
                "product_name": item.product_name,
                "product_sku": item.product_sku,
                "product_image": item.product_image,
                "quantity": item.quantity,
                "unit_price": item.unit_price,
                "total_price": item.total_price,
            }
            for item in order.items
        ],
        created_at=order.created_at,
        confirmed_at=order.confirmed_at,
        shipped_at=order.shipped_at,
        delivered_at=order.delivered_at,
        cancelled_at=order.cancelled_at,
    )


def _payment_state(order_id) -> PaymentStateResponse:
    order = current_domain.repository_for(Order).get(order_id)
    return PaymentStateResponse(status=order.status, payment_status=order.payment_status)


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carts", tags=["carts"])


@cart_router.post("", status_code=201, response_model=CartIdResponse)
async def create_cart(body: CreateCartRequest) -> CartIdResponse:
    command = CreateCart(
        customer_id=body.customer_id,
        session_id=body.session_id,
    )
    result = current_domain.process(command, asynchronous=False)
    return CartIdResponse(cart_id=result)


@cart_router.get("/{cart_id}", response_model=CartSummaryResponse)
async def get_cart(cart_id: str) -> CartSummaryResponse:
    """Cart lines with shipping, tax, coupon discount and total."""
    cart = current_domain.repository_for(ShoppingCart).get(cart_id)
    return _cart_summary(cart)


@cart_router.post("/{cart_id}/items", status_code=201, response_model=LineIdResponse)
async def add_cart_item(cart_id: str, body: AddToCartRequest) -> LineIdResponse:
    command = AddToCart(
        cart_id=cart_id,
        product_id=body.product_id,
        name=body.name,
        sku=body.sku,
        image=body.image,
        unit_price=body.unit_price,
        quantity=body.quantity,
        stock=body.stock,
    )
    line_id = current_domain.process(command, asynchronous=False)
    return LineIdResponse(line_id=line_id)


@cart_router.put("/{cart_id}/items/{line_id}", response_model=StatusResponse)
async def update_cart_item_quantity(cart_id: str, line_id: str, body: UpdateCartQuantityRequest) -> StatusResponse:
    command = UpdateCartQuantity(
        cart_id=cart_id,
        line_id=line_id,
        new_quantity=body.new_quantity,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@cart_router.delete("/{cart_id}/items/{line_id}", response_model=StatusResponse)
async def remove_cart_item(cart_id: str, line_id: str) -> StatusResponse:
    command = RemoveFromCart(cart_id=cart_id, line_id=line_id)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@cart_router.delete("/{cart_id}/items", response_model=StatusResponse)
async def clear_cart(cart_id: str) -> StatusResponse:
    command = ClearCart(cart_id=cart_id)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@cart_router.post("/{cart_id}/coupon", response_model=CouponAppliedResponse)
async def apply_cart_coupon(cart_id: str, body: ApplyCouponToCartRequest) -> CouponAppliedResponse:
    command = ApplyCouponToCart(cart_id=cart_id, coupon_code=body.coupon_code)
    discount = current_domain.process(command, asynchronous=False)
    return CouponAppliedResponse(coupon_code=normalize_code(body.coupon_code), discount_amount=discount)


@cart_router.delete("/{cart_id}/coupon", response_model=StatusResponse)
async def remove_cart_coupon(cart_id: str) -> StatusResponse:
    command = RemoveCouponFromCart(cart_id=cart_id)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Coupon Router
# ---------------------------------------------------------------------------
coupon_router = APIRouter(prefix="/coupons", tags=["coupons"])


@coupon_router.post("", status_code=201, response_model=CouponIdResponse)
async def create_coupon(body: CreateCouponRequest) -> CouponIdResponse:
    command = CreateCoupon(**body.model_dump())
    result = current_domain.process(command, asynchronous=False)
    return CouponIdResponse(coupon_id=result)


@coupon_router.get("", response_model=list[CouponResponse])
async def list_coupons() -> list[CouponResponse]:
    coupons = current_domain.repository_for(Coupon)._dao.query.all().items
    return [_coupon_response(coupon) for coupon in coupons]


@coupon_router.post("/validate", response_model=ValidateCouponResponse)
async def validate_coupon_code(body: ValidateCouponRequest) -> ValidateCouponResponse:
    """Check a code against a subtotal without applying it anywhere."""
    try:
        quote = validate_coupon(body.code, body.subtotal, customer_id=body.customer_id)
    except CouponRejected as exc:
        return ValidateCouponResponse(
            valid=False,
            normalized_code=exc.code or normalize_code(body.code),
            error=rejection_message(exc.reason),
        )
    return ValidateCouponResponse(
        valid=True,
        normalized_code=quote.normalized_code,
        discount_amount=quote.discount_amount,
    )


@coupon_router.get("/{coupon_id}", response_model=CouponResponse)
async def get_coupon(coupon_id: str) -> CouponResponse:
    coupon = current_domain.repository_for(Coupon).get(coupon_id)
    return _coupon_response(coupon)


@coupon_router.put("/{coupon_id}", response_model=StatusResponse)
async def update_coupon(coupon_id: str, body: UpdateCouponRequest) -> StatusResponse:
    command = UpdateCoupon(coupon_id=coupon_id, **body.model_dump(exclude_none=True))
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@coupon_router.put("/{coupon_id}/activate", response_model=StatusResponse)
async def activate_coupon(coupon_id: str) -> StatusResponse:
    current_domain.process(ActivateCoupon(coupon_id=coupon_id), asynchronous=False)
    return StatusResponse(status="active")


@coupon_router.put("/{coupon_id}/deactivate", response_model=StatusResponse)
async def deactivate_coupon(coupon_id: str) -> StatusResponse:
    current_domain.process(DeactivateCoupon(coupon_id=coupon_id), asynchronous=False)
    return StatusResponse(status="inactive")


@coupon_router.delete("/{coupon_id}", response_model=StatusResponse)
async def delete_coupon(coupon_id: str) -> StatusResponse:
    current_domain.process(DeleteCoupon(coupon_id=coupon_id), asynchronous=False)
    return StatusResponse(status="deleted")


# ---------------------------------------------------------------------------
# Address Router
# ---------------------------------------------------------------------------
address_router = APIRouter(prefix="/customers/{customer_id}/addresses", tags=["addresses"])


@address_router.get("", response_model=list[AddressResponse])
async def list_addresses(customer_id: str) -> list[AddressResponse]:
    book = address_book_for(customer_id)
    if book is None:
        return []
    return [
        AddressResponse(address_id=str(address.id), is_default=address.is_default, **address.snapshot())
        for address in book.addresses
    ]


@address_router.post("", status_code=201, response_model=AddressIdResponse)
async def add_address(customer_id: str, body: AddAddressRequest) -> AddressIdResponse:
    command = AddAddress(customer_id=customer_id, **body.model_dump())
    address_id = current_domain.process(command, asynchronous=False)
    return AddressIdResponse(address_id=address_id)


@address_router.put("/{address_id}", response_model=StatusResponse)
async def update_address(customer_id: str, address_id: str, body: UpdateAddressRequest) -> StatusResponse:
    command = UpdateAddress(
        customer_id=customer_id,
        address_id=address_id,
        **body.model_dump(exclude_none=True),
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@address_router.delete("/{address_id}", response_model=StatusResponse)
async def remove_address(customer_id: str, address_id: str) -> StatusResponse:
    command = RemoveAddress(customer_id=customer_id, address_id=address_id)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@address_router.put("/{address_id}/default", response_model=StatusResponse)
async def set_default_address(customer_id: str, address_id: str) -> StatusResponse:
    command = SetDefaultAddress(customer_id=customer_id, address_id=address_id)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderIdResponse)
async def place_order(body: PlaceOrderRequest) -> OrderIdResponse:
    command = PlaceOrder(
        customer_id=body.customer_id,
        cart_id=body.cart_id,
        payment_method=body.payment_method,
        idempotency_key=body.idempotency_key,
        address_id=body.address_id,
        shipping_address=json.dumps(body.shipping_address.model_dump()) if body.shipping_address else None,
    )
    order_id = current_domain.process(command, asynchronous=False)
    order = current_domain.repository_for(Order).get(order_id)
    return OrderIdResponse(
        order_id=order_id,
        order_number=order.order_number,
        status=order.status,
        payment_status=order.payment_status,
    )


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str) -> OrderResponse:
    order = current_domain.repository_for(Order).get(order_id)
    return _order_response(order)


@order_router.put("/{order_id}/cancel", response_model=StatusResponse)
async def cancel_order(order_id: str, body: CancelOrderRequest) -> StatusResponse:
    command = CancelOrder(
        order_id=order_id,
        reason=body.reason,
        cancelled_by=body.cancelled_by,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="cancelled")


@order_router.put("/{order_id}/processing", response_model=StatusResponse)
async def mark_processing(order_id: str) -> StatusResponse:
    current_domain.process(MarkProcessing(order_id=order_id), asynchronous=False)
    return StatusResponse(status="processing")


@order_router.put("/{order_id}/ship", response_model=StatusResponse)
async def mark_shipped(order_id: str) -> StatusResponse:
    current_domain.process(MarkShipped(order_id=order_id), asynchronous=False)
    return StatusResponse(status="shipped")


@order_router.put("/{order_id}/deliver", response_model=StatusResponse)
async def mark_delivered(order_id: str) -> StatusResponse:
    current_domain.process(MarkDelivered(order_id=order_id), asynchronous=False)
    return StatusResponse(status="delivered")


@order_router.put("/{order_id}/refund", response_model=StatusResponse)
async def refund_order(order_id: str) -> StatusResponse:
    current_domain.process(RefundOrder(order_id=order_id), asynchronous=False)
    return StatusResponse(status="refunded")


@order_router.post("/{order_id}/payment", response_model=CheckoutOptionsResponse)
def initiate_payment(order_id: str, body: InitiatePaymentRequest) -> CheckoutOptionsResponse:
    """Create (or reuse) the gateway order and return hosted-checkout options."""
    command = InitiatePayment(
        order_id=order_id,
        customer_email=body.customer_email,
        customer_name=body.customer_name,
        customer_phone=body.customer_phone,
    )
    options = current_domain.process(command, asynchronous=False)
    return CheckoutOptionsResponse(**options)


@order_router.post("/{order_id}/payment/success", response_model=PaymentStateResponse)
async def payment_success(order_id: str, body: PaymentSuccessRequest) -> PaymentStateResponse:
    command = ConfirmPayment(
        order_id=order_id,
        gateway_order_id=body.gateway_order_id,
        gateway_payment_id=body.gateway_payment_id,
        signature=body.signature,
    )
    current_domain.process(command, asynchronous=False)
    return _payment_state(order_id)


@order_router.post("/{order_id}/payment/failure", response_model=PaymentFailureResponse)
async def payment_failure(order_id: str, body: PaymentFailureRequest) -> PaymentFailureResponse:
    command = RecordPaymentFailure(
        order_id=order_id,
        error_description=body.error_description,
        gateway_order_id=body.metadata.get("order_id"),
        gateway_payment_id=body.metadata.get("payment_id"),
    )
    reason = current_domain.process(command, asynchronous=False)
    state = _payment_state(order_id)
    return PaymentFailureResponse(status=state.status, payment_status=state.payment_status, error=reason)


@order_router.post("/{order_id}/payment/cancel", response_model=PaymentStateResponse)
async def payment_dismissed(order_id: str) -> PaymentStateResponse:
    order = record_checkout_dismissed(order_id)
    return PaymentStateResponse(status=order.status, payment_status=order.payment_status)


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.post("/relay", response_model=RelayResponse)
def relay(body: RelayRequest):
    """Create a gateway order. Errors come back as ``{error}``."""
    try:
        result = relay_gateway_order(**body.model_dump())
    except ValidationError as exc:
        return JSONResponse(status_code=400, content={"error": exc.messages})
    except GatewayError as exc:
        logger.error("Relay failed", receipt_id=body.receipt_id, detail=exc.detail)
        return JSONResponse(status_code=502, content={"error": exc.message})
    return RelayResponse(**result)


@payment_router.post("/webhook", response_model=StatusResponse)
async def process_webhook(
    request: Request,
    x_razorpay_signature: str = Header(default=""),
) -> StatusResponse:
    """Process a signed gateway notification."""
    payload = await request.body()
    if not get_gateway().verify_webhook_signature(payload, x_razorpay_signature):
        logger.warning("Webhook signature mismatch")
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise HTTPException(status_code=400, detail="Malformed webhook body") from exc

    command = ProcessGatewayWebhook(**parse_webhook(data))
    result = current_domain.process(command, asynchronous=False)
    return StatusResponse(status=result)


@payment_router.post("/gateway/configure", response_model=GatewayConfigResponse)
async def configure_gateway(body: ConfigureGatewayRequest) -> GatewayConfigResponse:
    """Configure the FakeGateway behavior (non-production only).

    This endpoint is only available when PROTEAN_ENV is not 'production'.
    It allows toggling success/failure behavior for manual API testing.
    """
    if is_production():
        raise HTTPException(status_code=403, detail="Gateway configuration not available in production")

    gateway = get_gateway()
    if not isinstance(gateway, FakeGateway):
        raise HTTPException(status_code=400, detail="Gateway configuration only available for FakeGateway")

    gateway.configure(
        should_succeed=body.should_succeed,
        failure_reason=body.failure_reason,
    )
    return GatewayConfigResponse(
        gateway=type(gateway).__name__,
        should_succeed=gateway.should_succeed,
        failure_reason=gateway.failure_reason,
    )


# ---------------------------------------------------------------------------
# Maintenance Router
# ---------------------------------------------------------------------------
maintenance_router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@maintenance_router.post("/payments/reconcile", response_model=ReconcilePaymentsResponse)
def reconcile_payments(body: ReconcilePaymentsRequest) -> ReconcilePaymentsResponse:
    """Reconcile orders stuck awaiting payment (for cron / scheduler use)."""
    command = ReconcileStalePayments(older_than_minutes=body.older_than_minutes)
    summary = current_domain.process(command, asynchronous=False)
    return ReconcilePaymentsResponse(**summary)
