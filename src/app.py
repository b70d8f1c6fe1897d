"""Storefront Checkout FastAPI application.

Processes commands synchronously via HTTP inside the checkout domain context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from checkout.domain import checkout
from checkout.errors import GatewayError, PersistenceError
from checkout.utils.logging import add_context, clear_context

checkout.init()

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Storefront Checkout API",
    description="Carts, coupons, order placement and payment reconciliation",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the checkout domain context and bind a request id for logging."""
    request_id = request.headers.get("x-request-id") or uuid4().hex
    add_context(request_id=request_id, path=request.url.path)
    try:
        with checkout.domain_context():
            response = await call_next(request)
    finally:
        clear_context()
    response.headers["x-request-id"] = request_id
    return response


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------
register_exception_handlers(app)


@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError):
    logger.error("Payment gateway error", path=request.url.path, detail=exc.detail)
    return JSONResponse(status_code=502, content={"error": exc.message})


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError):
    logger.error("Persistence error", path=request.url.path)
    return JSONResponse(status_code=500, content={"error": exc.message})


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from checkout.api import (  # noqa: E402
    address_router,
    cart_router,
    coupon_router,
    maintenance_router,
    order_router,
    payment_router,
)

app.include_router(cart_router)
app.include_router(coupon_router)
app.include_router(address_router)
app.include_router(order_router)
app.include_router(payment_router)
app.include_router(maintenance_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domains": {
                "checkout": {"name": checkout.name},
            },
        }
    )
