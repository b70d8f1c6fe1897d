"""Stale payment sweep — command and handler for orders stuck awaiting payment.

Designed to be triggered periodically by an external scheduler (cron, K8s
CronJob) via the maintenance API endpoint or ``manage.py reconcile-payments``.
Closes the gap left when the customer's browser never delivers the success
or failure callback.

For each pending online order whose gateway session is older than the
threshold, the gateway is asked for the session's payment attempts:

- any captured payment   → order reconciled to paid
- only failed attempts   → order marked failed (once the session expired)
- no attempts, expired   → session closed so the customer can retry
"""

from datetime import UTC, datetime, timedelta

import structlog
from protean import handle
from protean.exceptions import InvalidOperationError, ValidationError
from protean.fields import DateTime, Integer
from protean.utils.globals import current_domain

from checkout.config import get_payment_settings
from checkout.domain import checkout
from checkout.errors import GatewayError
from checkout.order.order import Order, OrderStatus, PaymentMethod
from checkout.payment.gateway import get_gateway
from checkout.payment.reconciliation import (
    ApplyCapturedPayment,
    ClosePaymentSession,
    RecordPaymentFailure,
)

logger = structlog.get_logger(__name__)


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=UTC)


@checkout.command(part_of="Order")
class ReconcileStalePayments:
    """Reconcile online orders whose payment sessions are older than the threshold."""

    older_than_minutes = Integer(default=15)
    as_of = DateTime()  # Optional: defaults to now


@checkout.command_handler(part_of=Order)
class ReconcileStalePaymentsHandler:
    @handle(ReconcileStalePayments)
    def reconcile_stale_payments(self, command):
        as_of = _aware(command.as_of or datetime.now(UTC))
        threshold_minutes = command.older_than_minutes if command.older_than_minutes is not None else 15
        session_length = timedelta(minutes=get_payment_settings().session_timeout_minutes)
        cutoff = as_of - timedelta(minutes=threshold_minutes)

        logger.info(
            "Checking for stale payments",
            cutoff=cutoff.isoformat(),
            threshold_minutes=threshold_minutes,
        )

        pending = (
            current_domain.repository_for(Order)
            ._dao.query.filter(status=OrderStatus.PENDING.value, payment_method=PaymentMethod.RAZORPAY.value)
            .all()
            .items
        )

        stale = []
        for order in pending:
            if not order.gateway_order_id or order.payment_session_expires_at is None:
                continue
            opened_at = _aware(order.payment_session_expires_at) - session_length
            if opened_at <= cutoff:
                stale.append(order)

        summary = {"checked": len(stale), "paid": 0, "failed": 0, "closed": 0, "errors": 0}
        if not stale:
            logger.info("No stale payments found")
            return summary

        gateway = get_gateway()
        for order in stale:
            expired = _aware(order.payment_session_expires_at) <= as_of
            try:
                attempts = gateway.fetch_order_payments(order.gateway_order_id)
            except GatewayError as exc:
                summary["errors"] += 1
                logger.warning(
                    "Could not fetch payments for stale order",
                    order_id=str(order.id),
                    gateway_order_id=order.gateway_order_id,
                    error=exc.detail,
                )
                continue

            captured = next((p for p in attempts if p.captured), None)
            if captured is not None:
                outcome, next_command = "paid", ApplyCapturedPayment(
                    order_id=str(order.id),
                    gateway_order_id=order.gateway_order_id,
                    gateway_payment_id=captured.id,
                )
            elif attempts and all(p.failed for p in attempts) and expired:
                outcome, next_command = "failed", RecordPaymentFailure(
                    order_id=str(order.id),
                    error_description=attempts[-1].error_description,
                    gateway_order_id=order.gateway_order_id,
                    gateway_payment_id=attempts[-1].id,
                )
            elif not attempts and expired:
                outcome, next_command = "closed", ClosePaymentSession(order_id=str(order.id))
            else:
                continue

            try:
                current_domain.process(next_command, asynchronous=False)
                summary[outcome] += 1
                logger.info("Reconciled stale payment", order_id=str(order.id), outcome=outcome)
            except (ValidationError, InvalidOperationError) as exc:
                summary["errors"] += 1
                logger.warning(
                    "Failed to reconcile stale payment",
                    order_id=str(order.id),
                    error=str(exc),
                )

        logger.info("Stale payment sweep complete", **summary)
        return summary
