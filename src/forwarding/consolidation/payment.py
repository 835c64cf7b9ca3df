"""Freight payment — commands and handler.

Checkout runs in two steps against the freight gateway: an order is opened for
the consolidation's freight charge, the customer approves it, then the order
is captured. Capturing is idempotent: once a consolidation is paid, further
captures return the recorded transaction without contacting the gateway.
"""

import threading

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from forwarding.consolidation.consolidation import (
    FREIGHT_CURRENCY,
    Consolidation,
    FreightPaymentStatus,
    freight_cost,
)
from forwarding.domain import forwarding
from forwarding.errors import PaymentFailed
from forwarding.gateway import get_gateway

logger = structlog.get_logger(__name__)

_CAPTURE_LOCK = threading.Lock()


@forwarding.command(part_of="Consolidation")
class RequestFreightPayment:
    """Open a gateway order for a shipped consolidation's freight."""

    consolidation_id = Identifier(required=True)


@forwarding.command(part_of="Consolidation")
class CaptureFreightPayment:
    """Capture the approved freight order."""

    consolidation_id = Identifier(required=True)
    order_id = String(required=True, max_length=255)


@forwarding.command_handler(part_of=Consolidation)
class FreightPaymentHandler:
    @handle(RequestFreightPayment)
    def request_payment(self, command):
        repo = current_domain.repository_for(Consolidation)
        consolidation = repo.get(command.consolidation_id)

        # An order already awaiting approval is handed out again
        if consolidation.payment_status == FreightPaymentStatus.AWAITING_CAPTURE.value and consolidation.payment:
            return {
                "order_id": consolidation.payment.order_id,
                "approval_url": consolidation.payment.approval_url,
                "amount": consolidation.payment.amount,
                "currency": consolidation.payment.currency,
            }

        amount = freight_cost(consolidation.total_weight)
        # Validates status before any gateway call
        consolidation.ensure_payable()
        order = get_gateway().create_order(
            amount=amount,
            currency=FREIGHT_CURRENCY,
            reference=str(consolidation.id),
        )
        consolidation.open_payment_order(
            order_id=order.order_id,
            approval_url=order.approval_url,
            amount=amount,
        )
        repo.add(consolidation)

        logger.info(
            "freight_payment_requested",
            consolidation_id=str(consolidation.id),
            order_id=order.order_id,
            amount=amount,
        )
        return {
            "order_id": order.order_id,
            "approval_url": order.approval_url,
            "amount": amount,
            "currency": FREIGHT_CURRENCY,
        }

    @handle(CaptureFreightPayment)
    def capture_payment(self, command):
        repo = current_domain.repository_for(Consolidation)
        consolidation = repo.get(command.consolidation_id)

        if consolidation.is_paid:
            logger.info(
                "freight_payment_already_captured",
                consolidation_id=str(consolidation.id),
                order_id=command.order_id,
                transaction_id=consolidation.payment.transaction_id,
            )
            return consolidation.payment.transaction_id

        # Order ownership is checked before the gateway charges anything
        consolidation.ensure_capturable(command.order_id)
        result = get_gateway().capture_order(command.order_id)
        if not result.success:
            logger.warning(
                "freight_payment_failed",
                consolidation_id=str(consolidation.id),
                order_id=command.order_id,
                reason=result.failure_reason,
            )
            raise PaymentFailed(
                result.failure_reason or "Payment was not captured",
                consolidation_id=str(consolidation.id),
                order_id=command.order_id,
            )

        consolidation.record_payment_capture(command.order_id, result.transaction_id)
        repo.add(consolidation)
        logger.info(
            "freight_payment_captured",
            consolidation_id=str(consolidation.id),
            order_id=command.order_id,
            transaction_id=result.transaction_id,
        )
        return result.transaction_id


def request_freight_payment(consolidation_id: str) -> dict:
    """Open (or re-issue) the freight order. Freight is always charged in USD."""
    return current_domain.process(
        RequestFreightPayment(consolidation_id=consolidation_id),
        asynchronous=False,
    )


def capture_freight_payment(consolidation_id: str, order_id: str) -> str:
    """Capture freight for a consolidation; returns the transaction id.

    Concurrent captures are serialized, so a consolidation is charged at most
    once however many times the customer's confirmation is replayed.
    """
    with _CAPTURE_LOCK:
        return current_domain.process(
            CaptureFreightPayment(consolidation_id=consolidation_id, order_id=order_id),
            asynchronous=False,
        )
