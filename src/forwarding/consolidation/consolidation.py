"""Consolidation aggregate (CQRS) — one outbound shipment grouping several packages.

State Machine:
    PENDING → PROCESSING → SHIPPED → DELIVERED
    {PENDING, PROCESSING} → CANCELLED

Freight payment runs alongside the status:
    UNPAID → AWAITING_CAPTURE → PAID
Payment never advances the status by itself, but release (DELIVERED) requires
PAID. Capturing an already-paid consolidation is a no-op.
"""

import json
import os
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, ValueObject

from forwarding.consolidation.events import (
    ConsolidationCancelled,
    ConsolidationDispatched,
    ConsolidationProcessingStarted,
    ConsolidationReleased,
    ConsolidationRequested,
    FreightPaymentCaptured,
    FreightPaymentRequested,
)
from forwarding.domain import forwarding
from forwarding.errors import EmptySelection, InvalidInput

DEFAULT_COST_PER_KG = 15.00
FREIGHT_CURRENCY = "USD"


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class ConsolidationStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class FreightPaymentStatus(Enum):
    UNPAID = "unpaid"
    AWAITING_CAPTURE = "awaiting_capture"
    PAID = "paid"


_VALID_TRANSITIONS = {
    ConsolidationStatus.PENDING: {ConsolidationStatus.PROCESSING, ConsolidationStatus.CANCELLED},
    ConsolidationStatus.PROCESSING: {ConsolidationStatus.SHIPPED, ConsolidationStatus.CANCELLED},
    ConsolidationStatus.SHIPPED: {ConsolidationStatus.DELIVERED},
    ConsolidationStatus.DELIVERED: set(),  # terminal
    ConsolidationStatus.CANCELLED: set(),  # terminal
}


def freight_cost(weight_kg: float | None, cost_per_kg: float | None = None) -> float:
    """Freight charge in USD for ``weight_kg``, rounded to cents."""
    if cost_per_kg is None:
        cost_per_kg = float(os.environ.get("COST_PER_KG", DEFAULT_COST_PER_KG))
    amount = Decimal(str(weight_kg or 0.0)) * Decimal(str(cost_per_kg))
    return float(amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@forwarding.value_object(part_of="Consolidation")
class FreightPayment:
    """Gateway order and capture details for the freight charge."""

    order_id = String(max_length=255)
    approval_url = String(max_length=1000)
    amount = Float()
    currency = String(max_length=3, default=FREIGHT_CURRENCY)
    transaction_id = String(max_length=255)
    paid_at = DateTime()


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@forwarding.entity(part_of="Consolidation")
class ConsolidatedPackage:
    """A member package, with the figures it contributed to the totals."""

    package_id = Identifier(required=True)
    tracking_internal = String(max_length=255)
    weight = Float(default=0.0)
    box_count = Integer(default=1, min_value=1)


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@forwarding.aggregate
class Consolidation:
    user_id = Identifier(required=True)
    members = HasMany(ConsolidatedPackage)
    total_weight = Float(default=0.0)
    total_boxes = Integer(default=0)
    status = String(
        choices=ConsolidationStatus,
        default=ConsolidationStatus.PENDING.value,
    )
    payment_status = String(
        choices=FreightPaymentStatus,
        default=FreightPaymentStatus.UNPAID.value,
    )
    payment = ValueObject(FreightPayment)
    master_tracking = String(max_length=255)
    cancellation_reason = String(max_length=500)
    created_at = DateTime()
    dispatched_at = DateTime()
    delivered_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def request(cls, user_id: str, packages: list):
        """Group ``packages`` into a new pending consolidation.

        Claiming the packages themselves is the caller's job, inside the same
        unit of work.
        """
        if not packages:
            raise EmptySelection({"package_ids": ["Select at least one package to consolidate"]})

        now = datetime.now(UTC)
        consolidation = cls(
            user_id=user_id,
            status=ConsolidationStatus.PENDING.value,
            payment_status=FreightPaymentStatus.UNPAID.value,
            created_at=now,
            updated_at=now,
        )
        for package in packages:
            consolidation.add_members(
                ConsolidatedPackage(
                    package_id=str(package.id),
                    tracking_internal=package.tracking_internal,
                    weight=package.weight or 0.0,
                    box_count=max(1, package.total_boxes or 1),
                )
            )
        consolidation.total_weight = sum(m.weight for m in consolidation.members)
        consolidation.total_boxes = sum(m.box_count for m in consolidation.members)

        consolidation.raise_(
            ConsolidationRequested(
                consolidation_id=str(consolidation.id),
                user_id=user_id,
                package_ids=json.dumps(consolidation.package_ids),
                total_weight=consolidation.total_weight,
                total_boxes=consolidation.total_boxes,
                requested_at=now,
            )
        )
        return consolidation

    @property
    def package_ids(self) -> list[str]:
        return [str(m.package_id) for m in (self.members or [])]

    @property
    def is_paid(self) -> bool:
        return self.payment_status == FreightPaymentStatus.PAID.value

    # -------------------------------------------------------------------
    # State transition helper
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status: ConsolidationStatus) -> None:
        current = ConsolidationStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    # -------------------------------------------------------------------
    # Warehouse operations
    # -------------------------------------------------------------------
    def start_processing(self) -> None:
        self._assert_can_transition(ConsolidationStatus.PROCESSING)
        now = datetime.now(UTC)
        self.status = ConsolidationStatus.PROCESSING.value
        self.updated_at = now
        self.raise_(
            ConsolidationProcessingStarted(
                consolidation_id=str(self.id),
                started_at=now,
            )
        )

    def dispatch(self, master_tracking: str | None = None) -> None:
        """Record that the consolidation left the warehouse."""
        self._assert_can_transition(ConsolidationStatus.SHIPPED)
        now = datetime.now(UTC)
        self.status = ConsolidationStatus.SHIPPED.value
        self.master_tracking = master_tracking
        self.dispatched_at = now
        self.updated_at = now
        self.raise_(
            ConsolidationDispatched(
                consolidation_id=str(self.id),
                master_tracking=master_tracking or "",
                dispatched_at=now,
            )
        )

    def release(self) -> None:
        """Deliver the consolidation. Freight must already be paid."""
        self._assert_can_transition(ConsolidationStatus.DELIVERED)
        if not self.is_paid:
            raise ValidationError({"payment_status": ["Freight must be paid before the consolidation is released"]})

        now = datetime.now(UTC)
        self.status = ConsolidationStatus.DELIVERED.value
        self.delivered_at = now
        self.updated_at = now
        self.raise_(
            ConsolidationReleased(
                consolidation_id=str(self.id),
                delivered_at=now,
            )
        )

    def cancel(self, reason: str) -> None:
        self._assert_can_transition(ConsolidationStatus.CANCELLED)
        now = datetime.now(UTC)
        self.status = ConsolidationStatus.CANCELLED.value
        self.cancellation_reason = reason
        self.updated_at = now
        self.raise_(
            ConsolidationCancelled(
                consolidation_id=str(self.id),
                reason=reason,
                cancelled_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Freight payment
    # -------------------------------------------------------------------
    def ensure_payable(self) -> None:
        if ConsolidationStatus(self.status) != ConsolidationStatus.SHIPPED:
            raise ValidationError({"status": ["Freight can only be paid once the consolidation has shipped"]})

    def ensure_capturable(self, order_id: str) -> None:
        """Check ``order_id`` is the open freight order, before the gateway is asked to charge it."""
        self.ensure_payable()
        if self.payment_status != FreightPaymentStatus.AWAITING_CAPTURE.value or not self.payment:
            raise InvalidInput({"order_id": ["No freight payment order is open for this consolidation"]})
        if self.payment.order_id != order_id:
            raise InvalidInput({"order_id": [f"Order {order_id} does not belong to this consolidation"]})

    def open_payment_order(self, order_id: str, approval_url: str | None, amount: float) -> None:
        """Record the gateway order the customer will approve."""
        self.ensure_payable()
        if self.is_paid:
            raise ValidationError({"payment_status": ["Freight for this consolidation is already paid"]})

        now = datetime.now(UTC)
        self.payment_status = FreightPaymentStatus.AWAITING_CAPTURE.value
        self.payment = FreightPayment(
            order_id=order_id,
            approval_url=approval_url,
            amount=amount,
            currency=FREIGHT_CURRENCY,
        )
        self.updated_at = now
        self.raise_(
            FreightPaymentRequested(
                consolidation_id=str(self.id),
                order_id=order_id,
                amount=amount,
                currency=FREIGHT_CURRENCY,
                requested_at=now,
            )
        )

    def record_payment_capture(self, order_id: str, transaction_id: str) -> bool:
        """Record a successful capture. Returns False when freight was already paid."""
        if self.is_paid:
            return False

        self.ensure_capturable(order_id)
        now = datetime.now(UTC)
        self.payment_status = FreightPaymentStatus.PAID.value
        self.payment = FreightPayment(
            order_id=order_id,
            approval_url=self.payment.approval_url,
            amount=self.payment.amount,
            currency=self.payment.currency,
            transaction_id=transaction_id,
            paid_at=now,
        )
        self.updated_at = now
        self.raise_(
            FreightPaymentCaptured(
                consolidation_id=str(self.id),
                order_id=order_id,
                transaction_id=transaction_id,
                captured_at=now,
            )
        )
        return True
