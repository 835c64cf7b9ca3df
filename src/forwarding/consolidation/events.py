"""Consolidation domain events — immutable facts about outbound shipment groupings.

All events are past tense, versioned, and carry enough data for downstream
consumers (warehouse dashboards, invoicing) without reloading the aggregate.
"""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from forwarding.domain import forwarding


@forwarding.event(part_of="Consolidation")
class ConsolidationRequested:
    """A customer grouped packages into a new consolidation."""

    __version__ = 1

    consolidation_id = Identifier(required=True)
    user_id = Identifier(required=True)
    package_ids = Text(required=True)  # JSON list of package ids
    total_weight = Float(required=True)
    total_boxes = Integer(required=True)
    requested_at = DateTime(required=True)


@forwarding.event(part_of="Consolidation")
class ConsolidationProcessingStarted:
    """The warehouse started preparing the consolidation."""

    __version__ = 1

    consolidation_id = Identifier(required=True)
    started_at = DateTime(required=True)


@forwarding.event(part_of="Consolidation")
class ConsolidationDispatched:
    """The consolidation left the warehouse."""

    __version__ = 1

    consolidation_id = Identifier(required=True)
    master_tracking = String()
    dispatched_at = DateTime(required=True)


@forwarding.event(part_of="Consolidation")
class FreightPaymentRequested:
    """A gateway order was opened for the consolidation's freight."""

    __version__ = 1

    consolidation_id = Identifier(required=True)
    order_id = String(required=True)
    amount = Float(required=True)
    currency = String(required=True)
    requested_at = DateTime(required=True)


@forwarding.event(part_of="Consolidation")
class FreightPaymentCaptured:
    """Freight was paid; the consolidation may now be released."""

    __version__ = 1

    consolidation_id = Identifier(required=True)
    order_id = String(required=True)
    transaction_id = String(required=True)
    captured_at = DateTime(required=True)


@forwarding.event(part_of="Consolidation")
class ConsolidationReleased:
    """The consolidation was delivered to the customer."""

    __version__ = 1

    consolidation_id = Identifier(required=True)
    delivered_at = DateTime(required=True)


@forwarding.event(part_of="Consolidation")
class ConsolidationCancelled:
    """The consolidation was cancelled before shipment; its packages are free again."""

    __version__ = 1

    consolidation_id = Identifier(required=True)
    reason = String(required=True)
    cancelled_at = DateTime(required=True)
