"""Protection domain events."""

from protean.fields import DateTime, Float, Identifier, String

from forwarding.domain import forwarding


@forwarding.event(part_of="WarrantyPolicy")
class WarrantyAttached:
    """A GEX policy was issued for a package."""

    __version__ = 1

    policy_id = Identifier(required=True)
    gex_folio = String(required=True)
    package_id = Identifier(required=True)
    user_id = Identifier()
    declared_value_usd = Float(required=True)
    exchange_rate = Float(required=True)
    total_cost_mxn = Float(required=True)
    payment_option = String(required=True)
    charge_status = String(required=True)
    attached_at = DateTime(required=True)
