"""WarrantyPolicy aggregate — a GEX delivery-guarantee policy on one package.

The policy freezes the terms it was sold with: declared value, exchange rate
and premium breakdown. Later edits to the package do not touch it.

Both payment options issue an ``active`` policy; the option only decides how
the premium is collected:
    pay_now            → charge_status = pending_payment
    pay_with_shipment  → charge_status = deferred_to_freight
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Float, Identifier, String, Text

from forwarding.domain import forwarding
from forwarding.protection.events import WarrantyAttached
from forwarding.protection.pricing import to_cents


class PaymentOption(Enum):
    PAY_NOW = "pay_now"
    PAY_WITH_SHIPMENT = "pay_with_shipment"


class ChargeStatus(Enum):
    PENDING_PAYMENT = "pending_payment"
    DEFERRED_TO_FREIGHT = "deferred_to_freight"


class PolicyStatus(Enum):
    ACTIVE = "active"


_CHARGE_STATUS = {
    PaymentOption.PAY_NOW: ChargeStatus.PENDING_PAYMENT,
    PaymentOption.PAY_WITH_SHIPMENT: ChargeStatus.DEFERRED_TO_FREIGHT,
}


def format_folio(year: int, sequence: int) -> str:
    return f"GEX-{year}-{sequence:05d}"


@forwarding.aggregate
class WarrantyPolicy:
    gex_folio = String(required=True, max_length=50)
    package_id = Identifier(required=True)
    user_id = Identifier()
    description = String(required=True, max_length=500)
    declared_value_usd = Float(required=True)
    exchange_rate = Float(required=True)
    insured_value_mxn = Float(required=True)
    variable_fee_mxn = Float(required=True)
    fixed_fee_mxn = Float(required=True)
    total_cost_mxn = Float(required=True)
    accepted_at = DateTime(required=True)
    signature = Text(required=True)
    payment_option = String(choices=PaymentOption, required=True)
    charge_status = String(choices=ChargeStatus, required=True)
    status = String(choices=PolicyStatus, default=PolicyStatus.ACTIVE.value)
    created_at = DateTime()

    @classmethod
    def issue(
        cls,
        gex_folio: str,
        package_id: str,
        user_id: str | None,
        description: str,
        quote,
        accepted_at: datetime,
        signature: str,
        payment_option: PaymentOption,
    ):
        """Issue an active policy on the terms of ``quote`` (a GexQuote)."""
        now = datetime.now(UTC)
        charge_status = _CHARGE_STATUS[payment_option]
        policy = cls(
            gex_folio=gex_folio,
            package_id=package_id,
            user_id=user_id,
            description=description,
            declared_value_usd=quote.declared_value_usd,
            exchange_rate=quote.exchange_rate,
            insured_value_mxn=to_cents(quote.insured_value_mxn),
            variable_fee_mxn=to_cents(quote.variable_fee_mxn),
            fixed_fee_mxn=to_cents(quote.fixed_fee_mxn),
            total_cost_mxn=to_cents(quote.total_cost_mxn),
            accepted_at=accepted_at,
            signature=signature,
            payment_option=payment_option.value,
            charge_status=charge_status.value,
            status=PolicyStatus.ACTIVE.value,
            created_at=now,
        )
        policy.raise_(
            WarrantyAttached(
                policy_id=str(policy.id),
                gex_folio=gex_folio,
                package_id=package_id,
                user_id=user_id,
                declared_value_usd=policy.declared_value_usd,
                exchange_rate=policy.exchange_rate,
                total_cost_mxn=policy.total_cost_mxn,
                payment_option=policy.payment_option,
                charge_status=policy.charge_status,
                attached_at=now,
            )
        )
        return policy
