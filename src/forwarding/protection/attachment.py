"""Warranty attachment — command and handler.

Server side of the warranty flow's final step. Everything the customer went
through in the wizard is checked again here: a request without an acceptance
timestamp or a signature is rejected, and a package can carry only one policy.
The premium is recomputed from the current rate; the client's figures are
never trusted.
"""

import threading
from datetime import UTC, datetime

import structlog
from protean import handle
from protean.fields import DateTime, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from forwarding.domain import forwarding
from forwarding.errors import InvalidInput, PolicyAlreadyActive
from forwarding.package.package import Package
from forwarding.protection.policy import PaymentOption, WarrantyPolicy, format_folio
from forwarding.protection.pricing import is_positive_amount
from forwarding.protection.quoting import get_quote_service

logger = structlog.get_logger(__name__)

_ATTACH_LOCK = threading.Lock()


@forwarding.command(part_of="WarrantyPolicy")
class AttachWarranty:
    """Issue a GEX policy for a package."""

    package_id = Identifier(required=True)
    user_id = Identifier()
    description = String(max_length=500)
    declared_value_usd = Float()
    signature = Text()  # opaque signature artifact (e.g. data URL)
    accepted_at = DateTime()
    payment_option = String(max_length=50)


def _validate(command) -> PaymentOption:
    errors = {}
    if not is_positive_amount(command.declared_value_usd):
        errors["declared_value_usd"] = ["Declared value must be greater than zero"]
    if not (command.description or "").strip():
        errors["description"] = ["Description is required"]
    if command.accepted_at is None:
        errors["accepted_at"] = ["Policy terms must be accepted"]
    if not command.signature:
        errors["signature"] = ["Signature is required"]

    option = None
    try:
        option = PaymentOption(command.payment_option)
    except ValueError:
        errors["payment_option"] = [f"Payment option must be one of: {', '.join(o.value for o in PaymentOption)}"]

    if errors:
        raise InvalidInput(errors)
    return option


@forwarding.command_handler(part_of=WarrantyPolicy)
class AttachWarrantyHandler:
    @handle(AttachWarranty)
    def attach_warranty(self, command):
        package_repo = current_domain.repository_for(Package)
        package = package_repo.get(command.package_id)

        if command.user_id and str(package.user_id) != str(command.user_id):
            raise InvalidInput({"package_id": ["Package does not belong to this customer"]})
        if package.has_gex:
            raise PolicyAlreadyActive({"package_id": [f"Package {package.tracking_internal} is already protected"]})

        payment_option = _validate(command)
        quote = get_quote_service().get_quote(command.declared_value_usd)

        policy_repo = current_domain.repository_for(WarrantyPolicy)
        sequence = policy_repo._dao.query.all().total + 1
        policy = WarrantyPolicy.issue(
            gex_folio=format_folio(datetime.now(UTC).year, sequence),
            package_id=str(package.id),
            user_id=str(package.user_id),
            description=command.description.strip(),
            quote=quote,
            accepted_at=command.accepted_at,
            signature=command.signature,
            payment_option=payment_option,
        )
        package.attach_gex(policy.gex_folio, command.declared_value_usd)

        policy_repo.add(policy)
        package_repo.add(package)
        logger.info(
            "warranty_attached",
            policy_id=str(policy.id),
            gex_folio=policy.gex_folio,
            package_id=str(package.id),
            total_cost_mxn=policy.total_cost_mxn,
            payment_option=policy.payment_option,
        )
        return str(policy.id)


def attach_warranty(
    package_id: str,
    declared_value_usd: float,
    description: str,
    signature: str,
    accepted_at: datetime | None,
    payment_option: str,
    user_id: str | None = None,
) -> str:
    """Attach a GEX policy to a package; returns the policy id.

    Attachments are serialized so a package cannot be protected twice and
    folios stay sequential.
    """
    with _ATTACH_LOCK:
        return current_domain.process(
            AttachWarranty(
                package_id=package_id,
                user_id=user_id,
                description=description,
                declared_value_usd=declared_value_usd,
                signature=signature,
                accepted_at=accepted_at,
                payment_option=payment_option,
            ),
            asynchronous=False,
        )
