"""Package intake — command and handler.

Stands in for the warehouse intake API: records a received package so it can
be selected for consolidation.
"""

from protean import handle
from protean.fields import Boolean, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from forwarding.domain import forwarding
from forwarding.package.package import Package


@forwarding.command(part_of="Package")
class ReceivePackage:
    """Record a package received into a customer's warehouse box."""

    user_id = Identifier(required=True)
    tracking_internal = String(required=True, max_length=255)
    description = String(max_length=500)
    weight = Float(min_value=0.0)
    total_boxes = Integer(default=1, min_value=1)
    is_master = Boolean(default=False)
    tracking_provider = String(max_length=255)
    box_id = String(max_length=50)
    declared_value_usd = Float()


@forwarding.command_handler(part_of=Package)
class ReceivePackageHandler:
    @handle(ReceivePackage)
    def receive_package(self, command):
        package = Package.receive(
            user_id=command.user_id,
            tracking_internal=command.tracking_internal,
            description=command.description,
            weight=command.weight,
            total_boxes=command.total_boxes or 1,
            is_master=bool(command.is_master),
            tracking_provider=command.tracking_provider,
            box_id=command.box_id,
            declared_value_usd=command.declared_value_usd,
        )
        current_domain.repository_for(Package).add(package)
        return str(package.id)
