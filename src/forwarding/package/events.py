"""Package domain events — facts about warehouse packages."""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String

from forwarding.domain import forwarding


@forwarding.event(part_of="Package")
class PackageReceived:
    """A package was received into a customer's warehouse box."""

    __version__ = 1

    package_id = Identifier(required=True)
    user_id = Identifier(required=True)
    tracking_internal = String(required=True)
    weight = Float()
    total_boxes = Integer(required=True)
    is_master = Boolean(default=False)
    received_at = DateTime(required=True)


@forwarding.event(part_of="Package")
class PackageGrouped:
    """A package was claimed by a consolidation."""

    __version__ = 1

    package_id = Identifier(required=True)
    consolidation_id = Identifier(required=True)
    grouped_at = DateTime(required=True)


@forwarding.event(part_of="Package")
class PackageReleased:
    """A package was released from a cancelled consolidation and is eligible again."""

    __version__ = 1

    package_id = Identifier(required=True)
    consolidation_id = Identifier(required=True)
    released_at = DateTime(required=True)


@forwarding.event(part_of="Package")
class PackageProtected:
    """A GEX policy was attached to the package."""

    __version__ = 1

    package_id = Identifier(required=True)
    gex_folio = String(required=True)
    declared_value_usd = Float(required=True)
    protected_at = DateTime(required=True)
