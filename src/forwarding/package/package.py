"""Package aggregate (CQRS) — a physical item in a customer's warehouse box.

Packages are created on warehouse intake. This core only changes the grouping
fields (``consolidation_id`` / ``consolidation_status``), mirrors the
consolidation's progress onto the package status, and flags GEX protection.
Packages are never deleted here.

Status:
    RECEIVED → PROCESSING → SHIPPED → DELIVERED
    (IN_TRANSIT is set by carrier tracking outside this core)
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String

from forwarding.domain import forwarding
from forwarding.errors import PackageAlreadyGrouped, PolicyAlreadyActive
from forwarding.package.boxes import ChildBox, child_boxes
from forwarding.package.events import (
    PackageGrouped,
    PackageProtected,
    PackageReceived,
    PackageReleased,
)


class PackageStatus(Enum):
    RECEIVED = "received"
    PROCESSING = "processing"
    IN_TRANSIT = "in_transit"
    SHIPPED = "shipped"
    DELIVERED = "delivered"


# Package status that follows each consolidation status
_MIRRORED_STATUS = {
    "processing": PackageStatus.PROCESSING,
    "shipped": PackageStatus.SHIPPED,
    "delivered": PackageStatus.DELIVERED,
}


@forwarding.aggregate
class Package:
    user_id = Identifier(required=True)
    box_id = String(max_length=50)
    description = String(max_length=500)
    weight = Float(min_value=0.0)
    total_boxes = Integer(default=1, min_value=1)
    is_master = Boolean(default=False)
    status = String(choices=PackageStatus, default=PackageStatus.RECEIVED.value)
    consolidation_id = Identifier()
    consolidation_status = String(max_length=50)
    tracking_provider = String(max_length=255)
    tracking_internal = String(required=True, max_length=255)
    declared_value_usd = Float()
    has_gex = Boolean(default=False)
    gex_folio = String(max_length=50)
    received_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def receive(
        cls,
        user_id: str,
        tracking_internal: str,
        description: str | None = None,
        weight: float | None = None,
        total_boxes: int = 1,
        is_master: bool = False,
        tracking_provider: str | None = None,
        box_id: str | None = None,
        declared_value_usd: float | None = None,
    ):
        """Register a package arriving at the warehouse."""
        now = datetime.now(UTC)
        package = cls(
            user_id=user_id,
            box_id=box_id,
            description=description,
            weight=weight,
            total_boxes=total_boxes or 1,
            is_master=is_master,
            status=PackageStatus.RECEIVED.value,
            tracking_provider=tracking_provider,
            tracking_internal=tracking_internal,
            declared_value_usd=declared_value_usd,
            received_at=now,
            updated_at=now,
        )
        package.raise_(
            PackageReceived(
                package_id=str(package.id),
                user_id=user_id,
                tracking_internal=tracking_internal,
                weight=weight,
                total_boxes=package.total_boxes,
                is_master=is_master,
                received_at=now,
            )
        )
        return package

    # -------------------------------------------------------------------
    # Grouping
    # -------------------------------------------------------------------
    @property
    def is_eligible_for_consolidation(self) -> bool:
        return self.status == PackageStatus.RECEIVED.value and not self.consolidation_id

    def assign_to_consolidation(self, consolidation_id: str) -> None:
        """Claim this package for a new consolidation (check-and-set)."""
        if self.consolidation_id:
            raise PackageAlreadyGrouped(
                {"package_ids": [f"Package {self.tracking_internal} already belongs to a consolidation"]}
            )
        if self.status != PackageStatus.RECEIVED.value:
            raise PackageAlreadyGrouped(
                {"package_ids": [f"Package {self.tracking_internal} is {self.status} and cannot be consolidated"]}
            )

        now = datetime.now(UTC)
        self.consolidation_id = consolidation_id
        self.consolidation_status = "pending"
        self.updated_at = now
        self.raise_(
            PackageGrouped(
                package_id=str(self.id),
                consolidation_id=consolidation_id,
                grouped_at=now,
            )
        )

    def follow_consolidation(self, consolidation_status: str, master_tracking: str | None = None) -> None:
        """Mirror the owning consolidation's progress onto this package."""
        if not self.consolidation_id:
            raise ValidationError({"consolidation_id": ["Package is not part of a consolidation"]})

        self.consolidation_status = consolidation_status
        mirrored = _MIRRORED_STATUS.get(consolidation_status)
        if mirrored is not None:
            self.status = mirrored.value
        if master_tracking:
            self.tracking_provider = master_tracking
        self.updated_at = datetime.now(UTC)

    def release_from_consolidation(self) -> None:
        """Detach from a cancelled consolidation; the package becomes eligible again."""
        if not self.consolidation_id:
            return

        now = datetime.now(UTC)
        consolidation_id = str(self.consolidation_id)
        self.consolidation_id = None
        self.consolidation_status = None
        self.status = PackageStatus.RECEIVED.value
        self.updated_at = now
        self.raise_(
            PackageReleased(
                package_id=str(self.id),
                consolidation_id=consolidation_id,
                released_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Protection
    # -------------------------------------------------------------------
    def attach_gex(self, gex_folio: str, declared_value_usd: float) -> None:
        """Flag the package as protected by the policy with ``gex_folio``."""
        if self.has_gex:
            raise PolicyAlreadyActive({"package_id": [f"Package {self.tracking_internal} is already protected"]})

        now = datetime.now(UTC)
        self.has_gex = True
        self.gex_folio = gex_folio
        self.declared_value_usd = declared_value_usd
        self.updated_at = now
        self.raise_(
            PackageProtected(
                package_id=str(self.id),
                gex_folio=gex_folio,
                declared_value_usd=declared_value_usd,
                protected_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Derived views
    # -------------------------------------------------------------------
    def child_boxes(self) -> list[ChildBox]:
        return child_boxes(self.tracking_internal, self.total_boxes, self.weight, is_master=bool(self.is_master))
