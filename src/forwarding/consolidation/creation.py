"""Consolidation creation — command and handler.

Grouping claims every selected package and creates the consolidation in one
unit of work: either all packages end up pointing at the new consolidation or
none do. ``group_packages`` serializes grouping requests so two concurrent
requests cannot both claim the same package.
"""

import json
import threading

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, Text
from protean.utils.globals import current_domain

from forwarding.consolidation.consolidation import Consolidation
from forwarding.domain import forwarding
from forwarding.errors import EmptySelection, InvalidInput
from forwarding.package.package import Package

logger = structlog.get_logger(__name__)

_GROUPING_LOCK = threading.Lock()


@forwarding.command(part_of="Consolidation")
class CreateConsolidation:
    """Group a customer's selected packages into a new consolidation."""

    user_id = Identifier(required=True)
    package_ids = Text(required=True)  # JSON list of package ids


@forwarding.command_handler(part_of=Consolidation)
class CreateConsolidationHandler:
    @handle(CreateConsolidation)
    def create_consolidation(self, command):
        package_ids = json.loads(command.package_ids) if isinstance(command.package_ids, str) else command.package_ids
        # Preserve order, drop repeats
        package_ids = list(dict.fromkeys(str(pid) for pid in package_ids or []))
        if not package_ids:
            raise EmptySelection({"package_ids": ["Select at least one package to consolidate"]})

        package_repo = current_domain.repository_for(Package)
        packages = []
        for package_id in package_ids:
            try:
                package = package_repo.get(package_id)
            except ObjectNotFoundError:
                raise InvalidInput({"package_ids": [f"Package {package_id} does not exist"]})
            if str(package.user_id) != str(command.user_id):
                raise InvalidInput({"package_ids": [f"Package {package_id} does not belong to this customer"]})
            packages.append(package)

        consolidation = Consolidation.request(user_id=command.user_id, packages=packages)
        for package in packages:
            package.assign_to_consolidation(str(consolidation.id))
            package_repo.add(package)

        current_domain.repository_for(Consolidation).add(consolidation)
        logger.info(
            "consolidation_requested",
            consolidation_id=str(consolidation.id),
            user_id=str(command.user_id),
            package_count=len(packages),
            total_weight=consolidation.total_weight,
        )
        return str(consolidation.id)


def group_packages(user_id: str, package_ids: list[str]) -> str:
    """Create a consolidation for ``package_ids``; returns its id.

    Raises ``EmptySelection`` for an empty list and ``PackageAlreadyGrouped``
    when any package was claimed first by another request.
    """
    with _GROUPING_LOCK:
        return current_domain.process(
            CreateConsolidation(user_id=user_id, package_ids=json.dumps(list(package_ids))),
            asynchronous=False,
        )
