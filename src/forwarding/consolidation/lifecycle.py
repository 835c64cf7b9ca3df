"""Consolidation lifecycle — warehouse commands and handler.

Each transition is mirrored onto the member packages in the same unit of
work, so a package never reports a different stage than its consolidation.
Cancelling frees the packages for a new consolidation.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from forwarding.consolidation.consolidation import Consolidation
from forwarding.domain import forwarding
from forwarding.package.package import Package


@forwarding.command(part_of="Consolidation")
class StartProcessing:
    consolidation_id = Identifier(required=True)


@forwarding.command(part_of="Consolidation")
class DispatchConsolidation:
    """Record that the consolidation left the warehouse."""

    consolidation_id = Identifier(required=True)
    master_tracking = String(max_length=255)


@forwarding.command(part_of="Consolidation")
class ReleaseConsolidation:
    """Deliver a shipped consolidation whose freight is paid."""

    consolidation_id = Identifier(required=True)


@forwarding.command(part_of="Consolidation")
class CancelConsolidation:
    """Cancel a consolidation before it ships."""

    consolidation_id = Identifier(required=True)
    reason = String(required=True, max_length=500)


def _mirror(consolidation, master_tracking=None):
    package_repo = current_domain.repository_for(Package)
    for package_id in consolidation.package_ids:
        package = package_repo.get(package_id)
        package.follow_consolidation(consolidation.status, master_tracking=master_tracking)
        package_repo.add(package)


@forwarding.command_handler(part_of=Consolidation)
class ConsolidationLifecycleHandler:
    @handle(StartProcessing)
    def start_processing(self, command):
        repo = current_domain.repository_for(Consolidation)
        consolidation = repo.get(command.consolidation_id)
        consolidation.start_processing()
        _mirror(consolidation)
        repo.add(consolidation)

    @handle(DispatchConsolidation)
    def dispatch(self, command):
        repo = current_domain.repository_for(Consolidation)
        consolidation = repo.get(command.consolidation_id)
        consolidation.dispatch(command.master_tracking)
        _mirror(consolidation, master_tracking=command.master_tracking)
        repo.add(consolidation)

    @handle(ReleaseConsolidation)
    def release(self, command):
        repo = current_domain.repository_for(Consolidation)
        consolidation = repo.get(command.consolidation_id)
        consolidation.release()
        _mirror(consolidation)
        repo.add(consolidation)

    @handle(CancelConsolidation)
    def cancel(self, command):
        repo = current_domain.repository_for(Consolidation)
        consolidation = repo.get(command.consolidation_id)
        consolidation.cancel(command.reason)

        package_repo = current_domain.repository_for(Package)
        for package_id in consolidation.package_ids:
            package = package_repo.get(package_id)
            package.release_from_consolidation()
            package_repo.add(package)
        repo.add(consolidation)
