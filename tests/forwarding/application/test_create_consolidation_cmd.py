"""Application tests for consolidation creation via domain.process()."""

import json
from concurrent.futures import ThreadPoolExecutor

import pytest
from forwarding.consolidation.consolidation import Consolidation, ConsolidationStatus
from forwarding.consolidation.creation import CreateConsolidation, group_packages
from forwarding.domain import forwarding
from forwarding.errors import EmptySelection, InvalidInput, PackageAlreadyGrouped
from forwarding.package.intake import ReceivePackage
from forwarding.package.package import Package
from protean import current_domain


def _receive(user_id="user-001", tracking="PKG-1", weight=2.0, total_boxes=1):
    return current_domain.process(
        ReceivePackage(user_id=user_id, tracking_internal=tracking, weight=weight, total_boxes=total_boxes),
        asynchronous=False,
    )


def _package(package_id):
    return current_domain.repository_for(Package).get(package_id)


class TestCreateConsolidation:
    def test_groups_packages(self):
        a = _receive(tracking="A", weight=2.0)
        b = _receive(tracking="B", weight=None, total_boxes=2)
        consolidation_id = group_packages("user-001", [a, b])

        consolidation = current_domain.repository_for(Consolidation).get(consolidation_id)
        assert consolidation.status == ConsolidationStatus.PENDING.value
        assert sorted(consolidation.package_ids) == sorted([a, b])
        assert consolidation.total_weight == 2.0
        assert consolidation.total_boxes == 3

        for package_id in (a, b):
            package = _package(package_id)
            assert package.consolidation_id == consolidation_id
            assert package.consolidation_status == "pending"

    def test_via_command(self):
        a = _receive(tracking="A")
        consolidation_id = current_domain.process(
            CreateConsolidation(user_id="user-001", package_ids=json.dumps([a])),
            asynchronous=False,
        )
        assert _package(a).consolidation_id == consolidation_id

    def test_duplicate_ids_counted_once(self):
        a = _receive(tracking="A", weight=3.0)
        consolidation_id = group_packages("user-001", [a, a])
        consolidation = current_domain.repository_for(Consolidation).get(consolidation_id)
        assert consolidation.package_ids == [a]
        assert consolidation.total_weight == 3.0

    def test_empty_selection(self):
        with pytest.raises(EmptySelection):
            group_packages("user-001", [])

    def test_unknown_package(self):
        with pytest.raises(InvalidInput):
            group_packages("user-001", ["missing-package"])

    def test_package_of_another_customer(self):
        theirs = _receive(user_id="user-002", tracking="THEIRS")
        with pytest.raises(InvalidInput):
            group_packages("user-001", [theirs])
        assert _package(theirs).consolidation_id is None


class TestAtomicity:
    def test_already_grouped_package_rejects_whole_request(self):
        a = _receive(tracking="A")
        b = _receive(tracking="B")
        c = _receive(tracking="C")
        group_packages("user-001", [b])

        with pytest.raises(PackageAlreadyGrouped):
            group_packages("user-001", [a, b, c])

        # Nothing from the failed request was committed
        assert _package(a).consolidation_id is None
        assert _package(c).consolidation_id is None
        consolidations = current_domain.repository_for(Consolidation)._dao.query.all().items
        assert len(consolidations) == 1

    def test_grouping_twice_fails(self):
        a = _receive(tracking="A")
        group_packages("user-001", [a])
        with pytest.raises(PackageAlreadyGrouped):
            group_packages("user-001", [a])

    def test_concurrent_overlapping_requests(self):
        a = _receive(tracking="A")
        b = _receive(tracking="B")
        c = _receive(tracking="C")

        def attempt(package_ids):
            with forwarding.domain_context():
                try:
                    return group_packages("user-001", package_ids)
                except PackageAlreadyGrouped as exc:
                    return exc

        with ThreadPoolExecutor(max_workers=2) as pool:
            results = list(pool.map(attempt, [[a, b], [b, c]]))

        successes = [r for r in results if isinstance(r, str)]
        failures = [r for r in results if isinstance(r, PackageAlreadyGrouped)]
        assert len(successes) == 1
        assert len(failures) == 1

        winner = successes[0]
        assert _package(b).consolidation_id == winner
        consolidations = current_domain.repository_for(Consolidation)._dao.query.all().items
        assert len(consolidations) == 1
