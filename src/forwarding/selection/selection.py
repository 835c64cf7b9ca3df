"""Selection model — which eligible packages a customer wants to consolidate.

The rules are pure functions over ``(packages, selected, package_id)``; nothing
here touches a repository. ``packages`` is any sequence of objects exposing
``id``, ``weight``, ``total_boxes`` and ``is_master`` (Package aggregates, or
lightweight views in the UI layer). ``eligible_packages`` also reads
``is_eligible_for_consolidation``.

Master rules:
    - The master is the first package flagged ``is_master``, else the first
      package, and only exists when more than one package is offered.
    - "Master selected" means every other package is selected. It is always
      computed from the selection and never stored on its own.
    - Clicking the master toggles select-all / deselect-all. Deselecting any
      other package drops the master; selecting the last missing one adds it.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from forwarding.errors import InvalidInput


@dataclass(frozen=True)
class SelectionTotals:
    package_count: int
    total_weight: float
    total_boxes: int


def eligible_packages(packages: Iterable) -> list:
    """Packages that can still be offered for a new consolidation, in input order."""
    return [p for p in packages if p.is_eligible_for_consolidation]


def find_master(packages: Sequence) -> str | None:
    if len(packages) <= 1:
        return None
    flagged = next((p for p in packages if p.is_master), None)
    return str((flagged or packages[0]).id)


def is_master_selected(packages: Sequence, selected: Iterable[str]) -> bool:
    master_id = find_master(packages)
    if master_id is None:
        return False
    others = {str(p.id) for p in packages} - {master_id}
    return others <= set(selected)


def _normalize(packages: Sequence, selected: set[str]) -> frozenset[str]:
    """Keep only known ids and make master membership agree with the rest of the set."""
    ids = {str(p.id) for p in packages}
    result = selected & ids
    master_id = find_master(packages)
    if master_id is not None:
        if (ids - {master_id}) <= result:
            result.add(master_id)
        else:
            result.discard(master_id)
    return frozenset(result)


def toggle(packages: Sequence, selected: Iterable[str], package_id: str) -> frozenset[str]:
    """Return the selection after the customer clicks ``package_id``."""
    ids = [str(p.id) for p in packages]
    package_id = str(package_id)
    if package_id not in ids:
        raise InvalidInput({"package_id": [f"Package {package_id} is not offered for consolidation"]})

    current = _normalize(packages, set(selected))
    master_id = find_master(packages)

    if package_id == master_id:
        if is_master_selected(packages, current):
            return frozenset()
        return frozenset(ids)

    updated = set(current)
    if package_id in updated:
        updated.discard(package_id)
    else:
        updated.add(package_id)
    return _normalize(packages, updated)


def totals(packages: Sequence, selected: Iterable[str]) -> SelectionTotals:
    chosen = set(selected)
    members = [p for p in packages if str(p.id) in chosen]
    return SelectionTotals(
        package_count=len(members),
        total_weight=sum(p.weight or 0.0 for p in members),
        total_boxes=sum(max(1, p.total_boxes or 1) for p in members),
    )


class SelectionSession:
    """One customer's selection over a fixed set of eligible packages.

    Single-threaded and short-lived. There is no reset: the client drops the
    session once a consolidation is requested or the customer walks away.
    """

    def __init__(self, packages: Sequence, selected: Iterable[str] = ()) -> None:
        self._packages = tuple(packages)
        self._selected = _normalize(self._packages, set(selected))

    @property
    def packages(self) -> tuple:
        return self._packages

    @property
    def master_id(self) -> str | None:
        return find_master(self._packages)

    @property
    def selected(self) -> frozenset[str]:
        return self._selected

    @property
    def master_selected(self) -> bool:
        return is_master_selected(self._packages, self._selected)

    @property
    def totals(self) -> SelectionTotals:
        return totals(self._packages, self._selected)

    def is_selected(self, package_id: str) -> bool:
        return str(package_id) in self._selected

    def toggle(self, package_id: str) -> frozenset[str]:
        self._selected = toggle(self._packages, self._selected, package_id)
        return self._selected

    def selected_ids(self) -> list[str]:
        """Selected ids in the order the packages were offered."""
        return [str(p.id) for p in self._packages if str(p.id) in self._selected]
