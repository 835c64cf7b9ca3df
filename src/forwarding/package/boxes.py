"""Child box labels for multi-box packages.

A package received as several physical boxes is tracked as one record; the
per-box identifiers printed on labels are derived from the internal tracking
code and are never persisted.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ChildBox:
    """One physical sub-box of a package."""

    label: str
    box_number: int
    total_boxes: int
    weight: float | None
    is_master: bool = False


def child_boxes(
    tracking_internal: str,
    total_boxes: int | None,
    weight: float | None,
    is_master: bool = False,
) -> list[ChildBox]:
    """Return the ``{code}-{n}/{total}`` children of a package, each with an even weight share.

    Single-box packages have no children. For a master package the first box
    carries the master flag.
    """
    if not total_boxes or total_boxes <= 1:
        return []

    share = weight / total_boxes if weight is not None else None
    return [
        ChildBox(
            label=f"{tracking_internal}-{n}/{total_boxes}",
            box_number=n,
            total_boxes=total_boxes,
            weight=share,
            is_master=is_master and n == 1,
        )
        for n in range(1, total_boxes + 1)
    ]
