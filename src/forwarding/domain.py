"""Forwarding bounded context — Warehouse Box Consolidation and GEX Protection.

Handles grouping of received warehouse packages into outbound consolidations,
freight payment capture before release, and attachment of GEX delivery
guarantee policies to individual packages. Uses CQRS aggregates because every
write is a short command against current state.
"""

import structlog
from protean.domain import Domain

forwarding = Domain(name="forwarding")

logger = structlog.get_logger(__name__)
