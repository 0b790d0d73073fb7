"""BaseService — abstract foundation for all adjctl services.

Every service receives a :class:`Registry` at construction time. The
Registry provides the unit and group store adapters and the graph engine.
Services hold no state of their own between calls: each operation is a
function of store contents at invocation time.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from adjctl.domain.adjacency import NeighborOutcome, skip_warnings
from adjctl.services.result import STORE_FAILURE, ServiceResult

if TYPE_CHECKING:
    from adjctl.infrastructure.registry import Registry
    from adjctl.infrastructure.store import StoreFailure

logger = logging.getLogger(__name__)


class BaseService:
    """Abstract base for all service-layer classes.

    Usage::

        class ReconcileService(BaseService):
            def reconcile_unit(self, incoming: Unit) -> ServiceResult:
                stored = self._registry.units.get(incoming.id)
                ...
    """

    def __init__(self, registry: Registry) -> None:
        self._registry = registry

    @staticmethod
    def _store_failure(
        op: str,
        exc: StoreFailure,
        outcomes: list[NeighborOutcome] | None = None,
    ) -> ServiceResult:
        """Abort *op* on a store error, reporting the neighbor writes already committed.

        INVARIANT: committed writes are never rolled back.
        """
        outcomes = outcomes or []
        logger.error("%s aborted by store failure: %s", op, exc, exc_info=exc)
        return ServiceResult.failure(
            op,
            STORE_FAILURE,
            str(exc),
            detail={
                "cause": repr(exc.__cause__) if exc.__cause__ is not None else None,
                "committed": [o.to_dict() for o in outcomes if not o.skipped],
            },
            warnings=skip_warnings(outcomes),
        )
