# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Optimistic update with snapshot rollback.

    async with optimistic_update(repo.volunteers, "removeVolunteer", "..."):
        repo.volunteers.apply(remove_id(vid))      # visible immediately
        await gateway.remove_volunteer(vid)        # may raise GatewayError

The snapshot covers only the collection being mutated. On a GatewayError the
collection is restored to exactly the snapshot. With a ``failure_message``
the failure is re-raised as MutationFailed for the caller to show; without
one it is logged and swallowed.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fieldservice.core.errors import GatewayError, MutationFailed
from fieldservice.core.logging import get_logger
from fieldservice.metrics.prometheus import ROLLBACKS_TOTAL
from fieldservice.repositories.roster_repository import Collection

logger = get_logger(__name__)


@asynccontextmanager
async def optimistic_update(
    collection: Collection,
    action: str,
    failure_message: Optional[str] = None,
) -> AsyncIterator[list]:
    snapshot = collection.snapshot()
    try:
        yield snapshot
    except GatewayError as exc:
        collection.restore(snapshot)
        ROLLBACKS_TOTAL.labels(collection=collection.name, action=action).inc()
        if failure_message is None:
            logger.warning(
                "Rolled back %s after failed %s: %s",
                collection.name,
                action,
                exc.message,
                extra={"action": action},
            )
            return
        logger.error(
            "Rolled back %s after failed %s: %s",
            collection.name,
            action,
            exc.message,
            extra={"action": action},
        )
        raise MutationFailed(failure_message, action=action) from exc
