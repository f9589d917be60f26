# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Full-state synchronization and background polling.

Polling is the only way edits made by other clients show up here. Each tick
unconditionally replaces the canonical collections; open assignment panels
protect their own unsaved state (see assignment_service.py).
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import TypeAdapter, ValidationError

from fieldservice.core.config import settings
from fieldservice.core.errors import GatewayApplicationError, GatewayError
from fieldservice.core.logging import get_logger
from fieldservice.metrics.prometheus import LAST_SYNC_TIMESTAMP, RELOADS_TOTAL
from fieldservice.models.domain import (
    ServiceInstance,
    ServiceSchedule,
    Volunteer,
    normalize_day_of_week,
)
from fieldservice.repositories.roster_repository import RosterRepository
from fieldservice.services.gateway_client import GatewayClient

logger = get_logger(__name__)

_VOLUNTEERS = TypeAdapter(list[Volunteer])
_SCHEDULES = TypeAdapter(list[ServiceSchedule])
_INSTANCES = TypeAdapter(list[ServiceInstance])

FOREGROUND_LOAD_ERROR = "Failed to load data from the server."


def _rows(data: dict[str, Any], key: str) -> list[Any]:
    """Rows with Sunday normalized; non-dict rows are left for validation to reject."""
    rows = data.get(key) or []
    if not isinstance(rows, list):
        rows = [rows]
    return [normalize_day_of_week(r) if isinstance(r, dict) else r for r in rows]


class SyncService:
    """Owns reloads of the canonical state and the polling loop."""

    def __init__(
        self,
        roster_repo: RosterRepository,
        gateway: GatewayClient,
        poll_interval: Optional[float] = None,
    ) -> None:
        self._repo = roster_repo
        self._gateway = gateway
        self._poll_interval = poll_interval or settings.POLL_INTERVAL_SECONDS
        self._poll_task: Optional[asyncio.Task] = None
        self.is_loading = False
        self.is_syncing = False
        self.error: Optional[str] = None

    # ── Reload ──

    async def reload(self, background: bool = False) -> bool:
        """Fetch and replace all canonical state.

        Foreground failures set ``error`` and re-raise. Background failures
        keep the previous state, are logged and return False.
        """
        mode = "background" if background else "foreground"
        if background:
            self.is_syncing = True
        else:
            self.is_loading = True
        try:
            data = await self._gateway.fetch_data()
            volunteers, schedules, instances, password = self._parse_state(data)
            synced_at = datetime.now(timezone.utc)
            self._repo.replace_all(volunteers, schedules, instances, password, synced_at)
        except GatewayError as exc:
            RELOADS_TOTAL.labels(mode=mode, outcome="failed").inc()
            logger.warning("State reload failed (%s): %s", mode, exc.message)
            if background:
                return False
            self.error = FOREGROUND_LOAD_ERROR
            raise
        finally:
            self.is_loading = False
            self.is_syncing = False

        self.error = None
        RELOADS_TOTAL.labels(mode=mode, outcome="ok").inc()
        LAST_SYNC_TIMESTAMP.set(synced_at.timestamp())
        logger.info(
            "State reloaded (%s): volunteers=%d, schedules=%d, instances=%d",
            mode,
            len(volunteers),
            len(schedules),
            len(instances),
        )
        return True

    @staticmethod
    def _parse_state(
        data: dict[str, Any],
    ) -> tuple[list[Volunteer], list[ServiceSchedule], list[ServiceInstance], str]:
        if not isinstance(data, dict):
            raise GatewayApplicationError("fetchData returned no state", action="fetchData")
        try:
            volunteers = _VOLUNTEERS.validate_python(data.get("volunteers") or [])
            schedules = _SCHEDULES.validate_python(_rows(data, "serviceSchedule"))
            instances = _INSTANCES.validate_python(_rows(data, "serviceInstances"))
        except ValidationError as exc:
            raise GatewayApplicationError(
                f"fetchData returned malformed state: {exc.error_count()} invalid field(s)",
                action="fetchData",
            ) from exc
        password = data.get("leaderPassword")
        return volunteers, schedules, instances, "" if password is None else str(password)

    # ── Polling ──

    @property
    def polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    def start_polling(self) -> None:
        """Start the background reload loop. Idempotent."""
        if self.polling:
            return
        self._poll_task = asyncio.create_task(self._poll_loop())
        logger.info("Background polling started: interval=%.1fs", self._poll_interval)

    async def stop_polling(self) -> None:
        task, self._poll_task = self._poll_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Background polling stopped")

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self._poll_interval)
            try:
                await self.reload(background=True)
            except Exception:
                # keep polling for the rest of the session
                logger.exception("Background reload crashed")

    # ── Status ──

    def status(self) -> dict[str, Any]:
        last = self._repo.last_sync_at
        return {
            "is_loading": self.is_loading,
            "is_syncing": self.is_syncing,
            "error": self.error,
            "last_sync_at": last.isoformat() if last else None,
            "polling": self.polling,
            "poll_interval_seconds": self._poll_interval,
        }
