# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Open pairing and spot-grid panels.

Each engine has at most one open panel. Opening the panel for the instance
that is already open keeps the unsaved edits; only a different instance
re-seeds the engine from stored data. Background reloads therefore never
reset an open panel, while the applicants it reads still refresh.
"""

from typing import Optional

from fieldservice.core.logging import get_logger
from fieldservice.metrics.prometheus import ASSIGNMENT_SAVES
from fieldservice.models.domain import ServiceInstance
from fieldservice.services import export
from fieldservice.services.instance_service import InstanceService
from fieldservice.services.pairing import PairingBoard
from fieldservice.services.spot_grid import SpotGrid

logger = get_logger(__name__)


class PanelNotOpen(KeyError):
    """No panel is open for the requested instance."""


class AssignmentService:
    def __init__(
        self,
        instance_service: InstanceService,
        pairing: Optional[PairingBoard] = None,
        spot_grid: Optional[SpotGrid] = None,
    ) -> None:
        self._instances = instance_service
        self.pairing = pairing or PairingBoard()
        self.spot_grid = spot_grid or SpotGrid()
        self._pairing_open: Optional[str] = None
        self._spots_open: Optional[str] = None

    # ── Pairing ──

    def open_pairing(self, service_id: str) -> PairingBoard:
        instance = self._instances.get_instance(service_id)
        if self._pairing_open != service_id:
            self.pairing.load(instance)
            self._pairing_open = service_id
            logger.info("Pairing panel opened: service=%s", service_id)
        return self.pairing

    def pairing_for(self, service_id: str) -> PairingBoard:
        if self._pairing_open != service_id:
            raise PanelNotOpen(f"No pairing panel open for service '{service_id}'")
        return self.pairing

    async def save_pairing(self, service_id: str) -> ServiceInstance:
        board = self.pairing_for(service_id)
        instance = self._instances.get_instance(service_id)
        saved = await self._instances.update_service_instance(
            instance.model_copy(update={"pairs": board.to_pairs()})
        )
        ASSIGNMENT_SAVES.labels(engine="pairing").inc()
        self.close_pairing()
        return saved

    def close_pairing(self) -> None:
        self._pairing_open = None
        self.pairing.cancel_drag()

    def export_pairing(self, service_id: str) -> tuple[str, str]:
        """(filename, csv text) for the open panel, or the stored pairs when closed."""
        instance = self._instances.get_instance(service_id)
        if self._pairing_open == service_id:
            board = self.pairing
        else:
            board = PairingBoard(self.pairing.max_group_size)
            board.load(instance)
        return (
            export.pairing_filename(instance),
            export.pairing_csv(instance, board.to_pairs(), board.unassigned),
        )

    # ── Spot grid ──

    def open_spots(self, service_id: str) -> SpotGrid:
        instance = self._instances.get_instance(service_id)
        if self._spots_open != service_id:
            self.spot_grid.load(instance)
            self._spots_open = service_id
            logger.info("Spot panel opened: service=%s", service_id)
        return self.spot_grid

    def spots_for(self, service_id: str) -> SpotGrid:
        if self._spots_open != service_id:
            raise PanelNotOpen(f"No spot panel open for service '{service_id}'")
        return self.spot_grid

    async def save_spots(self, service_id: str) -> ServiceInstance:
        grid = self.spots_for(service_id)
        instance = self._instances.get_instance(service_id)
        saved = await self._instances.update_service_instance(
            instance.model_copy(update={"assignments": grid.to_assignments()})
        )
        ASSIGNMENT_SAVES.labels(engine="spots").inc()
        self.close_spots()
        return saved

    def close_spots(self) -> None:
        self._spots_open = None
        self.spot_grid.cancel_drag()

    def export_spots(self, service_id: str) -> tuple[str, str]:
        instance = self._instances.get_instance(service_id)
        if self._spots_open == service_id:
            grid = self.spot_grid
        else:
            grid = SpotGrid(self.spot_grid.spots, self.spot_grid.groups, self.spot_grid.max_cell_size)
            grid.load(instance)
        return (
            export.spot_grid_filename(instance),
            export.spot_grid_csv(instance, grid.spots, grid.groups, grid.assignments),
        )
