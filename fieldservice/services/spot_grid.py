# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Spot grid for public-stand service.

Applicants are placed into a fixed spot x group grid. Cells are keyed
``"<spot>-<group>"`` and hold a bounded number of volunteers. The unassigned
pool is never stored; it is recomputed from the instance's applicants each
time it is asked for.
"""

import re
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from fieldservice.core.config import settings
from fieldservice.core.errors import CapacityExceeded, ValidationFailed
from fieldservice.core.logging import get_logger
from fieldservice.models.domain import ServiceInstance, Volunteer

logger = get_logger(__name__)

# Keys written by older sheets, e.g. "스팟A-1조"
_LEGACY_KEY = re.compile(r"^스팟(?P<spot>\w+)-(?P<group>\d+)조$")


def cell_key(spot: str, group: str) -> str:
    return f"{spot}-{group}"


def legacy_cell_key(key: str) -> Optional[str]:
    match = _LEGACY_KEY.match(key)
    if match is None:
        return None
    return cell_key(f"Spot {match['spot']}", f"Group {match['group']}")


@dataclass
class PendingPlacement:
    volunteer: Volunteer
    from_key: Optional[str] = None


class SpotGrid:
    """Editable spot assignments for one service instance."""

    def __init__(
        self,
        spots: Optional[list[str]] = None,
        groups: Optional[list[str]] = None,
        max_cell_size: Optional[int] = None,
    ) -> None:
        self.spots = list(spots or settings.SPOT_NAMES)
        self.groups = list(groups or settings.GROUP_NAMES)
        self.max_cell_size = max_cell_size or settings.MAX_CELL_SIZE
        self.service_id: Optional[str] = None
        self.assignments: dict[str, list[Volunteer]] = {}
        self.pending: Optional[PendingPlacement] = None

    def load(self, instance: ServiceInstance) -> None:
        """Seed from stored assignments.

        Legacy keys are mapped onto the configured grid. Cells still outside
        the grid are dropped and their volunteers return to the pool, as does
        any repeat of a volunteer already placed in an earlier cell.
        """
        self.service_id = instance.id
        self.pending = None
        self.assignments = {}
        known = set(self.cell_keys())
        placed: set[str] = set()
        for key, members in (instance.assignments or {}).items():
            target = key if key in known else legacy_cell_key(key)
            if target not in known:
                logger.warning(
                    "Dropped unknown spot cell: service=%s, key=%s, volunteers=%d",
                    instance.id,
                    key,
                    len(members),
                )
                continue
            kept = [v for v in members if v.id not in placed]
            placed.update(v.id for v in kept)
            if kept:
                self.assignments[target] = [*self.assignments.get(target, []), *kept]

    # ── Queries ──

    def cell_keys(self) -> list[str]:
        return [cell_key(s, g) for g in self.groups for s in self.spots]

    def cell(self, key: str) -> list[Volunteer]:
        return list(self.assignments.get(key, []))

    def placed_ids(self) -> set[str]:
        return {v.id for members in self.assignments.values() for v in members}

    def unassigned(self, applicants: Iterable[Volunteer]) -> list[Volunteer]:
        placed = self.placed_ids()
        return sorted((v for v in applicants if v.id not in placed), key=lambda v: v.name)

    def _key_of(self, volunteer_id: str) -> Optional[str]:
        for key, members in self.assignments.items():
            if any(v.id == volunteer_id for v in members):
                return key
        return None

    # ── Drag and drop ──

    def pick_up(
        self, volunteer_id: str, applicants: Iterable[Volunteer], from_key: Optional[str] = None
    ) -> PendingPlacement:
        """Start a drag from a cell (``from_key``) or from the unassigned pool."""
        if from_key is not None:
            volunteer = next((v for v in self.assignments.get(from_key, []) if v.id == volunteer_id), None)
        else:
            volunteer = next((v for v in applicants if v.id == volunteer_id), None)
            if volunteer is not None and volunteer.id in self.placed_ids():
                volunteer = None
        if volunteer is None:
            raise KeyError(f"Volunteer '{volunteer_id}' is not at the drag origin")
        self.pending = PendingPlacement(volunteer=volunteer, from_key=from_key)
        return self.pending

    def cancel_drag(self) -> None:
        self.pending = None

    def drop_on_cell(self, spot: str, group: str) -> bool:
        if spot not in self.spots or group not in self.groups:
            raise ValidationFailed(f"Unknown cell '{cell_key(spot, group)}'")
        pending, self.pending = self.pending, None
        if pending is None:
            return False
        target = cell_key(spot, group)
        if pending.from_key == target:
            return False
        if len(self.assignments.get(target, [])) >= self.max_cell_size:
            raise CapacityExceeded(
                f"A cell can hold at most {self.max_cell_size} volunteers."
            )
        # a volunteer sits in at most one cell
        prior = self._key_of(pending.volunteer.id)
        if prior is not None:
            self._drop_from(prior, pending.volunteer.id)
        self.assignments[target] = [*self.assignments.get(target, []), pending.volunteer]
        return True

    def drop_on_unassigned(self) -> bool:
        """Only drags that started in a cell are accepted here."""
        pending, self.pending = self.pending, None
        if pending is None or pending.from_key is None:
            return False
        return self.remove(pending.from_key, pending.volunteer.id)

    def remove(self, key: str, volunteer_id: str) -> bool:
        if not any(v.id == volunteer_id for v in self.assignments.get(key, [])):
            return False
        self._drop_from(key, volunteer_id)
        return True

    def _drop_from(self, key: str, volunteer_id: str) -> None:
        self.assignments[key] = [v for v in self.assignments[key] if v.id != volunteer_id]

    # ── Output ──

    def to_assignments(self) -> dict[str, list[Volunteer]]:
        """Sparse copy: empty cells are left out."""
        return {k: list(v) for k, v in self.assignments.items() if v}

    def view(self, applicants: Iterable[Volunteer]) -> dict[str, Any]:
        return {
            "service_id": self.service_id,
            "spots": list(self.spots),
            "groups": list(self.groups),
            "max_cell_size": self.max_cell_size,
            "cells": {key: self.cell(key) for key in self.cell_keys()},
            "unassigned": self.unassigned(applicants),
            "pending": (
                {"volunteer_id": self.pending.volunteer.id, "from_key": self.pending.from_key}
                if self.pending
                else None
            ),
        }
