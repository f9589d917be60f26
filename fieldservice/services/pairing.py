# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Pairing board for door-to-door service.

Applicants are grouped into small teams by picking a volunteer up and
dropping them on another unassigned volunteer, on a group, or back on the
unassigned list. A volunteer is always in exactly one place: one group or
the unassigned list.
"""

from dataclasses import dataclass
from typing import Any, Optional

from fieldservice.core.config import settings
from fieldservice.core.errors import CapacityExceeded
from fieldservice.models.domain import ServiceInstance, Volunteer


@dataclass
class PendingMove:
    """A picked-up volunteer, consumed by the next drop."""
    volunteer_id: str
    origin_group: Optional[int] = None


def _by_name(volunteers: list[Volunteer]) -> list[Volunteer]:
    return sorted(volunteers, key=lambda v: v.name)


class PairingBoard:
    """Editable pairing state for one service instance."""

    def __init__(self, max_group_size: Optional[int] = None) -> None:
        self.max_group_size = max_group_size or settings.MAX_GROUP_SIZE
        self.service_id: Optional[str] = None
        self.unassigned: list[Volunteer] = []
        self.groups: list[list[Volunteer]] = []
        self.pending: Optional[PendingMove] = None

    def load(self, instance: ServiceInstance) -> None:
        """Seed from the saved pairs, keeping only current applicants."""
        applicants = {v.id: v for v in instance.applicants}
        placed: set[str] = set()
        groups: list[list[Volunteer]] = []
        for saved_group in instance.pairs or []:
            group = []
            for member in saved_group:
                if member.id in applicants and member.id not in placed:
                    group.append(applicants[member.id])
                    placed.add(member.id)
            if group:
                groups.append(group)
        self.service_id = instance.id
        self.groups = groups
        self.unassigned = _by_name([v for v in instance.applicants if v.id not in placed])
        self.pending = None

    # ── Lookup ──

    def _locate(self, volunteer_id: str) -> tuple[bool, Optional[int], Optional[Volunteer]]:
        """(found, group index or None for unassigned, volunteer)."""
        for v in self.unassigned:
            if v.id == volunteer_id:
                return True, None, v
        for index, group in enumerate(self.groups):
            for v in group:
                if v.id == volunteer_id:
                    return True, index, v
        return False, None, None

    def _take_pending(self) -> Optional[tuple[Volunteer, Optional[int]]]:
        pending, self.pending = self.pending, None
        if pending is None:
            return None
        found, index, volunteer = self._locate(pending.volunteer_id)
        if not found:
            return None
        if pending.origin_group is not None and pending.origin_group != index:
            return None
        return volunteer, index

    def _detach(self, volunteer_id: str, origin: Optional[int]) -> None:
        """Remove from the unassigned list or from group ``origin`` (pruned if empty)."""
        if origin is None:
            self.unassigned = [v for v in self.unassigned if v.id != volunteer_id]
            return
        remaining = [v for v in self.groups[origin] if v.id != volunteer_id]
        if remaining:
            self.groups[origin] = remaining
        else:
            del self.groups[origin]

    # ── Drag and drop ──

    def pick_up(self, volunteer_id: str, origin_group: Optional[int] = None) -> PendingMove:
        self.pending = PendingMove(volunteer_id=volunteer_id, origin_group=origin_group)
        return self.pending

    def cancel_drag(self) -> None:
        self.pending = None

    def drop_on_volunteer(self, target_id: str) -> bool:
        """Pair the carried volunteer with an unassigned one in a new group."""
        source = self._take_pending()
        if source is None:
            return False
        volunteer, origin = source
        if volunteer.id == target_id:
            return False
        target = next((v for v in self.unassigned if v.id == target_id), None)
        if target is None:
            return False
        self.unassigned = [v for v in self.unassigned if v.id != target_id]
        self._detach(volunteer.id, origin)
        self.groups.append([volunteer, target])
        return True

    def drop_on_group(self, group_index: int) -> bool:
        """Append the carried volunteer to a group that still has room."""
        source = self._take_pending()
        if source is None or not 0 <= group_index < len(self.groups):
            return False
        volunteer, origin = source
        if origin == group_index:
            return False
        if len(self.groups[group_index]) >= self.max_group_size:
            raise CapacityExceeded(
                f"A group can have at most {self.max_group_size} members."
            )
        # append before detaching: pruning the origin may shift indices
        self.groups[group_index] = [*self.groups[group_index], volunteer]
        self._detach(volunteer.id, origin)
        return True

    def drop_on_unassigned(self) -> bool:
        source = self._take_pending()
        if source is None:
            return False
        volunteer, origin = source
        if origin is None:
            return False
        self._detach(volunteer.id, origin)
        self.unassigned = _by_name([*self.unassigned, volunteer])
        return True

    def unpair(self, group_index: int) -> None:
        """Dissolve a group, sending everyone back to the unassigned list."""
        if not 0 <= group_index < len(self.groups):
            raise KeyError(f"No group at index {group_index}")
        members = self.groups.pop(group_index)
        self.unassigned = _by_name([*self.unassigned, *members])
        self.pending = None

    # ── Output ──

    def to_pairs(self) -> list[list[Volunteer]]:
        return [list(group) for group in self.groups]

    def view(self) -> dict[str, Any]:
        return {
            "service_id": self.service_id,
            "max_group_size": self.max_group_size,
            "groups": self.to_pairs(),
            "unassigned": list(self.unassigned),
            "pending": (
                {
                    "volunteer_id": self.pending.volunteer_id,
                    "origin_group": self.pending.origin_group,
                }
                if self.pending
                else None
            ),
        }
