# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: canonical client-side copies of the remote data.
Pure storage, NO business rules here. Stored records are treated as
immutable; writers replace whole collections (see services/reducers.py).
"""

import copy
from datetime import datetime
from typing import Callable, Generic, Optional, TypeVar

from fieldservice.models.domain import ServiceInstance, ServiceSchedule, Volunteer

T = TypeVar("T")


class Collection(Generic[T]):
    """One canonical list (volunteers, schedules or instances)."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._items: list[T] = []

    # ── Read ──

    def get_all(self) -> list[T]:
        return list(self._items)

    def get_by_id(self, item_id: str) -> Optional[T]:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def exists(self, item_id: str) -> bool:
        return self.get_by_id(item_id) is not None

    def count(self) -> int:
        return len(self._items)

    # ── Write ──

    def replace(self, items: list[T]) -> None:
        self._items = list(items)

    def apply(self, reducer: Callable[[list[T]], list[T]]) -> list[T]:
        """Replace the collection with ``reducer(current)`` and return it."""
        self._items = list(reducer(list(self._items)))
        return self.get_all()

    # ── Snapshots ──

    def snapshot(self) -> list[T]:
        return copy.deepcopy(self._items)

    def restore(self, snapshot: list[T]) -> None:
        self._items = copy.deepcopy(snapshot)

    def clear(self) -> None:
        self._items = []


class RosterRepository:
    """In-memory canonical state: roster, templates, instances, password."""

    def __init__(self) -> None:
        self.volunteers: Collection[Volunteer] = Collection("volunteers")
        self.schedules: Collection[ServiceSchedule] = Collection("schedules")
        self.instances: Collection[ServiceInstance] = Collection("instances")
        self.leader_password: str = ""
        self.last_sync_at: Optional[datetime] = None

    @property
    def loaded(self) -> bool:
        return self.last_sync_at is not None

    def replace_all(
        self,
        volunteers: list[Volunteer],
        schedules: list[ServiceSchedule],
        instances: list[ServiceInstance],
        leader_password: str,
        synced_at: datetime,
    ) -> None:
        """Swap all four canonical fields in one step (no await in between)."""
        self.volunteers.replace(volunteers)
        self.schedules.replace(schedules)
        self.instances.replace(instances)
        self.leader_password = leader_password
        self.last_sync_at = synced_at

    def clear(self) -> None:
        self.volunteers.clear()
        self.schedules.clear()
        self.instances.clear()
        self.leader_password = ""
        self.last_sync_at = None
