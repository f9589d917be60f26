# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Roster, schedule templates and the leader password.
Every mutation is applied locally first, then confirmed remotely; failures
restore the collection snapshot and raise MutationFailed.
"""

import uuid

from fieldservice.core.config import settings
from fieldservice.core.errors import GatewayError, MutationFailed, RuleRefused, ValidationFailed
from fieldservice.core.logging import get_logger
from fieldservice.models.domain import Gender, ServiceSchedule, Volunteer
from fieldservice.repositories.roster_repository import RosterRepository
from fieldservice.services import reducers
from fieldservice.services.gateway_client import GatewayClient
from fieldservice.services.optimistic import optimistic_update
from fieldservice.services.session_service import SessionService

logger = get_logger(__name__)

TEMP_VOLUNTEER_PREFIX = "temp_"
TEMP_SCHEDULE_PREFIX = "temp_sched_"


def temp_id(prefix: str) -> str:
    return f"{prefix}{uuid.uuid4().hex}"


class RosterService:
    """Leader-side management of volunteers, templates and the password."""

    def __init__(
        self,
        roster_repo: RosterRepository,
        gateway: GatewayClient,
        session_service: SessionService,
    ) -> None:
        self._repo = roster_repo
        self._gateway = gateway
        self._sessions = session_service

    # ── Queries ──

    def list_volunteers(self) -> list[Volunteer]:
        return sorted(self._repo.volunteers.get_all(), key=lambda v: v.name)

    def list_schedules(self) -> list[ServiceSchedule]:
        return sorted(
            self._repo.schedules.get_all(), key=lambda s: (s.day_of_week, s.time)
        )

    # ── Volunteers ──

    async def add_volunteer(
        self, name: str, gender: Gender, can_do_public_witnessing: bool
    ) -> Volunteer:
        """Insert under a temporary id, then swap in the server's record."""
        name = name.strip()
        if not name:
            raise ValidationFailed("Volunteer name must not be empty.")
        tid = temp_id(TEMP_VOLUNTEER_PREFIX)
        pending = Volunteer(
            id=tid, name=name, gender=gender, can_do_public_witnessing=can_do_public_witnessing
        )
        volunteers = self._repo.volunteers
        volunteers.apply(reducers.append(pending))
        try:
            saved = await self._gateway.add_volunteer(
                name, Gender(gender).value, can_do_public_witnessing
            )
        except GatewayError as exc:
            volunteers.apply(reducers.remove_id(tid))
            logger.error("Adding volunteer failed: name=%s, error=%s", name, exc.message)
            raise MutationFailed("Failed to add the volunteer.", action="addVolunteer") from exc
        volunteers.apply(reducers.replace_id(tid, saved))
        logger.info("Volunteer added: id=%s", saved.id)
        return saved

    async def remove_volunteer(self, volunteer_id: str) -> None:
        if volunteer_id == self._sessions.current_user_id:
            raise RuleRefused("You cannot remove yourself.")
        if not self._repo.volunteers.exists(volunteer_id):
            raise KeyError(f"No volunteer with id '{volunteer_id}'")
        async with optimistic_update(
            self._repo.volunteers, "removeVolunteer", "Failed to remove the volunteer."
        ):
            self._repo.volunteers.apply(reducers.remove_id(volunteer_id))
            await self._gateway.remove_volunteer(volunteer_id)
        logger.info("Volunteer removed: id=%s", volunteer_id)

    # ── Schedule templates ──

    async def save_schedule(self, schedule: ServiceSchedule) -> ServiceSchedule:
        """Create when ``schedule.id`` is empty, otherwise update in place."""
        schedules = self._repo.schedules
        if schedule.id:
            if not schedules.exists(schedule.id):
                raise KeyError(f"No schedule with id '{schedule.id}'")
            async with optimistic_update(
                schedules, "saveSchedule", "Failed to save the schedule."
            ):
                schedules.apply(reducers.replace_id(schedule.id, schedule))
                saved = await self._gateway.save_schedule(schedule)
                schedules.apply(reducers.replace_id(saved.id, saved))
            logger.info("Schedule updated: id=%s", saved.id)
            return saved

        tid = temp_id(TEMP_SCHEDULE_PREFIX)
        async with optimistic_update(schedules, "saveSchedule", "Failed to save the schedule."):
            schedules.apply(reducers.append(schedule.model_copy(update={"id": tid})))
            saved = await self._gateway.save_schedule(schedule)
            schedules.apply(reducers.replace_id(tid, saved))
        logger.info("Schedule created: id=%s", saved.id)
        return saved

    async def remove_schedule(self, schedule_id: str) -> None:
        if not self._repo.schedules.exists(schedule_id):
            raise KeyError(f"No schedule with id '{schedule_id}'")
        async with optimistic_update(
            self._repo.schedules, "removeSchedule", "Failed to delete the schedule."
        ):
            self._repo.schedules.apply(reducers.remove_id(schedule_id))
            await self._gateway.remove_schedule(schedule_id)
        logger.info("Schedule removed: id=%s", schedule_id)

    # ── Leader password ──

    async def update_leader_password(self, current_password: str, new_password: str) -> None:
        """Validate locally, set optimistically, restore the exact old value on failure."""
        if current_password != self._repo.leader_password:
            raise ValidationFailed("The current password does not match.")
        if len(new_password) < settings.MIN_PASSWORD_LENGTH:
            raise ValidationFailed(
                f"The new password must be at least {settings.MIN_PASSWORD_LENGTH} characters."
            )
        original = self._repo.leader_password
        self._repo.leader_password = new_password
        try:
            await self._gateway.update_leader_password(new_password)
        except GatewayError as exc:
            self._repo.leader_password = original
            logger.error("Leader password update failed: %s", exc.message)
            raise MutationFailed(
                "The password could not be changed because of a server error.",
                action="updateLeaderPassword",
            ) from exc
        logger.info("Leader password updated")
