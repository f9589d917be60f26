# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Dated service instances, applications and comments.

Applicants and comments are shared with other clients, so after a
successful call the server's returned list replaces the local one instead of
keeping the local guess.
"""

import asyncio
import uuid
from datetime import date, datetime, timezone
from typing import Callable, Optional

from fieldservice.core.config import settings
from fieldservice.core.errors import GatewayError, MutationFailed, RuleRefused
from fieldservice.core.logging import get_logger
from fieldservice.metrics.prometheus import APPLICATIONS_TOTAL
from fieldservice.models.domain import (
    Comment,
    ServiceForm,
    ServiceInstance,
    ServiceSchedule,
    ServiceType,
    Volunteer,
)
from fieldservice.repositories.roster_repository import RosterRepository
from fieldservice.services import calendar, reducers
from fieldservice.services.gateway_client import GatewayClient
from fieldservice.services.optimistic import optimistic_update

logger = get_logger(__name__)

TEMP_INSTANCE_PREFIX = "temp_si_"
COMMENT_PREFIX = "c_"


class InstanceService:
    """Business logic for service instances."""

    def __init__(
        self,
        roster_repo: RosterRepository,
        gateway: GatewayClient,
        now: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._repo = roster_repo
        self._gateway = gateway
        self._now = now or calendar.local_now

    # ── Queries ──

    def get_instance(self, service_id: str) -> ServiceInstance:
        instance = self._repo.instances.get_by_id(service_id)
        if instance is None:
            raise KeyError(f"No service with id '{service_id}'")
        return instance

    def services_for_date(self, day: date) -> list[ServiceInstance]:
        return calendar.services_on(self._repo.instances.get_all(), day)

    def creatable_schedules(self, day: date) -> list[ServiceSchedule]:
        return calendar.creatable_schedules(
            self._repo.schedules.get_all(), self._repo.instances.get_all(), day
        )

    def resolve_schedules(self, schedule_ids: list[str]) -> list[ServiceSchedule]:
        resolved = []
        for sid in schedule_ids:
            schedule = self._repo.schedules.get_by_id(sid)
            if schedule is None:
                raise KeyError(f"No schedule with id '{sid}'")
            resolved.append(schedule)
        return resolved

    def month_overview(self, year: int, month: int) -> dict[str, int]:
        return calendar.month_overview(self._repo.instances.get_all(), year, month)

    def is_past_date(self, day: date) -> bool:
        return calendar.is_past_date(day, self._now())

    def deadline_passed(self, instance: ServiceInstance) -> bool:
        return calendar.is_deadline_passed(instance, self._now())

    # ── Creation ──

    def _check_day_capacity(self, day: date, adding: int) -> None:
        if self.is_past_date(day):
            raise RuleRefused("Services cannot be created on a past date.")
        existing = len(self.services_for_date(day))
        cap = settings.MAX_SERVICES_PER_DAY
        if existing >= cap or existing + adding > cap:
            raise RuleRefused(f"At most {cap} services can be created per day.")

    def _new_instance(self, fields: dict, day: date, instance_id: str) -> ServiceInstance:
        fields = {k: v for k, v in fields.items() if k not in ("id", "day_of_week")}
        return ServiceInstance(
            **fields,
            id=instance_id,
            date=day.isoformat(),
            day_of_week=calendar.day_of_week(day),
            applicants=[],
            comments=[],
        )

    async def add_service_instance(self, instance: ServiceInstance) -> ServiceInstance:
        """Create path: append, then replace with the server's copy."""
        instances = self._repo.instances
        async with optimistic_update(
            instances, "saveServiceInstance", "Failed to create the service."
        ):
            instances.apply(reducers.append(instance))
            saved = await self._gateway.save_service_instance(instance)
            instances.apply(reducers.replace_id(instance.id, saved))
        logger.info("Service created: id=%s, date=%s", saved.id, saved.date)
        return saved

    async def add_service_from_form(self, day: date, form: ServiceForm) -> ServiceInstance:
        self._check_day_capacity(day, 1)
        instance = self._new_instance(
            form.model_dump(), day, f"{TEMP_INSTANCE_PREFIX}{uuid.uuid4().hex}"
        )
        return await self.add_service_instance(instance)

    async def create_from_schedule(
        self, day: date, schedules: list[ServiceSchedule]
    ) -> list[ServiceInstance]:
        """Materialize templates on ``day``; the batch succeeds or fails as a whole."""
        if not schedules:
            return []
        self._check_day_capacity(day, len(schedules))

        batch = uuid.uuid4().hex
        pending = [
            self._new_instance(s.model_dump(), day, f"{TEMP_INSTANCE_PREFIX}{batch}_{i}")
            for i, s in enumerate(schedules)
        ]
        instances = self._repo.instances
        instances.apply(reducers.append(*pending))

        results = await asyncio.gather(
            *(self._gateway.save_service_instance(p) for p in pending),
            return_exceptions=True,
        )
        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            instances.apply(reducers.remove_ids(p.id for p in pending))
            for failure in failures:
                logger.error("Batch service creation failed: %s", failure)
            if not all(isinstance(f, GatewayError) for f in failures):
                raise failures[0]
            raise MutationFailed(
                "Failed to create the services.", action="saveServiceInstance"
            ) from failures[0]

        instances.apply(reducers.replace_many({p.id: r for p, r in zip(pending, results)}))
        logger.info("Services created from schedule: date=%s, count=%d", day, len(results))
        return list(results)

    # ── Update / delete ──

    async def update_service_instance(self, instance: ServiceInstance) -> ServiceInstance:
        """Update path: the locally sent shape is kept; the server echo is ignored."""
        instances = self._repo.instances
        if not instances.exists(instance.id):
            raise KeyError(f"No service with id '{instance.id}'")
        async with optimistic_update(
            instances, "saveServiceInstance", "Failed to update the service."
        ):
            instances.apply(reducers.replace_id(instance.id, instance))
            await self._gateway.save_service_instance(instance)
        logger.info("Service updated: id=%s", instance.id)
        return instance

    async def update_service_from_form(
        self, service_id: str, form: ServiceForm
    ) -> ServiceInstance:
        existing = self.get_instance(service_id)
        merged = ServiceInstance.model_validate({**existing.model_dump(), **form.model_dump()})
        return await self.update_service_instance(merged)

    async def delete_service_instance(self, service_id: str) -> None:
        instances = self._repo.instances
        if not instances.exists(service_id):
            raise KeyError(f"No service with id '{service_id}'")
        async with optimistic_update(
            instances, "deleteServiceInstance", "Failed to delete the service."
        ):
            instances.apply(reducers.remove_id(service_id))
            await self._gateway.delete_service_instance(service_id)
        logger.info("Service deleted: id=%s", service_id)

    # ── Applications ──

    async def toggle_application(
        self, service_id: str, volunteer: Volunteer, applying: bool
    ) -> list[Volunteer]:
        """Apply or cancel; the server's applicants list is the final word."""
        instance = self.get_instance(service_id)
        if self.deadline_passed(instance):
            raise RuleRefused("The application deadline has passed.")
        already = instance.has_applicant(volunteer.id)
        if applying:
            if already:
                raise RuleRefused("You have already applied for this service.")
            if instance.type == ServiceType.PUBLIC_STAND and not volunteer.can_do_public_witnessing:
                raise RuleRefused("You are not eligible for public-stand service.")
            optimistic = reducers.add_applicant(service_id, volunteer)
        else:
            if not already:
                raise RuleRefused("You have not applied for this service.")
            optimistic = reducers.drop_applicant(service_id, volunteer.id)

        instances = self._repo.instances
        failure = (
            "An error occurred while applying. Please try again."
            if applying
            else "An error occurred while cancelling."
        )
        async with optimistic_update(instances, "toggleApplication", failure):
            instances.apply(optimistic)
            applicants = await self._gateway.toggle_application(service_id, volunteer, applying)
            instances.apply(reducers.with_applicants(service_id, applicants))

        APPLICATIONS_TOTAL.labels(direction="apply" if applying else "cancel").inc()
        logger.info(
            "Application %s: service=%s, volunteer=%s, applicants=%d",
            "added" if applying else "cancelled",
            service_id,
            volunteer.id,
            len(applicants),
        )
        return applicants

    # ── Comments (failures roll back silently) ──

    def _current_comments(self, service_id: str) -> list[Comment]:
        instance = self._repo.instances.get_by_id(service_id)
        return list(instance.comments) if instance else []

    def _owned_comment(self, instance: ServiceInstance, comment_id: str, actor_id: str) -> Comment:
        comment = next((c for c in instance.comments if c.id == comment_id), None)
        if comment is None:
            raise KeyError(f"No comment with id '{comment_id}'")
        if comment.author_id != actor_id:
            raise RuleRefused("Only the author can change this comment.")
        return comment

    async def add_comment(self, service_id: str, author: Volunteer, text: str) -> list[Comment]:
        self.get_instance(service_id)
        comment = Comment(
            id=f"{COMMENT_PREFIX}{uuid.uuid4().hex}",
            author_id=author.id,
            author_name=author.name,
            text=text,
            created_at=self._now()
            .astimezone(timezone.utc)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z"),
        )
        instances = self._repo.instances
        async with optimistic_update(instances, "addComment"):
            instances.apply(reducers.add_comment(service_id, comment))
            comments = await self._gateway.add_comment(service_id, comment)
            instances.apply(reducers.with_comments(service_id, comments))
        return self._current_comments(service_id)

    async def update_comment(
        self, service_id: str, comment_id: str, text: str, actor_id: str
    ) -> list[Comment]:
        self._owned_comment(self.get_instance(service_id), comment_id, actor_id)
        instances = self._repo.instances
        async with optimistic_update(instances, "updateComment"):
            instances.apply(reducers.edit_comment(service_id, comment_id, text))
            comments = await self._gateway.update_comment(service_id, comment_id, text)
            instances.apply(reducers.with_comments(service_id, comments))
        return self._current_comments(service_id)

    async def delete_comment(
        self, service_id: str, comment_id: str, actor_id: str
    ) -> list[Comment]:
        self._owned_comment(self.get_instance(service_id), comment_id, actor_id)
        instances = self._repo.instances
        async with optimistic_update(instances, "deleteComment"):
            instances.apply(reducers.drop_comment(service_id, comment_id))
            comments = await self._gateway.delete_comment(service_id, comment_id)
            instances.apply(reducers.with_comments(service_id, comments))
        return self._current_comments(service_id)
