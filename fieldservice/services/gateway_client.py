# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Remote gateway client.

Every remote operation is one POST of ``{"action", "payload"}`` to a single
endpoint, answered with ``{"success", "data", "message"}``. Calls are
single-attempt: nothing here retries.
"""

import json
import time
from typing import Any, Optional

import httpx
from pydantic import TypeAdapter, ValidationError

from fieldservice.core.config import settings
from fieldservice.core.errors import GatewayApplicationError, GatewayTransportError
from fieldservice.core.logging import get_logger
from fieldservice.metrics.prometheus import GATEWAY_CALLS, GATEWAY_LATENCY
from fieldservice.models.domain import (
    Comment,
    ServiceInstance,
    ServiceSchedule,
    Volunteer,
    normalize_day_of_week,
)

logger = get_logger(__name__)

_VOLUNTEER = TypeAdapter(Volunteer)
_SCHEDULE = TypeAdapter(ServiceSchedule)
_INSTANCE = TypeAdapter(ServiceInstance)
_VOLUNTEER_LIST = TypeAdapter(list[Volunteer])
_COMMENT_LIST = TypeAdapter(list[Comment])


def _parse(adapter: TypeAdapter, data: Any, action: str) -> Any:
    """Validate an echoed record; a malformed echo counts as a failed call."""
    if isinstance(data, dict):
        data = normalize_day_of_week(data)
    try:
        return adapter.validate_python(data)
    except ValidationError as exc:
        logger.error(
            "Gateway returned malformed data: action=%s", action, extra={"action": action}
        )
        raise GatewayApplicationError(
            f"Malformed response for {action}: {exc.error_count()} invalid field(s)",
            action=action,
        ) from exc


class GatewayClient:
    """Typed wrapper over the spreadsheet RPC endpoint."""

    def __init__(self, http_client: httpx.AsyncClient, url: Optional[str] = None) -> None:
        self._client = http_client
        self._url = url or settings.GATEWAY_URL

    async def call(self, action: str, payload: Optional[dict[str, Any]] = None) -> Any:
        """POST one action and return the envelope's ``data``.

        Raises GatewayTransportError on network failure, non-2xx status or an
        unparseable body, and GatewayApplicationError when ``success`` is false.
        """
        body: dict[str, Any] = {"action": action}
        if payload is not None:
            body["payload"] = payload

        start = time.monotonic()
        try:
            # text/plain keeps the Apps Script endpoint free of CORS preflight
            resp = await self._client.post(
                self._url,
                content=json.dumps(body, ensure_ascii=False).encode("utf-8"),
                headers={"Content-Type": "text/plain;charset=utf-8"},
            )
        except httpx.RequestError as exc:
            GATEWAY_CALLS.labels(action=action, outcome="transport_error").inc()
            logger.error(
                "Gateway unreachable: action=%s, error=%s", action, exc, extra={"action": action}
            )
            raise GatewayTransportError(
                f"Remote endpoint unreachable: {exc}", action=action
            ) from exc
        finally:
            GATEWAY_LATENCY.labels(action=action).observe(time.monotonic() - start)

        if not resp.is_success:
            GATEWAY_CALLS.labels(action=action, outcome="http_error").inc()
            logger.error(
                "Gateway HTTP error: action=%s, status=%d",
                action,
                resp.status_code,
                extra={"action": action},
            )
            raise GatewayTransportError(
                f"Server responded with status {resp.status_code}",
                action=action,
                status_code=resp.status_code,
            )

        try:
            envelope = resp.json()
        except ValueError as exc:
            GATEWAY_CALLS.labels(action=action, outcome="http_error").inc()
            logger.error(
                "Gateway returned non-JSON body: action=%s", action, extra={"action": action}
            )
            raise GatewayTransportError(
                "Server returned a malformed response",
                action=action,
                status_code=resp.status_code,
            ) from exc

        if not isinstance(envelope, dict) or not envelope.get("success"):
            message = None
            if isinstance(envelope, dict):
                message = envelope.get("message")
            GATEWAY_CALLS.labels(action=action, outcome="rejected").inc()
            logger.warning(
                "Gateway rejected action=%s: %s", action, message, extra={"action": action}
            )
            raise GatewayApplicationError(
                message or "The remote API reported an internal error.", action=action
            )

        GATEWAY_CALLS.labels(action=action, outcome="ok").inc()
        return envelope.get("data")

    # ── Reads ──

    async def fetch_data(self) -> dict[str, Any]:
        """Raw ``{volunteers, serviceSchedule, serviceInstances, leaderPassword}``."""
        data = await self.call("fetchData")
        if not isinstance(data, dict):
            raise GatewayApplicationError("fetchData returned no state", action="fetchData")
        return data

    # ── Leader password ──

    async def update_leader_password(self, new_password: str) -> None:
        await self.call("updateLeaderPassword", {"newPassword": new_password})

    # ── Volunteers ──

    async def add_volunteer(
        self, name: str, gender: str, can_do_public_witnessing: bool
    ) -> Volunteer:
        data = await self.call(
            "addVolunteer",
            {
                "name": name,
                "gender": gender,
                "canDoPublicWitnessing": can_do_public_witnessing,
            },
        )
        return _parse(_VOLUNTEER, data, "addVolunteer")

    async def remove_volunteer(self, volunteer_id: str) -> None:
        await self.call("removeVolunteer", {"id": volunteer_id})

    # ── Schedules ──

    async def save_schedule(self, schedule: ServiceSchedule) -> ServiceSchedule:
        data = await self.call("saveSchedule", schedule.to_wire())
        return _parse(_SCHEDULE, data, "saveSchedule")

    async def remove_schedule(self, schedule_id: str) -> None:
        await self.call("removeSchedule", {"id": schedule_id})

    # ── Service instances ──

    async def save_service_instance(self, instance: ServiceInstance) -> ServiceInstance:
        data = await self.call("saveServiceInstance", instance.to_wire())
        return _parse(_INSTANCE, data, "saveServiceInstance")

    async def delete_service_instance(self, instance_id: str) -> None:
        await self.call("deleteServiceInstance", {"id": instance_id})

    # ── Server-merged sub-collections ──

    async def toggle_application(
        self, service_id: str, volunteer: Volunteer, is_applying: bool
    ) -> list[Volunteer]:
        """Returns the authoritative applicants list after the change."""
        data = await self.call(
            "toggleApplication",
            {
                "serviceId": service_id,
                "volunteer": volunteer.to_wire(),
                "isApplying": is_applying,
            },
        )
        return _parse(_VOLUNTEER_LIST, data or [], "toggleApplication")

    async def add_comment(self, service_id: str, comment: Comment) -> list[Comment]:
        data = await self.call(
            "addComment", {"serviceId": service_id, "comment": comment.to_wire()}
        )
        return _parse(_COMMENT_LIST, data or [], "addComment")

    async def update_comment(
        self, service_id: str, comment_id: str, new_text: str
    ) -> list[Comment]:
        data = await self.call(
            "updateComment",
            {"serviceId": service_id, "commentId": comment_id, "newText": new_text},
        )
        return _parse(_COMMENT_LIST, data or [], "updateComment")

    async def delete_comment(self, service_id: str, comment_id: str) -> list[Comment]:
        data = await self.call(
            "deleteComment", {"serviceId": service_id, "commentId": comment_id}
        )
        return _parse(_COMMENT_LIST, data or [], "deleteComment")
