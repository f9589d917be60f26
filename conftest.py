# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Shared fixtures: an in-memory stand-in for the spreadsheet endpoint, served
through ``httpx.MockTransport``, and the service graph wired to it.
"""

import asyncio
import copy
import json
from dataclasses import dataclass
from datetime import datetime
from zoneinfo import ZoneInfo

import httpx
import pytest

from fieldservice.core.config import settings
from fieldservice.repositories.preferences_repository import PreferencesRepository
from fieldservice.repositories.roster_repository import RosterRepository
from fieldservice.services.assignment_service import AssignmentService
from fieldservice.services.gateway_client import GatewayClient
from fieldservice.services.instance_service import InstanceService
from fieldservice.services.roster_service import RosterService
from fieldservice.services.session_service import SessionService
from fieldservice.services.sync_service import SyncService

# 2099-01-03 is a Saturday, 2099-01-04 a Sunday
SATURDAY = "2099-01-03"
SUNDAY = "2099-01-04"
FIXED_NOW = datetime(2098, 12, 20, 9, 0, tzinfo=ZoneInfo(settings.TIMEZONE))


def volunteer(vid, name, gender="brother", public=True):
    return {"id": vid, "name": name, "gender": gender, "canDoPublicWitnessing": public}


def instance(sid, date, applicants=(), time="10:00", type_="door-to-door", **extra):
    record = {
        "id": sid,
        "date": date,
        "dayOfWeek": 6,
        "time": time,
        "leader": "Kim",
        "phoneNumber": "010-0000-0000",
        "type": type_,
        "location": "Station",
        "deadlineDayOffset": 1,
        "deadlineTime": "18:00",
        "applicants": list(applicants),
        "comments": [],
    }
    record.update(extra)
    return record


class FakeSheetBackend:
    """Answers gateway actions from in-memory tables.

    ``fail`` maps an action to the ``message`` of a ``success: false`` reply,
    ``http_status`` maps an action to a bare HTTP error status and ``holds``
    maps an action to an ``asyncio.Event`` the reply waits for.
    """

    def __init__(self, volunteers=None, schedules=None, instances=None, leader_password="1234"):
        self.volunteers = list(volunteers or [])
        self.schedules = list(schedules or [])
        self.instances = list(instances or [])
        self.leader_password = leader_password
        self.calls: list[tuple[str, dict]] = []
        self.fail: dict[str, str] = {}
        self.http_status: dict[str, int] = {}
        self.holds: dict[str, asyncio.Event] = {}
        self._seq = 100

    @classmethod
    def seeded(cls) -> "FakeSheetBackend":
        alice = volunteer("v1", "Alice")
        bob = volunteer("v2", "Bob")
        carol = volunteer("v3", "Carol", gender="sister", public=False)
        return cls(
            volunteers=[alice, bob, carol, volunteer("v4", "Dave")],
            schedules=[
                {
                    "id": "sch1", "dayOfWeek": 6, "time": "10:00", "leader": "Kim",
                    "phoneNumber": "", "type": "door-to-door", "location": "Station",
                    "deadlineDayOffset": 1, "deadlineTime": "18:00",
                },
                {
                    "id": "sch2", "dayOfWeek": 6, "time": "14:00", "leader": "Lee",
                    "phoneNumber": "", "type": "public-stand", "location": "Park",
                    "deadlineDayOffset": 0, "deadlineTime": "12:00",
                },
                {
                    "id": "sch3", "dayOfWeek": 7, "time": "09:00", "leader": "Park",
                    "phoneNumber": "", "type": "public-stand&door-to-door", "location": "Market",
                    "deadlineDayOffset": 1, "deadlineTime": "2024-01-01T00:00:00.000Z",
                },
            ],
            instances=[instance("S1", SATURDAY, applicants=[alice, bob, carol])],
        )

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def actions(self) -> list[str]:
        return [action for action, _ in self.calls]

    def _next_id(self, prefix: str) -> str:
        self._seq += 1
        return f"{prefix}{self._seq}"

    def _instance(self, service_id: str) -> dict:
        return next(s for s in self.instances if s["id"] == service_id)

    async def handle(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        action = body["action"]
        payload = body.get("payload") or {}
        self.calls.append((action, payload))
        if action in self.holds:
            await self.holds[action].wait()
        if action in self.http_status:
            return httpx.Response(self.http_status[action], text="error")
        if action in self.fail:
            return httpx.Response(200, json={"success": False, "message": self.fail[action]})
        data = getattr(self, f"_do_{action}")(payload)
        return httpx.Response(200, json={"success": True, "data": copy.deepcopy(data)})

    # ── Actions ──

    def _do_fetchData(self, payload):
        return {
            "volunteers": self.volunteers,
            "serviceSchedule": self.schedules,
            "serviceInstances": self.instances,
            "leaderPassword": self.leader_password,
        }

    def _do_updateLeaderPassword(self, payload):
        self.leader_password = payload["newPassword"]

    def _do_addVolunteer(self, payload):
        record = {"id": self._next_id("v"), **payload}
        self.volunteers.append(record)
        return record

    def _do_removeVolunteer(self, payload):
        self.volunteers = [v for v in self.volunteers if v["id"] != payload["id"]]

    def _do_saveSchedule(self, payload):
        record = dict(payload)
        if record.get("id"):
            self.schedules = [record if s["id"] == record["id"] else s for s in self.schedules]
        else:
            record["id"] = self._next_id("sch")
            self.schedules.append(record)
        return record

    def _do_removeSchedule(self, payload):
        self.schedules = [s for s in self.schedules if s["id"] != payload["id"]]

    def _do_saveServiceInstance(self, payload):
        record = dict(payload)
        if record["id"].startswith("temp_"):
            record["id"] = self._next_id("si")
            self.instances.append(record)
        else:
            self.instances = [record if s["id"] == record["id"] else s for s in self.instances]
        return record

    def _do_deleteServiceInstance(self, payload):
        self.instances = [s for s in self.instances if s["id"] != payload["id"]]

    def _do_toggleApplication(self, payload):
        target = self._instance(payload["serviceId"])
        person = payload["volunteer"]
        others = [v for v in target["applicants"] if v["id"] != person["id"]]
        target["applicants"] = others + [person] if payload["isApplying"] else others
        return target["applicants"]

    def _do_addComment(self, payload):
        target = self._instance(payload["serviceId"])
        target["comments"] = target["comments"] + [payload["comment"]]
        return target["comments"]

    def _do_updateComment(self, payload):
        target = self._instance(payload["serviceId"])
        target["comments"] = [
            {**c, "text": payload["newText"]} if c["id"] == payload["commentId"] else c
            for c in target["comments"]
        ]
        return target["comments"]

    def _do_deleteComment(self, payload):
        target = self._instance(payload["serviceId"])
        target["comments"] = [c for c in target["comments"] if c["id"] != payload["commentId"]]
        return target["comments"]


@dataclass
class Stack:
    backend: FakeSheetBackend
    repo: RosterRepository
    gateway: GatewayClient
    sync: SyncService
    sessions: SessionService
    roster: RosterService
    instances: InstanceService
    assignments: AssignmentService


def build_stack(backend: FakeSheetBackend, prefs_path: str, now=lambda: FIXED_NOW) -> Stack:
    repo = RosterRepository()
    gateway = GatewayClient(httpx.AsyncClient(transport=backend.transport()), url="https://sheet.test/exec")
    sync = SyncService(roster_repo=repo, gateway=gateway, poll_interval=3600)
    sessions = SessionService(repo, PreferencesRepository(prefs_path), sync)
    roster = RosterService(repo, gateway, sessions)
    instances = InstanceService(repo, gateway, now=now)
    return Stack(
        backend=backend,
        repo=repo,
        gateway=gateway,
        sync=sync,
        sessions=sessions,
        roster=roster,
        instances=instances,
        assignments=AssignmentService(instances),
    )


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def backend():
    return FakeSheetBackend.seeded()


@pytest.fixture
def stack(backend, tmp_path):
    return build_stack(backend, str(tmp_path / "prefs.json"))
