# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Tests for state synchronization, sessions and leader roster management:
reloads, polling, logins, optimistic updates and their rollbacks.
Run: pytest test_sync.py -v
"""

import asyncio
from unittest.mock import patch

import pytest

from fieldservice.core.errors import (
    GatewayApplicationError,
    GatewayTransportError,
    MutationFailed,
    RuleRefused,
    ValidationFailed,
)
from fieldservice.models.domain import Gender, Role, ServiceSchedule, ServiceType
from fieldservice.services.optimistic import optimistic_update
from fieldservice.services.roster_service import TEMP_VOLUNTEER_PREFIX
from fieldservice.services.sync_service import FOREGROUND_LOAD_ERROR


async def wait_for_call(backend, action, count=1):
    for _ in range(200):
        if backend.actions().count(action) >= count:
            return
        await asyncio.sleep(0.01)
    raise AssertionError(f"{action} was never sent")


def full_state(repo):
    return (
        repo.volunteers.snapshot(),
        repo.schedules.snapshot(),
        repo.instances.snapshot(),
        repo.leader_password,
    )


# ============================================
# Reload
# ============================================
class TestReload:
    @pytest.mark.anyio
    async def test_foreground_reload_populates_repository(self, stack):
        assert await stack.sync.reload() is True
        assert stack.repo.volunteers.count() == 4
        assert stack.repo.schedules.count() == 3
        assert stack.repo.instances.get_by_id("S1") is not None
        assert stack.repo.leader_password == "1234"
        assert stack.repo.loaded

    @pytest.mark.anyio
    async def test_sunday_seven_becomes_zero(self, stack, backend):
        backend.instances[0]["dayOfWeek"] = 7
        await stack.sync.reload()
        assert stack.repo.schedules.get_by_id("sch3").day_of_week == 0
        assert stack.repo.instances.get_by_id("S1").day_of_week == 0

    @pytest.mark.anyio
    async def test_iso_deadline_time_normalized(self, stack):
        await stack.sync.reload()
        assert stack.repo.schedules.get_by_id("sch3").deadline_time == "09:00"

    @pytest.mark.anyio
    async def test_numeric_password_stored_as_string(self, stack, backend):
        backend.leader_password = 1234
        await stack.sync.reload()
        assert stack.repo.leader_password == "1234"

    @pytest.mark.anyio
    async def test_foreground_failure_sets_error(self, stack, backend):
        backend.http_status["fetchData"] = 503
        with pytest.raises(GatewayTransportError):
            await stack.sync.reload()
        assert stack.sync.error == FOREGROUND_LOAD_ERROR
        assert not stack.sync.is_loading
        assert not stack.repo.loaded

    @pytest.mark.anyio
    async def test_successful_retry_clears_error(self, stack, backend):
        backend.fail["fetchData"] = "quota"
        with pytest.raises(GatewayApplicationError):
            await stack.sync.reload()
        del backend.fail["fetchData"]
        assert await stack.sync.reload() is True
        assert stack.sync.error is None

    @pytest.mark.anyio
    async def test_background_failure_is_swallowed(self, stack, backend):
        await stack.sync.reload()
        before = full_state(stack.repo)
        backend.fail["fetchData"] = "quota"
        assert await stack.sync.reload(background=True) is False
        assert stack.sync.error is None
        assert full_state(stack.repo) == before

    @pytest.mark.anyio
    async def test_malformed_state_is_a_failed_load(self, stack, backend):
        backend.volunteers.append({"name": "no id"})
        with pytest.raises(GatewayApplicationError):
            await stack.sync.reload()

    @pytest.mark.anyio
    async def test_blank_rows_are_a_failed_load(self, stack, backend):
        backend.instances.append(None)
        backend.schedules.append(None)
        with pytest.raises(GatewayApplicationError):
            await stack.sync.reload()
        assert stack.sync.error == FOREGROUND_LOAD_ERROR
        assert not stack.repo.loaded

    @pytest.mark.anyio
    async def test_background_reload_overwrites_collections(self, stack, backend):
        await stack.sync.reload()
        backend.volunteers.append({"id": "v9", "name": "Zed", "gender": "brother"})
        await stack.sync.reload(background=True)
        assert stack.repo.volunteers.exists("v9")

    @pytest.mark.anyio
    async def test_status_reports_flags(self, stack):
        await stack.sync.reload()
        status = stack.sync.status()
        assert status["is_loading"] is False
        assert status["last_sync_at"] is not None
        assert status["polling"] is False


# ============================================
# Polling
# ============================================
class TestPolling:
    @pytest.mark.anyio
    async def test_start_is_idempotent_and_stop_cancels(self, stack):
        stack.sync.start_polling()
        task = stack.sync._poll_task
        stack.sync.start_polling()
        assert stack.sync._poll_task is task
        assert stack.sync.polling
        await stack.sync.stop_polling()
        assert not stack.sync.polling
        assert task.cancelled()

    @pytest.mark.anyio
    async def test_poll_loop_reloads_in_background(self, stack, backend):
        stack.sync._poll_interval = 0
        stack.sync.start_polling()
        await wait_for_call(backend, "fetchData", count=2)
        await stack.sync.stop_polling()
        assert stack.repo.loaded

    @pytest.mark.anyio
    async def test_blank_row_keeps_polling_and_state(self, stack, backend):
        await stack.sync.reload()
        before = full_state(stack.repo)
        backend.instances.append(None)
        stack.sync._poll_interval = 0
        stack.sync.start_polling()
        await wait_for_call(backend, "fetchData", count=4)
        assert stack.sync.polling
        assert full_state(stack.repo) == before
        await stack.sync.stop_polling()

    @pytest.mark.anyio
    async def test_unexpected_error_does_not_stop_polling(self, stack):
        stack.sync._poll_interval = 0
        calls = []

        async def crash(background=False):
            calls.append(background)
            raise RuntimeError("boom")

        with patch.object(stack.sync, "reload", side_effect=crash):
            stack.sync.start_polling()
            for _ in range(200):
                if len(calls) >= 3:
                    break
                await asyncio.sleep(0.01)
            assert stack.sync.polling
            await stack.sync.stop_polling()
        assert calls[:3] == [True, True, True]


# ============================================
# Sessions
# ============================================
class TestSessions:
    @pytest.mark.anyio
    async def test_login_before_load_refused(self, stack):
        with pytest.raises(RuleRefused):
            await stack.sessions.login_leader("")

    @pytest.mark.anyio
    async def test_volunteer_login_remembers_name(self, stack):
        await stack.sync.reload()
        session = await stack.sessions.login_volunteer("  Alice ")
        assert session.role == Role.VOLUNTEER
        assert session.user.id == "v1"
        assert stack.sessions.remembered_name() == "Alice"
        assert stack.sync.polling
        await stack.sessions.logout()
        assert stack.sessions.current is None
        assert not stack.sync.polling

    @pytest.mark.anyio
    async def test_empty_name_is_validation_failure(self, stack):
        await stack.sync.reload()
        with pytest.raises(ValidationFailed):
            await stack.sessions.login_volunteer("   ")

    @pytest.mark.anyio
    async def test_unknown_name_refused(self, stack):
        await stack.sync.reload()
        with pytest.raises(RuleRefused):
            await stack.sessions.login_volunteer("Mallory")
        assert stack.sessions.current is None

    @pytest.mark.anyio
    async def test_leader_login(self, stack):
        await stack.sync.reload()
        with pytest.raises(RuleRefused):
            await stack.sessions.login_leader("0000")
        session = await stack.sessions.login_leader("1234")
        assert session.is_leader
        assert stack.sessions.current_user_id == "leader_user_account"
        await stack.sessions.logout()


# ============================================
# Optimistic update helper
# ============================================
class TestOptimisticUpdate:
    @pytest.mark.anyio
    async def test_failure_restores_snapshot_and_raises(self, stack):
        await stack.sync.reload()
        before = stack.repo.volunteers.snapshot()
        with pytest.raises(MutationFailed) as exc_info:
            async with optimistic_update(stack.repo.volunteers, "removeVolunteer", "Failed."):
                stack.repo.volunteers.replace([])
                raise GatewayTransportError("down", action="removeVolunteer")
        assert exc_info.value.message == "Failed."
        assert stack.repo.volunteers.snapshot() == before

    @pytest.mark.anyio
    async def test_silent_failure_is_swallowed(self, stack):
        await stack.sync.reload()
        before = stack.repo.instances.snapshot()
        async with optimistic_update(stack.repo.instances, "addComment"):
            stack.repo.instances.replace([])
            raise GatewayApplicationError("nope", action="addComment")
        assert stack.repo.instances.snapshot() == before

    @pytest.mark.anyio
    async def test_rollback_logged_with_action(self, stack):
        await stack.sync.reload()
        with patch("fieldservice.services.optimistic.logger") as log:
            async with optimistic_update(stack.repo.instances, "addComment"):
                raise GatewayApplicationError("nope", action="addComment")
            with pytest.raises(MutationFailed):
                async with optimistic_update(stack.repo.volunteers, "removeVolunteer", "Failed."):
                    raise GatewayTransportError("down", action="removeVolunteer")
        assert log.warning.call_args.kwargs["extra"] == {"action": "addComment"}
        assert log.error.call_args.kwargs["extra"] == {"action": "removeVolunteer"}

    @pytest.mark.anyio
    async def test_other_errors_propagate_untouched(self, stack):
        await stack.sync.reload()
        with pytest.raises(RuntimeError):
            async with optimistic_update(stack.repo.volunteers, "removeVolunteer", "Failed."):
                stack.repo.volunteers.replace([])
                raise RuntimeError("bug")
        assert stack.repo.volunteers.count() == 0


# ============================================
# Leader password
# ============================================
class TestLeaderPassword:
    @pytest.mark.anyio
    async def test_current_mismatch_rejected_locally(self, stack, backend):
        await stack.sync.reload()
        with pytest.raises(ValidationFailed):
            await stack.roster.update_leader_password("0000", "5678")
        assert "updateLeaderPassword" not in backend.actions()

    @pytest.mark.anyio
    async def test_too_short_rejected_locally(self, stack, backend):
        await stack.sync.reload()
        with pytest.raises(ValidationFailed):
            await stack.roster.update_leader_password("1234", "56")
        assert "updateLeaderPassword" not in backend.actions()
        assert stack.repo.leader_password == "1234"

    @pytest.mark.anyio
    async def test_optimistic_then_confirmed(self, stack, backend):
        await stack.sync.reload()
        backend.holds["updateLeaderPassword"] = asyncio.Event()
        task = asyncio.create_task(stack.roster.update_leader_password("1234", "5678"))
        await wait_for_call(backend, "updateLeaderPassword")
        assert stack.repo.leader_password == "5678"
        backend.holds["updateLeaderPassword"].set()
        await task
        assert stack.repo.leader_password == "5678"
        assert backend.leader_password == "5678"

    @pytest.mark.anyio
    async def test_remote_failure_reverts(self, stack, backend):
        await stack.sync.reload()
        backend.fail["updateLeaderPassword"] = "denied"
        with pytest.raises(MutationFailed):
            await stack.roster.update_leader_password("1234", "5678")
        assert stack.repo.leader_password == "1234"


# ============================================
# Volunteers
# ============================================
class TestVolunteers:
    @pytest.mark.anyio
    async def test_add_shows_temp_record_until_confirmed(self, stack, backend):
        await stack.sync.reload()
        backend.holds["addVolunteer"] = asyncio.Event()
        task = asyncio.create_task(stack.roster.add_volunteer("Eve", Gender.SISTER, True))
        await wait_for_call(backend, "addVolunteer")
        pending = [v for v in stack.repo.volunteers.get_all() if v.name == "Eve"]
        assert len(pending) == 1
        assert pending[0].id.startswith(TEMP_VOLUNTEER_PREFIX)
        backend.holds["addVolunteer"].set()
        saved = await task
        assert not saved.id.startswith(TEMP_VOLUNTEER_PREFIX)
        names = [v for v in stack.repo.volunteers.get_all() if v.name == "Eve"]
        assert [v.id for v in names] == [saved.id]

    @pytest.mark.anyio
    async def test_add_failure_removes_temp_record(self, stack, backend):
        await stack.sync.reload()
        before = stack.repo.volunteers.snapshot()
        backend.fail["addVolunteer"] = "full"
        with pytest.raises(MutationFailed):
            await stack.roster.add_volunteer("Eve", Gender.SISTER, True)
        assert stack.repo.volunteers.snapshot() == before

    @pytest.mark.anyio
    async def test_add_blank_name_rejected(self, stack, backend):
        await stack.sync.reload()
        with pytest.raises(ValidationFailed):
            await stack.roster.add_volunteer("  ", Gender.BROTHER, False)
        assert "addVolunteer" not in backend.actions()

    @pytest.mark.anyio
    async def test_remove_rollback_is_deep_equal(self, stack, backend):
        await stack.sync.reload()
        before = full_state(stack.repo)
        backend.http_status["removeVolunteer"] = 500
        with pytest.raises(MutationFailed):
            await stack.roster.remove_volunteer("v2")
        assert full_state(stack.repo) == before

    @pytest.mark.anyio
    async def test_remove_self_refused(self, stack, backend):
        await stack.sync.reload()
        await stack.sessions.login_volunteer("Alice")
        with pytest.raises(RuleRefused):
            await stack.roster.remove_volunteer("v1")
        assert "removeVolunteer" not in backend.actions()
        await stack.sessions.logout()

    @pytest.mark.anyio
    async def test_remove_unknown(self, stack):
        await stack.sync.reload()
        with pytest.raises(KeyError):
            await stack.roster.remove_volunteer("nobody")

    @pytest.mark.anyio
    async def test_list_sorted_by_name(self, stack):
        await stack.sync.reload()
        assert [v.name for v in stack.roster.list_volunteers()] == ["Alice", "Bob", "Carol", "Dave"]


# ============================================
# Schedule templates
# ============================================
class TestSchedules:
    @pytest.mark.anyio
    async def test_create_replaces_temp_with_echo(self, stack):
        await stack.sync.reload()
        saved = await stack.roster.save_schedule(
            ServiceSchedule(day_of_week=3, time="19:00", type=ServiceType.DOOR_TO_DOOR, location="Hall")
        )
        assert saved.id.startswith("sch")
        assert stack.repo.schedules.get_by_id(saved.id) == saved
        assert not any(s.id.startswith("temp_") for s in stack.repo.schedules.get_all())

    @pytest.mark.anyio
    async def test_update_in_place(self, stack):
        await stack.sync.reload()
        original = stack.repo.schedules.get_by_id("sch1")
        await stack.roster.save_schedule(original.model_copy(update={"location": "Harbor"}))
        assert stack.repo.schedules.get_by_id("sch1").location == "Harbor"
        assert stack.repo.schedules.count() == 3

    @pytest.mark.anyio
    async def test_update_failure_restores(self, stack, backend):
        await stack.sync.reload()
        before = stack.repo.schedules.snapshot()
        backend.fail["saveSchedule"] = "nope"
        original = stack.repo.schedules.get_by_id("sch1")
        with pytest.raises(MutationFailed):
            await stack.roster.save_schedule(original.model_copy(update={"location": "Harbor"}))
        assert stack.repo.schedules.snapshot() == before

    @pytest.mark.anyio
    async def test_remove(self, stack, backend):
        await stack.sync.reload()
        await stack.roster.remove_schedule("sch2")
        assert not stack.repo.schedules.exists("sch2")
        assert ("removeSchedule", {"id": "sch2"}) in backend.calls

    @pytest.mark.anyio
    async def test_list_sorted_by_day_then_time(self, stack):
        await stack.sync.reload()
        assert [s.id for s in stack.roster.list_schedules()] == ["sch3", "sch1", "sch2"]
