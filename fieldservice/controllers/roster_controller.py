# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Leader management of volunteers, schedule templates and the
leader password. Thin HTTP layer, delegates to RosterService.
"""

from fastapi import APIRouter, Depends, HTTPException

from fieldservice.core.dependencies import get_roster_service, require_leader
from fieldservice.schemas.requests import (
    PasswordChangeRequest,
    ScheduleRequest,
    VolunteerCreateRequest,
)
from fieldservice.services.roster_service import RosterService

router = APIRouter(prefix="/api/v1", tags=["Roster"], dependencies=[Depends(require_leader)])


# ── Volunteers ──

@router.get("/volunteers")
def list_volunteers(service: RosterService = Depends(get_roster_service)):
    return service.list_volunteers()


@router.post("/volunteers", status_code=201)
async def add_volunteer(
    payload: VolunteerCreateRequest,
    service: RosterService = Depends(get_roster_service),
):
    return await service.add_volunteer(
        name=payload.name,
        gender=payload.gender,
        can_do_public_witnessing=payload.can_do_public_witnessing,
    )


@router.delete("/volunteers/{volunteer_id}", status_code=204)
async def remove_volunteer(
    volunteer_id: str,
    service: RosterService = Depends(get_roster_service),
):
    try:
        await service.remove_volunteer(volunteer_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


# ── Schedule templates ──

@router.get("/schedules")
def list_schedules(service: RosterService = Depends(get_roster_service)):
    return service.list_schedules()


@router.post("/schedules", status_code=201)
async def create_schedule(
    payload: ScheduleRequest,
    service: RosterService = Depends(get_roster_service),
):
    return await service.save_schedule(payload.to_schedule())


@router.put("/schedules/{schedule_id}")
async def update_schedule(
    schedule_id: str,
    payload: ScheduleRequest,
    service: RosterService = Depends(get_roster_service),
):
    try:
        return await service.save_schedule(payload.to_schedule(schedule_id))
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/schedules/{schedule_id}", status_code=204)
async def remove_schedule(
    schedule_id: str,
    service: RosterService = Depends(get_roster_service),
):
    try:
        await service.remove_schedule(schedule_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


# ── Leader password ──

@router.put("/leader/password", status_code=204)
async def change_password(
    payload: PasswordChangeRequest,
    service: RosterService = Depends(get_roster_service),
):
    await service.update_leader_password(payload.current_password, payload.new_password)
