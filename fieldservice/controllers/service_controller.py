# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Calendar, dated service instances, applications and comments.
Thin HTTP layer, delegates ALL logic to InstanceService.
"""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Path

from fieldservice.core.config import settings
from fieldservice.core.dependencies import (
    get_current_session,
    get_instance_service,
    require_leader,
)
from fieldservice.models.domain import Session
from fieldservice.schemas.requests import (
    CommentRequest,
    FromScheduleRequest,
    ServiceFormRequest,
)
from fieldservice.services.instance_service import InstanceService

router = APIRouter(prefix="/api/v1", tags=["Services"])


# ── Calendar ──

@router.get("/calendar/{year}/{month}")
def month_overview(
    year: int = Path(..., ge=1970, le=9999),
    month: int = Path(..., ge=1, le=12),
    _: Session = Depends(get_current_session),
    service: InstanceService = Depends(get_instance_service),
):
    """Number of services per date in one month."""
    return {"year": year, "month": month, "days": service.month_overview(year, month)}


@router.get("/days/{day}")
def day_detail(
    day: date,
    session: Session = Depends(get_current_session),
    service: InstanceService = Depends(get_instance_service),
):
    services = service.services_for_date(day)
    is_past = service.is_past_date(day)
    detail = {
        "date": day.isoformat(),
        "is_past": is_past,
        "services": services,
        "deadline_passed": {s.id: service.deadline_passed(s) for s in services},
        "door_to_door_only": {
            s.id: [v.id for v in s.applicants if s.is_door_to_door_only(v)] for s in services
        },
    }
    if session.is_leader:
        detail["creatable_schedules"] = service.creatable_schedules(day)
        detail["can_create"] = not is_past and len(services) < settings.MAX_SERVICES_PER_DAY
    return detail


# ── Instances (leader) ──

@router.post("/days/{day}/services", status_code=201)
async def create_service(
    day: date,
    payload: ServiceFormRequest,
    _: Session = Depends(require_leader),
    service: InstanceService = Depends(get_instance_service),
):
    """Create one ad hoc service on ``day``."""
    return await service.add_service_from_form(day, payload.to_form())


@router.post("/days/{day}/services/from-schedule", status_code=201)
async def create_from_schedule(
    day: date,
    payload: FromScheduleRequest,
    _: Session = Depends(require_leader),
    service: InstanceService = Depends(get_instance_service),
):
    """Materialize the chosen templates on ``day``, all or nothing."""
    try:
        schedules = service.resolve_schedules(payload.schedule_ids)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return await service.create_from_schedule(day, schedules)


@router.get("/services/{service_id}")
def get_service(
    service_id: str,
    _: Session = Depends(get_current_session),
    service: InstanceService = Depends(get_instance_service),
):
    try:
        return service.get_instance(service_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/services/{service_id}")
async def update_service(
    service_id: str,
    payload: ServiceFormRequest,
    _: Session = Depends(require_leader),
    service: InstanceService = Depends(get_instance_service),
):
    try:
        return await service.update_service_from_form(service_id, payload.to_form())
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/services/{service_id}", status_code=204)
async def delete_service(
    service_id: str,
    _: Session = Depends(require_leader),
    service: InstanceService = Depends(get_instance_service),
):
    try:
        await service.delete_service_instance(service_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


# ── Applications (volunteer) ──

async def _toggle(service: InstanceService, service_id: str, session: Session, applying: bool):
    if session.is_leader:
        raise HTTPException(status_code=403, detail="Only volunteers can apply for services.")
    try:
        applicants = await service.toggle_application(service_id, session.user, applying)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"service_id": service_id, "applicants": applicants}


@router.post("/services/{service_id}/application")
async def apply(
    service_id: str,
    session: Session = Depends(get_current_session),
    service: InstanceService = Depends(get_instance_service),
):
    return await _toggle(service, service_id, session, applying=True)


@router.delete("/services/{service_id}/application")
async def cancel_application(
    service_id: str,
    session: Session = Depends(get_current_session),
    service: InstanceService = Depends(get_instance_service),
):
    return await _toggle(service, service_id, session, applying=False)


# ── Comments (failures roll back silently) ──

@router.post("/services/{service_id}/comments", status_code=201)
async def add_comment(
    service_id: str,
    payload: CommentRequest,
    session: Session = Depends(get_current_session),
    service: InstanceService = Depends(get_instance_service),
):
    try:
        return await service.add_comment(service_id, session.user, payload.text)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/services/{service_id}/comments/{comment_id}")
async def update_comment(
    service_id: str,
    comment_id: str,
    payload: CommentRequest,
    session: Session = Depends(get_current_session),
    service: InstanceService = Depends(get_instance_service),
):
    try:
        return await service.update_comment(service_id, comment_id, payload.text, session.user.id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/services/{service_id}/comments/{comment_id}")
async def delete_comment(
    service_id: str,
    comment_id: str,
    session: Session = Depends(get_current_session),
    service: InstanceService = Depends(get_instance_service),
):
    try:
        return await service.delete_comment(service_id, comment_id, session.user.id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
