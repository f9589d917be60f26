# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Login, logout and the remembered display name.
"""

from fastapi import APIRouter, Depends

from fieldservice.core.dependencies import get_current_session, get_session_service
from fieldservice.models.domain import Session
from fieldservice.schemas.requests import (
    LeaderLoginRequest,
    RememberedNameRequest,
    VolunteerLoginRequest,
)
from fieldservice.services.session_service import SessionService

router = APIRouter(prefix="/api/v1/session", tags=["Session"])


@router.get("")
def current_session(session: Session = Depends(get_current_session)):
    return session


@router.post("/volunteer")
async def login_volunteer(
    payload: VolunteerLoginRequest,
    service: SessionService = Depends(get_session_service),
):
    """Log in by exact roster name."""
    return await service.login_volunteer(payload.name)


@router.post("/leader")
async def login_leader(
    payload: LeaderLoginRequest,
    service: SessionService = Depends(get_session_service),
):
    return await service.login_leader(payload.password)


@router.delete("", status_code=204)
async def logout(service: SessionService = Depends(get_session_service)):
    await service.logout()


@router.get("/remembered-name")
def get_remembered_name(service: SessionService = Depends(get_session_service)):
    return {"name": service.remembered_name()}


@router.put("/remembered-name")
def set_remembered_name(
    payload: RememberedNameRequest,
    service: SessionService = Depends(get_session_service),
):
    service.remember_name(payload.name.strip())
    return {"name": service.remembered_name()}
