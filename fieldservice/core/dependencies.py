# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
FastAPI dependency injection: wire repositories and services.

Everything hangs off one shared ``httpx.AsyncClient``; ``init_services`` is
called from the app lifespan (tests pass a client with a mock transport).
"""

from typing import Optional

import httpx
from fastapi import Depends, HTTPException

from fieldservice.core.config import settings
from fieldservice.models.domain import Session
from fieldservice.repositories.preferences_repository import PreferencesRepository
from fieldservice.repositories.roster_repository import RosterRepository
from fieldservice.services.assignment_service import AssignmentService
from fieldservice.services.gateway_client import GatewayClient
from fieldservice.services.instance_service import InstanceService
from fieldservice.services.roster_service import RosterService
from fieldservice.services.session_service import SessionService
from fieldservice.services.sync_service import SyncService

_http_client: Optional[httpx.AsyncClient] = None
_roster_repo: Optional[RosterRepository] = None
_preferences_repo: Optional[PreferencesRepository] = None
_gateway: Optional[GatewayClient] = None
_sync_service: Optional[SyncService] = None
_session_service: Optional[SessionService] = None
_roster_service: Optional[RosterService] = None
_instance_service: Optional[InstanceService] = None
_assignment_service: Optional[AssignmentService] = None


def new_http_client(transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    # Apps Script answers with a redirect to the result page
    timeout = settings.GATEWAY_TIMEOUT or None
    return httpx.AsyncClient(timeout=timeout, follow_redirects=True, transport=transport)


def init_services(
    http_client: Optional[httpx.AsyncClient] = None,
    preferences_path: Optional[str] = None,
) -> None:
    """Build a fresh object graph. Calling it again discards all local state."""
    global _http_client, _roster_repo, _preferences_repo, _gateway
    global _sync_service, _session_service, _roster_service, _instance_service
    global _assignment_service

    _http_client = http_client or new_http_client()
    _roster_repo = RosterRepository()
    _preferences_repo = PreferencesRepository(preferences_path)
    _gateway = GatewayClient(_http_client)
    _sync_service = SyncService(roster_repo=_roster_repo, gateway=_gateway)
    _session_service = SessionService(
        roster_repo=_roster_repo,
        preferences_repo=_preferences_repo,
        sync_service=_sync_service,
    )
    _roster_service = RosterService(
        roster_repo=_roster_repo,
        gateway=_gateway,
        session_service=_session_service,
    )
    _instance_service = InstanceService(roster_repo=_roster_repo, gateway=_gateway)
    _assignment_service = AssignmentService(instance_service=_instance_service)


async def close_services() -> None:
    if _sync_service is not None:
        await _sync_service.stop_polling()
    if _http_client is not None:
        await _http_client.aclose()


# ── FastAPI dependency functions ──
def get_roster_repo() -> RosterRepository:
    assert _roster_repo is not None
    return _roster_repo


def get_sync_service() -> SyncService:
    assert _sync_service is not None
    return _sync_service


def get_session_service() -> SessionService:
    assert _session_service is not None
    return _session_service


def get_roster_service() -> RosterService:
    assert _roster_service is not None
    return _roster_service


def get_instance_service() -> InstanceService:
    assert _instance_service is not None
    return _instance_service


def get_assignment_service() -> AssignmentService:
    assert _assignment_service is not None
    return _assignment_service


# ── Access guards ──
def get_current_session(
    sessions: SessionService = Depends(get_session_service),
) -> Session:
    if sessions.current is None:
        raise HTTPException(status_code=401, detail="Please log in first.")
    return sessions.current


def require_leader(session: Session = Depends(get_current_session)) -> Session:
    if not session.is_leader:
        raise HTTPException(status_code=403, detail="Leader access required.")
    return session
