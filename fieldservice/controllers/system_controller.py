# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: System endpoints, health, readiness, metrics.
Pure HTTP layer, no business logic.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from fieldservice.core.config import settings
from fieldservice.core.dependencies import get_roster_repo, get_sync_service
from fieldservice.repositories.roster_repository import RosterRepository
from fieldservice.services.sync_service import SyncService

router = APIRouter(tags=["System"])


@router.get("/health")
def health_check(repo: RosterRepository = Depends(get_roster_repo)):
    """Liveness check."""
    return {
        "status": "ok",
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "volunteers_count": repo.volunteers.count(),
        "instances_count": repo.instances.count(),
    }


@router.get("/health/ready")
def readiness_check(
    repo: RosterRepository = Depends(get_roster_repo),
    sync: SyncService = Depends(get_sync_service),
):
    """Ready once a full state load has succeeded."""
    if not repo.loaded:
        raise HTTPException(status_code=503, detail=sync.error or "State not loaded yet")
    return {
        "status": "ready",
        "service": settings.SERVICE_NAME,
        "last_sync_at": repo.last_sync_at.isoformat(),
    }


@router.get("/metrics")
def prometheus_metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
