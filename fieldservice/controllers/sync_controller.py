# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Synchronization status, manual reload and the canonical state.
"""

from fastapi import APIRouter, Depends, Query

from fieldservice.core.dependencies import get_roster_repo, get_sync_service
from fieldservice.repositories.roster_repository import RosterRepository
from fieldservice.services.sync_service import SyncService

router = APIRouter(prefix="/api/v1", tags=["Sync"])


@router.get("/sync")
def sync_status(sync: SyncService = Depends(get_sync_service)):
    return sync.status()


@router.post("/sync/reload")
async def reload_state(
    background: bool = Query(default=False),
    sync: SyncService = Depends(get_sync_service),
):
    """Manual retry after a failed load, or a forced refresh."""
    reloaded = await sync.reload(background=background)
    return {"reloaded": reloaded, **sync.status()}


@router.get("/state")
def current_state(repo: RosterRepository = Depends(get_roster_repo)):
    """Canonical collections. The leader password is never exposed."""
    return {
        "volunteers": repo.volunteers.get_all(),
        "schedules": repo.schedules.get_all(),
        "instances": repo.instances.get_all(),
        "last_sync_at": repo.last_sync_at.isoformat() if repo.last_sync_at else None,
    }
