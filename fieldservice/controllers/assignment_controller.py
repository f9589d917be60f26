# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Pairing and spot-grid panels (leader only).

A panel must be opened before it can be edited; reopening the instance that
is already open returns the unsaved edits unchanged.
"""

from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException
from starlette.responses import Response

from fieldservice.core.dependencies import (
    get_assignment_service,
    get_instance_service,
    require_leader,
)
from fieldservice.schemas.requests import (
    CellMemberRequest,
    CellRequest,
    PairingPickUpRequest,
    SpotPickUpRequest,
)
from fieldservice.services.assignment_service import AssignmentService
from fieldservice.services.instance_service import InstanceService

router = APIRouter(
    prefix="/api/v1/services/{service_id}",
    tags=["Assignments"],
    dependencies=[Depends(require_leader)],
)


def _csv_response(filename: str, content: str) -> Response:
    return Response(
        content=content.encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"},
    )


def _pairing_view(assignments: AssignmentService, service_id: str, moved=None) -> dict:
    view = assignments.pairing_for(service_id).view()
    if moved is not None:
        view["moved"] = moved
    return view


def _spot_view(
    assignments: AssignmentService, instances: InstanceService, service_id: str, moved=None
) -> dict:
    applicants = instances.get_instance(service_id).applicants
    view = assignments.spots_for(service_id).view(applicants)
    if moved is not None:
        view["moved"] = moved
    return view


# ── Pairing ──

@router.post("/pairing/open")
def open_pairing(
    service_id: str,
    assignments: AssignmentService = Depends(get_assignment_service),
):
    try:
        return assignments.open_pairing(service_id).view()
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/pairing")
def view_pairing(
    service_id: str,
    assignments: AssignmentService = Depends(get_assignment_service),
):
    try:
        return _pairing_view(assignments, service_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/pairing/pick-up")
def pairing_pick_up(
    service_id: str,
    payload: PairingPickUpRequest,
    assignments: AssignmentService = Depends(get_assignment_service),
):
    try:
        board = assignments.pairing_for(service_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    board.pick_up(payload.volunteer_id, payload.origin_group)
    return board.view()


@router.delete("/pairing/pick-up")
def pairing_cancel_drag(
    service_id: str,
    assignments: AssignmentService = Depends(get_assignment_service),
):
    try:
        board = assignments.pairing_for(service_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    board.cancel_drag()
    return board.view()


@router.post("/pairing/drop/volunteer/{target_id}")
def pairing_drop_on_volunteer(
    service_id: str,
    target_id: str,
    assignments: AssignmentService = Depends(get_assignment_service),
):
    """Pair the carried volunteer with an unassigned one."""
    try:
        moved = assignments.pairing_for(service_id).drop_on_volunteer(target_id)
        return _pairing_view(assignments, service_id, moved)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/pairing/drop/group/{group_index}")
def pairing_drop_on_group(
    service_id: str,
    group_index: int,
    assignments: AssignmentService = Depends(get_assignment_service),
):
    try:
        moved = assignments.pairing_for(service_id).drop_on_group(group_index)
        return _pairing_view(assignments, service_id, moved)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/pairing/drop/unassigned")
def pairing_drop_on_unassigned(
    service_id: str,
    assignments: AssignmentService = Depends(get_assignment_service),
):
    try:
        moved = assignments.pairing_for(service_id).drop_on_unassigned()
        return _pairing_view(assignments, service_id, moved)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/pairing/unpair/{group_index}")
def pairing_unpair(
    service_id: str,
    group_index: int,
    assignments: AssignmentService = Depends(get_assignment_service),
):
    try:
        assignments.pairing_for(service_id).unpair(group_index)
        return _pairing_view(assignments, service_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/pairing/save")
async def save_pairing(
    service_id: str,
    assignments: AssignmentService = Depends(get_assignment_service),
):
    """Persist the groups as the instance's pairs and close the panel."""
    try:
        return await assignments.save_pairing(service_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/pairing/discard", status_code=204)
def discard_pairing(
    service_id: str,
    assignments: AssignmentService = Depends(get_assignment_service),
):
    try:
        assignments.pairing_for(service_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    assignments.close_pairing()


@router.get("/pairing/export")
def export_pairing(
    service_id: str,
    assignments: AssignmentService = Depends(get_assignment_service),
):
    try:
        filename, content = assignments.export_pairing(service_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _csv_response(filename, content)


# ── Spot grid ──

@router.post("/spots/open")
def open_spots(
    service_id: str,
    assignments: AssignmentService = Depends(get_assignment_service),
    instances: InstanceService = Depends(get_instance_service),
):
    try:
        assignments.open_spots(service_id)
        return _spot_view(assignments, instances, service_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/spots")
def view_spots(
    service_id: str,
    assignments: AssignmentService = Depends(get_assignment_service),
    instances: InstanceService = Depends(get_instance_service),
):
    try:
        return _spot_view(assignments, instances, service_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/spots/pick-up")
def spots_pick_up(
    service_id: str,
    payload: SpotPickUpRequest,
    assignments: AssignmentService = Depends(get_assignment_service),
    instances: InstanceService = Depends(get_instance_service),
):
    try:
        grid = assignments.spots_for(service_id)
        applicants = instances.get_instance(service_id).applicants
        grid.pick_up(payload.volunteer_id, applicants, payload.from_key)
        return _spot_view(assignments, instances, service_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/spots/pick-up")
def spots_cancel_drag(
    service_id: str,
    assignments: AssignmentService = Depends(get_assignment_service),
    instances: InstanceService = Depends(get_instance_service),
):
    try:
        assignments.spots_for(service_id).cancel_drag()
        return _spot_view(assignments, instances, service_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/spots/drop/cell")
def spots_drop_on_cell(
    service_id: str,
    payload: CellRequest,
    assignments: AssignmentService = Depends(get_assignment_service),
    instances: InstanceService = Depends(get_instance_service),
):
    try:
        moved = assignments.spots_for(service_id).drop_on_cell(payload.spot, payload.group)
        return _spot_view(assignments, instances, service_id, moved)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/spots/drop/unassigned")
def spots_drop_on_unassigned(
    service_id: str,
    assignments: AssignmentService = Depends(get_assignment_service),
    instances: InstanceService = Depends(get_instance_service),
):
    try:
        moved = assignments.spots_for(service_id).drop_on_unassigned()
        return _spot_view(assignments, instances, service_id, moved)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/spots/remove")
def spots_remove(
    service_id: str,
    payload: CellMemberRequest,
    assignments: AssignmentService = Depends(get_assignment_service),
    instances: InstanceService = Depends(get_instance_service),
):
    try:
        moved = assignments.spots_for(service_id).remove(payload.key, payload.volunteer_id)
        return _spot_view(assignments, instances, service_id, moved)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/spots/save")
async def save_spots(
    service_id: str,
    assignments: AssignmentService = Depends(get_assignment_service),
):
    """Persist the assignment map onto the instance and close the panel."""
    try:
        return await assignments.save_spots(service_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/spots/discard", status_code=204)
def discard_spots(
    service_id: str,
    assignments: AssignmentService = Depends(get_assignment_service),
):
    try:
        assignments.spots_for(service_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    assignments.close_spots()


@router.get("/spots/export")
def export_spots(
    service_id: str,
    assignments: AssignmentService = Depends(get_assignment_service),
):
    try:
        filename, content = assignments.export_spots(service_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _csv_response(filename, content)
