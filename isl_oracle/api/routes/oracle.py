"""REST API endpoints for visibility and communication queries."""

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from isl_oracle.api.routes.instance import get_solver, get_timeline, link_or_404
from isl_oracle.prediction.models import finite_or_none


router = APIRouter(prefix="/api/oracle", tags=["oracle"])


class OrientationRequest(BaseModel):
    """Antenna orientation of one body."""
    time: float = Field(0.0, description="Time from which the body is free [s]")
    direction: list[float] = Field(..., min_length=3, max_length=3)


class CommunicationRequest(BaseModel):
    """Transfer to commit on the orientation timeline."""
    link: int = Field(..., ge=0)
    time: float


@router.get("/lower-bound")
async def get_lower_bound():
    """Get the earliest visibility over all links and the makespan bound."""
    solver = get_solver()
    return {
        "lowerBound": solver.lower_bound(),
        "makespanLowerBound": solver.makespan_lower_bound(),
    }


@router.get("/links/{link}/next-visibility")
async def get_next_visibility(link: int, t: float = Query(0.0)):
    """Get the next visible instant of a link."""
    solver = get_solver()
    link_or_404(solver, link)
    return {
        "link": link,
        "t0": t,
        "time": finite_or_none(solver.next_visibility(link, t)),
    }


@router.get("/links/{link}/next-communication")
async def get_next_communication(link: int, t: float = Query(0.0)):
    """Get the next instant at which a link is visible and alignable."""
    solver = get_solver()
    link_or_404(solver, link)
    return {"t0": t, **solver.communication(link, t).to_dict()}


@router.get("/links/{link}/windows")
async def get_windows(link: int):
    """Get the cached visibility windows of a link."""
    solver = get_solver()
    link_or_404(solver, link)
    return {"link": link, **solver.cache(link).to_dict()}


@router.put("/orientations/{body}")
async def set_orientation(body: int, request: OrientationRequest):
    """Set the antenna orientation of a body."""
    try:
        sample = get_timeline().set_orientation(body, request.time, request.direction)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"status": "ok", "body": body, **sample.to_dict()}


@router.post("/communications")
async def add_communication(request: CommunicationRequest):
    """Commit a transfer, pointing both endpoints at each other."""
    solver = get_solver()
    link_or_404(solver, request.link)
    try:
        communication = get_timeline().record_communication(request.link, request.time)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"status": "ok", **communication.to_dict()}


@router.get("/communications")
async def get_communications():
    """Get all committed transfers in time order."""
    return {"communications": get_timeline().to_dict_list()}
