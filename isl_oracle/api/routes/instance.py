"""REST API endpoints for the loaded instance."""

from pathlib import Path
from typing import Optional

from fastapi import APIRouter, HTTPException
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from isl_oracle.config import get_config
from isl_oracle.network.instance import Instance, parse_instance
from isl_oracle.prediction.visibility_solver import VisibilitySolver
from isl_oracle.timeline.orientation_timeline import OrientationTimeline


router = APIRouter(prefix="/api/instance", tags=["instance"])

# Global oracle state
_solver: Optional[VisibilitySolver] = None
_timeline: Optional[OrientationTimeline] = None


def get_solver() -> VisibilitySolver:
    """Get or create the solver for the current instance.

    Loads the configured instance file on first use, otherwise starts
    from an empty instance.
    """
    if _solver is None:
        instance_file = get_config().api.instance_file
        if instance_file is not None:
            instance = Instance.load(Path(instance_file))
        else:
            instance = Instance()
        reset_solver(instance)
    return _solver


def get_timeline() -> OrientationTimeline:
    """Get the orientation timeline of the current instance."""
    get_solver()
    return _timeline


def reset_solver(instance: Instance, step_size: Optional[float] = None) -> VisibilitySolver:
    """Replace the instance and rebuild solver and timeline."""
    global _solver, _timeline
    _timeline = OrientationTimeline(instance)
    _solver = VisibilitySolver(instance, step_size=step_size, orientations=_timeline)
    return _solver


class InstanceRequest(BaseModel):
    """Instance upload in the text file format."""
    text: str = Field(..., min_length=1)
    stepSize: Optional[float] = Field(None, gt=0, description="Sampling resolution [s]")


class PruneRequest(BaseModel):
    """Dead-link pruning request."""
    step: Optional[float] = Field(None, gt=0, description="Coarse sampling step [s]")


@router.get("")
async def get_instance():
    """Get instance summary."""
    solver = get_solver()
    return {
        **solver.instance.to_dict(),
        "stepSize": solver.step_size,
        "bodies": [body.to_dict() for body in solver.instance.bodies],
        "links": [link.to_dict() for link in solver.instance.links],
    }


@router.put("")
async def load_instance(request: InstanceRequest):
    """Load a new instance from text and rebuild the visibility caches."""
    instance, diagnostics = parse_instance(request.text)
    solver = reset_solver(instance, step_size=request.stepSize)
    return {
        "status": "ok",
        **solver.instance.to_dict(),
        "skippedLines": diagnostics,
    }


@router.get("/export", response_class=PlainTextResponse)
async def export_instance():
    """Export the instance in the text file format."""
    return get_solver().instance.dumps()


@router.post("/prune")
async def prune_instance(request: PruneRequest):
    """Remove links that are never visible and rebuild the solver."""
    solver = get_solver()
    instance = solver.instance
    before = len(instance.links)
    instance.remove_invalid_edges(step=request.step)
    solver = reset_solver(instance, step_size=solver.step_size)
    return {
        "status": "ok",
        "removed": before - len(instance.links),
        **solver.instance.to_dict(),
    }


@router.get("/line-graph")
async def get_line_graph():
    """Get the conflict graph of links sharing a body."""
    return get_solver().instance.line_graph().to_dict()


def link_or_404(solver: VisibilitySolver, link: int) -> int:
    """Validate a link index from a request path."""
    if not 0 <= link < len(solver.instance.links):
        raise HTTPException(status_code=404, detail=f"Unknown link: {link}")
    return link
