"""Bus assignment API endpoints for the route service."""
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel

from configurations.config import Config
from core.reconciler import BusRouteReconciler

router = APIRouter(prefix="/api/routes", tags=["routes"])


class AssignBusesResponse(BaseModel):
    success: bool
    message: str
    data: Dict[str, Any]


class ServiceHealth(BaseModel):
    service: str
    status: str
    url: Optional[str] = None
    message: Optional[str] = None


def get_reconciler(request: Request) -> BusRouteReconciler:
    reconciler = getattr(request.app.state, "reconciler", None)
    if reconciler is None:
        raise HTTPException(status_code=503, detail="Reconciler is not configured")
    return reconciler


def _run_in_background(reconciler: BusRouteReconciler):
    summary = reconciler.reconcile(trigger="api")
    logger.info(f"[Assign Buses] Process completed: {summary.assigned} assigned, "
                f"{summary.skipped} skipped, {summary.failed} failed")


@router.post("/assign-buses", response_model=AssignBusesResponse)
def assign_buses(background_tasks: BackgroundTasks, wait: bool = False,
                 reconciler: BusRouteReconciler = Depends(get_reconciler)):
    """Trigger bus assignment: schedule-derived first, then unused buses."""
    logger.info("[Assign Buses] Endpoint called")

    if wait:
        summary = reconciler.reconcile_with_deadline(Config.RECONCILE_DEADLINE_SECONDS, trigger="api")
        return {
            "success": True,
            "message": "Bus assignment finished" if not summary.timed_out
            else "Bus assignment is still running, partial result returned",
            "data": summary.to_dict(),
        }

    background_tasks.add_task(_run_in_background, reconciler)
    return {
        "success": True,
        "message": "Bus assignment is running in the background",
        "data": {"status": "processing"},
    }


@router.get("/assign-buses/last")
async def last_assignment_run(reconciler: BusRouteReconciler = Depends(get_reconciler)):
    """Summary of the most recent reconciliation run."""
    record = reconciler.history.last()
    if record is None:
        raise HTTPException(status_code=404, detail="No assignment run recorded yet")

    return JSONResponse({
        "success": True,
        "data": {
            "run_id": record.run_id,
            "trigger": record.trigger,
            "timestamp": record.timestamp.isoformat(),
            "summary": record.summary.to_dict(),
        },
    })


@router.get("/assignment-status")
def assignment_status(reconciler: BusRouteReconciler = Depends(get_reconciler)):
    """Routes with and without a bound bus."""
    try:
        status = reconciler.assignment_status()
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to read route status: {str(e)}")

    return JSONResponse({"success": True, "data": status})


@router.get("/services-health", response_model=List[ServiceHealth])
def services_health(reconciler: BusRouteReconciler = Depends(get_reconciler)):
    """Status of the collaborating services and the database."""
    return reconciler.check_services()
