# operator endpoints: advance the cycle + inspect it
from fastapi import APIRouter, Request, status

from .models import CycleStatus

router = APIRouter()


@router.post("/internal/advance", status_code=status.HTTP_202_ACCEPTED)
async def internal_advance(request: Request):
    """
    Same as pressing enter on the server console: lets the cycle driver
    start the next iteration. Returns before the new iteration exists.
    """
    request.app.state.trigger.fire()
    return {"ok": True, "iteration": request.app.state.counter.get()}


@router.get("/internal/status")
def internal_status(request: Request) -> CycleStatus:
    state = request.app.state
    task = state.cycle_task
    return CycleStatus(
        iteration=state.counter.get(),
        voters=len(state.ledger),
        cycle_running=task is not None and not task.done(),
        trigger=state.cycle_trigger,
    )
