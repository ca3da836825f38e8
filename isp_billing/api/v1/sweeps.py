"""POST /v1/sweeps/overdue - manual overdue sweep trigger"""

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool

from isp_billing.api.dependencies import get_sweep_runner, require_admin
from isp_billing.api.v1.schemas import SweepResponse
from isp_billing.domain.exceptions import ConflictError
from isp_billing.domain.models import Principal
from isp_billing.services.sweep import SweepRunner

router = APIRouter()


@router.post("/sweeps/overdue", response_model=SweepResponse)
async def trigger_sweep(_: Principal = Depends(require_admin), runner: SweepRunner = Depends(get_sweep_runner)):
    """Run the sweep now; rejected with 409 while a scheduled run is in progress"""
    result = await run_in_threadpool(runner.run_once)
    if result is None:
        raise ConflictError("Overdue sweep already running")
    return SweepResponse(
        scanned=result.scanned,
        reminders_sent=result.reminders_sent,
        marked_overdue=result.marked_overdue,
        contracts_suspended=result.contracts_suspended,
        failures=result.failures,
    )
