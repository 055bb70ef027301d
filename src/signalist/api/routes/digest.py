"""Digest and welcome email endpoints."""

from fastapi import APIRouter, HTTPException

from signalist.core.dependencies import DeliveryDep, WorkerStateDep
from signalist.processing.digest.summarizer import WelcomeProfile
from signalist.processing.digest.welcome import send_welcome_email

router = APIRouter()


@router.post("/run", status_code=202)
async def trigger_digest(state: WorkerStateDep) -> dict[str, str]:
    """Trigger a manual digest run."""
    if state.scheduler and "daily_digest" in state.trigger_fns:
        state.scheduler.add_job(
            state.trigger_fns["daily_digest"],
            id="daily_digest_manual",
            replace_existing=True,
        )
        return {"status": "triggered"}
    raise HTTPException(status_code=503, detail="Daily digest not enabled")


@router.post("/cancel", status_code=202)
async def cancel_digest(state: WorkerStateDep) -> dict[str, str]:
    """Stop scheduling accounts in the current run."""
    if state.orchestrator is None:
        raise HTTPException(status_code=503, detail="Daily digest not enabled")
    if not state.orchestrator.is_running:
        return {"status": "idle"}
    state.orchestrator.cancel()
    return {"status": "cancelling"}


@router.post("/welcome")
async def send_welcome(
    profile: WelcomeProfile, state: WorkerStateDep, delivery: DeliveryDep
) -> dict[str, bool]:
    """Send a personalized welcome email to a new account."""
    sent = await send_welcome_email(profile, state.summarizer, delivery)
    return {"sent": sent}
