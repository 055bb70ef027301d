"""System status and config endpoints."""

from fastapi import APIRouter

from signalist.config import get_settings
from signalist.core.dependencies import WorkerStateDep

router = APIRouter()


@router.get("/status")
async def system_status(state: WorkerStateDep) -> dict[str, object]:
    return {
        "news_enabled": state.aggregator is not None,
        "email_enabled": state.delivery is not None,
        "digest_enabled": "daily_digest" in state.trigger_fns,
        "digest_running": state.orchestrator is not None and state.orchestrator.is_running,
        "sync_listeners": state.sync_channel.listener_count,
    }


@router.get("/config")
async def system_config() -> dict[str, object]:
    settings = get_settings()
    return {
        "env": settings.env,
        "llm_provider": settings.llm_provider,
        "llm_model": settings.llm_model,
        "digest_cron_hour_utc": settings.digest_cron_hour,
        "digest_workers": settings.digest_workers,
        "recipients_allowlist_enabled": bool(settings.digest_recipients_allowlist),
    }
