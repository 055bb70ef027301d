"""Daily digest: orchestration, summarization and run models."""

from signalist.processing.digest.models import (
    AccountOutcome,
    DigestReport,
    DigestRun,
    OutcomeStatus,
    PendingDelivery,
    format_digest_date,
)
from signalist.processing.digest.orchestrator import DigestOrchestrator
from signalist.processing.digest.summarizer import NewsSummarizer, WelcomeProfile
from signalist.processing.digest.welcome import send_welcome_email

__all__ = [
    "AccountOutcome",
    "DigestOrchestrator",
    "DigestReport",
    "DigestRun",
    "NewsSummarizer",
    "OutcomeStatus",
    "PendingDelivery",
    "WelcomeProfile",
    "format_digest_date",
    "send_welcome_email",
]
