"""Welcome email flow for new sign-ups."""

from __future__ import annotations

from typing import TYPE_CHECKING

from signalist.core.logging import get_logger

if TYPE_CHECKING:
    from signalist.notifications.email import EmailDelivery
    from signalist.processing.digest.summarizer import NewsSummarizer, WelcomeProfile

logger = get_logger(__name__)


async def send_welcome_email(
    profile: WelcomeProfile,
    summarizer: NewsSummarizer,
    delivery: EmailDelivery,
) -> bool:
    """Write a personalized intro and send the welcome email.

    The intro falls back to a fixed thank-you line when the model is
    unavailable, so only a failed send returns False.
    """
    log = logger.bind(email=profile.email)

    intro = await summarizer.welcome_intro(profile)
    sent = await delivery.send_welcome(profile.email, profile.name, intro)
    if sent:
        log.info("Welcome email sent")
    else:
        log.warning("Welcome email not sent")
    return sent
