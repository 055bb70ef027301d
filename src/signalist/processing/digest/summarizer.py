"""AI summarization for digests and welcome emails.

An empty model response degrades to a fixed fallback text. Digest model
errors and timeouts propagate so the caller can fail the account; the
welcome intro never raises.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

import orjson
from pydantic import BaseModel, Field
from pydantic_ai import Agent
from pydantic_ai.models import Model

from signalist.core.constants import (
    DEFAULT_EXTERNAL_TIMEOUT_SECONDS,
    DIGEST_FALLBACK_MESSAGE,
    WELCOME_FALLBACK_INTRO,
)
from signalist.core.logging import get_logger
from signalist.processing.common.llm import create_model
from signalist.processing.news.models import NewsItem

logger = get_logger(__name__)


# =============================================================================
# Prompts
# =============================================================================

SUMMARIZER_SYSTEM_PROMPT = """You write the daily market news email for Signalist, \
a stock tracking app for retail investors.

Write in plain, friendly English. Explain market jargon briefly when you use it.
Never give personalized investment advice and never invent facts, numbers or
tickers that are not in the provided news."""

NEWS_SUMMARY_PROMPT = """Summarize the following market news for today's email.

Guidelines:
- Group related stories into 2-4 short sections with a clear heading each
- For every story give one or two sentences on what happened and why it matters
- Mention the relevant ticker symbols when a story is about a specific company
- Finish with a one-sentence takeaway for the day
- Output simple HTML only (<h3>, <p>, <ul>, <li>, <strong>, <a>), no <html> or <body>

News data (JSON):
{{newsData}}"""

WELCOME_SYSTEM_PROMPT = """You write the opening paragraph of Signalist welcome emails.
Keep it warm, concise and specific to the new user. No investment advice."""

PERSONALIZED_WELCOME_PROMPT = """Write a personalized welcome intro for a new Signalist user.

User profile:
{{userProfile}}

Guidelines:
- Two or three sentences, at most 60 words
- Reference their goals, risk tolerance or preferred industry naturally
- Highlight how tracking a watchlist and daily news summaries can help them
- Plain text only, no greeting line (the email already says hello)"""


class WelcomeProfile(BaseModel):
    """Sign-up details used to personalize the welcome email."""

    email: str = Field(min_length=3)
    name: str = Field(min_length=1)
    country: str | None = None
    investment_goals: str | None = None
    risk_tolerance: str | None = None
    preferred_industry: str | None = None

    def to_prompt_block(self) -> str:
        return "\n".join(
            [
                f"- Country: {self.country or 'Not specified'}",
                f"- Investment goals: {self.investment_goals or 'Not specified'}",
                f"- Risk Tolerance: {self.risk_tolerance or 'Not specified'}",
                f"- Preferred Industry: {self.preferred_industry or 'Not specified'}",
            ]
        )


def build_news_prompt(items: Sequence[NewsItem]) -> str:
    """Embed the news payload as indented JSON into the summary prompt."""
    payload = orjson.dumps(
        [item.model_dump(mode="json") for item in items],
        option=orjson.OPT_INDENT_2,
    ).decode()
    return NEWS_SUMMARY_PROMPT.replace("{{newsData}}", payload)


# =============================================================================
# Summarizer
# =============================================================================


class NewsSummarizer:
    """Turns a list of news items into the digest email body.

    Usage:
        summarizer = NewsSummarizer()
        body = await summarizer.summarize(items)
    """

    def __init__(
        self,
        model: str | Model | None = None,
        timeout: float = DEFAULT_EXTERNAL_TIMEOUT_SECONDS,
    ) -> None:
        self._model = model
        self._timeout = timeout
        self._agent: Agent[None, str] | None = None
        self._welcome_agent: Agent[None, str] | None = None

    @property
    def agent(self) -> Agent[None, str]:
        """Get or create the digest agent."""
        if self._agent is None:
            self._agent = Agent(
                self._model or create_model(),
                output_type=str,
                system_prompt=SUMMARIZER_SYSTEM_PROMPT,
            )
        return self._agent

    @property
    def welcome_agent(self) -> Agent[None, str]:
        """Get or create the welcome intro agent."""
        if self._welcome_agent is None:
            self._welcome_agent = Agent(
                self._model or create_model(),
                output_type=str,
                system_prompt=WELCOME_SYSTEM_PROMPT,
            )
        return self._welcome_agent

    async def summarize(self, items: Sequence[NewsItem]) -> str:
        """Summarize news items into HTML.

        Empty input or an empty model response gives the fallback message.

        Raises:
            TimeoutError: If the model does not answer in time
            Exception: Model construction and provider errors propagate
        """
        if not items:
            return DIGEST_FALLBACK_MESSAGE

        prompt = build_news_prompt(items)
        result = await asyncio.wait_for(self.agent.run(prompt), timeout=self._timeout)
        return _clean_output(result.output, kind="digest") or DIGEST_FALLBACK_MESSAGE

    async def welcome_intro(self, profile: WelcomeProfile) -> str:
        """Write a personalized welcome intro; never raises."""
        prompt = PERSONALIZED_WELCOME_PROMPT.replace("{{userProfile}}", profile.to_prompt_block())
        try:
            result = await asyncio.wait_for(self.welcome_agent.run(prompt), timeout=self._timeout)
        except TimeoutError:
            logger.warning("Welcome intro timed out", timeout=self._timeout)
            return WELCOME_FALLBACK_INTRO
        except Exception as e:
            logger.exception("Welcome intro generation failed", error=str(e))
            return WELCOME_FALLBACK_INTRO
        return _clean_output(result.output, kind="welcome") or WELCOME_FALLBACK_INTRO


def _clean_output(output: object, **log_fields: object) -> str | None:
    if not isinstance(output, str) or not output.strip():
        logger.warning("Summarizer returned an empty response", **log_fields)
        return None
    return output.strip()
