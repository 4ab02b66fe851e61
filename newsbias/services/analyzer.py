"""
Bias / objectivity analysis adapter.

Sends article text to the language model through ``litellm`` with
a fixed system prompt.  Transient failures are retried by
``tenacity`` with exponentially doubling waits (1 s, 2 s by
default); after the last attempt an ``AnalysisFailedError`` names
the attempt count and the final underlying error.

There is no cache here: every task gets a fresh
model call.  The Celery worker wraps this adapter with its own,
coarser retry policy.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import litellm
from celery.exceptions import SoftTimeLimitExceeded
from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from newsbias.core.config import get_settings
from newsbias.core.exceptions import AnalysisFailedError
from newsbias.schemas.results import AnalysisResult

logger = logging.getLogger(__name__)

SYSTEM_PROMPT: str = (
    "Analyze the news article provided below and generate a consistent "
    "semantic and sentiment analysis for an end-user of a news aggregator "
    "app. Your analysis should include:\n"
    "1. Objectivity and neutrality score (0-10 scale): Provide a score for "
    "the objectivity and neutrality of the article, where 0 is the least "
    "objective/neutral and 10 is the most objective/neutral. Concisely list "
    "the reasons that led to this score, using specific examples from the "
    "article.\n"
    "2. Ideological/political bias detection: List up to 5 tags/labels "
    "(max. 5 words each) describing the nature and extent of the bias, "
    "indicating the direction of the bias. Provide a concise explanation of "
    "the factors contributing to each bias label, using specific examples "
    "from the article.\n"
    "Consider the following aspects for your analysis:\n"
    "a. Balance of perspectives\n"
    "b. Language and tone\n"
    "c. Focus on facts versus opinions\n"
    "d. Selective presentation of information\n"
    "e. Use of reliable and verifiable sources\n\n"
    "After your analysis, generate a concise, objective, neutral, and "
    "unbiased summary of the article in just a few sentences. \n\n"
    "Please also provide a brief overall assessment of the article, "
    "considering both its strengths and weaknesses, and suggest potential "
    "ways to improve its objectivity, neutrality, or balance, if necessary."
    "\n\n"
    "Analyze the following news article, keeping in mind its publication "
    "date, the author's history, and the outlet's reputation:"
)


def _sleep(seconds: float) -> None:
    time.sleep(seconds)


def _log_retry(retry_state: RetryCallState) -> None:
    settings = get_settings()
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    wait_s = retry_state.next_action.sleep if retry_state.next_action else 0
    logger.warning(
        "Analysis call failed (attempt %d/%d): %s; retrying in %.1fs",
        retry_state.attempt_number,
        settings.ANALYSIS_MAX_ATTEMPTS,
        exc,
        wait_s,
    )


def _to_dict(response: Any) -> dict[str, Any]:
    if isinstance(response, dict):
        return response
    return response.model_dump()


def _complete(content: str) -> AnalysisResult:
    """Make a single completion request."""
    settings = get_settings()
    response = litellm.completion(
        model=settings.OPENAI_MODEL,
        messages=[
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": content},
        ],
        max_tokens=settings.OPENAI_MAX_TOKENS,
        n=1,
        temperature=settings.OPENAI_TEMPERATURE,
        api_key=settings.OPENAI_API_KEY or None,
        organization=settings.OPENAI_ORG_ID or None,
    )
    result = AnalysisResult.model_validate(_to_dict(response))
    usage = result.usage
    logger.debug(
        "Analysis completed (model=%s, prompt_tokens=%s, "
        "completion_tokens=%s, total_tokens=%s)",
        result.model or settings.OPENAI_MODEL,
        usage.prompt_tokens if usage else None,
        usage.completion_tokens if usage else None,
        usage.total_tokens if usage else None,
    )
    return result


def analyze_article(content: str) -> dict[str, Any]:
    """Analyse *content* for objectivity and bias.

    Args:
        content: Article text, already validated (non-blank,
            within the size cap).

    Returns:
        The normalised analysis as a JSON-serialisable dict.

    Raises:
        AnalysisFailedError: After every attempt failed.
        SoftTimeLimitExceeded: Propagated untouched when the worker's
            soft time limit fires mid-call; it is never retried.
    """
    settings = get_settings()
    max_attempts = settings.ANALYSIS_MAX_ATTEMPTS
    retrying = Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(
            multiplier=settings.ANALYSIS_INITIAL_DELAY,
            exp_base=2,
        ),
        retry=retry_if_not_exception_type(SoftTimeLimitExceeded),
        sleep=_sleep,
        before_sleep=_log_retry,
    )

    try:
        for attempt in retrying:
            with attempt:
                logger.info(
                    "Analyzing article (attempt %d/%d, %d chars)",
                    attempt.retry_state.attempt_number,
                    max_attempts,
                    len(content),
                )
                result = _complete(content)
    except RetryError as exc:
        last = exc.last_attempt.exception()
        logger.error(
            "Analysis failed after %d attempts: %s",
            max_attempts,
            last,
        )
        raise AnalysisFailedError(
            f"Analysis failed after {max_attempts} attempts: {last}"
        ) from last

    return result.to_payload()
