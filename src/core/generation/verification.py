#!/usr/bin/env python3
"""
Optional fact-check pass over a generated article.

Runs through Grok when a Grok key is configured and through OpenAI otherwise.
The pass never fails the request: problems and outages become warnings.
"""

import asyncio
import logging
from datetime import datetime
from typing import List, Optional, Sequence

from pydantic import BaseModel, Field

from core.exceptions import UpstreamError, describe_exception
from core.json_validator import JSONValidationError, validate_llm_json
from core.models import SourceArticle
from core.prompts import build_verification_prompt
from core.ranking import parse_published_at, utc_now
from core.sources import MAX_FUTURE_DRIFT

logger = logging.getLogger(__name__)

VERIFICATION_MAX_TOKENS = 1200


class VerificationReport(BaseModel):
    issues: List[str] = Field(default_factory=list)


def derive_reference_iso(sources: Sequence[SourceArticle], now: Optional[datetime] = None) -> str:
    """
    Reference time for the fact-checker.

    The newest source publication time wins unless it sits too far in the
    future, in which case the current time is used.
    """
    now = now or utc_now()
    reference = now
    for source in sources:
        published = parse_published_at(source.published_at, now)
        if published is None or published > now + MAX_FUTURE_DRIFT:
            continue
        if published > reference:
            reference = published
    return reference.isoformat()


def _messages(prompt: str, reference_iso: Optional[str]):
    if reference_iso:
        return [
            {'role': 'system', 'content': f"The current date and time is {reference_iso}"},
            {'role': 'user', 'content': prompt},
        ]
    return [{'role': 'user', 'content': prompt}]


async def verify_output(content: str, sources: Sequence[SourceArticle], grok=None, llm=None,
                        model: Optional[str] = None, timeout: float = 45,
                        now: Optional[datetime] = None) -> List[str]:
    """
    Fact-check ``content`` against ``sources``.

    Args:
        content: Article HTML
        sources: Reporting the article was based on
        grok: GrokClient, preferred when available
        llm: OpenAIClient used when Grok is not configured
        model: OpenAI model name
        timeout: Client-side timeout for the OpenAI path in seconds
        now: Reference time

    Returns:
        Warning strings; empty when the article checks out
    """
    if grok is None and llm is None:
        return []

    prompt = build_verification_prompt(content, sources)
    reference_iso = derive_reference_iso(sources, now)
    messages = _messages(prompt, reference_iso)

    try:
        if grok is not None:
            result = await grok.chat(messages, max_tokens=VERIFICATION_MAX_TOKENS, interaction_type="verification")
        else:
            result = await asyncio.wait_for(
                llm.chat(
                    messages,
                    model=model,
                    max_tokens=VERIFICATION_MAX_TOKENS,
                    temperature=0,
                    response_format={"type": "json_object"},
                    interaction_type="verification",
                ),
                timeout=timeout,
            )
        report = validate_llm_json(result.content, VerificationReport)
    except asyncio.TimeoutError:
        logger.warning(f"Verification timed out after {timeout}s")
        return [f"Verification skipped: timed out after {timeout}s"]
    except (UpstreamError, JSONValidationError) as e:
        logger.warning(f"Verification failed: {e}")
        return [f"Verification skipped: {describe_exception(e)}"]

    issues = [issue.strip() for issue in report.issues if issue and issue.strip()]
    if issues:
        logger.info(f"Verification flagged {len(issues)} issues")
    return [f"Verification: {issue}" for issue in issues]
