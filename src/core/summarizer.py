#!/usr/bin/env python3
"""
Cluster summarizer.

Asks the LLM for an overview and bullet points for every ranked headline
cluster in a single batched call.
"""

import json
import logging
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field, ValidationError

from core.exceptions import UpstreamError, describe_exception
from core.models import HeadlineSummary, RankedHeadline

logger = logging.getLogger(__name__)

SUMMARY_SYSTEM_PROMPT = (
    "You are a news editor. For each numbered story cluster write a one-sentence "
    "overview and two to four short factual bullets drawn only from the supplied "
    "titles and descriptions. Respond with JSON: "
    "{\"summaries\": [{\"index\": number, \"overview\": string, \"bullets\": [string]}]}."
)


class ClusterSummary(BaseModel):
    index: int
    overview: str = ""
    bullets: List[str] = Field(default_factory=list)


class ClusterSummaryResponse(BaseModel):
    summaries: List[ClusterSummary] = Field(default_factory=list)


def build_cluster_payload(ranked: Sequence[RankedHeadline]) -> str:
    clusters = []
    for index, item in enumerate(ranked):
        headline = item.candidate.headline
        clusters.append({
            'index': index,
            'title': headline.title,
            'description': headline.description,
            'source': headline.source,
            'related': [r.title for r in item.candidate.related],
        })
    return json.dumps({'clusters': clusters}, ensure_ascii=False)


async def summarize_clusters(llm, ranked: Sequence[RankedHeadline],
                             model: Optional[str] = None) -> Tuple[Dict[int, HeadlineSummary], List[str]]:
    """
    Summarize ranked clusters in one request.

    Args:
        llm: Client exposing ``chat_json``
        ranked: Headlines in their final order
        model: Model name

    Returns:
        Mapping of position to summary, and warnings. A failed call yields an
        empty mapping and one warning.
    """
    if not ranked:
        return {}, []

    try:
        data = await llm.chat_json(
            [
                {"role": "system", "content": SUMMARY_SYSTEM_PROMPT},
                {"role": "user", "content": build_cluster_payload(ranked)},
            ],
            model=model,
            max_tokens=min(4000, 250 * len(ranked) + 200),
            temperature=0.3,
            interaction_type="cluster_summary",
        )
        parsed = ClusterSummaryResponse.model_validate(data)
    except (UpstreamError, ValidationError) as e:
        logger.warning(f"Cluster summarization failed: {e}")
        return {}, [f"Summaries unavailable: {describe_exception(e)}"]

    summaries: Dict[int, HeadlineSummary] = {}
    for entry in parsed.summaries:
        overview = entry.overview.strip()
        bullets = [b.strip() for b in entry.bullets if isinstance(b, str) and b.strip()]
        if 0 <= entry.index < len(ranked) and (overview or bullets):
            summaries[entry.index] = HeadlineSummary(overview=overview, bullets=bullets)
    return summaries, []
