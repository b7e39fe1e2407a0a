#!/usr/bin/env python3
"""
Query planning for the headline pipeline.

The manual query and the combined keyword query are the primary queries and
share the requested limit. Individual keywords are searched afterwards to
broaden coverage when there is more than one keyword.
"""

import math
from dataclasses import dataclass
from typing import List

from .request import HeadlineQuery


@dataclass(frozen=True)
class PlannedQuery:
    """One NewsAPI search and how many unique results it should contribute."""
    query: str
    target: int
    primary: bool = True


def quote_keyword(keyword: str) -> str:
    """Quote multi-word keywords so NewsAPI treats them as phrases."""
    keyword = keyword.strip()
    if ' ' in keyword and not (keyword.startswith('"') and keyword.endswith('"')):
        return f'"{keyword}"'
    return keyword


def build_keyword_query(keywords: List[str]) -> str:
    return ' AND '.join(quote_keyword(k) for k in keywords if k.strip())


def build_query_plan(request: HeadlineQuery, keywords: List[str] = None) -> List[PlannedQuery]:
    """
    Build the ordered list of NewsAPI searches.

    Args:
        request: Validated request
        keywords: Keywords to use, defaults to the request's own

    Returns:
        Planned queries in execution order
    """
    keywords = [k.strip() for k in (request.keywords if keywords is None else keywords) if k.strip()]

    primaries: List[str] = []
    if request.query:
        primaries.append(request.query)
    combined = build_keyword_query(keywords)
    if combined and combined not in primaries:
        primaries.append(combined)

    if not primaries:
        return []

    per_query = max(1, math.ceil(request.limit / len(primaries)))
    plan = [PlannedQuery(query=q, target=per_query, primary=True) for q in primaries]

    if len(keywords) >= 2:
        seen = set(primaries)
        for keyword in keywords:
            single = quote_keyword(keyword)
            if single in seen:
                continue
            seen.add(single)
            plan.append(PlannedQuery(query=single, target=per_query, primary=False))
    return plan
