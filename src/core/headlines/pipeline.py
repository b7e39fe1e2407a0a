#!/usr/bin/env python3
"""
Headline pipeline behind ``/api/headlines``.

Runs the planned NewsAPI searches (with paging), RSS feeds and the SerpAPI
fallback, folds everything into deduplicated candidates, ranks them and
optionally summarizes the top results.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from core.deduplication import HeadlineAggregator
from core.exceptions import ConfigurationError, ContentStudioError, UpstreamError, describe_exception
from core.ranking import DEFAULT_RECENCY_HORIZON_HOURS, RankingWeights, rank_candidates
from core.summarizer import summarize_clusters
from .inference import infer_terms
from .planner import PlannedQuery, build_query_plan
from .request import HeadlineQuery

logger = logging.getLogger(__name__)

SERP_FALLBACK_ENGINES = ('google_news', 'google')
SERP_FALLBACK_TBS = 'qdr:w2'


@dataclass
class PipelineSettings:
    """Tunable parameters for the pipeline."""
    near_duplicate_threshold: float = 0.7
    weights: RankingWeights = field(default_factory=RankingWeights)
    recency_horizon_hours: float = DEFAULT_RECENCY_HORIZON_HOURS
    token_set_cap: int = 64
    max_pages_per_query: int = 3
    model: Optional[str] = None

    @classmethod
    def from_config(cls, config) -> 'PipelineSettings':
        app = config.app
        return cls(
            near_duplicate_threshold=app.near_duplicate_threshold,
            weights=RankingWeights.from_tuple(app.ranking_weights),
            recency_horizon_hours=app.recency_horizon_hours,
            token_set_cap=app.token_set_cap,
            max_pages_per_query=app.max_pages_per_query,
            model=app.default_model,
        )


@dataclass
class _RunState:
    queries_attempted: List[str] = field(default_factory=list)
    successful_queries: int = 0
    warnings: List[str] = field(default_factory=list)
    query_errors: List[Dict[str, Any]] = field(default_factory=list)
    errors: List[ContentStudioError] = field(default_factory=list)

    def record_failure(self, label: str, error: ContentStudioError) -> None:
        message = describe_exception(error)
        self.errors.append(error)
        self.warnings.append(f'Query "{label}" failed: {message}')
        self.query_errors.append({'query': label, 'error': message})


class HeadlinePipeline:
    """Collects, deduplicates and ranks headlines for one request."""

    def __init__(self, newsapi=None, serpapi=None, feeds=None, llm=None,
                 settings: Optional[PipelineSettings] = None):
        """
        Args:
            newsapi: NewsAPIClient, or None when NEWSAPI_API_KEY is missing
            serpapi: SerpAPIClient used as a fallback, optional
            feeds: FeedClient for RSS feeds, optional
            llm: OpenAIClient for keyword inference and summaries, optional
            settings: Pipeline parameters
        """
        self.newsapi = newsapi
        self.serpapi = serpapi
        self.feeds = feeds
        self.llm = llm
        self.settings = settings or PipelineSettings()

    async def run(self, request: HeadlineQuery, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Execute the pipeline.

        Returns:
            JSON-ready response body

        Raises:
            ConfigurationError: If NewsAPI searches are needed but no key is configured
            UpstreamError: If every attempted query failed
        """
        state = _RunState()
        threshold = self.settings.near_duplicate_threshold if request.strict_dedupe else None
        aggregator = HeadlineAggregator(threshold, self.settings.token_set_cap)
        response_extras: Dict[str, Any] = {}

        keywords = list(request.keywords)
        if request.description and not keywords and not request.category:
            inferred = await infer_terms(request.description, self.llm, self.settings.model)
            keywords = inferred.keywords
            response_extras['inferredKeywords'] = inferred.keywords
            response_extras['inferredCategories'] = inferred.categories

        plan = [] if request.category else build_query_plan(request, keywords)
        if (plan or request.category) and self.newsapi is None:
            raise ConfigurationError('NEWSAPI_API_KEY')

        if request.category:
            await self._run_category(request, aggregator, state)
        for planned in plan:
            await self._run_query(planned, request, aggregator, state)

        if request.rss_feeds:
            await self._run_feeds(request.rss_feeds, aggregator, state)

        newsapi_attempted = bool(plan or request.category)
        if newsapi_attempted and len(aggregator) == 0 and self.serpapi is not None:
            fallback_query = plan[0].query if plan else (request.query or request.category)
            await self._run_serp_fallback(fallback_query, aggregator, state)

        if state.successful_queries == 0 and state.errors:
            raise state.errors[0]

        ranked = rank_candidates(
            aggregator.candidates,
            now=now,
            weights=self.settings.weights,
            horizon_hours=self.settings.recency_horizon_hours,
        )[:request.limit]

        if request.summarize and ranked:
            if self.llm is None:
                state.warnings.append("Summaries unavailable: OPENAI_API_KEY is not configured")
            else:
                summaries, summary_warnings = await summarize_clusters(self.llm, ranked, self.settings.model)
                for position, summary in summaries.items():
                    ranked[position].summary = summary
                state.warnings.extend(summary_warnings)

        logger.info(
            f"Headlines: {len(ranked)} returned from {len(aggregator)} candidates "
            f"({state.successful_queries}/{len(state.queries_attempted)} queries ok)"
        )

        body: Dict[str, Any] = {
            'headlines': [item.to_dict() for item in ranked],
            'totalResults': len(ranked),
            'queriesAttempted': state.queries_attempted,
            'successfulQueries': state.successful_queries,
            'ranking': {
                'weights': self.settings.weights.to_dict(),
                'candidateCount': len(aggregator),
                'dedupeMode': request.dedupe_mode,
            },
        }
        body.update(response_extras)
        if state.warnings:
            body['warnings'] = state.warnings
        if state.query_errors:
            body['queryErrors'] = state.query_errors
        return body

    async def _run_category(self, request: HeadlineQuery, aggregator: HeadlineAggregator,
                            state: _RunState) -> None:
        label = f"category:{request.category}"
        state.queries_attempted.append(label)
        params: Dict[str, Any] = {
            'category': request.category,
            'country': request.country,
            'pageSize': request.limit,
            'page': 1,
        }
        if request.query:
            params['q'] = request.query
        try:
            page = await self.newsapi.top_headlines(params)
        except UpstreamError as e:
            state.record_failure(label, e)
            return
        for raw in page.articles:
            headline = raw.normalize()
            if headline:
                aggregator.add(headline)
        state.successful_queries += 1

    async def _run_query(self, planned: PlannedQuery, request: HeadlineQuery,
                         aggregator: HeadlineAggregator, state: _RunState) -> None:
        state.queries_attempted.append(planned.query)
        filters = request.newsapi_filters()
        added = 0
        page_size = planned.target
        page_number = 1

        try:
            while True:
                params = dict(filters, q=planned.query, pageSize=page_size, page=page_number)
                page = await self.newsapi.everything(params)
                for raw in page.articles:
                    headline = raw.normalize()
                    if headline and aggregator.add(headline):
                        added += 1

                page_was_full = page.raw_count >= page_size
                if added >= planned.target or not page_was_full:
                    break
                if page_number >= self.settings.max_pages_per_query:
                    break
                page_size = planned.target - added
                page_number += 1
        except UpstreamError as e:
            if page_number == 1:
                state.record_failure(planned.query, e)
                return
            logger.warning(f"Paging stopped for '{planned.query}' at page {page_number}: {e}")
            state.warnings.append(f'Query "{planned.query}" stopped paging: {describe_exception(e)}')

        state.successful_queries += 1
        logger.debug(f"Query '{planned.query}' added {added} unique headlines")

    async def _run_feeds(self, feed_urls: List[str], aggregator: HeadlineAggregator,
                         state: _RunState) -> None:
        if self.feeds is None:
            for url in feed_urls:
                state.queries_attempted.append(f"RSS: {url}")
                state.record_failure(f"RSS: {url}", UpstreamError('RSS', "RSS feeds are not available"))
            return

        for url, result in await self.feeds.fetch_feeds(feed_urls):
            if isinstance(result, UpstreamError):
                label = f"RSS: {url}"
                state.queries_attempted.append(label)
                state.record_failure(label, result)
                continue
            state.queries_attempted.append(f"RSS: {result.title}")
            state.successful_queries += 1
            for raw in result.articles:
                headline = raw.normalize()
                if headline:
                    aggregator.add(headline)

    async def _run_serp_fallback(self, query: str, aggregator: HeadlineAggregator,
                                 state: _RunState) -> None:
        logger.info(f"NewsAPI returned nothing for '{query}', trying SerpAPI")
        for engine in SERP_FALLBACK_ENGINES:
            label = f"SerpAPI ({engine}): {query}"
            state.queries_attempted.append(label)
            try:
                articles = await self.serpapi.search(query, engine=engine, extra_params={'tbs': SERP_FALLBACK_TBS})
            except UpstreamError as e:
                state.record_failure(label, e)
                continue
            state.successful_queries += 1
            for raw in articles:
                headline = raw.normalize()
                if headline:
                    aggregator.add(headline)
