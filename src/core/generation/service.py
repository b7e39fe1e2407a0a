#!/usr/bin/env python3
"""
Article generation service behind ``/api/generate``.

Collects recent reporting, builds the article-type prompt, runs the
draft-and-verify loop and optionally fact-checks the result.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from core import prompts
from core.exceptions import UpstreamError
from core.models import SourceArticle
from core.sources import fetch_sources
from .budget import DEFAULT_MAX_TOKENS, TokenBudget, calc_max_tokens, listicle_budget
from .loop import GenerationLoop
from .request import LISTICLE, REWRITE, YOUTUBE, ArticleRequest
from .verification import verify_output

logger = logging.getLogger(__name__)

MIN_LINKS = 3
OUTLINE_TEMPERATURE = 0.7
SUMMARY_MAX_TOKENS = 300
SUMMARY_TEMPERATURE = 0.5


@dataclass
class GenerationSettings:
    min_links: int = MIN_LINKS
    max_links_per_block: int = 2
    verification_timeout: int = 45
    max_source_age_days: int = 14

    @classmethod
    def from_config(cls, config) -> 'GenerationSettings':
        app = config.app
        return cls(
            min_links=app.min_links,
            max_links_per_block=app.max_links_per_block,
            verification_timeout=app.verification_timeout,
            max_source_age_days=app.source_recency_days,
        )


class ArticleGenerator:
    """Produces article HTML for one generate request."""

    def __init__(self, llm, content_fetcher=None, newsapi=None, serpapi=None, grok=None,
                 usage_cache=None, settings: Optional[GenerationSettings] = None):
        """
        Args:
            llm: OpenAIClient
            content_fetcher: ContentFetcher for blog text and transcripts
            newsapi: NewsAPIClient for the ``NEWS_API_KEY`` account, optional
            serpapi: SerpAPIClient; source lookup is disabled without it
            grok: GrokClient used for the verification pass, optional
            usage_cache: Injected UsageEstimateCache
            settings: Link and verification settings
        """
        self.llm = llm
        self.content_fetcher = content_fetcher
        self.newsapi = newsapi
        self.serpapi = serpapi
        self.grok = grok
        self.usage_cache = usage_cache
        self.settings = settings or GenerationSettings()

    async def _collect_sources(self, request: ArticleRequest) -> List[SourceArticle]:
        if not (request.include_links and request.use_serp_api and self.serpapi is not None):
            return []
        return await fetch_sources(
            request.title,
            request.news_freshness,
            newsapi=self.newsapi,
            serpapi=self.serpapi,
            max_age_days=self.settings.max_source_age_days,
        )

    async def _outline(self, prompt: str, model: str) -> str:
        result = await self.llm.chat(
            [{'role': 'user', 'content': prompt}],
            model=model,
            temperature=OUTLINE_TEMPERATURE,
            interaction_type="outline",
        )
        outline = result.content.strip()
        if not outline:
            raise UpstreamError('OpenAI', "Outline generation failed")
        return outline

    async def _fetch_text(self, method: str, url: Optional[str]) -> str:
        if self.content_fetcher is None or not url:
            return ''
        return await asyncio.to_thread(getattr(self.content_fetcher, method), url)

    async def summarize_blog_content(self, blog_link: Optional[str], use_summary: bool, model: str) -> str:
        """Fetch a blog post and optionally condense it to bullet points."""
        original = await self._fetch_text('fetch_blog_content', blog_link)
        if not original or not use_summary:
            return original
        try:
            result = await self.llm.chat(
                [{'role': 'user', 'content': prompts.build_blog_summary_prompt(original)}],
                model=model,
                max_tokens=SUMMARY_MAX_TOKENS,
                temperature=SUMMARY_TEMPERATURE,
                interaction_type="blog_summary",
            )
        except UpstreamError as e:
            logger.warning(f"Blog summary failed, using original text: {e}")
            return original
        return result.content.strip() or original

    def _prompt_parts(self, request: ArticleRequest, sources: List[SourceArticle], min_links: int) -> prompts.PromptParts:
        urls = [source.url for source in sources]
        return prompts.PromptParts(
            title=request.title,
            tone=prompts.tone_instruction(request.tone_of_voice, request.custom_tone),
            point_of_view=prompts.point_of_view_instruction(request.point_of_view),
            custom=prompts.custom_instruction_block(request.custom_instructions),
            links=prompts.link_instruction(urls, min_links),
            reporting_block=prompts.build_recent_reporting_block(sources),
            grounding=prompts.GROUNDING_INSTRUCTION if sources else '',
        )

    async def _build_prompt(self, request: ArticleRequest, parts: prompts.PromptParts,
                            sources: List[SourceArticle]):
        """Return (prompt, base_max_tokens, min_words) for the article type."""
        model = request.model_version
        length_option, custom_sections = request.length_option, request.custom_sections
        base_tokens = calc_max_tokens(prompts.desired_word_count(length_option, custom_sections), model)
        min_words = prompts.get_word_bounds(length_option, custom_sections)[0]

        if request.article_type == LISTICLE:
            count = request.list_count
            outline = await self._outline(
                prompts.build_listicle_outline_prompt(request.title, count, request.list_numbering_format), model
            )
            max_tokens, min_words = listicle_budget(count, request.list_item_word_count, model)
            prompt = prompts.build_listicle_prompt(
                parts, outline, count, request.list_numbering_format, request.list_item_word_count
            )
            return prompt, max_tokens, min_words

        if request.article_type == YOUTUBE:
            transcript = await self._fetch_text('fetch_transcript', request.video_link)
            return prompts.build_youtube_prompt(parts, transcript, request.video_link), base_tokens, 0

        if request.article_type == REWRITE:
            source_text = await self.summarize_blog_content(request.blog_link, request.use_summary, model)
            prompt = prompts.build_rewrite_prompt(parts, source_text, request.blog_link, length_option, custom_sections)
            return prompt, base_tokens, min_words

        outline = await self._outline(
            prompts.build_blog_outline_prompt(
                request.title, length_option, custom_sections, [s.url for s in sources]
            ),
            model,
        )
        prompt = prompts.build_blog_prompt(parts, outline, length_option, custom_sections)
        return prompt, base_tokens, min_words

    async def generate(self, request: ArticleRequest) -> Dict[str, Any]:
        """
        Generate an article.

        Returns:
            ``{content, sources, warnings?}``

        Raises:
            VerificationError: If the draft fails a check after its rewrite
            UpstreamError: If a model call fails
        """
        sources = await self._collect_sources(request)
        source_urls = [source.url for source in sources]
        min_links = min(self.settings.min_links, len(sources))

        parts = self._prompt_parts(request, sources, min_links)
        prompt, base_tokens, min_words = await self._build_prompt(request, parts, sources)

        estimate = self.usage_cache.get_estimate(request.article_type) if self.usage_cache else None
        budget = TokenBudget.for_request(base_tokens or DEFAULT_MAX_TOKENS, request.model_version, estimate)

        loop = GenerationLoop(
            self.llm,
            request.model_version,
            budget,
            sources=source_urls,
            min_links=min_links,
            max_links_per_block=self.settings.max_links_per_block,
            min_words=min_words,
            article_type=request.article_type,
            usage_cache=self.usage_cache,
        )
        result = await loop.run(prompt)
        logger.info(
            f"Generated {request.article_type} '{request.title}' in {result.attempts} attempts "
            f"({len(sources)} sources, max_tokens={result.max_tokens})"
        )

        body: Dict[str, Any] = {'content': result.content, 'sources': source_urls}
        if request.verify_output:
            warnings = await verify_output(
                result.content,
                sources,
                grok=self.grok,
                llm=self.llm,
                model=request.model_version,
                timeout=self.settings.verification_timeout,
            )
            if warnings:
                body['warnings'] = warnings
        return body
