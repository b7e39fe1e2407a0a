#!/usr/bin/env python3
"""
Draft-and-verify loop for generated articles.

Drafts an article, walks the checks from ``core.generation.state`` and
re-prompts with a corrective instruction when a check fails. A check that
fails again after its rewrite raises VerificationError.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from core.exceptions import VerificationError
from core.llm_logger import get_llm_logger
from core.prompts import (
    clean_model_output,
    link_clustering_instruction,
    link_count_instruction,
    missing_sources_instruction,
    word_count_instruction,
)
from .budget import TokenBudget
from .checks import count_links, count_words, detect_link_clustering, find_missing_sources
from .state import FAIL, RETRY, GenerationState, Transition, next_transition

logger = logging.getLogger(__name__)

MAX_TRUNCATION_RETRIES = 1
DEFAULT_TEMPERATURE = 0.7


@dataclass
class GenerationResult:
    content: str
    attempts: int
    max_tokens: int
    history: List[Transition] = field(default_factory=list)


class GenerationLoop:
    """Runs one article prompt through drafting and verification."""

    def __init__(self, llm, model: str, budget: TokenBudget, sources: Sequence[str] = (),
                 min_links: int = 0, max_links_per_block: int = 2, min_words: int = 0,
                 system_prompt: Optional[str] = None, temperature: float = DEFAULT_TEMPERATURE,
                 article_type: str = 'blog', usage_cache=None):
        """
        Args:
            llm: Client exposing ``chat`` returning a ChatResult
            model: Model name
            budget: Token budget shared by every call of this request
            sources: Source URLs the article must cite
            min_links: Minimum number of links in the article
            max_links_per_block: Links allowed in one paragraph or list item
            min_words: Minimum visible word count, 0 disables the check
            system_prompt: Optional system message
            temperature: Sampling temperature
            article_type: Key for the usage-estimate cache
            usage_cache: UsageEstimateCache updated with observed completion sizes
        """
        self.llm = llm
        self.model = model
        self.budget = budget
        self.sources = [s for s in sources if s]
        self.min_links = min_links
        self.max_links_per_block = max_links_per_block
        self.min_words = min_words
        self.system_prompt = system_prompt
        self.temperature = temperature
        self.article_type = article_type
        self.usage_cache = usage_cache
        self.llm_logger = get_llm_logger()

    def _messages(self, prompt: str) -> List[Dict[str, str]]:
        messages = []
        if self.system_prompt:
            messages.append({'role': 'system', 'content': self.system_prompt})
        messages.append({'role': 'user', 'content': prompt})
        return messages

    async def _complete(self, prompt: str) -> str:
        messages = self._messages(prompt)
        result = await self.llm.chat(
            messages,
            model=self.model,
            max_tokens=self.budget.tokens,
            temperature=self.temperature,
            interaction_type=f"generate_{self.article_type}",
        )
        truncation_retries = 0
        while result.truncated and self.budget.can_grow and truncation_retries < MAX_TRUNCATION_RETRIES:
            truncation_retries += 1
            logger.info(f"Draft truncated, retrying with max_tokens={self.budget.grow()}")
            result = await self.llm.chat(
                messages,
                model=self.model,
                max_tokens=self.budget.tokens,
                temperature=self.temperature,
                interaction_type=f"generate_{self.article_type}",
            )

        if self.usage_cache is not None:
            self.usage_cache.record_usage(self.article_type, result.completion_tokens)
        return clean_model_output(result.content)

    def evaluate(self, state: GenerationState, content: str) -> Tuple[bool, Dict[str, Any]]:
        """Run the check for ``state`` and return (passed, details)."""
        if state is GenerationState.CHECK_CITATIONS:
            missing = find_missing_sources(content, self.sources)
            return not missing, {'missingSources': missing}

        if state is GenerationState.CHECK_LINK_COUNT:
            found = count_links(content)
            return found >= self.min_links, {'linkCount': found, 'minLinks': self.min_links}

        if state is GenerationState.CHECK_LINK_CLUSTERING:
            clustering = detect_link_clustering(content, self.max_links_per_block)
            return clustering is None, {'clustering': clustering} if clustering else {}

        if state is GenerationState.CHECK_WORD_COUNT:
            if self.min_words <= 0:
                return True, {}
            words = count_words(content)
            return words >= self.min_words, {'wordCount': words, 'minWords': self.min_words}

        raise ValueError(f"{state.name} is not a check")

    def correction(self, state: GenerationState, details: Dict[str, Any]) -> str:
        if state is GenerationState.CHECK_CITATIONS:
            return missing_sources_instruction(details['missingSources'])
        if state is GenerationState.CHECK_LINK_COUNT:
            return link_count_instruction(self.min_links, details['linkCount'])
        if state is GenerationState.CHECK_LINK_CLUSTERING:
            return link_clustering_instruction(self.max_links_per_block)
        return word_count_instruction(details['wordCount'], self.min_words)

    @staticmethod
    def failure(state: GenerationState, details: Dict[str, Any]) -> VerificationError:
        if state is GenerationState.CHECK_CITATIONS:
            missing = details['missingSources']
            return VerificationError(
                'missing_sources',
                f"Generated article is missing required sources: {', '.join(missing)}",
                details,
            )
        if state is GenerationState.CHECK_LINK_COUNT:
            return VerificationError(
                'link_count',
                f"Generated article includes {details['linkCount']} links; "
                f"at least {details['minLinks']} are required",
                details,
            )
        if state is GenerationState.CHECK_LINK_CLUSTERING:
            return VerificationError(
                'link_clustering',
                f"Generated article links are clustered: {details['clustering']}",
                details,
            )
        return VerificationError(
            'word_count',
            f"Generated article has {details['wordCount']} words; at least {details['minWords']} are required",
            details,
        )

    async def run(self, prompt: str) -> GenerationResult:
        """
        Draft the article and drive it through every check.

        Raises:
            VerificationError: If a check still fails after its corrective rewrite
            LLMError: If a model call fails
        """
        content = await self._complete(prompt)
        attempts = 1
        retries_used: Set[GenerationState] = set()
        history: List[Transition] = []

        transition = next_transition(GenerationState.DRAFT)
        history.append(transition)
        state = transition.next_state

        while not state.is_terminal:
            passed, details = self.evaluate(state, content)
            self.llm_logger.log_generation_check(state.value, passed, details)
            transition = next_transition(state, passed, state in retries_used)
            history.append(transition)
            logger.debug(f"{transition.reason} -> {transition.next_state.value}")

            if transition.action == FAIL:
                logger.warning(f"Generation failed at {state.value}: {details}")
                raise self.failure(state, details)

            if transition.action == RETRY:
                retries_used.add(state)
                if state is GenerationState.CHECK_WORD_COUNT and self.budget.can_grow:
                    self.budget.grow()
                logger.info(f"Rewriting draft after failed {state.value}")
                rewritten = await self._complete(f"{prompt}\n\n{self.correction(state, details)}")
                attempts += 1
                content = rewritten or content

            state = transition.next_state

        return GenerationResult(content=content, attempts=attempts, max_tokens=self.budget.tokens, history=history)
