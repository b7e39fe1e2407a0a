#!/usr/bin/env python3
"""
OpenAI integration for article generation, keyword inference and embeddings.

Wraps AsyncOpenAI so routes get plain dataclasses back, upstream failures
surface as LLMError, and model-specific parameter quirks are handled in
one place.
"""

import os
import re
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI, OpenAIError

from core.exceptions import LLMError
from core.json_validator import JSONValidationError, parse_llm_json

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"
EMBEDDING_MODEL = "text-embedding-3-small"

# Models that only accept the default temperature and max_completion_tokens
_FIXED_SAMPLING_PATTERNS = [re.compile(r'^gpt-4\.1'), re.compile(r'^gpt-5'), re.compile(r'^o\d')]


def uses_fixed_sampling(model: Optional[str]) -> bool:
    if not model:
        return False
    return any(pattern.match(model) for pattern in _FIXED_SAMPLING_PATTERNS)


def normalize_chat_params(model: str, params: Dict[str, Any]) -> Dict[str, Any]:
    """
    Adapt request parameters to what the model accepts.

    Args:
        model: Target model name
        params: Request keyword arguments

    Returns:
        New parameter dict with temperature and token limit adjusted
    """
    normalized = {key: value for key, value in params.items() if value is not None}
    if not uses_fixed_sampling(model):
        return normalized

    temperature = normalized.pop('temperature', None)
    if temperature == 1:
        normalized['temperature'] = 1
    if 'max_tokens' in normalized:
        normalized['max_completion_tokens'] = normalized.pop('max_tokens')
    return normalized


@dataclass
class ChatResult:
    """Outcome of a chat completion."""
    content: str
    finish_reason: Optional[str] = None
    usage: Dict[str, int] = field(default_factory=dict)
    model: str = ""

    @property
    def truncated(self) -> bool:
        return self.finish_reason == "length"

    @property
    def completion_tokens(self) -> int:
        return int(self.usage.get('completion_tokens') or 0)


def _split_prompts(messages: List[Dict[str, str]]):
    system_prompt = ""
    user_prompt = ""
    for msg in messages:
        if msg.get('role') == 'system':
            system_prompt = msg.get('content', '')
        elif msg.get('role') == 'user':
            user_prompt = msg.get('content', '')
    return system_prompt, user_prompt


class OpenAIClient:
    """Async client for OpenAI chat completions and embeddings."""

    provider = "openai"

    def __init__(self, api_key: Optional[str] = None, default_model: str = DEFAULT_MODEL,
                 client: Optional[AsyncOpenAI] = None):
        """
        Initialize OpenAI client.

        Args:
            api_key: OpenAI API key. If None, tries to get from environment.
            default_model: Model used when a call does not name one
            client: Preconfigured AsyncOpenAI instance
        """
        if client is None:
            api_key = api_key or os.getenv('OPENAI_API_KEY')
            if not api_key:
                raise ValueError("OpenAI API key not provided and not found in OPENAI_API_KEY environment variable")
            client = AsyncOpenAI(api_key=api_key)
        self.client = client
        self.default_model = default_model

    async def chat(self, messages: List[Dict[str, str]], model: Optional[str] = None,
                   max_tokens: Optional[int] = None, temperature: Optional[float] = None,
                   response_format: Optional[Dict[str, Any]] = None,
                   interaction_type: str = "chat") -> ChatResult:
        """
        Run a chat completion.

        Args:
            messages: Chat messages
            model: Model name, defaults to the client's default model
            max_tokens: Completion token limit
            temperature: Sampling temperature
            response_format: Optional response_format payload
            interaction_type: Label used in logs

        Returns:
            ChatResult with content, finish reason and token usage

        Raises:
            LLMError: If the API call fails
        """
        model = model or self.default_model
        params = normalize_chat_params(model, {
            'max_tokens': max_tokens,
            'temperature': temperature,
            'response_format': response_format,
        })

        logger.info(f"Making OpenAI call for {interaction_type} ({model}, {len(messages)} messages)")
        for i, msg in enumerate(messages):
            content = msg.get('content', '')
            preview = content if len(content) <= 1000 else content[:500] + "\n...\n" + content[-500:]
            logger.debug(f"Message {i + 1} [{msg.get('role', 'unknown').upper()}]:\n{preview}")

        try:
            response = await self.client.chat.completions.create(model=model, messages=messages, **params)
        except OpenAIError as e:
            logger.error(f"OpenAI request for {interaction_type} failed: {e}")
            raise LLMError(self.provider, model, e) from e

        if not response.choices:
            raise LLMError(self.provider, model, ValueError("response contained no choices"))

        choice = response.choices[0]
        usage = {}
        if response.usage is not None:
            usage = {
                'prompt_tokens': response.usage.prompt_tokens,
                'completion_tokens': response.usage.completion_tokens,
                'total_tokens': response.usage.total_tokens,
            }
        result = ChatResult(
            content=choice.message.content or "",
            finish_reason=getattr(choice, 'finish_reason', None),
            usage=usage,
            model=model,
        )

        if result.truncated:
            logger.warning(f"OpenAI response for {interaction_type} was truncated at max_tokens={max_tokens}")
        logger.info(
            f"OpenAI call successful - tokens: {usage.get('prompt_tokens', 'unknown')} prompt + "
            f"{usage.get('completion_tokens', 'unknown')} completion"
        )

        from core.llm_logger import get_llm_logger
        system_prompt, user_prompt = _split_prompts(messages)
        get_llm_logger().log_llm_interaction(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            response=result.content,
            token_usage=usage,
            interaction_type=interaction_type,
            model=model,
        )
        return result

    async def chat_json(self, messages: List[Dict[str, str]], model: Optional[str] = None,
                        max_tokens: Optional[int] = None, temperature: Optional[float] = None,
                        interaction_type: str = "json") -> Dict[str, Any]:
        """Run a chat completion in JSON mode and return the parsed object."""
        model = model or self.default_model
        result = await self.chat(
            messages,
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
            response_format={"type": "json_object"},
            interaction_type=interaction_type,
        )
        try:
            return parse_llm_json(result.content)
        except JSONValidationError as e:
            raise LLMError(self.provider, model, e) from e

    async def embed(self, texts: List[str], model: str = EMBEDDING_MODEL) -> List[List[float]]:
        """Embed texts, preserving input order."""
        if not texts:
            return []
        try:
            response = await self.client.embeddings.create(model=model, input=texts)
        except OpenAIError as e:
            logger.error(f"OpenAI embedding request failed: {e}")
            raise LLMError(self.provider, model, e) from e
        ordered = sorted(response.data, key=lambda item: item.index)
        return [list(item.embedding) for item in ordered]

    async def test_connection(self) -> bool:
        """Test the OpenAI API connection."""
        try:
            result = await self.chat(
                [{"role": "user", "content": "Say 'Connection successful' in exactly those words."}],
                max_tokens=10,
                interaction_type="connection_test",
            )
            return "Connection successful" in result.content
        except LLMError as e:
            logger.error(f"OpenAI connection test failed: {e}")
            return False
