#!/usr/bin/env python3
"""
Grok (x.ai) chat client used for the optional verification pass.

Responses are streamed as server-sent events and aggregated into a single
assistant message. The whole call runs under a client-side timeout.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Iterable, List, Optional

import aiohttp

from core.exceptions import UpstreamError
from .openai_client import ChatResult

logger = logging.getLogger(__name__)

GROK_API_URL = "https://api.x.ai/v1/chat/completions"
DEFAULT_GROK_MODEL = "grok-4-fast"


def aggregate_stream_lines(lines: Iterable[str]) -> Dict[str, Any]:
    """
    Fold SSE ``data:`` lines into a chat-completion shaped payload.

    Args:
        lines: Decoded lines of the event stream

    Returns:
        Dict with ``choices[0].message`` holding the assistant content
    """
    parts: List[str] = []
    finish_reason: Optional[str] = None
    usage: Dict[str, int] = {}
    model = ''

    for raw_line in lines:
        line = raw_line.strip()
        if not line.startswith('data:'):
            continue
        data = line[len('data:'):].strip()
        if not data:
            continue
        if data == '[DONE]':
            break
        try:
            chunk = json.loads(data)
        except json.JSONDecodeError:
            logger.debug(f"Skipping malformed stream chunk: {data[:80]}")
            continue

        model = chunk.get('model') or model
        if isinstance(chunk.get('usage'), dict):
            usage = chunk['usage']
        for choice in chunk.get('choices') or []:
            delta = choice.get('delta') or {}
            content = delta.get('content')
            if isinstance(content, str):
                parts.append(content)
            if choice.get('finish_reason'):
                finish_reason = choice['finish_reason']

    return {
        'model': model,
        'choices': [{
            'message': {'role': 'assistant', 'content': ''.join(parts)},
            'finish_reason': finish_reason,
        }],
        'usage': usage,
    }


class GrokClient:
    """Streaming Grok chat client."""

    provider = "grok"

    def __init__(self, api_key: str, model: str = DEFAULT_GROK_MODEL, timeout: int = 45,
                 url: str = GROK_API_URL):
        if not api_key:
            raise ValueError("Grok API key is required")
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.url = url

    async def _stream(self, body: Dict[str, Any]) -> Dict[str, Any]:
        headers = {
            'Authorization': f"Bearer {self.api_key}",
            'Content-Type': 'application/json',
        }
        async with aiohttp.ClientSession() as session:
            async with session.post(self.url, json=body, headers=headers) as response:
                if response.status >= 400:
                    text = await response.text()
                    message = text
                    try:
                        parsed = json.loads(text)
                        error = parsed.get('error')
                        message = (error.get('message') if isinstance(error, dict) else error) or text
                    except (json.JSONDecodeError, AttributeError):
                        pass
                    raise UpstreamError(
                        'Grok',
                        f"Grok API request failed with status {response.status}: {message}",
                        status=response.status,
                    )

                lines: List[str] = []
                async for raw in response.content:
                    line = raw.decode('utf-8', errors='replace')
                    lines.append(line)
                    if line.strip() == 'data: [DONE]':
                        break
                return aggregate_stream_lines(lines)

    async def chat(self, messages: List[Dict[str, str]], model: Optional[str] = None,
                   max_tokens: Optional[int] = None, temperature: Optional[float] = None,
                   interaction_type: str = "verification") -> ChatResult:
        """
        Run a streamed chat completion.

        Raises:
            UpstreamError: On HTTP failure, timeout or an empty response
        """
        model = model or self.model
        body: Dict[str, Any] = {'model': model, 'messages': messages, 'stream': True}
        if max_tokens is not None:
            body['max_tokens'] = max_tokens
        if temperature is not None:
            body['temperature'] = temperature

        logger.info(f"Making Grok call for {interaction_type} ({model})")
        try:
            payload = await asyncio.wait_for(self._stream(body), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"Grok request timed out after {self.timeout}s")
            raise UpstreamError('Grok', f"Grok request timed out after {self.timeout}s", original_error=e) from e
        except aiohttp.ClientError as e:
            raise UpstreamError('Grok', f"Grok request failed: {e}", original_error=e) from e

        choice = payload['choices'][0]
        content = choice['message']['content']
        if not content.strip():
            raise UpstreamError('Grok', "Grok returned an empty response")
        return ChatResult(
            content=content,
            finish_reason=choice.get('finish_reason'),
            usage=payload.get('usage') or {},
            model=payload.get('model') or model,
        )
