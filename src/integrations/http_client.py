#!/usr/bin/env python3
"""
Shared aiohttp plumbing for JSON upstream APIs.

Every non-2xx status, timeout, connection failure or non-JSON body becomes
an UpstreamError carrying the upstream message where one is available.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import aiohttp

from core.config import DEFAULT_USER_AGENT
from core.exceptions import UpstreamError

logger = logging.getLogger(__name__)

Params = Union[Dict[str, Any], Sequence[Tuple[str, Any]]]


def _extract_error_message(payload: Any) -> Optional[str]:
    if isinstance(payload, dict):
        for key in ('message', 'error', 'detail'):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
            if isinstance(value, dict):
                nested = value.get('message')
                if isinstance(nested, str) and nested.strip():
                    return nested.strip()
    return None


class JsonHttpClient:
    """Base class for clients that talk JSON over HTTPS."""

    service_name = "upstream"

    def __init__(self, timeout: int = 15, user_agent: str = DEFAULT_USER_AGENT,
                 session: Optional[aiohttp.ClientSession] = None):
        """
        Args:
            timeout: Total request timeout in seconds
            user_agent: User-Agent header sent upstream
            session: Shared session; when None a session is opened per request
        """
        self.timeout = timeout
        self.user_agent = user_agent
        self._session = session

    def _new_session(self) -> aiohttp.ClientSession:
        return aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout),
            headers={'User-Agent': self.user_agent},
        )

    async def _request_json(self, method: str, url: str, params: Optional[Params] = None,
                            json_body: Any = None, headers: Optional[Dict[str, str]] = None) -> Any:
        """
        Perform a request and decode its JSON body.

        Raises:
            UpstreamError: On network failure, non-2xx status or a non-JSON body
        """
        session = self._session or self._new_session()
        owns_session = self._session is None
        try:
            async with session.request(method, url, params=params, json=json_body, headers=headers) as response:
                try:
                    payload = await response.json(content_type=None)
                except (aiohttp.ContentTypeError, ValueError):
                    payload = None

                if response.status >= 400:
                    message = _extract_error_message(payload) or (
                        f"{self.service_name} request failed with status {response.status}"
                    )
                    logger.error(f"{self.service_name} returned {response.status}: {message}")
                    raise UpstreamError(self.service_name, message, status=response.status)

                if payload is None:
                    raise UpstreamError(self.service_name, f"Unexpected response from {self.service_name}",
                                        status=response.status)
                return payload
        except asyncio.TimeoutError as e:
            logger.error(f"Timeout calling {self.service_name} after {self.timeout}s")
            raise UpstreamError(self.service_name, f"{self.service_name} request timed out", original_error=e) from e
        except aiohttp.ClientError as e:
            logger.error(f"HTTP error calling {self.service_name}: {e}")
            raise UpstreamError(self.service_name, f"{self.service_name} request failed: {e}", original_error=e) from e
        finally:
            if owns_session:
                await session.close()

    async def _get_json(self, url: str, params: Optional[Params] = None,
                        headers: Optional[Dict[str, str]] = None) -> Any:
        return await self._request_json('GET', url, params=params, headers=headers)


def flatten_params(params: Dict[str, Any]) -> List[Tuple[str, str]]:
    """Turn a dict into query pairs, expanding list values into repeated keys."""
    pairs: List[Tuple[str, str]] = []
    for key, value in params.items():
        if value is None or value == '':
            continue
        if isinstance(value, (list, tuple)):
            pairs.extend((key, str(item)) for item in value)
        elif isinstance(value, bool):
            pairs.append((key, 'true' if value else 'false'))
        else:
            pairs.append((key, str(value)))
    return pairs
