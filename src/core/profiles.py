#!/usr/bin/env python3
"""
Site profiles for ``/api/profiles``.

A profile is extracted by the LLM from an editor's free-text brief, normalized
into ``SiteProfile`` and stored per user in Supabase.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from core.exceptions import ConfigurationError, InvalidRequestError, UpstreamError

logger = logging.getLogger(__name__)

# ---------- EXTRACTION PROMPTS ----------

EXTRACTION_PROMPT = (
    "From the following user text, extract: language, taxonomy (IAB/IPTC-like tags), must_include_keywords, "
    "nice_to_have_keywords, must_exclude_keywords, entities_focus, audience, tone, and a per-category quota "
    "summing to 50 headlines. Return valid JSON."
)

EXTRACTION_SYSTEM_PROMPT = (
    "You turn unstructured editorial briefs into consistent JSON site profiles that downstream services "
    "can consume."
)

QUOTA_TARGET = 50
MAX_QUERY_KEYWORDS = 8


def _string_list(value: Any) -> List[str]:
    if isinstance(value, str):
        value = value.split(',')
    if not isinstance(value, list):
        return []
    seen = set()
    result = []
    for item in value:
        if not isinstance(item, str):
            continue
        text = item.strip()
        if text and text.lower() not in seen:
            seen.add(text.lower())
            result.append(text)
    return result


class SiteProfile(BaseModel):
    """Normalized site profile."""

    model_config = ConfigDict(extra='ignore')

    language: str = 'en'
    taxonomy: List[str] = Field(default_factory=list)
    must_include_keywords: List[str] = Field(default_factory=list)
    nice_to_have_keywords: List[str] = Field(default_factory=list)
    must_exclude_keywords: List[str] = Field(default_factory=list)
    entities_focus: List[str] = Field(default_factory=list)
    audience: str = ''
    tone: str = ''
    quota: Dict[str, int] = Field(default_factory=dict)

    @field_validator('taxonomy', 'must_include_keywords', 'nice_to_have_keywords',
                     'must_exclude_keywords', 'entities_focus', mode='before')
    @classmethod
    def _lists(cls, value):
        return _string_list(value)

    @field_validator('language', 'audience', 'tone', mode='before')
    @classmethod
    def _text(cls, value):
        if isinstance(value, list):
            value = ', '.join(str(item) for item in value if item)
        return value.strip() if isinstance(value, str) else ''

    @field_validator('language')
    @classmethod
    def _language(cls, value):
        return value or 'en'

    @field_validator('quota', mode='before')
    @classmethod
    def _quota(cls, value):
        """Accept ``{category: count}`` or ``[{category, count}]``; drop non-positive counts."""
        if isinstance(value, list):
            pairs = []
            for entry in value:
                if isinstance(entry, dict):
                    name = entry.get('category') or entry.get('name') or entry.get('label')
                    pairs.append((name, entry.get('count', entry.get('quota'))))
            value = dict(pairs)
        if not isinstance(value, dict):
            return {}
        quota = {}
        for name, count in value.items():
            if not isinstance(name, str) or not name.strip():
                continue
            try:
                number = int(count)
            except (TypeError, ValueError):
                continue
            if number > 0:
                quota[name.strip()] = number
        return quota


def normalize_profile(raw: Any) -> SiteProfile:
    """
    Validate a profile produced by the model or loaded from the store.

    Raises:
        ValueError: If the profile is not an object
    """
    if not isinstance(raw, dict):
        raise ValueError("Profile must be a JSON object")
    try:
        return SiteProfile.model_validate(raw)
    except ValidationError as e:
        raise ValueError(f"Invalid profile: {e.errors()[0]['msg']}") from e


def normalize_site_url(site_url: str) -> str:
    """
    Canonical site URL: https scheme by default, lower-cased host, no trailing slash.

    Raises:
        InvalidRequestError: If no host can be parsed
    """
    text = (site_url or '').strip()
    if not text:
        raise InvalidRequestError("Missing siteUrl", 'siteUrl')
    if '://' not in text:
        text = f"https://{text}"
    parsed = urlparse(text)
    host = (parsed.hostname or '').lower()
    if parsed.scheme not in ('http', 'https') or not host or '.' not in host:
        raise InvalidRequestError("Invalid site URL provided", 'siteUrl')
    port = f":{parsed.port}" if parsed.port else ''
    path = parsed.path.rstrip('/')
    return f"{parsed.scheme}://{host}{port}{path}"


def _quote(term: str) -> str:
    return f'"{term}"' if ' ' in term else term


def build_profile_headline_query(profile: SiteProfile) -> str:
    """
    Search query for headline discovery from a profile.

    Required keywords are OR-ed together, topped up with optional keywords
    and then taxonomy tags; excluded keywords are negated.
    """
    terms = list(profile.must_include_keywords)
    for extra in profile.nice_to_have_keywords + profile.taxonomy:
        if len(terms) >= MAX_QUERY_KEYWORDS:
            break
        if extra.lower() not in {t.lower() for t in terms}:
            terms.append(extra)
    terms = terms[:MAX_QUERY_KEYWORDS]

    query = ' OR '.join(_quote(term) for term in terms)
    if len(terms) > 1:
        query = f"({query})"
    exclusions = ' '.join(f"-{_quote(term)}" for term in profile.must_exclude_keywords)
    return ' '.join(part for part in (query, exclusions) if part)


def get_profile_quota_total(profile: SiteProfile) -> int:
    return sum(profile.quota.values())


def profile_response(row: Dict[str, Any], profile: SiteProfile) -> Dict[str, Any]:
    return {
        'profile': profile.model_dump(),
        'siteUrl': row.get('site_url'),
        'rawText': row.get('raw_text'),
        'headlineQuery': build_profile_headline_query(profile),
        'quotaTotal': get_profile_quota_total(profile),
    }


class ProfileService:
    """Extracts, stores and loads site profiles."""

    def __init__(self, llm=None, store=None, model: str = 'gpt-4o-mini'):
        self.llm = llm
        self.store = store
        self.model = model

    def _require_store(self):
        if self.store is None:
            raise ConfigurationError('SUPABASE_URL')
        return self.store

    async def extract_profile(self, raw_text: str) -> SiteProfile:
        """
        Raises:
            UpstreamError: If the model call fails or its output is not a usable profile
        """
        if self.llm is None:
            raise ConfigurationError('OPENAI_API_KEY')
        data = await self.llm.chat_json(
            [
                {'role': 'system', 'content': EXTRACTION_SYSTEM_PROMPT},
                {'role': 'user', 'content': f"{EXTRACTION_PROMPT}\n\n{raw_text}"},
            ],
            model=self.model,
            temperature=0,
            interaction_type="profile_extraction",
        )
        try:
            profile = normalize_profile(data)
        except ValueError as e:
            raise UpstreamError('OpenAI', str(e)) from e
        total = get_profile_quota_total(profile)
        if total and total != QUOTA_TARGET:
            logger.warning(f"Extracted profile quota sums to {total}, expected {QUOTA_TARGET}")
        return profile

    async def get_profile(self, user_id: Optional[str]) -> Dict[str, Any]:
        if not user_id or not user_id.strip():
            raise InvalidRequestError("Missing userId", 'userId')
        store = self._require_store()
        row = await asyncio.to_thread(store.get_profile, user_id.strip())
        if not row:
            return {'profile': None}
        try:
            profile = normalize_profile(row.get('profile'))
        except ValueError as e:
            logger.error(f"Stored profile for {user_id} is invalid: {e}")
            return {'profile': None}
        return profile_response(row, profile)

    async def save_profile(self, payload: Any) -> Dict[str, Any]:
        """
        Extract a profile from ``rawText`` and upsert it for ``userId``.

        Raises:
            InvalidRequestError: On missing fields or an unusable site URL
            UpstreamError: If extraction fails (502)
            StoreError: If the upsert fails (500)
        """
        if not isinstance(payload, dict):
            raise InvalidRequestError("Invalid JSON body")

        def field(name: str) -> str:
            value = payload.get(name)
            return value.strip() if isinstance(value, str) else ''

        user_id, site_url, raw_text = field('userId'), field('siteUrl'), field('rawText')
        if not user_id:
            raise InvalidRequestError("Missing userId", 'userId')
        if not site_url:
            raise InvalidRequestError("Missing siteUrl", 'siteUrl')
        if not raw_text:
            raise InvalidRequestError("Missing profile text", 'rawText')

        normalized_url = normalize_site_url(site_url)
        store = self._require_store()
        profile = await self.extract_profile(raw_text)

        row = {
            'user_id': user_id,
            'site_url': normalized_url,
            'raw_text': raw_text,
            'profile': profile.model_dump(),
            'updated_at': datetime.now(timezone.utc).isoformat(),
        }
        stored = await asyncio.to_thread(store.upsert_profile, row)
        logger.info(f"Stored profile for {user_id} ({normalized_url})")
        try:
            stored_profile = normalize_profile(stored.get('profile'))
        except ValueError:
            stored_profile = profile
        return profile_response(stored, stored_profile)
