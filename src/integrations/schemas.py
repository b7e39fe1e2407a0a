#!/usr/bin/env python3
"""
Upstream payload schemas.

Every JSON document from NewsAPI, SerpAPI and Airtable passes through these
models before the rest of the code sees it. Items become RawArticle (or a
plain record) or are rejected with a reason.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple, Type, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from core.exceptions import PayloadValidationError
from core.models import RawArticle

logger = logging.getLogger(__name__)

REMOVED_MARKER = "[Removed]"


class _Lenient(BaseModel):
    model_config = ConfigDict(extra='ignore', populate_by_name=True)


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class NewsApiSource(_Lenient):
    id: Optional[str] = None
    name: Optional[str] = None


class NewsApiArticle(_Lenient):
    title: Optional[str] = None
    description: Optional[str] = None
    content: Optional[str] = None
    url: Optional[str] = None
    url_to_image: Optional[str] = Field(default=None, alias='urlToImage')
    published_at: Optional[str] = Field(default=None, alias='publishedAt')
    published_at_snake: Optional[str] = Field(default=None, alias='published_at')
    source: Optional[NewsApiSource] = None

    @field_validator('title', 'description', 'content', 'url', mode='before')
    @classmethod
    def _blank_fields(cls, value: Any) -> Any:
        return _blank_to_none(value)

    def to_raw(self) -> Optional[RawArticle]:
        if not self.title or self.title == REMOVED_MARKER or not self.url:
            return None
        return RawArticle(
            title=self.title,
            url=self.url,
            description=self.description or self.content or '',
            source=self.source.name if self.source and self.source.name else '',
            published_at=self.published_at or self.published_at_snake or '',
            image_url=self.url_to_image or '',
        )


class NewsApiResponse(_Lenient):
    status: str
    total_results: Optional[int] = Field(default=None, alias='totalResults')
    articles: List[Dict[str, Any]] = Field(default_factory=list)
    code: Optional[str] = None
    message: Optional[str] = None


class SerpSource(_Lenient):
    name: Optional[str] = None


class SerpResult(_Lenient):
    title: Optional[str] = None
    link: Optional[str] = None
    snippet: Optional[str] = None
    source: Optional[Union[SerpSource, str]] = None
    date: Optional[str] = None
    published_at: Optional[str] = None
    iso_date: Optional[str] = None
    thumbnail: Optional[str] = None
    stories: List[Dict[str, Any]] = Field(default_factory=list)

    @field_validator('title', 'link', 'snippet', mode='before')
    @classmethod
    def _blank_fields(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @property
    def source_name(self) -> str:
        if isinstance(self.source, SerpSource):
            return self.source.name or ''
        return self.source or ''

    def to_raw(self) -> Optional[RawArticle]:
        if not self.link:
            return None
        return RawArticle(
            title=self.title or '',
            url=self.link,
            description=self.snippet or '',
            source=self.source_name,
            published_at=self.iso_date or self.published_at or self.date or '',
            image_url=self.thumbnail or '',
        )


class SerpResponse(_Lenient):
    news_results: List[Dict[str, Any]] = Field(default_factory=list)
    organic_results: List[Dict[str, Any]] = Field(default_factory=list)
    error: Optional[str] = None


class AirtableRecord(_Lenient):
    id: str
    fields: Dict[str, Any] = Field(default_factory=dict)
    created_time: Optional[str] = Field(default=None, alias='createdTime')


class AirtableResponse(_Lenient):
    records: List[AirtableRecord] = Field(default_factory=list)
    offset: Optional[str] = None


def parse_payload(service: str, payload: Any, model: Type[BaseModel]) -> Any:
    """
    Validate a top-level payload.

    Raises:
        PayloadValidationError: If the document does not match the schema
    """
    if not isinstance(payload, dict):
        raise PayloadValidationError(service, ["payload is not a JSON object"])
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        errors = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        logger.warning(f"{service} payload rejected: {errors[:3]}")
        raise PayloadValidationError(service, errors) from e


def parse_articles(items: Iterable[Any], model: Type[BaseModel]) -> Tuple[List[RawArticle], List[str]]:
    """
    Convert upstream items into RawArticle records.

    Args:
        items: Raw item dicts
        model: Schema with a ``to_raw`` method

    Returns:
        Tuple of accepted articles and rejection reasons
    """
    accepted: List[RawArticle] = []
    rejected: List[str] = []
    for position, item in enumerate(items):
        if not isinstance(item, dict):
            rejected.append(f"item {position}: not an object")
            continue
        try:
            parsed = model.model_validate(item)
        except ValidationError as e:
            rejected.append(f"item {position}: {e.errors()[0]['msg']}")
            continue
        raw = parsed.to_raw()
        if raw is None:
            rejected.append(f"item {position}: missing required fields")
            continue
        accepted.append(raw)
    if rejected:
        logger.debug(f"Rejected {len(rejected)} {model.__name__} items")
    return accepted, rejected
