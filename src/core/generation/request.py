#!/usr/bin/env python3
"""
Request model for ``/api/generate``.
"""

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from core.exceptions import InvalidRequestError

LISTICLE = 'Listicle/Gallery'
YOUTUBE = 'YouTube video to blog post'
REWRITE = 'Rewrite blog post'
BLOG = 'Blog post'

DEFAULT_MODEL = 'gpt-4o-mini'
DEFAULT_LIST_COUNT = 5

_FIRST_NUMBER_RE = re.compile(r'\d+')


class ArticleRequest(BaseModel):
    """Options accepted by the article generator."""

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    article_type: str = Field(default=BLOG, alias='articleType')
    title: str = ''
    list_numbering_format: Optional[str] = Field(default=None, alias='listNumberingFormat')
    list_item_word_count: Optional[int] = Field(default=100, ge=1, alias='listItemWordCount')
    video_link: Optional[str] = Field(default=None, alias='videoLink')
    blog_link: Optional[str] = Field(default=None, alias='blogLink')
    tone_of_voice: Optional[str] = Field(default=None, alias='toneOfVoice')
    custom_tone: Optional[str] = Field(default=None, alias='customTone')
    point_of_view: Optional[str] = Field(default=None, alias='pointOfView')
    custom_instructions: Optional[str] = Field(default=None, alias='customInstructions')
    length_option: Optional[str] = Field(default=None, alias='lengthOption')
    custom_sections: Optional[int] = Field(default=None, ge=1, alias='customSections')
    model_version: str = Field(default=DEFAULT_MODEL, alias='modelVersion')
    use_serp_api: bool = Field(default=True, alias='useSerpApi')
    include_links: bool = Field(default=True, alias='includeLinks')
    use_summary: bool = Field(default=False, alias='useSummary')
    news_freshness: Optional[str] = Field(default=None, alias='newsFreshness')
    verify_output: bool = Field(default=False, alias='verifyOutput')

    @field_validator('title', mode='before')
    @classmethod
    def _strip_title(cls, value):
        return value.strip() if isinstance(value, str) else ''

    @field_validator('article_type', 'model_version', mode='before')
    @classmethod
    def _default_blank(cls, value, info):
        if isinstance(value, str) and value.strip():
            return value.strip()
        return BLOG if info.field_name == 'article_type' else DEFAULT_MODEL

    @property
    def list_count(self) -> int:
        """Item count of a listicle: the first number in the title."""
        match = _FIRST_NUMBER_RE.search(self.title)
        return int(match.group(0)) if match else DEFAULT_LIST_COUNT


def parse_article_request(payload) -> ArticleRequest:
    """
    Validate the body of a generate request.

    Raises:
        InvalidRequestError: On a non-object body, bad field types or a missing title
    """
    if not isinstance(payload, dict):
        raise InvalidRequestError("Invalid JSON payload")
    try:
        request = ArticleRequest.model_validate(payload)
    except ValidationError as e:
        first = e.errors()[0]
        field = '.'.join(str(part) for part in first['loc'])
        raise InvalidRequestError(f"Invalid value for {field}: {first['msg']}", field) from e
    if not request.title:
        raise InvalidRequestError("Missing title", 'title')
    return request
