#!/usr/bin/env python3
"""
Source article model used by article generation.
"""

from dataclasses import dataclass
from typing import Any, Dict


@dataclass
class SourceArticle:
    """A piece of recent reporting the generated article must cite."""
    title: str
    url: str
    summary: str = ""
    published_at: str = ""
    source: str = ""

    def __post_init__(self):
        self.title = (self.title or "").strip()
        self.url = (self.url or "").strip()
        self.summary = (self.summary or "").strip()
        self.published_at = (self.published_at or "").strip()
        self.source = (self.source or "").strip()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'title': self.title,
            'url': self.url,
            'summary': self.summary,
            'publishedAt': self.published_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SourceArticle':
        return cls(
            title=data.get('title') or '',
            url=data.get('url') or data.get('link') or '',
            summary=data.get('summary') or data.get('description') or '',
            published_at=data.get('publishedAt') or data.get('published_at') or '',
            source=data.get('source') or '',
        )
