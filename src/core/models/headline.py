#!/usr/bin/env python3
"""
Headline data model.

Everything here lives for one request: raw upstream articles are normalized,
folded into candidates, ranked and serialized into the JSON response.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set


@dataclass
class RawArticle:
    """An article as returned by NewsAPI, SerpAPI or an RSS feed."""
    title: Optional[str] = None
    url: Optional[str] = None
    description: Optional[str] = None
    source: Optional[str] = None
    published_at: Optional[str] = None
    image_url: Optional[str] = None

    def normalize(self) -> Optional['NormalizedHeadline']:
        """Return a NormalizedHeadline, or None when title or url is missing."""
        title = (self.title or '').strip()
        url = (self.url or '').strip()
        if not title or not url:
            return None
        return NormalizedHeadline(
            title=title,
            url=url,
            description=(self.description or '').strip(),
            source=(self.source or '').strip(),
            published_at=(self.published_at or '').strip(),
            image_url=(self.image_url or '').strip(),
        )


@dataclass
class NormalizedHeadline:
    """RawArticle with a guaranteed title and url."""
    title: str
    url: str
    description: str = ""
    source: str = ""
    published_at: str = ""
    image_url: str = ""

    def __post_init__(self):
        if not self.title or not self.url:
            raise ValueError("NormalizedHeadline requires a title and url")

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'title': self.title,
            'description': self.description,
            'url': self.url,
            'source': self.source,
            'publishedAt': self.published_at,
        }
        if self.image_url:
            data['imageUrl'] = self.image_url
        return data


@dataclass
class RelatedArticle:
    """A near-duplicate folded into a candidate."""
    title: str
    url: str
    source: str = ""
    published_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'title': self.title,
            'url': self.url,
            'source': self.source,
            'publishedAt': self.published_at,
        }


@dataclass
class HeadlineCandidate:
    """A deduplicated headline that may absorb several raw articles."""
    headline: NormalizedHeadline
    url_key: str
    title_key: str
    description_key: str
    tokens: Set[str]
    index: int
    related: List[RelatedArticle] = field(default_factory=list)

    @property
    def source_key(self) -> str:
        return self.headline.source.strip().lower() or 'unknown'


@dataclass
class RankingMetadata:
    """Score breakdown attached to a candidate after ranking."""
    score: float
    recency: float
    source_diversity: float
    topic_coverage: float
    age_hours: Optional[float]
    source_occurrences: int
    unique_token_ratio: float
    reasons: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'score': round(self.score, 4),
            'components': {
                'recency': round(self.recency, 4),
                'sourceDiversity': round(self.source_diversity, 4),
                'topicCoverage': round(self.topic_coverage, 4),
            },
            'details': {
                'ageHours': round(self.age_hours, 2) if self.age_hours is not None else None,
                'sourceOccurrences': self.source_occurrences,
                'uniqueTokenRatio': round(self.unique_token_ratio, 4),
            },
            'reasons': list(self.reasons),
        }


@dataclass
class HeadlineSummary:
    """LLM overview of a ranked cluster."""
    overview: str
    bullets: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {'overview': self.overview, 'bullets': list(self.bullets)}


@dataclass
class RankedHeadline:
    """A candidate in its final position, ready for serialization."""
    candidate: HeadlineCandidate
    ranking: RankingMetadata
    summary: Optional[HeadlineSummary] = None

    def to_dict(self) -> Dict[str, Any]:
        data = self.candidate.headline.to_dict()
        if self.candidate.related:
            data['relatedArticles'] = [r.to_dict() for r in self.candidate.related]
        data['ranking'] = self.ranking.to_dict()
        if self.summary is not None:
            data['summary'] = self.summary.to_dict()
        return data
