"""
Content fetching module.
"""

from .fetcher import ContentFetcher, extract_article_text, extract_text, youtube_video_id

__all__ = ['ContentFetcher', 'extract_article_text', 'extract_text', 'youtube_video_id']
