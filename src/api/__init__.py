"""
HTTP API for content-studio.
"""

from .app import create_app

__all__ = ['create_app']
