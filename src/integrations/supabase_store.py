#!/usr/bin/env python3
"""
Supabase persistence for site profiles and travel preset overrides.

Uses the synchronous supabase client; async callers wrap these methods in
``asyncio.to_thread``.
"""

import logging
from typing import Any, Dict, Optional

from supabase import create_client, Client

from core.exceptions import ConfigurationError, StoreError

logger = logging.getLogger(__name__)

PROFILE_TABLE = 'site_profiles'
TRAVEL_PRESET_TABLE = 'travel_presets'
TRAVEL_PRESET_COLUMNS = 'state_name, keywords, rss_feeds, instructions, site_key'


class SupabaseStore:
    """Thin repository over the Supabase REST API."""

    def __init__(self, client: Client):
        self.client = client

    @classmethod
    def from_credentials(cls, url: Optional[str], key: Optional[str]) -> 'SupabaseStore':
        """Create a store, failing fast when credentials are missing."""
        if not url:
            raise ConfigurationError('SUPABASE_URL')
        if not key:
            raise ConfigurationError('SUPABASE_SERVICE_KEY')
        client = create_client(url, key)
        logger.info("Supabase client initialized")
        return cls(client)

    def get_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        try:
            result = (self.client.table(PROFILE_TABLE)
                      .select('*')
                      .eq('user_id', user_id)
                      .limit(1)
                      .execute())
        except Exception as e:
            logger.error(f"Failed to load profile for {user_id}: {e}")
            raise StoreError('Supabase', 'profile read', e, message="Failed to load profile") from e
        rows = result.data or []
        return rows[0] if rows else None

    def upsert_profile(self, row: Dict[str, Any]) -> Dict[str, Any]:
        try:
            result = (self.client.table(PROFILE_TABLE)
                      .upsert(row, on_conflict='user_id')
                      .execute())
        except Exception as e:
            logger.error(f"Failed to store profile: {e}")
            raise StoreError('Supabase', 'profile upsert', e, message="Failed to store profile") from e
        rows = result.data or []
        return rows[0] if rows else row

    def get_travel_preset(self, state: str) -> Optional[Dict[str, Any]]:
        try:
            result = (self.client.table(TRAVEL_PRESET_TABLE)
                      .select(TRAVEL_PRESET_COLUMNS)
                      .eq('state', state)
                      .limit(1)
                      .execute())
        except Exception as e:
            logger.error(f"Failed to load travel preset for {state}: {e}")
            raise StoreError('Supabase', 'travel preset read', e) from e
        rows = result.data or []
        return rows[0] if rows else None

    def upsert_travel_preset(self, row: Dict[str, Any]) -> Dict[str, Any]:
        try:
            result = (self.client.table(TRAVEL_PRESET_TABLE)
                      .upsert(row, on_conflict='state')
                      .execute())
        except Exception as e:
            logger.error(f"Failed to store travel preset: {e}")
            raise StoreError('Supabase', 'travel preset upsert', e,
                             message="Failed to store travel preset") from e
        rows = result.data or []
        return rows[0] if rows else row
