#!/usr/bin/env python3
"""
Travel presets per US state.

A preset is built from built-in defaults (state name, optional headline site
and its keywords and feeds, writing instructions) and then merged with any
override row stored in Supabase.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from core.exceptions import ConfigurationError, InvalidRequestError
from core.sites import HEADLINE_SITES

logger = logging.getLogger(__name__)

DEFAULT_DESTINATION = 'the destination'

STATE_NAME_MAP = {
    'al': 'Alabama',
    'ak': 'Alaska',
    'az': 'Arizona',
    'ar': 'Arkansas',
    'ca': 'California',
    'co': 'Colorado',
    'ct': 'Connecticut',
    'de': 'Delaware',
    'fl': 'Florida',
    'ga': 'Georgia',
    'hi': 'Hawaii',
    'ia': 'Iowa',
    'id': 'Idaho',
    'il': 'Illinois',
    'in': 'Indiana',
    'ks': 'Kansas',
    'ky': 'Kentucky',
    'la': 'Louisiana',
    'ma': 'Massachusetts',
    'md': 'Maryland',
    'me': 'Maine',
    'mi': 'Michigan',
    'mn': 'Minnesota',
    'mo': 'Missouri',
    'ms': 'Mississippi',
    'mt': 'Montana',
    'nc': 'North Carolina',
    'nd': 'North Dakota',
    'ne': 'Nebraska',
    'nh': 'New Hampshire',
    'nj': 'New Jersey',
    'nm': 'New Mexico',
    'nv': 'Nevada',
    'ny': 'New York',
    'oh': 'Ohio',
    'ok': 'Oklahoma',
    'or': 'Oregon',
    'pa': 'Pennsylvania',
    'ri': 'Rhode Island',
    'sc': 'South Carolina',
    'sd': 'South Dakota',
    'tn': 'Tennessee',
    'tx': 'Texas',
    'ut': 'Utah',
    'va': 'Virginia',
    'vt': 'Vermont',
    'wa': 'Washington',
    'wi': 'Wisconsin',
    'wv': 'West Virginia',
    'wy': 'Wyoming',
}

STATE_PRESET_OVERRIDES: Dict[str, Dict[str, Any]] = {
    'or': {
        'site_key': 'oregonAdventure',
        'instructions': [
            'Spotlight scenic drives, waterfall hikes, and outdoor adventures spanning the Oregon Coast, '
            'Cascades, and high desert.',
            'Recommend locally-owned lodging and standout dining options in Oregon towns mentioned in the sources.',
            'Offer itinerary tips that balance seasonal weather, road trip pacing, and regional highlights '
            'around Oregon.',
        ],
    },
    'ca': {'site_key': 'californiaAdventure'},
    'wa': {'site_key': 'washingtonAdventure'},
}

# Maps request and Supabase field names onto override keys
OVERRIDE_FIELDS = {
    'stateName': 'state_name',
    'state_name': 'state_name',
    'keywords': 'keywords',
    'rssFeeds': 'rss_feeds',
    'rss_feeds': 'rss_feeds',
    'instructions': 'instructions',
    'siteKey': 'site_key',
    'site_key': 'site_key',
}

PresetFetcher = Callable[[str], Awaitable[Optional[Dict[str, Any]]]]


@dataclass
class TravelPreset:
    state: str
    state_name: str
    keywords: List[str] = field(default_factory=list)
    rss_feeds: List[str] = field(default_factory=list)
    instructions: List[str] = field(default_factory=list)
    site_key: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'state': self.state,
            'stateName': self.state_name,
            'keywords': list(self.keywords),
            'rssFeeds': list(self.rss_feeds),
            'instructions': list(self.instructions),
            'siteKey': self.site_key,
        }


def dedupe_strings(values: Iterable[Any]) -> List[str]:
    """Trim, drop blanks and non-strings, and keep the first of each case-insensitive value."""
    seen = set()
    result = []
    for value in values:
        if not isinstance(value, str):
            continue
        trimmed = value.strip()
        if not trimmed:
            continue
        key = trimmed.lower()
        if key in seen:
            continue
        seen.add(key)
        result.append(trimmed)
    return result


def normalize_state(state: Optional[str]) -> str:
    return state.strip().lower() if isinstance(state, str) else ''


def build_default_instructions(state_name: str) -> List[str]:
    label = ' '.join((state_name or DEFAULT_DESTINATION).split())
    return [
        f"Spotlight must-see attractions, parks, and outdoor experiences throughout {label}.",
        f"Blend lodging and dining recommendations tailored to different traveler budgets in {label}.",
        f"Share itinerary-friendly tips, including seasonal timing, route suggestions, and pacing guidance, "
        f"for exploring {label}.",
    ]


def build_default_travel_preset(state: Optional[str], sites: Optional[Dict[str, Dict[str, Any]]] = None) -> TravelPreset:
    """
    Built-in preset for a state code.

    Unknown codes keep the upper-cased code as the state name; a blank state
    describes a generic destination.
    """
    sites = HEADLINE_SITES if sites is None else sites
    code = normalize_state(state)
    state_name = STATE_NAME_MAP.get(code, code.upper()) if code else DEFAULT_DESTINATION
    override = STATE_PRESET_OVERRIDES.get(code, {})
    site_key = override.get('site_key')
    site = sites.get(site_key, {}) if site_key else {}

    instructions = override.get('instructions')
    return TravelPreset(
        state=code,
        state_name=state_name,
        keywords=dedupe_strings(site.get('keywords') or []),
        rss_feeds=dedupe_strings(site.get('rssFeeds') or []),
        instructions=dedupe_strings(instructions) if instructions else build_default_instructions(state_name),
        site_key=site_key,
    )


def normalize_overrides(raw: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Collect override fields from a request body or a Supabase row.

    List fields are kept only when they are lists. ``site_key`` is kept when it
    is a non-empty string or an explicit ``None``.
    """
    overrides: Dict[str, Any] = {}
    if not isinstance(raw, dict):
        return overrides
    for source_key, key in OVERRIDE_FIELDS.items():
        if source_key not in raw:
            continue
        value = raw[source_key]
        if key == 'state_name':
            if isinstance(value, str) and value.strip():
                overrides[key] = value.strip()
        elif key == 'site_key':
            if value is None:
                overrides[key] = None
            elif isinstance(value, str) and value.strip():
                overrides[key] = value.strip()
        elif isinstance(value, list):
            overrides[key] = value
    return overrides


def merge_travel_preset_details(base: TravelPreset, overrides: Optional[Dict[str, Any]]) -> TravelPreset:
    """
    Layer overrides on top of a preset.

    Override list entries come first and defaults follow, deduplicated.
    A string ``site_key`` replaces the default, ``None`` clears it and a
    missing key keeps it.
    """
    if not overrides:
        return base

    def merged(key: str, current: List[str]) -> List[str]:
        values = overrides.get(key)
        return dedupe_strings(list(values) + current) if isinstance(values, list) else current

    site_key = base.site_key
    if 'site_key' in overrides:
        value = overrides['site_key']
        if value is None:
            site_key = None
        elif isinstance(value, str) and value:
            site_key = value

    state_name = overrides.get('state_name')
    return TravelPreset(
        state=base.state,
        state_name=state_name.strip() if isinstance(state_name, str) and state_name.strip() else base.state_name,
        keywords=merged('keywords', base.keywords),
        rss_feeds=merged('rss_feeds', base.rss_feeds),
        instructions=merged('instructions', base.instructions),
        site_key=site_key,
    )


def supabase_preset_fetcher(store) -> PresetFetcher:
    """Adapt a SupabaseStore to the async fetcher used by ``get_travel_preset``."""

    async def fetch(state: str) -> Optional[Dict[str, Any]]:
        if not state:
            return None
        row = await asyncio.to_thread(store.get_travel_preset, state)
        return normalize_overrides(row) if row else None

    return fetch


async def get_travel_preset(state: Optional[str], fetcher: Optional[PresetFetcher] = None,
                            sites: Optional[Dict[str, Dict[str, Any]]] = None) -> TravelPreset:
    """
    Resolve the preset for a state.

    Fetcher failures are logged and the built-in preset is returned.
    """
    base = build_default_travel_preset(state, sites)
    if fetcher is None:
        return base
    try:
        overrides = await fetcher(base.state)
    except Exception as e:
        logger.error(f"Failed to resolve travel preset overrides for '{base.state}': {e}")
        return base
    return merge_travel_preset_details(base, overrides)


class TravelPresetService:
    """Read and store travel presets."""

    def __init__(self, store=None, sites: Optional[Dict[str, Dict[str, Any]]] = None):
        self.store = store
        self.sites = sites

    async def get_preset(self, state: Optional[str]) -> Dict[str, Any]:
        fetcher = supabase_preset_fetcher(self.store) if self.store is not None else None
        preset = await get_travel_preset(state, fetcher, self.sites)
        return {'preset': preset.to_dict()}

    async def save_preset(self, payload: Any) -> Dict[str, Any]:
        """
        Upsert override details for a state and return the merged preset.

        Raises:
            InvalidRequestError: On a non-object body or missing state
            ConfigurationError: When Supabase is not configured
        """
        if not isinstance(payload, dict):
            raise InvalidRequestError("Invalid JSON payload")
        state = normalize_state(payload.get('state'))
        if not state:
            raise InvalidRequestError("Missing state", 'state')
        if self.store is None:
            raise ConfigurationError('SUPABASE_URL')

        overrides = normalize_overrides(payload)
        row: Dict[str, Any] = {'state': state}
        for key in ('keywords', 'rss_feeds', 'instructions'):
            if key in overrides:
                row[key] = dedupe_strings(overrides[key])
        if 'state_name' in overrides:
            row['state_name'] = overrides['state_name']
        if 'site_key' in overrides:
            row['site_key'] = overrides['site_key']

        await asyncio.to_thread(self.store.upsert_travel_preset, row)
        logger.info(f"Stored travel preset overrides for '{state}'")
        base = build_default_travel_preset(state, self.sites)
        return {'preset': merge_travel_preset_details(base, normalize_overrides(row)).to_dict()}
