"""
Route modules, one per API resource.
"""

from . import generate, headlines, prefetch, profiles, recipes, travel_presets

ROUTERS = [
    headlines.router,
    generate.router,
    recipes.router,
    travel_presets.router,
    profiles.router,
    prefetch.router,
]

__all__ = ['ROUTERS']
