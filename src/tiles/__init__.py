"""Tile rasters: per-computation cache and providers.

This module provides:
- TileRasterCache: in-memory memoization keyed by (raster type, z, x, y)
- TileRasterProvider: protocol the profile core fetches through
- GsiDemTileProvider: HTTP provider for GSI elevation PNG tiles
"""

from tiles.cache import TileKey, TileRasterCache
from tiles.provider import GsiDemTileProvider, TileRasterProvider, tile_url

__all__ = [
    'GsiDemTileProvider',
    'TileKey',
    'TileRasterCache',
    'TileRasterProvider',
    'tile_url',
]
