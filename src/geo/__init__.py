"""Geo module - Web Mercator tile projection and distances."""

from .distance import great_circle_distance_km
from .projection import (
    GeoPoint,
    LatitudeCoord,
    LongitudeCoord,
    TileInfo,
    pixel_to_latlng,
    project_latitude,
    project_longitude,
    split_pixel,
    tile_info,
)

__all__ = [
    'GeoPoint',
    'LatitudeCoord',
    'LongitudeCoord',
    'TileInfo',
    'great_circle_distance_km',
    'pixel_to_latlng',
    'project_latitude',
    'project_longitude',
    'split_pixel',
    'tile_info',
]
