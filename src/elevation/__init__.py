"""Elevation module - DEM pixel decoding and profile sampling."""

from .decoder import NO_DATA, decode_dem_tile, decode_elevation, decode_pixel
from .profile import (
    ProfileSample,
    bisect_path,
    compute_profile,
    compute_profile_samples,
    get_elevation,
    select_zoom,
)

__all__ = [
    'NO_DATA',
    'ProfileSample',
    'bisect_path',
    'compute_profile',
    'compute_profile_samples',
    'decode_dem_tile',
    'decode_elevation',
    'decode_pixel',
    'get_elevation',
    'select_zoom',
]
