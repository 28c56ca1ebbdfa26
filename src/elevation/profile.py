"""
Elevation profile between two points from slippy-map DEM tiles.

The zoom is raised from 0 until the endpoints are more than
``min_pixel_distance`` pixels apart (or ``max_zoom`` is reached). The pixel
segment between them is then split by repeated midpoint bisection into
``2**max_depth + 1`` evenly spaced samples, and each sample is decoded from
the tile pixel it falls on.
"""

from __future__ import annotations

import asyncio
import logging
import math
from contextlib import suppress
from dataclasses import dataclass
from typing import TYPE_CHECKING

from domain.models import ProfileSettings
from elevation.decoder import decode_pixel
from geo.distance import great_circle_distance_km
from geo.projection import GeoPoint, pixel_to_latlng, split_pixel, tile_info
from shared.constants import MAX_ZOOM, PROFILE_MAX_DEPTH, PROFILE_MIN_PIXEL_DISTANCE
from tiles.cache import TileKey, TileRasterCache

if TYPE_CHECKING:
    import numpy as np

    from geo.projection import TileInfo
    from tiles.provider import TileRasterProvider

logger = logging.getLogger(__name__)

PixelPoint = tuple[float, float]


@dataclass(frozen=True)
class ProfileSample:
    """One profile point: position, distance from the start and elevation."""

    lat: float
    lng: float
    distance_km: float
    elevation_m: float | None


def select_zoom(
    p1: GeoPoint,
    p2: GeoPoint,
    *,
    max_zoom: int = MAX_ZOOM,
    min_pixel_distance: float = PROFILE_MIN_PIXEL_DISTANCE,
) -> tuple[int, TileInfo, TileInfo]:
    """Pick the first zoom at which the endpoints are far enough apart in pixels.

    Returns:
        (zoom, tile info of p1, tile info of p2). When no zoom up to
        ``max_zoom`` separates the points enough, ``max_zoom`` is returned.
    """
    zoom = 0
    info1 = tile_info(p1.lat, p1.lng, zoom)
    info2 = tile_info(p2.lat, p2.lng, zoom)
    while True:
        d = math.hypot(info1.pixel_x - info2.pixel_x, info1.pixel_y - info2.pixel_y)
        if d > min_pixel_distance or zoom >= max_zoom:
            logger.debug('Selected zoom %d (pixel distance %.2f)', zoom, d)
            return zoom, info1, info2
        zoom += 1
        info1 = tile_info(p1.lat, p1.lng, zoom)
        info2 = tile_info(p2.lat, p2.lng, zoom)


def bisect_path(
    p1: PixelPoint, p2: PixelPoint, max_depth: int = PROFILE_MAX_DEPTH
) -> list[PixelPoint]:
    """Split the segment p1-p2 by repeated midpoints.

    Returns ``2**max_depth + 1`` points ordered from p1 to p2, both included.
    Equivalent to the recursion split(a, b, d) = [a] at d == max_depth, else
    split(a, m, d + 1) + split(m, b, d + 1), with p2 appended once.
    """
    if max_depth < 0:
        msg = f'max_depth must be >= 0, got {max_depth}'
        raise ValueError(msg)
    out: list[PixelPoint] = []
    stack: list[tuple[PixelPoint, PixelPoint, int]] = [(p1, p2, 0)]
    while stack:
        a, b, depth = stack.pop()
        if depth == max_depth:
            out.append(a)
            continue
        m = ((a[0] + b[0]) / 2, (a[1] + b[1]) / 2)
        # right half first so the left half is popped first
        stack.append((m, b, depth + 1))
        stack.append((a, m, depth + 1))
    out.append(p2)
    return out


async def _load_tiles(
    keys: list[TileKey],
    provider: TileRasterProvider,
    cache: TileRasterCache,
    concurrency: int,
) -> dict[TileKey, np.ndarray]:
    """Fetch distinct tiles concurrently; any failure cancels the rest."""
    sem = asyncio.Semaphore(max(1, concurrency))

    async def _worker(key: TileKey) -> np.ndarray:
        async with sem:
            return await cache.get(
                key.raster_type,
                key.z,
                key.x,
                key.y,
                lambda: provider.provide(key.raster_type, key.z, key.x, key.y),
            )

    tasks = [asyncio.ensure_future(_worker(k)) for k in keys]
    try:
        rasters = await asyncio.gather(*tasks)
    except BaseException:
        for t in tasks:
            t.cancel()
        with suppress(Exception, asyncio.CancelledError):
            await asyncio.gather(*tasks, return_exceptions=True)
        raise
    return dict(zip(keys, rasters))


async def _sample_profile(
    p1: GeoPoint,
    p2: GeoPoint,
    provider: TileRasterProvider,
    settings: ProfileSettings,
    cache: TileRasterCache,
) -> tuple[int, list[PixelPoint], list[float | None]]:
    zoom, info1, info2 = select_zoom(
        p1,
        p2,
        max_zoom=settings.max_zoom,
        min_pixel_distance=settings.min_pixel_distance,
    )
    path = bisect_path(info1.pixel, info2.pixel, settings.max_depth)

    resolved: list[tuple[TileKey, tuple[int, int]]] = []
    for px, py in path:
        (tx, ty), offset = split_pixel(px, py)
        resolved.append((TileKey(settings.raster_type, zoom, tx, ty), offset))

    keys = list(dict.fromkeys(key for key, _ in resolved))
    rasters = await _load_tiles(keys, provider, cache, settings.concurrency)

    elevations = [
        decode_pixel(rasters[key], ix, iy) for key, (ix, iy) in resolved
    ]
    no_data = sum(1 for h in elevations if h is None)
    logger.info(
        'Profile zoom=%d samples=%d tiles=%d no_data=%d',
        zoom,
        len(elevations),
        len(keys),
        no_data,
    )
    return zoom, path, elevations


async def compute_profile(
    lat1: float,
    lng1: float,
    lat2: float,
    lng2: float,
    provider: TileRasterProvider,
    *,
    settings: ProfileSettings | None = None,
    cache: TileRasterCache | None = None,
) -> list[float | None]:
    """Elevations (m) along the segment from point 1 to point 2.

    Args:
        lat1, lng1: Start point, degrees.
        lat2, lng2: End point, degrees.
        provider: Source of tile rasters.
        settings: Sampling and raster options; defaults to ProfileSettings().
        cache: Tile cache to use; a fresh one per call by default.

    Returns:
        ``2**settings.max_depth + 1`` values in path order; ``None`` where the
        DEM has no data.

    Raises:
        InvalidCoordinateError: If a latitude is at or beyond a pole.
        FetchError: If any tile cannot be provided. No partial profile is
            returned.
    """
    settings = settings or ProfileSettings()
    cache = cache if cache is not None else TileRasterCache()
    _, _, elevations = await _sample_profile(
        GeoPoint(lat1, lng1), GeoPoint(lat2, lng2), provider, settings, cache
    )
    return elevations


async def compute_profile_samples(
    lat1: float,
    lng1: float,
    lat2: float,
    lng2: float,
    provider: TileRasterProvider,
    *,
    settings: ProfileSettings | None = None,
    cache: TileRasterCache | None = None,
) -> list[ProfileSample]:
    """Same as compute_profile, with the position and distance of each sample."""
    settings = settings or ProfileSettings()
    cache = cache if cache is not None else TileRasterCache()
    zoom, path, elevations = await _sample_profile(
        GeoPoint(lat1, lng1), GeoPoint(lat2, lng2), provider, settings, cache
    )
    samples: list[ProfileSample] = []
    for (px, py), h in zip(path, elevations):
        pt = pixel_to_latlng(px, py, zoom)
        d = great_circle_distance_km(lat1, lng1, pt.lat, pt.lng)
        samples.append(ProfileSample(pt.lat, pt.lng, d, h))
    return samples


async def get_elevation(
    lat: float,
    lng: float,
    provider: TileRasterProvider,
    *,
    settings: ProfileSettings | None = None,
) -> float | None:
    """Elevation (m) of a single point at ``settings.max_zoom``."""
    settings = settings or ProfileSettings()
    info = tile_info(lat, lng, settings.max_zoom)
    raster = await provider.provide(
        settings.raster_type, info.zoom, info.tile_x, info.tile_y
    )
    return decode_pixel(raster, info.image_x, info.image_y)
