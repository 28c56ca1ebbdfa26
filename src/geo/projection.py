"""Web Mercator projection onto the 256 px slippy-map tile grid.

World coordinates span 0..256 at zoom 0 with the origin in the north-west
corner (longitude -180, top of the Mercator square). Pixel coordinates are
world coordinates scaled by ``2**zoom``; a tile index is the floor-divided
256 px block containing a pixel, the image offset is the remainder.

Latitude must stay strictly inside (-90, 90): at the poles the Mercator
ordinate diverges and ``InvalidCoordinateError`` is raised.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from shared.constants import (
    MERCATOR_POLE_LAT_DEG,
    PIXELS_PER_RADIAN,
    TILE_SIZE,
    WORLD_HALF_SIZE_PX,
)
from shared.errors import InvalidCoordinateError


@dataclass(frozen=True)
class GeoPoint:
    """WGS84 point in degrees. Longitude is not wrapped."""

    lat: float
    lng: float


@dataclass(frozen=True)
class LongitudeCoord:
    world_x: float
    pixel_x: float
    tile_x: int
    image_x: int


@dataclass(frozen=True)
class LatitudeCoord:
    world_y: float
    pixel_y: float
    tile_y: int
    image_y: int


@dataclass(frozen=True)
class TileInfo:
    """World, pixel, tile and in-tile coordinates of one point at one zoom."""

    world_x: float
    world_y: float
    pixel_x: float
    pixel_y: float
    tile_x: int
    tile_y: int
    image_x: int
    image_y: int
    zoom: int

    @property
    def tile(self) -> tuple[int, int, int]:
        """(z, x, y) of the containing tile."""
        return self.zoom, self.tile_x, self.tile_y

    @property
    def pixel(self) -> tuple[float, float]:
        return self.pixel_x, self.pixel_y


def _split_axis(pixel: float) -> tuple[int, int]:
    tile = math.floor(pixel / TILE_SIZE)
    image = math.floor(pixel - tile * TILE_SIZE)
    return tile, image


def split_pixel(
    pixel_x: float, pixel_y: float
) -> tuple[tuple[int, int], tuple[int, int]]:
    """Split a zoomed pixel position into ((tile_x, tile_y), (image_x, image_y))."""
    tile_x, image_x = _split_axis(pixel_x)
    tile_y, image_y = _split_axis(pixel_y)
    return (tile_x, tile_y), (image_x, image_y)


def validate_latitude(lat_deg: float) -> None:
    """Raise InvalidCoordinateError unless -90 < lat < 90."""
    if not math.isfinite(lat_deg) or abs(lat_deg) >= MERCATOR_POLE_LAT_DEG:
        msg = f'Latitude must be strictly between -90 and 90 degrees, got {lat_deg!r}'
        raise InvalidCoordinateError(msg)


def validate_longitude(lng_deg: float) -> None:
    """Raise InvalidCoordinateError for NaN or infinite longitude."""
    if not math.isfinite(lng_deg):
        msg = f'Longitude must be a finite number, got {lng_deg!r}'
        raise InvalidCoordinateError(msg)


def project_longitude(lng_deg: float, zoom: int) -> LongitudeCoord:
    """Project a longitude onto the tile grid at ``zoom``.

    Longitude -180 maps to world x 0 and +180 to world x 256; values outside
    that range are projected as-is, without wraparound.

    Raises:
        InvalidCoordinateError: If the longitude is not finite.
    """
    validate_longitude(lng_deg)
    # == R * radians(lng) + R * pi
    world_x = (lng_deg + 180.0) / 360.0 * TILE_SIZE
    pixel_x = world_x * (2**zoom)
    tile_x, image_x = _split_axis(pixel_x)
    return LongitudeCoord(world_x, pixel_x, tile_x, image_x)


def project_latitude(lat_deg: float, zoom: int) -> LatitudeCoord:
    """Project a latitude onto the tile grid at ``zoom`` (y grows southwards).

    Raises:
        InvalidCoordinateError: If the latitude is at or beyond a pole.
    """
    validate_latitude(lat_deg)
    lat_rad = math.radians(lat_deg)
    mercator = PIXELS_PER_RADIAN * math.log(math.tan(math.pi / 4 + lat_rad / 2))
    world_y = -mercator + WORLD_HALF_SIZE_PX
    pixel_y = world_y * (2**zoom)
    tile_y, image_y = _split_axis(pixel_y)
    return LatitudeCoord(world_y, pixel_y, tile_y, image_y)


def tile_info(lat_deg: float, lng_deg: float, zoom: int) -> TileInfo:
    """Combine project_longitude and project_latitude for one point."""
    cx = project_longitude(lng_deg, zoom)
    cy = project_latitude(lat_deg, zoom)
    return TileInfo(
        world_x=cx.world_x,
        world_y=cy.world_y,
        pixel_x=cx.pixel_x,
        pixel_y=cy.pixel_y,
        tile_x=cx.tile_x,
        tile_y=cy.tile_y,
        image_x=cx.image_x,
        image_y=cy.image_y,
        zoom=zoom,
    )


def pixel_to_latlng(pixel_x: float, pixel_y: float, zoom: int) -> GeoPoint:
    """Inverse projection: zoomed pixel position -> WGS84 point."""
    world_size = TILE_SIZE * (2**zoom)
    lng = pixel_x / world_size * 360.0 - 180.0
    merc_y = math.pi * (1.0 - 2.0 * pixel_y / world_size)
    lat = math.degrees(math.atan(math.sinh(merc_y)))
    return GeoPoint(lat=lat, lng=lng)
