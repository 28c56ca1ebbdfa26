"""Decoding of GSI elevation PNG pixels.

    x = 2^16 R + 2^8 G + B
    x <  2^23  ->  h = x * u
    x == 2^23  ->  no data
    x >  2^23  ->  h = (x - 2^24) * u

with u = 0.01 m. "No data" is returned as ``None`` (``NO_DATA``) by the
per-pixel decoder and as ``NaN`` by the whole-tile decoder.
"""

from __future__ import annotations

import numpy as np

from shared.constants import (
    DEM_CHANNEL_G_WEIGHT,
    DEM_CHANNEL_R_WEIGHT,
    DEM_MIN_CHANNELS,
    DEM_NO_DATA_VALUE,
    DEM_RESOLUTION_M,
    DEM_SIGNED_OFFSET,
)

NO_DATA = None


def decode_elevation(r: int, g: int, b: int) -> float | None:
    """Decode one RGB triplet into meters, or ``NO_DATA`` at the sentinel."""
    x = int(r) * DEM_CHANNEL_R_WEIGHT + int(g) * DEM_CHANNEL_G_WEIGHT + int(b)
    if x < DEM_NO_DATA_VALUE:
        return x * DEM_RESOLUTION_M
    if x == DEM_NO_DATA_VALUE:
        return NO_DATA
    return (x - DEM_SIGNED_OFFSET) * DEM_RESOLUTION_M


def decode_pixel(raster: np.ndarray, image_x: int, image_y: int) -> float | None:
    """Decode the pixel at column ``image_x``, row ``image_y`` of a tile raster."""
    r, g, b = raster[image_y, image_x, :DEM_MIN_CHANNELS]
    return decode_elevation(r, g, b)


def decode_dem_tile(raster: np.ndarray) -> np.ndarray:
    """
    Декодирует весь тайл в двумерный массив высот (метры), NaN — нет данных.

    Векторизованный вариант decode_elevation; формула та же.
    """
    if raster.ndim != 3 or raster.shape[2] < DEM_MIN_CHANNELS:
        msg = f'Expected an (H, W, >=3) raster, got shape {raster.shape}'
        raise ValueError(msg)
    arr = raster[:, :, :DEM_MIN_CHANNELS].astype(np.int64)
    x = (
        arr[:, :, 0] * DEM_CHANNEL_R_WEIGHT
        + arr[:, :, 1] * DEM_CHANNEL_G_WEIGHT
        + arr[:, :, 2]
    )
    signed = np.where(x > DEM_NO_DATA_VALUE, x - DEM_SIGNED_OFFSET, x)
    elevation = signed * DEM_RESOLUTION_M
    elevation[x == DEM_NO_DATA_VALUE] = np.nan
    return elevation
