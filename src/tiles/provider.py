"""Tile raster providers.

The profile core depends only on ``TileRasterProvider``. ``GsiDemTileProvider``
downloads GSI elevation PNG tiles over HTTP and decodes them with Pillow.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from http import HTTPStatus
from io import BytesIO
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import aiohttp
import numpy as np
from PIL import Image, UnidentifiedImageError

from shared.constants import (
    GSI_TILE_BASE_URL,
    GSI_TILE_EXT,
    HTTP_5XX_MAX,
    HTTP_5XX_MIN,
    HTTP_BACKOFF_FACTOR,
    HTTP_RETRIES_DEFAULT,
    HTTP_TIMEOUT_DEFAULT,
    TILE_SIZE,
)
from shared.errors import FetchError

if TYPE_CHECKING:
    from domain.models import ProfileSettings

logger = logging.getLogger(__name__)


@runtime_checkable
class TileRasterProvider(Protocol):
    """Supplies a 256x256 RGB(A) uint8 raster for a tile, or raises FetchError."""

    async def provide(
        self, raster_type: str, zoom: int, x: int, y: int
    ) -> np.ndarray: ...


def tile_url(
    raster_type: str,
    z: int,
    x: int,
    y: int,
    *,
    base_url: str = GSI_TILE_BASE_URL,
    ext: str = GSI_TILE_EXT,
) -> str:
    """URL of one tile: {base_url}/{raster_type}/{z}/{x}/{y}.{ext}."""
    return f'{base_url.rstrip("/")}/{raster_type}/{z}/{x}/{y}.{ext}'


def decode_tile_image(
    data: bytes, *, raster_type: str, z: int, x: int, y: int
) -> np.ndarray:
    """Decode PNG bytes into a read-only (256, 256, 3) uint8 array."""
    try:
        img = Image.open(BytesIO(data)).convert('RGB')
    except (UnidentifiedImageError, OSError) as e:
        msg = f'Cannot decode tile image {raster_type} z/x/y={z}/{x}/{y}: {e}'
        raise FetchError(msg, raster_type=raster_type, zoom=z, x=x, y=y) from e
    if img.size != (TILE_SIZE, TILE_SIZE):
        msg = (
            f'Unexpected tile size {img.size[0]}x{img.size[1]} for '
            f'{raster_type} z/x/y={z}/{x}/{y}'
        )
        raise FetchError(msg, raster_type=raster_type, zoom=z, x=x, y=y)
    arr = np.asarray(img, dtype=np.uint8).copy()
    arr.flags.writeable = False
    return arr


class GsiDemTileProvider:
    """Downloads GSI DEM PNG tiles with retries on 429/5xx.

    Usage:
        async with make_http_session() as session:
            provider = GsiDemTileProvider(session)
            raster = await provider.provide('dem5a_png', 15, 29100, 12902)
    """

    def __init__(
        self,
        client: aiohttp.ClientSession,
        *,
        base_url: str = GSI_TILE_BASE_URL,
        ext: str = GSI_TILE_EXT,
        timeout: float = HTTP_TIMEOUT_DEFAULT,
        retries: int = HTTP_RETRIES_DEFAULT,
        backoff: float = HTTP_BACKOFF_FACTOR,
    ) -> None:
        self.client = client
        self.base_url = base_url
        self.ext = ext
        self.timeout = float(timeout)
        self.retries = max(1, int(retries))
        self.backoff = float(backoff)
        self._stats_downloads = 0
        self._stats_errors = 0

    @classmethod
    def from_settings(
        cls, client: aiohttp.ClientSession, settings: ProfileSettings
    ) -> GsiDemTileProvider:
        return cls(
            client,
            base_url=settings.base_url,
            ext=settings.file_ext,
            timeout=settings.http_timeout_s,
            retries=settings.http_retries,
            backoff=settings.http_backoff,
        )

    @property
    def stats(self) -> dict[str, int]:
        return {'downloads': self._stats_downloads, 'errors': self._stats_errors}

    async def provide(self, raster_type: str, zoom: int, x: int, y: int) -> np.ndarray:
        """Download and decode one tile.

        Raises:
            FetchError: On 401/403/404, undecodable content, or when all
                retries of 429/5xx/transport errors are exhausted.
        """
        url = tile_url(raster_type, zoom, x, y, base_url=self.base_url, ext=self.ext)

        def _fail(msg: str) -> FetchError:
            self._stats_errors += 1
            return FetchError(msg, raster_type=raster_type, zoom=zoom, x=x, y=y)

        last_exc: Exception | None = None
        for attempt in range(self.retries):
            if attempt:
                await asyncio.sleep(self.backoff**attempt)
            try:
                timeout = aiohttp.ClientTimeout(total=self.timeout)
                resp = await self.client.get(url, timeout=timeout)
            except (aiohttp.ClientError, TimeoutError) as e:
                last_exc = e
                logger.warning(
                    'Tile request failed (attempt %d/%d) %s: %s',
                    attempt + 1,
                    self.retries,
                    url,
                    e,
                )
                continue
            try:
                sc = resp.status
                if sc == HTTPStatus.OK:
                    data = await resp.read()
                    self._stats_downloads += 1
                    logger.debug('Downloaded tile %s (%d bytes)', url, len(data))
                    try:
                        return decode_tile_image(
                            data, raster_type=raster_type, z=zoom, x=x, y=y
                        )
                    except FetchError:
                        self._stats_errors += 1
                        raise
                if sc in (HTTPStatus.UNAUTHORIZED, HTTPStatus.FORBIDDEN):
                    msg = f'Access denied (HTTP {sc}) for tile {url}'
                    raise _fail(msg)
                if sc == HTTPStatus.NOT_FOUND:
                    msg = f'Tile not found (404) {url}'
                    raise _fail(msg)
                is_rate_or_5xx = (sc == HTTPStatus.TOO_MANY_REQUESTS) or (
                    HTTP_5XX_MIN <= sc < HTTP_5XX_MAX
                )
                if is_rate_or_5xx:
                    last_exc = RuntimeError(f'HTTP {sc} for tile {url}')
                    logger.warning(
                        'HTTP %s for tile %s (attempt %d/%d)',
                        sc,
                        url,
                        attempt + 1,
                        self.retries,
                    )
                else:
                    msg = f'Unexpected HTTP {sc} for tile {url}'
                    raise _fail(msg)
            except (aiohttp.ClientError, TimeoutError) as e:
                last_exc = e
            finally:
                with suppress(Exception):
                    resp.release()
        msg = f'Failed to fetch tile {url} after {self.retries} attempts: {last_exc}'
        raise _fail(msg)
