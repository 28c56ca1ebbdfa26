"""In-memory tile raster cache for one profile computation.

Each key (raster type, zoom, x, y) is fetched at most once. Concurrent
requests for a key that is still downloading await the same future. The cache
may be shared between profiles: if the task that owns a fetch is cancelled,
another waiter takes the fetch over.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TileKey:
    """Key for tile identification in memory cache."""

    raster_type: str
    z: int
    x: int
    y: int


class TileRasterCache:
    """Memoizes tile rasters obtained from a provider.

    Usage:
        cache = TileRasterCache()
        raster = await cache.get(
            'dem5a_png', 15, 29100, 12902,
            lambda: provider.provide('dem5a_png', 15, 29100, 12902),
        )
    """

    def __init__(self) -> None:
        self._rasters: dict[TileKey, np.ndarray] = {}
        self._pending: dict[TileKey, asyncio.Future[np.ndarray]] = {}
        self._stats_hits = 0
        self._stats_misses = 0

    def __len__(self) -> int:
        return len(self._rasters)

    def __contains__(self, key: object) -> bool:
        return key in self._rasters

    @property
    def stats(self) -> dict[str, int]:
        return {
            'hits': self._stats_hits,
            'misses': self._stats_misses,
            'tiles': len(self._rasters),
        }

    def peek(self, raster_type: str, zoom: int, x: int, y: int) -> np.ndarray | None:
        """Return a cached raster without fetching."""
        return self._rasters.get(TileKey(raster_type, int(zoom), int(x), int(y)))

    async def get(
        self,
        raster_type: str,
        zoom: int,
        x: int,
        y: int,
        fetch: Callable[[], Awaitable[np.ndarray]],
    ) -> np.ndarray:
        """Get a raster, calling ``fetch`` only on the first miss for the key.

        Args:
            raster_type: DEM dataset identifier.
            zoom: Zoom level.
            x: Tile X coordinate.
            y: Tile Y coordinate.
            fetch: Zero-argument coroutine function producing the raster.

        Returns:
            The cached raster.

        Raises:
            Whatever ``fetch`` raises; failed fetches are not cached.
        """
        key = TileKey(raster_type, int(zoom), int(x), int(y))
        while True:
            raster = self._rasters.get(key)
            if raster is not None:
                self._stats_hits += 1
                return raster

            pending = self._pending.get(key)
            if pending is None:
                break
            try:
                raster = await asyncio.shield(pending)
            except asyncio.CancelledError:
                # Cancelled owner of the fetch: take over unless we are cancelled too
                task = asyncio.current_task()
                if not pending.cancelled() or (task is not None and task.cancelling()):
                    raise
                logger.debug(
                    'Tile fetch %s/%s/%s/%s cancelled by its owner, retrying',
                    raster_type,
                    zoom,
                    x,
                    y,
                )
                continue
            self._stats_hits += 1
            return raster

        self._stats_misses += 1
        future: asyncio.Future[np.ndarray] = (
            asyncio.get_running_loop().create_future()
        )
        self._pending[key] = future
        logger.debug('Tile cache miss %s/%s/%s/%s', raster_type, zoom, x, y)
        try:
            raster = await fetch()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            # retrieved: no "exception was never retrieved" without waiters
            future.exception()
            raise
        else:
            # a clear() during the fetch drops the result
            if self._pending.get(key) is future:
                self._rasters[key] = raster
            future.set_result(raster)
            return raster
        finally:
            if self._pending.get(key) is future:
                del self._pending[key]

    def clear(self) -> None:
        """Drop stored rasters and forget in-flight fetches.

        Fetches already running still complete for their callers, but their
        results are not stored.
        """
        self._rasters.clear()
        self._pending.clear()
