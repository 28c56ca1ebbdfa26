"""Tests for tile raster providers."""

from __future__ import annotations

import asyncio
from io import BytesIO
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import numpy as np
import pytest
from PIL import Image

from domain.models import ProfileSettings
from shared.errors import FetchError
from tiles.provider import (
    GsiDemTileProvider,
    TileRasterProvider,
    decode_tile_image,
    tile_url,
)


def _create_test_png(size: tuple[int, int] = (256, 256), color=(0, 1, 2)) -> bytes:
    img = Image.new('RGB', size, color)
    buf = BytesIO()
    img.save(buf, format='PNG')
    return buf.getvalue()


def _response(status: int, data: bytes = b'') -> MagicMock:
    resp = AsyncMock()
    resp.status = status
    resp.read = AsyncMock(return_value=data)
    resp.release = MagicMock()
    return resp


def _session(*responses) -> MagicMock:
    session = MagicMock()
    session.get = AsyncMock(side_effect=list(responses))
    return session


class TestTileUrl:
    """Tests for tile_url function."""

    def test_default_gsi_url(self):
        """Default URL points at the GSI xyz tile server."""
        url = tile_url('dem5a_png', 15, 29105, 12903)
        assert url == 'https://cyberjapandata.gsi.go.jp/xyz/dem5a_png/15/29105/12903.png'

    def test_custom_base_and_ext(self):
        """Trailing slash on the base URL is ignored."""
        url = tile_url('dem', 3, 1, 2, base_url='http://localhost:8080/tiles/', ext='webp')
        assert url == 'http://localhost:8080/tiles/dem/3/1/2.webp'


class TestDecodeTileImage:
    """Tests for decode_tile_image function."""

    def test_decodes_rgb_array(self):
        """PNG bytes decode to a read-only (256, 256, 3) uint8 array."""
        arr = decode_tile_image(_create_test_png(color=(1, 2, 3)), raster_type='dem5a_png', z=1, x=0, y=0)
        assert arr.shape == (256, 256, 3)
        assert arr.dtype == np.uint8
        assert tuple(arr[100, 50]) == (1, 2, 3)
        assert not arr.flags.writeable

    def test_wrong_size_rejected(self):
        """Tiles that are not 256x256 raise FetchError."""
        with pytest.raises(FetchError, match='Unexpected tile size') as exc_info:
            decode_tile_image(_create_test_png(size=(512, 512)), raster_type='dem5a_png', z=1, x=0, y=1)
        assert exc_info.value.tile == ('dem5a_png', 1, 0, 1)

    def test_garbage_rejected(self):
        """Non-image content raises FetchError."""
        with pytest.raises(FetchError, match='Cannot decode'):
            decode_tile_image(b'<html>oops</html>', raster_type='dem5a_png', z=1, x=0, y=0)


class TestGsiDemTileProvider:
    """Tests for GsiDemTileProvider class."""

    def test_satisfies_protocol(self):
        """Provider implements TileRasterProvider."""
        assert isinstance(GsiDemTileProvider(MagicMock()), TileRasterProvider)

    def test_from_settings(self):
        """HTTP options are taken from ProfileSettings."""
        settings = ProfileSettings(base_url='http://example.test', http_retries=2, http_backoff=0.0)
        provider = GsiDemTileProvider.from_settings(MagicMock(), settings)
        assert provider.base_url == 'http://example.test'
        assert provider.retries == 2
        assert provider.backoff == 0.0

    @pytest.mark.asyncio
    async def test_provide_success(self):
        """200 response is decoded into a raster."""
        session = _session(_response(200, _create_test_png(color=(0, 4, 0))))
        provider = GsiDemTileProvider(session, backoff=0.0)
        raster = await provider.provide('dem5a_png', 15, 29105, 12903)
        assert raster.shape == (256, 256, 3)
        assert tuple(raster[0, 0]) == (0, 4, 0)
        session.get.assert_called_once()
        url = session.get.call_args.args[0]
        assert url.endswith('/dem5a_png/15/29105/12903.png')
        assert provider.stats == {'downloads': 1, 'errors': 0}

    @pytest.mark.asyncio
    async def test_not_found_fails_without_retry(self):
        """404 raises FetchError immediately."""
        session = _session(_response(404), _response(200, _create_test_png()))
        provider = GsiDemTileProvider(session, retries=3, backoff=0.0)
        with pytest.raises(FetchError, match='404') as exc_info:
            await provider.provide('dem5a_png', 15, 1, 2)
        assert exc_info.value.tile == ('dem5a_png', 15, 1, 2)
        assert session.get.call_count == 1

    @pytest.mark.asyncio
    async def test_forbidden_fails_without_retry(self):
        """403 raises FetchError immediately."""
        session = _session(_response(403))
        provider = GsiDemTileProvider(session, retries=3, backoff=0.0)
        with pytest.raises(FetchError, match='Access denied'):
            await provider.provide('dem5a_png', 15, 1, 2)
        assert session.get.call_count == 1

    @pytest.mark.asyncio
    async def test_retries_on_server_error(self):
        """503 is retried and a later 200 succeeds."""
        session = _session(_response(503), _response(429), _response(200, _create_test_png()))
        provider = GsiDemTileProvider(session, retries=3, backoff=0.0)
        raster = await provider.provide('dem5a_png', 15, 1, 2)
        assert raster.shape == (256, 256, 3)
        assert session.get.call_count == 3

    @pytest.mark.asyncio
    async def test_retries_exhausted(self):
        """FetchError after every attempt fails."""
        session = _session(_response(500), _response(502))
        provider = GsiDemTileProvider(session, retries=2, backoff=0.0)
        with pytest.raises(FetchError, match='after 2 attempts'):
            await provider.provide('dem5a_png', 15, 1, 2)
        assert session.get.call_count == 2
        assert provider.stats['errors'] == 1

    @pytest.mark.asyncio
    async def test_transport_error_retried(self):
        """Connection errors are retried like 5xx."""
        session = _session(aiohttp.ClientConnectionError('reset'), _response(200, _create_test_png()))
        provider = GsiDemTileProvider(session, retries=2, backoff=0.0)
        raster = await provider.provide('dem5a_png', 15, 1, 2)
        assert raster.shape == (256, 256, 3)
        assert session.get.call_count == 2

    @pytest.mark.asyncio
    async def test_timeout_retried(self):
        """A request timeout is retried like a transport error."""
        session = _session(asyncio.TimeoutError(), _response(200, _create_test_png()))
        provider = GsiDemTileProvider(session, retries=2, backoff=0.0)
        raster = await provider.provide('dem5a_png', 15, 1, 2)
        assert raster.shape == (256, 256, 3)
        assert session.get.call_count == 2

    @pytest.mark.asyncio
    async def test_timeouts_exhausted_is_fetch_error(self):
        """Repeated timeouts end in FetchError, not a raw TimeoutError."""
        session = _session(asyncio.TimeoutError(), asyncio.TimeoutError())
        provider = GsiDemTileProvider(session, retries=2, backoff=0.0)
        with pytest.raises(FetchError, match='after 2 attempts') as exc_info:
            await provider.provide('dem5a_png', 15, 1, 2)
        assert exc_info.value.tile == ('dem5a_png', 15, 1, 2)
        assert session.get.call_count == 2

    @pytest.mark.asyncio
    async def test_bad_payload_is_fetch_error(self):
        """Undecodable body surfaces as FetchError."""
        session = _session(_response(200, b'not a png'))
        provider = GsiDemTileProvider(session, backoff=0.0)
        with pytest.raises(FetchError):
            await provider.provide('dem5a_png', 15, 1, 2)
        assert provider.stats['errors'] == 1
