from __future__ import annotations

import ssl

import aiohttp
import certifi

from shared.constants import ASYNC_MAX_CONCURRENCY


def make_http_session(
    *, concurrency: int = ASYNC_MAX_CONCURRENCY
) -> aiohttp.ClientSession:
    """HTTP session with certifi CA bundle and a per-host connection limit."""
    # Создать SSL-контекст с сертификатами из certifi
    ssl_context = ssl.create_default_context(cafile=certifi.where())
    connector = aiohttp.TCPConnector(ssl=ssl_context, limit_per_host=concurrency)
    return aiohttp.ClientSession(connector=connector)
