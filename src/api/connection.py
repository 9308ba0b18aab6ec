# manages the HTTP connection to the storefront API

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx

from utils.config import settings

BASE_URL = settings.api_base_url
TIMEOUT = settings.request_timeout
HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}

# swapped for httpx.MockTransport in tests
_transport: Optional[httpx.AsyncBaseTransport] = None


@asynccontextmanager
async def connect() -> AsyncIterator[httpx.AsyncClient]:
    """Async context manager yielding a client bound to the API base URL."""
    async with httpx.AsyncClient(
        base_url=BASE_URL,
        headers=HEADERS,
        timeout=TIMEOUT,
        transport=_transport,
    ) as client:
        yield client
