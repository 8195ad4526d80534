"""
Artifact Access

Resolves download references and makes artifacts available as local
files. Local paths pass through untouched. Remote artifacts are streamed
to a temporary file which is removed when the acquire() context exits,
whether the caller succeeded or raised.

No retries: a failed download surfaces once and retry policy is left to
the caller.
"""

import json
import logging
import os
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path, PurePosixPath
from typing import Any, AsyncIterator, Optional
from urllib.parse import urljoin, urlparse
from urllib.request import url2pathname

import httpx

from .. import config
from .errors import ArtifactDownloadError

logger = logging.getLogger(__name__)

REMOTE_SCHEMES = ("http", "https")


def has_scheme(location: str) -> bool:
    return bool(urlparse(location).scheme)


def is_remote(location: str) -> bool:
    return urlparse(location).scheme in REMOTE_SCHEMES


def resolve_location(location: str, base: Optional[str] = None) -> str:
    """
    Resolve a download reference against the catalog location.

    References with a scheme are returned as-is; others are resolved
    relative to the directory containing base.

    "app.ipa" + "https://example.com/catalog/index.json"
        -> "https://example.com/catalog/app.ipa"
    """
    if has_scheme(location) or not base:
        return location
    return urljoin(base, location)


def local_path(location: str) -> Path:
    """
    Filesystem path for a local reference (plain path or file: URL).

    Raises:
        ArtifactDownloadError: the reference uses a scheme that cannot be fetched
    """
    parsed = urlparse(location)
    if parsed.scheme == "file":
        return Path(url2pathname(parsed.path))
    # single letters are Windows drive names, not schemes
    if len(parsed.scheme) > 1:
        raise ArtifactDownloadError(
            f"Unsupported URL scheme '{parsed.scheme}': {location}",
            source=location,
        )
    return Path(location)


class ArtifactAccessor:
    """
    Opens local artifacts and downloads remote ones.
    """

    def __init__(
        self,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = config.DOWNLOAD_TIMEOUT_SECONDS,
        chunk_size: int = config.DOWNLOAD_CHUNK_SIZE,
    ):
        """
        Args:
            transport: httpx transport override (tests use httpx.MockTransport)
            timeout: request timeout in seconds
            chunk_size: bytes per streamed chunk
        """
        self.transport = transport
        self.timeout = timeout
        self.chunk_size = chunk_size

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=self.transport,
            timeout=self.timeout,
            follow_redirects=True,
        )

    @asynccontextmanager
    async def acquire(self, location: str, clear_download: bool = True) -> AsyncIterator[Path]:
        """
        Yield a local path for the artifact at location.

        Raises:
            ArtifactDownloadError: the remote artifact could not be fetched
        """
        if not is_remote(location):
            yield local_path(location)
            return

        path = await self.download(location)
        try:
            yield path
        finally:
            if clear_download:
                logger.debug(f"Removing temporary download: {path}")
                path.unlink(missing_ok=True)

    async def download(self, url: str) -> Path:
        """Stream url into a new temporary file and return its path."""
        suffix = PurePosixPath(urlparse(url).path).suffix
        fd, name = tempfile.mkstemp(prefix="appsource-", suffix=suffix)
        path = Path(name)
        logger.debug(f"Downloading {url} to {path}")

        try:
            with os.fdopen(fd, 'wb') as f:
                async with self._client() as client:
                    async with client.stream("GET", url) as response:
                        response.raise_for_status()
                        async for chunk in response.aiter_bytes(self.chunk_size):
                            f.write(chunk)
        except httpx.HTTPStatusError as e:
            path.unlink(missing_ok=True)
            raise ArtifactDownloadError(
                f"HTTP {e.response.status_code} downloading {url}",
                source=url,
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            path.unlink(missing_ok=True)
            raise ArtifactDownloadError(f"Failed to download {url}: {e}", source=url) from e
        except BaseException:
            path.unlink(missing_ok=True)
            raise

        return path

    async def fetch_json(self, location: str) -> Any:
        """Load a JSON document from a local path or remote URL."""
        if not is_remote(location):
            with open(local_path(location), 'r', encoding='utf-8') as f:
                return json.load(f)

        try:
            async with self._client() as client:
                response = await client.get(location)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            raise ArtifactDownloadError(
                f"HTTP {e.response.status_code} fetching {location}",
                source=location,
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise ArtifactDownloadError(f"Failed to fetch {location}: {e}", source=location) from e
