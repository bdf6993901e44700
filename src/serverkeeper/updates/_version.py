# pyright: reportAny=false
"""Published-version lookup.

The download-links endpoint returns a JSON document of the form::

    {"result": {"links": [{"downloadType": "serverBedrockLinux",
                           "downloadUrl": "https://.../bedrock-server-1.21.3.01.zip"}]}}

VersionClient picks the link for the configured download type and reads the
version out of its URL. UpdateChecker compares that version with the one the
running server reports.
"""

import re
from dataclasses import dataclass
from typing import Any, final

import httpx
import structlog
from structlog.typing import FilteringBoundLogger
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from serverkeeper.config import UpdateOptions
from serverkeeper.exceptions import UpdateCheckError
from serverkeeper.lifecycle import UpdateCheckResult


@dataclass(frozen=True, slots=True)
class ServerDownload:
    """A published server archive.

    Attributes:
        version: Version extracted from the download URL.
        url: Where the archive can be downloaded.
    """

    version: str
    url: str


@retry(
    retry=retry_if_exception_type((httpx.ConnectError, httpx.TimeoutException)),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=2),
    reraise=True,
)
async def _fetch_json(client: httpx.AsyncClient, url: str) -> Any:  # pyright: ignore[reportExplicitAny]
    """Fetch a JSON document with retry logic.

    Raises:
        httpx.ConnectError: If connection fails after retries.
        httpx.TimeoutException: If request times out after retries.
        httpx.HTTPStatusError: If the server answers with an error status.
    """
    response = await client.get(url)
    _ = response.raise_for_status()
    return response.json()


def parse_download(
    payload: Any,  # pyright: ignore[reportExplicitAny]
    download_type: str,
    version_pattern: str,
) -> ServerDownload | None:
    """Find the download for a type in a download-links document.

    Args:
        payload: Decoded JSON document.
        download_type: Value of ``downloadType`` to look for.
        version_pattern: Regex whose first group is the version.

    Returns:
        The matching download, or None if no link matches or the version
        cannot be read from its URL.
    """
    if not isinstance(payload, dict):
        return None
    result = payload.get("result")
    links = result.get("links") if isinstance(result, dict) else None
    if not isinstance(links, list):
        return None

    pattern = re.compile(version_pattern)
    for link in links:
        if not isinstance(link, dict) or link.get("downloadType") != download_type:
            continue
        url = link.get("downloadUrl")
        if not isinstance(url, str) or not url:
            continue
        match = pattern.search(url)
        if match is None:
            return None
        return ServerDownload(version=match.group(1), url=url)
    return None


@final
class VersionClient:
    """Looks up the latest published server archive."""

    __slots__ = ("_client", "_logger", "_options")

    def __init__(
        self,
        options: UpdateOptions,
        *,
        client: httpx.AsyncClient | None = None,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            options: Endpoint, download type and version pattern.
            client: HTTP client to use; a short-lived one per call if None.
            logger: Logger to bind; a default structlog logger if None.
        """
        self._options = options
        self._client = client
        base_logger: FilteringBoundLogger = logger or structlog.get_logger()
        self._logger = base_logger.bind(component="version_client")

    @property
    def options(self) -> UpdateOptions:
        """Return the update options in use."""
        return self._options

    async def _fetch_metadata(self) -> Any:  # pyright: ignore[reportExplicitAny]
        url = self._options.version_api_url
        if self._client is not None:
            return await _fetch_json(self._client, url)
        async with httpx.AsyncClient(
            timeout=self._options.download_timeout_seconds,
            follow_redirects=True,
        ) as client:
            return await _fetch_json(client, url)

    async def get_latest(self) -> ServerDownload:
        """Return the latest published archive for the configured type.

        Raises:
            UpdateCheckError: If the endpoint cannot be reached or its answer
                holds no usable link.
        """
        url = self._options.version_api_url
        self._logger.debug("fetching_version_metadata", url=url)
        try:
            payload = await self._fetch_metadata()
        except httpx.HTTPError as e:
            msg = f"Failed to fetch version metadata from {url}: {e}"
            raise UpdateCheckError(msg, url=url, cause=e) from e
        except ValueError as e:
            msg = f"Version metadata from {url} is not valid JSON"
            raise UpdateCheckError(msg, url=url, cause=e) from e

        download = parse_download(
            payload,
            self._options.download_type,
            self._options.version_pattern,
        )
        if download is None:
            msg = f"No '{self._options.download_type}' download found at {url}"
            raise UpdateCheckError(msg, url=url)

        self._logger.info("latest_version", version=download.version)
        return download


@final
class UpdateChecker:
    """Update oracle backed by the published download links.

    An update is available whenever the published version differs from the
    one the server reports, including when the server has not reported one.
    """

    __slots__ = ("_logger", "_versions")

    def __init__(
        self,
        versions: VersionClient,
        *,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        self._versions = versions
        base_logger: FilteringBoundLogger = logger or structlog.get_logger()
        self._logger = base_logger.bind(component="update_checker")

    async def check_for_newer_version(self, current_version: str) -> UpdateCheckResult:
        """Compare the running version with the latest published one.

        Raises:
            UpdateCheckError: If the latest version cannot be determined.
        """
        latest = await self._versions.get_latest()
        if latest.version == current_version:
            self._logger.info("server_up_to_date", version=current_version)
            return UpdateCheckResult(
                available=False,
                message=f"Server is up to date ({current_version})",
            )

        message = f"Update available: {current_version} -> {latest.version}"
        self._logger.info(
            "update_available",
            current_version=current_version,
            new_version=latest.version,
        )
        return UpdateCheckResult(
            available=True,
            message=message,
            new_version=latest.version,
        )
