"""Downloading and installing server updates."""

import zipfile
from pathlib import Path
from typing import final

import anyio
import anyio.to_thread
import httpx
import structlog
from structlog.typing import FilteringBoundLogger
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from serverkeeper.config import ServerOptions, UpdateOptions
from serverkeeper.exceptions import PatchError, UpdateCheckError

from ._version import VersionClient


def archive_path(options: UpdateOptions, version: str) -> Path:
    """Return where the archive for a version is stored.

    The version is appended to the stem of ``download_file_name``, so
    ``bedrock-server.zip`` becomes ``bedrock-server-1.21.3.01.zip``.
    """
    name = Path(options.download_file_name)
    suffix = name.suffix or ".zip"
    return options.effective_download_folder / f"{name.stem}-{version}{suffix}"


def extract_archive(archive: Path, destination: Path) -> list[str]:
    """Extract a ZIP archive over a directory, overwriting existing files.

    Returns:
        Names of the extracted members.

    Raises:
        zipfile.BadZipFile: If the archive is corrupt.
    """
    with zipfile.ZipFile(archive) as zf:
        names = zf.namelist()
        zf.extractall(destination)
    return names


@retry(
    retry=retry_if_exception_type((httpx.ConnectError, httpx.TimeoutException)),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=2),
    reraise=True,
)
async def _download(client: httpx.AsyncClient, url: str, target: Path) -> None:
    """Stream a URL into a file with retry logic.

    The body is written to a ``.part`` file that replaces ``target`` only
    once the download is complete.
    """
    partial = target.with_name(f"{target.name}.part")
    async with client.stream("GET", url) as response:
        _ = response.raise_for_status()
        async with await anyio.open_file(partial, "wb") as f:
            async for chunk in response.aiter_bytes():
                _ = await f.write(chunk)
    _ = partial.replace(target)


@final
class PatchService:
    """Installs a published server version over the current installation.

    The server must already be stopped; backing it up first is the caller's
    job.
    """

    __slots__ = ("_client", "_logger", "_server", "_updates", "_versions")

    def __init__(
        self,
        server: ServerOptions,
        updates: UpdateOptions,
        versions: VersionClient,
        *,
        client: httpx.AsyncClient | None = None,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            server: Supplies the installation directory.
            updates: Download folder, file name, timeout and overwrite rules.
            versions: Resolves the download URL.
            client: HTTP client for the download; a short-lived one if None.
            logger: Logger to bind; a default structlog logger if None.
        """
        self._server = server
        self._updates = updates
        self._versions = versions
        self._client = client
        base_logger: FilteringBoundLogger = logger or structlog.get_logger()
        self._logger = base_logger.bind(component="patch_service")

    async def _fetch(self, url: str, target: Path) -> None:
        if self._client is not None:
            await _download(self._client, url, target)
            return
        async with httpx.AsyncClient(
            timeout=self._updates.download_timeout_seconds,
            follow_redirects=True,
        ) as client:
            await _download(client, url, target)

    async def download(self, version: str) -> Path:
        """Download the archive for a version unless it is already present.

        Returns:
            Path to the archive.

        Raises:
            PatchError: If the download URL cannot be resolved or the
                download fails.
        """
        try:
            latest = await self._versions.get_latest()
        except UpdateCheckError as e:
            msg = f"Could not resolve the download for version {version}: {e}"
            raise PatchError(msg, version=version, cause=e) from e

        if latest.version != version:
            self._logger.warning(
                "published_version_changed",
                requested=version,
                published=latest.version,
            )

        target = archive_path(self._updates, latest.version)
        if target.exists() and not self._updates.overwrite_existing_download:
            self._logger.info("download_reused", path=str(target))
            return target

        self._logger.info("download_started", url=latest.url, path=str(target))
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            await self._fetch(latest.url, target)
        except (httpx.HTTPError, OSError) as e:
            msg = f"Failed to download {latest.url}: {e}"
            raise PatchError(msg, version=version, path=target, cause=e) from e

        self._logger.info("download_complete", path=str(target))
        return target

    async def apply_update(self, version: str) -> None:
        """Download and extract a version over the server installation.

        Raises:
            PatchError: If the archive cannot be downloaded or extracted.
        """
        self._logger.info("applying_update", version=version)
        archive = await self.download(version)
        destination = self._server.server_path
        try:
            names = await anyio.to_thread.run_sync(extract_archive, archive, destination)
        except zipfile.BadZipFile as e:
            msg = f"Update archive {archive} is corrupt"
            raise PatchError(msg, version=version, path=archive, cause=e) from e
        except OSError as e:
            msg = f"Failed to extract {archive} into {destination}: {e}"
            raise PatchError(msg, version=version, path=archive, cause=e) from e

        self._logger.info("update_extracted", version=version, files=len(names))
