"""ZIP backups of the server installation."""

import zipfile
from collections.abc import Collection
from pathlib import Path
from typing import final

import anyio.to_thread
import structlog
from structlog.typing import FilteringBoundLogger

from serverkeeper.config import ServerOptions, UpdateOptions
from serverkeeper.exceptions import BackupError
from serverkeeper.lifecycle import Clock, SystemClock

BACKUP_PREFIX = "server_backup_"
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


def write_backup(source: Path, archive: Path, exclude: Collection[str]) -> int:
    """Zip a directory tree, skipping directories with excluded names.

    Directories are matched by name at any depth. The archive itself is
    never added, even when it lives inside ``source``.

    Returns:
        Number of files written.
    """
    archive.parent.mkdir(parents=True, exist_ok=True)
    resolved_archive = archive.resolve()
    count = 0
    with zipfile.ZipFile(archive, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for dirpath, dirnames, filenames in source.walk():
            dirnames[:] = sorted(d for d in dirnames if d not in exclude)
            for filename in sorted(filenames):
                path = dirpath / filename
                if path.resolve() == resolved_archive:
                    continue
                zf.write(path, path.relative_to(source).as_posix())
                count += 1
    return count


@final
class ZipBackupService:
    """Backs up the server directory into a timestamped ZIP archive.

    Archives are named ``server_backup_<yyyymmdd_HHMMSS>.zip`` (UTC) and
    written to ``backup_folder``. Worlds, logs and earlier backups are
    excluded by default.
    """

    __slots__ = ("_clock", "_logger", "_server", "_updates")

    def __init__(
        self,
        server: ServerOptions,
        updates: UpdateOptions,
        *,
        clock: Clock | None = None,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        self._server = server
        self._updates = updates
        self._clock: Clock = clock or SystemClock()
        base_logger: FilteringBoundLogger = logger or structlog.get_logger()
        self._logger = base_logger.bind(component="backup")

    def backup_path(self) -> Path:
        """Return the archive path for a backup taken now."""
        stamp = self._clock.now().strftime(TIMESTAMP_FORMAT)
        return self._updates.backup_folder / f"{BACKUP_PREFIX}{stamp}.zip"

    async def create_backup(self) -> Path:
        """Create a backup archive.

        Returns:
            Path to the created archive.

        Raises:
            BackupError: If the server directory is missing or the archive
                cannot be written.
        """
        source = self._server.server_path
        if not source.is_dir():
            msg = f"Server directory {source} does not exist"
            raise BackupError(msg, path=source)

        archive = self.backup_path()
        self._logger.info("backup_started", path=str(archive))
        try:
            count = await anyio.to_thread.run_sync(
                write_backup,
                source,
                archive,
                frozenset(self._updates.backup_exclude),
            )
        except OSError as e:
            msg = f"Failed to write backup {archive}: {e}"
            raise BackupError(msg, path=archive, cause=e) from e

        self._logger.info("backup_complete", path=str(archive), files=count)
        return archive
