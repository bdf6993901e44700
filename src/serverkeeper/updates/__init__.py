"""Update checking, patching and backups.

Key Components:
    - VersionClient: Looks up the latest published server archive
    - UpdateChecker: Update oracle comparing published and running versions
    - PatchService: Downloads and extracts a version over the installation
    - ZipBackupService: Timestamped ZIP backups of the installation
"""

from ._backup import ZipBackupService, write_backup
from ._patch import PatchService, archive_path, extract_archive
from ._version import ServerDownload, UpdateChecker, VersionClient, parse_download

__all__ = [
    "PatchService",
    "ServerDownload",
    "UpdateChecker",
    "VersionClient",
    "ZipBackupService",
    "archive_path",
    "extract_archive",
    "parse_download",
    "write_backup",
]
