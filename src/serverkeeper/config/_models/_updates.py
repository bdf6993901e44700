"""Update and backup configuration model."""

from pathlib import Path
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field


class UpdateOptions(BaseModel):
    """Update and backup configuration section.

    Attributes:
        version_api_url: URL of the download-links metadata document.
        download_type: Value of ``downloadType`` identifying the server build.
        version_pattern: Regex whose first group extracts the version from
            the download URL.
        download_folder: Where archives are downloaded (backup_folder if unset).
        download_file_name: Archive name template; the version is appended
            to its stem.
        overwrite_existing_download: Re-download even if the archive exists.
        download_timeout_seconds: HTTP timeout for metadata and downloads.
        backup_folder: Where backup archives are written.
        backup_exclude: Directory names skipped when backing up.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    version_api_url: str = (
        "https://net-secondary.web.minecraft-services.net/api/v1.0/download/links"
    )
    download_type: str = "serverBedrockLinux"
    version_pattern: str = r"bedrock-server-([\d.]+)\.zip"
    download_folder: Path | None = None
    download_file_name: str = "bedrock-server.zip"
    overwrite_existing_download: bool = False
    download_timeout_seconds: float = Field(default=300.0, gt=0)
    backup_folder: Path = Path("backups")
    backup_exclude: tuple[str, ...] = ("worlds", "logs", "backups")

    @property
    def effective_download_folder(self) -> Path:
        """Return the download folder, falling back to the backup folder."""
        return self.download_folder or self.backup_folder
