"""Download template repositories as GitHub zip archives."""

import io
import logging
import shutil
import tempfile
import zipfile
from pathlib import Path
from typing import Optional

import requests

from .discovery import USER_AGENT, parse_template_reference
from .errors import FileSystemError, NetworkError, ValidationError

logger = logging.getLogger(__name__)

ARCHIVE_URL = "https://github.com/{owner}/{repo}/archive/refs/heads/{branch}.zip"
SKIPPED_NAMES = {".git"}


def archive_url(url: str, branch: str = "main") -> str:
    """Build the zipball URL for a repository URL or ``owner/repo`` shorthand."""
    parts = parse_template_reference(url)
    if parts is None:
        raise ValidationError("template", f"Not a GitHub repository: {url}")
    owner, repo = parts
    return ARCHIVE_URL.format(owner=owner, repo=repo, branch=branch)


class Downloader:
    """Fetches a repository snapshot into a local directory.

    Usage:
        downloader = Downloader()
        downloader.download("https://github.com/x402/axum-starter", Path("/tmp/tpl"))
    """

    def __init__(self, session: Optional[requests.Session] = None, timeout: int = 60):
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", USER_AGENT)
        self.timeout = timeout

    def download(self, url: str, dest: Path, branch: str = "main") -> Path:
        """Download and unpack a repository into dest.

        Args:
            url: Repository URL or owner/repo shorthand
            dest: Target directory (created if missing)
            branch: Branch to download

        Returns:
            The destination directory.

        Raises:
            NetworkError: If the archive cannot be fetched.
            FileSystemError: If the archive is corrupt or cannot be unpacked.
        """
        download_url = archive_url(url, branch)
        logger.info(f"Downloading {download_url}")

        try:
            response = self.session.get(download_url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise NetworkError(f"Failed to download template: {e}") from e

        dest = Path(dest)
        try:
            with zipfile.ZipFile(io.BytesIO(response.content)) as archive:
                with tempfile.TemporaryDirectory() as tmp_dir:
                    _extract(archive, Path(tmp_dir))

                    # GitHub archives hold a single <repo>-<branch>/ directory
                    extracted = list(Path(tmp_dir).iterdir())
                    if len(extracted) == 1 and extracted[0].is_dir():
                        source = extracted[0]
                    else:
                        source = Path(tmp_dir)

                    dest.mkdir(parents=True, exist_ok=True)
                    shutil.copytree(
                        source,
                        dest,
                        ignore=shutil.ignore_patterns(*SKIPPED_NAMES),
                        dirs_exist_ok=True,
                    )
        except zipfile.BadZipFile as e:
            raise FileSystemError(f"Downloaded archive is not a valid zip file: {e}") from e
        except (OSError, shutil.Error) as e:
            raise FileSystemError(f"Failed to extract template: {e}", dest) from e

        logger.debug(f"Extracted {url} into {dest}")
        return dest


def _extract(archive: zipfile.ZipFile, target: Path) -> None:
    """Extract every member, keeping unix mode bits and refusing paths outside target."""
    root = target.resolve()
    for member in archive.infolist():
        path = (target / member.filename).resolve()
        if root not in path.parents and path != root:
            raise FileSystemError(f"Archive member escapes extraction directory: {member.filename}")

        archive.extract(member, target)

        mode = (member.external_attr >> 16) & 0o777
        if mode and not member.is_dir():
            path.chmod(mode)
