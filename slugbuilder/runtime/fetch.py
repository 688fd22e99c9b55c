"""Binary download and extraction helpers.

This module handles:
- Streaming downloads with bounded retries on transient failures
- Safe tarball extraction into a vendor directory
"""

from __future__ import annotations

import logging
import shutil
import tarfile
import tempfile
import time
from pathlib import Path

import httpx

from slugbuilder.errors import DownloadError, ExtractionError

logger = logging.getLogger(__name__)

# Chunk size for downloads (bytes)
DOWNLOAD_CHUNK_SIZE = 64 * 1024  # 64 KB

# Delay between download attempts (seconds)
RETRY_DELAY = 1.0


def _is_transient(error: httpx.HTTPError) -> bool:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code >= 500
    return isinstance(error, httpx.TransportError)


def download_file(
    client: httpx.Client,
    url: str,
    dest_path: Path,
    timeout: float = 600,
    retries: int = 3,
    chunk_size: int = DOWNLOAD_CHUNK_SIZE,
    retry_delay: float = RETRY_DELAY,
) -> int:
    """Download a file, retrying transient failures.

    Network errors and 5xx responses are retried up to ``retries`` attempts
    in total; 4xx responses fail immediately.

    Args:
        client: HTTPX client instance.
        url: URL to download from.
        dest_path: Destination path for the downloaded file.
        timeout: Download timeout in seconds.
        retries: Maximum number of attempts.
        chunk_size: Size of chunks to download.
        retry_delay: Seconds to wait between attempts.

    Returns:
        Number of bytes written.

    Raises:
        DownloadError: If every attempt fails.
    """
    dest_path.parent.mkdir(parents=True, exist_ok=True)
    last_error: httpx.HTTPError | None = None

    for attempt in range(1, retries + 1):
        logger.info("Downloading %s (attempt %d/%d)", url, attempt, retries)
        try:
            with client.stream("GET", url, timeout=timeout) as response:
                response.raise_for_status()
                total_bytes = 0
                with dest_path.open("wb") as f:
                    for chunk in response.iter_bytes(chunk_size):
                        f.write(chunk)
                        total_bytes += len(chunk)
            logger.info("Downloaded %s (%d bytes)", dest_path.name, total_bytes)
            return total_bytes
        except httpx.HTTPError as e:
            dest_path.unlink(missing_ok=True)
            last_error = e
            if not _is_transient(e):
                break
            if attempt < retries:
                logger.warning("Transient error downloading %s: %s", url, e)
                time.sleep(retry_delay)

    if isinstance(last_error, httpx.HTTPStatusError):
        raise DownloadError(
            f"HTTP error downloading {url}: {last_error.response.status_code}",
            code="http_error",
        ) from last_error
    if isinstance(last_error, httpx.TimeoutException):
        raise DownloadError(
            f"Timeout downloading {url}", code="timeout"
        ) from last_error
    raise DownloadError(
        f"Network error downloading {url}: {last_error}",
        code="network_error",
    ) from last_error


def extract_tarball(archive_path: Path, dest_dir: Path) -> Path:
    """Extract a tarball, dropping its single top-level directory.

    Any existing ``dest_dir`` is replaced.

    Args:
        archive_path: Path to a (possibly compressed) tar archive.
        dest_dir: Directory that receives the archive contents.

    Returns:
        dest_dir.

    Raises:
        ExtractionError: If the archive is unsafe, empty or unreadable.
    """
    logger.info("Extracting %s to %s", archive_path.name, dest_dir)
    dest_dir.parent.mkdir(parents=True, exist_ok=True)

    try:
        with tempfile.TemporaryDirectory(dir=dest_dir.parent) as tmp:
            tmp_dir = Path(tmp)
            with tarfile.open(archive_path, "r:*") as tar:
                members = tar.getmembers()
                if not members:
                    raise ExtractionError(
                        f"Archive {archive_path} is empty", code="empty_archive"
                    )
                for member in members:
                    member_path = Path(member.name)
                    if member_path.is_absolute() or ".." in member_path.parts:
                        raise ExtractionError(
                            f"Refusing to extract {member.name}: "
                            "path traversal detected",
                            code="path_traversal",
                        )
                tar.extractall(tmp_dir, filter="data")

            top_level = list(tmp_dir.iterdir())
            source = (
                top_level[0]
                if len(top_level) == 1 and top_level[0].is_dir()
                else tmp_dir
            )
            if dest_dir.exists():
                shutil.rmtree(dest_dir)
            if source is tmp_dir:
                shutil.copytree(tmp_dir, dest_dir, symlinks=True)
            else:
                shutil.move(str(source), str(dest_dir))
    except tarfile.TarError as e:
        raise ExtractionError(
            f"Failed to extract {archive_path}: {e}", code="tar_error"
        ) from e
    except OSError as e:
        raise ExtractionError(
            f"OS error extracting {archive_path}: {e}", code="os_error"
        ) from e

    return dest_dir


def fetch_and_extract(
    client: httpx.Client,
    url: str,
    dest_dir: Path,
    timeout: float = 600,
    retries: int = 3,
) -> Path:
    """Download a tarball and extract it into dest_dir.

    Raises:
        DownloadError: If the download fails.
        ExtractionError: If extraction fails.
    """
    dest_dir.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        dir=dest_dir.parent, suffix=".tar.tmp", delete=False
    ) as tmp_file:
        tmp_path = Path(tmp_file.name)
    try:
        download_file(client, url, tmp_path, timeout=timeout, retries=retries)
        return extract_tarball(tmp_path, dest_dir)
    finally:
        tmp_path.unlink(missing_ok=True)


__all__ = [
    "DOWNLOAD_CHUNK_SIZE",
    "download_file",
    "extract_tarball",
    "fetch_and_extract",
]
