"""
Robust HTTP(S) file download for AgeGate.

Used for both the secondary component installer and the self-update
artifact. Unattended agents on flaky links need downloads that either
complete fully or leave nothing behind.

Key Features:

- **Retry Logic with Exponential Backoff** - Automatically retries on transient failures (429, 500, 502, 503, 504) with exponential backoff. Configurable via urllib3.util.Retry.
- **Atomic Writes** - Downloads to temporary .part files with atomic rename on success to prevent partial files. The .part file is removed on every failure path.
- **Integrity Reporting** - SHA-256 hashing during download.
- **Smart Filename Detection** - Explicit filename, else Content-Disposition header, else URL path.
- **Stable ETags** - Forces Accept-Encoding: identity to request raw bytes.

Constants:

- DEFAULT_CHUNK (int): Stream chunk size (1 MiB). Balance memory vs. progress granularity.

Example:
Basic download:

    >>> from pathlib import Path
    >>> from agegate.io import download_file
    >>> path, sha256, headers = download_file(
    ...     url="https://example.com/installer.msi",
    ...     destination_folder=Path("./downloads"),
    ... )

Notes:
- Placement is the caller's job: download into a directory on the same
  filesystem as the final location, then os.replace.
- All HTTP errors are chained for better debugging
- Timeouts are per-request, not total download time
"""

from __future__ import annotations

import hashlib
from pathlib import Path
import time
from urllib.parse import urlparse

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from agegate.exceptions import NetworkError
from agegate.logging import get_global_logger

# Stream size per chunk (1 MiB). Tune up/down if needed.
DEFAULT_CHUNK = 1024 * 1024


def _filename_from_cd(content_disposition: str) -> str | None:
    """
    Extract a filename from a Content-Disposition header if present.

    Example header:
      'attachment; filename="setup.msi"'
    """
    if not content_disposition:
        return None
    parts = [s.strip() for s in content_disposition.split(";")]
    for part in parts:
        if part.lower().startswith("filename="):
            value = part.split("=", 1)[1].strip().strip('"')
            return value or None
    return None


def _filename_from_url(url: str) -> str:
    """
    Derive a filename from the URL path. Fallback to a generic name if empty.
    """
    name = Path(urlparse(url).path).name
    return name or "download.bin"


def make_session() -> requests.Session:
    """
    Create a requests.Session with sane retry/backoff defaults.

    - Retries on common transient status codes.
    - Applies exponential backoff.
    - Sets a helpful User-Agent to avoid being blocked.
    - Pins 'Accept-Encoding: identity' so binaries arrive byte-for-byte.
    """
    from agegate import __version__

    s = requests.Session()
    retries = Retry(
        total=5,
        backoff_factor=0.5,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=("GET", "HEAD"),
        raise_on_status=False,
    )
    s.headers.update(
        {
            "User-Agent": f"agegate/{__version__}",
            "Accept-Encoding": "identity",
        }
    )
    s.mount("http://", HTTPAdapter(max_retries=retries))
    s.mount("https://", HTTPAdapter(max_retries=retries))
    return s


def download_file(
    url: str,
    destination_folder: Path,
    *,
    filename: str | None = None,
    timeout: int = 60,
) -> tuple[Path, str, dict]:
    """Download a URL to destination_folder.

    Follows redirects and retries transient failures. Writes to <filename>.part
    then renames to <filename> on success (atomic).

    Args:
        url: Source URL.
        destination_folder: Folder to save into (created if missing).
        filename: Name for the downloaded file. Defaults to the
            Content-Disposition filename, then the last URL path segment.
        timeout: Per-request timeout (seconds).

    Returns:
        A tuple (file_path, sha256_hex, headers_dict), where file_path is
            the Path to the downloaded file, sha256_hex is the SHA-256 hash
            of the file, and headers_dict contains HTTP response headers.

    Raises:
        NetworkError: For connection failures and non-2xx responses (after
            retries), or if writing the file fails midway.

    """
    logger = get_global_logger()

    destination_folder = Path(destination_folder)
    destination_folder.mkdir(parents=True, exist_ok=True)

    logger.verbose("HTTP", f"GET {url}")

    with make_session() as session:
        try:
            # Stream response so we can hash while writing.
            resp = session.get(url, stream=True, allow_redirects=True, timeout=timeout)
        except requests.exceptions.RequestException as err:
            raise NetworkError(f"download failed for {url}: {err}") from err

        for hist in resp.history:
            logger.debug(
                "HTTP",
                f"Redirect {hist.status_code} -> {hist.headers.get('Location', 'unknown')}",
            )

        try:
            resp.raise_for_status()
        except requests.HTTPError as err:
            resp.close()
            raise NetworkError(f"download failed for {url}: {err}") from err

        logger.verbose("HTTP", f"Response: {resp.status_code} {resp.reason}")

        # Content-Disposition beats URL when naming the file.
        cd_name = _filename_from_cd(resp.headers.get("Content-Disposition", ""))
        name = filename or cd_name or _filename_from_url(resp.url)
        target = destination_folder / name

        tmp = target.with_suffix(target.suffix + ".part")
        logger.debug("FILE", f"Downloading to: {tmp}")

        sha = hashlib.sha256()
        started_at = time.time()

        try:
            with tmp.open("wb") as f:
                for chunk in resp.iter_content(chunk_size=DEFAULT_CHUNK):
                    if not chunk:
                        continue
                    f.write(chunk)
                    sha.update(chunk)
        except (requests.exceptions.RequestException, OSError) as err:
            tmp.unlink(missing_ok=True)
            raise NetworkError(f"download of {url} interrupted: {err}") from err
        finally:
            resp.close()

        digest = sha.hexdigest()
        logger.debug("FILE", f"SHA-256: {digest} (computed during download)")

        # Atomically "commit" the file.
        tmp.replace(target)

        elapsed = time.time() - started_at
        logger.verbose("FILE", f"Download complete: {target} in {elapsed:.1f}s")

        # Hand back headers the caller may want to inspect.
        return target, digest, dict(resp.headers)
