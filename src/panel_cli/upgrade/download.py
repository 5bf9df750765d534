"""Download a release archive and unpack it over the installation.

No integrity verification is performed; operators are warned about this
before the download starts.
"""

from __future__ import annotations

import logging
import ssl
import tarfile
import tempfile
from pathlib import Path
from typing import Callable

import httpx
import truststore

from .context import ExecutionContext
from .errors import ArchiveDownloadError
from .models import OutputLine, OutputStream, StepOutcome

logger = logging.getLogger(__name__)

CHUNK_SIZE = 8192
DOWNLOAD_TIMEOUT = 60


def default_client() -> httpx.Client:
    ssl_context = truststore.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    return httpx.Client(verify=ssl_context, follow_redirects=True, timeout=DOWNLOAD_TIMEOUT)


class HttpArchiveFetcher:
    """Fetch a ``.tar.gz`` over HTTP(S) and extract it into the installation."""

    def __init__(self, client: httpx.Client | None = None):
        # An injected client belongs to the caller and is left open.
        self._client = client

    def fetch(self, ctx: ExecutionContext, url: str) -> StepOutcome:
        lines: list[OutputLine] = []

        def emit(stream: OutputStream, text: str) -> None:
            line = OutputLine(stream, text)
            lines.append(line)
            ctx.emit(line)

        with tempfile.TemporaryDirectory(prefix="panel-upgrade-") as tmp:
            archive_path = Path(tmp) / "panel.tar.gz"
            try:
                size = self._download(url, archive_path)
                emit(OutputStream.STDOUT, f"Downloaded {size:,} bytes from {url}")
                self._extract(
                    archive_path,
                    ctx.install_path,
                    lambda name: emit(OutputStream.STDOUT, f"x {name}"),
                )
            except ArchiveDownloadError as exc:
                emit(OutputStream.STDERR, str(exc))
                return StepOutcome.failed(str(exc), lines=lines)

        return StepOutcome.ok(lines)

    def _download(self, url: str, destination: Path) -> int:
        logger.debug("Downloading %s to %s", url, destination)
        written = 0
        client = self._client or default_client()
        try:
            with client.stream("GET", url) as response:
                if response.status_code != 200:
                    raise ArchiveDownloadError(f"Download failed with HTTP {response.status_code}: {url}")
                with open(destination, "wb") as f:
                    for chunk in response.iter_bytes(chunk_size=CHUNK_SIZE):
                        f.write(chunk)
                        written += len(chunk)
        except httpx.HTTPError as exc:
            raise ArchiveDownloadError(f"Download failed: {exc}") from exc
        finally:
            if client is not self._client:
                client.close()
        return written

    def _extract(self, archive_path: Path, destination: Path, on_member: Callable[[str], None]) -> int:
        count = 0
        try:
            with tarfile.open(archive_path, "r:gz") as tar:
                for member in tar:
                    tar.extract(member, destination, filter="data")
                    on_member(member.name)
                    count += 1
        except (tarfile.TarError, OSError) as exc:
            raise ArchiveDownloadError(f"Could not unpack archive: {exc}") from exc
        logger.debug("Extracted %d entries into %s", count, destination)
        return count
