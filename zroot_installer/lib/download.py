from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Callable, Optional, Tuple
from urllib.parse import urlparse

import requests

from ..errors import AcquisitionError, DownloadFailed, IntegrityCheckFailed

logger = logging.getLogger(__name__)

ATTEMPTS = 3
RETRY_DELAY_S = 3.0
# (connect, read) seconds; read bounds the gap between chunks
DOWNLOAD_TIMEOUT: Tuple[float, float] = (30, 60)
# Wall-clock ceiling for one whole attempt
DOWNLOAD_TOTAL_S = 300.0
MIN_ARTIFACT_BYTES = 100 * 1024 * 1024
CHUNK_SIZE = 1024 * 1024

XZ_MAGIC = b"\xfd7zXZ\x00"
LZMA_MAGIC = b"\x5d\x00\x00"

SUCCESS = "success"
RETRYABLE = "retryable"
FATAL = "fatal"


@dataclass(frozen=True)
class DownloadOutcome:
    status: str
    path: Optional[Path] = None
    reason: str = ""
    error: Optional[AcquisitionError] = None
    attempts: int = 0

    @classmethod
    def success(cls, path: Path, *, attempts: int = 1) -> "DownloadOutcome":
        return cls(status=SUCCESS, path=path, attempts=attempts)

    @classmethod
    def retryable(cls, reason: str) -> "DownloadOutcome":
        return cls(status=RETRYABLE, reason=reason)

    @classmethod
    def fatal(cls, error: AcquisitionError, *, attempts: int = 0) -> "DownloadOutcome":
        return cls(status=FATAL, reason=str(error), error=error, attempts=attempts)

    @property
    def ok(self) -> bool:
        return self.status == SUCCESS

    def unwrap(self) -> Path:
        if self.ok and self.path is not None:
            return self.path
        if self.error is not None:
            raise self.error
        raise DownloadFailed(self.reason or "download did not complete")


def _head(path: Path, n: int = 4096) -> bytes:
    with path.open("rb") as f:
        return f.read(n)


def looks_textual(head: bytes) -> bool:
    if not head:
        return True
    if b"\x00" in head:
        return False
    stripped = head.lstrip().lower()
    if stripped.startswith((b"<!doctype", b"<html", b"<?xml", b"<head", b"<body")):
        return True
    try:
        head.decode("utf-8")
    except UnicodeDecodeError:
        return False
    return True


def classify_archive(path: Path) -> str:
    """Return xz, lzma, text or binary from the first bytes of the file."""

    head = _head(path)
    if head.startswith(XZ_MAGIC):
        return "xz"
    if head.startswith(LZMA_MAGIC):
        return "lzma"
    if looks_textual(head):
        return "text"
    return "binary"


def verify_artifact(path: Path, *, min_size: int = MIN_ARTIFACT_BYTES) -> None:
    """Acceptance gate for a completed download. Raises IntegrityCheckFailed."""

    if not path.is_file():
        raise IntegrityCheckFailed(f"Downloaded file not found: {path}")

    size = path.stat().st_size
    kind = classify_archive(path)
    logger.info("Downloaded file size: %dMB (%s)", size // (1024 * 1024), kind)

    if size < min_size:
        if kind == "text":
            preview = _head(path, 300).decode("utf-8", errors="replace").strip()
            logger.error("Downloaded file looks like an error page: %s", preview.splitlines()[:5])
            raise IntegrityCheckFailed(f"Downloaded file is a text/markup error page ({size} bytes)")
        raise IntegrityCheckFailed(f"Downloaded file is too small for a base image ({size} < {min_size} bytes)")

    if kind not in {"xz", "lzma"}:
        raise IntegrityCheckFailed(f"Downloaded file is not an XZ compressed archive (detected: {kind})")


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass


def _attempt(
    url: str,
    part: Path,
    *,
    session: requests.Session,
    total_s: float = DOWNLOAD_TOTAL_S,
    clock: Callable[[], float] = time.monotonic,
) -> DownloadOutcome:
    deadline = clock() + total_s
    try:
        with session.get(url, stream=True, timeout=DOWNLOAD_TIMEOUT) as resp:
            resp.raise_for_status()
            with part.open("wb") as f:
                for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
                    if clock() > deadline:
                        _discard(part)
                        return DownloadOutcome.retryable(f"attempt exceeded {total_s:g}s total")
    except (requests.RequestException, OSError) as e:
        _discard(part)
        return DownloadOutcome.retryable(str(e))
    return DownloadOutcome.success(part)


def artifact_filename(url: str) -> str:
    name = PurePosixPath(urlparse(url).path).name
    if not name:
        raise DownloadFailed(f"URL has no file name: {url}")
    return name


def acquire(
    url: str,
    destination_dir: str,
    *,
    attempts: int = ATTEMPTS,
    delay_s: float = RETRY_DELAY_S,
    min_size: int = MIN_ARTIFACT_BYTES,
    total_s: float = DOWNLOAD_TOTAL_S,
    session: Optional[requests.Session] = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> DownloadOutcome:
    """Download url into destination_dir and run the acceptance gate.

    Returns Success(path) or a fatal outcome carrying DownloadFailed or
    IntegrityCheckFailed. Nothing but an accepted artifact is left behind.
    """

    dest = Path(destination_dir)
    dest.mkdir(parents=True, exist_ok=True)
    final = dest / artifact_filename(url)
    part = dest / (final.name + ".part")

    own_session = session is None
    s = session or requests.Session()
    try:
        outcome = DownloadOutcome.retryable("not attempted")
        attempt = 0
        for attempt in range(1, attempts + 1):
            logger.info("Download attempt %d of %d: %s", attempt, attempts, url)
            outcome = _attempt(url, part, session=s, total_s=total_s, clock=clock)
            if outcome.ok:
                break
            logger.warning("Download failed: %s", outcome.reason)
            if attempt < attempts:
                logger.info("Retrying in %s seconds", delay_s)
                sleep(delay_s)
    finally:
        if own_session:
            s.close()

    if not outcome.ok:
        _discard(part)
        return DownloadOutcome.fatal(
            DownloadFailed(f"Download failed after {attempts} attempts: {url} ({outcome.reason})"),
            attempts=attempt,
        )

    try:
        verify_artifact(part, min_size=min_size)
    except IntegrityCheckFailed as e:
        _discard(part)
        return DownloadOutcome.fatal(e, attempts=attempt)

    part.replace(final)
    logger.info("Artifact accepted: %s", final)
    return DownloadOutcome.success(final, attempts=attempt)
