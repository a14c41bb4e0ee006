from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple
from urllib.parse import urlparse

import requests

from ..errors import ArtifactResolutionFailed

logger = logging.getLogger(__name__)

ARCHIVE_EXT = ".tar.xz"

# (connect, read) seconds
HEAD_TIMEOUT: Tuple[float, float] = (5, 10)
FETCH_TIMEOUT: Tuple[float, float] = (5, 15)

# Servers that refuse HEAD; the GET decides instead.
HEAD_UNSUPPORTED = frozenset({405, 501})


@dataclass(frozen=True)
class MirrorCandidate:
    base_url: str

    @property
    def base(self) -> str:
        return self.base_url.rstrip("/") + "/"


@dataclass(frozen=True)
class ArtifactVariant:
    arch: str = "amd64"
    profile: str = "openrc"

    def autobuilds_url(self, base: str) -> str:
        return f"{base.rstrip('/')}/releases/{self.arch}/autobuilds/"

    def pointer_url(self, base: str) -> str:
        return self.autobuilds_url(base) + f"latest-stage3-{self.arch}-{self.profile}.txt"


def parse_pointer(text: str) -> Optional[str]:
    """Return the relative archive path named by a "latest" pointer file.

    The file is newline records, possibly wrapped in a PGP clearsign
    envelope. Comment (#) and separator (-----) lines are skipped; the
    first record whose first field ends in the archive extension wins.
    """

    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or line.startswith("-----"):
            continue
        path = line.split()[0]
        if path.endswith(ARCHIVE_EXT):
            return path
    return None


def is_valid_artifact_url(url: str) -> bool:
    u = urlparse(url)
    return u.scheme in {"http", "https"} and bool(u.netloc) and u.path.endswith(ARCHIVE_EXT)


def resolve_candidate(
    candidate: MirrorCandidate,
    variant: ArtifactVariant,
    *,
    session: requests.Session,
) -> Optional[str]:
    """Check one mirror; return its artifact URL or None. Never raises on network errors."""

    pointer = variant.pointer_url(candidate.base)
    try:
        head = session.head(pointer, timeout=HEAD_TIMEOUT, allow_redirects=True)
        if head.status_code in HEAD_UNSUPPORTED:
            logger.debug("HEAD not supported (%s), fetching directly: %s", head.status_code, pointer)
        elif not head.ok:
            logger.info("Mirror HEAD failed (%s): %s", head.status_code, pointer)
            return None

        resp = session.get(pointer, timeout=FETCH_TIMEOUT)
        if not resp.ok:
            logger.info("Pointer fetch failed (%s): %s", resp.status_code, pointer)
            return None
        text = resp.text
    except requests.RequestException as e:
        logger.info("Mirror unreachable: %s (%s)", candidate.base, e)
        return None

    rel = parse_pointer(text)
    if not rel:
        logger.info("No %s entry in pointer file: %s", ARCHIVE_EXT, pointer)
        return None

    url = variant.autobuilds_url(candidate.base) + rel.lstrip("/")
    if not is_valid_artifact_url(url):
        logger.info("Discarding malformed artifact URL: %s", url)
        return None
    return url


def resolve_artifact(
    candidates: Sequence[MirrorCandidate],
    variant: ArtifactVariant,
    *,
    canonical: MirrorCandidate,
    last_known_good: Optional[str] = None,
    session: Optional[requests.Session] = None,
) -> str:
    """Return the download URL from the first candidate that resolves.

    Candidates are tried strictly in order and the first success wins. If
    none resolves the canonical source is tried the same way; failing that,
    ArtifactResolutionFailed carries last_known_good as a hint only.
    """

    own_session = session is None
    s = session or requests.Session()
    try:
        for candidate in candidates:
            logger.info("Testing mirror: %s", candidate.base)
            url = resolve_candidate(candidate, variant, session=s)
            if url:
                logger.info("Found working mirror: %s", candidate.base)
                return url
            logger.warning("Mirror failed: %s", candidate.base)

        logger.warning("All mirrors failed; trying canonical source %s", canonical.base)
        url = resolve_candidate(canonical, variant, session=s)
        if url:
            return url
    finally:
        if own_session:
            s.close()

    raise ArtifactResolutionFailed(
        f"No mirror yielded a {variant.arch}/{variant.profile} artifact", hint=last_known_good
    )
