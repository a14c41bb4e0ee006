from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Sequence

from ..errors import CommandError, ExtractionFailed
from .command import run_cmd

logger = logging.getLogger(__name__)

EXPECTED_TOP_LEVEL = ("bin", "etc", "usr", "var")


def extract_artifact(archive: str, target_root: str, *, dry_run: bool = False) -> None:
    """Unpack a base image keeping ownership and extended attributes.

    The archive is removed after a clean extraction and left in place
    otherwise.
    """

    logger.info("Extracting %s into %s (this may take several minutes)", archive, target_root)
    try:
        run_cmd(
            [
                "tar",
                "xpf",
                archive,
                "--xattrs-include=*.*",
                "--numeric-owner",
                "-C",
                target_root,
            ],
            dry_run=dry_run,
        )
    except CommandError as e:
        raise ExtractionFailed(f"Extraction failed; archive left at {archive}: {e}") from e

    if not dry_run:
        Path(archive).unlink()
        logger.info("Removed archive %s", archive)


def verify_tree(target_root: str, expected: Sequence[str] = EXPECTED_TOP_LEVEL) -> List[str]:
    """Return expected top-level directories missing from the extracted tree.

    Missing entries are warnings: an image may legitimately omit some.
    """

    missing = [d for d in expected if not (Path(target_root) / d).is_dir()]
    for d in expected:
        if d in missing:
            logger.warning("Extracted tree is missing /%s", d)
        else:
            logger.info("Extracted tree has /%s", d)
    return missing
