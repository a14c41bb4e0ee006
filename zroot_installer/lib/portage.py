from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Sequence

logger = logging.getLogger(__name__)

PACKAGE_USE_ZFS = (
    "sys-kernel/installkernel dracut",
    "sys-fs/zfs-kmod dist-kernel",
    "sys-fs/zfs dist-kernel",
)


def make_conf_block(video_cards: Sequence[str], *, jobs: Optional[int] = None) -> str:
    n = jobs or os.cpu_count() or 1
    return "\n".join(
        [
            "",
            "# ZFS and kernel configuration",
            'USE="dist-kernel initramfs zfs"',
            "",
            f'MAKEOPTS="-j{n}"',
            f'EMERGE_DEFAULT_OPTS="--jobs={n} --load-average={n}"',
            "",
            f'VIDEO_CARDS="{" ".join(video_cards)}"',
            'INPUT_DEVICES="libinput synaptics"',
            "",
        ]
    )


def configure_portage(
    target_root: str,
    video_cards: Sequence[str],
    *,
    jobs: Optional[int] = None,
    dry_run: bool = False,
) -> None:
    make_conf = Path(target_root) / "etc/portage/make.conf"
    package_use = Path(target_root) / "etc/portage/package.use/zfs"

    if dry_run:
        logger.info("Would append to %s and write %s", str(make_conf), str(package_use))
        return

    make_conf.parent.mkdir(parents=True, exist_ok=True)
    with make_conf.open("a", encoding="utf-8") as f:
        f.write(make_conf_block(video_cards, jobs=jobs))

    package_use.parent.mkdir(parents=True, exist_ok=True)
    package_use.write_text("\n".join(PACKAGE_USE_ZFS) + "\n", encoding="utf-8")

    logger.info("Configured portage (VIDEO_CARDS=%s)", " ".join(video_cards) or "none")
