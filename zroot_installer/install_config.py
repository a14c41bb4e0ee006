from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .errors import InputError
from .lib.env import PATHS
from .lib.manifests import load_mirrors_manifest

DEFAULT_CANONICAL_MIRROR = "https://distfiles.gentoo.org/"
DEFAULT_LAST_KNOWN_GOOD = (
    "https://distfiles.gentoo.org/releases/{arch}/autobuilds/20250706T150904Z/"
    "stage3-{arch}-{profile}-20250706T150904Z.tar.xz"
)
DEFAULT_MIN_ARTIFACT_BYTES = 100 * 1024 * 1024
DEFAULT_DOWNLOAD_TOTAL_S = 300.0

KNOWN_KEYS = frozenset(
    {
        "target_root",
        "arch",
        "mirror_region",
        "mirrors",
        "canonical_mirror",
        "last_known_good",
        "min_artifact_bytes",
        "download_total_s",
        "reboot",
        "check_network",
        "dry_run",
    }
)


@dataclass(frozen=True)
class InstallConfig:
    """Installer settings; every key is optional and flat."""

    raw: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        unknown = sorted(set(self.raw) - KNOWN_KEYS)
        if unknown:
            raise InputError(f"Unknown installer config key(s): {', '.join(unknown)}")

    @property
    def target_root(self) -> str:
        return str(self.raw.get("target_root") or PATHS.target_root)

    @property
    def arch(self) -> str:
        return str(self.raw.get("arch") or "amd64")

    @property
    def mirror_region(self) -> str:
        return str(self.raw.get("mirror_region") or "na")

    @property
    def mirrors(self) -> List[str]:
        explicit = self.raw.get("mirrors")
        if explicit is not None:
            if not isinstance(explicit, list) or not explicit:
                raise InputError("mirrors must be a non-empty list of base URLs")
            return [str(m) for m in explicit]
        regions = load_mirrors_manifest().get("regions") or {}
        mirrors = regions.get(self.mirror_region)
        if not mirrors:
            raise InputError(f"Unknown mirror region: {self.mirror_region}")
        return [str(m) for m in mirrors]

    @property
    def canonical_mirror(self) -> str:
        return str(self.raw.get("canonical_mirror") or DEFAULT_CANONICAL_MIRROR)

    def last_known_good(self, profile: str) -> str:
        tmpl = str(self.raw.get("last_known_good") or DEFAULT_LAST_KNOWN_GOOD)
        return tmpl.format(arch=self.arch, profile=profile)

    @property
    def min_artifact_bytes(self) -> int:
        return int(self.raw.get("min_artifact_bytes") or DEFAULT_MIN_ARTIFACT_BYTES)

    @property
    def download_total_s(self) -> float:
        return float(self.raw.get("download_total_s") or DEFAULT_DOWNLOAD_TOTAL_S)

    @property
    def reboot(self) -> bool:
        return bool(self.raw.get("reboot", False))

    @property
    def check_network(self) -> bool:
        return bool(self.raw.get("check_network", True))

    @property
    def dry_run(self) -> bool:
        return bool(self.raw.get("dry_run", False))


def load_install_config(path: Optional[str]) -> InstallConfig:
    if not path:
        return InstallConfig(raw={})

    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(path)

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise InputError("installer config must be YAML")

    raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise InputError("installer config must contain a mapping/object")

    return InstallConfig(raw=raw)
