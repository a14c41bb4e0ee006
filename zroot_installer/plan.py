from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from .errors import PlanError

SWAP_ZRAM = "none-use-compressed-ram"
SWAP_PARTITION = "dedicated-partition"
SWAP_STRATEGIES = (SWAP_ZRAM, SWAP_PARTITION)

INIT_SYSTEMS = ("openrc", "systemd")

VIDEO_CARDS = ("intel", "amdgpu", "radeon", "nvidia", "vmware")
DEFAULT_VIDEO_CARDS = ("intel", "amdgpu", "radeon", "nvidia")

_USERNAME_RE = re.compile(r"^[a-z][a-z0-9_-]*$")
_HOSTNAME_RE = re.compile(r"^[A-Za-z0-9]([A-Za-z0-9-]{0,61}[A-Za-z0-9])?$")
_TIMEZONE_RE = re.compile(r"^(UTC|[A-Za-z_]+(/[A-Za-z0-9_+-]+)+)$")


@dataclass(frozen=True)
class InstallPlan:
    """Every choice made before execution begins.

    Built once by whatever collects input; never mutated afterwards.
    Passwords are excluded from repr and from summary().
    """

    device: str
    encryption: bool
    swap: str
    init_system: str
    locale: str
    timezone: str
    hostname: str
    username: str
    root_password: str = field(repr=False)
    user_password: str = field(repr=False)
    video_cards: Tuple[str, ...] = DEFAULT_VIDEO_CARDS
    luks_passphrase: Optional[str] = field(default=None, repr=False)

    @property
    def use_zram(self) -> bool:
        return self.swap == SWAP_ZRAM

    @property
    def use_systemd(self) -> bool:
        return self.init_system == "systemd"

    @property
    def encryption_passphrase(self) -> str:
        return self.luks_passphrase or self.root_password

    def summary(self) -> Dict[str, Any]:
        return {
            "device": self.device,
            "encryption": self.encryption,
            "swap": self.swap,
            "init_system": self.init_system,
            "locale": self.locale,
            "timezone": self.timezone,
            "hostname": self.hostname,
            "username": self.username,
            "video_cards": list(self.video_cards),
        }


def _require_str(raw: Mapping[str, Any], key: str, default: Optional[str] = None) -> str:
    value = raw.get(key, default)
    if value is None or not str(value).strip():
        raise PlanError(f"plan.{key} is required")
    return str(value).strip()


def _require_secret(raw: Mapping[str, Any], key: str) -> str:
    # Taken verbatim: whitespace is part of a password.
    value = raw.get(key)
    if value is None or str(value) == "":
        raise PlanError(f"plan.{key} is required")
    return str(value)


def _video_cards(value: Any) -> Tuple[str, ...]:
    if value is None or value == [] or value == "":
        return DEFAULT_VIDEO_CARDS
    if isinstance(value, str):
        value = value.split()
    cards = [str(v).strip() for v in value if str(v).strip()]
    if cards == ["none"]:
        return ()
    unknown = [c for c in cards if c not in VIDEO_CARDS]
    if unknown:
        raise PlanError(f"plan.video_cards has unknown entries: {', '.join(unknown)}")
    # keep order, drop duplicates
    return tuple(dict.fromkeys(cards))


def plan_from_mapping(raw: Mapping[str, Any]) -> InstallPlan:
    """Validate a raw mapping and build an InstallPlan."""

    device = _require_str(raw, "device")

    swap = _require_str(raw, "swap", SWAP_ZRAM)
    if swap not in SWAP_STRATEGIES:
        raise PlanError(f"plan.swap must be one of {', '.join(SWAP_STRATEGIES)}, got: {swap}")

    init_system = _require_str(raw, "init_system", "openrc")
    if init_system not in INIT_SYSTEMS:
        raise PlanError(f"plan.init_system must be one of {', '.join(INIT_SYSTEMS)}, got: {init_system}")

    username = _require_str(raw, "username")
    if not _USERNAME_RE.match(username):
        raise PlanError(
            "plan.username must start with a lowercase letter and contain only "
            "lowercase letters, numbers, hyphens and underscores"
        )

    hostname = _require_str(raw, "hostname", "gentoo-zfs")
    if not _HOSTNAME_RE.match(hostname):
        raise PlanError(f"plan.hostname is not a valid host name: {hostname}")

    timezone = _require_str(raw, "timezone")
    if not _TIMEZONE_RE.match(timezone):
        raise PlanError(f"plan.timezone must look like Area/City, got: {timezone}")

    luks = raw.get("luks_passphrase")

    return InstallPlan(
        device=device,
        encryption=bool(raw.get("encryption", False)),
        swap=swap,
        init_system=init_system,
        locale=_require_str(raw, "locale", "en_US.UTF-8"),
        timezone=timezone,
        hostname=hostname,
        username=username,
        root_password=_require_secret(raw, "root_password"),
        user_password=_require_secret(raw, "user_password"),
        video_cards=_video_cards(raw.get("video_cards")),
        luks_passphrase=str(luks) if luks else None,
    )


def load_plan(path: str) -> InstallPlan:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(path)

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise PlanError("install plan must be YAML")

    raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise PlanError("install plan must contain a mapping/object")

    return plan_from_mapping(raw)
