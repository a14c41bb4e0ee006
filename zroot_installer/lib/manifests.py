from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import yaml


def _package_root() -> Path:
    # zroot_installer/lib/manifests.py -> zroot_installer
    return Path(__file__).resolve().parents[1]


def load_yaml_rel(rel_path: str) -> Dict[str, Any]:
    """Load a YAML file shipped inside the package (manifests/...)."""

    p = _package_root() / rel_path.lstrip("/")
    data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Manifest must be a mapping/dict: {p}")
    return data


def load_mirrors_manifest() -> Dict[str, Any]:
    return load_yaml_rel("manifests/mirrors.yaml")


def template_path(name: str) -> Path:
    return _package_root() / "templates" / name
