# This file is part of kubepkg, a tool for building Kubernetes Debian packages.
#
# Copyright 2025 Canonical Ltd.
#
# SPDX-License-Identifier: GPL-3.0-only
#
# kubepkg is free software: you can redistribute it and/or modify it under
# the terms of the GNU General Public License version 3, as published by the
# Free Software Foundation.
#
# kubepkg is distributed in the hope that it will be useful, but WITHOUT
# ANY WARRANTY; without even the implied warranties of MERCHANTABILITY,
# SATISFACTORY QUALITY, or FITNESS FOR A PARTICULAR PURPOSE. See the GNU
# General Public License for more details.
#
# You should have received a copy of the GNU General Public License along with
# kubepkg. If not, see <http://www.gnu.org/licenses/>.

"""Configuration utilities for kubepkg."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from kubepkg.core.exceptions import ConfigError

DEFAULT_CONFIG: dict[str, Any] = {
    "paths": {
        "runs_root": "~/.cache/kubepkg/runs",
    },
    "defaults": {
        "arches": ["amd64", "arm", "arm64", "ppc64le", "s390x"],
        "distros": ["bionic", "xenial", "trusty", "stretch", "jessie", "sid"],
        "revision": "00",
        "source_root": ".",
        "output_dir": "bin",
    },
    "urls": {
        "release_download_link_base": "https://dl.k8s.io",
        "stable_version": "https://dl.k8s.io/release/stable.txt",
        "latest_version": "https://dl.k8s.io/release/latest.txt",
        "ci_latest_build": "https://dl.k8s.io/ci-cross/latest.txt",
        "ci_download_link_base": "https://dl.k8s.io/ci-cross",
    },
    "behavior": {"keep_tmp": False},
}


def get_config_path() -> Path:
    """Return the path to the config file."""
    return Path.home() / ".config" / "kubepkg" / "config.yaml"


def ensure_config_exists() -> None:
    """Create the config file with defaults if it does not exist."""
    cfg_path = get_config_path()
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    if not cfg_path.exists():
        cfg_path.write_text(yaml.safe_dump(DEFAULT_CONFIG))


def load_config() -> dict[str, Any]:
    """Load configuration from disk and merge with defaults.

    Each top-level section of the on-disk file is merged over the matching
    section of DEFAULT_CONFIG, so a file only needs the keys it overrides.

    Raises:
        ConfigError: If the config file is not valid YAML or is not a mapping.
    """
    ensure_config_exists()
    cfg_path = get_config_path()
    try:
        raw = yaml.safe_load(cfg_path.read_text()) or {}
    except yaml.YAMLError as e:
        raise ConfigError(message=f"Invalid config file {cfg_path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(message=f"Config file {cfg_path} must contain a mapping")

    merged: dict[str, Any] = {}
    for key, val in DEFAULT_CONFIG.items():
        if key in raw and isinstance(raw[key], dict):
            merged[key] = {**val, **raw[key]}
        elif isinstance(val, dict):
            merged[key] = dict(val)
        else:
            merged[key] = raw.get(key, val)

    for pkey, pval in merged.get("paths", {}).items():
        merged["paths"][pkey] = str(Path(pval).expanduser())

    normalize_config(merged)
    return merged


def _as_name_list(section: str, key: str, value: Any) -> list[str]:
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return value
    raise ConfigError(message=f"{section}.{key} must be a list of names, got {value!r}")


def normalize_config(cfg: dict[str, Any]) -> None:
    """Check value types in place.

    ``defaults.arches`` and ``defaults.distros`` accept either a YAML list or
    a comma-separated string. The revision must be a string, since an unquoted
    ``00`` loads as the integer 0. Paths and URLs must be strings and
    ``behavior.keep_tmp`` a YAML boolean.

    Raises:
        ConfigError: If a value has the wrong type.
    """
    defaults = cfg.get("defaults", {})
    for key in ("arches", "distros"):
        if key in defaults:
            defaults[key] = _as_name_list("defaults", key, defaults[key])
    if "revision" in defaults:
        revision = defaults["revision"]
        if not isinstance(revision, str):
            raise ConfigError(message=f"defaults.revision must be a quoted string, got {revision!r}")
    for key in ("source_root", "output_dir"):
        if key in defaults and not isinstance(defaults[key], str):
            raise ConfigError(message=f"defaults.{key} must be a path string, got {defaults[key]!r}")

    keep_tmp = cfg.get("behavior", {}).get("keep_tmp", False)
    if not isinstance(keep_tmp, bool):
        raise ConfigError(message=f"behavior.keep_tmp must be true or false, got {keep_tmp!r}")

    for key, url in cfg.get("urls", {}).items():
        if not isinstance(url, str):
            raise ConfigError(message=f"urls.{key} must be a string, got {url!r}")


def write_config(data: dict[str, Any]) -> None:
    """Write the provided data as YAML to the config path."""
    cfg_path = get_config_path()
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    cfg_path.write_text(yaml.safe_dump(data))


if __name__ == "__main__":
    print(json.dumps(load_config(), indent=2))
