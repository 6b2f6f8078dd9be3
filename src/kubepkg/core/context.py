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

"""Immutable option objects for kubepkg runs.

The on-disk config supplies defaults, CLI flags override them, and the result
is frozen into a BuildOptions that is passed down explicitly:

- VersionEndpoints: Manifest URLs used by the version resolver
- BuildOptions: Everything the matrix walker and the build pipeline need
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from kubepkg.core.config import normalize_config
from kubepkg.core.exceptions import ConfigError


@dataclass(frozen=True)
class VersionEndpoints:
    """Immutable set of URLs consulted when resolving versions.

    Attributes:
        stable_version: Plaintext manifest holding the current stable release.
        latest_version: Plaintext manifest holding the latest (pre-)release.
        ci_latest_build: Plaintext manifest holding the latest CI build id.
        ci_download_link_base: Base URL under which CI builds are published.
    """

    stable_version: str = "https://dl.k8s.io/release/stable.txt"
    latest_version: str = "https://dl.k8s.io/release/latest.txt"
    ci_latest_build: str = "https://dl.k8s.io/ci-cross/latest.txt"
    ci_download_link_base: str = "https://dl.k8s.io/ci-cross"


@dataclass(frozen=True)
class BuildOptions:
    """Immutable configuration for one kubepkg invocation.

    Attributes:
        arches: Architectures to build for, in walk order.
        distros: Distribution codenames to build for, in walk order.
        kube_version: Pinned Kubernetes version, or empty to resolve channels.
        revision: Debian package revision.
        release_download_link_base: Base URL for release binaries.
        keep_tmp: Keep staging directories after each build.
        source_root: Directory holding the <distro>/<package> template trees.
        output_dir: Root of the bin/<channel>/<distro> output tree.
        packages: Subset of packages to build; empty means all.
        endpoints: Version manifest URLs.
    """

    arches: tuple[str, ...] = ("amd64", "arm", "arm64", "ppc64le", "s390x")
    distros: tuple[str, ...] = ("bionic", "xenial", "trusty", "stretch", "jessie", "sid")
    kube_version: str = ""
    revision: str = "00"
    release_download_link_base: str = "https://dl.k8s.io"
    keep_tmp: bool = False
    source_root: Path = Path(".")
    output_dir: Path = Path("bin")
    packages: tuple[str, ...] = ()
    endpoints: VersionEndpoints = field(default_factory=VersionEndpoints)

    def __post_init__(self) -> None:
        if not self.arches:
            raise ConfigError(message="At least one architecture is required")
        if not self.distros:
            raise ConfigError(message="At least one distribution is required")
        if not self.revision:
            raise ConfigError(message="Package revision must not be empty")


def split_csv(value: str | None) -> tuple[str, ...]:
    """Split a comma-separated CLI value, dropping blanks."""
    if not value:
        return ()
    return tuple(item.strip() for item in value.split(",") if item.strip())


def build_options(
    cfg: Mapping[str, Any],
    *,
    arches: str | None = None,
    distros: str | None = None,
    kube_version: str | None = None,
    revision: str | None = None,
    release_download_link_base: str | None = None,
    keep_tmp: bool | None = None,
    source_root: str | None = None,
    output_dir: str | None = None,
    packages: str | None = None,
) -> BuildOptions:
    """Merge CLI overrides over the loaded config into a BuildOptions.

    Any override left as None falls back to the config value. The config is
    type-checked first, so it may come straight from YAML.

    Raises:
        ConfigError: If the merged values are unusable.
    """
    cfg = {key: dict(val) if isinstance(val, Mapping) else val for key, val in cfg.items()}
    normalize_config(cfg)
    defaults: Mapping[str, Any] = cfg.get("defaults", {})
    urls: Mapping[str, Any] = cfg.get("urls", {})
    behavior: Mapping[str, Any] = cfg.get("behavior", {})

    endpoints = VersionEndpoints(
        stable_version=urls.get("stable_version", VersionEndpoints.stable_version),
        latest_version=urls.get("latest_version", VersionEndpoints.latest_version),
        ci_latest_build=urls.get("ci_latest_build", VersionEndpoints.ci_latest_build),
        ci_download_link_base=urls.get("ci_download_link_base", VersionEndpoints.ci_download_link_base),
    )

    return BuildOptions(
        arches=split_csv(arches) if arches is not None else tuple(defaults.get("arches", BuildOptions.arches)),
        distros=split_csv(distros) if distros is not None else tuple(defaults.get("distros", BuildOptions.distros)),
        kube_version=(kube_version or "").strip(),
        revision=revision if revision is not None else str(defaults.get("revision", BuildOptions.revision)),
        release_download_link_base=(
            release_download_link_base
            or urls.get("release_download_link_base", BuildOptions.release_download_link_base)
        ).rstrip("/"),
        keep_tmp=keep_tmp if keep_tmp is not None else behavior.get("keep_tmp", False),
        source_root=Path(source_root or defaults.get("source_root", ".")).expanduser(),
        output_dir=Path(output_dir or defaults.get("output_dir", "bin")).expanduser(),
        packages=split_csv(packages),
        endpoints=endpoints,
    )
