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

"""Kubernetes version and download-location resolution.

Versions are published as one-line plaintext manifests on dl.k8s.io:

    release/stable.txt     -> v1.20.3
    release/latest.txt     -> v1.21.0-beta.0
    ci-cross/latest.txt    -> v1.21.0-alpha.0.123+abcdef

A build matrix refers to versions and download bases either literally or by
naming the resolver that produces them. VersionResolver turns those
references into plain strings, fetching each manifest at most once per run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

import requests
import semver

from kubepkg.core.context import VersionEndpoints
from kubepkg.core.exceptions import FetchError, ParseError

logger = logging.getLogger(__name__)


class VersionResolverId(str, Enum):
    """Named version resolvers a matrix entry may defer to."""

    STABLE = "stable"
    LATEST = "latest"
    CI = "ci"
    CRI_TOOLS = "cri-tools"


class LinkBaseKind(str, Enum):
    """Named download-base resolvers a matrix entry may defer to."""

    RELEASE = "release"
    CI = "ci"


@dataclass(frozen=True)
class LiteralVersion:
    value: str


@dataclass(frozen=True)
class DeferredVersion:
    resolver: VersionResolverId


@dataclass(frozen=True)
class LiteralLinkBase:
    value: str = ""


@dataclass(frozen=True)
class DeferredLinkBase:
    kind: LinkBaseKind


VersionSource = LiteralVersion | DeferredVersion
LinkBaseSource = LiteralLinkBase | DeferredLinkBase


def clean_version_text(text: str) -> str:
    """Strip surrounding whitespace and a leading ``v`` from a manifest body."""
    return text.strip().removeprefix("v")


def fetch_version_from_url(url: str, session: requests.Session, timeout: int = 30) -> str:
    """Fetch a plaintext version manifest and return the bare version.

    Raises:
        FetchError: On connection failure or a non-success HTTP status.
    """
    try:
        resp = session.get(url, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as e:
        raise FetchError(message=f"Failed to fetch {url}: {e}", url=url) from e
    version = clean_version_text(resp.text)
    if not version:
        raise FetchError(message=f"Empty version manifest at {url}", url=url)
    logger.debug("Fetched %s -> %s", url, version)
    return version


def ci_version_from_build(build: str) -> str:
    """Turn a CI build id into a package version.

    Only the first ``+`` (the build-metadata separator) is replaced, e.g.
    ``1.21.0-alpha.0.123+abcdef`` becomes ``1.21.0-alpha.0.123-abcdef``.
    """
    return build.replace("+", "-", 1)


def minor_zero_version(kube_version: str) -> str:
    """Return ``<major>.<minor>.0`` for a SemVer 2.0 version string.

    Pre-release and build suffixes are accepted and dropped.

    Raises:
        ParseError: If the value is not a valid semantic version.
    """
    try:
        parsed = semver.Version.parse(kube_version)
    except (ValueError, TypeError) as e:
        raise ParseError(message=f"Invalid semantic version: {kube_version!r}", value=kube_version) from e
    return f"{parsed.major}.{parsed.minor}.0"


class VersionResolver:
    """Resolves version and download-base references for a single run."""

    def __init__(
        self,
        endpoints: VersionEndpoints | None = None,
        release_download_link_base: str = "https://dl.k8s.io",
        session: requests.Session | None = None,
        timeout: int = 30,
    ) -> None:
        self.endpoints = endpoints or VersionEndpoints()
        self.release_download_link_base = release_download_link_base.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self._fetched: dict[str, str] = {}

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> VersionResolver:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _fetch(self, url: str) -> str:
        if url not in self._fetched:
            self._fetched[url] = fetch_version_from_url(url, self.session, timeout=self.timeout)
        return self._fetched[url]

    def stable_kube_version(self) -> str:
        return self._fetch(self.endpoints.stable_version)

    def latest_kube_version(self) -> str:
        return self._fetch(self.endpoints.latest_version)

    def latest_ci_build(self) -> str:
        """Return the raw latest CI build id, build metadata included."""
        return self._fetch(self.endpoints.ci_latest_build)

    def ci_kube_version(self) -> str:
        return ci_version_from_build(self.latest_ci_build())

    def cri_tools_version(self) -> str:
        """cri-tools is released per Kubernetes minor, always as ``.0``."""
        return minor_zero_version(self.stable_kube_version())

    def resolve_version(self, source: VersionSource) -> str:
        """Turn a literal or deferred version reference into a version string."""
        if isinstance(source, LiteralVersion):
            return source.value
        resolvers = {
            VersionResolverId.STABLE: self.stable_kube_version,
            VersionResolverId.LATEST: self.latest_kube_version,
            VersionResolverId.CI: self.ci_kube_version,
            VersionResolverId.CRI_TOOLS: self.cri_tools_version,
        }
        return resolvers[source.resolver]()

    def resolve_link_base(self, source: LinkBaseSource, version: str) -> str:
        """Turn a literal or deferred download-base reference into a URL.

        Release bases depend only on the version. The CI base points at the
        latest CI build, so it keeps the raw build id including its ``+``.
        """
        if isinstance(source, LiteralLinkBase):
            return source.value
        if source.kind is LinkBaseKind.RELEASE:
            return f"{self.release_download_link_base}/v{version}"
        ci_base = self.endpoints.ci_download_link_base.rstrip("/")
        return f"{ci_base}/v{self.latest_ci_build()}"
