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

"""Build matrix definition and traversal.

The matrix is a static list of packages, each with the distributions it is
built for and one VersionSpec per release channel. Walking the matrix expands
it, for every configured architecture, into fully resolved BuildJobs:

    for arch in arches:
        for package in matrix:
            for distro in package.distros:
                for spec in package.versions:
                    yield BuildJob(...)

The order is fixed so that build logs and artifact directories come out in
the same order on every run.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from kubepkg.core.exceptions import ConfigError
from kubepkg.target.arch import to_deb_arch
from kubepkg.upstream.versions import (
    DeferredLinkBase,
    DeferredVersion,
    LinkBaseKind,
    LinkBaseSource,
    LiteralLinkBase,
    LiteralVersion,
    VersionResolverId,
    VersionSource,
)

if TYPE_CHECKING:
    from kubepkg.core.context import BuildOptions
    from kubepkg.upstream.versions import VersionResolver

MINIMUM_STABLE_KUBERNETES_VERSION = "1.12.0"
MINIMUM_CNI_VERSION = "0.7.5"

KUBECTL = "kubectl"
KUBELET = "kubelet"
KUBERNETES_CNI = "kubernetes-cni"
KUBEADM = "kubeadm"
CRI_TOOLS = "cri-tools"

# Matrix order; also the build order within one architecture.
PACKAGES: tuple[str, ...] = (KUBECTL, KUBELET, KUBERNETES_CNI, KUBEADM, CRI_TOOLS)

KUBEADM_DEPENDENCIES = ",".join([
    f"kubelet (>= {MINIMUM_STABLE_KUBERNETES_VERSION})",
    f"kubectl (>= {MINIMUM_STABLE_KUBERNETES_VERSION})",
    f"kubernetes-cni (>= {MINIMUM_CNI_VERSION})",
    f"cri-tools (>= {MINIMUM_STABLE_KUBERNETES_VERSION})",
    "${misc:Depends}",
])

KUBELET_DEPENDENCIES = ",".join([
    f"kubernetes-cni (>= {MINIMUM_CNI_VERSION})",
])

PACKAGE_DEPENDENCIES: dict[str, str] = {
    KUBEADM: KUBEADM_DEPENDENCIES,
    KUBELET: KUBELET_DEPENDENCIES,
}


class Channel(str, Enum):
    """Release maturity tier; also the first directory level of the output."""

    STABLE = "stable"
    UNSTABLE = "unstable"
    NIGHTLY = "nightly"


@dataclass(frozen=True)
class VersionSpec:
    """How one channel of a package obtains its version and download base."""

    version: VersionSource
    channel: Channel
    revision: str = "00"
    link_base: LinkBaseSource = field(default_factory=LiteralLinkBase)


@dataclass(frozen=True)
class PackageBuild:
    """One row of the build matrix."""

    package: str
    distros: tuple[str, ...]
    versions: tuple[VersionSpec, ...]


@dataclass(frozen=True)
class BuildJob:
    """A fully resolved unit of work: one package, distro, arch and version."""

    package: str
    distro_name: str
    arch: str
    deb_arch: str
    version: str
    revision: str
    channel: Channel
    download_link_base: str = ""
    dependencies: str = ""

    @property
    def deb_filename(self) -> str:
        """Name dpkg-buildpackage gives the binary package."""
        return f"{self.package}_{self.version}-{self.revision}_{self.deb_arch}.deb"

    @property
    def label(self) -> str:
        return f"{self.package} {self.version}-{self.revision} {self.distro_name}/{self.deb_arch} ({self.channel.value})"

    def template_context(self) -> dict[str, Any]:
        """Values available to the package template files."""
        return {
            "package": self.package,
            "distro_name": self.distro_name,
            "arch": self.arch,
            "deb_arch": self.deb_arch,
            "version": self.version,
            "revision": self.revision,
            "channel": self.channel.value,
            "download_link_base": self.download_link_base,
            "dependencies": self.dependencies,
        }


BuildMatrix = list[PackageBuild]


def dependencies_for(package: str) -> str:
    """Return the literal Depends string for a package, or an empty string."""
    return PACKAGE_DEPENDENCIES.get(package, "")


def _kube_versions(revision: str) -> tuple[VersionSpec, ...]:
    release = DeferredLinkBase(LinkBaseKind.RELEASE)
    return (
        VersionSpec(DeferredVersion(VersionResolverId.STABLE), Channel.STABLE, revision, release),
        VersionSpec(DeferredVersion(VersionResolverId.LATEST), Channel.UNSTABLE, revision, release),
        VersionSpec(
            DeferredVersion(VersionResolverId.CI), Channel.NIGHTLY, revision, DeferredLinkBase(LinkBaseKind.CI)
        ),
    )


def _every_channel(version: VersionSource, revision: str) -> tuple[VersionSpec, ...]:
    return tuple(VersionSpec(version, channel, revision) for channel in Channel)


def default_matrix(options: BuildOptions) -> BuildMatrix:
    """Matrix covering every package on the stable, unstable and nightly channels."""
    kube = _kube_versions(options.revision)
    rows = [
        PackageBuild(KUBECTL, options.distros, kube),
        PackageBuild(KUBELET, options.distros, kube),
        PackageBuild(
            KUBERNETES_CNI, options.distros, _every_channel(LiteralVersion(MINIMUM_CNI_VERSION), options.revision)
        ),
        PackageBuild(KUBEADM, options.distros, kube),
        PackageBuild(
            CRI_TOOLS,
            options.distros,
            _every_channel(DeferredVersion(VersionResolverId.CRI_TOOLS), options.revision),
        ),
    ]
    return select_packages(rows, options.packages)


def pinned_matrix(options: BuildOptions) -> BuildMatrix:
    """Matrix for one explicit Kubernetes version, on the stable channel only.

    cri-tools still follows the current stable Kubernetes minor.
    """
    pinned = VersionSpec(
        LiteralVersion(options.kube_version.removeprefix("v")),
        Channel.STABLE,
        options.revision,
        DeferredLinkBase(LinkBaseKind.RELEASE),
    )
    rows = [
        PackageBuild(KUBECTL, options.distros, (pinned,)),
        PackageBuild(KUBELET, options.distros, (pinned,)),
        PackageBuild(
            KUBERNETES_CNI,
            options.distros,
            (VersionSpec(LiteralVersion(MINIMUM_CNI_VERSION), Channel.STABLE, options.revision),),
        ),
        PackageBuild(KUBEADM, options.distros, (pinned,)),
        PackageBuild(
            CRI_TOOLS,
            options.distros,
            (VersionSpec(DeferredVersion(VersionResolverId.CRI_TOOLS), Channel.STABLE, options.revision),),
        ),
    ]
    return select_packages(rows, options.packages)


def matrix_for(options: BuildOptions) -> BuildMatrix:
    """Pick the pinned matrix when a version is given, else the channel matrix."""
    if options.kube_version:
        return pinned_matrix(options)
    return default_matrix(options)


def select_packages(matrix: BuildMatrix, packages: tuple[str, ...]) -> BuildMatrix:
    """Restrict the matrix to the named packages, keeping matrix order.

    Raises:
        ConfigError: If a requested package is not part of the matrix.
    """
    if not packages:
        return matrix
    known = {row.package for row in matrix}
    unknown = [p for p in packages if p not in known]
    if unknown:
        raise ConfigError(message=f"Unknown package(s): {', '.join(unknown)}; choose from {', '.join(PACKAGES)}")
    return [row for row in matrix if row.package in packages]


def iter_jobs(matrix: BuildMatrix, arches: tuple[str, ...], resolver: VersionResolver) -> Iterator[BuildJob]:
    """Yield resolved BuildJobs in walk order.

    Each VersionSpec is resolved when its job is reached; resolution errors
    propagate immediately and end the iteration.
    """
    for arch in arches:
        deb_arch = to_deb_arch(arch)
        for row in matrix:
            for distro in row.distros:
                for spec in row.versions:
                    version = resolver.resolve_version(spec.version)
                    link_base = resolver.resolve_link_base(spec.link_base, version)
                    yield BuildJob(
                        package=row.package,
                        distro_name=distro,
                        arch=arch,
                        deb_arch=deb_arch,
                        version=version,
                        revision=spec.revision,
                        channel=spec.channel,
                        download_link_base=link_base,
                        dependencies=dependencies_for(row.package),
                    )


def walk_builds(
    matrix: BuildMatrix,
    arches: tuple[str, ...],
    resolver: VersionResolver,
    callback: Callable[[BuildJob], Any],
) -> None:
    """Invoke callback for every job in walk order, stopping at the first error."""
    for job in iter_jobs(matrix, arches, resolver):
        callback(job)
