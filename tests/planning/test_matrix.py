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

"""Tests for kubepkg.planning.matrix module."""

from __future__ import annotations

from unittest import mock

import pytest
import responses

from kubepkg.core.context import BuildOptions
from kubepkg.core.exceptions import ConfigError, FetchError
from kubepkg.planning import matrix
from kubepkg.planning.matrix import BuildJob, Channel, PackageBuild, VersionSpec
from kubepkg.upstream.versions import (
    DeferredLinkBase,
    DeferredVersion,
    LinkBaseKind,
    LiteralLinkBase,
    LiteralVersion,
    VersionResolver,
    VersionResolverId,
)


def _job(**overrides: object) -> BuildJob:
    fields: dict[str, object] = {
        "package": "kubelet",
        "distro_name": "xenial",
        "arch": "arm",
        "deb_arch": "armhf",
        "version": "1.20.3",
        "revision": "00",
        "channel": Channel.STABLE,
        "download_link_base": "https://dl.k8s.io/v1.20.3",
        "dependencies": matrix.KUBELET_DEPENDENCIES,
    }
    fields.update(overrides)
    return BuildJob(**fields)  # type: ignore[arg-type]


class TestBuildJob:
    """Tests for BuildJob dataclass."""

    def test_deb_filename(self) -> None:
        assert _job().deb_filename == "kubelet_1.20.3-00_armhf.deb"

    def test_template_context_has_every_field(self) -> None:
        ctx = _job().template_context()

        assert ctx == {
            "package": "kubelet",
            "distro_name": "xenial",
            "arch": "arm",
            "deb_arch": "armhf",
            "version": "1.20.3",
            "revision": "00",
            "channel": "stable",
            "download_link_base": "https://dl.k8s.io/v1.20.3",
            "dependencies": "kubernetes-cni (>= 0.7.5)",
        }

    def test_is_immutable(self) -> None:
        job = _job()
        with pytest.raises(AttributeError):
            job.version = "1.0.0"  # type: ignore[misc]


class TestDependencies:
    """Tests for per-package dependency strings."""

    def test_kubeadm(self) -> None:
        assert matrix.dependencies_for("kubeadm") == (
            "kubelet (>= 1.12.0),kubectl (>= 1.12.0),kubernetes-cni (>= 0.7.5),"
            "cri-tools (>= 1.12.0),${misc:Depends}"
        )

    def test_kubelet_gets_its_own_set(self) -> None:
        assert matrix.dependencies_for("kubelet") == "kubernetes-cni (>= 0.7.5)"

    @pytest.mark.parametrize("package", ["kubectl", "kubernetes-cni", "cri-tools"])
    def test_others_are_empty(self, package: str) -> None:
        assert matrix.dependencies_for(package) == ""


class TestDefaultMatrix:
    """Tests for default_matrix function."""

    def test_packages_in_order(self) -> None:
        rows = matrix.default_matrix(BuildOptions())
        assert [r.package for r in rows] == list(matrix.PACKAGES)

    def test_every_package_has_three_channels(self) -> None:
        for row in matrix.default_matrix(BuildOptions()):
            assert [v.channel for v in row.versions] == [Channel.STABLE, Channel.UNSTABLE, Channel.NIGHTLY]

    def test_kube_packages_defer_to_resolvers(self) -> None:
        row = matrix.default_matrix(BuildOptions())[0]

        assert [v.version for v in row.versions] == [
            DeferredVersion(VersionResolverId.STABLE),
            DeferredVersion(VersionResolverId.LATEST),
            DeferredVersion(VersionResolverId.CI),
        ]
        assert [v.link_base for v in row.versions] == [
            DeferredLinkBase(LinkBaseKind.RELEASE),
            DeferredLinkBase(LinkBaseKind.RELEASE),
            DeferredLinkBase(LinkBaseKind.CI),
        ]

    def test_cni_is_literal(self) -> None:
        rows = {r.package: r for r in matrix.default_matrix(BuildOptions())}

        for spec in rows["kubernetes-cni"].versions:
            assert spec.version == LiteralVersion("0.7.5")
            assert spec.link_base == LiteralLinkBase("")

    def test_revision_and_distros_come_from_options(self) -> None:
        opts = BuildOptions(distros=("focal",), revision="01")

        for row in matrix.default_matrix(opts):
            assert row.distros == ("focal",)
            assert all(v.revision == "01" for v in row.versions)

    def test_package_subset(self) -> None:
        rows = matrix.default_matrix(BuildOptions(packages=("cri-tools", "kubectl")))
        assert [r.package for r in rows] == ["kubectl", "cri-tools"]

    def test_unknown_package_raises(self) -> None:
        with pytest.raises(ConfigError):
            matrix.default_matrix(BuildOptions(packages=("kube-proxy",)))


class TestPinnedMatrix:
    """Tests for pinned_matrix and matrix_for."""

    def test_stable_only(self) -> None:
        rows = matrix.pinned_matrix(BuildOptions(kube_version="1.19.4"))

        for row in rows:
            assert [v.channel for v in row.versions] == [Channel.STABLE]

    def test_kube_packages_use_pinned_version(self) -> None:
        rows = {r.package: r for r in matrix.pinned_matrix(BuildOptions(kube_version="v1.19.4"))}

        for package in ("kubectl", "kubelet", "kubeadm"):
            assert rows[package].versions[0].version == LiteralVersion("1.19.4")
        assert rows["kubernetes-cni"].versions[0].version == LiteralVersion("0.7.5")
        assert rows["cri-tools"].versions[0].version == DeferredVersion(VersionResolverId.CRI_TOOLS)

    def test_matrix_for_switches_on_kube_version(self) -> None:
        assert len(matrix.matrix_for(BuildOptions())[0].versions) == 3
        assert len(matrix.matrix_for(BuildOptions(kube_version="1.19.4"))[0].versions) == 1


class TestIterJobs:
    """Tests for iter_jobs and walk_builds."""

    def _matrix(self) -> list[PackageBuild]:
        specs = (
            VersionSpec(LiteralVersion("1.0.0"), Channel.STABLE),
            VersionSpec(LiteralVersion("1.1.0"), Channel.UNSTABLE),
        )
        return [
            PackageBuild("a", ("d1", "d2"), specs),
            PackageBuild("b", ("d1",), specs[:1]),
        ]

    def test_walk_order(self) -> None:
        jobs = list(matrix.iter_jobs(self._matrix(), ("amd64", "arm"), VersionResolver()))

        assert [(j.arch, j.package, j.distro_name, j.version) for j in jobs] == [
            ("amd64", "a", "d1", "1.0.0"),
            ("amd64", "a", "d1", "1.1.0"),
            ("amd64", "a", "d2", "1.0.0"),
            ("amd64", "a", "d2", "1.1.0"),
            ("amd64", "b", "d1", "1.0.0"),
            ("arm", "a", "d1", "1.0.0"),
            ("arm", "a", "d1", "1.1.0"),
            ("arm", "a", "d2", "1.0.0"),
            ("arm", "a", "d2", "1.1.0"),
            ("arm", "b", "d1", "1.0.0"),
        ]

    def test_maps_deb_arch(self) -> None:
        jobs = list(matrix.iter_jobs(self._matrix(), ("ppc64le",), VersionResolver()))
        assert {j.deb_arch for j in jobs} == {"ppc64el"}

    @responses.activate
    def test_resolves_deferred_specs(self) -> None:
        responses.add(responses.GET, "https://dl.k8s.io/release/stable.txt", body="v1.20.3\n")
        rows = [
            PackageBuild(
                "kubeadm",
                ("xenial",),
                (
                    VersionSpec(
                        DeferredVersion(VersionResolverId.STABLE),
                        Channel.STABLE,
                        "00",
                        DeferredLinkBase(LinkBaseKind.RELEASE),
                    ),
                ),
            )
        ]

        (job,) = matrix.iter_jobs(rows, ("amd64",), VersionResolver())

        assert job.version == "1.20.3"
        assert job.download_link_base == "https://dl.k8s.io/v1.20.3"
        assert job.dependencies == matrix.KUBEADM_DEPENDENCIES

    @responses.activate
    def test_resolution_failure_stops_walk(self) -> None:
        responses.add(responses.GET, "https://dl.k8s.io/release/stable.txt", status=500)
        rows = [
            PackageBuild("a", ("d1",), (VersionSpec(LiteralVersion("1.0.0"), Channel.STABLE),)),
            PackageBuild("b", ("d1",), (VersionSpec(DeferredVersion(VersionResolverId.STABLE), Channel.STABLE),)),
        ]
        callback = mock.Mock()

        with pytest.raises(FetchError):
            matrix.walk_builds(rows, ("amd64",), VersionResolver(), callback)

        assert callback.call_count == 1

    def test_callback_error_stops_walk(self) -> None:
        callback = mock.Mock(side_effect=[None, RuntimeError("boom")])

        with pytest.raises(RuntimeError, match="boom"):
            matrix.walk_builds(self._matrix(), ("amd64",), VersionResolver(), callback)

        assert callback.call_count == 2
