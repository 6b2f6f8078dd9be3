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

"""Mapping from Kubernetes (Go) architecture names to Debian architectures."""

from __future__ import annotations

# Only the names that differ are listed; everything else passes through.
GO_TO_DEB_ARCH: dict[str, str] = {
    "arm": "armhf",
    "ppc64le": "ppc64el",
}


def to_deb_arch(arch: str) -> str:
    """Return the dpkg architecture name for a Kubernetes architecture.

    The mapping is total: unknown names are returned unchanged.
    """
    return GO_TO_DEB_ARCH.get(arch, arch)


if __name__ == "__main__":
    for name in ("amd64", "arm", "arm64", "ppc64le", "s390x"):
        print(f"{name} -> {to_deb_arch(name)}")
