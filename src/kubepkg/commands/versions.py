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

"""Implementation of `kubepkg versions`."""

from __future__ import annotations

import sys

from kubepkg.build.errors import phase_error
from kubepkg.core.config import load_config
from kubepkg.core.context import build_options
from kubepkg.core.exceptions import EXIT_SUCCESS, ConfigError, KubepkgError
from kubepkg.core.run import RunContext, activity
from kubepkg.core.spinner import activity_spinner
from kubepkg.upstream.versions import VersionResolver


def versions() -> None:
    """Print the versions each release channel currently resolves to."""
    try:
        cfg = load_config()
    except ConfigError as e:
        activity("versions", f"ERROR: {e.message}")
        sys.exit(e.exit_code)

    with RunContext("versions", cfg) as run:
        try:
            options = build_options(cfg)
            with VersionResolver(options.endpoints, options.release_download_link_base) as resolver:
                lookups = {
                    "stable": resolver.stable_kube_version,
                    "unstable": resolver.latest_kube_version,
                    "nightly": resolver.ci_kube_version,
                    "cri-tools": resolver.cri_tools_version,
                }
                resolved: dict[str, str] = {}
                with activity_spinner("versions", "Fetching version manifests") as spin:
                    for name, lookup in lookups.items():
                        spin.update(f"Resolving {name}")
                        resolved[name] = lookup()
        except KubepkgError as e:
            sys.exit(phase_error(run, "versions", e.message, e.exit_code, error_type=type(e).__name__))

        for name, value in resolved.items():
            activity("versions", f"{name}: {value}")
        run.log_event({"event": "versions.resolved", **resolved})
        run.write_summary(status="success", exit_code=EXIT_SUCCESS, versions=resolved)

    sys.exit(EXIT_SUCCESS)
