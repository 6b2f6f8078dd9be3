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

"""Implementation of `kubepkg build`.

Builds every package of the matrix for every configured architecture and
distribution, placing the results under bin/<channel>/<distro>/.

Exit codes:
  0 - Success
  1 - Configuration/usage error
  2 - Required tool missing
  3 - Version manifest fetch failed
  4 - Version string could not be parsed
  5 - Template error
  6 - Filesystem error
  7 - dpkg-buildpackage failed
"""

from __future__ import annotations

import sys

import typer

from kubepkg.build.errors import phase_error
from kubepkg.build.runner import build_all
from kubepkg.build.tools import check_required_tools, get_missing_tools_message
from kubepkg.core.config import load_config
from kubepkg.core.context import build_options
from kubepkg.core.exceptions import EXIT_SUCCESS, ConfigError, KubepkgError, ToolMissingError
from kubepkg.core.run import RunContext, activity
from kubepkg.planning.matrix import matrix_for
from kubepkg.upstream.versions import VersionResolver


def build(
    arch: str | None = typer.Option(None, "--arch", help="Comma-separated architectures to build for"),
    distros: str | None = typer.Option(None, help="Comma-separated distributions to build for"),
    kube_version: str = typer.Option("", help="Build only this Kubernetes version, on the stable channel"),
    revision: str | None = typer.Option(None, help="Debian package revision"),
    release_download_link_base: str | None = typer.Option(None, help="Base URL for release binaries"),
    keep_tmp: bool = typer.Option(False, "--keep-tmp", help="Keep staging directories after each build"),
    source_root: str | None = typer.Option(None, help="Directory holding <distro>/<package> template trees"),
    output_dir: str | None = typer.Option(None, help="Root of the <channel>/<distro> output tree"),
    packages: str | None = typer.Option(None, help="Comma-separated subset of packages to build"),
) -> None:
    """Build Debian packages for the Kubernetes components."""
    try:
        cfg = load_config()
    except ConfigError as e:
        activity("build", f"ERROR: {e.message}")
        sys.exit(e.exit_code)

    with RunContext("build", cfg) as run:
        try:
            options = build_options(
                cfg,
                arches=arch,
                distros=distros,
                kube_version=kube_version,
                revision=revision,
                release_download_link_base=release_download_link_base,
                keep_tmp=keep_tmp or None,
                source_root=source_root,
                output_dir=output_dir,
                packages=packages,
            )

            tool_check = check_required_tools()
            if not tool_check.is_complete():
                raise ToolMissingError(
                    message=get_missing_tools_message(tool_check.missing),
                    missing=tool_check.missing,
                )

            matrix = matrix_for(options)
            run.log_event({
                "event": "build.start",
                "arches": list(options.arches),
                "distros": list(options.distros),
                "packages": [row.package for row in matrix],
                "kube_version": options.kube_version,
                "revision": options.revision,
                "source_root": str(options.source_root),
                "output_dir": str(options.output_dir),
                "keep_tmp": options.keep_tmp,
            })

            with VersionResolver(options.endpoints, options.release_download_link_base) as resolver:
                results = build_all(matrix, options, resolver, run=run)
        except KubepkgError as e:
            sys.exit(phase_error(run, "build", e.message, e.exit_code, error_type=type(e).__name__))

        activity("report", f"Built {len(results)} package(s) into {options.output_dir}")
        run.write_summary(status="success", exit_code=EXIT_SUCCESS, built=len(results))

    sys.exit(EXIT_SUCCESS)
