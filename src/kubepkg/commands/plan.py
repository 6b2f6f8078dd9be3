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

"""Implementation of `kubepkg plan`.

Resolves versions and lists every job `kubepkg build` would run, in build
order, without rendering or packaging anything.
"""

from __future__ import annotations

import sys

import typer

from kubepkg.build.errors import phase_error
from kubepkg.build.placement import output_dir_for
from kubepkg.core.config import load_config
from kubepkg.core.context import build_options
from kubepkg.core.exceptions import EXIT_SUCCESS, ConfigError, KubepkgError
from kubepkg.core.run import RunContext, activity
from kubepkg.planning.matrix import iter_jobs, matrix_for
from kubepkg.upstream.versions import VersionResolver


def plan(
    arch: str | None = typer.Option(None, "--arch", help="Comma-separated architectures to build for"),
    distros: str | None = typer.Option(None, help="Comma-separated distributions to build for"),
    kube_version: str = typer.Option("", help="Plan only this Kubernetes version, on the stable channel"),
    revision: str | None = typer.Option(None, help="Debian package revision"),
    release_download_link_base: str | None = typer.Option(None, help="Base URL for release binaries"),
    output_dir: str | None = typer.Option(None, help="Root of the <channel>/<distro> output tree"),
    packages: str | None = typer.Option(None, help="Comma-separated subset of packages"),
) -> None:
    """Show the build jobs and output paths without building."""
    try:
        cfg = load_config()
    except ConfigError as e:
        activity("plan", f"ERROR: {e.message}")
        sys.exit(e.exit_code)

    with RunContext("plan", cfg) as run:
        jobs: list[dict[str, str]] = []
        try:
            options = build_options(
                cfg,
                arches=arch,
                distros=distros,
                kube_version=kube_version,
                revision=revision,
                release_download_link_base=release_download_link_base,
                output_dir=output_dir,
                packages=packages,
            )
            with VersionResolver(options.endpoints, options.release_download_link_base) as resolver:
                for job in iter_jobs(matrix_for(options), options.arches, resolver):
                    dest = output_dir_for(options.output_dir, job.channel.value, job.distro_name) / job.deb_filename
                    activity("plan", f"{job.label} -> {dest}")
                    entry = {**job.template_context(), "output": str(dest)}
                    run.log_event({"event": "plan.job", **entry})
                    jobs.append(entry)
        except KubepkgError as e:
            sys.exit(phase_error(run, "plan", e.message, e.exit_code, error_type=type(e).__name__))

        activity("plan", f"{len(jobs)} job(s)")
        run.write_summary(status="success", exit_code=EXIT_SUCCESS, jobs=jobs)

    sys.exit(EXIT_SUCCESS)
