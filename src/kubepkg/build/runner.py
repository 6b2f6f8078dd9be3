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

"""Package build runner.

Drives one BuildJob through render -> dpkg-buildpackage -> placement, and the
whole matrix one job at a time. Jobs run strictly in sequence; the first
error ends the run.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from kubepkg.build.dpkg import run_dpkg_buildpackage
from kubepkg.build.errors import log_phase_event
from kubepkg.build.placement import place_artifact
from kubepkg.build.render import render_tree, resolve_source_dir, staging_directory
from kubepkg.planning.matrix import BuildJob, BuildMatrix, walk_builds

if TYPE_CHECKING:
    from kubepkg.core.context import BuildOptions
    from kubepkg.core.run import RunContext
    from kubepkg.upstream.versions import VersionResolver


@dataclass
class JobResult:
    """Outcome of one successful job."""

    job: BuildJob
    artifact: Path
    log_path: Path | None = None
    duration_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "package": self.job.package,
            "distro": self.job.distro_name,
            "arch": self.job.arch,
            "version": self.job.version,
            "revision": self.job.revision,
            "channel": self.job.channel.value,
            "artifact": str(self.artifact),
            "log_path": str(self.log_path) if self.log_path else "",
            "duration_seconds": self.duration_seconds,
        }


def job_log_name(job: BuildJob) -> str:
    return f"{job.deb_filename.removesuffix('.deb')}_{job.distro_name}_{job.channel.value}"


def run_job(job: BuildJob, options: BuildOptions, run: RunContext | None = None) -> JobResult:
    """Render, package and place a single job.

    The staged tree lives at ``<workspace>/<package>`` so every file
    dpkg-buildpackage writes next to it stays inside the workspace and is
    removed with it.
    """
    started = time.monotonic()
    log_phase_event(run, "build", f"Building {job.label}", "job.start", **job.template_context())

    src = resolve_source_dir(options.source_root, job.distro_name, job.package)
    log_path = run.job_log_path(job_log_name(job)) if run is not None else None

    with staging_directory(keep=options.keep_tmp) as workspace:
        staged = workspace / job.package
        rendered = render_tree(src, staged, job.template_context())
        if run is not None:
            run.log_event({"event": "job.rendered", "source": str(src), "staging": str(staged), "files": len(rendered)})

        run_dpkg_buildpackage(staged, job.deb_arch, log_path=log_path)
        artifact = place_artifact(workspace / job.deb_filename, options.output_dir, job.channel.value, job.distro_name)

    duration = round(time.monotonic() - started, 2)
    log_phase_event(run, "build", f"Placed {artifact}", "job.placed", path=str(artifact), duration_seconds=duration)
    result = JobResult(job=job, artifact=artifact, log_path=log_path, duration_seconds=duration)
    if run is not None:
        run.record_artifact(result.to_dict())
    return result


JobRunner = Callable[[BuildJob, "BuildOptions", "RunContext | None"], JobResult]


def build_all(
    matrix: BuildMatrix,
    options: BuildOptions,
    resolver: VersionResolver,
    run: RunContext | None = None,
    runner: JobRunner = run_job,
) -> list[JobResult]:
    """Build every job in the matrix, in walk order.

    Returns:
        One JobResult per job. Any error propagates and ends the walk.
    """
    results: list[JobResult] = []

    def _build(job: BuildJob) -> None:
        results.append(runner(job, options, run))

    walk_builds(matrix, options.arches, resolver, _build)
    return results
