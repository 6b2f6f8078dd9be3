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

"""dpkg-buildpackage wrapper.

Builds binary-only, unsigned packages for a target architecture from a staged
source tree. dpkg-buildpackage writes its outputs (.deb, .changes,
.buildinfo) into the parent of the source tree.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from kubepkg.core.exceptions import ProcessError

logger = logging.getLogger(__name__)

DPKG_BUILDPACKAGE = "dpkg-buildpackage"


def build_dpkg_command(deb_arch: str) -> list[str]:
    """Return the dpkg-buildpackage command line for deb_arch."""
    return [DPKG_BUILDPACKAGE, "-us", "-uc", "-b", f"-a{deb_arch}"]


def run_dpkg_buildpackage(source_dir: Path, deb_arch: str, log_path: Path | None = None) -> None:
    """Run dpkg-buildpackage in source_dir.

    Args:
        source_dir: Staged package tree containing debian/.
        deb_arch: Debian architecture to build for.
        log_path: File receiving stdout and stderr; inherited when None.

    Raises:
        ProcessError: If the command cannot be started or exits non-zero.
    """
    cmd = build_dpkg_command(deb_arch)
    logger.debug("Running %s in %s", " ".join(cmd), source_dir)
    try:
        if log_path is None:
            result = subprocess.run(cmd, cwd=source_dir, check=False)
        else:
            with log_path.open("w", encoding="utf-8") as log_f:
                result = subprocess.run(cmd, cwd=source_dir, stdout=log_f, stderr=subprocess.STDOUT, check=False)
    except OSError as e:
        raise ProcessError(message=f"Could not run {DPKG_BUILDPACKAGE}: {e}", command=cmd) from e

    if result.returncode != 0:
        hint = f"; see {log_path}" if log_path is not None else ""
        raise ProcessError(
            message=f"{DPKG_BUILDPACKAGE} exited with code {result.returncode}{hint}",
            command=cmd,
            returncode=result.returncode,
        )
