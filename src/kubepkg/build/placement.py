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

"""Placement of built packages into the bin/<channel>/<distro> tree."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from kubepkg.core.exceptions import FilesystemError

logger = logging.getLogger(__name__)


def output_dir_for(output_root: Path, channel: str, distro: str) -> Path:
    return output_root / channel / distro


def place_artifact(artifact: Path, output_root: Path, channel: str, distro: str) -> Path:
    """Move a built package to ``<output_root>/<channel>/<distro>/``.

    An existing file with the same name is replaced.

    Returns:
        The artifact's new path.

    Raises:
        FilesystemError: If the artifact is missing or cannot be moved.
    """
    if not artifact.is_file():
        raise FilesystemError(message=f"Expected build output not found: {artifact}", path=str(artifact))

    dest_dir = output_dir_for(output_root, channel, distro)
    dest = dest_dir / artifact.name
    try:
        dest_dir.mkdir(parents=True, exist_ok=True)
        shutil.move(str(artifact), str(dest))
    except OSError as e:
        raise FilesystemError(message=f"Could not move {artifact} to {dest_dir}: {e}", path=str(dest_dir)) from e
    logger.debug("Placed %s", dest)
    return dest
