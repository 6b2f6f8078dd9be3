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

"""External tool checks run before a build starts."""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from pathlib import Path

from kubepkg.build.dpkg import DPKG_BUILDPACKAGE


@dataclass
class ToolCheck:
    """Result of checking for required external tools."""

    tools: dict[str, Path | None] = field(default_factory=dict)
    missing: list[str] = field(default_factory=list)

    def is_complete(self) -> bool:
        return not self.missing


REQUIRED_TOOLS = [DPKG_BUILDPACKAGE]

# Debian package providing each tool
TOOL_PACKAGES: dict[str, str] = {
    DPKG_BUILDPACKAGE: "dpkg-dev",
}


def find_tool(name: str) -> Path | None:
    """Return the path to an executable on PATH, or None."""
    path = shutil.which(name)
    if path:
        return Path(path)
    return None


def check_required_tools() -> ToolCheck:
    result = ToolCheck()
    for tool in REQUIRED_TOOLS:
        path = find_tool(tool)
        result.tools[tool] = path
        if path is None:
            result.missing.append(tool)
    return result


def get_missing_tools_message(missing: list[str]) -> str:
    """Return install instructions for the missing tools, or an empty string."""
    if not missing:
        return ""
    lines = ["The following required tools are missing:"]
    for tool in missing:
        lines.append(f"  - {tool}: apt install {TOOL_PACKAGES.get(tool, tool)}")
    packages = sorted({TOOL_PACKAGES.get(t, t) for t in missing})
    lines.append("")
    lines.append(f"Install with: sudo apt install {' '.join(packages)}")
    return "\n".join(lines)
