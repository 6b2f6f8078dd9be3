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

"""CLI application definition for kubepkg."""

from __future__ import annotations

from typer import Typer

from kubepkg.commands.build import build
from kubepkg.commands.plan import plan
from kubepkg.commands.versions import versions

app: Typer = Typer(
    name="kubepkg",
    help="A tool for building Debian packages of the Kubernetes components.",
    add_completion=False,
)


# Register commands
app.command(name="build")(build)
app.command(name="plan")(plan)
app.command(name="versions")(versions)
