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

"""TTY-aware spinner shown while kubepkg waits on the network.

Rich draws the spinner on the real terminal (sys.__stdout__) so that it never
lands in the captured run logs. Without a TTY nothing animates; the finished
line is printed once at the end either way.
"""

from __future__ import annotations

import contextlib
import sys
import time
from collections.abc import Iterator

from rich.console import Console
from rich.live import Live
from rich.spinner import Spinner


def is_tty() -> bool:
    """Return True if the real stdout is a TTY."""
    try:
        if sys.__stdout__ is None:
            return False  # pragma: no cover
        return sys.__stdout__.isatty()
    except Exception:  # pragma: no cover
        return False


def format_elapsed(seconds: float) -> str:
    """Format a duration as ``0.4s`` or ``2m05s``."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}m{secs:02d}s"


class ActivitySpinner:
    """A ``[phase] description`` spinner whose description can change.

    Attributes:
        phase: Short label shown in brackets.
        description: Text shown after the label; updated with update().
        live: Whether a Rich spinner is being drawn.
    """

    def __init__(self, phase: str, description: str, live: bool) -> None:
        self.phase = phase
        self.description = description
        self.live = live
        self._spinner = Spinner("dots", text=self.text)
        self._started = time.monotonic()

    @property
    def text(self) -> str:
        return f"[{self.phase}] {self.description}"

    def update(self, description: str) -> None:
        self.description = description
        self._spinner.update(text=self.text)

    def elapsed(self) -> float:
        return time.monotonic() - self._started


@contextlib.contextmanager
def activity_spinner(phase: str, description: str, disable: bool = False) -> Iterator[ActivitySpinner]:
    """Show a spinner while the block runs and yield it for updates.

    On exit the initial description is printed with the elapsed time, so the
    terminal keeps a record of what was waited on.
    """
    spin = ActivitySpinner(phase, description, live=not disable and is_tty())

    if spin.live:
        console = Console(file=sys.__stdout__, force_terminal=True)
        with Live(spin._spinner, console=console, refresh_per_second=12, transient=True):
            yield spin
    else:
        yield spin

    with contextlib.suppress(Exception):  # pragma: no cover
        print(f"[{phase}] {description} ({format_elapsed(spin.elapsed())})", file=sys.__stdout__, flush=True)
