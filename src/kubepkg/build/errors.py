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

"""Logging helpers shared by build phases.

Every phase reports twice: a human-readable activity line on the terminal
and a structured event in the run's events.jsonl.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from kubepkg.core.run import activity

if TYPE_CHECKING:
    from kubepkg.core.run import RunContext


def log_phase_event(
    run: RunContext | None,
    phase: str,
    message: str,
    event_key: str,
    **event_data: Any,
) -> None:
    """Log a phase activity message and structured event together.

    Example:
        log_phase_event(
            run, "build", f"Placed {dest}",
            "job.placed",
            path=str(dest),
        )
    """
    activity(phase, message)
    if run is not None:
        run.log_event({"event": event_key, **event_data})


def phase_error(
    run: RunContext,
    phase: str,
    message: str,
    exit_code: int,
    *,
    event_key: str | None = None,
    **event_data: Any,
) -> int:
    """Log a phase error and write a failed summary, returning the exit code.

    The event key defaults to "{phase}.error".
    """
    activity(phase, f"ERROR: {message}")
    run.log_event({
        "event": event_key or f"{phase}.error",
        "message": message,
        "exit_code": exit_code,
        **event_data,
    })
    run.write_summary(status="failed", error=message, exit_code=exit_code)
    return exit_code
