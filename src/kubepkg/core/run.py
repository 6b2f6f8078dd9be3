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

"""Per-invocation run records for kubepkg.

Every command runs inside a RunContext, which owns one directory under
runs_root:

    <run_id>/
        summary.json
        logs/stdout.log
        logs/stderr.log
        logs/events.jsonl
        logs/dpkg/<job>.log

stdout and stderr are redirected into logs/ for the life of the run, so
terminal-facing lines (activity, the spinner) go to sys.__stdout__ instead.
"""

from __future__ import annotations

import contextlib
import datetime
import json
import sys
import uuid
from collections.abc import Mapping
from pathlib import Path
from typing import IO, Any

from kubepkg.core.config import load_config
from kubepkg.core.paths import runs_root


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


def make_run_id(command: str, now: datetime.datetime) -> str:
    """Return a sortable, unique run id such as 20250101T120000Z-build-1a2b3c4d."""
    return f"{now.strftime('%Y%m%dT%H%M%SZ')}-{command}-{uuid.uuid4().hex[:8]}"


class RunContext:
    """Context manager that records one kubepkg invocation.

    Usage:
        with RunContext("build", cfg) as run:
            run.log_event({"event": "build.start"})
            ...
            run.record_artifact(result.to_dict())
    """

    def __init__(self, command: str, cfg: Mapping[str, Any] | None = None) -> None:
        self.command = command
        self.cfg = cfg if cfg is not None else load_config()
        started = _utcnow()
        self.runs_root = runs_root(self.cfg)
        self.run_id = make_run_id(command, started)
        self.run_path = self.runs_root / self.run_id
        self.logs_path = self.run_path / "logs"
        self.summary: dict[str, Any] = {
            "command": command,
            "run_id": self.run_id,
            "start_utc": started.isoformat(),
        }
        self._streams: dict[str, IO[str]] = {}
        self._saved = (sys.stdout, sys.stderr)

    def __enter__(self) -> RunContext:
        self.logs_path.mkdir(parents=True, exist_ok=True)
        self._streams = {
            name: (self.logs_path / name).open(mode, encoding="utf-8")
            for name, mode in (("stdout.log", "w"), ("stderr.log", "w"), ("events.jsonl", "a"))
        }
        self._saved = (sys.stdout, sys.stderr)
        sys.stdout = self._streams["stdout.log"]
        sys.stderr = self._streams["stderr.log"]

        self.log_event({"event": "run.start", "run_id": self.run_id})
        return self

    def job_log_path(self, name: str) -> Path:
        """Return the log file path for one dpkg-buildpackage invocation."""
        dpkg_logs = self.logs_path / "dpkg"
        dpkg_logs.mkdir(parents=True, exist_ok=True)
        return dpkg_logs / f"{name}.log"

    def log_event(self, event: dict[str, Any]) -> None:
        """Append a timestamped event to events.jsonl."""
        events = self._streams.get("events.jsonl")
        if events is None:  # pragma: no cover
            return
        events.write(json.dumps({"timestamp": _utcnow().isoformat(), **event}, default=str) + "\n")
        events.flush()

    def record_artifact(self, artifact: Mapping[str, Any]) -> None:
        """Add a placed package to the summary.

        The summary is rewritten straight away, so a run that fails part way
        still lists every package it did place.
        """
        self.summary.setdefault("artifacts", []).append(dict(artifact))
        self.write_summary()

    def write_summary(self, **kwargs: Any) -> None:
        self.summary.update(kwargs)
        (self.run_path / "summary.json").write_text(json.dumps(self.summary, indent=2, default=str))

    def _final_status(self, exc: BaseException | None) -> str:
        if isinstance(exc, SystemExit):
            return "failed" if exc.code not in (0, None) else self.summary.get("status", "success")
        if exc is not None:
            self.summary["error"] = str(exc)
            return "failed"
        return self.summary.get("status", "success")

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: object,
    ) -> None:
        status = self._final_status(exc)
        self.write_summary(status=status, end_utc=_utcnow().isoformat())

        with contextlib.suppress(Exception):
            self.log_event({"event": "run.end", "status": status})

        try:
            for stream in self._streams.values():
                stream.close()
        finally:
            sys.stdout, sys.stderr = self._saved
            self._streams = {}

        if status != "success":
            activity("report", f"Logs: {self.run_path}")


def activity(phase: str, description: str) -> None:
    """Print ``[phase] description`` on the real terminal, even inside a run."""
    with contextlib.suppress(Exception):
        print(f"[{phase}] {description}", file=sys.__stdout__, flush=True)
