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

"""kubepkg-specific exception types with associated exit codes.

Every error is fatal to the current run. The CLI maps the exception to its
exit code; nothing is retried or downgraded to a warning.
"""

from __future__ import annotations

from dataclasses import dataclass, field

EXIT_SUCCESS = 0
EXIT_CONFIG_ERROR = 1
EXIT_TOOL_MISSING = 2
EXIT_FETCH_FAILED = 3
EXIT_PARSE_FAILED = 4
EXIT_TEMPLATE_FAILED = 5
EXIT_FILESYSTEM_ERROR = 6
EXIT_BUILD_FAILED = 7


@dataclass
class KubepkgError(Exception):
    """Base class for kubepkg errors with an exit code."""

    message: str = "An error occurred"
    exit_code: int = field(default=EXIT_CONFIG_ERROR)

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.message} (exit {self.exit_code})"


@dataclass
class ConfigError(KubepkgError):
    exit_code: int = field(default=EXIT_CONFIG_ERROR)


@dataclass
class ToolMissingError(KubepkgError):
    """Raised when a required external tool is not on PATH."""

    exit_code: int = field(default=EXIT_TOOL_MISSING)
    missing: list[str] = field(default_factory=list)


@dataclass
class FetchError(KubepkgError):
    """Raised when a version manifest cannot be fetched."""

    exit_code: int = field(default=EXIT_FETCH_FAILED)
    url: str = ""


@dataclass
class ParseError(KubepkgError):
    """Raised when a fetched version string is not a valid semantic version."""

    exit_code: int = field(default=EXIT_PARSE_FAILED)
    value: str = ""


@dataclass
class TemplateError(KubepkgError):
    exit_code: int = field(default=EXIT_TEMPLATE_FAILED)
    template: str = ""


@dataclass
class MissingKeyError(TemplateError):
    """Raised when a template references a key absent from the build context."""


@dataclass
class FilesystemError(KubepkgError):
    exit_code: int = field(default=EXIT_FILESYSTEM_ERROR)
    path: str = ""


@dataclass
class ProcessError(KubepkgError):
    """Raised when the packaging subprocess fails or exits non-zero."""

    exit_code: int = field(default=EXIT_BUILD_FAILED)
    command: list[str] = field(default_factory=list)
    returncode: int | None = None
