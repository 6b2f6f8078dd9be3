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

"""Pytest fixtures and configuration for kubepkg tests."""

from __future__ import annotations

import subprocess
import tempfile
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any
from unittest import mock

import pytest
import responses

STABLE_URL = "https://dl.k8s.io/release/stable.txt"
LATEST_URL = "https://dl.k8s.io/release/latest.txt"
CI_URL = "https://dl.k8s.io/ci-cross/latest.txt"

CONTROL_TEMPLATE = """\
Source: {{ package }}
Section: misc
Priority: optional
Maintainer: Kubernetes Authors <kubernetes-dev@googlegroups.com>
Build-Depends: debhelper (>= 9), curl

Package: {{ package }}
Architecture: {{ deb_arch }}
Depends: {{ dependencies }}
Description: Kubernetes {{ package }}
"""

CHANGELOG_TEMPLATE = """\
{{ package }} ({{ version }}-{{ revision }}) {{ distro_name }}; urgency=medium

  * {{ channel }} build from {{ download_link_base }}

 -- Kubernetes Authors <kubernetes-dev@googlegroups.com>  {{ date() }}
"""

RULES_TEMPLATE = """\
#!/usr/bin/make -f

%:
\tdh $@

override_dh_auto_build:
\tcurl -sSL --fail {{ download_link_base }}/bin/linux/{{ arch }}/{{ package }} -o {{ package }}
"""


@pytest.fixture
def temp_home(monkeypatch: pytest.MonkeyPatch) -> Generator[Path, None, None]:
    """Create a temporary home directory and set HOME/XDG paths."""
    with tempfile.TemporaryDirectory() as tmpdir:
        home = Path(tmpdir)
        monkeypatch.setenv("HOME", str(home))
        monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
        monkeypatch.setenv("XDG_CACHE_HOME", str(home / ".cache"))
        monkeypatch.setattr(Path, "home", lambda: home)
        yield home


@pytest.fixture
def mock_config(temp_home: Path) -> Path:
    """Create a minimal config file in the temp home."""
    config_dir = temp_home / ".config" / "kubepkg"
    config_dir.mkdir(parents=True, exist_ok=True)
    config_file = config_dir / "config.yaml"
    config_file.write_text("""
paths:
  runs_root: "~/.cache/kubepkg/runs"

defaults:
  arches: ["amd64"]
  distros: ["xenial"]
  revision: "00"

behavior:
  keep_tmp: false
""")
    return config_file


@pytest.fixture
def mock_responses() -> Generator[responses.RequestsMock, None, None]:
    """Activate responses mock for HTTP requests."""
    with responses.RequestsMock() as rsps:
        yield rsps


@pytest.fixture
def version_manifests(mock_responses: responses.RequestsMock) -> responses.RequestsMock:
    """Serve stable/latest/CI manifests in the dl.k8s.io format."""
    mock_responses.add(responses.GET, STABLE_URL, body="v1.20.3\n", status=200)
    mock_responses.add(responses.GET, LATEST_URL, body="v1.21.0-beta.0\n", status=200)
    mock_responses.add(responses.GET, CI_URL, body="v1.21.0-alpha.0.123+abcdef\n", status=200)
    return mock_responses


@pytest.fixture
def non_tty_stdout(monkeypatch: pytest.MonkeyPatch) -> None:
    """Mock sys.__stdout__.isatty() to return False."""
    mock_stdout = mock.MagicMock()
    mock_stdout.isatty.return_value = False
    monkeypatch.setattr("sys.__stdout__", mock_stdout)


@pytest.fixture
def tty_stdout(monkeypatch: pytest.MonkeyPatch) -> None:
    """Mock sys.__stdout__.isatty() to return True."""
    mock_stdout = mock.MagicMock()
    mock_stdout.isatty.return_value = True
    mock_stdout.write = lambda x: None
    mock_stdout.flush = lambda: None
    monkeypatch.setattr("sys.__stdout__", mock_stdout)


def write_package_tree(source_root: Path, distro: str, package: str) -> Path:
    """Write a small debian/ template tree for distro/package."""
    debian = source_root / distro / package / "debian"
    debian.mkdir(parents=True, exist_ok=True)
    (debian / "control").write_text(CONTROL_TEMPLATE)
    (debian / "changelog").write_text(CHANGELOG_TEMPLATE)
    rules = debian / "rules"
    rules.write_text(RULES_TEMPLATE)
    rules.chmod(0o755)
    (debian / "compat").write_text("9\n")
    return source_root / distro / package


@pytest.fixture
def source_root(tmp_path: Path) -> Path:
    """Template root holding xenial/kubectl, with bionic/kubectl symlinked to it."""
    root = tmp_path / "src"
    write_package_tree(root, "xenial", "kubectl")
    (root / "bionic").mkdir(parents=True)
    (root / "bionic" / "kubectl").symlink_to(root / "xenial" / "kubectl", target_is_directory=True)
    return root


@pytest.fixture
def fake_dpkg(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    """Replace dpkg-buildpackage with a stub that writes the expected .deb.

    The stub reads the package name and version from the rendered changelog
    and writes ``<name>_<version>_<arch>.deb`` next to the source tree, as
    dpkg-buildpackage does.
    """
    calls: list[dict[str, Any]] = []

    def _run(cmd: list[str], cwd: Path, **kwargs: Any) -> subprocess.CompletedProcess[str]:
        cwd = Path(cwd)
        first = (cwd / "debian" / "changelog").read_text().splitlines()[0]
        name, rest = first.split(" ", 1)
        version = rest.split(")", 1)[0].lstrip("(")
        arch = cmd[-1].removeprefix("-a")
        (cwd.parent / f"{name}_{version}_{arch}.deb").write_bytes(b"!<arch>\n")
        (cwd.parent / f"{name}_{version}_{arch}.changes").write_text("changes\n")
        calls.append({"cmd": cmd, "cwd": cwd, "control": (cwd / "debian" / "control").read_text(), **kwargs})
        return subprocess.CompletedProcess(cmd, 0)

    monkeypatch.setattr("kubepkg.build.dpkg.subprocess.run", _run)
    return calls


@pytest.fixture
def isolated_tmpdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point tempfile at a private directory so leftovers can be inspected."""
    tmp_root = tmp_path / "tmp"
    tmp_root.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(tmp_root))
    return tmp_root


@pytest.fixture
def failing_dpkg(monkeypatch: pytest.MonkeyPatch) -> Callable[[int], None]:
    """Return a helper that makes dpkg-buildpackage exit with a given code."""

    def _install(returncode: int) -> None:
        def _run(cmd: list[str], cwd: Path, **kwargs: Any) -> subprocess.CompletedProcess[str]:
            return subprocess.CompletedProcess(cmd, returncode)

        monkeypatch.setattr("kubepkg.build.dpkg.subprocess.run", _run)

    return _install


@pytest.fixture
def make_package_tree() -> Callable[[Path, str, str], Path]:
    """Return the helper that writes a debian/ template tree."""
    return write_package_tree
