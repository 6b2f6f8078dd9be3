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

"""Tests for kubepkg.core.config module."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from kubepkg.core import config
from kubepkg.core.exceptions import ConfigError


class TestGetConfigPath:
    """Tests for get_config_path function."""

    def test_under_home_config(self, temp_home: Path) -> None:
        assert config.get_config_path() == temp_home / ".config" / "kubepkg" / "config.yaml"


class TestLoadConfig:
    """Tests for load_config function."""

    def test_creates_default_file(self, temp_home: Path) -> None:
        cfg = config.load_config()

        assert config.get_config_path().exists()
        assert cfg["defaults"]["revision"] == "00"
        assert cfg["urls"]["release_download_link_base"] == "https://dl.k8s.io"

    def test_merges_sections_over_defaults(self, temp_home: Path, mock_config: Path) -> None:
        cfg = config.load_config()

        assert cfg["defaults"]["arches"] == ["amd64"]
        assert cfg["defaults"]["distros"] == ["xenial"]
        # Keys absent from the file fall back to the defaults
        assert cfg["defaults"]["output_dir"] == "bin"
        assert cfg["urls"]["stable_version"] == "https://dl.k8s.io/release/stable.txt"

    def test_expands_paths(self, temp_home: Path, mock_config: Path) -> None:
        cfg = config.load_config()
        assert cfg["paths"]["runs_root"] == str(temp_home / ".cache" / "kubepkg" / "runs")

    def test_does_not_mutate_defaults(self, temp_home: Path, mock_config: Path) -> None:
        cfg = config.load_config()
        cfg["defaults"]["revision"] = "99"

        assert config.DEFAULT_CONFIG["defaults"]["revision"] == "00"

    def test_invalid_yaml_raises(self, temp_home: Path) -> None:
        path = config.get_config_path()
        path.parent.mkdir(parents=True)
        path.write_text("defaults: [unclosed\n")

        with pytest.raises(ConfigError):
            config.load_config()

    def test_non_mapping_raises(self, temp_home: Path) -> None:
        path = config.get_config_path()
        path.parent.mkdir(parents=True)
        path.write_text("- just\n- a list\n")

        with pytest.raises(ConfigError):
            config.load_config()


class TestWriteConfig:
    """Tests for write_config function."""

    def test_round_trips_through_load(self, temp_home: Path) -> None:
        config.write_config({"defaults": {"revision": "07"}})

        assert yaml.safe_load(config.get_config_path().read_text()) == {"defaults": {"revision": "07"}}
        assert config.load_config()["defaults"]["revision"] == "07"


class TestNormalizeConfig:
    """Tests for normalize_config function."""

    def test_comma_string_arches(self, temp_home: Path) -> None:
        config.write_config({"defaults": {"arches": "amd64, arm64", "distros": ["sid"]}})

        cfg = config.load_config()

        assert cfg["defaults"]["arches"] == ["amd64", "arm64"]
        assert cfg["defaults"]["distros"] == ["sid"]

    def test_unquoted_revision_rejected(self, temp_home: Path) -> None:
        path = config.get_config_path()
        path.parent.mkdir(parents=True)
        path.write_text("defaults:\n  revision: 00\n")

        with pytest.raises(ConfigError, match="revision"):
            config.load_config()

    def test_non_string_arch_rejected(self) -> None:
        with pytest.raises(ConfigError, match="defaults.arches"):
            config.normalize_config({"defaults": {"arches": [1, 2]}})

    def test_non_string_url_rejected(self) -> None:
        with pytest.raises(ConfigError, match="urls.stable_version"):
            config.normalize_config({"urls": {"stable_version": 42}})

    def test_string_keep_tmp_rejected(self, temp_home: Path) -> None:
        path = config.get_config_path()
        path.parent.mkdir(parents=True)
        path.write_text('behavior:\n  keep_tmp: "false"\n')

        with pytest.raises(ConfigError, match="behavior.keep_tmp"):
            config.load_config()

    @pytest.mark.parametrize("key", ["source_root", "output_dir"])
    def test_non_string_path_rejected(self, key: str) -> None:
        with pytest.raises(ConfigError, match=f"defaults.{key}"):
            config.normalize_config({"defaults": {key: 42}})
