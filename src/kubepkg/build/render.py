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

"""Rendering of per-package template trees into a staging directory.

Each package has a source tree at ``<source_root>/<distro>/<package>`` holding
the debian/ files to build it. Every regular file in the tree is a Jinja2
template rendered against the job's template context, for example:

    Package: {{ package }}
    Version: {{ version }}-{{ revision }}
    Depends: {{ dependencies }}

Rendering is strict: referencing a key that is not in the context is an
error, so drift between the templates and the build context is caught before
anything is packaged. File and directory permission bits are copied from the
source tree.
"""

from __future__ import annotations

import contextlib
import datetime
import logging
import os
import shutil
import stat
import tempfile
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    Template,
    TemplateNotFound,
    TemplateSyntaxError,
    UndefinedError,
)
from jinja2 import TemplateError as JinjaTemplateError

from kubepkg.core.exceptions import FilesystemError, MissingKeyError, TemplateError
from kubepkg.core.run import activity

logger = logging.getLogger(__name__)

# Format used by debian/changelog trailer lines.
CHANGELOG_DATE_FORMAT = "%a, %d %b %Y %H:%M:%S %z"

TEMPLATE_HELPERS: dict[str, Callable[..., Any]] = {}


def register_helper(name: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Register a function callable from every template under ``name``."""

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        TEMPLATE_HELPERS[name] = func
        return func

    return decorator


@register_helper("date")
def changelog_date() -> str:
    """Current local time, e.g. ``Tue, 02 Mar 2021 14:03:11 +0000``."""
    return datetime.datetime.now().astimezone().strftime(CHANGELOG_DATE_FORMAT)


@dataclass
class RenderWork:
    """A parsed template waiting to be written to its destination."""

    src: Path
    dst: Path
    template: Template
    mode: int


def make_environment(root: Path) -> Environment:
    """Return a strict Jinja2 environment loading templates from root."""
    env = Environment(
        loader=FileSystemLoader(str(root)),
        undefined=StrictUndefined,
        keep_trailing_newline=True,
        autoescape=False,
    )
    env.globals.update(TEMPLATE_HELPERS)
    return env


def resolve_source_dir(source_root: Path, distro: str, package: str) -> Path:
    """Return the real template directory for a distro/package pair.

    The per-package directory may be a symlink to another distro's tree.

    Raises:
        FilesystemError: If the directory does not exist.
    """
    path = source_root / distro / package
    try:
        real = path.resolve(strict=True)
    except (FileNotFoundError, RuntimeError) as e:
        raise FilesystemError(message=f"Package source directory not found: {path}", path=str(path)) from e
    if not real.is_dir():
        raise FilesystemError(message=f"Package source is not a directory: {path}", path=str(path))
    return real


@contextlib.contextmanager
def staging_directory(keep: bool = False, prefix: str = "debs") -> Iterator[Path]:
    """Create a fresh temporary workspace, removed on exit unless keep is set."""
    try:
        path = Path(tempfile.mkdtemp(prefix=prefix))
    except OSError as e:
        raise FilesystemError(message=f"Could not create staging directory: {e}") from e
    try:
        yield path
    finally:
        if keep:
            activity("build", f"Staging directory preserved: {path}")
        else:
            remove_tree(path)


def remove_tree(path: Path) -> None:
    """Delete a staging tree, including directories rendered read-only.

    A failure is reported, not raised, so it never hides the error that ended
    the job.
    """
    try:
        for current, dirnames, _ in os.walk(path):
            for name in dirnames:
                child = os.path.join(current, name)
                if not os.path.islink(child):
                    os.chmod(child, stat.S_IRWXU)
        shutil.rmtree(path)
    except OSError as e:
        logger.warning("Could not remove staging directory %s: %s", path, e)
        activity("build", f"WARNING: staging directory left behind: {path} ({e})")


def _check_link_loops(current: Path, dirnames: list[str]) -> None:
    """Reject directory symlinks that point back at an enclosing directory."""
    real_current = current.resolve()
    for name in dirnames:
        child = current / name
        if child.is_symlink() and real_current.is_relative_to(child.resolve()):
            raise FilesystemError(message=f"Symlink loop in template tree: {child}", path=str(child))


def _collect(src_root: Path, dst_root: Path, env: Environment) -> tuple[list[tuple[Path, int]], list[RenderWork]]:
    dirs: list[tuple[Path, int]] = []
    work: list[RenderWork] = []
    for current, dirnames, filenames in os.walk(src_root, followlinks=True):
        dirnames.sort()
        current_path = Path(current)
        _check_link_loops(current_path, dirnames)
        rel_dir = current_path.relative_to(src_root)
        if current_path != src_root:
            dirs.append((dst_root / rel_dir, stat.S_IMODE(current_path.stat().st_mode)))
        for name in sorted(filenames):
            src = current_path / name
            rel = (rel_dir / name).as_posix()
            try:
                template = env.get_template(rel)
            except TemplateSyntaxError as e:
                raise TemplateError(message=f"{src}:{e.lineno}: {e.message}", template=str(src)) from e
            except (TemplateNotFound, UnicodeDecodeError) as e:
                raise TemplateError(message=f"Could not load template {src}: {e}", template=str(src)) from e
            work.append(RenderWork(src=src, dst=dst_root / rel, template=template, mode=stat.S_IMODE(src.stat().st_mode)))
    return dirs, work


def render_tree(src_root: Path, dst_root: Path, context: Mapping[str, Any]) -> list[Path]:
    """Render every file under src_root into dst_root.

    All templates are parsed before any file is written, so a syntax error
    leaves dst_root untouched. Directory modes are applied last so that
    read-only source directories can still be populated.

    Returns:
        The rendered destination files, in walk order.

    Raises:
        TemplateError: On a syntax or rendering error.
        MissingKeyError: When a template uses a key absent from context.
        FilesystemError: On any filesystem failure.
    """
    env = make_environment(src_root)
    try:
        dirs, work = _collect(src_root, dst_root, env)
        dst_root.mkdir(parents=True, exist_ok=True)
        for path, _ in dirs:
            path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(message=f"Could not stage {src_root}: {e}", path=str(src_root)) from e

    rendered: list[Path] = []
    for item in work:
        logger.debug("Rendering %s -> %s", item.src, item.dst)
        try:
            content = item.template.render(context)
        except UndefinedError as e:
            raise MissingKeyError(message=f"{item.src}: {e.message}", template=str(item.src)) from e
        except TemplateSyntaxError as e:
            raise TemplateError(message=f"{item.src}:{e.lineno}: {e.message}", template=str(item.src)) from e
        except (JinjaTemplateError, TypeError, ValueError) as e:
            raise TemplateError(message=f"{item.src}: {e}", template=str(item.src)) from e
        try:
            item.dst.write_text(content, encoding="utf-8")
            os.chmod(item.dst, item.mode)
        except OSError as e:
            raise FilesystemError(message=f"Could not write {item.dst}: {e}", path=str(item.dst)) from e
        rendered.append(item.dst)

    try:
        for path, mode in reversed(dirs):
            os.chmod(path, mode)
    except OSError as e:
        raise FilesystemError(message=f"Could not set permissions on {dst_root}: {e}", path=str(dst_root)) from e

    return rendered
