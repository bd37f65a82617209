"""Filesystem traversal for the scanner."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Optional

from sheetwatch.extract.pattern import PathMatcher

logger = logging.getLogger(__name__)


def walk_files(root: Path) -> Iterator[Path]:
    """
    Lazily yield absolute paths of regular files under root.
    Every call re-walks the tree. Order is not guaranteed.
    """
    root = Path(root)
    if not root.is_dir():
        logger.warning("Root directory not found, nothing to scan: %s", root)
        return
    yield from _walk(root.resolve())


def _walk(directory: Path) -> Iterator[Path]:
    subdirs: list[Path] = []
    try:
        with os.scandir(directory) as entries:
            for entry in entries:
                try:
                    if entry.is_dir(follow_symlinks=False):
                        subdirs.append(Path(entry.path))
                    elif entry.is_file():
                        yield Path(entry.path)
                except OSError as e:
                    logger.warning("Skipping unreadable entry %s: %s", entry.path, e)
    except PermissionError:
        logger.warning("Permission denied listing directory: %s", directory)
        return
    except OSError as e:
        logger.warning("Error listing directory %s: %s", directory, e)
        return

    for subdir in subdirs:
        yield from _walk(subdir)


def discover_files(
    root: Path,
    matcher: PathMatcher,
    exclude_dirs: Iterable[Path] = (),
    exclude: Optional[PathMatcher] = None,
) -> Iterator[Path]:
    """
    Files under root whose basename matches, minus anything inside exclude_dirs
    and anything whose basename matches exclude (the scanner's own output).
    """
    excluded = [Path(d).resolve() for d in exclude_dirs]
    for path in walk_files(root):
        if not matcher.matches(path.name):
            continue
        if exclude is not None and exclude.matches(path.name):
            logger.debug("Skipping exported report: %s", path)
            continue
        if any(_is_within(path, d) for d in excluded):
            logger.debug("Skipping file under output directory: %s", path)
            continue
        yield path


def _is_within(path: Path, directory: Path) -> bool:
    try:
        path.relative_to(directory)
        return True
    except ValueError:
        return False
