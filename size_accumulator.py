#!/usr/bin/env python3
"""
Directory size measurement for Sarosis

Sizes are advisory: entries that cannot be read count as zero instead of
failing the scan. Symbolic links are never followed.
"""

import logging
import os
import stat

logger = logging.getLogger(__name__)


class SizeAccumulator:
    """Measures apparent size of file trees, remembering paths already measured"""

    def __init__(self):
        self._cache: dict[str, int] = {}

    def measure(self, path: str) -> int:
        """Return total bytes of regular files under *path* (or of *path* itself)"""
        key = os.path.abspath(path)
        if key not in self._cache:
            self._cache[key] = _measure_tree(key)
        return self._cache[key]

    def forget(self, path: str):
        self._cache.pop(os.path.abspath(path), None)

    def clear(self):
        self._cache.clear()


def _measure_tree(path: str) -> int:
    try:
        st = os.lstat(path)
    except OSError:
        return 0
    if stat.S_ISLNK(st.st_mode):
        return 0
    if stat.S_ISREG(st.st_mode):
        return st.st_size
    if not stat.S_ISDIR(st.st_mode):
        return 0

    total = 0
    seen_dirs = {(st.st_dev, st.st_ino)}
    seen_links: set[tuple[int, int]] = set()
    stack = [path]

    while stack:
        current = stack.pop()
        try:
            with os.scandir(current) as entries:
                for entry in entries:
                    try:
                        if entry.is_symlink():
                            continue
                        if entry.is_dir(follow_symlinks=False):
                            entry_stat = entry.stat(follow_symlinks=False)
                            key = (entry_stat.st_dev, entry_stat.st_ino)
                            if key not in seen_dirs:
                                seen_dirs.add(key)
                                stack.append(entry.path)
                            continue
                        if entry.is_file(follow_symlinks=False):
                            entry_stat = entry.stat(follow_symlinks=False)
                            if entry_stat.st_nlink > 1:
                                key = (entry_stat.st_dev, entry_stat.st_ino)
                                if key in seen_links:
                                    continue
                                seen_links.add(key)
                            total += entry_stat.st_size
                    except OSError:
                        continue
        except OSError as e:
            logger.debug("Cannot read %s while sizing: %s", current, e)

    return total


def measure(path: str) -> int:
    """One-shot size measurement without caching"""
    return _measure_tree(os.path.abspath(path))
