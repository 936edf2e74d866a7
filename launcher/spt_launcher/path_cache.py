"""
Content-addressed directory cache.

Entries live under ``<root>/entries/<key>`` and only ever appear there through
an atomic rename of a fully populated scratch directory, so an entry that exists
is complete. Scratch directories live in ``<root>/.tmp`` on the same filesystem.
"""

from __future__ import annotations
import os
import shutil
import tempfile
from pathlib import Path
from typing import Callable, List
from .errors import ConfigurationError, LauncherIOError
from .logging_setup import get_logger

log = get_logger("spt.launcher.cache")

Populate = Callable[[Path], None]


def validate_key(key: str) -> str:
    if not key or key in (".", "..") or "/" in key or "\\" in key or "\0" in key:
        raise ConfigurationError(f"invalid cache key {key!r}")
    return key


class PathCache:
    def __init__(self, root: Path, *, entries: Path | None = None, scratch: Path | None = None,
                 sweep: bool = True):
        self.root = Path(root)
        self.entries = Path(entries) if entries else self.root / "entries"
        self.scratch = Path(scratch) if scratch else self.root / ".tmp"
        if sweep:
            self._sweep_scratch()

    def _sweep_scratch(self) -> None:
        # leftovers of a process that died mid-populate
        if not self.scratch.is_dir():
            return
        for p in self.scratch.iterdir():
            log.info("Removing stale cache scratch %s", p)
            if p.is_dir() and not p.is_symlink():
                shutil.rmtree(p, ignore_errors=True)
            else:
                p.unlink(missing_ok=True)

    def entry_path(self, key: str) -> Path:
        return self.entries / validate_key(key)

    def has(self, key: str) -> bool:
        return self.entry_path(key).is_dir()

    def keys(self) -> List[str]:
        if not self.entries.is_dir():
            return []
        return sorted(p.name for p in self.entries.iterdir() if p.is_dir())

    def ensure(self, key: str, dest: Path, populate: Populate) -> Path:
        """
        Materialize the entry for ``key`` into ``dest``, running ``populate``
        against a fresh scratch directory first when the entry does not exist.
        Returns the entry path.
        """
        entry = self.entry_path(key)
        if entry.is_dir():
            log.info("Cache hit for %s", key)
        else:
            log.info("Cache miss for %s - populating", key)
            self._populate(key, entry, populate)
        self._materialize(entry, Path(dest))
        return entry

    def _populate(self, key: str, entry: Path, populate: Populate) -> None:
        try:
            self.scratch.mkdir(parents=True, exist_ok=True)
            self.entries.mkdir(parents=True, exist_ok=True)
            tmp = Path(tempfile.mkdtemp(prefix=f"{key}.", dir=self.scratch))
        except OSError as e:
            raise LauncherIOError(f"cannot prepare cache scratch for {key}: {e}") from e
        try:
            populate(tmp)
            os.rename(tmp, entry)
        except BaseException:
            shutil.rmtree(tmp, ignore_errors=True)
            raise
        log.info("Cached %s at %s", key, entry)

    def _materialize(self, entry: Path, dest: Path) -> None:
        log.info("Copying %s into %s", entry, dest)
        try:
            dest.mkdir(parents=True, exist_ok=True)
            shutil.copytree(entry, dest, symlinks=True, dirs_exist_ok=True)
        except (OSError, shutil.Error) as e:
            raise LauncherIOError(f"cannot copy cache entry {entry.name} into {dest}: {e}") from e
