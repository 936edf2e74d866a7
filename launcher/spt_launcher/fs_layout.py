from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path
from .errors import PathSafetyError
from .settings import Settings
from .logging_setup import get_logger

log = get_logger("spt.launcher.layout")

@dataclass(frozen=True)
class Layout:
    cache: Path
    data: Path
    install: Path
    cache_entries: Path
    cache_scratch: Path

    def roots(self) -> list[Path]:
        return [self.cache, self.data, self.install]

def build_layout(settings: Settings) -> Layout:
    cache = settings.cache_dir.resolve()
    return Layout(
        cache=cache,
        data=settings.data_dir.resolve(),
        install=settings.spt_dir.resolve(),
        cache_entries=cache / "entries",
        cache_scratch=cache / ".tmp",
    )

def ensure_dirs(layout: Layout) -> None:
    for p in layout.roots():
        if not p.exists():
            log.info("Creating directory %s", p)
        p.mkdir(parents=True, exist_ok=True)

def safe_join(root: Path, rel: str) -> Path:
    """Join a user supplied relative path to ``root``; absolute or escaping paths are rejected."""
    if not rel or rel.startswith(("/", "\\")) or os.path.isabs(rel):
        raise PathSafetyError(f"path {rel!r} is not relative")
    norm = os.path.normpath(rel)
    if norm in (".", "..") or norm.startswith(".." + os.sep):
        raise PathSafetyError(f"path {rel!r} escapes {root}")
    return root / norm
