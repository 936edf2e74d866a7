from __future__ import annotations
import shutil
from pathlib import Path
from typing import List
from .errors import LauncherIOError
from .fs_layout import safe_join
from .logging_setup import get_logger

log = get_logger("spt.launcher.link")

PROFILES_SUBPATH = "user/profiles"


class PersistentDataLinker:
    """Symlinks subpaths of the install tree into the persistent data volume."""

    def __init__(self, data_root: Path, install_root: Path):
        self.data_root = Path(data_root)
        self.install_root = Path(install_root)

    def _clear(self, path: Path) -> None:
        if path.is_symlink() or path.is_file():
            path.unlink()
        elif path.is_dir():
            shutil.rmtree(path)
        elif path.exists():
            path.unlink()

    def link(self, subpath: str) -> Path:
        data_path = safe_join(self.data_root, subpath)
        install_path = safe_join(self.install_root, subpath)
        try:
            data_path.mkdir(parents=True, exist_ok=True)
            install_path.parent.mkdir(parents=True, exist_ok=True)
            self._clear(install_path)
            install_path.symlink_to(data_path, target_is_directory=True)
        except OSError as e:
            raise LauncherIOError(f"cannot link {install_path} -> {data_path}: {e}") from e
        log.info("Linked %s -> %s", install_path, data_path)
        return install_path

    def link_all(self, subpaths: List[str]) -> List[Path]:
        # validate everything before removing anything
        for sp in subpaths:
            safe_join(self.install_root, sp)
        return [self.link(sp) for sp in subpaths]
