"""
mods.py - Mod installation for the SPT server
---------------------------------------------
Downloads mod archives, extracts them once into the cache and copies the
cached extraction into the server tree on every boot.
"""

from __future__ import annotations
from pathlib import Path
from typing import List, Optional
from .downloader import Extractor, archive_command, download, url_basename
from .errors import ConfigurationError
from .path_cache import PathCache
from .logging_setup import get_logger

log = get_logger("spt.launcher.mods")


def mod_cache_key(url: str) -> str:
    name = url_basename(url)
    if not name:
        raise ConfigurationError(f"mod url {url!r} has no file name")
    return f"mod-{name}"


class ModInstaller:
    def __init__(self, cache: PathCache, install_dir: Path, extractor: Optional[Extractor] = None):
        self.cache = cache
        self.install_dir = Path(install_dir)
        self.extractor = extractor or Extractor()

    def install(self, url: str) -> Path:
        key = mod_cache_key(url)
        # fail on unknown archive types before touching the network
        archive_command(Path(url_basename(url)), self.install_dir)
        log.info("Installing mod %s (cache key %s)", url, key)

        def populate(tmp: Path) -> None:
            download(url, lambda archive: self.extractor.extract(archive, tmp))

        return self.cache.ensure(key, self.install_dir, populate)

    def install_all(self, urls: List[str]) -> None:
        if not urls:
            log.info("No mods configured.")
            return
        log.info("Installing %d mod(s)...", len(urls))
        for url in urls:
            self.install(url)
        log.info("Mod installation complete.")
