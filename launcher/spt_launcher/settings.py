from __future__ import annotations
from pathlib import Path
from typing import List, Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

def split_csv(value: str) -> List[str]:
    """Comma-separated env value -> trimmed items, empties dropped."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]

class Settings(BaseSettings):
    cache_dir: Path = Field(default_factory=lambda: Path.cwd() / "cache", alias="CACHE_DIR")
    data_dir: Path = Field(default_factory=lambda: Path.cwd() / "data", alias="DATA_DIR")
    spt_dir: Path = Field(default_factory=lambda: Path.cwd() / "spt", alias="SPT_DIR")

    spt_version: str = Field(default="", alias="SPT_VERSION")
    skip_build: bool = Field(default=False, alias="SKIP_BUILD")
    spt_source_repo: str = Field(default="https://github.com/sp-tarkov/server.git", alias="SPT_SOURCE_REPO")
    spt_patches_dir: Path = Field(default_factory=Path.cwd, alias="SPT_PATCHES_DIR")
    server_binary: str = Field(default="SPT.Server.exe", alias="SERVER_BINARY")

    mod_urls: str = Field(default="", alias="MOD_URLS")
    config_patches: str = Field(default="", alias="CONFIG_PATCHES")
    data_dirs: str = Field(default="", alias="DATA_DIRS")

    uid: Optional[int] = Field(default=None, alias="UID")
    gid: Optional[int] = Field(default=None, alias="GID")
    spt_user: str = Field(default="spt", alias="SPT_USER")

    probe_url: str = Field(default="http://localhost:6969", alias="PROBE_URL")
    probe_timeout: float = Field(default=120.0, alias="PROBE_TIMEOUT")
    probe_interval: float = Field(default=1.0, alias="PROBE_INTERVAL")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=False, alias="LOG_JSON")
    log_file: Optional[Path] = Field(default=None, alias="LOG_FILE")

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True, env_ignore_empty=True)

    @property
    def mod_url_list(self) -> List[str]:
        return split_csv(self.mod_urls)

    @property
    def data_dir_list(self) -> List[str]:
        return split_csv(self.data_dirs)
