from __future__ import annotations
from pathlib import Path
from typing import Optional
from .settings import Settings
from .logging_setup import get_logger
from .errors import CommandFailedError, ConfigurationError, LauncherError
from .fs_layout import Layout, build_layout, ensure_dirs, safe_join
from .path_cache import PathCache
from .process_runner import ProcessRunner, forward_signals
from .builder import BuildPipeline, build_cache_key, find_patches, select_patches
from .downloader import Extractor, archive_command, url_basename
from .mods import ModInstaller, mod_cache_key
from .probe import ReadinessProbe
from .config import (
    ConfigPatchEngine, ConfigPatches, PatchOperation, count_patches,
    merge_config_patches, merge_data_dirs, parse_config_patches,
)
from .linker import PROFILES_SUBPATH, PersistentDataLinker
from .planner import Plan, PlanAction

log = get_logger("spt.launcher.orch")

HTTP_CONFIG = "SPT_Data/Server/configs/http.json"

def default_config_patches() -> ConfigPatches:
    return {
        HTTP_CONFIG: [
            PatchOperation(op="replace", path="/ip", value="0.0.0.0"),
            PatchOperation(op="replace", path="/backendIp", value="0.0.0.0"),
        ],
    }

class Orchestrator:
    def __init__(self, settings: Settings, layout: Optional[Layout] = None, runner: Optional[ProcessRunner] = None):
        self.settings = settings
        self.layout = layout or build_layout(settings)
        self.runner = runner or ProcessRunner()
        self._cache: Optional[PathCache] = None

    @property
    def cache(self) -> PathCache:
        if self._cache is None:
            self._cache = PathCache(self.layout.cache, entries=self.layout.cache_entries,
                                    scratch=self.layout.cache_scratch)
        return self._cache

    @property
    def server_binary(self) -> Path:
        return self.layout.install / self.settings.server_binary

    def config_patches(self) -> ConfigPatches:
        return merge_config_patches(default_config_patches(), parse_config_patches(self.settings.config_patches))

    def data_dirs(self) -> list[str]:
        return merge_data_dirs([PROFILES_SUBPATH], self.settings.data_dir_list)

    def build_pipeline(self) -> BuildPipeline:
        return BuildPipeline(self.cache, self.runner, repo=self.settings.spt_source_repo,
                             patches_dir=self.settings.spt_patches_dir)

    def prepare_environment(self) -> None:
        ensure_dirs(self.layout)

    def install_server(self) -> None:
        if self.settings.skip_build:
            log.info("SKIP_BUILD: using server tree in %s as is.", self.layout.install)
            return
        if not self.settings.spt_version:
            raise ConfigurationError("spt version required")
        self.build_pipeline().install(self.settings.spt_version, self.layout.install)

    def install_mods(self) -> None:
        installer = ModInstaller(self.cache, self.layout.install, Extractor(self.runner))
        installer.install_all(self.settings.mod_url_list)

    def initialize_server(self) -> None:
        probe = ReadinessProbe(
            [str(self.server_binary)],
            cwd=self.layout.install,
            url=self.settings.probe_url,
            timeout=self.settings.probe_timeout,
            interval=self.settings.probe_interval,
            runner=self.runner,
        )
        probe.run()

    def apply_config_patches(self) -> None:
        ConfigPatchEngine(self.layout.install).apply(self.config_patches())

    def link_persistent_data(self) -> None:
        PersistentDataLinker(self.layout.data, self.layout.install).link_all(self.data_dirs())

    def run_server(self) -> int:
        log.info("Starting server %s", self.server_binary)
        proc = self.runner.attach([str(self.server_binary)], cwd=self.layout.install)
        with forward_signals(proc):
            rc = proc.wait()
        log.info("Server exited with rc=%s", rc)
        if rc != 0:
            raise CommandFailedError("server", rc)
        return 0

    def run(self) -> int:
        # parse user input before doing any work
        self.config_patches()
        self.prepare_environment()
        self.install_server()
        self.install_mods()
        self.initialize_server()
        self.apply_config_patches()
        self.link_persistent_data()
        return self.run_server()

    def plan(self) -> Plan:
        plan = Plan(ok=True, actions=[], notes=[])
        # read-only view: no scratch sweep
        cache = PathCache(self.layout.cache, entries=self.layout.cache_entries,
                          scratch=self.layout.cache_scratch, sweep=False)
        cached = set(cache.keys())
        plan.notes.append(f"{len(cached)} cache entr(ies) in {cache.entries}")

        if self.settings.skip_build:
            plan.notes.append("SKIP_BUILD=true: server tree is expected in the install root.")
        elif not self.settings.spt_version:
            plan.add(PlanAction("build", "spt", "SPT_VERSION is not set", {}, False, "error"))
        else:
            try:
                version = self.settings.spt_version
                key = build_cache_key(version, select_patches(find_patches(self.settings.spt_patches_dir), version))
            except LauncherError as e:
                plan.add(PlanAction("build", "spt", str(e), {}, False, "error"))
            else:
                hit = key in cached
                plan.add(PlanAction(
                    action="build",
                    target=f"spt {self.settings.spt_version}",
                    detail="cached build reused" if hit else "git clone + npm build would run",
                    paths={"cache": str(cache.entry_path(key)), "dest": str(self.layout.install)},
                    will_change=not hit,
                    severity="info",
                ))

        for url in self.settings.mod_url_list:
            try:
                key = mod_cache_key(url)
                archive_command(Path(url_basename(url)), self.layout.install)
            except LauncherError as e:
                plan.add(PlanAction("install_mod", url, str(e), {}, False, "error"))
                continue
            hit = key in cached
            plan.add(PlanAction(
                action="install_mod",
                target=url,
                detail="cached extraction reused" if hit else "download + extract would run",
                paths={"cache": str(cache.entry_path(key)), "dest": str(self.layout.install)},
                will_change=not hit,
            ))

        plan.add(PlanAction("initialize", str(self.server_binary), f"probe {self.settings.probe_url}",
                            {}, True, "warn" if self.settings.skip_build and not self.server_binary.exists() else "info"))

        try:
            patches = self.config_patches()
        except LauncherError as e:
            plan.add(PlanAction("patch", "CONFIG_PATCHES", str(e), {}, False, "error"))
        else:
            plan.notes.append(f"{count_patches(patches)} config patch(es) in {len(patches)} file(s)")
            for rel, ops in patches.items():
                try:
                    path = safe_join(self.layout.install, rel)
                except LauncherError as e:
                    plan.add(PlanAction("patch", rel, str(e), {}, False, "error"))
                    continue
                plan.add(PlanAction("patch", rel, f"{len(ops)} op(s): {[op.op + ' ' + op.path for op in ops]}",
                                    {"file": str(path)}, True))

        for sp in self.data_dirs():
            try:
                install_path = safe_join(self.layout.install, sp)
                data_path = safe_join(self.layout.data, sp)
            except LauncherError as e:
                plan.add(PlanAction("link", sp, str(e), {}, False, "error"))
                continue
            linked = install_path.is_symlink() and install_path.resolve() == data_path.resolve()
            plan.add(PlanAction("link", sp, "symlink into data volume",
                                {"src": str(install_path), "dst": str(data_path)}, not linked))
        return plan
