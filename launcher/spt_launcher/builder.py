"""
Builds the SPT server from source at a pinned version.

The build is a fixed list of :class:`CommandStep` objects run inside a
PathCache scratch directory; only a complete build gets promoted to the cache.
"""

from __future__ import annotations
import hashlib
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional
from packaging.version import InvalidVersion, Version
from .errors import ConfigurationError
from .path_cache import PathCache
from .process_runner import CommandStep, ProcessRunner
from .logging_setup import get_logger

log = get_logger("spt.launcher.build")

_PATCH_NAME = re.compile(r"^(?P<prefix>.+?)-(?P<version>\d[^-]*)\.patch$")
SOURCE_DIRNAME = ".source"


@dataclass(frozen=True)
class PatchFile:
    path: Path
    version: Version


def find_patches(patches_dir: Path) -> List[PatchFile]:
    found: List[PatchFile] = []
    if not patches_dir.is_dir():
        return found
    for p in sorted(patches_dir.glob("*.patch")):
        m = _PATCH_NAME.match(p.name)
        if not m:
            log.warning("Ignoring patch without version in its name: %s", p.name)
            continue
        try:
            found.append(PatchFile(p, Version(m.group("version"))))
        except InvalidVersion:
            log.warning("Ignoring patch with unparsable version: %s", p.name)
    return found


def select_patches(patches: List[PatchFile], version: str) -> List[PatchFile]:
    """Patches declared for ``version`` or older, oldest first."""
    try:
        pinned = Version(version)
    except InvalidVersion as e:
        raise ConfigurationError(f"spt version {version!r} is not a valid version") from e
    selected = [p for p in patches if p.version <= pinned]
    return sorted(selected, key=lambda p: (p.version, p.path.name))


def patch_fingerprint(patches: List[PatchFile]) -> str:
    if not patches:
        return "nopatch"
    h = hashlib.sha256()
    for p in patches:
        h.update(p.path.name.encode("utf-8"))
        h.update(b"\0")
        h.update(p.path.read_bytes())
        h.update(b"\0")
    return h.hexdigest()[:12]


def build_cache_key(version: str, patches: List[PatchFile]) -> str:
    return f"spt-{version}-{patch_fingerprint(patches)}"


def build_steps(repo: str, version: str, patches: List[PatchFile], out_dir: Path) -> List[CommandStep]:
    source = out_dir / SOURCE_DIRNAME
    project = source / "project"
    steps = [
        CommandStep("clone", ["git", "clone", repo, str(source)], context=f"cloning {repo}"),
        CommandStep("checkout", ["git", "checkout", version], cwd=source, context=f"checking out {version}"),
    ]
    for p in patches:
        steps.append(CommandStep(f"apply {p.path.name}", ["git", "apply", str(p.path)], cwd=source,
                                 context=f"applying {p.path.name}"))
    steps += [
        CommandStep("lfs", ["git", "lfs", "pull"], cwd=source, context="fetching large assets"),
        CommandStep("install dependencies", ["npm", "install"], cwd=project, context="installing build dependencies"),
        CommandStep("build", ["npm", "run", "build:release"], cwd=project, context="building release"),
        CommandStep("relocate", ["cp", "-a", f"{project / 'build'}/.", str(out_dir)], context="relocating build output"),
        CommandStep("cleanup", ["rm", "-rf", str(source)], context="removing build sources"),
    ]
    return steps


class BuildPipeline:
    def __init__(self, cache: PathCache, runner: Optional[ProcessRunner] = None, *,
                 repo: str, patches_dir: Path):
        self.cache = cache
        self.runner = runner or ProcessRunner()
        self.repo = repo
        self.patches_dir = Path(patches_dir)

    def selected_patches(self, version: str) -> List[PatchFile]:
        return select_patches(find_patches(self.patches_dir), version)

    def cache_key(self, version: str) -> str:
        return build_cache_key(version, self.selected_patches(version))

    def install(self, version: str, dest: Path) -> Path:
        """Build (or reuse) the server at ``version`` and copy it into ``dest``."""
        if not version:
            raise ConfigurationError("spt version required")
        patches = self.selected_patches(version)
        key = build_cache_key(version, patches)
        log.info("SPT %s with patches %s (cache key %s)", version, [p.path.name for p in patches] or "-", key)

        def populate(tmp: Path) -> None:
            log.info("Building SPT %s in %s", version, tmp)
            self.runner.run_steps(build_steps(self.repo, version, patches, tmp))

        return self.cache.ensure(key, dest, populate)
