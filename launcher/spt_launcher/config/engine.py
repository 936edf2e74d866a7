"""
Wendet gemergte Config-Patches auf den Server-Baum an.

Alle Zielpfade werden geprüft, bevor irgendeine Datei angefasst wird. Danach
wird jede Datei einzeln gepatcht; Fehler werden gesammelt und am Ende als
ein PatchApplyError mit der Anzahl fehlgeschlagener Dateien gemeldet.
"""

from __future__ import annotations
import json
from pathlib import Path
from typing import List

import jsonpatch

from ..errors import PatchApplyError
from ..fs_layout import safe_join
from ..logging_setup import get_logger
from .models import ConfigPatches, count_patches
from .patchers import patcher_for

log = get_logger("spt.launcher.patch")


class ConfigPatchEngine:
    def __init__(self, root: Path):
        self.root = Path(root)

    def apply(self, patches: ConfigPatches) -> None:
        log.info("Applying %d config patch(es) to %d file(s)", count_patches(patches), len(patches))
        # raises PathSafetyError before any file I/O
        targets = [(rel, safe_join(self.root, rel), ops) for rel, ops in patches.items()]

        failed: List[str] = []
        for rel, path, ops in targets:
            log.info("Patching %s (%d op(s))", rel, len(ops))
            try:
                patcher_for(path).apply(path, ops)
            except (PatchApplyError, OSError, UnicodeDecodeError, json.JSONDecodeError,
                    jsonpatch.JsonPatchException, jsonpatch.JsonPointerException) as e:
                log.error("Failed to patch %s: %s", rel, e)
                failed.append(rel)

        if failed:
            raise PatchApplyError(
                f"failed to apply config patches to {len(failed)} file(s): {', '.join(failed)}",
                failed=len(failed),
            )
