"""
Datei-Patcher für die zwei unterstützten Formate.

- ``.json``: JSON-Patch (RFC 6902) über jsonpatch
- ``.cfg``:  zeilenbasiertes INI-Format, nur ``replace`` auf ``/section/key``

Jede Datei wird komplett gelesen, im Speicher geändert und komplett
zurückgeschrieben.
"""

from __future__ import annotations
import json
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, List, Tuple

import jsonpatch

from ..errors import PatchApplyError
from ..logging_setup import get_logger
from .models import PatchOperation

log = get_logger("spt.launcher.patch")

_SECTION = re.compile(r"^\[([^\]]+)\]")


class FilePatcher(ABC):
    suffix: str = ""

    def apply(self, path: Path, ops: List[PatchOperation]) -> None:
        text = path.read_text(encoding="utf-8")
        path.write_text(self.patch_text(text, ops), encoding="utf-8")

    @abstractmethod
    def patch_text(self, text: str, ops: List[PatchOperation]) -> str:
        ...


class JsonFilePatcher(FilePatcher):
    suffix = ".json"

    def patch_text(self, text: str, ops: List[PatchOperation]) -> str:
        doc = json.loads(text)
        doc = jsonpatch.apply_patch(doc, [op.to_json_patch() for op in ops])
        return json.dumps(doc, indent=2, ensure_ascii=False)


def cfg_value(value: Any) -> str:
    """Textdarstellung eines Patch-Werts in einer cfg-Datei."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, dict)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def cfg_target(op: PatchOperation) -> Tuple[str, str]:
    if op.op != "replace":
        raise PatchApplyError(f"patch op {op.op} must be 'replace'")
    parts = op.path.split("/")
    if len(parts) != 3 or parts[0] != "" or not parts[1] or not parts[2]:
        raise PatchApplyError(f"patch path {op.path} must be /section/key")
    return parts[1], parts[2]


def replace_cfg_value(lines: List[str], section: str, key: str, value: str) -> bool:
    """
    Ersetzt die erste Zeile ``key = ...`` innerhalb von ``[section]``.
    Weitere Treffer bleiben unverändert. Gibt zurück, ob ersetzt wurde.
    """
    current = None
    for index, line in enumerate(lines):
        trimmed = line.strip()
        m = _SECTION.match(trimmed)
        if m:
            current = m.group(1)
            continue
        if current == section and trimmed.split("=", 1)[0].strip() == key:
            lines[index] = f"{key} = {value}"
            return True
    return False


class CfgFilePatcher(FilePatcher):
    suffix = ".cfg"

    def patch_text(self, text: str, ops: List[PatchOperation]) -> str:
        targets = [(cfg_target(op), op) for op in ops]
        lines = text.split("\n")
        for (section, key), op in targets:
            if not replace_cfg_value(lines, section, key, cfg_value(op.value)):
                log.warning("Key %s not found in section [%s] - left unchanged", key, section)
        return "\n".join(lines)


PATCHERS: Tuple[FilePatcher, ...] = (JsonFilePatcher(), CfgFilePatcher())


def patcher_for(path: Path) -> FilePatcher:
    for patcher in PATCHERS:
        if path.name.endswith(patcher.suffix):
            return patcher
    raise PatchApplyError(f"unsupported file {path}")
