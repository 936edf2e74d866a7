"""
Datenmodell für Config-Patches.

CONFIG_PATCHES ist ein JSON-Objekt: relativer Dateipfad -> Liste von
JSON-Patch-Operationen. Die Reihenfolge der Schlüssel und der Operationen
bleibt beim Parsen erhalten.
"""

from __future__ import annotations
import json
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator

from ..errors import ConfigurationError


class PatchOperation(BaseModel):
    op: Literal["add", "remove", "replace", "move", "copy", "test"]
    path: str
    value: Any = None
    from_: Optional[str] = Field(default=None, alias="from")

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    @model_validator(mode="after")
    def _check_from(self) -> "PatchOperation":
        if self.op in ("move", "copy") and self.from_ is None:
            raise ValueError(f"op {self.op!r} requires 'from'")
        return self

    def to_json_patch(self) -> Dict[str, Any]:
        """RFC-6902 Darstellung für jsonpatch."""
        data: Dict[str, Any] = {"op": self.op, "path": self.path}
        if self.op in ("add", "replace", "test"):
            data["value"] = self.value
        if self.op in ("move", "copy"):
            data["from"] = self.from_
        return data


ConfigPatches = Dict[str, List[PatchOperation]]

_adapter: TypeAdapter[ConfigPatches] = TypeAdapter(ConfigPatches)


def parse_config_patches(raw: str) -> ConfigPatches:
    """Parst den Wert von CONFIG_PATCHES. Leer/nicht gesetzt -> leeres Mapping."""
    if not raw or not raw.strip():
        return {}
    try:
        return _adapter.validate_python(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as e:
        raise ConfigurationError(f"malformed CONFIG_PATCHES: {e}") from e


def count_patches(patches: ConfigPatches) -> int:
    return sum(len(ops) for ops in patches.values())
