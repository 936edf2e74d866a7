"""
Merge-Logik für Config-Patches und Datenverzeichnisse.

Strategie:
- Patch-Listen pro Datei werden verkettet, frühere Quellen zuerst
- Keine Deduplizierung, keine Konfliktprüfung (letzter Schreiber gewinnt)
- Datenverzeichnisse werden dedupliziert, Reihenfolge bleibt erhalten
"""

from __future__ import annotations
import os
from typing import Iterable, List

from .models import ConfigPatches


def merge_config_patches(*sources: ConfigPatches) -> ConfigPatches:
    """
    Mergt mehrere ConfigPatches zu einem.

    Args:
        sources: z.B. (eingebaute Defaults, Benutzer-Patches)

    Returns:
        Neues Mapping, die Eingaben werden nicht verändert
    """
    result: ConfigPatches = {}
    for source in sources:
        for rel_path, ops in source.items():
            result.setdefault(rel_path, []).extend(ops)
    return result


def merge_data_dirs(*lists: Iterable[str]) -> List[str]:
    """Verkettet Listen relativer Pfade ohne Duplikate."""
    seen = set()
    ordered: List[str] = []
    for items in lists:
        for p in items:
            if not p:
                continue
            # "user/profiles/" und "user/profiles" sind derselbe Pfad
            norm = os.path.normpath(p)
            if norm not in seen:
                seen.add(norm)
                ordered.append(norm)
    return ordered
