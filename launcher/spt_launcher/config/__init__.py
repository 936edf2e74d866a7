"""
__init__.py für config Modul (Config-Patches).
"""

from .engine import ConfigPatchEngine
from .merger import merge_config_patches, merge_data_dirs
from .models import ConfigPatches, PatchOperation, count_patches, parse_config_patches
from .patchers import CfgFilePatcher, FilePatcher, JsonFilePatcher, patcher_for

__all__ = [
    "ConfigPatchEngine",
    "ConfigPatches",
    "PatchOperation",
    "FilePatcher",
    "JsonFilePatcher",
    "CfgFilePatcher",
    "patcher_for",
    "merge_config_patches",
    "merge_data_dirs",
    "count_patches",
    "parse_config_patches",
]
