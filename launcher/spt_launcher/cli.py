from __future__ import annotations
import argparse
import json
import sys
from pydantic import ValidationError
from . import __version__
from .settings import Settings
from .logging_setup import setup_logging, get_logger
from .errors import ConfigurationError, LauncherError
from .fs_layout import build_layout
from .orchestrator import Orchestrator
from .privileges import PrivilegeManager

log = get_logger("spt.launcher.cli")

COMMANDS = ("pre-entrypoint", "entrypoint", "plan", "version")

class _Parser(argparse.ArgumentParser):
    def error(self, message):
        raise ConfigurationError(message)

def build_parser() -> argparse.ArgumentParser:
    parser = _Parser(prog="spt-launcher")
    sub = parser.add_subparsers(dest="cmd")
    sub.add_parser("pre-entrypoint", help="Default. As root: fix uid/gid + ownership, then run 'entrypoint' as the server user")
    sub.add_parser("entrypoint", help="Build/install + mods + first launch + config patches + data links, then run the server")
    sub.add_parser("plan", help="Print a dry-run plan as JSON and exit")
    sub.add_parser("version", help="Print the launcher version")
    return parser

def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else list(argv)
    # logging is not configured yet, errors go straight to stdout
    if argv and not argv[0].startswith("-") and argv[0] not in COMMANDS:
        print(f"unknown command: {argv[0]}", flush=True)
        return 1
    try:
        args = build_parser().parse_args(argv)
    except ConfigurationError as e:
        print(f"invalid arguments: {e}", flush=True)
        return 1
    cmd = args.cmd or "pre-entrypoint"

    if cmd == "version":
        sys.stdout.write(__version__)
        sys.stdout.flush()
        return 0

    try:
        settings = Settings()
    except ValidationError as e:
        print(f"invalid configuration: {e}", flush=True)
        return 1
    setup_logging(settings)
    layout = build_layout(settings)

    try:
        if cmd == "plan":
            plan = Orchestrator(settings, layout).plan().to_dict()
            print(json.dumps(plan, indent=2, ensure_ascii=False))
            return 0 if plan.get("ok", True) else 1

        if cmd == "entrypoint":
            log.info("=== entrypoint (spt-launcher %s) ===", __version__)
            return Orchestrator(settings, layout).run()

        log.info("=== pre-entrypoint (spt-launcher %s) ===", __version__)
        manager = PrivilegeManager(settings, layout)
        return manager.supervise(lambda: Orchestrator(settings, layout).run())
    except (LauncherError, OSError) as e:
        log.error("%s", e)
        return 1
    except Exception as e:
        log.exception("Unexpected failure: %s", e)
        return 1
