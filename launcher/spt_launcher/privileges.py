"""
privileges.py - Supervisor / worker split
-----------------------------------------
When started as root the supervisor aligns the unprivileged account with the
requested UID/GID, hands the persistent trees to it and runs the actual
entrypoint as a child process under that identity. Started as any other user
the entrypoint runs in-process.
"""

from __future__ import annotations
import os
import pwd
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional
from .errors import CommandFailedError, LauncherIOError, PrivilegeError
from .fs_layout import Layout
from .process_runner import CommandStep, ProcessRunner, forward_signals
from .settings import Settings
from .logging_setup import get_logger

log = get_logger("spt.launcher.privileges")

@dataclass(frozen=True)
class Identity:
    uid: int
    gid: int

    def __str__(self) -> str:
        return f"{self.uid}:{self.gid}"


def current_identity() -> Identity:
    return Identity(uid=os.getuid(), gid=os.getgid())


def account_identity(name: str) -> Identity:
    try:
        entry = pwd.getpwnam(name)
    except KeyError as e:
        raise PrivilegeError(f"user {name!r} not found") from e
    return Identity(uid=entry.pw_uid, gid=entry.pw_gid)


def desired_identity(settings: Settings, account: Identity) -> Identity:
    return Identity(
        uid=settings.uid if settings.uid is not None else account.uid,
        gid=settings.gid if settings.gid is not None else account.gid,
    )


def worker_command() -> List[str]:
    return [sys.executable, "-m", "spt_launcher", "entrypoint"]


class PrivilegeManager:
    def __init__(self, settings: Settings, layout: Layout, runner: Optional[ProcessRunner] = None):
        self.settings = settings
        self.layout = layout
        self.runner = runner or ProcessRunner()
        self.user = settings.spt_user

    def reconcile_account(self, desired: Identity) -> None:
        if desired.uid == 0:
            raise PrivilegeError(f"refusing to update {self.user} user to uid 0")
        current = account_identity(self.user)
        try:
            # group first, usermod resolves the primary group by id
            if desired.gid != current.gid:
                log.info("Changing gid of %s from %s to %s", self.user, current.gid, desired.gid)
                self.runner.run(CommandStep("groupmod", ["groupmod", "-g", str(desired.gid), self.user]))
            if desired.uid != current.uid:
                log.info("Changing uid of %s from %s to %s", self.user, current.uid, desired.uid)
                self.runner.run(CommandStep("usermod", ["usermod", "-u", str(desired.uid), self.user]))
        except CommandFailedError as e:
            raise PrivilegeError(f"cannot update {self.user} to {desired}: {e}") from e

    def chown_trees(self, owner: Identity, paths: List[Path]) -> None:
        for p in paths:
            try:
                p.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise LauncherIOError(f"cannot create {p}: {e}") from e
            log.info("Ensuring ownership %s of %s", owner, p)
            self.runner.run(CommandStep("chown", ["chown", "-R", str(owner), str(p)], context=f"chowning {p}"))

    def _worker_env(self) -> Dict[str, str]:
        env = dict(os.environ)
        try:
            env["HOME"] = pwd.getpwnam(self.user).pw_dir
        except KeyError:
            pass
        return env

    def spawn_worker(self, identity: Identity) -> int:
        proc = self.runner.attach(worker_command(), env=self._worker_env(), user=identity.uid, group=identity.gid)

        with forward_signals(proc):
            rc = proc.wait()
        log.info("Worker exited with rc=%s", rc)
        return rc if rc >= 0 else 128 - rc

    def supervise(self, entrypoint: Callable[[], int]) -> int:
        """Root: reconcile identity and re-run the entrypoint as the worker. Otherwise run it directly."""
        current = current_identity()
        if current.uid != 0:
            log.info("Running as %s - no privilege drop needed", current)
            return entrypoint()

        desired = desired_identity(self.settings, account_identity(self.user))
        log.info("Running as root - dropping to %s (%s)", self.user, desired)
        self.reconcile_account(desired)
        self.chown_trees(desired, self.layout.roots())
        return self.spawn_worker(desired)
