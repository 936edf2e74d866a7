from __future__ import annotations
import signal
import subprocess
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence
from .errors import CommandFailedError
from .logging_setup import get_logger

log = get_logger("spt.launcher.proc")

@dataclass(frozen=True)
class CommandStep:
    """One named external command of a fixed pipeline."""
    name: str
    cmd: List[str]
    cwd: Optional[Path] = None
    context: str = ""

@dataclass
class StepResult:
    name: str
    returncode: int
    stdout: str = ""
    stderr: str = ""

@dataclass
class ProcessRunner:
    env: Optional[Dict[str, str]] = None

    def run(self, step: CommandStep) -> StepResult:
        log.info("Running %s: %s", step.name, " ".join(step.cmd))
        try:
            proc = subprocess.run(step.cmd, cwd=str(step.cwd) if step.cwd else None,
                                  capture_output=True, text=True, env=self.env)
        except OSError as e:
            raise CommandFailedError(step.name, None, str(e)) from e
        if proc.stdout:
            log.debug("%s stdout: %s", step.name, proc.stdout[-4000:])
        if proc.stderr:
            log.debug("%s stderr: %s", step.name, proc.stderr[-4000:])
        result = StepResult(step.name, proc.returncode, proc.stdout or "", proc.stderr or "")
        if proc.returncode != 0:
            if step.context:
                log.error("%s failed (rc=%s) while %s", step.name, proc.returncode, step.context)
            raise CommandFailedError(step.name, proc.returncode, proc.stderr or "")
        return result

    def run_steps(self, steps: Sequence[CommandStep]) -> None:
        for step in steps:
            self.run(step)

    def start(self, cmd: List[str], *, cwd: Optional[Path] = None) -> subprocess.Popen:
        log.info("Starting %s", " ".join(cmd))
        return subprocess.Popen(cmd, cwd=str(cwd) if cwd else None, env=self.env,
                                stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True)

    def attach(self, cmd: List[str], *, cwd: Optional[Path] = None, env: Optional[Dict[str, str]] = None,
               user: Optional[int] = None, group: Optional[int] = None) -> subprocess.Popen:
        """Start a process sharing this process' stdin/stdout/stderr."""
        log.info("Starting attached %s", " ".join(cmd))
        kwargs = {}
        if user is not None:
            kwargs["user"] = user
        if group is not None:
            kwargs["group"] = group
            kwargs["extra_groups"] = []
        return subprocess.Popen(cmd, cwd=str(cwd) if cwd else None,
                                env=env if env is not None else self.env, **kwargs)

FORWARDED_SIGNALS = (signal.SIGTERM, signal.SIGINT, signal.SIGHUP)

@contextmanager
def forward_signals(proc: subprocess.Popen) -> Iterator[None]:
    """Relay termination signals received by this process to ``proc`` while the block runs."""
    def forward(signum, frame):
        log.info("Forwarding signal %s to pid %s", signum, proc.pid)
        proc.send_signal(signum)

    previous = {sig: signal.signal(sig, forward) for sig in FORWARDED_SIGNALS}
    try:
        yield
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
