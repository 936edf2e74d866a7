"""
First-run initialization of the server.

The server is started once and a poller thread checks its HTTP endpoint; as
soon as it answers 200 the server has written its default files and is stopped
again. The caller always blocks until the server process has exited.
"""

from __future__ import annotations
import subprocess
import threading
import urllib.error
import urllib.request
from enum import Enum
from pathlib import Path
from typing import List, Optional
from .errors import ReadinessTimeoutError, ServerCrashedError
from .process_runner import ProcessRunner
from .logging_setup import get_logger

log = get_logger("spt.launcher.probe")


class ProbeState(str, Enum):
    STARTING = "starting"
    PROBING = "probing"
    READY = "ready"
    TIMED_OUT = "timed_out"
    CRASHED = "crashed"


class ReadinessProbe:
    def __init__(self, cmd: List[str], *, cwd: Optional[Path] = None, url: str = "http://localhost:6969",
                 timeout: float = 120.0, interval: float = 1.0, grace: float = 10.0,
                 runner: Optional[ProcessRunner] = None):
        self.cmd = cmd
        self.cwd = cwd
        self.url = url
        self.timeout = timeout
        self.interval = interval
        self.grace = grace
        self.runner = runner or ProcessRunner()
        self.state = ProbeState.STARTING
        self.returncode: Optional[int] = None
        self.poller: Optional[threading.Thread] = None

    def _set_state(self, state: ProbeState) -> None:
        log.debug("Readiness probe: %s -> %s", self.state.value, state.value)
        self.state = state

    def check(self) -> bool:
        try:
            with urllib.request.urlopen(self.url, timeout=max(self.interval, 1.0)) as response:
                return getattr(response, "status", None) == 200
        except (urllib.error.URLError, OSError, ValueError):
            return False

    def _cancel(self, proc: subprocess.Popen, done: threading.Event) -> None:
        if proc.poll() is not None:
            return
        log.info("Stopping server (pid=%s)", proc.pid)
        proc.terminate()
        if not done.wait(self.grace) and proc.poll() is None:
            log.warning("Killing server (pid=%s)", proc.pid)
            proc.kill()

    def _poll(self, proc: subprocess.Popen, done: threading.Event, ready: threading.Event) -> None:
        while not done.wait(self.interval):
            if self.check():
                log.info("Server initialized.")
                ready.set()
                self._cancel(proc, done)
                return

    def run(self) -> ProbeState:
        """Start the server, wait for readiness, stop it. Raises on timeout or crash."""
        log.info("Initializing server: %s", " ".join(self.cmd))
        self._set_state(ProbeState.STARTING)
        try:
            proc = self.runner.start(self.cmd, cwd=self.cwd)
        except OSError as e:
            self._set_state(ProbeState.CRASHED)
            raise ServerCrashedError(None, str(e)) from e

        self._set_state(ProbeState.PROBING)
        done = threading.Event()
        ready = threading.Event()
        poller = self.poller = threading.Thread(target=self._poll, args=(proc, done, ready),
                                                name="readiness-poller", daemon=True)
        poller.start()

        expired = False
        stdout = stderr = ""
        try:
            try:
                stdout, stderr = proc.communicate(timeout=self.timeout)
            except subprocess.TimeoutExpired:
                expired = True
                if proc.poll() is None:
                    log.warning("Server not ready after %.0fs - killing it", self.timeout)
                    proc.kill()
                stdout, stderr = proc.communicate()
        finally:
            if proc.poll() is None:
                proc.kill()
                proc.wait()
            done.set()
            poller.join()
        self.returncode = proc.returncode

        if stdout:
            log.debug("server stdout: %s", stdout[-4000:])
        if ready.is_set():
            self._set_state(ProbeState.READY)
            return self.state
        if expired:
            self._set_state(ProbeState.TIMED_OUT)
            raise ReadinessTimeoutError(f"server not ready after {self.timeout:g}s ({self.url})")
        self._set_state(ProbeState.CRASHED)
        raise ServerCrashedError(proc.returncode, stderr or "")
