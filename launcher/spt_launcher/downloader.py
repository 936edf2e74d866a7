from __future__ import annotations
import shutil
import tempfile
import urllib.error
import urllib.parse
import urllib.request
from pathlib import Path
from typing import Callable, Optional, TypeVar
from .errors import LauncherIOError
from .process_runner import CommandStep, ProcessRunner
from .logging_setup import get_logger

log = get_logger("spt.launcher.download")

CHUNK_SIZE = 1024 * 1024
T = TypeVar("T")


def url_basename(url: str) -> str:
    """Last path component of a URL, query and fragment ignored."""
    path = urllib.parse.urlparse(url).path
    return urllib.parse.unquote(path.rstrip("/").rsplit("/", 1)[-1])


def archive_command(src: Path, dest: Path) -> CommandStep:
    """Pick the extractor for an archive by its file name suffix."""
    name = src.name.lower()
    if name.endswith(".zip"):
        return CommandStep("unzip", ["unzip", "-o", str(src), "-d", str(dest)], context=f"extracting {src.name}")
    if name.endswith(".7z"):
        return CommandStep("7z", ["7z", "x", "-y", str(src), f"-o{dest}"], context=f"extracting {src.name}")
    raise LauncherIOError(f"unrecognized file type {src.name}")


def download(url: str, callback: Callable[[Path], T], *, timeout: float = 60.0) -> T:
    """
    Stream ``url`` into a temporary file and hand its path to ``callback``.
    The temporary directory is removed once the callback returns.
    """
    with tempfile.TemporaryDirectory(prefix="spt-download-") as tmpdir:
        target = Path(tmpdir) / (url_basename(url) or "download")
        log.info("Downloading %s -> %s", url, target)
        try:
            with urllib.request.urlopen(url, timeout=timeout) as response:
                status = getattr(response, "status", None)
                if status != 200:
                    raise LauncherIOError(f"GET {url} sent non-200 status code: {status}")
                with open(target, "wb") as fh:
                    shutil.copyfileobj(response, fh, CHUNK_SIZE)
        except urllib.error.HTTPError as e:
            raise LauncherIOError(f"GET {url} sent non-200 status code: {e.code}") from e
        except (urllib.error.URLError, OSError) as e:
            raise LauncherIOError(f"GET {url} failed: {e}") from e
        return callback(target)


class Extractor:
    def __init__(self, runner: Optional[ProcessRunner] = None):
        self.runner = runner or ProcessRunner()

    def extract(self, src: Path, dest: Path) -> None:
        step = archive_command(src, dest)
        log.info("Extracting %s -> %s", src, dest)
        try:
            dest.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise LauncherIOError(f"cannot create {dest}: {e}") from e
        self.runner.run(step)
