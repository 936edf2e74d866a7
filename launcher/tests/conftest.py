import logging
import pytest

LAUNCHER_ENV = (
    "UID", "GID", "SPT_USER", "MOD_URLS", "CONFIG_PATCHES", "DATA_DIRS", "SPT_VERSION", "SKIP_BUILD",
    "SPT_SOURCE_REPO", "SPT_PATCHES_DIR", "CACHE_DIR", "DATA_DIR", "SPT_DIR", "SERVER_BINARY",
    "PROBE_URL", "PROBE_TIMEOUT", "PROBE_INTERVAL", "LOG_LEVEL", "LOG_JSON", "LOG_FILE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Tests never see the launcher variables of the calling shell."""
    for name in LAUNCHER_ENV:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("spt.launcher").handlers.clear()
