"""
Tests for the command line entry and environment parsing.
"""

import pytest

from spt_launcher import __version__
from spt_launcher.cli import main
from spt_launcher.settings import Settings, split_csv


@pytest.fixture
def roots(tmp_path, monkeypatch):
    monkeypatch.setenv("CACHE_DIR", str(tmp_path / "cache"))
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("SPT_DIR", str(tmp_path / "spt"))
    monkeypatch.setenv("SPT_PATCHES_DIR", str(tmp_path / "patches"))
    return tmp_path


class TestSettings:
    def test_defaults(self):
        s = Settings()
        assert s.spt_user == "spt"
        assert s.uid is None and s.gid is None
        assert s.probe_url == "http://localhost:6969"
        assert s.probe_timeout == 120
        assert s.server_binary == "SPT.Server.exe"
        assert s.mod_url_list == [] and s.data_dir_list == []

    def test_env_values(self, monkeypatch):
        monkeypatch.setenv("UID", "1500")
        monkeypatch.setenv("GID", "")
        monkeypatch.setenv("SKIP_BUILD", "true")
        monkeypatch.setenv("MOD_URLS", "https://a/x.zip, ,https://b/y.7z ")
        s = Settings()
        assert s.uid == 1500
        assert s.gid is None
        assert s.skip_build is True
        assert s.mod_url_list == ["https://a/x.zip", "https://b/y.7z"]

    def test_split_csv(self):
        assert split_csv("") == []
        assert split_csv("a,,b") == ["a", "b"]


class TestMain:
    def test_version_has_no_newline(self, capsys):
        assert main(["version"]) == 0
        assert capsys.readouterr().out == __version__

    def test_unknown_command(self, capsys):
        assert main(["bogus"]) == 1
        out = capsys.readouterr().out
        assert "unknown command: bogus" in out

    def test_bad_option_exits_1(self, capsys):
        assert main(["--verbose"]) == 1
        assert "invalid arguments" in capsys.readouterr().out

    def test_invalid_env_exits_1(self, roots, monkeypatch, capsys):
        monkeypatch.setenv("PROBE_TIMEOUT", "soon")
        assert main(["entrypoint"]) == 1
        assert "invalid configuration" in capsys.readouterr().out

    def test_stage_failure_logged_to_stdout(self, roots, capsys):
        assert main(["entrypoint"]) == 1
        assert "spt version required" in capsys.readouterr().out

    def test_malformed_patches_exit_1(self, roots, monkeypatch, capsys):
        monkeypatch.setenv("CONFIG_PATCHES", "[1, 2")
        assert main(["entrypoint"]) == 1
        assert "CONFIG_PATCHES" in capsys.readouterr().out
        assert not (roots / "spt").exists()

    def test_plan_prints_json(self, roots, monkeypatch, capsys):
        monkeypatch.setenv("SKIP_BUILD", "true")
        assert main(["plan"]) == 0
        out = capsys.readouterr().out
        assert '"ok": true' in out
        assert '"action": "link"' in out
