"""
Tests for config patch parsing, merging and the JSON / cfg patchers.
"""

import json
import pytest

from spt_launcher.config import (
    ConfigPatchEngine,
    PatchOperation,
    count_patches,
    merge_config_patches,
    merge_data_dirs,
    parse_config_patches,
)
from spt_launcher.config.patchers import CfgFilePatcher, cfg_value, replace_cfg_value
from spt_launcher.errors import ConfigurationError, PatchApplyError, PathSafetyError


def op(op, path, value=None, **kw):
    return PatchOperation(op=op, path=path, value=value, **kw)


@pytest.fixture
def root(tmp_path):
    r = tmp_path / "spt"
    (r / "SPT_Data" / "Server" / "configs").mkdir(parents=True)
    return r


HTTP_JSON = "SPT_Data/Server/configs/http.json"

SERVER_CFG = "[Http]\nPort = 6969\nHost = local\n"


class TestParse:
    def test_empty_is_empty_mapping(self):
        assert parse_config_patches("") == {}
        assert parse_config_patches("   ") == {}

    def test_parses_operations_in_order(self):
        raw = json.dumps({
            "b.json": [{"op": "replace", "path": "/x", "value": 1}],
            "a.json": [{"op": "remove", "path": "/y"}, {"op": "copy", "from": "/a", "path": "/b"}],
        })
        patches = parse_config_patches(raw)

        assert list(patches) == ["b.json", "a.json"]
        assert [o.op for o in patches["a.json"]] == ["remove", "copy"]
        assert patches["a.json"][1].from_ == "/a"
        assert count_patches(patches) == 3

    @pytest.mark.parametrize("raw", [
        "{not json",
        json.dumps(["a.json"]),
        json.dumps({"a.json": [{"op": "frobnicate", "path": "/x"}]}),
        json.dumps({"a.json": [{"op": "move", "path": "/x"}]}),
        json.dumps({"a.json": [{"path": "/x"}]}),
    ])
    def test_malformed_input_is_configuration_error(self, raw):
        with pytest.raises(ConfigurationError):
            parse_config_patches(raw)


class TestMerge:
    def test_per_key_concatenation_keeps_order(self):
        p1, p2 = op("replace", "/ip", "1"), op("replace", "/ip", "2")
        merged = merge_config_patches({"A": [p1]}, {"A": [p2]})
        assert merged == {"A": [p1, p2]}

    def test_defaults_first_user_appended(self):
        d = op("replace", "/ip", "0.0.0.0")
        u = op("replace", "/port", 7000)
        merged = merge_config_patches({"A": [d]}, {"B": [u], "A": [u]})
        assert merged == {"A": [d, u], "B": [u]}

    def test_inputs_are_not_mutated(self):
        defaults = {"A": [op("remove", "/x")]}
        merge_config_patches(defaults, {"A": [op("remove", "/y")]})
        assert len(defaults["A"]) == 1

    def test_merge_data_dirs_dedups_in_order(self):
        assert merge_data_dirs(["user/profiles"], ["logs", "user/profiles", "", "mods"]) == [
            "user/profiles", "logs", "mods",
        ]

    def test_merge_data_dirs_normalizes_before_dedup(self):
        assert merge_data_dirs(["user/profiles"], ["user/profiles/", "./user/profiles", "logs//"]) == [
            "user/profiles", "logs",
        ]


class TestJsonPatching:
    def test_replace_keeps_other_keys(self, root):
        target = root / HTTP_JSON
        target.write_text(json.dumps({"ip": "127.0.0.1", "port": 6969}))

        ConfigPatchEngine(root).apply({HTTP_JSON: [op("replace", "/ip", "0.0.0.0")]})

        assert json.loads(target.read_text()) == {"ip": "0.0.0.0", "port": 6969}

    def test_output_is_indented(self, root):
        target = root / "a.json"
        target.write_text('{"a": {"b": 1}}')

        ConfigPatchEngine(root).apply({"a.json": [op("add", "/c", [1, 2])]})

        assert target.read_text() == json.dumps({"a": {"b": 1}, "c": [1, 2]}, indent=2)

    def test_later_patch_wins(self, root):
        target = root / "a.json"
        target.write_text('{"ip": "127.0.0.1"}')
        patches = merge_config_patches({"a.json": [op("replace", "/ip", "0.0.0.0")]},
                                       {"a.json": [op("replace", "/ip", "10.0.0.1")]})

        ConfigPatchEngine(root).apply(patches)

        assert json.loads(target.read_text()) == {"ip": "10.0.0.1"}

    def test_failed_test_op_leaves_file_untouched(self, root):
        target = root / "a.json"
        target.write_text('{"ip": "127.0.0.1"}')

        with pytest.raises(PatchApplyError):
            ConfigPatchEngine(root).apply({"a.json": [
                op("replace", "/ip", "0.0.0.0"),
                op("test", "/ip", "never"),
            ]})

        assert target.read_text() == '{"ip": "127.0.0.1"}'


class TestCfgPatching:
    def test_replace_only_changes_target_line(self, root):
        target = root / "server.cfg"
        target.write_text(SERVER_CFG)

        ConfigPatchEngine(root).apply({"server.cfg": [op("replace", "/Http/Port", "8080")]})

        assert target.read_text() == "[Http]\nPort = 8080\nHost = local\n"

    def test_first_match_in_section_only(self):
        lines = ["[Other]", "Port = 1", "[Http]", "Port=6969", "Port = 7000"]
        assert replace_cfg_value(lines, "Http", "Port", "8080")
        assert lines == ["[Other]", "Port = 1", "[Http]", "Port = 8080", "Port = 7000"]

    def test_missing_key_leaves_text_unchanged(self):
        text = CfgFilePatcher().patch_text(SERVER_CFG, [op("replace", "/Http/Timeout", 5)])
        assert text == SERVER_CFG

    @pytest.mark.parametrize("bad", [
        op("add", "/Http/Port", "1"),
        op("replace", "/Port", "1"),
        op("replace", "/Http/Port/x", "1"),
    ])
    def test_unsupported_operations_fail(self, bad):
        with pytest.raises(PatchApplyError):
            CfgFilePatcher().patch_text(SERVER_CFG, [bad])

    @pytest.mark.parametrize("value,expected", [
        (True, "true"), (False, "false"), (8080, "8080"), (1.0, "1"), (0.5, "0.5"), ("x", "x"),
    ])
    def test_value_rendering(self, value, expected):
        assert cfg_value(value) == expected


class TestEngineSafetyAndAggregation:
    @pytest.mark.parametrize("bad_path", ["/etc/passwd", "/etc/server.cfg", "../outside.json", "a/../../x.cfg"])
    def test_unsafe_paths_rejected_before_any_io(self, root, bad_path):
        target = root / "a.json"
        target.write_text('{"ip": "127.0.0.1"}')

        with pytest.raises(PathSafetyError):
            ConfigPatchEngine(root).apply({
                "a.json": [op("replace", "/ip", "0.0.0.0")],
                bad_path: [op("replace", "/Http/Port", "1")],
            })

        # the valid file listed first was not touched either
        assert target.read_text() == '{"ip": "127.0.0.1"}'

    def test_failures_are_counted_and_others_still_applied(self, root):
        good = root / "good.json"
        good.write_text('{"a": 1}')
        (root / "broken.json").write_text("{not json")
        (root / "notes.yaml").write_text("a: 1")

        with pytest.raises(PatchApplyError) as exc:
            ConfigPatchEngine(root).apply({
                "missing.json": [op("replace", "/a", 2)],
                "broken.json": [op("replace", "/a", 2)],
                "notes.yaml": [op("replace", "/a", 2)],
                "good.json": [op("replace", "/a", 2)],
            })

        assert exc.value.failed == 3
        assert json.loads(good.read_text()) == {"a": 2}
