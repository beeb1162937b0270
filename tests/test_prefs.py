import json

import pytest

from steam_depot_uploader.exceptions import ConfigInvalid, SettingsCorrupt
from steam_depot_uploader.prefs import Prefs, default_prefs_path


def test_missing_file_reads_as_empty(tmp_path):
    prefs = Prefs(str(tmp_path / "nope.json"))
    assert prefs.get("anything") == ""
    assert prefs.get("anything", "fallback") == "fallback"
    assert not prefs.has_key("anything")


def test_values_survive_reload_cycles(tmp_path):
    path = str(tmp_path / "ProjectSettings" / "prefs.json")
    expected = {}
    for i in range(5):
        prefs = Prefs(path)
        for key, value in expected.items():
            assert prefs.get(key) == value
        expected[f"key{i}"] = f"value {i} with \"quotes\" and ünicode"
        prefs.set(f"key{i}", expected[f"key{i}"])
        prefs.set("shared", str(i))
        expected["shared"] = str(i)

    final = Prefs(path)
    for key, value in expected.items():
        assert final.get(key) == value


def test_every_set_rewrites_whole_file(tmp_path):
    path = tmp_path / "prefs.json"
    prefs = Prefs(str(path))
    prefs.set("a", "1")
    prefs.set("b", "2")
    assert json.loads(path.read_text()) == {"a": "1", "b": "2"}
    prefs.delete_key("a")
    assert json.loads(path.read_text()) == {"b": "2"}
    prefs.delete_all()
    assert json.loads(path.read_text()) == {}


def test_typed_values(tmp_path):
    prefs = Prefs(str(tmp_path / "prefs.json"))
    prefs.set_int("count", 42)
    prefs.set_bool("enabled", True)
    prefs.set_float("ratio", 0.25)
    prefs.set("broken", "not a number")

    reloaded = Prefs(prefs.path)
    assert reloaded.get_int("count") == 42
    assert reloaded.get_bool("enabled") is True
    assert reloaded.get_float("ratio") == 0.25
    assert reloaded.get_int("broken", 7) == 7
    assert reloaded.get_bool("broken", True) is True
    assert reloaded.get_float("missing", 1.5) == 1.5


@pytest.mark.parametrize("content", [
    "{not json",
    "[\"a\", \"b\"]",
    "{\"a\": 1}",
])
def test_malformed_file_fails_fast(tmp_path, content):
    path = tmp_path / "prefs.json"
    path.write_text(content)
    prefs = Prefs(str(path))

    with pytest.raises(SettingsCorrupt) as excinfo:
        prefs.get("a")
    assert isinstance(excinfo.value, ConfigInvalid)
    # The broken file is left for the user to fix
    assert path.read_text() == content


def test_reload_picks_up_external_changes(tmp_path):
    path = tmp_path / "prefs.json"
    prefs = Prefs(str(path))
    prefs.set("a", "1")
    path.write_text(json.dumps({"a": "2"}))
    assert prefs.get("a") == "1"
    prefs.reload()
    assert prefs.get("a") == "2"


def test_default_prefs_path(tmp_path):
    assert default_prefs_path(str(tmp_path)) == str(tmp_path / "ProjectSettings" / "SteamDepotUploaderPrefs.json")
