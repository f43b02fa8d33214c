import json

from adventure_planner import config
from adventure_planner.paths import get_app_dir, get_config_path, ensure_documents_dir


def test_app_dir_follows_environment(isolated_app_dir):
    assert get_app_dir() == isolated_app_dir
    assert get_config_path() == isolated_app_dir / "config.json"


def test_ensure_documents_dir(isolated_app_dir):
    docs = ensure_documents_dir()
    assert docs.is_dir()
    assert docs.parent == isolated_app_dir


def test_missing_config_is_empty():
    assert config.load_config() == {}
    assert config.get_recent_files() == []
    assert config.get_last_directory() is None


def test_invalid_config_is_ignored(isolated_app_dir):
    isolated_app_dir.mkdir(parents=True)
    (isolated_app_dir / "config.json").write_text("{oops", encoding="utf-8")
    assert config.load_config() == {}


def test_recent_files_are_deduplicated_and_capped(tmp_path):
    paths = [tmp_path / f"story{i}.adv" for i in range(config.MAX_RECENT_FILES + 3)]
    for p in paths:
        config.add_recent_file(p)
    config.add_recent_file(paths[-5])

    recent = config.get_recent_files()
    assert len(recent) == config.MAX_RECENT_FILES
    assert recent[0] == str(paths[-5].resolve())
    assert len(set(recent)) == len(recent)
    assert config.get_last_directory() == str(tmp_path.resolve())


def test_port_priority(isolated_app_dir, monkeypatch):
    assert config.get_port() == config.DEFAULT_PORT

    config.save_config({"port": 9000})
    assert config.get_port() == 9000

    monkeypatch.setenv("ADVENTURE_PLANNER_PORT", "9100")
    assert config.get_port() == 9100

    monkeypatch.setenv("ADVENTURE_PLANNER_PORT", "not-a-port")
    assert config.get_port() == 9000


def test_save_config_round_trip(isolated_app_dir):
    config.save_config({"recent_files": ["/tmp/a.adv"]})
    with open(isolated_app_dir / "config.json", encoding="utf-8") as f:
        assert json.load(f) == {"recent_files": ["/tmp/a.adv"]}
