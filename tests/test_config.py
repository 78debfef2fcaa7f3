import json
from pathlib import Path

from sarosis_config import DEFAULT_IGNORE_PATTERNS, SarosisConfig, SharedConfigManager


def test_missing_file_loads_defaults(tmp_path: Path) -> None:
    config = SharedConfigManager(tmp_path / "cfg").load()

    assert config.ignore_patterns == DEFAULT_IGNORE_PATTERNS
    assert config.max_depth is None
    assert config.stats == {"total_runs": 0, "total_reclaimed_bytes": 0}


def test_save_and_load_round_trip(tmp_path: Path) -> None:
    manager = SharedConfigManager(tmp_path / "cfg")
    config = SarosisConfig(default_roots=["~/code"], max_depth=4, rules_file="~/rules.toml")
    config.record_run(1000)
    config.record_run(24)

    manager.save(config)
    loaded = manager.load()

    assert loaded.default_roots == ["~/code"]
    assert loaded.max_depth == 4
    assert loaded.stats == {"total_runs": 2, "total_reclaimed_bytes": 1024}
    assert loaded.last_run is not None
    assert loaded.get_rules_path() == Path("~/rules.toml").expanduser()


def test_corrupted_file_loads_defaults(tmp_path: Path) -> None:
    manager = SharedConfigManager(tmp_path)
    manager.config_file.write_text("{not json")

    assert manager.load() == SarosisConfig()


def test_unknown_keys_ignored(tmp_path: Path) -> None:
    manager = SharedConfigManager(tmp_path)
    manager.config_file.write_text(json.dumps({"ignore_patterns": ["build"], "colour": "blue"}))

    assert manager.load().ignore_patterns == ["build"]


def test_env_override_and_reset(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("SAROSIS_HOME", str(tmp_path / "home"))
    manager = SharedConfigManager()

    config = manager.reset()

    assert manager.config_file == tmp_path / "home" / "config.json"
    assert json.loads(manager.config_file.read_text()) == config.to_dict()
