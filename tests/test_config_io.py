from __future__ import annotations

import json
import stat

import pytest

from hivecli.config.io import (
    clear_config,
    config_home,
    default_config_path,
    get_config_value,
    load_config_file,
    resolve_config,
    save_config,
    set_config_value,
)
from hivecli.config.models import CliConfig


def test_config_home_honors_override_env(tmp_path) -> None:
    assert config_home({"HIVE_CLI_HOME": str(tmp_path)}) == tmp_path
    assert default_config_path({"HIVE_CLI_HOME": str(tmp_path)}) == tmp_path / "config.json"


def test_config_home_defaults_to_dot_dir() -> None:
    assert str(config_home({})).endswith("/.hive-cli")


def test_save_config_writes_private_pretty_json(tmp_path) -> None:
    path = tmp_path / "nested" / "config.json"
    save_config(CliConfig(account="alice", posting_key="5Jposting"), path)

    text = path.read_text(encoding="utf-8")
    assert json.loads(text) == {"account": "alice", "postingKey": "5Jposting"}
    assert text.startswith('{\n  "account"')
    assert stat.S_IMODE(path.stat().st_mode) == 0o600


def test_save_config_tightens_existing_file_mode(tmp_path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{}", encoding="utf-8")
    path.chmod(0o644)
    save_config(CliConfig(account="alice"), path)
    assert stat.S_IMODE(path.stat().st_mode) == 0o600


def test_load_config_file_missing_or_invalid_returns_none(tmp_path) -> None:
    assert load_config_file(tmp_path / "absent.json") is None

    bad = tmp_path / "bad.json"
    bad.write_text('{"postingKey": "5J"}', encoding="utf-8")
    assert load_config_file(bad) is None

    garbage = tmp_path / "garbage.json"
    garbage.write_text("[1, 2", encoding="utf-8")
    assert load_config_file(garbage) is None


def test_clear_config_reports_whether_a_file_was_removed(tmp_path) -> None:
    path = tmp_path / "config.json"
    assert clear_config(path) is False
    save_config(CliConfig(account="alice"), path)
    assert clear_config(path) is True
    assert not path.exists()


def test_set_and_get_config_value(tmp_path) -> None:
    path = tmp_path / "config.json"
    set_config_value("account", "alice", path)
    set_config_value("node", "https://api.deathwing.me", path)

    assert get_config_value("account", path) == "alice"
    assert get_config_value("node", path) == "https://api.deathwing.me"
    assert get_config_value("postingKey", path) is None


def test_set_config_value_rejects_unknown_key(tmp_path) -> None:
    with pytest.raises(ValueError, match="Invalid key: owner"):
        set_config_value("owner", "x", tmp_path / "config.json")


def test_set_config_value_requires_account_first(tmp_path) -> None:
    with pytest.raises(ValueError, match="account must be set"):
        set_config_value("postingKey", "5J", tmp_path / "config.json")


def test_get_config_value_without_file_raises(tmp_path) -> None:
    with pytest.raises(ValueError, match="No configuration found"):
        get_config_value("account", tmp_path / "config.json")


def test_resolve_config_precedence_flag_env_file(tmp_path) -> None:
    path = tmp_path / "config.json"
    save_config(
        CliConfig(
            account="filer",
            posting_key="file-posting",
            active_key="file-active",
            node="https://file.node",
            chain_id="c0ffee",
        ),
        path,
    )
    env = {"HIVE_ACCOUNT": "envy", "HIVE_POSTING_KEY": "env-posting", "HIVE_NODE": "https://env.node"}

    from_file = resolve_config(env={}, path=path)
    assert from_file.account == "filer"
    assert from_file.node == "https://file.node"

    from_env = resolve_config(env=env, path=path)
    assert from_env.account == "envy"
    assert from_env.posting_key == "env-posting"
    assert from_env.active_key == "file-active"
    assert from_env.node == "https://env.node"
    assert from_env.chain_id == "c0ffee"

    from_flags = resolve_config(
        account_override="flagged", node_override="https://flag.node", env=env, path=path
    )
    assert from_flags.account == "flagged"
    assert from_flags.node == "https://flag.node"


def test_resolve_config_without_any_account_is_none(tmp_path) -> None:
    assert resolve_config(env={"HIVE_POSTING_KEY": "5J"}, path=tmp_path / "config.json") is None


def test_resolve_config_env_only(tmp_path) -> None:
    config = resolve_config(
        env={"HIVE_ACCOUNT": "alice", "HIVE_ACTIVE_KEY": "5Jactive"}, path=tmp_path / "config.json"
    )
    assert config == CliConfig(account="alice", active_key="5Jactive")


def test_save_then_resolve_round_trips(tmp_path) -> None:
    path = tmp_path / "config.json"
    saved = CliConfig(account="alice", posting_key="5Jp", active_key="5Ja", node="https://n.example")
    save_config(saved, path)
    assert resolve_config(env={}, path=path) == saved
