from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from hivecli.config.models import (
    CONFIG_FILE_KEYS,
    CliConfig,
    cli_config_to_dict,
    parse_cli_config,
)

CONFIG_HOME_ENV = "HIVE_CLI_HOME"
ACCOUNT_ENV = "HIVE_ACCOUNT"
POSTING_KEY_ENV = "HIVE_POSTING_KEY"
ACTIVE_KEY_ENV = "HIVE_ACTIVE_KEY"
NODE_ENV = "HIVE_NODE"
CONFIG_FILE_NAME = "config.json"

_config_logger = logging.getLogger("hivecli.config")


def config_home(env: Mapping[str, str] | None = None) -> Path:
    source = os.environ if env is None else env
    override = str(source.get(CONFIG_HOME_ENV, "")).strip()
    if override:
        return Path(override).expanduser()
    return Path("~/.hive-cli").expanduser()


def default_config_path(env: Mapping[str, str] | None = None) -> Path:
    return config_home(env) / CONFIG_FILE_NAME


def load_mapping(path: Path) -> dict[str, Any]:
    # YAML is a superset of the JSON we write, so hand-edited files still load.
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"config file must parse to a mapping: {path}")
    return data


def load_config_file(path: Path | None = None) -> CliConfig | None:
    config_path = path or default_config_path()
    if not config_path.exists():
        return None
    try:
        return parse_cli_config(load_mapping(config_path))
    except (OSError, ValueError, yaml.YAMLError) as exc:
        _config_logger.warning("ignoring unreadable config file %s: %s", config_path, exc)
        return None


def save_config(config: CliConfig, path: Path | None = None) -> Path:
    config_path = path or default_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    rendered = json.dumps(cli_config_to_dict(config), indent=2) + "\n"
    fd = os.open(config_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(rendered)
    # O_CREAT mode is ignored for pre-existing files
    os.chmod(config_path, 0o600)
    _config_logger.info("config saved path=%s account=%s", config_path, config.account)
    return config_path


def clear_config(path: Path | None = None) -> bool:
    config_path = path or default_config_path()
    if not config_path.exists():
        return False
    config_path.unlink()
    _config_logger.info("config cleared path=%s", config_path)
    return True


def set_config_value(key: str, value: str, path: Path | None = None) -> CliConfig:
    if key not in CONFIG_FILE_KEYS:
        raise ValueError(f"Invalid key: {key}. Valid keys: {', '.join(CONFIG_FILE_KEYS)}")
    config_path = path or default_config_path()
    existing = load_config_file(config_path)
    raw = cli_config_to_dict(existing) if existing is not None else {}
    raw[key] = value
    if not str(raw.get("account") or "").strip():
        raise ValueError("account must be set before other configuration values")
    config = parse_cli_config(raw)
    save_config(config, config_path)
    return config


def get_config_value(key: str, path: Path | None = None) -> str | None:
    if key not in CONFIG_FILE_KEYS:
        raise ValueError(f"Invalid key: {key}. Valid keys: {', '.join(CONFIG_FILE_KEYS)}")
    config = load_config_file(path)
    if config is None:
        raise ValueError("No configuration found")
    return getattr(config, CONFIG_FILE_KEYS[key])


def _env_value(env: Mapping[str, str], name: str) -> str | None:
    value = str(env.get(name, "")).strip()
    return value or None


def resolve_config(
    *,
    account_override: str | None = None,
    node_override: str | None = None,
    env: Mapping[str, str] | None = None,
    path: Path | None = None,
) -> CliConfig | None:
    """Merge flags, environment and the persisted file into one config.

    Highest precedence wins: ``--account``/``--node`` flags, then
    ``HIVE_ACCOUNT``/``HIVE_POSTING_KEY``/``HIVE_ACTIVE_KEY``/``HIVE_NODE``,
    then the config file. Returns ``None`` when no source names an account.
    """
    source = os.environ if env is None else env
    stored = load_config_file(path or default_config_path(source))

    account = (
        (account_override or "").strip()
        or _env_value(source, ACCOUNT_ENV)
        or (stored.account if stored is not None else None)
    )
    if not account:
        return None
    return CliConfig(
        account=account,
        posting_key=_env_value(source, POSTING_KEY_ENV) or (stored.posting_key if stored else None),
        active_key=_env_value(source, ACTIVE_KEY_ENV) or (stored.active_key if stored else None),
        node=(node_override or "").strip()
        or _env_value(source, NODE_ENV)
        or (stored.node if stored else None),
        chain_id=stored.chain_id if stored else None,
    )
