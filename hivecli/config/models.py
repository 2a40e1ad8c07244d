from __future__ import annotations

from dataclasses import dataclass
from typing import Any

DEFAULT_NODE = "https://api.hive.blog"
DEFAULT_CHAIN_ID = "beeab0de00000000000000000000000000000000000000000000000000000000"

# persisted camelCase key -> CliConfig attribute
CONFIG_FILE_KEYS: dict[str, str] = {
    "account": "account",
    "postingKey": "posting_key",
    "activeKey": "active_key",
    "node": "node",
    "chainId": "chain_id",
}


@dataclass(slots=True)
class CliConfig:
    account: str
    posting_key: str | None = None
    active_key: str | None = None
    node: str | None = None
    chain_id: str | None = None

    @property
    def effective_node(self) -> str:
        return self.node or DEFAULT_NODE

    @property
    def effective_chain_id(self) -> str:
        return self.chain_id or DEFAULT_CHAIN_ID

    def key_for(self, key_type: str) -> str | None:
        if key_type == "active":
            return self.active_key
        if key_type == "posting":
            return self.posting_key
        raise ValueError(f"unsupported key type: {key_type} (expected posting or active)")


def _optional_str(raw: dict[str, Any], key: str) -> str | None:
    value = raw.get(key)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_cli_config(raw: dict[str, Any]) -> CliConfig:
    account = str(raw.get("account") or "").strip()
    if not account:
        raise ValueError("Missing required field: account")
    return CliConfig(
        account=account,
        posting_key=_optional_str(raw, "postingKey"),
        active_key=_optional_str(raw, "activeKey"),
        node=_optional_str(raw, "node"),
        chain_id=_optional_str(raw, "chainId"),
    )


def cli_config_to_dict(config: CliConfig) -> dict[str, str]:
    payload: dict[str, str] = {}
    for file_key, attr in CONFIG_FILE_KEYS.items():
        value = getattr(config, attr)
        if value:
            payload[file_key] = value
    return payload


def mask_secret(value: str | None) -> str | None:
    if not value:
        return value
    if len(value) <= 8:
        return "*" * len(value)
    return f"{value[:4]}{'*' * (len(value) - 8)}{value[-4:]}"
