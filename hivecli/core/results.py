"""Shapes of node responses.

Nodes answer either with a JSON-RPC envelope (``{"jsonrpc", "result", "id"}``)
or, for some libraries and proxies, with the bare value. Every call site goes
through :func:`unwrap_result` instead of probing ``result`` ad hoc.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

_TX_ID_KEYS = ("tx_id", "trx_id", "id")


@dataclass(frozen=True, slots=True)
class Enveloped:
    result: Any


@dataclass(frozen=True, slots=True)
class Raw:
    value: Any


RpcResult = Enveloped | Raw


def classify_response(response: Any) -> RpcResult:
    if isinstance(response, dict) and "result" in response:
        return Enveloped(response["result"])
    return Raw(response)


def unwrap_result(response: Any) -> Any:
    classified = classify_response(response)
    if isinstance(classified, Enveloped):
        return classified.result
    return classified.value


def _tx_id_at(node: Any) -> str | None:
    if not isinstance(node, dict):
        return None
    for key in _TX_ID_KEYS:
        value = node.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def extract_tx_id(response: Any) -> str | None:
    """Find the transaction id at the top level or inside ``result``."""
    if isinstance(response, dict):
        nested = _tx_id_at(response.get("result"))
        if nested:
            return nested
    return _tx_id_at(response)


class PostLookup(StrEnum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    # Reported like NOT_FOUND: a failed lookup never blocks a publish.
    LOOKUP_FAILED = "lookup_failed"

    @property
    def is_edit(self) -> bool:
        return self is PostLookup.FOUND
