from __future__ import annotations

import importlib
import json
import logging
import time
import urllib.error
import urllib.request
from collections.abc import Callable
from typing import Any

from hivecli.config.io import ACCOUNT_ENV, ACTIVE_KEY_ENV, POSTING_KEY_ENV
from hivecli.config.models import DEFAULT_CHAIN_ID, DEFAULT_NODE, CliConfig
from hivecli.core.types import KEY_TYPES, Operation

logger = logging.getLogger(__name__)

DEFAULT_CONFIRMATION_TIMEOUT_MS = 30_000
# Hive produces a block every 3 seconds.
CONFIRMATION_POLL_INTERVAL_SECONDS = 3.0
_USER_AGENT = "hivecli/0.1"
_KEY_ENV_BY_TYPE = {"posting": POSTING_KEY_ENV, "active": ACTIVE_KEY_ENV}
_HIVE_CHAIN_ASSETS = [
    {"asset": "@@000000013", "symbol": "HBD", "precision": 3, "id": 0},
    {"asset": "@@000000021", "symbol": "HIVE", "precision": 3, "id": 1},
    {"asset": "@@000000037", "symbol": "VESTS", "precision": 6, "id": 2},
]


class HiveRpcError(RuntimeError):
    """The node answered with a JSON-RPC ``error`` object."""

    def __init__(self, method: str, error: Any) -> None:
        message = error.get("message") if isinstance(error, dict) else str(error)
        super().__init__(f"{method}: {message}")
        self.method = method
        self.error = error


class TransactionTimeoutError(RuntimeError):
    def __init__(self, tx_id: str, elapsed_seconds: float) -> None:
        super().__init__(
            f"Transaction {tx_id} was not confirmed after {elapsed_seconds:.0f} seconds"
        )
        self.tx_id = tx_id
        self.elapsed_seconds = elapsed_seconds


def _import_nectar() -> tuple[Any, Any, Any, tuple[type[BaseException], ...]]:
    hive_module = importlib.import_module("nectar.hive")
    txbuilder_module = importlib.import_module("nectar.transactionbuilder")
    operations_module = importlib.import_module("nectarbase.operations")
    errors = (
        importlib.import_module("nectar.exceptions").NectarException,
        importlib.import_module("nectarapi.exceptions").NectarApiException,
    )
    return hive_module, txbuilder_module, operations_module, errors


def _rpc_body(api: str, method: str, params: Any) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "method": f"{api}.{method}", "params": params, "id": 1}


def _checked_payload(full_method: str, payload: Any) -> Any:
    if isinstance(payload, dict) and payload.get("error") is not None:
        raise HiveRpcError(full_method, payload["error"])
    return payload


class HiveNodeAdapter:
    def __init__(
        self,
        node: str | None = None,
        *,
        chain_id: str | None = None,
        account: str | None = None,
        posting_key: str | None = None,
        active_key: str | None = None,
        timeout_seconds: int = 30,
        session_factory: Callable[[], Any] | None = None,
        sleep_fn: Callable[[float], None] | None = None,
        monotonic_fn: Callable[[], float] | None = None,
    ) -> None:
        resolved_node = node.strip() if isinstance(node, str) else ""
        self.node = (resolved_node or DEFAULT_NODE).rstrip("/")
        self.chain_id = chain_id or DEFAULT_CHAIN_ID
        self.account = account
        self._keys = {"posting": posting_key, "active": active_key}
        self.timeout_seconds = timeout_seconds
        self._session_factory = session_factory
        self._sleep_fn = sleep_fn or time.sleep
        self._monotonic_fn = monotonic_fn or time.monotonic

    @classmethod
    def from_config(cls, config: CliConfig | None, *, node_override: str | None = None) -> HiveNodeAdapter:
        if config is None:
            return cls(node_override)
        return cls(
            node_override or config.effective_node,
            chain_id=config.effective_chain_id,
            account=config.account,
            posting_key=config.posting_key,
            active_key=config.active_key,
        )

    # -----------------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------------

    def call(self, api: str, method: str, params: Any = None) -> Any:
        """Issue one JSON-RPC request and return the response as received.

        No retry. Transport failures and node-side errors raise.
        """
        full_method = f"{api}.{method}"
        body = _rpc_body(api, method, [] if params is None else params)
        req = urllib.request.Request(
            self.node,
            data=json.dumps(body).encode("utf-8"),
            method="POST",
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
                "User-Agent": _USER_AGENT,
            },
        )
        logger.debug("rpc call node=%s method=%s", self.node, full_method)
        try:
            with urllib.request.urlopen(req, timeout=self.timeout_seconds) as resp:
                payload = json.loads(resp.read().decode("utf-8"))
        except urllib.error.HTTPError as exc:
            raw = exc.read().decode("utf-8", errors="replace").strip()
            message = f"hive_rpc_http_error:{exc.code}"
            if raw:
                message = f"{message}:{raw[:160]}"
            raise RuntimeError(message) from exc
        except urllib.error.URLError as exc:
            raise RuntimeError(f"hive_rpc_network_error:{exc.reason}") from exc
        return _checked_payload(full_method, payload)

    async def call_async(self, api: str, method: str, params: Any = None) -> Any:
        full_method = f"{api}.{method}"
        body = _rpc_body(api, method, [] if params is None else params)
        if self._session_factory is None:
            import aiohttp

            session_cm = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
                headers={"User-Agent": _USER_AGENT},
            )
        else:
            session_cm = self._session_factory()

        logger.debug("rpc call_async node=%s method=%s", self.node, full_method)
        async with session_cm as session:
            async with session.post(self.node, json=body) as response:
                payload = await response.json(content_type=None)
        return _checked_payload(full_method, payload)

    # -----------------------------------------------------------------------
    # Broadcast
    # -----------------------------------------------------------------------

    def _require_signing_key(self, key_type: str) -> str:
        if key_type not in KEY_TYPES:
            raise ValueError(f"Key type must be posting or active: {key_type}")
        key = self._keys.get(key_type)
        if not key:
            raise ValueError(
                f"{key_type} key is not configured. Run 'hive config' or set {_KEY_ENV_BY_TYPE[key_type]}."
            )
        if not self.account:
            raise ValueError(f"Account is not configured. Run 'hive config' or set {ACCOUNT_ENV}.")
        return key

    def _new_blockchain(self, hive_module: Any, key: str) -> Any:
        kwargs: dict[str, Any] = {"node": self.node, "keys": [key], "num_retries": 0}
        if self.chain_id != DEFAULT_CHAIN_ID:
            kwargs["custom_chains"] = {
                "HIVE_CUSTOM": {
                    "chain_id": self.chain_id,
                    "min_version": "0.0.0",
                    "prefix": "STM",
                    "chain_assets": _HIVE_CHAIN_ASSETS,
                }
            }
        return hive_module.Hive(**kwargs)

    @staticmethod
    def _to_chain_operation(operations_module: Any, operation: Operation, prefix: str) -> Any:
        class_name = operation.type[:1].upper() + operation.type[1:]
        op_class = getattr(operations_module, class_name, None)
        if op_class is None:
            raise ValueError(f"unsupported operation type: {operation.type}")
        return op_class(**{**operation.value, "prefix": prefix})

    def broadcast(self, operations: list[Operation], key_type: str = "posting") -> Any:
        """Sign every operation into one transaction and broadcast it.

        ``TransactionBuilder.broadcast`` signs on its own so that it can attach
        ``trx_id`` to the result; signing beforehand would drop the id.
        Library and node failures surface as ``RuntimeError``.
        """
        key = self._require_signing_key(key_type)
        if not operations:
            raise ValueError("no operations to broadcast")
        hive_module, txbuilder_module, operations_module, nectar_errors = _import_nectar()
        try:
            blockchain = self._new_blockchain(hive_module, key)
            prefix = getattr(blockchain, "prefix", "STM")
            tx = txbuilder_module.TransactionBuilder(blockchain_instance=blockchain)
            for operation in operations:
                tx.appendOps(self._to_chain_operation(operations_module, operation, prefix))
            tx.appendWif(key)
            logger.info(
                "broadcast account=%s key_type=%s ops=%s",
                self.account,
                key_type,
                ",".join(op.type for op in operations),
            )
            return tx.broadcast()
        except nectar_errors as exc:
            raise RuntimeError(f"hive_broadcast_error:{exc}") from exc

    def wait_for_transaction(self, tx_id: str, timeout_ms: int = DEFAULT_CONFIRMATION_TIMEOUT_MS) -> Any:
        """Poll until the transaction is in a block or ``timeout_ms`` elapses."""
        if not tx_id:
            raise ValueError("transaction id missing from broadcast result; cannot wait for confirmation")
        timeout_seconds = max(0, timeout_ms) / 1000.0
        start = self._monotonic_fn()
        polls = 0
        while True:
            polls += 1
            try:
                response = self.call("condenser_api", "get_transaction", [tx_id])
            except (RuntimeError, ValueError) as exc:
                logger.debug("tx %s not yet visible (poll %s): %s", tx_id, polls, exc)
                response = None
            info = response.get("result", response) if isinstance(response, dict) else None
            if isinstance(info, dict) and info.get("block_num"):
                logger.info("tx %s confirmed block_num=%s polls=%s", tx_id, info["block_num"], polls)
                return info
            elapsed = self._monotonic_fn() - start
            if elapsed >= timeout_seconds:
                raise TransactionTimeoutError(tx_id, elapsed)
            self._sleep_fn(CONFIRMATION_POLL_INTERVAL_SECONDS)
