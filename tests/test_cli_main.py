from __future__ import annotations

import io
import json
from types import SimpleNamespace

import pytest

import hivecli.adapters.hive_node as hive_node
import hivecli.cli.main as cli_main
import hivecli.logging_setup as logging_setup
from hivecli.config.io import load_config_file, save_config
from hivecli.config.models import CliConfig
from hivecli.core.types import Operation
from tests.logging_helpers import reset_concurrent_log_handlers

_PROPS = {"total_vesting_fund_hive": "200.000 HIVE", "total_vesting_shares": "400.000000 VESTS"}


class _FakeClient:
    def __init__(self, responses: dict | None = None) -> None:
        self.responses = responses or {}
        self.calls: list[tuple] = []
        self.broadcasts: list[tuple[list[Operation], str]] = []
        self.waited: list[str] = []

    def call(self, api, method, params=None):
        self.calls.append((f"{api}.{method}", params))
        response = self.responses.get(f"{api}.{method}")
        if isinstance(response, Exception):
            raise response
        return response

    async def call_async(self, api, method, params=None):
        return self.call(api, method, params)

    def broadcast(self, operations, key_type="posting"):
        self.broadcasts.append((list(operations), key_type))
        return {"operations": [op.to_pair() for op in operations], "signatures": ["1f00"], "trx_id": "tx-1"}

    def wait_for_transaction(self, tx_id, timeout_ms=30_000):
        _ = timeout_ms
        self.waited.append(tx_id)
        return {"block_num": 9}


@pytest.fixture
def hive_env(tmp_path, monkeypatch):
    monkeypatch.setenv("HIVE_CLI_HOME", str(tmp_path))
    for name in ("HIVE_ACCOUNT", "HIVE_POSTING_KEY", "HIVE_ACTIVE_KEY", "HIVE_NODE", "HIVE_JSON_OUTPUT"):
        monkeypatch.delenv(name, raising=False)
    reset_concurrent_log_handlers(module=logging_setup)
    yield tmp_path
    reset_concurrent_log_handlers(module=logging_setup)


@pytest.fixture
def fake_client(monkeypatch):
    client = _FakeClient()
    seen: list = []

    def _factory(config, node_override=None):
        seen.append((config, node_override))
        return client

    monkeypatch.setattr(cli_main, "_new_client", _factory)
    client.seen = seen
    return client


def _run(argv: list[str]) -> int:
    with pytest.raises(SystemExit) as excinfo:
        cli_main.main(argv)
    return int(excinfo.value.code)


def _configure(tmp_path, **kwargs) -> None:
    save_config(CliConfig(**{"account": "alice", "posting_key": "5Jposting", **kwargs}), tmp_path / "config.json")


def test_publish_new_post_builds_single_comment(hive_env, fake_client, capsys) -> None:
    _configure(hive_env)
    fake_client.responses["bridge.get_post"] = {"result": None}

    code = _run(["publish", "--permlink", "p1", "--title", "T", "--body", "hello", "--tags", "a,b"])

    assert code == 0
    [(operations, key_type)] = fake_client.broadcasts
    assert key_type == "posting"
    assert [op.type for op in operations] == ["comment"]
    comment = operations[0].value
    assert comment["author"] == "alice"
    assert comment["parent_author"] == ""
    assert comment["parent_permlink"] == "p1"
    assert json.loads(comment["json_metadata"]) == {"tags": ["a", "b"]}
    err = capsys.readouterr().err
    assert "Comment created successfully" in err


def test_publish_existing_post_reports_update(hive_env, fake_client, capsys) -> None:
    _configure(hive_env)
    fake_client.responses["bridge.get_post"] = {"result": {"author": "alice", "permlink": "p1"}}
    assert _run(["post", "-p", "p1", "-b", "hello"]) == 0
    assert "Comment updated successfully" in capsys.readouterr().err


def test_publish_lookup_failure_is_treated_as_new(hive_env, fake_client, capsys) -> None:
    _configure(hive_env)
    fake_client.responses["bridge.get_post"] = RuntimeError("hive_rpc_network_error:timeout")
    assert _run(["publish", "-p", "p1", "-b", "hello"]) == 0
    assert len(fake_client.broadcasts) == 1
    assert "Comment created successfully" in capsys.readouterr().err


def test_publish_reads_body_from_stdin(hive_env, fake_client, monkeypatch) -> None:
    _configure(hive_env)
    monkeypatch.setattr("sys.stdin", io.StringIO("from stdin"))
    assert _run(["publish", "-p", "p1", "--body-file", "-"]) == 0
    assert fake_client.broadcasts[0][0][0].value["body"] == "from stdin"


def test_invalid_metadata_fails_before_any_network_call(hive_env, fake_client, capsys) -> None:
    _configure(hive_env)
    code = _run(["publish", "-p", "p1", "-b", "hello", "--metadata", "{bad"])
    assert code == 1
    assert fake_client.calls == []
    assert fake_client.broadcasts == []
    assert "Invalid JSON in metadata option" in capsys.readouterr().err


def test_broadcast_without_account_fails(hive_env, fake_client, capsys) -> None:
    assert _run(["vote", "--author", "bob", "--permlink", "p"]) == 1
    assert "Account not specified" in capsys.readouterr().err
    assert fake_client.broadcasts == []


def test_vote_from_url_with_wait(hive_env, fake_client, capsys) -> None:
    _configure(hive_env)
    code = _run(["vote", "--url", "https://peakd.com/hive-1/@bob/my-post", "--weight", "25", "--wait"])
    assert code == 0
    [(operations, _)] = fake_client.broadcasts
    assert operations[0].value == {"voter": "alice", "author": "bob", "permlink": "my-post", "weight": 2500}
    assert fake_client.waited == ["tx-1"]
    assert "Waiting for confirmation" in capsys.readouterr().err


def test_json_mode_prints_broadcast_result_only(hive_env, fake_client, capsys, monkeypatch) -> None:
    _configure(hive_env)
    monkeypatch.setenv("HIVE_JSON_OUTPUT", "1")
    assert _run(["follow", "bob"]) == 0
    out, err = capsys.readouterr()
    payload = json.loads(out)
    assert payload["trx_id"] == "tx-1"
    assert payload["operations"][0][0] == "custom_json"
    assert err == ""


def test_json_mode_errors_are_structured(hive_env, fake_client, capsys, monkeypatch) -> None:
    _configure(hive_env)
    monkeypatch.setenv("HIVE_JSON_OUTPUT", "1")
    assert _run(["vote", "--author", "bob", "--permlink", "p", "--weight", "0"]) == 1
    payload = json.loads(capsys.readouterr().out)
    assert payload["success"] is False
    assert "Vote weight" in payload["error"]


def test_claim_with_nothing_pending(hive_env, fake_client, capsys) -> None:
    _configure(hive_env)
    fake_client.responses["condenser_api.get_accounts"] = {
        "result": [
            {
                "name": "alice",
                "reward_hive_balance": "0.000 HIVE",
                "reward_hbd_balance": "0.000 HBD",
                "reward_vesting_balance": "0.000000 VESTS",
            }
        ]
    }
    assert _run(["claim"]) == 0
    assert fake_client.broadcasts == []
    assert "No pending rewards to claim." in capsys.readouterr().out


def test_claim_broadcasts_with_posting_key(hive_env, fake_client) -> None:
    _configure(hive_env)
    fake_client.responses["condenser_api.get_accounts"] = {
        "result": [{"reward_hive_balance": "1.000 HIVE", "reward_hbd_balance": "0.000 HBD"}]
    }
    assert _run(["claim"]) == 0
    [(operations, key_type)] = fake_client.broadcasts
    assert key_type == "posting"
    assert operations[0].type == "claim_reward_balance"


def test_delegate_converts_hp_with_active_key(hive_env, fake_client) -> None:
    _configure(hive_env, active_key="5Jactive")
    fake_client.responses["database_api.get_dynamic_global_properties"] = _PROPS
    assert _run(["delegate", "bob", "100 HP"]) == 0
    [(operations, key_type)] = fake_client.broadcasts
    assert key_type == "active"
    assert operations == [
        Operation(
            "delegate_vesting_shares",
            {"delegator": "alice", "delegatee": "bob", "vesting_shares": "200.000000 VESTS"},
        )
    ]


def test_transfer_without_active_key_declined(hive_env, fake_client, monkeypatch, capsys) -> None:
    _configure(hive_env)
    monkeypatch.setattr("builtins.input", lambda _prompt: "n")
    assert _run(["transfer", "--to", "bob", "--amount", "1.000 HIVE"]) == 0
    assert fake_client.broadcasts == []
    assert "Cancelled" in capsys.readouterr().out


def test_transfer_without_active_key_eof_counts_as_no(hive_env, fake_client, monkeypatch) -> None:
    _configure(hive_env)

    def _eof(_prompt):
        raise EOFError

    monkeypatch.setattr("builtins.input", _eof)
    assert _run(["transfer", "--to", "bob", "--amount", "1.000 HIVE"]) == 0
    assert fake_client.broadcasts == []


def test_transfer_with_active_key_skips_prompt(hive_env, fake_client, monkeypatch) -> None:
    _configure(hive_env, active_key="5Jactive")

    def _no_prompt(_prompt):
        raise AssertionError("prompt not expected")

    monkeypatch.setattr("builtins.input", _no_prompt)
    assert _run(["transfer", "--to", "bob", "--amount", "1.000 HBD", "--memo", "thanks"]) == 0
    [(operations, key_type)] = fake_client.broadcasts
    assert key_type == "active"
    assert operations[0].value == {"from": "alice", "to": "bob", "amount": "1.000 HBD", "memo": "thanks"}


def test_transfer_rejects_amount_without_three_decimals(hive_env, fake_client, capsys) -> None:
    _configure(hive_env, active_key="5Jactive")
    assert _run(["transfer", "--to", "bob", "--amount", "1 HIVE"]) == 1
    assert "exactly 3 decimals" in capsys.readouterr().err


def test_custom_json_with_active_auths_uses_active_key(hive_env, fake_client) -> None:
    _configure(hive_env, active_key="5Jactive")
    assert _run(["custom-json", "--id", "app", "--json", '{"x": 1}', "--required-active", "alice"]) == 0
    assert fake_client.broadcasts[0][1] == "active"


def test_raw_broadcast_parses_operations(hive_env, fake_client) -> None:
    _configure(hive_env)
    ops = '[["vote", {"voter": "alice", "author": "bob", "permlink": "p", "weight": 100}]]'
    assert _run(["broadcast", ops]) == 0
    assert fake_client.broadcasts[0][0][0].type == "vote"


def test_profile_update_merges_existing_metadata(hive_env, fake_client) -> None:
    _configure(hive_env)
    fake_client.responses["condenser_api.get_accounts"] = {
        "result": [{"posting_json_metadata": '{"profile": {"name": "Alice"}}'}]
    }
    assert _run(["profile", "update", "--about", "builder"]) == 0
    [(operations, key_type)] = fake_client.broadcasts
    assert key_type == "posting"
    assert json.loads(operations[0].value["posting_json_metadata"]) == {
        "profile": {"name": "Alice", "about": "builder"}
    }


def test_community_subscribe_uses_subcommand_account(hive_env, fake_client) -> None:
    _configure(hive_env)
    assert _run(["community", "subscribe", "hive-123456", "--account", "carol"]) == 0
    operation = fake_client.broadcasts[0][0][0]
    assert operation.value["required_posting_auths"] == ["carol"]


def test_global_node_flag_reaches_client(hive_env, fake_client) -> None:
    fake_client.responses["database_api.get_dynamic_global_properties"] = {"result": {"head_block_number": 1}}
    assert _run(["--node", "https://flag.node", "props"]) == 0
    assert fake_client.seen[-1][1] == "https://flag.node"


def test_history_filters_by_operation_type(hive_env, fake_client, capsys) -> None:
    fake_client.responses["condenser_api.get_account_history"] = {
        "result": [
            [1, {"timestamp": "2024-01-01T00:00:00", "op": ["vote", {"author": "bob", "permlink": "p", "weight": 10000}]}],
            [2, {"timestamp": "2024-01-01T00:00:03", "op": ["transfer", {"to": "bob", "amount": "1.000 HIVE", "memo": ""}]}],
        ]
    }
    assert _run(["history", "alice", "--filter", "transfer", "--json"]) == 0
    assert fake_client.calls[-1] == ("condenser_api.get_account_history", ["alice", -1, 20])
    rows = json.loads(capsys.readouterr().out)
    assert [row[0] for row in rows] == [2]


def test_call_prints_unwrapped_or_raw(hive_env, fake_client, capsys) -> None:
    fake_client.responses["block_api.get_block"] = {"jsonrpc": "2.0", "result": {"block": {}}, "id": 1}
    assert _run(["call", "block_api", "get_block", '{"block_num": 1}']) == 0
    assert json.loads(capsys.readouterr().out) == {"block": {}}
    assert _run(["call", "block_api", "get_block", '{"block_num": 1}', "--raw"]) == 0
    assert json.loads(capsys.readouterr().out)["jsonrpc"] == "2.0"


def test_balance_converts_vests(hive_env, fake_client, capsys) -> None:
    fake_client.responses["condenser_api.get_accounts"] = {
        "result": [
            {
                "balance": "1.000 HIVE",
                "hbd_balance": "2.000 HBD",
                "vesting_shares": "400.000000 VESTS",
                "delegated_vesting_shares": "200.000000 VESTS",
                "received_vesting_shares": "0.000000 VESTS",
            }
        ]
    }
    fake_client.responses["database_api.get_dynamic_global_properties"] = {"result": _PROPS}
    assert _run(["balance", "alice"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["hive_power"] == "200.000 HP"
    assert payload["delegated_hp"] == "100.000 HP"
    assert payload["effective_hp"] == "100.000 HP"


def test_rc_reports_percentage(hive_env, fake_client, capsys, monkeypatch) -> None:
    monkeypatch.setenv("HIVE_JSON_OUTPUT", "1")
    fake_client.responses["rc_api.find_rc_accounts"] = {
        "result": {
            "rc_accounts": [
                {"max_rc": 1000, "rc_manabar": {"current_mana": 1000, "last_update_time": 0}}
            ]
        }
    }
    assert _run(["rc", "alice"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["percent"] == 100.0
    assert payload["current_mana"] == 1000


def test_config_set_get_show_and_clear(hive_env, capsys) -> None:
    assert _run(["config", "set", "account", "alice"]) == 0
    assert _run(["config", "set", "postingKey", "5JabcdefghijWXYZ"]) == 0
    capsys.readouterr()

    assert _run(["config", "get", "account"]) == 0
    assert capsys.readouterr().out.strip() == "alice"

    assert _run(["config", "--show"]) == 0
    shown = json.loads(capsys.readouterr().out)
    assert shown == {"account": "alice", "postingKey": "5Jab********WXYZ"}

    assert _run(["config", "--clear"]) == 0
    assert load_config_file(hive_env / "config.json") is None


def test_config_interactive_saves_answers(hive_env, monkeypatch) -> None:
    answers = iter(["alice", "5Jposting", "", ""])
    monkeypatch.setattr("builtins.input", lambda _prompt: next(answers))
    assert _run(["config"]) == 0
    assert load_config_file(hive_env / "config.json") == CliConfig(
        account="alice", posting_key="5Jposting", node="https://api.hive.blog"
    )


def test_status_without_config_exits_nonzero(hive_env, capsys) -> None:
    assert _run(["status"]) == 1
    assert "No configuration found" in capsys.readouterr().err


def test_status_reports_key_presence(hive_env, capsys) -> None:
    _configure(hive_env)
    assert _run(["status"]) == 0
    out = capsys.readouterr().out
    assert "Account: alice" in out
    assert "Posting Key: Set" in out
    assert "Active Key: Not set" in out


def test_node_rejection_is_reported_not_raised(hive_env, capsys, monkeypatch) -> None:
    from nectar.exceptions import NectarException
    from nectarapi.exceptions import NectarApiException, UnhandledRPCError

    class _RejectingTransactionBuilder:
        def __init__(self, blockchain_instance=None) -> None:
            _ = blockchain_instance

        def appendOps(self, op) -> None:
            _ = op

        def appendWif(self, wif) -> None:
            _ = wif

        def broadcast(self):
            raise UnhandledRPCError("missing required posting authority")

    class _Vote:
        def __init__(self, **kwargs) -> None:
            self.kwargs = kwargs

    monkeypatch.setattr(
        hive_node,
        "_import_nectar",
        lambda: (
            SimpleNamespace(Hive=lambda **kwargs: SimpleNamespace(prefix="STM")),
            SimpleNamespace(TransactionBuilder=_RejectingTransactionBuilder),
            SimpleNamespace(Vote=_Vote),
            (NectarException, NectarApiException),
        ),
    )
    _configure(hive_env)
    monkeypatch.setenv("HIVE_JSON_OUTPUT", "1")

    assert _run(["vote", "--author", "bob", "-p", "p", "-w", "50"]) == 1
    payload = json.loads(capsys.readouterr().out)
    assert payload["success"] is False
    assert "missing required posting authority" in payload["error"]


@pytest.mark.parametrize(
    "argv",
    [
        ["vote", "--weight"],
        ["transfer", "--to", "bob"],
        ["publish", "--body", "x"],
        ["broadcast", "[]", "--key-type", "owner"],
        [],
    ],
)
def test_usage_errors_exit_with_one(hive_env, capsys, argv) -> None:
    assert _run(argv) == 1
    assert "Error: hive" in capsys.readouterr().err


def test_usage_error_in_json_mode_is_structured(hive_env, capsys, monkeypatch) -> None:
    monkeypatch.setenv("HIVE_JSON_OUTPUT", "1")
    assert _run(["vote", "--weight"]) == 1
    out, err = capsys.readouterr()
    payload = json.loads(out)
    assert payload["success"] is False
    assert "--weight" in payload["error"]
    assert err == ""


def test_confirmation_prompt_stays_off_stdout_in_json_mode(hive_env, fake_client, capsys, monkeypatch) -> None:
    _configure(hive_env)
    monkeypatch.setenv("HIVE_JSON_OUTPUT", "1")
    prompts: list[str] = []

    def _decline(prompt):
        prompts.append(prompt)
        return "n"

    monkeypatch.setattr("builtins.input", _decline)
    assert _run(["transfer", "--to", "bob", "--amount", "1.000 HIVE"]) == 0
    out, err = capsys.readouterr()
    assert json.loads(out) == {"message": "Cancelled", "cancelled": True}
    assert "Continue anyway?" in err
    assert prompts == [""]
