from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import time
from collections.abc import Callable
from typing import Any, NoReturn

from hivecli.adapters.hive_node import DEFAULT_CONFIRMATION_TIMEOUT_MS, HiveNodeAdapter
from hivecli.cli import output
from hivecli.cli.formatting import (
    filter_history,
    format_community_lines,
    format_feed_line,
    format_history_entry,
    format_rc_lines,
    format_reply_line,
    format_subscriber,
    rc_summary,
)
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
from hivecli.config.models import CONFIG_FILE_KEYS, DEFAULT_NODE, CliConfig, cli_config_to_dict, mask_secret
from hivecli.core.content import (
    parse_metadata,
    resolve_author_or_url,
    resolve_author_permlink,
    resolve_text_option,
)
from hivecli.core.economics import RcSnapshot, parse_hp_amount, vests_to_hp
from hivecli.core.operations import (
    build_claim,
    build_community_subscription,
    build_custom_json,
    build_delegate,
    build_delete_comment,
    build_edit,
    build_follow,
    build_profile_update,
    build_publish,
    build_reblog,
    build_reply,
    build_transfer,
    build_vote,
    parse_raw_operations,
    validate_key_type,
)
from hivecli.core.results import PostLookup, extract_tx_id, unwrap_result
from hivecli.core.types import (
    CustomJsonOptions,
    EditOptions,
    Operation,
    PayoutOptions,
    ProfileUpdate,
    PublishOptions,
)
from hivecli.logging_setup import initialize_cli_file_logging

ACCOUNT_MISSING_MESSAGE = (
    "Account not specified. Use --account, HIVE_ACCOUNT, or configure with 'hive config'"
)
ACTIVE_KEY_PROMPT = (
    "Active key not configured. This operation requires an active key. Continue anyway? [y/N] "
)

_cli_logger = logging.getLogger("hivecli.cli")


# ---------------------------------------------------------------------------
# Shared plumbing
# ---------------------------------------------------------------------------


def _new_client(config: CliConfig | None, node_override: str | None = None) -> HiveNodeAdapter:
    return HiveNodeAdapter.from_config(config, node_override=node_override)


def _require_config(account_override: str | None, node_override: str | None) -> CliConfig:
    config = resolve_config(account_override=account_override, node_override=node_override)
    if config is None:
        raise ValueError(ACCOUNT_MISSING_MESSAGE)
    return config


def _query_client(account_override: str | None, node_override: str | None) -> HiveNodeAdapter:
    config = resolve_config(account_override=account_override, node_override=node_override)
    return _new_client(config, node_override)


def _confirm_without_active_key(config: CliConfig, input_fn: Callable[[str], str] | None = None) -> bool:
    if config.active_key:
        return True
    prompt = ACTIVE_KEY_PROMPT
    if output.is_json_mode():
        # stdout carries only JSON
        print(prompt, end="", file=sys.stderr, flush=True)
        prompt = ""
    try:
        answer = (input_fn or input)(prompt)
    except EOFError:
        return False
    return answer.strip().lower() in {"y", "yes"}


def _cancelled() -> int:
    output.print_message("Cancelled", cancelled=True)
    return 0


def _broadcast_and_report(
    client: HiveNodeAdapter,
    operations: list[Operation],
    *,
    key_type: str,
    wait: bool,
    progress: str,
    success: str,
) -> int:
    output.status(progress)
    result = client.broadcast(operations, key_type)
    if wait:
        output.status("Waiting for confirmation...")
        client.wait_for_transaction(extract_tx_id(result) or "", DEFAULT_CONFIRMATION_TIMEOUT_MS)
    output.succeed(success, result)
    return 0


def _read_body(body: str | None, body_file: str | None) -> str | None:
    return resolve_text_option(literal=body, source=body_file, label="body")


def _lookup_post(client: HiveNodeAdapter, author: str, permlink: str) -> PostLookup:
    try:
        post = unwrap_result(client.call("bridge", "get_post", {"author": author, "permlink": permlink}))
    except (RuntimeError, ValueError, OSError) as exc:
        _cli_logger.warning("existing post lookup failed for @%s/%s: %s", author, permlink, exc)
        return PostLookup.LOOKUP_FAILED
    if isinstance(post, dict) and post.get("author") == author and post.get("permlink") == permlink:
        return PostLookup.FOUND
    return PostLookup.NOT_FOUND


def _fetch_account(client: HiveNodeAdapter, account: str) -> dict[str, Any] | None:
    accounts = unwrap_result(client.call("condenser_api", "get_accounts", [[account]]))
    if isinstance(accounts, list) and accounts and isinstance(accounts[0], dict):
        return accounts[0]
    return None


# ---------------------------------------------------------------------------
# Configuration commands
# ---------------------------------------------------------------------------


def _config_show() -> int:
    config = load_config_file()
    if config is None:
        output.print_message("No configuration set")
        return 0
    payload = cli_config_to_dict(config)
    for secret_key in ("postingKey", "activeKey"):
        if secret_key in payload:
            payload[secret_key] = mask_secret(payload[secret_key])
    output.print_result(payload)
    return 0


def _config_clear() -> int:
    clear_config()
    output.print_message("Configuration cleared")
    return 0


def _config_interactive(input_fn: Callable[[str], str] | None = None) -> int:
    existing = load_config_file()

    def _ask(label: str, default: str | None) -> str:
        suffix = f" [{default}]" if default else ""
        answer = (input_fn or input)(f"{label}{suffix}: ").strip()
        return answer or (default or "")

    account = _ask("Hive account name", existing.account if existing else None)
    if not account:
        raise ValueError("Account name is required")
    posting_key = _ask(
        "Posting key (optional but recommended)", existing.posting_key if existing else None
    )
    active_key = _ask(
        "Active key (optional, required for transfers)", existing.active_key if existing else None
    )
    node = _ask("Hive node URL", (existing.node if existing else None) or DEFAULT_NODE)
    config = CliConfig(
        account=account,
        posting_key=posting_key or None,
        active_key=active_key or None,
        node=node or None,
        chain_id=existing.chain_id if existing else None,
    )
    path = save_config(config)
    output.succeed(f"Configuration saved to {path}")
    return 0


def _config_set(key: str, value: str) -> int:
    set_config_value(key, value)
    output.succeed(f"Set {key}")
    return 0


def _config_get(key: str) -> int:
    value = get_config_value(key)
    if value:
        output.print_message(value, key=key, value=value)
    else:
        output.print_message("Not set", key=key, value=None)
    return 0


def _status() -> int:
    config = load_config_file()
    if config is None:
        output.fail("No configuration found. Run 'hive config' to set up your account")
        return 1
    summary = {
        "config_path": str(default_config_path()),
        "account": config.account,
        "node": config.node or f"Default ({DEFAULT_NODE})",
        "posting_key_set": bool(config.posting_key),
        "active_key_set": bool(config.active_key),
    }
    if output.is_json_mode():
        output.print_result(summary)
        return 0
    print("✔ Configuration found")
    print(f"  Account: {summary['account']}")
    print(f"  Node: {summary['node']}")
    print(f"  Posting Key: {'Set' if summary['posting_key_set'] else 'Not set'}")
    print(f"  Active Key: {'Set' if summary['active_key_set'] else 'Not set'}")
    return 0


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def _account(*, client: HiveNodeAdapter, name: str) -> int:
    output.status("Fetching account...")
    output.print_result(client.call("condenser_api", "get_accounts", [[name]]))
    return 0


def _props(*, client: HiveNodeAdapter) -> int:
    output.status("Fetching properties...")
    output.print_result(client.call("database_api", "get_dynamic_global_properties", {}))
    return 0


def _block(*, client: HiveNodeAdapter, number: str) -> int:
    try:
        block_num = int(number)
    except ValueError as exc:
        raise ValueError(f"Block number must be an integer: {number}") from exc
    output.status(f"Fetching block {block_num}...")
    output.print_result(client.call("block_api", "get_block", {"block_num": block_num}))
    return 0


def _content(*, client: HiveNodeAdapter, author_or_url: str, permlink: str | None) -> int:
    author, perm = resolve_author_or_url(author_or_url, permlink)
    output.status("Fetching content...")
    output.print_result(client.call("bridge", "get_post", {"author": author, "permlink": perm}))
    return 0


def _replies(*, client: HiveNodeAdapter, author_or_url: str, permlink: str | None) -> int:
    author, perm = resolve_author_or_url(author_or_url, permlink)
    output.status("Fetching replies...")
    raw = client.call("condenser_api", "get_content_replies", [author, perm])
    replies = unwrap_result(raw)
    if output.is_json_mode():
        output.print_result(replies)
        return 0
    if not isinstance(replies, list) or not replies:
        print("No replies found.")
        return 0
    for reply in replies:
        print(format_reply_line(reply))
    return 0


def _feed(*, client: HiveNodeAdapter, name: str, limit: int) -> int:
    output.status(f"Fetching feed for @{name}...")
    raw = client.call(
        "bridge", "get_account_posts", {"sort": "feed", "account": name, "limit": int(limit)}
    )
    posts = unwrap_result(raw)
    if output.is_json_mode():
        output.print_result(posts)
        return 0
    if not isinstance(posts, list) or not posts:
        print("No posts found.")
        return 0
    for post in posts:
        print(format_feed_line(post))
    return 0


def _call(*, client: HiveNodeAdapter, api: str, method: str, params: str, raw: bool) -> int:
    try:
        parsed_params = json.loads(params)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON parameters: {exc}") from exc
    output.status(f"Calling {api}.{method}...")
    response = client.call(api, method, parsed_params)
    output.print_result(response if raw else unwrap_result(response))
    return 0


def _rc(*, client: HiveNodeAdapter, name: str, now_fn: Callable[[], float] = time.time) -> int:
    output.status("Fetching RC...")
    result = unwrap_result(client.call("rc_api", "find_rc_accounts", {"accounts": [name]}))
    rows = result.get("rc_accounts") if isinstance(result, dict) else None
    if not rows:
        raise ValueError(f"No RC data found for @{name}")
    summary = rc_summary(name, RcSnapshot.from_rc_account(rows[0]), now_fn())
    if output.is_json_mode():
        output.print_result(summary)
        return 0
    for line in format_rc_lines(summary):
        print(line)
    return 0


def _history(
    *, client: HiveNodeAdapter, name: str, limit: int, start: int, op_filter: str | None, as_json: bool
) -> int:
    output.status(f"Fetching history for @{name}...")
    raw = client.call("condenser_api", "get_account_history", [name, int(start), int(limit)])
    entries = unwrap_result(raw)
    filtered = filter_history(entries if isinstance(entries, list) else [], op_filter)
    if as_json or output.is_json_mode():
        output.print_result(filtered)
        return 0
    if not filtered:
        suffix = f" matching type '{op_filter}'" if op_filter else ""
        print(f"No operations found{suffix}.")
        return 0
    for seq, tx in reversed(filtered):
        print(format_history_entry(seq, tx))
    return 0


def _balance(*, client: HiveNodeAdapter, name: str) -> int:
    async def _fetch_both() -> tuple[Any, Any]:
        return await asyncio.gather(
            client.call_async("condenser_api", "get_accounts", [[name]]),
            client.call_async("database_api", "get_dynamic_global_properties", {}),
        )

    output.status(f"Fetching balances for @{name}...")
    accounts_raw, props_raw = asyncio.run(_fetch_both())
    accounts = unwrap_result(accounts_raw)
    props = unwrap_result(props_raw)
    if not isinstance(accounts, list) or not accounts:
        raise ValueError(f"Account @{name} not found")
    account = accounts[0]
    props = props if isinstance(props, dict) else {}
    own_hp = vests_to_hp(account.get("vesting_shares"), props)
    delegated_hp = vests_to_hp(account.get("delegated_vesting_shares"), props)
    received_hp = vests_to_hp(account.get("received_vesting_shares"), props)
    payload = {
        "account": name,
        "hive": account.get("balance"),
        "hbd": account.get("hbd_balance"),
        "savings_hive": account.get("savings_balance"),
        "savings_hbd": account.get("savings_hbd_balance"),
        "hive_power": f"{own_hp:.3f} HP",
        "delegated_hp": f"{delegated_hp:.3f} HP",
        "received_hp": f"{received_hp:.3f} HP",
        "effective_hp": f"{own_hp - delegated_hp + received_hp:.3f} HP",
        "pending_rewards": {
            "hive": account.get("reward_hive_balance"),
            "hbd": account.get("reward_hbd_balance"),
            "vests": account.get("reward_vesting_balance"),
        },
    }
    output.print_result(payload)
    return 0


def _community_search(*, client: HiveNodeAdapter, query: str) -> int:
    output.status("Searching communities...")
    raw = client.call("bridge", "list_communities", {"query": query})
    communities = unwrap_result(raw)
    if output.is_json_mode():
        output.print_result(raw)
        return 0
    if not isinstance(communities, list) or not communities:
        print("No communities found.")
        return 0
    for community in communities:
        for line in format_community_lines(community):
            print(line)
    return 0


def _community_info(*, client: HiveNodeAdapter, name: str) -> int:
    output.status("Fetching community info...")
    raw = client.call("bridge", "get_community", {"name": name})
    output.print_result(raw if output.is_json_mode() else unwrap_result(raw))
    return 0


def _community_subscribers(*, client: HiveNodeAdapter, name: str) -> int:
    output.status("Fetching community subscribers...")
    raw = client.call("bridge", "list_subscribers", {"community": name})
    subscribers = unwrap_result(raw)
    if output.is_json_mode():
        output.print_result(raw)
        return 0
    if not isinstance(subscribers, list) or not subscribers:
        print("No subscribers found.")
        return 0
    for subscriber in subscribers:
        print(format_subscriber(subscriber))
    return 0


# ---------------------------------------------------------------------------
# Broadcasts
# ---------------------------------------------------------------------------


def _vote(
    *,
    config: CliConfig,
    author: str | None,
    permlink: str | None,
    url: str | None,
    weight: str,
    wait: bool,
) -> int:
    author, permlink = resolve_author_permlink(author=author, permlink=permlink, url=url)
    operations = build_vote(config.account, author, permlink, weight)
    return _broadcast_and_report(
        _new_client(config),
        operations,
        key_type="posting",
        wait=wait,
        progress="Broadcasting vote...",
        success="Vote broadcasted successfully",
    )


def _publish(
    *,
    config: CliConfig,
    permlink: str,
    title: str,
    body: str | None,
    body_file: str | None,
    parent_author: str,
    parent_permlink: str,
    parent_url: str | None,
    community: str | None,
    tags: str,
    metadata: str,
    payout: PayoutOptions,
    wait: bool,
) -> int:
    if parent_url:
        parent_author, parent_permlink = resolve_author_permlink(
            author=None, permlink=None, url=parent_url, url_flag="--parent-url"
        )
    options = PublishOptions(
        permlink=permlink,
        body=_read_body(body, body_file) or "",
        title=title,
        parent_author=parent_author,
        parent_permlink=parent_permlink,
        community=community,
        tags=tags,
        metadata_json=metadata,
        payout=payout,
    )
    operations = build_publish(config.account, options)

    client = _new_client(config)
    output.status("Checking if this is a new comment or an edit...")
    lookup = _lookup_post(client, config.account, options.permlink)
    return _broadcast_and_report(
        client,
        operations,
        key_type="posting",
        wait=wait,
        progress="Broadcasting edit..." if lookup.is_edit else "Broadcasting new comment...",
        success=f"Comment {'updated' if lookup.is_edit else 'created'} successfully",
    )


def _reply(
    *,
    config: CliConfig,
    parent_author_or_url: str,
    parent_permlink: str | None,
    body: str | None,
    body_file: str | None,
    decline_rewards: bool,
    wait: bool,
) -> int:
    parent_author, parent_perm = resolve_author_or_url(parent_author_or_url, parent_permlink)
    operations = build_reply(
        config.account,
        parent_author,
        parent_perm,
        _read_body(body, body_file),
        decline_rewards=decline_rewards,
    )
    return _broadcast_and_report(
        _new_client(config),
        operations,
        key_type="posting",
        wait=wait,
        progress="Broadcasting reply...",
        success="Reply broadcasted successfully",
    )


def _edit(
    *,
    config: CliConfig,
    author_or_url: str,
    permlink: str | None,
    body: str | None,
    body_file: str | None,
    title: str | None,
    tags: str | None,
    wait: bool,
) -> int:
    author, perm = resolve_author_or_url(author_or_url, permlink)
    edit_options = EditOptions(body=_read_body(body, body_file) or "", title=title, tags=tags)
    if not edit_options.body:
        raise ValueError("Body is required. Use --body or --body-file.")
    client = _new_client(config)
    output.status("Fetching existing post...")
    post = unwrap_result(client.call("bridge", "get_post", {"author": author, "permlink": perm}))
    operations = build_edit(author, perm, post, edit_options)
    return _broadcast_and_report(
        client,
        operations,
        key_type="posting",
        wait=wait,
        progress="Broadcasting edit...",
        success="Edit broadcasted successfully",
    )


def _delete_comment(
    *, config: CliConfig, author: str | None, permlink: str | None, url: str | None, wait: bool
) -> int:
    author, permlink = resolve_author_permlink(author=author, permlink=permlink, url=url)
    return _broadcast_and_report(
        _new_client(config),
        build_delete_comment(author, permlink),
        key_type="posting",
        wait=wait,
        progress="Deleting comment...",
        success="Comment deleted successfully",
    )


def _transfer(
    *,
    config: CliConfig,
    to: str,
    amount: str,
    memo: str | None,
    memo_file: str | None,
    wait: bool,
    input_fn: Callable[[str], str] | None = None,
) -> int:
    memo_text = resolve_text_option(literal=memo, source=memo_file, label="memo")
    operations = build_transfer(config.account, to, amount, memo_text)
    if not _confirm_without_active_key(config, input_fn):
        return _cancelled()
    return _broadcast_and_report(
        _new_client(config),
        operations,
        key_type="active",
        wait=wait,
        progress="Broadcasting transfer...",
        success="Transfer broadcasted successfully",
    )


def _delegate(
    *,
    config: CliConfig,
    to: str,
    amount: str,
    wait: bool,
    input_fn: Callable[[str], str] | None = None,
) -> int:
    hp = parse_hp_amount(amount)
    if not _confirm_without_active_key(config, input_fn):
        return _cancelled()
    client = _new_client(config)
    output.status("Fetching global properties...")
    props = unwrap_result(client.call("database_api", "get_dynamic_global_properties", {}))
    operations = build_delegate(config.account, to, hp, props if isinstance(props, dict) else {})
    return _broadcast_and_report(
        client,
        operations,
        key_type="active",
        wait=wait,
        progress="Broadcasting delegation...",
        success="Delegation broadcasted successfully",
    )


def _claim(*, config: CliConfig, wait: bool) -> int:
    client = _new_client(config)
    output.status("Fetching account rewards...")
    operations = build_claim(config.account, _fetch_account(client, config.account))
    if not operations:
        output.print_message("No pending rewards to claim.")
        return 0
    return _broadcast_and_report(
        client,
        operations,
        key_type="posting",
        wait=wait,
        progress="Broadcasting claim...",
        success="Rewards claimed successfully",
    )


def _profile_update(*, config: CliConfig, update: ProfileUpdate, wait: bool) -> int:
    if not update.fields():
        raise ValueError("No profile fields provided.")
    client = _new_client(config)
    output.status("Fetching existing profile...")
    account_info = _fetch_account(client, config.account) or {}
    operations = build_profile_update(
        config.account, parse_metadata(account_info.get("posting_json_metadata")), update
    )
    return _broadcast_and_report(
        client,
        operations,
        key_type="posting",
        wait=wait,
        progress="Broadcasting profile update...",
        success="Profile update broadcasted successfully",
    )


def _social(*, config: CliConfig, action: str, target: str, wait: bool) -> int:
    return _broadcast_and_report(
        _new_client(config),
        build_follow(config.account, target, action),
        key_type="posting",
        wait=wait,
        progress=f"Broadcasting {action}...",
        success=f"{action.capitalize()} broadcasted successfully",
    )


def _reblog(
    *, config: CliConfig, author: str | None, permlink: str | None, url: str | None, wait: bool
) -> int:
    author, permlink = resolve_author_permlink(author=author, permlink=permlink, url=url)
    return _broadcast_and_report(
        _new_client(config),
        build_reblog(config.account, author, permlink),
        key_type="posting",
        wait=wait,
        progress="Broadcasting reblog...",
        success="Reblog broadcasted successfully",
    )


def _community_subscription(*, config: CliConfig, name: str, subscribe: bool, wait: bool) -> int:
    action = "subscribe" if subscribe else "unsubscribe"
    return _broadcast_and_report(
        _new_client(config),
        build_community_subscription(config.account, name, subscribe=subscribe),
        key_type="posting",
        wait=wait,
        progress=f"Broadcasting community {action}...",
        success=f"Community {action}d successfully",
    )


def _custom_json(*, config: CliConfig, options: CustomJsonOptions, wait: bool) -> int:
    operations, key_type = build_custom_json(config.account, options)
    return _broadcast_and_report(
        _new_client(config),
        operations,
        key_type=key_type,
        wait=wait,
        progress="Broadcasting custom JSON...",
        success="Custom JSON broadcasted successfully",
    )


def _raw_broadcast(*, config: CliConfig, operations_json: str, key_type: str, wait: bool) -> int:
    operations = parse_raw_operations(operations_json)
    return _broadcast_and_report(
        _new_client(config),
        operations,
        key_type=validate_key_type(key_type),
        wait=wait,
        progress="Broadcasting operations...",
        success="Operations broadcasted successfully",
    )


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


class _HiveArgumentParser(argparse.ArgumentParser):
    """Usage errors are reported like any other failure and exit 1."""

    def error(self, message: str) -> NoReturn:
        if not output.is_json_mode():
            self.print_usage(sys.stderr)
        output.fail(f"{self.prog}: {message}")
        raise SystemExit(1)


def _add_account_option(parser: argparse.ArgumentParser, help_text: str = "Account name") -> None:
    parser.add_argument("--account", dest="command_account", default=None, help=f"{help_text} (defaults to configured account)")


def _add_wait_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--wait", action="store_true", help="Wait for transaction confirmation before exiting")


def _add_body_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-b", "--body", default=None)
    parser.add_argument("--body-file", default=None, help="Read body from a file ('-' for stdin)")


def _build_parser() -> argparse.ArgumentParser:
    parser = _HiveArgumentParser(prog="hive", description="CLI wrapper for the Hive blockchain API")
    parser.add_argument("-n", "--node", default=None, help="Hive node URL")
    parser.add_argument("-a", "--account", default=None, help="Hive account name")

    sub = parser.add_subparsers(dest="command", required=True)

    p_config = sub.add_parser("config", help="Manage configuration")
    p_config.add_argument("-s", "--show", action="store_true")
    p_config.add_argument("--clear", action="store_true")
    config_sub = p_config.add_subparsers(dest="config_action")
    p_config_set = config_sub.add_parser("set")
    p_config_set.add_argument("key", choices=list(CONFIG_FILE_KEYS))
    p_config_set.add_argument("value")
    p_config_get = config_sub.add_parser("get")
    p_config_get.add_argument("key", choices=list(CONFIG_FILE_KEYS))

    sub.add_parser("status", help="Show configuration status")

    # queries
    p_account = sub.add_parser("account")
    p_account.add_argument("name")
    p_balance = sub.add_parser("balance")
    p_balance.add_argument("name", nargs="?", default=None)
    sub.add_parser("props", aliases=["dynamic-global-properties"])
    p_block = sub.add_parser("block")
    p_block.add_argument("number")
    p_content = sub.add_parser("content")
    p_content.add_argument("author_or_url")
    p_content.add_argument("permlink", nargs="?", default=None)
    p_replies = sub.add_parser("replies")
    p_replies.add_argument("author_or_url")
    p_replies.add_argument("permlink", nargs="?", default=None)
    p_feed = sub.add_parser("feed")
    p_feed.add_argument("name", nargs="?", default=None)
    p_feed.add_argument("-l", "--limit", type=int, default=20)
    p_rc = sub.add_parser("rc")
    p_rc.add_argument("name")
    p_history = sub.add_parser("history")
    p_history.add_argument("name")
    p_history.add_argument("-l", "--limit", type=int, default=20)
    p_history.add_argument("-s", "--start", type=int, default=-1)
    p_history.add_argument("-f", "--filter", dest="op_filter", default=None)
    p_history.add_argument("--json", dest="as_json", action="store_true")
    p_call = sub.add_parser("call")
    p_call.add_argument("api")
    p_call.add_argument("method")
    p_call.add_argument("params", nargs="?", default="{}")
    p_call.add_argument("--raw", action="store_true")

    # content broadcasts
    p_publish = sub.add_parser("publish", aliases=["post", "comment"])
    p_publish.add_argument("-p", "--permlink", required=True)
    p_publish.add_argument("-t", "--title", default="")
    _add_body_options(p_publish)
    p_publish.add_argument("--parent-author", default="")
    p_publish.add_argument("--parent-permlink", default="")
    p_publish.add_argument("--parent-url", default=None)
    p_publish.add_argument("--community", default=None)
    p_publish.add_argument("--tags", default="")
    p_publish.add_argument("--metadata", default="{}")
    p_publish.add_argument("--decline-rewards", action="store_true")
    p_publish.add_argument("--max-payout", default=None)
    p_publish.add_argument("--beneficiaries", default=None)
    p_publish.add_argument("--burn-rewards", action="store_true")
    _add_account_option(p_publish, "Author account name")
    _add_wait_option(p_publish)

    p_reply = sub.add_parser("reply")
    p_reply.add_argument("parent_author_or_url")
    p_reply.add_argument("parent_permlink", nargs="?", default=None)
    _add_body_options(p_reply)
    p_reply.add_argument("--decline-rewards", action="store_true")
    _add_account_option(p_reply, "Reply author account name")
    _add_wait_option(p_reply)

    p_edit = sub.add_parser("edit")
    p_edit.add_argument("author_or_url")
    p_edit.add_argument("permlink", nargs="?", default=None)
    _add_body_options(p_edit)
    p_edit.add_argument("-t", "--title", default=None)
    p_edit.add_argument("--tags", default=None)
    _add_account_option(p_edit, "Author account name")
    _add_wait_option(p_edit)

    p_delete = sub.add_parser("delete-comment")
    p_delete.add_argument("--author", default=None)
    p_delete.add_argument("-p", "--permlink", default=None)
    p_delete.add_argument("--url", default=None)
    _add_account_option(p_delete)
    _add_wait_option(p_delete)

    p_vote = sub.add_parser("vote")
    p_vote.add_argument("--author", default=None)
    p_vote.add_argument("-p", "--permlink", default=None)
    p_vote.add_argument("--url", default=None)
    p_vote.add_argument("-w", "--weight", default="100", help="Vote weight (1-100)")
    _add_account_option(p_vote, "Voter account name")
    _add_wait_option(p_vote)

    # wallet
    p_transfer = sub.add_parser("transfer")
    p_transfer.add_argument("-t", "--to", required=True)
    p_transfer.add_argument("--amount", required=True, help='Amount, e.g. "1.000 HIVE"')
    p_transfer.add_argument("-m", "--memo", default="")
    p_transfer.add_argument("--memo-file", default=None, help="Read memo from a file ('-' for stdin)")
    _add_account_option(p_transfer, "Sender account name")
    _add_wait_option(p_transfer)

    p_delegate = sub.add_parser("delegate")
    p_delegate.add_argument("to")
    p_delegate.add_argument("amount", help='Amount, e.g. "100 HP"')
    _add_account_option(p_delegate, "Delegator account name")
    _add_wait_option(p_delegate)

    p_claim = sub.add_parser("claim")
    _add_account_option(p_claim)
    _add_wait_option(p_claim)

    p_profile = sub.add_parser("profile")
    profile_sub = p_profile.add_subparsers(dest="profile_action", required=True)
    p_profile_update = profile_sub.add_parser("update")
    p_profile_update.add_argument("--name", default=None)
    p_profile_update.add_argument("--about", default=None)
    p_profile_update.add_argument("--profile-image", default=None)
    p_profile_update.add_argument("--cover-image", default=None)
    p_profile_update.add_argument("--website", default=None)
    p_profile_update.add_argument("--location", default=None)
    _add_account_option(p_profile_update)
    _add_wait_option(p_profile_update)

    # social
    for action in ("follow", "unfollow", "mute", "unmute"):
        p_social = sub.add_parser(action)
        p_social.add_argument("target")
        _add_account_option(p_social)
        _add_wait_option(p_social)

    p_reblog = sub.add_parser("reblog")
    p_reblog.add_argument("--author", default=None)
    p_reblog.add_argument("-p", "--permlink", default=None)
    p_reblog.add_argument("--url", default=None)
    _add_account_option(p_reblog, "Reblogger account name")
    _add_wait_option(p_reblog)

    p_community = sub.add_parser("community")
    community_sub = p_community.add_subparsers(dest="community_action", required=True)
    p_community_search = community_sub.add_parser("search")
    p_community_search.add_argument("query")
    p_community_info = community_sub.add_parser("info")
    p_community_info.add_argument("name")
    p_community_subscribers = community_sub.add_parser("subscribers")
    p_community_subscribers.add_argument("name")
    for action in ("subscribe", "unsubscribe"):
        p_membership = community_sub.add_parser(action)
        p_membership.add_argument("name")
        _add_account_option(p_membership)
        _add_wait_option(p_membership)

    # generic
    p_custom_json = sub.add_parser("custom-json")
    p_custom_json.add_argument("-i", "--id", required=True)
    p_custom_json.add_argument("-j", "--json", required=True)
    p_custom_json.add_argument("--required-posting", default="")
    p_custom_json.add_argument("--required-active", default="")
    _add_account_option(p_custom_json)
    _add_wait_option(p_custom_json)

    p_broadcast = sub.add_parser("broadcast")
    p_broadcast.add_argument("operations", help="JSON array of operations")
    p_broadcast.add_argument("-k", "--key-type", default="posting", choices=["posting", "active"])
    _add_account_option(p_broadcast)
    _add_wait_option(p_broadcast)

    return parser


_COMMAND_ALIASES = {
    "post": "publish",
    "comment": "publish",
    "dynamic-global-properties": "props",
}


def _dispatch(args: argparse.Namespace) -> int:
    command = _COMMAND_ALIASES.get(args.command, args.command)
    node_override = args.node
    account_override = getattr(args, "command_account", None) or args.account

    if command == "config":
        if args.config_action == "set":
            return _config_set(args.key, args.value)
        if args.config_action == "get":
            return _config_get(args.key)
        if args.show:
            return _config_show()
        if args.clear:
            return _config_clear()
        return _config_interactive()
    if command == "status":
        return _status()

    if command == "account":
        return _account(client=_query_client(account_override, node_override), name=args.name)
    if command == "balance":
        config = resolve_config(account_override=account_override, node_override=node_override)
        name = args.name or (config.account if config else None)
        if not name:
            raise ValueError(ACCOUNT_MISSING_MESSAGE)
        return _balance(client=_new_client(config, node_override), name=name)
    if command == "props":
        return _props(client=_query_client(account_override, node_override))
    if command == "block":
        return _block(client=_query_client(account_override, node_override), number=args.number)
    if command == "content":
        return _content(
            client=_query_client(account_override, node_override),
            author_or_url=args.author_or_url,
            permlink=args.permlink,
        )
    if command == "replies":
        return _replies(
            client=_query_client(account_override, node_override),
            author_or_url=args.author_or_url,
            permlink=args.permlink,
        )
    if command == "feed":
        config = resolve_config(account_override=account_override, node_override=node_override)
        name = args.name or (config.account if config else None)
        if not name:
            raise ValueError(ACCOUNT_MISSING_MESSAGE)
        return _feed(client=_new_client(config, node_override), name=name, limit=args.limit)
    if command == "rc":
        return _rc(client=_query_client(account_override, node_override), name=args.name)
    if command == "history":
        return _history(
            client=_query_client(account_override, node_override),
            name=args.name,
            limit=args.limit,
            start=args.start,
            op_filter=args.op_filter,
            as_json=bool(args.as_json),
        )
    if command == "call":
        return _call(
            client=_query_client(account_override, node_override),
            api=args.api,
            method=args.method,
            params=args.params,
            raw=bool(args.raw),
        )
    if command == "community" and args.community_action in {"search", "info", "subscribers"}:
        client = _query_client(account_override, node_override)
        if args.community_action == "search":
            return _community_search(client=client, query=args.query)
        if args.community_action == "info":
            return _community_info(client=client, name=args.name)
        return _community_subscribers(client=client, name=args.name)

    # everything below signs with the resolved account
    config = _require_config(account_override, node_override)
    if command == "community":
        return _community_subscription(
            config=config,
            name=args.name,
            subscribe=args.community_action == "subscribe",
            wait=bool(args.wait),
        )
    if command == "publish":
        return _publish(
            config=config,
            permlink=args.permlink,
            title=args.title,
            body=args.body,
            body_file=args.body_file,
            parent_author=args.parent_author,
            parent_permlink=args.parent_permlink,
            parent_url=args.parent_url,
            community=args.community,
            tags=args.tags,
            metadata=args.metadata,
            payout=PayoutOptions(
                decline_rewards=bool(args.decline_rewards),
                max_payout=args.max_payout,
                beneficiaries_json=args.beneficiaries,
                burn_rewards=bool(args.burn_rewards),
            ),
            wait=bool(args.wait),
        )
    if command == "reply":
        return _reply(
            config=config,
            parent_author_or_url=args.parent_author_or_url,
            parent_permlink=args.parent_permlink,
            body=args.body,
            body_file=args.body_file,
            decline_rewards=bool(args.decline_rewards),
            wait=bool(args.wait),
        )
    if command == "edit":
        return _edit(
            config=config,
            author_or_url=args.author_or_url,
            permlink=args.permlink,
            body=args.body,
            body_file=args.body_file,
            title=args.title,
            tags=args.tags,
            wait=bool(args.wait),
        )
    if command == "delete-comment":
        return _delete_comment(
            config=config, author=args.author, permlink=args.permlink, url=args.url, wait=bool(args.wait)
        )
    if command == "vote":
        return _vote(
            config=config,
            author=args.author,
            permlink=args.permlink,
            url=args.url,
            weight=args.weight,
            wait=bool(args.wait),
        )
    if command == "transfer":
        return _transfer(
            config=config,
            to=args.to,
            amount=args.amount,
            memo=args.memo,
            memo_file=args.memo_file,
            wait=bool(args.wait),
        )
    if command == "delegate":
        return _delegate(config=config, to=args.to, amount=args.amount, wait=bool(args.wait))
    if command == "claim":
        return _claim(config=config, wait=bool(args.wait))
    if command == "profile":
        return _profile_update(
            config=config,
            update=ProfileUpdate(
                name=args.name,
                about=args.about,
                profile_image=args.profile_image,
                cover_image=args.cover_image,
                website=args.website,
                location=args.location,
            ),
            wait=bool(args.wait),
        )
    if command in {"follow", "unfollow", "mute", "unmute"}:
        return _social(config=config, action=command, target=args.target, wait=bool(args.wait))
    if command == "reblog":
        return _reblog(
            config=config, author=args.author, permlink=args.permlink, url=args.url, wait=bool(args.wait)
        )
    if command == "custom-json":
        return _custom_json(
            config=config,
            options=CustomJsonOptions(
                id=args.id,
                json=args.json,
                required_posting=args.required_posting,
                required_active=args.required_active,
            ),
            wait=bool(args.wait),
        )
    if command == "broadcast":
        return _raw_broadcast(
            config=config, operations_json=args.operations, key_type=args.key_type, wait=bool(args.wait)
        )
    raise ValueError(f"unsupported command: {args.command}")


def main(argv: list[str] | None = None) -> None:
    args = _build_parser().parse_args(argv)
    try:
        initialize_cli_file_logging(config_home())
    except OSError as exc:
        print(f"warning: file logging disabled: {exc}", file=sys.stderr)
    _cli_logger.debug("command=%s", args.command)
    try:
        code = _dispatch(args)
    except (ValueError, RuntimeError, OSError, KeyError) as exc:
        _cli_logger.exception("command %s failed", args.command)
        output.fail(str(exc))
        code = 1
    raise SystemExit(code)


if __name__ == "__main__":
    main()
