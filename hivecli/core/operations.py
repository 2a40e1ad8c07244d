"""Pure builders turning validated command input into chain operations.

Builders never talk to the node. Anything they need from the chain (the
existing post, account balances, global properties) is fetched by the caller
and passed in, so every validation error surfaces before network I/O.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from decimal import Decimal
from typing import Any

from hivecli.core.content import (
    encode_metadata,
    parse_csv_accounts,
    parse_metadata,
    parse_tags,
    parse_user_metadata,
    reply_permlink,
)
from hivecli.core.economics import hp_to_vests, parse_asset_amount, validate_transfer_amount
from hivecli.core.types import (
    KEY_TYPES,
    CustomJsonOptions,
    EditOptions,
    Operation,
    PayoutOptions,
    ProfileUpdate,
    PublishOptions,
)

MAX_BENEFICIARY_WEIGHT = 10000
DEFAULT_MAX_ACCEPTED_PAYOUT = "1000000.000 HBD"
DECLINED_MAX_ACCEPTED_PAYOUT = "0.000 HBD"
NULL_ACCOUNT = "null"
FOLLOW_PLUGIN_ID = "follow"
COMMUNITY_PLUGIN_ID = "community"
FOLLOW_WHAT = {
    "follow": ["blog"],
    "unfollow": [],
    "mute": ["ignore"],
    "unmute": [],
}


def _require(value: str | None, message: str) -> str:
    text = str(value or "").strip()
    if not text:
        raise ValueError(message)
    return text


# ---------------------------------------------------------------------------
# Votes and content
# ---------------------------------------------------------------------------


def build_vote(voter: str, author: str, permlink: str, weight_percent: int | str) -> list[Operation]:
    try:
        weight = int(weight_percent)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Vote weight must be an integer between 1 and 100: {weight_percent}") from exc
    if weight < 1 or weight > 100:
        raise ValueError(f"Vote weight must be between 1 and 100: {weight}")
    return [
        Operation(
            "vote",
            {
                "voter": _require(voter, "voter account is required"),
                "author": _require(author, "author is required"),
                "permlink": _require(permlink, "permlink is required"),
                "weight": weight * 100,
            },
        )
    ]


def parse_beneficiaries(raw: str) -> list[dict[str, Any]]:
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in beneficiaries option: {exc}") from exc
    if not isinstance(decoded, list):
        raise ValueError("Invalid JSON in beneficiaries option: Beneficiaries must be an array")
    beneficiaries: list[dict[str, Any]] = []
    total = 0
    for row in decoded:
        if not isinstance(row, dict):
            raise ValueError("beneficiary entries must be objects with account and weight")
        account = _require(row.get("account"), "beneficiary account is required")
        try:
            weight = int(row.get("weight"))
        except (TypeError, ValueError) as exc:
            raise ValueError(f"beneficiary weight for {account} must be an integer") from exc
        if weight <= 0:
            raise ValueError(f"beneficiary weight for {account} must be positive")
        total += weight
        beneficiaries.append({"account": account, "weight": weight})
    if total > MAX_BENEFICIARY_WEIGHT:
        raise ValueError(
            f"beneficiary weights sum to {total}, which exceeds {MAX_BENEFICIARY_WEIGHT} (100%)"
        )
    # the chain rejects beneficiaries that are not sorted by account name
    return sorted(beneficiaries, key=lambda row: row["account"])


def build_comment_options(author: str, permlink: str, payout: PayoutOptions) -> Operation:
    extensions: list[Any] = []
    if payout.burn_rewards:
        extensions = [[0, {"beneficiaries": [{"account": NULL_ACCOUNT, "weight": MAX_BENEFICIARY_WEIGHT}]}]]
    elif payout.beneficiaries_json:
        beneficiaries = parse_beneficiaries(payout.beneficiaries_json)
        if beneficiaries:
            extensions = [[0, {"beneficiaries": beneficiaries}]]

    if payout.max_payout:
        max_accepted_payout = payout.max_payout
    elif payout.decline_rewards:
        max_accepted_payout = DECLINED_MAX_ACCEPTED_PAYOUT
    else:
        max_accepted_payout = DEFAULT_MAX_ACCEPTED_PAYOUT
    return Operation(
        "comment_options",
        {
            "author": author,
            "permlink": permlink,
            "max_accepted_payout": max_accepted_payout,
            "percent_hbd": 10000,
            "allow_votes": True,
            "allow_curation_rewards": True,
            "extensions": extensions,
        },
    )


def build_publish(author: str, options: PublishOptions) -> list[Operation]:
    author = _require(author, "Account not specified")
    permlink = _require(options.permlink, "Permlink is required. Use --permlink.")
    if not options.body:
        raise ValueError("Body is required. Use --body or --body-file.")

    metadata = parse_user_metadata(options.metadata_json)
    tags = parse_tags(options.tags)
    if tags:
        metadata["tags"] = tags

    parent_permlink = options.community or options.parent_permlink or permlink
    operations = [
        Operation(
            "comment",
            {
                "parent_author": options.parent_author or "",
                "parent_permlink": parent_permlink,
                "author": author,
                "permlink": permlink,
                "title": options.title or "",
                "body": options.body,
                "json_metadata": encode_metadata(metadata),
            },
        )
    ]
    if options.payout.requested:
        operations.append(build_comment_options(author, permlink, options.payout))
    return operations


def build_reply(
    author: str,
    parent_author: str,
    parent_permlink: str,
    body: str | None,
    *,
    decline_rewards: bool = False,
    now_fn: Callable[[], float] | None = None,
) -> list[Operation]:
    author = _require(author, "Account not specified")
    parent_author = _require(parent_author, "parent author is required")
    parent_permlink = _require(parent_permlink, "parent permlink is required")
    if not body:
        raise ValueError("Body is required. Use --body or --body-file.")
    permlink = reply_permlink(parent_author, now_fn=now_fn)
    operations = [
        Operation(
            "comment",
            {
                "parent_author": parent_author,
                "parent_permlink": parent_permlink,
                "author": author,
                "permlink": permlink,
                "title": "",
                "body": body,
                "json_metadata": "",
            },
        )
    ]
    if decline_rewards:
        operations.append(
            build_comment_options(author, permlink, PayoutOptions(decline_rewards=True))
        )
    return operations


def build_edit(author: str, permlink: str, existing_post: Any, options: EditOptions) -> list[Operation]:
    """Rebuild a full ``comment`` replacing body, title and metadata.

    Parent fields come from the existing post; title and tags fall back to
    the existing values when not given.
    """
    if not options.body:
        raise ValueError("Body is required. Use --body or --body-file.")
    if not isinstance(existing_post, dict) or not existing_post.get("author"):
        raise ValueError(f"Post @{author}/{permlink} was not found")

    existing_metadata = parse_metadata(existing_post.get("json_metadata"))
    existing_tags = existing_metadata.get("tags")
    if not isinstance(existing_tags, list):
        post_tags = existing_post.get("tags")
        existing_tags = post_tags if isinstance(post_tags, list) else []

    metadata = dict(existing_metadata)
    new_tags = parse_tags(options.tags)
    if new_tags:
        metadata["tags"] = new_tags
    elif existing_tags:
        metadata["tags"] = existing_tags

    return [
        Operation(
            "comment",
            {
                "parent_author": existing_post.get("parent_author") or "",
                "parent_permlink": existing_post.get("parent_permlink") or "",
                "author": author,
                "permlink": permlink,
                "title": options.title or existing_post.get("title") or "",
                "body": options.body,
                "json_metadata": encode_metadata(metadata),
            },
        )
    ]


def build_delete_comment(author: str, permlink: str) -> list[Operation]:
    return [
        Operation(
            "delete_comment",
            {
                "author": _require(author, "author is required"),
                "permlink": _require(permlink, "permlink is required"),
            },
        )
    ]


# ---------------------------------------------------------------------------
# Wallet
# ---------------------------------------------------------------------------


def build_transfer(sender: str, to: str, amount: str, memo: str | None) -> list[Operation]:
    return [
        Operation(
            "transfer",
            {
                "from": _require(sender, "Account not specified"),
                "to": _require(to, "Recipient is required. Use --to."),
                "amount": validate_transfer_amount(amount),
                "memo": memo or "",
            },
        )
    ]


def build_delegate(delegator: str, delegatee: str, hp: Decimal, props: dict[str, Any]) -> list[Operation]:
    return [
        Operation(
            "delegate_vesting_shares",
            {
                "delegator": _require(delegator, "Account not specified"),
                "delegatee": _require(delegatee, "delegatee is required"),
                "vesting_shares": hp_to_vests(hp, props),
            },
        )
    ]


def build_claim(account: str, account_info: dict[str, Any] | None) -> list[Operation]:
    """Claim every pending reward; an empty list means nothing to claim."""
    info = account_info or {}
    reward_hive = info.get("reward_hive_balance") or "0.000 HIVE"
    reward_hbd = info.get("reward_hbd_balance") or "0.000 HBD"
    reward_vests = info.get("reward_vesting_balance") or "0.000000 VESTS"
    if all(parse_asset_amount(value) <= 0 for value in (reward_hive, reward_hbd, reward_vests)):
        return []
    return [
        Operation(
            "claim_reward_balance",
            {
                "account": account,
                "reward_hive": reward_hive,
                "reward_hbd": reward_hbd,
                "reward_vests": reward_vests,
            },
        )
    ]


def build_profile_update(
    account: str, existing_posting_metadata: Any, update: ProfileUpdate
) -> list[Operation]:
    fields = update.fields()
    if not fields:
        raise ValueError("No profile fields provided.")
    metadata = parse_metadata(existing_posting_metadata)
    profile = metadata.get("profile")
    merged_profile = dict(profile) if isinstance(profile, dict) else {}
    merged_profile.update(fields)
    metadata["profile"] = merged_profile
    return [
        Operation(
            "account_update2",
            {
                "account": account,
                "json_metadata": "",
                "posting_json_metadata": json.dumps(metadata, separators=(",", ":")),
                "extensions": [],
            },
        )
    ]


# ---------------------------------------------------------------------------
# custom_json
# ---------------------------------------------------------------------------


def _plugin_custom_json(account: str, plugin_id: str, action: str, payload: dict[str, Any]) -> Operation:
    return Operation(
        "custom_json",
        {
            "required_auths": [],
            "required_posting_auths": [account],
            "id": plugin_id,
            "json": json.dumps([action, payload], separators=(",", ":")),
        },
    )


def build_follow(account: str, target: str, action: str = "follow") -> list[Operation]:
    if action not in FOLLOW_WHAT:
        raise ValueError(f"unsupported follow action: {action}")
    account = _require(account, "Account not specified")
    payload = {
        "follower": account,
        "following": _require(target, "target account is required").lstrip("@"),
        "what": list(FOLLOW_WHAT[action]),
    }
    return [_plugin_custom_json(account, FOLLOW_PLUGIN_ID, "follow", payload)]


def build_reblog(account: str, author: str, permlink: str) -> list[Operation]:
    account = _require(account, "Account not specified")
    payload = {
        "account": account,
        "author": _require(author, "author is required"),
        "permlink": _require(permlink, "permlink is required"),
    }
    return [_plugin_custom_json(account, FOLLOW_PLUGIN_ID, "reblog", payload)]


def build_community_subscription(account: str, community: str, *, subscribe: bool) -> list[Operation]:
    account = _require(account, "Account not specified")
    action = "subscribe" if subscribe else "unsubscribe"
    payload = {"community": _require(community, "community name is required")}
    return [_plugin_custom_json(account, COMMUNITY_PLUGIN_ID, action, payload)]


def build_custom_json(account: str, options: CustomJsonOptions) -> tuple[list[Operation], str]:
    """Return the operation and the key type its authorities need."""
    account = _require(account, "Account not specified")
    op_id = _require(options.id, "custom_json id is required. Use --id.")
    try:
        json.loads(options.json)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON payload: {exc}") from exc
    required_auths = parse_csv_accounts(options.required_active)
    required_posting_auths = parse_csv_accounts(options.required_posting)
    if not required_posting_auths:
        required_posting_auths = [account]
    operation = Operation(
        "custom_json",
        {
            "required_auths": required_auths,
            "required_posting_auths": required_posting_auths,
            "id": op_id,
            "json": options.json,
        },
    )
    return [operation], ("active" if required_auths else "posting")


def parse_raw_operations(text: str) -> list[Operation]:
    """Parse ``[{"type", "value"}, ...]`` or ``[[type, value], ...]``."""
    try:
        decoded = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in operations: {exc}") from exc
    if not isinstance(decoded, list) or not decoded:
        raise ValueError("Operations must be a non-empty JSON array")
    operations: list[Operation] = []
    for index, row in enumerate(decoded):
        if isinstance(row, dict) and isinstance(row.get("type"), str) and isinstance(row.get("value"), dict):
            operations.append(Operation(row["type"], row["value"]))
        elif isinstance(row, list) and len(row) == 2 and isinstance(row[0], str) and isinstance(row[1], dict):
            operations.append(Operation(row[0], row[1]))
        else:
            raise ValueError(f"operation #{index} must be {{type, value}} or [type, value]")
    return operations


def validate_key_type(key_type: str) -> str:
    normalized = str(key_type or "").strip().lower()
    if normalized not in KEY_TYPES:
        raise ValueError(f"Key type must be posting or active: {key_type}")
    return normalized
