from __future__ import annotations

import json
from typing import Any

from hivecli.core.economics import RcSnapshot


def _one_line(text: Any, limit: int) -> str:
    return str(text or "").replace("\n", " ")[:limit]


def format_history_entry(seq: Any, tx: dict[str, Any]) -> str:
    op = tx.get("op") or []
    op_type = op[0] if len(op) > 0 else ""
    data = op[1] if len(op) > 1 and isinstance(op[1], dict) else {}
    if op_type == "comment":
        if data.get("parent_author", "") == "":
            detail = f'post  "{_one_line(data.get("title"), 60)}"'
        else:
            detail = f"reply to @{data.get('parent_author')}/{data.get('parent_permlink')}"
    elif op_type == "vote":
        weight = int(data.get("weight", 0))
        sign = "+" if weight > 0 else ""
        detail = f"{sign}{weight / 100:g}% on @{data.get('author')}/{data.get('permlink')}"
    elif op_type == "transfer":
        detail = f"{data.get('amount')} → @{data.get('to')}  memo: {_one_line(data.get('memo'), 60)}"
    elif op_type == "custom_json":
        detail = f"id={data.get('id')}  {_one_line(data.get('json'), 80)}"
    elif op_type == "claim_reward_balance":
        detail = f"{data.get('reward_hive')} {data.get('reward_hbd')} {data.get('reward_vests')}"
    elif op_type == "delegate_vesting_shares":
        detail = f"→ @{data.get('delegatee')}  {data.get('vesting_shares')}"
    else:
        detail = json.dumps(data)[:100]
    return f"#{str(seq):>6}  {tx.get('timestamp', '')}  {op_type:<22}  {detail}"


def filter_history(entries: list[Any], op_filter: str | None) -> list[Any]:
    rows = [row for row in entries if isinstance(row, list | tuple) and len(row) == 2]
    if not op_filter:
        return rows
    return [row for row in rows if ((row[1] or {}).get("op") or [None])[0] == op_filter]


def format_reply_line(reply: dict[str, Any]) -> str:
    return f"@{reply.get('author')} (rep {reply.get('author_reputation')}) | {_one_line(reply.get('body'), 100)}"


def format_feed_line(post: dict[str, Any]) -> str:
    stats = f"{post.get('children', 0)} replies, {post.get('payout', 0)} payout"
    return f"@{post.get('author')}/{post.get('permlink')} | {_one_line(post.get('title'), 80)} ({stats})"


def format_community_lines(community: dict[str, Any]) -> list[str]:
    posts = community.get("num_pending") or community.get("num_posts") or community.get("posts") or 0
    return [
        f"{community.get('name')} - {community.get('title')}",
        f"  Subscribers: {community.get('subscribers')} | Posts: {posts}",
    ]


def format_subscriber(subscriber: Any) -> str:
    if isinstance(subscriber, str):
        return subscriber
    if isinstance(subscriber, list | tuple) and subscriber:
        return str(subscriber[0])
    if isinstance(subscriber, dict) and subscriber.get("name"):
        return str(subscriber["name"])
    return json.dumps(subscriber)


def rc_summary(name: str, snapshot: RcSnapshot, now: float | None = None) -> dict[str, Any]:
    current = snapshot.current(now)
    return {
        "account": name,
        "percent": snapshot.percent(now),
        "current_mana": current,
        "max_mana": snapshot.max_rc,
        "delegated_out": snapshot.delegated_out,
        "delegated_in": snapshot.delegated_in,
    }


def format_rc_lines(summary: dict[str, Any]) -> list[str]:
    lines = [
        f"@{summary['account']}",
        f"RC: {summary['percent']:.2f}% ({summary['current_mana']:,} / {summary['max_mana']:,})",
    ]
    if summary["delegated_out"]:
        lines.append(f"Delegated out:  {summary['delegated_out']:,}")
    if summary["delegated_in"]:
        lines.append(f"Delegated in:   {summary['delegated_in']:,}")
    return lines
