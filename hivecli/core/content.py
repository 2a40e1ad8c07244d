from __future__ import annotations

import json
import re
import sys
import time
import urllib.parse
from collections.abc import Callable
from pathlib import Path
from typing import IO, Any

_CONTENT_PATH_RE = re.compile(
    r"^(?:/[^/@]+)*/@(?P<author>[a-z0-9][a-z0-9.-]*)/(?P<permlink>[a-z0-9][a-z0-9-]*)/?$"
)


def parse_hive_url(value: str | None) -> tuple[str, str] | None:
    """Extract ``(author, permlink)`` from a front-end content URL.

    Accepts the shapes used by PeakD, Hive.blog and Ecency, with or without a
    category segment and with or without a scheme:
    ``https://peakd.com/hive-123/@alice/my-post``, ``hive.blog/@alice/my-post``.
    Returns ``None`` for anything else, including bare account names.
    """
    text = str(value or "").strip()
    if not text or "@" not in text:
        return None
    if "://" not in text:
        text = f"https://{text}"
    parsed = urllib.parse.urlparse(text)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        return None
    match = _CONTENT_PATH_RE.match(urllib.parse.unquote(parsed.path).lower())
    if match is None:
        return None
    return match.group("author"), match.group("permlink")


def resolve_author_permlink(
    *,
    author: str | None,
    permlink: str | None,
    url: str | None,
    url_flag: str = "--url",
) -> tuple[str, str]:
    if url:
        parsed = parse_hive_url(url)
        if parsed is None:
            raise ValueError(f"Could not parse {url_flag}: {url}")
        return parsed
    clean_author = str(author or "").strip()
    clean_permlink = str(permlink or "").strip()
    if not clean_author or not clean_permlink:
        raise ValueError(f"Provide either {url_flag} or both --author and --permlink")
    return clean_author, clean_permlink


def resolve_author_or_url(author_or_url: str, permlink: str | None) -> tuple[str, str]:
    parsed = parse_hive_url(author_or_url)
    if parsed is not None:
        return parsed
    clean_permlink = str(permlink or "").strip()
    if not clean_permlink:
        raise ValueError("Permlink required when not passing a URL")
    return author_or_url.strip().lstrip("@"), clean_permlink


def parse_tags(raw: str | None) -> list[str]:
    return [tag.strip() for tag in str(raw or "").split(",") if tag.strip()]


def parse_csv_accounts(raw: str | None) -> list[str]:
    return [name.strip() for name in str(raw or "").split(",") if name.strip()]


def parse_metadata(raw: Any) -> dict[str, Any]:
    """Decode a ``json_metadata`` field leniently; chain data is often malformed."""
    if isinstance(raw, dict):
        return dict(raw)
    if not isinstance(raw, str) or not raw.strip():
        return {}
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError:
        return {}
    return decoded if isinstance(decoded, dict) else {}


def parse_user_metadata(raw: str | None) -> dict[str, Any]:
    """Decode user-supplied ``--metadata``; malformed input is an error."""
    text = str(raw or "").strip()
    if not text or text == "{}":
        return {}
    try:
        decoded = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in metadata option: {exc}") from exc
    if not isinstance(decoded, dict):
        raise ValueError("Invalid JSON in metadata option: expected an object")
    return decoded


def encode_metadata(metadata: dict[str, Any]) -> str:
    return json.dumps(metadata, separators=(",", ":")) if metadata else ""


def reply_permlink(parent_author: str, *, now_fn: Callable[[], float] | None = None) -> str:
    now = (now_fn or time.time)()
    return f"re-{parent_author.strip().lower()}-{int(now * 1000)}"


def read_text_source(source: str, *, stdin: IO[str] | None = None) -> str:
    """Read a file path, or standard input when the path is ``-``."""
    if source == "-":
        return (stdin or sys.stdin).read()
    return Path(source).expanduser().read_text(encoding="utf-8")


def resolve_text_option(
    *,
    literal: str | None,
    source: str | None,
    label: str,
    stdin: IO[str] | None = None,
) -> str | None:
    if source:
        try:
            return read_text_source(source, stdin=stdin)
        except OSError as exc:
            raise ValueError(f"Failed to read {label} file: {exc}") from exc
    return literal
