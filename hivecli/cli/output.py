from __future__ import annotations

import json
import os
import sys
from collections.abc import Mapping
from typing import Any

JSON_OUTPUT_ENV = "HIVE_JSON_OUTPUT"


def is_json_mode(env: Mapping[str, str] | None = None) -> bool:
    source = os.environ if env is None else env
    return str(source.get(JSON_OUTPUT_ENV, "")).strip() == "1"


def dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, default=str)


def status(message: str) -> None:
    """Progress text for humans; suppressed in JSON mode."""
    if not is_json_mode():
        print(message, file=sys.stderr)


def print_result(payload: Any) -> None:
    print(dumps(payload))


def print_message(message: str, **fields: Any) -> None:
    if is_json_mode():
        print(dumps({"message": message, **fields}))
    else:
        print(message)


def succeed(message: str, result: Any = None) -> None:
    if is_json_mode():
        if result is None:
            print(dumps({"success": True, "message": message}))
        else:
            print(dumps(result))
        return
    print(f"✔ {message}", file=sys.stderr)
    if result is not None:
        print(dumps(result))


def fail(message: str) -> None:
    if is_json_mode():
        print(dumps({"success": False, "error": message}))
    else:
        print(f"Error: {message}", file=sys.stderr)
