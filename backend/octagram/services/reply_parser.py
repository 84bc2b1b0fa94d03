"""Recover the three reply drafts from raw model output.

The reply tool asks the model for ``{"replies": ["...", "...", "..."]}`` but
models do not always comply. Parsing walks from the strictest reading to the
loosest one and stops at the first that yields exactly three replies:

1. the whole text as JSON;
2. the outermost ``{...}`` block inside the text (code fences, chatter);
3. one reply per line, with bullets or numbering stripped.

Only the line heuristic truncates (to the first three lines). A JSON
``replies`` array of any other length is rejected rather than padded or cut.
"""

from __future__ import annotations

import json
import re
from typing import Callable, Iterable, List, Optional

from jsonschema import ValidationError, validate

from octagram.core.json_schema import REPLIES_SCHEMA

REPLY_COUNT = 3

# 行首的列表符号 / 编号，例如 "- ", "1. ", "2) ", "*:"
_BULLET_PREFIX = re.compile(r"^\s*[-*0-9.):]+\s*")

Strategy = Callable[[str], Optional[List[str]]]


class ReplyFormatError(ValueError):
    """Model output could not be turned into exactly three replies."""


def _replies_from_json(payload: str) -> Optional[List[str]]:
    try:
        data = json.loads(payload)
        validate(instance=data, schema=REPLIES_SCHEMA)
    except (json.JSONDecodeError, ValidationError, RecursionError):
        return None
    replies = [item.strip() if isinstance(item, str) else "" for item in data["replies"]]
    replies = [item for item in replies if item]
    return replies if len(replies) == REPLY_COUNT else None


def parse_direct(text: str) -> Optional[List[str]]:
    return _replies_from_json(text)


def parse_embedded_block(text: str) -> Optional[List[str]]:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end <= start:
        return None
    return _replies_from_json(text[start : end + 1])


def parse_lines(text: str) -> Optional[List[str]]:
    lines = [_BULLET_PREFIX.sub("", line).strip() for line in text.split("\n")]
    lines = [line for line in lines if line]
    if len(lines) < REPLY_COUNT:
        return None
    return lines[:REPLY_COUNT]


STRATEGIES: tuple[Strategy, ...] = (parse_direct, parse_embedded_block, parse_lines)


def _first_success(text: str, strategies: Iterable[Strategy]) -> Optional[List[str]]:
    for strategy in strategies:
        result = strategy(text)
        if result is not None:
            return result
    return None


def extract_replies(raw: str | None) -> List[str]:
    text = (raw or "").strip()
    replies = _first_success(text, STRATEGIES)
    if replies is None:
        raise ReplyFormatError("Model returned an invalid reply format. Please try again.")
    return replies
