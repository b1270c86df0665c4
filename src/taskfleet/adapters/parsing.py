"""Structured-output extraction from agent executor stdout.

Executors answer with a bare JSON document, a JSON envelope whose
``result`` field carries the payload (possibly as a string, possibly
fenced in markdown), or newline-delimited JSON records of which one is
the result record.  Each shape is tried in a fixed order; the first
attempt that yields a value wins.
"""

from __future__ import annotations

import json
import re
from typing import Any, Callable, Iterable

from taskfleet.errors import ExecutorError

Attempt = Callable[[str], Any | None]

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?([\s\S]*?)\n?```")


def _parse_direct(text: str) -> Any | None:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None


def _parse_result_record(text: str) -> Any | None:
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(record, dict) and (record.get("type") == "result" or "result" in record):
            return record
    return None


def _parse_fenced(text: str) -> Any | None:
    match = _FENCE_RE.search(text)
    if match is None:
        return None
    return _parse_direct(match.group(1))


def _first(text: str, attempts: Iterable[Attempt]) -> Any | None:
    for attempt in attempts:
        value = attempt(text)
        if value is not None:
            return value
    return None


def parse_envelope(output: str) -> Any | None:
    """The outer JSON document of *output*: direct parse, then result-record scan."""
    return _first(output, (_parse_direct, _parse_result_record))


def parse_json_output(output: str) -> Any:
    envelope = parse_envelope(output)
    if envelope is None:
        raise ExecutorError("Failed to parse executor output: not valid JSON or NDJSON")
    if not isinstance(envelope, dict) or "result" not in envelope:
        return envelope
    inner = envelope["result"]
    if not isinstance(inner, str):
        return inner
    parsed = _first(inner, (_parse_direct, _parse_fenced))
    if parsed is None:
        raise ExecutorError(f"Failed to extract valid JSON from result: {inner[:200]}")
    return parsed


def extract_cost_usd(output: str) -> float:
    """Best-effort cost reported in the envelope, ``0.0`` when absent."""
    envelope = parse_envelope(output)
    if not isinstance(envelope, dict):
        return 0.0
    for key in ("total_cost_usd", "cost_usd"):
        value = envelope.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    return 0.0
