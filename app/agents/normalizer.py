# app/agents/normalizer.py
"""
Turn raw model text into a parsed JSON value.

Models are told to answer with JSON only, but they still wrap it in code
fences or add a sentence before/after. This is a best-effort recovery layer,
not a parser: it strips a leading fence, walks the balanced object or array
literals left to right, and keeps the first one json.loads accepts. Anything
else is reported as UnparsableReply with both the raw text and the parser
error kept.
"""
import json
import re
from dataclasses import dataclass
from typing import Any, Iterator

from app.errors import UnparsableReply

_FENCE_OPEN = re.compile(r"^```[\w+-]*[ \t]*\n?")
_FENCE_CLOSE = re.compile(r"\n?[ \t]*```\s*$")
_CLOSERS = {"{": "}", "[": "]"}


@dataclass
class NormalizedReply:
    raw_text: str
    value: Any = None
    candidate: str | None = None
    error: UnparsableReply | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.value


def strip_code_fences(text: str) -> str:
    """Remove an opening ``` (optionally with a language tag) and its closing fence."""
    if not text.startswith("```"):
        return text
    text = _FENCE_OPEN.sub("", text, count=1)
    text = _FENCE_CLOSE.sub("", text, count=1)
    return text.strip()


def _balanced_end(text: str, start: int) -> int | None:
    """Index just past the literal opened at `start`, or None if it never closes."""
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in "{[":
            depth += 1
        elif ch in "}]":
            depth -= 1
            if depth == 0:
                return i + 1
    return None


def iter_json_candidates(text: str) -> Iterator[str]:
    """
    Yield balanced top-level {...} or [...] substrings, left to right.

    Brackets inside JSON strings are skipped. Scanning resumes after the end of
    each candidate, never inside it, so "[see below]" ahead of the real object
    does not hide it. A literal that never balances (truncated output) ends the
    scan with the span from its opener to the last matching closer.
    """
    pos = 0
    while True:
        starts = [i for i in (text.find("{", pos), text.find("[", pos)) if i != -1]
        if not starts:
            return
        start = min(starts)
        end = _balanced_end(text, start)
        if end is None:
            closer = text.rfind(_CLOSERS[text[start]])
            if closer > start:
                yield text[start:closer + 1]
            return
        yield text[start:end]
        pos = end


def extract_json_candidate(text: str) -> str | None:
    """Return the first balanced top-level {...} or [...] substring."""
    return next(iter_json_candidates(text), None)


def _parse(raw: str, candidate: str) -> NormalizedReply:
    try:
        value = json.loads(candidate)
    except (json.JSONDecodeError, RecursionError) as e:
        return NormalizedReply(
            raw_text=raw,
            candidate=candidate,
            error=UnparsableReply(raw_text=raw, parse_error=str(e)),
        )
    return NormalizedReply(raw_text=raw, value=value, candidate=candidate)


def normalize_reply(raw_text: str | None) -> NormalizedReply:
    """Never raises; the failure is carried on the returned object."""
    raw = raw_text or ""
    text = strip_code_fences(raw.strip())

    if not text:
        return NormalizedReply(
            raw_text=raw,
            error=UnparsableReply(raw_text=raw, parse_error="No content received from LLM"),
        )

    # The first candidate's error is the one reported if none of them parse
    first_failure: NormalizedReply | None = None
    for candidate in iter_json_candidates(text):
        result = _parse(raw, candidate)
        if result.ok:
            return result
        if first_failure is None:
            first_failure = result

    return first_failure or _parse(raw, text)
