"""Extract, clean and repair JSON embedded in free-form generative output."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, List, Optional, Tuple

from pydantic import ValidationError

from glowcheck.errors import ParseError
from glowcheck.models.assessment import StructuredAssessment
from glowcheck.models.outcome import Outcome

logger = logging.getLogger("glowcheck")

_FENCE_RE = re.compile(r"```[a-zA-Z]*")
_SMART_QUOTES = str.maketrans(
    {"‘": "'", "’": "'", "“": '"', "”": '"'}
)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_CONTRACTIONS = (
    ("don't", "do not"),
    ("doesn't", "does not"),
    ("didn't", "did not"),
    ("won't", "will not"),
    ("can't", "cannot"),
    ("isn't", "is not"),
    ("aren't", "are not"),
    ("it's", "it is"),
    ("that's", "that is"),
    ("you're", "you are"),
)
_CONTRACTION_RES = [
    (re.compile(rf"\b{re.escape(short)}\b", re.IGNORECASE), long)
    for short, long in _CONTRACTIONS
]
_SINGLE_QUOTED_VALUE_RE = re.compile(r":\s*'([^']*)'")
_SINGLE_QUOTED_KEY_RE = re.compile(r"([{,]\s*)'([^'\"]*)'\s*:")
_SINGLE_QUOTED_ITEM_RE = re.compile(r"([\[,]\s*)'([^']*)'(?=\s*[,\]])")
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f-\x9f]")
_UNTERMINATED_ARRAY_RE = re.compile(r"\[([^\]]*),\s*$")
_BARE_VALUE_RE = re.compile(
    r"(:\s*)(?!true\b|false\b|null\b)([^\"\[\{\d\-\s][^,}\]]*)"
)


def strip_fences(raw_text: str) -> str:
    return _FENCE_RE.sub("", raw_text or "").strip()


def _brace_depth(text: str) -> int:
    depth = 0
    in_string = False
    escaped = False
    for char in text:
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char in "{[":
            depth += 1
        elif char in "}]":
            depth -= 1
    return depth


def extract_json_block(raw_text: str, *, allow_truncated: bool = False) -> Optional[str]:
    """Text from the first ``{`` to the last ``}``.

    With ``allow_truncated`` an unbalanced block is returned from the first
    ``{`` to the end of the text so structural repair can close it.
    """
    cleaned = strip_fences(raw_text)
    start = cleaned.find("{")
    if start == -1:
        return None
    end = cleaned.rfind("}")
    if end > start:
        block = cleaned[start : end + 1]
        if not allow_truncated or _brace_depth(block) == 0:
            return block
    if allow_truncated:
        return cleaned[start:].rstrip()
    return None


def _expand_contraction(match: "re.Match[str]", long: str) -> str:
    if match.group(0)[0].isupper():
        return long[0].upper() + long[1:]
    return long


def normalize_json_text(text: str) -> str:
    """Quote, whitespace, trailing-comma and contraction normalization."""
    s = text.translate(_SMART_QUOTES)
    s = re.sub(r"\r?\n", " ", s)
    s = _TRAILING_COMMA_RE.sub(r"\1", s)
    s = re.sub(r"\s+", " ", s)
    for pattern, long in _CONTRACTION_RES:
        s = pattern.sub(lambda m, long=long: _expand_contraction(m, long), s)
    s = _SINGLE_QUOTED_KEY_RE.sub(r'\1"\2":', s)
    s = _SINGLE_QUOTED_VALUE_RE.sub(r':"\1"', s)
    s = _SINGLE_QUOTED_ITEM_RE.sub(r'\1"\2"', s)
    s = s.replace("&apos;", "")
    return s


def _quote_bare_value(match: "re.Match[str]") -> str:
    value = match.group(2).rstrip()
    trailing = match.group(2)[len(value):]
    escaped = value.replace('"', '\\"')
    return f'{match.group(1)}"{escaped}"{trailing}'


def _close_open_structures(text: str) -> str:
    stack: List[str] = []
    in_string = False
    escaped = False
    for char in text:
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char == "{":
            stack.append("}")
        elif char == "[":
            stack.append("]")
        elif char in "}]" and stack and stack[-1] == char:
            stack.pop()
    closed = text + ('"' if in_string else "")
    if stack:
        closed = closed.rstrip().rstrip(",") + "".join(reversed(stack))
    return closed


def repair_json_structure(text: str) -> str:
    """Close unterminated arrays/objects, quote bare values, drop control chars."""
    s = _CONTROL_CHARS_RE.sub("", text)
    s = _UNTERMINATED_ARRAY_RE.sub(r"[\1]", s)
    s = _BARE_VALUE_RE.sub(_quote_bare_value, s)
    s = _close_open_structures(s)
    s = _TRAILING_COMMA_RE.sub(r"\1", s)
    return s


def _parse_assessment(text: str) -> StructuredAssessment:
    data: Any = json.loads(text)
    if not isinstance(data, dict):
        raise ParseError("Top-level JSON value is not an object")
    return StructuredAssessment.model_validate(data)


class ResponseSanitizer:
    """Deterministic repair chain that stops at the first stage that parses."""

    def __init__(self) -> None:
        self._stages: Tuple[Tuple[str, Callable[[str], Optional[str]]], ...] = (
            ("as_is", extract_json_block),
            ("normalized", self._normalized),
            ("repaired", self._repaired),
        )

    @staticmethod
    def _normalized(raw_text: str) -> Optional[str]:
        block = extract_json_block(raw_text)
        return normalize_json_text(block) if block is not None else None

    @staticmethod
    def _repaired(raw_text: str) -> Optional[str]:
        block = extract_json_block(raw_text, allow_truncated=True)
        if block is None:
            return None
        return repair_json_structure(normalize_json_text(block))

    def parse(self, raw_text: str) -> Outcome[StructuredAssessment]:
        errors: List[str] = []
        for stage, prepare in self._stages:
            candidate = prepare(raw_text)
            if candidate is None:
                errors.append(f"{stage}: no JSON object found")
                continue
            try:
                assessment = _parse_assessment(candidate)
            except (
                json.JSONDecodeError,
                ValidationError,
                ParseError,
                TypeError,
                OverflowError,
            ) as exc:
                errors.append(f"{stage}: {exc.__class__.__name__}")
                logger.debug("Sanitizer stage %s failed: %s", stage, exc)
                continue
            if stage != "as_is":
                logger.info("Assessment JSON parsed after %s stage", stage)
            return Outcome.success(stage, assessment)

        logger.warning("Assessment JSON could not be repaired: %s", "; ".join(errors))
        return Outcome.failure(
            "sanitize", ParseError("Unparseable assessment output (" + "; ".join(errors) + ")")
        )
