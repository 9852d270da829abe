"""Locate, repair and parse the JSON object embedded in a model response."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from .errors import ExtractionError, JSONParseError

LOGGER = logging.getLogger(__name__)

_CODE = "code"
_DQ = "dq"
_SQ = "sq"

# A single quote only opens a string where a key or value may start.
_SQ_OPENERS = frozenset("{[,:")
_STRUCTURAL_AFTER_STRING = frozenset(",:}]")
_MAX_REPAIR_PASSES = 8

_TRAILING_COMMAS = re.compile(r"(?:,\s*)+(?=[}\]])")
_BARE_KEY = re.compile(r"([{,]\s*)([A-Za-z_$][\w$]*)(\s*:)")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f-\x9f]")
_COMMA_RUN = re.compile(r",(?:\s*,)+")
_LEADING_COMMA = re.compile(r"([{\[])\s*,")
_WHITESPACE_RUN = re.compile(r"\s+")

_PY_LITERALS = {"True": "true", "False": "false", "None": "null", "undefined": "null", "NaN": "null"}
_PY_LITERAL = re.compile(r"\b(True|False|None|undefined|NaN)\b")
_BARE_MONEY_VALUE = re.compile(r"(:\s*)(\$\s?(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d+)?)")
_BARE_VALUE = re.compile(r"([:\[,]\s*)([A-Za-z][^,:}\]\"]*?)(\s*)(?=[,}\]]|$)")
_JSON_KEYWORDS = frozenset({"true", "false", "null"})
_ESCAPE = re.compile(r"\\(u[0-9a-fA-F]{4}|.)?", re.DOTALL)
_VALID_ESCAPES = frozenset('"\\/bfnrt')


def locate_json_object(text: Optional[str]) -> Optional[str]:
    """Return the span from the first ``{`` to the last ``}``, or None."""

    if not text:
        return None
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        return None
    return text[start : end + 1]


# -- scanning ---------------------------------------------------------------


def _read_string(text: str, start: int, quote: str) -> int:
    """Return the index just past the string literal opened at ``start``.

    A quote only closes the literal when the next non-space character is
    structural, so unescaped quotes inside a value stay part of it.
    """

    n = len(text)
    i = start + 1
    while i < n:
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            j = i + 1
            while j < n and text[j].isspace():
                j += 1
            if j >= n or text[j] in _STRUCTURAL_AFTER_STRING:
                return i + 1
        i += 1
    return n


def _segments(text: str) -> List[List[str]]:
    """Split ``text`` into code, double-quoted and single-quoted segments."""

    segments: List[List[str]] = []
    code_start = 0
    last_sig: Optional[str] = None
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        is_dq = ch == '"'
        is_sq = ch == "'" and last_sig in _SQ_OPENERS
        if is_dq or is_sq:
            if code_start < i:
                segments.append([_CODE, text[code_start:i]])
            end = _read_string(text, i, ch)
            segments.append([_DQ if is_dq else _SQ, text[i:end]])
            last_sig = ch
            i = code_start = end
            continue
        if not ch.isspace():
            last_sig = ch
        i += 1
    if code_start < n:
        segments.append([_CODE, text[code_start:]])
    return segments


def _join(segments: List[List[str]]) -> str:
    return "".join(chunk for _, chunk in segments)


def _map_code(segments: List[List[str]], fn: Callable[[str], str]) -> None:
    for seg in segments:
        if seg[0] == _CODE:
            seg[1] = fn(seg[1])


def _map_strings(segments: List[List[str]], fn: Callable[[str], str]) -> None:
    """Apply ``fn`` to the content of every closed double-quoted string."""

    for seg in segments:
        chunk = seg[1]
        if seg[0] == _DQ and len(chunk) >= 2 and chunk.endswith('"'):
            seg[1] = '"' + fn(chunk[1:-1]) + '"'


def _escape_inner_quotes(content: str) -> str:
    out: List[str] = []
    i = 0
    while i < len(content):
        ch = content[i]
        if ch == "\\" and i + 1 < len(content):
            out.append(content[i : i + 2])
            i += 2
            continue
        out.append('\\"' if ch == '"' else ch)
        i += 1
    return "".join(out)


def _single_to_double(chunk: str) -> str:
    if len(chunk) < 2 or not chunk.endswith("'"):
        inner = chunk[1:]
        closing = ""
    else:
        inner = chunk[1:-1]
        closing = '"'
    inner = inner.replace("\\'", "'")
    return '"' + _escape_inner_quotes(inner) + closing


# -- staged repair ----------------------------------------------------------


def _trim_to_braces(text: str) -> str:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1:
        return text.strip()
    if end < start:
        return text[start:].strip()
    return text[start : end + 1]


def _strip_trailing_commas(code: str) -> str:
    return _TRAILING_COMMAS.sub("", code)


def _quote_bare_keys(code: str) -> str:
    return _BARE_KEY.sub(r'\1"\2"\3', code)


def _strip_control_chars(code: str) -> str:
    return _CONTROL_CHARS.sub(" ", code)


def _collapse_commas_and_whitespace(code: str) -> str:
    code = _COMMA_RUN.sub(",", code)
    code = _LEADING_COMMA.sub(r"\1", code)
    return _WHITESPACE_RUN.sub(" ", code)


def _repair_once(text: str) -> str:
    text = _trim_to_braces(text)
    segments = _segments(text)
    _map_code(segments, _strip_trailing_commas)
    _map_code(segments, _quote_bare_keys)
    for seg in segments:
        if seg[0] == _SQ:
            seg[0], seg[1] = _DQ, _single_to_double(seg[1])
    _map_strings(segments, _escape_inner_quotes)
    _map_code(segments, _strip_control_chars)
    _map_code(segments, _collapse_commas_and_whitespace)
    return _join(segments)


def repair_json(candidate: Optional[str]) -> str:
    """Apply the staged textual repairs until the text stops changing.

    Stages, in order: trim to the outer braces, strip trailing commas, quote
    bare keys, convert single-quoted strings, strip control characters,
    collapse comma runs and whitespace. Everything except the quote
    conversion leaves string literal content untouched.
    """

    text = candidate or ""
    for _ in range(_MAX_REPAIR_PASSES):
        repaired = _repair_once(text)
        if repaired == text:
            break
        text = repaired
    return text


# -- aggressive repair ------------------------------------------------------


def _fix_escapes(content: str) -> str:
    def _sub(match: "re.Match[str]") -> str:
        seq = match.group(1)
        if seq is None:
            return ""
        if len(seq) == 5 or seq in _VALID_ESCAPES:
            return "\\" + seq
        return seq

    return _ESCAPE.sub(_sub, content)


def _quote_bare_values(code: str) -> str:
    code = _PY_LITERAL.sub(lambda m: _PY_LITERALS[m.group(1)], code)
    code = _BARE_MONEY_VALUE.sub(lambda m: m.group(1) + json.dumps(m.group(2)), code)

    def _sub(match: "re.Match[str]") -> str:
        value = match.group(2).strip()
        if not value or value in _JSON_KEYWORDS:
            return match.group(0)
        return match.group(1) + json.dumps(value) + match.group(3)

    return _BARE_VALUE.sub(_sub, code)


def _aggressive_from_repaired(repaired: str) -> str:
    segments = _segments(repaired)
    _map_code(segments, _quote_bare_values)
    _map_strings(segments, _fix_escapes)
    return repair_json(_join(segments))


def aggressive_repair(candidate: str) -> str:
    """Repair, then also quote bare string values and drop invalid escapes."""

    return _aggressive_from_repaired(repair_json(candidate))


def _scan_braces(
    text: str, start: int
) -> Tuple[Optional[int], Tuple[str, ...], Optional[Tuple[int, Tuple[str, ...]]], bool]:
    """String-aware depth scan of ``text`` from the ``{`` at ``start``.

    Returns ``(close, still_open, last_comma, ends_on_closer)``. ``close`` is
    the index just past the point where depth first returns to zero, or None
    when it never does.
    """

    stack: List[str] = []
    in_string = False
    escape = False
    last_comma: Optional[Tuple[int, Tuple[str, ...]]] = None
    last_sig: Optional[str] = None
    for idx in range(start, len(text)):
        char = text[idx]
        if in_string:
            if escape:
                escape = False
            elif char == "\\":
                escape = True
            elif char == '"':
                in_string = False
            continue
        if char.isspace():
            continue
        last_sig = char
        if char == '"':
            in_string = True
        elif char in "{[":
            stack.append(char)
        elif char in "}]":
            if stack:
                stack.pop()
            if not stack:
                return idx + 1, (), last_comma, True
        elif char == ",":
            last_comma = (idx, tuple(stack))
    return None, tuple(stack), last_comma, not in_string and last_sig in ("}", "]")


def _closers(still_open: Tuple[str, ...]) -> str:
    return "".join("}" if opener == "{" else "]" for opener in reversed(still_open))


def is_unterminated(text: Optional[str]) -> bool:
    """True when the object opened by the first ``{`` never closes."""

    start = (text or "").find("{")
    if start == -1:
        return False
    close, _, _, _ = _scan_braces(text, start)
    return close is None


def balance_braces(text: str) -> Optional[str]:
    """Cut ``text`` where the first object closes, or close a truncated one.

    When depth never returns to zero and the text ends right after a closing
    bracket, the still-open brackets are closed at the end. Otherwise the text
    is cut back to the last comma outside a string before closing.
    """

    start = text.find("{")
    if start == -1:
        return None
    close, still_open, last_comma, ends_on_closer = _scan_braces(text, start)
    if close is not None:
        return text[start:close]
    if ends_on_closer:
        return text[start:].rstrip() + _closers(still_open)
    if last_comma is None:
        return None
    cut, open_at_cut = last_comma
    return text[start:cut] + _closers(open_at_cut)


# -- multi-strategy parse ---------------------------------------------------


def _loads_object(text: Optional[str]) -> Optional[Dict[str, Any]]:
    if not text:
        return None
    try:
        data = json.loads(text, strict=False)
    except (json.JSONDecodeError, RecursionError):
        return None
    return data if isinstance(data, dict) else None


def _brace_balance(candidate: str, aggressive: str) -> Optional[Dict[str, Any]]:
    # The raw text first: the repaired text is already trimmed to the last "}".
    balanced = balance_braces(candidate)
    if balanced is not None:
        data = _loads_object(aggressive_repair(balanced))
        if data is not None:
            return data
    balanced = balance_braces(aggressive)
    return _loads_object(balanced) if balanced is not None else None


def parse_with_strategy(candidate: Optional[str]) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
    """Try each strategy in order and return ``(data, strategy_name)``.

    Strategies: ``direct``, ``repaired``, ``aggressive``, ``brace_balance``.
    Each repaired form is computed once and reused by the later strategies.
    """

    if not candidate:
        return None, None
    data = _loads_object(candidate)
    if data is not None:
        return data, "direct"
    repaired = repair_json(candidate)
    data = _loads_object(repaired)
    if data is not None:
        return _parsed(data, "repaired")
    aggressive = _aggressive_from_repaired(repaired)
    data = _loads_object(aggressive)
    if data is not None:
        return _parsed(data, "aggressive")
    data = _brace_balance(candidate, aggressive)
    if data is not None:
        return _parsed(data, "brace_balance")
    return None, None


def _parsed(data: Dict[str, Any], strategy: str) -> Tuple[Dict[str, Any], str]:
    LOGGER.debug("Parsed model JSON with strategy %s", strategy)
    return data, strategy


def parse_llm_json(candidate: Optional[str]) -> Optional[Dict[str, Any]]:
    """Parse a candidate JSON object, returning None when every strategy fails."""

    data, _ = parse_with_strategy(candidate)
    return data


def parse_llm_response(response_text: str) -> Tuple[Dict[str, Any], str]:
    """Locate and parse the JSON object in a raw model response.

    When the located span never closes its first object (a response cut off
    by the token limit), the whole text from the first ``{`` is parsed
    instead, so brace balancing still sees the unfinished tail.

    Raises:
        ExtractionError: the response contains no ``{...}`` span.
        JSONParseError: every parse strategy failed.
    """

    candidate = locate_json_object(response_text)
    if candidate is None:
        raise ExtractionError("No JSON object found in model response")
    if is_unterminated(candidate):
        LOGGER.info("Model JSON looks truncated; balancing from the first '{'")
        candidate = response_text[response_text.find("{") :]
    data, strategy = parse_with_strategy(candidate)
    if data is None:
        LOGGER.debug("Malformed JSON from model: %r", candidate[:1200])
        raise JSONParseError("All JSON repair strategies failed")
    return data, strategy or "direct"
