"""
Targeted single-field scanner for provider response bodies.

The provider envelopes are known in advance, so instead of modelling the
whole document we locate one string field and decode it in a single
forward pass:

- find the first occurrence of ``marker``
- after it, find the first ``"<key>"`` followed by ``:`` and an opening
  ``"`` (JSON whitespace around the colon is allowed, so pretty-printed
  bodies match too)
- copy characters until an unescaped ``"``

Escape table applied after a backslash:

    \\"  \\\\  \\/   literal character
    \\b  \\f      backspace, form feed
    \\n  \\r  \\t  newline, carriage return, tab
    \\uXXXX     one UTF-16 code unit (a high/low surrogate pair is joined)
    \\<other>   the other character, copied verbatim

Leniency policy: an unrecognised ``\\<char>`` passes the character through,
and a ``\\uXXXX`` that is not four hex digits or that is an unpaired
surrogate contributes nothing. Neither fails the extraction. A dangling
backslash, a ``\\u`` with fewer than four characters left, or a missing
closing quote raises ``MalformedFieldError``.
"""

from __future__ import annotations

import string
from typing import List, NamedTuple, Optional

from .errors import FieldNotFoundError, MalformedFieldError


class FieldLocator(NamedTuple):
    marker: str
    key: str


# Responses API: {"type": "output_text", ..., "text": "..."}; the body is
# pretty-printed, so the marker is the type value alone
OPENAI_OUTPUT_TEXT = FieldLocator('"output_text"', "text")
# Ollama chat: {"message":{"role":"assistant","content":"..."}}
OLLAMA_MESSAGE_CONTENT = FieldLocator('"message"', "content")

_SIMPLE_ESCAPES = {
    '"': '"',
    "\\": "\\",
    "/": "/",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
}

_HEX = frozenset(string.hexdigits)
_JSON_WS = " \t\n\r"


def _code_unit(digits: str) -> Optional[int]:
    if len(digits) != 4 or not all(c in _HEX for c in digits):
        return None
    return int(digits, 16)


def _low_surrogate_at(text: str, pos: int) -> Optional[int]:
    """Return the low surrogate encoded as ``\\uXXXX`` at ``pos``, if any."""
    if text[pos:pos + 2] != "\\u":
        return None
    unit = _code_unit(text[pos + 2:pos + 6])
    if unit is not None and 0xDC00 <= unit <= 0xDFFF:
        return unit
    return None


def _skip_ws(text: str, pos: int) -> int:
    while pos < len(text) and text[pos] in _JSON_WS:
        pos += 1
    return pos


def _value_start(text: str, key: str, start: int) -> int:
    """Index just past the opening quote of the first string value of ``key``."""
    name = f'"{key}"'
    pos = text.find(name, start)
    while pos >= 0:
        i = _skip_ws(text, pos + len(name))
        if i < len(text) and text[i] == ":":
            i = _skip_ws(text, i + 1)
            if i < len(text) and text[i] == '"':
                return i + 1
        pos = text.find(name, pos + len(name))
    return -1


def extract_field(raw_text: str, marker: str, key: str) -> str:
    start = raw_text.find(marker)
    if start < 0:
        raise FieldNotFoundError(f"marker {marker!r} not found in response")

    i = _value_start(raw_text, key, start + len(marker))
    if i < 0:
        raise FieldNotFoundError(f"key {key!r} not found after marker {marker!r}")

    out: List[str] = []
    n = len(raw_text)
    while i < n:
        ch = raw_text[i]
        if ch == '"':
            return "".join(out)
        if ch != "\\":
            out.append(ch)
            i += 1
            continue

        i += 1
        if i >= n:
            raise MalformedFieldError("dangling backslash at end of input")
        esc = raw_text[i]
        if esc != "u":
            out.append(_SIMPLE_ESCAPES.get(esc, esc))
            i += 1
            continue

        digits = raw_text[i + 1:i + 5]
        if len(digits) < 4:
            raise MalformedFieldError("truncated \\u escape")
        i += 5
        unit = _code_unit(digits)
        if unit is None:
            continue
        if 0xD800 <= unit <= 0xDBFF:
            low = _low_surrogate_at(raw_text, i)
            if low is not None:
                out.append(chr(0x10000 + ((unit - 0xD800) << 10) + (low - 0xDC00)))
                i += 6
            continue
        if 0xDC00 <= unit <= 0xDFFF:
            continue
        out.append(chr(unit))

    raise MalformedFieldError(f"unterminated string value for key {key!r}")


def extract(raw_text: str, locator: FieldLocator) -> str:
    return extract_field(raw_text, locator.marker, locator.key)
