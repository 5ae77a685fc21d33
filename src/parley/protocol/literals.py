"""
Narrow literal interpreter for raw directive arguments.

Raw arguments are never executed.  Only JSON-like scalars are understood:

* string literals delimited by ``"``, ``'`` or a backtick, with a fixed set of escapes
* integers and floats
* booleans (``true``/``false``, ``True``/``False``)

Everything else is rejected with :class:`ArgumentEvaluationError`.
"""

import re
from typing import (
    List,
    Sequence,
    Union,
)

LiteralValue = Union[str, int, float, bool]


class ArgumentEvaluationError(ValueError):
    """Raised when a raw argument is not a supported literal."""


_QUOTE_SET = {'"', "'", "`"}
_ESCAPES = {
    "\\": "\\",
    '"': '"',
    "'": "'",
    "`": "`",
    "/": "/",
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "0": "\0",
}
_INT_RE = re.compile(r"[+-]?\d+")
_FLOAT_RE = re.compile(r"[+-]?(?:(?:\d+\.\d*|\.\d+)(?:[eE][+-]?\d+)?|\d+[eE][+-]?\d+)")
_BOOLEANS = {"true": True, "True": True, "false": False, "False": False}


def _decode_string(text: str) -> str:
    """Decode a complete string literal; the closing quote must be the last character."""
    quote = text[0]
    out: List[str] = []
    i = 1
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            if i + 1 >= len(text):
                break
            esc = text[i + 1]
            if esc == "u":
                digits = text[i + 2 : i + 6]
                if len(digits) != 4 or not all(c in "0123456789abcdefABCDEF" for c in digits):
                    raise ArgumentEvaluationError(f"invalid \\u escape in {text!r}")
                out.append(chr(int(digits, 16)))
                i += 6
                continue
            if esc not in _ESCAPES:
                raise ArgumentEvaluationError(f"unsupported escape '\\{esc}' in {text!r}")
            out.append(_ESCAPES[esc])
            i += 2
            continue
        if ch == quote:
            if i != len(text) - 1:
                raise ArgumentEvaluationError(f"unexpected text after closing quote in {text!r}")
            return "".join(out)
        out.append(ch)
        i += 1
    raise ArgumentEvaluationError(f"unterminated string literal {text!r}")


def evaluate_argument(raw: str) -> LiteralValue:
    """
    Interpret one raw argument substring.

    ``'"a b"'`` gives ``"a b"``, ``"-3"`` gives ``-3``, ``"1 + 2"`` raises.
    """
    text = raw.strip()
    if not text:
        raise ArgumentEvaluationError("empty argument")
    if text[0] in _QUOTE_SET:
        return _decode_string(text)
    if text in _BOOLEANS:
        return _BOOLEANS[text]
    if _INT_RE.fullmatch(text):
        return int(text)
    if _FLOAT_RE.fullmatch(text):
        return float(text)
    raise ArgumentEvaluationError(f"unsupported argument literal: {text!r}")


def evaluate_arguments(raw_args: Sequence[str]) -> List[LiteralValue]:
    """Evaluate every raw argument, failing on the first unsupported one."""
    return [evaluate_argument(arg) for arg in raw_args]


def unquote(raw: str) -> str:
    """Return the decoded string if *raw* is a single string literal, else *raw* unchanged."""
    text = raw.strip()
    if text and text[0] in _QUOTE_SET:
        try:
            return _decode_string(text)
        except ArgumentEvaluationError:
            return raw
    return raw
