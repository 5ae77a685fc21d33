"""
Cursor-based scanner for model responses and the argument tokenizer built on top of it.

The scanner knows nothing about directives; it only exposes character-level primitives.
``parse_arguments`` splits a parenthesised argument list such as
    ("example.txt", `ls -la`, max(1, 2))
into the raw substrings
    ['"example.txt"', '`ls -la`', 'max(1, 2)']
keeping quotes, backticks and escape back-slashes exactly as written.
"""

import logging
from typing import (
    Iterable,
    List,
)

logger = logging.getLogger(__name__)


class ProtocolError(RuntimeError):
    """Raised when text does not follow the directive protocol."""


class UnterminatedArgumentsError(ProtocolError):
    """Raised when input ends before an argument list or string literal is closed."""


# ---------------------------------------------------------------------------
# Small helpers
# ---------------------------------------------------------------------------
_QUOTE_SET = {'"', "'", "`"}
_BLANKS = " \t"


class Scanner:
    """A cursor over an immutable string."""

    def __init__(self, text: str, position: int = 0) -> None:
        self.text = text
        self.position = position

    def peek(self) -> str:
        """Return the current character, or ``""`` at end of input."""
        if self.position >= len(self.text):
            return ""
        return self.text[self.position]

    def next(self) -> str:
        """Consume and return the current character, or ``""`` at end of input."""
        if self.position >= len(self.text):
            return ""
        ch = self.text[self.position]
        self.position += 1
        return ch

    def advance(self, count: int) -> None:
        self.position = min(self.position + count, len(self.text))

    def has_prefix(self, literal: str) -> bool:
        """Whether *literal* matches at the cursor (nothing is consumed)."""
        return self.text.startswith(literal, self.position)

    def next_until(self, delimiters: Iterable[str]) -> str:
        """
        Consume characters up to, not including, the first delimiter.

        The cursor is left on the delimiter, or at end of input if none is found.
        """
        stops = set(delimiters)
        start = self.position
        while self.position < len(self.text) and self.text[self.position] not in stops:
            self.position += 1
        return self.text[start : self.position]

    def skip_whitespace(self) -> None:
        """Skip every character with a code point <= 32 (spaces, tabs, newlines, ...)."""
        while self.position < len(self.text) and ord(self.text[self.position]) <= 32:
            self.position += 1

    def skip_blanks(self) -> None:
        """Skip spaces and tabs only, never leaving the current line."""
        while self.position < len(self.text) and self.text[self.position] in _BLANKS:
            self.position += 1

    def read_line(self) -> str:
        """Consume the rest of the current line *including* its newline, if any."""
        end = self.text.find("\n", self.position)
        end = len(self.text) if end < 0 else end + 1
        line = self.text[self.position : end]
        self.position = end
        return line

    def line_is_blank(self) -> bool:
        """Whether the text from the cursor to the next newline is whitespace only."""
        end = self.text.find("\n", self.position)
        end = len(self.text) if end < 0 else end
        return not self.text[self.position : end].strip()

    def eof(self) -> bool:
        return self.position >= len(self.text)

    def slice(self, start: int, end: int) -> str:
        return self.text[start:end]


def _skip_quoted(scanner: Scanner) -> None:
    """Skip a quoted span verbatim.  A back-slash escapes the next character."""
    quote = scanner.next()
    while not scanner.eof():
        ch = scanner.next()
        if ch == "\\":
            scanner.next()
        elif ch == quote:
            return
    raise UnterminatedArgumentsError(f"unterminated {quote} string literal")


def _scan_arguments(scanner: Scanner) -> List[str]:
    if scanner.peek() != "(":
        raise ProtocolError(f"expected '(' at pos {scanner.position}, found {scanner.peek()!r}")
    scanner.next()
    scanner.skip_whitespace()
    if scanner.peek() == ")":
        scanner.next()
        return []

    args: List[str] = []
    depth = 0
    arg_start = scanner.position
    while True:
        if scanner.eof():
            raise UnterminatedArgumentsError("unexpected end of input while parsing arguments")

        ch = scanner.peek()
        if ch in _QUOTE_SET:
            _skip_quoted(scanner)
        elif ch == "(":
            depth += 1
            scanner.next()
        elif ch == ")":
            if depth == 0:
                args.append(scanner.slice(arg_start, scanner.position))
                scanner.next()
                return args
            depth -= 1
            scanner.next()
        elif ch == "," and depth == 0:
            args.append(scanner.slice(arg_start, scanner.position))
            scanner.next()
            scanner.skip_whitespace()
            arg_start = scanner.position
        else:
            scanner.next()


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------
def parse_arguments(scanner: Scanner, strict: bool = False) -> List[str]:
    """
    Split the argument list starting at the cursor (which must be on ``(``).

    On success the cursor is left just past the closing ``)``.

    Parameters
    ----------
    scanner:
        Scanner positioned on the opening parenthesis.
    strict:
        If *True*, raise instead of degrading.

    Returns
    -------
    List[str]
        Raw argument substrings.  An unterminated list yields ``[]`` (logged as a warning) unless
        *strict* is set.

    Raises
    ------
    ProtocolError
        Only when *strict* is set and the list is malformed.
    """
    try:
        return _scan_arguments(scanner)
    except ProtocolError as exc:
        if strict:
            raise
        logger.warning("Could not parse argument list: %s", exc)
        return []
