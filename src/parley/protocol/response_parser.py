"""
Parser for the line-oriented directive protocol embedded in model output.

A model response is free text in which some lines carry directives:

    TOOL:[<correlationId>:]<tool>.<function>(<arg0>, <arg1>, ...)
    AGENT:[<correlationId>:]<agent>("<message>")
    TOOL:done

The parser extracts the directives in source order and rebuilds the prose for display, replacing
every directive with a short bracketed description.  Malformed directives are never an error:
the line is kept as ordinary text.
"""

import logging
from enum import Enum
from typing import (
    Optional,
    Tuple,
    Union,
)

from parley.core.schema import (
    DEFAULT_CORRELATION_ID,
    AgentCall,
    ParsedMessage,
    ToolCall,
)
from parley.protocol.literals import unquote
from parley.protocol.scanner import (
    ProtocolError,
    Scanner,
    parse_arguments,
)

logger = logging.getLogger(__name__)

TOOL_PREFIX = "TOOL:"
AGENT_PREFIX = "AGENT:"
DONE_SENTINEL = "done"
TASK_COMPLETED_DESCRIPTION = "[Task completed]"

_IDENTIFIER_DELIMITERS = ("(", " ", ".", "\n", "\t", "\r")
_FUNCTION_DELIMITERS = ("(", " ", "\n", "\t", "\r")


class _State(Enum):
    SCANNING_LINE = "scanning_line"
    PARSING_TOOL_DIRECTIVE = "parsing_tool_directive"
    PARSING_AGENT_DIRECTIVE = "parsing_agent_directive"


class _Done:
    """Marker returned when the ``TOOL:done`` sentinel is recognised."""


_DONE = _Done()

Directive = Union[ToolCall, AgentCall, _Done]


def _split_correlation(identifier: str) -> Tuple[str, str]:
    """Split ``corr:name`` into ``(corr, name)``; anything else has no correlation id."""
    parts = identifier.split(":")
    if len(parts) == 2 and parts[0] and parts[1]:
        return parts[0], parts[1]
    return DEFAULT_CORRELATION_ID, identifier


def _one_line(text: str) -> str:
    """Escape line breaks so a description can never start a new (directive) line."""
    return text.replace("\r", "\\r").replace("\n", "\\n")


def _describe(directive: Directive) -> str:
    if isinstance(directive, ToolCall):
        return f"[Using {_one_line(directive.describe())}]"
    if isinstance(directive, AgentCall):
        message = _one_line(directive.message)
        return f'[Delegating to agent {directive.target_agent_name}: "{message}"]'
    return TASK_COMPLETED_DESCRIPTION


class ResponseParser:
    """Turns one raw model response into a :class:`ParsedMessage`."""

    def __init__(self, raw_response: str) -> None:
        self._raw = raw_response
        self._content = ""

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    def parse(self) -> ParsedMessage:
        """Parse the whole response.  Never raises for malformed directives."""
        self._content = ""
        result = ParsedMessage()
        scanner = Scanner(self._raw)

        while not scanner.eof():
            line_start = scanner.position
            state = self._recognize(scanner)
            if state is _State.SCANNING_LINE:
                scanner.position = line_start
                self._content += scanner.read_line()
                continue

            directive: Optional[Directive]
            if state is _State.PARSING_TOOL_DIRECTIVE:
                directive = self._parse_tool_directive(scanner)
            else:
                directive = self._parse_agent_directive(scanner)

            if directive is None:
                logger.debug("Malformed directive kept as text: %r", self._raw[line_start:])
                scanner.position = line_start
                self._content += scanner.read_line()
                continue

            if isinstance(directive, ToolCall):
                result.tool_calls.append(directive)
            elif isinstance(directive, AgentCall):
                result.agent_calls.append(directive)
            else:
                result.done = True

            self._ensure_blank_line()
            self._content += _describe(directive)
            self._finish_directive_line(scanner)

        result.content = self._content
        logger.debug(
            "Parsed response: %d tool call(s), %d agent call(s), done=%s",
            len(result.tool_calls),
            len(result.agent_calls),
            result.done,
        )
        return result

    # ------------------------------------------------------------------ #
    # Directive recognition
    # ------------------------------------------------------------------ #
    @staticmethod
    def _recognize(scanner: Scanner) -> _State:
        scanner.skip_blanks()
        if scanner.has_prefix(TOOL_PREFIX):
            return _State.PARSING_TOOL_DIRECTIVE
        if scanner.has_prefix(AGENT_PREFIX):
            return _State.PARSING_AGENT_DIRECTIVE
        return _State.SCANNING_LINE

    @staticmethod
    def _parse_tool_directive(scanner: Scanner) -> Optional[Directive]:
        scanner.advance(len(TOOL_PREFIX))
        scanner.skip_blanks()

        identifier = scanner.next_until(_IDENTIFIER_DELIMITERS)
        if identifier == DONE_SENTINEL:
            return _DONE

        correlation_id, tool_id = _split_correlation(identifier)
        if not tool_id:
            return None

        scanner.skip_blanks()
        if scanner.peek() != ".":
            return None
        scanner.next()
        scanner.skip_blanks()

        function_name = scanner.next_until(_FUNCTION_DELIMITERS)
        if not function_name:
            return None

        scanner.skip_blanks()
        if scanner.peek() != "(":
            return None
        try:
            args = parse_arguments(scanner, strict=True)
        except ProtocolError as exc:
            logger.warning("Ignoring tool directive for '%s': %s", tool_id, exc)
            return None

        return ToolCall(
            tool_id=tool_id,
            correlation_id=correlation_id,
            function_name=function_name,
            raw_args=args,
        )

    @staticmethod
    def _parse_agent_directive(scanner: Scanner) -> Optional[Directive]:
        scanner.advance(len(AGENT_PREFIX))
        scanner.skip_blanks()

        identifier = scanner.next_until(_IDENTIFIER_DELIMITERS)
        correlation_id, agent_name = _split_correlation(identifier)
        if not agent_name:
            return None

        scanner.skip_blanks()
        if scanner.peek() != "(":
            return None
        try:
            args = parse_arguments(scanner, strict=True)
        except ProtocolError as exc:
            logger.warning("Ignoring delegation to '%s': %s", agent_name, exc)
            return None
        if not args:
            return None

        message = unquote(args[0]) if len(args) == 1 else ", ".join(args)
        return AgentCall(
            target_agent_name=agent_name, correlation_id=correlation_id, message=message
        )

    # ------------------------------------------------------------------ #
    # Content reconstruction
    # ------------------------------------------------------------------ #
    def _ensure_blank_line(self) -> None:
        """Make the accumulated content end with an empty line (two newlines)."""
        if not self._content or self._content.endswith("\n\n"):
            return
        if self._content.endswith("\n"):
            self._content += "\n"
        else:
            self._content += "\n\n"

    def _finish_directive_line(self, scanner: Scanner) -> None:
        """Handle whatever follows a directive on its own line and the line after it."""
        scanner.skip_blanks()
        if scanner.has_prefix(TOOL_PREFIX) or scanner.has_prefix(AGENT_PREFIX):
            # another directive on the same line; the main loop picks it up
            self._content += "\n\n"
            return

        trailing = scanner.read_line().strip()
        if trailing:
            self._content += "\n\n" + trailing
        if scanner.eof():
            return

        self._content += "\n\n"
        if scanner.line_is_blank():
            scanner.read_line()


def parse_response(raw_response: str) -> ParsedMessage:
    """Convenience wrapper around :class:`ResponseParser`."""
    return ResponseParser(raw_response).parse()
