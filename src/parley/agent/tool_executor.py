"""Dispatches parsed tool calls to tool functions and wraps errors into tool results."""

import asyncio
import inspect
import logging
from typing import (
    Any,
    Iterable,
    List,
    Sequence,
)

from parley.core.schema import (
    ToolCall,
    ToolResult,
)
from parley.protocol.literals import (
    ArgumentEvaluationError,
    evaluate_arguments,
)
from parley.tools import (
    ToolLike,
    find_tool,
)

logger = logging.getLogger(__name__)


class ToolExecutionError(RuntimeError):
    """Raised when a requested tool cannot run or fails."""


async def execute_tool(call: ToolCall, tools: Iterable[ToolLike]) -> Any:
    """
    Look up ``call.tool_id`` among *tools* and invoke the requested function.

    Parameters
    ----------
    call:
        The parsed tool call.  Its raw arguments are interpreted as literals first.
    tools:
        Tools available to the calling agent.

    Returns
    -------
    Any
        Whatever the tool function returns (awaited if it is awaitable).

    Raises
    ------
    ToolExecutionError
        If the tool or function is missing, the arguments are invalid, or the invocation raises.
    """
    tool = find_tool(tools, call.tool_id)
    if tool is None:
        raise ToolExecutionError(f"Tool with identifier '{call.tool_id}' not found.")

    tool_fn = tool.functions.get(call.function_name)
    if tool_fn is None:
        raise ToolExecutionError(
            f"Function '{call.function_name}' not found in tool '{call.tool_id}'."
        )

    try:
        args = evaluate_arguments(call.raw_args)
    except ArgumentEvaluationError as exc:
        raise ToolExecutionError(f"Invalid arguments for '{call.describe()}': {exc}") from exc

    try:
        logger.debug("Executing tool '%s' with args=%s", call.describe(), args)
        result = tool_fn(*args)
        if inspect.isawaitable(result):
            result = await result
        return result
    except TypeError as exc:
        # Argument count or keyword mismatch
        logger.exception("Argument error while executing tool '%s'", call.describe())
        raise ToolExecutionError(f"Invalid arguments for '{call.describe()}': {exc}") from exc
    except Exception as exc:  # noqa: BLE001
        logger.exception("Unhandled error in tool '%s'", call.describe())
        raise ToolExecutionError(f"Tool '{call.describe()}' raised an error: {exc}") from exc


async def execute_tool_call(call: ToolCall, tools: Iterable[ToolLike]) -> ToolResult:
    """Execute one call; failures become ``ToolResult(success=False)``."""
    try:
        result = await execute_tool(call, tools)
    except ToolExecutionError as exc:
        logger.warning("Tool failure: %s", exc)
        return ToolResult(correlation_id=call.correlation_id, success=False, content=str(exc))
    return ToolResult(correlation_id=call.correlation_id, success=True, content=str(result))


async def execute_tool_calls(
    calls: Sequence[ToolCall], tools: Iterable[ToolLike], concurrent: bool = False
) -> List[ToolResult]:
    """Execute *calls* in order (or concurrently) and return their results in call order."""
    tools = list(tools)
    if concurrent:
        return list(await asyncio.gather(*(execute_tool_call(c, tools) for c in calls)))
    return [await execute_tool_call(call, tools) for call in calls]
