"""
Basic sanity tests for the tool executor.

Run with:
$ pytest -q
"""

import asyncio

import pytest

from parley.agent.tool_executor import (
    ToolExecutionError,
    execute_tool,
    execute_tool_call,
    execute_tool_calls,
)
from parley.core.schema import ToolCall
from parley.tools import Tool

# This is a stub tool for testing purposes; it is not added to the global registry.
math_tool = Tool("math", name="Math")


@math_tool.function("add")
def _add(a: int, b: int) -> int:
    """Return the sum of two integers (used only for tests)."""

    return a + b


@math_tool.function("fail")
def _fail() -> None:
    raise RuntimeError("boom")


@math_tool.function("slow")
async def _slow(delay: float, label: str) -> str:
    await asyncio.sleep(delay)
    return label


TOOLS = [math_tool]


def _call(function_name: str, *raw_args: str, correlation_id: str = "c1") -> ToolCall:
    return ToolCall(
        tool_id="math",
        correlation_id=correlation_id,
        function_name=function_name,
        raw_args=list(raw_args),
    )


@pytest.mark.asyncio
async def test_execute_tool_success() -> None:
    """Executor should return the correct value when the tool is valid."""

    assert await execute_tool(_call("add", "2", "3"), TOOLS) == 5


@pytest.mark.asyncio
async def test_execute_tool_missing() -> None:
    """Executor should raise *ToolExecutionError* for an unknown tool."""

    call = ToolCall(tool_id="not_a_tool", function_name="x")
    with pytest.raises(ToolExecutionError, match="not_a_tool"):
        await execute_tool(call, TOOLS)


@pytest.mark.asyncio
async def test_execute_tool_missing_function() -> None:
    with pytest.raises(ToolExecutionError, match="Function 'mul' not found in tool 'math'"):
        await execute_tool(_call("mul", "1", "2"), TOOLS)


@pytest.mark.asyncio
async def test_execute_tool_bad_args() -> None:
    """Executor should raise *ToolExecutionError* for wrong arguments."""

    with pytest.raises(ToolExecutionError, match="Invalid arguments"):
        await execute_tool(_call("add", "2"), TOOLS)  # missing 'b'


@pytest.mark.asyncio
async def test_expressions_are_not_evaluated() -> None:
    with pytest.raises(ToolExecutionError, match="Invalid arguments"):
        await execute_tool(_call("add", "1 + 1", "2"), TOOLS)


@pytest.mark.asyncio
async def test_failures_become_unsuccessful_results() -> None:
    result = await execute_tool_call(_call("fail", correlation_id="id-9"), TOOLS)
    assert result.correlation_id == "id-9"
    assert result.success is False
    assert "boom" in result.content


@pytest.mark.asyncio
async def test_results_are_strings() -> None:
    result = await execute_tool_call(_call("add", "20", "22"), TOOLS)
    assert result.success is True
    assert result.content == "42"


@pytest.mark.asyncio
async def test_batch_keeps_call_order_and_continues_after_failure() -> None:
    calls = [
        _call("add", "1", "2", correlation_id="a"),
        _call("fail", correlation_id="b"),
        _call("add", "3", "4", correlation_id="c"),
    ]
    results = await execute_tool_calls(calls, TOOLS)
    assert [(r.correlation_id, r.success) for r in results] == [
        ("a", True),
        ("b", False),
        ("c", True),
    ]


@pytest.mark.asyncio
async def test_concurrent_batch_returns_results_in_call_order() -> None:
    calls = [
        _call("slow", "0.05", '"first"', correlation_id="a"),
        _call("slow", "0", '"second"', correlation_id="b"),
    ]
    results = await execute_tool_calls(calls, TOOLS, concurrent=True)
    assert [r.content for r in results] == ["first", "second"]
