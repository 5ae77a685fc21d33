"""Built-in tools registered on import: echo, calculator and filesystem."""

import ast
import asyncio
import logging
import math
import operator
from pathlib import Path
from typing import (
    Any,
    Callable,
    Dict,
    Type,
)

from parley.tools import (
    Tool,
    register_tool,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# echo
# ---------------------------------------------------------------------------
echo = register_tool(
    Tool(
        "echo",
        name="Echo",
        abilities=["Repeat text back"],
        instructions=["Use say to check that tool calls work."],
    )
)


@echo.function("say")
def echo_say(text: str) -> str:
    """Echo the input text back to the caller."""
    return text


# ---------------------------------------------------------------------------
# calculator
# ---------------------------------------------------------------------------
calculator = register_tool(
    Tool(
        "calculator",
        name="Calculator",
        abilities=["Perform arithmetic"],
        instructions=[
            "Pass the expression as a quoted string, e.g. calculate(\"(20 + 2) / 7\").",
            "Supports + - * / // % **, parentheses, sqrt, abs, round, min, max, pi and e.",
        ],
    )
)

_OPERATORS: Dict[Type[ast.AST], Callable[..., Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
}

_NAMES: Dict[str, Any] = {
    "abs": abs,
    "round": round,
    "min": min,
    "max": max,
    "sqrt": math.sqrt,
    "pi": math.pi,
    "e": math.e,
}


def _eval_node(node: ast.AST) -> Any:
    if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)):
        return node.value
    if isinstance(node, ast.BinOp) and type(node.op) in _OPERATORS:
        return _OPERATORS[type(node.op)](_eval_node(node.left), _eval_node(node.right))
    if isinstance(node, ast.UnaryOp) and type(node.op) in _OPERATORS:
        return _OPERATORS[type(node.op)](_eval_node(node.operand))
    if isinstance(node, ast.Name) and node.id in _NAMES:
        return _NAMES[node.id]
    if isinstance(node, ast.Call) and isinstance(node.func, ast.Name) and not node.keywords:
        func = _NAMES.get(node.func.id)
        if callable(func):
            return func(*[_eval_node(arg) for arg in node.args])
    raise ValueError(f"Unsupported expression element: {ast.dump(node)}")


@calculator.function("calculate")
def calculate(expression: str) -> str:
    """Evaluate an arithmetic expression and return the result."""
    tree = ast.parse(str(expression), mode="eval")
    result = _eval_node(tree.body)
    logger.debug("calculator.calculate(%r) -> %r", expression, result)
    return str(result)


# ---------------------------------------------------------------------------
# filesystem
# ---------------------------------------------------------------------------
filesystem = register_tool(
    Tool(
        "filesystem",
        name="File system tool",
        abilities=[
            "Read a file from disk",
            "Write a file to disk",
            "Delete a file from disk",
            "Create a directory",
            "List files in a directory",
        ],
        instructions=["Paths are relative to the current working directory."],
    )
)


@filesystem.function("read")
async def fs_read(file_path: str) -> str:
    """Read a text file and return its contents."""
    logger.info("Reading file: %s", file_path)
    return await asyncio.to_thread(Path(file_path).read_text, encoding="utf-8")


@filesystem.function("write")
async def fs_write(file_path: str, content: str) -> str:
    """Write text to a file, creating parent directories."""
    logger.info("Writing to file: %s", file_path)
    path = Path(file_path)

    def _write() -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")

    await asyncio.to_thread(_write)
    return f"Successfully wrote to file: {file_path}"


@filesystem.function("delete")
async def fs_delete(file_path: str) -> str:
    """Delete a file."""
    logger.info("Deleting file: %s", file_path)
    await asyncio.to_thread(Path(file_path).unlink)
    return f"Successfully deleted file: {file_path}"


@filesystem.function("createDirectory")
async def fs_create_directory(dir_path: str) -> str:
    """Create a directory (and parents)."""
    logger.info("Creating directory: %s", dir_path)
    await asyncio.to_thread(Path(dir_path).mkdir, parents=True, exist_ok=True)
    return f"Successfully created directory: {dir_path}"


@filesystem.function("listFiles")
async def fs_list_files(dir_path: str = ".") -> str:
    """List the entries of a directory, one per line; directories end with '/'."""
    logger.info("Listing files in: %s", dir_path)

    def _list() -> str:
        entries = sorted(Path(dir_path).iterdir(), key=lambda p: p.name)
        return "\n".join(f"{p.name}/" if p.is_dir() else p.name for p in entries)

    return await asyncio.to_thread(_list)
