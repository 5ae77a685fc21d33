"""
Tool registry for parley.

A tool is any object exposing an ``identifier`` and a ``functions`` mapping of function name to
callable.  Callables receive positional argument values and return (or resolve to) a value that is
reported back to the model as a string.  :class:`Tool` is a convenience implementation whose
functions are added with a decorator:

    calculator = Tool("calculator", name="Calculator")

    @calculator.function("add")
    def add(a: float, b: float) -> float:
        return a + b

Tools are looked up by identifier in :data:`TOOL_REGISTRY`.
"""

import inspect
import logging
from typing import (
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Protocol,
    Sequence,
    TypedDict,
    get_type_hints,
    runtime_checkable,
)

logger = logging.getLogger(__name__)


@runtime_checkable
class ToolLike(Protocol):
    """Anything the agent can call into."""

    identifier: str
    functions: Mapping[str, Callable]


class Tool:
    """A named group of callables exposed to the model."""

    def __init__(
        self,
        identifier: str,
        name: str | None = None,
        abilities: Sequence[str] = (),
        instructions: Sequence[str] = (),
    ) -> None:
        self.identifier = identifier
        self.name = name or identifier
        self.abilities = list(abilities)
        self.instructions = list(instructions)
        self.functions: Dict[str, Callable] = {}

    def function(self, name: str | None = None) -> Callable:
        """
        Register a function of this tool.

        Parameters
        ----------
        name: str | None
            Function name used in directives; defaults to the Python function name.
        Returns
        -------
        Callable
            A decorator that registers the function and returns it unchanged.
        Raises
        ------
        ValueError
            If a function with the same name is already registered on this tool.
        """

        def wrapper(fn: Callable) -> Callable:
            fn_name = name or fn.__name__
            if fn_name in self.functions:
                raise ValueError(
                    f"Function '{fn_name}' is already registered on '{self.identifier}'."
                )
            self.functions[fn_name] = fn
            return fn

        return wrapper

    def __repr__(self) -> str:
        return f"Tool({self.identifier!r}, functions={sorted(self.functions)})"


TOOL_REGISTRY: Dict[str, ToolLike] = {}
"""Global registry of tools, keyed by identifier."""


def register_tool(tool: ToolLike) -> ToolLike:
    """
    Add *tool* to :data:`TOOL_REGISTRY`.

    Raises
    ------
    ValueError
        If a tool with the same identifier is already registered.
    """
    if tool.identifier in TOOL_REGISTRY:
        raise ValueError(f"Tool '{tool.identifier}' is already registered.")
    logger.debug("Registering tool '%s'", tool.identifier)
    TOOL_REGISTRY[tool.identifier] = tool
    return tool


def find_tool(tools: Iterable[ToolLike], identifier: str) -> ToolLike | None:
    for tool in tools:
        if tool.identifier == identifier:
            return tool
    return None


class ParameterInfo(TypedDict):
    """
    Information about a tool function parameter.
    """

    type: str
    required: bool


class FunctionSchema(TypedDict):
    """
    Schema for one function of a tool
    """

    description: str
    parameters: Mapping[str, ParameterInfo]


class ToolSchema(TypedDict):
    """
    Schema for a tool
    """

    name: str
    abilities: List[str]
    instructions: List[str]
    functions: Mapping[str, FunctionSchema]


def _function_schema(func: Callable) -> FunctionSchema:
    sig = inspect.signature(func)
    try:
        type_hints = get_type_hints(func)
    except (NameError, TypeError):
        type_hints = {}
    params: Dict[str, ParameterInfo] = {}
    for param_name, param in sig.parameters.items():
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue
        param_type = type_hints.get(param_name, "any")
        param_type_name = getattr(param_type, "__name__", str(param_type))
        params[param_name] = ParameterInfo(
            type=param_type_name, required=param.default == inspect.Parameter.empty
        )
    return {"description": inspect.getdoc(func) or "", "parameters": params}


def get_tool_schemas(tools: Iterable[ToolLike] | None = None) -> Mapping[str, ToolSchema]:
    """Extract function and parameter information from *tools* (default: all registered)."""
    if tools is None:
        tools = TOOL_REGISTRY.values()
    tool_schemas: Dict[str, ToolSchema] = {}
    for tool in tools:
        tool_schemas[tool.identifier] = {
            "name": getattr(tool, "name", tool.identifier),
            "abilities": list(getattr(tool, "abilities", [])),
            "instructions": list(getattr(tool, "instructions", [])),
            "functions": {
                fn_name: _function_schema(fn) for fn_name, fn in tool.functions.items()
            },
        }
    return tool_schemas
