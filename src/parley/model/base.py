"""
Model binding interface for parley.

This module and :mod:`parley.model.providers` are the only places that *directly* talk to an LLM.
Everything else (agents, scheduler, tools) stays model-agnostic and only uses :class:`ModelBinding`.

A binding owns one conversation context (role-tagged messages), appends to it on every
send/receive, and can persist it as JSON.  A pending call can be abandoned with
:meth:`ModelBinding.cancel`, which surfaces as :class:`ModelCancelledError`.

Additional providers can be added by subclassing :class:`ModelBinding` and registering via
:func:`register_model`.
"""

import asyncio
import logging
from abc import (
    ABC,
    abstractmethod,
)
from pathlib import Path
from typing import (
    Any,
    Awaitable,
    Callable,
    ClassVar,
    Dict,
    List,
    Sequence,
    Type,
    Union,
)

from pydantic import (
    TypeAdapter,
    ValidationError,
)

from parley.config import settings
from parley.core.schema import (
    Message,
    ToolResponseBatch,
)

logger = logging.getLogger(__name__)

Prompt = Union[str, ToolResponseBatch]

_CONTEXT_ADAPTER = TypeAdapter(List[Message])


class ModelError(RuntimeError):
    """Raised when the model backend fails (network, auth, timeout, bad payload)."""


class ModelCancelledError(ModelError):
    """Raised when a model call is abandoned through the cancellation signal."""


# ---------------------------------------------------------------------------
# Registry helpers
# ---------------------------------------------------------------------------
_MODEL_REGISTRY: Dict[str, Type["ModelBinding"]] = {}


def register_model(name: str) -> Callable:
    """Decorator to register a model binding class under provider *name*."""

    def wrapper(cls: Type["ModelBinding"]) -> Type["ModelBinding"]:
        _MODEL_REGISTRY[name] = cls
        return cls

    return wrapper


def load_model(
    provider: str | None = None, model: str | None = None, **properties: Any
) -> "ModelBinding":
    """
    Factory that returns an instantiated model binding.

    Fallback order for the provider:
    1. *provider* arg
    2. ``settings.DEFAULT_PROVIDER``

    The model id falls back to ``settings.DEFAULT_MODEL`` for the default provider and to the
    binding's own ``DEFAULT_MODEL`` otherwise.
    """
    # Registers the built-in providers
    # pylint: disable-next=import-outside-toplevel,unused-import
    import parley.model.providers  # noqa: F401

    target = (provider or settings.DEFAULT_PROVIDER).lower()
    cls = _MODEL_REGISTRY.get(target)
    if cls is None:
        raise ValueError(f"Model provider '{target}' is not registered.")
    if model is None:
        model = settings.DEFAULT_MODEL if target == settings.DEFAULT_PROVIDER else cls.DEFAULT_MODEL
    return cls(model, **properties)


def registered_providers() -> List[str]:
    return sorted(_MODEL_REGISTRY)


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------
class ModelBinding(ABC):
    """Abstract chat model with an owned conversation context."""

    PROVIDER: ClassVar[str] = "base"
    DEFAULT_MODEL: ClassVar[str] = ""

    def __init__(
        self,
        model: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> None:
        self.model = model
        self.temperature = settings.MODEL_TEMPERATURE if temperature is None else temperature
        self.max_tokens = settings.MODEL_MAX_TOKENS if max_tokens is None else max_tokens
        self._system_prompt = ""
        self._context: List[Message] = []
        self._cancel_event = asyncio.Event()

    # ------------------------------------------------------------------ #
    # Identity / system prompt
    # ------------------------------------------------------------------ #
    def get_identifier(self) -> str:
        return f"{self.PROVIDER}:{self.model}"

    def set_system_prompt(self, text: str) -> None:
        self._system_prompt = text

    @property
    def system_prompt(self) -> str:
        return self._system_prompt

    # ------------------------------------------------------------------ #
    # Context management
    # ------------------------------------------------------------------ #
    def get_context(self) -> List[Message]:
        return list(self._context)

    def set_context(self, messages: Sequence[Message]) -> None:
        self._context = list(messages)

    def clear_context(self) -> None:
        self._context = []

    async def save_context(self, path: Path | str) -> None:
        """Write the context as a JSON array of ``{role, content}`` objects."""
        target = Path(path)
        data = _CONTEXT_ADAPTER.dump_json(self._context, indent=2)

        def _write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)

        await asyncio.to_thread(_write)
        logger.debug("Saved %d context messages to %s", len(self._context), target)

    async def load_context(self, path: Path | str) -> None:
        """Replace the context with the one stored at *path*; a missing file means empty."""
        source = Path(path)
        if not source.exists():
            logger.debug("No saved context at %s", source)
            self.clear_context()
            return
        raw = await asyncio.to_thread(source.read_bytes)
        try:
            self._context = _CONTEXT_ADAPTER.validate_json(raw)
        except ValidationError as exc:
            logger.warning("Ignoring unreadable context file %s: %s", source, exc)
            self.clear_context()
            return
        logger.debug("Loaded %d context messages from %s", len(self._context), source)

    # ------------------------------------------------------------------ #
    # Cancellation
    # ------------------------------------------------------------------ #
    def cancel(self) -> None:
        """Abandon the pending (or next) call to :meth:`send`."""
        self._cancel_event.set()

    def _consume_cancellation(self) -> ModelCancelledError:
        self._cancel_event.clear()
        return ModelCancelledError(f"Model call to {self.get_identifier()} was cancelled")

    async def _race(self, call: Awaitable[str]) -> str:
        generate = asyncio.ensure_future(call)
        cancelled = asyncio.ensure_future(self._cancel_event.wait())
        try:
            done, _ = await asyncio.wait(
                {generate, cancelled}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            pending = [task for task in (generate, cancelled) if not task.done()]
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
        if generate in done:
            return generate.result()
        raise self._consume_cancellation()

    # ------------------------------------------------------------------ #
    # Sending
    # ------------------------------------------------------------------ #
    async def send(self, prompt: Prompt) -> str:
        """
        Send *prompt* (text or a batch of tool results) and return the reply text.

        The prompt and the reply are appended to the context; on failure or cancellation the
        pending prompt is removed again.

        Raises
        ------
        ModelCancelledError
            If the cancellation signal is set before or while sending.
        ModelError
            If the backend fails.
        """
        if self._cancel_event.is_set():
            raise self._consume_cancellation()

        text = prompt.to_prompt() if isinstance(prompt, ToolResponseBatch) else prompt
        logger.debug("%s prompt: %s", self.get_identifier(), text)
        self._context.append(Message(role="user", content=text))
        try:
            reply = await self._race(self._generate(self.get_context()))
        except (Exception, asyncio.CancelledError):
            self._context.pop()
            raise
        logger.debug("%s response: %s", self.get_identifier(), reply)
        self._context.append(Message(role="assistant", content=reply))
        return reply

    @abstractmethod
    async def _generate(self, messages: List[Message]) -> str:
        """Call the backend with the system prompt and *messages*; return the reply text."""
