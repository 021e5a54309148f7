"""
Dispatch Context — shared contract for per-event conversation contexts.

Provides:
- DispatchError: structured error hierarchy
- LineMessagingClient: the shape of the outbound capability
- Context: abstract interface every platform context implements
"""
from __future__ import annotations

import abc
import asyncio
from typing import Any, Optional, Protocol


# ══════════════════════════════════════════════════════════════
#  ERRORS
# ══════════════════════════════════════════════════════════════

class DispatchError(Exception):
    """Base exception for all dispatch operations."""

    def __init__(self, message: str, operation: str = ""):
        self.operation = operation
        super().__init__(message)


class ContractViolationError(DispatchError):
    """Programming error in the caller. Never caught by the dispatch layer."""


class ReplyTokenConsumedError(ContractViolationError):
    def __init__(self, operation: str = ""):
        super().__init__(
            f"{operation}: can not reply to the same event multiple times",
            operation,
        )


class UnsupportedOperationError(ContractViolationError):
    def __init__(self, operation: str = ""):
        super().__init__(f"Unsupported operation: {operation}", operation)


# ══════════════════════════════════════════════════════════════
#  OUTBOUND CAPABILITY
# ══════════════════════════════════════════════════════════════

class LineMessagingClient(Protocol):
    """
    Outbound SDK client. The context only relies on methods named
    ``reply_<content_type>(reply_token, *content)`` and
    ``push_<content_type>(user_id, *content)``; results are forwarded as-is.
    """

    def reply_text(self, reply_token: str, text: str, *args: Any) -> Any: ...

    def push_text(self, user_id: str, text: str, *args: Any) -> Any: ...


# ══════════════════════════════════════════════════════════════
#  CONTEXT — Abstract Base
# ══════════════════════════════════════════════════════════════

class Context(abc.ABC):
    """Per-event handle application code uses to talk back to the user."""

    @property
    @abc.abstractmethod
    def platform(self) -> str:
        ...

    @property
    @abc.abstractmethod
    def client(self) -> Any:
        ...

    @property
    @abc.abstractmethod
    def event(self) -> Any:
        ...

    @property
    @abc.abstractmethod
    def session(self) -> Optional[Any]:
        ...

    @abc.abstractmethod
    def set_message_delay(self, milliseconds: float) -> None:
        ...

    @abc.abstractmethod
    async def typing(self, milliseconds: float) -> None:
        ...

    @abc.abstractmethod
    def send_text(self, text: str) -> asyncio.Future:
        ...

    @abc.abstractmethod
    def send_text_with_delay(self, delay: float, text: str) -> asyncio.Future:
        ...
