import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, Callable, Optional


@dataclass(frozen=True)
class ConfirmationRequest:
    visible: bool = False
    message: str = ""
    on_confirm: Optional[Callable[[], Any]] = None


_CLOSED = ConfirmationRequest()


class ConfirmationGate:
    """Single modal slot for destructive actions. A new request replaces the open one."""

    def __init__(self):
        self._current = _CLOSED

    @property
    def current(self) -> ConfirmationRequest:
        return self._current

    @property
    def is_open(self) -> bool:
        return self._current.visible

    def request(self, message: str, on_confirm: Callable[[], Any]) -> ConfirmationRequest:
        self._current = ConfirmationRequest(visible=True, message=message, on_confirm=on_confirm)
        return self._current

    def confirm(self):
        """
        Run the pending callback, then close the slot. A coroutine result is
        scheduled on the running loop and the Task is returned so the caller
        can await the outcome.
        """
        pending = self._current
        if not pending.visible:
            return None

        result = pending.on_confirm() if pending.on_confirm else None
        if inspect.isawaitable(result):
            result = asyncio.ensure_future(result)

        # the callback may have opened a follow-up confirmation
        if self._current is pending:
            self._current = _CLOSED
        return result

    def cancel(self):
        self._current = _CLOSED
