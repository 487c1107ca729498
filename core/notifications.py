import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Tuple

from config import settings

logger = logging.getLogger(__name__)


class ToastKind(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class Toast:
    kind: ToastKind
    message: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: float = field(default_factory=time.time)


class NotificationQueue:
    """
    Auto-expiring toasts. Each toast gets its own timer keyed by its id, so two
    toasts with the same text live and die independently.
    """

    def __init__(self, ttl: float = None):
        self.ttl = settings.toast_ttl if ttl is None else ttl
        self._toasts: List[Toast] = []
        self._timers: Dict[str, asyncio.TimerHandle] = {}
        self._listeners: List[Callable[[Tuple[Toast, ...]], None]] = []

    @property
    def toasts(self) -> Tuple[Toast, ...]:
        return tuple(self._toasts)

    def add_listener(self, listener: Callable[[Tuple[Toast, ...]], None]):
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def push(self, kind: ToastKind, message: str) -> Toast:
        loop = asyncio.get_running_loop()
        toast = Toast(kind=ToastKind(kind), message=message)
        self._toasts.append(toast)
        self._timers[toast.id] = loop.call_later(self.ttl, self._expire, toast.id)

        log = logger.error if toast.kind == ToastKind.ERROR else logger.info
        log(f"[toast] {message}")
        self._notify()
        return toast

    def success(self, message: str) -> Toast:
        return self.push(ToastKind.SUCCESS, message)

    def error(self, message: str) -> Toast:
        return self.push(ToastKind.ERROR, message)

    def dismiss(self, toast_id: str) -> bool:
        timer = self._timers.pop(toast_id, None)
        if timer is not None:
            timer.cancel()
        return self._remove(toast_id)

    def dispose(self):
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        self._toasts.clear()
        self._listeners.clear()

    def _expire(self, toast_id: str):
        self._timers.pop(toast_id, None)
        self._remove(toast_id)

    def _remove(self, toast_id: str) -> bool:
        before = len(self._toasts)
        self._toasts = [t for t in self._toasts if t.id != toast_id]
        if len(self._toasts) == before:
            return False
        self._notify()
        return True

    def _notify(self):
        snapshot = self.toasts
        for listener in list(self._listeners):
            listener(snapshot)
