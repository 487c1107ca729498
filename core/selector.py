from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional


@dataclass(frozen=True)
class Option:
    label: str
    value: str


def filter_options(options: Iterable[Option], term: str) -> List[Option]:
    needle = (term or "").lower()
    return [o for o in options if needle in o.label.lower()]


class DismissHub:
    """
    Global pointer-down dispatcher. The host forwards every pointer-down
    target (a string key such as "tts.voice/filter") here; overlays that must
    close on outside interaction subscribe to it.
    """

    def __init__(self):
        self._listeners: List[Callable[[str], None]] = []

    def subscribe(self, listener: Callable[[str], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def pointer_down(self, target: str):
        for listener in list(self._listeners):
            listener(target)


class FilterableSelector:
    def __init__(self, key: str, options: Iterable[Option] = (), value: Optional[str] = None,
                 on_change: Callable[[str], None] = None, searchable: bool = True,
                 placeholder: str = "", hub: DismissHub = None):
        self.key = key
        self.options = list(options)
        self.value = value
        self.on_change = on_change
        self.searchable = searchable
        self.placeholder = placeholder
        self.is_open = False
        self.term = ""
        self._unsubscribe = hub.subscribe(self._on_pointer_down) if hub else None

    def contains(self, target: str) -> bool:
        return target == self.key or target.startswith(self.key + "/")

    @property
    def visible_options(self) -> List[Option]:
        return filter_options(self.options, self.term)

    @property
    def is_empty(self) -> bool:
        return not self.visible_options

    @property
    def display_label(self) -> str:
        for option in self.options:
            if option.value == self.value:
                return option.label
        return self.value or self.placeholder

    def set_options(self, options: Iterable[Option]):
        self.options = list(options)

    def open(self):
        self.is_open = True

    def close(self):
        self.is_open = False
        self.term = ""

    def toggle(self):
        if self.is_open:
            self.close()
        else:
            self.open()

    def set_filter(self, term: str):
        if self.is_open and self.searchable:
            self.term = term

    def select(self, value: str):
        self.value = value
        if self.on_change:
            self.on_change(value)
        self.close()

    def dispose(self):
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_pointer_down(self, target: str):
        if self.is_open and not self.contains(target):
            self.close()
