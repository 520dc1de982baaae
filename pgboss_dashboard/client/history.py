# pgboss_dashboard/client/history.py
from abc import ABC, abstractmethod
from typing import Callable, List

HistoryListener = Callable[[str], None]


class History(ABC):
    """
    The address bar: a stack of fragments with a cursor.

    ``push`` and ``replace`` are silent; listeners only hear about
    navigation the dashboard did not make itself (back, forward, a typed
    fragment).
    """

    def __init__(self):
        self._listeners: List[HistoryListener] = []

    def subscribe(self, listener: HistoryListener) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self.current)

    @property
    @abstractmethod
    def current(self) -> str: ...

    @abstractmethod
    def push(self, fragment: str) -> None: ...

    @abstractmethod
    def replace(self, fragment: str) -> None: ...

    @abstractmethod
    def back(self) -> bool: ...

    @abstractmethod
    def forward(self) -> bool: ...


class MemoryHistory(History):
    def __init__(self, initial: str = ""):
        super().__init__()
        self._entries: List[str] = [initial]
        self._index = 0

    @property
    def current(self) -> str:
        return self._entries[self._index]

    @property
    def entries(self) -> List[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def push(self, fragment: str) -> None:
        del self._entries[self._index + 1:]
        self._entries.append(fragment)
        self._index += 1

    def replace(self, fragment: str) -> None:
        self._entries[self._index] = fragment

    def back(self) -> bool:
        if self._index == 0:
            return False
        self._index -= 1
        self._notify()
        return True

    def forward(self) -> bool:
        if self._index >= len(self._entries) - 1:
            return False
        self._index += 1
        self._notify()
        return True

    def visit(self, fragment: str) -> None:
        """The operator typed ``fragment`` into the address bar."""
        self.push(fragment)
        self._notify()
