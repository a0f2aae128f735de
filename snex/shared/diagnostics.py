from collections import deque
from dataclasses import dataclass
from typing import Deque, Iterator

from pynvim_pp.logging import log


@dataclass(frozen=True)
class Diagnostic:
    source: str
    message: str


class Diagnostics:
    """
    Sink for recoverable failures: bad snippet files, evaluator errors
    """

    def __init__(self, size: int = 100) -> None:
        self._entries: Deque[Diagnostic] = deque(maxlen=size)

    def report(self, source: str, message: str) -> None:
        log.warn("%s", f"{source} -- {message}")
        self._entries.append(Diagnostic(source=source, message=message))

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(tuple(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()
