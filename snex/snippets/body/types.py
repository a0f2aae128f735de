from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Union


@dataclass(frozen=True)
class Text:
    text: str


@dataclass(frozen=True)
class Tabstop:
    idx: int
    # `$n` / `${n}` carry no default
    children: Optional[Sequence[Node]]


@dataclass(frozen=True)
class Transform:
    idx: int
    search: str
    replace: str
    options: str


@dataclass(frozen=True)
class Script:
    uid: int
    lang: str
    code: str


@dataclass(frozen=True)
class Visual:
    children: Sequence[Node]


Node = Union[Text, Tabstop, Transform, Script, Visual]


@dataclass(frozen=True)
class PlaceholderSlot:
    idx: int
    default: Sequence[Node]
    # default that is nothing but a scriptlet
    scriptlet: Optional[Script]
