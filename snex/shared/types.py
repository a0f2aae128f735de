from dataclasses import dataclass
from enum import Enum, auto
from pathlib import PurePath
from textwrap import dedent
from typing import Optional, Pattern, Sequence, Tuple, Union

# (row, utf-8 byte col)
BytePos = Tuple[int, int]


class UnsupportedPattern(ValueError):
    def __init__(self, construct: str) -> None:
        super().__init__(f"pattern {construct} not supported")
        self.construct = construct


class LoadError(Exception):
    def __init__(self, path: PurePath, lineno: int, line: str, reason: str) -> None:
        msg = f"""\
        Cannot load:
        path:   {path}
        lineno: {lineno}
        line:   {line}
        reason: |-
        {reason}
        """
        super().__init__(dedent(msg))
        self.path, self.lineno, self.reason = path, lineno, reason


class EvaluatorError(Exception):
    ...


class TriggerKind(Enum):
    line_begin = auto()
    in_word = auto()
    space_before = auto()
    word_boundary = auto()


@dataclass(frozen=True)
class SnippetDefinition:
    prefix: str
    body: str
    description: str
    priority: int
    trigger_kind: TriggerKind
    # end anchored, native dialect
    regex: Optional[Pattern[str]]
    context: Optional[str]
    auto_trigger: bool
    scope: str
    source: PurePath
    lineno: int


@dataclass(frozen=True)
class SnippetFile:
    path: PurePath
    scope: str
    definitions: Sequence[SnippetDefinition]
    extends: Sequence[str]
    clear_threshold: Optional[int]
    globals: Sequence[str]


@dataclass(frozen=True)
class FileItem:
    path: PurePath
    scope: str


@dataclass(frozen=True)
class Span:
    """
    Char columns on one line, end exclusive
    """

    row: int
    begin: int
    end: int


@dataclass(frozen=True)
class MatchCandidate:
    definition: SnippetDefinition
    trigger: str
    line: str
    span: Span


@dataclass(frozen=True)
class Scriptlet:
    uid: int
    # `!p` -> "p", `!v` -> "v", bare backticks -> ""
    lang: str
    code: str
    slot: Optional[int]


@dataclass(frozen=True)
class Guard:
    expression: str
    line: str
    row: int
    col: int
    path: PurePath


@dataclass(frozen=True)
class EvalRequest:
    scriptlets: Sequence[Scriptlet]
    values: Sequence[str]
    filename: str
    path: str
    indent: str
    start: BytePos
    end: BytePos
    context: Optional[str]
    pattern: Optional[str]
    line: Optional[str]
    visual: str


@dataclass(frozen=True)
class EvalError:
    message: str


EvalResult = Union[str, EvalError]


@dataclass(frozen=True)
class SnippetEdit:
    prefix: str
    description: str
    location: PurePath
    priority: int
    span: Span
    new_text: str


@dataclass(frozen=True)
class CompletionData:
    provider: str
    body: str
    character: int
    definition: SnippetDefinition


@dataclass(frozen=True)
class CompletionItem:
    label: str
    filter_text: str
    detail: str
    # template vs literal text
    is_snippet: bool
    data: CompletionData
    span: Span
    new_text: str
