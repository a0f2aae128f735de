"""
Author patterns -> python `re`

Lexed into a token stream first, then rendered. Anything the renderer does not
rewrite or reject is already valid `re` syntax.
"""

from dataclasses import dataclass
from re import compile
from string import ascii_letters, digits
from typing import Iterator, MutableSequence, Sequence, Union

from std2.string import removeprefix, removesuffix
from std2.types import never

from ..shared.types import UnsupportedPattern

_NAME_CHARS = {*ascii_letters, *digits, "_"}
_FLAG_CHARS = {*"aiLmsux-"}
_GROUPS = compile(r"\(.*\)\??")


@dataclass(frozen=True)
class Literal:
    text: str


@dataclass(frozen=True)
class Escape:
    char: str


@dataclass(frozen=True)
class CharClass:
    negated: bool
    body: Sequence[Union[str, Escape]]


@dataclass(frozen=True)
class Comment:
    text: str


@dataclass(frozen=True)
class NamedGroup:
    name: str


@dataclass(frozen=True)
class BackRef:
    name: str


@dataclass(frozen=True)
class Open:
    text: str


@dataclass(frozen=True)
class Close:
    ...


Token = Union[Literal, Escape, CharClass, Comment, NamedGroup, BackRef, Open, Close]


class _Cursor:
    def __init__(self, text: str) -> None:
        self.text, self.i = text, 0

    def peek(self, n: int = 0) -> str:
        i = self.i + n
        return self.text[i] if i < len(self.text) else ""

    def take(self, n: int = 1) -> str:
        chunk = self.text[self.i : self.i + n]
        self.i += len(chunk)
        return chunk

    def startswith(self, prefix: str) -> bool:
        return self.text.startswith(prefix, self.i)

    def name(self, close: str) -> str:
        acc: MutableSequence[str] = []
        while (char := self.peek()) and char in _NAME_CHARS:
            acc.append(self.take())
        if self.peek() != close or not acc:
            raise UnsupportedPattern(f"malformed group name near {self.i}")
        self.take()
        return "".join(acc)


def _lex_escape(cur: _Cursor) -> Token:
    assert cur.take() == "\\"
    char = cur.take()
    if char == "k" and cur.peek() in {"<", "'", "{"}:
        opening = cur.take()
        close = {"<": ">", "'": "'", "{": "}"}[opening]
        return BackRef(name=cur.name(close))
    elif char:
        return Escape(char=char)
    else:
        return Literal(text="\\")


def _lex_class(cur: _Cursor) -> Token:
    start = cur.i
    assert cur.take() == "["
    negated = cur.peek() == "^"
    if negated:
        cur.take()

    body: MutableSequence[Union[str, Escape]] = []
    if cur.peek() == "]":
        body.append(Escape(char=cur.take()))

    while char := cur.peek():
        if char == "]":
            cur.take()
            return CharClass(negated=negated, body=body)
        elif char == "\\":
            cur.take()
            body.append(Escape(char=cur.take()))
        else:
            body.append(cur.take())

    return Literal(text=cur.text[start:])


def _lex_group(cur: _Cursor) -> Token:
    assert cur.take() == "("
    if cur.peek() != "?":
        return Open(text="(")

    cur.take()
    char = cur.peek()
    if char == "#":
        end = cur.text.find(")", cur.i)
        if end == -1:
            raise UnsupportedPattern("unterminated (?#...)")
        text = cur.text[cur.i + 1 : end]
        cur.i = end + 1
        return Comment(text=text)
    elif char == "(":
        raise UnsupportedPattern("(?(cond)yes|no)")
    elif cur.startswith("P<"):
        cur.take(2)
        return NamedGroup(name=cur.name(">"))
    elif cur.startswith("P="):
        cur.take(2)
        return BackRef(name=cur.name(")"))
    elif char == "<" and cur.peek(1) not in {"=", "!"}:
        cur.take()
        return NamedGroup(name=cur.name(">"))
    elif char == "'":
        cur.take()
        return NamedGroup(name=cur.name("'"))
    elif char in _FLAG_CHARS:
        flags: MutableSequence[str] = []
        while cur.peek() in _FLAG_CHARS:
            flags.append(cur.take())
        raise UnsupportedPattern(f"(?{''.join(flags)})")
    else:
        return Open(text="(?")


def lex(pattern: str) -> Iterator[Token]:
    cur = _Cursor(pattern)
    while char := cur.peek():
        if char == "\\":
            yield _lex_escape(cur)
        elif char == "[":
            yield _lex_class(cur)
        elif char == "(":
            yield _lex_group(cur)
        elif char == ")":
            cur.take()
            yield Close()
        elif char == "\n":
            raise UnsupportedPattern("multiple line pattern")
        else:
            yield Literal(text=cur.take())


def _render_escape(escape: Escape, in_class: bool) -> str:
    char = escape.char
    if char in {"z", "Z"}:
        raise UnsupportedPattern(f"\\{char}")
    elif char == "a" and not in_class:
        return ""
    elif char == "A" and not in_class:
        return "^"
    elif char == "\n":
        raise UnsupportedPattern("multiple line pattern")
    else:
        return "\\" + char


def _render_class(token: CharClass) -> Iterator[str]:
    yield "[^" if token.negated else "["
    for item in token.body:
        if isinstance(item, Escape):
            yield _render_escape(item, in_class=True)
        elif item == "\n":
            raise UnsupportedPattern("multiple line pattern")
        else:
            yield item
    yield "]"


def render(tokens: Iterator[Token]) -> Iterator[str]:
    for token in tokens:
        if isinstance(token, Literal):
            if "\n" in token.text:
                raise UnsupportedPattern("multiple line pattern")
            yield token.text
        elif isinstance(token, Escape):
            yield _render_escape(token, in_class=False)
        elif isinstance(token, CharClass):
            yield from _render_class(token)
        elif isinstance(token, Comment):
            pass
        elif isinstance(token, NamedGroup):
            yield f"(?P<{token.name}>"
        elif isinstance(token, BackRef):
            yield f"(?P={token.name})"
        elif isinstance(token, Open):
            yield token.text
        elif isinstance(token, Close):
            yield ")"
        else:
            never(token)


def translate(pattern: str) -> str:
    return "".join(render(lex(pattern)))


def readable(pattern: str) -> str:
    """
    Best effort literal text of a trigger pattern, for completion labels
    """

    stripped = removesuffix(removeprefix(pattern, "^"), "$")
    return _GROUPS.sub("", stripped).replace("\\", "")
