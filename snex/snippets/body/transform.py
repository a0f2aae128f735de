"""
`${n/search/format/options}`

format  ::= ( '$' int | '(?' int ':' format [ ':' format ] ')'
            | '\\u' | '\\l' | '\\U' | '\\L' | '\\E' | '\\' char | char )*
"""

from dataclasses import dataclass
from re import DOTALL, IGNORECASE, compile
from string import digits
from typing import Match, MutableSequence, Optional, Sequence, Tuple, Union
from unicodedata import normalize

from std2.types import never

from ...regex.translate import translate

_INT_CHARS = {*digits}
_CASES = {"u", "l", "U", "L", "E"}
_WHITESPACE = {"n": "\n", "t": "\t"}


@dataclass(frozen=True)
class _Lit:
    text: str


@dataclass(frozen=True)
class _Group:
    idx: int


@dataclass(frozen=True)
class _Case:
    kind: str


@dataclass(frozen=True)
class _Cond:
    idx: int
    yes: Sequence["_Fmt"]
    no: Sequence["_Fmt"]


_Fmt = Union[_Lit, _Group, _Case, _Cond]


def _int(text: str, i: int) -> Tuple[str, int]:
    j = i
    while j < len(text) and text[j] in _INT_CHARS:
        j += 1
    return text[i:j], j


def _parse(text: str, i: int, stops: str) -> Tuple[Sequence[_Fmt], int]:
    acc: MutableSequence[_Fmt] = []
    depth = 0
    while i < len(text):
        char = text[i]
        if char in stops and depth == 0:
            return acc, i
        elif char == "\\" and i + 1 < len(text):
            nxt = text[i + 1]
            if nxt in _CASES:
                acc.append(_Case(kind=nxt))
            else:
                acc.append(_Lit(_WHITESPACE.get(nxt, nxt)))
            i += 2
        elif char == "$" and (num := _int(text, i + 1)[0]):
            acc.append(_Group(idx=int(num)))
            i += 1 + len(num)
        elif text.startswith("(?", i) and (parsed := _int(text, i + 2))[0]:
            num, j = parsed
            if j < len(text) and text[j] == ":":
                yes, j = _parse(text, j + 1, stops=":)")
                no: Sequence[_Fmt] = ()
                if j < len(text) and text[j] == ":":
                    no, j = _parse(text, j + 1, stops=")")
                acc.append(_Cond(idx=int(num), yes=yes, no=no))
                i = j + 1
            else:
                acc.append(_Lit(char))
                i += 1
        else:
            if char == "(":
                depth += 1
            elif char == ")":
                depth -= 1
            acc.append(_Lit(char))
            i += 1

    return acc, i


class _Emitter:
    def __init__(self) -> None:
        self._acc: MutableSequence[str] = []
        self._one: Optional[str] = None
        self._span: Optional[str] = None

    def case(self, kind: str) -> None:
        if kind in {"u", "l"}:
            self._one = kind
        elif kind in {"U", "L"}:
            self._span = kind
        else:
            self._span = None

    def emit(self, text: str) -> None:
        if not text:
            return
        if self._span == "U":
            text = text.upper()
        elif self._span == "L":
            text = text.lower()
        if self._one:
            head = text[:1].upper() if self._one == "u" else text[:1].lower()
            text, self._one = head + text[1:], None
        self._acc.append(text)

    def __str__(self) -> str:
        return "".join(self._acc)


def _group(match: Match[str], idx: int) -> str:
    try:
        return match.group(idx) or ""
    except IndexError:
        return ""


def _render(fmt: Sequence[_Fmt], match: Match[str], emitter: _Emitter) -> None:
    for node in fmt:
        if isinstance(node, _Lit):
            emitter.emit(node.text)
        elif isinstance(node, _Group):
            emitter.emit(_group(match, idx=node.idx))
        elif isinstance(node, _Case):
            emitter.case(node.kind)
        elif isinstance(node, _Cond):
            branch = node.yes if _group(match, idx=node.idx) else node.no
            _render(branch, match=match, emitter=emitter)
        else:
            never(node)


def _ascii(text: str) -> str:
    return normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")


def parse_format(replace: str) -> Sequence[_Fmt]:
    fmt, _ = _parse(replace, 0, stops="")
    return fmt


def transform(text: str, search: str, replace: str, options: str) -> str:
    """
    Raises `UnsupportedPattern` or `re.error` on bad `search`
    """

    flags = DOTALL | (IGNORECASE if "i" in options else 0)
    regex = compile(translate(search), flags)
    fmt = parse_format(replace)

    def repl(match: Match[str]) -> str:
        emitter = _Emitter()
        _render(fmt, match=match, emitter=emitter)
        return str(emitter)

    subject = _ascii(text) if "a" in options else text
    return regex.sub(repl, subject, count=0 if "g" in options else 1)

