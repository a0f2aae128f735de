"""
UltiSnips body grammar

any         ::= tabstop | placeholder | transform | visual | script | text
tabstop     ::= '$' int | '${' int '}'
placeholder ::= '${' int ':' any* '}'
transform   ::= '${' int '/' regex '/' format '/' options '}'
visual      ::= '${VISUAL}' | '${VISUAL:' any* '}'
script      ::= '`!p' code '`' | '`!v' code '`' | '`' shell '`'
"""

from itertools import count
from string import digits
from textwrap import dedent
from typing import Iterator, MutableSequence, Sequence, Tuple

from std2.itertools import deiter

from .types import Node, Script, Tabstop, Text, Transform, Visual

_ESC_CHARS = {"\\", "$", "`", "{", "}"}
_INT_CHARS = {*digits}
_VISUAL = "VISUAL"


class _Ctx:
    def __init__(self, text: str) -> None:
        self.dit = deiter(iter(text))
        self.uids = count()

    def next(self) -> str:
        return next(self.dit, "")

    def push_back(self, *chars: str) -> None:
        for char in reversed(chars):
            if char:
                self.dit.push_back(char)

    def peek(self) -> str:
        char = self.next()
        self.push_back(char)
        return char


def _int(ctx: _Ctx) -> str:
    acc: MutableSequence[str] = []
    while (char := ctx.next()) in _INT_CHARS:
        acc.append(char)
    ctx.push_back(char)
    return "".join(acc)


def _until(ctx: _Ctx, stop: str) -> Tuple[str, bool]:
    """
    Raw text up to an unescaped `stop`, escapes other than `\\stop` kept as is
    """

    acc: MutableSequence[str] = []
    while char := ctx.next():
        if char == "\\":
            nxt = ctx.next()
            if nxt == stop:
                acc.append(nxt)
            else:
                acc.append(char)
                ctx.push_back(nxt)
        elif char == stop:
            return "".join(acc), True
        else:
            acc.append(char)
    return "".join(acc), False


def _script(ctx: _Ctx) -> Node:
    code, closed = _until(ctx, "`")
    if not closed:
        ctx.push_back(*code)
        return Text("`")

    if code.startswith("!p") or code.startswith("!v"):
        lang, code = code[1], code[2:]
    else:
        lang = ""

    head, _, rest = code.partition("\n")
    code = "\n".join(line for line in (head.strip(), dedent(rest)) if line)
    return Script(uid=next(ctx.uids), lang=lang, code=code)


def _transform(ctx: _Ctx, idx: int) -> Node:
    search, s_closed = _until(ctx, "/")
    replace, r_closed = _until(ctx, "/")
    options, o_closed = _until(ctx, "}")
    if s_closed and r_closed and o_closed:
        return Transform(idx=idx, search=search, replace=replace, options=options)
    else:
        return Text("/".join((f"${{{idx}", search, replace, options)))


def _dollar(ctx: _Ctx) -> Node:
    char = ctx.next()
    if char in _INT_CHARS:
        ctx.push_back(char)
        return Tabstop(idx=int(_int(ctx)), children=None)

    elif char == "{":
        if ctx.peek() in _INT_CHARS:
            idx = int(_int(ctx))
            nxt = ctx.next()
            if nxt == "}":
                return Tabstop(idx=idx, children=None)
            elif nxt == ":":
                return Tabstop(idx=idx, children=tuple(_seq(ctx, nested=True)))
            elif nxt == "/":
                return _transform(ctx, idx=idx)
            else:
                return Text(f"${{{idx}{nxt}")

        else:
            word = "".join(ctx.next() for _ in _VISUAL)
            if word == _VISUAL:
                nxt = ctx.next()
                if nxt == "}":
                    return Visual(children=())
                elif nxt == ":":
                    return Visual(children=tuple(_seq(ctx, nested=True)))
                else:
                    ctx.push_back(nxt)
            ctx.push_back(*word)
            return Text("${")

    else:
        ctx.push_back(char)
        return Text("$")


def _seq(ctx: _Ctx, nested: bool) -> Iterator[Node]:
    text: MutableSequence[str] = []

    def flush() -> Iterator[Node]:
        if text:
            yield Text("".join(text))
            text.clear()

    while char := ctx.next():
        if char == "\\":
            nxt = ctx.next()
            if nxt in _ESC_CHARS:
                text.append(nxt)
            else:
                text.append(char)
                ctx.push_back(nxt)
        elif char == "}" and nested:
            break
        elif char == "$":
            yield from flush()
            yield _dollar(ctx)
        elif char == "`":
            yield from flush()
            yield _script(ctx)
        else:
            text.append(char)

    yield from flush()


def parse(body: str) -> Sequence[Node]:
    ctx = _Ctx(body)
    return tuple(_seq(ctx, nested=False))
