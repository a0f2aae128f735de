from dataclasses import dataclass
from difflib import get_close_matches
from enum import Enum, auto
from pathlib import PurePath
from re import compile, error
from typing import Iterable, MutableSequence, Optional, Pattern, Tuple

from ...consts import SNIP_LINE_SEP
from ...regex.translate import translate
from ...shared.types import (
    SnippetDefinition,
    SnippetFile,
    LoadError,
    TriggerKind,
    UnsupportedPattern,
)

_COMMENT_START = "#"
_CLEAR_START = "clearsnippets"
_CONTEXT_START = "context"
_EXTENDS_START = "extends"
_GLOBAL_END = "endglobal"
_GLOBAL_START = "global"
_PRIORITY_START = "priority"
_SNIPPET_END = "endsnippet"
_SNIPPET_START = "snippet"

_PY_GLOBAL = "!p"

_IGNORE_STARTS = {
    "post_expand",
    "post_jump",
    "pre_expand",
}

_LEGAL_STARTS = {
    _CLEAR_START,
    _CONTEXT_START,
    _EXTENDS_START,
    _GLOBAL_END,
    _GLOBAL_START,
    _PRIORITY_START,
    _SNIPPET_END,
    _SNIPPET_START,
}


class _State(Enum):
    normal = auto()
    snippet = auto()
    pglobal = auto()


@dataclass(frozen=True)
class _Header:
    trigger: str
    description: str
    context: Optional[str]
    opts: str


def _unquote(text: str) -> str:
    text = text.strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in {'"', "'"}:
        return text[1:-1]
    else:
        return text


def _header(path: PurePath, lineno: int, line: str) -> _Header:
    """
    snippet <trigger> ["description"] ["context"] [options]
    """

    head, *_ = line.split()
    remain = line[len(head) :].strip()

    opts = ""
    words = remain.split()
    if len(words) > 2 and '"' not in words[-1] and words[-2][-1] == '"':
        opts = words[-1]
        remain = remain[: -len(opts)].rstrip()

    context = None
    if "e" in opts and remain.endswith('"'):
        left = remain[:-1].rfind('"')
        if left > 0:
            context, remain = remain[left + 1 : -1], remain[:left].rstrip()

    description = ""
    if len(remain.split()) > 1 and remain.endswith('"'):
        left = remain[:-1].rfind('"')
        if left > 0:
            description, remain = remain[left + 1 : -1], remain[:left]

    trigger = remain.strip()
    if len(trigger.split()) > 1 or "r" in opts:
        if len(trigger) < 2 or trigger[0] != trigger[-1]:
            reason = f"Invalid multiword trigger: '{trigger}'"
            raise LoadError(path, lineno=lineno, line=line, reason=reason)
        trigger = trigger[1:-1]

    if not trigger:
        raise LoadError(path, lineno=lineno, line=line, reason="Missing trigger")

    return _Header(trigger=trigger, description=description, context=context, opts=opts)


def _trigger_kind(opts: str) -> TriggerKind:
    if "b" in opts:
        return TriggerKind.line_begin
    elif "i" in opts:
        return TriggerKind.in_word
    elif "w" in opts:
        return TriggerKind.word_boundary
    else:
        return TriggerKind.space_before


def _compile(path: PurePath, lineno: int, line: str, trigger: str) -> Pattern[str]:
    try:
        translated = translate(trigger)
        return compile(f"(?:{translated})$")
    except UnsupportedPattern as e:
        raise LoadError(path, lineno=lineno, line=line, reason=str(e))
    except error as e:
        raise LoadError(path, lineno=lineno, line=line, reason=f"bad regex -- {e}")


def load_ultisnip(
    path: PurePath, scope: str, lines: Iterable[Tuple[int, str]]
) -> SnippetFile:
    definitions: MutableSequence[SnippetDefinition] = []
    extends: MutableSequence[str] = []
    py_globals: MutableSequence[str] = []

    state = _State.normal
    priority = 0
    clear_threshold: Optional[int] = None
    pending_context: Optional[str] = None

    header: Optional[_Header] = None
    header_line: Tuple[int, str] = (0, "")
    current_lines: MutableSequence[str] = []

    for lineno, raw in lines:
        line = raw.rstrip("\r\n")
        stripped = line.strip()

        if state == _State.normal:
            head, *rest = stripped.split(None, 1) or ("",)
            tail = next(iter(rest), "")

            if not stripped or stripped.startswith(_COMMENT_START):
                pass

            elif head in _IGNORE_STARTS:
                pass

            elif head == _PRIORITY_START:
                try:
                    priority = int(tail.strip())
                except ValueError:
                    reason = f"Invalid priority {tail!r}"
                    raise LoadError(path, lineno=lineno, line=line, reason=reason)

            elif head == _CLEAR_START:
                clear_threshold = priority

            elif head == _EXTENDS_START:
                for ext in (f.strip() for f in tail.split(",")):
                    if ext and ext not in extends:
                        extends.append(ext)

            elif head == _CONTEXT_START:
                pending_context = _unquote(tail)

            elif head == _SNIPPET_START:
                state = _State.snippet
                header = _header(path, lineno=lineno, line=stripped)
                header_line = (lineno, line)

            elif head == _GLOBAL_START:
                if tail.strip() != _PY_GLOBAL:
                    reason = f"Unsupported global block: '{tail.strip()}'"
                    raise LoadError(path, lineno=lineno, line=line, reason=reason)
                state = _State.pglobal
                header_line = (lineno, line)

            else:
                close = get_close_matches(head, _LEGAL_STARTS, n=1)
                if close:
                    maybe_start, *_ = close
                    addendum = f" :: did you mean -- {maybe_start}"
                else:
                    addendum = ""

                reason = "Unexpected line start" + addendum
                raise LoadError(path, lineno=lineno, line=line, reason=reason)

        elif state == _State.snippet:
            if line.rstrip() == _SNIPPET_END:
                assert header
                state = _State.normal
                h_lineno, h_line = header_line
                regex = (
                    _compile(path, lineno=h_lineno, line=h_line, trigger=header.trigger)
                    if "r" in header.opts
                    else None
                )
                context = header.context or pending_context
                definition = SnippetDefinition(
                    prefix=header.trigger,
                    body=SNIP_LINE_SEP.join(current_lines),
                    description=header.description,
                    priority=priority,
                    trigger_kind=_trigger_kind(header.opts),
                    regex=regex,
                    context=context,
                    auto_trigger="A" in header.opts,
                    scope=scope,
                    source=path,
                    lineno=h_lineno,
                )
                definitions.append(definition)
                current_lines.clear()
                pending_context = None
                header = None
            else:
                current_lines.append(line)

        elif state == _State.pglobal:
            if line.rstrip() == _GLOBAL_END:
                state = _State.normal
                py_globals.append(SNIP_LINE_SEP.join(current_lines))
                current_lines.clear()
            else:
                current_lines.append(line)

        else:
            assert False

    if state != _State.normal:
        lineno, line = header_line
        end = _SNIPPET_END if state == _State.snippet else _GLOBAL_END
        raise LoadError(path, lineno=lineno, line=line, reason=f"Missing '{end}'")

    return SnippetFile(
        path=path,
        scope=scope,
        definitions=definitions,
        extends=extends,
        clear_threshold=clear_threshold,
        globals=py_globals,
    )
