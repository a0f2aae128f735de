from pathlib import PurePath
from re import error as RegexError
from typing import (
    AbstractSet,
    Iterator,
    Mapping,
    MutableMapping,
    MutableSequence,
    Optional,
    Pattern,
    Sequence,
)

from pynvim_pp.lib import encode
from pynvim_pp.logging import log
from std2.types import never

from ...evaluator.types import Evaluator
from ...shared.diagnostics import Diagnostics
from ...shared.timeit import timeit
from ...shared.types import (
    EvalError,
    EvalRequest,
    Scriptlet,
    Span,
    UnsupportedPattern,
)
from .parser import parse
from .transform import transform
from .types import Node, PlaceholderSlot, Script, Tabstop, Text, Transform, Visual

_PY = "p"


def _lone_script(children: Optional[Sequence[Node]]) -> Optional[Script]:
    if children and len(children) == 1:
        child, *_ = children
        if isinstance(child, Script):
            return child
    return None


def _empty(children: Optional[Sequence[Node]]) -> bool:
    script = _lone_script(children)
    return not children or (script is not None and script.lang == _PY)


def _slots(nodes: Sequence[Node]) -> Mapping[int, PlaceholderSlot]:
    """
    First non empty default in document order wins
    """

    acc: MutableMapping[int, PlaceholderSlot] = {}

    def cont(nodes: Sequence[Node]) -> None:
        for node in nodes:
            if isinstance(node, Tabstop):
                children = node.children or ()
                if node.idx not in acc or (
                    _empty(acc[node.idx].default) and not _empty(children)
                ):
                    acc[node.idx] = PlaceholderSlot(
                        idx=node.idx, default=children, scriptlet=_lone_script(children)
                    )
                cont(children)
            elif isinstance(node, Transform):
                acc.setdefault(
                    node.idx, PlaceholderSlot(idx=node.idx, default=(), scriptlet=None)
                )
            elif isinstance(node, Visual):
                cont(node.children)

    cont(nodes)
    return acc


def _scriptlets(
    nodes: Sequence[Node], slots: Mapping[int, PlaceholderSlot]
) -> Sequence[Scriptlet]:
    reachable: MutableSequence[int] = []
    inline: MutableSequence[Scriptlet] = []

    def cont(nodes: Sequence[Node]) -> None:
        for node in nodes:
            if isinstance(node, Script):
                inline.append(
                    Scriptlet(uid=node.uid, lang=node.lang, code=node.code, slot=None)
                )
            elif isinstance(node, (Tabstop, Transform)):
                if node.idx not in reachable:
                    reachable.append(node.idx)
                    slot = slots.get(node.idx)
                    if slot and not slot.scriptlet:
                        cont(slot.default)
            elif isinstance(node, Visual):
                cont(node.children)

    cont(nodes)

    def slotted() -> Iterator[Scriptlet]:
        for idx in sorted(reachable):
            slot = slots.get(idx)
            script = slot.scriptlet if slot else None
            if script and script.lang != _PY:
                yield Scriptlet(
                    uid=script.uid, lang=script.lang, code=script.code, slot=idx
                )

    return (*slotted(), *inline)


class _Renderer:
    def __init__(
        self,
        slots: Mapping[int, PlaceholderSlot],
        results: Mapping[int, str],
        visual: str,
        diagnostics: Diagnostics,
    ) -> None:
        self._slots, self._results = slots, results
        self._visual, self._diagnostics = visual, diagnostics

    def slot(self, idx: int, stack: AbstractSet[int] = frozenset()) -> str:
        if idx in stack:
            return ""

        slot = self._slots.get(idx)
        if not slot:
            return ""
        elif script := slot.scriptlet:
            return "" if script.lang == _PY else self._results.get(script.uid, "")
        else:
            return self.render(slot.default, stack={*stack, idx})

    def _transform(self, node: Transform, stack: AbstractSet[int]) -> str:
        text = self.slot(node.idx, stack=stack)
        try:
            return transform(
                text, search=node.search, replace=node.replace, options=node.options
            )
        except (UnsupportedPattern, RegexError) as e:
            self._diagnostics.report(f"transform ${node.idx}", str(e))
            return text

    def _render(self, nodes: Sequence[Node], stack: AbstractSet[int]) -> Iterator[str]:
        for node in nodes:
            if isinstance(node, Text):
                yield node.text
            elif isinstance(node, Tabstop):
                yield self.slot(node.idx, stack=stack)
            elif isinstance(node, Transform):
                yield self._transform(node, stack=stack)
            elif isinstance(node, Script):
                yield self._results.get(node.uid, "")
            elif isinstance(node, Visual):
                yield self._visual or self.render(node.children, stack=stack)
            else:
                never(node)

    def render(self, nodes: Sequence[Node], stack: AbstractSet[int] = frozenset()) -> str:
        return "".join(self._render(nodes, stack=stack))


class BodyResolver:
    """
    Snippet body -> plain text

    Every scriptlet of one expansion goes out in a single evaluator request,
    placeholder defaults that are scriptlets first, so their output can
    feed `t[n]` for the rest.
    """

    def __init__(self, evaluator: Evaluator, diagnostics: Diagnostics) -> None:
        self._evaluator = evaluator
        self._diagnostics = diagnostics

    async def _run(self, request: EvalRequest) -> Mapping[int, str]:
        try:
            results = await self._evaluator.run(request)
        except Exception as e:
            self._diagnostics.report("scriptlets", str(e))
            return {}

        acc: MutableMapping[int, str] = {}
        for scriptlet in request.scriptlets:
            result = results.get(scriptlet.uid, "")
            if isinstance(result, EvalError):
                self._diagnostics.report(f"`{scriptlet.code}`", result.message)
                acc[scriptlet.uid] = ""
            else:
                acc[scriptlet.uid] = result
        return acc

    async def resolve(
        self,
        body: str,
        context: Optional[str] = None,
        indent: str = "",
        span: Span = Span(row=0, begin=0, end=0),
        line: str = "",
        path: PurePath = PurePath(),
        regex: Optional[Pattern[str]] = None,
        visual: str = "",
    ) -> str:
        """
        `line` is the line the trigger sits on, `span` the trigger within it
        """

        with timeit("RESOLVE BODY"):
            nodes = parse(body)
            slots = _slots(nodes)
            scriptlets = _scriptlets(nodes, slots=slots)

            results: Mapping[int, str] = {}
            if scriptlets:
                seed = _Renderer(
                    slots, results={}, visual=visual, diagnostics=self._diagnostics
                )
                values = tuple(
                    seed.slot(idx) for idx in range(max(slots, default=-1) + 1)
                )
                request = EvalRequest(
                    scriptlets=scriptlets,
                    values=values,
                    filename=path.name,
                    path=str(path),
                    indent=indent,
                    start=(span.row, len(encode(line[: span.begin]))),
                    end=(span.row, len(encode(line[: span.end]))),
                    context=context,
                    pattern=regex.pattern if regex else None,
                    line=line[: span.end] if regex else None,
                    visual=visual,
                )
                log.debug("%s", request)
                results = await self._run(request)

            renderer = _Renderer(
                slots, results=results, visual=visual, diagnostics=self._diagnostics
            )
            return renderer.render(nodes)
