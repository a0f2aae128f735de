from dataclasses import replace
from pathlib import PurePath
from typing import (
    AbstractSet,
    Callable,
    Iterator,
    MutableMapping,
    MutableSequence,
    Optional,
    Sequence,
)

from pynvim_pp.logging import log, suppress_and_log
from pynvim_pp.text_object import is_word

from ..clients.types import Provider
from ..regex.translate import readable
from ..shared.types import (
    CompletionData,
    CompletionItem,
    SnippetDefinition,
    SnippetEdit,
    Span,
    TriggerKind,
)


def _head(prefix: str, unifying_chars: AbstractSet[str]) -> str:
    """
    Up to and including the last non word char, unless that is the first char
    """

    for idx in range(len(prefix) - 1, -1, -1):
        if not is_word(unifying_chars, chr=prefix[idx]):
            return prefix[: idx + 1] if idx else ""
    return ""


class CompletionAggregator:
    def __init__(self, unifying_chars: AbstractSet[str]) -> None:
        self._unifying_chars = unifying_chars
        self._providers: MutableMapping[str, Provider] = {}

    def register(self, name: str, provider: Provider) -> Callable[[], None]:
        self._providers[name] = provider

        def dispose() -> None:
            if self._providers.get(name) is provider:
                self._providers.pop(name)

        return dispose

    @property
    def providers(self) -> Sequence[str]:
        return tuple(self._providers)

    def source_files(self, scope: str) -> Sequence[PurePath]:
        return tuple(
            path
            for provider in self._providers.values()
            for path in provider.source_files(scope)
        )

    def _item(
        self,
        name: str,
        snip: SnippetDefinition,
        ahead: str,
        input: str,
        row: int,
        col: int,
    ) -> Optional[CompletionItem]:
        label = readable(snip.prefix) if snip.regex else snip.prefix
        pos = col + len(input)
        line_begin = not ahead.strip()
        head = _head(label, unifying_chars=self._unifying_chars)

        if not head and not input:
            return None

        text, span = label, None
        if head and ahead.endswith(head):
            line_begin = not ahead[: -len(head)].strip()
            text = label[len(head) :]
            span = Span(row=row, begin=col - len(head), end=pos)

        if snip.trigger_kind == TriggerKind.line_begin and not line_begin:
            return None

        if snip.trigger_kind == TriggerKind.in_word:
            if not input.endswith(label):
                return None
            span = Span(row=row, begin=pos - len(label), end=pos)

        span = span or Span(row=row, begin=col, end=pos)
        data = CompletionData(
            provider=name, body=snip.body, character=span.begin, definition=snip
        )
        return CompletionItem(
            label=text,
            filter_text=text,
            detail=snip.description,
            is_snippet=True,
            data=data,
            span=span,
            new_text=text,
        )

    def collect(
        self, scope: str, line_before: str, input: str, row: int = 0
    ) -> Sequence[CompletionItem]:
        """
        `input` is the token being completed, a suffix of `line_before`
        """

        col = len(line_before) - len(input)
        ahead = line_before[:col]

        def cont() -> Iterator[CompletionItem]:
            for name, provider in self._providers.items():
                with suppress_and_log():
                    for snip in provider.candidates(scope):
                        item = self._item(
                            name, snip=snip, ahead=ahead, input=input, row=row, col=col
                        )
                        if item:
                            yield item

        return tuple(cont())

    async def resolve(
        self,
        item: CompletionItem,
        line: str,
        path: PurePath = PurePath(),
        visual: str = "",
    ) -> CompletionItem:
        provider = self._providers.get(item.data.provider)
        if not provider:
            log.debug("%s", f"No provider :: {item.data.provider}")
            return item
        else:
            new_text = await provider.resolve_body(
                item.data.definition,
                span=item.span,
                line=line,
                path=path,
                visual=visual,
            )
            return replace(item, new_text=new_text, is_snippet=False)

    async def trigger(
        self,
        scope: str,
        line_before: str,
        row: int = 0,
        path: PurePath = PurePath(),
        auto: bool = False,
        visual: str = "",
    ) -> Sequence[SnippetEdit]:
        edits: MutableSequence[SnippetEdit] = []
        seen: MutableSequence[str] = []
        for provider in tuple(self._providers.values()):
            with suppress_and_log():
                for edit in await provider.trigger(
                    scope,
                    line_before=line_before,
                    row=row,
                    path=path,
                    auto=auto,
                    visual=visual,
                ):
                    if edit.prefix not in seen:
                        seen.append(edit.prefix)
                        edits.append(edit)
        return edits
