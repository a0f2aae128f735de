from typing import AbstractSet, Iterable, Iterator, Optional, Sequence

from pynvim_pp.text_object import is_word
from std2.types import never

from ..shared.types import MatchCandidate, SnippetDefinition, Span, TriggerKind


class TriggerMatcher:
    def __init__(self, unifying_chars: AbstractSet[str]) -> None:
        self._unifying_chars = unifying_chars

    def _boundary(
        self, kind: TriggerKind, before: str, trigger: str, input: Optional[str]
    ) -> bool:
        if kind == TriggerKind.line_begin:
            return not before.strip()
        elif kind == TriggerKind.in_word:
            return input is None or input.endswith(trigger)
        elif kind == TriggerKind.space_before:
            return not before or before[-1].isspace()
        elif kind == TriggerKind.word_boundary:
            return not before or not is_word(self._unifying_chars, chr=before[-1])
        else:
            never(kind)

    def _match(
        self,
        line_before: str,
        candidates: Iterable[SnippetDefinition],
        row: int,
        auto: bool,
        input: Optional[str],
    ) -> Iterator[MatchCandidate]:
        for snip in candidates:
            if snip.auto_trigger != auto:
                continue

            if snip.regex is not None:
                match = snip.regex.search(line_before)
                trigger = match.group() if match else ""
            else:
                trigger = snip.prefix if line_before.endswith(snip.prefix) else ""

            if trigger:
                before = line_before[: len(line_before) - len(trigger)]
                if self._boundary(
                    snip.trigger_kind, before=before, trigger=trigger, input=input
                ):
                    span = Span(row=row, begin=len(before), end=len(line_before))
                    yield MatchCandidate(
                        definition=snip, trigger=trigger, line=line_before, span=span
                    )

    def match(
        self,
        line_before: str,
        candidates: Iterable[SnippetDefinition],
        row: int = 0,
        auto: bool = False,
        input: Optional[str] = None,
    ) -> Sequence[MatchCandidate]:
        """
        `line_before` is the line up to the cursor,
        `input` the token the host is completing, if any
        """

        # trailing space -> nothing is being typed
        if not line_before or line_before.endswith(" "):
            return ()
        else:
            return tuple(
                self._match(
                    line_before, candidates=candidates, row=row, auto=auto, input=input
                )
            )
