from pathlib import PurePath
from typing import Iterable, MutableSequence, MutableSet, Sequence

from ..evaluator.types import Evaluator
from ..shared.diagnostics import Diagnostics
from ..shared.types import Guard, MatchCandidate


class ContextResolver:
    def __init__(self, evaluator: Evaluator, diagnostics: Diagnostics) -> None:
        self._evaluator = evaluator
        self._diagnostics = diagnostics

    async def _check(self, candidate: MatchCandidate, path: PurePath) -> bool:
        expression = candidate.definition.context
        assert expression is not None

        guard = Guard(
            expression=expression,
            line=candidate.line,
            row=candidate.span.row,
            col=candidate.span.end,
            path=path,
        )
        try:
            return await self._evaluator.check(guard)
        except Exception as e:
            self._diagnostics.report(f"context {expression!r}", str(e))
            return False

    async def filter(
        self, candidates: Iterable[MatchCandidate], path: PurePath = PurePath()
    ) -> Sequence[MatchCandidate]:
        """
        Guards are evaluated one at a time, guarded variants shadow
        the plain ones sharing their prefix
        """

        ordered = sorted(candidates, key=lambda c: c.definition.context is None)
        accepted: MutableSequence[MatchCandidate] = []
        shadowed: MutableSet[str] = set()

        for candidate in ordered:
            snip = candidate.definition
            if snip.context is not None:
                if await self._check(candidate, path=path):
                    shadowed.add(snip.prefix)
                    accepted.append(candidate)
            elif snip.prefix not in shadowed:
                accepted.append(candidate)

        return accepted
