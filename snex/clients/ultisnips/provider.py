from pathlib import PurePath
from typing import MutableSequence, Optional, Sequence

from pynvim_pp.logging import log

from ...evaluator.types import Evaluator
from ...shared.diagnostics import Diagnostics
from ...shared.settings import Settings
from ...shared.timeit import timeit
from ...shared.types import SnippetDefinition, SnippetEdit, Span
from ...snippets.body.resolver import BodyResolver
from ...snippets.context import ContextResolver
from ...snippets.loaders.catalog import catalog, resolve_dir
from ...snippets.matcher import TriggerMatcher
from ...snippets.repository import SnippetRepository
from ...snippets.staging import CodeStaging
from ..types import Provider


def _indent(line: str) -> str:
    return line[: len(line) - len(line.lstrip())]


class UltiSnipsProvider(Provider):
    def __init__(
        self, settings: Settings, evaluator: Evaluator, diagnostics: Diagnostics
    ) -> None:
        dirs = tuple(map(resolve_dir, settings.snippets.directories))
        items = catalog(dirs, exts=settings.snippets.exts)
        log.debug("%s", f"Found {len(items)} snippet files in: {dirs}")

        self._evaluator = evaluator
        self._staging = CodeStaging()
        self._repo = SnippetRepository(
            items, extends=settings.snippets.extends, diagnostics=diagnostics
        )
        self._matcher = TriggerMatcher(settings.match.unifying_chars)
        self._context = ContextResolver(evaluator, diagnostics=diagnostics)
        self._body = BodyResolver(evaluator, diagnostics=diagnostics)

    @property
    def repository(self) -> SnippetRepository:
        return self._repo

    async def load_scope(self, scope: str) -> None:
        with timeit("LOAD SCOPE", scope):
            await self._repo.load_scope(scope, staging=self._staging)
        await self._staging.flush_to(self._evaluator)

    async def reload(self, path: PurePath) -> None:
        await self._repo.reload(path, staging=self._staging)
        await self._staging.flush_to(self._evaluator)

    def candidates(self, scope: str) -> Sequence[SnippetDefinition]:
        return self._repo.resolve(scope)

    def source_files(self, scope: str) -> Sequence[PurePath]:
        return self._repo.source_files(scope)

    async def resolve_body(
        self,
        definition: SnippetDefinition,
        span: Span,
        line: str,
        path: PurePath = PurePath(),
        visual: str = "",
    ) -> str:
        return await self._body.resolve(
            definition.body,
            context=definition.context,
            indent=_indent(line),
            span=span,
            line=line,
            path=path,
            regex=definition.regex,
            visual=visual,
        )

    async def trigger(
        self,
        scope: str,
        line_before: str,
        row: int = 0,
        path: PurePath = PurePath(),
        auto: bool = False,
        input: Optional[str] = None,
        visual: str = "",
    ) -> Sequence[SnippetEdit]:
        matches = self._matcher.match(
            line_before, self._repo.resolve(scope), row=row, auto=auto, input=input
        )
        accepted = await self._context.filter(matches, path=path)

        edits: MutableSequence[SnippetEdit] = []
        for match in accepted:
            snip = match.definition
            new_text = await self.resolve_body(
                snip, span=match.span, line=line_before, path=path, visual=visual
            )
            edit = SnippetEdit(
                prefix=snip.prefix,
                description=snip.description,
                location=snip.source,
                priority=snip.priority,
                span=match.span,
                new_text=new_text,
            )
            edits.append(edit)

        return edits
