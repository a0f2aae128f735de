from asyncio import Task, create_task, gather
from collections import deque
from pathlib import Path, PurePath
from typing import (
    Iterable,
    Iterator,
    Mapping,
    MutableMapping,
    MutableSequence,
    Optional,
    Sequence,
    Tuple,
)

from pynvim_pp.logging import log
from std2.asyncio import to_thread

from ..consts import ALL_SCOPE
from ..shared.diagnostics import Diagnostics
from ..shared.timeit import timeit
from ..shared.types import (
    FileItem,
    LoadError,
    SnippetDefinition,
    SnippetFile,
    TriggerKind,
)
from .loaders.catalog import scope_for
from .loaders.ultisnip import load_ultisnip
from .staging import CodeStaging


def _parse(item: FileItem) -> SnippetFile:
    with timeit("PARSE", item.path):
        with Path(item.path).open(encoding="UTF-8") as fd:
            return load_ultisnip(
                item.path, scope=item.scope, lines=enumerate(fd, start=1)
            )


def _dedup(snips: Iterable[SnippetDefinition]) -> Iterable[SnippetDefinition]:
    acc: MutableSequence[SnippetDefinition] = []
    seen: MutableMapping[Tuple[str, TriggerKind], int] = {}

    for snip in snips:
        if snip.regex is not None or snip.context is not None:
            acc.append(snip)
        else:
            key = snip.prefix, snip.trigger_kind
            idx = seen.get(key)
            if idx is None:
                seen[key] = len(acc)
                acc.append(snip)
            elif snip.priority > acc[idx].priority:
                acc[idx] = snip

    return acc


class SnippetRepository:
    def __init__(
        self,
        items: Iterable[FileItem] = (),
        extends: Mapping[str, Sequence[str]] = {},
        diagnostics: Optional[Diagnostics] = None,
    ) -> None:
        self._items: MutableMapping[PurePath, FileItem] = {}
        self._extends: Mapping[str, Sequence[str]] = {
            scope: tuple(scopes) for scope, scopes in extends.items()
        }
        self._diagnostics = diagnostics or Diagnostics()

        # insertion order is load order
        self._files: MutableMapping[PurePath, SnippetFile] = {}
        self._inflight: MutableMapping[PurePath, Task] = {}
        self._resolved: MutableMapping[str, Sequence[SnippetDefinition]] = {}

        self.add_items(items)

    def add_items(self, items: Iterable[FileItem]) -> None:
        for item in items:
            self._items[item.path] = item

    def items_for(self, scope: str) -> Sequence[FileItem]:
        return tuple(item for item in self._items.values() if item.scope == scope)

    def loaded(self, path: PurePath) -> bool:
        return path in self._files

    def scopes(self, scope: str) -> Sequence[str]:
        acc: MutableSequence[str] = []
        queue = deque((scope,))
        while queue:
            current = queue.popleft()
            if current not in acc:
                acc.append(current)
                queue.extend(self._extends_of(current))

        if ALL_SCOPE not in acc:
            acc.append(ALL_SCOPE)
        return tuple(acc)

    def _extends_of(self, scope: str) -> Iterator[str]:
        yield from self._extends.get(scope, ())
        for file in self._files.values():
            if file.scope == scope:
                yield from file.extends

    def _insert(self, file: SnippetFile) -> None:
        self._files[file.path] = file
        self._resolved.clear()

    def evict(self, path: PurePath) -> None:
        if self._files.pop(path, None):
            self._resolved.clear()
            log.debug("%s", f"Evicted: {path}")

    def _schedule(self, item: FileItem, staging: CodeStaging) -> Optional[Task]:
        if item.path in self._files:
            log.debug("%s", f"Already loaded: {item.path}")
            return None
        elif task := self._inflight.get(item.path):
            return task
        else:
            self.add_items((item,))
            task = create_task(self._load(item, staging=staging))
            self._inflight[item.path] = task
            task.add_done_callback(lambda _: self._inflight.pop(item.path, None))
            return task

    async def _load(self, item: FileItem, staging: CodeStaging) -> None:
        try:
            file = await to_thread(lambda: _parse(item))
        except FileNotFoundError:
            log.debug("%s", f"Not found: {item.path}")
            return
        except (OSError, UnicodeDecodeError) as e:
            self._diagnostics.report(str(item.path), str(e))
            return
        except LoadError as e:
            self._diagnostics.report(str(item.path), str(e))
            return

        self._insert(file)
        staging.stage(file.path, "\n".join(file.globals))
        log.info("%s", f"Loaded {len(file.definitions)} snippets from: {file.path}")

        # extended scopes are scheduled, not awaited if already in flight
        fresh = tuple(
            task
            for ext in file.extends
            for scope in self.scopes(ext)
            for it in self.items_for(scope)
            if it.path not in self._inflight
            if (task := self._schedule(it, staging=staging))
        )
        await gather(*fresh)

    async def load(self, item: FileItem, staging: CodeStaging) -> None:
        if task := self._schedule(item, staging=staging):
            await task

    async def load_scope(self, scope: str, staging: CodeStaging) -> None:
        tasks = tuple(
            task
            for s in self.scopes(scope)
            for item in self.items_for(s)
            if (task := self._schedule(item, staging=staging))
        )
        await gather(*tasks)

    async def reload(self, path: PurePath, staging: CodeStaging) -> None:
        item = self._items.get(path) or FileItem(path=path, scope=scope_for(path))
        self.evict(path)
        await self.load(item, staging=staging)

    def source_files(self, scope: str) -> Sequence[PurePath]:
        scopes = {*self.scopes(scope)} - {ALL_SCOPE}
        return tuple(
            file.path for file in self._files.values() if file.scope in scopes
        )

    def resolve(self, scope: str) -> Sequence[SnippetDefinition]:
        cached = self._resolved.get(scope)
        if cached is None:
            with timeit("RESOLVE", scope):
                cached = self._resolved[scope] = self._resolve(scope)
        return cached

    def _resolve(self, scope: str) -> Sequence[SnippetDefinition]:
        scopes = self.scopes(scope)
        # exact scope first, otherwise load order
        files = sorted(
            (file for file in self._files.values() if file.scope in scopes),
            key=lambda file: file.scope != scope,
        )
        floors = tuple(
            (file.path, file.clear_threshold)
            for file in files
            if file.clear_threshold is not None
        )

        def cleared(snip: SnippetDefinition) -> bool:
            floor = max(
                (threshold for path, threshold in floors if path != snip.source),
                default=None,
            )
            return floor is not None and snip.priority < floor

        # thresholds apply before duplicates compete
        survivors = (
            snip for file in files for snip in file.definitions if not cleared(snip)
        )
        return tuple(sorted(_dedup(survivors), key=lambda snip: snip.context is None))
