from abc import ABC, abstractmethod
from pathlib import PurePath
from typing import Optional, Sequence

from ..shared.types import SnippetDefinition, SnippetEdit, Span


class Provider(ABC):
    @abstractmethod
    def candidates(self, scope: str) -> Sequence[SnippetDefinition]:
        ...

    @abstractmethod
    async def resolve_body(
        self,
        definition: SnippetDefinition,
        span: Span,
        line: str,
        path: PurePath = PurePath(),
        visual: str = "",
    ) -> str:
        ...

    @abstractmethod
    def source_files(self, scope: str) -> Sequence[PurePath]:
        ...

    @abstractmethod
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
        ...
