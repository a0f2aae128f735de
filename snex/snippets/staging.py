from pathlib import PurePath
from typing import Mapping, MutableMapping

from ..evaluator.types import Evaluator


class CodeStaging:
    """
    File scoped setup code, submitted once per load batch

    Blank code is staged too, it retracts what the file submitted before
    """

    def __init__(self) -> None:
        self._codes: MutableMapping[PurePath, str] = {}

    def __len__(self) -> int:
        return len(self._codes)

    def stage(self, path: PurePath, code: str) -> None:
        self._codes[path] = code if code.strip() else ""

    def flush(self) -> Mapping[PurePath, str]:
        codes, self._codes = self._codes, {}
        return codes

    async def flush_to(self, evaluator: Evaluator) -> None:
        for path, code in self.flush().items():
            await evaluator.setup(str(path), code)
