from abc import ABC, abstractmethod
from typing import Mapping

from ..shared.types import EvalRequest, EvalResult, Guard


class Evaluator(ABC):
    """
    Runs snippet scriptlets outside of the engine

    Whole round trip failures raise `EvaluatorError`,
    single scriptlet failures come back as `EvalError` values
    """

    @abstractmethod
    async def setup(self, source: str, code: str) -> None:
        """
        Replaces the setup code of `source`, blank code removes it
        """

    @abstractmethod
    async def check(self, guard: Guard) -> bool:
        ...

    @abstractmethod
    async def run(self, request: EvalRequest) -> Mapping[int, EvalResult]:
        ...
