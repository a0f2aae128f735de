import sys
from asyncio import TimeoutError, wait_for
from dataclasses import dataclass
from json import dumps, loads
from json.decoder import JSONDecodeError
from typing import (
    AbstractSet,
    Mapping,
    MutableMapping,
    MutableSet,
    Optional,
    Sequence,
    Tuple,
)

from pynvim_pp.lib import decode
from pynvim_pp.logging import log
from std2.asyncio.subprocess import call
from std2.pickle.decoder import new_decoder
from std2.pickle.encoder import new_encoder
from std2.pickle.types import DecodeError

from ..consts import RUNNER_PY
from ..shared.diagnostics import Diagnostics
from ..shared.settings import EvaluatorOptions
from ..shared.timeit import timeit
from ..shared.types import EvalError, EvalRequest, EvalResult, EvaluatorError, Guard
from .types import Evaluator


@dataclass(frozen=True)
class _Chunk:
    source: str
    code: str


@dataclass(frozen=True)
class _Request:
    mode: str
    prelude: Sequence[_Chunk]
    guard: Optional[Guard]
    request: Optional[EvalRequest]


@dataclass(frozen=True)
class _Outcome:
    uid: int
    ok: Optional[str]
    error: Optional[str]


@dataclass(frozen=True)
class _Failure:
    source: str
    error: str


@dataclass(frozen=True)
class _Reply:
    error: Optional[str]
    result: bool
    results: Sequence[_Outcome]
    failures: Sequence[_Failure] = ()


_ENCODER = new_encoder[_Request](_Request)
_DECODER = new_decoder[_Reply](_Reply, strict=False)


class PythonEvaluator(Evaluator):
    """
    Every round trip is a fresh interpreter running `runner.py`

    `-I` keeps the package directory off the child's `sys.path`,
    the request goes over stdin
    """

    def __init__(
        self, options: EvaluatorOptions, diagnostics: Optional[Diagnostics] = None
    ) -> None:
        self._python = options.python or sys.executable
        self._timeout = options.timeout
        self._diagnostics = diagnostics or Diagnostics()
        self._prelude: MutableMapping[str, str] = {}
        self._reported: MutableSet[Tuple[str, str]] = set()

    @property
    def sources(self) -> AbstractSet[str]:
        return self._prelude.keys()

    async def setup(self, source: str, code: str) -> None:
        if code.strip():
            self._prelude[source] = code
        else:
            self._prelude.pop(source, None)

    def _chunks(self) -> Sequence[_Chunk]:
        return tuple(
            _Chunk(source=source, code=code) for source, code in self._prelude.items()
        )

    def _report(self, failures: Sequence[_Failure]) -> None:
        for failure in failures:
            key = failure.source, failure.error
            if key not in self._reported:
                self._reported.add(key)
                self._diagnostics.report(failure.source, failure.error)

    async def _call(self, req: _Request) -> _Reply:
        json = dumps(_ENCODER(req), check_circular=False, ensure_ascii=False)
        try:
            proc = await wait_for(
                call(
                    self._python,
                    "-I",
                    str(RUNNER_PY),
                    stdin=json.encode("UTF-8"),
                    check_returncode=set(),
                ),
                timeout=self._timeout,
            )
        except TimeoutError as e:
            raise EvaluatorError(f"timed out after {self._timeout}s") from e
        except OSError as e:
            raise EvaluatorError(f"failed to start {self._python} -- {e}") from e

        if proc.returncode:
            raise EvaluatorError(f"{self._python} exited {proc.returncode}")

        try:
            reply = _DECODER(loads(decode(proc.stdout)))
        except (JSONDecodeError, DecodeError) as e:
            log.debug("%s", decode(proc.stdout))
            raise EvaluatorError(f"bad reply -- {e}") from e

        self._report(reply.failures)
        if reply.error:
            raise EvaluatorError(reply.error)
        else:
            return reply

    async def check(self, guard: Guard) -> bool:
        req = _Request(mode="check", prelude=self._chunks(), guard=guard, request=None)
        with timeit("CONTEXT", guard.expression, slow=self._timeout / 2):
            reply = await self._call(req)
        return reply.result

    async def run(self, request: EvalRequest) -> Mapping[int, EvalResult]:
        req = _Request(
            mode="expand", prelude=self._chunks(), guard=None, request=request
        )
        with timeit("SCRIPTLETS", len(request.scriptlets), slow=self._timeout / 2):
            reply = await self._call(req)

        acc: MutableMapping[int, EvalResult] = {}
        for outcome in reply.results:
            if outcome.error is not None:
                acc[outcome.uid] = EvalError(message=outcome.error)
            else:
                acc[outcome.uid] = outcome.ok or ""
        return acc
