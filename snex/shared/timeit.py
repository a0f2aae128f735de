from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, Mapping, MutableMapping, Optional

from pynvim_pp.logging import log
from std2.locale import si_prefixed_smol
from std2.timeit import timeit as _timeit

from ..consts import DEBUG


@dataclass(frozen=True)
class Record:
    count: int
    total: float

    @property
    def mean(self) -> float:
        return self.total / self.count if self.count else 0


_RECORDS: MutableMapping[str, Record] = {}


def records() -> Mapping[str, Record]:
    return {**_RECORDS}


def _fmt(seconds: float) -> str:
    return f"{si_prefixed_smol(seconds, precision=0)}s".ljust(8)


@contextmanager
def timeit(
    name: str, *args: Any, force: bool = False, slow: Optional[float] = None
) -> Iterator[None]:
    """
    `slow` -> warn when a single run takes at least this many seconds
    """

    if not (DEBUG or force or slow is not None):
        yield None
        return

    with _timeit() as t:
        yield None
    delta = t().total_seconds()

    prev = _RECORDS.get(name, Record(count=0, total=0))
    rec = _RECORDS[name] = Record(count=prev.count + 1, total=prev.total + delta)

    detail = " ".join(map(str, args))
    msg = f"TIME -- {name.ljust(50)} :: {_fmt(delta)} @ {_fmt(rec.mean)} {detail}"
    if slow is not None and delta >= slow:
        log.warn("%s", f"SLOW {msg}")
    elif force:
        log.info("%s", msg)
    elif DEBUG:
        log.debug("%s", msg)
