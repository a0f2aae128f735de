"""
Runs in its own interpreter, standard library only

stdin   :: json request
stdout  :: json reply
"""

import os
import random
import re
import string
import sys
from json import dumps, loads
from subprocess import PIPE, run
from traceback import format_exception_only
from typing import Any, Dict, List, Mapping, MutableMapping, Optional, Sequence

_SHIFT = "    "


class _Visual(str):
    @property
    def text(self) -> str:
        return str(self)

    @property
    def mode(self) -> str:
        return "v"


class SnippetUtil:
    """
    The `snip` of UltiSnips python scriptlets
    """

    def __init__(
        self,
        indent: str,
        visual: str,
        context: Any,
        start: Sequence[int],
        end: Sequence[int],
        path: str,
    ) -> None:
        self._initial_indent = self._indent = indent
        self.rv = ""
        self.v = _Visual(visual)
        self.context = context
        self.snippet_start = tuple(start)
        self.snippet_end = tuple(end)
        self._path = path

    @property
    def fn(self) -> str:
        return os.path.basename(self._path)

    @property
    def basename(self) -> str:
        return os.path.splitext(self.fn)[0]

    @property
    def ft(self) -> str:
        return os.path.splitext(self.fn)[1].lstrip(".")

    @property
    def indent(self) -> str:
        return self._indent

    @property
    def c(self) -> str:
        return ""

    def opt(self, option: str, default: Any = None) -> Any:
        return default

    def mkline(self, line: str = "", indent: Optional[str] = None) -> str:
        return (self._indent if indent is None else indent) + line

    def shift(self, amount: int = 1) -> None:
        self._indent += _SHIFT * amount

    def unshift(self, amount: int = 1) -> None:
        for _ in range(amount):
            if self._indent.endswith(_SHIFT):
                self._indent = self._indent[: -len(_SHIFT)]
            elif self._indent.endswith("\t"):
                self._indent = self._indent[:-1]

    def reset_indent(self) -> None:
        self._indent = self._initial_indent

    def __iadd__(self, value: str) -> "SnippetUtil":
        self.rv += "\n" + self.mkline(value)
        return self

    def __lshift__(self, other: int) -> None:
        self.unshift(other)

    def __rshift__(self, other: int) -> None:
        self.shift(other)


class _GuardUtil:
    """
    The `snip` of context expressions
    """

    def __init__(self, line: str, row: int, col: int, path: str) -> None:
        self.line, self.column = row, col
        self.cursor = (row, col)
        self.text = line
        self.fn = os.path.basename(path)
        self.visual_mode = ""
        self.visual_text = ""


def _error(e: BaseException) -> str:
    return "".join(format_exception_only(type(e), e)).strip()


def _namespace(
    prelude: Sequence[Mapping[str, str]], path: str, failures: List[Mapping[str, str]]
) -> MutableMapping[str, Any]:
    namespace: Dict[str, Any] = {
        "os": os,
        "random": random,
        "re": re,
        "string": string,
        "path": path,
        "fn": os.path.basename(path),
    }
    for chunk in prelude:
        source = chunk["source"]
        try:
            exec(compile(chunk["code"], source, "exec"), namespace)
        except Exception as e:
            failures.append({"source": source, "error": _error(e)})
    return namespace


def _check(namespace: MutableMapping[str, Any], guard: Mapping[str, Any]) -> bool:
    namespace["snip"] = _GuardUtil(
        line=guard["line"], row=guard["row"], col=guard["col"], path=guard["path"]
    )
    return bool(eval(guard["expression"], namespace))


def _shell(code: str) -> str:
    proc = run(code, shell=True, stdout=PIPE, stderr=PIPE, universal_newlines=True)
    if proc.returncode:
        raise RuntimeError(proc.stderr.strip() or f"exit {proc.returncode}")
    return proc.stdout.rstrip("\r\n")


def _expand(
    namespace: MutableMapping[str, Any], request: Mapping[str, Any]
) -> Sequence[Mapping[str, Any]]:
    values: List[str] = [*request["values"]]
    pattern, line = request["pattern"], request["line"]
    match = re.search(pattern, line) if pattern is not None and line else None

    (row, _), (_, col) = request["start"], request["end"]
    namespace["snip"] = _GuardUtil(
        line=request["line"] or "", row=row, col=col, path=request["path"]
    )
    expression = request["context"]
    context = eval(expression, namespace) if expression else {}
    namespace.update(t=values, match=match, context=context)

    acc: List[Mapping[str, Any]] = []
    for scriptlet in request["scriptlets"]:
        uid, lang, code = scriptlet["uid"], scriptlet["lang"], scriptlet["code"]
        try:
            if lang == "p":
                snip = SnippetUtil(
                    indent=request["indent"],
                    visual=request["visual"],
                    context=context,
                    start=request["start"],
                    end=request["end"],
                    path=request["path"],
                )
                namespace["snip"] = snip
                exec(compile(code, f"`!p` #{uid}", "exec"), namespace)
                text = str(snip.rv)
            elif lang == "v":
                raise NotImplementedError("vim scriptlets")
            else:
                text = _shell(code)
        except Exception as e:
            acc.append({"uid": uid, "ok": None, "error": _error(e)})
        else:
            slot = scriptlet["slot"]
            if slot is not None and slot < len(values):
                values[slot] = text
            acc.append({"uid": uid, "ok": text, "error": None})

    return acc


def main() -> None:
    req = loads(sys.stdin.buffer.read().decode("UTF-8"))
    failures: List[Mapping[str, str]] = []
    reply: Dict[str, Any] = {
        "error": None,
        "result": False,
        "results": [],
        "failures": failures,
    }

    guard, request = req["guard"], req["request"]
    path = (guard or request or {}).get("path", "")
    try:
        namespace = _namespace(req["prelude"], path=path, failures=failures)
        if req["mode"] == "check":
            reply["result"] = _check(namespace, guard=guard)
        else:
            reply["results"] = _expand(namespace, request=request)
    except Exception as e:
        reply["error"] = _error(e)

    sys.stdout.buffer.write(dumps(reply, ensure_ascii=False).encode("UTF-8"))


if __name__ == "__main__":
    main()
