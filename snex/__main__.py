from argparse import ArgumentParser, Namespace
from asyncio import run
from contextlib import nullcontext
from logging import DEBUG as DEBUG_LV
from logging import INFO
from pathlib import Path, PurePath
from sys import exit, stderr
from typing import Any, MutableMapping

from pynvim_pp.logging import log

from .clients.ultisnips.provider import UltiSnipsProvider
from .consts import DEBUG
from .evaluator.python import PythonEvaluator
from .regex.translate import translate
from .server.aggregator import CompletionAggregator
from .shared.diagnostics import Diagnostics
from .shared.settings import Settings, ValidationError, load_settings
from .shared.types import UnsupportedPattern

_PROVIDER = "ultisnips"


def _parse_args() -> Namespace:
    parser = ArgumentParser(prog="snex")
    sub_parsers = parser.add_subparsers(dest="command", required=True)

    with nullcontext(sub_parsers.add_parser("translate")) as p:
        p.add_argument("pattern")

    for command in ("expand", "complete"):
        with nullcontext(sub_parsers.add_parser(command)) as p:
            p.add_argument("--scope", required=True)
            p.add_argument("--line", required=True)
            p.add_argument("--config", type=Path)
            p.add_argument("--dir", action="append", default=[])
            p.add_argument("--path", type=PurePath, default=PurePath())
            if command == "expand":
                p.add_argument("--auto", action="store_true")
            else:
                p.add_argument("--input", default="")

    return parser.parse_args()


def _settings(args: Namespace) -> Settings:
    overrides: MutableMapping[str, Any] = {}
    if args.dir:
        overrides["snippets"] = {"directories": args.dir}
    return load_settings(args.config, overrides=overrides)


async def _aggregator(settings: Settings, scope: str) -> CompletionAggregator:
    diagnostics = Diagnostics()
    evaluator = PythonEvaluator(settings.evaluator, diagnostics=diagnostics)
    provider = UltiSnipsProvider(settings, evaluator=evaluator, diagnostics=diagnostics)
    await provider.load_scope(scope)

    aggregator = CompletionAggregator(settings.match.unifying_chars)
    aggregator.register(_PROVIDER, provider)
    return aggregator


async def _expand(args: Namespace) -> int:
    settings = _settings(args)
    aggregator = await _aggregator(settings, scope=args.scope)

    edits = await aggregator.trigger(
        args.scope, line_before=args.line, path=args.path, auto=args.auto
    )
    if not edits:
        return 1
    else:
        edit, *_ = edits
        print(args.line[: edit.span.begin] + edit.new_text)
        return 0


async def _complete(args: Namespace) -> int:
    settings = _settings(args)
    aggregator = await _aggregator(settings, scope=args.scope)

    for item in aggregator.collect(args.scope, line_before=args.line, input=args.input):
        print(f"{item.label}\t{item.detail}")
    return 0


def main() -> int:
    log.setLevel(DEBUG_LV if DEBUG else INFO)
    args = _parse_args()

    if args.command == "translate":
        try:
            print(translate(args.pattern))
        except UnsupportedPattern as e:
            print(e.construct, file=stderr)
            return 1
        else:
            return 0

    try:
        if args.command == "expand":
            return run(_expand(args))
        elif args.command == "complete":
            return run(_complete(args))
        else:
            assert False
    except ValidationError as e:
        print(e, file=stderr)
        return 2


exit(main())
