from pathlib import PurePath
from re import compile
from typing import Optional
from unittest import TestCase

from snex.shared.types import SnippetDefinition, Span, TriggerKind
from snex.snippets.matcher import TriggerMatcher

_MATCHER = TriggerMatcher({"_"})


def _snip(
    prefix: str,
    kind: TriggerKind = TriggerKind.space_before,
    regex: Optional[str] = None,
    auto: bool = False,
) -> SnippetDefinition:
    return SnippetDefinition(
        prefix=prefix,
        body="",
        description="",
        priority=0,
        trigger_kind=kind,
        regex=compile(f"(?:{regex})$") if regex else None,
        context=None,
        auto_trigger=auto,
        scope="python",
        source=PurePath("python.snippets"),
        lineno=1,
    )


class Boundaries(TestCase):
    def test_1(self) -> None:
        cases = (
            (TriggerKind.line_begin, "foo", True),
            (TriggerKind.line_begin, "    foo", True),
            (TriggerKind.line_begin, "x foo", False),
            (TriggerKind.space_before, "foo", True),
            (TriggerKind.space_before, "x\tfoo", True),
            (TriggerKind.space_before, "x.foo", False),
            (TriggerKind.word_boundary, "x.foo", True),
            (TriggerKind.word_boundary, "x_foo", False),
            (TriggerKind.word_boundary, "xfoo", False),
            (TriggerKind.word_boundary, "foo", True),
            (TriggerKind.in_word, "xfoo", True),
        )
        for kind, line, expected in cases:
            with self.subTest(kind=kind, line=line):
                matches = _MATCHER.match(line, (_snip("foo", kind=kind),))
                self.assertEqual(bool(matches), expected)

    def test_2(self) -> None:
        snip = _snip("foo", kind=TriggerKind.in_word)
        self.assertTrue(_MATCHER.match("xfoo", (snip,), input="xfoo"))
        self.assertFalse(_MATCHER.match("xfoo", (snip,), input="fo"))


class Lines(TestCase):
    def test_1(self) -> None:
        snip = _snip("foo")
        self.assertEqual(_MATCHER.match("", (snip,)), ())
        self.assertEqual(_MATCHER.match("foo ", (snip,)), ())
        self.assertEqual(_MATCHER.match("fo", (snip,)), ())

    def test_2(self) -> None:
        (match,) = _MATCHER.match("  x = foo", (_snip("foo"),), row=3)
        self.assertEqual(match.trigger, "foo")
        self.assertEqual(match.line, "  x = foo")
        self.assertEqual(match.span, Span(row=3, begin=6, end=9))

    def test_3(self) -> None:
        snip = _snip(r"(\d+)x", regex=r"(\d+)x")
        (match,) = _MATCHER.match("a 12x", (snip,))
        self.assertEqual(match.trigger, "12x")
        self.assertEqual(match.span, Span(row=0, begin=2, end=5))
        self.assertEqual(_MATCHER.match("a12x", (snip,)), ())

    def test_4(self) -> None:
        snip = _snip("maybe", regex=r"x*")
        self.assertEqual(_MATCHER.match("abc", (snip,)), ())

    def test_5(self) -> None:
        manual, auto = _snip("foo"), _snip("bar", auto=True)
        self.assertEqual(
            tuple(m.definition for m in _MATCHER.match("foo", (manual, auto))),
            (manual,),
        )
        self.assertEqual(_MATCHER.match("bar", (manual, auto)), ())
        self.assertEqual(
            tuple(m.definition for m in _MATCHER.match("bar", (manual, auto), auto=True)),
            (auto,),
        )
        self.assertEqual(_MATCHER.match("foo", (manual, auto), auto=True), ())
