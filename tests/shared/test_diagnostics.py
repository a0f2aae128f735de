from unittest import TestCase

from snex.shared.diagnostics import Diagnostic, Diagnostics


class Collector(TestCase):
    def test_1(self) -> None:
        diagnostics = Diagnostics()
        diagnostics.report("a.snippets", "bad line")
        self.assertEqual(
            tuple(diagnostics), (Diagnostic(source="a.snippets", message="bad line"),)
        )
        diagnostics.clear()
        self.assertEqual(len(diagnostics), 0)

    def test_2(self) -> None:
        diagnostics = Diagnostics(size=2)
        for i in range(3):
            diagnostics.report(str(i), "x")
        self.assertEqual(tuple(d.source for d in diagnostics), ("1", "2"))
