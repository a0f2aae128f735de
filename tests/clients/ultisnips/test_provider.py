from pathlib import Path
from tempfile import TemporaryDirectory
from textwrap import dedent
from unittest import IsolatedAsyncioTestCase

from snex.clients.ultisnips.provider import UltiSnipsProvider
from snex.shared.diagnostics import Diagnostics
from snex.shared.settings import load_settings
from snex.shared.types import Span

from ...evaluator.fake import FakeEvaluator

_PYTHON = """
global !p
def upper(s):
    return s.upper()
endglobal

snippet imp "import" b
import ${1:os}
endsnippet

snippet imp "guarded import" "yes" be
from ${1:x} import `!p snip.rv = upper(t[1])`
endsnippet

snippet "(\\d+)x" "times" r
`!p snip.rv = match.group(1)`
endsnippet
"""

_ALL = """
snippet todo "todo"
TODO: $0
endsnippet
"""


class Provider(IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self._tmp = TemporaryDirectory()
        root = Path(self._tmp.name).resolve()
        (root / "python.snippets").write_text(dedent(_PYTHON))
        (root / "all.snippets").write_text(dedent(_ALL))

        settings = load_settings(overrides={"snippets": {"directories": [str(root)]}})
        self.root = root
        self.evaluator = FakeEvaluator(
            guards={"yes": True},
            outputs={"snip.rv = upper(t[1])": "X", "snip.rv = match.group(1)": "3"},
        )
        self.provider = UltiSnipsProvider(
            settings, evaluator=self.evaluator, diagnostics=Diagnostics()
        )
        await self.provider.load_scope("python")

    async def asyncTearDown(self) -> None:
        self._tmp.cleanup()

    async def test_1(self) -> None:
        (setup,) = self.evaluator.setups.values()
        self.assertIn("def upper(s):", setup)
        self.assertEqual(
            set(self.provider.source_files("python")), {self.root / "python.snippets"}
        )
        prefixes = [snip.prefix for snip in self.provider.candidates("python")]
        self.assertEqual(prefixes[0], "imp")
        self.assertEqual(set(prefixes), {"imp", r"(\d+)x", "todo"})

    async def test_2(self) -> None:
        (edit,) = await self.provider.trigger("python", line_before="imp", row=1)
        self.assertEqual(edit.description, "guarded import")
        self.assertEqual(edit.new_text, "from x import X")
        self.assertEqual(edit.span, Span(row=1, begin=0, end=3))
        self.assertEqual(edit.location, self.root / "python.snippets")

    async def test_3(self) -> None:
        (edit,) = await self.provider.trigger("python", line_before="y = 3x")
        self.assertEqual(edit.new_text, "3")
        self.assertEqual(edit.span, Span(row=0, begin=4, end=6))
        (request,) = self.evaluator.requests
        self.assertEqual(request.line, "y = 3x")

    async def test_4(self) -> None:
        (edit,) = await self.provider.trigger("python", line_before="# todo")
        self.assertEqual(edit.new_text, "TODO: ")
        edits = await self.provider.trigger("python", line_before="x imp")
        self.assertEqual(tuple(edits), ())
