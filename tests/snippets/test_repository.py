from asyncio import gather
from pathlib import Path
from tempfile import TemporaryDirectory
from textwrap import dedent
from typing import Mapping, Sequence
from unittest import IsolatedAsyncioTestCase

from snex.shared.diagnostics import Diagnostics
from snex.shared.types import FileItem, SnippetDefinition
from snex.snippets.loaders.catalog import catalog
from snex.snippets.repository import SnippetRepository
from snex.snippets.staging import CodeStaging

_EXTS = {".snippets"}


def _bodies(snips: Sequence[SnippetDefinition], prefix: str) -> Sequence[str]:
    return tuple(snip.body for snip in snips if snip.prefix == prefix)


class _Base(IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self._tmp = TemporaryDirectory()
        self.root = Path(self._tmp.name).resolve()
        self.staging = CodeStaging()
        self.diagnostics = Diagnostics()

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def write(self, files: Mapping[str, str]) -> None:
        for name, text in files.items():
            path = self.root / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(dedent(text))

    def repo(self, extends: Mapping[str, Sequence[str]] = {}) -> SnippetRepository:
        items = catalog((self.root,), exts=_EXTS)
        return SnippetRepository(
            items, extends=extends, diagnostics=self.diagnostics
        )


class Resolve(_Base):
    async def test_1(self) -> None:
        self.write(
            {
                "python.snippets": """
                snippet imp "plain import"
                import ${1}
                endsnippet
                """,
                "python-extra.snippets": """
                priority 10
                snippet imp "from import"
                from ${1} import ${2}
                endsnippet
                """,
            }
        )
        repo = self.repo()
        await repo.load_scope("python", staging=self.staging)
        snips = repo.resolve("python")
        self.assertEqual(_bodies(snips, "imp"), ("from ${1} import ${2}",))

    async def test_2(self) -> None:
        self.write(
            {
                "all.snippets": """
                snippet date "date"
                today
                endsnippet
                """,
                "python.snippets": """
                snippet own "before the floor"
                own
                endsnippet

                priority 1
                clearsnippets
                snippet x "x"
                x
                endsnippet
                """,
            }
        )
        repo = self.repo()
        await repo.load_scope("python", staging=self.staging)
        prefixes = {snip.prefix for snip in repo.resolve("python")}
        self.assertEqual(prefixes, {"own", "x"})

    async def test_3(self) -> None:
        self.write(
            {
                "python.snippets": """
                snippet t "t"
                first
                endsnippet
                snippet t "t" b
                second
                endsnippet
                snippet t "t"
                third
                endsnippet
                """,
            }
        )
        repo = self.repo()
        await repo.load_scope("python", staging=self.staging)
        snips = repo.resolve("python")
        self.assertEqual(_bodies(snips, "t"), ("first", "second"))

    async def test_4(self) -> None:
        self.write(
            {
                "python.snippets": """
                extends base
                snippet t "t"
                python
                endsnippet
                """,
                "base.snippets": """
                snippet t "t"
                base
                endsnippet
                snippet b "b"
                b
                endsnippet
                """,
            }
        )
        repo = self.repo()
        await repo.load_scope("python", staging=self.staging)
        snips = repo.resolve("python")
        self.assertEqual(_bodies(snips, "t"), ("python",))
        self.assertEqual(_bodies(snips, "b"), ("b",))
        self.assertEqual(repo.scopes("python"), ("python", "base", "all"))

    async def test_5(self) -> None:
        self.write(
            {
                "python.snippets": """
                snippet plain "plain"
                plain
                endsnippet
                snippet guarded "guarded" "True" e
                guarded
                endsnippet
                snippet "r(\\d)" "regex" r
                regex
                endsnippet
                """,
            }
        )
        repo = self.repo()
        await repo.load_scope("python", staging=self.staging)
        first, *rest = repo.resolve("python")
        self.assertEqual(first.prefix, "guarded")
        self.assertTrue(all(snip.context is None for snip in rest))

    async def test_6(self) -> None:
        self.write(
            {
                "python.snippets": """
                snippet p "p"
                p
                endsnippet
                """,
                "django.snippets": """
                snippet d "d"
                d
                endsnippet
                """,
            }
        )
        repo = self.repo(extends={"python": ("django",)})
        await repo.load_scope("python", staging=self.staging)
        prefixes = {snip.prefix for snip in repo.resolve("python")}
        self.assertEqual(prefixes, {"p", "d"})

    async def test_7(self) -> None:
        self.write(
            {
                "python.snippets": """
                snippet t "own"
                own
                endsnippet

                priority 3
                clearsnippets
                """,
                "all.snippets": """
                priority 2
                snippet t "other"
                other
                endsnippet
                """,
            }
        )
        repo = self.repo()
        await repo.load_scope("python", staging=self.staging)
        self.assertEqual(_bodies(repo.resolve("python"), "t"), ("own",))


class Lifecycle(_Base):
    async def test_1(self) -> None:
        self.write(
            {
                "a.snippets": """
                extends b
                snippet a "a"
                a
                endsnippet
                """,
                "b.snippets": """
                extends a
                snippet b "b"
                b
                endsnippet
                """,
            }
        )
        repo = self.repo()
        await repo.load_scope("a", staging=self.staging)
        self.assertTrue(repo.loaded(self.root / "a.snippets"))
        self.assertTrue(repo.loaded(self.root / "b.snippets"))
        prefixes = {snip.prefix for snip in repo.resolve("a")}
        self.assertEqual(prefixes, {"a", "b"})

    async def test_2(self) -> None:
        self.write(
            {
                "python.snippets": """
                global !p
                def f():
                    return 1
                endglobal
                snippet a "a"
                a
                endsnippet
                """,
            }
        )
        repo = self.repo()
        (item,) = repo.items_for("python")
        await gather(
            repo.load(item, staging=self.staging),
            repo.load(item, staging=self.staging),
            repo.load_scope("python", staging=self.staging),
        )
        self.assertEqual(len(repo.resolve("python")), 1)
        self.assertEqual(len(self.staging), 1)
        codes = self.staging.flush()
        self.assertEqual(codes.keys(), {item.path})
        self.assertIn("def f():", codes[item.path])
        self.assertEqual(len(self.staging), 0)

    async def test_3(self) -> None:
        self.write(
            {
                "python.snippets": """
                snippet a "a"
                old
                endsnippet
                """,
            }
        )
        repo = self.repo()
        await repo.load_scope("python", staging=self.staging)
        self.assertEqual(_bodies(repo.resolve("python"), "a"), ("old",))

        self.write(
            {
                "python.snippets": """
                snippet a "a"
                new
                endsnippet
                """,
            }
        )
        await repo.reload(self.root / "python.snippets", staging=self.staging)
        self.assertEqual(_bodies(repo.resolve("python"), "a"), ("new",))

    async def test_4(self) -> None:
        repo = self.repo()
        item = FileItem(path=self.root / "missing.snippets", scope="missing")
        await repo.load(item, staging=self.staging)
        self.assertFalse(repo.loaded(item.path))
        self.assertEqual(len(self.diagnostics), 0)
        self.assertEqual(tuple(repo.resolve("missing")), ())

    async def test_5(self) -> None:
        self.write({"python.snippets": "snippet a\n"})
        repo = self.repo()
        await repo.load_scope("python", staging=self.staging)
        self.assertFalse(repo.loaded(self.root / "python.snippets"))
        (diagnostic,) = self.diagnostics
        self.assertEqual(diagnostic.source, str(self.root / "python.snippets"))

    async def test_6(self) -> None:
        self.write(
            {
                "python.snippets": 'snippet p "p"\np\nendsnippet\n',
                "all.snippets": 'snippet a "a"\na\nendsnippet\n',
            }
        )
        repo = self.repo()
        await repo.load_scope("python", staging=self.staging)
        self.assertEqual(
            tuple(repo.source_files("python")), (self.root / "python.snippets",)
        )
        repo.evict(self.root / "python.snippets")
        prefixes = {snip.prefix for snip in repo.resolve("python")}
        self.assertEqual(prefixes, {"a"})

    async def test_7(self) -> None:
        self.write(
            {
                "python.snippets": """
                extends base
                snippet p "p"
                p
                endsnippet
                """,
                "base.snippets": """
                snippet b "b"
                b
                endsnippet
                """,
            }
        )
        repo = self.repo()
        await repo.load_scope("python", staging=self.staging)
        self.assertEqual(_bodies(repo.resolve("python"), "b"), ("b",))

        self.write({"python.snippets": 'snippet p "p"\np\nendsnippet\n'})
        await repo.reload(self.root / "python.snippets", staging=self.staging)
        self.assertEqual(repo.scopes("python"), ("python", "all"))
        self.assertEqual(_bodies(repo.resolve("python"), "b"), ())
        self.assertEqual(_bodies(repo.resolve("python"), "p"), ("p",))
