from pathlib import Path
from tempfile import TemporaryDirectory
from unittest import TestCase

from snex.shared.settings import ValidationError, load_settings


class Settings(TestCase):
    def test_1(self) -> None:
        settings = load_settings()
        self.assertEqual(tuple(settings.snippets.directories), ())
        self.assertEqual(set(settings.snippets.exts), {".snippets"})
        self.assertEqual(set(settings.match.unifying_chars), {"_"})
        self.assertEqual(settings.evaluator.python, "")
        self.assertGreater(settings.evaluator.timeout, 0)

    def test_2(self) -> None:
        with TemporaryDirectory() as tmp:
            conf = Path(tmp) / "snex.yml"
            conf.write_text(
                "snippets:\n"
                "  directories: [~/snips]\n"
                "  extends:\n"
                "    python: [django]\n"
                "evaluator:\n"
                "  timeout: 1.5\n"
            )
            settings = load_settings(conf)

        self.assertEqual(tuple(settings.snippets.directories), ("~/snips",))
        self.assertEqual(tuple(settings.snippets.extends["python"]), ("django",))
        self.assertEqual(set(settings.snippets.exts), {".snippets"})
        self.assertEqual(settings.evaluator.timeout, 1.5)

    def test_3(self) -> None:
        settings = load_settings(overrides={"match": {"unifying_chars": ["-", "_"]}})
        self.assertEqual(set(settings.match.unifying_chars), {"-", "_"})

    def test_4(self) -> None:
        with self.assertRaises(ValidationError):
            load_settings(overrides={"evaluator": {"timeout": 0.0}})

    def test_5(self) -> None:
        with self.assertRaises(ValidationError):
            load_settings(overrides={"snippets": {"directories": 1}})
