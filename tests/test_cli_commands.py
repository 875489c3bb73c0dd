import contextlib
import io
import json
import logging
import tempfile
import unittest
from pathlib import Path

from name_normalizer import cli
from name_normalizer.app import NormalizerApp
from name_normalizer.commands import analyze as cmd_analyze
from name_normalizer.commands import apply as cmd_apply
from name_normalizer.commands import distinct as cmd_distinct
from name_normalizer.commands import mappings as cmd_mappings
from name_normalizer.commands import parse as cmd_parse
from name_normalizer.commands import review as cmd_review
from name_normalizer.commands.output import parse_selection, read_suggestions, write_suggestions
from name_normalizer.config import LibrarySettings, Settings, StoreSettings
from name_normalizer.core.identity.parser import NameTokenizer
from name_normalizer.models import InputError
from name_normalizer.prompt_io import ScriptedPromptIO, choose

ITEMS = [
    {"id": 1, "key": "A1", "title": "On Glaciers", "date": "2019", "collections": ["thesis"],
     "creators": [{"firstName": "Hans", "lastName": "Müller", "creatorType": "author"}]},
    {"id": 2, "key": "A2", "title": "Ice Ages", "date": "2020", "collections": ["thesis"],
     "creators": [{"firstName": "Hans", "lastName": "Müller", "creatorType": "author"}]},
    {"id": 3, "key": "A3", "title": "Moraines", "date": "2021", "collections": [],
     "creators": [{"firstName": "Hans", "lastName": "Mueller", "creatorType": "author"}]},
]


class TestParseSelection(unittest.TestCase):
    def test_keywords(self) -> None:
        self.assertEqual(parse_selection("all", 3), [True, True, True])
        self.assertEqual(parse_selection(" none ", 2), [False, False])
        self.assertEqual(parse_selection("", 1), [False])

    def test_indexes_and_ranges(self) -> None:
        self.assertEqual(parse_selection("1,3-4", 5), [True, False, True, True, False])

    def test_invalid(self) -> None:
        with self.assertRaises(InputError):
            parse_selection("6", 5)
        with self.assertRaises(InputError):
            parse_selection("x", 5)
        with self.assertRaises(InputError):
            parse_selection("3-2", 5)


class TestChoose(unittest.TestCase):
    def test_reprompts_until_valid(self) -> None:
        io_ = ScriptedPromptIO(inputs=["maybe", " D "])
        self.assertEqual(choose(io_, {"a": "accept", "d": "decline"}), "decline")
        self.assertEqual(io_.outputs, ["Invalid choice. Use a/d."])
        self.assertEqual(io_.prompts[0], "Action [a]ccept/[d]ecline: ")

    def test_empty_answer_takes_default(self) -> None:
        io_ = ScriptedPromptIO(inputs=[""])
        self.assertEqual(choose(io_, {"a": "accept", "s": "skip"}, default="s"), "skip")
        self.assertIn("(default s)", io_.prompts[0])


class TestParseCommand(unittest.TestCase):
    def test_text_output(self) -> None:
        buffer = ScriptedPromptIO()
        cmd_parse.run(NameTokenizer(), ["Smith, John"], io=buffer)
        self.assertEqual(buffer.outputs[0], "Smith, John → John Smith")
        self.assertIn("  first_name: John", buffer.outputs)
        self.assertIn("  last_name: Smith", buffer.outputs)
        self.assertIn("  given_key: john", buffer.outputs)

    def test_json_output(self) -> None:
        buffer = ScriptedPromptIO()
        cmd_parse.run(NameTokenizer(), ["Bill Gates"], json_output=True, io=buffer)
        rows = json.loads(buffer.text)
        self.assertEqual(rows[0]["last_name"], "Gates")
        self.assertEqual(rows[0]["given_key"], "william")


class AppTestCase(unittest.TestCase):
    def setUp(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.root = Path(tmp.name)
        self.library_path = self.root / "library.json"
        self.library_path.write_text(json.dumps({"items": ITEMS}), encoding="utf-8")
        settings = Settings(
            library=LibrarySettings(path=self.library_path),
            store=StoreSettings(path=self.root / "store.sqlite3"),
        )
        self.app = NormalizerApp.create(settings)
        self.addCleanup(self.app.close)

    def saved_creator(self, index: int) -> dict:
        return json.loads(self.library_path.read_text(encoding="utf-8"))["items"][index]["creators"][0]


class TestAnalyzeAndApply(AppTestCase):
    def test_analyze_saves_suggestions_for_apply(self) -> None:
        out = self.root / "out" / "suggestions.json"
        buffer = ScriptedPromptIO()
        result = cmd_analyze.run(self.app.get_service(), out=out, io=buffer)
        self.assertEqual(len(result.suggestions), 1)
        self.assertIn("1 suggestion(s):", buffer.text)
        self.assertEqual(self.saved_creator(2)["lastName"], "Mueller")

        loaded = read_suggestions(out)
        self.assertEqual(loaded[0].canonical, "Müller")
        applied = cmd_apply.run(self.app.get_service(), out, io=ScriptedPromptIO())
        self.assertEqual(applied.updated_records, 1)
        self.assertEqual(self.saved_creator(2)["lastName"], "Müller")

    def test_analyze_json(self) -> None:
        buffer = ScriptedPromptIO()
        cmd_analyze.run(self.app.get_service(), json_output=True, io=buffer)
        data = json.loads(buffer.text)
        self.assertEqual(data["total_records"], 2)
        self.assertEqual(data["suggestions"][0]["canonical"], "Müller")

    def test_apply_none_without_declines_changes_nothing(self) -> None:
        out = self.root / "suggestions.json"
        write_suggestions(out, self.app.get_service().collect_and_analyze().suggestions)
        result = cmd_apply.run(
            self.app.get_service(), out, accept="none", record_declines=False, io=ScriptedPromptIO()
        )
        self.assertEqual(result.applied, 0)
        self.assertEqual(self.app.mappings.list_distinct_pairs(), [])

    def test_read_suggestions_rejects_other_versions(self) -> None:
        path = self.root / "old.json"
        path.write_text(json.dumps({"version": "0.9", "suggestions": []}), encoding="utf-8")
        with self.assertRaises(InputError):
            read_suggestions(path)

    def test_missing_library(self) -> None:
        app = NormalizerApp.create(Settings(store=StoreSettings(path=self.root / "other.sqlite3")))
        self.addCleanup(app.close)
        with self.assertRaises(InputError):
            app.get_service()


class TestReviewCommand(AppTestCase):
    def test_accept(self) -> None:
        buffer = ScriptedPromptIO(inputs=["a"])
        result = cmd_review.run(self.app.get_service(), io=buffer)
        self.assertEqual(result.applied, 1)
        self.assertEqual(self.saved_creator(2)["lastName"], "Müller")
        self.assertIn("  → Müller", buffer.outputs)

    def test_invalid_choice_then_decline(self) -> None:
        buffer = ScriptedPromptIO(inputs=["x", "d"])
        result = cmd_review.run(self.app.get_service(), io=buffer)
        self.assertIn("Invalid choice. Use a/d/s/q.", buffer.outputs)
        self.assertEqual(result.declined_recorded, 1)
        self.assertEqual(self.saved_creator(2)["lastName"], "Mueller")
        self.assertTrue(self.app.mappings.is_distinct_pair("Müller", "Mueller", "surname"))

    def test_skip_by_default_and_quit(self) -> None:
        self.assertIsNone(cmd_review.run(self.app.get_service(), io=ScriptedPromptIO(inputs=[""])))
        buffer = ScriptedPromptIO(inputs=["q"])
        self.assertIsNone(cmd_review.run(self.app.get_service(), io=buffer))
        self.assertIn("Stopping review.", buffer.outputs)
        self.assertEqual(self.app.mappings.list_distinct_pairs(), [])

    def test_assume_yes(self) -> None:
        buffer = ScriptedPromptIO()
        result = cmd_review.run(self.app.get_service(), assume_yes=True, io=buffer)
        self.assertEqual(result.applied, 1)
        self.assertEqual(buffer.prompts, [])


class TestMappingsAndDistinctCommands(AppTestCase):
    def test_list_lookup_remove(self) -> None:
        self.app.mappings.store("Mueller", "Müller")
        buffer = ScriptedPromptIO()
        cmd_mappings.run(self.app.mappings, "list", io=buffer)
        self.assertTrue(buffer.outputs[0].startswith("Mueller → Müller"))
        cmd_mappings.run(self.app.mappings, "lookup", name="mueller", io=buffer)
        self.assertIn("mueller: OK (Müller)", buffer.outputs)
        cmd_mappings.run(self.app.mappings, "remove", name="Mueller", io=buffer)
        self.assertIn("Removed: OK (Mueller)", buffer.outputs)
        with self.assertRaises(InputError):
            cmd_mappings.run(self.app.mappings, "lookup", io=buffer)

    def test_export_then_import(self) -> None:
        self.app.mappings.store("Mueller", "Müller")
        path = self.root / "mappings.json"
        cmd_mappings.run(self.app.mappings, "export", path=path, io=ScriptedPromptIO())
        cmd_mappings.run(self.app.mappings, "clear", io=ScriptedPromptIO())
        self.assertFalse(self.app.mappings.has_mapping("Mueller"))
        cmd_mappings.run(self.app.mappings, "import", path=path, io=ScriptedPromptIO())
        self.assertEqual(self.app.mappings.lookup("Mueller"), "Müller")

    def test_distinct_list_and_clear(self) -> None:
        self.app.mappings.record_distinct_pair("Bennett", "Dennett", "surname")
        buffer = ScriptedPromptIO()
        cmd_distinct.run(self.app.mappings, "list", io=buffer)
        self.assertEqual(buffer.outputs, ["[surname] bennett ≠ dennett"])
        cmd_distinct.run(self.app.mappings, "clear", names=["Dennett", "Bennett"], scope="surname", io=buffer)
        self.assertIn("Cleared: OK (Dennett / Bennett)", buffer.outputs)
        with self.assertRaises(InputError):
            cmd_distinct.run(self.app.mappings, "clear", names=["Bennett"], io=buffer)

    def test_distinct_clear_without_names_removes_all(self) -> None:
        self.app.mappings.record_distinct_pair("Bennett", "Dennett", "surname")
        self.app.mappings.record_distinct_pair("Ann Lee", "Anna Lee", "given:lee")
        buffer = ScriptedPromptIO()
        cmd_distinct.run(self.app.mappings, "clear", io=buffer)
        self.assertEqual(buffer.outputs, ["Cleared: OK (2 pair(s))"])
        self.assertEqual(self.app.mappings.list_distinct_pairs(), [])


class TestMain(unittest.TestCase):
    def setUp(self) -> None:
        root = logging.getLogger()
        handlers, level = list(root.handlers), root.level

        def restore() -> None:
            root.handlers[:] = handlers
            root.setLevel(level)

        self.addCleanup(restore)

    def test_parse_subcommand(self) -> None:
        stdout = io.StringIO()
        with contextlib.redirect_stdout(stdout):
            cli.main(["--log-level", "ERROR", "parse", "Smith, John"])
        self.assertIn("  last_name: Smith", stdout.getvalue())

    def test_missing_explicit_config_exits_with_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            missing = Path(tmp) / "missing.yaml"
            with contextlib.redirect_stdout(io.StringIO()), contextlib.redirect_stderr(io.StringIO()):
                with self.assertRaises(SystemExit) as ctx:
                    cli.main(["--log-level", "CRITICAL", "--config", str(missing), "analyze"])
        self.assertEqual(ctx.exception.code, cli.EXIT_ERROR)

    def test_review_from_option(self) -> None:
        args = cli.build_parser().parse_args(["review", "--from", "saved.json", "--yes"])
        self.assertEqual(args.source, Path("saved.json"))
        self.assertTrue(args.yes)


if __name__ == "__main__":
    unittest.main()
