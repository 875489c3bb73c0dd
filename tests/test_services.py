import json
import tempfile
import unittest
from pathlib import Path

from name_normalizer.collector import fetch_person_records
from name_normalizer.core.identity.planner import SuggestionPlanner
from name_normalizer.core.identity.resolver import VariantResolver
from name_normalizer.item_store import ItemFilter, JsonLibrary
from name_normalizer.mapping_store import MappingStore
from name_normalizer.models import CancellationSignal, InputError
from name_normalizer.services import NormalizationService
from name_normalizer.storage import InMemoryKeyValueStore


def creator(first: str, last: str) -> dict:
    return {"firstName": first, "lastName": last, "creatorType": "author"}


ITEMS = [
    {"id": 1, "key": "A1", "title": "On Glaciers", "date": "2019-03-01", "itemType": "book",
     "collections": ["thesis"], "creators": [creator("Hans", "Müller"), creator("Eva", "Roth")]},
    {"id": 2, "key": "A2", "title": "Ice Ages", "date": "c. 2020", "itemType": "journalArticle",
     "collections": ["thesis"], "creators": [creator("Hans", "Müller")]},
    {"id": 3, "key": "A3", "title": "Moraines", "itemType": "journalArticle",
     "collections": [], "creators": [creator("Hans", "Mueller"), {"name": "Alpine Club", "creatorType": "editor"}]},
    {"id": 4, "key": "A4", "title": "Untitled", "collections": ["thesis"],
     "creators": [creator("Plato", "")]},
]


class LibraryTestCase(unittest.TestCase):
    def setUp(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.path = Path(tmp.name) / "library.json"
        self.path.write_text(json.dumps({"items": ITEMS}), encoding="utf-8")
        self.library = JsonLibrary(self.path)


class TestJsonLibrary(LibraryTestCase):
    def test_search_filters_by_collection(self) -> None:
        self.assertEqual(self.library.search(), [1, 2, 3, 4])
        self.assertEqual(self.library.search(ItemFilter(collection="thesis")), [1, 2, 4])
        self.assertEqual(self.library.search(ItemFilter(item_type="book")), [1])

    def test_single_field_creator_becomes_last_name(self) -> None:
        record = self.library.get_records([3])[0]
        self.assertEqual(record.get_creators()[1]["lastName"], "Alpine Club")

    def test_save_writes_file(self) -> None:
        record = self.library.get_records([3])[0]
        creators = record.get_creators()
        creators[0]["lastName"] = "Müller"
        record.set_creators(creators)
        record.save()
        reloaded = JsonLibrary(self.path)
        self.assertEqual(reloaded.get_records([3])[0].get_creators()[0]["lastName"], "Müller")

    def test_missing_file(self) -> None:
        with self.assertRaises(InputError):
            JsonLibrary(self.path.with_name("missing.json"))


class TestCollector(LibraryTestCase):
    def test_collects_exact_spellings_with_evidence(self) -> None:
        events = []
        records = fetch_person_records(self.library, batch_size=2, on_progress=events.append)
        by_name = {(r.first_name, r.last_name): r for r in records}
        mueller = by_name[("Hans", "Müller")]
        self.assertEqual(mueller.occurrence_count, 2)
        self.assertEqual([ref.year for ref in mueller.evidence], ["2019", "2020"])
        self.assertEqual(mueller.evidence[0].display_author, "Hans Müller et al.")
        self.assertNotIn(("Plato", ""), by_name)
        self.assertEqual({e.stage for e in events}, {"collecting"})
        self.assertEqual(events[-1].percent, 100)

    def test_item_with_malformed_creator_is_skipped(self) -> None:
        self.path.write_text(
            json.dumps(
                {
                    "items": [
                        {"id": 1, "key": "B1", "creators": [None, creator("Hans", "Müller")]},
                        {"id": 2, "key": "B2", "creators": [creator("Hans", "Mueller")]},
                    ]
                }
            ),
            encoding="utf-8",
        )
        library = JsonLibrary(self.path)
        with self.assertLogs("name_normalizer.collector", level="WARNING") as logs:
            records = fetch_person_records(library)
        self.assertEqual([(r.first_name, r.last_name) for r in records], [("Hans", "Mueller")])
        self.assertIn("Skipping item 1", logs.output[0])

    def test_cancellation(self) -> None:
        with self.assertRaises(CancellationSignal):
            fetch_person_records(self.library, should_cancel=lambda: True)


class TestNormalizationService(LibraryTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.mappings = MappingStore(InMemoryKeyValueStore())
        self.service = NormalizationService(
            self.library,
            VariantResolver(distinct_pairs=self.mappings),
            SuggestionPlanner(self.mappings),
        )

    def test_collect_and_analyze(self) -> None:
        events = []
        result = self.service.collect_and_analyze(on_progress=events.append)
        self.assertEqual(len(result.suggestions), 1)
        self.assertEqual(result.suggestions[0].canonical, "Müller")
        self.assertEqual(result.total_variant_groups, 1)
        self.assertEqual(result.surname_frequencies["müller"], 2)
        self.assertEqual(result.surname_frequencies["mueller"], 1)
        stages = [e.stage for e in events]
        for stage in ("collecting", "analyzing_surnames", "analyzing_given_names", "generating_suggestions"):
            self.assertIn(stage, stages)
        self.assertEqual(stages[-1], "complete")

    def test_apply_accepted_suggestion(self) -> None:
        suggestions = self.service.collect_and_analyze().suggestions
        result = self.service.apply_suggestions(suggestions, [True])
        self.assertEqual(result.applied, 1)
        self.assertEqual(result.updated_records, 1)
        self.assertEqual(result.errors, 0)
        saved = json.loads(self.path.read_text(encoding="utf-8"))["items"][2]["creators"][0]
        self.assertEqual(saved["lastName"], "Müller")
        self.assertEqual(self.mappings.lookup("Mueller"), "Müller")
        self.assertEqual(self.service.collect_and_analyze().suggestions, [])

    def test_declined_suggestion_is_not_suggested_again(self) -> None:
        suggestions = self.service.collect_and_analyze().suggestions
        result = self.service.apply_suggestions(suggestions, [False])
        self.assertEqual(result.declined_recorded, 1)
        self.assertEqual(result.skipped, 1)
        again = self.service.collect_and_analyze()
        self.assertEqual(again.suggestions, [])
        self.assertEqual(again.suppressed_groups, 1)

        self.assertTrue(self.mappings.clear_distinct_pair("Müller", "Mueller", "surname"))
        restored = self.service.collect_and_analyze()
        self.assertEqual(len(restored.suggestions), 1)
        self.assertEqual(restored.suggestions[0].canonical, "Müller")
        self.assertEqual(restored.suppressed_groups, 0)

    def test_flag_count_must_match(self) -> None:
        with self.assertRaises(InputError):
            self.service.apply_suggestions([], [True])

    def test_analyze_is_read_only(self) -> None:
        before = self.path.read_text(encoding="utf-8")
        self.service.collect_and_analyze()
        self.assertEqual(self.path.read_text(encoding="utf-8"), before)


if __name__ == "__main__":
    unittest.main()
