import unittest

from name_normalizer.core.identity.similarity import (
    PhoneticIndex,
    diacritic_invariant_form,
    edit_distance,
    is_diacritic_only_variant,
    is_similar_word,
    jaro_winkler,
    name_similarity,
    normalized_edit_similarity,
    phonetic_bucket_key,
    phonetic_key,
    soundex_code,
)


class TestEditDistance(unittest.TestCase):
    def test_distance(self) -> None:
        self.assertEqual(edit_distance("kitten", "sitting"), 3)
        self.assertEqual(edit_distance("", "abc"), 3)
        self.assertEqual(edit_distance("same", "same"), 0)

    def test_normalized_bounds(self) -> None:
        self.assertEqual(normalized_edit_similarity("", ""), 1.0)
        self.assertEqual(normalized_edit_similarity("", "abc"), 0.0)
        self.assertAlmostEqual(normalized_edit_similarity("kitten", "sitting"), 1 - 3 / 7)


class TestJaroWinkler(unittest.TestCase):
    def test_reference_values(self) -> None:
        self.assertAlmostEqual(jaro_winkler("MARTHA", "MARHTA"), 0.9611, places=3)
        self.assertAlmostEqual(jaro_winkler("DIXON", "DICKSONX"), 0.8133, places=3)

    def test_edges(self) -> None:
        self.assertEqual(jaro_winkler("abc", "abc"), 1.0)
        self.assertEqual(jaro_winkler("", "abc"), 0.0)
        self.assertEqual(jaro_winkler("abc", "xyz"), 0.0)


class TestNameSimilarity(unittest.TestCase):
    def test_similar_words(self) -> None:
        self.assertTrue(is_similar_word("J.", "John"))
        self.assertTrue(is_similar_word("Bill", "William"))
        self.assertTrue(is_similar_word("Jon", "Jonathan"))
        self.assertTrue(is_similar_word("Smith.", "smith"))
        self.assertFalse(is_similar_word("Jane", "John"))

    def test_case_and_spacing_do_not_matter(self) -> None:
        self.assertAlmostEqual(name_similarity("John Smith", "john  smith"), 1.0)

    def test_initial_beats_different_name(self) -> None:
        with_initial = name_similarity("J. Smith", "John Smith")
        different = name_similarity("Jane Smith", "John Smith")
        self.assertGreater(with_initial, different)
        self.assertLessEqual(with_initial, 1.0)


class TestDiacritics(unittest.TestCase):
    def test_folding(self) -> None:
        self.assertEqual(diacritic_invariant_form("Müller"), "mueller")
        self.assertEqual(diacritic_invariant_form("Mueller"), "mueller")
        self.assertEqual(diacritic_invariant_form("Dvořák"), "dvorak")
        self.assertEqual(diacritic_invariant_form("Łukasz"), "lukasz")
        self.assertEqual(diacritic_invariant_form(""), "")

    def test_only_diacritic_variants_match(self) -> None:
        self.assertTrue(is_diacritic_only_variant("MÜLLER", "Mueller"))
        self.assertTrue(is_diacritic_only_variant("José", "Jose"))
        self.assertFalse(is_diacritic_only_variant("Bennett", "Dennett"))
        self.assertFalse(is_diacritic_only_variant("Anderson", "Andersen"))


class TestPhonetic(unittest.TestCase):
    def test_soundex(self) -> None:
        self.assertEqual(soundex_code("Robert"), "R163")
        self.assertEqual(soundex_code("Rupert"), "R163")
        self.assertEqual(soundex_code("Tymczak"), "T522")
        self.assertEqual(soundex_code("Pfister"), "P236")
        self.assertEqual(soundex_code("Ashcraft"), "A261")
        self.assertEqual(soundex_code("Lee"), "L000")
        self.assertEqual(soundex_code("123"), "")

    def test_keys(self) -> None:
        self.assertEqual(phonetic_key("Smith"), "sS530")
        self.assertEqual(phonetic_key("Smyth"), phonetic_key("Smith"))
        self.assertEqual(phonetic_bucket_key("Li"), "LT")
        self.assertEqual(phonetic_bucket_key("Smith"), "SS")
        self.assertEqual(phonetic_bucket_key("Rodriguez"), "RM")
        self.assertEqual(phonetic_bucket_key("Vanderbilt-Smith"), "VL")

    def test_index_buckets_by_last_word(self) -> None:
        index = PhoneticIndex(["john smith", "jane smyth", "mary brown"])
        self.assertEqual(len(index), 3)
        self.assertEqual(index.candidates("bob smith"), {"john smith", "jane smyth"})
        index.discard("jane smyth")
        self.assertEqual(index.candidates("smith"), {"john smith"})
        index.clear()
        self.assertEqual(len(index), 0)


if __name__ == "__main__":
    unittest.main()
