import unittest

from name_normalizer.core.identity.given_names import (
    compose_given_name,
    extract_token_signature,
    find_initial_destination,
    is_likely_initial_sequence,
    normalize_given_name,
    parse_given_name_tokens,
    recommend_given_name,
    select_canonical_given_name,
    to_title_case,
)
from name_normalizer.core.identity.models import GivenNameToken


class TestNormalizeGivenName(unittest.TestCase):
    def test_initials(self) -> None:
        self.assertEqual(normalize_given_name("J."), "initial:J")
        self.assertEqual(normalize_given_name("J. R."), "initial:JR")
        self.assertEqual(normalize_given_name("JRR"), "initial:JRR")

    def test_nicknames_map_to_canonical(self) -> None:
        self.assertEqual(normalize_given_name("Bill"), "william")
        self.assertEqual(normalize_given_name("Mike"), "michael")

    def test_first_word_decides(self) -> None:
        self.assertEqual(normalize_given_name("Michael K."), "michael")
        self.assertEqual(normalize_given_name("Zoë"), "zoe")

    def test_blank(self) -> None:
        self.assertEqual(normalize_given_name(None), "")
        self.assertEqual(normalize_given_name("  "), "")


class TestInitialDestination(unittest.TestCase):
    def test_unique_candidate_only(self) -> None:
        self.assertEqual(find_initial_destination("initial:J", ["john", "mary"]), "john")
        self.assertIsNone(find_initial_destination("initial:J", ["john", "jane"]))
        self.assertIsNone(find_initial_destination("initial:Q", ["john"]))

    def test_multi_letter_prefers_full_prefix(self) -> None:
        self.assertEqual(find_initial_destination("initial:JO", ["john", "jane"]), "john")


class TestTokens(unittest.TestCase):
    def test_parse_tokens(self) -> None:
        self.assertEqual(
            parse_given_name_tokens("Michael K."),
            [GivenNameToken("word", "Michael"), GivenNameToken("initial", "K")],
        )
        self.assertEqual(
            [t.value for t in parse_given_name_tokens("J.R.R.")],
            ["J", "R", "R"],
        )
        self.assertEqual(parse_given_name_tokens("jean-pierre"), [GivenNameToken("word", "Jean-Pierre")])
        self.assertEqual(parse_given_name_tokens(""), [])

    def test_initial_sequence_detection(self) -> None:
        self.assertTrue(is_likely_initial_sequence("JR", "J.R."))
        self.assertTrue(is_likely_initial_sequence("JRR", "JRR"))
        self.assertFalse(is_likely_initial_sequence("Ann", "Ann"))
        self.assertFalse(is_likely_initial_sequence("Alexander", "Alexander"))

    def test_signature_excludes_base_word(self) -> None:
        signature = extract_token_signature(parse_given_name_tokens("Mary Ann K."))
        self.assertEqual(signature.initials, frozenset({"K"}))
        self.assertEqual(signature.extra_words, frozenset({"ann"}))
        self.assertFalse(extract_token_signature(parse_given_name_tokens("Mary")).has_connectors)

    def test_title_case(self) -> None:
        self.assertEqual(to_title_case("JEAN-PIERRE"), "Jean-Pierre")
        self.assertEqual(to_title_case("smith"), "Smith")
        self.assertEqual(to_title_case("McKenzie"), "McKenzie")


class TestCanonicalComposition(unittest.TestCase):
    def test_word_outranks_initial(self) -> None:
        canonical = select_canonical_given_name([("M.", 10), ("Michael K.", 1)], "michael")
        self.assertEqual(canonical.base_word, "Michael")
        self.assertEqual(canonical.initials, ("K",))

    def test_initial_only_borrows_canonical(self) -> None:
        canonical = select_canonical_given_name([("Michael K.", 3), ("M.", 1)], "michael")
        self.assertEqual(compose_given_name(parse_given_name_tokens("M."), canonical), "Michael K.")
        self.assertEqual(compose_given_name(parse_given_name_tokens("Michael"), canonical), "Michael")

    def test_recommendation_keeps_initials_without_plain_word(self) -> None:
        canonical = select_canonical_given_name([("Michael K.", 3), ("M.", 1)], "michael")
        self.assertEqual(recommend_given_name(["Michael K.", "M."], canonical), "Michael K.")

    def test_recommendation_drops_initials_next_to_plain_word(self) -> None:
        canonical = select_canonical_given_name([("Fred", 2), ("F. R.", 1)], "fred")
        self.assertEqual(recommend_given_name(["Fred", "F. R."], canonical), "Fred")

    def test_recommendation_empty(self) -> None:
        canonical = select_canonical_given_name([], "")
        self.assertEqual(recommend_given_name([], canonical), "")


if __name__ == "__main__":
    unittest.main()
