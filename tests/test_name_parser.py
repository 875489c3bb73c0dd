import unittest

from name_normalizer.core.identity.parser import NameTokenizer, strip_trailing_period_if_name


class TestNameTokenizer(unittest.TestCase):
    def setUp(self) -> None:
        self.tokenizer = NameTokenizer()

    def test_simple_first_last(self) -> None:
        parsed = self.tokenizer.parse("Jane Doe")
        self.assertEqual(parsed.first_name, "Jane")
        self.assertEqual(parsed.last_name, "Doe")
        self.assertEqual(parsed.prefix, "")
        self.assertEqual(parsed.middle_name, "")

    def test_particle_goes_to_prefix(self) -> None:
        parsed = self.tokenizer.parse("Ludwig van Beethoven")
        self.assertEqual(parsed.first_name, "Ludwig")
        self.assertEqual(parsed.prefix, "van")
        self.assertEqual(parsed.last_name, "Beethoven")

    def test_compound_prefix_takes_one_capitalized_word(self) -> None:
        parsed = self.tokenizer.parse("Maria del Carmen Rodriguez")
        self.assertEqual(parsed.first_name, "Maria")
        self.assertEqual(parsed.prefix, "del Carmen")
        self.assertEqual(parsed.last_name, "Rodriguez")

    def test_particle_after_middle_name(self) -> None:
        parsed = self.tokenizer.parse("Johann Sebastian van Bach")
        self.assertEqual(parsed.first_name, "Johann")
        self.assertEqual(parsed.middle_name, "Sebastian")
        self.assertEqual(parsed.prefix, "van")
        self.assertEqual(parsed.last_name, "Bach")
        self.assertEqual(parsed.display(), "Johann Sebastian van Bach")

        parsed = self.tokenizer.parse("Maria Anna de la Cruz")
        self.assertEqual(parsed.middle_name, "Anna")
        self.assertEqual(parsed.prefix, "de la")
        self.assertEqual(parsed.last_name, "Cruz")

    def test_abbreviated_particle(self) -> None:
        parsed = self.tokenizer.parse("Ruth St. Denis")
        self.assertEqual(parsed.prefix, "St.")
        self.assertEqual(parsed.middle_name, "")
        self.assertEqual(parsed.last_name, "Denis")

    def test_middle_initial_is_not_a_particle(self) -> None:
        parsed = self.tokenizer.parse("John D. Smith")
        self.assertEqual(parsed.middle_name, "D.")
        self.assertEqual(parsed.prefix, "")

    def test_prefix_never_consumes_final_token(self) -> None:
        parsed = self.tokenizer.parse("Anna de Van")
        self.assertEqual(parsed.prefix, "de")
        self.assertEqual(parsed.last_name, "Van")

    def test_comma_form_is_inverted(self) -> None:
        parsed = self.tokenizer.parse("Smith, John A.")
        self.assertEqual(parsed.first_name, "John")
        self.assertEqual(parsed.middle_name, "A.")
        self.assertEqual(parsed.last_name, "Smith")
        self.assertEqual(parsed.original, "Smith, John A.")

    def test_comma_form_keeps_trailing_suffix(self) -> None:
        parsed = self.tokenizer.parse("Smith, John, Jr.")
        self.assertEqual(parsed.first_name, "John")
        self.assertEqual(parsed.last_name, "Smith")
        self.assertEqual(parsed.suffix, "Jr.")

    def test_suffixes_are_split_off(self) -> None:
        parsed = self.tokenizer.parse("Martin Luther King Jr.")
        self.assertEqual(parsed.first_name, "Martin")
        self.assertEqual(parsed.middle_name, "Luther")
        self.assertEqual(parsed.last_name, "King")
        self.assertEqual(parsed.suffix, "Jr.")

        parsed = self.tokenizer.parse("Jane Roe PhD")
        self.assertEqual(parsed.last_name, "Roe")
        self.assertEqual(parsed.suffix, "PhD")

    def test_single_token(self) -> None:
        self.assertEqual(self.tokenizer.parse("Johnson.").last_name, "Johnson")
        lone_prefix = self.tokenizer.parse("van")
        self.assertEqual(lone_prefix.prefix, "van")
        self.assertEqual(lone_prefix.last_name, "")

    def test_empty_input_never_raises(self) -> None:
        for raw in (None, "", "   ", ", ,"):
            parsed = self.tokenizer.parse(raw)
            self.assertTrue(parsed.is_empty(), raw)

    def test_parse_many(self) -> None:
        parsed = self.tokenizer.parse_many(["Jane Doe", None, "Doe, John"])
        self.assertEqual([p.last_name for p in parsed], ["Doe", "", "Doe"])

    def test_custom_vocabularies(self) -> None:
        tokenizer = NameTokenizer(prefixes=["ter"], suffixes=["Esq."])
        parsed = tokenizer.parse("Gerard ter Borch Esq.")
        self.assertEqual(parsed.prefix, "ter")
        self.assertEqual(parsed.last_name, "Borch")
        self.assertEqual(parsed.suffix, "Esq.")

        parsed = tokenizer.parse("Borch, Gerard, Esq.")
        self.assertEqual(parsed.first_name, "Gerard")
        self.assertEqual(parsed.last_name, "Borch")
        self.assertEqual(parsed.suffix, "Esq.")


class TestStripTrailingPeriod(unittest.TestCase):
    def test_word_loses_period(self) -> None:
        self.assertEqual(strip_trailing_period_if_name("Smith."), "Smith")

    def test_abbreviations_keep_period(self) -> None:
        self.assertEqual(strip_trailing_period_if_name("K."), "K.")
        self.assertEqual(strip_trailing_period_if_name("Ph.D."), "Ph.D.")
        self.assertEqual(strip_trailing_period_if_name("Wm."), "Wm.")

    def test_no_period(self) -> None:
        self.assertEqual(strip_trailing_period_if_name("Smith"), "Smith")
        self.assertEqual(strip_trailing_period_if_name(""), "")


if __name__ == "__main__":
    unittest.main()
